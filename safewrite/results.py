from .errors import InvalidOperation


class _WriteResult():
    def __init__(self, acknowledged):
        self.acknowledged = acknowledged

    def _raise_if_unacknowledged(self, property_name):
        if not self.acknowledged:
            raise InvalidOperation("A value for %s is not available when the write is "
                                   "unacknowledged. Check the acknowledged attribute "
                                   "to avoid this error." % property_name)


class InsertOneResult(_WriteResult):
    def __init__(self, inserted_id, acknowledged=True):
        super().__init__(acknowledged)
        self.inserted_id = inserted_id

    def __repr__(self):
        return "InsertOneResult(%r, acknowledged=%r)" % (self.inserted_id, self.acknowledged)


class InsertManyResult(_WriteResult):
    def __init__(self, documents, acknowledged=True):
        super().__init__(acknowledged)
        self.inserted_ids = [d['_id'] for d in documents]

    def __repr__(self):
        return "InsertManyResult(%r, acknowledged=%r)" % (self.inserted_ids, self.acknowledged)


class UpdateResult(_WriteResult):
    def __init__(self, matched_count, modified_count, upserted_id=None, acknowledged=True):
        super().__init__(acknowledged)
        self._matched_count = matched_count
        self._modified_count = modified_count
        self._upserted_id = upserted_id

    def __repr__(self):
        return "UpdateResult(acknowledged=%r)" % self.acknowledged

    @property
    def matched_count(self):
        self._raise_if_unacknowledged('matched_count')
        return self._matched_count

    @property
    def modified_count(self):
        self._raise_if_unacknowledged('modified_count')
        return self._modified_count

    @property
    def upserted_id(self):
        self._raise_if_unacknowledged('upserted_id')
        return self._upserted_id


class DeleteResult(_WriteResult):
    def __init__(self, deleted_count, acknowledged=True):
        super().__init__(acknowledged)
        self._deleted_count = deleted_count

    def __repr__(self):
        return "DeleteResult(acknowledged=%r)" % self.acknowledged

    @property
    def deleted_count(self):
        self._raise_if_unacknowledged('deleted_count')
        return self._deleted_count
