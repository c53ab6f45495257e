import copy
import datetime
import functools
import logging
import re

import bson

from .cursor import Cursor, _validate_sort
from .common import support_alert, ASCENDING, DESCENDING
from .errors import (SafewriteError, DuplicateKeyError, InvalidName, OperationFailure,
                     WriteConcernError)
from .results import InsertOneResult, InsertManyResult, DeleteResult, UpdateResult
from .write_concern import WriteConcern


logger = logging.getLogger(__name__)

_SUPPORTED_FILTER_OPERATORS = ('$in', '$eq', '$gt', '$gte', '$lt', '$lte', '$ne', '$nin')
_SUPPORTED_UPDATE_OPERATORS = ('$set', '$unset', '$inc')

# FROM docs.mongodb.com/manual/reference/bson-type-comparison-order/#comparison-sort-order
SORT_ORDER = {
    int: b'\x02',
    float: b'\x02',
    str: b'\x03',
    dict: b'\x04',
    list: b'\x05',
    bytes: b'\x06',
    bson.ObjectId: b'\x07',
    bool: b'\x08',
    datetime.datetime: b'\t',
    re.Pattern: b'\n',
}


def _validate_filter(filter):
    """
    Validate the 'filter' parameter.
    This is near the top of most public methods.

    :param filter dict:
    :rtype: None
    """
    if not isinstance(filter, dict):
        raise SafewriteError("The filter parameter must be a dict, not %r" % type(filter))
    for k, query_ops in filter.items():
        if not isinstance(k, str):
            raise SafewriteError("Filter keys must be strings, not %r" % type(k))
        if isinstance(query_ops, dict):
            for op in query_ops:
                if op.startswith('$') and op not in _SUPPORTED_FILTER_OPERATORS:
                    raise SafewriteError(
                        "safewrite does not support %r. These filter operators are "
                        "supported: %r" % (op, _SUPPORTED_FILTER_OPERATORS))


def _validate_update(update):
    """
    Validate the 'update' parameter.

    :param update dict:
    :rtype: None
    """
    if not isinstance(update, dict) or not update:
        raise SafewriteError("The update parameter must be a non-empty dict")
    for k, update_dict in update.items():
        if k not in _SUPPORTED_UPDATE_OPERATORS:
            raise SafewriteError(
                "In update operations, you must use one of the supported "
                "update operators %r, not %r." % (_SUPPORTED_UPDATE_OPERATORS, k))
        if not isinstance(update_dict, dict):
            raise SafewriteError("The update operator must be a dict, "
                                 "not %r" % type(update_dict))
        if '_id' in update_dict:
            raise OperationFailure("Performing an update on the path '_id' would "
                                   "modify the immutable field '_id'", code=66)


def _validate_doc(doc):
    """
    Validate the 'doc' parameter.
    This is near the top of the public insert / replace methods.

    :param doc dict:
    :rtype: None
    """
    if not isinstance(doc, dict):
        raise SafewriteError("The document must be a dict, not %r" % type(doc))
    _id = doc.get('_id')
    if _id is not None and not isinstance(_id, (bson.ObjectId, str, int)):
        raise SafewriteError("The document _id must be a bson ObjectId, a string, "
                             "an int, or not present")
    for k in doc.keys():
        if not k or not isinstance(k, str) or k.startswith('$'):
            raise InvalidName("All document keys must be non-empty strings and cannot "
                              "start with '$'.")


def _get_item_from_doc(doc, key):
    """
    Get an item from the document given a key which might use dot notation.

    e.g.
    doc = {'deep': {'nested': {'list': ['a', 'b', 'c']}}}
    key = 'deep.nested.list.1'
    -> 'b'

    :param doc dict:
    :param key str:
    :rtype: value
    """
    item = doc
    for level in key.split('.'):
        if isinstance(item, list):
            try:
                item = item[int(level)]
            except (ValueError, IndexError):
                return None
        elif isinstance(item, dict):
            item = item.get(level)
        else:
            return None
    return item


def _compare(doc_v, query_val, op):
    try:
        return op(doc_v, query_val)
    except TypeError:
        return False


def _doc_matches_agg(doc_v, query_ops):
    """
    Return whether an individual document value matches a dict of
    query operations.

    e.g. collection.find({'path.to.doc_v': {'$query_op': query_val}})

    :param doc_v: The value in the doc to compare against
    :param query_ops {$query_op: query_val}:
    :rtype: bool
    """
    if not (isinstance(query_ops, dict) and any(k.startswith('$') for k in query_ops)):
        if isinstance(doc_v, list) and not isinstance(query_ops, list):
            return query_ops in doc_v
        return doc_v == query_ops

    for query_op, query_val in query_ops.items():
        if query_op == '$eq':
            if not _doc_matches_agg(doc_v, query_val):
                return False
        elif query_op == '$ne':
            if _doc_matches_agg(doc_v, query_val):
                return False
        elif query_op in ('$in', '$nin'):
            if not isinstance(query_val, (list, tuple, set)):
                raise SafewriteError("%r requires an iterable" % query_op)
            if isinstance(doc_v, list):
                found = any(v in query_val for v in doc_v)
            else:
                found = doc_v in query_val
            if found != (query_op == '$in'):
                return False
        elif query_op == '$lt':
            if not _compare(doc_v, query_val, lambda a, b: a < b):
                return False
        elif query_op == '$lte':
            if not _compare(doc_v, query_val, lambda a, b: a <= b):
                return False
        elif query_op == '$gt':
            if not _compare(doc_v, query_val, lambda a, b: a > b):
                return False
        elif query_op == '$gte':
            if not _compare(doc_v, query_val, lambda a, b: a >= b):
                return False
    return True


def _doc_matches_filter(doc, filter):
    """
    :param doc dict:
    :param filter dict:
    :rtype: bool
    """
    for key, query_ops in filter.items():
        if not _doc_matches_agg(_get_item_from_doc(doc, key), query_ops):
            return False
    return True


def _get_parent_for_write(doc, key):
    """
    Walk a dotted key, creating missing subdocuments, and return the parent
    dict and the last key part.

    :param doc dict:
    :param key str:
    :rtype: (dict, str)
    """
    *path, last = key.split('.')
    parent = doc
    for level in path:
        child = parent.get(level)
        if child is None:
            child = parent[level] = {}
        if not isinstance(child, dict):
            raise OperationFailure("Cannot create field %r in element %r" % (last, level),
                                   code=28)
        parent = child
    return parent, last


def _check_update_arguments(update):
    """
    Reject update arguments the server would refuse. This runs as part of the
    write, so unacknowledged writes don't report it.

    :param update dict:
    :rtype: None
    """
    for key, val in update.get('$inc', {}).items():
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            raise OperationFailure("Cannot increment with non-numeric argument: "
                                   "{%s: %r}" % (key, val), code=14)


def _update_item_in_doc(update_op, update_op_dict, doc):
    """
    Apply one update operator to the document in place.

    :param update_op str:
    :param update_op_dict {str: value}:
    :param doc dict:
    :rtype: None
    """
    for key, val in update_op_dict.items():
        parent, last = _get_parent_for_write(doc, key)
        if update_op == '$set':
            parent[last] = copy.deepcopy(val)
        elif update_op == '$unset':
            parent.pop(last, None)
        elif update_op == '$inc':
            current = parent.get(last, 0)
            if isinstance(current, bool) or not isinstance(current, (int, float)):
                raise OperationFailure("Cannot apply $inc to a value of non-numeric type. "
                                       "%r has the field %r of non-numeric type %r"
                                       % (doc.get('_id'), key, type(current)), code=14)
            parent[last] = current + val


def _sort_tup(item):
    """
    Get sort tuple of item type according to mongodb rules

    :param item Value:
    :rtype: (bytes, Value)
    """
    try:
        return (SORT_ORDER[type(item)], item)
    except KeyError:
        pass
    # None and unknown types sort first
    return (b'\x01', 0)


def _sort_func(doc, sort_key):
    return _sort_tup(_get_item_from_doc(doc, sort_key))


def _sort_docs(docs, sort_list):
    """
    Given the sort list provided in the .sort() method,
    sort the documents in place.

    :param docs list[dict]:
    :param sort_list list[(key, direction)]
    :rtype: None
    """
    for sort_key, direction in reversed(sort_list):
        _sort_func_partial = functools.partial(_sort_func, sort_key=sort_key)
        if direction == ASCENDING:
            docs.sort(key=_sort_func_partial)
        elif direction == DESCENDING:
            docs.sort(key=_sort_func_partial, reverse=True)


class Collection():
    def __init__(self, collection_name, database, write_concern=None):
        self.name = collection_name
        self.database = database
        self._write_concern = write_concern or WriteConcern()
        self._engine = database._engine
        self._base_location = f'{database.name}.{collection_name}'

    def __repr__(self):
        return "Collection(%s, %r)" % (repr(self.database), self.name)

    def __eq__(self, other):
        if isinstance(other, Collection):
            return self.full_name == other.full_name and self.database == other.database
        return NotImplemented

    def __hash__(self):
        return hash(self.full_name)

    @property
    def full_name(self):
        return self._base_location

    @property
    def write_concern(self):
        return self._write_concern

    @support_alert
    def with_options(self, write_concern=None):
        """
        Get a clone of this collection that writes with a different write
        concern.

        :param write_concern WriteConcern|None:
        :rtype: Collection
        """
        if write_concern is not None and not isinstance(write_concern, WriteConcern):
            raise TypeError("write_concern must be a WriteConcern, not %r" % type(write_concern))
        return Collection(self.name, self.database,
                          write_concern=write_concern or self._write_concern)

    def __check_write_concern(self):
        """
        Fail before writing anything if the store can't satisfy 'w'.
        """
        w = self._write_concern.w
        nodes = self.database.client.nodes
        if isinstance(w, str) and w != 'majority':
            raise WriteConcernError("Unrecognized write concern mode %r" % w,
                                    details={'w': w})
        if isinstance(w, int) and w > nodes:
            raise WriteConcernError("Not enough data-bearing nodes. Requested %d, "
                                    "have %d" % (w, nodes),
                                    details={'w': w, 'nodes': nodes})

    def __write(self, op_name, write, unacknowledged_result):
        """
        Run a write under this collection's write concern. Unacknowledged
        writes never report errors from the write itself.

        :param op_name str:
        :param write callable: does the write and returns the result
        :param unacknowledged_result: returned if an unacknowledged write fails
        """
        write_concern = self._write_concern
        self.__check_write_concern()
        if not write_concern.acknowledged:
            try:
                result = write()
            except OperationFailure as ex:
                logger.debug("Unacknowledged %s on %s dropped error: %s",
                             op_name, self.full_name, ex)
                return unacknowledged_result
            result.acknowledged = False
            return result
        result = write()
        if write_concern.j or write_concern.fsync:
            self._engine.sync()
        return result

    def __insert_one(self, document):
        if not self._engine.put_doc(self.full_name, document, no_overwrite=True):
            raise DuplicateKeyError("E11000 duplicate key error collection: %s "
                                    "dup key: { _id: %r }" % (self.full_name, document['_id']),
                                    details={'_id': document['_id']})

    def __find_ids(self, filter, sort=None, limit=None):
        """
        Given the filter, return matching _ids, sorted and limited.

        :param filter dict:
        :param sort list[(key, direction)]|None
        :param limit int|None
        :rtype: list
        """
        if set(filter) == {'_id'} and not isinstance(filter['_id'], dict):
            doc = self._engine.get_doc(self.full_name, filter['_id'])
            return [doc['_id']] if doc else []
        docs = [doc for doc in self._engine.iter_docs(self.full_name)
                if _doc_matches_filter(doc, filter)]
        if sort:
            _sort_docs(docs, sort)
        if limit:
            docs = docs[:limit]
        return [doc['_id'] for doc in docs]

    def __find(self, filter, sort=None, limit=None):
        for doc_id in self.__find_ids(filter, sort, limit):
            doc = self._engine.get_doc(self.full_name, doc_id)
            if doc is not None:
                yield doc

    @support_alert
    def insert_one(self, document):
        """
        Insert a single document.

        :param document dict:
        :rtype: results.InsertOneResult
        """
        _validate_doc(document)
        document = copy.deepcopy(document)
        if document.get('_id') is None:
            document['_id'] = bson.ObjectId()

        def write():
            self.__insert_one(document)
            return InsertOneResult(document['_id'])
        return self.__write('insert_one', write,
                            InsertOneResult(document['_id'], acknowledged=False))

    @support_alert
    def insert_many(self, documents, ordered=True):
        """
        Insert documents. If ordered, stop inserting if there is an error.
        If not ordered, all operations are attempted.

        :param list documents:
        :param bool ordered:
        :rtype: results.InsertManyResult
        """
        if not isinstance(documents, list):
            raise SafewriteError("Documents must be a list")
        ready_docs = []
        for doc in documents:
            _validate_doc(doc)
            doc = copy.deepcopy(doc)
            if doc.get('_id') is None:
                doc['_id'] = bson.ObjectId()
            ready_docs.append(doc)

        def write():
            success_docs = []
            errors = []
            with self._engine.lock:
                for doc in ready_docs:
                    try:
                        self.__insert_one(doc)
                    except DuplicateKeyError as ex:
                        if ordered:
                            raise OperationFailure("Ending insert_many because of error",
                                                   details={'inserted': len(success_docs)}) from ex
                        errors.append(ex)
                        continue
                    success_docs.append(doc)
            if errors:
                raise OperationFailure("Not all documents inserted",
                                       details={'inserted': len(success_docs)}) from errors[0]
            return InsertManyResult(success_docs)
        return self.__write('insert_many', write,
                            InsertManyResult(ready_docs, acknowledged=False))

    @support_alert
    def replace_one(self, filter, replacement, upsert=False):
        """
        Replace one document. If no document was found with the filter,
        and upsert is True, insert the replacement.

        :param filter dict:
        :param replacement dict:
        :param bool upsert:
        :rtype: results.UpdateResult
        """
        _validate_filter(filter)
        _validate_doc(replacement)
        replacement = copy.deepcopy(replacement)

        def write():
            with self._engine.lock:
                doc_ids = self.__find_ids(filter, limit=1)
                if not doc_ids:
                    if not upsert:
                        return UpdateResult(0, 0)
                    if replacement.get('_id') is None:
                        replacement['_id'] = filter.get('_id')
                        if replacement['_id'] is None or isinstance(replacement['_id'], dict):
                            replacement['_id'] = bson.ObjectId()
                    self.__insert_one(replacement)
                    return UpdateResult(0, 0, replacement['_id'])
                if replacement.get('_id') not in (None, doc_ids[0]):
                    raise OperationFailure("The _id field cannot be changed from %r to %r"
                                           % (doc_ids[0], replacement['_id']), code=66)
                replacement['_id'] = doc_ids[0]
                self._engine.put_doc(self.full_name, replacement)
                return UpdateResult(1, 1)
        return self.__write('replace_one', write, UpdateResult(0, 0, acknowledged=False))

    def __update_docs(self, filter, update, upsert, limit):
        """
        Apply the update to every matched document. Nothing is stored unless
        the update succeeds on all of them.
        """
        _check_update_arguments(update)
        with self._engine.lock:
            doc_ids = self.__find_ids(filter, limit=limit)
            if not doc_ids:
                if not upsert:
                    return UpdateResult(0, 0)
                doc = {k: copy.deepcopy(v) for k, v in filter.items()
                       if '.' not in k and not isinstance(v, dict)}
                for update_op, update_op_dict in update.items():
                    _update_item_in_doc(update_op, update_op_dict, doc)
                if doc.get('_id') is None:
                    doc['_id'] = bson.ObjectId()
                self.__insert_one(doc)
                return UpdateResult(0, 0, doc['_id'])
            changed_docs = []
            for doc_id in doc_ids:
                doc = self._engine.get_doc(self.full_name, doc_id)
                original = copy.deepcopy(doc)
                for update_op, update_op_dict in update.items():
                    _update_item_in_doc(update_op, update_op_dict, doc)
                if doc != original:
                    changed_docs.append(doc)
            for doc in changed_docs:
                self._engine.put_doc(self.full_name, doc)
            return UpdateResult(len(doc_ids), len(changed_docs))

    @support_alert
    def update_one(self, filter, update, upsert=False):
        """
        Find one document matching the filter and update it.

        :param filter dict:
        :param update dict:
        :param upsert bool:
        :rtype: results.UpdateResult
        """
        _validate_filter(filter)
        _validate_update(update)
        return self.__write('update_one',
                            lambda: self.__update_docs(filter, update, upsert, limit=1),
                            UpdateResult(0, 0, acknowledged=False))

    @support_alert
    def update_many(self, filter, update, upsert=False):
        """
        Update every document matched by the filter.

        :param filter dict:
        :param update dict:
        :param upsert bool:
        :rtype: results.UpdateResult
        """
        _validate_filter(filter)
        _validate_update(update)
        return self.__write('update_many',
                            lambda: self.__update_docs(filter, update, upsert, limit=None),
                            UpdateResult(0, 0, acknowledged=False))

    def __delete_docs(self, filter, limit):
        with self._engine.lock:
            deleted = 0
            for doc_id in self.__find_ids(filter, limit=limit):
                if self._engine.delete_doc(self.full_name, doc_id):
                    deleted += 1
            return DeleteResult(deleted)

    @support_alert
    def delete_one(self, filter):
        """
        Delete one document matching the filter.

        :param filter dict:
        :rtype: results.DeleteResult
        """
        _validate_filter(filter)
        return self.__write('delete_one', lambda: self.__delete_docs(filter, limit=1),
                            DeleteResult(0, acknowledged=False))

    @support_alert
    def delete_many(self, filter):
        """
        Delete all documents matching the filter.

        :param filter dict:
        :rtype: results.DeleteResult
        """
        _validate_filter(filter)
        return self.__write('delete_many', lambda: self.__delete_docs(filter, limit=None),
                            DeleteResult(0, acknowledged=False))

    @support_alert
    def find_one(self, filter=None, sort=None):
        """
        Return the first matching document.

        :param filter dict:
        :param sort list[(key, direction)]|None:
        :rtype: dict|None
        """
        filter = filter or {}
        _validate_filter(filter)
        sort = _validate_sort(sort) if sort else None
        for doc in self.__find(filter, sort, limit=1):
            return doc
        return None

    @support_alert
    def find(self, filter=None, sort=None, limit=None):
        """
        Return a cursor of all matching documents.

        :param filter dict:
        :param sort list[(key, direction)]|None:
        :param limit int|None:
        :rtype: cursor.Cursor
        """
        filter = filter or {}
        _validate_filter(filter)
        if limit is not None and not isinstance(limit, int):
            raise TypeError('Limit must be an integer')
        return Cursor(self.__find, filter, sort, limit)

    @support_alert
    def count_documents(self, filter):
        """
        Returns the number of documents in this collection matching the filter.

        :param filter dict:
        :rtype: int
        """
        _validate_filter(filter)
        return len(self.__find_ids(filter))

    @support_alert
    def drop(self):
        self.database.drop_collection(self.name)
