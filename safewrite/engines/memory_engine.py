import copy
import threading

import bson
import sortedcontainers

from ..common import id_key
from .engine_common import Engine


class MemoryEngine(Engine):
    """
    Keeps every collection in a SortedDict keyed by _id. With strict=True,
    documents are stored as BSON so anything BSON can't encode is rejected
    the way a real server would.
    """

    def __init__(self, strict=False):
        self._strict = strict
        self._cache = {}
        self.sync_count = 0
        self.lock = threading.RLock()

    @classmethod
    def create(cls, strict=False):
        return cls(strict)

    def _to_storage(self, doc):
        if self._strict:
            return bson.encode(doc)
        return copy.deepcopy(doc)

    def _from_storage(self, obj):
        if self._strict:
            return bson.decode(obj)
        return copy.deepcopy(obj)

    def put_doc(self, collection, doc, no_overwrite=False):
        with self.lock:
            docs = self._cache.setdefault(collection, sortedcontainers.SortedDict())
            key = id_key(doc['_id'])
            if no_overwrite and key in docs:
                return False
            docs[key] = self._to_storage(doc)
            return True

    def get_doc(self, collection, _id):
        try:
            obj = self._cache[collection][id_key(_id)]
        except KeyError:
            return None
        return self._from_storage(obj)

    def doc_exists(self, collection, _id):
        return id_key(_id) in self._cache.get(collection, {})

    def iter_docs(self, collection):
        with self.lock:
            objs = list(self._cache.get(collection, {}).values())
        for obj in objs:
            yield self._from_storage(obj)

    def delete_doc(self, collection, _id):
        with self.lock:
            try:
                del self._cache[collection][id_key(_id)]
            except KeyError:
                return False
            return True

    def delete_collection(self, collection):
        with self.lock:
            return self._cache.pop(collection, None) is not None

    def list_collections(self):
        with self.lock:
            return [name for name, docs in self._cache.items() if docs]

    def sync(self):
        with self.lock:
            self.sync_count += 1

    def close(self):
        with self.lock:
            self._cache = {}
