"""
A small document layer on top of a safewrite (or pymongo-like) database.
Every write resolves its write concern through `merge_safety_options`, so it
honours explicit options, `safely` / `unsafely` overrides and the
configured defaults in that order.
"""

import copy
import logging

import bson

from .errors import DocumentNotFound, SafewriteError
from .safety import Safety, merge_safety_options
from .write_concern import WriteConcern


logger = logging.getLogger(__name__)


class Document(Safety):
    """
    Subclass and set `collection_name`, then attach a database with `bind`.

        class Person(Document):
            collection_name = 'people'

        Person.bind(client.db)
        person = Person.create({'name': 'John'})
        person.safely(2).delete()
    """
    collection_name = None
    _database = None

    def __init__(self, attributes=None, **kwargs):
        self._attributes = copy.deepcopy(attributes or {})
        self._attributes.update(kwargs)
        if self._attributes.get('_id') is None:
            self._attributes['_id'] = bson.ObjectId()
        self.new_record = True
        self.destroyed = False

    def __repr__(self):
        return "%s(%r)" % (type(self).__name__, self._attributes)

    def __eq__(self, other):
        if isinstance(other, Document):
            return type(self) is type(other) and self.id == other.id
        return NotImplemented

    def __hash__(self):
        return hash((type(self), self.id))

    def __getitem__(self, key):
        return self._attributes[key]

    def __setitem__(self, key, val):
        if key == '_id' and not self.new_record:
            raise SafewriteError("The _id of a persisted document can't be changed")
        self._attributes[key] = val

    def __contains__(self, key):
        return key in self._attributes

    def get(self, key, default=None):
        return self._attributes.get(key, default)

    @property
    def id(self):
        return self._attributes['_id']

    @property
    def attributes(self):
        return copy.deepcopy(self._attributes)

    @property
    def persisted(self):
        return not self.new_record and not self.destroyed

    @classmethod
    def bind(cls, database):
        """
        Attach the database documents of this class are stored in.

        :param database Database:
        :rtype: None
        """
        cls._database = database

    @classmethod
    def collection(cls):
        """
        :rtype: Collection
        """
        if cls._database is None:
            raise SafewriteError("%s is not bound to a database. Call %s.bind(database)."
                                 % (cls.__name__, cls.__name__))
        return cls._database[cls.collection_name or cls.__name__.lower()]

    @classmethod
    def _write_collection(cls, op_name, write_concern):
        """
        The collection to write to, carrying the resolved write concern.

        :param op_name str:
        :param write_concern dict: explicit options given to the operation
        :rtype: Collection
        """
        options = merge_safety_options(write_concern)
        logger.debug("%s.%s with write concern %r", cls.__name__, op_name, options)
        return cls.collection().with_options(write_concern=WriteConcern.from_document(options))

    @classmethod
    def _from_storage(cls, doc):
        instance = cls(doc)
        instance.new_record = False
        return instance

    def insert(self, **write_concern):
        """
        Insert this document.

        :rtype: Document
        """
        self._write_collection('insert', write_concern).insert_one(self._attributes)
        self.new_record = False
        return self

    def update(self, **write_concern):
        """
        Write every attribute of this persisted document. Raises
        DocumentNotFound when an acknowledged write matches nothing.

        :rtype: Document
        """
        coll = self._write_collection('update', write_concern)
        result = coll.replace_one({'_id': self.id}, self._attributes)
        if result.acknowledged and not result.matched_count:
            raise DocumentNotFound.create(type(self).__name__, self.id)
        return self

    def save(self, **write_concern):
        """
        Insert the document if it's new, otherwise update it.

        :rtype: Document
        """
        if self.new_record:
            return self.insert(**write_concern)
        return self.update(**write_concern)

    def upsert(self, **write_concern):
        """
        Insert or replace the document whatever its state.

        :rtype: Document
        """
        coll = self._write_collection('upsert', write_concern)
        coll.replace_one({'_id': self.id}, self._attributes, upsert=True)
        self.new_record = False
        return self

    def delete(self, **write_concern):
        """
        Remove the document from the collection.

        :rtype: bool
        """
        result = self._write_collection('delete', write_concern).delete_one({'_id': self.id})
        self.destroyed = True
        if result.acknowledged:
            return result.deleted_count == 1
        return True

    def reload(self):
        """
        Replace the attributes with what the store holds.

        :rtype: Document
        """
        doc = self.collection().find_one({'_id': self.id})
        if doc is None:
            raise DocumentNotFound.create(type(self).__name__, self.id)
        self._attributes = doc
        return self

    @classmethod
    def create(cls, attributes=None, **write_concern):
        """
        Build and insert a document.

        :param attributes dict|None:
        :rtype: Document
        """
        return cls(attributes).insert(**write_concern)

    @classmethod
    def delete_all(cls, filter=None, **write_concern):
        """
        Delete every matching document. Returns the number deleted, or None
        when the write was not acknowledged.

        :param filter dict|None:
        :rtype: int|None
        """
        result = cls._write_collection('delete_all', write_concern).delete_many(filter or {})
        if result.acknowledged:
            return result.deleted_count
        return None

    @classmethod
    def find(cls, _id):
        """
        :param _id:
        :rtype: Document
        """
        doc = cls.collection().find_one({'_id': _id})
        if doc is None:
            raise DocumentNotFound.create(cls.__name__, _id)
        return cls._from_storage(doc)

    @classmethod
    def where(cls, filter=None, sort=None, limit=None):
        """
        :param filter dict|None:
        :rtype: list[Document]
        """
        return [cls._from_storage(doc)
                for doc in cls.collection().find(filter or {}, sort=sort, limit=limit)]

    @classmethod
    def count(cls, filter=None):
        return cls.collection().count_documents(filter or {})
