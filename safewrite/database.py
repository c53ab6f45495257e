from .collection import Collection
from .common import support_alert, ok_name
from .errors import InvalidName


class Database():
    def __init__(self, db_name, client):
        self.name = db_name
        self.client = client
        self._engine = client.engine
        self._cache = {}

    def __repr__(self):
        return "Database(%s, %r)" % (repr(self.client), self.name)

    def __getattr__(self, attr):
        if attr.startswith('_'):
            raise AttributeError(attr)
        return self[attr]

    def __getitem__(self, collection_name):
        try:
            return self._cache[collection_name]
        except KeyError:
            if not ok_name(collection_name):
                raise InvalidName("Collection cannot be named %r." % collection_name)
            coll = Collection(collection_name, self)
            self._cache[collection_name] = coll
            return coll

    @support_alert
    def get_collection(self, name, write_concern=None):
        """
        :param name str:
        :param write_concern WriteConcern|None:
        :rtype: Collection
        """
        return self[name].with_options(write_concern=write_concern)

    @support_alert
    def list_collection_names(self):
        """
        Collections are created on first insert, so only collections holding
        documents are listed.

        :rtype: list[str]
        """
        prefix = self.name + '.'
        return sorted(full_name[len(prefix):] for full_name in self._engine.list_collections()
                      if full_name.startswith(prefix))

    @support_alert
    def drop_collection(self, name_or_collection):
        """
        :param name_or_collection str|Collection:
        :rtype: None
        """
        if isinstance(name_or_collection, Collection):
            name_or_collection = name_or_collection.name
        self._engine.delete_collection(f'{self.name}.{name_or_collection}')
        self._cache.pop(name_or_collection, None)
