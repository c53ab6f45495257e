from .common import support_alert, ok_name
from .database import Database
from .engines import memory_engine
from .errors import ConfigurationError, InvalidName


class SafewriteClient():
    """
    In-memory client with a pymongo-like interface. It is thread-safe.
    `nodes` is the number of data-bearing members the store pretends to
    have. Writes asking for more acknowledgments than that fail with a
    WriteConcernError.
    """

    def __init__(self, nodes=1, strict=False):
        if isinstance(nodes, bool) or not isinstance(nodes, int) or nodes < 1:
            raise ConfigurationError("nodes must be a positive integer, not %r" % (nodes,))
        self.nodes = nodes
        self.engine = memory_engine.MemoryEngine.create(strict)
        self._cache = {}

    def __repr__(self):
        return "SafewriteClient(nodes=%d)" % self.nodes

    def __getattr__(self, attr):
        if attr.startswith('_'):
            raise AttributeError(attr)
        return self[attr]

    def __getitem__(self, db_name):
        try:
            return self._cache[db_name]
        except KeyError:
            if not ok_name(db_name):
                raise InvalidName("Database cannot be named %r." % db_name)
            db = Database(db_name, self)
            self._cache[db_name] = db
            return db

    @support_alert
    def get_database(self, name):
        return self[name]

    @support_alert
    def list_database_names(self):
        """
        List every database holding at least one document.

        :rtype: list[str]
        """
        return sorted({full_name.split('.', 1)[0]
                       for full_name in self.engine.list_collections()})

    @support_alert
    def drop_database(self, name_or_database):
        """
        Drop a database.

        :param name_or_database str|database.Database:
        :rtype: None
        """
        if isinstance(name_or_database, Database):
            name_or_database = name_or_database.name
        db = self[name_or_database]
        for coll_name in db.list_collection_names():
            db.drop_collection(coll_name)
        self._cache.pop(name_or_database, None)

    @support_alert
    def close(self):
        """
        Remove all data held by the client.

        :rtype: None
        """
        self.engine.close()
