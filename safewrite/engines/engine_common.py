import abc


class Engine(abc.ABC):
    @abc.abstractmethod
    def put_doc(self, collection, doc, no_overwrite=False):
        """
        :param collection str: full collection name
        :param doc dict: document with an _id
        :param no_overwrite bool:
        :rtype: bool

        Store a doc under its _id. With no_overwrite, refuse to replace an
        existing document and return False.
        """

    @abc.abstractmethod
    def get_doc(self, collection, _id):
        """
        :param collection str:
        :param _id:
        :rtype: dict|None

        Fetch a copy of a doc. If the doc doesn't exist, return None
        """

    @abc.abstractmethod
    def doc_exists(self, collection, _id):
        """
        :param collection str:
        :param _id:
        :rtype: bool
        """

    @abc.abstractmethod
    def iter_docs(self, collection):
        """
        :param collection str:
        :rtype: iterator[dict]

        Yield copies of every doc in the collection, in _id order.
        """

    @abc.abstractmethod
    def delete_doc(self, collection, _id):
        """
        :param collection str:
        :param _id:
        :rtype: bool

        Delete the document. Return True if found and deleted.
        """

    @abc.abstractmethod
    def delete_collection(self, collection):
        """
        :param collection str:
        :rtype: bool
        """

    @abc.abstractmethod
    def list_collections(self):
        """
        :rtype: list[str]

        Full names of every collection holding at least one document.
        """

    @abc.abstractmethod
    def sync(self):
        """
        Flush writes to durable storage. Called for writes with j or fsync.
        """

    @abc.abstractmethod
    def close(self):
        """
        Delete all local cache to free memory
        """
