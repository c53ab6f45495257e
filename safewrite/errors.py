from pymongo.errors import PyMongoError


class SafewriteError(PyMongoError):
    pass


class ConfigurationError(SafewriteError):
    pass


class InvalidName(SafewriteError):
    pass


class InvalidOperation(SafewriteError):
    pass


class OperationFailure(SafewriteError):
    def __init__(self, message, code=None, details=None):
        super().__init__(message)
        self.code = code
        self.details = details


class DuplicateKeyError(OperationFailure):
    def __init__(self, message, details=None):
        super().__init__(message, code=11000, details=details)


class WriteConcernError(OperationFailure):
    def __init__(self, message, details=None):
        super().__init__(message, code=100, details=details)


class DocumentNotFound(SafewriteError):
    @staticmethod
    def create(cls_name, _id):
        msg = "Document not found for class %s with id %r." % (cls_name, _id)
        return DocumentNotFound(msg)
