import functools
import re

import bson

from .errors import SafewriteError

ASCENDING = 1
DESCENDING = -1

_invalid_names = re.compile(r'[/\. "$*<>:|?]')


def ok_name(name):
    """
    In-line with MongoDB restrictions.
    https://docs.mongodb.com/manual/reference/limits/#std-label-restrictions-on-db-names
    The prohibition on "system." names will be covered by the prohibition on '.'
    """
    if not name:
        return False
    if _invalid_names.search(name):
        return False
    if len(name) > 64:
        return False
    return True


def id_key(_id):
    """
    Sortable storage key for a document _id. ObjectIds and strings can't be
    compared with each other so the type name goes first.

    :param _id bson.ObjectId|str|int:
    :rtype: (str, str)
    """
    if isinstance(_id, bson.ObjectId):
        return ('objectid', str(_id))
    return (type(_id).__name__, str(_id))


def support_alert(func):
    """
    Provide smart tips if the user tries to use un-implemented / deprecated
    known kwargs.
    """
    @functools.wraps(func)
    def inner(*args, **kwargs):
        for k in kwargs:
            if k not in func.__code__.co_varnames:
                raise SafewriteError("The argument %r is not supported by %r in safewrite. "
                                     "This may or may not be supported in PyMongo."
                                     % (k, func.__name__))
        return func(*args, **kwargs)
    return inner
