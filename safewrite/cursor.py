from .errors import SafewriteError, InvalidOperation
from .common import ASCENDING, DESCENDING, support_alert


def _validate_sort(key_or_list, direction=None):
    """
    Normalize the sort parameter into a list of (key, direction) tuples.

    :param key_or_list str|[(key, direction)]:
    :param direction int|None:
    :rtype: list[(str, int)]
    """
    if direction is None and isinstance(key_or_list, (list, tuple)) \
       and all(isinstance(tup, (list, tuple)) and len(tup) == 2 for tup in key_or_list):
        sort = [tuple(tup) for tup in key_or_list]
    elif direction is None and isinstance(key_or_list, str):
        sort = [(key_or_list, ASCENDING)]
    elif isinstance(key_or_list, str) and isinstance(direction, int):
        sort = [(key_or_list, direction)]
    else:
        raise SafewriteError("Unsupported sort parameter format %r" % (key_or_list,))
    for sort_key, sort_direction in sort:
        if not isinstance(sort_key, str):
            raise SafewriteError("Sort key(s) must be strings %r" % str(key_or_list))
        if sort_direction not in (ASCENDING, DESCENDING):
            raise SafewriteError("Sort direction(s) must be either ASCENDING (1) or "
                                 "DESCENDING (-1). Not %r" % sort_direction)
    return sort


class Cursor():
    def __init__(self, _find, filter, sort=None, limit=None):
        self._find = _find
        self._filter = filter
        self._sort = _validate_sort(sort) if sort else []
        self._limit = limit or None
        self._cursor = None

    def __iter__(self):
        for el in self._gen():
            yield el

    def __next__(self):
        return next(self._gen())

    def _gen(self):
        """
        Don't run the query until the first document is requested
        """
        if self._cursor is None:
            self._cursor = self._find(filter=self._filter, sort=self._sort, limit=self._limit)
        return self._cursor

    @support_alert
    def next(self):
        """
        Returns the next document in the Cursor. Raises StopIteration if there
        are no more documents.

        :rtype: dict
        """
        return next(self._gen())

    @support_alert
    def sort(self, key_or_list, direction=None):
        """
        Apply a sort to the cursor. Only the last sort is applied.

        :param key_or_list str|[(key, direction)]:
        :param direction safewrite.ASCENDING|safewrite.DESCENDING:
        :rtype: cursor.Cursor
        """
        if self._cursor is not None:
            raise InvalidOperation("Cursor has already started and can't be sorted")
        self._sort = _validate_sort(key_or_list, direction)
        return self

    @support_alert
    def limit(self, limit):
        """
        :param limit int:
        :rtype: cursor.Cursor
        """
        if not isinstance(limit, int):
            raise TypeError('Limit must be an integer')
        if self._cursor is not None:
            raise InvalidOperation("Cursor has already started and can't be limited")
        self._limit = limit or None
        return self

    @support_alert
    def close(self):
        self._cursor = iter(())
