from .errors import ConfigurationError


ACKNOWLEDGMENT_KEYS = ('w', 'j', 'fsync', 'wtimeout')
ALIASES = {'journal': 'j'}


class WriteConcern():
    """
    The acknowledgment policy requested from the store for a write.
    Validation happens here, when the store is about to use the options,
    and not when they are resolved.
    """

    def __init__(self, w=None, wtimeout=None, j=None, fsync=None):
        self._document = {}
        if w is not None:
            if isinstance(w, bool) or not isinstance(w, (int, str)):
                raise ConfigurationError("w must be an integer or a string, not %r" % type(w))
            if isinstance(w, int) and w < 0:
                raise ConfigurationError("w cannot be negative")
            self._document['w'] = w
        if wtimeout is not None:
            if isinstance(wtimeout, bool) or not isinstance(wtimeout, int):
                raise ConfigurationError("wtimeout must be an integer, not %r" % type(wtimeout))
            if wtimeout < 0:
                raise ConfigurationError("wtimeout cannot be negative")
            self._document['wtimeout'] = wtimeout
        if j is not None:
            if not isinstance(j, bool):
                raise ConfigurationError("j must be True or False")
            self._document['j'] = j
        if fsync is not None:
            if not isinstance(fsync, bool):
                raise ConfigurationError("fsync must be True or False")
            if fsync and j:
                raise ConfigurationError("Can't set both j and fsync at the same time")
            self._document['fsync'] = fsync
        if w == 0 and (j or fsync):
            raise ConfigurationError("Cannot set w to 0 and j or fsync to True")

    @classmethod
    def from_document(cls, document):
        """
        Build a WriteConcern from resolved options. 'journal' is accepted
        as an alias of 'j'.

        :param document dict|None:
        :rtype: WriteConcern
        """
        kwargs = {}
        for key, val in (document or {}).items():
            key = ALIASES.get(key, key)
            if key not in ACKNOWLEDGMENT_KEYS:
                raise ConfigurationError("Unknown write concern option %r" % key)
            kwargs[key] = val
        return cls(**kwargs)

    def __repr__(self):
        return "WriteConcern(%s)" % ", ".join("%s=%r" % kv for kv in self._document.items())

    def __eq__(self, other):
        if isinstance(other, WriteConcern):
            return self._document == other._document
        return NotImplemented

    @property
    def w(self):
        return self._document.get('w')

    @property
    def wtimeout(self):
        return self._document.get('wtimeout')

    @property
    def j(self):
        return self._document.get('j')

    @property
    def fsync(self):
        return self._document.get('fsync')

    @property
    def acknowledged(self):
        return self._document.get('w') != 0

    @property
    def document(self):
        return self._document.copy()

    @property
    def is_server_default(self):
        return not self._document
