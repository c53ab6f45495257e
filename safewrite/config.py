import json
import logging
import os
import threading

from .errors import ConfigurationError


logger = logging.getLogger(__name__)

ENV_PERSIST_IN_SAFE_MODE = 'SAFEWRITE_PERSIST_IN_SAFE_MODE'
ENV_DEFAULT_WRITE_CONCERN = 'SAFEWRITE_DEFAULT_WRITE_CONCERN'

_TRUE_STRINGS = ('1', 'true', 'yes', 'on')
_FALSE_STRINGS = ('0', 'false', 'no', 'off', '')


def _normalize_write_concern(write_concern):
    """
    An int is shorthand for {'w': n}. None means no default is configured.

    :param write_concern int|dict|None:
    :rtype: dict|None
    """
    if write_concern is None:
        return None
    if isinstance(write_concern, bool):
        raise ConfigurationError("default_write_concern cannot be a boolean. "
                                 "Use persist_in_safe_mode instead.")
    if isinstance(write_concern, int):
        return {'w': write_concern}
    if isinstance(write_concern, dict):
        return dict(write_concern)
    raise ConfigurationError("default_write_concern must be a dict, an int or None, "
                             "not %r" % type(write_concern))


def _parse_bool(raw, name):
    val = raw.strip().lower()
    if val in _TRUE_STRINGS:
        return True
    if val in _FALSE_STRINGS:
        return False
    raise ConfigurationError("%s must be one of %r or %r, not %r"
                             % (name, _TRUE_STRINGS, _FALSE_STRINGS, raw))


class Config():
    """
    Process-wide persistence settings. Built once at startup and read-only
    afterwards. Install it with `configure`.
    """
    KEYS = ('default_write_concern', 'persist_in_safe_mode')

    def __init__(self, default_write_concern=None, persist_in_safe_mode=False):
        if not isinstance(persist_in_safe_mode, bool):
            raise ConfigurationError("persist_in_safe_mode must be True or False, "
                                     "not %r" % type(persist_in_safe_mode))
        self._default_write_concern = _normalize_write_concern(default_write_concern)
        self._persist_in_safe_mode = persist_in_safe_mode

    def __repr__(self):
        return "Config(default_write_concern=%r, persist_in_safe_mode=%r)" % (
            self._default_write_concern, self._persist_in_safe_mode)

    def __eq__(self, other):
        if isinstance(other, Config):
            return (self._default_write_concern == other._default_write_concern
                    and self._persist_in_safe_mode == other._persist_in_safe_mode)
        return NotImplemented

    @property
    def default_write_concern(self):
        if self._default_write_concern is None:
            return None
        return dict(self._default_write_concern)

    @property
    def persist_in_safe_mode(self):
        return self._persist_in_safe_mode

    @classmethod
    def from_mapping(cls, mapping):
        """
        Build a Config from a dict, e.g. a section of an application's
        settings file.

        :param mapping dict:
        :rtype: Config
        """
        unknown = set(mapping) - set(cls.KEYS)
        if unknown:
            raise ConfigurationError("Unknown configuration keys %r. Supported keys "
                                     "are %r." % (sorted(unknown), cls.KEYS))
        return cls(**mapping)

    @classmethod
    def from_env(cls, environ=None):
        """
        Build a Config from environment variables.
        SAFEWRITE_DEFAULT_WRITE_CONCERN holds a JSON object or a bare integer.

        :param environ dict|None: defaults to os.environ
        :rtype: Config
        """
        environ = os.environ if environ is None else environ
        kwargs = {}
        raw_safe = environ.get(ENV_PERSIST_IN_SAFE_MODE)
        if raw_safe is not None:
            kwargs['persist_in_safe_mode'] = _parse_bool(raw_safe, ENV_PERSIST_IN_SAFE_MODE)
        raw_wc = environ.get(ENV_DEFAULT_WRITE_CONCERN)
        if raw_wc and raw_wc.strip():
            try:
                kwargs['default_write_concern'] = json.loads(raw_wc)
            except ValueError as ex:
                raise ConfigurationError("%s is not valid JSON: %r"
                                         % (ENV_DEFAULT_WRITE_CONCERN, raw_wc)) from ex
        return cls(**kwargs)


_config = Config()
_config_lock = threading.Lock()


def get_config():
    """
    :rtype: Config
    """
    return _config


def configure(config=None, **kwargs):
    """
    Install the process-wide Config. Either pass a Config or the keyword
    arguments to build one. Returns the previously installed Config so that
    callers (mostly tests) can put it back.

    :param config Config|None:
    :rtype: Config
    """
    global _config
    if config is not None and kwargs:
        raise ConfigurationError("Pass either a Config or keyword arguments, not both")
    if config is None:
        config = Config(**kwargs)
    elif not isinstance(config, Config):
        raise ConfigurationError("configure expects a Config, not %r" % type(config))
    with _config_lock:
        previous = _config
        _config = config
    logger.info("Installed %r", config)
    return previous
