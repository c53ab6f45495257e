"""
Per-call write concern overrides.

`safely` and `unsafely` let a caller ask for a different acknowledgment
policy on the next persistence operation without passing options through
every call:

    person.safely().save()
    person.safely({'w': 2, 'fsync': True}).save()
    Person.unsafely().delete_all()

The override is held in a ContextVar, so every thread and every asyncio task
has its own. It is only installed for the duration of the one call made
through the proxy, and it is removed when that call exits.
"""

import collections.abc
import contextlib
import contextvars
import functools
import inspect
import logging
import types

from .config import get_config
from .write_concern import ACKNOWLEDGMENT_KEYS, ALIASES


logger = logging.getLogger(__name__)

_safety_options = contextvars.ContextVar('safewrite_safety_options', default=None)


def get_safety_options():
    """
    The override for the current thread / task, or None.

    :rtype: dict|None
    """
    return _safety_options.get()


def set_safety_options(options):
    """
    Install an override for the current thread / task. It stays until
    `clear_safety_options` is called. Prefer `safety_override` or the
    `safely` proxy, which clean up after themselves.

    :param options dict|None:
    :rtype: contextvars.Token
    """
    return _safety_options.set(options)


def clear_safety_options():
    _safety_options.set(None)


@contextlib.contextmanager
def safety_override(options):
    """
    Install `options` as the override for the body of the with-block. The
    previous value is restored on exit, including when the block raises.

    :param options dict|None:
    """
    token = _safety_options.set(options)
    logger.debug("Write concern override %r installed", options)
    try:
        yield options
    finally:
        _safety_options.reset(token)
        logger.debug("Write concern override %r cleared", options)


def normalize_safety(safety=1):
    """
    Turn the argument of `safely` into write concern options.
    bool -> {'w': 1} or {'w': 0}, None -> no override, mappings are
    copied as is, anything else is taken as 'w' ({'w': n}, {'w': mode}).
    Never raises, checking the value is up to the store.

    :param safety int|bool|str|dict|None:
    :rtype: dict|None
    """
    if safety is None:
        return None
    if isinstance(safety, bool):
        return {'w': 1 if safety else 0}
    if isinstance(safety, collections.abc.Mapping):
        return dict(safety)
    return {'w': safety}


def _sets_acknowledgment(options):
    for key, val in options.items():
        if ALIASES.get(key, key) not in ACKNOWLEDGMENT_KEYS:
            continue
        if val is not None and val is not False:
            return True
    return False


def resolve_write_concern(options, override, default_write_concern, persist_in_safe_mode):
    """
    Compute the effective write concern options. The first source with an
    opinion wins:

    1. explicit options that set any of w, j (or journal), fsync or
       wtimeout (returned unchanged, nothing is merged in)
    2. the per-call override
    3. the configured default write concern
    4. {'w': 1} when persisting in safe mode, otherwise {'w': 0}

    For 2-4 the winning source is merged on top of the explicit options.
    A key counts as set when it is present and not None or False. Never
    raises and never mutates its arguments.

    :param options dict|None:
    :param override dict|None:
    :param default_write_concern dict|None:
    :param persist_in_safe_mode bool:
    :rtype: dict
    """
    merged = dict(options or {})
    if _sets_acknowledgment(merged):
        return merged
    if override is not None:
        merged.update(override)
    elif default_write_concern is not None:
        merged.update(default_write_concern)
    else:
        merged['w'] = 1 if persist_in_safe_mode else 0
    return merged


def merge_safety_options(options=None, config=None):
    """
    Resolve the write concern options for a persistence operation running
    in the current thread / task. Persistence operations call this right
    before talking to the store.

    :param options dict|None: explicit per-call options
    :param config Config|None: defaults to the installed config
    :rtype: dict
    """
    config = config or get_config()
    merged = resolve_write_concern(options,
                                   _safety_options.get(),
                                   config.default_write_concern,
                                   config.persist_in_safe_mode)
    logger.debug("Resolved write concern %r from explicit options %r", merged, options)
    return merged


class SafetyProxy():
    """
    Pairs a receiver (a document or a document class) with an override.
    Calling a method through the proxy runs that method on the receiver with
    the override installed. Attributes that aren't callable are returned
    as they are. Coroutine functions get the override while the coroutine
    runs, so await the result.
    """

    def __init__(self, receiver, options):
        self._receiver = receiver
        self._options = options

    def __repr__(self):
        return "SafetyProxy(%r, %r)" % (self._receiver, self._options)

    @property
    def receiver(self):
        return self._receiver

    @property
    def options(self):
        if self._options is None:
            return None
        return dict(self._options)

    def __getattr__(self, attr):
        target = getattr(self._receiver, attr)
        if not callable(target):
            return target

        @functools.wraps(target)
        def inner(*args, **kwargs):
            return self.execute(target, *args, **kwargs)
        return inner

    def execute(self, func, *args, **kwargs):
        """
        Run any callable under this proxy's override.

        :param func callable:
        """
        if inspect.iscoroutinefunction(func):
            return self._execute_async(func, *args, **kwargs)
        with safety_override(self.options):
            return func(*args, **kwargs)

    async def _execute_async(self, func, *args, **kwargs):
        with safety_override(self.options):
            return await func(*args, **kwargs)


class receivermethod():
    """
    Like classmethod, but binds to the instance when accessed from one.
    """

    def __init__(self, func):
        self.__func__ = func
        functools.update_wrapper(self, func)

    def __get__(self, obj, owner=None):
        return types.MethodType(self.__func__, owner if obj is None else obj)


class Safety():
    """
    Mixin giving `safely` and `unsafely` to a class and its instances.
    """

    @receivermethod
    def safely(receiver, safety=1):
        """
        Run the next persistence operation in safe mode.

            person.safely().save()
            person.safely({'w': 2, 'fsync': True}).delete()
            Person.safely(2).create({'name': 'John'})

        :param safety int|str|dict|None: 'w' as an int or mode, or a dict with
            any of w, wtimeout, j and fsync
        :rtype: SafetyProxy
        """
        return SafetyProxy(receiver, normalize_safety(safety))

    @receivermethod
    def unsafely(receiver):
        """
        Run the next persistence operation without waiting for an
        acknowledgment, even when persisting in safe mode by default.

            Person.unsafely().create({'name': 'John'})

        :rtype: SafetyProxy
        """
        return SafetyProxy(receiver, {'w': 0})
