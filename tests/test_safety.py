import asyncio
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

import safewrite
from safewrite import Config, Safety, SafetyProxy, configure, merge_safety_options
from safewrite.safety import (clear_safety_options, get_safety_options, normalize_safety,
                              resolve_write_concern, safety_override, set_safety_options)


class Recorder(Safety):
    def __init__(self):
        self.seen = []

    def write(self, **options):
        self.seen.append(merge_safety_options(options))
        return self

    def peek(self):
        return get_safety_options()

    def fail(self):
        raise RuntimeError("write failed")

    @classmethod
    def class_write(cls, **options):
        return merge_safety_options(options)


@pytest.mark.parametrize("n", [0, 1, 2, 3, 5, 50])
def test_safely_int_stores_w(n):
    rec = Recorder()
    proxy = rec.safely(n)
    assert isinstance(proxy, SafetyProxy)
    assert proxy.options == {'w': n}
    assert proxy.peek() == {'w': n}
    assert Recorder.safely(n).class_write() == {'w': n}


def test_normalize_safety():
    assert normalize_safety() == {'w': 1}
    assert normalize_safety(3) == {'w': 3}
    assert normalize_safety(True) == {'w': 1}
    assert normalize_safety(False) == {'w': 0}
    assert normalize_safety('majority') == {'w': 'majority'}
    assert normalize_safety({'w': 2, 'fsync': True}) == {'w': 2, 'fsync': True}
    assert normalize_safety(None) is None
    assert normalize_safety(2.0) == {'w': 2.0}
    assert normalize_safety(['w']) == {'w': ['w']}


def test_safely_copies_mapping():
    options = {'w': 2, 'fsync': True}
    proxy = Recorder.safely(options)
    options['w'] = 9
    assert proxy.options == {'w': 2, 'fsync': True}
    assert Recorder.safely(options).options == {'w': 9, 'fsync': True}


def test_safely_default_is_one():
    assert Recorder.safely().class_write() == {'w': 1}


def test_proxy_returns_receiver_results():
    rec = Recorder()
    assert rec.safely(2).write() is rec
    assert rec.seen == [{'w': 2}]
    proxy = rec.safely(2)
    assert proxy.receiver is rec
    assert proxy.seen is rec.seen
    assert isinstance(repr(proxy), str)


def test_explicit_wins():
    configure(default_write_concern={'w': 2, 'fsync': True}, persist_in_safe_mode=True)
    assert merge_safety_options({'w': 5}) == {'w': 5}
    with safety_override({'w': 0}):
        assert merge_safety_options({'w': 5}) == {'w': 5}
    assert Recorder.unsafely().class_write(w=5) == {'w': 5}
    assert Recorder.safely(3).class_write(j=True) == {'j': True}
    assert Recorder.safely(3).class_write(wtimeout=100) == {'wtimeout': 100}


def test_explicit_w_zero_counts_as_set():
    configure(persist_in_safe_mode=True)
    assert merge_safety_options({'w': 0}) == {'w': 0}


def test_explicit_false_or_none_does_not_count():
    assert merge_safety_options({'fsync': False}) == {'fsync': False, 'w': 0}
    assert merge_safety_options({'w': None}) == {'w': 0}
    with safety_override({'w': 2}):
        assert merge_safety_options({'j': False}) == {'j': False, 'w': 2}


def test_override_merged_on_top_of_explicit():
    with safety_override({'w': 2, 'fsync': True}):
        assert merge_safety_options({'upsert': True}) == {'upsert': True, 'w': 2, 'fsync': True}


def test_override_beats_global_default():
    configure(default_write_concern={'w': 2, 'fsync': True})
    assert Recorder.safely(3).class_write() == {'w': 3}


def test_global_default():
    configure(default_write_concern={'w': 2, 'fsync': True})
    assert merge_safety_options({}) == {'w': 2, 'fsync': True}
    assert merge_safety_options() == {'w': 2, 'fsync': True}
    assert merge_safety_options(None) == {'w': 2, 'fsync': True}


def test_flag_default():
    assert merge_safety_options({}) == {'w': 0}
    configure(persist_in_safe_mode=True)
    assert merge_safety_options({}) == {'w': 1}


def test_explicit_config_argument():
    assert merge_safety_options({}, config=Config(persist_in_safe_mode=True)) == {'w': 1}
    assert merge_safety_options({}) == {'w': 0}


def test_unsafely_beats_safe_defaults():
    configure(default_write_concern={'w': 2}, persist_in_safe_mode=True)
    rec = Recorder()
    rec.unsafely().write()
    assert rec.seen == [{'w': 0}]
    assert Recorder.unsafely().class_write() == {'w': 0}
    assert Recorder.unsafely().options == {'w': 0}


def test_resolve_is_pure():
    options = {'upsert': True}
    override = {'w': 2}
    default = {'w': 3}
    assert resolve_write_concern(options, override, default, True) == {'upsert': True, 'w': 2}
    assert options == {'upsert': True}
    assert override == {'w': 2}
    assert default == {'w': 3}
    explicit = {'w': 4}
    result = resolve_write_concern(explicit, None, None, False)
    assert result == explicit
    assert result is not explicit
    assert resolve_write_concern(None, None, None, False) == {'w': 0}
    assert resolve_write_concern(None, None, {'wtimeout': 10}, True) == {'wtimeout': 10}


def test_unknown_keys_pass_through():
    assert merge_safety_options({'w': 'nonsense', 'bogus': 1}) == {'w': 'nonsense', 'bogus': 1}
    assert merge_safety_options({'bogus': 1}) == {'bogus': 1, 'w': 0}


def test_override_cleared_after_call():
    rec = Recorder()
    rec.safely(3).write()
    assert get_safety_options() is None
    rec.write()
    assert rec.seen == [{'w': 3}, {'w': 0}]


def test_override_cleared_after_failure():
    rec = Recorder()
    with pytest.raises(RuntimeError):
        rec.safely(3).fail()
    assert get_safety_options() is None


def test_nested_override_restores_outer():
    with safety_override({'w': 2}):
        with safety_override({'w': 0}):
            assert merge_safety_options() == {'w': 0}
        assert merge_safety_options() == {'w': 2}
    assert get_safety_options() is None


def test_set_and_clear():
    set_safety_options({'w': 4})
    assert get_safety_options() == {'w': 4}
    assert merge_safety_options() == {'w': 4}
    assert merge_safety_options() == {'w': 4}
    clear_safety_options()
    assert get_safety_options() is None
    assert merge_safety_options() == {'w': 0}


def test_execute_runs_any_callable():
    proxy = Recorder.safely(2)
    assert proxy.execute(merge_safety_options, {'bogus': 1}) == {'bogus': 1, 'w': 2}
    assert get_safety_options() is None


def test_threads_do_not_share_overrides():
    barrier = threading.Barrier(2, timeout=5)

    class Waiter(Safety):
        @classmethod
        def write(cls):
            barrier.wait()
            return merge_safety_options()

    def run(n):
        seen = Waiter.safely(n).write()
        return seen, get_safety_options()

    with ThreadPoolExecutor(max_workers=2) as executor:
        results = list(executor.map(run, [3, 4]))
    assert results == [({'w': 3}, None), ({'w': 4}, None)]
    assert get_safety_options() is None


def test_threads_same_override():
    with ThreadPoolExecutor(max_workers=4) as executor:
        results = list(executor.map(lambda _: Recorder.safely(3).class_write(), range(8)))
    assert results == [{'w': 3}] * 8


def test_tasks_do_not_share_overrides():
    async def write(n):
        with safety_override({'w': n}):
            await asyncio.sleep(0)
            return merge_safety_options()

    async def main():
        return await asyncio.gather(write(1), write(2), write(3))

    assert asyncio.run(main()) == [{'w': 1}, {'w': 2}, {'w': 3}]


def test_package_exports():
    assert safewrite.safety_override is safety_override
    assert safewrite.resolve_write_concern is resolve_write_concern


def test_safely_none_falls_through_to_defaults():
    configure(persist_in_safe_mode=True)
    proxy = Recorder.safely(None)
    assert proxy.options is None
    assert proxy.class_write() == {'w': 1}


def test_safely_odd_values_do_not_raise():
    assert Recorder.safely(2.0).class_write() == {'w': 2.0}


@pytest.mark.parametrize("explicit", [
    {'journal': True},
    {'j': True},
    {'journal': True, 'wtimeout': None},
])
def test_journal_alias_counts_as_explicit(explicit):
    assert merge_safety_options(explicit) == explicit
    with safety_override({'w': 0}):
        assert merge_safety_options(explicit) == explicit


def test_journal_false_does_not_count():
    assert merge_safety_options({'journal': False}) == {'journal': False, 'w': 0}


class AsyncRecorder(Safety):
    @classmethod
    async def class_write(cls, **options):
        await asyncio.sleep(0)
        return merge_safety_options(options)


def test_proxy_keeps_override_for_coroutines():
    async def main():
        pending = AsyncRecorder.safely(3).class_write()
        assert get_safety_options() is None
        seen = await pending
        return seen, get_safety_options()

    assert asyncio.run(main()) == ({'w': 3}, None)


def test_proxy_clears_override_after_failed_coroutine():
    class Failing(Safety):
        async def write(self):
            raise RuntimeError("write failed")

    async def main():
        with pytest.raises(RuntimeError):
            await Failing().safely(2).write()
        return get_safety_options()

    assert asyncio.run(main()) is None
