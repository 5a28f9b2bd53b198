"""Unit tests for StatusMessageCache reconciliation."""

import asyncio

import pytest

from monitor.errors import PublishFailure
from monitor.status_cache import RefState, StatusMessageCache

from .conftest import BOT_ID, STATUS


async def test_cold_cache_finds_own_status_message(sink):
    sink.post(STATUS, 5)
    status = sink.post_status(STATUS)
    sink.post(STATUS, 6)
    cache = StatusMessageCache(sink)

    ref = await cache.resolve(STATUS)

    assert ref.state is RefState.PRESENT
    assert ref.message_id == status.id
    assert cache.get(STATUS) == ref


async def test_scan_runs_only_once(sink):
    sink.post_status(STATUS)
    cache = StatusMessageCache(sink)
    await cache.resolve(STATUS)
    await cache.resolve(STATUS)
    assert sink.history_calls == 1


async def test_most_recent_status_message_wins(sink):
    sink.post_status(STATUS)
    newest = sink.post_status(STATUS)
    cache = StatusMessageCache(sink)
    assert (await cache.resolve(STATUS)).message_id == newest.id


async def test_status_from_another_author_is_ignored(sink):
    sink.post(STATUS, 1234, is_bot=True, is_status=True)
    sink.post(STATUS, BOT_ID, "hello", is_self=True, is_bot=True)
    cache = StatusMessageCache(sink)

    ref = await cache.resolve(STATUS)

    assert ref.state is RefState.ABSENT
    assert ref.message_id is None


async def test_scan_window_is_bounded(sink):
    sink.post_status(STATUS)
    for _ in range(5):
        sink.post(STATUS, 7)
    cache = StatusMessageCache(sink, scan_limit=5)
    assert (await cache.resolve(STATUS)).state is RefState.ABSENT


async def test_failed_scan_stays_unknown(sink):
    sink.fail_history = True
    cache = StatusMessageCache(sink)
    with pytest.raises(PublishFailure):
        await cache.resolve(STATUS)
    assert cache.get(STATUS).state is RefState.UNKNOWN


async def test_concurrent_resolves_share_one_scan(sink):
    status = sink.post_status(STATUS)
    cache = StatusMessageCache(sink)
    refs = await asyncio.gather(*(cache.resolve(STATUS) for _ in range(5)))
    assert {r.message_id for r in refs} == {status.id}
    assert sink.history_calls == 1


async def test_invalidate_triggers_rescan(sink):
    cache = StatusMessageCache(sink)
    assert (await cache.resolve(STATUS)).state is RefState.ABSENT
    status = sink.post_status(STATUS)
    assert (await cache.resolve(STATUS)).state is RefState.ABSENT   # cached

    cache.invalidate(STATUS)

    assert (await cache.resolve(STATUS)).message_id == status.id
    assert sink.history_calls == 2
