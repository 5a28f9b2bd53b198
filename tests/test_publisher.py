"""Unit tests for StatusPublisher."""

import asyncio
from unittest.mock import AsyncMock

from monitor.errors import StatusMessageGone
from monitor.status_cache import RefState

from .conftest import CHANNEL_A, GUILD, STATUS


async def test_first_publish_sends_and_caches(publisher, sink):
    await publisher.publish(GUILD)

    sends = sink.calls_of("send")
    assert len(sends) == 1
    ref = publisher.cache.get(STATUS)
    assert ref.state is RefState.PRESENT
    assert ref.message_id == sends[0][2]
    assert "<#11>" in sink.text_of(STATUS, ref.message_id)


async def test_recovered_status_message_is_edited(publisher, sink):
    existing = sink.post_status(STATUS)

    await publisher.publish(GUILD)

    assert sink.calls_of("send") == []
    assert sink.calls_of("edit") == [("edit", STATUS, existing.id)]
    assert publisher.cache.get(STATUS).message_id == existing.id


async def test_buried_status_message_is_replaced(publisher, sink, monitor):
    await publisher.publish(GUILD)
    old_id = publisher.cache.get(STATUS).message_id
    sink.post(STATUS, 5, "chatter in the status channel")
    monitor.set_channel_busy(CHANNEL_A, 5)

    await publisher.publish(GUILD)

    new_id = publisher.cache.get(STATUS).message_id
    assert new_id != old_id
    assert ("delete", STATUS, old_id) in sink.calls
    assert old_id not in sink.ids(STATUS)
    assert sink.ids(STATUS)[-1] == new_id
    assert "claimed by <@5>" in sink.text_of(STATUS, new_id)


async def test_second_publish_edits_in_place(publisher, sink, monitor):
    await publisher.publish(GUILD)
    monitor.set_channel_busy(CHANNEL_A, 5)
    await publisher.publish(GUILD)

    assert len(sink.calls_of("send")) == 1
    assert len(sink.calls_of("edit")) == 1
    assert sink.calls_of("delete") == []


async def test_failed_edit_leaves_cache_unchanged(publisher, sink):
    await publisher.publish(GUILD)
    before = publisher.cache.get(STATUS)
    sink.fail_edit = True

    await publisher.publish(GUILD)   # logged, not raised

    assert publisher.cache.get(STATUS) == before


async def test_failed_send_leaves_cache_without_message(publisher, sink):
    sink.fail_send = True
    await publisher.publish(GUILD)
    assert publisher.cache.get(STATUS).state is RefState.ABSENT

    sink.fail_send = False
    await publisher.publish(GUILD)
    assert publisher.cache.get(STATUS).is_present


async def test_vanished_status_message_is_reposted(publisher, sink):
    await publisher.publish(GUILD)
    old_id = publisher.cache.get(STATUS).message_id
    # deleted by a moderator, but the channel's latest id still points at it
    sink.channels[STATUS] = []
    sink.latest_message_id = lambda channel_id: _immediately(old_id)

    await publisher.publish(GUILD)

    sends = sink.calls_of("send")
    assert len(sends) == 2
    new_id = sends[-1][2]
    assert new_id != old_id
    assert sink.ids(STATUS) == [new_id]
    assert publisher.cache.get(STATUS).message_id == new_id


async def test_status_message_that_keeps_vanishing_is_retried_once(publisher, sink):
    existing = sink.post_status(STATUS)
    sink.edit_message = AsyncMock(side_effect=StatusMessageGone("gone"))

    await publisher.publish(GUILD)

    assert sink.edit_message.await_count == 2
    assert sink.calls_of("send") == []
    assert publisher.cache.get(STATUS).state is RefState.UNKNOWN
    assert sink.ids(STATUS) == [existing.id]


async def test_failed_history_scan_is_absorbed(publisher, sink):
    sink.fail_history = True
    await publisher.publish(GUILD)
    assert sink.calls_of("send") == []
    assert publisher.cache.get(STATUS).state is RefState.UNKNOWN


async def test_unconfigured_guild_publishes_nothing(publisher, sink):
    await publisher.publish(404)
    assert sink.calls == []


async def test_concurrent_publishes_are_serialised(publisher, sink):
    await asyncio.gather(publisher.publish(GUILD), publisher.publish(GUILD), publisher.publish(GUILD))

    assert len(sink.calls_of("send")) == 1
    assert len(sink.calls_of("edit")) == 2
    assert len(sink.ids(STATUS)) == 1


async def test_schedule_runs_in_background(publisher, sink):
    task = publisher.schedule(GUILD)
    assert sink.calls == []
    await task
    assert len(sink.calls_of("send")) == 1


async def test_wait_idle_drains_scheduled_publishes(publisher, sink):
    publisher.schedule(GUILD)
    publisher.schedule(GUILD)
    await publisher.wait_idle()
    assert len(sink.calls_of("send")) == 1
    assert len(sink.calls_of("edit")) == 1


async def test_layout_from_sink_is_used(publisher, sink, monitor):
    from monitor.state import ChannelGroup

    sink.layouts[GUILD] = [ChannelGroup("Questions", (CHANNEL_A,))]
    await publisher.publish(GUILD)
    text = sink.text_of(STATUS, publisher.cache.get(STATUS).message_id)
    assert "__Questions__" in text


async def _immediately(value):
    return value
