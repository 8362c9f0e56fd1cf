"""Tests for operator command helpers."""

import asyncio
from datetime import timedelta

from escalation.commands import format_member_status, format_totals, resolve_member
from tests.fakes import SPACE_ID, build_harness
from tracking.acknowledgments import AckKey

MEMBER = 10


def test_totals():
    harness = build_harness(threshold=1)
    harness.repository.add_announcement(harness.gateway.post(100).to_announcement())
    harness.repository.tracker.record_miss(AckKey(MEMBER, 100))
    harness.repository.tracker.mark_notified(AckKey(MEMBER, 100))
    harness.repository.tracker.record_miss(AckKey(11, 100))

    assert format_totals(harness.repository) == (
        "Tracking 1 announcement(s). 2 unconfirmed pair(s), 1 escalated to moderators."
    )


def test_member_status_lists_pending_pairs():
    harness = build_harness(threshold=1)
    record = harness.gateway.post(100)
    harness.repository.add_announcement(record.to_announcement())
    harness.repository.tracker.record_miss(AckKey(MEMBER, 100))
    harness.repository.tracker.mark_notified(AckKey(MEMBER, 100))

    text = format_member_status(harness.repository, MEMBER, "Alex")

    assert text.startswith("Alex has 1 unconfirmed announcement(s):")
    assert f"{record.jump_url}: missed 1 (escalated)" in text


def test_member_status_when_caught_up_with_suspension_counter():
    harness = build_harness(threshold=2, suspension=timedelta(hours=1))

    text = format_member_status(harness.repository, MEMBER, "Alex", harness.suspensions)

    assert text == "Alex has no unconfirmed announcements.\nMissed check-ins toward suspension: 0."


def test_resolve_purges_tracking_and_lifts_suspension():
    harness = build_harness(threshold=1, suspension=timedelta(hours=1))
    harness.repository.tracker.record_miss(AckKey(MEMBER, 100))
    harness.repository.tracker.record_miss(AckKey(MEMBER, 101))
    harness.repository.tracker.record_miss(AckKey(11, 100))

    async def scenario():
        await harness.suspensions.record_sweep(MEMBER, SPACE_ID, missed=True)
        result = await resolve_member(harness.repository, MEMBER, "Alex", harness.suspensions)
        pending = harness.suspensions.scheduler.pending(MEMBER)
        return result, pending

    (reply, purged, lifted), pending = asyncio.run(scenario())

    assert reply == "Cleared 2 unconfirmed announcement(s) for Alex. Suspension lifted."
    assert (purged, lifted) == (2, True)
    assert pending is False
    assert harness.repository.tracker.entries_for_member(MEMBER) == {}
    assert harness.repository.tracker.get(AckKey(11, 100)).missed_count == 1
    assert harness.gateway.lifted == [MEMBER]


def test_resolve_without_suspension_tier():
    harness = build_harness(threshold=1)
    harness.repository.tracker.record_miss(AckKey(MEMBER, 100))

    reply, purged, lifted = asyncio.run(resolve_member(harness.repository, MEMBER, "Alex"))

    assert reply == "Cleared 1 unconfirmed announcement(s) for Alex."
    assert (purged, lifted) == (1, False)
