"""Tests for immediate event reactions."""

import asyncio

import pytest

from gateway.refs import MemberRecord, MemberRef, MessageRef
from tests.fakes import CHANNEL_ID, CHECKMARK, OTHER_CHANNEL_ID, SPACE_ID, build_harness
from tracking.acknowledgments import AckKey

MEMBER = 10
ANNOUNCEMENT = 100
REF = MessageRef(CHANNEL_ID, ANNOUNCEMENT, SPACE_ID)


@pytest.fixture
def notified():
    """Harness where MEMBER has already been escalated for ANNOUNCEMENT."""
    harness = build_harness(threshold=1)
    harness.gateway.add_member(MEMBER)
    harness.repository.add_announcement(harness.gateway.post(ANNOUNCEMENT).to_announcement())
    asyncio.run(harness.engine.run())
    assert harness.repository.tracker.was_notified(AckKey(MEMBER, ANNOUNCEMENT))
    harness.gateway.channel_posts.clear()
    return harness


class TestAnnouncementCreated:
    def test_tracks_messages_in_monitored_channel(self, harness):
        record = harness.gateway.post(ANNOUNCEMENT)

        assert asyncio.run(harness.reactions.on_announcement_created(record)) is True
        assert harness.repository.announcements.contains(ANNOUNCEMENT)

    def test_ignores_bot_messages(self, harness):
        record = harness.gateway.post(ANNOUNCEMENT, author_bot=True)

        assert asyncio.run(harness.reactions.on_announcement_created(record)) is False
        assert len(harness.repository.announcements) == 0


class TestAcknowledgeAdded:
    def test_resolved_notice_fires_once(self, notified):
        member = MemberRef(MEMBER, SPACE_ID)

        async def scenario():
            await notified.reactions.on_acknowledge_added(REF, member, CHECKMARK)
            await notified.reactions.on_acknowledge_added(REF, member, CHECKMARK)

        asyncio.run(scenario())

        posts = notified.gateway.staff_posts()
        assert len(posts) == 1
        assert f"<@{MEMBER}> has now confirmed" in posts[0]
        assert notified.repository.tracker.get(AckKey(MEMBER, ANNOUNCEMENT)) is None

    def test_clear_without_notice_when_not_notified(self, harness):
        harness.repository.tracker.record_miss(AckKey(MEMBER, ANNOUNCEMENT))
        member = MemberRecord(MEMBER)

        asyncio.run(harness.reactions.on_acknowledge_added(REF, member, CHECKMARK))

        assert harness.repository.tracker.get(AckKey(MEMBER, ANNOUNCEMENT)) is None
        assert harness.gateway.staff_posts() == []

    def test_other_marker_is_ignored(self, notified):
        member = MemberRecord(MEMBER)

        handled = asyncio.run(notified.reactions.on_acknowledge_added(REF, member, "👍"))

        assert handled is False
        assert notified.repository.tracker.was_notified(AckKey(MEMBER, ANNOUNCEMENT))

    def test_other_channel_is_ignored(self, notified):
        ref = MessageRef(OTHER_CHANNEL_ID, ANNOUNCEMENT, SPACE_ID)

        handled = asyncio.run(notified.reactions.on_acknowledge_added(ref, MemberRecord(MEMBER), CHECKMARK))

        assert handled is False

    def test_bot_reactions_are_ignored(self, harness):
        harness.repository.tracker.record_miss(AckKey(MEMBER, ANNOUNCEMENT))

        handled = asyncio.run(
            harness.reactions.on_acknowledge_added(REF, MemberRecord(MEMBER, bot=True), CHECKMARK)
        )

        assert handled is False
        assert harness.repository.tracker.get(AckKey(MEMBER, ANNOUNCEMENT)).missed_count == 1

    def test_unresolvable_member_drops_event(self, harness):
        harness.repository.tracker.record_miss(AckKey(99, ANNOUNCEMENT))

        handled = asyncio.run(harness.reactions.on_acknowledge_added(REF, MemberRef(99, SPACE_ID), CHECKMARK))

        assert handled is False
        assert harness.repository.tracker.get(AckKey(99, ANNOUNCEMENT)).missed_count == 1


class TestAcknowledgeRemoved:
    def test_reopened_notice_after_resolution(self, notified):
        member = MemberRef(MEMBER, SPACE_ID)

        async def scenario():
            await notified.reactions.on_acknowledge_added(REF, member, CHECKMARK)
            await notified.reactions.on_acknowledge_removed(REF, member, CHECKMARK)
            await notified.reactions.on_acknowledge_removed(REF, member, CHECKMARK)

        asyncio.run(scenario())

        posts = notified.gateway.staff_posts()
        assert len(posts) == 2
        assert "removed their confirmation" in posts[1]

    def test_removal_resets_tracking(self, harness):
        harness.repository.tracker.record_miss(AckKey(MEMBER, ANNOUNCEMENT))
        harness.repository.tracker.record_miss(AckKey(MEMBER, ANNOUNCEMENT))

        asyncio.run(harness.reactions.on_acknowledge_removed(REF, MemberRecord(MEMBER), CHECKMARK))

        assert harness.repository.tracker.get(AckKey(MEMBER, ANNOUNCEMENT)) is None
        assert harness.gateway.staff_posts() == []


class TestAnnouncementDeleted:
    def test_deletion_notice_names_notified_member_once(self, notified):
        async def scenario():
            first = await notified.reactions.on_announcement_deleted(CHANNEL_ID, [ANNOUNCEMENT])
            second = await notified.reactions.on_announcement_deleted(CHANNEL_ID, [ANNOUNCEMENT])
            return first, second

        first, second = asyncio.run(scenario())

        assert (first, second) == (1, 0)
        posts = notified.gateway.staff_posts()
        assert len(posts) == 1
        assert f"<@{MEMBER}>" in posts[0]
        assert notified.repository.tracker.get(AckKey(MEMBER, ANNOUNCEMENT)) is None
        assert not notified.repository.announcements.contains(ANNOUNCEMENT)

    def test_deletion_without_notified_members_is_silent(self, harness):
        harness.repository.add_announcement(harness.gateway.post(ANNOUNCEMENT).to_announcement())
        harness.repository.tracker.record_miss(AckKey(MEMBER, ANNOUNCEMENT))

        asyncio.run(harness.reactions.on_announcement_deleted(CHANNEL_ID, [ANNOUNCEMENT]))

        assert harness.gateway.staff_posts() == []
        assert len(harness.repository.tracker) == 0

    def test_deletes_in_other_channels_are_ignored(self, notified):
        retired = asyncio.run(notified.reactions.on_announcement_deleted(OTHER_CHANNEL_ID, [ANNOUNCEMENT]))

        assert retired == 0
        assert notified.repository.announcements.contains(ANNOUNCEMENT)
