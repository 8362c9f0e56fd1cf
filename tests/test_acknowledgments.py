"""Tests for the acknowledgment tracker state machine."""

import pytest

from tracking.acknowledgments import AckKey, AckStatus, AckTracker


KEY = AckKey(member_id=10, announcement_id=100)


class TestRecordMiss:
    """Missed-count accumulation and threshold crossing."""

    def test_counts_each_miss(self):
        tracker = AckTracker(threshold=3)
        results = [tracker.record_miss(KEY) for _ in range(5)]

        assert [r.status.missed_count for r in results] == [1, 2, 3, 4, 5]
        assert tracker.get(KEY).missed_count == 5

    def test_just_crossed_fires_once_at_threshold(self):
        tracker = AckTracker(threshold=3)
        flags = [tracker.record_miss(KEY).just_crossed for _ in range(6)]

        assert flags == [False, False, True, False, False, False]

    def test_threshold_of_one_crosses_on_first_miss(self):
        tracker = AckTracker(threshold=1)

        assert tracker.record_miss(KEY).just_crossed is True
        assert tracker.record_miss(KEY).just_crossed is False

    def test_new_streak_after_clear_crosses_again(self):
        tracker = AckTracker(threshold=2)
        tracker.record_miss(KEY)
        assert tracker.record_miss(KEY).just_crossed is True

        tracker.clear(KEY)
        assert tracker.record_miss(KEY).just_crossed is False
        assert tracker.record_miss(KEY).just_crossed is True

    def test_invalid_threshold(self):
        with pytest.raises(ValueError):
            AckTracker(threshold=0)


class TestClearAndNotify:
    """Clearing, notification flags and idempotence."""

    def test_clear_removes_key_and_notified_flag(self):
        tracker = AckTracker(threshold=1)
        tracker.record_miss(KEY)
        tracker.mark_notified(KEY)

        previous = tracker.clear(KEY)

        assert previous == AckStatus(missed_count=1, moderator_notified=True)
        assert KEY not in tracker
        assert tracker.was_notified(KEY) is False

    def test_clear_unknown_key_is_noop(self):
        tracker = AckTracker(threshold=1)
        assert tracker.clear(KEY) is None

    def test_mark_notified_is_idempotent(self):
        tracker = AckTracker(threshold=1)
        tracker.record_miss(KEY)

        assert tracker.mark_notified(KEY) is True
        assert tracker.mark_notified(KEY) is False
        assert tracker.get(KEY) == AckStatus(missed_count=1, moderator_notified=True)

    def test_mark_notified_ignores_untracked_pair(self):
        tracker = AckTracker(threshold=1)
        assert tracker.mark_notified(KEY) is False
        assert KEY not in tracker

    def test_record_miss_preserves_notified_flag(self):
        tracker = AckTracker(threshold=1)
        tracker.record_miss(KEY)
        tracker.mark_notified(KEY)

        result = tracker.record_miss(KEY)

        assert result.status == AckStatus(missed_count=2, moderator_notified=True)

    def test_forget_resolution_only_after_notified_clear(self):
        tracker = AckTracker(threshold=1)
        other = AckKey(11, 100)
        tracker.record_miss(KEY)
        tracker.mark_notified(KEY)
        tracker.record_miss(other)

        tracker.clear(KEY)
        tracker.clear(other)

        assert tracker.forget_resolution(KEY) is True
        assert tracker.forget_resolution(KEY) is False
        assert tracker.forget_resolution(other) is False


class TestPurge:
    """Bulk cleanup by announcement and by member."""

    def _populated(self):
        tracker = AckTracker(threshold=1)
        for member_id in (10, 11):
            for announcement_id in (100, 101):
                tracker.record_miss(AckKey(member_id, announcement_id))
        tracker.mark_notified(AckKey(10, 100))
        return tracker

    def test_purge_by_announcement(self):
        tracker = self._populated()

        purged = tracker.purge_by_announcement(100)

        assert set(purged) == {10, 11}
        assert purged[10].moderator_notified is True
        assert tracker.entries_for_announcement(100) == {}
        assert set(tracker.entries_for_announcement(101)) == {10, 11}

    def test_purge_by_member(self):
        tracker = self._populated()

        purged = tracker.purge_by_member(11)

        assert set(purged) == {100, 101}
        assert tracker.entries_for_member(11) == {}
        assert len(tracker) == 2


class TestResolution:
    """Batched resolution bookkeeping."""

    def test_member_with_outstanding_misses_is_not_resolved(self):
        tracker = AckTracker(threshold=1)
        tracker.record_miss(AckKey(10, 100))
        tracker.mark_notified(AckKey(10, 100))
        tracker.record_miss(AckKey(10, 101))

        tracker.clear(AckKey(10, 100))
        tracker.mark_pending_resolution(10)

        assert tracker.take_resolved_members() == []
        assert tracker.pending_resolution() == {10}

    def test_member_resolved_once_fully_caught_up(self):
        tracker = AckTracker(threshold=1)
        tracker.record_miss(AckKey(10, 100))
        tracker.mark_notified(AckKey(10, 100))

        tracker.clear(AckKey(10, 100))
        tracker.mark_pending_resolution(10)

        assert tracker.take_resolved_members() == [10]
        assert tracker.take_resolved_members() == []
        # The reopen marker survives batched resolution.
        assert tracker.forget_resolution(AckKey(10, 100)) is True

    def test_notified_member_without_pending_mark_is_not_a_candidate(self):
        tracker = AckTracker(threshold=1)
        tracker.record_miss(AckKey(10, 100))
        tracker.mark_notified(AckKey(10, 100))

        assert tracker.notified_members() == {10}
        assert tracker.take_resolved_members() == []
        assert tracker.get(AckKey(10, 100)).missed_count == 1


class TestClearGeneration:
    """Detecting clears that happened after a caller started awaiting."""

    def test_clear_after_mark_is_visible(self):
        tracker = AckTracker(threshold=1)
        mark = tracker.clear_mark()

        tracker.clear(KEY)

        assert tracker.cleared_since(KEY, mark) is True
        assert tracker.cleared_since(AckKey(11, 100), mark) is False

    def test_clear_before_mark_is_not_visible(self):
        tracker = AckTracker(threshold=1)
        tracker.clear(KEY)

        assert tracker.cleared_since(KEY, tracker.clear_mark()) is False

    def test_purge_forgets_clear_history(self):
        tracker = AckTracker(threshold=1)
        tracker.clear(KEY)

        tracker.purge_by_announcement(KEY.announcement_id)

        assert tracker.cleared_since(KEY, 0) is False
