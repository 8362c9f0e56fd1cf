"""
Acknowledgment Tracker — Per-(Member, Announcement) State Machine

THIS MODULE DEFINES NO COMMANDS.

Tracks, for every member that has not acknowledged an announcement:
- How many sweeps in a row the acknowledgment was missing (missed_count)
- Whether moderators were already alerted about the pair (moderator_notified)

State machine per AckKey:

    absent --record_miss--> missed(n=1) --record_miss--> missed(n+1) ...
    missed(n >= threshold) --mark_notified--> notified
    any --clear--> absent

Statuses are immutable values. Every mutation swaps a whole value into the
map in one synchronous step, so no handler can observe a half-updated status
across an await.

No notifications are dispatched here; that is the escalation engine's job.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, NamedTuple, Optional, Set, Tuple


class AckKey(NamedTuple):
    member_id: int
    announcement_id: int


@dataclass(frozen=True)
class AckStatus:
    missed_count: int = 0
    moderator_notified: bool = False


@dataclass(frozen=True)
class MissResult:
    status: AckStatus
    just_crossed: bool


class AckTracker:
    def __init__(self, threshold: int) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self._threshold = threshold
        self._entries: Dict[AckKey, AckStatus] = {}
        # Pairs whose notified streak ended with an acknowledgment.
        self._resolved_after_notice: Set[AckKey] = set()
        # Members whose notified pairs were cleared by a sweep re-fetch.
        self._pending_resolution: Set[int] = set()
        # Bumped on every clear, so a caller that awaited can see what was
        # cleared in the meantime.
        self._clear_generation = 0
        self._cleared_at: Dict[AckKey, int] = {}

    @property
    def threshold(self) -> int:
        return self._threshold

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: AckKey) -> Optional[AckStatus]:
        return self._entries.get(key)

    def items(self) -> List[Tuple[AckKey, AckStatus]]:
        return list(self._entries.items())

    def record_miss(self, key: AckKey) -> MissResult:
        previous = self._entries.get(key, AckStatus())
        status = replace(previous, missed_count=previous.missed_count + 1)
        self._entries[key] = status
        self._resolved_after_notice.discard(key)
        just_crossed = previous.missed_count < self._threshold <= status.missed_count
        return MissResult(status=status, just_crossed=just_crossed)

    def clear(self, key: AckKey) -> Optional[AckStatus]:
        """Delete the pair's status, returning what was removed."""
        previous = self._entries.pop(key, None)
        self._clear_generation += 1
        self._cleared_at[key] = self._clear_generation
        if previous is not None and previous.moderator_notified:
            self._resolved_after_notice.add(key)
        return previous

    def clear_mark(self) -> int:
        return self._clear_generation

    def cleared_since(self, key: AckKey, mark: int) -> bool:
        """True if the pair was cleared after `mark` was taken."""
        return self._cleared_at.get(key, 0) > mark

    def was_notified(self, key: AckKey) -> bool:
        status = self._entries.get(key)
        return bool(status and status.moderator_notified)

    def mark_notified(self, key: AckKey) -> bool:
        """Flag the pair as reported to moderators.

        Returns True only when the flag changed. Unknown keys are ignored.
        """
        status = self._entries.get(key)
        if status is None or status.moderator_notified:
            return False
        self._entries[key] = replace(status, moderator_notified=True)
        return True

    def forget_resolution(self, key: AckKey) -> bool:
        """Drop the "resolved after notice" marker, returning whether it existed."""
        if key in self._resolved_after_notice:
            self._resolved_after_notice.discard(key)
            return True
        return False

    def entries_for_member(self, member_id: int) -> Dict[int, AckStatus]:
        return {
            key.announcement_id: status
            for key, status in self._entries.items()
            if key.member_id == member_id
        }

    def entries_for_announcement(self, announcement_id: int) -> Dict[int, AckStatus]:
        return {
            key.member_id: status
            for key, status in self._entries.items()
            if key.announcement_id == announcement_id
        }

    def notified_members(self) -> Set[int]:
        return {key.member_id for key, status in self._entries.items() if status.moderator_notified}

    def purge_by_announcement(self, announcement_id: int) -> Dict[int, AckStatus]:
        purged: Dict[int, AckStatus] = {}
        for key in [k for k in self._entries if k.announcement_id == announcement_id]:
            purged[key.member_id] = self._entries.pop(key)
        self._resolved_after_notice = {
            k for k in self._resolved_after_notice if k.announcement_id != announcement_id
        }
        self._cleared_at = {k: g for k, g in self._cleared_at.items() if k.announcement_id != announcement_id}
        return purged

    def purge_by_member(self, member_id: int) -> Dict[int, AckStatus]:
        purged: Dict[int, AckStatus] = {}
        for key in [k for k in self._entries if k.member_id == member_id]:
            purged[key.announcement_id] = self._entries.pop(key)
        self._resolved_after_notice = {
            k for k in self._resolved_after_notice if k.member_id != member_id
        }
        self._cleared_at = {k: g for k, g in self._cleared_at.items() if k.member_id != member_id}
        self._pending_resolution.discard(member_id)
        return purged

    def mark_pending_resolution(self, member_id: int) -> None:
        self._pending_resolution.add(member_id)

    def take_resolved_members(self) -> List[int]:
        """Collect members whose escalations are fully acknowledged.

        Candidates are members pending resolution. A member that only holds
        notified pairs is never one: a notified pair has a positive
        missed_count. A candidate is resolved when none of its remaining
        entries has a positive missed_count. Resolved members are purged;
        their "resolved after notice" markers survive so a later removal of
        the acknowledgment can still be reported as a reopening.
        """
        resolved: List[int] = []
        for member_id in sorted(self._pending_resolution):
            remaining = self.entries_for_member(member_id)
            if any(status.missed_count > 0 for status in remaining.values()):
                continue
            for announcement_id in remaining:
                self._entries.pop(AckKey(member_id, announcement_id), None)
            self._pending_resolution.discard(member_id)
            resolved.append(member_id)
        return resolved

    def pending_resolution(self) -> Set[int]:
        return set(self._pending_resolution)

    def reset(self) -> None:
        self._entries.clear()
        self._resolved_after_notice.clear()
        self._pending_resolution.clear()
        self._cleared_at.clear()
