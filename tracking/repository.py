"""
Tracking Repository — Owned Aggregate of Store and Tracker

THIS MODULE DEFINES NO COMMANDS.

Bundles the Announcement Store and the Acknowledgment Tracker so every
component mutates them through one object. Announcement removal always
cascades into the tracker here, in a single synchronous step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set

from tracking.acknowledgments import AckStatus, AckTracker
from tracking.announcements import Announcement, AnnouncementStore


@dataclass(frozen=True)
class RemovedAnnouncement:
    announcement_id: int
    announcement: Announcement | None
    purged: Dict[int, AckStatus] = field(default_factory=dict)

    @property
    def notified_members(self) -> List[int]:
        return sorted(member_id for member_id, status in self.purged.items() if status.moderator_notified)


class TrackingRepository:
    def __init__(self, threshold: int) -> None:
        self.announcements = AnnouncementStore()
        self.tracker = AckTracker(threshold)
        self._removal_generation = 0
        self._removed_at: Dict[int, int] = {}

    @property
    def threshold(self) -> int:
        return self.tracker.threshold

    def add_announcement(self, announcement: Announcement) -> bool:
        return self.announcements.upsert(announcement)

    def remove_announcement(self, announcement_id: int) -> RemovedAnnouncement:
        announcement = self.announcements.remove(announcement_id)
        purged = self.tracker.purge_by_announcement(announcement_id)
        # Recorded even when untracked: a history page fetched earlier may still hold it.
        self._removal_generation += 1
        self._removed_at[announcement_id] = self._removal_generation
        return RemovedAnnouncement(announcement_id, announcement, purged)

    def removal_mark(self) -> int:
        return self._removal_generation

    def removed_since(self, mark: int) -> Set[int]:
        """Ids of announcements retired after `mark` was taken."""
        return {i for i, generation in self._removed_at.items() if generation > mark}

    def forget_removals(self, up_to: int) -> None:
        self._removed_at = {i: g for i, g in self._removed_at.items() if g > up_to}

    def pending_count(self) -> int:
        return len(self.tracker)

    def notified_count(self) -> int:
        return sum(1 for _, status in self.tracker.items() if status.moderator_notified)

    def reset(self) -> None:
        self.announcements.clear()
        self.tracker.reset()
        self._removed_at.clear()
