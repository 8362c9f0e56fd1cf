"""
Announcement Store — Tracked Announcements

THIS MODULE DEFINES NO COMMANDS.

The source of truth for "what needs tracking".

- Map announcement (message) ids to Announcement records
- Idempotent upsert; re-adding an id only refreshes cached metadata
- Ordered snapshots for sweeps and reminders

Removing an announcement here does NOT purge acknowledgment state.
Callers remove through TrackingRepository.remove_announcement, which owns
the cascade.
This module contains logic only and performs no Discord actions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, List, Optional


@dataclass(frozen=True)
class Announcement:
    id: int
    channel_id: int
    space_id: Optional[int]
    created_at: datetime
    author_id: Optional[int] = None
    jump_url: str = ""

    @property
    def url(self) -> str:
        if self.jump_url:
            return self.jump_url
        space = self.space_id if self.space_id is not None else "@me"
        return f"https://discord.com/channels/{space}/{self.channel_id}/{self.id}"


class AnnouncementStore:
    def __init__(self) -> None:
        self._announcements: Dict[int, Announcement] = {}

    def __len__(self) -> int:
        return len(self._announcements)

    def __iter__(self) -> Iterator[Announcement]:
        return iter(self.snapshot())

    def upsert(self, announcement: Announcement) -> bool:
        """Insert or refresh an announcement.

        Returns True if the id was not tracked before.
        """
        is_new = announcement.id not in self._announcements
        self._announcements[announcement.id] = announcement
        return is_new

    def remove(self, announcement_id: int) -> Optional[Announcement]:
        return self._announcements.pop(announcement_id, None)

    def get(self, announcement_id: int) -> Optional[Announcement]:
        return self._announcements.get(announcement_id)

    def contains(self, announcement_id: int) -> bool:
        return announcement_id in self._announcements

    def ids(self) -> List[int]:
        return list(self._announcements.keys())

    def snapshot(self) -> List[Announcement]:
        """Return announcements ordered oldest first."""
        return sorted(self._announcements.values(), key=lambda a: (a.created_at, a.id))

    def space_id(self) -> Optional[int]:
        """Return the space of the tracked announcements, if any is known."""
        for announcement in self._announcements.values():
            if announcement.space_id is not None:
                return announcement.space_id
        return None

    def clear(self) -> None:
        self._announcements.clear()
