"""
Gateway References — Partial and Resolved Records

THIS MODULE DEFINES NO COMMANDS.

Discord raw events only carry ids. Handlers wrap those ids in a PartialRef
and resolve it through the gateway into a full record before reading any
other field.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from tracking.announcements import Announcement


@dataclass(frozen=True)
class MessageRef:
    """Unresolved reference to a message in a channel."""

    channel_id: int
    message_id: int
    space_id: Optional[int] = None


@dataclass(frozen=True)
class MemberRef:
    """Unresolved reference to a member of a space."""

    member_id: int
    space_id: Optional[int] = None


@dataclass(frozen=True)
class MessageRecord:
    id: int
    channel_id: int
    space_id: Optional[int]
    author_id: int
    author_bot: bool
    created_at: datetime
    jump_url: str = ""

    def to_announcement(self) -> Announcement:
        return Announcement(
            id=self.id,
            channel_id=self.channel_id,
            space_id=self.space_id,
            created_at=self.created_at,
            author_id=self.author_id,
            jump_url=self.jump_url,
        )


@dataclass(frozen=True)
class MemberRecord:
    id: int
    bot: bool = False
    display_name: str = ""

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"
