"""
Gateway Contract — External Collaborator Interface

THIS MODULE DEFINES NO COMMANDS.

Everything the escalation core needs from the chat platform. The core only
talks to this interface; gateway.discord_gateway implements it on top of
discord.py and tests substitute an in-memory fake.

Error contract:
- fetch_* methods raise TransientFetchFailure
- send_* / suspend / lift methods raise DeliveryFailure
Each call is a single attempt; nothing here retries.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import List, Optional, Set

from gateway.refs import MemberRecord, MessageRecord

DEFAULT_PAGE_SIZE = 100


class Gateway(ABC):
    @abstractmethod
    async def fetch_channel_messages(
        self,
        channel_id: int,
        *,
        before: Optional[int] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[MessageRecord]:
        """Return one page of messages older than `before`, newest first.

        An empty list means the history is exhausted.
        """

    @abstractmethod
    async def fetch_message(self, channel_id: int, message_id: int) -> MessageRecord:
        ...

    @abstractmethod
    async def fetch_acknowledgers(self, channel_id: int, message_id: int, marker: str) -> Set[int]:
        """Return ids of every user currently reacting with `marker`."""

    @abstractmethod
    async def fetch_space_members(self, space_id: int) -> List[MemberRecord]:
        ...

    @abstractmethod
    async def fetch_member(self, space_id: Optional[int], member_id: int) -> MemberRecord:
        ...

    @abstractmethod
    async def send_direct(self, member_id: int, text: str) -> None:
        ...

    @abstractmethod
    async def send_to_channel(self, channel_id: int, text: str) -> None:
        ...

    @abstractmethod
    async def suspend_member(self, space_id: int, member_id: int, duration: timedelta, reason: str) -> None:
        ...

    @abstractmethod
    async def lift_suspension(self, space_id: int, member_id: int, reason: str) -> None:
        ...


async def fetch_full_history(gateway: Gateway, channel_id: int, *, page_size: int = DEFAULT_PAGE_SIZE) -> List[MessageRecord]:
    """Page backward through a channel until an empty page comes back."""
    messages: List[MessageRecord] = []
    before: Optional[int] = None
    while True:
        page = await gateway.fetch_channel_messages(channel_id, before=before, limit=page_size)
        if not page:
            break
        messages.extend(page)
        before = page[-1].id
    return messages
