"""
Event Reactions — Immediate Handling of Announcement and Acknowledgment Events

THIS MODULE DEFINES EVENT HANDLERS.

Handlers:
- New message in the monitored channel: start tracking it
- Acknowledgment added: clear the pair; if moderators had been alerted,
  post an immediate "resolved" notice
- Acknowledgment removed: reset the pair; if moderators had been alerted,
  post an immediate "reopened" notice
- Message deleted (single or bulk): cascade-purge; name any alerted members
  in a deletion notice

Raw Discord payloads only carry ids. Members are resolved through the
gateway before their bot flag is read; unresolved events are dropped.

Registered explicitly via `register(bot, reactions)`.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Union

import discord
from discord.ext import commands

from audit.logging import LogContext, log_error
from escalation.cleanup import retire_announcement
from gateway.base import Gateway
from gateway.discord_gateway import emoji_matches, message_record
from gateway.refs import MemberRecord, MemberRef, MessageRecord, MessageRef
from notify.dispatcher import NotificationDispatcher
from tracking.acknowledgments import AckKey
from tracking.announcements import Announcement
from tracking.errors import TransientFetchFailure
from tracking.repository import TrackingRepository

logger = logging.getLogger(__name__)

MemberLike = Union[MemberRecord, MemberRef]


class EventReactions:
    def __init__(
        self,
        repository: TrackingRepository,
        gateway: Gateway,
        dispatcher: NotificationDispatcher,
        *,
        channel_id: int,
        checkmark: str,
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._dispatcher = dispatcher
        self.channel_id = channel_id
        self.checkmark = checkmark

    async def _resolve_member(self, member: MemberLike) -> Optional[MemberRecord]:
        if isinstance(member, MemberRecord):
            return member
        try:
            return await self._gateway.fetch_member(member.space_id, member.member_id)
        except TransientFetchFailure as exc:
            log_error("Could not resolve member for event.", context=LogContext(member_id=member.member_id), error=exc)
            return None

    async def _resolve_announcement(self, ref: MessageRef) -> Optional[Announcement]:
        tracked = self._repository.announcements.get(ref.message_id)
        if tracked is not None:
            return tracked
        try:
            record = await self._gateway.fetch_message(ref.channel_id, ref.message_id)
        except TransientFetchFailure as exc:
            log_error("Could not resolve announcement for event.", context=LogContext(announcement_id=ref.message_id), error=exc)
            return None
        return record.to_announcement()

    async def _acknowledging_member(self, ref: MessageRef, member: MemberLike, marker: str) -> Optional[int]:
        if ref.channel_id != self.channel_id or marker != self.checkmark:
            return None
        resolved = await self._resolve_member(member)
        if resolved is None or resolved.bot:
            return None
        return resolved.id

    async def on_announcement_created(self, record: MessageRecord) -> bool:
        if record.channel_id != self.channel_id or record.author_bot:
            return False
        if self._repository.add_announcement(record.to_announcement()):
            logger.info("announcement_tracked", extra={"announcement_id": record.id})
        return True

    async def on_acknowledge_added(self, ref: MessageRef, member: MemberLike, marker: str) -> bool:
        member_id = await self._acknowledging_member(ref, member, marker)
        if member_id is None:
            return False

        previous = self._repository.tracker.clear(AckKey(member_id, ref.message_id))
        if previous is None or not previous.moderator_notified:
            return True

        announcement = await self._resolve_announcement(ref)
        if announcement is not None:
            await self._dispatcher.send_resolved(member_id, announcement)
        return True

    async def on_acknowledge_removed(self, ref: MessageRef, member: MemberLike, marker: str) -> bool:
        member_id = await self._acknowledging_member(ref, member, marker)
        if member_id is None:
            return False

        key = AckKey(member_id, ref.message_id)
        previous = self._repository.tracker.clear(key)
        # clear() re-marks notified pairs as resolved, so one check covers both.
        reopened = self._repository.tracker.forget_resolution(key)
        logger.info(
            "acknowledgment_removed",
            extra={"member_id": member_id, "announcement_id": ref.message_id, "had_status": previous is not None},
        )
        if not reopened:
            return True

        announcement = await self._resolve_announcement(ref)
        if announcement is not None:
            await self._dispatcher.send_reopened(member_id, announcement)
        return True

    async def on_announcement_deleted(self, channel_id: int, message_ids: Iterable[int]) -> int:
        if channel_id != self.channel_id:
            return 0
        retired = 0
        for message_id in message_ids:
            removed = await retire_announcement(self._repository, self._dispatcher, message_id, reason="deleted")
            if removed.announcement is not None or removed.purged:
                retired += 1
        return retired


def _payload_member(payload: discord.RawReactionActionEvent) -> MemberLike:
    if payload.member is not None:
        return MemberRecord(id=payload.member.id, bot=payload.member.bot, display_name=payload.member.display_name)
    return MemberRef(member_id=payload.user_id, space_id=payload.guild_id)


def _payload_marker(payload: discord.RawReactionActionEvent, checkmark: str) -> str:
    if emoji_matches(payload.emoji, checkmark):
        return checkmark
    return str(payload.emoji)


def register(bot: commands.Bot, reactions: EventReactions) -> None:
    @bot.listen("on_message")
    async def announcement_listener(message: discord.Message) -> None:
        if message.channel.id != reactions.channel_id or message.author.bot:
            return
        await reactions.on_announcement_created(message_record(message))

    @bot.listen("on_raw_reaction_add")
    async def acknowledge_added_listener(payload: discord.RawReactionActionEvent) -> None:
        ref = MessageRef(payload.channel_id, payload.message_id, payload.guild_id)
        await reactions.on_acknowledge_added(
            ref, _payload_member(payload), _payload_marker(payload, reactions.checkmark)
        )

    @bot.listen("on_raw_reaction_remove")
    async def acknowledge_removed_listener(payload: discord.RawReactionActionEvent) -> None:
        ref = MessageRef(payload.channel_id, payload.message_id, payload.guild_id)
        await reactions.on_acknowledge_removed(
            ref, _payload_member(payload), _payload_marker(payload, reactions.checkmark)
        )

    @bot.listen("on_raw_message_delete")
    async def announcement_deleted_listener(payload: discord.RawMessageDeleteEvent) -> None:
        await reactions.on_announcement_deleted(payload.channel_id, [payload.message_id])

    @bot.listen("on_raw_bulk_message_delete")
    async def announcements_bulk_deleted_listener(payload: discord.RawBulkMessageDeleteEvent) -> None:
        await reactions.on_announcement_deleted(payload.channel_id, sorted(payload.message_ids))
