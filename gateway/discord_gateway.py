"""
Discord Gateway — discord.py Implementation of the Collaborator Contract

THIS MODULE DEFINES NO COMMANDS.

Thin I/O shim:
- Channel history paging and message lookup
- Live reaction (acknowledgment) sets
- Guild member enumeration
- DM and channel delivery
- Member timeouts (suspensions)

discord.py exceptions are translated into TransientFetchFailure or
DeliveryFailure at this boundary and never leak into the core.
"""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional, Set

import discord

from gateway.base import DEFAULT_PAGE_SIZE, Gateway
from gateway.refs import MemberRecord, MessageRecord
from tracking.errors import DeliveryFailure, TransientFetchFailure

_FETCH_ERRORS = (discord.HTTPException, discord.InvalidData)


def message_record(message: discord.Message) -> MessageRecord:
    return MessageRecord(
        id=message.id,
        channel_id=message.channel.id,
        space_id=message.guild.id if message.guild else None,
        author_id=message.author.id,
        author_bot=message.author.bot,
        created_at=message.created_at,
        jump_url=message.jump_url,
    )


def _member_record(user: discord.abc.User) -> MemberRecord:
    return MemberRecord(id=user.id, bot=user.bot, display_name=user.display_name)


def emoji_matches(emoji: discord.PartialEmoji | discord.Emoji | str, marker: str) -> bool:
    if isinstance(emoji, str):
        return emoji == marker
    return marker in (str(emoji), getattr(emoji, "name", None))


class DiscordGateway(Gateway):
    def __init__(self, client: discord.Client) -> None:
        self._client = client

    async def _text_channel(self, channel_id: int) -> discord.abc.Messageable:
        channel = self._client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self._client.fetch_channel(channel_id)
            except _FETCH_ERRORS as exc:
                raise TransientFetchFailure(f"Channel {channel_id} unavailable: {exc}", target_id=channel_id) from exc
        if not isinstance(channel, discord.abc.Messageable):
            raise TransientFetchFailure(f"Channel {channel_id} is not text based.", target_id=channel_id)
        return channel

    async def _guild(self, space_id: int) -> discord.Guild:
        guild = self._client.get_guild(space_id)
        if guild is not None:
            return guild
        try:
            return await self._client.fetch_guild(space_id)
        except _FETCH_ERRORS as exc:
            raise TransientFetchFailure(f"Guild {space_id} unavailable: {exc}", target_id=space_id) from exc

    async def fetch_channel_messages(
        self,
        channel_id: int,
        *,
        before: Optional[int] = None,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> List[MessageRecord]:
        channel = await self._text_channel(channel_id)
        cursor = discord.Object(id=before) if before is not None else None
        try:
            return [message_record(m) async for m in channel.history(limit=limit, before=cursor)]
        except _FETCH_ERRORS as exc:
            raise TransientFetchFailure(f"History fetch failed for {channel_id}: {exc}", target_id=channel_id) from exc

    async def fetch_message(self, channel_id: int, message_id: int) -> MessageRecord:
        channel = await self._text_channel(channel_id)
        try:
            message = await channel.fetch_message(message_id)
        except _FETCH_ERRORS as exc:
            raise TransientFetchFailure(f"Message {message_id} unavailable: {exc}", target_id=message_id) from exc
        return message_record(message)

    async def fetch_acknowledgers(self, channel_id: int, message_id: int, marker: str) -> Set[int]:
        channel = await self._text_channel(channel_id)
        try:
            message = await channel.fetch_message(message_id)
            for reaction in message.reactions:
                if emoji_matches(reaction.emoji, marker):
                    return {user.id async for user in reaction.users()}
        except _FETCH_ERRORS as exc:
            raise TransientFetchFailure(f"Reactions unavailable for {message_id}: {exc}", target_id=message_id) from exc
        return set()

    async def fetch_space_members(self, space_id: int) -> List[MemberRecord]:
        guild = await self._guild(space_id)
        try:
            return [_member_record(m) async for m in guild.fetch_members(limit=None)]
        except (*_FETCH_ERRORS, discord.ClientException) as exc:
            raise TransientFetchFailure(f"Member list unavailable for {space_id}: {exc}", target_id=space_id) from exc

    async def fetch_member(self, space_id: Optional[int], member_id: int) -> MemberRecord:
        try:
            if space_id is None:
                return _member_record(await self._client.fetch_user(member_id))
            guild = await self._guild(space_id)
            cached = guild.get_member(member_id)
            if cached is not None:
                return _member_record(cached)
            return _member_record(await guild.fetch_member(member_id))
        except _FETCH_ERRORS as exc:
            raise TransientFetchFailure(f"Member {member_id} unavailable: {exc}", target_id=member_id) from exc

    async def send_direct(self, member_id: int, text: str) -> None:
        try:
            user = self._client.get_user(member_id) or await self._client.fetch_user(member_id)
            await user.send(text)
        except _FETCH_ERRORS as exc:
            raise DeliveryFailure(f"Could not DM {member_id}: {exc}", target_id=member_id) from exc

    async def send_to_channel(self, channel_id: int, text: str) -> None:
        try:
            channel = await self._text_channel(channel_id)
        except TransientFetchFailure as exc:
            raise DeliveryFailure(str(exc), target_id=channel_id) from exc
        try:
            await channel.send(text, allowed_mentions=discord.AllowedMentions(users=True, roles=False, everyone=False))
        except _FETCH_ERRORS as exc:
            raise DeliveryFailure(f"Could not post to {channel_id}: {exc}", target_id=channel_id) from exc

    async def _guild_member(self, space_id: int, member_id: int) -> discord.Member:
        guild = await self._guild(space_id)
        return guild.get_member(member_id) or await guild.fetch_member(member_id)

    async def suspend_member(self, space_id: int, member_id: int, duration: timedelta, reason: str) -> None:
        try:
            member = await self._guild_member(space_id, member_id)
            await member.timeout(duration, reason=reason)
        except (*_FETCH_ERRORS, TransientFetchFailure) as exc:
            raise DeliveryFailure(f"Could not suspend {member_id}: {exc}", target_id=member_id) from exc

    async def lift_suspension(self, space_id: int, member_id: int, reason: str) -> None:
        try:
            member = await self._guild_member(space_id, member_id)
            await member.timeout(None, reason=reason)
        except (*_FETCH_ERRORS, TransientFetchFailure) as exc:
            raise DeliveryFailure(f"Could not lift suspension for {member_id}: {exc}", target_id=member_id) from exc
