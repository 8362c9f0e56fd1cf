"""
Operator Commands — Moderator Tools for Acknowledgment Tracking

THIS MODULE DEFINES MODERATOR COMMANDS.

Commands in this module:
- acks? {member}: Show a member's pending announcements, or overall totals
- sweep: Run an escalation sweep now
- reconcile: Re-read the announcement channel now
- resolve {member}: Manually resolve a member (clears tracking, lifts any
  suspension and cancels its scheduled lift)

All commands except `acks?` require the Moderate Members permission.
Registered explicitly via `register(bot, ...)`.
"""

from __future__ import annotations

from typing import Optional, Tuple

import discord
from discord.ext import commands

from audit.logging import LogContext, log_operator_command
from escalation.reconcile import Reconciler
from escalation.suspensions import SuspensionManager
from escalation.sweep import EscalationEngine
from tracking.repository import TrackingRepository
from utils.text import safe_truncate

MAX_REPLY_LENGTH = 1900


def format_totals(repository: TrackingRepository) -> str:
    return (
        f"Tracking {len(repository.announcements)} announcement(s). "
        f"{repository.pending_count()} unconfirmed pair(s), "
        f"{repository.notified_count()} escalated to moderators."
    )


def format_member_status(
    repository: TrackingRepository,
    member_id: int,
    display_name: str,
    suspensions: Optional[SuspensionManager] = None,
) -> str:
    entries = repository.tracker.entries_for_member(member_id)
    lines = []
    for announcement_id, status in sorted(entries.items()):
        announcement = repository.announcements.get(announcement_id)
        label = announcement.url if announcement else f"`{announcement_id}`"
        flag = " (escalated)" if status.moderator_notified else ""
        lines.append(f"• {label}: missed {status.missed_count}{flag}")

    if not lines:
        text = f"{display_name} has no unconfirmed announcements."
    else:
        text = f"{display_name} has {len(lines)} unconfirmed announcement(s):\n" + "\n".join(lines)

    if suspensions is not None and suspensions.enabled:
        if suspensions.is_suspended(member_id):
            text += "\nCurrently suspended."
        else:
            text += f"\nMissed check-ins toward suspension: {suspensions.counter(member_id)}."
    return text


async def resolve_member(
    repository: TrackingRepository,
    member_id: int,
    display_name: str,
    suspensions: Optional[SuspensionManager] = None,
) -> Tuple[str, int, bool]:
    """Purge a member's tracking and end any suspension.

    Returns the reply text, the number of purged pairs and whether a
    suspension was lifted.
    """
    purged = repository.tracker.purge_by_member(member_id)
    lifted = False
    if suspensions is not None:
        lifted = await suspensions.lift(member_id)
    reply = f"Cleared {len(purged)} unconfirmed announcement(s) for {display_name}."
    if lifted:
        reply += " Suspension lifted."
    return reply, len(purged), lifted


def register(
    bot: commands.Bot,
    *,
    repository: TrackingRepository,
    engine: EscalationEngine,
    reconciler: Reconciler,
    suspensions: Optional[SuspensionManager] = None,
) -> None:
    @bot.command(name="acks?")
    async def acks_status_cmd(ctx: commands.Context, member: Optional[discord.Member] = None) -> None:
        if member is None:
            await ctx.reply(format_totals(repository))
            return
        reply = format_member_status(repository, member.id, member.display_name, suspensions)
        await ctx.reply(safe_truncate(reply, MAX_REPLY_LENGTH))

    @bot.command(name="sweep")
    @commands.has_permissions(moderate_members=True)
    async def sweep_cmd(ctx: commands.Context) -> None:
        log_operator_command("Manual sweep requested.", context=LogContext(member_id=ctx.author.id), command="sweep")
        report = await engine.run()
        await ctx.reply(report.summary())

    @bot.command(name="reconcile")
    @commands.has_permissions(moderate_members=True)
    async def reconcile_cmd(ctx: commands.Context) -> None:
        log_operator_command(
            "Manual reconciliation requested.", context=LogContext(member_id=ctx.author.id), command="reconcile"
        )
        report = await reconciler.run()
        await ctx.reply(report.summary())

    @bot.command(name="resolve")
    @commands.has_permissions(moderate_members=True)
    async def resolve_cmd(ctx: commands.Context, member: Optional[discord.Member] = None) -> None:
        if member is None:
            await ctx.reply("Specify a member.")
            return
        reply, purged, lifted = await resolve_member(repository, member.id, member.display_name, suspensions)
        log_operator_command(
            "Member manually resolved.",
            context=LogContext(member_id=member.id),
            command="resolve",
            actor_id=ctx.author.id,
            purged=purged,
            lifted=lifted,
        )
        await ctx.reply(reply)
