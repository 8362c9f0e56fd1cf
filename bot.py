"""
AckBot — Announcement Acknowledgment Tracker (Main Entry Point)

This file initializes and runs AckBot.

Responsibilities of this file ONLY:
- Create the Discord client/bot instance
- Load configuration and environment variables
- Build the tracking repository, gateway, dispatcher and escalation systems
- Explicitly register event handlers and command suites
- Start the reconciliation and escalation background loops
- Start the bot

IMPORTANT ARCHITECTURE RULES:
- Modules do NOT self-register.
- All command and listener registration is explicit and occurs here.
- All behavior logic lives in modules, not in this file.

AckBot watches an announcement channel, reminds members who have not
reacted with the acknowledgment marker, alerts moderators when a member
keeps missing an announcement, and optionally times out repeat offenders.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import discord
from discord.ext import commands
from dotenv import load_dotenv

from config.settings import Settings, load_settings
from escalation import commands as operator_commands
from escalation import reactions as event_reactions
from escalation.reconcile import Reconciler, build_reconcile_task
from escalation.suspensions import SuspensionManager
from escalation.sweep import EscalationEngine, build_sweep_task
from gateway.discord_gateway import DiscordGateway
from notify.dispatcher import NotificationDispatcher
from tracking.repository import TrackingRepository
from utils.timers import PeriodicTask


LOG_LEVEL = os.getenv("ACKBOT_LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("ackbot")


@dataclass
class AckBotSystems:
    repository: TrackingRepository
    dispatcher: NotificationDispatcher
    reactions: event_reactions.EventReactions
    reconciler: Reconciler
    engine: EscalationEngine
    suspensions: Optional[SuspensionManager]
    sweep_task: PeriodicTask
    reconcile_task: PeriodicTask


class AckBot(commands.Bot):
    systems: Optional[AckBotSystems] = None
    background_started = False

    async def close(self) -> None:
        if self.systems is not None:
            await _stop_background_systems(self.systems)
        await super().close()


def _build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.members = True
    intents.reactions = True
    intents.messages = True
    return intents


def _build_bot() -> AckBot:
    intents = _build_intents()
    return AckBot(command_prefix="~", intents=intents)


def _build_systems(bot: commands.Bot, settings: Settings) -> AckBotSystems:
    repository = TrackingRepository(settings.max_missed_checkins)
    gateway = DiscordGateway(bot)
    dispatcher = NotificationDispatcher(
        gateway,
        staff_channel_id=settings.staff_channel_id,
        moderator_id=settings.moderator_id,
        checkmark=settings.checkmark,
    )
    suspensions = None
    if settings.suspension_enabled:
        suspensions = SuspensionManager(
            gateway,
            dispatcher,
            threshold=settings.max_missed_checkins,
            duration=settings.suspension_duration,
        )
    reactions = event_reactions.EventReactions(
        repository,
        gateway,
        dispatcher,
        channel_id=settings.announcement_channel_id,
        checkmark=settings.checkmark,
    )
    reconciler = Reconciler(repository, gateway, dispatcher, channel_id=settings.announcement_channel_id)
    engine = EscalationEngine(
        repository,
        gateway,
        dispatcher,
        checkmark=settings.checkmark,
        suspensions=suspensions,
    )
    return AckBotSystems(
        repository=repository,
        dispatcher=dispatcher,
        reactions=reactions,
        reconciler=reconciler,
        engine=engine,
        suspensions=suspensions,
        sweep_task=build_sweep_task(engine, settings.reminder_interval.total_seconds()),
        reconcile_task=build_reconcile_task(reconciler, settings.reconcile_interval.total_seconds()),
    )


def _register_modules(bot: commands.Bot, systems: AckBotSystems) -> None:
    event_reactions.register(bot, systems.reactions)
    operator_commands.register(
        bot,
        repository=systems.repository,
        engine=systems.engine,
        reconciler=systems.reconciler,
        suspensions=systems.suspensions,
    )


async def _apply_avatar(bot: commands.Bot, avatar_path: Optional[str]) -> None:
    if not avatar_path or bot.user is None:
        return
    try:
        await bot.user.edit(avatar=Path(avatar_path).read_bytes())
        logger.info("Avatar updated from %s", avatar_path)
    except (OSError, discord.HTTPException, ValueError):
        logger.exception("Failed to update avatar.")


async def _start_background_systems(systems: AckBotSystems) -> None:
    report = await systems.reconciler.run()
    logger.info("Initial reconciliation: %s", report.summary())
    await systems.reconcile_task.start()
    await systems.sweep_task.start()


async def _stop_background_systems(systems: AckBotSystems) -> None:
    await systems.sweep_task.stop()
    await systems.reconcile_task.stop()
    if systems.suspensions is not None:
        await systems.suspensions.shutdown()


async def _handle_ready(bot: AckBot, settings: Settings, systems: AckBotSystems) -> None:
    logger.info("AckBot connected as %s", bot.user)
    # on_ready fires again on reconnect, possibly while the first start-up is still awaiting.
    if bot.background_started:
        return
    bot.background_started = True
    await _apply_avatar(bot, settings.avatar_path)
    await _start_background_systems(systems)


def main() -> None:
    load_dotenv()

    settings = load_settings()

    bot = _build_bot()
    systems = _build_systems(bot, settings)
    bot.systems = systems

    _register_modules(bot, systems)

    @bot.event
    async def on_ready() -> None:
        await _handle_ready(bot, settings, systems)

    bot.run(settings.token)


if __name__ == "__main__":
    main()
