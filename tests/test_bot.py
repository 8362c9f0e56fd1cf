"""Tests for start-up wiring in bot.py."""

import asyncio
from types import SimpleNamespace

from bot import AckBotSystems, _handle_ready, _stop_background_systems
from config.settings import load_settings
from escalation.reconcile import build_reconcile_task
from escalation.sweep import build_sweep_task
from tests.fakes import build_harness

ENV = {
    "DISCORD_TOKEN": "token",
    "ANNOUNCEMENT_CHANNEL_ID": "2000",
    "GENERAL_CHANNEL_ID": "3000",
    "MODERATOR_ID": "4000",
}


def _systems(harness):
    return AckBotSystems(
        repository=harness.repository,
        dispatcher=harness.dispatcher,
        reactions=harness.reactions,
        reconciler=harness.reconciler,
        engine=harness.engine,
        suspensions=harness.suspensions,
        sweep_task=build_sweep_task(harness.engine, 3600),
        reconcile_task=build_reconcile_task(harness.reconciler, 3600),
    )


def test_reconnect_during_first_start_up_starts_systems_once():
    harness = build_harness()
    harness.gateway.post(1)
    systems = _systems(harness)
    bot = SimpleNamespace(user=None, background_started=False)
    settings = load_settings(ENV)

    async def slow_page(call):
        await asyncio.sleep(0.01)

    harness.gateway.on_history_page = slow_page

    async def scenario():
        await asyncio.gather(
            _handle_ready(bot, settings, systems),
            _handle_ready(bot, settings, systems),
        )
        running = (systems.sweep_task.running, systems.reconcile_task.running)
        await _stop_background_systems(systems)
        return running

    running = asyncio.run(scenario())

    assert running == (True, True)
    # One reconciliation: a page with the message, then an empty page.
    assert harness.gateway.history_calls == 2
    assert harness.repository.announcements.ids() == [1]
