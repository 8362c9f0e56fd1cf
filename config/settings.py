"""
Settings — Environment Configuration

THIS MODULE DEFINES NO COMMANDS.

Reads AckBot configuration from the process environment (populated from
`.env` by python-dotenv in bot.py). Required ids that are missing or not
integers raise ConfigMissing; the bot must not start without them.

Intervals and durations are given in milliseconds, matching the
REMINDER_INTERVAL convention of earlier deployments.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping, Optional

from tracking.errors import ConfigMissing

DEFAULT_CHECKMARK = "✅"
DEFAULT_REMINDER_INTERVAL_MS = 14_400_000  # 4 hours
DEFAULT_RECONCILE_INTERVAL_MS = 600_000  # 10 minutes
DEFAULT_MAX_MISSED_CHECKINS = 2
DEFAULT_SUSPENSION_DURATION_MS = 0

# Discord caps member timeouts at 28 days.
MAX_SUSPENSION = timedelta(days=28)


@dataclass(frozen=True)
class Settings:
    token: str
    announcement_channel_id: int
    staff_channel_id: int
    moderator_id: int
    checkmark: str = DEFAULT_CHECKMARK
    reminder_interval: timedelta = timedelta(milliseconds=DEFAULT_REMINDER_INTERVAL_MS)
    reconcile_interval: timedelta = timedelta(milliseconds=DEFAULT_RECONCILE_INTERVAL_MS)
    max_missed_checkins: int = DEFAULT_MAX_MISSED_CHECKINS
    suspension_duration: timedelta = timedelta(0)
    avatar_path: Optional[str] = None

    @property
    def suspension_enabled(self) -> bool:
        return self.suspension_duration > timedelta(0)


def _required(env: Mapping[str, str], name: str) -> str:
    raw = (env.get(name) or "").strip()
    if not raw:
        raise ConfigMissing(name)
    return raw


def _required_id(env: Mapping[str, str], name: str) -> int:
    raw = _required(env, name)
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigMissing(name, f"expected a numeric id, got {raw!r}") from exc


def _optional_int(env: Mapping[str, str], name: str, default: int, *, minimum: int = 0) -> int:
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigMissing(name, f"expected an integer, got {raw!r}") from exc
    if value < minimum:
        raise ConfigMissing(name, f"must be >= {minimum}")
    return value


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    source = os.environ if env is None else env

    suspension = timedelta(
        milliseconds=_optional_int(source, "SUSPENSION_DURATION", DEFAULT_SUSPENSION_DURATION_MS)
    )
    if suspension > MAX_SUSPENSION:
        raise ConfigMissing("SUSPENSION_DURATION", "exceeds the 28 day Discord timeout limit")

    return Settings(
        token=_required(source, "DISCORD_TOKEN"),
        announcement_channel_id=_required_id(source, "ANNOUNCEMENT_CHANNEL_ID"),
        staff_channel_id=_required_id(source, "GENERAL_CHANNEL_ID"),
        moderator_id=_required_id(source, "MODERATOR_ID"),
        checkmark=(source.get("CHECKMARK") or "").strip() or DEFAULT_CHECKMARK,
        reminder_interval=timedelta(
            milliseconds=_optional_int(source, "REMINDER_INTERVAL", DEFAULT_REMINDER_INTERVAL_MS, minimum=1)
        ),
        reconcile_interval=timedelta(
            milliseconds=_optional_int(source, "RECONCILE_INTERVAL", DEFAULT_RECONCILE_INTERVAL_MS, minimum=1)
        ),
        max_missed_checkins=_optional_int(source, "MAX_MISSED_CHECKINS", DEFAULT_MAX_MISSED_CHECKINS, minimum=1),
        suspension_duration=suspension,
        avatar_path=(source.get("BOT_AVATAR_PATH") or "").strip() or None,
    )
