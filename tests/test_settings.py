"""Tests for environment configuration loading."""

from datetime import timedelta

import pytest

from config.settings import load_settings
from tracking.errors import ConfigMissing

BASE_ENV = {
    "DISCORD_TOKEN": "token",
    "ANNOUNCEMENT_CHANNEL_ID": "2000",
    "GENERAL_CHANNEL_ID": "3000",
    "MODERATOR_ID": "4000",
}


def env_with(**overrides):
    env = dict(BASE_ENV)
    env.update(overrides)
    return env


def test_defaults():
    settings = load_settings(dict(BASE_ENV))

    assert settings.announcement_channel_id == 2000
    assert settings.staff_channel_id == 3000
    assert settings.moderator_id == 4000
    assert settings.checkmark == "✅"
    assert settings.reminder_interval == timedelta(hours=4)
    assert settings.reconcile_interval == timedelta(minutes=10)
    assert settings.max_missed_checkins == 2
    assert settings.suspension_enabled is False
    assert settings.avatar_path is None


def test_overrides():
    settings = load_settings(
        env_with(REMINDER_INTERVAL="60000", MAX_MISSED_CHECKINS="5", SUSPENSION_DURATION="3600000", CHECKMARK="👍")
    )

    assert settings.reminder_interval == timedelta(minutes=1)
    assert settings.max_missed_checkins == 5
    assert settings.suspension_duration == timedelta(hours=1)
    assert settings.suspension_enabled is True
    assert settings.checkmark == "👍"


@pytest.mark.parametrize("name", sorted(BASE_ENV))
def test_missing_required_value(name):
    env = dict(BASE_ENV)
    del env[name]

    with pytest.raises(ConfigMissing) as excinfo:
        load_settings(env)

    assert excinfo.value.name == name


@pytest.mark.parametrize(
    "overrides",
    [
        {"MODERATOR_ID": "not-a-number"},
        {"MAX_MISSED_CHECKINS": "0"},
        {"REMINDER_INTERVAL": "soon"},
        {"SUSPENSION_DURATION": str(29 * 24 * 3_600_000)},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(ConfigMissing):
        load_settings(env_with(**overrides))
