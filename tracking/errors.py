"""
AckBot Errors — Failure Taxonomy

THIS MODULE DEFINES NO COMMANDS.

- TransientFetchFailure: a fetch against Discord failed (message vanished,
  missing access, network hiccup). Isolated per item and logged.
- DeliveryFailure: a DM, channel post or timeout could not be delivered.
  Logged only; tracking state is never rolled back and nothing is retried.
- ConfigMissing: a required setting is absent at startup. Fatal.
"""

from __future__ import annotations

from typing import Optional


class AckBotError(Exception):
    """Base class for all AckBot errors."""


class TransientFetchFailure(AckBotError):
    def __init__(self, message: str, *, target_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.target_id = target_id


class DeliveryFailure(AckBotError):
    def __init__(self, message: str, *, target_id: Optional[int] = None) -> None:
        super().__init__(message)
        self.target_id = target_id


class ConfigMissing(AckBotError):
    def __init__(self, name: str, reason: str = "is not set") -> None:
        super().__init__(f"Missing or invalid {name} environment variable: {reason}.")
        self.name = name
