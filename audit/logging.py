"""
AckBot Audit Log — Structured Escalation Logging

THIS MODULE DEFINES NO COMMANDS.

Responsibilities:
- Record every reminder and staff notice that was delivered
- Record moderator alerts and suspensions
- Record operator command usage
- Record per-item failures that a sweep caught and skipped
- Record reconciliation diffs, one line per changed announcement

Each record is a single JSON line on the "ackbot.audit" logger:
{"ts", "level", "event", "message", "member_id"?, "announcement_id"?, ...}
Ids are top-level keys so a log search can filter on them directly.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Union

AUDIT_LOGGER_NAME = "ackbot.audit"

_EVENT_LEVELS = {
    "action": logging.INFO,
    "escalation": logging.WARNING,
    "operator_command": logging.INFO,
    "error": logging.ERROR,
}


@dataclass
class LogContext:
    """Ids an audit line is about. Unset ids are left out of the record."""
    member_id: Optional[int] = None
    announcement_id: Optional[int] = None
    space_id: Optional[int] = None
    channel_id: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def fields(self) -> Dict[str, Any]:
        ids = {
            "member_id": self.member_id,
            "announcement_id": self.announcement_id,
            "space_id": self.space_id,
            "channel_id": self.channel_id,
        }
        found = {key: value for key, value in ids.items() if value is not None}
        found.update(self.extra)
        return found


ContextLike = Union[LogContext, Mapping[str, Any], None]


class StructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "event": getattr(record, "audit_event", record.name),
            "message": record.getMessage(),
        }
        line.update(getattr(record, "audit_fields", {}))
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str, ensure_ascii=False)


def get_audit_logger() -> logging.Logger:
    logger = logging.getLogger(AUDIT_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def _fields(context: ContextLike, extra: Mapping[str, Any]) -> Dict[str, Any]:
    if isinstance(context, LogContext):
        merged = context.fields()
    else:
        merged = dict(context or {})
    merged.update(extra)
    return merged


def _emit(
    event: str,
    message: str,
    context: ContextLike,
    extra: Mapping[str, Any],
    *,
    level: Optional[int] = None,
    error: Optional[BaseException] = None,
) -> None:
    get_audit_logger().log(
        _EVENT_LEVELS.get(event, logging.INFO) if level is None else level,
        message,
        extra={"audit_event": event, "audit_fields": _fields(context, extra)},
        exc_info=error,
    )


def log_action(message: str, *, context: ContextLike = None, action: Optional[str] = None, **extra: Any) -> None:
    """A reminder or notice went out."""
    if action:
        extra["action"] = action
    _emit("action", message, context, extra)


def log_escalation(
    message: str,
    *,
    context: ContextLike = None,
    escalation: Optional[str] = None,
    **extra: Any,
) -> None:
    """A moderator was alerted or a member was suspended."""
    if escalation:
        extra["escalation"] = escalation
    _emit("escalation", message, context, extra)


def log_operator_command(
    message: str,
    *,
    context: ContextLike = None,
    command: Optional[str] = None,
    **extra: Any,
) -> None:
    if command:
        extra["command"] = command
    _emit("operator_command", message, context, extra)


def log_error(
    message: str,
    *,
    context: ContextLike = None,
    error: Optional[BaseException] = None,
    **extra: Any,
) -> None:
    """A failure was caught and isolated; processing continued."""
    if error is not None:
        extra["error"] = repr(error)
    _emit("error", message, context, extra, error=error)


def log_batch(event: str, entries: Iterable[Mapping[str, Any]], *, context: ContextLike = None) -> None:
    for entry in entries:
        _emit(event, event, context, entry)
