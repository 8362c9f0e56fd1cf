"""
Text Utilities — Shared Message Formatting Helpers

THIS MODULE DEFINES NO COMMANDS.

Provides reusable helpers for:
- Mentions and bullet lists
- Safe truncation
- Splitting long messages under Discord's length limit

Used by the notification dispatcher and operator commands.
"""

from __future__ import annotations

from typing import Iterable, List

__all__ = [
    "mention",
    "bullet_list",
    "safe_truncate",
    "split_message",
    "DISCORD_MESSAGE_LIMIT",
]

DISCORD_MESSAGE_LIMIT = 2000


def mention(user_id: int) -> str:
    return f"<@{user_id}>"


def bullet_list(lines: Iterable[str], *, bullet: str = "•") -> str:
    return "\n".join(f"{bullet} {line}" for line in lines)


def safe_truncate(text: str, max_length: int, *, ellipsis: str = "…") -> str:
    """
    Truncate text to max_length, appending ellipsis if truncation occurs.
    If max_length is too small for ellipsis, returns a clipped ellipsis.
    """
    if max_length < 0:
        raise ValueError("max_length must be non-negative")
    if len(text) <= max_length:
        return text
    if max_length == 0:
        return ""
    if len(ellipsis) >= max_length:
        return ellipsis[:max_length]
    return text[: max_length - len(ellipsis)] + ellipsis


def split_message(text: str, limit: int = DISCORD_MESSAGE_LIMIT) -> List[str]:
    """
    Split text into chunks no longer than limit, preferring line boundaries.
    A single line longer than limit is truncated rather than broken mid-word.
    """
    if limit <= 0:
        raise ValueError("limit must be positive")
    if len(text) <= limit:
        return [text]

    chunks: List[str] = []
    current = ""
    for line in text.split("\n"):
        line = safe_truncate(line, limit)
        candidate = f"{current}\n{line}" if current else line
        if len(candidate) <= limit:
            current = candidate
            continue
        if current:
            chunks.append(current)
        current = line
    if current:
        chunks.append(current)
    return chunks
