"""
Notification Messages — Text Templates

THIS MODULE DEFINES NO COMMANDS.

Pure formatting for every message AckBot sends:
- Batched reminders to members
- Batched moderator alerts and resolution notices
- Immediate resolved / reopened / deletion notices
- Suspension notices
"""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable, Mapping, Optional, Sequence

from tracking.announcements import Announcement
from utils.text import bullet_list, mention


def format_duration(duration: timedelta) -> str:
    total = int(duration.total_seconds())
    days, remainder = divmod(total, 86_400)
    hours, remainder = divmod(remainder, 3_600)
    minutes, seconds = divmod(remainder, 60)
    parts = []
    for value, unit in ((days, "d"), (hours, "h"), (minutes, "m"), (seconds, "s")):
        if value:
            parts.append(f"{value}{unit}")
    return " ".join(parts) or "0s"


def reminder(member_id: int, announcements: Sequence[Announcement], checkmark: str) -> str:
    return (
        f"Hello, {mention(member_id)}!\n\n"
        "Please check the following announcements:\n"
        f"{bullet_list(a.url for a in announcements)}\n\n"
        f"React with {checkmark} to confirm your attendance."
    )


def escalation_alert(moderator_id: int, batch: Mapping[int, Sequence[Announcement]]) -> str:
    sections = []
    for member_id, announcements in batch.items():
        sections.append(f"{mention(member_id)}:\n{bullet_list(a.url for a in announcements)}")
    body = "\n\n".join(sections)
    return (
        f"Hi {mention(moderator_id)}!\n"
        "The following members have unconfirmed announcements:\n\n"
        f"{body}"
    )


def resolution_notice(moderator_id: int, member_ids: Iterable[int]) -> str:
    return (
        f"Hi {mention(moderator_id)}!\n"
        "The following members have now confirmed every escalated announcement:\n"
        f"{bullet_list(mention(m) for m in member_ids)}"
    )


def resolved(member_id: int, announcement: Announcement) -> str:
    return f"{mention(member_id)} has now confirmed {announcement.url}."


def reopened(member_id: int, announcement: Announcement) -> str:
    return (
        f"{mention(member_id)} removed their confirmation from {announcement.url}. "
        "Tracking has restarted for this announcement."
    )


def deletion_notice(
    announcement_id: int,
    announcement: Optional[Announcement],
    member_ids: Iterable[int],
) -> str:
    label = announcement.url if announcement else f"`{announcement_id}`"
    names = ", ".join(mention(m) for m in member_ids)
    return f"Announcement {label} was deleted. It had been escalated for: {names}."


def suspension_notice(member_id: int, duration: timedelta, missed_sweeps: int) -> str:
    return (
        f"{mention(member_id)} has been timed out for {format_duration(duration)} "
        f"after {missed_sweeps} consecutive reminders without confirming announcements."
    )


def suspension_lifted(member_id: int) -> str:
    return f"The timeout for {mention(member_id)} has been lifted."
