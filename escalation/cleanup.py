"""
Announcement Retirement — Shared Cascade + Deletion Notice

THIS MODULE DEFINES NO COMMANDS.

Every path that drops an announcement (delete event, failed re-fetch during
a sweep, reconciliation) goes through retire_announcement so the tracker
cascade and the staff deletion notice behave identically.
"""

from __future__ import annotations

import logging

from audit.logging import LogContext, log_action
from notify.dispatcher import NotificationDispatcher
from tracking.repository import RemovedAnnouncement, TrackingRepository

logger = logging.getLogger(__name__)


async def retire_announcement(
    repository: TrackingRepository,
    dispatcher: NotificationDispatcher,
    announcement_id: int,
    *,
    reason: str,
) -> RemovedAnnouncement:
    removed = repository.remove_announcement(announcement_id)
    if removed.announcement is None and not removed.purged:
        return removed

    logger.info(
        "announcement_retired",
        extra={"announcement_id": announcement_id, "reason": reason, "purged": len(removed.purged)},
    )
    log_action(
        "Announcement removed from tracking.",
        context=LogContext(announcement_id=announcement_id),
        action="retire",
        reason=reason,
        purged_members=sorted(removed.purged),
    )

    notified = removed.notified_members
    if notified:
        await dispatcher.send_deletion_notice(announcement_id, removed.announcement, notified)
    return removed
