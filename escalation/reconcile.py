"""
Reconciliation Sweep — Rebuild Tracked Announcements from Channel History

THIS MODULE DEFINES BACKGROUND TASKS ONLY.

Responsibilities:
- Page backward through the monitored channel until history is exhausted
- Start tracking announcements that were posted while events were missed
- Retire tracked announcements that no longer exist, cascading their
  acknowledgment state

A failed history fetch leaves the store untouched; partial history must
never be mistaken for deletions.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List

from audit.logging import LogContext, log_batch, log_error
from escalation.cleanup import retire_announcement
from gateway.base import Gateway, fetch_full_history
from notify.dispatcher import NotificationDispatcher
from tracking.errors import TransientFetchFailure
from tracking.repository import TrackingRepository
from utils.timers import PeriodicTask

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    added: List[int] = field(default_factory=list)
    removed: List[int] = field(default_factory=list)
    total: int = 0
    failed: bool = False

    def summary(self) -> str:
        if self.failed:
            return "Reconciliation failed: channel history unavailable."
        return f"Tracking {self.total} announcement(s); {len(self.added)} added, {len(self.removed)} removed."


class Reconciler:
    def __init__(
        self,
        repository: TrackingRepository,
        gateway: Gateway,
        dispatcher: NotificationDispatcher,
        *,
        channel_id: int,
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._channel_id = channel_id
        self._lock = asyncio.Lock()

    async def run(self) -> ReconcileReport:
        async with self._lock:
            report = await self._reconcile()
        logger.info("reconciliation_complete", extra={"summary": report.summary()})
        return report

    async def _reconcile(self) -> ReconcileReport:
        report = ReconcileReport()
        # Announcements created while history is paging are not in the fetch.
        tracked_before = set(self._repository.announcements.ids())
        # Deletes handled while history is paging must not be re-added from stale pages.
        removal_mark = self._repository.removal_mark()
        try:
            history = await fetch_full_history(self._gateway, self._channel_id)
        except TransientFetchFailure as exc:
            log_error("Channel history unavailable.", context=LogContext(channel_id=self._channel_id), error=exc)
            report.failed = True
            report.total = len(self._repository.announcements)
            return report

        fresh = {record.id: record for record in history if not record.author_bot}
        retired_meanwhile = self._repository.removed_since(removal_mark)

        for message_id, record in fresh.items():
            if message_id in retired_meanwhile:
                continue
            if self._repository.add_announcement(record.to_announcement()):
                report.added.append(message_id)

        for announcement_id in self._repository.announcements.ids():
            if announcement_id in fresh or announcement_id not in tracked_before:
                continue
            removed = await retire_announcement(
                self._repository, self._dispatcher, announcement_id, reason="reconciliation"
            )
            if removed.announcement is not None:
                report.removed.append(announcement_id)

        self._repository.forget_removals(self._repository.removal_mark())
        report.total = len(self._repository.announcements)
        log_batch(
            "reconciliation",
            [{"announcement_id": i, "change": "added"} for i in report.added]
            + [{"announcement_id": i, "change": "removed"} for i in report.removed],
            context={"channel_id": self._channel_id},
        )
        return report


def build_reconcile_task(reconciler: Reconciler, interval_seconds: float) -> PeriodicTask:
    return PeriodicTask("reconciliation", interval_seconds, reconciler.run)
