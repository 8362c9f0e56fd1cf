"""
Escalation Sweep — Periodic Acknowledgment Evaluation

THIS MODULE DEFINES BACKGROUND TASKS ONLY.

Responsibilities:
- Re-fetch the live member population and acknowledgment sets each sweep
- Drop announcements whose re-fetch fails (treated as deleted)
- Clear pairs that are acknowledged, count misses for pairs that are not
- Send one batched reminder per member
- Send one batched moderator alert per sweep for pairs that just crossed
  the threshold
- Report members whose escalations are fully resolved
- Feed the per-member suspension tier

Every member and every announcement is processed inside its own failure
boundary; one bad item never aborts the sweep.
No commands are defined here.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from audit.logging import LogContext, log_error
from escalation.cleanup import retire_announcement
from escalation.suspensions import SuspensionManager
from gateway.base import Gateway
from gateway.refs import MemberRecord
from notify.dispatcher import NotificationDispatcher
from tracking.acknowledgments import AckKey
from tracking.announcements import Announcement
from tracking.errors import TransientFetchFailure
from tracking.repository import TrackingRepository
from utils.timers import PeriodicTask

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    skipped: bool = False
    members: int = 0
    announcements: int = 0
    reminders_sent: int = 0
    reminders_failed: int = 0
    escalated: Dict[int, List[int]] = field(default_factory=dict)
    resolved_members: List[int] = field(default_factory=list)
    removed_announcements: List[int] = field(default_factory=list)
    suspended_members: List[int] = field(default_factory=list)
    failures: int = 0

    def summary(self) -> str:
        if self.skipped:
            return "Sweep skipped: nothing to evaluate."
        escalated_pairs = sum(len(ids) for ids in self.escalated.values())
        return (
            f"Evaluated {self.members} member(s) against {self.announcements} announcement(s). "
            f"Reminders: {self.reminders_sent} sent, {self.reminders_failed} failed. "
            f"Escalated pairs: {escalated_pairs}. Resolved members: {len(self.resolved_members)}. "
            f"Removed announcements: {len(self.removed_announcements)}. "
            f"Suspensions: {len(self.suspended_members)}."
        )


class EscalationEngine:
    def __init__(
        self,
        repository: TrackingRepository,
        gateway: Gateway,
        dispatcher: NotificationDispatcher,
        *,
        checkmark: str,
        suspensions: Optional[SuspensionManager] = None,
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._checkmark = checkmark
        self._suspensions = suspensions
        self._lock = asyncio.Lock()

    async def run(self) -> SweepReport:
        # Overlapping sweeps (timer + manual trigger) would double count misses.
        async with self._lock:
            report = await self._sweep()
        logger.info("escalation_sweep_complete", extra={"summary": report.summary()})
        return report

    async def _sweep(self) -> SweepReport:
        report = SweepReport()
        snapshot = self._repository.announcements.snapshot()
        space_id = self._repository.announcements.space_id()
        if not snapshot or space_id is None:
            report.skipped = True
            return report

        try:
            population = await self._gateway.fetch_space_members(space_id)
        except TransientFetchFailure as exc:
            log_error("Member list unavailable; sweep aborted.", context=LogContext(space_id=space_id), error=exc)
            report.failures += 1
            return report
        members = [m for m in population if not m.bot]

        # Events handled while the sweep awaits can clear pairs the live sets still miss.
        mark = self._repository.tracker.clear_mark()
        live = await self._fetch_live_acknowledgers(snapshot, report)
        announcements = [a for a in snapshot if a.id in live]
        report.members = len(members)
        report.announcements = len(announcements)

        escalations: Dict[int, List[Announcement]] = {}
        for member in members:
            try:
                crossed = await self._process_member(member, announcements, live, mark, space_id, report)
            except Exception as exc:
                report.failures += 1
                logger.exception("escalation_member_error", extra={"member_id": member.id})
                log_error("Member evaluation failed.", context=LogContext(member_id=member.id), error=exc)
                continue
            if crossed:
                escalations[member.id] = crossed

        if escalations:
            await self._dispatcher.send_escalation_alert(escalations)
            report.escalated = {m: [a.id for a in anns] for m, anns in escalations.items()}

        resolved = self._repository.tracker.take_resolved_members()
        if resolved:
            await self._dispatcher.send_resolution_notice(resolved)
            report.resolved_members = resolved
        return report

    async def _fetch_live_acknowledgers(
        self,
        snapshot: Sequence[Announcement],
        report: SweepReport,
    ) -> Dict[int, Set[int]]:
        live: Dict[int, Set[int]] = {}
        for announcement in snapshot:
            try:
                live[announcement.id] = await self._gateway.fetch_acknowledgers(
                    announcement.channel_id, announcement.id, self._checkmark
                )
            except TransientFetchFailure as exc:
                logger.warning("announcement_refetch_failed", extra={"announcement_id": announcement.id})
                log_error(
                    "Announcement re-fetch failed; treating it as deleted.",
                    context=LogContext(announcement_id=announcement.id),
                    error=exc,
                )
                await retire_announcement(
                    self._repository, self._dispatcher, announcement.id, reason="refetch_failed"
                )
                report.removed_announcements.append(announcement.id)
            except Exception as exc:
                report.failures += 1
                logger.exception("announcement_refetch_error", extra={"announcement_id": announcement.id})
                log_error("Unexpected re-fetch error.", context=LogContext(announcement_id=announcement.id), error=exc)
        return live

    def _evaluate_member(
        self,
        member_id: int,
        announcements: Sequence[Announcement],
        live: Dict[int, Set[int]],
        mark: int,
        report: SweepReport,
    ) -> Tuple[List[Announcement], List[Announcement]]:
        tracker = self._repository.tracker
        unacknowledged: List[Announcement] = []
        crossed: List[Announcement] = []

        for announcement in announcements:
            # A delete event may have landed while acknowledgers were fetched.
            if not self._repository.announcements.contains(announcement.id):
                continue
            key = AckKey(member_id, announcement.id)
            try:
                if member_id in live[announcement.id]:
                    previous = tracker.clear(key)
                    if previous is not None and previous.moderator_notified:
                        tracker.mark_pending_resolution(member_id)
                    continue

                if tracker.cleared_since(key, mark):
                    continue

                already_notified = tracker.was_notified(key)
                result = tracker.record_miss(key)
                unacknowledged.append(announcement)
                if result.just_crossed and not already_notified:
                    tracker.mark_notified(key)
                    crossed.append(announcement)
            except Exception as exc:
                report.failures += 1
                logger.exception(
                    "escalation_pair_error",
                    extra={"member_id": member_id, "announcement_id": announcement.id},
                )
                log_error(
                    "Pair evaluation failed.",
                    context=LogContext(member_id=member_id, announcement_id=announcement.id),
                    error=exc,
                )
        return unacknowledged, crossed

    async def _process_member(
        self,
        member: MemberRecord,
        announcements: Sequence[Announcement],
        live: Dict[int, Set[int]],
        mark: int,
        space_id: int,
        report: SweepReport,
    ) -> List[Announcement]:
        unacknowledged, crossed = self._evaluate_member(member.id, announcements, live, mark, report)

        if unacknowledged:
            if await self._dispatcher.send_reminder(member.id, unacknowledged):
                report.reminders_sent += 1
            else:
                report.reminders_failed += 1

        if self._suspensions is not None:
            suspended = await self._suspensions.record_sweep(member.id, space_id, missed=bool(unacknowledged))
            if suspended:
                report.suspended_members.append(member.id)
        return crossed


def build_sweep_task(engine: EscalationEngine, interval_seconds: float) -> PeriodicTask:
    return PeriodicTask("escalation_sweep", interval_seconds, engine.run)
