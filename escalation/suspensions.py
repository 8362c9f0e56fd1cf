"""
Suspension Tier — Per-Member Temporary Timeouts

THIS MODULE DEFINES NO COMMANDS.

An independent escalation tier layered on top of per-announcement tracking:
- Count consecutive sweeps in which a member left anything unacknowledged
- Reset the count whenever a sweep finds the member fully caught up
- On reaching the threshold: time the member out, reset the count, notify
  staff, and schedule an automatic lift keyed by member id

Lift tasks live in a ScheduledTasks registry, so manual resolution or
shutdown cancels them deterministically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from functools import partial
from typing import Dict, List, Optional

from audit.logging import LogContext, log_error, log_escalation
from gateway.base import Gateway
from notify.dispatcher import NotificationDispatcher
from tracking.errors import DeliveryFailure
from utils.timers import ScheduledTasks, TimedWindow

logger = logging.getLogger(__name__)

SUSPEND_REASON = "Announcements left unconfirmed after repeated reminders."
LIFT_REASON = "Announcement suspension elapsed."
MANUAL_LIFT_REASON = "Announcement suspension lifted by a moderator."


@dataclass
class SuspensionRecord:
    member_id: int
    space_id: int
    duration: timedelta
    window: TimedWindow

    def remaining(self) -> float:
        return self.window.remaining()


class SuspensionManager:
    def __init__(
        self,
        gateway: Gateway,
        dispatcher: NotificationDispatcher,
        *,
        threshold: int,
        duration: timedelta,
        scheduler: Optional[ScheduledTasks] = None,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self._gateway = gateway
        self._dispatcher = dispatcher
        self._threshold = threshold
        self._duration = duration
        self._scheduler = scheduler or ScheduledTasks()
        self._counters: Dict[int, int] = {}
        self._active: Dict[int, SuspensionRecord] = {}

    @property
    def enabled(self) -> bool:
        return self._duration > timedelta(0)

    @property
    def scheduler(self) -> ScheduledTasks:
        return self._scheduler

    def counter(self, member_id: int) -> int:
        return self._counters.get(member_id, 0)

    def reset_counter(self, member_id: int) -> None:
        self._counters.pop(member_id, None)

    def is_suspended(self, member_id: int) -> bool:
        return member_id in self._active

    def active(self) -> List[SuspensionRecord]:
        return list(self._active.values())

    async def record_sweep(self, member_id: int, space_id: Optional[int], *, missed: bool) -> bool:
        """Update the member's counter after a sweep.

        Returns True if the member was suspended as a result.
        """
        if not self.enabled:
            return False
        if not missed:
            self._counters.pop(member_id, None)
            return False

        count = self._counters.get(member_id, 0) + 1
        if count < self._threshold:
            self._counters[member_id] = count
            return False

        self._counters.pop(member_id, None)
        if space_id is None or member_id in self._active:
            return False
        return await self.suspend(member_id, space_id, missed_sweeps=count)

    async def suspend(self, member_id: int, space_id: int, *, missed_sweeps: int) -> bool:
        context = LogContext(member_id=member_id, space_id=space_id)
        try:
            await self._gateway.suspend_member(space_id, member_id, self._duration, SUSPEND_REASON)
        except DeliveryFailure as exc:
            log_error("Could not suspend member.", context=context, error=exc)
            return False

        self._active[member_id] = SuspensionRecord(
            member_id=member_id,
            space_id=space_id,
            duration=self._duration,
            window=TimedWindow(self._duration.total_seconds()),
        )
        self._scheduler.schedule(member_id, self._duration.total_seconds(), partial(self._auto_lift, member_id))
        log_escalation(
            "Member suspended.",
            context=context,
            escalation="suspension",
            duration_seconds=self._duration.total_seconds(),
            missed_sweeps=missed_sweeps,
        )
        await self._dispatcher.send_suspension_notice(member_id, self._duration, missed_sweeps)
        return True

    async def _auto_lift(self, member_id: int) -> None:
        record = self._active.pop(member_id, None)
        if record is None:
            return
        await self._lift(record, LIFT_REASON)

    async def _lift(self, record: SuspensionRecord, reason: str) -> bool:
        try:
            await self._gateway.lift_suspension(record.space_id, record.member_id, reason)
        except DeliveryFailure as exc:
            log_error(
                "Could not lift suspension.",
                context=LogContext(member_id=record.member_id, space_id=record.space_id),
                error=exc,
            )
            return False
        logger.info("suspension_lifted", extra={"member_id": record.member_id, "reason": reason})
        await self._dispatcher.send_suspension_lifted(record.member_id)
        return True

    async def lift(self, member_id: int, *, reason: str = MANUAL_LIFT_REASON) -> bool:
        """Cancel the scheduled lift and end an active suspension now."""
        self._scheduler.cancel(member_id)
        self._counters.pop(member_id, None)
        record = self._active.pop(member_id, None)
        if record is None:
            return False
        return await self._lift(record, reason)

    async def shutdown(self) -> None:
        await self._scheduler.cancel_all()
