"""
Notification Dispatcher — Reminder and Alert Delivery

THIS MODULE DEFINES NO COMMANDS.

A stateless sink over the gateway:
- Direct reminders to members
- Alerts and notices to the staff channel, mentioning the moderator

Delivery failures are logged and reported as a False return value. They
never raise into the caller and never touch tracking state.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, Mapping, Optional, Sequence

from audit.logging import LogContext, log_action, log_error, log_escalation
from gateway.base import Gateway
from notify import messages
from tracking.announcements import Announcement
from tracking.errors import DeliveryFailure
from utils.text import split_message

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(self, gateway: Gateway, *, staff_channel_id: int, moderator_id: int, checkmark: str) -> None:
        self._gateway = gateway
        self.staff_channel_id = staff_channel_id
        self.moderator_id = moderator_id
        self.checkmark = checkmark

    async def _deliver_direct(self, member_id: int, text: str) -> bool:
        try:
            for chunk in split_message(text):
                await self._gateway.send_direct(member_id, chunk)
        except DeliveryFailure as exc:
            logger.warning("dm_delivery_failed", extra={"member_id": member_id})
            log_error("Could not deliver direct message.", context=LogContext(member_id=member_id), error=exc)
            return False
        return True

    async def _deliver_staff(self, text: str, *, kind: str) -> bool:
        try:
            for chunk in split_message(text):
                await self._gateway.send_to_channel(self.staff_channel_id, chunk)
        except DeliveryFailure as exc:
            logger.warning("staff_delivery_failed", extra={"kind": kind})
            log_error(
                "Could not deliver staff notice.",
                context=LogContext(channel_id=self.staff_channel_id),
                error=exc,
                kind=kind,
            )
            return False
        return True

    async def send_reminder(self, member_id: int, announcements: Sequence[Announcement]) -> bool:
        if not announcements:
            return False
        sent = await self._deliver_direct(member_id, messages.reminder(member_id, announcements, self.checkmark))
        if sent:
            log_action(
                "Reminder sent.",
                context=LogContext(member_id=member_id),
                action="reminder",
                announcements=[a.id for a in announcements],
            )
        return sent

    async def send_escalation_alert(self, batch: Mapping[int, Sequence[Announcement]]) -> bool:
        if not batch:
            return False
        sent = await self._deliver_staff(messages.escalation_alert(self.moderator_id, batch), kind="escalation")
        if sent:
            log_escalation(
                f"Moderator notification sent for {len(batch)} member(s).",
                escalation="moderator_alert",
                members={str(m): [a.id for a in anns] for m, anns in batch.items()},
            )
        return sent

    async def send_resolution_notice(self, member_ids: Sequence[int]) -> bool:
        if not member_ids:
            return False
        sent = await self._deliver_staff(messages.resolution_notice(self.moderator_id, member_ids), kind="resolution")
        if sent:
            log_action("Resolution notice sent.", action="resolution_batch", members=list(member_ids))
        return sent

    async def send_resolved(self, member_id: int, announcement: Announcement) -> bool:
        sent = await self._deliver_staff(messages.resolved(member_id, announcement), kind="resolved")
        if sent:
            log_action(
                "Immediate resolution notice sent.",
                context=LogContext(member_id=member_id, announcement_id=announcement.id),
                action="resolved",
            )
        return sent

    async def send_reopened(self, member_id: int, announcement: Announcement) -> bool:
        sent = await self._deliver_staff(messages.reopened(member_id, announcement), kind="reopened")
        if sent:
            log_action(
                "Reopened notice sent.",
                context=LogContext(member_id=member_id, announcement_id=announcement.id),
                action="reopened",
            )
        return sent

    async def send_deletion_notice(
        self,
        announcement_id: int,
        announcement: Optional[Announcement],
        member_ids: Iterable[int],
    ) -> bool:
        members = list(member_ids)
        if not members:
            return False
        text = messages.deletion_notice(announcement_id, announcement, members)
        sent = await self._deliver_staff(text, kind="deletion")
        if sent:
            log_action(
                "Deletion notice sent.",
                context=LogContext(announcement_id=announcement_id),
                action="deletion",
                members=members,
            )
        return sent

    async def send_suspension_notice(self, member_id: int, duration: timedelta, missed_sweeps: int) -> bool:
        text = messages.suspension_notice(member_id, duration, missed_sweeps)
        return await self._deliver_staff(text, kind="suspension")

    async def send_suspension_lifted(self, member_id: int) -> bool:
        return await self._deliver_staff(messages.suspension_lifted(member_id), kind="suspension_lifted")
