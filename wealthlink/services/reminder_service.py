"""Reminder Service - periodic overdue refresh and payment-due reminders.

Invariants:
    - A sweep refreshes overdue flags for every member with a payment schedule;
      penalty already carried by a pending payment is not stamped again
    - At most one reminder per member per sweep
    - Each member is handled under its own lock and its own commit; one failing
      member does not abort the sweep
    - The background loop never dies on a sweep error (logged, retried next interval)
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable

from wealthlink.core.domain_types import NotificationType
from wealthlink.core.errors import WealthlinkError
from wealthlink.core.ledger import refresh_overdue
from wealthlink.core.records import AppConfig, NotificationRecord, UserRecord, utcnow
from wealthlink.core.reminders import evaluate_reminder
from wealthlink.core.repository_protocols import EventPublisher, RecordStore
from wealthlink.infrastructure.locks import KeyedLocks, user_locks
from wealthlink.infrastructure.repositories import SqlRecordStore
from wealthlink.services.dashboard_service import load_pending_payments, load_user
from wealthlink.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class ReminderService:
    def __init__(
        self,
        store: RecordStore,
        config: AppConfig,
        publisher: EventPublisher,
        locks: KeyedLocks = user_locks,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.config = config
        self.locks = locks
        self.clock = clock
        self.notifier = NotificationService(store, publisher, clock)

    async def _remind(
        self, user: UserRecord, now: datetime,
    ) -> tuple[NotificationRecord, dict] | None:
        """Refresh overdue state and stage a reminder if one is due. Caller commits."""
        pending = await load_pending_payments(self.store, user.id)
        changed = refresh_overdue(user, now, self.config, pending)
        if changed:
            user.updated_at = now
            await self.store.users.upsert(user)

        details = evaluate_reminder(user, now, self.config)
        if details is None:
            return None
        notification = await self.notifier.create(
            user.id, details["title"], details["message"], NotificationType.REMINDER,
        )
        return notification, details

    async def run_sweep(self, now: datetime | None = None) -> int:
        """One pass over all members. Returns the number of reminders sent."""
        now = now or self.clock()
        sent = 0
        for candidate in await self.store.users.list():
            if candidate.last_payment_date is None or candidate.is_admin:
                continue
            try:
                async with self.locks.hold(candidate.id):
                    user = await load_user(self.store, candidate.id)
                    reminder = await self._remind(user, now)
                    await self.store.commit()
            except WealthlinkError as e:
                logger.error(
                    f"Reminder sweep failed for member: {e.message}",
                    extra={"user_id": candidate.id, "error_code": e.code},
                )
                await self.store.rollback()
                continue
            if reminder is not None:
                notification, details = reminder
                self.notifier.announce_reminder(notification, details)
                sent += 1
        logger.info(f"Reminder sweep finished: sent={sent}")
        return sent

    async def request_reminder(self, user_id: str) -> dict | None:
        """Member asks for their own reminder. Returns the reminder or None if not due."""
        async with self.locks.hold(user_id):
            user = await load_user(self.store, user_id)
            reminder = await self._remind(user, self.clock())
            await self.store.commit()
        if reminder is None:
            return None
        notification, details = reminder
        self.notifier.announce_reminder(notification, details)
        return {**notification.to_payload(), **details}


async def reminder_loop(
    session_factory, publisher: EventPublisher, interval_seconds: int,
    config_seed: AppConfig | None = None,
) -> None:
    """Run a sweep every interval until cancelled. Started from the app lifespan."""
    while True:
        try:
            async with session_factory() as db:
                store = SqlRecordStore(db, config_seed)
                config = await store.config.get()
                await ReminderService(store, config, publisher).run_sweep()
        except Exception as e:
            logger.error(f"Reminder sweep crashed: {e}", exc_info=True)
        await asyncio.sleep(interval_seconds)
