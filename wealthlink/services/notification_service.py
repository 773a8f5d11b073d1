"""Notification Service - persisted notifications plus post-commit fanout.

Invariants:
    - create() only stages a Notification; the calling workflow commits it
    - Nothing is published before the originating transition has committed
    - Fanout never fails the caller: publish and snapshot errors are logged, not raised
    - Admin channel receives whole-collection snapshots; user:<id> receives
      only that member's entities
    - mark_read succeeds only for the owning member

Design Decisions:
    - Workflows call announce_*() after commit: publish order follows commit order
    - Snapshot payloads reuse DashboardService listings so admin clients see
      the same rows as the REST endpoints
"""

import logging
from datetime import datetime
from typing import Any, Callable

from wealthlink.core.domain_types import (
    ADMIN_CHANNEL, BROADCAST_CHANNEL, BROADCAST_TARGET,
    EventName, NotificationType, user_channel,
)
from wealthlink.core.errors import NotFoundError
from wealthlink.core.records import (
    AppConfig, NotificationRecord, TransactionRecord, UserRecord,
    WithdrawalRecord, utcnow,
)
from wealthlink.core.repository_protocols import EventPublisher, RecordStore
from wealthlink.services.dashboard_service import DashboardService, load_dashboard

logger = logging.getLogger(__name__)


class NotificationService:
    """Stages notifications and fans committed changes out to subscribers."""

    def __init__(
        self, store: RecordStore, publisher: EventPublisher,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.publisher = publisher
        self.clock = clock

    # ─── Persistence ─────────────────────────────────────────────

    async def create(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType,
        withdrawal_id: str | None = None,
    ) -> NotificationRecord:
        notification = NotificationRecord(
            user_id=user_id, title=title, message=message, type=type,
            withdrawal_id=withdrawal_id, created_at=self.clock(),
        )
        await self.store.notifications.upsert(notification)
        return notification

    async def broadcast(
        self, title: str, message: str,
        type: NotificationType = NotificationType.ANNOUNCEMENT,
    ) -> NotificationRecord:
        """Store an announcement for every member and publish it on broadcast."""
        notification = await self.create(BROADCAST_TARGET, title, message, type)
        await self.store.commit()
        logger.info(
            f"Broadcast sent: {title}",
            extra={"notification_id": notification.id},
        )
        self._publish(BROADCAST_CHANNEL, EventName.NOTIFICATION, notification.to_payload())
        return notification

    async def list_for_user(
        self, user_id: str, limit: int | None = None,
    ) -> list[NotificationRecord]:
        notifications = await self.store.notifications.list(
            user_id=user_id, include_broadcast=True,
        )
        return notifications[:limit]

    async def list_all(self, limit: int | None = None) -> list[NotificationRecord]:
        return (await self.store.notifications.list())[:limit]

    async def mark_read(self, notification_id: str, user_id: str) -> NotificationRecord:
        notification = await self.store.notifications.get(notification_id)
        if notification is None or notification.user_id != user_id:
            raise NotFoundError("Notification", notification_id)
        if not notification.is_read:
            notification.is_read = True
            await self.store.notifications.upsert(notification)
            await self.store.commit()
        return notification

    # ─── Fanout ──────────────────────────────────────────────────

    def _publish(self, channel: str, event_name: EventName, payload: Any) -> None:
        try:
            self.publisher.publish(channel, event_name.value, payload)
        except Exception as e:
            logger.error(
                f"Publish failed: {e}",
                extra={"channel": channel, "event_name": event_name.value},
            )

    def announce_notification(self, notification: NotificationRecord) -> None:
        self._publish(
            user_channel(notification.user_id),
            EventName.NOTIFICATION, notification.to_payload(),
        )

    def announce_reminder(self, notification: NotificationRecord, details: dict) -> None:
        self._publish(
            user_channel(notification.user_id),
            EventName.PAYMENT_REMINDER, {**notification.to_payload(), **details},
        )

    def announce_transaction(self, transaction: TransactionRecord) -> None:
        self._publish(
            user_channel(transaction.user_id),
            EventName.TRANSACTION_UPDATED, transaction.to_payload(),
        )

    def announce_withdrawal(self, withdrawal: WithdrawalRecord) -> None:
        self._publish(
            user_channel(withdrawal.user_id),
            EventName.WITHDRAWAL_UPDATED, withdrawal.to_payload(),
        )

    def announce_withdrawal_request(self, user: UserRecord, quote: dict) -> None:
        self._publish(
            ADMIN_CHANNEL, EventName.WITHDRAWAL_REQUESTED,
            {"user_id": user.id, "user_name": user.full_name, **quote},
        )

    async def announce_dashboard(self, user: UserRecord, config: AppConfig) -> None:
        try:
            payload = await load_dashboard(self.store, user, config, self.clock())
        except Exception as e:
            logger.error(
                f"Dashboard snapshot failed: {e}", extra={"user_id": user.id},
            )
            return
        self._publish(user_channel(user.id), EventName.DASHBOARD_UPDATE, payload)

    async def announce_snapshots(
        self,
        config: AppConfig,
        users: bool = False,
        transactions: bool = False,
        withdrawals: bool = False,
    ) -> None:
        """Publish whole-collection snapshots to the admin channel."""
        views = DashboardService(self.store, config, self.clock)
        try:
            if users:
                self._publish(
                    ADMIN_CHANNEL, EventName.USERS_UPDATED, await views.all_users(),
                )
            if transactions:
                self._publish(
                    ADMIN_CHANNEL, EventName.TRANSACTIONS_UPDATED,
                    await views.all_transactions(),
                )
            if withdrawals:
                self._publish(
                    ADMIN_CHANNEL, EventName.WITHDRAWALS_UPDATED,
                    await views.all_withdrawals(),
                )
        except Exception as e:
            logger.error(f"Admin snapshot failed: {e}", extra={"channel": ADMIN_CHANNEL})
