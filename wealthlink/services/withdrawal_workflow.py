"""Withdrawal Workflow - admin processing and member confirmation of cycle payouts.

Invariants:
    - request() only notifies: it creates no withdrawal, the admin still processes
    - process() requires a receipt, eligibility, savings above the processing fee
      and no other pending withdrawal for the member
    - amount is a snapshot of total_saved_current_cycle taken at processing time;
      the member receives net_amount = amount - fee
    - confirm() is legal only from pending and only for the owning member
    - confirm(True) cascades reset_cycle in the same commit: counters, cycle_number
      and archived flags change together or not at all
    - Payments still pending when the cycle closes are rejected and archived;
      the member is notified in the same commit
    - A declined withdrawal is never re-offered; the admin must process again
"""

import logging
from datetime import datetime
from typing import Callable

from wealthlink.core.domain_types import (
    NotificationType, TransactionStatus, WithdrawalStatus,
)
from wealthlink.core.errors import ErrorContext, NotFoundError, StateError, ValidationError
from wealthlink.core.ledger import (
    confirm_withdrawal, decline_withdrawal, open_withdrawal, quote_withdrawal,
)
from wealthlink.core.records import AppConfig, UserRecord, WithdrawalRecord, utcnow
from wealthlink.core.repository_protocols import EventPublisher, RecordStore
from wealthlink.infrastructure.locks import KeyedLocks, user_locks
from wealthlink.services.dashboard_service import load_user
from wealthlink.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class WithdrawalWorkflow:
    """none -> pending -> completed | rejected."""

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

    async def _ensure_no_pending(self, user: UserRecord) -> None:
        pending = await self.store.withdrawals.list(
            user_id=user.id, status=WithdrawalStatus.PENDING,
        )
        if pending:
            raise StateError(
                "User already has a withdrawal awaiting confirmation",
                current_state=WithdrawalStatus.PENDING.value,
                context=ErrorContext(user_id=user.id, entity_id=pending[0].id),
            )

    async def request(self, user_id: str) -> dict:
        """Member asks the admin to pay out the current cycle. Returns the quote."""
        async with self.locks.hold(user_id):
            user = await load_user(self.store, user_id)
            await self._ensure_no_pending(user)
            quote = quote_withdrawal(user, self.config)
            notification = await self.notifier.create(
                user.id, "Withdrawal Requested",
                f"Your withdrawal request of ₦{quote.net_amount:,} "
                f"(after the ₦{quote.fee:,} processing fee) is being processed",
                NotificationType.WITHDRAWAL,
            )
            await self.store.commit()

        logger.info(
            f"Withdrawal requested: amount={quote.amount} fee={quote.fee}",
            extra={"user_id": user.id},
        )
        self.notifier.announce_notification(notification)
        self.notifier.announce_withdrawal_request(user, quote.to_payload())
        return quote.to_payload()

    async def process(
        self, user_id: str, receipt_ref: str | None, admin_message: str = "",
    ) -> WithdrawalRecord:
        """Admin pays out the member's cycle and asks them to confirm receipt."""
        if not receipt_ref or not receipt_ref.strip():
            raise ValidationError("Withdrawal receipt is required", field="receipt_ref")

        async with self.locks.hold(user_id):
            user = await load_user(self.store, user_id)
            await self._ensure_no_pending(user)
            withdrawal = open_withdrawal(
                user, self.config, receipt_ref.strip(), admin_message, self.clock(),
            )
            await self.store.withdrawals.upsert(withdrawal)
            notification = await self.notifier.create(
                user.id, "Withdrawal Receipt Uploaded",
                admin_message or (
                    f"A withdrawal of ₦{withdrawal.net_amount:,} has been sent. "
                    "Please confirm receipt"
                ),
                NotificationType.WITHDRAWAL,
                withdrawal_id=withdrawal.id,
            )
            await self.store.commit()

        logger.info(
            f"Withdrawal processed: amount={withdrawal.amount} fee={withdrawal.fee}",
            extra={"user_id": user.id, "withdrawal_id": withdrawal.id},
        )
        self.notifier.announce_notification(notification)
        self.notifier.announce_withdrawal(withdrawal)
        await self.notifier.announce_dashboard(user, self.config)
        await self.notifier.announce_snapshots(self.config, withdrawals=True)
        return withdrawal

    async def confirm(
        self, withdrawal_id: str, user_id: str, confirmed: bool,
        note: str | None = None,
    ) -> WithdrawalRecord:
        """Member accepts (new cycle begins) or disputes the payout."""
        async with self.locks.hold(user_id):
            withdrawal = await self.store.withdrawals.get(withdrawal_id)
            if withdrawal is None or withdrawal.user_id != user_id:
                raise NotFoundError("Withdrawal", withdrawal_id)
            user = await load_user(self.store, user_id)
            now = self.clock()
            notices = []

            if confirmed:
                transactions = await self.store.transactions.list(
                    user_id=user.id, include_archived=False,
                )
                pending_ids = {
                    t.id for t in transactions if t.status == TransactionStatus.PENDING
                }
                archived = confirm_withdrawal(user, withdrawal, transactions, now)
                for transaction in archived:
                    await self.store.transactions.upsert(transaction)
                await self.store.users.upsert(user)
                notification = await self.notifier.create(
                    user.id, "Withdrawal Confirmed",
                    f"You confirmed receipt of ₦{withdrawal.net_amount:,}. "
                    f"Cycle {user.cycle_number} has begun",
                    NotificationType.CYCLE,
                    withdrawal_id=withdrawal.id,
                )
                cancelled = [t for t in archived if t.id in pending_ids]
                if cancelled:
                    notices.append(await self.notifier.create(
                        user.id, "Payment Cancelled",
                        f"{len(cancelled)} payment(s) awaiting review were cancelled "
                        "because your cycle closed. Please resubmit for the new cycle",
                        NotificationType.PAYMENT,
                    ))
            else:
                decline_withdrawal(withdrawal, now, note)
                notification = await self.notifier.create(
                    user.id, "Withdrawal Rejected",
                    "You rejected a withdrawal receipt",
                    NotificationType.WITHDRAWAL,
                    withdrawal_id=withdrawal.id,
                )
            await self.store.withdrawals.upsert(withdrawal)
            await self.store.commit()

        logger.info(
            f"Withdrawal {withdrawal.status.value}: cycle={user.cycle_number}",
            extra={"user_id": user.id, "withdrawal_id": withdrawal.id},
        )
        self.notifier.announce_notification(notification)
        for notice in notices:
            self.notifier.announce_notification(notice)
        self.notifier.announce_withdrawal(withdrawal)
        await self.notifier.announce_dashboard(user, self.config)
        await self.notifier.announce_snapshots(
            self.config, users=confirmed, transactions=confirmed, withdrawals=True,
        )
        return withdrawal
