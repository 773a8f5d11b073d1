"""Payment Workflow - submission and admin decision for monthly payments.

Invariants:
    - submit() creates a pending transaction; it never touches cycle counters
    - penalty_amount is the overdue penalty owed at submission time, fixed thereafter;
      penalty already carried by another pending payment is not charged again
    - An archived (closed-cycle) transaction can never be approved
    - decide() is legal only from pending: a replayed decision raises StateError
      and the ledger is credited exactly once
    - Every mutation of a member runs under that member's lock
    - Events are published only after the commit succeeds

Design Decisions:
    - Config and publisher injected through the constructor, never read from globals
    - The user lock is keyed by the transaction owner, so decide() serializes with
      the same member's submit/confirm calls
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

from wealthlink.core.domain_types import NotificationType
from wealthlink.core.errors import NotFoundError, ValidationError
from wealthlink.core.ledger import apply_approved_payment, refresh_overdue, reject_payment
from wealthlink.core.records import AppConfig, TransactionRecord, utcnow
from wealthlink.core.repository_protocols import EventPublisher, RecordStore
from wealthlink.infrastructure.locks import KeyedLocks, user_locks
from wealthlink.services.dashboard_service import load_pending_payments, load_user
from wealthlink.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class PaymentWorkflow:
    """pending -> completed | rejected."""

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

    async def submit(self, user_id: str, receipt_ref: str | None) -> TransactionRecord:
        """Record a payment proof. Penalty owed right now rides on the transaction."""
        if not receipt_ref or not receipt_ref.strip():
            raise ValidationError("Payment receipt is required", field="receipt_ref")

        async with self.locks.hold(user_id):
            user = await load_user(self.store, user_id)
            now = self.clock()
            pending = await load_pending_payments(self.store, user.id)
            refresh_overdue(user, now, self.config, pending)
            penalty = user.overdue_amount if user.is_payment_overdue else Decimal("0")

            transaction = TransactionRecord(
                user_id=user.id,
                base_amount=self.config.monthly_payment_amount,
                penalty_amount=penalty,
                receipt_ref=receipt_ref.strip(),
                created_at=now,
            )
            # Penalty now lives on the transaction
            user.is_payment_overdue = False
            user.overdue_amount = Decimal("0")
            user.updated_at = now

            await self.store.transactions.upsert(transaction)
            await self.store.users.upsert(user)
            notification = await self.notifier.create(
                user.id, "Payment Submitted",
                f"Your payment of ₦{transaction.amount:,} has been submitted for review",
                NotificationType.PAYMENT,
            )
            await self.store.commit()

        logger.info(
            f"Payment submitted: amount={transaction.amount} penalty={penalty}",
            extra={"user_id": user.id, "transaction_id": transaction.id},
        )
        self.notifier.announce_notification(notification)
        self.notifier.announce_transaction(transaction)
        await self.notifier.announce_snapshots(self.config, transactions=True)
        return transaction

    async def decide(
        self, transaction_id: str, approve: bool, admin_note: str | None = None,
    ) -> TransactionRecord:
        """Approve (credit the ledger) or reject a pending payment."""
        transaction = await self.store.transactions.get(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)

        async with self.locks.hold(transaction.user_id):
            # Re-read under the lock: a concurrent decision may have landed
            transaction = await self.store.transactions.get(transaction_id)
            user = await load_user(self.store, transaction.user_id)
            now = self.clock()

            if approve:
                apply_approved_payment(user, transaction, now, admin_note)
                await self.store.users.upsert(user)
                verb = "approved"
            else:
                reject_payment(transaction, now, admin_note)
                verb = "rejected"
            await self.store.transactions.upsert(transaction)
            notification = await self.notifier.create(
                user.id, f"Payment {verb.capitalize()}",
                f"Your payment of ₦{transaction.amount:,} has been {verb}",
                NotificationType.PAYMENT,
            )
            await self.store.commit()

        logger.info(
            f"Payment {verb}: months_completed={user.months_completed_current_cycle}",
            extra={"user_id": user.id, "transaction_id": transaction.id},
        )
        self.notifier.announce_notification(notification)
        self.notifier.announce_transaction(transaction)
        await self.notifier.announce_dashboard(user, self.config)
        await self.notifier.announce_snapshots(
            self.config, users=approve, transactions=True,
        )
        return transaction
