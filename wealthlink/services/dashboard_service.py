"""Dashboard Service - read-side queries: dashboards, schedules, referrals, listings.

Invariants:
    - Read-only: never upserts, never commits
    - Referral bonus is recomputed from current transactions on every call
    - Member listings exclude archived transactions; admin listings include them
"""

import logging
from datetime import datetime
from typing import Callable

from wealthlink.core.dashboard import compute_admin_stats, compute_dashboard, profile_view
from wealthlink.core.domain_types import TransactionStatus, WithdrawalStatus
from wealthlink.core.errors import NotFoundError
from wealthlink.core.ledger import (
    PaymentSchedule, carried_penalty, compute_next_payment,
    compute_referral_stats,
)
from wealthlink.core.records import AppConfig, TransactionRecord, UserRecord, utcnow
from wealthlink.core.repository_protocols import RecordStore

logger = logging.getLogger(__name__)


async def load_user(store: RecordStore, user_id: str) -> UserRecord:
    user = await store.users.get(user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def load_pending_payments(
    store: RecordStore, user_id: str,
) -> list[TransactionRecord]:
    return await store.transactions.list(
        user_id=user_id, status=TransactionStatus.PENDING, include_archived=False,
    )


async def load_referrals(
    store: RecordStore, user: UserRecord,
) -> tuple[list[UserRecord], list[TransactionRecord]]:
    """Members referred by `user` and their completed payments."""
    referrals = await store.users.list(referred_by=user.referral_code)
    transactions = []
    for referral in referrals:
        transactions.extend(await store.transactions.list(
            user_id=referral.id, status=TransactionStatus.COMPLETED,
        ))
    return referrals, transactions


async def load_dashboard(
    store: RecordStore, user: UserRecord, config: AppConfig, now: datetime,
) -> dict:
    """Fetch everything compute_dashboard needs for one member."""
    transactions = await store.transactions.list(
        user_id=user.id, include_archived=False,
    )
    withdrawals = await store.withdrawals.list(
        user_id=user.id, status=WithdrawalStatus.PENDING,
    )
    notifications = await store.notifications.list(user_id=user.id)
    referrals, referral_transactions = await load_referrals(store, user)
    return compute_dashboard(
        user, config, transactions, withdrawals, notifications, now,
        referral_users=referrals, referral_transactions=referral_transactions,
    )


class DashboardService:
    """Member and administrator read models."""

    def __init__(
        self, store: RecordStore, config: AppConfig,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.config = config
        self.clock = clock

    # ─── Member ──────────────────────────────────────────────────

    async def dashboard(self, user_id: str) -> dict:
        user = await load_user(self.store, user_id)
        return await load_dashboard(self.store, user, self.config, self.clock())

    async def profile(self, user_id: str) -> dict:
        return profile_view(await load_user(self.store, user_id))

    async def next_payment(self, user_id: str) -> PaymentSchedule:
        user = await load_user(self.store, user_id)
        pending = await load_pending_payments(self.store, user.id)
        return compute_next_payment(
            user, user.last_payment_date, self.clock(), self.config,
            carried_penalty(user, pending),
        )

    async def referral_stats(self, user_id: str) -> dict:
        user = await load_user(self.store, user_id)
        referrals, transactions = await load_referrals(self.store, user)
        stats = compute_referral_stats(user, referrals, transactions)
        return {
            "referral_code": user.referral_code,
            **stats.to_payload(),
            "referrals": [
                {"id": r.id, "name": r.full_name, "joined_at": r.created_at.isoformat()}
                for r in referrals
            ],
        }

    async def user_transactions(
        self, user_id: str, status: TransactionStatus | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        transactions = await self.store.transactions.list(
            user_id=user_id, status=status, include_archived=False,
        )
        return [t.to_payload() for t in transactions[:limit]]

    async def user_withdrawals(
        self, user_id: str, status: WithdrawalStatus | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        withdrawals = await self.store.withdrawals.list(user_id=user_id, status=status)
        return [w.to_payload() for w in withdrawals[:limit]]

    def bank_details(self) -> dict:
        return {
            **self.config.company_bank_details,
            "monthly_payment_amount": str(self.config.monthly_payment_amount),
        }

    # ─── Administrator ───────────────────────────────────────────

    async def admin_stats(self) -> dict:
        return compute_admin_stats(
            self.config,
            await self.store.users.list(),
            await self.store.transactions.list(),
            await self.store.withdrawals.list(),
            await self.store.notifications.list(),
        )

    async def all_users(self) -> list[dict]:
        users = await self.store.users.list()
        return [
            {
                **profile_view(u),
                "cycle_number": u.cycle_number,
                "total_saved": str(u.total_saved_current_cycle),
                "months_completed": u.months_completed_current_cycle,
                "is_payment_overdue": u.is_payment_overdue,
                "created_at": u.created_at.isoformat(),
            }
            for u in users
        ]

    async def all_transactions(
        self, status: TransactionStatus | None = None,
    ) -> list[dict]:
        users = {u.id: u for u in await self.store.users.list()}
        rows = []
        for t in await self.store.transactions.list(status=status):
            owner = users.get(t.user_id)
            rows.append({
                **t.to_payload(),
                "user_name": owner.full_name if owner else None,
            })
        return rows

    async def all_withdrawals(
        self, status: WithdrawalStatus | None = None,
    ) -> list[dict]:
        users = {u.id: u for u in await self.store.users.list()}
        rows = []
        for w in await self.store.withdrawals.list(status=status):
            owner = users.get(w.user_id)
            rows.append({
                **w.to_payload(),
                "user_name": owner.full_name if owner else None,
            })
        return rows
