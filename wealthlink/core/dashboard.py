"""Dashboard Views - pure summaries for the member and administrator screens.

Invariants:
    - All inputs are records already loaded by the shell (no IO, no DB)
    - Returns flat JSON-safe dicts (money as str)
    - Archived transactions never appear on the member dashboard
    - Never mutates a record: calling it twice yields the same result

Design Decisions:
    - Pure functions, not record methods: records are data, views are presentation
    - Payment schedule comes from ledger.compute_next_payment (single source of truth)
"""

from datetime import datetime
from decimal import Decimal

from wealthlink.core.domain_types import (
    BROADCAST_TARGET, RECENT_TRANSACTIONS_ON_DASHBOARD,
    TransactionStatus, WithdrawalStatus,
)
from wealthlink.core.ledger import (
    carried_penalty, compute_next_payment, compute_referral_stats,
    is_eligible_for_withdrawal,
)
from wealthlink.core.records import (
    AppConfig, NotificationRecord, TransactionRecord, UserRecord, WithdrawalRecord,
)

PROFILE_FIELDS: tuple[str, ...] = (
    "id", "first_name", "last_name", "email", "phone",
    "account_number", "account_name", "bank_name",
    "referral_code", "referred_by", "balance", "avatar",
    "is_verified", "is_admin",
)


def profile_view(user: UserRecord) -> dict:
    payload = user.to_payload()
    return {name: payload[name] for name in PROFILE_FIELDS}


def compute_dashboard(
    user: UserRecord,
    config: AppConfig,
    transactions: list[TransactionRecord],
    withdrawals: list[WithdrawalRecord],
    notifications: list[NotificationRecord],
    now: datetime,
    referral_users: list[UserRecord] | None = None,
    referral_transactions: list[TransactionRecord] | None = None,
) -> dict:
    """Member dashboard. Pure, callable any number of times."""
    own = [t for t in transactions if t.user_id == user.id and not t.archived]
    recent = sorted(own, key=lambda t: t.created_at, reverse=True)
    pending_withdrawal = next(
        (w for w in withdrawals
         if w.user_id == user.id and w.status == WithdrawalStatus.PENDING),
        None,
    )
    unread = sum(
        1 for n in notifications
        if n.user_id == user.id and not n.is_read
    )
    schedule = compute_next_payment(
        user, user.last_payment_date, now, config, carried_penalty(user, own),
    )
    remaining = max(
        0, config.withdrawal_eligibility_months - user.months_completed_current_cycle,
    )

    dashboard = {
        "user": profile_view(user),
        "cycle_number": user.cycle_number,
        "total_saved": str(user.total_saved_current_cycle),
        "months_completed": user.months_completed_current_cycle,
        "months_remaining": remaining,
        "is_eligible_for_withdrawal": is_eligible_for_withdrawal(user, config),
        "payment_schedule": schedule.to_payload(),
        "pending_payments": sum(
            1 for t in own if t.status == TransactionStatus.PENDING
        ),
        "recent_transactions": [
            t.to_payload() for t in recent[:RECENT_TRANSACTIONS_ON_DASHBOARD]
        ],
        "pending_withdrawal": (
            pending_withdrawal.to_payload() if pending_withdrawal else None
        ),
        "unread_notifications": unread,
        "referrals": compute_referral_stats(
            user, referral_users or [], referral_transactions or [],
        ).to_payload(),
    }
    return dashboard


def compute_admin_stats(
    config: AppConfig,
    users: list[UserRecord],
    transactions: list[TransactionRecord],
    withdrawals: list[WithdrawalRecord],
    notifications: list[NotificationRecord],
    recent_limit: int = 10,
) -> dict:
    """Administrator overview. Pure."""
    total_savings = sum(
        (t.amount for t in transactions if t.status == TransactionStatus.COMPLETED),
        Decimal("0"),
    )
    recent = sorted(notifications, key=lambda n: n.created_at, reverse=True)
    return {
        "total_users": len(users),
        "total_savings": str(total_savings),
        "pending_payments": sum(
            1 for t in transactions if t.status == TransactionStatus.PENDING
        ),
        "pending_withdrawals": sum(
            1 for w in withdrawals if w.status == WithdrawalStatus.PENDING
        ),
        "eligible_members": sum(
            1 for u in users if is_eligible_for_withdrawal(u, config)
        ),
        "broadcasts_sent": sum(
            1 for n in notifications if n.user_id == BROADCAST_TARGET
        ),
        "recent_activity": [n.to_payload() for n in recent[:recent_limit]],
    }
