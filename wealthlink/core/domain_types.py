"""Domain Types - identity aliases, status enums and ledger constants.

Invariants:
    - UserId, TransactionId, WithdrawalId, NotificationId wrap str ids
    - Every status is an Enum member; no raw string matching in workflows
    - PAYMENT_PERIOD_DAYS (30) and REFERRAL_BONUS_RATE (5%) are the single source of truth

Design Decisions:
    - NewType over wrapper classes: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON and SSE payloads without custom encoders
    - Ids are str so notifications can target the BROADCAST_TARGET sentinel
"""

from decimal import Decimal
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", str)
TransactionId = NewType("TransactionId", str)
WithdrawalId = NewType("WithdrawalId", str)
NotificationId = NewType("NotificationId", str)

BROADCAST_TARGET = "all"


# ─── Ledger Constants ────────────────────────────────────────────

PAYMENT_PERIOD_DAYS: int = 30
REFERRAL_BONUS_RATE: Decimal = Decimal("0.05")
RECENT_TRANSACTIONS_ON_DASHBOARD: int = 3

REFERRAL_CODE_ALPHABET: str = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
REFERRAL_CODE_PREFIX_LENGTH: int = 4
REFERRAL_CODE_RANDOM_LENGTH: int = 6


# ─── Enums ───────────────────────────────────────────────────────

class TransactionStatus(str, Enum):
    """Payment lifecycle: pending -> completed | rejected (both terminal)."""
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class WithdrawalStatus(str, Enum):
    """Withdrawal lifecycle: pending -> completed | rejected (both terminal)."""
    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class NotificationType(str, Enum):
    PAYMENT = "payment"
    WITHDRAWAL = "withdrawal"
    REMINDER = "reminder"
    CYCLE = "cycle"
    ANNOUNCEMENT = "announcement"


class EventName(str, Enum):
    """Event names published through the fanout."""
    NOTIFICATION = "notification"
    DASHBOARD_UPDATE = "dashboard-update"
    PAYMENT_REMINDER = "payment-reminder"
    TRANSACTION_UPDATED = "transaction-updated"
    WITHDRAWAL_UPDATED = "withdrawal-updated"
    WITHDRAWAL_REQUESTED = "withdrawal-requested"
    USERS_UPDATED = "users-updated"
    TRANSACTIONS_UPDATED = "transactions-updated"
    WITHDRAWALS_UPDATED = "withdrawals-updated"


# ─── Channels ────────────────────────────────────────────────────

ADMIN_CHANNEL = "admin"
BROADCAST_CHANNEL = "broadcast"


def user_channel(user_id: str) -> str:
    """Per-user fanout channel name (user:<id>)."""
    return f"user:{user_id}"
