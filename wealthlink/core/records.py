"""Domain Records - plain dataclasses for every persisted collection.

Invariants:
    - Records are pure data: no IO, no ORM session, no async
    - Transaction.amount == base_amount + penalty_amount, fixed at creation
    - User.referred_by is set once at creation and never rewritten
    - Notification is append-only except is_read
    - Money is Decimal; to_payload() renders it as str for JSON transport

Design Decisions:
    - Dataclasses over ORM instances in core: ledger tests build records directly
    - Repositories (infrastructure/repositories.py) map rows <-> records
    - AppConfig carries its own defaults so an unpersisted config still works
"""

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from wealthlink.core.domain_types import (
    NotificationType, TransactionStatus, WithdrawalStatus,
)


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


class _PayloadMixin:
    """Flat JSON-safe dict of every dataclass field."""

    def to_payload(self, exclude: tuple[str, ...] = ()) -> dict:
        return {
            f.name: _jsonable(getattr(self, f.name))
            for f in fields(self)  # type: ignore[arg-type]
            if f.name not in exclude
        }


@dataclass
class UserRecord(_PayloadMixin):
    """Member identity plus the per-cycle ledger counters."""

    first_name: str
    last_name: str
    email: str
    phone: str
    bank_name: str
    account_number: str
    account_name: str
    referral_code: str
    id: str = field(default_factory=new_id)
    referred_by: str | None = None

    # === Savings cycle (owned by core/ledger.py) ===
    cycle_number: int = 1
    total_saved_current_cycle: Decimal = Decimal("0")
    months_completed_current_cycle: int = 0
    last_payment_date: datetime | None = None
    next_payment_date: datetime | None = None
    is_payment_overdue: bool = False
    overdue_amount: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")

    # === Account flags ===
    is_verified: bool = False
    is_admin: bool = False
    avatar: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class TransactionRecord(_PayloadMixin):
    """A monthly payment submission awaiting or past an admin decision."""

    user_id: str
    base_amount: Decimal
    receipt_ref: str
    penalty_amount: Decimal = Decimal("0")
    id: str = field(default_factory=new_id)
    status: TransactionStatus = TransactionStatus.PENDING
    archived: bool = False
    admin_note: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    processed_at: datetime | None = None

    @property
    def amount(self) -> Decimal:
        return self.base_amount + self.penalty_amount

    def to_payload(self, exclude: tuple[str, ...] = ()) -> dict:
        payload = super().to_payload(exclude)
        payload["amount"] = _jsonable(self.amount)
        return payload


@dataclass
class WithdrawalRecord(_PayloadMixin):
    """A payout of one completed cycle, confirmed by the member."""

    user_id: str
    amount: Decimal
    receipt_ref: str
    fee: Decimal = Decimal("0")
    id: str = field(default_factory=new_id)
    status: WithdrawalStatus = WithdrawalStatus.PENDING
    confirmed: bool = False
    admin_message: str = ""
    rejection_note: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    confirmed_at: datetime | None = None
    rejected_at: datetime | None = None

    @property
    def net_amount(self) -> Decimal:
        """What the member actually receives."""
        return self.amount - self.fee

    def to_payload(self, exclude: tuple[str, ...] = ()) -> dict:
        payload = super().to_payload(exclude)
        payload["net_amount"] = _jsonable(self.net_amount)
        return payload


@dataclass
class NotificationRecord(_PayloadMixin):
    user_id: str
    title: str
    message: str
    type: NotificationType
    id: str = field(default_factory=new_id)
    is_read: bool = False
    withdrawal_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)


def _default_bank_details() -> dict:
    return {
        "bank_name": "Sterling Bank",
        "account_number": "0108270702",
        "account_name": "Wealthlink",
    }


def _default_app_settings() -> dict:
    return {"min_password_length": 6, "max_login_attempts": 5}


@dataclass
class AppConfig(_PayloadMixin):
    """Process-wide tunables, edited only by administrators."""

    monthly_payment_amount: Decimal = Decimal("12000")
    penalty_multiplier: Decimal = Decimal("2")
    withdrawal_eligibility_months: int = 6
    withdrawal_processing_fee: Decimal = Decimal("500")
    payment_reminder_days: int = 3
    company_bank_details: dict = field(default_factory=_default_bank_details)
    app_settings: dict = field(default_factory=_default_app_settings)
