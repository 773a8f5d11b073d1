"""User ORM - member identity and the per-cycle ledger counters.

Invariants:
    - email, phone and referral_code are unique
    - referred_by holds the referrer's referral_code, written once on insert
    - cycle counters change only through core/ledger.py

Design Decisions:
    - Counters denormalized on the user row: the dashboard reads one row, no aggregation
    - Money columns are Numeric(14, 2) and surface as Decimal
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from wealthlink.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True,
    )
    phone: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    bank_name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_number: Mapped[str] = mapped_column(String(32), nullable=False)
    account_name: Mapped[str] = mapped_column(String(200), nullable=False)
    referral_code: Mapped[str] = mapped_column(
        String(16), nullable=False, unique=True, index=True,
    )
    referred_by: Mapped[str | None] = mapped_column(
        String(16), nullable=True, index=True,
    )

    # Savings cycle
    cycle_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_saved_current_cycle: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0"),
    )
    months_completed_current_cycle: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    last_payment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    next_payment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    is_payment_overdue: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    overdue_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0"),
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0"),
    )

    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    avatar: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
