"""App Config ORM - the single row of admin-tunable parameters.

Invariants:
    - At most one row, id == 1
    - Absence of the row means "seed defaults" (see ConfigRepository.get)

Design Decisions:
    - Typed columns for the numbers, JSON for the free-form dicts
"""

from decimal import Decimal

from sqlalchemy import Integer, JSON, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from wealthlink.db.base import Base

CONFIG_ROW_ID = 1


class AppConfigRow(Base):
    __tablename__ = "app_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=CONFIG_ROW_ID)
    monthly_payment_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False,
    )
    penalty_multiplier: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False,
    )
    withdrawal_eligibility_months: Mapped[int] = mapped_column(
        Integer, nullable=False,
    )
    withdrawal_processing_fee: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False,
    )
    payment_reminder_days: Mapped[int] = mapped_column(Integer, nullable=False)
    company_bank_details: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict,
    )
    app_settings: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
