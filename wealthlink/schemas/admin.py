"""Admin Schemas - broadcast and settings payloads.

Invariants:
    - Numeric settings, when present, are strictly positive
    - Dict settings are merged into the stored config, not replacing it
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from wealthlink.core.domain_types import NotificationType


class BroadcastCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    type: NotificationType = NotificationType.ANNOUNCEMENT


class SettingsUpdate(BaseModel):
    monthly_payment_amount: Decimal | None = Field(None, gt=0)
    penalty_multiplier: Decimal | None = Field(None, gt=0)
    withdrawal_eligibility_months: int | None = Field(None, gt=0)
    withdrawal_processing_fee: Decimal | None = Field(None, gt=0)
    payment_reminder_days: int | None = Field(None, gt=0)
    company_bank_details: dict[str, str] | None = None
    app_settings: dict | None = None
