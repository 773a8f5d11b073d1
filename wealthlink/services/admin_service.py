"""Admin Service - partial updates of the process-wide business config.

Invariants:
    - Bank details and app settings are merged key by key, never replaced wholesale
    - Numeric tunables change only when the new value is positive
    - The saved config is what every later workflow call reads
"""

import logging
from dataclasses import replace
from decimal import Decimal

from wealthlink.core.errors import ValidationError
from wealthlink.core.records import AppConfig
from wealthlink.core.repository_protocols import RecordStore

logger = logging.getLogger(__name__)

_NUMERIC_FIELDS: tuple[str, ...] = (
    "monthly_payment_amount", "penalty_multiplier",
    "withdrawal_eligibility_months", "withdrawal_processing_fee",
    "payment_reminder_days",
)


def merge_config(config: AppConfig, changes: dict) -> AppConfig:
    """Return a new AppConfig with the changes applied. Pure."""
    updates: dict = {}
    for name in _NUMERIC_FIELDS:
        value = changes.get(name)
        if value is None:
            continue
        if Decimal(str(value)) <= 0:
            raise ValidationError(f"{name} must be positive", field=name)
        updates[name] = value
    if changes.get("company_bank_details"):
        updates["company_bank_details"] = {
            **config.company_bank_details, **changes["company_bank_details"],
        }
    if changes.get("app_settings"):
        updates["app_settings"] = {**config.app_settings, **changes["app_settings"]}
    return replace(config, **updates)


class AdminService:
    def __init__(self, store: RecordStore):
        self.store = store

    async def update_settings(self, changes: dict) -> AppConfig:
        config = merge_config(await self.store.config.get(), changes)
        await self.store.config.save(config)
        await self.store.commit()
        logger.info(f"Config updated: {sorted(k for k, v in changes.items() if v)}")
        return config
