"""Payment Reminders - decides whether a member should be reminded today.

Invariants:
    - A reminder is due only when next_payment_date is 0..payment_reminder_days days away
    - Members who already reached the eligibility threshold are never reminded
    - Pure: returns a descriptor, the shell persists and publishes
"""

import math
from datetime import datetime

from wealthlink.core.ledger import is_eligible_for_withdrawal
from wealthlink.core.records import AppConfig, UserRecord

_SECONDS_PER_DAY = 86_400


def days_until_due(next_payment_date: datetime, now: datetime) -> int:
    """Whole days until the due date, rounded up (due later today counts as 1)."""
    return math.ceil((next_payment_date - now).total_seconds() / _SECONDS_PER_DAY)


def evaluate_reminder(
    user: UserRecord, now: datetime, config: AppConfig,
) -> dict | None:
    """Return {title, message, payment_due_date, days_until_due} or None."""
    if user.next_payment_date is None or user.is_admin:
        return None
    if is_eligible_for_withdrawal(user, config):
        return None
    days = days_until_due(user.next_payment_date, now)
    if days < 0 or days > config.payment_reminder_days:
        return None
    due = user.next_payment_date
    return {
        "title": "Payment Reminder",
        "message": (
            f"Your next payment of ₦{config.monthly_payment_amount:,} "
            f"is due on {due.date().isoformat()}"
        ),
        "payment_due_date": due.isoformat(),
        "days_until_due": days,
    }
