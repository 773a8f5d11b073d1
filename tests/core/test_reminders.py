"""Payment reminders - due-window evaluation.

Tests cover:
    - Reminder inside the window, none outside it
    - No reminder without a schedule, for admins, or once eligible
"""

from datetime import timedelta

import pytest

from wealthlink.core.reminders import days_until_due, evaluate_reminder
from tests.conftest import make_user


def test_days_until_due_rounds_up(now):
    assert days_until_due(now + timedelta(hours=5), now) == 1
    assert days_until_due(now + timedelta(days=2), now) == 2


@pytest.mark.parametrize("days", [0, 1, 3])
def test_reminder_inside_window(config, now, days):
    user = make_user(next_payment_date=now + timedelta(days=days))
    reminder = evaluate_reminder(user, now, config)
    assert reminder is not None
    assert reminder["title"] == "Payment Reminder"
    assert reminder["days_until_due"] == days
    assert "12,000" in reminder["message"]


@pytest.mark.parametrize("days", [-1, 4, 20])
def test_no_reminder_outside_window(config, now, days):
    user = make_user(next_payment_date=now + timedelta(days=days))
    assert evaluate_reminder(user, now, config) is None


def test_no_reminder_without_schedule(config, now):
    assert evaluate_reminder(make_user(), now, config) is None


def test_no_reminder_for_admin_or_eligible(config, now):
    due = now + timedelta(days=1)
    assert evaluate_reminder(make_user(next_payment_date=due, is_admin=True), now, config) is None
    eligible = make_user(next_payment_date=due, months_completed_current_cycle=6)
    assert evaluate_reminder(eligible, now, config) is None
