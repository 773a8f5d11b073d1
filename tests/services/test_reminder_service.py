"""Reminder service - sweeps over members with a payment schedule.

Tests cover:
    - A member due within the reminder window gets one reminder per sweep
    - A long-overdue member gets the overdue flag and penalty stamped, no reminder
    - Penalty already riding on a pending payment is not stamped again
    - Members without a payment history and administrators are skipped
    - request_reminder returns None when nothing is due
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from wealthlink.core.domain_types import NotificationType, user_channel
from wealthlink.core.records import AppConfig
from wealthlink.services.payment_workflow import PaymentWorkflow
from wealthlink.services.reminder_service import ReminderService

from tests.conftest import NOW


@pytest.fixture
def reminders(store, bus, locks, clock):
    return ReminderService(store, AppConfig(), bus, locks=locks, clock=clock)


async def _seed_paid(seed_user, days_ago: int, **overrides):
    paid = NOW - timedelta(days=days_ago)
    overrides.setdefault("months_completed_current_cycle", 1)
    return await seed_user(
        last_payment_date=paid, next_payment_date=paid + timedelta(days=30),
        **overrides,
    )


async def test_sweep_reminds_member_due_soon(reminders, store, seed_user, bus):
    user = await _seed_paid(seed_user, days_ago=28)

    sent = await reminders.run_sweep()

    assert sent == 1
    notes = await store.notifications.list(user_id=user.id)
    assert len(notes) == 1
    assert notes[0].type == NotificationType.REMINDER
    assert bus.events(user_channel(user.id)) == ["payment-reminder"]
    payload = bus.published[-1][2]
    assert payload["days_until_due"] == 2


async def test_sweep_stamps_overdue_without_reminder(reminders, store, seed_user):
    user = await _seed_paid(seed_user, days_ago=65)

    sent = await reminders.run_sweep()

    assert sent == 0
    reloaded = await store.users.get(user.id)
    assert reloaded.is_payment_overdue
    assert reloaded.overdue_amount == Decimal("48000")


async def test_sweep_leaves_penalty_on_pending_payment(
    reminders, store, seed_user, bus, locks, clock,
):
    user = await _seed_paid(seed_user, days_ago=65)
    payments = PaymentWorkflow(store, AppConfig(), bus, locks=locks, clock=clock)
    late = await payments.submit(user.id, "late.png")
    assert late.penalty_amount == Decimal("48000")

    await reminders.run_sweep()

    reloaded = await store.users.get(user.id)
    assert not reloaded.is_payment_overdue
    assert reloaded.overdue_amount == 0


async def test_sweep_skips_unscheduled_and_admins(reminders, seed_user, store):
    await seed_user()
    await _seed_paid(seed_user, days_ago=28, is_admin=True)

    assert await reminders.run_sweep() == 0
    assert await store.notifications.list() == []


async def test_sweep_skips_eligible_member(reminders, seed_user):
    await _seed_paid(seed_user, days_ago=28, months_completed_current_cycle=6)
    assert await reminders.run_sweep() == 0


async def test_request_reminder(reminders, seed_user):
    due = await _seed_paid(seed_user, days_ago=28)
    fresh = await _seed_paid(seed_user, days_ago=1)

    reminder = await reminders.request_reminder(due.id)
    assert reminder["title"] == "Payment Reminder"
    assert reminder["user_id"] == due.id
    assert await reminders.request_reminder(fresh.id) is None
