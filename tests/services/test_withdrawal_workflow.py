"""Withdrawal workflow - eligibility gating, payout processing and member confirmation.

Tests cover:
    - Member request: quote net of the fee, admin alert, no withdrawal created
    - Process rejected at 5 months, accepted at 6 (amount snapshot, fee, net payout)
    - Process rejected without a receipt or when savings do not cover the fee
    - Process rejected while another withdrawal is pending
    - Confirm(True) resets the cycle and archives completed transactions
    - A payment still pending at confirm is cancelled and can never credit cycle 2
    - A second confirm raises StateError without a second reset
    - Confirm(False) keeps the cycle; a new process is required
    - Only the owner can confirm
    - Full cycle end-to-end: six paid months -> payout -> cycle 2
"""

from decimal import Decimal

import pytest

from wealthlink.core.domain_types import (
    ADMIN_CHANNEL, NotificationType, TransactionStatus, WithdrawalStatus, user_channel,
)
from wealthlink.core.errors import NotFoundError, StateError, ValidationError
from wealthlink.core.records import AppConfig
from wealthlink.services.payment_workflow import PaymentWorkflow
from wealthlink.services.withdrawal_workflow import WithdrawalWorkflow

SAVED = Decimal("72000")


@pytest.fixture
def payments(store, bus, locks, clock):
    return PaymentWorkflow(store, AppConfig(), bus, locks=locks, clock=clock)


@pytest.fixture
def withdrawals(store, bus, locks, clock):
    return WithdrawalWorkflow(store, AppConfig(), bus, locks=locks, clock=clock)


async def _pay_months(payments, clock, user_id, months):
    for _ in range(months):
        t = await payments.submit(user_id, "receipt.png")
        await payments.decide(t.id, approve=True)
        clock.advance(30)


# --- Request ------------------------------------------------------------------

async def test_request_quotes_net_payout_and_alerts_admin(
    withdrawals, store, seed_user, bus,
):
    user = await seed_user(months_completed_current_cycle=6, total_saved_current_cycle=SAVED)

    quote = await withdrawals.request(user.id)

    assert Decimal(quote["amount"]) == SAVED
    assert Decimal(quote["fee"]) == Decimal("500")
    assert Decimal(quote["net_amount"]) == Decimal("71500")
    assert await store.withdrawals.list(user_id=user.id) == []
    notes = await store.notifications.list(user_id=user.id)
    assert notes[0].title == "Withdrawal Requested"
    assert "71,500" in notes[0].message
    assert bus.events(ADMIN_CHANNEL) == ["withdrawal-requested"]
    _, _, payload = next(p for p in bus.published if p[0] == ADMIN_CHANNEL)
    assert payload["user_id"] == user.id


async def test_request_rejects_before_six_months(withdrawals, store, seed_user, bus):
    user = await seed_user(
        months_completed_current_cycle=5, total_saved_current_cycle=Decimal("60000"),
    )
    with pytest.raises(StateError):
        await withdrawals.request(user.id)
    assert await store.notifications.list(user_id=user.id) == []
    assert bus.published == []


async def test_request_rejects_while_payout_pending(withdrawals, seed_user):
    user = await seed_user(months_completed_current_cycle=6, total_saved_current_cycle=SAVED)
    await withdrawals.process(user.id, "payout.png")
    with pytest.raises(StateError):
        await withdrawals.request(user.id)


# --- Process ------------------------------------------------------------------

async def test_process_rejects_five_months(withdrawals, seed_user):
    user = await seed_user(months_completed_current_cycle=5)
    with pytest.raises(StateError):
        await withdrawals.process(user.id, "payout.png")


async def test_process_accepts_six_months(withdrawals, store, seed_user):
    user = await seed_user(
        months_completed_current_cycle=6, total_saved_current_cycle=Decimal("72000"),
    )
    w = await withdrawals.process(user.id, "payout.png", "Sent to your GTBank account")

    stored = await store.withdrawals.get(w.id)
    assert stored.status == WithdrawalStatus.PENDING
    assert not stored.confirmed
    assert stored.amount == Decimal("72000")
    assert stored.fee == Decimal("500")
    assert stored.net_amount == Decimal("71500")
    assert stored.admin_message == "Sent to your GTBank account"
    notes = await store.notifications.list(user_id=user.id)
    assert notes[0].withdrawal_id == w.id


async def test_process_requires_receipt(withdrawals, store, seed_user):
    user = await seed_user(months_completed_current_cycle=6, total_saved_current_cycle=SAVED)
    for receipt in ("", "   ", None):
        with pytest.raises(ValidationError) as exc:
            await withdrawals.process(user.id, receipt)
        assert exc.value.field == "receipt_ref"
    assert await store.withdrawals.list(user_id=user.id) == []


async def test_process_rejects_savings_not_covering_fee(withdrawals, store, seed_user):
    user = await seed_user(
        months_completed_current_cycle=6, total_saved_current_cycle=Decimal("500"),
    )
    with pytest.raises(StateError):
        await withdrawals.process(user.id, "payout.png")
    assert await store.withdrawals.list(user_id=user.id) == []


async def test_process_rejects_second_pending(withdrawals, seed_user):
    user = await seed_user(months_completed_current_cycle=6, total_saved_current_cycle=SAVED)
    await withdrawals.process(user.id, "payout.png")
    with pytest.raises(StateError):
        await withdrawals.process(user.id, "payout-again.png")


async def test_process_unknown_user(withdrawals):
    with pytest.raises(NotFoundError):
        await withdrawals.process("missing", "payout.png")


async def test_process_publishes_to_member_and_admin(withdrawals, seed_user, bus):
    user = await seed_user(months_completed_current_cycle=6, total_saved_current_cycle=SAVED)
    await withdrawals.process(user.id, "payout.png")
    assert "withdrawal-updated" in bus.events(user_channel(user.id))
    assert bus.events(ADMIN_CHANNEL) == ["withdrawals-updated"]


# --- Confirm ------------------------------------------------------------------

async def test_confirm_resets_cycle_and_archives(
    payments, withdrawals, store, seed_user, clock,
):
    user = await seed_user()
    await _pay_months(payments, clock, user.id, 6)
    w = await withdrawals.process(user.id, "payout.png")

    confirmed = await withdrawals.confirm(w.id, user.id, confirmed=True)

    assert confirmed.status == WithdrawalStatus.COMPLETED
    assert confirmed.confirmed
    reloaded = await store.users.get(user.id)
    assert reloaded.total_saved_current_cycle == 0
    assert reloaded.months_completed_current_cycle == 0
    assert reloaded.cycle_number == 2
    assert reloaded.last_payment_date is None
    completed = await store.transactions.list(
        user_id=user.id, status=TransactionStatus.COMPLETED,
    )
    assert len(completed) == 6
    assert all(t.archived for t in completed)
    notes = await store.notifications.list(user_id=user.id)
    assert NotificationType.CYCLE in {n.type for n in notes}


async def test_confirm_cancels_payment_pending_from_closed_cycle(
    payments, withdrawals, store, seed_user, clock,
):
    user = await seed_user()
    await _pay_months(payments, clock, user.id, 6)
    late = await payments.submit(user.id, "month-7.png")
    w = await withdrawals.process(user.id, "payout.png")

    await withdrawals.confirm(w.id, user.id, confirmed=True)

    cancelled = await store.transactions.get(late.id)
    assert cancelled.status == TransactionStatus.REJECTED
    assert cancelled.archived
    with pytest.raises(StateError):
        await payments.decide(late.id, approve=True)
    reloaded = await store.users.get(user.id)
    assert reloaded.cycle_number == 2
    assert reloaded.months_completed_current_cycle == 0
    assert reloaded.total_saved_current_cycle == 0
    titles = [n.title for n in await store.notifications.list(user_id=user.id)]
    assert "Payment Cancelled" in titles


async def test_second_confirm_raises_without_second_reset(
    withdrawals, store, seed_user,
):
    user = await seed_user(months_completed_current_cycle=6, total_saved_current_cycle=SAVED)
    w = await withdrawals.process(user.id, "payout.png")
    await withdrawals.confirm(w.id, user.id, confirmed=True)

    with pytest.raises(StateError):
        await withdrawals.confirm(w.id, user.id, confirmed=True)
    reloaded = await store.users.get(user.id)
    assert reloaded.cycle_number == 2


async def test_decline_keeps_cycle_and_requires_new_process(
    withdrawals, store, seed_user,
):
    user = await seed_user(
        months_completed_current_cycle=6, total_saved_current_cycle=Decimal("72000"),
    )
    w = await withdrawals.process(user.id, "payout.png")
    declined = await withdrawals.confirm(w.id, user.id, confirmed=False, note="Not received")

    assert declined.status == WithdrawalStatus.REJECTED
    assert declined.rejection_note == "Not received"
    reloaded = await store.users.get(user.id)
    assert reloaded.months_completed_current_cycle == 6
    assert reloaded.cycle_number == 1
    assert await store.withdrawals.list(user_id=user.id, status=WithdrawalStatus.PENDING) == []

    again = await withdrawals.process(user.id, "payout-2.png")
    assert again.status == WithdrawalStatus.PENDING


async def test_only_owner_can_confirm(withdrawals, seed_user):
    owner = await seed_user(months_completed_current_cycle=6, total_saved_current_cycle=SAVED)
    stranger = await seed_user()
    w = await withdrawals.process(owner.id, "payout.png")
    with pytest.raises(NotFoundError):
        await withdrawals.confirm(w.id, stranger.id, confirmed=True)


# --- End to end ---------------------------------------------------------------

async def test_full_cycle_then_next_cycle_starts_clean(
    payments, withdrawals, store, seed_user, clock,
):
    user = await seed_user()
    await _pay_months(payments, clock, user.id, 5)
    with pytest.raises(StateError):
        await withdrawals.process(user.id, "early.png")

    await _pay_months(payments, clock, user.id, 1)
    w = await withdrawals.process(user.id, "payout.png")
    assert w.amount == Decimal("72000")
    await withdrawals.confirm(w.id, user.id, confirmed=True)

    t = await payments.submit(user.id, "cycle-2.png")
    assert t.penalty_amount == 0
    await payments.decide(t.id, approve=True)
    reloaded = await store.users.get(user.id)
    assert reloaded.cycle_number == 2
    assert reloaded.months_completed_current_cycle == 1
    assert reloaded.total_saved_current_cycle == Decimal("12000")
    visible = await store.transactions.list(user_id=user.id, include_archived=False)
    assert [v.id for v in visible] == [t.id]
