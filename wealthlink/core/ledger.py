"""Savings-Cycle Ledger - cycle counters, payment schedule, penalties, referral bonus.

Invariants:
    - total_saved_current_cycle and months_completed_current_cycle reset to 0
      ONLY inside confirm_withdrawal -> reset_cycle
    - apply_approved_payment runs once per pending -> completed transition
      (the transition check inside it rejects replays)
    - compute_next_payment and compute_referral_stats are pure: no record is mutated
    - Payment period is a fixed PAYMENT_PERIOD_DAYS window, not calendar months
    - Referral bonus is derived on every read, never stored
    - An overdue period is charged once: penalty already on a pending payment
      is subtracted from what compute_next_payment reports as owed
    - Archived transactions never credit a cycle; reset_cycle rejects any still pending

Design Decisions:
    - Approval-counter model: months_completed counts approvals since the last reset,
      not distinct calendar months of completed payments
    - `now` is always an argument: the shell owns the clock, tests pin it
    - Mutating functions return the records they changed so the shell knows what to persist
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from wealthlink.core.domain_types import (
    PAYMENT_PERIOD_DAYS, REFERRAL_BONUS_RATE,
    TransactionStatus, WithdrawalStatus,
)
from wealthlink.core.errors import ErrorContext, StateError, ValidationError
from wealthlink.core.records import (
    AppConfig, TransactionRecord, UserRecord, WithdrawalRecord,
)
from wealthlink.core.transitions import (
    check_transaction_transition, check_withdrawal_transition,
)

CYCLE_CLOSED_NOTE = "Cancelled: the savings cycle closed before this payment was reviewed"


@dataclass(frozen=True)
class PaymentSchedule:
    next_payment_date: datetime | None
    days_until: int | None
    is_overdue: bool
    overdue_months: int
    penalty_amount: Decimal
    total_amount_due: Decimal

    def to_payload(self) -> dict:
        return {
            "next_payment_date": (
                self.next_payment_date.isoformat() if self.next_payment_date else None
            ),
            "days_until": self.days_until,
            "is_overdue": self.is_overdue,
            "overdue_months": self.overdue_months,
            "penalty_amount": str(self.penalty_amount),
            "total_amount_due": str(self.total_amount_due),
        }


@dataclass(frozen=True)
class WithdrawalQuote:
    amount: Decimal
    fee: Decimal
    net_amount: Decimal

    def to_payload(self) -> dict:
        return {
            "amount": str(self.amount),
            "fee": str(self.fee),
            "net_amount": str(self.net_amount),
        }


@dataclass(frozen=True)
class ReferralStats:
    total_referrals: int
    active_referrals: int
    total_bonus: Decimal

    def to_payload(self) -> dict:
        return {
            "total_referrals": self.total_referrals,
            "active_referrals": self.active_referrals,
            "total_bonus": str(self.total_bonus),
        }


# ─── Schedule & penalties ────────────────────────────────────────

def carried_penalty(
    user: UserRecord, transactions: list[TransactionRecord],
) -> Decimal:
    """Penalty already moved onto the user's pending payments."""
    return sum(
        (t.penalty_amount for t in transactions
         if t.user_id == user.id and t.status == TransactionStatus.PENDING
         and not t.archived),
        Decimal("0"),
    )


def compute_next_payment(
    user: UserRecord,
    last_payment_date: datetime | None,
    now: datetime,
    config: AppConfig,
    carried: Decimal = Decimal("0"),
) -> PaymentSchedule:
    """Next due date and the penalty still owed. Pure.

    `carried` is the penalty already riding on pending payments; it is
    subtracted so an overdue period is charged once, not once per submission.
    """
    base = config.monthly_payment_amount
    if last_payment_date is None:
        # No approved payment this cycle: the first one is due now, without penalty
        return PaymentSchedule(
            next_payment_date=None, days_until=None, is_overdue=False,
            overdue_months=0, penalty_amount=Decimal("0"), total_amount_due=base,
        )

    days_since = (now - last_payment_date).days
    is_overdue = days_since > PAYMENT_PERIOD_DAYS
    overdue_months = days_since // PAYMENT_PERIOD_DAYS if is_overdue else 0
    accrued = base * config.penalty_multiplier * overdue_months
    penalty = max(accrued - carried, Decimal("0"))
    return PaymentSchedule(
        next_payment_date=last_payment_date + timedelta(days=PAYMENT_PERIOD_DAYS),
        days_until=PAYMENT_PERIOD_DAYS - days_since,
        is_overdue=is_overdue,
        overdue_months=overdue_months,
        penalty_amount=penalty,
        total_amount_due=base + penalty,
    )


def refresh_overdue(
    user: UserRecord, now: datetime, config: AppConfig,
    pending: list[TransactionRecord] | None = None,
) -> bool:
    """Stamp overdue flag and the penalty not yet carried by a pending payment.

    Returns True if either field changed.
    """
    schedule = compute_next_payment(
        user, user.last_payment_date, now, config, carried_penalty(user, pending or []),
    )
    is_overdue = schedule.is_overdue and schedule.penalty_amount > 0
    changed = (
        user.is_payment_overdue != is_overdue
        or user.overdue_amount != schedule.penalty_amount
    )
    user.is_payment_overdue = is_overdue
    user.overdue_amount = schedule.penalty_amount
    return changed


# ─── Payment lifecycle ───────────────────────────────────────────

def apply_approved_payment(
    user: UserRecord, transaction: TransactionRecord, now: datetime,
    admin_note: str | None = None,
) -> None:
    """Complete a pending payment and credit it to the current cycle.

    Raises StateError if the transaction already left pending, so a replayed
    approval can never be counted twice.
    """
    if transaction.user_id != user.id:
        raise ValidationError(
            f"Transaction {transaction.id} does not belong to user {user.id}",
            field="user_id",
        )
    if transaction.archived:
        raise StateError(
            f"Transaction {transaction.id} belongs to a closed cycle",
            current_state=transaction.status.value,
            context=ErrorContext(user_id=user.id, entity_id=transaction.id),
        )
    check_transaction_transition(transaction, TransactionStatus.COMPLETED)

    transaction.status = TransactionStatus.COMPLETED
    transaction.processed_at = now
    if admin_note:
        transaction.admin_note = admin_note

    user.total_saved_current_cycle += transaction.amount
    user.months_completed_current_cycle += 1
    user.balance += transaction.amount
    user.last_payment_date = now
    user.next_payment_date = now + timedelta(days=PAYMENT_PERIOD_DAYS)
    user.is_payment_overdue = False
    user.overdue_amount = Decimal("0")
    user.updated_at = now


def reject_payment(
    transaction: TransactionRecord, now: datetime, admin_note: str | None = None,
) -> None:
    """Reject a pending payment. No ledger effect."""
    check_transaction_transition(transaction, TransactionStatus.REJECTED)
    transaction.status = TransactionStatus.REJECTED
    transaction.processed_at = now
    if admin_note:
        transaction.admin_note = admin_note


# ─── Withdrawal lifecycle ────────────────────────────────────────

def is_eligible_for_withdrawal(user: UserRecord, config: AppConfig) -> bool:
    return user.months_completed_current_cycle >= config.withdrawal_eligibility_months


def quote_withdrawal(user: UserRecord, config: AppConfig) -> WithdrawalQuote:
    """Payout for the current cycle: savings minus the processing fee.

    Raises StateError if the user is not eligible or the savings do not
    cover the fee.
    """
    if not is_eligible_for_withdrawal(user, config):
        raise StateError(
            f"User has completed {user.months_completed_current_cycle} of "
            f"{config.withdrawal_eligibility_months} months required for withdrawal",
            context=ErrorContext(user_id=user.id),
        )
    amount = user.total_saved_current_cycle
    fee = config.withdrawal_processing_fee
    if amount <= fee:
        raise StateError(
            f"Insufficient savings: ₦{amount:,} does not cover the ₦{fee:,} processing fee",
            context=ErrorContext(user_id=user.id),
        )
    return WithdrawalQuote(amount=amount, fee=fee, net_amount=amount - fee)


def open_withdrawal(
    user: UserRecord, config: AppConfig, receipt_ref: str,
    admin_message: str, now: datetime,
) -> WithdrawalRecord:
    """Create a pending withdrawal snapshotting the current cycle's savings."""
    quote = quote_withdrawal(user, config)
    return WithdrawalRecord(
        user_id=user.id,
        amount=quote.amount,
        fee=quote.fee,
        receipt_ref=receipt_ref,
        admin_message=admin_message,
        created_at=now,
    )


def reset_cycle(
    user: UserRecord, transactions: list[TransactionRecord], now: datetime,
) -> list[TransactionRecord]:
    """Graduate the user into a new cycle. Returns the transactions it archived.

    Payments still pending belong to the closed cycle: they are rejected with
    CYCLE_CLOSED_NOTE before being archived, so they can never credit the new one.
    """
    user.total_saved_current_cycle = Decimal("0")
    user.months_completed_current_cycle = 0
    user.last_payment_date = None
    user.next_payment_date = None
    user.is_payment_overdue = False
    user.overdue_amount = Decimal("0")
    user.balance = Decimal("0")
    user.cycle_number += 1
    user.updated_at = now

    archived = []
    for t in transactions:
        if t.user_id != user.id or t.archived:
            continue
        if t.status == TransactionStatus.PENDING:
            reject_payment(t, now, CYCLE_CLOSED_NOTE)
        t.archived = True
        archived.append(t)
    return archived


def confirm_withdrawal(
    user: UserRecord, withdrawal: WithdrawalRecord,
    transactions: list[TransactionRecord], now: datetime,
) -> list[TransactionRecord]:
    """Member accepts the payout: complete it and cascade reset_cycle."""
    check_withdrawal_transition(withdrawal, WithdrawalStatus.COMPLETED)
    withdrawal.status = WithdrawalStatus.COMPLETED
    withdrawal.confirmed = True
    withdrawal.confirmed_at = now
    return reset_cycle(user, transactions, now)


def decline_withdrawal(
    withdrawal: WithdrawalRecord, now: datetime, note: str | None = None,
) -> None:
    """Member disputes the payout. No cycle effect; admin must process again."""
    check_withdrawal_transition(withdrawal, WithdrawalStatus.REJECTED)
    withdrawal.status = WithdrawalStatus.REJECTED
    withdrawal.rejected_at = now
    withdrawal.rejection_note = note or "Rejected by user"


# ─── Referrals ───────────────────────────────────────────────────

def compute_referral_stats(
    user: UserRecord,
    all_users: list[UserRecord],
    all_transactions: list[TransactionRecord],
) -> ReferralStats:
    """Referral counts and 5% bonus on referrals' completed payments. Pure."""
    referral_ids = {
        u.id for u in all_users
        if u.referred_by is not None and u.referred_by == user.referral_code
    }
    completed_by_referral: dict[str, Decimal] = {}
    for t in all_transactions:
        if t.user_id in referral_ids and t.status == TransactionStatus.COMPLETED:
            completed_by_referral[t.user_id] = (
                completed_by_referral.get(t.user_id, Decimal("0")) + t.amount
            )
    total_paid = sum(completed_by_referral.values(), Decimal("0"))
    return ReferralStats(
        total_referrals=len(referral_ids),
        active_referrals=len(completed_by_referral),
        total_bonus=total_paid * REFERRAL_BONUS_RATE,
    )
