"""Transition Enforcement - closed transition tables for payments and withdrawals.

Invariants:
    - The only legal transitions are pending -> completed and pending -> rejected
    - completed and rejected are terminal for both entity kinds
    - check_* raise StateError and never mutate the record
    - Replaying an already-applied decision is an error, not a no-op

Design Decisions:
    - Explicit frozenset tables over if/else chains: every legal edge visible in one place
    - Separate from ledger.py: ledger computes money, this module gates lifecycle
"""

from wealthlink.core.domain_types import TransactionStatus, WithdrawalStatus
from wealthlink.core.errors import ErrorContext, StateError
from wealthlink.core.records import TransactionRecord, WithdrawalRecord


TRANSACTION_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.COMPLETED, TransactionStatus.REJECTED,
    }),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.REJECTED: frozenset(),
}

WITHDRAWAL_TRANSITIONS: dict[WithdrawalStatus, frozenset[WithdrawalStatus]] = {
    WithdrawalStatus.PENDING: frozenset({
        WithdrawalStatus.COMPLETED, WithdrawalStatus.REJECTED,
    }),
    WithdrawalStatus.COMPLETED: frozenset(),
    WithdrawalStatus.REJECTED: frozenset(),
}


def check_transaction_transition(
    transaction: TransactionRecord, target: TransactionStatus,
) -> None:
    """Raise StateError unless transaction.status -> target is legal."""
    if target not in TRANSACTION_TRANSITIONS[transaction.status]:
        raise StateError(
            f"Transaction {transaction.id} is {transaction.status.value}; "
            f"cannot move to {target.value}",
            current_state=transaction.status.value,
            context=ErrorContext(
                user_id=transaction.user_id, entity_id=transaction.id,
            ),
        )


def check_withdrawal_transition(
    withdrawal: WithdrawalRecord, target: WithdrawalStatus,
) -> None:
    """Raise StateError unless withdrawal.status -> target is legal."""
    if target not in WITHDRAWAL_TRANSITIONS[withdrawal.status]:
        raise StateError(
            f"Withdrawal {withdrawal.id} is {withdrawal.status.value}; "
            f"it is not pending confirmation",
            current_state=withdrawal.status.value,
            context=ErrorContext(
                user_id=withdrawal.user_id, entity_id=withdrawal.id,
            ),
        )
