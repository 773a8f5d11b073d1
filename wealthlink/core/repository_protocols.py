"""Boundary Protocols - contracts between the ledger core and the storage/fanout shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - Every collection exposes get-by-id, list-with-filter and upsert
    - RecordStore.commit() makes all upserts of one operation durable together
    - EventPublisher.publish is synchronous, non-blocking and never raises

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Repository methods are async because implementations do IO; the core
      functions that consume their records stay sync
    - ConfigRepository.get returns seed defaults when config was never persisted
"""

from typing import Any, Protocol

from wealthlink.core.domain_types import TransactionStatus, WithdrawalStatus
from wealthlink.core.records import (
    AppConfig, NotificationRecord, TransactionRecord, UserRecord, WithdrawalRecord,
)


class UserRepository(Protocol):
    async def get(self, user_id: str) -> UserRecord | None: ...
    async def get_by_email(self, email: str) -> UserRecord | None: ...
    async def get_by_referral_code(self, code: str) -> UserRecord | None: ...
    async def list(self, referred_by: str | None = None) -> list[UserRecord]: ...
    async def upsert(self, user: UserRecord) -> None: ...


class TransactionRepository(Protocol):
    async def get(self, transaction_id: str) -> TransactionRecord | None: ...
    async def list(
        self,
        user_id: str | None = None,
        status: TransactionStatus | None = None,
        include_archived: bool = True,
    ) -> list[TransactionRecord]: ...
    async def upsert(self, transaction: TransactionRecord) -> None: ...


class WithdrawalRepository(Protocol):
    async def get(self, withdrawal_id: str) -> WithdrawalRecord | None: ...
    async def list(
        self,
        user_id: str | None = None,
        status: WithdrawalStatus | None = None,
    ) -> list[WithdrawalRecord]: ...
    async def upsert(self, withdrawal: WithdrawalRecord) -> None: ...


class NotificationRepository(Protocol):
    async def get(self, notification_id: str) -> NotificationRecord | None: ...
    async def list(
        self, user_id: str | None = None, include_broadcast: bool = False,
    ) -> list[NotificationRecord]: ...
    async def upsert(self, notification: NotificationRecord) -> None: ...


class ConfigRepository(Protocol):
    async def get(self) -> AppConfig: ...
    async def save(self, config: AppConfig) -> None: ...


class RecordStore(Protocol):
    """All five collections bound to one unit of work."""
    users: UserRepository
    transactions: TransactionRepository
    withdrawals: WithdrawalRepository
    notifications: NotificationRepository
    config: ConfigRepository

    async def commit(self) -> None: ...
    async def rollback(self) -> None: ...


class EventPublisher(Protocol):
    """Fanout contract: channel is user:<id>, admin or broadcast."""
    def publish(self, channel: str, event_name: str, payload: Any) -> None: ...
