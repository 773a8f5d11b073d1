"""SQL Record Store - SQLAlchemy implementations of the core repository protocols.

Invariants:
    - Every repository in one SqlRecordStore shares one AsyncSession (one unit of work)
    - upsert() stages a row; nothing is durable until RecordStore.commit()
    - commit() failures roll back and surface as StorageError
    - Datetimes read back from the DB are always timezone-aware (UTC)
    - get()/list() reload rows (populate_existing): a lock holder never sees
      a stale identity-map copy
    - ConfigRepository.get() returns the seed AppConfig while no row exists

Design Decisions:
    - Explicit row <-> record mappers over ORM-in-core: core stays importable without SQLAlchemy
    - session.merge for upserts: insert-or-update by primary key, per record,
      so a failed write never clobbers a whole collection
"""

import logging
from dataclasses import asdict
from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wealthlink.core.domain_types import (
    BROADCAST_TARGET, NotificationType, TransactionStatus, WithdrawalStatus,
)
from wealthlink.core.records import (
    AppConfig, NotificationRecord, TransactionRecord, UserRecord, WithdrawalRecord,
)
from wealthlink.infrastructure.database import to_storage_error
from wealthlink.models.app_config import CONFIG_ROW_ID, AppConfigRow
from wealthlink.models.notification import Notification
from wealthlink.models.transaction import Transaction
from wealthlink.models.user import User
from wealthlink.models.withdrawal import Withdrawal

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo; every datetime in the domain is UTC-aware."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ─── Mappers ─────────────────────────────────────────────────────

def _user_to_record(row: User) -> UserRecord:
    return UserRecord(
        id=row.id,
        first_name=row.first_name,
        last_name=row.last_name,
        email=row.email,
        phone=row.phone,
        bank_name=row.bank_name,
        account_number=row.account_number,
        account_name=row.account_name,
        referral_code=row.referral_code,
        referred_by=row.referred_by,
        cycle_number=row.cycle_number,
        total_saved_current_cycle=row.total_saved_current_cycle,
        months_completed_current_cycle=row.months_completed_current_cycle,
        last_payment_date=_aware(row.last_payment_date),
        next_payment_date=_aware(row.next_payment_date),
        is_payment_overdue=row.is_payment_overdue,
        overdue_amount=row.overdue_amount,
        balance=row.balance,
        is_verified=row.is_verified,
        is_admin=row.is_admin,
        avatar=row.avatar,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


def _transaction_to_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,
        user_id=row.user_id,
        base_amount=row.base_amount,
        penalty_amount=row.penalty_amount,
        status=TransactionStatus(row.status),
        receipt_ref=row.receipt_ref,
        archived=row.archived,
        admin_note=row.admin_note,
        created_at=_aware(row.created_at),
        processed_at=_aware(row.processed_at),
    )


def _withdrawal_to_record(row: Withdrawal) -> WithdrawalRecord:
    return WithdrawalRecord(
        id=row.id,
        user_id=row.user_id,
        amount=row.amount,
        fee=row.fee,
        status=WithdrawalStatus(row.status),
        confirmed=row.confirmed,
        receipt_ref=row.receipt_ref,
        admin_message=row.admin_message,
        rejection_note=row.rejection_note,
        created_at=_aware(row.created_at),
        confirmed_at=_aware(row.confirmed_at),
        rejected_at=_aware(row.rejected_at),
    )


def _notification_to_record(row: Notification) -> NotificationRecord:
    return NotificationRecord(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        message=row.message,
        type=NotificationType(row.type),
        is_read=row.is_read,
        withdrawal_id=row.withdrawal_id,
        created_at=_aware(row.created_at),
    )


def _enum_values(data: dict) -> dict:
    return {k: (v.value if hasattr(v, "value") else v) for k, v in data.items()}


# ─── Repositories ────────────────────────────────────────────────

class SqlUserRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> UserRecord | None:
        row = await self.db.get(User, user_id, populate_existing=True)
        return _user_to_record(row) if row else None

    async def get_by_email(self, email: str) -> UserRecord | None:
        result = await self.db.execute(select(User).where(User.email == email))
        row = result.scalar_one_or_none()
        return _user_to_record(row) if row else None

    async def get_by_referral_code(self, code: str) -> UserRecord | None:
        result = await self.db.execute(
            select(User).where(User.referral_code == code),
        )
        row = result.scalar_one_or_none()
        return _user_to_record(row) if row else None

    async def list(self, referred_by: str | None = None) -> list[UserRecord]:
        query = select(User).order_by(User.created_at)
        if referred_by is not None:
            query = query.where(User.referred_by == referred_by)
        result = await self.db.execute(
            query.execution_options(populate_existing=True),
        )
        return [_user_to_record(r) for r in result.scalars().all()]

    async def upsert(self, user: UserRecord) -> None:
        await self.db.merge(User(**asdict(user)))


class SqlTransactionRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, transaction_id: str) -> TransactionRecord | None:
        row = await self.db.get(Transaction, transaction_id, populate_existing=True)
        return _transaction_to_record(row) if row else None

    async def list(
        self,
        user_id: str | None = None,
        status: TransactionStatus | None = None,
        include_archived: bool = True,
    ) -> list[TransactionRecord]:
        query = select(Transaction).order_by(Transaction.created_at.desc())
        if user_id is not None:
            query = query.where(Transaction.user_id == user_id)
        if status is not None:
            query = query.where(Transaction.status == status.value)
        if not include_archived:
            query = query.where(Transaction.archived.is_(False))
        result = await self.db.execute(
            query.execution_options(populate_existing=True),
        )
        return [_transaction_to_record(r) for r in result.scalars().all()]

    async def upsert(self, transaction: TransactionRecord) -> None:
        await self.db.merge(Transaction(**_enum_values(asdict(transaction))))


class SqlWithdrawalRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, withdrawal_id: str) -> WithdrawalRecord | None:
        row = await self.db.get(Withdrawal, withdrawal_id, populate_existing=True)
        return _withdrawal_to_record(row) if row else None

    async def list(
        self,
        user_id: str | None = None,
        status: WithdrawalStatus | None = None,
    ) -> list[WithdrawalRecord]:
        query = select(Withdrawal).order_by(Withdrawal.created_at.desc())
        if user_id is not None:
            query = query.where(Withdrawal.user_id == user_id)
        if status is not None:
            query = query.where(Withdrawal.status == status.value)
        result = await self.db.execute(
            query.execution_options(populate_existing=True),
        )
        return [_withdrawal_to_record(r) for r in result.scalars().all()]

    async def upsert(self, withdrawal: WithdrawalRecord) -> None:
        await self.db.merge(Withdrawal(**_enum_values(asdict(withdrawal))))


class SqlNotificationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, notification_id: str) -> NotificationRecord | None:
        row = await self.db.get(Notification, notification_id, populate_existing=True)
        return _notification_to_record(row) if row else None

    async def list(
        self, user_id: str | None = None, include_broadcast: bool = False,
    ) -> list[NotificationRecord]:
        query = select(Notification).order_by(Notification.created_at.desc())
        if user_id is not None:
            if include_broadcast:
                query = query.where(or_(
                    Notification.user_id == user_id,
                    Notification.user_id == BROADCAST_TARGET,
                ))
            else:
                query = query.where(Notification.user_id == user_id)
        result = await self.db.execute(
            query.execution_options(populate_existing=True),
        )
        return [_notification_to_record(r) for r in result.scalars().all()]

    async def upsert(self, notification: NotificationRecord) -> None:
        await self.db.merge(Notification(**_enum_values(asdict(notification))))


class SqlConfigRepository:
    def __init__(self, db: AsyncSession, seed: AppConfig | None = None):
        self.db = db
        self._seed = seed or AppConfig()

    async def get(self) -> AppConfig:
        row = await self.db.get(AppConfigRow, CONFIG_ROW_ID)
        if row is None:
            return AppConfig(**asdict(self._seed))
        return AppConfig(
            monthly_payment_amount=row.monthly_payment_amount,
            penalty_multiplier=row.penalty_multiplier,
            withdrawal_eligibility_months=row.withdrawal_eligibility_months,
            withdrawal_processing_fee=row.withdrawal_processing_fee,
            payment_reminder_days=row.payment_reminder_days,
            company_bank_details=dict(row.company_bank_details or {}),
            app_settings=dict(row.app_settings or {}),
        )

    async def save(self, config: AppConfig) -> None:
        await self.db.merge(AppConfigRow(id=CONFIG_ROW_ID, **asdict(config)))


class SqlRecordStore:
    """One unit of work over all five collections."""

    def __init__(self, db: AsyncSession, config_seed: AppConfig | None = None):
        self.db = db
        self.users = SqlUserRepository(db)
        self.transactions = SqlTransactionRepository(db)
        self.withdrawals = SqlWithdrawalRepository(db)
        self.notifications = SqlNotificationRepository(db)
        self.config = SqlConfigRepository(db, config_seed)

    async def commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Record store commit failed: {e}", exc_info=True)
            raise to_storage_error(e, "commit") from e

    async def rollback(self) -> None:
        await self.db.rollback()
