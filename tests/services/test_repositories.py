"""SQL repositories - record mapping, filters, config seeding and commit failures."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from wealthlink.core.domain_types import BROADCAST_TARGET, NotificationType, TransactionStatus
from wealthlink.core.errors import StorageError
from wealthlink.core.records import AppConfig, NotificationRecord
from wealthlink.infrastructure.database import to_storage_error
from wealthlink.infrastructure.repositories import SqlRecordStore

from tests.conftest import NOW, make_transaction, make_user


async def test_user_roundtrip_keeps_decimals_and_timezones(store, seed_user):
    user = await seed_user(
        total_saved_current_cycle=Decimal("24000"), last_payment_date=NOW,
    )
    loaded = await store.users.get(user.id)
    assert loaded.total_saved_current_cycle == Decimal("24000")
    assert loaded.last_payment_date == NOW
    assert loaded.last_payment_date.tzinfo is not None
    assert (await store.users.get_by_email(user.email)).id == user.id
    assert (await store.users.get_by_referral_code(user.referral_code)).id == user.id


async def test_users_list_filters_by_referrer(store, seed_user):
    referrer = await seed_user()
    referred = await seed_user(referred_by=referrer.referral_code)
    await seed_user()
    listed = await store.users.list(referred_by=referrer.referral_code)
    assert [u.id for u in listed] == [referred.id]


async def test_transaction_filters(store, seed_user):
    user = await seed_user()
    done = make_transaction(user, status=TransactionStatus.COMPLETED)
    old = make_transaction(user, status=TransactionStatus.COMPLETED, archived=True)
    pending = make_transaction(user)
    for t in (done, old, pending):
        await store.transactions.upsert(t)
    await store.commit()

    completed = await store.transactions.list(user_id=user.id, status=TransactionStatus.COMPLETED)
    assert {t.id for t in completed} == {done.id, old.id}
    visible = await store.transactions.list(user_id=user.id, include_archived=False)
    assert {t.id for t in visible} == {done.id, pending.id}


async def test_notifications_broadcast_filter(store, seed_user):
    user = await seed_user()
    own = NotificationRecord(user.id, "Mine", "m", NotificationType.PAYMENT, created_at=NOW)
    everyone = NotificationRecord(
        BROADCAST_TARGET, "All", "a", NotificationType.ANNOUNCEMENT, created_at=NOW,
    )
    await store.notifications.upsert(own)
    await store.notifications.upsert(everyone)
    await store.commit()

    assert [n.id for n in await store.notifications.list(user_id=user.id)] == [own.id]
    merged = await store.notifications.list(user_id=user.id, include_broadcast=True)
    assert {n.id for n in merged} == {own.id, everyone.id}


async def test_config_returns_seed_until_saved(test_db):
    store = SqlRecordStore(test_db, AppConfig(monthly_payment_amount=Decimal("10000")))
    assert (await store.config.get()).monthly_payment_amount == Decimal("10000")

    await store.config.save(AppConfig(withdrawal_processing_fee=Decimal("750")))
    await store.commit()
    saved = await store.config.get()
    assert saved.withdrawal_processing_fee == Decimal("750")
    assert saved.monthly_payment_amount == Decimal("12000")


async def test_commit_failure_rolls_back_and_raises_storage_error(store, seed_user):
    first = await seed_user()
    await store.users.upsert(make_user(
        email=first.email, phone="08099999999", referral_code="DUPE-000001",
    ))

    with pytest.raises(StorageError) as exc:
        await store.commit()
    assert exc.value.operation == "write"

    assert len(await store.users.list()) == 1


@pytest.mark.parametrize(
    "error, operation",
    [
        (IntegrityError("INSERT", {}, Exception("unique")), "write"),
        (OperationalError("SELECT 1", {}, Exception("down")), "connect"),
        (SQLAlchemyError("boom"), "execute"),
    ],
)
def test_to_storage_error_classifies(error, operation):
    mapped = to_storage_error(error)
    assert mapped.operation == operation
    assert mapped.http_status == 503
