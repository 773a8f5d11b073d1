"""Root conftest - shared test configuration and record builders."""

import os
from datetime import datetime, timezone
from decimal import Decimal

import pytest

# Tests never touch a real database or a production secret
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("TOKEN_SECRET", "test-secret")
os.environ.setdefault("REMINDERS_ENABLED", "false")
os.environ.setdefault("ADMIN_EMAILS", "[\"admin@wealthlink.test\"]")

from wealthlink.core.records import AppConfig, TransactionRecord, UserRecord  # noqa: E402

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_user(**overrides) -> UserRecord:
    fields = {
        "first_name": "Ada",
        "last_name": "Obi",
        "email": "ada@example.com",
        "phone": "08030000001",
        "bank_name": "Sterling Bank",
        "account_number": "0123456789",
        "account_name": "Ada Obi",
        "referral_code": "ADA-ABCDEF",
    }
    fields.update(overrides)
    return UserRecord(**fields)


def make_transaction(user: UserRecord, **overrides) -> TransactionRecord:
    fields = {
        "user_id": user.id,
        "base_amount": Decimal("12000"),
        "receipt_ref": "receipt.png",
        "created_at": NOW,
    }
    fields.update(overrides)
    return TransactionRecord(**fields)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig()


@pytest.fixture
def now() -> datetime:
    return NOW
