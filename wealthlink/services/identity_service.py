"""Identity Service - registration, login, credential resolution and profile edits.

Invariants:
    - Email and phone are unique across all users (checked under the registry lock)
    - referred_by is recorded only when the code belongs to an existing user
    - authenticate() loads exactly one user (by the id embedded in the token)
    - Profile edits never touch referral, cycle or admin fields
    - Administrators are the members registered with an email in admin_emails
"""

import logging
from datetime import datetime
from typing import Callable, Iterable

from wealthlink.core.errors import AuthError, ErrorContext, ValidationError
from wealthlink.core.identity import (
    check_contact_unique, generate_referral_code, issue_token,
    normalize_email, parse_token, validate_registration, verify_token,
)
from wealthlink.core.records import UserRecord, utcnow
from wealthlink.core.repository_protocols import EventPublisher, RecordStore
from wealthlink.infrastructure.locks import REGISTRY_KEY, KeyedLocks, user_locks
from wealthlink.services.dashboard_service import load_user
from wealthlink.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

_MAX_REFERRAL_CODE_ATTEMPTS = 10

EDITABLE_PROFILE_FIELDS: tuple[str, ...] = (
    "first_name", "last_name", "email", "phone",
    "account_number", "account_name", "bank_name",
)


class IdentityService:
    def __init__(
        self,
        store: RecordStore,
        secret: str,
        publisher: EventPublisher,
        locks: KeyedLocks = user_locks,
        clock: Callable[[], datetime] = utcnow,
        admin_emails: Iterable[str] = (),
    ):
        self.store = store
        self.secret = secret
        self.admin_emails = frozenset(normalize_email(e) for e in admin_emails)
        self.locks = locks
        self.clock = clock
        self.notifier = NotificationService(store, publisher, clock)

    async def _unique_referral_code(self, first_name: str) -> str:
        for _ in range(_MAX_REFERRAL_CODE_ATTEMPTS):
            code = generate_referral_code(first_name)
            if await self.store.users.get_by_referral_code(code) is None:
                return code
        raise ValidationError("Could not allocate a referral code", field="first_name")

    async def register(self, payload: dict) -> tuple[UserRecord, str]:
        """Create a member. Returns (user, credential)."""
        data = validate_registration(payload)
        async with self.locks.hold(REGISTRY_KEY):
            check_contact_unique(await self.store.users.list(), data["email"], data["phone"])

            referred_by = None
            code = (payload.get("referral_code") or "").strip().upper()
            if code:
                if await self.store.users.get_by_referral_code(code):
                    referred_by = code
                else:
                    logger.info(f"Unknown referral code ignored: {code}")

            now = self.clock()
            user = UserRecord(
                first_name=data["first_name"],
                last_name=data["last_name"],
                email=data["email"],
                phone=data["phone"],
                bank_name=data["bank_name"],
                account_number=data["account_number"],
                account_name=data["account_name"],
                referral_code=await self._unique_referral_code(data["first_name"]),
                referred_by=referred_by,
                is_admin=data["email"] in self.admin_emails,
                created_at=now,
                updated_at=now,
            )
            await self.store.users.upsert(user)
            await self.store.commit()

        logger.info("User registered", extra={"user_id": user.id})
        await self.notifier.announce_snapshots(await self.store.config.get(), users=True)
        return user, issue_token(user, self.secret)

    async def login(self, email: str | None) -> tuple[UserRecord, str]:
        if not email or not email.strip():
            raise ValidationError("Email is required", field="email")
        user = await self.store.users.get_by_email(normalize_email(email))
        if user is None:
            raise AuthError("Invalid credentials")
        logger.info("User logged in", extra={"user_id": user.id})
        return user, issue_token(user, self.secret)

    async def authenticate(self, token: str | None) -> UserRecord:
        """Resolve a presented credential to its user. AuthError on any mismatch."""
        user_id, _ = parse_token(token)
        user = await self.store.users.get(user_id)
        if user is None or not verify_token(token, user, self.secret):
            raise AuthError("Invalid token", context=ErrorContext(user_id=user_id))
        return user

    async def update_profile(self, user_id: str, changes: dict) -> UserRecord:
        """Apply editable identity fields. Email/phone stay unique."""
        updates = {}
        for name in EDITABLE_PROFILE_FIELDS:
            value = changes.get(name)
            if value is None:
                continue
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{name} cannot be empty", field=name)
            updates[name] = value.strip()
        if "email" in updates:
            updates["email"] = normalize_email(updates["email"])

        async with self.locks.hold(REGISTRY_KEY), self.locks.hold(user_id):
            user = await load_user(self.store, user_id)
            check_contact_unique(
                await self.store.users.list(),
                updates.get("email"), updates.get("phone"),
                exclude_user_id=user.id,
            )
            for name, value in updates.items():
                setattr(user, name, value)
            user.updated_at = self.clock()
            await self.store.users.upsert(user)
            await self.store.commit()

        logger.info(
            f"Profile updated: {sorted(updates)}", extra={"user_id": user.id},
        )
        await self.notifier.announce_snapshots(await self.store.config.get(), users=True)
        return user

    async def update_avatar(self, user_id: str, avatar: str | None) -> UserRecord:
        if not avatar or not avatar.strip():
            raise ValidationError("Avatar is required", field="avatar")
        async with self.locks.hold(user_id):
            user = await load_user(self.store, user_id)
            user.avatar = avatar.strip()
            user.updated_at = self.clock()
            await self.store.users.upsert(user)
            await self.store.commit()
        logger.info("Avatar updated", extra={"user_id": user.id})
        return user
