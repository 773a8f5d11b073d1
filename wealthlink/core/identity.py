"""Identity Rules - referral codes, registration checks and stateless credentials.

Invariants:
    - Referral code = first 4 letters of UPPER(first_name) + "-" + 6 chars of
      REFERRAL_CODE_ALPHABET (no 0/O, 1/I)
    - Credential = "<user_id>.<hex HMAC-SHA256(secret, user_id + email)>"
    - The same user + secret always yields the same credential (login is reproducible)
    - Verification loads ONE user by the embedded id: no table scan, no session store

Design Decisions:
    - HMAC over a plain hash: the secret is a key, not a salt appended to the message
    - hmac.compare_digest for constant-time comparison
    - rng injectable so tests can pin the random part of referral codes
"""

import hashlib
import hmac
import random
import secrets

from wealthlink.core.domain_types import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_PREFIX_LENGTH,
    REFERRAL_CODE_RANDOM_LENGTH,
)
from wealthlink.core.errors import AuthError, ValidationError
from wealthlink.core.records import UserRecord


REQUIRED_REGISTRATION_FIELDS: tuple[str, ...] = (
    "first_name", "last_name", "email", "phone",
    "account_number", "account_name", "bank_name",
)

_TOKEN_SEPARATOR = "."


def generate_referral_code(
    first_name: str, rng: random.Random | None = None,
) -> str:
    prefix = first_name.strip().upper()[:REFERRAL_CODE_PREFIX_LENGTH]
    choice = rng.choice if rng else secrets.choice
    suffix = "".join(
        choice(REFERRAL_CODE_ALPHABET) for _ in range(REFERRAL_CODE_RANDOM_LENGTH)
    )
    return f"{prefix}-{suffix}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_registration(payload: dict) -> dict:
    """Strip every required field; raise ValidationError naming the first missing one."""
    cleaned = dict(payload)
    for name in REQUIRED_REGISTRATION_FIELDS:
        value = payload.get(name)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError("All fields are required", field=name)
        cleaned[name] = value.strip()
    cleaned["email"] = normalize_email(cleaned["email"])
    return cleaned


def check_contact_unique(
    users: list[UserRecord], email: str | None, phone: str | None,
    exclude_user_id: str | None = None,
) -> None:
    """Raise ValidationError if another user already holds this email or phone."""
    for u in users:
        if u.id == exclude_user_id:
            continue
        if email and u.email == email:
            raise ValidationError("Email already registered", field="email")
        if phone and u.phone == phone:
            raise ValidationError("Phone number already registered", field="phone")


# ─── Credentials ─────────────────────────────────────────────────

def _digest(user_id: str, email: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        f"{user_id}{email}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def issue_token(user: UserRecord, secret: str) -> str:
    return f"{user.id}{_TOKEN_SEPARATOR}{_digest(user.id, user.email, secret)}"


def parse_token(token: str | None) -> tuple[str, str]:
    """Split a credential into (user_id, digest). Raises AuthError if malformed."""
    if not token:
        raise AuthError("Authentication required")
    user_id, sep, digest = token.rpartition(_TOKEN_SEPARATOR)
    if not sep or not user_id or not digest:
        raise AuthError("Invalid token")
    return user_id, digest


def verify_token(token: str, user: UserRecord, secret: str) -> bool:
    user_id, digest = parse_token(token)
    if user_id != user.id:
        return False
    return hmac.compare_digest(digest, _digest(user.id, user.email, secret))
