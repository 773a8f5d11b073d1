"""Identity Schemas - registration, login and profile payloads.

Invariants:
    - Identity strings are stripped; blank required fields are rejected by
      core.identity.validate_registration with a domain ValidationError
    - referral_code is optional and upper-cased
"""

from pydantic import BaseModel, Field, field_validator


class RegisterRequest(BaseModel):
    first_name: str = Field(max_length=100)
    last_name: str = Field(max_length=100)
    email: str = Field(max_length=255)
    phone: str = Field(max_length=32)
    bank_name: str = Field(max_length=100)
    account_number: str = Field(max_length=32)
    account_name: str = Field(max_length=200)
    referral_code: str | None = Field(None, max_length=20)

    @field_validator("referral_code")
    @classmethod
    def upper_referral_code(cls, v: str | None) -> str | None:
        return v.strip().upper() if v else None


class LoginRequest(BaseModel):
    email: str = Field(min_length=1, max_length=255)


class ProfileUpdate(BaseModel):
    """Partial profile edit: omitted fields stay unchanged."""
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=32)
    bank_name: str | None = Field(None, max_length=100)
    account_number: str | None = Field(None, max_length=32)
    account_name: str | None = Field(None, max_length=200)


class AvatarUpdate(BaseModel):
    avatar: str = Field(min_length=1, max_length=500)


class AuthResponse(BaseModel):
    token: str
    user: dict
