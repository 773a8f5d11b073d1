"""Withdrawal Schemas."""

from pydantic import BaseModel, Field


class WithdrawalProcess(BaseModel):
    """Admin payout of a member's completed cycle."""
    user_id: str = Field(min_length=1, max_length=36)
    receipt_ref: str = Field(min_length=1, max_length=500)
    admin_message: str = Field("", max_length=1000)


class WithdrawalConfirm(BaseModel):
    confirmed: bool
    note: str | None = Field(None, max_length=1000)
