"""Payment Schemas."""

from pydantic import BaseModel, Field


class PaymentSubmit(BaseModel):
    """Receipt is an opaque reference to an uploaded proof of transfer."""
    receipt_ref: str = Field(min_length=1, max_length=500)


class PaymentDecision(BaseModel):
    approve: bool
    admin_note: str | None = Field(None, max_length=1000)
