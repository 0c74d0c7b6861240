# storefront/schemas/returns.py
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel

ReturnStatus = Literal["pending", "approved", "rejected"]


class ReturnCreate(SQLModel):
    """
    Payload for the request-return edge function.
    """

    model_config = ConfigDict(extra="forbid")

    order_item_id: uuid.UUID
    requested_quantity: int
    reason: str

    @field_validator("requested_quantity", mode="before")
    @classmethod
    def check_quantity(cls, v: Any) -> int:
        if isinstance(v, bool) or not isinstance(v, int) or v <= 0:
            raise ValueError("requested_quantity must be a positive integer")
        return v

    @field_validator("reason")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reason cannot be empty")
        return v


class ReturnReview(SQLModel):
    """
    Admin decision on a pending return request.

    approved_quantity defaults to the full requested quantity.
    """

    model_config = ConfigDict(extra="forbid")

    status: Literal["approved", "rejected"]
    approved_quantity: int | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def check_quantity(self) -> "ReturnReview":
        if self.approved_quantity is not None:
            if self.status != "approved":
                raise ValueError("approved_quantity is only valid when approving")
            if self.approved_quantity <= 0:
                raise ValueError("approved_quantity must be a positive integer")
        return self


class ReturnRead(SQLModel):
    id: uuid.UUID
    order_id: uuid.UUID
    order_item_id: uuid.UUID
    user_id: uuid.UUID
    reason: str
    status: ReturnStatus
    requested_quantity: int
    approved_quantity: int | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime | None = None


class ReturnCreateResponse(SQLModel):
    success: bool = True
    return_request: ReturnRead
    message: str
