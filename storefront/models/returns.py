# storefront/models/returns.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class ReturnRequest(SQLModel, table=True):
    """
    Customer request to send back delivered units of one order item.

    status: pending | approved | rejected
    """

    __tablename__ = "order_returns"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(foreign_key="orders.id", index=True)
    order_item_id: uuid.UUID = Field(foreign_key="order_items.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)

    reason: str
    status: str = Field(default="pending", index=True)

    requested_quantity: int = Field(gt=0)
    approved_quantity: int | None = Field(default=None)
    notes: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime | None = Field(default=None)
