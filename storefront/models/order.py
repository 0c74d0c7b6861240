# storefront/models/order.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order.

    Monetary columns are derived: after every item cancellation

        subtotal     = Σ product_price * (quantity - cancelled_quantity)
        total_amount = subtotal + shipping_cost + tax
    """

    __tablename__ = "orders"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # pending | paid | processing | shipped | delivered | cancelled | completed
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    # cod | razorpay
    payment_method: str | None = Field(default=None)

    subtotal: float = Field(default=0.0)
    tax: float = Field(default=0.0)
    shipping_cost: float = Field(default=0.0)
    total_amount: float = Field(default=0.0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime | None = Field(default=None)
    cancelled_at: datetime | None = Field(default=None)


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order.

    Rows are never deleted while the order exists; cancellations only
    raise cancelled_quantity (0 <= cancelled_quantity <= quantity).
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    # Unit price captured at checkout, never rewritten
    product_price: float = Field(
        description="Unit price at time of order",
    )

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    cancelled_quantity: int = Field(
        default=0,
        ge=0,
        description="Units cancelled so far",
    )

    size: str | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    cancelled_at: datetime | None = Field(default=None)

    @property
    def active_quantity(self) -> int:
        return self.quantity - (self.cancelled_quantity or 0)
