# storefront/schemas/order.py
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

OrderStatus = Literal[
    "pending",
    "paid",
    "processing",
    "shipped",
    "delivered",
    "cancelled",
    "completed",
]


def _positive_int(value: Any, field_name: str) -> int:
    # bool is an int subclass; 1.0 / "1" are not accepted either
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{field_name} must be a positive integer")
    return value


class CancelItemRequest(SQLModel):
    """
    Payload for cancelling units of a single order item.

    Shared by POST /orders/cancel-item and the cancel-order-item
    edge function.
    """

    model_config = ConfigDict(extra="forbid")

    order_item_id: uuid.UUID
    cancelled_quantity: int

    @field_validator("cancelled_quantity", mode="before")
    @classmethod
    def check_quantity(cls, v: Any) -> int:
        return _positive_int(v, "cancelled_quantity")


class OrderCancelRequest(SQLModel):
    """Payload for cancelling a whole order."""

    model_config = ConfigDict(extra="forbid")

    order_id: uuid.UUID


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus


class StockDecrementItem(SQLModel):
    """One line of a placed order, used to take units out of stock."""

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    quantity: int

    @field_validator("quantity", mode="before")
    @classmethod
    def check_quantity(cls, v: Any) -> int:
        return _positive_int(v, "quantity")


class OrderRead(SQLModel):
    """
    Representation of an order (without items).
    """

    id: uuid.UUID
    user_id: uuid.UUID
    status: OrderStatus
    payment_method: str | None = None
    subtotal: float
    tax: float
    shipping_cost: float
    total_amount: float
    created_at: datetime
    updated_at: datetime | None = None
    cancelled_at: datetime | None = None


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    product_price: float
    quantity: int
    cancelled_quantity: int
    size: str | None = None
    created_at: datetime
    cancelled_at: datetime | None = None


class OrderItemView(SQLModel):
    """
    Order line joined with its product, as shown to mobile clients.
    """

    id: uuid.UUID
    product_id: uuid.UUID
    product_name: str
    product_image: str | None = None
    product_price: float
    quantity: int
    cancelled_quantity: int
    total_price: float
    size: str | None = None
    is_cancelled: bool


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items.
    """

    items: list[OrderItemRead]


class CancelItemResponse(SQLModel):
    success: bool = True
    order_item: OrderItemRead
    order: OrderRead
    all_items_cancelled: bool
    message: str


class CancelItemWithItemsResponse(CancelItemResponse):
    """Edge function flavour: also returns every line of the order."""

    order_items: list[OrderItemView]


class OrderCancelResponse(SQLModel):
    success: bool = True
    order: OrderRead
    message: str


class StockUpdateResult(SQLModel):
    product_id: uuid.UUID
    success: bool
    product_name: str | None = None
    previous_stock: int | None = None
    quantity_ordered: int | None = None
    new_stock: int | None = None
    error: str | None = None


class StockUpdateResponse(SQLModel):
    success: bool
    message: str
    updates: list[StockUpdateResult] = Field(default_factory=list)
    failed_updates: list[StockUpdateResult] = Field(default_factory=list)
