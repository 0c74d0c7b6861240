# storefront/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from storefront.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    StorefrontError,
)
from storefront.models.order import Order, OrderItem
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import (
    CancelItemResponse,
    OrderCancelResponse,
    OrderItemRead,
    OrderItemView,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
    StockDecrementItem,
    StockUpdateResponse,
    StockUpdateResult,
)

logger = logging.getLogger(__name__)

# No tax engine: cancellations always recompute with zero tax
CANCELLATION_TAX = 0.0

# Statuses in which no unit of the order may be cancelled any more
NON_CANCELLABLE_STATUSES = {
    "cancelled": "Cannot cancel items in a cancelled order",
    "delivered": "Cannot cancel items in a delivered order",
}

# A partial cancellation sends these back to fulfilment
REOPENED_STATUSES = {"paid", "completed"}

# Admin status transitions; "cancelled" is routed through cancel_order()
ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"paid", "processing", "cancelled"},
    "paid": {"processing", "shipped", "cancelled"},
    "processing": {"shipped", "cancelled"},
    "shipped": {"delivered"},
    "delivered": {"completed"},
    "completed": set(),
    "cancelled": set(),
}

MSG_ALL_CANCELLED = "Item cancelled. All items in this order are now cancelled."
MSG_PARTIAL = "Item cancelled successfully. Order totals updated."


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_subtotal(items: list[OrderItem]) -> float:
    """Σ product_price * active quantity over every line of the order."""
    subtotal = 0.0
    for it in items:
        subtotal += (it.product_price or 0) * it.active_quantity
    return round(subtotal, 2)


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Cancel units of an order item and recompute the order totals
      - Cancel whole orders
      - Enforce admin status transitions
      - Take ordered units out of stock (and optionally put cancelled
        units back)
    """

    def __init__(
        self,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        restore_stock_on_cancel: bool = False,
    ):
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.restore_stock_on_cancel = restore_stock_on_cancel

    # -------- Access helpers --------

    @staticmethod
    def _ensure_can_access(order: Order, caller: User) -> None:
        """Owners and admins may act on an order."""
        if caller.role == "admin":
            return
        if order.user_id != caller.id:
            raise ForbiddenError("Unauthorized: Order does not belong to user")

    def _get_order_or_404(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    # -------- Item cancellation --------

    def cancel_order_item(
        self,
        session: Session,
        order_item_id: uuid.UUID,
        cancelled_quantity: int,
        caller: User,
    ) -> CancelItemResponse:
        """
        Cancel `cancelled_quantity` units of one order item.

        Steps:
          1. Load the item, then its order (404 if either is missing).
          2. Check the caller owns the order (or is admin).
          3. Refuse cancelled / delivered orders.
          4. Refuse asking for more than the remaining active units.
          5. Compare-and-set cancelled_quantity on the item.
          6. Reload every item of the order and recompute
             subtotal / tax / total_amount from scratch.
          7. Cancel the order when no active unit is left, otherwise move
             paid / completed orders back to processing.
          8. Commit item and order together.

        Not idempotent: repeating a call cancels more units.
        """
        item = self.order_repo.get_item_by_id(session, order_item_id)
        if not item:
            raise NotFoundError("Order item not found")

        order = self._get_order_or_404(session, item.order_id)
        self._ensure_can_access(order, caller)

        if order.status in NON_CANCELLABLE_STATUSES:
            raise InvalidStateError(NON_CANCELLABLE_STATUSES[order.status])

        already_cancelled = item.cancelled_quantity or 0
        remaining = item.quantity - already_cancelled
        if cancelled_quantity > remaining:
            raise InvalidArgumentError(
                f"Cannot cancel {cancelled_quantity} items. "
                f"Only {remaining} items remaining."
            )

        prior_status = order.status
        now = _utcnow()

        try:
            applied = self.order_repo.apply_item_cancellation(
                session,
                item,
                observed_cancelled=already_cancelled,
                new_cancelled=already_cancelled + cancelled_quantity,
                cancelled_at=now,
            )
            if not applied:
                raise ConflictError(
                    "Order item was modified concurrently, please retry"
                )
            if item.id != order_item_id:
                raise InternalError("Database error")

            if self.restore_stock_on_cancel:
                self._restore_stock(session, item.product_id, cancelled_quantity)

            all_items = self.order_repo.list_items_for_order(session, order.id)
            all_cancelled = all(it.active_quantity == 0 for it in all_items)

            order.subtotal = compute_subtotal(all_items)
            order.tax = CANCELLATION_TAX
            order.total_amount = round(
                order.subtotal + (order.shipping_cost or 0) + order.tax, 2
            )
            order.updated_at = now

            if all_cancelled:
                order.status = "cancelled"
                order.cancelled_at = now
            elif prior_status in REOPENED_STATUSES:
                order.status = "processing"

            try:
                self.order_repo.update_order(session, order)
            except SQLAlchemyError as e:
                raise InternalError("Failed to update order totals", details=str(e))

            session.commit()
        except StorefrontError:
            session.rollback()
            raise
        except SQLAlchemyError as e:
            session.rollback()
            logger.exception("Cancelling order item %s failed", order_item_id)
            raise InternalError("Failed to cancel item", details=str(e))
        except Exception:
            session.rollback()
            raise

        session.refresh(order)
        session.refresh(item)

        logger.info(
            "Cancelled %s unit(s) of item %s (order %s: %s -> %s, total %.2f)",
            cancelled_quantity,
            item.id,
            order.id,
            prior_status,
            order.status,
            order.total_amount,
        )

        return CancelItemResponse(
            order_item=OrderItemRead.model_validate(item),
            order=OrderRead.model_validate(order),
            all_items_cancelled=all_cancelled,
            message=MSG_ALL_CANCELLED if all_cancelled else MSG_PARTIAL,
        )

    def _restore_stock(
        self,
        session: Session,
        product_id: uuid.UUID,
        quantity: int,
    ) -> None:
        product = self.product_repo.get_by_id(session, product_id)
        if product is None:
            # Product was removed from the catalog; nothing to restock.
            logger.warning("Cannot restock missing product %s", product_id)
            return
        self.product_repo.adjust_stock(session, product, quantity)

    def list_item_views(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItemView]:
        """
        Every line of the order joined with product name / image.
        """
        items = self.order_repo.list_items_for_order(session, order_id)
        products = self.product_repo.get_many(
            session, list({it.product_id for it in items})
        )

        views: list[OrderItemView] = []
        for it in items:
            product = products.get(it.product_id)
            active = it.active_quantity
            views.append(
                OrderItemView(
                    id=it.id,
                    product_id=it.product_id,
                    product_name=product.name if product else "Product not found",
                    product_image=product.image_url if product else None,
                    product_price=it.product_price,
                    quantity=it.quantity,
                    cancelled_quantity=it.cancelled_quantity or 0,
                    total_price=it.product_price * active,
                    size=it.size,
                    is_cancelled=active == 0,
                )
            )
        return views

    # -------- Whole-order cancellation --------

    def cancel_order(
        self,
        session: Session,
        order_id: uuid.UUID,
        caller: User,
    ) -> OrderCancelResponse:
        """
        Cancel an entire order.

        Item rows and totals are left as they are; only the status and
        timestamps change.
        """
        order = self._get_order_or_404(session, order_id)
        self._ensure_can_access(order, caller)

        if order.status == "cancelled":
            raise InvalidStateError("Order is already cancelled")
        if order.status == "delivered":
            raise InvalidStateError("Cannot cancel a delivered order")

        now = _utcnow()
        prior_status = order.status
        order.status = "cancelled"
        order.cancelled_at = now
        order.updated_at = now

        try:
            if self.restore_stock_on_cancel:
                for it in self.order_repo.list_items_for_order(session, order.id):
                    if it.active_quantity > 0:
                        self._restore_stock(session, it.product_id, it.active_quantity)
            self.order_repo.update_order(session, order)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise InternalError("Failed to cancel order", details=str(e))

        session.refresh(order)
        logger.info("Order %s cancelled (was %s)", order.id, prior_status)

        return OrderCancelResponse(
            order=OrderRead.model_validate(order),
            message="Order cancelled successfully",
        )

    # -------- Reads --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        return self.order_repo.list_for_user(session, user_id, skip, limit)

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        404 if the order does not exist or belongs to someone else.
        """
        order = self.order_repo.get_by_id(session, order_id)
        if not order or order.user_id != user_id:
            raise NotFoundError("Order not found")
        return self._build_order_with_items_dto(session, order)

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: str | None = None,
    ) -> list[Order]:
        return self.order_repo.list_all(session, skip, limit, status)

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        order = self._get_order_or_404(session, order_id)
        return self._build_order_with_items_dto(session, order)

    # -------- Admin operations --------

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
        admin: User,
    ) -> OrderRead:
        """
        Admin-only status update, following ALLOWED_TRANSITIONS.

        Any invalid transition raises 400.
        """
        order = self._get_order_or_404(session, order_id)

        current = order.status
        new = payload.status

        if current == new:
            return OrderRead.model_validate(order)

        if new not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidStateError(f"Invalid status transition: {current} -> {new}")

        if new == "cancelled":
            return self.cancel_order(session, order_id, admin).order

        order.status = new
        order.updated_at = _utcnow()
        try:
            self.order_repo.update_order(session, order)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise InternalError("Failed to update order status", details=str(e))
        session.refresh(order)

        logger.info("Order %s status %s -> %s", order.id, current, new)
        return OrderRead.model_validate(order)

    def decrement_stock(
        self,
        session: Session,
        lines: list[StockDecrementItem],
    ) -> tuple[StockUpdateResponse, bool]:
        """
        Take ordered units out of stock, clamping at zero.

        Each product is handled on its own; missing products are reported
        per line rather than failing the whole request.

        Returns:
            (response, all_succeeded)
        """
        results: list[StockUpdateResult] = []

        for line in lines:
            product = self.product_repo.get_by_id(session, line.product_id)
            if product is None:
                results.append(
                    StockUpdateResult(
                        product_id=line.product_id,
                        success=False,
                        error="Product not found",
                    )
                )
                continue

            previous = product.stock_quantity or 0
            self.product_repo.adjust_stock(session, product, -line.quantity)
            product.updated_at = _utcnow()
            results.append(
                StockUpdateResult(
                    product_id=product.id,
                    success=True,
                    product_name=product.name,
                    previous_stock=previous,
                    quantity_ordered=line.quantity,
                    new_stock=product.stock_quantity,
                )
            )

        session.commit()

        failed = [r for r in results if not r.success]
        succeeded = [r for r in results if r.success]

        if failed:
            return (
                StockUpdateResponse(
                    success=False,
                    message="Some stock updates failed",
                    updates=succeeded,
                    failed_updates=failed,
                ),
                False,
            )

        return (
            StockUpdateResponse(
                success=True,
                message="Stock updated successfully",
                updates=succeeded,
            ),
            True,
        )

    # -------- Helper DTO builder --------

    def _build_order_with_items_dto(
        self,
        session: Session,
        order: Order,
    ) -> OrderWithItemsRead:
        items = self.order_repo.list_items_for_order(session, order.id)
        return OrderWithItemsRead(
            **OrderRead.model_validate(order).model_dump(),
            items=[OrderItemRead.model_validate(it) for it in items],
        )
