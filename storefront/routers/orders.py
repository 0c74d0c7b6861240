# storefront/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlmodel import Session

from storefront.core.auth import require_admin, require_auth
from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.schemas.order import (
    CancelItemRequest,
    CancelItemResponse,
    OrderCancelRequest,
    OrderCancelResponse,
    OrderRead,
    OrderStatus,
    OrderStatusUpdate,
    OrderWithItemsRead,
    StockDecrementItem,
    StockUpdateResponse,
)
from storefront.services.order_service import OrderService

settings = get_settings()

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
product_repo = ProductRepository()
service = OrderService(
    order_repo,
    product_repo,
    restore_stock_on_cancel=settings.RESTORE_STOCK_ON_CANCEL,
)


# -------- Cancellation --------


@router.post("/cancel-item", response_model=CancelItemResponse)
def cancel_item(
    payload: CancelItemRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Cancel some or all units of one order item and recompute order totals.

    Auth:
      - Order owner or admin.
    """
    return service.cancel_order_item(
        session,
        payload.order_item_id,
        payload.cancelled_quantity,
        current_user,
    )


@router.post("/cancel", response_model=OrderCancelResponse)
def cancel_order(
    payload: OrderCancelRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Cancel a whole order (not allowed once delivered).
    """
    return service.cancel_order(session, payload.order_id, current_user)


# -------- User-facing reads --------


@router.get("/me", response_model=list[OrderRead])
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get("/me/{order_id}", response_model=OrderWithItemsRead)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.get_user_order(session, current_user.id, order_id)


# -------- Admin / internal endpoints --------


@router.post(
    "/update-stock",
    response_model=StockUpdateResponse,
    dependencies=[Depends(require_admin)],
)
def update_stock(
    payload: list[StockDecrementItem],
    session: Session = Depends(get_session),
):
    """
    Decrement stock for the lines of a freshly placed order.

    Returns 207 Multi-Status when some products could not be updated.
    """
    result, ok = service.decrement_stock(session, payload)
    if ok:
        return result
    return JSONResponse(
        status_code=status.HTTP_207_MULTI_STATUS,
        content=result.model_dump(mode="json"),
    )


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    status: OrderStatus | None = None,
):
    """
    List all orders (admin only), optionally filtered by status.
    """
    return service.list_all_orders(session, skip, limit, status)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_order_admin(session, order_id)


@router.patch("/{order_id}/status", response_model=OrderRead)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Update order status (admin only).

      pending    -> paid, processing, cancelled

      paid       -> processing, shipped, cancelled

      processing -> shipped, cancelled

      shipped    -> delivered

      delivered  -> completed

    """
    return service.update_status(session, order_id, payload, admin)
