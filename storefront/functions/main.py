# storefront/functions/main.py
"""
Edge functions for mobile / alternate clients.

Deployed as its own ASGI app (uvicorn storefront.functions.main:app).
Every response, errors included, carries permissive CORS headers and
each function answers its OPTIONS preflight with a plain "ok".
"""

import logging

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from sqlmodel import Session

from storefront.core.auth import require_bearer_token, resolve_bearer_user
from storefront.core.config import get_settings
from storefront.core.errors import (
    StorefrontError,
    make_unhandled_error_handler,
    storefront_error_handler,
    validation_error_handler,
)
from storefront.database import get_session
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.return_repo import ReturnRepository
from storefront.schemas.order import CancelItemRequest, CancelItemWithItemsResponse
from storefront.schemas.returns import ReturnCreate, ReturnCreateResponse
from storefront.services.order_service import OrderService
from storefront.services.return_service import ReturnService

settings = get_settings()

logging.basicConfig(level=logging.INFO)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}

order_repo = OrderRepository()
order_service = OrderService(
    order_repo,
    ProductRepository(),
    restore_stock_on_cancel=settings.RESTORE_STOCK_ON_CANCEL,
)
return_service = ReturnService(
    ReturnRepository(),
    order_repo,
    return_window_days=settings.RETURN_WINDOW_DAYS,
)

router = APIRouter(tags=["Edge functions"])


@router.options("/cancel-order-item", include_in_schema=False)
@router.options("/request-return", include_in_schema=False)
def preflight():
    return PlainTextResponse("ok")


@router.post("/cancel-order-item", response_model=CancelItemWithItemsResponse)
def cancel_order_item(
    payload: CancelItemRequest,
    session: Session = Depends(get_session),
    token: str = Depends(require_bearer_token),
):
    """
    Same contract as POST /orders/cancel-item, plus every line of the
    order joined with its product.
    """
    current_user = resolve_bearer_user(session, token)
    result = order_service.cancel_order_item(
        session,
        payload.order_item_id,
        payload.cancelled_quantity,
        current_user,
    )
    return CancelItemWithItemsResponse(
        **result.model_dump(),
        order_items=order_service.list_item_views(session, result.order.id),
    )


@router.post("/request-return", response_model=ReturnCreateResponse)
def request_return(
    payload: ReturnCreate,
    session: Session = Depends(get_session),
    token: str = Depends(require_bearer_token),
):
    """
    File a return request for delivered units of one order item.
    """
    current_user = resolve_bearer_user(session, token)
    return return_service.request_return(session, payload, current_user)


app = FastAPI(
    title=f"{settings.PROJECT_NAME} edge functions",
    version="0.1.0",
)

app.add_exception_handler(StorefrontError, storefront_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, make_unhandled_error_handler(CORS_HEADERS))


@app.middleware("http")
async def add_cors_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.update(CORS_HEADERS)
    return response


app.include_router(router, prefix=settings.FUNCTIONS_PREFIX)
