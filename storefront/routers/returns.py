# storefront/routers/returns.py
import uuid
from typing import Literal

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_admin, require_auth
from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.return_repo import ReturnRepository
from storefront.schemas.returns import ReturnRead, ReturnReview
from storefront.services.return_service import ReturnService

settings = get_settings()

router = APIRouter(prefix="/returns", tags=["Returns"])

service = ReturnService(
    ReturnRepository(),
    OrderRepository(),
    return_window_days=settings.RETURN_WINDOW_DAYS,
)


@router.get("/me", response_model=list[ReturnRead])
def list_my_returns(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Return requests filed by the authenticated user, newest first.

    New requests are filed through the request-return edge function.
    """
    return service.list_my_returns(session, current_user.id)


@router.get(
    "",
    response_model=list[ReturnRead],
    dependencies=[Depends(require_admin)],
)
def list_returns(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    status: Literal["pending", "approved", "rejected"] | None = None,
):
    return service.list_returns(session, skip, limit, status)


@router.patch(
    "/{return_id}",
    response_model=ReturnRead,
    dependencies=[Depends(require_admin)],
)
def review_return(
    return_id: uuid.UUID,
    payload: ReturnReview,
    session: Session = Depends(get_session),
):
    """
    Approve or reject a pending return request (admin only).
    """
    return service.review_return(session, return_id, payload)
