# storefront/services/return_service.py
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from storefront.core.errors import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
)
from storefront.models.returns import ReturnRequest
from storefront.models.user import User
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.return_repo import ReturnRepository
from storefront.schemas.returns import (
    ReturnCreate,
    ReturnCreateResponse,
    ReturnRead,
    ReturnReview,
)

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ReturnService:
    """
    Return requests for delivered orders.

    A unit can only be claimed once: pending and approved requests both
    count against the item's active quantity.
    """

    def __init__(
        self,
        return_repo: ReturnRepository,
        order_repo: OrderRepository,
        return_window_days: int = 7,
    ):
        self.return_repo = return_repo
        self.order_repo = order_repo
        self.return_window_days = return_window_days

    def request_return(
        self,
        session: Session,
        payload: ReturnCreate,
        caller: User,
    ) -> ReturnCreateResponse:
        item = self.order_repo.get_item_by_id(session, payload.order_item_id)
        if not item:
            raise NotFoundError("Order item not found")

        order = self.order_repo.get_by_id(session, item.order_id)
        if not order:
            raise NotFoundError("Order not found")

        if order.user_id != caller.id:
            raise ForbiddenError("Unauthorized: Order does not belong to user")

        if order.status != "delivered":
            raise InvalidStateError(
                "Returns can only be requested for delivered orders"
            )

        open_requests = self.return_repo.list_open_for_item(session, item.id)
        already_requested = sum(r.requested_quantity or 0 for r in open_requests)
        available = item.active_quantity - already_requested

        if payload.requested_quantity > available:
            raise InvalidArgumentError(
                f"Cannot request return for {payload.requested_quantity} items. "
                f"Only {available} items available for return."
            )

        if any(r.status == "pending" for r in open_requests):
            raise InvalidArgumentError(
                "A pending return request already exists for this item"
            )

        window = timedelta(days=self.return_window_days)
        if datetime.now(timezone.utc) - _as_utc(order.created_at) > window:
            raise InvalidArgumentError(
                f"Return requests must be made within "
                f"{self.return_window_days} days of delivery"
            )

        request = ReturnRequest(
            order_id=order.id,
            order_item_id=item.id,
            user_id=caller.id,
            reason=payload.reason,
            status="pending",
            requested_quantity=payload.requested_quantity,
        )
        request = self.return_repo.save(session, request)
        logger.info(
            "Return %s requested for %s unit(s) of item %s",
            request.id,
            request.requested_quantity,
            item.id,
        )

        return ReturnCreateResponse(
            return_request=ReturnRead.model_validate(request),
            message="Return request submitted successfully",
        )

    def list_my_returns(self, session: Session, user_id: uuid.UUID) -> list[ReturnRequest]:
        return self.return_repo.list_for_user(session, user_id)

    def list_returns(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: str | None = None,
    ) -> list[ReturnRequest]:
        return self.return_repo.list_all(session, skip, limit, status)

    def review_return(
        self,
        session: Session,
        return_id: uuid.UUID,
        payload: ReturnReview,
    ) -> ReturnRequest:
        """
        Approve or reject a pending request (admin only).
        """
        request = self.return_repo.get_by_id(session, return_id)
        if not request:
            raise NotFoundError("Return request not found")

        if request.status != "pending":
            raise InvalidStateError(f"Return request is already {request.status}")

        if payload.status == "approved":
            approved = payload.approved_quantity or request.requested_quantity
            if approved > request.requested_quantity:
                raise InvalidArgumentError(
                    f"Cannot approve {approved} items. "
                    f"Only {request.requested_quantity} items were requested."
                )
            request.approved_quantity = approved

        request.status = payload.status
        if payload.notes is not None:
            request.notes = payload.notes.strip() or None
        request.updated_at = datetime.now(timezone.utc)

        return self.return_repo.save(session, request)
