# storefront/repositories/return_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.returns import ReturnRequest


class ReturnRepository:
    """Data access layer for order_returns."""

    def get_by_id(
        self,
        session: Session,
        return_id: uuid.UUID,
    ) -> ReturnRequest | None:
        return session.get(ReturnRequest, return_id)

    def list_open_for_item(
        self,
        session: Session,
        order_item_id: uuid.UUID,
    ) -> list[ReturnRequest]:
        """Pending and approved requests: both hold units of the item."""
        stmt = select(ReturnRequest).where(
            ReturnRequest.order_item_id == order_item_id,
            ReturnRequest.status.in_(["pending", "approved"]),
        )
        return session.exec(stmt).all()

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
    ) -> list[ReturnRequest]:
        stmt = (
            select(ReturnRequest)
            .where(ReturnRequest.user_id == user_id)
            .order_by(ReturnRequest.created_at.desc())
        )
        return session.exec(stmt).all()

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: str | None = None,
    ) -> list[ReturnRequest]:
        stmt = select(ReturnRequest)
        if status is not None:
            stmt = stmt.where(ReturnRequest.status == status)
        stmt = (
            stmt.order_by(ReturnRequest.created_at.desc()).offset(skip).limit(limit)
        )
        return session.exec(stmt).all()

    def save(self, session: Session, request: ReturnRequest) -> ReturnRequest:
        session.add(request)
        session.commit()
        session.refresh(request)
        return request
