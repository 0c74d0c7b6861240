# storefront/repositories/order_repo.py
import uuid
from datetime import datetime

from sqlalchemy import update
from sqlmodel import Session, select

from storefront.models.order import Order, OrderItem


class OrderRepository:
    """
    Data access layer for orders and order_items.

    NOTE:
      - No commits here; cancellation writes the item and the order in
        one transaction. The service is responsible for session.commit().
    """

    # ---- Orders ----

    def list_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Order]:
        stmt = (
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(Order.created_at.desc())
            .offset(skip)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def list_all(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status: str | None = None,
    ) -> list[Order]:
        stmt = select(Order)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def get_by_id(self, session: Session, order_id: uuid.UUID) -> Order | None:
        return session.get(Order, order_id)

    def update_order(self, session: Session, order: Order) -> Order:
        session.add(order)
        session.flush()
        session.refresh(order)
        return order

    # ---- Order items ----

    def get_item_by_id(
        self,
        session: Session,
        item_id: uuid.UUID,
    ) -> OrderItem | None:
        return session.get(OrderItem, item_id)

    def list_items_for_order(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> list[OrderItem]:
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.created_at.asc())
        )
        return session.exec(stmt).all()

    def apply_item_cancellation(
        self,
        session: Session,
        item: OrderItem,
        observed_cancelled: int,
        new_cancelled: int,
        cancelled_at: datetime,
    ) -> bool:
        """
        Compare-and-set cancelled_quantity on one item.

        The UPDATE only matches while the row still holds the value the
        caller read, so two racing cancellations cannot both apply.

        Returns:
            True if the row was updated, False if it changed underneath us.
        """
        stmt = (
            update(OrderItem)
            .where(
                OrderItem.id == item.id,
                OrderItem.cancelled_quantity == observed_cancelled,
            )
            .values(cancelled_quantity=new_cancelled, cancelled_at=cancelled_at)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        if result.rowcount != 1:
            return False

        session.refresh(item)
        return True
