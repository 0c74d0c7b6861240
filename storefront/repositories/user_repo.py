# storefront/repositories/user_repo.py
import uuid

from sqlmodel import Session, select

from storefront.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    def get_by_id(self, session: Session, user_id: uuid.UUID) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def list(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool | None = None,
    ) -> list[User]:
        """
        Paginated user listing, optionally filtered on the ban flag.
        """
        stmt = select(User)
        if only_active is not None:
            stmt = stmt.where(User.is_active == only_active)
        stmt = stmt.order_by(User.created_at.desc()).offset(skip).limit(limit)
        return session.exec(stmt).all()

    def update(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user
