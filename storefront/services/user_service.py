# storefront/services/user_service.py
import uuid
from datetime import datetime, timezone

from sqlmodel import Session

from storefront.core.errors import InvalidArgumentError, NotFoundError
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.user import (
    UserActivationUpdate,
    UserRoleUpdate,
    UserUpdate,
)


class UserService:
    """
    Business logic for User.

    Responsibilities:
      - profile edits for the signed-in user
      - admin role changes and account (de)activation
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    # ----- Self profile -----

    def update_me(
        self,
        session: Session,
        current_user: User,
        payload: UserUpdate,
    ) -> User:
        """
        Partial update for profile edits.
        Currently, only `name` is editable.
        """
        if payload.name is not None:
            current_user.name = payload.name

        return self.repo.update(session, current_user)

    # ----- Admin operations -----

    def list_users(
        self,
        session: Session,
        skip: int,
        limit: int,
        only_active: bool | None = None,
    ) -> list[User]:
        return self.repo.list(session, skip=skip, limit=limit, only_active=only_active)

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_role(
        self,
        session: Session,
        user_id: uuid.UUID,
        payload: UserRoleUpdate,
    ) -> User:
        """
        Change user's role (admin only).

        Role validation is enforced by the schema (Literal).
        """
        user = self.get_user(session, user_id)
        user.role = payload.role
        return self.repo.update(session, user)

    def set_activation(
        self,
        session: Session,
        admin: User,
        user_id: uuid.UUID,
        payload: UserActivationUpdate,
    ) -> User:
        """
        Deactivate (ban) or reactivate an account.

        Admins cannot deactivate themselves.
        """
        user = self.get_user(session, user_id)

        if payload.action == "deactivate":
            if user.id == admin.id:
                raise InvalidArgumentError("You cannot deactivate your own account")
            user.is_active = False
            user.deactivated_at = datetime.now(timezone.utc)
        else:
            user.is_active = True
            user.deactivated_at = None

        return self.repo.update(session, user)
