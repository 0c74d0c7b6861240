# storefront/routers/users.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from storefront.core.auth import require_auth, require_admin
from storefront.database import get_session
from storefront.models.user import User
from storefront.repositories.user_repo import UserRepository
from storefront.schemas.user import (
    UserActivationUpdate,
    UserRead,
    UserRoleUpdate,
    UserUpdate,
)
from storefront.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
service = UserService(repo)


# -------- Self profile --------


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(require_auth)):
    """
    Return the authenticated user's profile.

    The row is auto-provisioned on the first authenticated request.
    """
    return current_user


@router.patch("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    return service.update_me(session, current_user, payload)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[UserRead],
    dependencies=[Depends(require_admin)],
)
def list_users(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    only_active: bool | None = None,
):
    """
    List users (admin only). Pagination via skip/limit.
    """
    return service.list_users(session, skip, limit, only_active)


@router.get(
    "/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_admin)],
)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    return service.get_user(session, user_id)


@router.patch(
    "/{user_id}/role",
    response_model=UserRead,
    dependencies=[Depends(require_admin)],
)
def change_role(
    user_id: uuid.UUID,
    payload: UserRoleUpdate,
    session: Session = Depends(get_session),
):
    return service.update_role(session, user_id, payload)


@router.patch("/{user_id}/activation", response_model=UserRead)
def change_activation(
    user_id: uuid.UUID,
    payload: UserActivationUpdate,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    """
    Deactivate or reactivate an account (admin only).

    Deactivated users get 403 on every authenticated request.
    """
    return service.set_activation(session, admin, user_id, payload)
