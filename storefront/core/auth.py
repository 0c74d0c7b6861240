# storefront/core/auth.py
import uuid
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session, select

from storefront.core.config import get_settings
from storefront.core.errors import ForbiddenError, UnauthorizedError
from storefront.database import get_session
from storefront.models.user import User

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so each entry point can word its own 401.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        UnauthorizedError: if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def resolve_user(session: Session, token: str) -> User:
    """
    Resolve (and auto-provision) the User behind a Supabase JWT.

    Flow:
      1. Decode JWT => extract 'sub' (auth user id) and 'email'.
      2. Convert 'sub' to UUID to match User.id type.
      3. Find user profile in public.users; create a minimal one if missing.
      4. Reject deactivated accounts.
    """
    payload = decode_access_token(token)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise UnauthorizedError("Token missing sub/email")

    # Supabase provides sub as a string; enforce UUID
    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise UnauthorizedError("Invalid sub in token")

    user = session.exec(select(User).where(User.id == sub_uuid)).first()

    # Default role = "user" (admin must be manually promoted).
    if user is None:
        user = User(
            id=sub_uuid,
            email=email,
            name=_default_name_from_email(email),
            role="user",
        )
        session.add(user)
        session.commit()
        session.refresh(user)

    if not user.is_active:
        raise ForbiddenError("Account is deactivated")

    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user, or None for guests (no Authorization header).
    """
    if credentials is None:
        return None  # guest mode
    return resolve_user(session, credentials.credentials)


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    Raises:
        UnauthorizedError: if user is None.
    """
    if user is None:
        raise UnauthorizedError("Authentication required")
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """
    Enforce admin role.

    Raises:
        ForbiddenError: if role is not admin.
    """
    if user.role != "admin":
        raise ForbiddenError("Admin access required")
    return user


def require_bearer_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str:
    """
    Header check for the edge functions.

    Only presence is checked here; the token itself is resolved with
    resolve_bearer_user() once the request body has been validated.
    """
    if credentials is None:
        raise UnauthorizedError("Missing authorization header")
    return credentials.credentials


def resolve_bearer_user(session: Session, token: str) -> User:
    """
    Any token problem is reported as a bare "Unauthorized", matching
    what mobile clients already handle.
    """
    try:
        return resolve_user(session, token)
    except UnauthorizedError:
        raise UnauthorizedError("Unauthorized")
