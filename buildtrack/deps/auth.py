from __future__ import annotations

from typing import Callable

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ADMIN
from ..core.security import ACCESS, InvalidToken, read_token
from ..db.session import get_db
from ..middlewares.request_id import bind_actor
from ..models.user import User


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer access token to an active user."""

    scheme, credentials = get_authorization_scheme_param(authorization)
    if scheme.lower() != "bearer" or not credentials:
        raise _unauthorized("Access token required")
    try:
        claims = read_token(credentials, ACCESS)
        user_id = claims.user_id
    except (InvalidToken, ValueError) as exc:
        raise _unauthorized(str(exc)) from exc

    user = db.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    bind_actor(user.id, user.role)
    request.state.user_id = user.id
    return user


def require_roles(*roles: str) -> Callable[..., User]:
    """Dependency factory admitting only users holding one of ``roles``.

    Admins are always admitted. With no roles given any signed-in user passes.
    """

    allowed = set(roles)

    def _checker(user: User = Depends(get_current_user)) -> User:
        if allowed and user.role != ROLE_ADMIN and user.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return _checker
