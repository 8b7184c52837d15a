from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..core.constants import ROLE_ADMIN
from ..core.security import InvalidToken
from ..crud.users import create_user, refresh_session, start_session
from ..db.session import get_db
from ..deps.auth import get_current_user, require_roles
from ..models.user import User
from ..schemas.auth import LoginRequest, LoginResponse, RefreshRequest, TokenResponse, UserCreate, UserCreated, UserOut

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=LoginResponse, summary="Exchange credentials for JWTs")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    session = start_session(db, payload.email, payload.password)
    if session is None:
        logger.info("auth.login_failed", extra={"extra_data": {"email": payload.email}})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    user, pair = session
    logger.info("auth.login", extra={"extra_data": {"email": user.email}})
    return LoginResponse(message="Login successful", **pair.model_dump(), user=UserOut.model_validate(user))


@router.post("/refresh", response_model=TokenResponse, summary="Refresh access token")
def refresh_token(payload: RefreshRequest, db: Session = Depends(get_db)):
    try:
        pair = refresh_session(db, payload.refresh_token)
    except InvalidToken as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return TokenResponse(message="Token refreshed successfully", **pair.model_dump())


@router.get("/me", response_model=UserOut)
def me(user: User = Depends(get_current_user)):
    return user


@router.post("/register", response_model=UserCreated, status_code=201)
def register(
    payload: UserCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(ROLE_ADMIN)),
):
    return {"message": "User registered successfully", "user": create_user(db, payload.model_dump())}
