from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..core.constants import ROLE_CHOICES
from ..core.errors import RuleViolation
from ..core.security import REFRESH, InvalidToken, TokenPair, hash_password, issue_tokens, read_token, verify_password
from ..db.session import unit_of_work
from ..models.user import User
from ._common import clean_text, require_text


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_email(db: Session, email: str) -> User | None:
    stmt = select(User).where(func.lower(User.email) == email.strip().lower())
    return db.execute(stmt).scalars().first()


def list_users(db: Session, *, role: str | None = None) -> list[User]:
    stmt = select(User).order_by(User.name)
    if role:
        stmt = stmt.where(User.role == role)
    return list(db.execute(stmt).scalars().all())


def create_user(db: Session, payload: dict) -> User:
    name = require_text(payload, "name")
    email = require_text(payload, "email").lower()
    password = payload.get("password") or ""
    if len(password) < 6:
        raise RuleViolation("password must be at least 6 characters")
    role = payload.get("role")
    if role not in ROLE_CHOICES:
        raise RuleViolation(f"role must be one of {', '.join(ROLE_CHOICES)}")
    if get_user_by_email(db, email):
        raise RuleViolation("User with this email already exists")

    user = User(
        name=name,
        email=email,
        phone=clean_text(payload.get("phone")),
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    with unit_of_work(db):
        db.add(user)
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if not user or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    return user


def start_session(db: Session, email: str, password: str) -> tuple[User, TokenPair] | None:
    user = authenticate(db, email, password)
    if user is None:
        return None
    return user, issue_tokens(user.id, user.role)


def refresh_session(db: Session, refresh_token: str) -> TokenPair:
    """Exchange a refresh token for a new pair carrying the user's current role.

    A deactivated or deleted user cannot refresh, and a role change made since
    login shows up in the new tokens.
    """

    claims = read_token(refresh_token, REFRESH)
    user = db.get(User, claims.user_id)
    if user is None or not user.is_active:
        raise InvalidToken("User not found or inactive")
    return issue_tokens(user.id, user.role)
