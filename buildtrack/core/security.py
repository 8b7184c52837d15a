"""Password hashing and the signed tokens handed out at login.

Access and refresh tokens are HS256 JWTs carrying the user id as ``sub``, the
user's role and a ``typ`` of ``access`` or ``refresh``. Role checks read the
role from the database, not from the token; the claim is informational and
lets clients render role-specific screens without another call.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ValidationError

from .config import settings

ALGORITHM = "HS256"
AUDIENCE = "buildtrack-clients"
ISSUER = "buildtrack"

ACCESS = "access"
REFRESH = "refresh"


class InvalidToken(ValueError):
    pass


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    role: str


class TokenClaims(BaseModel):
    sub: str
    typ: str
    role: str
    iat: datetime
    exp: datetime

    @property
    def user_id(self) -> int:
        return int(self.sub)


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash.
        return False


def _sign(user_id: int, role: str, token_type: str, ttl: timedelta) -> str:
    issued = datetime.now(tz=timezone.utc)
    claims = {
        "sub": str(user_id),
        "typ": token_type,
        "role": role,
        "iat": int(issued.timestamp()),
        "exp": int((issued + ttl).timestamp()),
        "aud": AUDIENCE,
        "iss": ISSUER,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def issue_tokens(user_id: int, role: str) -> TokenPair:
    access_ttl = timedelta(minutes=settings.JWT_ACCESS_TTL_MIN)
    return TokenPair(
        access_token=_sign(user_id, role, ACCESS, access_ttl),
        refresh_token=_sign(user_id, role, REFRESH, timedelta(days=settings.JWT_REFRESH_TTL_DAYS)),
        expires_in=int(access_ttl.total_seconds()),
        role=role,
    )


def read_token(token: str, expected_type: str) -> TokenClaims:
    """Verify signature, audience, issuer and expiry, then the token type."""

    try:
        decoded = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM], audience=AUDIENCE, issuer=ISSUER)
    except ExpiredSignatureError as exc:
        raise InvalidToken("Token expired") from exc
    except JWTError as exc:
        raise InvalidToken("Invalid token") from exc
    try:
        claims = TokenClaims.model_validate(decoded)
    except ValidationError as exc:
        raise InvalidToken("Invalid token payload") from exc
    if claims.typ != expected_type:
        raise InvalidToken(f"Invalid token type: expected {expected_type}")
    return claims
