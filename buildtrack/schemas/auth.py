from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..core.constants import ROLE_CHOICES


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)

    model_config = {
        "json_schema_extra": {
            "example": {"email": "admin@example.com", "password": "secret123"}
        }
    }


class TokenResponse(BaseModel):
    message: str
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    role: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "Login successful",
                "access_token": "<jwt>",
                "refresh_token": "<jwt>",
                "token_type": "bearer",
                "expires_in": 3600,
                "role": "Store Manager",
            }
        }
    }


class RefreshRequest(BaseModel):
    refresh_token: str


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: str
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("must be a valid email address")
        return value

    @field_validator("role")
    @classmethod
    def check_role(cls, value: str) -> str:
        if value not in ROLE_CHOICES:
            raise ValueError(f"must be one of {', '.join(ROLE_CHOICES)}")
        return value


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_active: bool
    created_at: str

    class Config:
        from_attributes = True


class LoginResponse(TokenResponse):
    user: UserOut


class UserCreated(BaseModel):
    message: str
    user: UserOut
