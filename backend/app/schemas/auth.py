"""Authentication schemas."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from app.core.rbac import UserRole


class LoginRequest(BaseModel):
    """Login request body."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class Token(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    """The authenticated user."""

    id: int
    email: str
    name: Optional[str] = None
    role: UserRole
    department_id: Optional[int] = None
    is_active: bool

    model_config = {"from_attributes": True}
