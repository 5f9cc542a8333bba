"""Schemas for admin authentication."""

from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, example="admin")
    password: str = Field(..., min_length=1, example="secret123")


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, example="n3w-Secret")


class AdminUserRead(BaseModel):
    id: int
    username: str
    email: str
    created_at: Optional[str] = None
    last_login: Optional[str] = None

    model_config = {
        "from_attributes": True,
    }
