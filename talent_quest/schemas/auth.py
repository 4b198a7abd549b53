from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Credentials for the admin login."""
    email: Optional[str] = Field(None, description="Account email")
    password: Optional[str] = Field(None, description="Account password")


class SessionUser(BaseModel):
    """User exposed to the client session."""
    id: int = Field(..., description="User ID")
    email: str = Field(...)
    full_name: Optional[str] = Field(None)
    role: str = Field(..., description="admin | student | user")


class LoginResponse(BaseModel):
    """Login result; the token is also set as an httpOnly cookie."""
    user: SessionUser
    access_token: str = Field(..., description="Session JWT (same value as the cookie)")
    token_type: str = Field("bearer")


class SessionResponse(BaseModel):
    """Current session; user is null when not signed in."""
    user: Optional[SessionUser] = None


class ChangePasswordRequest(BaseModel):
    """Password change payload."""
    current_password: Optional[str] = Field(None, alias="currentPassword")
    new_password: Optional[str] = Field(None, alias="newPassword")
    confirm_new_password: Optional[str] = Field(None, alias="confirmNewPassword")

    class Config:
        populate_by_name = True


class UserCreate(BaseModel):
    """Admin create-account payload."""
    email: EmailStr = Field(..., description="Email")
    password: str = Field(..., min_length=6, description="Password")
    full_name: Optional[str] = Field(None)
    role: Literal["admin", "student", "user"] = Field("user")


class UserRead(BaseModel):
    """Staff account read model."""
    user_id: int = Field(...)
    email: str = Field(...)
    full_name: Optional[str] = Field(None)
    role: str = Field(...)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True
