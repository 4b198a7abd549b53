from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.deps import get_current_user, get_optional_user, get_settings_dep, require_admin
from talent_quest.core.security import create_session_token, get_password_hash, verify_password
from talent_quest.core.settings import AppSettings
from talent_quest.db.models.security import User
from talent_quest.db.session import get_async_session
from talent_quest.repositories.security import SecurityRepository
from talent_quest.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    SessionResponse,
    SessionUser,
    UserCreate,
    UserRead,
)
from talent_quest.schemas.common import SuccessMessage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

MIN_PASSWORD_LENGTH = 6


def _session_user(user: User) -> SessionUser:
    return SessionUser(id=user.user_id, email=user.email, full_name=user.full_name, role=user.role)


async def _authenticate(session: AsyncSession, email: Optional[str], password: Optional[str]) -> User:
    if not email or not password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required")
    user = await SecurityRepository(session).get_user_by_email(email)
    if user is None or not verify_password(password, user.password_hash):
        logger.warning("Failed login attempt for %s", email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return user


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Login",
    description="Authenticate with email and password; sets the httpOnly session cookie.",
)
async def login(
    payload: LoginRequest,
    response: Response,
    session: AsyncSession = Depends(get_async_session),
    settings: AppSettings = Depends(get_settings_dep),
) -> LoginResponse:
    """
    Verify credentials and start a session.

    Returns:
        LoginResponse: the signed-in user and the session token (also set as cookie).
    """
    user = await _authenticate(session, payload.email, payload.password)
    token = create_session_token(user.user_id, user.email, user.role)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_EXPIRE_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        path="/",
    )
    logger.info("User %s signed in", user.email)
    return LoginResponse(user=_session_user(user), access_token=token)


# PUBLIC_INTERFACE
@router.post(
    "/token",
    response_model=LoginResponse,
    summary="Issue token",
    description="OAuth2 password form login returning a bearer token (used by the interactive docs).",
)
async def issue_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: AsyncSession = Depends(get_async_session),
) -> LoginResponse:
    """Authenticate the OAuth2 password form and return a session token."""
    user = await _authenticate(session, form_data.username, form_data.password)
    token = create_session_token(user.user_id, user.email, user.role)
    return LoginResponse(user=_session_user(user), access_token=token)


# PUBLIC_INTERFACE
@router.post(
    "/logout",
    response_model=SuccessMessage,
    summary="Logout",
    description="Clear the session cookie.",
)
async def logout(response: Response, settings: AppSettings = Depends(get_settings_dep)) -> SuccessMessage:
    """Remove the session cookie."""
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return SuccessMessage(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/session",
    response_model=SessionResponse,
    summary="Current session",
    description="Return the signed-in user, or user=null when there is no valid session.",
)
async def read_session(user: Optional[User] = Depends(get_optional_user)) -> SessionResponse:
    """Current session user; never errors for anonymous callers."""
    return SessionResponse(user=_session_user(user) if user else None)


# PUBLIC_INTERFACE
@router.post(
    "/change-password",
    response_model=SuccessMessage,
    summary="Change password",
    description="Change the password of the signed-in user.",
)
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> SuccessMessage:
    """
    Validate and store a new password.

    Errors:
        400: missing fields, mismatched confirmation, too short, or wrong current password.
        401: no valid session.
    """
    if not payload.current_password or not payload.new_password or not payload.confirm_new_password:
        raise HTTPException(status_code=400, detail="All password fields are required")
    if payload.new_password != payload.confirm_new_password:
        raise HTTPException(status_code=400, detail="New passwords do not match")
    if len(payload.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400, detail=f"New password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )
    if not verify_password(payload.current_password, user.password_hash):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    await SecurityRepository(session).set_password_hash(user, get_password_hash(payload.new_password))
    logger.info("Password changed for %s", user.email)
    return SuccessMessage(message="Password updated successfully")


# PUBLIC_INTERFACE
@router.post(
    "/users",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create staff account",
    description="Create a user able to sign in. Admin only.",
    dependencies=[Depends(require_admin)],
)
async def create_user(
    payload: UserCreate,
    session: AsyncSession = Depends(get_async_session),
) -> UserRead:
    """Create a staff account; 400 if the email is taken."""
    repo = SecurityRepository(session)
    if await repo.get_user_by_email(payload.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    user = await repo.create_user(
        email=payload.email,
        password_hash=get_password_hash(payload.password),
        full_name=payload.full_name,
        role=payload.role,
    )
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.get(
    "/users",
    response_model=List[UserRead],
    summary="List staff accounts",
    dependencies=[Depends(require_admin)],
)
async def list_users(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_async_session),
) -> List[UserRead]:
    """List staff accounts, newest first."""
    users = await SecurityRepository(session).list_users(limit=limit, offset=offset)
    return [UserRead.model_validate(u) for u in users]
