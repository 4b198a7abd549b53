from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.logging import actor_var
from talent_quest.core.security import get_session_claims
from talent_quest.core.settings import AppSettings, get_app_settings
from talent_quest.db.models.security import User
from talent_quest.db.session import get_async_session
from talent_quest.repositories.security import SecurityRepository
from talent_quest.services.mailer import SmtpMailer
from talent_quest.services.storage import LocalBucketStorage

logger = logging.getLogger(__name__)

# Bearer header is accepted alongside the session cookie (used by docs and scripts)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


# PUBLIC_INTERFACE
def get_settings_dep() -> AppSettings:
    """Application settings as a dependency."""
    return get_app_settings()


# PUBLIC_INTERFACE
def get_storage(settings: AppSettings = Depends(get_settings_dep)) -> LocalBucketStorage:
    """Storage client for the public buckets."""
    return LocalBucketStorage(settings.STORAGE_ROOT, settings.STORAGE_PUBLIC_BASE_URL)


# PUBLIC_INTERFACE
def get_mailer(settings: AppSettings = Depends(get_settings_dep)) -> SmtpMailer:
    """SMTP sender configured from settings."""
    return SmtpMailer(settings)


def _extract_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    settings = get_app_settings()
    return request.cookies.get(settings.SESSION_COOKIE_NAME) or bearer


# PUBLIC_INTERFACE
async def get_optional_user(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    session: AsyncSession = Depends(get_async_session),
) -> Optional[User]:
    """
    Resolve the user behind the session cookie (or bearer token) if any.

    Returns None for a missing, invalid or expired session instead of raising.
    """
    claims = get_session_claims(_extract_token(request, bearer))
    if not claims:
        return None
    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
    user = await SecurityRepository(session).get_user_by_id(user_id)
    if user is not None:
        actor_var.set(user.email)
    return user


# PUBLIC_INTERFACE
async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    """
    Return the authenticated user.

    Raises:
        HTTPException: 401 when there is no valid session.
    """
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


# PUBLIC_INTERFACE
def require_roles(*required: str):
    """
    Create a dependency that requires the current user to hold one of the given roles.
    """

    async def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in set(required):
            logger.warning("User %s with role %s denied; requires %s", user.email, user.role, required)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role")
        return user

    return _dep


require_admin = require_roles("admin")
