from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from talent_quest.core.settings import get_app_settings

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# PUBLIC_INTERFACE
def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a hashed password using bcrypt."""
    return _pwd_context.verify(plain_password, hashed_password)


# PUBLIC_INTERFACE
def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt."""
    return _pwd_context.hash(password)


def _create_token(
    data: Dict[str, Any],
    expires_delta: Optional[timedelta],
    token_type: str,
) -> str:
    settings = get_app_settings()
    to_encode = data.copy()
    now = datetime.now(tz=timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=15))
    to_encode.update({"exp": expire, "iat": now, "type": token_type})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


# PUBLIC_INTERFACE
def create_session_token(
    user_id: int,
    email: str,
    role: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a signed session token carrying the user id, email and role."""
    settings = get_app_settings()
    exp = timedelta(minutes=expires_minutes or settings.SESSION_EXPIRE_MINUTES)
    payload: Dict[str, Any] = {"sub": str(user_id), "userId": user_id, "email": email, "role": role}
    return _create_token(payload, exp, token_type="session")


# PUBLIC_INTERFACE
def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT; raises JWTError if invalid/expired."""
    settings = get_app_settings()
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


# PUBLIC_INTERFACE
def get_session_claims(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Return the claims of a valid session token, or None when missing or invalid."""
    if not token:
        return None
    try:
        claims = decode_token(token)
    except JWTError:
        return None
    if claims.get("type") != "session" or not claims.get("sub"):
        return None
    return claims
