"""
Session and authorization gate.

Sessions are stateless signed tokens (JWT) carrying the user's id and role,
sent either as ``Authorization: Bearer <token>`` or in the session cookie.
Resolving a session never touches the database, so the admin guard can
reject a caller before any query or side effect runs.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError, jwt
from passlib.context import CryptContext

from travel_cms.core.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ADMIN_ROLE = "ADMIN"


@dataclass(frozen=True)
class SessionUser:
    """Identity resolved from a session token."""
    id: str
    email: str
    name: Optional[str]
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return pwd_context.verify(password, password_hash)
    except ValueError:
        # Malformed or unknown hash format
        return False


def create_session_token(user, expires_minutes: Optional[int] = None) -> str:
    """Sign a session token for a User row (or anything with id/email/name/role)."""
    minutes = expires_minutes if expires_minutes is not None else settings.token_expire_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "exp": expire,
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.token_algorithm)


def decode_session_token(token: str) -> Optional[SessionUser]:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.token_algorithm])
    except JWTError as e:
        logger.debug(f"Rejected session token: {e}")
        return None

    if not claims.get("sub") or not claims.get("role"):
        return None
    return SessionUser(
        id=claims["sub"],
        email=claims.get("email", ""),
        name=claims.get("name"),
        role=claims["role"],
    )


def _extract_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return request.cookies.get(settings.session_cookie_name)


def resolve_session(request: Request) -> Optional[SessionUser]:
    token = _extract_token(request)
    if not token:
        return None
    return decode_session_token(token)


def optional_session(request: Request) -> Optional[SessionUser]:
    """Dependency for endpoints that behave differently for admins."""
    return resolve_session(request)


def require_admin(session: Optional[SessionUser] = Depends(optional_session)) -> SessionUser:
    """Dependency guarding every admin-only operation."""
    if session is None or not session.is_admin:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return session
