"""
Session access control for admin endpoints.

Sessions are signed JWTs issued by the application's auth provider. They are
read from the Authorization header or from the session cookie; this module
only verifies them and checks the role claim.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from .config import settings
from .exceptions import NotAuthenticatedError, ForbiddenError

security = HTTPBearer(auto_error=False)


class SessionUser(BaseModel):
    """User carried by a session token"""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: str

    @property
    def display_name(self) -> str:
        return self.email or self.name or self.id


def create_session_token(
    user_id: str,
    role: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Create a signed session token"""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=8))
    to_encode = {"sub": user_id, "role": role, "email": email, "name": name, "exp": expire}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.session_algorithm)


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> SessionUser:
    """Validate the session token and return the user it belongs to."""
    token = credentials.credentials if credentials else request.cookies.get(settings.session_cookie_name)
    if not token:
        raise NotAuthenticatedError()

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.session_algorithm])
    except JWTError:
        raise NotAuthenticatedError()

    user_id = payload.get("sub")
    role = payload.get("role")
    if user_id is None or role is None:
        raise NotAuthenticatedError()

    return SessionUser(id=user_id, email=payload.get("email"), name=payload.get("name"), role=role)


async def require_admin(user: SessionUser = Depends(get_current_user)) -> SessionUser:
    """
    Ensure current user has the admin role.
    """
    if user.role != settings.admin_role:
        raise ForbiddenError()
    return user
