"""
FastAPI dependencies for authentication and authorization.

These dependencies are used to protect endpoints and extract user context.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from jobboard.core.config import settings
from jobboard.core.database import get_db
from jobboard.core.exceptions import AuthenticationError, PermissionDeniedError
from jobboard.core.security import as_utc, decode_token
from jobboard.models.user import User, UserRole

# Bearer header is optional: the token may also arrive in the jwt cookie
security = HTTPBearer(auto_error=False)


def get_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    """Bearer token if present, otherwise the auth cookie."""
    if credentials and credentials.credentials:
        return credentials.credentials
    token = request.cookies.get(settings.JWT_COOKIE_NAME)
    if token and token != "loggedout":
        return token
    return None


def password_changed_after(user: User, issued_at: Optional[int]) -> bool:
    changed_at = as_utc(user.password_changed_at)
    if changed_at is None or issued_at is None:
        return False
    return int(changed_at.timestamp()) > int(issued_at)


def get_current_user(
    token: Optional[str] = Depends(get_token),
    db: Session = Depends(get_db),
) -> User:
    """
    Extract and validate the current user from the JWT.

    This dependency:
    1. Reads the token from the Authorization header or the jwt cookie
    2. Decodes and validates the JWT
    3. Fetches the user from the database
    4. Rejects tokens issued before the last password change
    5. Ensures the user is active

    Raises:
        AuthenticationError 401: Missing token, unknown user or stale token
        TokenInvalidError / TokenExpiredError 401: Bad or expired token
    """
    if not token:
        raise AuthenticationError()

    payload = decode_token(token)
    user_id = payload.get("sub")
    if user_id is None:
        raise AuthenticationError("Invalid Token, please login again!")

    try:
        user = db.get(User, int(user_id))
    except (TypeError, ValueError):
        raise AuthenticationError("Invalid Token, please login again!")

    if user is None:
        raise AuthenticationError("The user belonging to this token does no longer exist.")

    if password_changed_after(user, payload.get("iat")):
        raise AuthenticationError("User recently changed password! Please log in again.")

    if not user.active:
        raise AuthenticationError("This account has been deactivated.")

    return user


def restrict_to(*roles: UserRole):
    """
    Dependency factory allowing only the given roles.

    Usage:
        @router.post("/", dependencies=[Depends(restrict_to(UserRole.ADMIN, UserRole.DEV))])
    """
    allowed = {UserRole(role) for role in roles}

    def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise PermissionDeniedError()
        return user

    return checker


require_staff = restrict_to(UserRole.ADMIN, UserRole.DEV)
require_dev = restrict_to(UserRole.DEV)
