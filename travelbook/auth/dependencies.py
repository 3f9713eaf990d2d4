"""FastAPI authentication dependencies for route protection."""

import uuid
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from travelbook.auth.jwt import decode_token

ADMIN_ROLE = "admin"

# Strict bearer: raises 403 automatically if no token provided
_bearer_scheme = HTTPBearer()


@dataclass(frozen=True)
class Principal:
    """The requester behind a verified access token."""

    user_id: uuid.UUID
    name: str | None = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @property
    def display_name(self) -> str:
        """Recorded as the actor on cancellations."""
        return self.name or str(self.user_id)


async def get_current_principal(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
) -> Principal:
    """Extract and validate the Bearer token, then return the requester.

    Raises:
        HTTPException 401: If the token is invalid, expired, the wrong type, or has no usable subject.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_token(credentials.credentials)
    except JWTError:
        raise credentials_exception from None

    # Only accept access tokens
    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    sub: str | None = payload.get("sub")
    if sub is None:
        raise credentials_exception
    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise credentials_exception from None

    return Principal(user_id=user_id, name=payload.get("name"), role=payload.get("role") or "user")


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Return the requester only if the token carries the admin role.

    Raises:
        HTTPException 403: For any non-admin requester.
    """
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return principal
