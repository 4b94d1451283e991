"""
FastAPI Authentication Dependencies for Microservices

Caller resolution for requests forwarded by the API gateway. The gateway
verifies the session with the identity provider and forwards the caller as
headers; services only read them.

Headers:
    X-User-Id (or user-id)   authenticated user
    X-Organization-Id        tenant the user belongs to
    X-User-Role              ADMIN / REPRESENTATIVE / VIEWER, or the
                             identity provider's org:admin style role
"""

from enum import Enum
from typing import Optional
import logging

from fastapi import Depends, Header
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class UserRole(str, Enum):
    """Caller roles"""
    ADMIN = "ADMIN"
    REPRESENTATIVE = "REPRESENTATIVE"
    VIEWER = "VIEWER"


# Identity provider organization roles
_PROVIDER_ROLES = {
    "org:admin": UserRole.ADMIN,
    "org:representative": UserRole.REPRESENTATIVE,
}


class AuthenticationError(Exception):
    """Raised when no caller can be resolved from the request"""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class AuthorizationError(Exception):
    """Raised when the caller lacks the role an operation requires"""

    def __init__(self, message: str = "Forbidden", required_role: Optional[UserRole] = None):
        super().__init__(message)
        self.required_role = required_role


class CallerContext(BaseModel):
    """Resolved caller for a request"""
    user_id: str
    organization_id: str
    role: UserRole = UserRole.VIEWER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def map_role(raw_role: Optional[str]) -> UserRole:
    """Map a forwarded role onto a UserRole; unknown roles are VIEWER"""
    if not raw_role:
        return UserRole.VIEWER
    value = raw_role.strip()
    if value in _PROVIDER_ROLES:
        return _PROVIDER_ROLES[value]
    try:
        return UserRole(value.upper())
    except ValueError:
        return UserRole.VIEWER


async def get_caller(
    user_id: Optional[str] = Header(None, alias="user-id"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_organization_id: Optional[str] = Header(None, alias="X-Organization-Id"),
    x_user_role: Optional[str] = Header(None, alias="X-User-Role"),
) -> CallerContext:
    """
    Resolve the caller or fail with AuthenticationError.

    A caller without an organization cannot be scoped to a tenant and is
    treated as unauthenticated.
    """
    user_id_value = x_user_id or user_id
    if not user_id_value or not x_organization_id:
        raise AuthenticationError()

    return CallerContext(
        user_id=user_id_value,
        organization_id=x_organization_id,
        role=map_role(x_user_role),
    )


async def require_admin(caller: CallerContext = Depends(get_caller)) -> CallerContext:
    """Resolve the caller and require the ADMIN role"""
    if not caller.is_admin:
        logger.info(f"Forbidden: user {caller.user_id} with role {caller.role.value}")
        raise AuthorizationError(required_role=UserRole.ADMIN)
    return caller


__all__ = [
    "UserRole",
    "AuthenticationError",
    "AuthorizationError",
    "CallerContext",
    "map_role",
    "get_caller",
    "require_admin",
]
