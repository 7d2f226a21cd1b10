"""
Authentication dependencies for FastAPI endpoints.

Provides dependency functions for extracting the caller from the bearer
token, enforcing roles and a required tenant, and scoping queries to the
caller's tenant.
"""
from typing import Callable, Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from uuid import UUID

from ..config import Settings, get_settings
from ..database.connection import get_db
from ..database.models import Tenant, TenantType, UserRole
from .jwt_handler import JWTHandler

security = HTTPBearer(auto_error=False)


class CurrentUser:
    """Current user information from JWT token."""

    def __init__(
        self,
        user_id: UUID,
        tenant_id: UUID,
        tenant_slug: str,
        tenant_type: TenantType,
        email: str,
        role: UserRole,
    ):
        self.user_id = user_id
        self.tenant_id = tenant_id
        self.tenant_slug = tenant_slug
        self.tenant_type = tenant_type
        self.email = email
        self.role = role
        self.is_admin = role in (UserRole.ADMIN, UserRole.SUPER_ADMIN)

    @classmethod
    def from_payload(cls, payload: dict) -> "CurrentUser":
        return cls(
            user_id=UUID(payload["sub"]),
            tenant_id=UUID(payload["tenant_id"]),
            tenant_slug=payload["tenant_slug"],
            tenant_type=TenantType(payload["tenant_type"]),
            email=payload["email"],
            role=UserRole(payload["role"]),
        )


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _resolve_user(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[CurrentUser]:
    if not credentials or not credentials.credentials:
        return None
    payload = JWTHandler.decode_access_token(credentials.credentials)
    if payload is None:
        return None
    try:
        return CurrentUser.from_payload(payload)
    except (KeyError, ValueError):
        return None


# PUBLIC_INTERFACE
async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """
    Get current authenticated user from the bearer token.

    Only the token's signature, expiry and claims are checked; the database
    is not consulted.

    Args:
        credentials: HTTP authorization credentials

    Returns:
        CurrentUser: Current user information

    Raises:
        HTTPException: If the token is missing or invalid
    """
    current_user = _resolve_user(credentials)
    if current_user is None:
        raise _credentials_exception()
    return current_user


# PUBLIC_INTERFACE
async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[CurrentUser]:
    """
    Get current user if authenticated, None otherwise.

    Args:
        credentials: Optional HTTP authorization credentials

    Returns:
        Optional[CurrentUser]: Current user if authenticated, None otherwise
    """
    return _resolve_user(credentials)


# PUBLIC_INTERFACE
def require_roles(*roles: UserRole) -> Callable:
    """
    Build a dependency that admits only callers holding one of `roles`.

    Args:
        roles: Accepted roles

    Returns:
        Callable: FastAPI dependency yielding the current user
    """
    async def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return current_user

    return dependency


# PUBLIC_INTERFACE
def require_tenant(slug: Optional[str] = None) -> Callable:
    """
    Build a dependency that restricts a route to one tenant.

    A route declaring no slug admits every authenticated caller.

    Args:
        slug: Tenant slug the caller's token must carry

    Returns:
        Callable: FastAPI dependency yielding the current user
    """
    async def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if slug is not None and current_user.tenant_slug != slug:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required tenant: {slug}"
            )
        return current_user

    return dependency


get_current_admin_user = require_roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)
get_super_admin_user = require_roles(UserRole.SUPER_ADMIN)


# PUBLIC_INTERFACE
async def get_default_tenant(
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db)
) -> Tenant:
    """
    Get the tenant that receives public submissions.

    Args:
        settings: Application settings
        db: Database session

    Returns:
        Tenant: The configured default tenant

    Raises:
        HTTPException: 400 if no default tenant is configured or it does not
            exist or is inactive
    """
    if not settings.default_tenant_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Default tenant not configured"
        )

    try:
        tenant_id = UUID(settings.default_tenant_id)
    except ValueError:
        tenant_id = None

    tenant = None
    if tenant_id:
        tenant = db.query(Tenant).filter(Tenant.id == tenant_id, Tenant.active == True).first()
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Default tenant not found"
        )
    return tenant


class TenantFilter:
    """Helper class for applying tenant-based filtering to database queries."""

    def __init__(self, tenant_id: UUID):
        self.tenant_id = tenant_id

    def filter_query(self, query, model_class):
        """Apply tenant filter to a SQLAlchemy query."""
        return query.filter(model_class.tenant_id == self.tenant_id)


# PUBLIC_INTERFACE
async def get_tenant_filter(
    current_user: CurrentUser = Depends(get_current_user)
) -> TenantFilter:
    """
    Get tenant filter for database queries.

    Args:
        current_user: Current authenticated user

    Returns:
        TenantFilter: Tenant filter utility
    """
    return TenantFilter(current_user.tenant_id)
