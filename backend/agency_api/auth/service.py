"""
Authentication flow: login, registration, token refresh and logout.

Every function raises `HTTPException` with the status the caller should see
and leaves committing to the function itself, so routes stay thin.
"""
import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..database.models import RefreshToken, Tenant, User, UserRole
from ..schemas.auth import (
    AuthResponse, TenantSummary, TokenRefreshResponse, UserInfo,
    UserLoginRequest, UserRegistrationRequest
)
from .dependencies import CurrentUser
from .jwt_handler import JWTHandler, PasswordHandler

logger = logging.getLogger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# PUBLIC_INTERFACE
def build_user_info(user: User) -> UserInfo:
    """
    Build the public profile of a user with its tenant summary.

    Args:
        user: User with a loaded tenant

    Returns:
        UserInfo: Profile payload
    """
    return UserInfo(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        active=user.active,
        last_login=user.last_login,
        tenant=TenantSummary(
            id=user.tenant.id,
            name=user.tenant.name,
            slug=user.tenant.slug,
            type=user.tenant.type,
        ),
    )


# PUBLIC_INTERFACE
def login(db: Session, request: UserLoginRequest) -> AuthResponse:
    """
    Authenticate a user and issue an access/refresh token pair.

    Args:
        db: Database session
        request: Login credentials, optionally pinned to a tenant slug

    Returns:
        AuthResponse: Tokens and user profile

    Raises:
        HTTPException: 401 for any credential or tenant failure
    """
    user = db.query(User).filter(User.email == request.email).first()
    if not user or not user.active:
        raise _unauthorized("Invalid credentials")

    tenant = user.tenant
    if not tenant or not tenant.active:
        raise _unauthorized("Tenant is inactive")

    if request.tenant_slug and tenant.slug != request.tenant_slug:
        raise _unauthorized("Invalid tenant access")

    if not PasswordHandler.verify_password(request.password, user.password_hash):
        raise _unauthorized("Invalid credentials")

    user.last_login = datetime.now(timezone.utc)
    access_token = JWTHandler.create_access_token(user, tenant)
    refresh_token = JWTHandler.issue_refresh_token(db, user)
    db.commit()
    db.refresh(user)

    logger.info(f"User {user.email} logged in successfully")

    return AuthResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=JWTHandler.access_token_expires_in(),
        user=build_user_info(user),
    )


# PUBLIC_INTERFACE
def register(
    db: Session,
    request: UserRegistrationRequest,
    caller: Optional[CurrentUser] = None,
) -> UserInfo:
    """
    Create a user inside an existing tenant.

    Elevated roles need an elevated caller: ADMIN may be granted by an ADMIN
    or SUPER_ADMIN, SUPER_ADMIN only by a SUPER_ADMIN.

    Args:
        db: Database session
        request: Registration data
        caller: Authenticated caller, if any

    Returns:
        UserInfo: Created user profile

    Raises:
        HTTPException: 403 for a role escalation, 409 for a duplicate email,
            400 for a missing or inactive tenant
    """
    role = request.role or UserRole.USER
    if role == UserRole.SUPER_ADMIN and (caller is None or caller.role != UserRole.SUPER_ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions to assign this role"
        )
    if role == UserRole.ADMIN and (caller is None or not caller.is_admin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions to assign this role"
        )

    existing_user = db.query(User).filter(User.email == request.email).first()
    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User with this email already exists"
        )

    tenant = db.query(Tenant).filter(Tenant.id == request.tenant_id).first()
    if not tenant or not tenant.active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or inactive tenant"
        )

    user = User(
        tenant_id=tenant.id,
        email=request.email,
        password_hash=PasswordHandler.hash_password(request.password),
        first_name=request.first_name,
        last_name=request.last_name,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"New user registered: {user.email}")
    return build_user_info(user)


# PUBLIC_INTERFACE
def refresh(db: Session, token: str) -> TokenRefreshResponse:
    """
    Exchange a refresh token for a new access token.

    The refresh token itself is not rotated. Every failure is reported with
    the same opaque message.

    Args:
        db: Database session
        token: Refresh token

    Returns:
        TokenRefreshResponse: New access token

    Raises:
        HTTPException: 401 when the refresh token cannot be used
    """
    user = JWTHandler.verify_refresh_token(db, token)
    # Persist the deletion of an expired record even when rejecting
    db.commit()
    if user is None:
        raise _unauthorized("Invalid refresh token")

    return TokenRefreshResponse(
        access_token=JWTHandler.create_access_token(user, user.tenant),
        expires_in=JWTHandler.access_token_expires_in(),
    )


# PUBLIC_INTERFACE
def logout(db: Session, current_user: CurrentUser, token: Optional[str] = None) -> int:
    """
    Revoke one refresh token of the caller, or all of them.

    Args:
        db: Database session
        current_user: Authenticated caller
        token: Refresh token to revoke; None revokes every session

    Returns:
        int: Number of records deleted
    """
    query = db.query(RefreshToken).filter(RefreshToken.user_id == current_user.user_id)
    if token:
        query = query.filter(RefreshToken.token == token)
    deleted = query.delete(synchronize_session=False)
    db.commit()

    logger.info(f"User {current_user.email} logged out ({deleted} session(s) closed)")
    return deleted


# PUBLIC_INTERFACE
def get_profile(db: Session, current_user: CurrentUser) -> UserInfo:
    """
    Load the caller's profile.

    Raises:
        HTTPException: 404 if the user no longer exists
    """
    user = db.query(User).filter(User.id == current_user.user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return build_user_info(user)
