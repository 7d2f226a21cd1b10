"""
Authentication API routes.

Provides endpoints for login, registration, token refresh, logout and the
caller's profile.
"""
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...database.connection import get_db
from ...schemas.auth import (
    UserRegistrationRequest, UserLoginRequest, RefreshTokenRequest,
    LogoutRequest, AuthResponse, TokenRefreshResponse, StandardResponse,
    UserInfo
)
from ...auth.dependencies import get_current_user, get_optional_user, CurrentUser
from ...auth import service as auth_service

router = APIRouter(prefix="/auth", tags=["Authentication"])


# PUBLIC_INTERFACE
@router.post("/login", response_model=AuthResponse,
            summary="User login",
            description="Authenticate with email and password, optionally pinned to a tenant slug, returning an access and a refresh token.")
async def login_user(
    request: UserLoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return access tokens.

    Stamps the user's last login and stores exactly one refresh record.
    """
    return auth_service.login(db, request)


# PUBLIC_INTERFACE
@router.post("/register", response_model=UserInfo, status_code=status.HTTP_201_CREATED,
            summary="Register new user",
            description="Register a user inside an existing tenant. Elevated roles require an authenticated caller holding a sufficient role.")
async def register_user(
    request: UserRegistrationRequest,
    caller: Optional[CurrentUser] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """Register a new user in an existing, active tenant."""
    return auth_service.register(db, request, caller)


# PUBLIC_INTERFACE
@router.post("/refresh", response_model=TokenRefreshResponse,
            summary="Refresh access token",
            description="Exchange a refresh token for a new access token. The refresh token is not rotated.")
async def refresh_token(
    request: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Issue a new access token from a stored refresh token."""
    return auth_service.refresh(db, request.refresh_token)


# PUBLIC_INTERFACE
@router.post("/logout", response_model=StandardResponse,
            summary="User logout",
            description="Revoke the given refresh token, or every refresh token of the caller when none is given.")
async def logout_user(
    request: Optional[LogoutRequest] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Logout current user.

    Idempotent: revoking an unknown or already revoked token succeeds.
    """
    token = request.refresh_token if request else None
    auth_service.logout(db, current_user, token)
    return StandardResponse(message="Logged out successfully")


# PUBLIC_INTERFACE
@router.post("/logout-all", response_model=StandardResponse,
            summary="Logout from all devices",
            description="Revoke every refresh token of the caller.")
async def logout_all(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Revoke every refresh token of the caller."""
    auth_service.logout(db, current_user)
    return StandardResponse(message="Logged out from all devices successfully")


# PUBLIC_INTERFACE
@router.get("/profile", response_model=UserInfo,
           summary="Get current user",
           description="Get the profile of the currently authenticated user, with its tenant summary.")
async def get_profile(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Return the caller's profile."""
    return auth_service.get_profile(db, current_user)
