"""
Authentication and user-related Pydantic schemas.

Defines request/response models for login, registration, token refresh,
logout and the caller's profile.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, validator
from uuid import UUID

from ..database.models import TenantType, UserRole


class UserRegistrationRequest(BaseModel):
    """User registration request schema."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="User password (minimum 8 characters)")
    first_name: str = Field(..., min_length=1, max_length=100, description="User first name")
    last_name: str = Field(..., min_length=1, max_length=100, description="User last name")
    role: Optional[UserRole] = Field(None, description="Requested role; defaults to USER")
    tenant_id: UUID = Field(..., description="Tenant the user joins")

    @validator('email')
    def normalize_email(cls, v):
        """Store emails lower-cased."""
        return v.lower()


class UserLoginRequest(BaseModel):
    """User login request schema."""
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=1, description="User password")
    tenant_slug: Optional[str] = Field(None, description="Tenant the user expects to sign into")

    @validator('email')
    def normalize_email(cls, v):
        return v.lower()


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""
    refresh_token: str = Field(..., min_length=1, description="Refresh token issued at login")


class LogoutRequest(BaseModel):
    """Logout request schema; without a token every session is closed."""
    refresh_token: Optional[str] = Field(None, description="Refresh token to revoke")


class TenantSummary(BaseModel):
    """Tenant summary embedded in user payloads."""
    id: UUID = Field(..., description="Tenant ID")
    name: str = Field(..., description="Tenant name")
    slug: str = Field(..., description="Tenant slug")
    type: TenantType = Field(..., description="Tenant brand")

    class Config:
        from_attributes = True


class UserInfo(BaseModel):
    """User information schema."""
    id: UUID = Field(..., description="User ID")
    email: EmailStr = Field(..., description="User email address")
    first_name: str = Field(..., description="User first name")
    last_name: str = Field(..., description="User last name")
    role: UserRole = Field(..., description="User role")
    active: bool = Field(..., description="Whether user is active")
    last_login: Optional[datetime] = Field(None, description="Last successful login")
    tenant: TenantSummary = Field(..., description="User's tenant")

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Login response schema."""
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="Refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    user: UserInfo = Field(..., description="User information")


class TokenRefreshResponse(BaseModel):
    """Token refresh response schema."""
    access_token: str = Field(..., description="New JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Access token lifetime in seconds")


class StandardResponse(BaseModel):
    """Standard API response schema."""
    message: str = Field(..., description="Response message")


class ErrorResponse(BaseModel):
    """Error response schema."""
    detail: str = Field(..., description="Error detail message")
