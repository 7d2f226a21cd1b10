"""
Tenant-related Pydantic schemas.
"""
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field
from uuid import UUID

from ..database.models import TenantType


class TenantCreateRequest(BaseModel):
    """Tenant creation request schema."""
    name: str = Field(..., min_length=1, max_length=255, description="Tenant name")
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$",
                      description="URL-safe tenant identifier")
    type: TenantType = Field(..., description="Tenant brand")
    domain: Optional[str] = Field(None, max_length=255, description="Tenant domain")
    settings: Optional[Dict[str, Any]] = Field(default_factory=dict, description="Tenant settings")


class TenantResponse(BaseModel):
    """Tenant response schema."""
    id: UUID = Field(..., description="Tenant ID")
    name: str = Field(..., description="Tenant name")
    slug: str = Field(..., description="Tenant slug")
    type: TenantType = Field(..., description="Tenant brand")
    domain: Optional[str] = Field(None, description="Tenant domain")
    settings: Dict[str, Any] = Field(..., description="Tenant settings")
    active: bool = Field(..., description="Whether tenant is active")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
    user_count: Optional[int] = Field(None, description="Number of users in tenant")
    project_count: Optional[int] = Field(None, description="Number of projects in tenant")

    class Config:
        from_attributes = True
