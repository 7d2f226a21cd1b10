"""
Client, project and task Pydantic schemas.

Defines request/response models for client management, project CRUD
and project tasks.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, EmailStr, Field, validator
from uuid import UUID

from ..database.models import ProjectStatus, SyncStatus


class ClientAddress(BaseModel):
    """Postal address of a client."""
    street: Optional[str] = Field(None, max_length=255, description="Street and number")
    city: Optional[str] = Field(None, max_length=100, description="City")
    state: Optional[str] = Field(None, max_length=100, description="State or province")
    zip_code: Optional[str] = Field(None, max_length=20, description="Postal code")
    country: Optional[str] = Field(None, max_length=100, description="Country")


class ClientCreateRequest(BaseModel):
    """Client creation request schema."""
    name: str = Field(..., min_length=1, max_length=255, description="Client name")
    email: EmailStr = Field(..., description="Client email")
    phone: Optional[str] = Field(None, max_length=50, description="Client phone")
    company: Optional[str] = Field(None, max_length=255, description="Company name")
    tax_id: Optional[str] = Field(None, max_length=100, description="Tax identifier")
    address: Optional[ClientAddress] = Field(None, description="Client address")


class ClientUpdateRequest(BaseModel):
    """Client update request schema."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Client name")
    email: Optional[EmailStr] = Field(None, description="Client email")
    phone: Optional[str] = Field(None, max_length=50, description="Client phone")
    company: Optional[str] = Field(None, max_length=255, description="Company name")
    tax_id: Optional[str] = Field(None, max_length=100, description="Tax identifier")
    address: Optional[ClientAddress] = Field(None, description="Client address")

    @validator('name', 'email')
    def reject_null(cls, v):
        """Required fields may be omitted but not cleared."""
        if v is None:
            raise ValueError("field may not be null")
        return v


class ClientResponse(BaseModel):
    """Client response schema."""
    id: UUID = Field(..., description="Client ID")
    tenant_id: UUID = Field(..., description="Tenant ID")
    name: str = Field(..., description="Client name")
    email: str = Field(..., description="Client email")
    phone: Optional[str] = Field(None, description="Client phone")
    company: Optional[str] = Field(None, description="Company name")
    tax_id: Optional[str] = Field(None, description="Tax identifier")
    address: Optional[ClientAddress] = Field(None, description="Client address")
    invoice_ninja_id: Optional[str] = Field(None, description="Invoicing platform client ID")
    sync_status: SyncStatus = Field(..., description="Invoicing sync state")
    last_sync_at: Optional[datetime] = Field(None, description="Last successful sync")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")
    project_count: int = Field(0, description="Number of projects")

    class Config:
        from_attributes = True


class ClientsListResponse(BaseModel):
    """Clients list response schema."""
    clients: List[ClientResponse] = Field(..., description="List of clients")
    total: int = Field(..., description="Total number of matching clients")
    page: int = Field(..., description="Current page")
    per_page: int = Field(..., description="Items per page")


class ProjectCreateRequest(BaseModel):
    """Project creation request schema."""
    client_id: UUID = Field(..., description="Client ID")
    name: str = Field(..., min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    status: ProjectStatus = Field(ProjectStatus.PLANNING, description="Project status")
    quoted_hours: float = Field(0, ge=0, description="Hours sold to the client")
    hourly_rate: float = Field(0, ge=0, description="Hourly rate")
    start_date: Optional[datetime] = Field(None, description="Project start date")
    end_date: Optional[datetime] = Field(None, description="Project end date")
    quotation_data: Optional[Dict[str, Any]] = Field(None, description="Snapshot of the originating quote")


class ProjectUpdateRequest(BaseModel):
    """Project update request schema; used_hours is derived and not writable."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    status: Optional[ProjectStatus] = Field(None, description="Project status")
    quoted_hours: Optional[float] = Field(None, ge=0, description="Hours sold to the client")
    hourly_rate: Optional[float] = Field(None, ge=0, description="Hourly rate")
    start_date: Optional[datetime] = Field(None, description="Project start date")
    end_date: Optional[datetime] = Field(None, description="Project end date")

    @validator('name', 'status', 'quoted_hours', 'hourly_rate')
    def reject_null(cls, v):
        if v is None:
            raise ValueError("field may not be null")
        return v


class ProjectResponse(BaseModel):
    """Project response schema."""
    id: UUID = Field(..., description="Project ID")
    tenant_id: UUID = Field(..., description="Tenant ID")
    client_id: UUID = Field(..., description="Client ID")
    name: str = Field(..., description="Project name")
    description: Optional[str] = Field(None, description="Project description")
    status: ProjectStatus = Field(..., description="Project status")
    quoted_hours: float = Field(..., description="Hours sold to the client")
    used_hours: float = Field(..., description="Sum of logged hours")
    hourly_rate: float = Field(..., description="Hourly rate")
    start_date: Optional[datetime] = Field(None, description="Project start date")
    end_date: Optional[datetime] = Field(None, description="Project end date")
    quotation_data: Optional[Dict[str, Any]] = Field(None, description="Snapshot of the originating quote")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class ProjectsListResponse(BaseModel):
    """Projects list response schema."""
    projects: List[ProjectResponse] = Field(..., description="List of projects")
    total: int = Field(..., description="Total number of matching projects")
    page: int = Field(..., description="Current page")
    per_page: int = Field(..., description="Items per page")


class TaskCreateRequest(BaseModel):
    """Task creation request schema."""
    title: str = Field(..., min_length=1, max_length=255, description="Task title")
    description: Optional[str] = Field(None, description="Task description")


class TaskResponse(BaseModel):
    """Task response schema."""
    id: UUID = Field(..., description="Task ID")
    project_id: UUID = Field(..., description="Project ID")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    created_at: datetime = Field(..., description="Creation timestamp")

    class Config:
        from_attributes = True
