"""
Time tracking-related Pydantic schemas.

Defines request/response models for time entries and project hour reports.
"""
from datetime import date as date_type, datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, Field, validator
from uuid import UUID


class TimeEntryCreateRequest(BaseModel):
    """Time entry creation request schema."""
    project_id: UUID = Field(..., description="Project ID")
    task_id: Optional[UUID] = Field(None, description="Task ID")
    description: str = Field(..., min_length=1, description="Work description")
    hours: float = Field(..., ge=0.1, description="Hours worked")
    date: date_type = Field(..., description="Day the work was done")
    notes: Optional[str] = Field(None, description="Additional notes")
    hourly_rate: Optional[float] = Field(None, ge=0, description="Rate overriding the project's")
    billable: bool = Field(default=True, description="Whether time is billable")


class TimeEntryUpdateRequest(BaseModel):
    """Time entry update request schema."""
    task_id: Optional[UUID] = Field(None, description="Task ID")
    description: Optional[str] = Field(None, min_length=1, description="Work description")
    hours: Optional[float] = Field(None, ge=0.1, description="Hours worked")
    date: Optional[date_type] = Field(None, description="Day the work was done")
    notes: Optional[str] = Field(None, description="Additional notes")
    hourly_rate: Optional[float] = Field(None, ge=0, description="Rate overriding the project's")
    billable: Optional[bool] = Field(None, description="Whether time is billable")

    @validator('description', 'hours', 'date', 'billable')
    def reject_null(cls, v):
        """Task and notes can be cleared; the other fields cannot."""
        if v is None:
            raise ValueError("field may not be null")
        return v


class TimeEntryResponse(BaseModel):
    """Time entry response schema."""
    id: UUID = Field(..., description="Time entry ID")
    project_id: UUID = Field(..., description="Project ID")
    user_id: UUID = Field(..., description="User ID")
    task_id: Optional[UUID] = Field(None, description="Task ID")
    description: str = Field(..., description="Work description")
    hours: float = Field(..., description="Hours worked")
    date: date_type = Field(..., description="Day the work was done")
    notes: Optional[str] = Field(None, description="Additional notes")
    hourly_rate: Optional[float] = Field(None, description="Hourly rate")
    billable: bool = Field(..., description="Whether time is billable")
    billed: bool = Field(..., description="Whether the entry has been invoiced")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class TimeEntriesListResponse(BaseModel):
    """Time entries list response schema."""
    entries: List[TimeEntryResponse] = Field(..., description="List of time entries")
    total: int = Field(..., description="Total number of matching entries")
    page: int = Field(..., description="Current page")
    limit: int = Field(..., description="Items per page")
    total_hours: float = Field(..., description="Hours across all matching entries")
    billable_hours: float = Field(..., description="Billable hours across all matching entries")


class UserHours(BaseModel):
    """Hours logged by one user on a project."""
    user_id: UUID = Field(..., description="User ID")
    name: str = Field(..., description="User display name")
    hours: float = Field(..., description="Hours logged")


class ProjectHoursReport(BaseModel):
    """Project hours report schema."""
    project_id: UUID = Field(..., description="Project ID")
    project_name: str = Field(..., description="Project name")
    quoted_hours: float = Field(..., description="Hours sold to the client")
    used_hours: float = Field(..., description="Sum of logged hours")
    remaining_hours: float = Field(..., description="Quoted minus used hours")
    percentage_used: float = Field(..., description="Used hours as a percentage of quoted hours")
    over_budget_warning: bool = Field(..., description="True once 80% of quoted hours are used")
    by_user: List[UserHours] = Field(..., description="Hours per user")
    by_date: Dict[str, float] = Field(..., description="Hours per ISO date")
    entries: List[TimeEntryResponse] = Field(..., description="Entries, newest first")
