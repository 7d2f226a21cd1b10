"""
Contact form Pydantic schemas.
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, EmailStr, Field, validator
from uuid import UUID

from ..database.models import ContactFormStatus


class ContactFormCreateRequest(BaseModel):
    """Public contact form submission."""
    name: str = Field(..., min_length=1, max_length=255, description="Sender name")
    email: EmailStr = Field(..., description="Sender email")
    phone: Optional[str] = Field(None, max_length=50, description="Sender phone")
    company: Optional[str] = Field(None, max_length=255, description="Sender company")
    subject: Optional[str] = Field(None, max_length=255, description="Subject")
    message: str = Field(..., min_length=1, description="Message body")
    source: Optional[str] = Field(None, max_length=100, description="Page or campaign the form was sent from")


class ContactFormUpdateRequest(BaseModel):
    """Contact form triage update."""
    status: Optional[ContactFormStatus] = Field(None, description="New status")
    response: Optional[str] = Field(None, description="Reply sent to the sender")

    @validator('status')
    def reject_null(cls, v):
        if v is None:
            raise ValueError("status may not be null")
        return v


class ContactFormResponse(BaseModel):
    """Contact form response schema."""
    id: UUID = Field(..., description="Contact form ID")
    tenant_id: UUID = Field(..., description="Tenant ID")
    name: str = Field(..., description="Sender name")
    email: str = Field(..., description="Sender email")
    phone: Optional[str] = Field(None, description="Sender phone")
    company: Optional[str] = Field(None, description="Sender company")
    subject: Optional[str] = Field(None, description="Subject")
    message: str = Field(..., description="Message body")
    source: Optional[str] = Field(None, description="Origin of the submission")
    status: ContactFormStatus = Field(..., description="Triage status")
    response: Optional[str] = Field(None, description="Reply sent to the sender")
    responded_at: Optional[datetime] = Field(None, description="When the reply was recorded")
    responded_by: Optional[UUID] = Field(None, description="User who replied")
    user_agent: Optional[str] = Field(None, description="Submitting browser")
    ip_address: Optional[str] = Field(None, description="Submitting address")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        from_attributes = True


class ContactFormsListResponse(BaseModel):
    """Paginated contact form list."""
    contacts: List[ContactFormResponse] = Field(..., description="List of contact forms")
    total: int = Field(..., description="Total number of contact forms")
    page: int = Field(..., description="Current page number")
    limit: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Number of pages")


class ContactStatsResponse(BaseModel):
    """Contact form statistics."""
    total: int = Field(..., description="All submissions")
    pending: int = Field(..., description="Submissions awaiting a reply")
    responded: int = Field(..., description="Submissions replied to")
    this_month: int = Field(..., description="Submissions since the first of the month")
    this_week: int = Field(..., description="Submissions in the last 7 days")
    response_rate: float = Field(..., description="Percentage of submissions replied to")
