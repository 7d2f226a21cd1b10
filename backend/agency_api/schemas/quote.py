"""
Quote-related Pydantic schemas.

Monetary fields are supplied by the caller and stored as given.
"""
from datetime import datetime
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, EmailStr, Field, validator
from uuid import UUID

from ..database.models import QuoteStatus


class QuoteServiceItem(BaseModel):
    """A service line on a quote."""
    id: str = Field(..., min_length=1, description="Service identifier")
    name: str = Field(..., min_length=1, description="Service name")
    base_price: float = Field(..., gt=0, description="Base price of the service")
    configuration: Optional[Dict[str, Any]] = Field(None, description="Service-specific options")
    estimated_hours: Optional[float] = Field(None, gt=0, description="Estimated hours for the service")


class QuoteCreateRequest(BaseModel):
    """Quote creation request schema."""
    client_name: str = Field(..., min_length=1, max_length=255, description="Client name")
    client_email: EmailStr = Field(..., description="Client email")
    client_phone: Optional[str] = Field(None, max_length=50, description="Client phone")
    client_company: Optional[str] = Field(None, max_length=255, description="Client company")
    project_name: str = Field(..., min_length=1, max_length=255, description="Project name")
    project_type: str = Field(..., min_length=1, max_length=100, description="Project type, e.g. web or ecommerce")
    description: Optional[str] = Field(None, description="Project description")
    services: List[QuoteServiceItem] = Field(..., description="Service lines")
    subtotal: float = Field(..., gt=0, description="Subtotal")
    tax: float = Field(0, ge=0, description="Tax amount")
    discount: float = Field(0, ge=0, description="Discount amount")
    total: float = Field(..., gt=0, description="Total")
    estimated_hours: Optional[float] = Field(None, gt=0, description="Estimated hours for the whole project")
    delivery_days: Optional[int] = Field(None, ge=1, le=365, description="Delivery time in days")
    valid_until: Optional[datetime] = Field(None, description="Offer expiry")
    notes: Optional[str] = Field(None, description="Notes visible to the client")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form metadata")


class AdminQuoteCreateRequest(QuoteCreateRequest):
    """Quote creation by staff, who may set internal notes and an initial status."""
    internal_notes: Optional[str] = Field(None, description="Staff-only notes")
    status: QuoteStatus = Field(QuoteStatus.DRAFT, description="Initial status")


class QuoteUpdateRequest(BaseModel):
    """Quote update request schema."""
    client_name: Optional[str] = Field(None, min_length=1, max_length=255, description="Client name")
    client_email: Optional[EmailStr] = Field(None, description="Client email")
    client_phone: Optional[str] = Field(None, max_length=50, description="Client phone")
    client_company: Optional[str] = Field(None, max_length=255, description="Client company")
    project_name: Optional[str] = Field(None, min_length=1, max_length=255, description="Project name")
    project_type: Optional[str] = Field(None, min_length=1, max_length=100, description="Project type")
    description: Optional[str] = Field(None, description="Project description")
    services: Optional[List[QuoteServiceItem]] = Field(None, description="Service lines")
    subtotal: Optional[float] = Field(None, gt=0, description="Subtotal")
    tax: Optional[float] = Field(None, ge=0, description="Tax amount")
    discount: Optional[float] = Field(None, ge=0, description="Discount amount")
    total: Optional[float] = Field(None, gt=0, description="Total")
    estimated_hours: Optional[float] = Field(None, gt=0, description="Estimated hours")
    delivery_days: Optional[int] = Field(None, ge=1, le=365, description="Delivery time in days")
    valid_until: Optional[datetime] = Field(None, description="Offer expiry")
    notes: Optional[str] = Field(None, description="Notes visible to the client")
    internal_notes: Optional[str] = Field(None, description="Staff-only notes")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form metadata")
    status: Optional[QuoteStatus] = Field(None, description="Quote status")

    @validator(
        'client_name', 'client_email', 'project_name', 'project_type', 'services',
        'subtotal', 'tax', 'discount', 'total', 'status'
    )
    def reject_null(cls, v):
        if v is None:
            raise ValueError("field may not be null")
        return v


class QuoteResponse(BaseModel):
    """Quote response schema."""
    id: UUID = Field(..., description="Quote ID")
    tenant_id: UUID = Field(..., description="Tenant ID")
    quote_number: str = Field(..., description="Human-readable quote number")
    client_name: str = Field(..., description="Client name")
    client_email: str = Field(..., description="Client email")
    client_phone: Optional[str] = Field(None, description="Client phone")
    client_company: Optional[str] = Field(None, description="Client company")
    project_name: str = Field(..., description="Project name")
    project_type: str = Field(..., description="Project type")
    description: Optional[str] = Field(None, description="Project description")
    services: List[QuoteServiceItem] = Field(..., description="Service lines")
    subtotal: float = Field(..., description="Subtotal")
    tax: float = Field(..., description="Tax amount")
    discount: float = Field(..., description="Discount amount")
    total: float = Field(..., description="Total")
    estimated_hours: Optional[float] = Field(None, description="Estimated hours")
    delivery_days: Optional[int] = Field(None, description="Delivery time in days")
    valid_until: Optional[datetime] = Field(None, description="Offer expiry")
    notes: Optional[str] = Field(None, description="Notes visible to the client")
    internal_notes: Optional[str] = Field(None, description="Staff-only notes")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Free-form metadata")
    status: QuoteStatus = Field(..., description="Quote status")
    project_id: Optional[UUID] = Field(None, description="Project created from this quote")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")


class PublicQuoteResponse(BaseModel):
    """Quote as shown to the prospective client; internal notes are withheld."""
    quote_number: str = Field(..., description="Human-readable quote number")
    client_name: str = Field(..., description="Client name")
    project_name: str = Field(..., description="Project name")
    project_type: str = Field(..., description="Project type")
    description: Optional[str] = Field(None, description="Project description")
    services: List[QuoteServiceItem] = Field(..., description="Service lines")
    subtotal: float = Field(..., description="Subtotal")
    tax: float = Field(..., description="Tax amount")
    discount: float = Field(..., description="Discount amount")
    total: float = Field(..., description="Total")
    estimated_hours: Optional[float] = Field(None, description="Estimated hours")
    delivery_days: Optional[int] = Field(None, description="Delivery time in days")
    valid_until: Optional[datetime] = Field(None, description="Offer expiry")
    notes: Optional[str] = Field(None, description="Notes visible to the client")
    status: QuoteStatus = Field(..., description="Quote status")
    created_at: datetime = Field(..., description="Creation timestamp")


class QuotesListResponse(BaseModel):
    """Quotes list response schema."""
    quotes: List[QuoteResponse] = Field(..., description="List of quotes")
    total: int = Field(..., description="Total number of matching quotes")
    page: int = Field(..., description="Current page")
    limit: int = Field(..., description="Items per page")
    total_pages: int = Field(..., description="Number of pages")


class QuoteStatsResponse(BaseModel):
    """Quote statistics response schema."""
    total: int = Field(..., description="Number of quotes")
    by_status: Dict[QuoteStatus, int] = Field(..., description="Number of quotes per status")
    total_value: float = Field(..., description="Sum of quote totals")
    average_value: float = Field(..., description="Average quote total")
