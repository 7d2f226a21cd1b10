"""
Quote API routes.

Prospective clients submit and view quotes through the public routes, which
act on the default tenant. Staff manage their tenant's quotes and convert
approved ones into projects.
"""
from datetime import datetime
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, status, Query
from sqlalchemy.orm import Session
from uuid import UUID

from ...database.connection import get_db
from ...database.models import QuoteStatus, Tenant
from ...schemas.client import ProjectResponse
from ...schemas.quote import (
    AdminQuoteCreateRequest, PublicQuoteResponse, QuoteCreateRequest,
    QuoteResponse, QuoteStatsResponse, QuotesListResponse, QuoteUpdateRequest
)
from ...auth.dependencies import get_default_tenant, get_tenant_filter, TenantFilter
from ...integrations.n8n import N8nClient, get_n8n_client
from ...services import quotes as quote_service

router = APIRouter(prefix="/quotes", tags=["Quotes"])


# PUBLIC_INTERFACE
@router.post("", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED,
            summary="Submit quote (public)",
            description="Submit a quote request from the public site. The quote is stored in the default tenant as DRAFT.")
async def create_public_quote(
    request: QuoteCreateRequest,
    tenant: Tenant = Depends(get_default_tenant),
    db: Session = Depends(get_db)
):
    """Number and store a quote submitted by a prospective client."""
    quote = quote_service.create_quote(db, tenant.id, request.dict())
    return quote_service.quote_to_response(quote)


# PUBLIC_INTERFACE
@router.post("/admin", response_model=QuoteResponse, status_code=status.HTTP_201_CREATED,
            summary="Create quote",
            description="Create a quote in the caller's tenant, optionally with internal notes and an initial status.")
async def create_admin_quote(
    request: AdminQuoteCreateRequest,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Create a quote on behalf of a client."""
    quote = quote_service.create_quote(db, tenant_filter.tenant_id, request.dict())
    return quote_service.quote_to_response(quote)


# PUBLIC_INTERFACE
@router.get("", response_model=QuotesListResponse,
           summary="List quotes",
           description="Get a paginated, filterable list of the tenant's quotes.")
async def list_quotes(
    quote_status: Optional[QuoteStatus] = Query(None, alias="status", description="Filter by status"),
    project_type: Optional[str] = Query(None, description="Filter by project type"),
    client_email: Optional[str] = Query(None, description="Search by client email"),
    client_name: Optional[str] = Query(None, description="Search by client name"),
    quote_number: Optional[str] = Query(None, description="Search by quote number"),
    search: Optional[str] = Query(None, description="Search client, project and number"),
    start_date: Optional[datetime] = Query(None, description="Created on or after"),
    end_date: Optional[datetime] = Query(None, description="Created on or before"),
    order_by: str = Query("created_at", description="created_at, total, status or quote_number"),
    order_direction: str = Query("desc", pattern="^(asc|desc)$", description="asc or desc"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """List the tenant's quotes."""
    return quote_service.list_quotes(
        db, tenant_filter.tenant_id,
        status_filter=quote_status,
        project_type=project_type,
        client_email=client_email,
        client_name=client_name,
        quote_number=quote_number,
        search=search,
        start_date=start_date,
        end_date=end_date,
        order_by=order_by,
        order_direction=order_direction,
        page=page,
        limit=limit,
    )


# PUBLIC_INTERFACE
@router.get("/stats", response_model=QuoteStatsResponse,
           summary="Quote statistics",
           description="Count the tenant's quotes per status and total their value.")
async def get_quote_stats(
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Get quote statistics for the tenant."""
    return quote_service.quote_stats(db, tenant_filter.tenant_id)


# PUBLIC_INTERFACE
@router.get("/public/{quote_number}", response_model=PublicQuoteResponse,
           summary="View quote (public)",
           description="Fetch a quote of the default tenant by its number. Viewing marks an undecided quote as VIEWED.")
async def view_public_quote(
    quote_number: str,
    tenant: Tenant = Depends(get_default_tenant),
    db: Session = Depends(get_db)
):
    """Show a quote to the prospective client and mark it viewed."""
    quote = quote_service.view_public_quote(db, tenant.id, quote_number)
    return quote_service.quote_to_public_response(quote)


# PUBLIC_INTERFACE
@router.get("/{quote_id}", response_model=QuoteResponse,
           summary="Get quote",
           description="Get a quote of the caller's tenant.")
async def get_quote(
    quote_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Get a quote by id."""
    quote = quote_service.get_quote(db, tenant_filter.tenant_id, quote_id)
    return quote_service.quote_to_response(quote)


# PUBLIC_INTERFACE
@router.patch("/{quote_id}", response_model=QuoteResponse,
             summary="Update quote",
             description="Update a quote. Only provided fields are changed.")
async def update_quote(
    quote_id: UUID,
    request: QuoteUpdateRequest,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Update a quote of the caller's tenant."""
    quote = quote_service.get_quote(db, tenant_filter.tenant_id, quote_id)
    quote = quote_service.update_quote(db, quote, request.dict(exclude_unset=True))
    return quote_service.quote_to_response(quote)


# PUBLIC_INTERFACE
@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT,
              summary="Delete quote",
              description="Delete a quote of the caller's tenant.")
async def delete_quote(
    quote_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Delete a quote."""
    quote = quote_service.get_quote(db, tenant_filter.tenant_id, quote_id)
    quote_service.delete_quote(db, quote)


# PUBLIC_INTERFACE
@router.patch("/{quote_id}/approve", response_model=QuoteResponse,
             summary="Approve quote",
             description="Mark a quote as APPROVED.")
async def approve_quote(
    quote_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Approve a quote."""
    quote = quote_service.get_quote(db, tenant_filter.tenant_id, quote_id)
    quote = quote_service.set_status(db, quote, QuoteStatus.APPROVED)
    return quote_service.quote_to_response(quote)


# PUBLIC_INTERFACE
@router.patch("/{quote_id}/reject", response_model=QuoteResponse,
             summary="Reject quote",
             description="Mark a quote as REJECTED.")
async def reject_quote(
    quote_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Reject a quote."""
    quote = quote_service.get_quote(db, tenant_filter.tenant_id, quote_id)
    quote = quote_service.set_status(db, quote, QuoteStatus.REJECTED)
    return quote_service.quote_to_response(quote)


# PUBLIC_INTERFACE
@router.post("/{quote_id}/convert-to-project", response_model=ProjectResponse,
            status_code=status.HTTP_201_CREATED,
            summary="Convert quote to project",
            description="Create a project from an APPROVED quote, link it and mark the quote CONVERTED. A quote converts at most once.")
async def convert_quote(
    quote_id: UUID,
    background_tasks: BackgroundTasks,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    n8n: N8nClient = Depends(get_n8n_client),
    db: Session = Depends(get_db)
):
    """
    Convert an approved quote into a project.

    The project-approved workflow is notified after the response is sent.
    """
    quote = quote_service.get_quote(db, tenant_filter.tenant_id, quote_id)
    quote, project = quote_service.convert_to_project(db, quote)

    n8n.notify_project_approved(project)
    background_tasks.add_task(n8n.outbox.dispatch_pending)

    return ProjectResponse.from_orm(project)
