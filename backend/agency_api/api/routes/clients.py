"""
Client management API routes.

Provides endpoints for client CRUD operations within the caller's tenant.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from uuid import UUID

from ...database.connection import get_db
from ...database.models import Client, Project
from ...schemas.client import (
    ClientCreateRequest, ClientUpdateRequest, ClientResponse, ClientsListResponse
)
from ...auth.dependencies import get_tenant_filter, TenantFilter

router = APIRouter(prefix="/clients", tags=["Clients"])


def build_client_response(db: Session, client: Client) -> ClientResponse:
    """Build the API representation of a client with its project count."""
    project_count = db.query(func.count(Project.id)).filter(
        Project.client_id == client.id
    ).scalar() or 0

    return ClientResponse(
        id=client.id,
        tenant_id=client.tenant_id,
        name=client.name,
        email=client.email,
        phone=client.phone,
        company=client.company,
        tax_id=client.tax_id,
        address=client.address,
        invoice_ninja_id=client.invoice_ninja_id,
        sync_status=client.sync_status,
        last_sync_at=client.last_sync_at,
        created_at=client.created_at,
        updated_at=client.updated_at,
        project_count=project_count
    )


def get_tenant_client(db: Session, tenant_filter: TenantFilter, client_id: UUID) -> Client:
    """
    Load a client of the caller's tenant.

    Raises:
        HTTPException: 404 if absent or owned by another tenant
    """
    client = tenant_filter.filter_query(db.query(Client), Client).filter(
        Client.id == client_id
    ).first()
    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )
    return client


# PUBLIC_INTERFACE
@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED,
            summary="Create new client",
            description="Create a new client within the caller's tenant.")
async def create_client(
    request: ClientCreateRequest,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Create a new client associated with the caller's tenant."""
    data = request.dict()
    client = Client(tenant_id=tenant_filter.tenant_id, **data)

    db.add(client)
    db.commit()
    db.refresh(client)

    return build_client_response(db, client)


# PUBLIC_INTERFACE
@router.get("", response_model=ClientsListResponse,
           summary="List clients",
           description="Get a paginated list of clients, optionally searching name, email and company.")
async def list_clients(
    search: Optional[str] = Query(None, description="Search in name, email or company"),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(10, ge=1, le=100, description="Items per page"),
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """List clients of the caller's tenant with search and pagination."""
    query = tenant_filter.filter_query(db.query(Client), Client)

    if search:
        query = query.filter(or_(
            Client.name.ilike(f"%{search}%"),
            Client.email.ilike(f"%{search}%"),
            Client.company.ilike(f"%{search}%"),
        ))

    total = query.count()
    offset = (page - 1) * per_page
    clients = query.order_by(Client.created_at.desc()).offset(offset).limit(per_page).all()

    return ClientsListResponse(
        clients=[build_client_response(db, client) for client in clients],
        total=total,
        page=page,
        per_page=per_page
    )


# PUBLIC_INTERFACE
@router.get("/{client_id}", response_model=ClientResponse,
           summary="Get client details",
           description="Get detailed information about a specific client.")
async def get_client(
    client_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Get a client of the caller's tenant."""
    client = get_tenant_client(db, tenant_filter, client_id)
    return build_client_response(db, client)


# PUBLIC_INTERFACE
@router.patch("/{client_id}", response_model=ClientResponse,
             summary="Update client",
             description="Update client information. Only provided fields are changed.")
async def update_client(
    client_id: UUID,
    request: ClientUpdateRequest,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Update the specified client; only provided fields are updated."""
    client = get_tenant_client(db, tenant_filter, client_id)

    update_data = request.dict(exclude_unset=True)
    for field, value in update_data.items():
        setattr(client, field, value)

    db.commit()
    db.refresh(client)

    return build_client_response(db, client)


# PUBLIC_INTERFACE
@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT,
              summary="Delete client",
              description="Delete a client if it has no associated projects.")
async def delete_client(
    client_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Permanently delete a client that has no projects."""
    client = get_tenant_client(db, tenant_filter, client_id)

    project_count = db.query(func.count(Project.id)).filter(
        Project.client_id == client_id
    ).scalar()

    if project_count > 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete client with projects"
        )

    db.delete(client)
    db.commit()
