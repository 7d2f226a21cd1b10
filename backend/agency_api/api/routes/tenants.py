"""
Tenant management API routes.

Provides endpoints for creating tenants and reading the caller's tenant.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import func

from ...database.connection import get_db
from ...database.models import Tenant, User, Project
from ...schemas.tenant import TenantCreateRequest, TenantResponse
from ...auth.dependencies import get_current_user, get_super_admin_user, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["Tenants"])


def build_tenant_response(db: Session, tenant: Tenant) -> TenantResponse:
    """Build the API representation of a tenant with user and project counts."""
    user_count = db.query(func.count(User.id)).filter(User.tenant_id == tenant.id).scalar() or 0
    project_count = db.query(func.count(Project.id)).filter(Project.tenant_id == tenant.id).scalar() or 0

    return TenantResponse(
        id=tenant.id,
        name=tenant.name,
        slug=tenant.slug,
        type=tenant.type,
        domain=tenant.domain,
        settings=tenant.settings or {},
        active=tenant.active,
        created_at=tenant.created_at,
        updated_at=tenant.updated_at,
        user_count=user_count,
        project_count=project_count
    )


# PUBLIC_INTERFACE
@router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED,
            summary="Create new tenant",
            description="Create a new tenant (super admin only).")
async def create_tenant(
    request: TenantCreateRequest,
    current_user: CurrentUser = Depends(get_super_admin_user),
    db: Session = Depends(get_db)
):
    """
    Create a new tenant.

    Raises:
        HTTPException: 409 if the slug is already taken
    """
    existing_tenant = db.query(Tenant).filter(Tenant.slug == request.slug).first()
    if existing_tenant:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Tenant with this slug already exists"
        )

    tenant = Tenant(
        name=request.name,
        slug=request.slug,
        type=request.type,
        domain=request.domain,
        settings=request.settings or {}
    )

    db.add(tenant)
    db.commit()
    db.refresh(tenant)

    logger.info(f"Tenant {tenant.slug} created by {current_user.email}")
    return build_tenant_response(db, tenant)


# PUBLIC_INTERFACE
@router.get("/current", response_model=TenantResponse,
           summary="Get current tenant",
           description="Get the tenant the caller belongs to.")
async def get_current_tenant(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get the caller's tenant."""
    tenant = db.query(Tenant).filter(Tenant.id == current_user.tenant_id).first()
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found"
        )
    return build_tenant_response(db, tenant)
