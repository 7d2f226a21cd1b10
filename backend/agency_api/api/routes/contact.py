"""
Contact form API routes.

Anyone can submit the contact form; submissions land in the default tenant.
Administrators triage them within their own tenant.
"""
import logging
import math
from datetime import datetime, timedelta
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from sqlalchemy.orm import Session
from uuid import UUID

from ...database.connection import get_db
from ...database.models import ContactForm, ContactFormStatus, Tenant, utcnow
from ...schemas.contact import (
    ContactFormCreateRequest, ContactFormUpdateRequest, ContactFormResponse,
    ContactFormsListResponse, ContactStatsResponse
)
from ...auth.dependencies import get_current_admin_user, get_default_tenant, CurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contact", tags=["Contact"])


def get_tenant_contact(db: Session, tenant_id: UUID, contact_id: UUID) -> ContactForm:
    contact = db.query(ContactForm).filter(
        ContactForm.id == contact_id,
        ContactForm.tenant_id == tenant_id
    ).first()
    if not contact:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contact form not found"
        )
    return contact


# PUBLIC_INTERFACE
@router.post("", response_model=ContactFormResponse, status_code=status.HTTP_201_CREATED,
            summary="Submit contact form (public)",
            description="Submit the public contact form. The sender's user agent and address are recorded.")
async def submit_contact_form(
    request: ContactFormCreateRequest,
    http_request: Request,
    tenant: Tenant = Depends(get_default_tenant),
    db: Session = Depends(get_db)
):
    """Store a contact form submission in the default tenant."""
    contact = ContactForm(
        tenant_id=tenant.id,
        user_agent=http_request.headers.get("user-agent"),
        ip_address=http_request.client.host if http_request.client else None,
        **request.dict()
    )

    db.add(contact)
    db.commit()
    db.refresh(contact)

    logger.info(f"Contact form {contact.id} received for tenant {tenant.slug}")
    return ContactFormResponse.from_orm(contact)


# PUBLIC_INTERFACE
@router.get("", response_model=ContactFormsListResponse,
           summary="List contact forms",
           description="Get a paginated list of contact forms, newest first. Requires admin privileges.")
async def list_contact_forms(
    contact_status: Optional[ContactFormStatus] = Query(None, alias="status", description="Filter by status"),
    email: Optional[str] = Query(None, description="Search by email"),
    name: Optional[str] = Query(None, description="Search by name"),
    source: Optional[str] = Query(None, description="Filter by source"),
    start_date: Optional[datetime] = Query(None, description="Received on or after"),
    end_date: Optional[datetime] = Query(None, description="Received on or before"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    current_user: CurrentUser = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """List the contact forms of the admin's tenant."""
    query = db.query(ContactForm).filter(ContactForm.tenant_id == current_user.tenant_id)

    if contact_status:
        query = query.filter(ContactForm.status == contact_status)
    if email:
        query = query.filter(ContactForm.email.ilike(f"%{email}%"))
    if name:
        query = query.filter(ContactForm.name.ilike(f"%{name}%"))
    if source:
        query = query.filter(ContactForm.source == source)
    if start_date:
        query = query.filter(ContactForm.created_at >= start_date)
    if end_date:
        query = query.filter(ContactForm.created_at <= end_date)

    total = query.count()
    offset = (page - 1) * limit
    contacts = query.order_by(ContactForm.created_at.desc()).offset(offset).limit(limit).all()

    return ContactFormsListResponse(
        contacts=[ContactFormResponse.from_orm(contact) for contact in contacts],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit)
    )


# PUBLIC_INTERFACE
@router.get("/stats", response_model=ContactStatsResponse,
           summary="Contact form statistics",
           description="Counts of submissions by status and recency, with the response rate in percent.")
async def get_contact_stats(
    current_user: CurrentUser = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """Summarise the contact forms of the admin's tenant."""
    base = db.query(ContactForm).filter(ContactForm.tenant_id == current_user.tenant_id)

    now = utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    week_start = now - timedelta(days=7)

    total = base.count()
    pending = base.filter(ContactForm.status == ContactFormStatus.PENDING).count()
    responded = base.filter(ContactForm.status == ContactFormStatus.RESPONDED).count()
    this_month = base.filter(ContactForm.created_at >= month_start).count()
    this_week = base.filter(ContactForm.created_at >= week_start).count()

    return ContactStatsResponse(
        total=total,
        pending=pending,
        responded=responded,
        this_month=this_month,
        this_week=this_week,
        response_rate=round(responded / total * 100) if total > 0 else 0
    )


# PUBLIC_INTERFACE
@router.get("/{contact_id}", response_model=ContactFormResponse,
           summary="Get contact form",
           description="Get a contact form of the admin's tenant.")
async def get_contact_form(
    contact_id: UUID,
    current_user: CurrentUser = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    contact = get_tenant_contact(db, current_user.tenant_id, contact_id)
    return ContactFormResponse.from_orm(contact)


# PUBLIC_INTERFACE
@router.patch("/{contact_id}", response_model=ContactFormResponse,
             summary="Update contact form",
             description="Change the status of a contact form or record a reply. Marking RESPONDED with a reply stamps who replied and when.")
async def update_contact_form(
    contact_id: UUID,
    request: ContactFormUpdateRequest,
    current_user: CurrentUser = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    """Triage a contact form."""
    contact = get_tenant_contact(db, current_user.tenant_id, contact_id)

    update_data = request.dict(exclude_unset=True)
    for field, value in update_data.items():
        setattr(contact, field, value)

    if request.status == ContactFormStatus.RESPONDED and request.response:
        contact.responded_at = utcnow()
        contact.responded_by = current_user.user_id

    db.commit()
    db.refresh(contact)

    return ContactFormResponse.from_orm(contact)


# PUBLIC_INTERFACE
@router.delete("/{contact_id}", status_code=status.HTTP_204_NO_CONTENT,
              summary="Delete contact form",
              description="Delete a contact form of the admin's tenant.")
async def delete_contact_form(
    contact_id: UUID,
    current_user: CurrentUser = Depends(get_current_admin_user),
    db: Session = Depends(get_db)
):
    contact = get_tenant_contact(db, current_user.tenant_id, contact_id)
    db.delete(contact)
    db.commit()
