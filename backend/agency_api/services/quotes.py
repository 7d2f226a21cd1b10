"""
Quote lifecycle: numbering, lookups, status changes and conversion into a
project.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database.models import (
    Client, Project, ProjectStatus, Quote, QuoteSequence, QuoteStatus
)
from ..schemas.quote import (
    PublicQuoteResponse, QuoteResponse, QuoteStatsResponse, QuotesListResponse
)

logger = logging.getLogger(__name__)

QUOTE_PREFIX = "QUO"
ORDERABLE_FIELDS = {
    "created_at": Quote.created_at,
    "total": Quote.total,
    "status": Quote.status,
    "quote_number": Quote.quote_number,
}


def format_quote_number(year: int, sequence: int) -> str:
    """Render a quote number such as QUO-2024-0007."""
    return f"{QUOTE_PREFIX}-{year}-{sequence:04d}"


def _increment_sequence(db: Session, tenant_id: UUID, year: int) -> int:
    return db.query(QuoteSequence).filter(
        QuoteSequence.tenant_id == tenant_id,
        QuoteSequence.year == year
    ).update(
        {QuoteSequence.last_value: QuoteSequence.last_value + 1},
        synchronize_session=False
    )


# PUBLIC_INTERFACE
def next_quote_number(db: Session, tenant_id: UUID, now: Optional[datetime] = None) -> str:
    """
    Allocate the next quote number for a tenant.

    The per (tenant, year) counter is advanced with a single UPDATE, so two
    requests never read the same value. The first number of a year seeds
    the counter from the count of that year's existing quotes. This must be
    the first write of its transaction: losing the seeding race rolls the
    session back before retrying the increment.

    Args:
        db: Database session
        tenant_id: Tenant the quote belongs to
        now: Reference time, defaults to the current UTC time

    Returns:
        str: Quote number
    """
    now = now or datetime.now(timezone.utc)
    year = now.year

    if not _increment_sequence(db, tenant_id, year):
        start = datetime(year, 1, 1, tzinfo=timezone.utc)
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
        existing = db.query(func.count(Quote.id)).filter(
            Quote.tenant_id == tenant_id,
            Quote.created_at >= start,
            Quote.created_at < end
        ).scalar() or 0
        try:
            db.add(QuoteSequence(tenant_id=tenant_id, year=year, last_value=existing + 1))
            db.flush()
        except IntegrityError:
            db.rollback()
            _increment_sequence(db, tenant_id, year)

    sequence = db.query(QuoteSequence.last_value).filter(
        QuoteSequence.tenant_id == tenant_id,
        QuoteSequence.year == year
    ).scalar()
    return format_quote_number(year, sequence)


def quote_to_response(quote: Quote) -> QuoteResponse:
    """Build the API representation of a quote."""
    return QuoteResponse(
        id=quote.id,
        tenant_id=quote.tenant_id,
        quote_number=quote.quote_number,
        client_name=quote.client_name,
        client_email=quote.client_email,
        client_phone=quote.client_phone,
        client_company=quote.client_company,
        project_name=quote.project_name,
        project_type=quote.project_type,
        description=quote.description,
        services=quote.services or [],
        subtotal=quote.subtotal,
        tax=quote.tax,
        discount=quote.discount,
        total=quote.total,
        estimated_hours=quote.estimated_hours,
        delivery_days=quote.delivery_days,
        valid_until=quote.valid_until,
        notes=quote.notes,
        internal_notes=quote.internal_notes,
        metadata=quote.extra_metadata,
        status=quote.status,
        project_id=quote.project_id,
        created_at=quote.created_at,
        updated_at=quote.updated_at,
    )


def quote_to_public_response(quote: Quote) -> PublicQuoteResponse:
    """Build the client-facing representation of a quote."""
    return PublicQuoteResponse(
        quote_number=quote.quote_number,
        client_name=quote.client_name,
        project_name=quote.project_name,
        project_type=quote.project_type,
        description=quote.description,
        services=quote.services or [],
        subtotal=quote.subtotal,
        tax=quote.tax,
        discount=quote.discount,
        total=quote.total,
        estimated_hours=quote.estimated_hours,
        delivery_days=quote.delivery_days,
        valid_until=quote.valid_until,
        notes=quote.notes,
        status=quote.status,
        created_at=quote.created_at,
    )


def _quote_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    if "metadata" in data:
        data["extra_metadata"] = data.pop("metadata")
    return data


# PUBLIC_INTERFACE
def create_quote(db: Session, tenant_id: UUID, data: Dict[str, Any]) -> Quote:
    """
    Number and store a new quote.

    Args:
        db: Database session
        tenant_id: Owning tenant
        data: Validated quote fields (services as plain dicts)

    Returns:
        Quote: The stored quote

    Raises:
        HTTPException: 409 if the number is already taken in this tenant
    """
    quote_number = next_quote_number(db, tenant_id)
    quote = Quote(tenant_id=tenant_id, quote_number=quote_number, **_quote_fields(dict(data)))
    db.add(quote)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Quote number already exists"
        )
    db.refresh(quote)

    logger.info(f"Quote {quote.quote_number} created for tenant {tenant_id}")
    return quote


# PUBLIC_INTERFACE
def list_quotes(
    db: Session,
    tenant_id: UUID,
    status_filter: Optional[QuoteStatus] = None,
    project_type: Optional[str] = None,
    client_email: Optional[str] = None,
    client_name: Optional[str] = None,
    quote_number: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    order_by: str = "created_at",
    order_direction: str = "desc",
    page: int = 1,
    limit: int = 10,
) -> QuotesListResponse:
    """List a tenant's quotes with filtering, ordering and pagination."""
    query = db.query(Quote).filter(Quote.tenant_id == tenant_id)

    if status_filter:
        query = query.filter(Quote.status == status_filter)
    if project_type:
        query = query.filter(Quote.project_type == project_type)
    if client_email:
        query = query.filter(Quote.client_email.ilike(f"%{client_email}%"))
    if client_name:
        query = query.filter(Quote.client_name.ilike(f"%{client_name}%"))
    if quote_number:
        query = query.filter(Quote.quote_number.ilike(f"%{quote_number}%"))
    if search:
        query = query.filter(or_(
            Quote.client_name.ilike(f"%{search}%"),
            Quote.client_email.ilike(f"%{search}%"),
            Quote.project_name.ilike(f"%{search}%"),
            Quote.quote_number.ilike(f"%{search}%"),
        ))
    if start_date:
        query = query.filter(Quote.created_at >= start_date)
    if end_date:
        query = query.filter(Quote.created_at <= end_date)

    total = query.count()

    column = ORDERABLE_FIELDS.get(order_by, Quote.created_at)
    query = query.order_by(column.asc() if order_direction == "asc" else column.desc())
    quotes = query.offset((page - 1) * limit).limit(limit).all()

    return QuotesListResponse(
        quotes=[quote_to_response(quote) for quote in quotes],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit) if total else 0,
    )


# PUBLIC_INTERFACE
def get_quote(db: Session, tenant_id: UUID, quote_id: UUID) -> Quote:
    """
    Load a quote of the tenant.

    Raises:
        HTTPException: 404 if absent or owned by another tenant
    """
    quote = db.query(Quote).filter(
        Quote.id == quote_id,
        Quote.tenant_id == tenant_id
    ).first()
    if not quote:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Quote not found"
        )
    return quote


# PUBLIC_INTERFACE
def view_public_quote(db: Session, tenant_id: UUID, quote_number: str) -> Quote:
    """
    Look a quote up by number and mark it VIEWED.

    Repeated reads set VIEWED again, which is harmless. Quotes already
    decided (approved, rejected, expired or converted) keep their status.

    Raises:
        HTTPException: 404 if no quote has this number
    """
    quote = db.query(Quote).filter(
        Quote.tenant_id == tenant_id,
        Quote.quote_number == quote_number
    ).first()
    if not quote:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Quote not found"
        )

    if quote.status in (QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.VIEWED):
        quote.status = QuoteStatus.VIEWED
        db.commit()
        db.refresh(quote)
    return quote


# PUBLIC_INTERFACE
def update_quote(db: Session, quote: Quote, data: Dict[str, Any]) -> Quote:
    """Apply a partial update to a quote."""
    for field, value in _quote_fields(dict(data)).items():
        setattr(quote, field, value)
    db.commit()
    db.refresh(quote)
    return quote


# PUBLIC_INTERFACE
def set_status(db: Session, quote: Quote, new_status: QuoteStatus) -> Quote:
    """Move a quote to a new status."""
    previous = quote.status
    quote.status = new_status
    db.commit()
    db.refresh(quote)
    logger.info(f"Quote {quote.quote_number} moved from {previous.value} to {new_status.value}")
    return quote


# PUBLIC_INTERFACE
def delete_quote(db: Session, quote: Quote) -> None:
    """Delete a quote."""
    db.delete(quote)
    db.commit()
    logger.info(f"Quote {quote.quote_number} deleted")


def _quoted_hours(quote: Quote) -> float:
    if quote.estimated_hours:
        return float(quote.estimated_hours)
    return float(sum((service.get("estimated_hours") or 0) for service in (quote.services or [])))


# PUBLIC_INTERFACE
def convert_to_project(db: Session, quote: Quote) -> Tuple[Quote, Project]:
    """
    Turn an approved quote into a project.

    The project's client is the tenant's client with the quote's email,
    created from the quote's contact fields when none exists. Quoted hours
    come from the quote's estimate or, failing that, the sum of its service
    estimates; the hourly rate is the total spread over those hours.

    Args:
        db: Database session
        quote: Quote to convert

    Returns:
        Tuple[Quote, Project]: The converted quote and the new project

    Raises:
        HTTPException: 409 unless the quote is APPROVED and not yet linked
            to a project
    """
    if quote.status != QuoteStatus.APPROVED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only approved quotes can be converted to projects"
        )
    if quote.project_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Quote has already been converted to project"
        )

    client = db.query(Client).filter(
        Client.tenant_id == quote.tenant_id,
        Client.email == quote.client_email
    ).first()
    if not client:
        client = Client(
            tenant_id=quote.tenant_id,
            name=quote.client_name,
            email=quote.client_email,
            phone=quote.client_phone,
            company=quote.client_company,
        )
        db.add(client)
        db.flush()

    quoted_hours = _quoted_hours(quote)
    hourly_rate = round(float(quote.total) / quoted_hours, 2) if quoted_hours else 0.0

    project = Project(
        tenant_id=quote.tenant_id,
        client_id=client.id,
        name=quote.project_name,
        description=quote.description,
        status=ProjectStatus.PLANNING,
        quoted_hours=quoted_hours,
        used_hours=0,
        hourly_rate=hourly_rate,
        quotation_data={
            "quote_id": str(quote.id),
            "quote_number": quote.quote_number,
            "project_type": quote.project_type,
            "services": quote.services or [],
            "subtotal": quote.subtotal,
            "tax": quote.tax,
            "discount": quote.discount,
            "total": quote.total,
            "delivery_days": quote.delivery_days,
        },
    )
    db.add(project)
    db.flush()

    quote.project_id = project.id
    quote.status = QuoteStatus.CONVERTED
    db.commit()
    db.refresh(quote)
    db.refresh(project)

    logger.info(f"Quote {quote.quote_number} converted to project {project.id}")
    return quote, project


# PUBLIC_INTERFACE
def quote_stats(db: Session, tenant_id: UUID) -> QuoteStatsResponse:
    """Count a tenant's quotes per status and total their value."""
    rows = db.query(
        Quote.status,
        func.count(Quote.id),
        func.coalesce(func.sum(Quote.total), 0)
    ).filter(Quote.tenant_id == tenant_id).group_by(Quote.status).all()

    by_status = {quote_status: 0 for quote_status in QuoteStatus}
    total = 0
    total_value = 0.0
    for quote_status, count, value in rows:
        by_status[quote_status] = count
        total += count
        total_value += float(value)

    return QuoteStatsResponse(
        total=total,
        by_status=by_status,
        total_value=total_value,
        average_value=total_value / total if total else 0.0,
    )
