"""
Time entry bookkeeping and project hour reports.

A project's used_hours is a cache of the sum of its entries' hours. It is
rewritten by one UPDATE after every entry change, so concurrent changes can
never leave it off by an increment.
"""
import logging
from collections import OrderedDict
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..database.models import Project, Task, TimeEntry
from ..schemas.time_tracking import (
    ProjectHoursReport, TimeEntriesListResponse, TimeEntryResponse, UserHours
)

logger = logging.getLogger(__name__)

OVER_BUDGET_PERCENTAGE = 80


# PUBLIC_INTERFACE
def recompute_used_hours(db: Session, project_id: UUID) -> None:
    """
    Set a project's used_hours to the sum of its entries' hours.

    Runs as a single UPDATE with a correlated subquery; the caller commits.

    Args:
        db: Database session
        project_id: Project to recompute
    """
    total_hours = select(
        func.coalesce(func.sum(TimeEntry.hours), 0)
    ).where(TimeEntry.project_id == project_id).scalar_subquery()

    db.query(Project).filter(Project.id == project_id).update(
        {Project.used_hours: total_hours},
        synchronize_session=False
    )


def get_tenant_project(db: Session, tenant_id: UUID, project_id: UUID) -> Project:
    """
    Load a project of the tenant.

    Raises:
        HTTPException: 404 if absent or owned by another tenant
    """
    project = db.query(Project).filter(
        Project.id == project_id,
        Project.tenant_id == tenant_id
    ).first()
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found"
        )
    return project


def _check_task(db: Session, project_id: UUID, task_id: Optional[UUID]) -> None:
    if task_id is None:
        return
    task = db.query(Task).filter(Task.id == task_id, Task.project_id == project_id).first()
    if not task:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Task not found"
        )


def get_own_entry(db: Session, user_id: UUID, entry_id: UUID) -> TimeEntry:
    """
    Load a time entry logged by the user.

    Raises:
        HTTPException: 404 if absent or logged by someone else
    """
    entry = db.query(TimeEntry).filter(
        TimeEntry.id == entry_id,
        TimeEntry.user_id == user_id
    ).first()
    if not entry:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Time entry not found"
        )
    return entry


# PUBLIC_INTERFACE
def create_entry(db: Session, tenant_id: UUID, user_id: UUID, data: dict) -> TimeEntry:
    """
    Log hours against a project of the caller's tenant.

    Args:
        db: Database session
        tenant_id: Caller's tenant
        user_id: Caller
        data: Validated entry fields

    Returns:
        TimeEntry: The stored entry; its project's used_hours is up to date

    Raises:
        HTTPException: 404 for an unknown project or a task of another project
    """
    project = get_tenant_project(db, tenant_id, data["project_id"])
    _check_task(db, project.id, data.get("task_id"))

    entry = TimeEntry(user_id=user_id, **data)
    db.add(entry)
    db.flush()
    recompute_used_hours(db, project.id)
    db.commit()
    db.refresh(entry)
    db.refresh(project)

    logger.info(f"{entry.hours}h logged on project {project.id}, {project.used_hours}h used")
    return entry


# PUBLIC_INTERFACE
def update_entry(db: Session, entry: TimeEntry, data: dict) -> TimeEntry:
    """Apply a partial update to an entry and recompute its project's hours."""
    if "task_id" in data:
        _check_task(db, entry.project_id, data["task_id"])
    for field, value in data.items():
        setattr(entry, field, value)
    db.flush()
    recompute_used_hours(db, entry.project_id)
    db.commit()
    db.refresh(entry)
    db.refresh(entry.project)
    return entry


# PUBLIC_INTERFACE
def delete_entry(db: Session, entry: TimeEntry) -> None:
    """Delete an entry and recompute its project's hours."""
    project_id = entry.project_id
    db.delete(entry)
    db.flush()
    recompute_used_hours(db, project_id)
    db.commit()


# PUBLIC_INTERFACE
def list_user_entries(
    db: Session,
    user_id: UUID,
    project_id: Optional[UUID] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> TimeEntriesListResponse:
    """List the user's entries, newest first."""
    query = db.query(TimeEntry).filter(TimeEntry.user_id == user_id)
    if project_id:
        query = query.filter(TimeEntry.project_id == project_id)
    if start_date:
        query = query.filter(TimeEntry.date >= start_date)
    if end_date:
        query = query.filter(TimeEntry.date <= end_date)
    if search:
        query = query.filter(TimeEntry.description.ilike(f"%{search}%"))

    total = query.count()
    total_hours = query.with_entities(func.coalesce(func.sum(TimeEntry.hours), 0)).scalar()
    billable_hours = query.filter(TimeEntry.billable == True).with_entities(
        func.coalesce(func.sum(TimeEntry.hours), 0)
    ).scalar()

    entries = query.order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc()).offset(
        (page - 1) * limit
    ).limit(limit).all()

    return TimeEntriesListResponse(
        entries=[TimeEntryResponse.from_orm(entry) for entry in entries],
        total=total,
        page=page,
        limit=limit,
        total_hours=float(total_hours or 0),
        billable_hours=float(billable_hours or 0),
    )


# PUBLIC_INTERFACE
def project_report(db: Session, project: Project) -> ProjectHoursReport:
    """
    Summarise a project's hours.

    Args:
        db: Database session
        project: Project to report on

    Returns:
        ProjectHoursReport: Totals, per-user and per-day hours, and entries
    """
    entries = db.query(TimeEntry).filter(
        TimeEntry.project_id == project.id
    ).order_by(TimeEntry.date.desc(), TimeEntry.created_at.desc()).all()

    quoted = project.quoted_hours or 0
    used = project.used_hours or 0
    percentage_used = used * 100 / quoted if quoted else 0.0

    by_user = OrderedDict()
    by_date = OrderedDict()
    for entry in entries:
        if entry.user_id not in by_user:
            by_user[entry.user_id] = UserHours(
                user_id=entry.user_id,
                name=f"{entry.user.first_name} {entry.user.last_name}",
                hours=0.0,
            )
        by_user[entry.user_id].hours += entry.hours

        day = entry.date.isoformat()
        by_date[day] = by_date.get(day, 0.0) + entry.hours

    if percentage_used >= OVER_BUDGET_PERCENTAGE:
        logger.warning(f"Project {project.id} has used {percentage_used:.0f}% of its quoted hours")

    return ProjectHoursReport(
        project_id=project.id,
        project_name=project.name,
        quoted_hours=quoted,
        used_hours=used,
        remaining_hours=quoted - used,
        percentage_used=round(percentage_used, 2),
        over_budget_warning=percentage_used >= OVER_BUDGET_PERCENTAGE,
        by_user=list(by_user.values()),
        by_date=dict(by_date),
        entries=[TimeEntryResponse.from_orm(entry) for entry in entries],
    )
