"""
Time tracking API routes.

Provides endpoints for logging hours, editing one's own entries and project
hour reports. Every change recomputes the project's used hours.
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, status, Query
from sqlalchemy.orm import Session
from uuid import UUID

from ...database.connection import get_db
from ...schemas.time_tracking import (
    TimeEntryCreateRequest, TimeEntryUpdateRequest, TimeEntryResponse,
    TimeEntriesListResponse, ProjectHoursReport
)
from ...auth.dependencies import get_current_user, CurrentUser
from ...integrations.n8n import N8nClient, get_n8n_client
from ...services import time_tracking as time_service

router = APIRouter(prefix="/time-tracking", tags=["Time Tracking"])


# PUBLIC_INTERFACE
@router.post("/entries", response_model=TimeEntryResponse, status_code=status.HTTP_201_CREATED,
            summary="Create time entry",
            description="Log hours against a project of the caller's tenant and notify the time-tracked workflow.")
async def create_time_entry(
    request: TimeEntryCreateRequest,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    n8n: N8nClient = Depends(get_n8n_client),
    db: Session = Depends(get_db)
):
    """
    Create a new time entry for the caller.

    The project's used hours are recomputed before the response is built;
    workflow notifications are delivered after it is sent.
    """
    entry = time_service.create_entry(
        db, current_user.tenant_id, current_user.user_id, request.dict()
    )

    n8n.notify_time_tracked(entry, entry.project)
    background_tasks.add_task(n8n.outbox.dispatch_pending)

    return TimeEntryResponse.from_orm(entry)


# PUBLIC_INTERFACE
@router.get("/my-entries", response_model=TimeEntriesListResponse,
           summary="List my time entries",
           description="List the caller's time entries, newest first.")
async def list_my_entries(
    project_id: Optional[UUID] = Query(None, description="Filter by project"),
    start_date: Optional[date] = Query(None, description="Earliest day"),
    end_date: Optional[date] = Query(None, description="Latest day"),
    search: Optional[str] = Query(None, description="Search in description"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List the caller's own time entries."""
    return time_service.list_user_entries(
        db, current_user.user_id,
        project_id=project_id,
        start_date=start_date,
        end_date=end_date,
        search=search,
        page=page,
        limit=limit,
    )


# PUBLIC_INTERFACE
@router.patch("/entries/{entry_id}", response_model=TimeEntryResponse,
             summary="Update time entry",
             description="Update one of the caller's own time entries.")
async def update_time_entry(
    entry_id: UUID,
    request: TimeEntryUpdateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a time entry logged by the caller."""
    entry = time_service.get_own_entry(db, current_user.user_id, entry_id)
    entry = time_service.update_entry(db, entry, request.dict(exclude_unset=True))
    return TimeEntryResponse.from_orm(entry)


# PUBLIC_INTERFACE
@router.delete("/entries/{entry_id}", status_code=status.HTTP_204_NO_CONTENT,
              summary="Delete time entry",
              description="Delete one of the caller's own time entries.")
async def delete_time_entry(
    entry_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a time entry logged by the caller."""
    entry = time_service.get_own_entry(db, current_user.user_id, entry_id)
    time_service.delete_entry(db, entry)


# PUBLIC_INTERFACE
@router.get("/projects/{project_id}/report", response_model=ProjectHoursReport,
           summary="Project hours report",
           description="Quoted, used and remaining hours of a project, with hours per user and per day.")
async def project_report(
    project_id: UUID,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Report on a project of the caller's tenant."""
    project = time_service.get_tenant_project(db, current_user.tenant_id, project_id)
    return time_service.project_report(db, project)
