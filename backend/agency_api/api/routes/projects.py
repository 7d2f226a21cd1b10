"""
Project management API routes.

Provides endpoints for project CRUD and project tasks within the caller's
tenant. used_hours is maintained by time tracking and never written here.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session
from sqlalchemy import or_
from uuid import UUID

from ...database.connection import get_db
from ...database.models import Client, Project, ProjectStatus, Quote, Task
from ...schemas.client import (
    ProjectCreateRequest, ProjectUpdateRequest, ProjectResponse,
    ProjectsListResponse, TaskCreateRequest, TaskResponse
)
from ...auth.dependencies import get_tenant_filter, TenantFilter
from ...services.time_tracking import get_tenant_project

router = APIRouter(prefix="/projects", tags=["Projects"])


# PUBLIC_INTERFACE
@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED,
            summary="Create new project",
            description="Create a project for a client of the caller's tenant.")
async def create_project(
    request: ProjectCreateRequest,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """
    Create a new project.

    The client must belong to the caller's tenant; a client of another
    tenant is reported as not found.
    """
    client = tenant_filter.filter_query(db.query(Client), Client).filter(
        Client.id == request.client_id
    ).first()

    if not client:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Client not found"
        )

    project = Project(
        tenant_id=tenant_filter.tenant_id,
        used_hours=0,
        **request.dict()
    )

    db.add(project)
    db.commit()
    db.refresh(project)

    return ProjectResponse.from_orm(project)


# PUBLIC_INTERFACE
@router.get("", response_model=ProjectsListResponse,
           summary="List projects",
           description="Get a paginated list of projects with optional filtering.")
async def list_projects(
    client_id: Optional[UUID] = Query(None, description="Filter by client"),
    project_status: Optional[ProjectStatus] = Query(None, alias="status", description="Filter by status"),
    search: Optional[str] = Query(None, description="Search in name or description"),
    page: int = Query(1, ge=1, description="Page number"),
    per_page: int = Query(10, ge=1, le=100, description="Items per page"),
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """List projects of the caller's tenant."""
    query = tenant_filter.filter_query(db.query(Project), Project)

    if client_id:
        query = query.filter(Project.client_id == client_id)
    if project_status:
        query = query.filter(Project.status == project_status)
    if search:
        query = query.filter(or_(
            Project.name.ilike(f"%{search}%"),
            Project.description.ilike(f"%{search}%"),
        ))

    total = query.count()
    offset = (page - 1) * per_page
    projects = query.order_by(Project.created_at.desc()).offset(offset).limit(per_page).all()

    return ProjectsListResponse(
        projects=[ProjectResponse.from_orm(project) for project in projects],
        total=total,
        page=page,
        per_page=per_page
    )


# PUBLIC_INTERFACE
@router.get("/{project_id}", response_model=ProjectResponse,
           summary="Get project details",
           description="Get detailed information about a specific project.")
async def get_project(
    project_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Get a project of the caller's tenant."""
    project = get_tenant_project(db, tenant_filter.tenant_id, project_id)
    return ProjectResponse.from_orm(project)


# PUBLIC_INTERFACE
@router.patch("/{project_id}", response_model=ProjectResponse,
             summary="Update project",
             description="Update project information. Only provided fields are changed.")
async def update_project(
    project_id: UUID,
    request: ProjectUpdateRequest,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Update the specified project."""
    project = get_tenant_project(db, tenant_filter.tenant_id, project_id)

    update_data = request.dict(exclude_unset=True)
    for field, value in update_data.items():
        setattr(project, field, value)

    db.commit()
    db.refresh(project)

    return ProjectResponse.from_orm(project)


# PUBLIC_INTERFACE
@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT,
              summary="Delete project",
              description="Delete a project with its tasks and time entries. Quotes converted into it are unlinked.")
async def delete_project(
    project_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Delete a project, its tasks and its time entries."""
    project = get_tenant_project(db, tenant_filter.tenant_id, project_id)

    db.query(Quote).filter(Quote.project_id == project.id).update(
        {Quote.project_id: None}, synchronize_session=False
    )
    db.delete(project)
    db.commit()


# PUBLIC_INTERFACE
@router.post("/{project_id}/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED,
            summary="Create task",
            description="Add a task to a project. Time entries may reference tasks, which also group invoice lines.")
async def create_task(
    project_id: UUID,
    request: TaskCreateRequest,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """Create a task on a project of the caller's tenant."""
    project = get_tenant_project(db, tenant_filter.tenant_id, project_id)

    task = Task(project_id=project.id, title=request.title, description=request.description)
    db.add(task)
    db.commit()
    db.refresh(task)

    return TaskResponse.from_orm(task)


# PUBLIC_INTERFACE
@router.get("/{project_id}/tasks", response_model=List[TaskResponse],
           summary="List tasks",
           description="List the tasks of a project.")
async def list_tasks(
    project_id: UUID,
    tenant_filter: TenantFilter = Depends(get_tenant_filter),
    db: Session = Depends(get_db)
):
    """List the tasks of a project of the caller's tenant."""
    project = get_tenant_project(db, tenant_filter.tenant_id, project_id)
    tasks = db.query(Task).filter(Task.project_id == project.id).order_by(Task.created_at).all()
    return [TaskResponse.from_orm(task) for task in tasks]
