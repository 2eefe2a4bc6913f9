"""Task API endpoints. Every route is scoped to the signed-in user."""

import math
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, require_session
from app.errors import NotFoundError
from app.schemas.common import ApiResponse
from app.schemas.task import (
    Pagination,
    RecentTasksResponse,
    TaskCreate,
    TaskListResponse,
    TaskResponse,
    TaskStatsResponse,
    TaskUpdate,
)
from app.services.task import get_task_service

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


@router.post("/", status_code=201)
def create_task(
    body: TaskCreate,
    user: CurrentUser = Depends(require_session),
    db: Session = Depends(get_db),
) -> dict:
    """Create a task."""
    service = get_task_service()
    task = service.create_task(db, user.id, body.model_dump())
    return ApiResponse.build(201, TaskResponse.model_validate(task).dump(), "Task created successfully")


@router.get("/")
def list_tasks(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Literal["all", "pending", "in-progress", "completed"] | None = None,
    priority: Literal["all", "low", "medium", "high", "urgent"] | None = None,
    query: str | None = None,
    user: CurrentUser = Depends(require_session),
    db: Session = Depends(get_db),
) -> dict:
    """List tasks with pagination, filters and text search."""
    service = get_task_service()
    items, total = service.list_tasks(
        db, user.id, page=page, limit=limit, status=status, priority=priority, query=query
    )
    data = TaskListResponse(
        tasks=[TaskResponse.model_validate(t) for t in items],
        pagination=Pagination(
            total_tasks=total,
            total_pages=math.ceil(total / limit),
            current_page=page,
            page_size=limit,
        ),
    )
    return ApiResponse.build(200, data.dump(), "Tasks fetched successfully")


@router.get("/stats")
def task_stats(
    user: CurrentUser = Depends(require_session),
    db: Session = Depends(get_db),
) -> dict:
    """Dashboard counters."""
    stats = get_task_service().get_stats(db, user.id)
    return ApiResponse.build(200, TaskStatsResponse(**stats).dump(), "Stats fetched successfully")


@router.get("/recent")
def recent_tasks(
    user: CurrentUser = Depends(require_session),
    db: Session = Depends(get_db),
) -> dict:
    """The most recently created tasks."""
    tasks = get_task_service().get_recent_tasks(db, user.id)
    data = RecentTasksResponse(recent_tasks=[TaskResponse.model_validate(t) for t in tasks])
    return ApiResponse.build(200, data.dump(), "Recent tasks fetched successfully")


@router.patch("/{task_id}")
def update_task(
    task_id: str,
    body: TaskUpdate,
    user: CurrentUser = Depends(require_session),
    db: Session = Depends(get_db),
) -> dict:
    """Update some fields of a task."""
    service = get_task_service()
    task = service.get_task(db, task_id, user.id)
    if not task:
        raise NotFoundError("Task not found")
    task = service.update_task(db, task, body.model_dump(exclude_unset=True, exclude_none=True))
    return ApiResponse.build(200, TaskResponse.model_validate(task).dump(), "Task updated successfully")


@router.delete("/{task_id}")
def delete_task(
    task_id: str,
    user: CurrentUser = Depends(require_session),
    db: Session = Depends(get_db),
) -> dict:
    """Delete a task."""
    service = get_task_service()
    task = service.get_task(db, task_id, user.id)
    if not task:
        raise NotFoundError("Task not found")
    service.delete_task(db, task)
    return ApiResponse.build(200, None, "Task deleted successfully")
