"""Pydantic schemas for task endpoints."""

from datetime import date, datetime
from typing import Literal

from pydantic import Field, field_validator

from app.schemas.common import CamelModel

TaskStatus = Literal["pending", "in-progress", "completed"]
TaskPriority = Literal["low", "medium", "high", "urgent"]


class _TaskFields(CamelModel):
    @field_validator("title", "description", mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("due_date", check_fields=False)
    @classmethod
    def due_date_not_in_past(cls, value: date | None) -> date | None:
        if value is not None and value < date.today():
            raise ValueError("Due date cannot be in the past")
        return value


class TaskCreate(_TaskFields):
    id: str | None = Field(default=None, min_length=1, max_length=64)
    title: str = Field(min_length=3, max_length=150)
    description: str | None = Field(default=None, max_length=1000)
    status: TaskStatus = "pending"
    priority: TaskPriority = "medium"
    due_date: date | None = None


class TaskUpdate(_TaskFields):
    """Partial update. Omitted or null fields keep their current value."""

    title: str | None = Field(default=None, min_length=3, max_length=150)
    description: str | None = Field(default=None, max_length=1000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: date | None = None


class TaskResponse(CamelModel):
    id: str
    user_id: int
    title: str
    description: str | None
    status: str
    priority: str
    due_date: date | None
    created_at: datetime
    updated_at: datetime


class Pagination(CamelModel):
    total_tasks: int
    total_pages: int
    current_page: int
    page_size: int


class TaskListResponse(CamelModel):
    tasks: list[TaskResponse]
    pagination: Pagination


class TaskStatsResponse(CamelModel):
    total: int
    pending: int
    in_progress: int
    completed: int
    overdue: int


class RecentTasksResponse(CamelModel):
    recent_tasks: list[TaskResponse]
