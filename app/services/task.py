"""Task service for owner-scoped CRUD, listing and dashboard stats."""

import uuid
from datetime import date
from typing import Any

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.errors import ConflictError
from app.models.task import Task

RECENT_TASK_LIMIT = 10


class TaskService:
    """Handles task persistence. Every query is filtered by owner."""

    def create_task(self, db: Session, user_id: int, fields: dict[str, Any]) -> Task:
        """Create a task. A client-supplied id is kept, otherwise one is generated."""
        task_id = fields.pop("id", None) or str(uuid.uuid4())
        if db.get(Task, task_id):
            raise ConflictError("Task with this id already exists")

        task = Task(id=task_id, user_id=user_id, **fields)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    def list_tasks(
        self,
        db: Session,
        user_id: int,
        page: int = 1,
        limit: int = 10,
        status: str | None = None,
        priority: str | None = None,
        query: str | None = None,
    ) -> tuple[list[Task], int]:
        """Get one page of tasks, newest first. Returns (items, total_count)."""
        q = db.query(Task).filter(Task.user_id == user_id)

        if status and status != "all":
            q = q.filter(Task.status == status)
        if priority and priority != "all":
            q = q.filter(Task.priority == priority)
        if query:
            # % and _ in the search text match literally
            escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"
            q = q.filter(
                or_(Task.title.ilike(pattern, escape="\\"), Task.description.ilike(pattern, escape="\\"))
            )

        total = q.count()
        items = q.order_by(Task.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return items, total

    def get_task(self, db: Session, task_id: str, user_id: int) -> Task | None:
        """Get a single task by ID, scoped to user."""
        return db.query(Task).filter(Task.id == task_id, Task.user_id == user_id).first()

    def update_task(self, db: Session, task: Task, updates: dict[str, Any]) -> Task:
        """Apply a partial update."""
        for field, value in updates.items():
            setattr(task, field, value)
        db.commit()
        db.refresh(task)
        return task

    def delete_task(self, db: Session, task: Task) -> None:
        db.delete(task)
        db.commit()

    def get_stats(self, db: Session, user_id: int, today: date | None = None) -> dict[str, int]:
        """Count tasks per status plus overdue (not completed, due before today)."""
        today = today or date.today()
        counts = dict(
            db.query(Task.status, func.count(Task.id)).filter(Task.user_id == user_id).group_by(Task.status).all()
        )
        overdue = (
            db.query(func.count(Task.id))
            .filter(
                Task.user_id == user_id,
                Task.status != "completed",
                Task.due_date.isnot(None),
                Task.due_date < today,
            )
            .scalar()
            or 0
        )
        return {
            "total": sum(counts.values()),
            "pending": counts.get("pending", 0),
            "in_progress": counts.get("in-progress", 0),
            "completed": counts.get("completed", 0),
            "overdue": overdue,
        }

    def get_recent_tasks(self, db: Session, user_id: int, limit: int = RECENT_TASK_LIMIT) -> list[Task]:
        return db.query(Task).filter(Task.user_id == user_id).order_by(Task.created_at.desc()).limit(limit).all()


_task_service: TaskService | None = None


def get_task_service() -> TaskService:
    """Get singleton task service instance."""
    global _task_service
    if _task_service is None:
        _task_service = TaskService()
    return _task_service
