"""API routers."""

from app.routers.auth import router as auth_router
from app.routers.tasks import router as tasks_router
from app.routers.users import router as users_router

__all__ = ["auth_router", "tasks_router", "users_router"]
