"""Tests for task CRUD, listing and dashboard endpoints."""

from datetime import date, timedelta

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.models.task import Task
from app.services.auth import get_auth_service
from app.services.task import TaskService
from app.services.tokens import get_token_service


def _create(client: TestClient, **fields):
    payload = {"title": "Write report", **fields}
    return client.post("/api/v1/tasks/", json=payload)


class TestCreateTask:
    """Tests for task creation."""

    def test_create_defaults(self, auth_client: TestClient, test_user: dict):
        """A task gets pending/medium defaults and belongs to the caller."""
        response = _create(auth_client)
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Write report"
        assert data["status"] == "pending"
        assert data["priority"] == "medium"
        assert data["dueDate"] is None
        assert data["userId"] == test_user["user_id"]
        assert data["id"]

    def test_create_with_client_id_and_due_date(self, auth_client: TestClient):
        """Client-supplied id and camelCase dueDate are accepted."""
        due = (date.today() + timedelta(days=3)).isoformat()
        response = _create(auth_client, id="task-123", dueDate=due, priority="urgent", status="in-progress")
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["id"] == "task-123"
        assert data["dueDate"] == due
        assert data["priority"] == "urgent"
        assert data["status"] == "in-progress"

    def test_create_duplicate_id(self, auth_client: TestClient):
        """Reusing a task id is rejected."""
        _create(auth_client, id="dup")
        response = _create(auth_client, id="dup")
        assert response.status_code == 400
        assert "already exists" in response.json()["message"]

    def test_create_past_due_date(self, auth_client: TestClient):
        """Due dates in the past are rejected."""
        past = (date.today() - timedelta(days=1)).isoformat()
        response = _create(auth_client, dueDate=past)
        assert response.status_code == 400
        assert response.json()["data"]["errors"][0]["field"] == "dueDate"

    def test_create_invalid_fields(self, auth_client: TestClient):
        """Short title and unknown status are validation errors."""
        response = auth_client.post("/api/v1/tasks/", json={"title": "ab", "status": "done"})
        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["data"]["errors"]}
        assert {"title", "status"} <= fields

    def test_create_requires_auth(self, client: TestClient):
        """Creating a task requires a session."""
        client.cookies.clear()
        response = _create(client)
        assert response.status_code == 401


class TestListTasks:
    """Tests for listing, filtering and pagination."""

    def test_list_empty(self, auth_client: TestClient):
        """No tasks gives an empty page."""
        response = auth_client.get("/api/v1/tasks/")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["tasks"] == []
        assert data["pagination"] == {"totalTasks": 0, "totalPages": 0, "currentPage": 1, "pageSize": 10}

    def test_pagination(self, auth_client: TestClient):
        """Tasks are split into pages of the requested size."""
        for i in range(5):
            _create(auth_client, title=f"Task number {i}")

        response = auth_client.get("/api/v1/tasks/?page=2&limit=2")
        data = response.json()["data"]
        assert len(data["tasks"]) == 2
        assert data["pagination"] == {"totalTasks": 5, "totalPages": 3, "currentPage": 2, "pageSize": 2}

    def test_filters_and_search(self, auth_client: TestClient):
        """Status, priority and text filters narrow the list."""
        _create(auth_client, title="Buy milk", priority="low")
        _create(auth_client, title="Fix bug", description="crash on LOGIN", priority="urgent", status="in-progress")
        _create(auth_client, title="Ship release", priority="urgent")

        urgent = auth_client.get("/api/v1/tasks/?priority=urgent").json()["data"]
        assert {t["title"] for t in urgent["tasks"]} == {"Fix bug", "Ship release"}

        in_progress = auth_client.get("/api/v1/tasks/?status=in-progress").json()["data"]
        assert [t["title"] for t in in_progress["tasks"]] == ["Fix bug"]

        everything = auth_client.get("/api/v1/tasks/?status=all&priority=all").json()["data"]
        assert everything["pagination"]["totalTasks"] == 3

        search = auth_client.get("/api/v1/tasks/?query=login").json()["data"]
        assert [t["title"] for t in search["tasks"]] == ["Fix bug"]

    def test_search_wildcards_are_literal(self, auth_client: TestClient):
        """Percent and underscore in the search text are not LIKE wildcards."""
        _create(auth_client, title="Raise budget 10%")
        _create(auth_client, title="Rename my_file")
        _create(auth_client, title="Rename myxfile")

        percent = auth_client.get("/api/v1/tasks/", params={"query": "%"}).json()["data"]
        assert [t["title"] for t in percent["tasks"]] == ["Raise budget 10%"]

        underscore = auth_client.get("/api/v1/tasks/", params={"query": "my_file"}).json()["data"]
        assert [t["title"] for t in underscore["tasks"]] == ["Rename my_file"]

    def test_invalid_filter_value(self, auth_client: TestClient):
        """Unknown status filter is a 400."""
        response = auth_client.get("/api/v1/tasks/?status=archived")
        assert response.status_code == 400

    def test_list_is_scoped_to_owner(self, auth_client: TestClient, db_session: Session):
        """Another user's tasks are never listed."""
        other = get_auth_service().register(db_session, "Other User", "other@example.com", "password123")
        TaskService().create_task(db_session, other.id, {"title": "Secret plan"})
        _create(auth_client, title="My task")

        data = auth_client.get("/api/v1/tasks/").json()["data"]
        assert [t["title"] for t in data["tasks"]] == ["My task"]


class TestUpdateDeleteTask:
    """Tests for updating and deleting tasks."""

    def test_partial_update(self, auth_client: TestClient):
        """Only provided fields change."""
        task_id = _create(auth_client, description="draft").json()["data"]["id"]
        response = auth_client.patch(f"/api/v1/tasks/{task_id}", json={"status": "completed", "title": None})
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["status"] == "completed"
        assert data["title"] == "Write report"
        assert data["description"] == "draft"

    def test_update_missing_task(self, auth_client: TestClient):
        """Updating an unknown task is 404."""
        response = auth_client.patch("/api/v1/tasks/missing", json={"status": "completed"})
        assert response.status_code == 404
        assert response.json()["message"] == "Task not found"

    def test_cannot_touch_other_users_task(self, auth_client: TestClient, db_session: Session):
        """Another user's task looks missing."""
        other = get_auth_service().register(db_session, "Other User", "other@example.com", "password123")
        task = TaskService().create_task(db_session, other.id, {"title": "Secret plan"})

        assert auth_client.patch(f"/api/v1/tasks/{task.id}", json={"title": "Hijacked"}).status_code == 404
        assert auth_client.delete(f"/api/v1/tasks/{task.id}").status_code == 404
        assert db_session.get(Task, task.id).title == "Secret plan"

    def test_delete(self, auth_client: TestClient, db_session: Session):
        """Deleting removes the task."""
        task_id = _create(auth_client).json()["data"]["id"]
        response = auth_client.delete(f"/api/v1/tasks/{task_id}")
        assert response.status_code == 200
        assert response.json()["data"] is None
        assert db_session.get(Task, task_id) is None


class TestDashboard:
    """Tests for stats and recent tasks."""

    def test_stats(self, auth_client: TestClient, test_user: dict, db_session: Session):
        """Counts per status plus overdue tasks."""
        _create(auth_client, title="Pending one")
        _create(auth_client, title="Working on it", status="in-progress")
        _create(auth_client, title="All done", status="completed")
        yesterday = date.today() - timedelta(days=1)
        db_session.add(Task(id="late", user_id=test_user["user_id"], title="Late task", due_date=yesterday))
        db_session.add(
            Task(id="late-done", user_id=test_user["user_id"], title="Late but done", status="completed", due_date=yesterday)
        )
        db_session.commit()

        response = auth_client.get("/api/v1/tasks/stats")
        assert response.status_code == 200
        assert response.json()["data"] == {
            "total": 5,
            "pending": 2,
            "inProgress": 1,
            "completed": 2,
            "overdue": 1,
        }

    def test_recent_limited_to_ten(self, auth_client: TestClient):
        """At most ten recent tasks are returned."""
        for i in range(12):
            _create(auth_client, title=f"Task number {i}")
        response = auth_client.get("/api/v1/tasks/recent")
        assert response.status_code == 200
        assert len(response.json()["data"]["recentTasks"]) == 10

    def test_internal_error_is_hidden(self, client: TestClient, test_user: dict, monkeypatch):
        """Unexpected failures become a generic 500 envelope."""
        from main import app

        def boom(self, db, user_id, today=None):
            raise RuntimeError("database on fire")

        monkeypatch.setattr(TaskService, "get_stats", boom)
        with TestClient(app, raise_server_exceptions=False) as raw_client:
            raw_client.cookies.set("accessToken", test_user["access_token"])
            response = raw_client.get("/api/v1/tasks/stats")
        assert response.status_code == 500
        body = response.json()
        assert body == {"statusCode": 500, "data": None, "message": "Internal server error", "success": False}

    def test_silent_refresh_on_task_route(self, client: TestClient, test_user: dict, use_cookies):
        """Task routes also renew an expired session from the refresh cookie."""
        use_cookies(refreshToken=test_user["refresh_token"])
        response = client.get("/api/v1/tasks/stats")
        assert response.status_code == 200
        assert response.cookies["refreshToken"] != test_user["refresh_token"]
        assert get_token_service().verify_access_token(response.cookies["accessToken"]) == test_user["user_id"]
