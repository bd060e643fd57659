"""HTTP client for the board service.

Every response is validated into ``ProjectRecord``/``TaskRecord`` here, so
timestamps reach the board stores as aware UTC datetimes whatever shape the
server's document store used. Failures are raised as application exceptions.
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaValidationError

from app.core.config import Settings, settings
from app.exceptions.base import (
    AuthenticationError,
    NotFoundError,
    PersistenceFailure,
    ValidationError,
)
from app.exceptions.sync import RequestTimeoutError, TransientNetworkError
from app.schemas.project import ProjectCreate, ProjectRecord, ProjectUpdate
from app.schemas.task import BatchResult, TaskCreate, TaskOrderUpdate, TaskRecord, TaskUpdate
from app.schemas.team import TeamData

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)


def validated(schema: type[RecordT], data: Any, message: str = "Validation failed") -> RecordT:
    """Validate ``data`` or raise the application ``ValidationError``."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data)
    except SchemaValidationError as e:
        raise ValidationError.from_schema_error(e, message)


def _record(schema: type[RecordT], data: Any, kind: str) -> RecordT:
    try:
        return schema.model_validate(data)
    except SchemaValidationError as e:
        raise TransientNetworkError(f"Malformed {kind} in response", details={"errors": e.error_count()}) from e


def _records(schema: type[RecordT], items: Any, kind: str) -> list[RecordT]:
    records = []
    for item in items or []:
        try:
            records.append(schema.model_validate(item))
        except SchemaValidationError as e:
            logger.warning("Dropping invalid %s from response: %s", kind, e.errors()[0]["msg"])
    return records


class SyncGateway:
    """Async request/response client for the project and task endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
        config: Settings | None = None,
    ):
        config = config or settings
        self.timeout = timeout or config.request_timeout
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=base_url or config.api_base_url, timeout=self.timeout
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "SyncGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        try:
            response = await asyncio.wait_for(
                self.client.request(method, path, params=params, json=json),
                timeout=self.timeout,
            )
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.warning("%s %s timed out after %ss", method, path, self.timeout)
            raise RequestTimeoutError(
                f"{method} {path} timed out", {"timeout": self.timeout}
            ) from e
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, str(e))
            raise TransientNetworkError(f"{method} {path} failed: {str(e)}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.is_success:
            return body
        raise self._error_for(response.status_code, body, f"{method} {path}")

    @staticmethod
    def _error_for(status_code: int, body: dict[str, Any], action: str) -> Exception:
        message = body.get("error") or f"{action} returned HTTP {status_code}"
        error_code = body.get("error_code")
        details = {"status_code": status_code, "error_code": error_code}

        if status_code in (400, 422):
            extra = body.get("details")
            return ValidationError(message, {**details, **(extra if isinstance(extra, dict) else {})})
        if status_code == 401:
            return AuthenticationError(message, details)
        if status_code == 404:
            return NotFoundError(message, details)
        if status_code >= 500 and error_code == "PERSISTENCE_FAILURE":
            return PersistenceFailure(message, details)
        return TransientNetworkError(message, details=details)

    # ----- projects -----

    async def list_projects(self, uid: str) -> list[ProjectRecord]:
        if not uid:
            raise ValidationError("uid is required")
        body = await self._request("GET", "/projects", params={"uid": uid})
        return _records(ProjectRecord, body.get("projects"), "project")

    async def create_project(self, project: ProjectCreate | dict[str, Any]) -> tuple[ProjectRecord, int]:
        """Create a project; returns it with the number of tasks extracted for it."""
        project = validated(ProjectCreate, project, "uid and title are required")
        body = await self._request(
            "POST", "/projects", json=project.model_dump(mode="json", by_alias=True, exclude_none=True)
        )
        return _record(ProjectRecord, body.get("project"), "project"), int(body.get("tasksCreated") or 0)

    async def get_project(self, project_id: str) -> tuple[ProjectRecord, list[TaskRecord]]:
        body = await self._request("GET", f"/projects/{project_id}")
        return (
            _record(ProjectRecord, body.get("project"), "project"),
            _records(TaskRecord, body.get("tasks"), "task"),
        )

    async def update_project(self, project_id: str, fields: ProjectUpdate | dict[str, Any]) -> None:
        fields = validated(ProjectUpdate, fields)
        await self._request(
            "PATCH", f"/projects/{project_id}", json=fields.model_dump(mode="json", exclude_unset=True)
        )

    async def delete_project(self, project_id: str) -> None:
        await self._request("DELETE", f"/projects/{project_id}")

    # ----- tasks -----

    async def list_tasks(self, project_id: str) -> list[TaskRecord]:
        if not project_id:
            raise ValidationError("projectId is required")
        body = await self._request("GET", "/tasks", params={"projectId": project_id})
        return _records(TaskRecord, body.get("tasks"), "task")

    async def create_task(self, task: TaskCreate | dict[str, Any]) -> TaskRecord:
        task = validated(TaskCreate, task, "project_id and content are required")
        body = await self._request("POST", "/tasks", json=task.model_dump(mode="json", exclude_none=True))
        return _record(TaskRecord, body.get("task"), "task")

    async def create_tasks(self, drafts: Iterable[TaskCreate | dict[str, Any]]) -> BatchResult:
        """Create tasks in one batch, skipping drafts that do not validate."""
        payload = []
        skipped = 0
        for draft in drafts:
            try:
                task = validated(TaskCreate, draft)
            except ValidationError as e:
                skipped += 1
                logger.info("Skipping invalid task draft: %s", e.details)
                continue
            payload.append(task.model_dump(mode="json", exclude_none=True))

        if not payload:
            return BatchResult(created=0, skipped=skipped)

        body = await self._request("POST", "/tasks", json={"tasks": payload})
        return BatchResult(
            created=int(body.get("count") or 0),
            skipped=skipped + int(body.get("skipped") or 0),
        )

    async def update_tasks(self, updates: Iterable[TaskOrderUpdate]) -> None:
        """Send a bulk status/order patch."""
        payload = [u.model_dump(mode="json", exclude_none=True) for u in updates]
        if payload:
            await self._request("PATCH", "/tasks", json={"updates": payload})

    async def update_task(self, task_id: str, fields: TaskUpdate | dict[str, Any]) -> None:
        fields = validated(TaskUpdate, fields)
        await self._request("PATCH", f"/tasks/{task_id}", json=fields.model_dump(mode="json", exclude_unset=True))

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/tasks/{task_id}")

    # ----- team -----

    async def get_team(self, uid: str) -> TeamData | None:
        if not uid:
            raise ValidationError("uid is required")
        body = await self._request("GET", "/team", params={"uid": uid})
        data = body.get("teamData")
        return None if data is None else _record(TeamData, data, "team")

    async def save_team(self, uid: str, team: TeamData | dict[str, Any]) -> None:
        if not uid or team is None:
            raise ValidationError("uid and teamData are required")
        team = validated(TeamData, team, "uid and teamData are required")
        await self._request(
            "POST",
            "/team",
            json={
                "uid": uid,
                "teamData": team.model_dump(mode="json", by_alias=True, include=team.model_fields_set - {"updated_at"}),
            },
        )

    # ----- identity -----

    async def login(self, username: str, password: str) -> str:
        body = await self._request("POST", "/auth/login", json={"username": username, "password": password})
        return body["uid"]
