"""Project CRUD over the document store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .errors import NotFoundError, ValidationError
from .models.project import (
    Progress,
    ProgressStatus,
    Project,
    ProjectStatus,
    ProjectType,
    completion_percent,
)
from .retry import retry_with_backoff
from .store import PROJECTS, DocumentStore
from .store.base import ErrorCallback, Unsubscribe
from .validation import validate_project

logger = logging.getLogger(__name__)

# Progress is owned by the tracker; generic updates may not touch it.
_PROTECTED_FIELDS = {"id", "user_id", "progress", "created_at", "completed_at", "schema_version"}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProjectService:
    """Create, read, update, delete and watch learning projects."""

    def __init__(self, store: DocumentStore, *, clock: Callable[[], datetime] | None = None) -> None:
        self._store = store
        self._clock = clock or _utc_now

    async def create(self, user_id: str, data: dict[str, Any]) -> Project:
        """Validate and store a new project with zeroed progress.

        Raises:
            ValidationError: If the payload fails the schema for its type.
        """
        if not user_id:
            raise ValidationError("user_id is required")
        raw_type = data.get("type") or ProjectType.MANUAL
        project_type = getattr(raw_type, "value", raw_type)
        result = validate_project(data, project_type)
        if not result.is_valid:
            raise ValidationError("; ".join(result.errors))
        for warning in result.warnings:
            logger.debug("Project %r: %s", data.get("name"), warning)

        now = self._clock()
        payload = {k: v for k, v in data.items() if k not in _PROTECTED_FIELDS}
        payload.update({
            "user_id": user_id,
            "type": project_type,
            "status": data.get("status") or ProjectStatus.ACTIVE.value,
            "schema_version": 2,
            "created_at": now,
            "updated_at": now,
        })
        try:
            project = Project.from_record(payload)
        except ValueError as exc:
            raise ValidationError(f"Invalid project: {exc}") from exc
        project = project.model_copy(update={"progress": Progress(total_steps=len(project.steps))})

        record = project.to_record()
        project_id = await retry_with_backoff(lambda: self._store.add(PROJECTS, record))
        logger.info("Created project %s for user %s", project_id, user_id)
        return project.model_copy(update={"id": project_id})

    async def get(self, project_id: str) -> Project | None:
        record = await retry_with_backoff(lambda: self._store.get(PROJECTS, project_id))
        return None if record is None else Project.from_record(record, project_id)

    async def require(self, project_id: str) -> Project:
        """Like :meth:`get` but raises NotFoundError when absent."""
        project = await self.get(project_id)
        if project is None:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    async def list_for_user(self, user_id: str) -> list[Project]:
        """All projects of *user_id*, most recently updated first.

        Uses a single equality filter and sorts client-side so no composite
        index is needed.
        """
        records = await retry_with_backoff(lambda: self._store.query(
            PROJECTS, {"user_id": user_id}, order_by="updated_at", descending=True,
        ))
        return [Project.from_record(r, r["id"]) for r in records]

    async def update(self, project_id: str, updates: dict[str, Any]) -> Project:
        """Partial update of editable fields; stamps ``updated_at``.

        Raises:
            NotFoundError: Unknown project.
            ValidationError: Protected fields or values the model rejects.
        """
        protected = sorted(set(updates) & _PROTECTED_FIELDS)
        if protected:
            raise ValidationError(f"Fields cannot be updated directly: {', '.join(protected)}")

        current = await self.require(project_id)
        if updates.get("status") == ProjectStatus.COMPLETED and current.progress.status is not ProgressStatus.COMPLETED:
            raise ValidationError("Projects are completed by finishing their steps")
        merged = {**current.model_dump(), **updates}
        try:
            candidate = Project.from_record(merged, project_id)
        except ValueError as exc:
            raise ValidationError(f"Invalid project update: {exc}") from exc

        fields = candidate.model_dump(mode="json", include=set(updates))
        if "steps" in updates:
            # completed indices past the new last step were pruned by from_record
            completed = candidate.progress.completed_steps
            total = len(candidate.steps)
            fields["progress.total_steps"] = total
            fields["progress.completed_steps"] = completed
            fields["progress.percent_complete"] = completion_percent(len(completed), total)
        fields["updated_at"] = self._clock()
        await retry_with_backoff(lambda: self._store.update(PROJECTS, project_id, fields))
        return await self.require(project_id)

    async def delete(self, project_id: str) -> None:
        removed = await retry_with_backoff(lambda: self._store.delete(PROJECTS, project_id))
        if not removed:
            raise NotFoundError(f"Project {project_id} not found")
        logger.info("Deleted project %s", project_id)

    async def toggle_bookmark(self, project_id: str) -> bool:
        """Flip the bookmark flag; returns the new value."""
        project = await self.require(project_id)
        bookmarked = not project.bookmarked
        await retry_with_backoff(lambda: self._store.update(
            PROJECTS, project_id, {"bookmarked": bookmarked, "updated_at": self._clock()},
        ))
        return bookmarked

    async def subscribe(
        self,
        project_id: str,
        callback: Callable[[Project | None], None],
        on_error: ErrorCallback | None = None,
    ) -> Unsubscribe:
        """Watch one project; *callback* gets ``None`` once it is deleted."""

        def _deliver(record: dict[str, Any] | None) -> None:
            callback(None if record is None else Project.from_record(record, project_id))

        return await self._store.subscribe(PROJECTS, project_id, _deliver, on_error)
