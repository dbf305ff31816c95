"""Project progress state machine — step completion, quiz gating, auto-completion.

``complete_step`` is the only path that evaluates the completion transition.
``update_progress`` is an administrative overwrite and deliberately does not
complete projects, even when the written values would imply completion.

Both operations read a snapshot, compute, then write a partial-field update;
two concurrent completions on the same project can lose one write
(last writer wins per field). There is no optimistic concurrency control.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

from .errors import NotFoundError, ValidationError
from .models.project import Progress, ProgressStatus, Project, ProjectStatus, completion_percent
from .models.quiz import PASSING_PERCENTAGE, QuizScore
from .retry import retry_with_backoff
from .store import PROJECTS, DocumentStore

logger = logging.getLogger(__name__)

QUIZ_GATE_MESSAGE = "Quiz score must be 90% or higher to complete this step"

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class StepCompletion(BaseModel):
    """Result of a successful ``complete_step`` call."""

    completed_steps: list[int]
    percent_complete: float
    is_project_completed: bool
    progress: Progress
    project: Project


class ProgressUpdate(BaseModel):
    """Fields accepted by the administrative ``update_progress`` overwrite."""

    current_step: int | None = Field(default=None, ge=0)
    completed_steps: list[int] | None = None
    percent_complete: float | None = Field(default=None, ge=0.0, le=100.0)
    time_spent: float | None = Field(default=None, ge=0.0)


def apply_step_completion(
    project: Project,
    step_index: int,
    quiz_score: QuizScore | None = None,
    time_spent_delta: float = 0.0,
    *,
    now: datetime,
) -> Project:
    """Compute the project state after completing *step_index*.

    Pure: returns an updated copy and leaves *project* untouched.

    Raises:
        ValidationError: failing quiz score, out-of-range step index, or a
            negative time delta. Nothing is changed in any of these cases.
    """
    if quiz_score is not None and quiz_score.percentage < PASSING_PERCENTAGE:
        raise ValidationError(QUIZ_GATE_MESSAGE)
    total_steps = len(project.steps)
    if not 0 <= step_index < total_steps:
        raise ValidationError(
            f"Step index {step_index} is out of range for a project with {total_steps} step(s)"
        )
    if time_spent_delta < 0:
        raise ValidationError("time_spent_delta must be >= 0")

    old = project.progress
    completed = list(old.completed_steps)
    if step_index not in completed:
        completed.append(step_index)

    percent = completion_percent(len(completed), total_steps)
    is_completed = len(completed) == total_steps and total_steps > 0

    worked_on = _as_utc(now)
    if old.last_worked_on is not None:
        worked_on = max(worked_on, _as_utc(old.last_worked_on))

    progress = old.model_copy(update={
        "completed_steps": completed,
        "total_steps": total_steps,
        "percent_complete": percent,
        "current_step": max(old.current_step, step_index + 1),
        "time_spent": old.time_spent + time_spent_delta,
        "last_worked_on": worked_on,
        "status": ProgressStatus.COMPLETED if is_completed else ProgressStatus.IN_PROGRESS,
    })

    updates: dict[str, Any] = {"progress": progress, "updated_at": worked_on}
    if is_completed:
        updates["status"] = ProjectStatus.COMPLETED
        if project.completed_at is None:
            updates["completed_at"] = worked_on
    return project.model_copy(update=updates, deep=True)


class ProgressTracker:
    """Reads projects from the document store and persists progress changes."""

    def __init__(self, store: DocumentStore, *, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or _utc_now

    async def load(self, project_id: str) -> Project:
        """Fetch and normalize a project.

        Raises:
            NotFoundError: If no project has this id.
        """
        record = await retry_with_backoff(lambda: self._store.get(PROJECTS, project_id))
        if record is None:
            raise NotFoundError(f"Project {project_id} not found")
        return Project.from_record(record, project_id)

    async def complete_step(
        self,
        project: Project,
        step_index: int,
        quiz_score: QuizScore | None = None,
        time_spent_delta: float = 0.0,
    ) -> StepCompletion:
        """Mark a step complete and persist the result.

        *project* must be a fresh snapshot; callers re-fetch before each call.
        When the last step completes, the nested progress status, the
        top-level project status and (first time only) ``completed_at`` go out
        in the same partial update.
        """
        updated = apply_step_completion(
            project, step_index, quiz_score, time_spent_delta, now=self._clock(),
        )
        progress = updated.progress
        is_completed = progress.status is ProgressStatus.COMPLETED

        fields: dict[str, Any] = {
            "progress.completed_steps": progress.completed_steps,
            "progress.total_steps": progress.total_steps,
            "progress.percent_complete": progress.percent_complete,
            "progress.current_step": progress.current_step,
            "progress.time_spent": progress.time_spent,
            "progress.last_worked_on": progress.last_worked_on,
            "progress.status": progress.status.value,
            "updated_at": updated.updated_at,
        }
        if is_completed:
            fields["status"] = ProjectStatus.COMPLETED.value
            if project.completed_at is None:
                fields["completed_at"] = updated.completed_at

        await retry_with_backoff(lambda: self._store.update(PROJECTS, project.id, fields))

        if is_completed and project.status is not ProjectStatus.COMPLETED:
            logger.info("Project %s completed (%d steps)", project.id, progress.total_steps)
        else:
            logger.debug(
                "Project %s step %d done: %.1f%%", project.id, step_index, progress.percent_complete,
            )

        return StepCompletion(
            completed_steps=progress.completed_steps,
            percent_complete=progress.percent_complete,
            is_project_completed=is_completed,
            progress=progress,
            project=updated,
        )

    async def complete_step_by_id(
        self,
        project_id: str,
        step_index: int,
        quiz_score: QuizScore | None = None,
        time_spent_delta: float = 0.0,
    ) -> StepCompletion:
        """Re-fetch the project, then :meth:`complete_step`."""
        project = await self.load(project_id)
        return await self.complete_step(project, step_index, quiz_score, time_spent_delta)

    async def update_progress(self, project_id: str, delta: ProgressUpdate) -> Progress:
        """Overwrite the given progress fields and bump ``last_worked_on``.

        No quiz gating and no completion transition on this path.

        Raises:
            ValidationError: A completed step index that does not name one of
                the project's steps.
        """
        project = await self.load(project_id)
        values = delta.model_dump(exclude_none=True)

        total_steps = len(project.steps)
        invalid = [i for i in values.get("completed_steps", []) if not 0 <= i < total_steps]
        if invalid:
            raise ValidationError(
                f"Completed step indices {invalid} are out of range for a project with {total_steps} step(s)"
            )

        worked_on = _as_utc(self._clock())
        if project.progress.last_worked_on is not None:
            worked_on = max(worked_on, _as_utc(project.progress.last_worked_on))

        fields: dict[str, Any] = {f"progress.{name}": value for name, value in values.items()}
        fields["progress.last_worked_on"] = worked_on
        fields["updated_at"] = worked_on
        await retry_with_backoff(lambda: self._store.update(PROJECTS, project_id, fields))

        logger.info("Progress of project %s overwritten: %s", project_id, sorted(values))
        return project.progress.model_copy(update={**values, "last_worked_on": worked_on})
