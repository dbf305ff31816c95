"""Progress and quiz tools — 3 tools on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import make_tool_error
from ..models.quiz import QuizQuestion, QuizScore
from ..progress import ProgressUpdate
from ..quiz import calculate_quiz_score
from ..services import get_services
from ..tracing import tag_span, trace
from ..types import AuthToken, ProjectId, StepIndex, coerce_json_param
from .infra import enforce_mutation_policy

logger = logging.getLogger(__name__)
progress_server = FastMCP("progress")


@progress_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="progress_complete_step", span_type="TOOL")
async def progress_complete_step(
    project_id: ProjectId,
    step_index: StepIndex,
    quiz_percentage: Annotated[float | None, Field(
        ge=0.0, le=100.0,
        description="Score of the step quiz, if the step has one; below 90 blocks completion",
    )] = None,
    time_spent: Annotated[float, Field(ge=0.0, description="Time spent on this step, added to the total")] = 0.0,
) -> dict:
    """Mark a step complete and recompute the project's progress.

    Completing an already completed step changes nothing except the time
    spent and last-worked-on timestamp. Completing the last step marks the
    project completed.

    Args:
        project_id: Project to update.
        step_index: Zero-based step index.
        quiz_percentage: Quiz score gating this step (omit when there is no quiz).
        time_spent: Time to add to the project's total.

    Returns:
        Dict with completed_steps, percent_complete, is_project_completed and progress.
    """
    try:
        quiz = QuizScore(percentage=quiz_percentage) if quiz_percentage is not None else None
        result = await get_services().tracker.complete_step_by_id(
            project_id, step_index, quiz, time_spent,
        )
        tag_span(
            project_id=project_id,
            step_index=step_index,
            percent_complete=result.percent_complete,
            project_completed=result.is_project_completed,
        )
        return result.model_dump(mode="json", exclude={"project"})
    except Exception as exc:
        return make_tool_error(exc)


@progress_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="progress_update", span_type="TOOL")
async def progress_update(
    project_id: ProjectId,
    current_step: Annotated[int | None, Field(ge=0)] = None,
    completed_steps: Annotated[list[int] | None, Field(description="Replacement list of completed step indices")] = None,
    percent_complete: Annotated[float | None, Field(ge=0.0, le=100.0)] = None,
    time_spent: Annotated[float | None, Field(ge=0.0)] = None,
    auth_token: AuthToken = None,
) -> dict:
    """Administratively overwrite progress fields.

    Skips quiz gating and never marks the project completed, even when the
    written values say every step is done. Disabled unless
    SPARK_MUTATIONS_ENABLED is set.

    Returns:
        Dict with the resulting progress.
    """
    completed_steps = coerce_json_param(completed_steps, list)
    try:
        enforce_mutation_policy(auth_token)
        delta = ProgressUpdate(
            current_step=current_step,
            completed_steps=completed_steps,
            percent_complete=percent_complete,
            time_spent=time_spent,
        )
        progress = await get_services().tracker.update_progress(project_id, delta)
        logger.info("Progress of %s overwritten by admin", project_id)
        return {"project_id": project_id, "progress": progress.model_dump(mode="json")}
    except Exception as exc:
        return make_tool_error(exc)


@progress_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
@trace(name="quiz_score", span_type="TOOL")
async def quiz_score(
    questions: Annotated[list[dict], Field(
        description="Quiz questions: {id, type, question, options: [{id, text, correct}], correct, points}",
    )],
    answers: Annotated[dict, Field(description="Question id -> chosen option id (or true/false)")],
    user_id: Annotated[str | None, Field(description="Record the attempt for this user")] = None,
    project_id: Annotated[str | None, Field(description="Project the quiz belongs to")] = None,
    step_index: Annotated[int | None, Field(ge=0, description="Step the quiz belongs to")] = None,
) -> dict:
    """Score a step quiz; pass the percentage to ``progress_complete_step``.

    When user_id, project_id and step_index are all given, the attempt is
    stored and the best score so far is returned alongside.

    Returns:
        Dict with percentage, passed, point and answer counts, and optionally
        attempt_id and best_percentage.
    """
    questions = coerce_json_param(questions, list)
    answers = coerce_json_param(answers, dict)
    try:
        if not isinstance(questions, list) or not isinstance(answers, dict):
            raise ValueError("questions must be a list and answers an object")
        parsed = [QuizQuestion.model_validate(q) for q in questions]
        score = calculate_quiz_score(answers, parsed)
        out = {**score.model_dump(mode="json"), "passed": score.passed}

        if user_id and project_id and step_index is not None:
            quizzes = get_services().quizzes
            out["attempt_id"] = await quizzes.save_attempt(user_id, project_id, step_index, answers, score)
            best = await quizzes.best_attempt(user_id, project_id, step_index)
            out["best_percentage"] = best.score.percentage if best else score.percentage
        return out
    except Exception as exc:
        return make_tool_error(exc)
