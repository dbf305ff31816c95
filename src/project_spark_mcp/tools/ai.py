"""Gemini-backed tools — 4 tools on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import make_tool_error
from ..services import get_services
from ..tracing import tag_span, trace
from ..types import (
    CodeHelpAction,
    DomainParam,
    LearningInput,
    ProjectId,
    SkillLevelParam,
    coerce_json_param,
)

logger = logging.getLogger(__name__)
ai_server = FastMCP("ai")


@ai_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True))
@trace(name="ai_generate_project", span_type="TOOL")
async def ai_generate_project(
    learning_input: LearningInput,
    skill_level: SkillLevelParam = "intermediate",
    domain: DomainParam | None = None,
    count: Annotated[int, Field(ge=1, le=4, description="Projects to propose, one per domain")] = 1,
    preferences: Annotated[dict | None, Field(description="Free-form preferences passed to the model")] = None,
    user_id: Annotated[str | None, Field(description="Save the first generated project for this user")] = None,
) -> dict:
    """Design hands-on projects that teach what the learner asked for.

    With *domain* set, one project in that domain is generated. Otherwise up
    to *count* projects are generated, one per domain; domains whose
    generation fails are skipped.

    Args:
        learning_input: The learner's goal.
        skill_level: Learner's level.
        domain: Restrict to one domain.
        count: Number of projects when no domain is given.
        preferences: Extra constraints (time budget, tools, ...).
        user_id: When given, the first project is stored for this user.

    Returns:
        Dict with ``projects`` and, when saved, ``saved_project_id``.
    """
    preferences = coerce_json_param(preferences, dict)
    try:
        services = get_services()
        if domain is not None:
            projects = [await services.generator.generate_project(
                learning_input, skill_level, domain, preferences,
            )]
        else:
            projects = await services.generator.generate_multiple_projects(
                learning_input, skill_level, count,
            )
            if not projects:
                raise RuntimeError("No project could be generated for any domain")

        tag_span(domain=domain, skill_level=skill_level, generated=len(projects))
        out: dict = {"projects": [p.model_dump(mode="json") for p in projects]}
        if user_id:
            saved = await services.projects.create(
                user_id, projects[0].model_dump(mode="json", exclude={"id", "progress"}),
            )
            out["saved_project_id"] = saved.id
            logger.info("Saved generated project %s for %s", saved.id, user_id)
        return out
    except Exception as exc:
        return make_tool_error(exc)


@ai_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True))
@trace(name="ai_refine_project", span_type="TOOL")
async def ai_refine_project(
    project_id: ProjectId,
    feedback: Annotated[str, Field(min_length=1, description="What to change about the project")],
    save: Annotated[bool, Field(description="Write the refined content back to the project")] = False,
) -> dict:
    """Rework a stored project according to feedback.

    Progress, ownership and timestamps are kept. With ``save`` the refined
    fields overwrite the stored project.
    """
    try:
        services = get_services()
        project = await services.projects.require(project_id)
        refined = await services.generator.refine_project(project, feedback)
        if save:
            updates = refined.model_dump(include={
                "name", "description", "difficulty", "estimated_time", "learning_objectives",
                "technologies", "requirements", "steps", "extensions", "resources",
                "problem_solution_mapping", "learning_journey", "refined_at",
            })
            refined = await services.projects.update(project_id, updates)
        return {"project": refined.model_dump(mode="json"), "saved": save}
    except Exception as exc:
        return make_tool_error(exc)


@ai_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True))
@trace(name="ai_assess_skills", span_type="TOOL")
async def ai_assess_skills(
    responses: Annotated[dict, Field(description="Questionnaire answers keyed by question")],
    user_id: Annotated[str | None, Field(description="Store the assessment for this user")] = None,
) -> dict:
    """Estimate overall and per-domain skill level from questionnaire answers."""
    responses = coerce_json_param(responses, dict)
    try:
        assessment = await get_services().generator.assess_skill_level(responses, user_id=user_id)
        return assessment.model_dump(mode="json")
    except Exception as exc:
        return make_tool_error(exc)


@ai_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))
@trace(name="ai_code_help", span_type="TOOL")
async def ai_code_help(
    action: CodeHelpAction,
    text: Annotated[str, Field(
        min_length=1,
        description="The request (generate), the code (analyze/explain), or the requirements (structure)",
    )],
    language: Annotated[str, Field(description="Programming language or project type")] = "python",
    context: Annotated[str, Field(description="Extra context for generate")] = "",
) -> dict:
    """Generate, analyze, or explain code, or propose a project structure.

    Returns:
        Dict with ``action`` and the model's plain-text ``response``.
    """
    try:
        generator = get_services().generator
        if action == "generate":
            response = await generator.generate_code(text, language, context)
        elif action == "analyze":
            response = await generator.analyze_code(text, language)
        elif action == "explain":
            response = await generator.explain_code(text, language)
        elif action == "structure":
            response = await generator.generate_project_structure(language, text)
        else:
            raise ValueError(f"Unknown action: {action}")
        return {"action": action, "response": response}
    except Exception as exc:
        return make_tool_error(exc)
