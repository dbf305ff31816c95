"""Project management tools — 6 tools on a FastMCP sub-server."""

from __future__ import annotations

from typing import Annotated, Any

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import make_tool_error
from ..services import get_services
from ..tracing import trace
from ..types import ProjectId, ProjectTypeParam, UserId, coerce_json_param

projects_server = FastMCP("projects")


def _summary(project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "status": project.status.value,
        "type": project.type.value,
        "domain": project.domain.value,
        "skill_level": project.skill_level.value,
        "percent_complete": project.progress.percent_complete,
        "bookmarked": project.bookmarked,
        "updated_at": project.updated_at.isoformat() if project.updated_at else None,
    }


@projects_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
@trace(name="project_create", span_type="TOOL")
async def project_create(
    user_id: UserId,
    project: Annotated[dict, Field(
        description="Project fields: name, description, domain, skill_level, difficulty, "
        "steps (list of {title, description}), technologies, learning_objectives, ...",
    )],
    project_type: ProjectTypeParam = "manual",
) -> dict:
    """Create a learning project for a user.

    The payload is validated against the schema for *project_type*; the
    stored project starts with zero progress.

    Args:
        user_id: Owner of the new project.
        project: Project fields.
        project_type: Validation schema to apply.

    Returns:
        Dict with the stored project (including its new ``id``).
    """
    project = coerce_json_param(project, dict)
    try:
        if not isinstance(project, dict):
            raise ValueError("project must be a JSON object")
        created = await get_services().projects.create(user_id, {**project, "type": project_type})
        return {"project": created.model_dump(mode="json")}
    except Exception as exc:
        return make_tool_error(exc)


@projects_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="project_list", span_type="TOOL")
async def project_list(user_id: UserId) -> dict:
    """List a user's projects, most recently updated first.

    Returns:
        Dict with ``projects`` (summaries) and ``count``.
    """
    try:
        projects = await get_services().projects.list_for_user(user_id)
        return {"projects": [_summary(p) for p in projects], "count": len(projects)}
    except Exception as exc:
        return make_tool_error(exc)


@projects_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="project_get", span_type="TOOL")
async def project_get(project_id: ProjectId) -> dict:
    """Fetch one project with its steps and progress."""
    try:
        project = await get_services().projects.require(project_id)
        return {"project": project.model_dump(mode="json")}
    except Exception as exc:
        return make_tool_error(exc)


@projects_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="project_update", span_type="TOOL")
async def project_update(
    project_id: ProjectId,
    updates: Annotated[dict, Field(
        description="Fields to change. Progress is changed through the progress tools.",
    )],
) -> dict:
    """Partially update a project's editable fields.

    Returns:
        Dict with the updated project.
    """
    updates = coerce_json_param(updates, dict)
    try:
        if not isinstance(updates, dict) or not updates:
            raise ValueError("updates must be a non-empty JSON object")
        project = await get_services().projects.update(project_id, updates)
        return {"project": project.model_dump(mode="json")}
    except Exception as exc:
        return make_tool_error(exc)


@projects_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=False,
        openWorldHint=False,
    )
)
@trace(name="project_delete", span_type="TOOL")
async def project_delete(project_id: ProjectId) -> dict:
    """Delete a project permanently."""
    try:
        await get_services().projects.delete(project_id)
        return {"deleted": project_id}
    except Exception as exc:
        return make_tool_error(exc)


@projects_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    )
)
@trace(name="project_bookmark", span_type="TOOL")
async def project_bookmark(project_id: ProjectId) -> dict:
    """Toggle the bookmark flag; returns the new value."""
    try:
        bookmarked = await get_services().projects.toggle_bookmark(project_id)
        return {"project_id": project_id, "bookmarked": bookmarked}
    except Exception as exc:
        return make_tool_error(exc)
