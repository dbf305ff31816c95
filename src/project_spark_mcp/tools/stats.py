"""User stats and achievement tools — 2 tools on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..achievements import ACHIEVEMENT_CATEGORIES, ACHIEVEMENT_DEFINITIONS
from ..errors import make_tool_error
from ..services import get_services
from ..tracing import tag_span, trace
from ..types import UserId

logger = logging.getLogger(__name__)
stats_server = FastMCP("stats")


@stats_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="user_stats", span_type="TOOL")
async def user_stats(
    user_id: UserId,
    check_achievements: Annotated[bool, Field(
        description="Also award achievements the current stats qualify for",
    )] = True,
) -> dict:
    """Learning statistics across all of a user's projects.

    Covers project and completion counts, total time spent (seconds), the
    completion rate, current and longest daily streaks, favourite skills and
    recent activity.

    Args:
        user_id: User to summarise.
        check_achievements: When true, newly earned achievements are stored
            and listed under ``new_achievements``.

    Returns:
        Dict with stats and, when checked, new_achievements.
    """
    try:
        stats_service = get_services().stats
        if not check_achievements:
            stats = await stats_service.user_stats(user_id)
            return {"user_id": user_id, "stats": stats.model_dump(mode="json")}

        stats, new = await stats_service.check_achievements(user_id)
        tag_span(user_id=user_id, new_achievements=len(new))
        return {
            "user_id": user_id,
            "stats": stats.model_dump(mode="json"),
            "new_achievements": [a.model_dump(mode="json") for a in new],
        }
    except Exception as exc:
        return make_tool_error(exc)


@stats_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="achievements_list", span_type="TOOL")
async def achievements_list(user_id: UserId) -> dict:
    """The achievement catalogue with a user's earned state and progress.

    Read-only: nothing is awarded here, use ``user_stats`` for that.

    Returns:
        Dict with achievements (id, title, points, category, earned,
        earned_at, progress), categories, earned_points and total_points.
    """
    try:
        stats_service = get_services().stats
        earned = {a.id: a for a in await stats_service.earned_achievements(user_id)}
        projects = await get_services().projects.list_for_user(user_id)
        stats = await stats_service.user_stats(user_id)

        items = []
        for definition in ACHIEVEMENT_DEFINITIONS:
            award = earned.get(definition.id)
            items.append({
                "id": definition.id,
                "title": definition.title,
                "description": definition.description,
                "icon_name": definition.icon_name,
                "points": definition.points,
                "category": definition.category,
                "earned": award is not None,
                "earned_at": award.earned_at.isoformat() if award else None,
                "progress": 100.0 if award else definition.progress(stats, projects),
            })
        logger.debug("Listed achievements for %s (%d earned)", user_id, len(earned))
        return {
            "user_id": user_id,
            "achievements": items,
            "categories": {
                key: {"name": c.name, "color": c.color, "icon": c.icon}
                for key, c in ACHIEVEMENT_CATEGORIES.items()
            },
            "earned_points": sum(a.points for a in earned.values()),
            "total_points": sum(d.points for d in ACHIEVEMENT_DEFINITIONS),
        }
    except Exception as exc:
        return make_tool_error(exc)
