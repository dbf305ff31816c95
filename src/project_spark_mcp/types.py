"""Shared type aliases and helpers for tool parameters."""

from __future__ import annotations

import json
from typing import Annotated, Literal

from pydantic import Field


def coerce_json_param(value: str | dict | list | None, expected_type: type) -> dict | list | None:
    """Parse MCP JSON-RPC string params back to dict/list.

    MCP clients sometimes send dict/list arguments as JSON strings, which
    pydantic v2 rejects. This helper turns them back into Python objects.

    Args:
        value: The parameter value (possibly a JSON string).
        expected_type: Expected Python type (``dict`` or ``list``).

    Returns:
        Parsed value if coercion succeeded, original value otherwise.
    """
    if not isinstance(value, str):
        return value
    try:
        parsed = json.loads(value)
    except (json.JSONDecodeError, TypeError):
        return value
    return parsed if isinstance(parsed, expected_type) else value

# ── Literal enums ────────────────────────────────────────────────────────────

DomainParam = Literal["coding", "hardware", "design", "research"]
SkillLevelParam = Literal["beginner", "intermediate", "advanced"]
ProjectTypeParam = Literal["manual", "generated", "template", "community"]
CodeHelpAction = Literal["generate", "analyze", "explain", "structure"]
ModelPreset = Literal["quality", "balanced", "budget"]

# ── Annotated aliases ────────────────────────────────────────────────────────

ProjectId = Annotated[str, Field(min_length=1, description="Project document ID")]
UserId = Annotated[str, Field(min_length=1, description="Owner's user ID")]
StepIndex = Annotated[int, Field(ge=0, description="Zero-based index into the project's steps")]
LearningInput = Annotated[str, Field(
    min_length=3,
    max_length=2000,
    description="What the learner wants to learn, in their own words",
)]
AuthToken = Annotated[str | None, Field(
    description="Optional admin token (required when SPARK_ADMIN_TOKEN is configured)",
)]
