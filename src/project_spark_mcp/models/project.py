"""Learning project data model — Project, Step, Progress.

External records (document-store dicts, AI output) are normalized through
:meth:`Project.from_record` into fully populated models: absent lists become
empty lists, absent progress becomes the zero state,
``progress.total_steps`` is re-synced to ``len(steps)``, and completed step
indices that no longer name a step are dropped.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProjectStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"
    ARCHIVED = "archived"
    DRAFT = "draft"


def completion_percent(completed: int, total: int) -> float:
    """Share of completed steps as a percentage; 0 for a project without steps."""
    return (completed / total) * 100 if total > 0 else 0.0


class ProgressStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ProjectType(str, Enum):
    MANUAL = "manual"
    GENERATED = "generated"
    TEMPLATE = "template"
    COMMUNITY = "community"


class Domain(str, Enum):
    CODING = "coding"
    HARDWARE = "hardware"
    DESIGN = "design"
    RESEARCH = "research"


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class Step(BaseModel):
    """One unit of work; identified only by its index within ``Project.steps``."""

    model_config = ConfigDict(extra="ignore")

    title: str = ""
    description: str = ""
    learning_focus: str = ""
    estimated_time: str = ""
    connection_to_goal: str = ""
    hints: list[str] = Field(default_factory=list)
    reflection_prompts: list[str] = Field(default_factory=list)


class LearningObjective(BaseModel):
    model_config = ConfigDict(extra="ignore")

    objective: str
    connection_to_input: str = ""
    measurable_outcome: str = ""


class Resource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    url: str = ""
    type: str = ""


class Progress(BaseModel):
    """Mutable completion state owned by exactly one Project."""

    model_config = ConfigDict(extra="ignore")

    current_step: int = Field(default=0, ge=0)
    completed_steps: list[int] = Field(default_factory=list)
    total_steps: int = Field(default=0, ge=0)
    percent_complete: float = Field(default=0.0, ge=0.0, le=100.0)
    time_spent: float = Field(default=0.0, ge=0.0)
    last_worked_on: datetime | None = None
    status: ProgressStatus = ProgressStatus.IN_PROGRESS

    @field_validator("completed_steps")
    @classmethod
    def dedupe_completed_steps(cls, value: list[int]) -> list[int]:
        seen: set[int] = set()
        unique: list[int] = []
        for index in value:
            if index not in seen:
                seen.add(index)
                unique.append(index)
        return unique


class Project(BaseModel):
    """A user's learning unit composed of ordered steps."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    user_id: str = ""
    name: str = ""
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    type: ProjectType = ProjectType.MANUAL
    domain: Domain = Domain.CODING
    skill_level: SkillLevel = SkillLevel.INTERMEDIATE
    difficulty: int = Field(default=5, ge=1, le=10)
    estimated_time: str = "Unknown"
    tags: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    learning_objectives: list[LearningObjective] = Field(default_factory=list)
    requirements: dict[str, list[str]] = Field(default_factory=dict)
    steps: list[Step] = Field(default_factory=list)
    extensions: list[str] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)
    problem_solution_mapping: dict[str, Any] = Field(default_factory=dict)
    learning_journey: dict[str, str] = Field(default_factory=dict)
    progress: Progress = Field(default_factory=Progress)
    is_generated: bool = False
    generated_at: datetime | None = None
    refined_at: datetime | None = None
    input_source: str | None = None
    is_public: bool = False
    bookmarked: bool = False
    likes: int = 0
    views: int = 0
    forks: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    schema_version: int = 2

    @classmethod
    def from_record(cls, record: dict[str, Any], project_id: str | None = None) -> Project:
        """Normalize a stored or generated record into a complete Project."""
        data = {k: v for k, v in record.items() if v is not None}
        if project_id is not None:
            data["id"] = project_id
        if "name" not in data and data.get("title"):
            data["name"] = data["title"]
        if data.get("schema_version", 1) < 2:
            # v1 records predate the type field
            data["type"] = ProjectType.GENERATED if data.get("is_generated") else ProjectType.MANUAL
            data["schema_version"] = 2

        data["steps"] = [
            {"title": s} if isinstance(s, str) else s for s in data.get("steps") or []
        ]
        data["learning_objectives"] = [
            {"objective": o} if isinstance(o, str) else o
            for o in data.get("learning_objectives") or []
        ]
        data["resources"] = [
            {"title": r, "url": r} if isinstance(r, str) else r
            for r in data.get("resources") or []
        ]

        progress = dict(data.get("progress") or {})
        progress = {k: v for k, v in progress.items() if v is not None}
        total = len(data["steps"])
        stored = progress.get("completed_steps") or []
        completed = [i for i in stored if isinstance(i, int) and 0 <= i < total]
        if len(completed) != len(stored):
            progress["completed_steps"] = completed
            progress["percent_complete"] = completion_percent(len(set(completed)), total)
        progress["total_steps"] = total
        data["progress"] = progress
        return cls.model_validate(data)

    def to_record(self) -> dict[str, Any]:
        """JSON-safe dict for the document store (``id`` is the document key)."""
        return self.model_dump(mode="json", exclude={"id"})
