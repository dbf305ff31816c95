"""Structured output schemas for Gemini project generation.

Used with ``GeminiClient.generate_json()``; the generator converts the
validated result into a :class:`~project_spark_mcp.models.project.Project`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from .project import LearningObjective, Resource, Step


class ProblemSolutionMapping(BaseModel):
    """How the generated project answers the learner's original question."""

    original_problem: str = ""
    how_project_solves: str = ""
    why_this_approach: str = ""
    key_connections: list[str] = Field(default_factory=list)


class ProjectRequirements(BaseModel):
    tools: list[str] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)
    prerequisites: list[str] = Field(default_factory=list)


class LearningJourney(BaseModel):
    before_project: str = ""
    during_project: str = ""
    after_project: str = ""
    real_world_application: str = ""


class GeneratedProject(BaseModel):
    """Output schema for project generation and refinement."""

    model_config = ConfigDict(extra="ignore")

    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    domain: str = "coding"
    skill_level: str = "intermediate"
    estimated_time: str = "Unknown"
    difficulty: int = Field(default=5, ge=1, le=10)
    problem_solution_mapping: ProblemSolutionMapping = Field(default_factory=ProblemSolutionMapping)
    learning_objectives: list[LearningObjective] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    requirements: ProjectRequirements = Field(default_factory=ProjectRequirements)
    steps: list[Step] = Field(default_factory=list)
    extensions: list[str] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)
    learning_journey: LearningJourney = Field(default_factory=LearningJourney)


class SkillAssessment(BaseModel):
    """Output schema for skill-level assessment."""

    overall_level: str = "intermediate"
    domain_levels: dict[str, str] = Field(default_factory=dict)
    strengths: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    suggested_domains: list[str] = Field(default_factory=list)
