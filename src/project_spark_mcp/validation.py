"""Schema checks for project payloads before they are stored.

Goes beyond pydantic type coercion: per-type required fields, enum
membership for domain and skill level, difficulty range, and step
completeness for generated projects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .models.project import Domain, ProjectType, SkillLevel

PROJECT_SCHEMAS: dict[str, dict[str, list[str]]] = {
    ProjectType.MANUAL.value: {
        "required": ["name", "description"],
        "optional": ["technologies", "tags", "status"],
    },
    ProjectType.GENERATED.value: {
        "required": [
            "name", "description", "domain", "skill_level", "difficulty",
            "estimated_time", "learning_objectives", "technologies", "steps",
        ],
        "optional": ["requirements", "extensions", "resources", "input_source", "tags", "status"],
    },
    ProjectType.TEMPLATE.value: {
        "required": [
            "name", "description", "domain", "skill_level", "steps",
            "learning_objectives", "technologies",
        ],
        "optional": ["requirements", "extensions", "resources", "tags", "difficulty", "estimated_time"],
    },
}


@dataclass
class ValidationResult:
    """Aggregated result of all validation checks."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, dict)) and not value)


def validate_project(data: dict[str, Any], project_type: str = ProjectType.MANUAL.value) -> ValidationResult:
    """Check a raw project payload against the schema for *project_type*."""
    errors: list[str] = []
    warnings: list[str] = []

    schema = PROJECT_SCHEMAS.get(project_type)
    if schema is None:
        return ValidationResult(is_valid=False, errors=[f"Unknown project type: {project_type}"])

    for name in schema["required"]:
        if _is_missing(data.get(name)):
            errors.append(f"Required field missing: {name}")

    domain = getattr(data.get("domain"), "value", data.get("domain"))
    if domain and domain not in {d.value for d in Domain}:
        errors.append(f"Invalid domain: {domain}")

    skill_level = getattr(data.get("skill_level"), "value", data.get("skill_level"))
    if skill_level and skill_level not in {s.value for s in SkillLevel}:
        errors.append(f"Invalid skill level: {skill_level}")

    difficulty = data.get("difficulty")
    if difficulty is not None:
        if not isinstance(difficulty, int) or isinstance(difficulty, bool) or not 1 <= difficulty <= 10:
            errors.append("Difficulty must be between 1 and 10")

    if project_type == ProjectType.GENERATED.value:
        for i, step in enumerate(data.get("steps") or [], start=1):
            step = step if isinstance(step, dict) else {}
            if not step.get("title"):
                errors.append(f"Step {i} missing title")
            if not step.get("description"):
                errors.append(f"Step {i} missing description")

    if "learning_objectives" in data and not data["learning_objectives"]:
        warnings.append("No learning objectives specified")
    if "technologies" in data and not data["technologies"]:
        warnings.append("No technologies specified")

    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
