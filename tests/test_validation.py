"""Tests for per-type project payload validation."""

from __future__ import annotations

import pytest

from project_spark_mcp.models.project import Domain
from project_spark_mcp.validation import validate_project
from tests.conftest import make_steps


def _generated(**overrides):
    data = {
        "name": "Weather station",
        "description": "Learn sensors",
        "domain": "hardware",
        "skill_level": "beginner",
        "difficulty": 4,
        "estimated_time": "2 weeks",
        "learning_objectives": [{"objective": "Read a datasheet"}],
        "technologies": ["Arduino"],
        "steps": make_steps(2),
    }
    data.update(overrides)
    return data


class TestManual:
    def test_minimal_manual_project(self):
        result = validate_project({"name": "x", "description": "y"})
        assert result.is_valid
        assert result.errors == []

    def test_missing_required(self):
        result = validate_project({"name": "", "description": None})
        assert not result.is_valid
        assert result.errors == [
            "Required field missing: name",
            "Required field missing: description",
        ]

    @pytest.mark.parametrize("difficulty", [0, 11, "5", True, 2.5])
    def test_bad_difficulty(self, difficulty):
        result = validate_project({"name": "x", "description": "y", "difficulty": difficulty})
        assert "Difficulty must be between 1 and 10" in result.errors

    def test_enum_values_accepted(self):
        result = validate_project({"name": "x", "description": "y", "domain": Domain.DESIGN})
        assert result.is_valid

    def test_invalid_domain_and_skill(self):
        result = validate_project({"name": "x", "description": "y",
                                   "domain": "cooking", "skill_level": "wizard"})
        assert result.errors == ["Invalid domain: cooking", "Invalid skill level: wizard"]


class TestGenerated:
    def test_complete_payload(self):
        result = validate_project(_generated(), "generated")
        assert result.is_valid
        assert result.warnings == []

    def test_steps_need_title_and_description(self):
        result = validate_project(
            _generated(steps=[{"title": "only title"}, {"description": "only description"}]),
            "generated",
        )
        assert result.errors == ["Step 1 missing description", "Step 2 missing title"]

    def test_required_lists_must_be_non_empty(self):
        result = validate_project(_generated(technologies=[]), "generated")
        assert "Required field missing: technologies" in result.errors
        assert "No technologies specified" in result.warnings


class TestTemplateAndUnknown:
    def test_template_does_not_check_step_fields(self):
        data = _generated(steps=[{"title": "t"}])
        assert validate_project(data, "template").is_valid

    def test_unknown_type(self):
        result = validate_project({"name": "x"}, "community")
        assert not result.is_valid
        assert result.errors == ["Unknown project type: community"]

    def test_empty_objectives_warn_on_manual(self):
        result = validate_project({"name": "x", "description": "y", "learning_objectives": []})
        assert result.is_valid
        assert result.warnings == ["No learning objectives specified"]
