"""Tests for the Gemini-backed tools."""

from __future__ import annotations

import pytest

import project_spark_mcp.tools.ai as ai_mod
from project_spark_mcp.errors import MalformedResponseError, RateLimitError
from project_spark_mcp.models.generation import GeneratedProject, SkillAssessment
from project_spark_mcp.store import PROJECTS, SKILL_ASSESSMENTS
from tests.conftest import make_steps, unwrap_tool

ai_generate_project = unwrap_tool(ai_mod.ai_generate_project)
ai_refine_project = unwrap_tool(ai_mod.ai_refine_project)
ai_assess_skills = unwrap_tool(ai_mod.ai_assess_skills)
ai_code_help = unwrap_tool(ai_mod.ai_code_help)


def _generated(**overrides) -> GeneratedProject:
    data = {
        "title": "Home automation hub",
        "description": "Control lights from a Raspberry Pi",
        "estimated_time": "2 weeks",
        "difficulty": 4,
        "learning_objectives": [{"objective": "Wire a relay"}],
        "technologies": ["Python", "Raspberry Pi"],
        "steps": make_steps(3),
    }
    data.update(overrides)
    return GeneratedProject.model_validate(data)


class TestGenerateProjectTool:
    async def test_single_domain(self, services, mock_gemini_client):
        mock_gemini_client["generate_json"].return_value = _generated()

        out = await ai_generate_project(
            learning_input="I want to automate my lights", skill_level="beginner", domain="hardware",
        )

        [project] = out["projects"]
        assert project["name"] == "Home automation hub"
        assert project["domain"] == "hardware"
        assert project["type"] == "generated"
        assert "saved_project_id" not in out

    async def test_multiple_domains_and_save(self, services, mock_gemini_client, store):
        mock_gemini_client["generate_json"].return_value = _generated()

        out = await ai_generate_project(
            learning_input="I want to automate my lights", skill_level="beginner", count=2, user_id="u1",
        )

        assert [p["domain"] for p in out["projects"]] == ["coding", "hardware"]
        record = await store.get(PROJECTS, out["saved_project_id"])
        assert record["user_id"] == "u1"
        assert record["domain"] == "coding"
        assert record["progress"]["total_steps"] == 3
        assert record["progress"]["completed_steps"] == []

    async def test_all_domains_failing(self, services, mock_gemini_client):
        mock_gemini_client["generate_json"].side_effect = MalformedResponseError("junk")

        out = await ai_generate_project(learning_input="learn stuff", skill_level="beginner", count=3)

        assert out["category"] == "UNKNOWN"
        assert "No project could be generated" in out["error"]

    async def test_rate_limited(self, services, mock_gemini_client):
        mock_gemini_client["generate_json"].side_effect = RateLimitError("slow down", retry_after=12.4)

        out = await ai_generate_project(learning_input="learn stuff", skill_level="beginner", domain="coding")

        assert out["category"] == "RATE_LIMITED"
        assert out["retryable"] is True
        assert out["retry_after_seconds"] == 12


class TestRefineProjectTool:
    @pytest.fixture()
    async def project_id(self, services):
        project = await services.projects.create("u1", {
            "name": "Old hub", "description": "d", "steps": make_steps(2),
        })
        await services.tracker.complete_step_by_id(project.id, 0)
        return project.id

    async def test_preview_does_not_save(self, services, mock_gemini_client, project_id):
        mock_gemini_client["generate_json"].return_value = _generated(title="New hub", steps=make_steps(2))

        out = await ai_refine_project(project_id=project_id, feedback="add voice control")

        assert out["saved"] is False
        assert out["project"]["name"] == "New hub"
        assert (await services.projects.require(project_id)).name == "Old hub"

    async def test_save_keeps_progress(self, services, mock_gemini_client, project_id):
        mock_gemini_client["generate_json"].return_value = _generated(title="New hub", steps=make_steps(2))

        out = await ai_refine_project(project_id=project_id, feedback="add voice control", save=True)

        assert out["saved"] is True
        stored = await services.projects.require(project_id)
        assert stored.name == "New hub"
        assert stored.refined_at is not None
        assert stored.progress.completed_steps == [0]

    async def test_unknown_project(self, services, mock_gemini_client):
        out = await ai_refine_project(project_id="ghost", feedback="anything")
        assert out["category"] == "NOT_FOUND"
        mock_gemini_client["generate_json"].assert_not_awaited()


class TestAssessSkillsTool:
    async def test_accepts_json_string(self, services, mock_gemini_client, store):
        mock_gemini_client["generate_json"].return_value = SkillAssessment(overall_level="advanced")

        out = await ai_assess_skills(responses='{"experience": "10 years of Go"}', user_id="u1")

        assert out["overall_level"] == "advanced"
        assert len(await store.query(SKILL_ASSESSMENTS, {"user_id": "u1"})) == 1


class TestCodeHelpTool:
    @pytest.mark.parametrize("action", ["generate", "analyze", "explain", "structure"])
    async def test_actions(self, services, mock_gemini_client, action):
        mock_gemini_client["generate"].return_value = "here you go"

        out = await ai_code_help(action=action, text="a todo app", language="python", context="")

        assert out == {"action": action, "response": "here you go"}
        mock_gemini_client["generate"].assert_awaited_once()

    async def test_unknown_action(self, services, mock_gemini_client):
        out = await ai_code_help(action="compile", text="x", language="python", context="")
        assert out["category"] == "INVALID_ARGUMENT"
