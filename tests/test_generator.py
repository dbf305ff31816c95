"""Tests for AI project generation, refinement, and code help."""

from __future__ import annotations

import pytest

from project_spark_mcp.client import GeminiClient
from project_spark_mcp.errors import MalformedResponseError, ServiceError, ValidationError
from project_spark_mcp.generator import ProjectGenerator
from project_spark_mcp.models.generation import GeneratedProject, SkillAssessment
from project_spark_mcp.models.project import Domain, Project, ProjectType
from project_spark_mcp.request_queue import RequestQueue
from project_spark_mcp.store import GENERATIONS, SKILL_ASSESSMENTS
from tests.conftest import make_steps


def _generated(**overrides) -> GeneratedProject:
    data = {
        "title": "Build a weather station",
        "description": "Measure temperature and humidity",
        "domain": "hardware",
        "skill_level": "beginner",
        "difficulty": 3,
        "technologies": ["Arduino"],
        "steps": make_steps(3),
    }
    data.update(overrides)
    return GeneratedProject.model_validate(data)


@pytest.fixture()
def generator(store, clock, mock_gemini_client):
    return ProjectGenerator(GeminiClient(RequestQueue(min_interval=0)), store, clock=clock)


class TestGenerateProject:
    async def test_builds_generated_project(self, generator, mock_gemini_client, clock):
        mock_gemini_client["generate_json"].return_value = _generated()

        project = await generator.generate_project("I want to learn sensors", "beginner", "hardware")

        assert project.name == "Build a weather station"
        assert project.type is ProjectType.GENERATED
        assert project.is_generated is True
        assert project.domain is Domain.HARDWARE
        assert project.progress.total_steps == 3
        assert project.generated_at == clock()
        assert project.input_source == "I want to learn sensors"
        assert project.requirements == {"tools": [], "materials": [], "prerequisites": []}

    async def test_prompt_contains_inputs(self, generator, mock_gemini_client):
        mock_gemini_client["generate_json"].return_value = _generated()

        await generator.generate_project("  learn soldering ", "advanced", "hardware", {"time": "1 week"})

        prompt = mock_gemini_client["generate_json"].await_args.args[0]
        assert '"learn soldering"' in prompt
        assert "SKILL LEVEL: advanced" in prompt
        assert '"time": "1 week"' in prompt
        assert mock_gemini_client["generate_json"].await_args.kwargs["schema"] is GeneratedProject

    async def test_requested_domain_and_level_win(self, generator, mock_gemini_client):
        mock_gemini_client["generate_json"].return_value = _generated(domain="Cooking", skill_level="guru")

        project = await generator.generate_project("learn", "beginner", "design")

        assert project.domain is Domain.DESIGN
        assert project.skill_level.value == "beginner"

    async def test_logs_generation(self, generator, mock_gemini_client, store):
        mock_gemini_client["generate_json"].return_value = _generated()

        await generator.generate_project("learn sensors", "beginner", "hardware")

        [record] = await store.query(GENERATIONS)
        assert record["project_name"] == "Build a weather station"
        assert record["step_count"] == 3

    @pytest.mark.parametrize("args", [
        ("   ", "beginner", "coding"),
        ("learn", "beginner", "cooking"),
        ("learn", "expert", "coding"),
    ])
    async def test_rejects_bad_input(self, generator, mock_gemini_client, args):
        with pytest.raises(ValidationError):
            await generator.generate_project(*args)
        mock_gemini_client["generate_json"].assert_not_awaited()

    async def test_no_steps_is_malformed(self, generator, mock_gemini_client):
        mock_gemini_client["generate_json"].return_value = _generated(steps=[])
        with pytest.raises(MalformedResponseError):
            await generator.generate_project("learn", "beginner", "coding")


class TestGenerateMultiple:
    async def test_failed_domains_are_skipped(self, generator, mock_gemini_client):
        mock_gemini_client["generate_json"].side_effect = [
            _generated(title="Code it"),
            MalformedResponseError("junk"),
            ServiceError.from_code("permission-denied"),
            _generated(title="Research it"),
        ]

        projects = await generator.generate_multiple_projects("learn", "beginner", count=4)

        assert [p.name for p in projects] == ["Code it", "Research it"]
        assert [p.domain for p in projects] == [Domain.CODING, Domain.RESEARCH]

    async def test_count_is_capped_at_domains(self, generator, mock_gemini_client):
        mock_gemini_client["generate_json"].return_value = _generated()
        projects = await generator.generate_multiple_projects("learn", count=10)
        assert len(projects) == 4


class TestRefineProject:
    async def test_keeps_identity_and_progress(self, generator, mock_gemini_client, clock):
        original = Project.from_record({
            "user_id": "u1", "name": "Old", "description": "d", "domain": "coding",
            "steps": make_steps(2), "progress": {"completed_steps": [0], "current_step": 1},
            "bookmarked": True, "schema_version": 2,
        }, "p1")
        mock_gemini_client["generate_json"].return_value = _generated(
            title="New", domain="coding", steps=make_steps(2),
        )

        refined = await generator.refine_project(original, "make it harder")

        assert refined.id == "p1"
        assert refined.name == "New"
        assert refined.user_id == "u1"
        assert refined.bookmarked is True
        assert refined.progress.completed_steps == [0]
        assert refined.refined_at == clock()
        assert "make it harder" in mock_gemini_client["generate_json"].await_args.args[0]

    async def test_empty_feedback_rejected(self, generator):
        with pytest.raises(ValidationError):
            await generator.refine_project(Project(name="x"), " ")


class TestAssessSkills:
    async def test_stores_assessment_for_user(self, generator, mock_gemini_client, store):
        mock_gemini_client["generate_json"].return_value = SkillAssessment(
            overall_level="beginner", domain_levels={"coding": "intermediate"},
        )

        result = await generator.assess_skill_level({"q1": "some python"}, user_id="u1")

        assert result.overall_level == "beginner"
        [record] = await store.query(SKILL_ASSESSMENTS, {"user_id": "u1"})
        assert record["domain_levels"] == {"coding": "intermediate"}
        assert record["responses"] == {"q1": "some python"}

    async def test_anonymous_assessment_not_stored(self, generator, mock_gemini_client, store):
        mock_gemini_client["generate_json"].return_value = SkillAssessment()
        await generator.assess_skill_level({})
        assert await store.query(SKILL_ASSESSMENTS) == []


class TestCodeHelp:
    @pytest.mark.parametrize("method,args,temperature", [
        ("generate_code", ("a fizzbuzz", "python"), 0.7),
        ("analyze_code", ("print(1)", "python"), 0.3),
        ("explain_code", ("print(1)", "python"), 0.5),
        ("generate_project_structure", ("web app", "auth and a db"), 0.6),
    ])
    async def test_settings_per_action(self, generator, mock_gemini_client, method, args, temperature):
        mock_gemini_client["generate"].return_value = "answer"

        assert await getattr(generator, method)(*args) == "answer"

        call = mock_gemini_client["generate"].await_args
        assert call.kwargs["temperature"] == temperature
        assert args[0] in call.args[0]
