"""AI-assisted project generation, refinement, skill assessment, and code help."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from .client import GeminiClient
from .errors import MalformedResponseError, RateLimitError, ServiceError, ValidationError
from .models.generation import GeneratedProject, SkillAssessment
from .models.project import Domain, Project, ProjectType, SkillLevel
from .prompts.code import ANALYZE_CODE, CODE_HELP_SETTINGS, EXPLAIN_CODE, GENERATE_CODE, PROJECT_STRUCTURE
from .prompts.project import PROJECT_GENERATION, PROJECT_REFINEMENT, PROJECT_SYSTEM, SKILL_ASSESSMENT
from .retry import retry_with_backoff
from .store import GENERATIONS, SKILL_ASSESSMENTS, DocumentStore

logger = logging.getLogger(__name__)

# Fields sent back to the model when refining; progress and bookkeeping stay local.
_REFINABLE_FIELDS = {
    "name", "description", "domain", "skill_level", "difficulty", "estimated_time",
    "learning_objectives", "technologies", "requirements", "steps", "extensions", "resources",
    "problem_solution_mapping", "learning_journey",
}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ProjectGenerator:
    """Turns a learning goal into a structured Project via Gemini."""

    def __init__(
        self,
        client: GeminiClient,
        store: DocumentStore | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._clock = clock or _utc_now

    def _to_project(self, generated: GeneratedProject, *, domain: str, skill_level: str) -> Project:
        data = generated.model_dump()
        data["name"] = data.pop("title")
        # the requested domain and level win over whatever the model echoed back
        data["domain"] = domain
        data["skill_level"] = skill_level
        data["type"] = ProjectType.GENERATED
        data["is_generated"] = True
        data["schema_version"] = 2
        return Project.from_record(data)

    async def _log_generation(self, record: dict[str, Any]) -> None:
        if self._store is None:
            return
        await retry_with_backoff(lambda: self._store.add(GENERATIONS, record))

    async def generate_project(
        self,
        learning_input: str,
        skill_level: str = SkillLevel.INTERMEDIATE.value,
        domain: str = Domain.CODING.value,
        preferences: dict[str, Any] | None = None,
    ) -> Project:
        """Generate a project for *learning_input*; the result is not stored as a project.

        Raises:
            ValidationError: Empty input or unknown domain / skill level.
            MalformedResponseError: Gemini output could not be parsed.
        """
        if not learning_input.strip():
            raise ValidationError("Describe what you want to learn")
        if domain not in {d.value for d in Domain}:
            raise ValidationError(f"Invalid domain: {domain}")
        if skill_level not in {s.value for s in SkillLevel}:
            raise ValidationError(f"Invalid skill level: {skill_level}")

        prompt = PROJECT_GENERATION.format(
            input=learning_input.strip(),
            skill_level=skill_level,
            domain=domain,
            preferences=json.dumps(preferences or {}),
        )
        generated = await self._client.generate_json(
            prompt, schema=GeneratedProject, system_instruction=PROJECT_SYSTEM,
        )
        project = self._to_project(generated, domain=domain, skill_level=skill_level)
        now = self._clock()
        project = project.model_copy(update={
            "generated_at": now,
            "input_source": learning_input.strip(),
        })
        if not project.steps:
            raise MalformedResponseError("Generated project has no steps")

        await self._log_generation({
            "input": learning_input.strip(),
            "skill_level": skill_level,
            "domain": domain,
            "project_name": project.name,
            "step_count": len(project.steps),
            "created_at": now,
        })
        logger.info("Generated %s project %r (%d steps)", domain, project.name, len(project.steps))
        return project

    async def generate_multiple_projects(
        self,
        learning_input: str,
        skill_level: str = SkillLevel.INTERMEDIATE.value,
        count: int = 3,
    ) -> list[Project]:
        """One project per domain (at most four); domains that fail are skipped.

        Requests are paced by the client's RequestQueue.
        """
        projects: list[Project] = []
        for domain in list(Domain)[: max(0, min(count, len(Domain)))]:
            try:
                projects.append(
                    await self.generate_project(learning_input, skill_level, domain.value)
                )
            except (ServiceError, MalformedResponseError, RateLimitError) as exc:
                logger.warning("Failed to generate %s project: %s", domain.value, exc)
        return projects

    async def refine_project(self, project: Project, feedback: str) -> Project:
        """Rework *project* according to *feedback*, keeping identity and progress."""
        if not feedback.strip():
            raise ValidationError("Feedback must not be empty")
        payload = project.model_dump(mode="json", include=_REFINABLE_FIELDS)
        prompt = PROJECT_REFINEMENT.format(project=json.dumps(payload, indent=2), feedback=feedback.strip())
        generated = await self._client.generate_json(
            prompt, schema=GeneratedProject, system_instruction=PROJECT_SYSTEM,
        )
        refined = self._to_project(
            generated, domain=project.domain.value, skill_level=project.skill_level.value,
        )
        keep = project.model_dump(exclude=_REFINABLE_FIELDS)
        keep.update({"is_generated": True, "refined_at": self._clock()})
        merged = {**refined.model_dump(include=_REFINABLE_FIELDS), **keep}
        logger.info("Refined project %s", project.id or project.name)
        return Project.from_record(merged, project.id or None)

    async def assess_skill_level(self, responses: Any, *, user_id: str | None = None) -> SkillAssessment:
        """Estimate overall and per-domain skill from questionnaire responses."""
        prompt = SKILL_ASSESSMENT.format(responses=json.dumps(responses, indent=2, default=str))
        assessment = await self._client.generate_json(prompt, schema=SkillAssessment)
        if user_id and self._store is not None:
            record = {**assessment.model_dump(), "user_id": user_id, "responses": responses,
                      "created_at": self._clock()}
            await retry_with_backoff(lambda: self._store.add(SKILL_ASSESSMENTS, record))
        return assessment

    async def _code_help(self, action: str, prompt: str) -> str:
        temperature, max_tokens = CODE_HELP_SETTINGS[action]
        return await self._client.generate(
            prompt, temperature=temperature, max_output_tokens=max_tokens,
        )

    async def generate_code(self, request: str, language: str = "python", context: str = "") -> str:
        prompt = GENERATE_CODE.format(
            language=language, request=request, context=f"Context: {context}" if context else "",
        )
        return await self._code_help("generate", prompt)

    async def analyze_code(self, code: str, language: str = "python") -> str:
        return await self._code_help("analyze", ANALYZE_CODE.format(language=language, code=code))

    async def explain_code(self, code: str, language: str = "python") -> str:
        return await self._code_help("explain", EXPLAIN_CODE.format(language=language, code=code))

    async def generate_project_structure(self, project_type: str, requirements: str) -> str:
        prompt = PROJECT_STRUCTURE.format(project_type=project_type, requirements=requirements)
        return await self._code_help("structure", prompt)
