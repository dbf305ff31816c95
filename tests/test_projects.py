"""Tests for project CRUD."""

from __future__ import annotations

import pytest

from project_spark_mcp.errors import NotFoundError, ValidationError
from project_spark_mcp.models.project import ProjectStatus, ProjectType
from project_spark_mcp.projects import ProjectService
from project_spark_mcp.store import PROJECTS
from tests.conftest import make_steps


@pytest.fixture()
def projects(store, clock):
    return ProjectService(store, clock=clock)


class TestCreate:
    async def test_defaults_and_zero_progress(self, projects, store, clock):
        project = await projects.create("u1", {
            "name": "Blog engine", "description": "Learn Flask", "steps": make_steps(2),
            "progress": {"completed_steps": [0, 1]},
        })

        assert project.id
        assert project.user_id == "u1"
        assert project.status is ProjectStatus.ACTIVE
        assert project.type is ProjectType.MANUAL
        assert project.progress.completed_steps == []
        assert project.progress.total_steps == 2
        assert project.created_at == clock()

        record = await store.get(PROJECTS, project.id)
        assert record["name"] == "Blog engine"
        assert record["progress"]["percent_complete"] == 0
        assert "id" not in record

    async def test_validation_errors_are_joined(self, projects):
        with pytest.raises(ValidationError, match="name.*description"):
            await projects.create("u1", {"difficulty": 3})

    async def test_requires_user(self, projects):
        with pytest.raises(ValidationError):
            await projects.create("", {"name": "x", "description": "y"})

    async def test_generated_type_uses_stricter_schema(self, projects):
        with pytest.raises(ValidationError, match="steps"):
            await projects.create("u1", {"name": "x", "description": "y", "type": "generated"})


class TestReadAndList:
    async def test_require_missing(self, projects):
        with pytest.raises(NotFoundError):
            await projects.require("missing")
        assert await projects.get("missing") is None

    async def test_list_newest_first(self, projects, clock):
        first = await projects.create("u1", {"name": "a", "description": "d"})
        clock.advance(minutes=1)
        second = await projects.create("u1", {"name": "b", "description": "d"})
        await projects.create("u2", {"name": "c", "description": "d"})
        clock.advance(minutes=1)
        await projects.update(first.id, {"description": "edited"})

        listed = await projects.list_for_user("u1")

        assert [p.id for p in listed] == [first.id, second.id]


class TestUpdate:
    async def test_partial_update(self, projects, clock):
        project = await projects.create("u1", {"name": "a", "description": "d", "steps": make_steps(1)})
        clock.advance(hours=1)

        updated = await projects.update(project.id, {"name": "renamed", "steps": make_steps(4)})

        assert updated.name == "renamed"
        assert updated.description == "d"
        assert updated.progress.total_steps == 4
        assert updated.updated_at == clock()

    @pytest.mark.parametrize("field", ["progress", "user_id", "completed_at", "id"])
    async def test_protected_fields(self, projects, field):
        project = await projects.create("u1", {"name": "a", "description": "d"})
        with pytest.raises(ValidationError, match=field):
            await projects.update(project.id, {field: None})

    async def test_invalid_values_rejected(self, projects):
        project = await projects.create("u1", {"name": "a", "description": "d"})
        with pytest.raises(ValidationError):
            await projects.update(project.id, {"difficulty": 42})

    async def test_cannot_complete_by_status(self, projects):
        project = await projects.create("u1", {"name": "a", "description": "d", "steps": make_steps(1)})
        with pytest.raises(ValidationError, match="finishing their steps"):
            await projects.update(project.id, {"status": "completed"})

    async def test_other_status_changes_allowed(self, projects):
        project = await projects.create("u1", {"name": "a", "description": "d"})
        assert (await projects.update(project.id, {"status": "paused"})).status is ProjectStatus.PAUSED

    async def test_unknown_project(self, projects):
        with pytest.raises(NotFoundError):
            await projects.update("ghost", {"name": "x"})


class TestDeleteAndBookmark:
    async def test_delete(self, projects):
        project = await projects.create("u1", {"name": "a", "description": "d"})
        await projects.delete(project.id)
        assert await projects.get(project.id) is None
        with pytest.raises(NotFoundError):
            await projects.delete(project.id)

    async def test_toggle_bookmark(self, projects):
        project = await projects.create("u1", {"name": "a", "description": "d"})
        assert await projects.toggle_bookmark(project.id) is True
        assert await projects.toggle_bookmark(project.id) is False


class TestSubscribe:
    async def test_receives_projects_then_none(self, projects):
        project = await projects.create("u1", {"name": "a", "description": "d"})
        seen = []

        unsubscribe = await projects.subscribe(project.id, seen.append)
        await projects.update(project.id, {"name": "b"})
        await projects.delete(project.id)
        unsubscribe()

        assert [p.name if p else None for p in seen] == ["a", "b", None]
        assert seen[0].id == project.id
