"""Achievement catalogue and the checks that award it.

Each definition is a predicate over a user's :class:`~.models.stats.UserStats`
and projects. Time thresholds are in seconds, like ``Progress.time_spent``.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from .models.project import Project, ProjectStatus
from .models.stats import Achievement, UserStats

HOUR = 3600

FRONTEND_TECHNOLOGIES = frozenset({"react", "vue", "angular", "html", "css", "javascript", "typescript"})
BACKEND_TECHNOLOGIES = frozenset({"node.js", "python", "java", "php", "ruby", "go", "rust", "c#"})

Condition = Callable[[UserStats, list[Project]], bool]
Measure = Callable[[UserStats, list[Project]], float]


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    title: str
    description: str
    icon_name: str
    points: int
    category: str
    condition: Condition
    # count-based achievements report measure/target as their progress
    measure: Measure | None = None
    target: float = 1

    def progress(self, stats: UserStats, projects: list[Project]) -> float:
        """Percentage toward earning this achievement, capped at 100."""
        if self.measure is None:
            return 100.0 if self.condition(stats, projects) else 0.0
        return min(100.0, self.measure(stats, projects) * 100 / self.target)


@dataclass(frozen=True)
class AchievementCategory:
    name: str
    color: str
    icon: str


def _completed(projects: list[Project]) -> list[Project]:
    return [p for p in projects if p.status == ProjectStatus.COMPLETED]


def _technologies(projects: list[Project]) -> set[str]:
    return {tech.lower() for p in projects for tech in p.technologies}


def _finished_within_a_day(project: Project) -> bool:
    finished = project.completed_at or project.updated_at
    if project.created_at is None or finished is None:
        return False
    return finished - project.created_at <= timedelta(hours=24)


def _completed_count(stats: UserStats, projects: list[Project]) -> float:
    return stats.completed_projects


def _milestone(id: str, title: str, description: str, icon: str, points: int, count: int) -> AchievementDefinition:
    return AchievementDefinition(
        id=id, title=title, description=description, icon_name=icon, points=points,
        category="progress",
        condition=lambda s, p: s.completed_projects >= count,
        measure=_completed_count, target=count,
    )


ACHIEVEMENT_DEFINITIONS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        id="first_project", title="First Steps", description="Create your first project",
        icon_name="star", points=10, category="beginner",
        condition=lambda s, p: len(p) >= 1,
        measure=lambda s, p: len(p),
    ),
    AchievementDefinition(
        id="first_completion", title="Finisher", description="Complete your first project",
        icon_name="trophy", points=25, category="beginner",
        condition=lambda s, p: s.completed_projects >= 1,
        measure=_completed_count,
    ),
    AchievementDefinition(
        id="early_bird", title="Early Bird",
        description="Complete a project within 24 hours of creation",
        icon_name="clock", points=20, category="speed",
        condition=lambda s, p: any(_finished_within_a_day(x) for x in _completed(p)),
    ),
    _milestone("project_streak_3", "Getting Started", "Complete 3 projects", "target", 30, 3),
    _milestone("project_streak_5", "Momentum Builder", "Complete 5 projects", "zap", 50, 5),
    _milestone("project_streak_10", "Dedicated Learner", "Complete 10 projects", "award", 75, 10),
    _milestone("project_streak_25", "Expert Builder", "Complete 25 projects", "trophy", 150, 25),
    AchievementDefinition(
        id="tech_explorer", title="Technology Explorer",
        description="Use 5 different technologies across projects",
        icon_name="star", points=40, category="technology",
        condition=lambda s, p: len(_technologies(p)) >= 5,
        measure=lambda s, p: len(_technologies(p)), target=5,
    ),
    AchievementDefinition(
        id="full_stack", title="Full Stack Developer",
        description="Complete projects using both frontend and backend technologies",
        icon_name="award", points=60, category="technology",
        condition=lambda s, p: bool(_technologies(p) & FRONTEND_TECHNOLOGIES)
        and bool(_technologies(p) & BACKEND_TECHNOLOGIES),
    ),
    AchievementDefinition(
        id="speed_runner", title="Speed Runner", description="Complete a project in under 2 hours",
        icon_name="zap", points=35, category="speed",
        condition=lambda s, p: any(0 < x.progress.time_spent < 2 * HOUR for x in _completed(p)),
    ),
    AchievementDefinition(
        id="marathon_runner", title="Marathon Runner",
        description="Spend more than 10 hours on a single project",
        icon_name="clock", points=45, category="dedication",
        condition=lambda s, p: any(x.progress.time_spent > 10 * HOUR for x in p),
    ),
    AchievementDefinition(
        id="time_master", title="Time Master",
        description="Accumulate 50+ hours of total learning time",
        icon_name="clock", points=100, category="dedication",
        condition=lambda s, p: s.total_time_spent >= 50 * HOUR,
        measure=lambda s, p: s.total_time_spent, target=50 * HOUR,
    ),
    AchievementDefinition(
        id="consistent_learner", title="Consistent Learner",
        description="Maintain a 7-day learning streak",
        icon_name="target", points=50, category="consistency",
        condition=lambda s, p: s.current_streak >= 7,
        measure=lambda s, p: s.current_streak, target=7,
    ),
    AchievementDefinition(
        id="dedication_master", title="Dedication Master",
        description="Maintain a 30-day learning streak",
        icon_name="award", points=150, category="consistency",
        condition=lambda s, p: s.current_streak >= 30,
        measure=lambda s, p: s.current_streak, target=30,
    ),
    AchievementDefinition(
        id="perfectionist", title="Perfectionist",
        description="Complete 5 projects with 100% completion rate",
        icon_name="star", points=75, category="quality",
        condition=lambda s, p: len(_completed(p)) >= 5 and s.completion_rate == 100,
    ),
    AchievementDefinition(
        id="variety_seeker", title="Variety Seeker",
        description="Complete projects in 3 different difficulty levels",
        icon_name="target", points=60, category="variety",
        condition=lambda s, p: len({x.difficulty for x in _completed(p)}) >= 3,
    ),
)

ACHIEVEMENTS_BY_ID = {a.id: a for a in ACHIEVEMENT_DEFINITIONS}

ACHIEVEMENT_CATEGORIES: dict[str, AchievementCategory] = {
    "beginner": AchievementCategory("Beginner", "blue", "star"),
    "progress": AchievementCategory("Progress", "green", "trophy"),
    "technology": AchievementCategory("Technology", "purple", "award"),
    "speed": AchievementCategory("Speed", "orange", "zap"),
    "dedication": AchievementCategory("Dedication", "red", "clock"),
    "consistency": AchievementCategory("Consistency", "indigo", "target"),
    "quality": AchievementCategory("Quality", "yellow", "star"),
    "variety": AchievementCategory("Variety", "pink", "target"),
}


def check_achievements(
    stats: UserStats,
    projects: list[Project],
    earned_ids: Iterable[str] = (),
    *,
    now: datetime,
) -> list[Achievement]:
    """Achievements whose condition now holds and that are not already in *earned_ids*."""
    earned = set(earned_ids)
    return [
        Achievement(
            id=d.id,
            title=d.title,
            description=d.description,
            icon_name=d.icon_name,
            points=d.points,
            category=d.category,
            earned_at=now,
        )
        for d in ACHIEVEMENT_DEFINITIONS
        if d.id not in earned and d.condition(stats, projects)
    ]


def achievement_progress(stats: UserStats, projects: list[Project]) -> dict[str, float]:
    """Percentage progress toward every achievement, by id."""
    return {d.id: d.progress(stats, projects) for d in ACHIEVEMENT_DEFINITIONS}
