"""User statistics over a user's projects, and achievement awarding.

The calculations are pure functions of the project list. Activity days are
the UTC dates of ``progress.last_worked_on``; a project contributes only its
most recent day.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone

from .achievements import check_achievements
from .models.project import Project, ProjectStatus
from .models.stats import Achievement, ActivityEntry, SkillCount, UserStats
from .projects import ProjectService
from .retry import retry_with_backoff
from .store import ACHIEVEMENTS, DocumentStore

logger = logging.getLogger(__name__)

MAX_STREAK_DAYS = 365
TOP_SKILLS = 10
RECENT_ACTIVITY_LIMIT = 10


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _activity_day(moment: datetime) -> date:
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def activity_days(projects: list[Project]) -> set[date]:
    return {
        _activity_day(p.progress.last_worked_on)
        for p in projects
        if p.progress.last_worked_on is not None
    }


def current_streak(projects: list[Project], today: date) -> int:
    """Consecutive days with activity, counting back from *today* (0 if none today)."""
    days = activity_days(projects)
    streak = 0
    day = today
    while streak < MAX_STREAK_DAYS and day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(projects: list[Project]) -> int:
    """Longest run of consecutive activity days; 0 for a user with no activity."""
    days = sorted(activity_days(projects))
    longest = run = 0
    previous: date | None = None
    for day in days:
        run = run + 1 if previous is not None and day - previous == timedelta(days=1) else 1
        longest = max(longest, run)
        previous = day
    return longest


def favorite_skills(projects: list[Project], limit: int = TOP_SKILLS) -> list[SkillCount]:
    """Most frequent technologies and tags; ties keep first-seen order."""
    counts: Counter[str] = Counter()
    for project in projects:
        counts.update(project.technologies)
        counts.update(project.tags)
    return [SkillCount(skill=skill, count=n) for skill, n in counts.most_common(limit)]


def recent_activity(projects: list[Project], limit: int = RECENT_ACTIVITY_LIMIT) -> list[ActivityEntry]:
    worked = [p for p in projects if p.progress.last_worked_on is not None]
    worked.sort(key=lambda p: p.progress.last_worked_on, reverse=True)
    return [
        ActivityEntry(
            project_id=p.id,
            name=p.name,
            action="completed" if p.status == ProjectStatus.COMPLETED else "worked on",
            date=p.progress.last_worked_on,
            type=p.type.value,
        )
        for p in worked[:limit]
    ]


def calculate_user_stats(projects: list[Project], *, today: date) -> UserStats:
    """Aggregate *projects* into :class:`UserStats`.

    ``completion_rate`` is the share of projects with status completed,
    rounded to a whole percent.
    """
    total = len(projects)
    completed = sum(1 for p in projects if p.status == ProjectStatus.COMPLETED)
    activity = recent_activity(projects)
    return UserStats(
        total_projects=total,
        completed_projects=completed,
        total_time_spent=sum(p.progress.time_spent for p in projects),
        completion_rate=round(completed / total * 100) if total else 0,
        current_streak=current_streak(projects, today),
        longest_streak=longest_streak(projects),
        favorite_skills=favorite_skills(projects),
        recent_activity=activity,
        last_active_date=activity[0].date if activity else None,
    )


class StatsService:
    """Computes a user's stats and records the achievements they earn."""

    def __init__(
        self,
        projects: ProjectService,
        store: DocumentStore,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._projects = projects
        self._store = store
        self._clock = clock or _utc_now

    async def user_stats(self, user_id: str) -> UserStats:
        projects = await self._projects.list_for_user(user_id)
        return calculate_user_stats(projects, today=_activity_day(self._clock()))

    async def earned_achievements(self, user_id: str) -> list[Achievement]:
        """Achievements already awarded to *user_id*, oldest first."""
        records = await retry_with_backoff(lambda: self._store.query(
            ACHIEVEMENTS, {"user_id": user_id}, order_by="earned_at",
        ))
        return [Achievement.model_validate({**r, "id": r["achievement_id"]}) for r in records]

    async def check_achievements(self, user_id: str) -> tuple[UserStats, list[Achievement]]:
        """Recompute stats and store any newly earned achievements.

        Returns:
            The fresh stats and the achievements awarded by this call.
        """
        now = self._clock()
        projects = await self._projects.list_for_user(user_id)
        stats = calculate_user_stats(projects, today=_activity_day(now))
        earned = await self.earned_achievements(user_id)
        new = check_achievements(stats, projects, (a.id for a in earned), now=now)

        for achievement in new:
            record = {
                **achievement.model_dump(mode="json", exclude={"id"}),
                "achievement_id": achievement.id,
                "user_id": user_id,
            }
            doc_id = f"{user_id}:{achievement.id}"
            await retry_with_backoff(lambda: self._store.add(ACHIEVEMENTS, record, doc_id))
        if new:
            logger.info(
                "User %s earned %d achievement(s): %s",
                user_id, len(new), ", ".join(a.id for a in new),
            )
        return stats, new
