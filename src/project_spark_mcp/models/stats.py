"""Per-user learning statistics and earned achievements."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SkillCount(BaseModel):
    skill: str
    count: int


class ActivityEntry(BaseModel):
    project_id: str
    name: str
    action: str  # "completed" or "worked on"
    date: datetime
    type: str


class UserStats(BaseModel):
    """Aggregates over all of a user's projects.

    ``total_time_spent`` is in seconds, like ``Progress.time_spent``.
    Streaks count consecutive UTC days on which some project was last worked on.
    """

    total_projects: int = 0
    completed_projects: int = 0
    total_time_spent: float = 0.0
    completion_rate: int = Field(default=0, ge=0, le=100)
    current_streak: int = 0
    longest_streak: int = 0
    favorite_skills: list[SkillCount] = Field(default_factory=list)
    recent_activity: list[ActivityEntry] = Field(default_factory=list)
    last_active_date: datetime | None = None


class Achievement(BaseModel):
    """An achievement a user has earned."""

    id: str
    title: str
    description: str
    icon_name: str
    points: int
    category: str
    earned_at: datetime
