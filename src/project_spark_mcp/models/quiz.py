"""Step quiz models — questions, scores, and stored attempts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

PASSING_PERCENTAGE = 90.0


class QuizOption(BaseModel):
    id: str
    text: str
    correct: bool = False


class QuizQuestion(BaseModel):
    """A multiple-choice or true/false question attached to one step."""

    id: str
    type: Literal["multiple_choice", "true_false"] = "multiple_choice"
    question: str
    options: list[QuizOption] = Field(default_factory=list)
    correct: bool | None = None  # true_false answer
    explanation: str = ""
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    points: int = Field(default=10, ge=0)


class QuizScore(BaseModel):
    """Ephemeral result of a quiz attempt; gates step completion."""

    percentage: float = Field(ge=0.0, le=100.0)
    total_questions: int = 0
    correct_answers: int = 0
    total_points: int = 0
    earned_points: int = 0

    @property
    def passed(self) -> bool:
        return self.percentage >= PASSING_PERCENTAGE


class QuizAttempt(BaseModel):
    id: str = ""
    user_id: str
    project_id: str
    step_index: int = Field(ge=0)
    answers: dict[str, str | bool] = Field(default_factory=dict)
    score: QuizScore
    passed: bool = False
    timestamp: datetime | None = None
