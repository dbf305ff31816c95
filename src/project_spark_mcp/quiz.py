"""Step quiz scoring and attempt history."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import datetime, timezone

from .models.quiz import QuizAttempt, QuizQuestion, QuizScore
from .retry import retry_with_backoff
from .store import QUIZ_ATTEMPTS, DocumentStore

logger = logging.getLogger(__name__)


def _is_correct(question: QuizQuestion, answer: str | bool | None) -> bool:
    if question.type == "true_false":
        return answer is not None and answer == question.correct
    correct = next((opt for opt in question.options if opt.correct), None)
    return correct is not None and answer == correct.id


def calculate_quiz_score(
    answers: Mapping[str, str | bool],
    questions: list[QuizQuestion],
) -> QuizScore:
    """Score *answers* (question id → option id or bool) against *questions*.

    The percentage is points-weighted and rounded half-up to a whole number.
    """
    total_points = 0
    earned_points = 0
    correct_answers = 0
    for question in questions:
        total_points += question.points
        if _is_correct(question, answers.get(question.id)):
            earned_points += question.points
            correct_answers += 1

    percentage = math.floor(earned_points / total_points * 100 + 0.5) if total_points > 0 else 0
    return QuizScore(
        percentage=percentage,
        total_questions=len(questions),
        correct_answers=correct_answers,
        total_points=total_points,
        earned_points=earned_points,
    )


class QuizAttemptService:
    """Stores every quiz attempt so the best score per step can be recalled."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def save_attempt(
        self,
        user_id: str,
        project_id: str,
        step_index: int,
        answers: Mapping[str, str | bool],
        score: QuizScore,
    ) -> str:
        attempt = QuizAttempt(
            user_id=user_id,
            project_id=project_id,
            step_index=step_index,
            answers=dict(answers),
            score=score,
            passed=score.passed,
            timestamp=datetime.now(timezone.utc),
        )
        record = attempt.model_dump(mode="json", exclude={"id"})
        attempt_id = await retry_with_backoff(lambda: self._store.add(QUIZ_ATTEMPTS, record))
        logger.debug(
            "Saved quiz attempt %s for %s step %d: %.0f%%",
            attempt_id, project_id, step_index, score.percentage,
        )
        return attempt_id

    async def list_attempts(self, user_id: str, project_id: str, step_index: int) -> list[QuizAttempt]:
        records = await retry_with_backoff(lambda: self._store.query(
            QUIZ_ATTEMPTS,
            {"user_id": user_id, "project_id": project_id, "step_index": step_index},
            order_by="timestamp",
        ))
        return [QuizAttempt.model_validate(r) for r in records]

    async def best_attempt(self, user_id: str, project_id: str, step_index: int) -> QuizAttempt | None:
        """Highest-scoring attempt; the earliest wins ties."""
        best: QuizAttempt | None = None
        for attempt in await self.list_attempts(user_id, project_id, step_index):
            if best is None or attempt.score.percentage > best.score.percentage:
                best = attempt
        return best
