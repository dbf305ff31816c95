"""Document-store backends for projects, quiz attempts, achievements and AI generations."""

from __future__ import annotations

from .base import DocumentStore, Record
from .memory import MemoryDocumentStore
from .sqlite import SQLiteDocumentStore

PROJECTS = "projects"
QUIZ_ATTEMPTS = "quiz_attempts"
GENERATIONS = "generations"
SKILL_ASSESSMENTS = "skill_assessments"
ACHIEVEMENTS = "achievements"


def open_store(db_path: str) -> DocumentStore:
    """SQLite store at *db_path*, or an in-memory store when the path is empty."""
    if not db_path:
        return MemoryDocumentStore()
    return SQLiteDocumentStore(db_path)


__all__ = [
    "ACHIEVEMENTS",
    "DocumentStore",
    "GENERATIONS",
    "MemoryDocumentStore",
    "PROJECTS",
    "QUIZ_ATTEMPTS",
    "Record",
    "SKILL_ASSESSMENTS",
    "SQLiteDocumentStore",
    "open_store",
]
