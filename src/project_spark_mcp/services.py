"""Per-process service bundle shared by every tool.

The bundle is built once from config on first use. Tests install their own
with :func:`set_services` so no state leaks between them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .client import GeminiClient
from .config import ServerConfig, get_config
from .connectivity import ConnectivityMonitor
from .generator import ProjectGenerator
from .progress import ProgressTracker
from .projects import ProjectService
from .quiz import QuizAttemptService
from .request_queue import RequestQueue
from .stats import StatsService
from .store import DocumentStore, SQLiteDocumentStore, open_store

logger = logging.getLogger(__name__)


@dataclass
class SparkServices:
    store: DocumentStore
    queue: RequestQueue
    client: GeminiClient
    connectivity: ConnectivityMonitor
    projects: ProjectService
    tracker: ProgressTracker
    quizzes: QuizAttemptService
    generator: ProjectGenerator
    stats: StatsService


def build_services(cfg: ServerConfig | None = None, *, store: DocumentStore | None = None) -> SparkServices:
    """Wire the store, request queue, Gemini client and domain services together."""
    cfg = cfg or get_config()
    store = store if store is not None else open_store(cfg.db_path)
    queue = RequestQueue.from_config(cfg)
    client = GeminiClient(queue)
    projects = ProjectService(store)
    logger.debug("Built services (store=%s)", type(store).__name__)
    return SparkServices(
        store=store,
        queue=queue,
        client=client,
        connectivity=ConnectivityMonitor(check_url=cfg.online_check_url),
        projects=projects,
        tracker=ProgressTracker(store),
        quizzes=QuizAttemptService(store),
        generator=ProjectGenerator(client, store),
        stats=StatsService(projects, store),
    )


_services: SparkServices | None = None


def get_services() -> SparkServices:
    """Return the process-wide bundle, building it on first access."""
    global _services
    if _services is None:
        _services = build_services()
    return _services


def set_services(services: SparkServices | None) -> None:
    """Install (or with ``None``, drop) the process-wide bundle."""
    global _services
    _services = services


async def close_services() -> None:
    """Release the Gemini client and the database connection, if built."""
    global _services
    if _services is None:
        return
    services, _services = _services, None
    await services.client.close()
    if isinstance(services.store, SQLiteDocumentStore):
        services.store.close()
    logger.info("Services closed")
