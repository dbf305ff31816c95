"""Main FastMCP server — mounts all sub-servers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .services import close_services
from .tools.ai import ai_server
from .tools.infra import infra_server
from .tools.progress import progress_server
from .tools.projects import projects_server
from .tools.stats import stats_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — tracing setup, then release the shared services."""
    tracing.setup()
    try:
        yield {}
    finally:
        await close_services()
        tracing.shutdown()
        logger.info("Lifespan shutdown complete")


app = FastMCP(
    "project-spark",
    instructions=(
        "Project Spark learning companion — create and track hands-on learning "
        "projects, complete steps behind quiz gates, and generate or refine "
        "projects with Gemini. User stats and achievements summarise progress "
        "across projects."
    ),
    lifespan=_lifespan,
)

app.mount(projects_server)
app.mount(progress_server)
app.mount(ai_server)
app.mount(stats_server)
app.mount(infra_server)


def main() -> None:
    """Entry-point for ``project-spark-mcp`` console script."""
    app.run()


if __name__ == "__main__":
    main()
