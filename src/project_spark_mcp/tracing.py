"""MLflow spans for tool calls, when ``mlflow-tracing`` is installed.

Each tool is a ``TOOL`` span; with Gemini autologging on, the model calls a
generation makes (retries included) nest under it. Progress and generation
tools tag their span with ``spark.*`` attributes (project id, step index,
completion outcome) so a learner's project can be followed across calls.

Tracing is on when ``MLFLOW_TRACKING_URI`` is set and
``SPARK_TRACING_ENABLED`` is not ``false``; see
:class:`~project_spark_mcp.config.ServerConfig`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

try:
    import mlflow
    import mlflow.gemini

    _HAS_MLFLOW = True
except ImportError:
    _HAS_MLFLOW = False


def is_enabled() -> bool:
    if not _HAS_MLFLOW:
        return False
    from .config import get_config

    return get_config().tracing_enabled


def trace(
    func: Callable | None = None,
    *,
    name: str | None = None,
    span_type: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> Callable:
    """``@mlflow.trace`` when tracing is on, otherwise returns the function unchanged."""
    if not is_enabled():
        return func if func is not None else (lambda f: f)
    return mlflow.trace(func, name=name, span_type=span_type, attributes=attributes)


def tag_span(**attributes: Any) -> None:
    """Set ``spark.<name>`` attributes on the active span; None values are skipped."""
    if not is_enabled():
        return
    span = mlflow.get_current_active_span()
    if span is None:
        return
    span.set_attributes({f"spark.{k}": v for k, v in attributes.items() if v is not None})


def setup() -> None:
    """Point MLflow at the tracking server and turn on Gemini autologging.

    A failure here leaves the server running untraced.
    """
    if not is_enabled():
        return

    from .config import get_config

    cfg = get_config()
    try:
        mlflow.set_tracking_uri(cfg.mlflow_tracking_uri)
        mlflow.set_experiment(cfg.mlflow_experiment_name)
        mlflow.gemini.autolog()
    except Exception:
        logger.warning("Tracing disabled: MLflow setup failed", exc_info=True)
        return
    logger.info("Tracing tool calls to %s (%s)", cfg.mlflow_tracking_uri, cfg.mlflow_experiment_name)


def shutdown() -> None:
    """Flush spans still queued for async export."""
    if not is_enabled():
        return
    try:
        mlflow.flush_trace_async_logging()
    except Exception:
        logger.warning("Could not flush pending traces", exc_info=True)
