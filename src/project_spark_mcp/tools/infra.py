"""Infrastructure tools — 2 tools on a FastMCP sub-server."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..config import MODEL_PRESETS, get_config, update_config
from ..errors import make_tool_error
from ..services import get_services
from ..tracing import trace
from ..types import AuthToken, ModelPreset

infra_server = FastMCP("infra")
_SENSITIVE_CONFIG_FIELDS = {"gemini_api_key", "admin_token"}


def _redacted_config() -> dict:
    """Return runtime config with secret-bearing fields removed."""
    return get_config().model_dump(exclude=_SENSITIVE_CONFIG_FIELDS)


def enforce_mutation_policy(auth_token: str | None) -> None:
    """Gate administrative operations behind explicit policy + optional token."""
    cfg = get_config()
    if not cfg.mutations_enabled:
        raise PermissionError(
            "Administrative mutations are disabled by policy. "
            "Set SPARK_MUTATIONS_ENABLED=true to enable them."
        )
    if cfg.admin_token and auth_token != cfg.admin_token:
        raise PermissionError("Invalid or missing admin token for mutating operation.")


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="infra_configure", span_type="TOOL")
async def infra_configure(
    preset: Annotated[ModelPreset | None, Field(
        description='Named model preset: "quality" (2.5 Pro), "balanced" (2.5 Flash), '
        'or "budget" (2.5 Flash-Lite)',
    )] = None,
    model: Annotated[str | None, Field(description="Gemini model ID override (takes precedence over preset)")] = None,
    temperature: Annotated[float | None, Field(ge=0.0, le=2.0, description="Sampling temperature")] = None,
    retry_max_retries: Annotated[int | None, Field(ge=0, description="Retries after the first attempt")] = None,
    auth_token: AuthToken = None,
) -> dict:
    """Reconfigure the server at runtime — preset, model, temperature, or retry budget.

    Changes take effect for all subsequent tool calls. Request pacing
    settings apply to the queue built at startup and are not changed here.

    Args:
        preset: Named model preset.
        model: Gemini model ID (takes precedence over the preset).
        temperature: Sampling temperature (0.0–2.0).
        retry_max_retries: Default retry count for store and AI calls.

    Returns:
        Dict with current_config, active_preset, and available_presets.
    """
    try:
        overrides: dict[str, object] = {}

        if preset is not None:
            if preset not in MODEL_PRESETS:
                valid = ", ".join(sorted(MODEL_PRESETS))
                raise ValueError(f"Unknown preset '{preset}'. Available: {valid}")
            overrides["default_model"] = MODEL_PRESETS[preset]["default_model"]

        if model is not None:
            overrides["default_model"] = model
        if temperature is not None:
            overrides["default_temperature"] = temperature
        if retry_max_retries is not None:
            overrides["retry_max_retries"] = retry_max_retries

        if overrides:
            enforce_mutation_policy(auth_token)
            cfg = update_config(**overrides)
        else:
            cfg = get_config()

        active = next(
            (name for name, p in MODEL_PRESETS.items() if cfg.default_model == p["default_model"]),
            None,
        )
        return {
            "current_config": _redacted_config(),
            "active_preset": active,
            "available_presets": {k: v["label"] for k, v in MODEL_PRESETS.items()},
        }
    except Exception as exc:
        return make_tool_error(exc)


@infra_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=True))
@trace(name="infra_status", span_type="TOOL")
async def infra_status(
    check_network: Annotated[bool, Field(description="Actively check network reachability")] = False,
) -> dict:
    """Report connectivity, AI request pacing, and storage backend.

    Args:
        check_network: When True, send a HEAD request to the reachability URL first.

    Returns:
        Dict with online, request_queue diagnostics, store, and model.
    """
    try:
        services = get_services()
        connectivity = services.connectivity
        online = await connectivity.check_reachability() if check_network else connectivity.is_online
        return {
            "online": online,
            "request_queue": services.queue.diagnostics(),
            "store": type(services.store).__name__,
            "model": get_config().default_model,
        }
    except Exception as exc:
        return make_tool_error(exc)
