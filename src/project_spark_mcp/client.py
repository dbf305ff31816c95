"""Gemini client with request pacing, retry, and defensive JSON parsing."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, TypeVar

import httpx
import pydantic
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from .config import get_config
from .errors import ConfigurationError, MalformedResponseError, ServiceError, TransientServiceError
from .request_queue import RequestQueue
from .retry import retry_with_backoff

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=pydantic.BaseModel)

_PLACEHOLDER_KEYS = {"your_gemini_api_key_here", "demo_gemini_key"}
_FENCE_RE = re.compile(r"```(?:json)?\s*\n?|\n?\s*```")


def strip_code_fences(text: str) -> str:
    """Remove Markdown code fences that models wrap around JSON."""
    return _FENCE_RE.sub("", text).strip()


def parse_json_response(raw: str, schema: type[M]) -> M:
    """Parse model output into *schema*.

    Raises:
        MalformedResponseError: Empty output, invalid JSON, or a schema mismatch.
    """
    cleaned = strip_code_fences(raw or "")
    if not cleaned:
        raise MalformedResponseError("No valid JSON content found in response")
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        logger.warning("Gemini returned non-JSON: %r", cleaned[:200])
        raise MalformedResponseError(f"Failed to parse AI response as JSON: {exc}") from exc
    try:
        return schema.model_validate(parsed)
    except pydantic.ValidationError as exc:
        raise MalformedResponseError(
            f"AI response does not match {schema.__name__}: {exc.error_count()} error(s)"
        ) from exc


def _translate_api_error(exc: genai_errors.APIError) -> ServiceError:
    """Tag a google-genai API error with the shared code taxonomy."""
    message = exc.message or str(exc)
    return ServiceError.from_http_status(int(exc.code or 0), f"Gemini API error: {message}")


class GeminiClient:
    """Per-process Gemini client; every call goes through the shared RequestQueue."""

    def __init__(self, queue: RequestQueue, *, api_key: str | None = None) -> None:
        self._queue = queue
        self._api_key = api_key
        self._client: genai.Client | None = None

    @property
    def queue(self) -> RequestQueue:
        return self._queue

    def _resolve_key(self) -> str:
        key = self._api_key or get_config().gemini_api_key
        if not key or key in _PLACEHOLDER_KEYS:
            raise ConfigurationError(
                "Gemini API key is not configured. Set GEMINI_API_KEY in the environment "
                "or in ~/.config/project-spark-mcp/.env"
            )
        return key

    def get(self) -> genai.Client:
        """Return (or create) the underlying google-genai client."""
        if self._client is None:
            key = self._resolve_key()
            self._client = genai.Client(api_key=key)
            logger.info("Created Gemini client (key …%s)", key[-4:])
        return self._client

    async def generate(
        self,
        prompt: Any,
        *,
        model: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
        system_instruction: str | None = None,
        response_schema: dict | None = None,
    ) -> str:
        """Generate text, paced by the queue and retried on transient failures.

        Args:
            prompt: Prompt contents (usually a single string).
            model: Override model ID (defaults to config's default_model).
            temperature: Override sampling temperature.
            max_output_tokens: Override the output token cap.
            system_instruction: System-level instruction for the model.
            response_schema: JSON schema dict to request JSON output.

        Returns:
            The model's text response.

        Raises:
            ConfigurationError: No API key.
            RateLimitError: The client-side request window is full.
            ServiceError: The API failed (after retries when transient).
            MalformedResponseError: The API returned no text.
        """
        cfg = get_config()
        resolved_model = model or cfg.default_model
        config = types.GenerateContentConfig(
            temperature=temperature if temperature is not None else cfg.default_temperature,
            max_output_tokens=max_output_tokens or cfg.max_output_tokens,
        )
        if system_instruction:
            config.system_instruction = system_instruction
        if response_schema:
            config.response_mime_type = "application/json"
            config.response_json_schema = response_schema

        client = self.get()

        async def _call() -> types.GenerateContentResponse:
            try:
                return await client.aio.models.generate_content(
                    model=resolved_model,
                    contents=prompt,
                    config=config,
                )
            except genai_errors.APIError as exc:
                raise _translate_api_error(exc) from exc
            except httpx.TransportError as exc:
                raise TransientServiceError(f"Network error: {exc}", code="unavailable") from exc

        # one window slot per logical request, however many attempts it takes
        self._queue.check_rate_limit()
        response = await retry_with_backoff(lambda: self._queue.submit(_call, count=False))
        text = response.text or ""
        if not text.strip():
            raise MalformedResponseError("Empty response from Gemini API")
        logger.debug("Gemini response: %d chars from %s", len(text), resolved_model)
        return text

    async def generate_json(self, prompt: Any, *, schema: type[M], **kwargs: Any) -> M:
        """Generate JSON constrained by *schema* and validate it defensively."""
        raw = await self.generate(prompt, response_schema=schema.model_json_schema(), **kwargs)
        return parse_json_response(raw, schema)

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        if self._client is None:
            return
        client, self._client = self._client, None
        try:
            await client.aio.aclose()
        except Exception:
            logger.warning("Error while closing Gemini client", exc_info=True)
        logger.info("Closed Gemini client")
