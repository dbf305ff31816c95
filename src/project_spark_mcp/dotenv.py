"""Environment defaults from ``.env`` files.

Sources, most specific first: the file named by ``SPARK_ENV_FILE`` (for
example the web app's own ``.env``), then ``~/.config/project-spark-mcp/.env``.
A key set by the shell or by an earlier file is never overwritten. Blank
values and unresolved ``${VAR}`` placeholders left by MCP hosts count as unset.

The web app spells the Gemini key ``VITE_GEMINI_API_KEY``; it is read as
``GEMINI_API_KEY`` unless the same file also sets that name.
"""

from __future__ import annotations

import os
from pathlib import Path

DEFAULT_ENV_PATH = Path.home() / ".config" / "project-spark-mcp" / ".env"

ENV_ALIASES: dict[str, str] = {
    "VITE_GEMINI_API_KEY": "GEMINI_API_KEY",
}


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def _is_unset(key: str, value: str | None) -> bool:
    if value is None:
        return True
    current = _strip_quotes(value.strip()).strip()
    return not current or current in (f"${key}", f"${{{key}}}")


def parse_dotenv(path: Path) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines (optionally quoted or ``export``-prefixed).

    Blank lines, ``#`` comments and lines without ``=`` are skipped. Keys in
    :data:`ENV_ALIASES` come back under their canonical name.
    """
    result: dict[str, str] = {}
    if not path.is_file():
        return result

    for raw in path.read_text().splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        line = line.removeprefix("export ")
        key, sep, value = line.partition("=")
        key = key.strip()
        if sep and key:
            result[key] = _strip_quotes(value.strip())

    for legacy, canonical in ENV_ALIASES.items():
        if legacy in result:
            value = result.pop(legacy)
            result.setdefault(canonical, value)
    return result


def env_files() -> list[Path]:
    files: list[Path] = []
    override = os.environ.get("SPARK_ENV_FILE", "").strip()
    if override:
        files.append(Path(override).expanduser())
    files.append(DEFAULT_ENV_PATH)
    return files


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Inject unset vars from *path*, or from every :func:`env_files` source.

    Returns:
        The vars that were injected, by name.
    """
    injected: dict[str, str] = {}
    for source in [path] if path is not None else env_files():
        for key, value in parse_dotenv(source).items():
            if _is_unset(key, os.environ.get(key)):
                os.environ[key] = value
                injected[key] = value
    return injected
