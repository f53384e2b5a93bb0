"""Logging setup and LangSmith tracing helpers."""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

from convo_insights.config import Settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRACING_ENV = {
    "langsmith_api_key": "LANGSMITH_API_KEY",
    "langsmith_project": "LANGSMITH_PROJECT",
    "langsmith_endpoint": "LANGSMITH_ENDPOINT",
}


def configure_logging(level: str | int = "INFO") -> None:
    """Install a single stderr handler on the root logger."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_convo_insights", False):
            root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._convo_insights = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)
    # Request-level chatter from the HTTP stack drowns out pipeline progress.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _is_truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def get_langsmith_status(settings: Settings) -> dict[str, Any]:
    """Return effective LangSmith tracing status from settings and environment."""

    enabled = settings.langsmith_tracing or _is_truthy(
        os.getenv("LANGSMITH_TRACING") or os.getenv("LANGCHAIN_TRACING_V2")
    )
    api_key = (
        settings.langsmith_api_key.strip()
        or os.getenv("LANGSMITH_API_KEY")
        or os.getenv("LANGCHAIN_API_KEY")
        or ""
    )
    return {
        "enabled": enabled,
        "endpoint": settings.langsmith_endpoint or os.getenv("LANGSMITH_ENDPOINT", ""),
        "project": settings.langsmith_project or os.getenv("LANGSMITH_PROJECT", ""),
        "api_key_present": bool(api_key),
    }


def _export_tracing_env(settings: Settings) -> None:
    """Expose settings-provided tracing values to the langsmith SDK."""

    os.environ.setdefault("LANGSMITH_TRACING", "true")
    for field_name, env_key in _TRACING_ENV.items():
        value = str(getattr(settings, field_name)).strip()
        if value and not os.getenv(env_key):
            os.environ[env_key] = value


def maybe_wrap_openai_client(client: Any, settings: Settings) -> tuple[Any, bool]:
    """Wrap an OpenAI client with the LangSmith tracer when enabled and installed."""

    status = get_langsmith_status(settings)
    if not status["enabled"] or not status["api_key_present"]:
        return client, False

    try:
        from langsmith.wrappers import wrap_openai
    except ImportError:
        logger.warning("LangSmith tracing requested but the langsmith package is missing.")
        return client, False

    _export_tracing_env(settings)
    try:
        wrapped = wrap_openai(client)
    except Exception as exc:
        logger.warning("LangSmith wrapping failed; continuing untraced: %s", exc)
        return client, False
    return wrapped, True
