"""Observability helpers."""

from convo_insights.observability.tracing import (
    configure_logging,
    get_langsmith_status,
    maybe_wrap_openai_client,
)

__all__ = [
    "configure_logging",
    "get_langsmith_status",
    "maybe_wrap_openai_client",
]
