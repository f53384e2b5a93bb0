"""Tests for logging setup and LangSmith tracing helpers."""

from __future__ import annotations

import logging

import pytest

from convo_insights.config import Settings
from convo_insights.observability import (
    configure_logging,
    get_langsmith_status,
    maybe_wrap_openai_client,
)

_TRACING_VARS = (
    "LANGSMITH_TRACING",
    "LANGSMITH_ENDPOINT",
    "LANGSMITH_API_KEY",
    "LANGSMITH_PROJECT",
    "LANGCHAIN_TRACING_V2",
    "LANGCHAIN_API_KEY",
)


@pytest.fixture
def clean_tracing_env(monkeypatch):
    for name in _TRACING_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_status_disabled_by_default(clean_tracing_env):
    status = get_langsmith_status(Settings(openai_api_key="test"))
    assert status == {
        "enabled": False,
        "endpoint": "",
        "project": "",
        "api_key_present": False,
    }


def test_status_reads_settings(clean_tracing_env):
    settings = Settings(
        openai_api_key="test",
        langsmith_tracing=True,
        langsmith_api_key="ls-key",
        langsmith_project="insights",
    )
    status = get_langsmith_status(settings)
    assert status["enabled"] is True
    assert status["project"] == "insights"
    assert status["api_key_present"] is True


def test_status_supports_langchain_legacy_vars(clean_tracing_env):
    clean_tracing_env.setenv("LANGCHAIN_TRACING_V2", "true")
    clean_tracing_env.setenv("LANGCHAIN_API_KEY", "abc123")
    clean_tracing_env.setenv("LANGSMITH_PROJECT", "legacy-proj")

    status = get_langsmith_status(Settings(openai_api_key="test"))
    assert status["enabled"] is True
    assert status["project"] == "legacy-proj"
    assert status["api_key_present"] is True


def test_wrap_is_skipped_without_api_key(clean_tracing_env):
    client = object()
    wrapped, enabled = maybe_wrap_openai_client(
        client, Settings(openai_api_key="test", langsmith_tracing=True)
    )
    assert wrapped is client
    assert enabled is False


def test_configure_logging_installs_one_handler():
    root = logging.getLogger()
    previous_level = root.level
    try:
        configure_logging("debug")
        configure_logging("warning")
        tagged = [handler for handler in root.handlers if getattr(handler, "_convo_insights", False)]
        assert len(tagged) == 1
        assert root.level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            if getattr(handler, "_convo_insights", False):
                root.removeHandler(handler)
        root.setLevel(previous_level)
