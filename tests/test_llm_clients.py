"""Tests for the OpenAI JSON client wrapper and the offline mock client."""

from __future__ import annotations

import json
import time
from types import SimpleNamespace

import httpx
import pytest
from openai import APITimeoutError, BadRequestError

from convo_insights import prompts
from convo_insights.config import Settings
from convo_insights.models import MockJsonClient, OpenAIJsonClient, build_llm_client
from convo_insights.schemas import ConversationRecord, ModelTier

_REQUEST = httpx.Request("POST", "https://api.example.test/v1/chat/completions")


def _response(content: str | None, total_tokens: int = 30):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=20, completion_tokens=10, total_tokens=total_tokens),
    )


class _FakeCompletions:
    def __init__(self, outcomes: list):
        self.outcomes = list(outcomes)
        self.requests: list[dict] = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _client(outcomes: list, **kwargs) -> tuple[OpenAIJsonClient, _FakeCompletions]:
    client = OpenAIJsonClient(
        api_key="test",
        models={ModelTier.FAST: "small-model", ModelTier.POWERFUL: "large-model"},
        temperatures={ModelTier.FAST: 0.2, ModelTier.POWERFUL: 0.2},
        max_output_tokens={ModelTier.FAST: 512, ModelTier.POWERFUL: 2048},
        backoff_seconds=0.0,
        **kwargs,
    )
    completions = _FakeCompletions(outcomes)
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client, completions


class TestOpenAIJsonClient:
    def test_request_shape_per_tier(self):
        client, completions = _client([_response('{"ok": true}')])

        text = client.complete_json_text(
            system_prompt="sys", user_prompt="user", tier=ModelTier.POWERFUL
        )

        assert text == '{"ok": true}'
        request = completions.requests[0]
        assert request["model"] == "large-model"
        assert request["response_format"] == {"type": "json_object"}
        assert request["max_tokens"] == 2048
        assert request["messages"][0] == {"role": "system", "content": "sys"}

    def test_explicit_token_budget_wins(self):
        client, completions = _client([_response("{}")])
        client.complete_json_text(
            system_prompt="sys", user_prompt="user", tier=ModelTier.FAST, max_output_tokens=64
        )
        assert completions.requests[0]["model"] == "small-model"
        assert completions.requests[0]["max_tokens"] == 64

    def test_transient_errors_are_retried(self):
        client, completions = _client(
            [APITimeoutError(request=_REQUEST), _response("{}")], max_retries=2
        )
        client.complete_json_text(system_prompt="s", user_prompt="u", tier=ModelTier.FAST)

        metrics = client.metrics_snapshot()
        assert len(completions.requests) == 2
        assert metrics["request_count"] == 1
        assert metrics["retry_count"] == 1
        assert metrics["total_tokens"] == 30
        assert metrics["requests_by_tier"] == {"fast": 1, "powerful": 0}

    def test_bad_request_is_not_retried(self):
        error = BadRequestError(
            "context length exceeded",
            response=httpx.Response(400, request=_REQUEST),
            body=None,
        )
        client, completions = _client([error, _response("{}")], max_retries=3)
        with pytest.raises(BadRequestError):
            client.complete_json_text(system_prompt="s", user_prompt="u", tier=ModelTier.FAST)
        assert len(completions.requests) == 1

    def test_retries_stay_within_the_timeout_budget(self):
        class _SlowFailures(_FakeCompletions):
            def create(self, **kwargs):
                time.sleep(0.1)
                return super().create(**kwargs)

        client, _ = _client([], max_retries=5, timeout_seconds=0.25)
        completions = _SlowFailures([APITimeoutError(request=_REQUEST)] * 5 + [_response("{}")])
        client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))

        with pytest.raises(APITimeoutError):
            client.complete_json_text(system_prompt="s", user_prompt="u", tier=ModelTier.FAST)

        assert len(completions.requests) <= 3
        assert all(0 < request["timeout"] <= 0.25 for request in completions.requests)

    def test_empty_content_raises(self):
        client, _ = _client([_response(None)])
        with pytest.raises(ValueError, match="empty content"):
            client.complete_json_text(system_prompt="s", user_prompt="u", tier=ModelTier.FAST)

    def test_from_settings_requires_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        settings = Settings(
            openai_api_key="",
            azure_openai_api_key="",
            azure_openai_endpoint="",
            azure_openai_base_url="",
        )
        with pytest.raises(ValueError, match="No OpenAI API key"):
            OpenAIJsonClient.from_settings(settings)


class TestMockJsonClient:
    def test_insight_topics_follow_title(self):
        client = MockJsonClient()
        user_prompt = prompts.build_conversation_insight_user_prompt(
            _record("Kubernetes ingress routing"), max_chars=1000
        )
        first = json.loads(
            client.complete_json_text(
                system_prompt=prompts.CONVERSATION_INSIGHT_SYSTEM_PROMPT,
                user_prompt=user_prompt,
                tier=ModelTier.FAST,
            )
        )
        second = json.loads(
            client.complete_json_text(
                system_prompt=prompts.CONVERSATION_INSIGHT_SYSTEM_PROMPT,
                user_prompt=user_prompt,
                tier=ModelTier.FAST,
            )
        )
        assert first["primaryTopics"] == ["kubernetes", "ingress", "routing"]
        assert first == second
        assert 1 <= first["uniquenessScore"] <= 10

    def test_unknown_prompt_raises(self):
        with pytest.raises(ValueError):
            MockJsonClient().complete_json_text(
                system_prompt="unrecognized", user_prompt="", tier=ModelTier.FAST
            )

    def test_metrics_count_requests_by_tier(self):
        client = MockJsonClient()
        client.complete_json_text(
            system_prompt=prompts.SUBJECT_CODENAME_SYSTEM_PROMPT,
            user_prompt="",
            tier=ModelTier.FAST,
        )
        snapshot = client.metrics_snapshot()
        assert snapshot["request_count"] == 1
        assert snapshot["requests_by_tier"] == {"fast": 1, "powerful": 0}


def test_build_llm_client_selects_provider():
    assert isinstance(build_llm_client(Settings(llm_provider="mock")), MockJsonClient)
    client = build_llm_client(
        Settings(
            llm_provider="openai",
            openai_api_key="test",
            azure_openai_api_key="",
            azure_openai_endpoint="",
            azure_openai_base_url="",
            langsmith_tracing=False,
        )
    )
    assert isinstance(client, OpenAIJsonClient)


def _record(title: str) -> ConversationRecord:
    return ConversationRecord(id="c1", title=title, user_messages=["How do I route by host?"])
