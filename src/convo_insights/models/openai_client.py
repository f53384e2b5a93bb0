"""OpenAI client wrapper used by both pipeline stages."""

from __future__ import annotations

import threading
import time
from typing import Protocol

import httpx
from openai import APIError, APITimeoutError, BadRequestError, OpenAI, RateLimitError
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
    wait_random,
)

from convo_insights.config import Settings
from convo_insights.observability import maybe_wrap_openai_client
from convo_insights.schemas import ModelTier

JSON_OBJECT_FORMAT = {"type": "json_object"}
MIN_REQUEST_TIMEOUT_SECONDS = 0.1


class LLMJsonClient(Protocol):
    """Protocol for clients that return raw JSON text for a prompt pair."""

    def complete_json_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        tier: ModelTier,
        max_output_tokens: int | None = None,
    ) -> str:
        """Generate JSON text (possibly fenced) for the given prompts."""


class OpenAIJsonClient:
    """JSON-focused wrapper around OpenAI chat completions serving both model tiers."""

    def __init__(
        self,
        *,
        api_key: str,
        models: dict[ModelTier, str],
        base_url: str | None = None,
        temperatures: dict[ModelTier, float] | None = None,
        max_output_tokens: dict[ModelTier, int] | None = None,
        timeout_seconds: float = 90.0,
        max_retries: int = 2,
        backoff_seconds: float = 1.0,
        settings: Settings | None = None,
    ) -> None:
        base_client = OpenAI(
            api_key=api_key,
            base_url=base_url or None,
            timeout=httpx.Timeout(timeout_seconds, connect=min(10.0, timeout_seconds)),
            # Retries are owned by tenacity below.
            max_retries=0,
        )
        if settings is not None:
            self._client, self._langsmith_wrapped = maybe_wrap_openai_client(base_client, settings)
        else:
            self._client, self._langsmith_wrapped = base_client, False
        self._models = dict(models)
        self._temperatures = dict(temperatures or {})
        self._max_output_tokens = dict(max_output_tokens or {})
        self._timeout_seconds = timeout_seconds
        self._max_retries = max_retries
        self._backoff_seconds = backoff_seconds
        self._metrics_lock = threading.Lock()
        self._request_count = 0
        self._retry_count = 0
        self._prompt_tokens = 0
        self._completion_tokens = 0
        self._total_tokens = 0
        self._requests_by_tier = {tier: 0 for tier in ModelTier}

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIJsonClient":
        api_key = settings.resolved_openai_api_key()
        if not api_key:
            raise ValueError(
                "No OpenAI API key configured "
                f"(key source: {settings.resolved_openai_key_source()})."
            )
        return cls(
            api_key=api_key,
            models={tier: settings.resolved_model(tier) for tier in ModelTier},
            base_url=settings.resolved_openai_base_url() or None,
            temperatures={tier: settings.temperature_for(tier) for tier in ModelTier},
            max_output_tokens={tier: settings.max_output_tokens_for(tier) for tier in ModelTier},
            timeout_seconds=settings.llm_timeout_seconds,
            max_retries=settings.client_max_retries,
            backoff_seconds=settings.client_backoff_seconds,
            settings=settings,
        )

    @property
    def langsmith_wrapped(self) -> bool:
        return self._langsmith_wrapped

    def _is_retryable_openai_error(self, exc: BaseException) -> bool:
        """Return whether an OpenAI exception should trigger retry/backoff."""

        if isinstance(exc, (RateLimitError, APITimeoutError)):
            return True
        if isinstance(exc, BadRequestError):
            return False
        return isinstance(exc, APIError)

    def _create_completion_with_retry(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        tier: ModelTier,
        max_output_tokens: int | None,
    ):
        """Create chat completion with retry/backoff for transient errors."""

        response = None
        attempt_count = 0
        max_attempts = max(1, self._max_retries)
        wait_strategy = wait_exponential(
            multiplier=self._backoff_seconds,
            min=self._backoff_seconds,
            max=max(self._backoff_seconds, self._backoff_seconds * 8),
        ) + wait_random(0.0, 0.25)
        retryer = Retrying(
            retry=retry_if_exception(self._is_retryable_openai_error),
            wait=wait_strategy,
            # Retries share one budget with the calls themselves.
            stop=stop_after_attempt(max_attempts) | stop_after_delay(self._timeout_seconds),
            reraise=True,
        )

        request_kwargs: dict = {
            "model": self._models[tier],
            "response_format": JSON_OBJECT_FORMAT,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if tier in self._temperatures:
            request_kwargs["temperature"] = self._temperatures[tier]
        token_budget = max_output_tokens or self._max_output_tokens.get(tier)
        if token_budget:
            request_kwargs["max_tokens"] = token_budget

        deadline = time.monotonic() + self._timeout_seconds
        for attempt in retryer:
            with attempt:
                attempt_count += 1
                request_kwargs["timeout"] = max(
                    MIN_REQUEST_TIMEOUT_SECONDS, deadline - time.monotonic()
                )
                response = self._client.chat.completions.create(**request_kwargs)

        if response is None:
            raise ValueError("OpenAI response missing after retries.")

        usage = getattr(response, "usage", None)
        prompt_tokens = int(getattr(usage, "prompt_tokens", 0) or 0)
        completion_tokens = int(getattr(usage, "completion_tokens", 0) or 0)
        total_tokens = int(getattr(usage, "total_tokens", 0) or 0)
        with self._metrics_lock:
            self._request_count += 1
            self._requests_by_tier[tier] += 1
            self._retry_count += max(0, attempt_count - 1)
            self._prompt_tokens += prompt_tokens
            self._completion_tokens += completion_tokens
            self._total_tokens += total_tokens
        return response

    def complete_json_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        tier: ModelTier,
        max_output_tokens: int | None = None,
    ) -> str:
        """Call the OpenAI API and return the raw message content."""

        response = self._create_completion_with_retry(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            tier=tier,
            max_output_tokens=max_output_tokens,
        )
        content = response.choices[0].message.content
        if not content:
            raise ValueError("Model returned empty content for JSON response.")
        return content

    def metrics_snapshot(self) -> dict:
        """Return cumulative request/usage metrics for this client instance."""

        with self._metrics_lock:
            return {
                "request_count": self._request_count,
                "requests_by_tier": {
                    tier.value: count for tier, count in self._requests_by_tier.items()
                },
                "retry_count": self._retry_count,
                "prompt_tokens": self._prompt_tokens,
                "completion_tokens": self._completion_tokens,
                "total_tokens": self._total_tokens,
                "models": {tier.value: model for tier, model in self._models.items()},
            }
