"""Stage 1: per-conversation insight extraction."""

from __future__ import annotations

import asyncio
import json
import logging
import math
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from convo_insights.errors import ExtractionFailure
from convo_insights.models import LLMJsonClient
from convo_insights.pipeline.executor import call_in_pool, worker_pool
from convo_insights.prompts import (
    CONVERSATION_INSIGHT_SYSTEM_PROMPT,
    build_conversation_insight_user_prompt,
)
from convo_insights.schemas import (
    CommunicationPattern,
    ConversationInsight,
    ConversationRecord,
    ModelTier,
    PiiCategory,
    PiiFinding,
    RiskLevel,
)

logger = logging.getLogger(__name__)

SCORE_MIN = 1
SCORE_MAX = 10
MAX_TOPICS = 5

_FENCE_PATTERN = re.compile(r"^\s*```(?:json)?\s*|\s*```\s*$", re.IGNORECASE)
_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _normalize_label(value: str) -> str:
    return _NON_ALNUM.sub("", value.lower())


_PATTERN_LOOKUP = {_normalize_label(pattern.value): pattern for pattern in CommunicationPattern}

_PII_CATEGORY_LOOKUP: dict[str, PiiCategory] = {
    _normalize_label(category.value): category for category in PiiCategory
}
_PII_CATEGORY_LOOKUP.update(
    {
        "name": PiiCategory.PERSONAL_NAME,
        "datespecific": PiiCategory.DATE,
        "email": PiiCategory.CONTACT_EMAIL,
        "contactinfoemail": PiiCategory.CONTACT_EMAIL,
        "phone": PiiCategory.CONTACT_PHONE,
        "contactinfophone": PiiCategory.CONTACT_PHONE,
        "financial": PiiCategory.FINANCIAL_ACCOUNT,
        "health": PiiCategory.HEALTH_CONDITION,
        "credentials": PiiCategory.CREDENTIAL,
        "credentialslogin": PiiCategory.CREDENTIAL,
        "password": PiiCategory.CREDENTIAL,
        "idnumber": PiiCategory.ID_NUMBER,
        "othersensitive": PiiCategory.OTHER,
    }
)

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class ExtractionResult:
    """Stage 1 output: insights in input order plus one error row per failure."""

    insights: list[ConversationInsight] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json fence and a trailing ``` fence."""

    return _FENCE_PATTERN.sub("", text).strip()


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse model text into a JSON object, tolerating code fences."""

    cleaned = strip_code_fences(text)
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Model response was not valid JSON: {exc.msg}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Expected JSON object, got {type(payload).__name__}.")
    return payload


def clamp_score(value: Any) -> int:
    """Coerce any model-provided score into the closed range [1, 10]."""

    if isinstance(value, bool) or value is None:
        return SCORE_MIN
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return SCORE_MIN
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return SCORE_MIN
    return max(SCORE_MIN, min(SCORE_MAX, int(value)))


def _string_list(value: Any, *, limit: int | None = None) -> list[str]:
    """Return stripped, non-empty, deduplicated strings in first-seen order."""

    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    seen: set[str] = set()
    items: list[str] = []
    for item in value:
        if not isinstance(item, (str, int, float)) or isinstance(item, bool):
            continue
        text = str(item).strip()
        if not text or text in seen:
            continue
        seen.add(text)
        items.append(text)
    return items[:limit] if limit is not None else items


def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _patterns(value: Any) -> list[CommunicationPattern]:
    patterns: list[CommunicationPattern] = []
    for label in _string_list(value):
        pattern = _PATTERN_LOOKUP.get(_normalize_label(label))
        if pattern is not None and pattern not in patterns:
            patterns.append(pattern)
    return patterns


def normalize_pii_category(value: Any) -> PiiCategory:
    if not isinstance(value, str):
        return PiiCategory.OTHER
    return _PII_CATEGORY_LOOKUP.get(_normalize_label(value), PiiCategory.OTHER)


def normalize_risk_level(value: Any) -> RiskLevel:
    if isinstance(value, str):
        try:
            return RiskLevel(value.strip().lower())
        except ValueError:
            pass
    return RiskLevel.MEDIUM


def _pii_findings(value: Any) -> list[PiiFinding]:
    if not isinstance(value, list):
        return []
    findings: list[PiiFinding] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        findings.append(
            PiiFinding(
                value=_text(item.get("pii", item.get("value"))),
                category=normalize_pii_category(item.get("category")),
                risk_level=normalize_risk_level(item.get("riskLevel", item.get("risk_level"))),
                context=_text(item.get("context")),
                conversation_context=_text(
                    item.get("conversationContext", item.get("conversation_context"))
                ),
            )
        )
    return findings


def coerce_insight_payload(
    payload: dict[str, Any],
    *,
    conversation_id: str,
    title: str | None = None,
) -> ConversationInsight:
    """Turn an untyped model payload into a validated insight.

    Missing arrays become empty lists, unknown pattern labels are dropped, and
    every score is clamped into [1, 10].
    """

    return ConversationInsight(
        conversation_id=conversation_id,
        title=title,
        primary_topics=_string_list(payload.get("primaryTopics"), limit=MAX_TOPICS),
        communication_patterns=_patterns(payload.get("communicationPatterns")),
        extracted_pii=_pii_findings(payload.get("extractedPii")),
        standout_vocabulary=_string_list(payload.get("standoutVocabulary")),
        uniqueness_score=clamp_score(payload.get("uniquenessScore")),
        complexity_level=clamp_score(payload.get("complexityLevel")),
        engagement_level=clamp_score(
            payload.get("userEngagementLevel", payload.get("engagementLevel"))
        ),
        emotional_tone=_text(payload.get("emotionalTone"), "neutral"),
        intriguing_observation=_text(payload.get("intriguingObservation")),
        topic_evolution=_string_list(payload.get("topicEvolution")),
    )


def extract_conversation_insight(
    record: ConversationRecord,
    llm_client: LLMJsonClient,
    *,
    max_chars: int = 20_000,
    max_output_tokens: int | None = None,
) -> ConversationInsight:
    """Extract a structured insight for one conversation."""

    try:
        raw_text = llm_client.complete_json_text(
            system_prompt=CONVERSATION_INSIGHT_SYSTEM_PROMPT,
            user_prompt=build_conversation_insight_user_prompt(record, max_chars=max_chars),
            tier=ModelTier.FAST,
            max_output_tokens=max_output_tokens,
        )
        payload = parse_json_object(raw_text)
    except ExtractionFailure:
        raise
    except Exception as exc:
        raise ExtractionFailure(record.id, f"{type(exc).__name__}: {exc}") from exc

    return coerce_insight_payload(payload, conversation_id=record.id, title=record.title)


def _error_row(record: ConversationRecord, exc: BaseException) -> dict:
    if isinstance(exc, ExtractionFailure) and exc.__cause__ is not None:
        error_type = type(exc.__cause__).__name__
    else:
        error_type = type(exc).__name__
    return {
        "conversation_id": record.id,
        "error_type": error_type,
        "error": str(exc) or error_type,
    }


async def extract_insights_async(
    records: list[ConversationRecord],
    llm_client: LLMJsonClient,
    *,
    batch_size: int = 10,
    batch_pause_seconds: float = 1.0,
    timeout_seconds: float | None = None,
    max_chars: int = 20_000,
    max_output_tokens: int | None = None,
    progress_callback: ProgressCallback | None = None,
) -> ExtractionResult:
    """Extract insights in sequential fixed-size batches of concurrent calls."""

    effective_batch_size = max(1, batch_size)
    batches = [
        records[index : index + effective_batch_size]
        for index in range(0, len(records), effective_batch_size)
    ]
    total = len(records)
    result = ExtractionResult()

    processed = 0
    for batch_index, batch in enumerate(batches):
        # A fresh pool per batch: threads stuck past their timeout never
        # take a worker away from the next batch.
        with worker_pool(len(batch), name="extract") as pool:
            outcomes = await asyncio.gather(
                *(
                    call_in_pool(
                        pool,
                        extract_conversation_insight,
                        record,
                        llm_client,
                        timeout_seconds=timeout_seconds,
                        max_chars=max_chars,
                        max_output_tokens=max_output_tokens,
                    )
                    for record in batch
                ),
                return_exceptions=True,
            )
        for record, outcome in zip(batch, outcomes, strict=True):
            if isinstance(outcome, ConversationInsight):
                result.insights.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            row = _error_row(record, outcome)
            logger.warning(
                "Extraction failed for conversation %s (%s)", record.id, row["error_type"]
            )
            result.errors.append(row)

        processed += len(batch)
        if progress_callback is not None:
            progress_callback(processed, total, "extract_insights_batch")
        if batch_index + 1 < len(batches) and batch_pause_seconds > 0:
            await asyncio.sleep(batch_pause_seconds)

    logger.info(
        "Stage 1 finished: %d insights, %d failures out of %d conversations",
        len(result.insights),
        len(result.errors),
        total,
    )
    return result


def extract_insights(
    records: list[ConversationRecord],
    llm_client: LLMJsonClient,
    **kwargs: Any,
) -> ExtractionResult:
    """Synchronous entry point for :func:`extract_insights_async`."""

    return asyncio.run(extract_insights_async(records, llm_client, **kwargs))
