"""Stage 2: report synthesis from aggregated signals.

Every report kind is described by one :class:`ReportSpec`; a single generic
runner executes any spec and a settle-all combinator fans them out.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from convo_insights import prompts
from convo_insights.errors import SynthesisFailure
from convo_insights.models import LLMJsonClient
from convo_insights.pipeline.executor import call_in_pool, worker_pool
from convo_insights.pipeline.extraction import parse_json_object
from convo_insights.prompts.report_prompts import DISCLAIMERS
from convo_insights.schemas import AggregatedSignals, ModelTier, ReportKind

logger = logging.getLogger(__name__)

DEFAULT_CODENAME = {
    "name": "The Analyst",
    "justification": "Systematically processes information with methodical precision.",
    "operationalSignificance": "Demonstrates consistent analytical approach across multiple domains.",
}
FALLBACK_JUSTIFICATION = (
    "This conversation demonstrated exceptional intellectual depth and unique perspectives."
)
CODENAME_MAX_OUTPUT_TOKENS = 1024


class _ReportPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


# --- Payload models ---------------------------------------------------------


class _PiiExample(_ReportPayload):
    category: str
    risk_level: str = "medium"
    context: str = ""


class _BehavioralDossierPayload(_ReportPayload):
    report_title: str = "Digital Behavioral Analysis Dossier - Classification: CONFIDENTIAL"
    subject_profile_summary: str
    psychological_profile: str
    dominant_interests: list[str]
    communication_modalities: list[str]
    emotional_tone_and_engagement: str
    information_sharing_tendencies: str
    pii_examples: list[_PiiExample] = Field(default_factory=list)
    overall_interaction_style: str
    behavioral_patterns: list[str]
    potential_vulnerabilities: list[str]
    operational_assessment: str
    disclaimer: str = DISCLAIMERS[ReportKind.BEHAVIORAL_DOSSIER]


class _SubjectCodenamePayload(_ReportPayload):
    name: str = Field(min_length=1)
    justification: str
    operational_significance: str


class _VocabularyProfile(_ReportPayload):
    qualitative_assessment: str
    notable_words: list[str]
    sophistication_level: str
    domain_specific_terms: list[str] = Field(default_factory=list)
    linguistic_markers: list[str] = Field(default_factory=list)


class _LinguisticFingerprintPayload(_ReportPayload):
    report_title: str = "Comprehensive Linguistic Fingerprint Analysis"
    overall_style_description: str
    vocabulary_profile: _VocabularyProfile
    sentence_structure: str
    expressiveness: str
    potential_interests_indicated_by_language: list[str] = Field(default_factory=list)
    communication_effectiveness: str
    rhetorical_devices: list[str]
    cognitive_complexity: str
    disclaimer: str = DISCLAIMERS[ReportKind.LINGUISTIC_FINGERPRINT]


class _SpotlightPayload(_ReportPayload):
    justifications: list[str]


class _PersonaArchetypePayload(_ReportPayload):
    report_title: str = "Your Reality TV Persona"
    persona_archetype: str
    description: str
    pop_culture_comparisons: list[str]
    character_traits: list[str]
    likely_story_arcs: list[str]
    viewer_appeal: str
    conflict_style: str
    disclaimer: str = DISCLAIMERS[ReportKind.PERSONA_ARCHETYPE]


class _UnfilteredMirrorPayload(_ReportPayload):
    report_title: str = "The Unfiltered Mirror"
    observation: str = Field(min_length=1)
    deeper_insight: str
    psychological_implications: str
    disclaimer: str = DISCLAIMERS[ReportKind.UNFILTERED_MIRROR]


class _PiiBreakdownItem(_ReportPayload):
    category: str
    advice: str
    risk_level: str = "medium"
    examples: list[str] = Field(default_factory=list)


class _PiiSafetyAdvisoryPayload(_ReportPayload):
    report_title: str = "Your PII Safety Compass"
    awareness_score: Literal["Low Risk", "Medium Risk", "High Risk"]
    summary: str
    detailed_breakdown: list[_PiiBreakdownItem]
    overall_security_posture: str
    recommended_actions: list[str]
    disclaimer: str = DISCLAIMERS[ReportKind.PII_SAFETY_ADVISORY]


class _SyntheticSocialProfilePayload(_ReportPayload):
    report_title: str = "Your Digital Doppelganger"
    handle: str = Field(min_length=1)
    bio: str
    top_hashtags: list[str]
    personality_traits: list[str]
    likely_followers: list[str]
    content_style: str
    online_behavior: str
    disclaimer: str = DISCLAIMERS[ReportKind.SYNTHETIC_SOCIAL_PROFILE]


class _CognitiveStylePayload(_ReportPayload):
    report_title: str = "Cognitive Fingerprint Analysis"
    thinking_style: str
    problem_solving_approach: str
    learning_preferences: str
    decision_making_pattern: str
    creativity_indicators: list[str]
    analytical_depth: str
    cognitive_flexibility: str
    disclaimer: str = DISCLAIMERS[ReportKind.COGNITIVE_STYLE]


class _PersonalityArchetypePayload(_ReportPayload):
    report_title: str = "Personality Archetype Analysis"
    primary_archetype: str
    secondary_traits: list[str]
    motivational_drivers: list[str]
    communication_style: str
    relationship_patterns: str
    stress_responses: list[str]
    growth_areas: list[str]
    disclaimer: str = DISCLAIMERS[ReportKind.PERSONALITY_ARCHETYPE]


# --- Specs ------------------------------------------------------------------

Finisher = Callable[[dict[str, Any], AggregatedSignals], dict[str, Any] | list[dict[str, Any]]]
Precondition = Callable[[AggregatedSignals], str | None]
Enricher = Callable[[AggregatedSignals, LLMJsonClient], dict[str, Any]]


@dataclass(frozen=True)
class ReportSpec:
    """Everything needed to synthesize and validate one report kind."""

    kind: ReportKind
    system_prompt: str
    build_user_prompt: Callable[[AggregatedSignals], str]
    payload_model: type[BaseModel]
    max_output_tokens: int
    tier: ModelTier = ModelTier.POWERFUL
    precondition: Precondition | None = None
    finisher: Finisher | None = None
    enricher: Enricher | None = None


def _require_spotlight(signals: AggregatedSignals) -> str | None:
    return None if signals.spotlight else "no conversations available for the spotlight"


def _require_observation(signals: AggregatedSignals) -> str | None:
    return None if signals.longest_observation.strip() else "no observation available"


def _finish_spotlight(
    payload: dict[str, Any], signals: AggregatedSignals
) -> list[dict[str, Any]]:
    """Pair justifications with spotlight insights by index, padding gaps."""

    justifications = payload.get("justifications", [])
    conversations = []
    for index, insight in enumerate(signals.spotlight):
        justification = justifications[index].strip() if index < len(justifications) else ""
        conversations.append(
            {
                "conversationId": insight.conversation_id,
                "title": insight.title or "Untitled",
                "justification": justification or FALLBACK_JUSTIFICATION,
                "significance": (
                    f"Uniqueness: {insight.uniqueness_score}/10, "
                    f"Complexity: {insight.complexity_level}/10"
                ),
                "insights": insight.topic_evolution or [insight.intriguing_observation],
            }
        )
    return conversations


def request_subject_codename(
    signals: AggregatedSignals, llm_client: LLMJsonClient
) -> dict[str, Any]:
    """Ask for a dossier codename, substituting the default on any failure."""

    try:
        raw_text = llm_client.complete_json_text(
            system_prompt=prompts.SUBJECT_CODENAME_SYSTEM_PROMPT,
            user_prompt=prompts.build_subject_codename_user_prompt(signals),
            tier=ModelTier.FAST,
            max_output_tokens=CODENAME_MAX_OUTPUT_TOKENS,
        )
        parsed = _SubjectCodenamePayload.model_validate(parse_json_object(raw_text))
    except Exception as exc:
        logger.warning("Codename request failed; using default codename: %s", exc)
        return {"subjectCodename": dict(DEFAULT_CODENAME)}
    return {"subjectCodename": parsed.model_dump(by_alias=True, mode="json")}


REPORT_SPECS: dict[ReportKind, ReportSpec] = {
    spec.kind: spec
    for spec in (
        ReportSpec(
            kind=ReportKind.BEHAVIORAL_DOSSIER,
            system_prompt=prompts.BEHAVIORAL_DOSSIER_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_behavioral_dossier_user_prompt,
            payload_model=_BehavioralDossierPayload,
            max_output_tokens=4096,
            enricher=request_subject_codename,
        ),
        ReportSpec(
            kind=ReportKind.LINGUISTIC_FINGERPRINT,
            system_prompt=prompts.LINGUISTIC_FINGERPRINT_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_linguistic_fingerprint_user_prompt,
            payload_model=_LinguisticFingerprintPayload,
            max_output_tokens=3072,
        ),
        ReportSpec(
            kind=ReportKind.TOP_CONVERSATIONS_SPOTLIGHT,
            system_prompt=prompts.TOP_CONVERSATIONS_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_top_conversations_user_prompt,
            payload_model=_SpotlightPayload,
            max_output_tokens=2048,
            precondition=_require_spotlight,
            finisher=_finish_spotlight,
        ),
        ReportSpec(
            kind=ReportKind.PERSONA_ARCHETYPE,
            system_prompt=prompts.PERSONA_ARCHETYPE_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_persona_archetype_user_prompt,
            payload_model=_PersonaArchetypePayload,
            max_output_tokens=2048,
        ),
        ReportSpec(
            kind=ReportKind.UNFILTERED_MIRROR,
            system_prompt=prompts.UNFILTERED_MIRROR_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_unfiltered_mirror_user_prompt,
            payload_model=_UnfilteredMirrorPayload,
            max_output_tokens=1536,
            precondition=_require_observation,
        ),
        ReportSpec(
            kind=ReportKind.PII_SAFETY_ADVISORY,
            system_prompt=prompts.PII_SAFETY_ADVISORY_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_pii_safety_advisory_user_prompt,
            payload_model=_PiiSafetyAdvisoryPayload,
            max_output_tokens=2048,
        ),
        ReportSpec(
            kind=ReportKind.SYNTHETIC_SOCIAL_PROFILE,
            system_prompt=prompts.SYNTHETIC_SOCIAL_PROFILE_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_synthetic_social_profile_user_prompt,
            payload_model=_SyntheticSocialProfilePayload,
            max_output_tokens=1536,
        ),
        ReportSpec(
            kind=ReportKind.COGNITIVE_STYLE,
            system_prompt=prompts.COGNITIVE_STYLE_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_cognitive_style_user_prompt,
            payload_model=_CognitiveStylePayload,
            max_output_tokens=2048,
        ),
        ReportSpec(
            kind=ReportKind.PERSONALITY_ARCHETYPE,
            system_prompt=prompts.PERSONALITY_ARCHETYPE_SYSTEM_PROMPT,
            build_user_prompt=prompts.build_personality_archetype_user_prompt,
            payload_model=_PersonalityArchetypePayload,
            max_output_tokens=2048,
        ),
    )
}


# --- Runner -----------------------------------------------------------------


@dataclass
class SynthesisResult:
    """Populated report payloads keyed by kind plus one message per failed kind."""

    reports: dict[ReportKind, dict[str, Any] | list[dict[str, Any]]] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)


def _validation_reason(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    extra = f" (+{exc.error_count() - 1} more)" if exc.error_count() > 1 else ""
    return f"invalid field '{location}': {first.get('msg', 'invalid')}{extra}"


def validate_report_payload(spec: ReportSpec, payload: dict[str, Any]) -> dict[str, Any]:
    """Validate a raw payload against the kind's schema, returning camelCase JSON."""

    try:
        parsed = spec.payload_model.model_validate(payload)
    except ValidationError as exc:
        raise SynthesisFailure(spec.kind.value, _validation_reason(exc)) from exc
    return parsed.model_dump(by_alias=True, mode="json")


def _complete_main(spec: ReportSpec, signals: AggregatedSignals, llm_client: LLMJsonClient) -> dict:
    raw_text = llm_client.complete_json_text(
        system_prompt=spec.system_prompt,
        user_prompt=spec.build_user_prompt(signals),
        tier=spec.tier,
        max_output_tokens=spec.max_output_tokens,
    )
    return parse_json_object(raw_text)


def _pool_size(specs: Iterable[ReportSpec]) -> int:
    return sum(2 if spec.enricher is not None else 1 for spec in specs)


async def _synthesize_in_pool(
    spec: ReportSpec,
    signals: AggregatedSignals,
    llm_client: LLMJsonClient,
    pool: ThreadPoolExecutor,
    timeout_seconds: float | None,
) -> dict[str, Any] | list[dict[str, Any]]:
    kind = spec.kind.value
    if spec.precondition is not None:
        reason = spec.precondition(signals)
        if reason is not None:
            raise SynthesisFailure(kind, reason)

    main_call = call_in_pool(
        pool, _complete_main, spec, signals, llm_client, timeout_seconds=timeout_seconds
    )
    enrichment: dict[str, Any] = {}
    try:
        if spec.enricher is None:
            payload = await main_call
        else:
            enrich_call = call_in_pool(
                pool, spec.enricher, signals, llm_client, timeout_seconds=timeout_seconds
            )
            outcomes = await asyncio.gather(main_call, enrich_call, return_exceptions=True)
            payload, enrichment = outcomes
            if isinstance(payload, BaseException):
                raise payload
            if isinstance(enrichment, BaseException):
                logger.warning("%s enrichment failed: %r", kind, enrichment)
                enrichment = {}
    except TimeoutError as exc:
        raise SynthesisFailure(kind, f"timed out after {timeout_seconds}s") from exc
    except Exception as exc:
        raise SynthesisFailure(kind, f"{type(exc).__name__}: {exc}") from exc

    report: dict[str, Any] | list[dict[str, Any]] = validate_report_payload(spec, payload)
    if spec.finisher is not None:
        report = spec.finisher(report, signals)
    if spec.kind is ReportKind.BEHAVIORAL_DOSSIER and "subjectCodename" not in enrichment:
        enrichment = {"subjectCodename": dict(DEFAULT_CODENAME)}
    if enrichment and isinstance(report, dict):
        report.update(enrichment)
    return report


async def synthesize_report_async(
    spec: ReportSpec,
    signals: AggregatedSignals,
    llm_client: LLMJsonClient,
    *,
    timeout_seconds: float | None = None,
) -> dict[str, Any] | list[dict[str, Any]]:
    """Synthesize one report kind.

    Raises:
        SynthesisFailure: when the precondition fails, the call errors or times
            out, or the payload does not match the kind's schema.
    """

    with worker_pool(_pool_size([spec]), name=f"report-{spec.kind.value}") as pool:
        return await _synthesize_in_pool(spec, signals, llm_client, pool, timeout_seconds)


def synthesize_report(
    spec: ReportSpec,
    signals: AggregatedSignals,
    llm_client: LLMJsonClient,
    *,
    timeout_seconds: float | None = None,
) -> dict[str, Any] | list[dict[str, Any]]:
    """Synchronous entry point for :func:`synthesize_report_async`."""

    return asyncio.run(
        synthesize_report_async(spec, signals, llm_client, timeout_seconds=timeout_seconds)
    )


async def synthesize_reports_async(
    signals: AggregatedSignals,
    llm_client: LLMJsonClient,
    *,
    kinds: Iterable[ReportKind] | None = None,
    timeout_seconds: float | None = None,
) -> SynthesisResult:
    """Run every requested report kind concurrently and settle all of them."""

    requested = set(kinds) if kinds is not None else set(ReportKind)
    specs = [REPORT_SPECS[kind] for kind in ReportKind if kind in requested]
    # One worker per call, the dossier codename included.
    with worker_pool(_pool_size(specs), name="report") as pool:
        outcomes = await asyncio.gather(
            *(
                _synthesize_in_pool(spec, signals, llm_client, pool, timeout_seconds)
                for spec in specs
            ),
            return_exceptions=True,
        )

    result = SynthesisResult()
    for spec, outcome in zip(specs, outcomes, strict=True):
        if isinstance(outcome, (dict, list)):
            result.reports[spec.kind] = outcome
            continue
        if not isinstance(outcome, Exception):
            raise outcome
        if not isinstance(outcome, SynthesisFailure):
            outcome = SynthesisFailure(spec.kind.value, f"{type(outcome).__name__}: {outcome}")
        logger.warning("Report synthesis failed: %s", outcome)
        result.errors.append(str(outcome))

    logger.info(
        "Stage 2 finished: %d of %d reports synthesized", len(result.reports), len(specs)
    )
    return result


def synthesize_reports(
    signals: AggregatedSignals,
    llm_client: LLMJsonClient,
    **kwargs: Any,
) -> SynthesisResult:
    """Synchronous entry point for :func:`synthesize_reports_async`."""

    return asyncio.run(synthesize_reports_async(signals, llm_client, **kwargs))
