"""Tests for signal aggregation."""

from __future__ import annotations

import pytest

from convo_insights.errors import NoInsightsAvailableError
from convo_insights.pipeline import aggregate_insights, rank_labels, select_spotlight
from convo_insights.schemas import (
    ArchiveMetrics,
    CommunicationPattern,
    ConversationInsight,
    PiiCategory,
    PiiFinding,
    RiskLevel,
)


def _insight(
    conversation_id: str,
    *,
    uniqueness: int = 5,
    complexity: int = 5,
    topics: list[str] | None = None,
    patterns: list[CommunicationPattern] | None = None,
    pii: list[PiiFinding] | None = None,
    tone: str = "curious",
    observation: str = "",
    vocabulary: list[str] | None = None,
) -> ConversationInsight:
    return ConversationInsight(
        conversation_id=conversation_id,
        title=f"Title {conversation_id}",
        primary_topics=topics or [],
        communication_patterns=patterns or [],
        extracted_pii=pii or [],
        standout_vocabulary=vocabulary or [],
        uniqueness_score=uniqueness,
        complexity_level=complexity,
        engagement_level=6,
        emotional_tone=tone,
        intriguing_observation=observation,
    )


def test_rank_labels_ties_keep_first_seen_order():
    ranked = rank_labels(["b", "a", "c", "a", "b", "d"])
    assert [(item.label, item.count) for item in ranked] == [("b", 2), ("a", 2), ("c", 1), ("d", 1)]
    assert [item.label for item in rank_labels(["x", "y", "y"], limit=1)] == ["y"]


def test_spotlight_is_top_five_by_composite_with_stable_ties():
    insights = [
        _insight("a", uniqueness=2, complexity=2),
        _insight("b", uniqueness=6, complexity=6),
        _insight("c", uniqueness=4, complexity=9),
        _insight("d", uniqueness=9, complexity=4),
        _insight("e", uniqueness=1, complexity=1),
        _insight("f", uniqueness=10, complexity=10),
        _insight("g", uniqueness=3, complexity=3),
    ]
    spotlight = select_spotlight(insights)
    # b, c and d share a composite of 36; input order decides.
    assert [insight.conversation_id for insight in spotlight] == ["f", "b", "c", "d", "g"]
    assert select_spotlight(list(insights)) == spotlight


def test_spotlight_strips_pii():
    finding = PiiFinding(value="555-0100", category=PiiCategory.CONTACT_PHONE)
    spotlight = select_spotlight([_insight("a", pii=[finding])])
    assert spotlight[0].extracted_pii == []


def test_aggregate_counts_and_samples():
    email = PiiFinding(
        value="me@example.com",
        category=PiiCategory.CONTACT_EMAIL,
        risk_level=RiskLevel.HIGH,
        context="shared email",
        conversation_context="asked for a newsletter signup",
    )
    city = PiiFinding(
        value="Lisbon",
        category=PiiCategory.LOCATION,
        risk_level=RiskLevel.MEDIUM,
        context="mentioned home city",
    )
    insights = [
        _insight(
            "c1",
            topics=["python", "testing"],
            patterns=[CommunicationPattern.PROBLEM_SOLVING],
            pii=[email],
            observation="short",
            vocabulary=["idempotent", "fixture"],
        ),
        _insight(
            "c2",
            topics=["python"],
            patterns=[CommunicationPattern.BRAINSTORMING, CommunicationPattern.PROBLEM_SOLVING],
            pii=[city, email],
            tone="playful",
            observation="a much longer observation",
            vocabulary=["fixture", "monad"],
        ),
    ]
    metrics = ArchiveMetrics(total_conversations=2, total_user_messages=4)

    signals = aggregate_insights(insights, archive_metrics=metrics)

    assert signals.conversation_count == 2
    assert signals.topic_labels == ["python", "testing"]
    assert signals.pattern_labels == ["ProblemSolving", "Brainstorming"]
    assert [(item.label, item.count) for item in signals.pii_category_counts] == [
        ("ContactEmail", 2),
        ("Location", 1),
    ]
    assert signals.pii_risk_counts == {RiskLevel.LOW: 0, RiskLevel.MEDIUM: 1, RiskLevel.HIGH: 2}
    assert signals.high_risk_samples == {
        PiiCategory.CONTACT_EMAIL: ["asked for a newsletter signup", "asked for a newsletter signup"]
    }
    assert signals.medium_risk_samples == {PiiCategory.LOCATION: ["mentioned home city"]}
    assert signals.vocabulary == ["idempotent", "fixture", "monad"]
    assert signals.longest_observation == "a much longer observation"
    assert signals.problem_solving_count == 2
    assert signals.tone_labels == ["curious", "playful"]
    assert signals.complexity.mean == 5.0
    assert signals.complexity.distribution[5] == 2
    assert signals.archive_metrics.total_user_messages == 4
    assert signals.total_pii_count == 3


def test_aggregate_never_serializes_raw_pii():
    finding = PiiFinding(
        value="hunter2",
        category=PiiCategory.CREDENTIAL,
        risk_level=RiskLevel.HIGH,
        context="pasted a password",
    )
    signals = aggregate_insights([_insight("c1", pii=[finding])])
    assert "hunter2" not in signals.model_dump_json()


def test_samples_are_capped_per_category():
    findings = [
        PiiFinding(category=PiiCategory.HEALTH_CONDITION, risk_level=RiskLevel.HIGH, context=f"ctx {i}")
        for i in range(5)
    ]
    signals = aggregate_insights([_insight("c1", pii=findings)], pii_sample_size=3)
    assert signals.high_risk_samples[PiiCategory.HEALTH_CONDITION] == ["ctx 0", "ctx 1", "ctx 2"]


def test_aggregate_is_deterministic():
    insights = [
        _insight("c1", topics=["a", "b"], uniqueness=3),
        _insight("c2", topics=["b", "c"], uniqueness=8),
    ]
    assert aggregate_insights(insights) == aggregate_insights(list(insights))


def test_empty_input_raises():
    with pytest.raises(NoInsightsAvailableError):
        aggregate_insights([])
