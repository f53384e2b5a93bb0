"""Signal aggregation: many Stage 1 insights into one AggregatedSignals handoff."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable

from convo_insights.errors import NoInsightsAvailableError
from convo_insights.schemas import (
    AggregatedSignals,
    ArchiveMetrics,
    CommunicationPattern,
    ConversationInsight,
    InsightProfile,
    PiiCategory,
    RankedItem,
    RiskLevel,
    ScoreStats,
)

logger = logging.getLogger(__name__)

HIGH_SCORE_THRESHOLD = 7


def rank_labels(labels: Iterable[str], limit: int | None = None) -> list[RankedItem]:
    """Count labels and sort by count descending; ties keep first-seen order."""

    # Counter preserves insertion order and sorted() is stable.
    counts = Counter(labels)
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    if limit is not None:
        ranked = ranked[:limit]
    return [RankedItem(label=label, count=count) for label, count in ranked]


def score_stats(scores: list[int]) -> ScoreStats:
    distribution = {score: 0 for score in range(1, 11)}
    for score in scores:
        distribution[score] += 1
    return ScoreStats(
        mean=round(sum(scores) / len(scores), 2) if scores else 0.0,
        minimum=min(scores, default=0),
        maximum=max(scores, default=0),
        distribution=distribution,
        high_count=sum(1 for score in scores if score >= HIGH_SCORE_THRESHOLD),
    )


def select_spotlight(
    insights: list[ConversationInsight], size: int = 5
) -> list[ConversationInsight]:
    """Top insights by composite score; equal scores keep input order."""

    ranked = sorted(insights, key=lambda insight: insight.composite_score, reverse=True)
    return [insight.model_copy(update={"extracted_pii": []}) for insight in ranked[:size]]


def _risk_samples(
    insights: list[ConversationInsight], risk: RiskLevel, sample_size: int
) -> dict[PiiCategory, list[str]]:
    samples: dict[PiiCategory, list[str]] = {}
    for insight in insights:
        for finding in insight.extracted_pii:
            if finding.risk_level is not risk:
                continue
            context = finding.conversation_context or finding.context
            if not context:
                continue
            bucket = samples.setdefault(finding.category, [])
            if len(bucket) < sample_size:
                bucket.append(context)
    return samples


def aggregate_insights(
    insights: list[ConversationInsight],
    *,
    archive_metrics: ArchiveMetrics | None = None,
    top_topics_count: int = 15,
    top_patterns_count: int = 10,
    spotlight_size: int = 5,
    pii_sample_size: int = 3,
    profile_sample_size: int = 10,
) -> AggregatedSignals:
    """Fold insights into frequency rankings, distributions and samples.

    Raises:
        NoInsightsAvailableError: when ``insights`` is empty.
    """

    if not insights:
        raise NoInsightsAvailableError("Failed to gather any insights from conversations.")

    findings = [finding for insight in insights for finding in insight.extracted_pii]
    risk_counts = Counter(finding.risk_level for finding in findings)

    vocabulary: list[str] = []
    seen_words: set[str] = set()
    for insight in insights:
        for word in insight.standout_vocabulary:
            if word not in seen_words:
                seen_words.add(word)
                vocabulary.append(word)

    observations = [insight.intriguing_observation for insight in insights]
    # max() returns the first of equally long observations.
    longest_observation = max(observations, key=len, default="")

    signals = AggregatedSignals(
        conversation_count=len(insights),
        ranked_topics=rank_labels(
            (topic for insight in insights for topic in insight.primary_topics),
            top_topics_count,
        ),
        ranked_patterns=rank_labels(
            (pattern.value for insight in insights for pattern in insight.communication_patterns),
            top_patterns_count,
        ),
        pii_category_counts=rank_labels(finding.category.value for finding in findings),
        pii_risk_counts={risk: risk_counts.get(risk, 0) for risk in RiskLevel},
        high_risk_samples=_risk_samples(insights, RiskLevel.HIGH, pii_sample_size),
        medium_risk_samples=_risk_samples(insights, RiskLevel.MEDIUM, pii_sample_size),
        vocabulary=vocabulary,
        complexity=score_stats([insight.complexity_level for insight in insights]),
        engagement=score_stats([insight.engagement_level for insight in insights]),
        tone_distribution=rank_labels(insight.emotional_tone for insight in insights),
        longest_observation=longest_observation,
        problem_solving_count=sum(
            1
            for insight in insights
            if CommunicationPattern.PROBLEM_SOLVING in insight.communication_patterns
        ),
        conversation_profiles=[
            InsightProfile(
                title=insight.title or "Untitled",
                emotional_tone=insight.emotional_tone,
                complexity_level=insight.complexity_level,
                engagement_level=insight.engagement_level,
                communication_patterns=insight.communication_patterns,
            )
            for insight in insights[:profile_sample_size]
        ],
        spotlight=select_spotlight(insights, spotlight_size),
        archive_metrics=archive_metrics or ArchiveMetrics(),
    )
    logger.info(
        "Aggregated %d insights: %d topics, %d patterns, %d PII findings",
        signals.conversation_count,
        len(signals.ranked_topics),
        len(signals.ranked_patterns),
        len(findings),
    )
    return signals
