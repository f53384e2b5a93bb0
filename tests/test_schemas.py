"""Tests for core data schemas."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from convo_insights.schemas import (
    ConversationInsight,
    PiiCategory,
    PiiFinding,
    ReportBundle,
    ReportKind,
)


class TestConversationInsight:
    def test_defaults(self):
        insight = ConversationInsight(conversation_id="c1")
        assert insight.primary_topics == []
        assert insight.uniqueness_score == 1
        assert insight.emotional_tone == "neutral"
        assert insight.composite_score == 1

    def test_scores_are_bounded(self):
        with pytest.raises(ValidationError):
            ConversationInsight(conversation_id="c1", complexity_level=11)

    def test_wire_form_is_camel_case(self):
        insight = ConversationInsight(
            conversation_id="c1",
            uniqueness_score=4,
            complexity_level=6,
            extracted_pii=[PiiFinding(value="555-0100", category=PiiCategory.CONTACT_PHONE)],
        )
        wire = insight.to_wire()
        assert wire["conversationId"] == "c1"
        assert wire["uniquenessScore"] == 4
        assert wire["extractedPii"] == [
            {
                "category": "ContactPhone",
                "riskLevel": "medium",
                "context": "",
                "conversationContext": "",
            }
        ]
        assert insight.composite_score == 24

    def test_insights_are_immutable(self):
        insight = ConversationInsight(conversation_id="c1")
        with pytest.raises(ValidationError):
            insight.title = "changed"


class TestReportBundle:
    def test_wire_round_trip_keeps_only_populated_kinds(self):
        bundle = ReportBundle(
            reports={
                ReportKind.PERSONALITY_ARCHETYPE: {"primaryArchetype": "The Builder"},
                ReportKind.BEHAVIORAL_DOSSIER: {"subjectCodename": {"name": "The Analyst"}},
            },
            processing_errors=["unfilteredMirror: no observation available"],
            conversation_count=12,
            generated_at=datetime(2025, 3, 1, tzinfo=UTC),
        )

        wire = bundle.to_wire()

        assert list(wire)[:2] == ["fbiReport", "personalityArchetype"]
        assert "unfilteredMirror" not in wire
        assert wire["processingErrors"] == ["unfilteredMirror: no observation available"]
        assert wire["generatedAt"] == "2025-03-01T00:00:00+00:00"
        assert ReportBundle.from_wire(wire) == bundle

    def test_completeness(self):
        full = ReportBundle(reports={kind: {} for kind in ReportKind})
        assert full.is_complete
        partial = ReportBundle(reports={kind: {} for kind in ReportKind}, processing_errors=["x"])
        assert not partial.is_complete
        assert not ReportBundle().is_complete
