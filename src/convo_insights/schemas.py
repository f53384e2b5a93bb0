"""Core data schemas for the insight pipeline.

Every model serializes with camelCase keys (``model_dump(by_alias=True)``); these
shapes are the interchange format between stages and with the report consumers.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class ModelTier(StrEnum):
    """Model capability tier used for one LLM call."""

    FAST = "fast"
    POWERFUL = "powerful"


class CommunicationPattern(StrEnum):
    SEEKING_INFORMATION = "SeekingInformation"
    PROBLEM_SOLVING = "ProblemSolving"
    BRAINSTORMING = "Brainstorming"
    EMOTIONAL_VENTING = "EmotionalVenting"
    TEACHING = "Teaching"
    DEBATING = "Debating"
    REFLECTING = "Reflecting"
    PLANNING = "Planning"
    STORYTELLING = "Storytelling"
    EXPRESSING_OPINION = "ExpressingOpinion"


class PiiCategory(StrEnum):
    PERSONAL_NAME = "PersonalName"
    LOCATION = "Location"
    DATE = "Date"
    CONTACT_EMAIL = "ContactEmail"
    CONTACT_PHONE = "ContactPhone"
    FINANCIAL_ACCOUNT = "FinancialAccount"
    HEALTH_CONDITION = "HealthCondition"
    CREDENTIAL = "Credential"
    ID_NUMBER = "IdNumber"
    OTHER = "Other"


class RiskLevel(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReportKind(StrEnum):
    """The nine Stage 2 report kinds; values are the bundle keys."""

    BEHAVIORAL_DOSSIER = "fbiReport"
    LINGUISTIC_FINGERPRINT = "linguisticFingerprint"
    TOP_CONVERSATIONS_SPOTLIGHT = "topInterestingConversations"
    PERSONA_ARCHETYPE = "realityTVPersona"
    UNFILTERED_MIRROR = "unfilteredMirror"
    PII_SAFETY_ADVISORY = "piiSafetyCompass"
    SYNTHETIC_SOCIAL_PROFILE = "digitalDoppelganger"
    COGNITIVE_STYLE = "cognitiveFingerprint"
    PERSONALITY_ARCHETYPE = "personalityArchetype"


class ConversationRecord(_WireModel):
    """One chat thread, reduced to its user-authored text."""

    id: str
    title: str | None = None
    created_at: datetime | None = None
    user_messages: list[str] = Field(default_factory=list)

    def user_text(self, separator: str = "\n\n---\n\n") -> str:
        return separator.join(self.user_messages)


class PiiFinding(_WireModel):
    """One piece of sensitive information spotted by Stage 1."""

    # Raw sensitive text never leaves memory through serialization.
    value: str = Field(default="", exclude=True)
    category: PiiCategory = PiiCategory.OTHER
    risk_level: RiskLevel = RiskLevel.MEDIUM
    context: str = ""
    conversation_context: str = ""


class ConversationInsight(_WireModel):
    """Stage 1 output for a single conversation."""

    conversation_id: str
    title: str | None = None
    primary_topics: list[str] = Field(default_factory=list)
    communication_patterns: list[CommunicationPattern] = Field(default_factory=list)
    extracted_pii: list[PiiFinding] = Field(default_factory=list)
    standout_vocabulary: list[str] = Field(default_factory=list)
    uniqueness_score: int = Field(default=1, ge=1, le=10)
    complexity_level: int = Field(default=1, ge=1, le=10)
    engagement_level: int = Field(default=1, ge=1, le=10)
    emotional_tone: str = "neutral"
    intriguing_observation: str = ""
    topic_evolution: list[str] = Field(default_factory=list)

    @property
    def composite_score(self) -> int:
        return self.uniqueness_score * self.complexity_level


class RankedItem(_WireModel):
    label: str
    count: int


class ScoreStats(_WireModel):
    """Summary statistics for one bounded 1-10 score across insights."""

    mean: float
    minimum: int
    maximum: int
    distribution: dict[int, int]
    high_count: int


class InsightProfile(_WireModel):
    """Non-sensitive per-conversation profile line used in Stage 2 prompts."""

    title: str
    emotional_tone: str
    complexity_level: int
    engagement_level: int
    communication_patterns: list[CommunicationPattern]


class ArchiveMetrics(_WireModel):
    """Deterministic archive-level metrics computed without an LLM."""

    total_conversations: int = 0
    total_user_messages: int = 0
    average_words_per_user_sentence: float = 0.0
    vocabulary_size_estimate: int = 0
    timespan_days: float = 0.0
    topic_diversity: int = 0


class AggregatedSignals(_WireModel):
    """The single handoff object from the aggregator to every Stage 2 synthesizer."""

    conversation_count: int
    ranked_topics: list[RankedItem]
    ranked_patterns: list[RankedItem]
    pii_category_counts: list[RankedItem]
    pii_risk_counts: dict[RiskLevel, int]
    high_risk_samples: dict[PiiCategory, list[str]]
    medium_risk_samples: dict[PiiCategory, list[str]]
    vocabulary: list[str]
    complexity: ScoreStats
    engagement: ScoreStats
    tone_distribution: list[RankedItem]
    longest_observation: str
    problem_solving_count: int
    conversation_profiles: list[InsightProfile]
    spotlight: list[ConversationInsight]
    archive_metrics: ArchiveMetrics = Field(default_factory=ArchiveMetrics)

    @property
    def topic_labels(self) -> list[str]:
        return [item.label for item in self.ranked_topics]

    @property
    def pattern_labels(self) -> list[str]:
        return [item.label for item in self.ranked_patterns]

    @property
    def tone_labels(self) -> list[str]:
        return [item.label for item in self.tone_distribution]

    @property
    def total_pii_count(self) -> int:
        return sum(item.count for item in self.pii_category_counts)


class ReportBundle(BaseModel):
    """Final artifact: populated report payloads plus per-kind processing errors."""

    model_config = ConfigDict(frozen=True)

    reports: dict[ReportKind, dict[str, Any] | list[dict[str, Any]]] = Field(default_factory=dict)
    processing_errors: list[str] = Field(default_factory=list)
    conversation_count: int = 0
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def populated_kinds(self) -> list[ReportKind]:
        return [kind for kind in ReportKind if kind in self.reports]

    @property
    def is_complete(self) -> bool:
        return not self.processing_errors and len(self.reports) == len(ReportKind)

    def to_wire(self) -> dict[str, Any]:
        """Render the flat JSON object consumers read (one key per report kind)."""

        payload: dict[str, Any] = {kind.value: self.reports[kind] for kind in self.populated_kinds}
        payload["processingErrors"] = list(self.processing_errors)
        payload["conversationCount"] = self.conversation_count
        payload["generatedAt"] = self.generated_at.isoformat()
        return payload

    @classmethod
    def from_wire(cls, payload: dict[str, Any]) -> "ReportBundle":
        reports = {kind: payload[kind.value] for kind in ReportKind if kind.value in payload}
        generated_at = payload.get("generatedAt")
        return cls(
            reports=reports,
            processing_errors=list(payload.get("processingErrors", [])),
            conversation_count=int(payload.get("conversationCount", 0)),
            generated_at=(
                datetime.fromisoformat(generated_at) if generated_at else datetime.now(UTC)
            ),
        )
