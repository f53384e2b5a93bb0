"""Prompts for Stage 1 per-conversation insight extraction."""

from __future__ import annotations

from convo_insights.schemas import CommunicationPattern, ConversationRecord, PiiCategory

TRUNCATION_MARKER = "\n... [TRUNCATED]"
MESSAGE_SEPARATOR = "\n\n---\n\n"

_PATTERN_CHOICES = ", ".join(pattern.value for pattern in CommunicationPattern)
_PII_CATEGORY_CHOICES = ", ".join(category.value for category in PiiCategory)

CONVERSATION_INSIGHT_SYSTEM_PROMPT = f"""You are an expert behavioral analyst.
Analyze one conversation excerpt. Focus ONLY on the user's contributions.

Return strict JSON with exactly these keys:
{{
  "primaryTopics": ["<3-5 main topics discussed>"],
  "communicationPatterns": ["<choose from: {_PATTERN_CHOICES}>"],
  "extractedPii": [
    {{
      "pii": "<exact personal data found>",
      "context": "<short description of how it was shared>",
      "category": "<one of: {_PII_CATEGORY_CHOICES}>",
      "riskLevel": "<low|medium|high>",
      "conversationContext": "<why it was shared in this conversation>"
    }}
  ],
  "standoutVocabulary": ["<5-8 sophisticated or domain-specific words>"],
  "uniquenessScore": <integer 1-10, how niche the topic is>,
  "complexityLevel": <integer 1-10, intellectual complexity>,
  "userEngagementLevel": <integer 1-10, how invested the user seems>,
  "emotionalTone": "<analytical|enthusiastic|frustrated|curious|...>",
  "intriguingObservation": "<one respectful insight about the user's goals or interests>",
  "topicEvolution": ["<how the topics evolved during the conversation>"]
}}

Rules:
- Rate uniqueness by how specialized or uncommon the topic is.
- Judge complexity from vocabulary, concepts and depth of reasoning.
- Use an empty list for extractedPii when nothing personal was shared.
- Output JSON only.
"""


def truncate_text(text: str, max_chars: int) -> str:
    """Cut text to ``max_chars`` characters, marking the cut."""

    if len(text) <= max_chars:
        return text
    return text[:max_chars] + TRUNCATION_MARKER


def build_conversation_insight_user_prompt(record: ConversationRecord, *, max_chars: int) -> str:
    """Render one conversation's user text for insight extraction."""

    excerpt = truncate_text(record.user_text(MESSAGE_SEPARATOR), max_chars)
    return (
        "Analyze this conversation excerpt and return the required JSON insight.\n\n"
        f'Conversation Title: "{record.title or "Untitled"}"\n'
        "Conversation Excerpt:\n"
        "---\n"
        f"{excerpt}\n"
        "---\n"
    )
