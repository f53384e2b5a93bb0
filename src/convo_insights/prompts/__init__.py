"""Prompt builders for both pipeline stages."""

from convo_insights.prompts.extraction_prompts import (
    CONVERSATION_INSIGHT_SYSTEM_PROMPT,
    TRUNCATION_MARKER,
    build_conversation_insight_user_prompt,
    truncate_text,
)
from convo_insights.prompts.report_prompts import (
    BEHAVIORAL_DOSSIER_SYSTEM_PROMPT,
    COGNITIVE_STYLE_SYSTEM_PROMPT,
    DISCLAIMERS,
    LINGUISTIC_FINGERPRINT_SYSTEM_PROMPT,
    PERSONA_ARCHETYPE_SYSTEM_PROMPT,
    PERSONALITY_ARCHETYPE_SYSTEM_PROMPT,
    PII_SAFETY_ADVISORY_SYSTEM_PROMPT,
    SUBJECT_CODENAME_SYSTEM_PROMPT,
    SYNTHETIC_SOCIAL_PROFILE_SYSTEM_PROMPT,
    TOP_CONVERSATIONS_SYSTEM_PROMPT,
    UNFILTERED_MIRROR_SYSTEM_PROMPT,
    build_behavioral_dossier_user_prompt,
    build_cognitive_style_user_prompt,
    build_linguistic_fingerprint_user_prompt,
    build_persona_archetype_user_prompt,
    build_personality_archetype_user_prompt,
    build_pii_safety_advisory_user_prompt,
    build_subject_codename_user_prompt,
    build_synthetic_social_profile_user_prompt,
    build_top_conversations_user_prompt,
    build_unfiltered_mirror_user_prompt,
)

__all__ = [
    "BEHAVIORAL_DOSSIER_SYSTEM_PROMPT",
    "COGNITIVE_STYLE_SYSTEM_PROMPT",
    "CONVERSATION_INSIGHT_SYSTEM_PROMPT",
    "DISCLAIMERS",
    "LINGUISTIC_FINGERPRINT_SYSTEM_PROMPT",
    "PERSONALITY_ARCHETYPE_SYSTEM_PROMPT",
    "PERSONA_ARCHETYPE_SYSTEM_PROMPT",
    "PII_SAFETY_ADVISORY_SYSTEM_PROMPT",
    "SUBJECT_CODENAME_SYSTEM_PROMPT",
    "SYNTHETIC_SOCIAL_PROFILE_SYSTEM_PROMPT",
    "TOP_CONVERSATIONS_SYSTEM_PROMPT",
    "TRUNCATION_MARKER",
    "UNFILTERED_MIRROR_SYSTEM_PROMPT",
    "build_behavioral_dossier_user_prompt",
    "build_cognitive_style_user_prompt",
    "build_conversation_insight_user_prompt",
    "build_linguistic_fingerprint_user_prompt",
    "build_persona_archetype_user_prompt",
    "build_personality_archetype_user_prompt",
    "build_pii_safety_advisory_user_prompt",
    "build_subject_codename_user_prompt",
    "build_synthetic_social_profile_user_prompt",
    "build_top_conversations_user_prompt",
    "build_unfiltered_mirror_user_prompt",
    "truncate_text",
]
