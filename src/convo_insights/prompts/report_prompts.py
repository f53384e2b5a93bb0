"""Prompts for Stage 2 report synthesis.

Each report kind has a system prompt describing the persona and the exact JSON
shape, and a user prompt builder that renders the relevant slice of the
aggregated signals. Raw PII values never reach these prompts; only categories,
risk tiers and the model-written context descriptions do.
"""

from __future__ import annotations

from convo_insights.schemas import AggregatedSignals, InsightProfile, RankedItem, ScoreStats

DISCLAIMERS = {
    "fbiReport": (
        "This report represents an AI-generated behavioral analysis based on digital "
        "interaction patterns. It is intended for informational and self-reflection purposes "
        "only and does not constitute a professional psychological assessment."
    ),
    "linguisticFingerprint": (
        "This linguistic analysis is a computational assessment of language patterns and does "
        "not constitute a formal evaluation of intelligence, education level, or competency."
    ),
    "realityTVPersona": (
        "This analysis is for entertainment purposes only and represents a fictional "
        "television persona based on communication patterns."
    ),
    "unfilteredMirror": (
        "This reflection is an AI-generated interpretation of communication patterns, "
        "intended for self-reflection and personal insight."
    ),
    "piiSafetyCompass": (
        "This assessment analyzes information sharing patterns in conversations and provides "
        "general security guidance. It does not constitute professional security consultation."
    ),
    "digitalDoppelganger": (
        "This is an AI-generated fictional social media persona based on communication "
        "patterns and interests, created for entertainment and self-reflection."
    ),
    "cognitiveFingerprint": (
        "This cognitive analysis is based on communication patterns and does not represent a "
        "formal cognitive assessment or IQ evaluation."
    ),
    "personalityArchetype": (
        "This personality analysis is based on communication patterns and interests. It is "
        "intended for self-reflection and does not replace professional assessment tools."
    ),
}


def _join_labels(items: list[RankedItem], limit: int) -> str:
    labels = [item.label for item in items[:limit]]
    return ", ".join(labels) if labels else "None identified"


def _with_counts(items: list[RankedItem], limit: int) -> str:
    rows = [f"{item.label}: {item.count}" for item in items[:limit]]
    return ", ".join(rows) if rows else "None identified"


def _distribution(stats: ScoreStats) -> str:
    return ", ".join(f"{score}/10 x{count}" for score, count in sorted(stats.distribution.items()))


def _profile_lines(profiles: list[InsightProfile], limit: int, *, with_patterns: bool = True) -> str:
    lines: list[str] = []
    for profile in profiles[:limit]:
        line = (
            f'"{profile.title}": tone {profile.emotional_tone}, '
            f"complexity {profile.complexity_level}/10, "
            f"engagement {profile.engagement_level}/10"
        )
        if with_patterns and profile.communication_patterns:
            line += ", patterns: " + ", ".join(p.value for p in profile.communication_patterns)
        lines.append(line)
    return "\n".join(lines) if lines else "None available"


# --- Behavioral dossier -----------------------------------------------------

BEHAVIORAL_DOSSIER_SYSTEM_PROMPT = """You are a senior behavioral analyst compiling a digital behavioral assessment.
Write in a professional, objective analytical tone and base every statement on the data.

Return strict JSON with exactly these keys:
{
  "reportTitle": "Digital Behavioral Analysis Dossier - Classification: CONFIDENTIAL",
  "subjectProfileSummary": "<3-4 sentence overview of the subject's digital persona>",
  "psychologicalProfile": "<psychological assessment from patterns, interests and behavior>",
  "dominantInterests": ["<5-7 primary areas of interest>"],
  "communicationModalities": ["<3-4 distinct communication styles observed>"],
  "emotionalToneAndEngagement": "<analysis of emotional patterns and engagement>",
  "informationSharingTendencies": "<analysis of personal-information sharing behavior and risk>",
  "piiExamples": [{"category": "<category>", "riskLevel": "<low|medium|high>", "context": "<context, no raw values>"}],
  "overallInteractionStyle": "<how the subject interacts with AI systems>",
  "behavioralPatterns": ["<3-5 key behavioral patterns>"],
  "potentialVulnerabilities": ["<2-3 social engineering or security vulnerabilities>"],
  "operationalAssessment": "<assessment of operational security awareness and digital footprint>",
  "disclaimer": "<one sentence noting this is AI-generated and for self-reflection only>"
}

Output JSON only.
"""


def build_behavioral_dossier_user_prompt(signals: AggregatedSignals) -> str:
    metrics = signals.archive_metrics
    samples: list[str] = []
    for bucket, risk in ((signals.high_risk_samples, "high"), (signals.medium_risk_samples, "medium")):
        for category, contexts in bucket.items():
            for context in contexts:
                samples.append(f'- Category: {category.value} (Risk: {risk})\n  Context: "{context}"')
    pii_block = "\n".join(samples) if samples else "No specific personal information was extracted."
    return (
        "SUBJECT DATA SUMMARY:\n"
        f"- Total Conversations Analyzed: {signals.conversation_count}\n"
        f"- Total User Messages: {metrics.total_user_messages}\n"
        f"- Conversation Timespan: {metrics.timespan_days:.1f} days\n"
        f"- Vocabulary Sophistication: {metrics.vocabulary_size_estimate} unique words\n"
        f"- Topic Diversity: {metrics.topic_diversity} distinct conversation themes\n\n"
        "PRIMARY INTERESTS & TOPICS:\n"
        f"{_join_labels(signals.ranked_topics, 15)}\n\n"
        "COMMUNICATION BEHAVIORAL PATTERNS:\n"
        f"{_join_labels(signals.ranked_patterns, 8)}\n\n"
        "PERSONAL INFORMATION CATEGORY HISTOGRAM:\n"
        f"{_with_counts(signals.pii_category_counts, 10)}\n\n"
        "PERSONAL INFORMATION CONTEXT SAMPLES:\n"
        f"{pii_block}\n"
    )


SUBJECT_CODENAME_SYSTEM_PROMPT = """You are a senior intelligence officer creating an operational codename for a digital subject.
Base the codename on demonstrated expertise and behavioral patterns.

Return strict JSON with exactly these keys:
{
  "name": "<evocative codename, e.g. 'The Architect', 'Nexus', 'Catalyst'>",
  "justification": "<2-3 sentences on why the codename fits>",
  "operationalSignificance": "<what the codename suggests about the subject's capabilities>"
}

Output JSON only.
"""


def build_subject_codename_user_prompt(signals: AggregatedSignals) -> str:
    return (
        "SUBJECT INTELLIGENCE:\n"
        f"- Primary Areas of Expertise: {_join_labels(signals.ranked_topics, 8)}\n"
        f"- Operational Patterns: {_join_labels(signals.ranked_patterns, 5)}\n"
    )


# --- Linguistic fingerprint -------------------------------------------------

LINGUISTIC_FINGERPRINT_SYSTEM_PROMPT = """You are a computational linguist producing a linguistic fingerprint.
Analyze the subject's language patterns with academic rigor.

Return strict JSON with exactly these keys:
{
  "reportTitle": "Comprehensive Linguistic Fingerprint Analysis",
  "overallStyleDescription": "<3-4 sentence description of linguistic style>",
  "vocabularyProfile": {
    "qualitativeAssessment": "<assessment of vocabulary sophistication and range>",
    "notableWords": ["<10-15 distinctive vocabulary choices>"],
    "sophisticationLevel": "<Basic|Intermediate|Advanced|Expert>",
    "domainSpecificTerms": ["<5-8 domain expertise terms>"],
    "linguisticMarkers": ["<3-5 distinctive linguistic markers>"]
  },
  "sentenceStructure": "<analysis of sentence construction>",
  "expressiveness": "<analysis of expressiveness and rhetorical effect>",
  "potentialInterestsIndicatedByLanguage": ["<5-8 interests suggested by language>"],
  "communicationEffectiveness": "<how effectively ideas are communicated>",
  "rhetoricalDevices": ["<3-5 rhetorical devices or strategies>"],
  "cognitiveComplexity": "<cognitive complexity shown through language>",
  "disclaimer": "<one sentence noting this is not a formal evaluation>"
}

Output JSON only.
"""


def build_linguistic_fingerprint_user_prompt(signals: AggregatedSignals) -> str:
    metrics = signals.archive_metrics
    vocabulary = ", ".join(signals.vocabulary[:50]) or "None identified"
    return (
        "LINGUISTIC DATA:\n"
        f"- Vocabulary Sample: {vocabulary}\n"
        f"- Average Sentence Length: {metrics.average_words_per_user_sentence:.1f} words\n"
        f"- Total Vocabulary Size: {metrics.vocabulary_size_estimate} unique words\n"
        f"- Average Conversation Complexity: {signals.complexity.mean:.1f}/10\n"
        f"- Complexity Distribution: {_distribution(signals.complexity)}\n"
        f"- Total Conversations Analyzed: {signals.conversation_count}\n\n"
        "CONVERSATION COMPLEXITY SAMPLE:\n"
        f"{_profile_lines(signals.conversation_profiles, 10, with_patterns=False)}\n"
    )


# --- Top conversations spotlight --------------------------------------------

TOP_CONVERSATIONS_SYSTEM_PROMPT = """You are analyzing the most intellectually unique conversations from a user's chat history.
For each conversation, in the order given, explain its significance and what it reveals about the user.

Return strict JSON with exactly these keys:
{
  "justifications": ["<2-3 sentences for conversation 1>", "<... one entry per conversation, same order>"]
}

Output JSON only.
"""


def build_top_conversations_user_prompt(signals: AggregatedSignals) -> str:
    blocks: list[str] = []
    for index, insight in enumerate(signals.spotlight, start=1):
        blocks.append(
            f"Conversation {index}:\n"
            f'Title: "{insight.title or "Untitled"}"\n'
            f"Topics: {', '.join(insight.primary_topics)}\n"
            f"Uniqueness Score: {insight.uniqueness_score}/10\n"
            f"Complexity Level: {insight.complexity_level}/10\n"
            f"Emotional Tone: {insight.emotional_tone}\n"
            f"Key Observation: {insight.intriguing_observation}\n"
            f"Topic Evolution: {' -> '.join(insight.topic_evolution)}"
        )
    return "CONVERSATION DETAILS:\n" + "\n\n".join(blocks) + "\n"


# --- Reality TV persona -----------------------------------------------------

PERSONA_ARCHETYPE_SYSTEM_PROMPT = """You are a reality TV casting director and personality analyst.
Create an entertaining reality TV persona from the subject's communication patterns and interests.

Return strict JSON with exactly these keys:
{
  "reportTitle": "Your Reality TV Persona",
  "personaArchetype": "<The Strategist|The Heart|The Rebel|The Mentor|The Wildcard|...>",
  "description": "<3-4 sentences on how the persona plays on a reality show>",
  "popCultureComparisons": ["<2-3 comparable personalities or characters>"],
  "characterTraits": ["<4-5 traits that make compelling television>"],
  "likelyStoryArcs": ["<2-3 storylines or character arcs>"],
  "viewerAppeal": "<which audience connects with this persona and why>",
  "conflictStyle": "<how the persona handles conflict>",
  "disclaimer": "<one sentence noting this is for entertainment only>"
}

Output JSON only.
"""


def build_persona_archetype_user_prompt(signals: AggregatedSignals) -> str:
    tones = ", ".join(signals.tone_labels) or "neutral"
    return (
        "CASTING ANALYSIS:\n"
        f"- Primary Interests: {_join_labels(signals.ranked_topics, 10)}\n"
        f"- Communication Patterns: {_join_labels(signals.ranked_patterns, 6)}\n"
        f"- Average Engagement Level: {signals.engagement.mean:.1f}/10\n"
        f"- Emotional Range: {tones}\n\n"
        "PERSONALITY INDICATORS:\n"
        f"{_profile_lines(signals.conversation_profiles, 5, with_patterns=False)}\n"
    )


# --- Unfiltered mirror ------------------------------------------------------

UNFILTERED_MIRROR_SYSTEM_PROMPT = """You are a perceptive psychologist creating a "mirror moment": one deeply insightful observation about the subject's inner world.
Make it thought-provoking, slightly surprising and respectful, never judgmental.

Return strict JSON with exactly these keys:
{
  "reportTitle": "The Unfiltered Mirror",
  "observation": "<one profound sentence capturing a deep truth about the subject>",
  "deeperInsight": "<a follow-up sentence adding psychological depth>",
  "psychologicalImplications": "<what this suggests about motivations, fears or aspirations>",
  "disclaimer": "<one sentence noting this is an AI interpretation for self-reflection>"
}

Output JSON only.
"""


def build_unfiltered_mirror_user_prompt(signals: AggregatedSignals) -> str:
    return f'ORIGINAL INSIGHT:\n"{signals.longest_observation}"\n'


# --- PII safety advisory ----------------------------------------------------

PII_SAFETY_ADVISORY_SYSTEM_PROMPT = """You are a cybersecurity analyst assessing a user's personal-information sharing habits.
Decide the overall risk yourself from the evidence and give specific, actionable guidance.

Return strict JSON with exactly these keys:
{
  "reportTitle": "Your PII Safety Compass",
  "awarenessScore": "<exactly one of: Low Risk, Medium Risk, High Risk>",
  "summary": "<3-4 sentence assessment of sharing behavior and security posture>",
  "detailedBreakdown": [
    {
      "category": "<category>",
      "advice": "<specific advice for this category>",
      "riskLevel": "<low|medium|high>",
      "examples": ["<anonymized examples of what to watch for>"]
    }
  ],
  "overallSecurityPosture": "<general security awareness and digital hygiene>",
  "recommendedActions": ["<3-5 specific actions>"],
  "disclaimer": "<one sentence noting this is general guidance>"
}

Output JSON only.
"""


def build_pii_safety_advisory_user_prompt(signals: AggregatedSignals) -> str:
    high_examples = [
        f'- {category.value}: Context - "{context}"'
        for category, contexts in signals.high_risk_samples.items()
        for context in contexts
    ]
    medium_examples = [
        f'- {category.value}: Context - "{context}"'
        for category, contexts in signals.medium_risk_samples.items()
        for context in contexts
    ]
    risk_counts = signals.pii_risk_counts
    return (
        "PII SHARING ANALYSIS:\n"
        f"- Category Frequencies: {_with_counts(signals.pii_category_counts, 8)}\n"
        f"- High-Risk Disclosures: {risk_counts.get('high', 0)} instances\n"
        f"- Medium-Risk Disclosures: {risk_counts.get('medium', 0)} instances\n"
        f"- Total PII Instances: {signals.total_pii_count}\n\n"
        "HIGH-RISK EXAMPLES:\n"
        f"{chr(10).join(high_examples) or 'None identified'}\n\n"
        "MEDIUM-RISK EXAMPLES:\n"
        f"{chr(10).join(medium_examples) or 'None identified'}\n"
    )


# --- Digital doppelganger ---------------------------------------------------

SYNTHETIC_SOCIAL_PROFILE_SYSTEM_PROMPT = """You are a social media strategist creating an authentic-feeling fictional social media persona.
Base personality traits on observed communication patterns and interests.

Return strict JSON with exactly these keys:
{
  "reportTitle": "Your Digital Doppelganger",
  "handle": "<creative handle starting with @>",
  "bio": "<2-3 sentence bio>",
  "topHashtags": ["<5-6 hashtags>"],
  "personalityTraits": ["<3-4 traits visible on social media>"],
  "likelyFollowers": ["<2-3 types of followers>"],
  "contentStyle": "<typical content style and posting approach>",
  "onlineBehavior": "<how the persona interacts online>",
  "disclaimer": "<one sentence noting this persona is fictional>"
}

Output JSON only.
"""


def build_synthetic_social_profile_user_prompt(signals: AggregatedSignals) -> str:
    vocabulary = ", ".join(signals.vocabulary[:25]) or "None identified"
    return (
        "PERSONA DEVELOPMENT DATA:\n"
        f"- Core Interests: {_join_labels(signals.ranked_topics, 8)}\n"
        f"- Distinctive Vocabulary: {vocabulary}\n"
        f"- Communication Complexity: {signals.complexity.mean:.1f}/10\n"
        f"- Emotional Tone Distribution: {_with_counts(signals.tone_distribution, 5)}\n\n"
        "PERSONALITY INDICATORS:\n"
        f"{_profile_lines(signals.conversation_profiles, 4)}\n"
    )


# --- Cognitive fingerprint --------------------------------------------------

COGNITIVE_STYLE_SYSTEM_PROMPT = """You are a cognitive scientist analyzing thinking patterns and cognitive style.

Return strict JSON with exactly these keys:
{
  "reportTitle": "Cognitive Fingerprint Analysis",
  "thinkingStyle": "<primary thinking style: analytical, creative, systematic, intuitive, ...>",
  "problemSolvingApproach": "<how the subject works through problems>",
  "learningPreferences": "<preferred learning and information processing styles>",
  "decisionMakingPattern": "<how the subject makes decisions>",
  "creativityIndicators": ["<3-5 indicators of creative thinking>"],
  "analyticalDepth": "<depth of analytical and systematic reasoning>",
  "cognitiveFlexibility": "<ability to adapt thinking across domains>",
  "disclaimer": "<one sentence noting this is not a formal cognitive assessment>"
}

Output JSON only.
"""


def build_cognitive_style_user_prompt(signals: AggregatedSignals) -> str:
    return (
        "COGNITIVE DATA ANALYSIS:\n"
        f"- Total Conversations: {signals.conversation_count}\n"
        f"- Problem-Solving Conversations: {signals.problem_solving_count}\n"
        f"- High-Complexity Conversations: {signals.complexity.high_count}\n"
        f"- Average Complexity Level: {signals.complexity.mean:.1f}/10\n"
        f"- Complexity Distribution: {_distribution(signals.complexity)}\n"
        f"- Vocabulary Sophistication: {signals.archive_metrics.vocabulary_size_estimate} unique words\n"
        f"- Dominant Patterns: {_with_counts(signals.ranked_patterns, 8)}\n\n"
        "THINKING PATTERN INDICATORS:\n"
        f"{_profile_lines(signals.conversation_profiles, 8)}\n"
    )


# --- Personality archetype --------------------------------------------------

PERSONALITY_ARCHETYPE_SYSTEM_PROMPT = """You are a personality psychologist synthesizing communication patterns, interests and behavior into a personality profile.

Return strict JSON with exactly these keys:
{
  "reportTitle": "Personality Archetype Analysis",
  "primaryArchetype": "<The Analyst|The Creator|The Explorer|The Builder|...>",
  "secondaryTraits": ["<4-6 complementary traits>"],
  "motivationalDrivers": ["<3-5 key motivations>"],
  "communicationStyle": "<communication preferences and style>",
  "relationshipPatterns": "<how the subject likely approaches relationships>",
  "stressResponses": ["<2-3 likely responses to stress>"],
  "growthAreas": ["<3-4 areas for personal development>"],
  "disclaimer": "<one sentence noting this is for self-reflection only>"
}

Output JSON only.
"""


def build_personality_archetype_user_prompt(signals: AggregatedSignals) -> str:
    return (
        "PERSONALITY INDICATORS:\n"
        f"- Primary Topics of Interest: {_join_labels(signals.ranked_topics, 12)}\n"
        f"- Communication Patterns: {_join_labels(signals.ranked_patterns, 8)}\n"
        f"- Emotional Tone Distribution: {_with_counts(signals.tone_distribution, 10)}\n"
        f"- Average Engagement Level: {signals.engagement.mean:.1f}/10\n"
        f"- Engagement Distribution: {_distribution(signals.engagement)}\n\n"
        "BEHAVIORAL PATTERN ANALYSIS:\n"
        f"{_profile_lines(signals.conversation_profiles, 6)}\n"
    )
