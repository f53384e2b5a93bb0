"""Offline JSON client returning deterministic canned payloads."""

from __future__ import annotations

import hashlib
import json
import re
import threading
from collections.abc import Callable

from convo_insights import prompts
from convo_insights.prompts.report_prompts import DISCLAIMERS
from convo_insights.schemas import ModelTier

_TITLE_PATTERN = re.compile(r'^Conversation Title: "(?P<title>.*)"$', re.MULTILINE)
_SPOTLIGHT_PATTERN = re.compile(r"^Conversation \d+:$", re.MULTILINE)
_WORD_PATTERN = re.compile(r"[A-Za-z][A-Za-z'-]{3,}")

PayloadBuilder = Callable[[str], dict]


def _stable_score(seed: str, salt: str) -> int:
    digest = hashlib.sha1(f"{salt}:{seed}".encode("utf-8")).hexdigest()
    return int(digest[:8], 16) % 10 + 1


def _mock_insight(user_prompt: str) -> dict:
    match = _TITLE_PATTERN.search(user_prompt)
    title = match.group("title") if match else "Untitled"
    words = [word.lower() for word in _WORD_PATTERN.findall(title)]
    topics = words[:3] or ["general inquiry"]
    return {
        "primaryTopics": topics,
        "communicationPatterns": ["SeekingInformation", "ProblemSolving"],
        "extractedPii": [],
        "standoutVocabulary": sorted(set(words))[:5],
        "uniquenessScore": _stable_score(user_prompt, "uniqueness"),
        "complexityLevel": _stable_score(user_prompt, "complexity"),
        "userEngagementLevel": _stable_score(user_prompt, "engagement"),
        "emotionalTone": "curious",
        "intriguingObservation": f"The user approaches '{title}' with methodical curiosity.",
        "topicEvolution": [f"Started with {topics[0]}", "Moved toward practical next steps"],
    }


def _mock_justifications(user_prompt: str) -> dict:
    count = len(_SPOTLIGHT_PATTERN.findall(user_prompt))
    return {
        "justifications": [
            f"Mock justification for spotlight conversation {index}."
            for index in range(1, count + 1)
        ]
    }


def _static(payload: dict) -> PayloadBuilder:
    return lambda _user_prompt: payload


_CANNED: dict[str, PayloadBuilder] = {
    prompts.CONVERSATION_INSIGHT_SYSTEM_PROMPT: _mock_insight,
    prompts.TOP_CONVERSATIONS_SYSTEM_PROMPT: _mock_justifications,
    prompts.SUBJECT_CODENAME_SYSTEM_PROMPT: _static(
        {
            "name": "Mock Cipher",
            "justification": "Mock codename justification.",
            "operationalSignificance": "Mock operational significance.",
        }
    ),
    prompts.BEHAVIORAL_DOSSIER_SYSTEM_PROMPT: _static(
        {
            "reportTitle": "Mock Behavioral Dossier",
            "subjectProfileSummary": "Mock summary based on patterns.",
            "psychologicalProfile": "Mock psychological profile.",
            "dominantInterests": ["mock interest 1", "mock interest 2"],
            "communicationModalities": ["mock modality 1", "mock modality 2"],
            "emotionalToneAndEngagement": "Mock emotional tone.",
            "informationSharingTendencies": "Mock sharing tendencies.",
            "piiExamples": [],
            "overallInteractionStyle": "Mock interaction style.",
            "behavioralPatterns": ["mock pattern"],
            "potentialVulnerabilities": ["mock vulnerability"],
            "operationalAssessment": "Mock operational assessment.",
            "disclaimer": DISCLAIMERS["fbiReport"],
        }
    ),
    prompts.LINGUISTIC_FINGERPRINT_SYSTEM_PROMPT: _static(
        {
            "reportTitle": "Mock Linguistic Fingerprint",
            "overallStyleDescription": "Mock eloquent and insightful.",
            "vocabularyProfile": {
                "qualitativeAssessment": "Mock vocabulary assessment.",
                "notableWords": ["mock", "word", "list"],
                "sophisticationLevel": "Advanced",
                "domainSpecificTerms": ["mock term"],
                "linguisticMarkers": ["mock marker"],
            },
            "sentenceStructure": "Mock sentence structure.",
            "expressiveness": "Mock expressiveness.",
            "potentialInterestsIndicatedByLanguage": ["mock interest"],
            "communicationEffectiveness": "Mock effectiveness.",
            "rhetoricalDevices": ["mock device"],
            "cognitiveComplexity": "Mock complexity.",
            "disclaimer": DISCLAIMERS["linguisticFingerprint"],
        }
    ),
    prompts.PERSONA_ARCHETYPE_SYSTEM_PROMPT: _static(
        {
            "reportTitle": "Mock Reality TV Persona",
            "personaArchetype": "The Strategist",
            "description": "Mock persona description.",
            "popCultureComparisons": ["mock comparison"],
            "characterTraits": ["mock trait"],
            "likelyStoryArcs": ["mock arc"],
            "viewerAppeal": "Mock appeal.",
            "conflictStyle": "Mock conflict style.",
            "disclaimer": DISCLAIMERS["realityTVPersona"],
        }
    ),
    prompts.UNFILTERED_MIRROR_SYSTEM_PROMPT: _static(
        {
            "reportTitle": "The Unfiltered Mirror",
            "observation": "Mock observation.",
            "deeperInsight": "Mock deeper insight.",
            "psychologicalImplications": "Mock implications.",
            "disclaimer": DISCLAIMERS["unfilteredMirror"],
        }
    ),
    prompts.PII_SAFETY_ADVISORY_SYSTEM_PROMPT: _static(
        {
            "reportTitle": "Mock PII Safety Compass",
            "awarenessScore": "Low Risk",
            "summary": "Mock summary.",
            "detailedBreakdown": [],
            "overallSecurityPosture": "Mock posture.",
            "recommendedActions": ["mock action"],
            "disclaimer": DISCLAIMERS["piiSafetyCompass"],
        }
    ),
    prompts.SYNTHETIC_SOCIAL_PROFILE_SYSTEM_PROMPT: _static(
        {
            "reportTitle": "Mock Digital Doppelganger",
            "handle": "@mock_handle",
            "bio": "Mock bio.",
            "topHashtags": ["#mock"],
            "personalityTraits": ["mock trait"],
            "likelyFollowers": ["mock follower"],
            "contentStyle": "Mock content style.",
            "onlineBehavior": "Mock online behavior.",
            "disclaimer": DISCLAIMERS["digitalDoppelganger"],
        }
    ),
    prompts.COGNITIVE_STYLE_SYSTEM_PROMPT: _static(
        {
            "reportTitle": "Mock Cognitive Fingerprint",
            "thinkingStyle": "Mock thinking style.",
            "problemSolvingApproach": "Mock approach.",
            "learningPreferences": "Mock preferences.",
            "decisionMakingPattern": "Mock decision pattern.",
            "creativityIndicators": ["mock indicator"],
            "analyticalDepth": "Mock depth.",
            "cognitiveFlexibility": "Mock flexibility.",
            "disclaimer": DISCLAIMERS["cognitiveFingerprint"],
        }
    ),
    prompts.PERSONALITY_ARCHETYPE_SYSTEM_PROMPT: _static(
        {
            "reportTitle": "Mock Personality Archetype",
            "primaryArchetype": "The Analyst",
            "secondaryTraits": ["mock trait"],
            "motivationalDrivers": ["mock driver"],
            "communicationStyle": "Mock communication style.",
            "relationshipPatterns": "Mock relationship patterns.",
            "stressResponses": ["mock response"],
            "growthAreas": ["mock growth area"],
            "disclaimer": DISCLAIMERS["personalityArchetype"],
        }
    ),
}


class MockJsonClient:
    """LLM stand-in that answers every known prompt with deterministic JSON."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests_by_tier = {tier: 0 for tier in ModelTier}

    def complete_json_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        tier: ModelTier,
        max_output_tokens: int | None = None,
    ) -> str:
        builder = _CANNED.get(system_prompt)
        if builder is None:
            raise ValueError("Mock client has no canned response for this prompt.")
        with self._lock:
            self._requests_by_tier[tier] += 1
        return json.dumps(builder(user_prompt))

    def metrics_snapshot(self) -> dict:
        with self._lock:
            return {
                "request_count": sum(self._requests_by_tier.values()),
                "requests_by_tier": {
                    tier.value: count for tier, count in self._requests_by_tier.items()
                },
                "models": {tier.value: "mock" for tier in ModelTier},
            }
