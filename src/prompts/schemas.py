"""
Output schemas for each call site.

Written in the uppercase-type notation Gemini accepts natively as
responseSchema; chat-style providers receive the same dict serialized into
their system message. Treat these as read-only.
"""

from __future__ import annotations

from typing import Any

_STRING = {"type": "STRING"}
_STRING_LIST = {"type": "ARRAY", "items": _STRING}

_QUESTION: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {"text": _STRING, "category": _STRING},
    "required": ["text", "category"],
}

QUESTIONS_SCHEMA: dict[str, Any] = {"type": "ARRAY", "items": _QUESTION}

RAPPORT_SCHEMA: dict[str, Any] = _QUESTION

META_INSIGHT_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {"pattern": _STRING, "recommendation": _STRING},
    "required": ["pattern", "recommendation"],
}

ANALYSIS_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "archetype": _STRING,
        "archetypeDescription": _STRING,
        "riskAssessment": {
            "type": "OBJECT",
            "properties": {
                "level": _STRING,
                "flags": _STRING_LIST,
                "isConcern": {"type": "BOOLEAN"},
                "detailedAnalysis": _STRING,
            },
            "required": ["level", "flags", "isConcern", "detailedAnalysis"],
        },
        "traits": {
            "type": "OBJECT",
            "properties": {
                name: {"type": "NUMBER"}
                for name in ("empathy", "logic", "integrity", "ambition", "resilience", "social_calibration")
            },
            "required": ["empathy", "logic", "integrity", "ambition", "resilience", "social_calibration"],
        },
        "careerPathSuggestions": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {"title": _STRING, "description": _STRING, "strategicFit": _STRING},
                "required": ["title", "description", "strategicFit"],
            },
        },
        "counselingAdvice": _STRING,
        "professionalDiagnosis": _STRING,
        "suggestedActionPlan": _STRING_LIST,
        "primaryPrecautions": _STRING_LIST,
        "suggestedMedicines": _STRING_LIST,
        "rootCauses": _STRING_LIST,
        "interpersonalStrategy": _STRING,
    },
    "required": [
        "archetype",
        "archetypeDescription",
        "riskAssessment",
        "traits",
        "careerPathSuggestions",
        "counselingAdvice",
    ],
}

SCHEMAS: dict[str, dict[str, Any]] = {
    "questions": QUESTIONS_SCHEMA,
    "rapport": RAPPORT_SCHEMA,
    "meta_insight": META_INSIGHT_SCHEMA,
    "analysis": ANALYSIS_SCHEMA,
}
