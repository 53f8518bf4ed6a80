"""
Core data models for the MindPath assessment AI client.

Two groups live here:
  - Generation plumbing (Provider, GenerationRequest, ModelSelection) shared by
    the resolver, the provider adapters and the retry orchestrator
  - Assessment domain models (questions, answers, analysis, insights) that the
    call sites build from decoded model output

Design principles:
  - Requests are frozen; nothing downstream may mutate a request between attempts
  - Domain models are lenient: missing fields get defaults instead of failing
  - Field aliases match the camelCase JSON the schemas ask the model for
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ═══════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════


class Provider(str, Enum):
    """Supported generation back-ends, in credential priority order."""

    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GROQ = "groq"


class SessionType(str, Enum):
    """Assessment domains; each gets its own counselor persona."""

    SCHOOL = "school"
    MEDICAL = "medical"
    PSYCHOLOGICAL = "psychological"
    CAREER = "career"
    RELATIONSHIP = "relationship"

    @classmethod
    def parse(cls, value: str | SessionType | None) -> SessionType:
        """Unknown or empty values fall back to SCHOOL."""
        if isinstance(value, SessionType):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.SCHOOL


class RiskLevel(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    CRITICAL = "Critical"


# ═══════════════════════════════════════════════════════════
# Generation plumbing
# ═══════════════════════════════════════════════════════════


class GenerationRequest(BaseModel):
    """One caller request. Frozen: the schema is never rewritten between attempts."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    system_instruction: str = ""
    output_schema: dict[str, Any] = Field(default_factory=dict)
    task: str = ""

    @property
    def expects_sequence(self) -> bool:
        return str(self.output_schema.get("type", "")).upper() == "ARRAY"


class ModelSelection(BaseModel):
    """Provider/model pair chosen for a single attempt."""

    model_config = ConfigDict(frozen=True)

    provider: Provider
    model: str
    tier: int = 0

    def label(self) -> str:
        return f"{self.provider.value}/{self.model}"


# ═══════════════════════════════════════════════════════════
# Assessment domain
# ═══════════════════════════════════════════════════════════


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Question(_CamelModel):
    id: int
    text: str
    category: str = "general"
    is_dynamic: bool = Field(default=False, alias="isDynamic")


class Answer(_CamelModel):
    question_id: int = Field(default=0, alias="questionId")
    question_text: str = Field(alias="questionText")
    user_response: str = Field(default="", alias="userResponse")


class MCQAnswer(_CamelModel):
    question_id: int = Field(default=0, alias="questionId")
    question_text: str = Field(alias="questionText")
    selected_option: str = Field(default="", alias="selectedOption")


class RiskAssessment(_CamelModel):
    level: RiskLevel = RiskLevel.LOW
    flags: list[str] = Field(default_factory=list)
    is_concern: bool = Field(default=False, alias="isConcern")
    detailed_analysis: str = Field(default="", alias="detailedAnalysis")

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: Any) -> Any:
        if isinstance(v, RiskLevel):
            return v
        text = str(v or "").strip().lower()
        for level in RiskLevel:
            if level.value.lower() == text:
                return level
        # Models occasionally answer "Medium" or a sentence; treat as middle of the scale
        return RiskLevel.MODERATE


TRAIT_KEYS = ("empathy", "logic", "integrity", "ambition", "resilience", "social_calibration")

# Radar chart axis labels per session type, in TRAIT_KEYS order
TRAIT_LABELS: dict[SessionType, tuple[str, ...]] = {
    SessionType.MEDICAL: ("Compliance", "Logic", "Body Trust", "Resilience", "Energy", "Anxiety Control"),
    SessionType.PSYCHOLOGICAL: ("Self-Awareness", "Logic", "Emotional Reg", "Resilience", "Coping", "Social Trust"),
    SessionType.CAREER: ("Empathy", "Logic", "Integrity", "Resilience", "Ambition", "Leadership"),
    SessionType.RELATIONSHIP: ("Empathy", "Logic", "Conflict Res", "Resilience", "Vulnerability", "Boundaries"),
    SessionType.SCHOOL: ("Curiosity", "Logic", "Discipline", "Resilience", "Ambition", "Peer Relations"),
}


class Traits(BaseModel):
    """Trait scores on a 0-100 scale."""

    empathy: float = 0.0
    logic: float = 0.0
    integrity: float = 0.0
    ambition: float = 0.0
    resilience: float = 0.0
    social_calibration: float = 0.0

    @field_validator(*TRAIT_KEYS, mode="before")
    @classmethod
    def _clamp(cls, v: Any) -> float:
        try:
            score = float(v)
        except (TypeError, ValueError):
            return 0.0
        return max(0.0, min(100.0, score))


class TraitScore(_CamelModel):
    trait: str
    score: float
    full_mark: float = Field(default=100.0, alias="fullMark")


class CareerPathSuggestion(_CamelModel):
    title: str = ""
    description: str = ""
    strategic_fit: str = Field(default="", alias="strategicFit")


class AnalysisResult(_CamelModel):
    """Final dashboard payload: archetype, risk, traits, career paths, advice."""

    archetype: str = "Undetermined"
    archetype_description: str = Field(default="", alias="archetypeDescription")
    risk_assessment: RiskAssessment = Field(default_factory=RiskAssessment, alias="riskAssessment")
    traits: Traits = Field(default_factory=Traits)
    career_path_suggestions: list[CareerPathSuggestion] = Field(
        default_factory=list, alias="careerPathSuggestions"
    )
    counseling_advice: str = Field(default="", alias="counselingAdvice")

    # Session-specific extras (medical, psychological, career, relationship)
    professional_diagnosis: Optional[str] = Field(default=None, alias="professionalDiagnosis")
    suggested_action_plan: list[str] = Field(default_factory=list, alias="suggestedActionPlan")
    primary_precautions: list[str] = Field(default_factory=list, alias="primaryPrecautions")
    suggested_medicines: list[str] = Field(default_factory=list, alias="suggestedMedicines")
    root_causes: list[str] = Field(default_factory=list, alias="rootCauses")
    interpersonal_strategy: Optional[str] = Field(default=None, alias="interpersonalStrategy")

    session_type: SessionType = Field(default=SessionType.SCHOOL, alias="sessionType")

    @field_validator(
        "suggested_action_plan", "primary_precautions", "suggested_medicines", "root_causes", mode="before"
    )
    @classmethod
    def _string_list(cls, v: Any) -> list[str]:
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(item) for item in v]

    @field_validator("career_path_suggestions", mode="before")
    @classmethod
    def _career_paths(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [{"title": item} if isinstance(item, str) else item for item in v if isinstance(item, (str, dict))]

    @field_validator("risk_assessment", "traits", mode="before")
    @classmethod
    def _object_or_default(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, BaseModel)) else {}

    def radar_scores(self) -> list[TraitScore]:
        """Trait scores labelled for this session type's radar chart."""
        labels = TRAIT_LABELS[self.session_type]
        return [
            TraitScore(trait=label, score=getattr(self.traits, key))
            for key, label in zip(TRAIT_KEYS, labels)
        ]


class MetaInsight(BaseModel):
    pattern: str = "Undetermined"
    recommendation: str = "Standard protocol"


class ClinicalInsight(_CamelModel):
    """A learned pattern stored in the knowledge base."""

    session_type: SessionType = Field(alias="sessionType")
    pattern: str
    recommendation: str
    timestamp: float = Field(default_factory=time.time)
