"""
Assessment call sites: question generation, final analysis, meta-insights.

Every method goes through the same AIClient and differs only in prompt and
schema. Question generators degrade to built-in questions when the AI
service gives up (AIServiceError); a missing credential (ConfigurationError)
always propagates so the UI can tell the user to configure a key.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog

from src.knowledge_base import InsightStore, build_learning_context
from src.llm_client import AIClient
from src.llm_errors import AIServiceError
from src.models import (
    AnalysisResult,
    Answer,
    ClinicalInsight,
    MCQAnswer,
    MetaInsight,
    Question,
    SessionType,
)
from src.prompts import templates as t
from src.prompts.schemas import ANALYSIS_SCHEMA, META_INSIGHT_SCHEMA, QUESTIONS_SCHEMA, RAPPORT_SCHEMA

logger = structlog.get_logger()

PHASE1_ID_START = 50
RAPPORT_QUESTION_ID = 75
DEEP_DIVE_ID_START = 100

FALLBACK_QUESTIONS: tuple[tuple[str, str], ...] = (
    ("What is the main challenge you are facing right now?", "general"),
    ("How does this situation make you feel?", "emotional"),
    ("What specific outcome are you hoping for?", "goal"),
    ("Have you tried any solutions so far? If so, what?", "action"),
    ("What support do you feel you need most?", "needs"),
)


def format_transcript(answers: list[Answer]) -> str:
    return "\n\n".join(f"Q: {a.question_text}\nA: {a.user_response}" for a in answers)


def _text_or(value: Any, default: str) -> str:
    return value.strip() if isinstance(value, str) and value.strip() else default


class AssessmentService:
    """Generates questions and analyses for one assessment flow."""

    def __init__(self, client: AIClient, store: InsightStore) -> None:
        self.client = client
        self.store = store

    async def generate_phase1_questions(
        self,
        session_type: SessionType | str,
        mcq_answers: Optional[list[MCQAnswer]] = None,
        counselor_notes: Optional[str] = None,
    ) -> list[Question]:
        """Five foundation questions seeded by counselor notes or MCQ answers."""
        session = SessionType.parse(session_type)
        learned_context = await build_learning_context(self.store, session)
        if counselor_notes:
            context = f"EXPERT NOTES:\n{counselor_notes}"
        else:
            mcq_lines = "\n".join(f"{a.question_text}: {a.selected_option}" for a in mcq_answers or [])
            context = f"MCQ DATA:\n{mcq_lines}"
        prompt = t.PHASE1_USER_TEMPLATE.format(
            learned_context=learned_context,
            session_type=session.value,
            context=context,
        )
        try:
            raw = await self.client.generate(
                prompt, QUESTIONS_SCHEMA, t.role_instruction(session), task="phase1_questions"
            )
        except AIServiceError as e:
            logger.warning("phase1_generation_fallback", session_type=session.value, error=str(e)[:200])
            return [
                Question(id=PHASE1_ID_START + idx, text=text, category=category, is_dynamic=True)
                for idx, (text, category) in enumerate(FALLBACK_QUESTIONS)
            ]
        return [
            Question(
                id=PHASE1_ID_START + idx,
                text=_text_or(q.get("text") if isinstance(q, dict) else None, "Follow up question..."),
                category=_text_or(q.get("category") if isinstance(q, dict) else None, "general"),
                is_dynamic=True,
            )
            for idx, q in enumerate(raw)
        ]

    async def generate_rapport_question(
        self, previous_answers: list[Answer], session_type: SessionType | str
    ) -> Question:
        session = SessionType.parse(session_type)
        prompt = t.RAPPORT_USER_TEMPLATE.format(transcript=format_transcript(previous_answers))
        try:
            raw = await self.client.generate(
                prompt, RAPPORT_SCHEMA, t.role_instruction(session), task="rapport_question"
            )
        except AIServiceError as e:
            logger.warning("rapport_generation_fallback", session_type=session.value, error=str(e)[:200])
            return Question(
                id=RAPPORT_QUESTION_ID,
                text="How does this make you feel overall?",
                category="rapport",
                is_dynamic=True,
            )
        text = raw.get("text") if isinstance(raw, dict) else None
        return Question(
            id=RAPPORT_QUESTION_ID,
            text=_text_or(text, "How are you feeling?"),
            category="rapport",
            is_dynamic=True,
        )

    async def generate_deep_dive_questions(
        self, previous_answers: list[Answer], session_type: SessionType | str
    ) -> list[Question]:
        session = SessionType.parse(session_type)
        prompt = t.DEEP_DIVE_USER_TEMPLATE.format(transcript=format_transcript(previous_answers))
        try:
            raw = await self.client.generate(
                prompt, QUESTIONS_SCHEMA, t.role_instruction(session), task="deep_dive_questions"
            )
        except AIServiceError as e:
            logger.warning("deep_dive_generation_fallback", session_type=session.value, error=str(e)[:200])
            return [
                Question(
                    id=DEEP_DIVE_ID_START + idx,
                    text="Could you tell me more about that?",
                    category="deep_dive",
                    is_dynamic=True,
                )
                for idx in range(len(FALLBACK_QUESTIONS))
            ]
        return [
            Question(
                id=DEEP_DIVE_ID_START + idx,
                text=_text_or(q.get("text") if isinstance(q, dict) else None, "Elaborate further..."),
                category=_text_or(q.get("category") if isinstance(q, dict) else None, "deep_dive"),
                is_dynamic=True,
            )
            for idx, q in enumerate(raw)
        ]

    async def analyze_answers(self, answers: list[Answer], session_type: SessionType | str) -> AnalysisResult:
        """Final dashboard analysis. Errors propagate: there is no meaningful fallback."""
        session = SessionType.parse(session_type)
        prompt = t.ANALYSIS_USER_TEMPLATE.format(transcript=format_transcript(answers))
        raw = await self.client.generate(prompt, ANALYSIS_SCHEMA, t.role_instruction(session), task="analysis")
        data = raw if isinstance(raw, dict) else {}
        result = AnalysisResult.model_validate({**data, "sessionType": session.value})
        logger.info(
            "analysis_complete",
            session_type=session.value,
            archetype=result.archetype,
            risk_level=result.risk_assessment.level.value,
        )
        return result

    async def generate_meta_insight(self, result: AnalysisResult, answers: list[Answer]) -> MetaInsight:
        prompt = t.META_INSIGHT_USER_TEMPLATE.format(
            session_type=result.session_type.value,
            transcript=format_transcript(answers),
        )
        raw = await self.client.generate(prompt, META_INSIGHT_SCHEMA, t.META_INSIGHT_SYSTEM, task="meta_insight")
        data = raw if isinstance(raw, dict) else {}
        defaults = MetaInsight()
        return MetaInsight(
            pattern=_text_or(data.get("pattern"), defaults.pattern),
            recommendation=_text_or(data.get("recommendation"), defaults.recommendation),
        )

    async def learn_from_session(self, result: AnalysisResult, answers: list[Answer]) -> ClinicalInsight:
        """Distil a validated session into the knowledge base."""
        insight = await self.generate_meta_insight(result, answers)
        clinical = ClinicalInsight(
            session_type=result.session_type,
            pattern=insight.pattern,
            recommendation=insight.recommendation,
        )
        await self.store.append(clinical)
        return clinical
