"""
Self-learning knowledge base: insights distilled from completed sessions.

The store is an injected dependency (InsightStore), never module-level
state, so callers and tests choose the backing implementation. The
in-memory store keeps only the newest N insights.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

from src.config import get_settings
from src.models import ClinicalInsight, SessionType

logger = structlog.get_logger()


class KnowledgeStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_sessions_learned: int = Field(alias="totalSessionsLearned")
    experience_level: str = Field(alias="experienceLevel")


def experience_level(total: int) -> str:
    if total < 5:
        return "Novice"
    if total < 15:
        return "Practitioner"
    return "Senior Specialist"


class InsightStore(ABC):
    """Storage contract for learned insights."""

    @abstractmethod
    async def append(self, insight: ClinicalInsight) -> None: ...

    @abstractmethod
    async def all(self) -> list[ClinicalInsight]:
        """All insights, newest first."""

    async def query(self, session_type: SessionType | str) -> list[ClinicalInsight]:
        wanted = SessionType.parse(session_type)
        return [i for i in await self.all() if i.session_type == wanted]

    async def stats(self) -> KnowledgeStats:
        total = len(await self.all())
        return KnowledgeStats(total_sessions_learned=total, experience_level=experience_level(total))


class InMemoryInsightStore(InsightStore):
    def __init__(self, max_insights: Optional[int] = None) -> None:
        self.max_insights = max_insights if max_insights is not None else get_settings().knowledge_base.max_insights
        self._insights: list[ClinicalInsight] = []

    async def append(self, insight: ClinicalInsight) -> None:
        self._insights = [insight, *self._insights][: self.max_insights]
        logger.info(
            "insight_learned",
            session_type=insight.session_type.value,
            total=len(self._insights),
        )

    async def all(self) -> list[ClinicalInsight]:
        return list(self._insights)


async def build_learning_context(store: InsightStore, session_type: SessionType | str) -> str:
    """Prompt preamble listing past learnings for this session type ("" when there are none)."""
    wanted = SessionType.parse(session_type)
    relevant = await store.query(wanted)
    if not relevant:
        return ""
    lines = "\n".join(
        f"{idx}. Observed Pattern: {i.pattern}. Clinical Rule: {i.recommendation}"
        for idx, i in enumerate(relevant, start=1)
    )
    return (
        f"PREVIOUS LEARNINGS FROM SUCCESSFUL SESSIONS (Session Type: {wanted.value}):\n"
        f"{lines}\n\n"
        "INSTRUCTION: Use these past patterns to make your current analysis more precise."
    )
