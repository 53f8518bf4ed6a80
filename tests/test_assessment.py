"""Tests for assessment call sites and the insight knowledge base."""

from unittest.mock import AsyncMock

import pytest

from src.assessment import (
    DEEP_DIVE_ID_START,
    FALLBACK_QUESTIONS,
    PHASE1_ID_START,
    RAPPORT_QUESTION_ID,
    AssessmentService,
)
from src.knowledge_base import InMemoryInsightStore, build_learning_context, experience_level
from src.llm_client import AIClient
from src.llm_errors import AIServiceError, ConfigurationError, FailureReason
from src.models import AnalysisResult, Answer, ClinicalInsight, MCQAnswer, SessionType
from src.prompts.schemas import ANALYSIS_SCHEMA, META_INSIGHT_SCHEMA, QUESTIONS_SCHEMA, RAPPORT_SCHEMA
from src.prompts.templates import META_INSIGHT_SYSTEM, role_instruction
from tests.fakes import FakeProviderAPI, chat_ok


def _service_error() -> AIServiceError:
    return AIServiceError(FailureReason.EXHAUSTED, "overloaded", provider="gemini", model="m", attempts=3)


@pytest.fixture
def client() -> AsyncMock:
    return AsyncMock(spec=AIClient)


@pytest.fixture
def store() -> InMemoryInsightStore:
    return InMemoryInsightStore(max_insights=20)


@pytest.fixture
def answers() -> list[Answer]:
    return [
        Answer(question_id=1, question_text="How do you study?", user_response="Late at night."),
        Answer(question_id=2, question_text="What worries you?", user_response="Exams."),
    ]


class TestPhase1Questions:
    @pytest.mark.asyncio
    async def test_builds_questions_from_model_output(self, client, store) -> None:
        client.generate.return_value = [
            {"text": "What drains you?", "category": "energy"},
            {"category": "goals"},
        ]
        service = AssessmentService(client, store)
        questions = await service.generate_phase1_questions(
            "career", mcq_answers=[MCQAnswer(question_text="Pace?", selected_option="Fast")]
        )
        assert [q.id for q in questions] == [PHASE1_ID_START, PHASE1_ID_START + 1]
        assert questions[0].text == "What drains you?"
        assert questions[1].text == "Follow up question..."
        assert all(q.is_dynamic for q in questions)

        prompt, schema, system = client.generate.await_args.args
        assert "MCQ DATA:\nPace?: Fast" in prompt
        assert schema is QUESTIONS_SCHEMA
        assert system == role_instruction(SessionType.CAREER)

    @pytest.mark.asyncio
    async def test_counselor_notes_take_precedence(self, client, store) -> None:
        client.generate.return_value = []
        await AssessmentService(client, store).generate_phase1_questions(
            "school", mcq_answers=[MCQAnswer(question_text="x", selected_option="y")], counselor_notes="Shy student"
        )
        prompt = client.generate.await_args.args[0]
        assert "EXPERT NOTES:\nShy student" in prompt
        assert "MCQ DATA" not in prompt

    @pytest.mark.asyncio
    async def test_learned_context_injected(self, client, store) -> None:
        await store.append(
            ClinicalInsight(session_type=SessionType.SCHOOL, pattern="Exam anxiety", recommendation="Ask about sleep")
        )
        client.generate.return_value = []
        await AssessmentService(client, store).generate_phase1_questions("school")
        prompt = client.generate.await_args.args[0]
        assert "Observed Pattern: Exam anxiety. Clinical Rule: Ask about sleep" in prompt

    @pytest.mark.asyncio
    async def test_fallback_questions_on_service_error(self, client, store) -> None:
        client.generate.side_effect = _service_error()
        questions = await AssessmentService(client, store).generate_phase1_questions("medical")
        assert len(questions) == len(FALLBACK_QUESTIONS)
        assert questions[0].id == PHASE1_ID_START
        assert questions[0].text == FALLBACK_QUESTIONS[0][0]

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self, client, store) -> None:
        client.generate.side_effect = ConfigurationError("No API key configured.")
        with pytest.raises(ConfigurationError):
            await AssessmentService(client, store).generate_phase1_questions("school")


class TestFollowUpQuestions:
    @pytest.mark.asyncio
    async def test_rapport_question(self, client, store, answers) -> None:
        client.generate.return_value = {"text": "What do you enjoy most?", "category": "x"}
        question = await AssessmentService(client, store).generate_rapport_question(answers, "school")
        assert question.id == RAPPORT_QUESTION_ID
        assert question.text == "What do you enjoy most?"
        assert question.category == "rapport"
        prompt, schema, _ = client.generate.await_args.args
        assert "Q: How do you study?\nA: Late at night." in prompt
        assert schema is RAPPORT_SCHEMA

    @pytest.mark.asyncio
    async def test_rapport_fallback(self, client, store, answers) -> None:
        client.generate.side_effect = _service_error()
        question = await AssessmentService(client, store).generate_rapport_question(answers, "school")
        assert question.id == RAPPORT_QUESTION_ID
        assert question.text == "How does this make you feel overall?"

    @pytest.mark.asyncio
    async def test_deep_dive_ids(self, client, store, answers) -> None:
        client.generate.return_value = [{"text": f"q{i}", "category": "c"} for i in range(5)]
        questions = await AssessmentService(client, store).generate_deep_dive_questions(answers, "psychological")
        assert [q.id for q in questions] == list(range(DEEP_DIVE_ID_START, DEEP_DIVE_ID_START + 5))

    @pytest.mark.asyncio
    async def test_deep_dive_fallback(self, client, store, answers) -> None:
        client.generate.side_effect = _service_error()
        questions = await AssessmentService(client, store).generate_deep_dive_questions(answers, "school")
        assert questions[0].id == DEEP_DIVE_ID_START
        assert questions[0].category == "deep_dive"


class TestAnalysis:
    @pytest.mark.asyncio
    async def test_stamps_session_type(self, client, store, answers) -> None:
        client.generate.return_value = {"archetype": "The Healer", "sessionType": "school"}
        result = await AssessmentService(client, store).analyze_answers(answers, "medical")
        assert result.archetype == "The Healer"
        assert result.session_type is SessionType.MEDICAL
        assert client.generate.await_args.args[1] is ANALYSIS_SCHEMA

    @pytest.mark.asyncio
    async def test_errors_propagate(self, client, store, answers) -> None:
        client.generate.side_effect = _service_error()
        with pytest.raises(AIServiceError):
            await AssessmentService(client, store).analyze_answers(answers, "school")

    @pytest.mark.asyncio
    async def test_learn_from_session_appends_insight(self, client, store, answers) -> None:
        client.generate.return_value = {"pattern": "Night owl", "recommendation": "Probe sleep"}
        result = AnalysisResult(session_type=SessionType.CAREER)
        insight = await AssessmentService(client, store).learn_from_session(result, answers)
        assert insight.session_type is SessionType.CAREER
        assert await store.all() == [insight]
        _, schema, system = client.generate.await_args.args
        assert schema is META_INSIGHT_SCHEMA
        assert system == META_INSIGHT_SYSTEM

    @pytest.mark.asyncio
    async def test_meta_insight_defaults(self, client, store, answers) -> None:
        client.generate.return_value = {"pattern": "  "}
        insight = await AssessmentService(client, store).generate_meta_insight(AnalysisResult(), answers)
        assert insight.pattern == "Undetermined"
        assert insight.recommendation == "Standard protocol"


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_phase1_through_chat_provider_envelope(self, monkeypatch, sleep, store) -> None:
        monkeypatch.setenv("API_KEY", "gsk_generic-groq-key")
        api = FakeProviderAPI(
            chat_ok('```json\n{"questions": [{"text": "What energizes you?", "category": "energy"}]}\n```')
        )
        service = AssessmentService(AIClient(transport=api.transport, sleep=sleep), store)
        questions = await service.generate_phase1_questions("career")
        assert [(q.id, q.text) for q in questions] == [(PHASE1_ID_START, "What energizes you?")]
        assert api.requests[0].url.host == "api.groq.com"


class TestKnowledgeBase:
    @pytest.mark.asyncio
    async def test_keeps_newest_up_to_limit(self) -> None:
        store = InMemoryInsightStore(max_insights=3)
        for i in range(5):
            await store.append(ClinicalInsight(session_type=SessionType.SCHOOL, pattern=f"p{i}", recommendation="r"))
        assert [i.pattern for i in await store.all()] == ["p4", "p3", "p2"]

    @pytest.mark.asyncio
    async def test_default_limit_from_settings(self, monkeypatch) -> None:
        monkeypatch.setenv("KNOWLEDGE_BASE_MAX_INSIGHTS", "7")
        assert InMemoryInsightStore().max_insights == 7

    @pytest.mark.asyncio
    async def test_query_filters_by_session_type(self, store) -> None:
        await store.append(ClinicalInsight(session_type=SessionType.CAREER, pattern="a", recommendation="r"))
        await store.append(ClinicalInsight(session_type=SessionType.SCHOOL, pattern="b", recommendation="r"))
        assert [i.pattern for i in await store.query("career")] == ["a"]

    @pytest.mark.asyncio
    async def test_learning_context_empty_without_matches(self, store) -> None:
        await store.append(ClinicalInsight(session_type=SessionType.CAREER, pattern="a", recommendation="r"))
        assert await build_learning_context(store, "medical") == ""

    @pytest.mark.asyncio
    async def test_stats(self, store) -> None:
        for _ in range(6):
            await store.append(ClinicalInsight(session_type=SessionType.SCHOOL, pattern="p", recommendation="r"))
        stats = await store.stats()
        assert stats.total_sessions_learned == 6
        assert stats.experience_level == "Practitioner"

    @pytest.mark.parametrize(("total", "level"), [(0, "Novice"), (4, "Novice"), (5, "Practitioner"), (15, "Senior Specialist")])
    def test_experience_levels(self, total: int, level: str) -> None:
        assert experience_level(total) == level
