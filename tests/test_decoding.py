"""Tests for response decoding and failure classification."""

import pytest

from src.decoding import clean_json, decode, ensure_sequence
from src.llm_errors import (
    AIServiceError,
    DecodeError,
    FailureReason,
    ModelUnavailableError,
    PermanentDispatchError,
    TransientDispatchError,
    build_dispatch_error,
    classify_failure,
)


class TestCleanJson:
    def test_strips_json_fence(self) -> None:
        assert clean_json('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_strips_bare_fence(self) -> None:
        assert clean_json("```\n[1, 2]\n```") == "[1, 2]"

    def test_none_and_empty(self) -> None:
        assert clean_json(None) == ""
        assert clean_json("   ") == ""


class TestDecode:
    @pytest.mark.parametrize(
        "plain",
        ['{"a": 1}', "[1, 2, 3]", '{"questions": [{"text": "a"}]}', '"just a string"'],
    )
    def test_fenced_equals_unfenced(self, plain: str) -> None:
        assert decode(f"```json\n{plain}\n```") == decode(plain)
        assert decode(f"```\n{plain}```") == decode(plain)

    def test_fenced_object(self) -> None:
        assert decode("```json\n{\"text\":\"hi\"}\n```") == {"text": "hi"}

    def test_object_passthrough_when_no_sequence_expected(self) -> None:
        assert decode('{"items": [1]}') == {"items": [1]}

    def test_unwraps_single_array_envelope(self) -> None:
        raw = '{"questions":[{"text":"a","category":"b"}]}'
        assert decode(raw, expect_sequence=True) == [{"text": "a", "category": "b"}]

    def test_wraps_plain_object(self) -> None:
        assert decode('{"text": "a", "category": "b"}', expect_sequence=True) == [
            {"text": "a", "category": "b"}
        ]

    def test_array_kept_as_is(self) -> None:
        assert decode("[1, 2]", expect_sequence=True) == [1, 2]

    def test_empty_text_raises(self) -> None:
        with pytest.raises(DecodeError, match="Empty"):
            decode("")

    def test_fence_only_raises(self) -> None:
        with pytest.raises(DecodeError):
            decode("```json\n```")

    def test_invalid_json_raises_with_raw_text(self) -> None:
        with pytest.raises(DecodeError) as exc_info:
            decode("Here you go: {broken")
        assert "Here you go" in exc_info.value.raw_text


class TestEnsureSequence:
    def test_multiple_list_properties_wrap_object(self) -> None:
        value = {"a": [1], "b": [2]}
        assert ensure_sequence(value) == [value]

    def test_none_becomes_empty(self) -> None:
        assert ensure_sequence(None) == []

    def test_scalar_wrapped(self) -> None:
        assert ensure_sequence(3) == [3]


class TestClassifyFailure:
    @pytest.mark.parametrize("status", [404, 502])
    def test_model_unavailable_statuses(self, status: int) -> None:
        assert classify_failure(status, "") is ModelUnavailableError

    @pytest.mark.parametrize(
        "message",
        [
            "No endpoints found for google/gemini-flash-1.5.",
            "The model `gpt-5-preview` does not exist",
            "model_not_found",
            "The model llama-3-70b has been decommissioned",
        ],
    )
    def test_model_unavailable_phrases(self, message: str) -> None:
        assert classify_failure(400, message) is ModelUnavailableError

    @pytest.mark.parametrize("status", [None, 408, 429, 500, 503, 504, 529])
    def test_transient(self, status) -> None:
        assert classify_failure(status, "try again later") is TransientDispatchError

    @pytest.mark.parametrize("status", [400, 401, 403, 422])
    def test_permanent(self, status: int) -> None:
        assert classify_failure(status, "invalid api key") is PermanentDispatchError

    @pytest.mark.parametrize(
        ("status", "message"),
        [
            (401, "The API key provided does not exist"),
            (403, "Project does not exist"),
            (403, "Model is not found for this project"),
            (422, "no endpoints match the request"),
        ],
    )
    def test_auth_status_outranks_phrases(self, status: int, message: str) -> None:
        assert classify_failure(status, message) is PermanentDispatchError

    def test_phrase_in_success_envelope(self) -> None:
        assert classify_failure(200, "No endpoints found for this model") is ModelUnavailableError

    def test_network_failure_ignores_phrases(self) -> None:
        assert classify_failure(None, "host does not exist") is TransientDispatchError

    def test_model_unavailable_is_retryable(self) -> None:
        err = build_dispatch_error(404, "not found", provider="gemini", model="gemini-2.5-flash")
        assert isinstance(err, TransientDispatchError)
        assert err.transient
        assert err.status == 404

    def test_body_truncated(self) -> None:
        err = build_dispatch_error(500, "boom", body="x" * 5000)
        assert len(err.body) == 2000


class TestAIServiceError:
    def test_permanent_message_names_target(self) -> None:
        err = AIServiceError(
            FailureReason.PERMANENT, "Invalid key", provider="openai", model="gpt-4o", attempts=1, status=401
        )
        assert str(err) == "openai/gpt-4o rejected the request: Invalid key"

    def test_exhausted_message_counts_attempts(self) -> None:
        err = AIServiceError(FailureReason.EXHAUSTED, "Overloaded", provider="groq", model="m", attempts=3)
        assert "after 3 attempts" in str(err)
        assert "groq/m" in str(err)
