"""
Tests for the Response Normalizer.

Covers:
- Payload shapes in order of preference
- Explicit step lists (precedence, id defaulting, done coercion)
- Extraction with display text cleared
- Text-only replies
- Unrecognized payload stringification
- Plain chat mode (no steps)
"""

from __future__ import annotations

import pytest

from tasktamer.modules.response_normalizer import (
    EMPTY_RESPONSE_TEXT,
    normalize_explicit_steps,
    normalize_response,
    resolve_text,
    stringify_payload,
)

# =============================================================================
# TestResolveText
# =============================================================================


class TestResolveText:
    """Test resolve_text() shape recognition."""

    def test_text_field(self) -> None:
        assert resolve_text({"text": "hi", "answer": "no"}) == "hi"

    def test_answer_field(self) -> None:
        assert resolve_text({"answer": "hi"}) == "hi"

    def test_choices(self) -> None:
        payload = {"choices": [{"message": {"role": "assistant", "content": "hi"}}]}
        assert resolve_text(payload) == "hi"

    def test_first_assistant_message(self) -> None:
        payload = {
            "messages": [
                {"role": "user", "content": "q"},
                {"role": "assistant", "content": "first"},
                {"role": "assistant", "content": "second"},
            ]
        }
        assert resolve_text(payload) == "first"

    def test_answer_beats_choices(self) -> None:
        payload = {"answer": "a", "choices": [{"message": {"content": "c"}}]}
        assert resolve_text(payload) == "a"

    def test_empty_text_string_still_wins(self) -> None:
        payload = {"text": "", "answer": "a", "choices": [{"message": {"content": "c"}}]}
        assert resolve_text(payload) == ""

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            "plain string",
            ["list"],
            {},
            {"choices": []},
            {"choices": [{"delta": {}}]},
            {"messages": [{"role": "user", "content": "q"}]},
            {"text": 5},
        ],
    )
    def test_unrecognized(self, payload: object) -> None:
        assert resolve_text(payload) is None


# =============================================================================
# TestNormalizeResponse
# =============================================================================


class TestNormalizeResponse:
    """Test normalize_response()."""

    def test_extracted_steps_clear_text(self) -> None:
        result = normalize_response({"text": "1. Buy boxes\n2. Buy boxes\n- [x] Label boxes"})
        assert result.text == ""
        assert [(s.id, s.text, s.done) for s in result.steps] == [
            ("step-1", "Buy boxes", False),
            ("step-2", "Label boxes", True),
        ]

    def test_prose_around_steps_is_discarded(self) -> None:
        result = normalize_response({"answer": "Sure! Here:\n- Pack\n- Go\nEnjoy."})
        assert result.text == ""
        assert [s.text for s in result.steps] == ["Pack", "Go"]

    def test_text_only(self) -> None:
        result = normalize_response({"text": "Just relax."})
        assert result.text == "Just relax."
        assert result.steps is None
        assert not result.has_steps

    def test_explicit_steps_take_precedence(self) -> None:
        result = normalize_response({
            "text": "- From text",
            "steps": [{"id": "a", "text": "Explicit", "done": 1}, {"text": "Second"}],
        })
        assert [(s.id, s.text, s.done) for s in result.steps] == [
            ("a", "Explicit", True),
            ("step-2", "Second", False),
        ]

    def test_explicit_steps_with_repeated_id(self) -> None:
        result = normalize_response({
            "text": "x",
            "steps": [{"id": "a", "text": "Buy"}, {"id": "a", "text": "Pack"}],
        })
        assert [(s.id, s.text) for s in result.steps] == [("a", "Buy"), ("a-2", "Pack")]

    def test_empty_text_field_is_shown_as_json(self) -> None:
        result = normalize_response({"text": "", "answer": "- Pack"})
        assert result.steps is None
        assert result.text == '{"text": "", "answer": "- Pack"}'

    def test_empty_explicit_steps_fall_back_to_extraction(self) -> None:
        result = normalize_response({"text": "- From text", "steps": []})
        assert [s.text for s in result.steps] == ["From text"]

    def test_explicit_steps_that_sanitize_empty_fall_back(self) -> None:
        result = normalize_response({"text": "- From text", "steps": [{"text": "<br>"}]})
        assert [s.text for s in result.steps] == ["From text"]

    def test_explicit_steps_without_text(self) -> None:
        result = normalize_response({"steps": ["Pack", "pack", "Go"]})
        assert result.text == ""
        assert [s.text for s in result.steps] == ["Pack", "Go"]

    def test_headings_as_steps(self) -> None:
        result = normalize_response({"text": "### Prepare\nIntro"}, headings_as_steps=True)
        assert [s.text for s in result.steps] == ["Prepare"]

    def test_plain_chat_keeps_list_visible(self) -> None:
        text = "You could:\n- Pack\n- Go"
        result = normalize_response({"text": text, "steps": ["X"]}, extract_steps=False)
        assert result.text == text
        assert result.steps is None

    def test_unrecognized_dict_is_json(self) -> None:
        result = normalize_response({"foo": "bär"})
        assert result.text == '{"foo": "bär"}'
        assert result.steps is None

    def test_string_payload_shown_as_is(self) -> None:
        assert normalize_response("raw body").text == "raw body"

    @pytest.mark.parametrize("payload", [None, "", {}])
    def test_empty_payload(self, payload: object) -> None:
        assert normalize_response(payload).text == EMPTY_RESPONSE_TEXT


class TestHelpers:
    def test_normalize_explicit_steps_ignores_non_list(self) -> None:
        assert normalize_explicit_steps({"text": "x"}) == []

    def test_explicit_ids_stringified(self) -> None:
        steps = normalize_explicit_steps([{"id": 7, "text": "A"}])
        assert steps[0].id == "7"

    def test_stringify_list(self) -> None:
        assert stringify_payload([1, 2]) == "[1, 2]"
