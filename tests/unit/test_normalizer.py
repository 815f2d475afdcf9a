import json

from pydantic import BaseModel
import pytest

from darwin_orchestrator.core.types import CompletionRequest, StructuredOutput
from darwin_orchestrator.pipeline.normalizer import (
    PLACEHOLDERS,
    Extraction,
    ResponseNormalizer,
    TransformSpec,
    normalize,
    recognizes,
)

pytestmark = pytest.mark.unit

TEXT_REQUEST = CompletionRequest("s", "p")


class FollowUp(BaseModel):
    analysis: str
    suggestedActions: list[dict[str, str]]  # noqa: N815


STRUCTURED_REQUEST = CompletionRequest(
    "s", "p", structured_output=StructuredOutput.from_model("suggest_followups", FollowUp)
)


def test_plain_string_content(chat_payload):
    result = normalize(chat_payload("Dear adjuster,"), TEXT_REQUEST, model="m", attempts=1)
    assert result.text == "Dear adjuster,"
    assert result.degraded is None
    assert result.transform == "string_content"
    assert result.model == "m"
    assert result.attempts == 1


def test_multi_part_text_joined_by_newline(chat_payload):
    content = [
        {"type": "text", "text": "A"},
        {"type": "image_url", "image_url": {"url": "data:image/png;base64,AA=="}},
        {"type": "text", "text": "B"},
    ]
    result = normalize(chat_payload(content), TEXT_REQUEST)
    assert result.text == "A\nB"
    assert result.transform == "content_parts"


def test_structured_arguments_validated_with_model(chat_payload):
    args = {"analysis": "Call the insured.", "suggestedActions": [{"type": "task"}]}
    payload = chat_payload(None, tool_arguments=json.dumps(args))
    result = normalize(payload, STRUCTURED_REQUEST)
    assert result.structured == args
    assert json.loads(result.text) == args
    assert result.transform == "tool_call_arguments"


def test_tool_calls_ignored_when_structured_not_requested(chat_payload):
    payload = chat_payload("prose answer", tool_arguments='{"analysis": "x"}')
    result = normalize(payload, TEXT_REQUEST)
    assert result.text == "prose answer"
    assert result.structured is None


def test_schema_required_keys_checked_without_model(chat_payload):
    so = StructuredOutput("respond", {"type": "object", "required": ["analysis"]})
    req = CompletionRequest("s", "p", structured_output=so)
    result = normalize(chat_payload("fallback text", tool_arguments='{"other": 1}'), req)
    assert result.structured is None
    assert result.text == "fallback text"


@pytest.mark.parametrize(
    "arguments",
    ['{"analysis": ', '["not", "an", "object"]', '{"analysis": "missing actions"}'],
)
def test_malformed_structured_falls_back_to_text(chat_payload, arguments):
    payload = chat_payload("Plain analysis instead.", tool_arguments=arguments)
    result = normalize(payload, STRUCTURED_REQUEST)
    assert result.text == "Plain analysis instead."
    assert result.structured is None
    assert result.degraded is None


def test_malformed_structured_is_idempotent(chat_payload):
    payload = chat_payload(None, tool_arguments="{broken")
    first = normalize(payload, STRUCTURED_REQUEST)
    second = normalize(payload, STRUCTURED_REQUEST)
    assert first == second
    assert first.degraded is not None
    assert first.degraded.reason == "empty"
    assert first.text == PLACEHOLDERS["empty"]


def test_malformed_structured_arguments_are_recognized(chat_payload):
    payload = chat_payload(None, tool_arguments="{broken")
    assert recognizes(payload, STRUCTURED_REQUEST)
    assert not recognizes(payload, TEXT_REQUEST)


def test_truncated_with_empty_content_gets_placeholder(chat_payload):
    result = normalize(chat_payload("", finish_reason="length"), TEXT_REQUEST)
    assert result.degraded is not None
    assert result.degraded.reason == "truncated"
    assert result.text == (
        "Analysis was too long and got truncated. Please try with fewer documents."
    )


def test_truncated_with_partial_text_keeps_text(chat_payload):
    result = normalize(chat_payload("Partial lett", finish_reason="length"), TEXT_REQUEST)
    assert result.text == "Partial lett"
    assert result.degraded is not None
    assert result.degraded.reason == "truncated"


def test_content_filter_placeholder(chat_payload):
    result = normalize(chat_payload(None, finish_reason="content_filter"), TEXT_REQUEST)
    assert result.degraded is not None
    assert result.degraded.reason == "filtered"
    assert result.text == PLACEHOLDERS["filtered"]


def test_recognizes(chat_payload):
    assert recognizes(chat_payload("hi"), TEXT_REQUEST)
    assert recognizes(chat_payload(None, finish_reason="length"), TEXT_REQUEST)
    assert not recognizes(chat_payload(""), TEXT_REQUEST)
    assert not recognizes(chat_payload([{"type": "image_url"}]), TEXT_REQUEST)
    assert not recognizes({"choices": []}, TEXT_REQUEST)


def test_custom_transforms_run_by_priority_then_name(chat_payload):
    seen = []

    def matcher(name):
        def _match(payload, request):
            seen.append(name)
            return name == "b_low"

        return _match

    def extractor(payload, request):
        return Extraction(text="custom")

    normalizer = ResponseNormalizer(
        (
            TransformSpec("b_low", matcher("b_low"), extractor, priority=1),
            TransformSpec("z_high", matcher("z_high"), extractor, priority=5),
            TransformSpec("a_low", matcher("a_low"), extractor, priority=1),
        )
    )
    result = normalizer.normalize(chat_payload("ignored"), TEXT_REQUEST)
    assert seen == ["z_high", "a_low", "b_low"]
    assert result.transform == "b_low"
    assert result.text == "custom"
