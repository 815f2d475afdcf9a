"""Response normalization for successful gateway payloads.

Backends answer in several incompatible shapes. A small, ordered list of
`TransformSpec`s is tried (higher priority first, name as tiebreaker); each
transform either extracts a result or declines, and the first one that
extracts wins. Truncation and content-filter signals from `finish_reason`
are applied afterwards, so a degraded result always carries readable text.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import dataclasses
import json
import logging
from typing import Any, NamedTuple

from darwin_orchestrator.core.types import (
    CompletionRequest,
    Degradation,
    DegradationReason,
    NormalizedResult,
)

log = logging.getLogger(__name__)

PLACEHOLDERS: Mapping[DegradationReason, str] = {
    "truncated": (
        "Analysis was too long and got truncated. Please try with fewer documents."
    ),
    "filtered": (
        "Content was filtered by the AI model. Please try with different documents."
    ),
    "empty": (
        "No analysis generated - the AI model returned an empty response. "
        "Please try again."
    ),
}

_FINISH_REASONS: Mapping[str, DegradationReason] = {
    "length": "truncated",
    "content_filter": "filtered",
}


class Extraction(NamedTuple):
    text: str
    structured: Any = None


@dataclasses.dataclass(frozen=True, slots=True)
class TransformSpec:
    """One response-shape recognizer.

    `matcher` must be cheap and total. `extractor` may raise `ValueError`
    to decline, in which case the next transform is tried.
    """

    name: str
    matcher: Callable[[Mapping[str, Any], CompletionRequest], bool]
    extractor: Callable[[Mapping[str, Any], CompletionRequest], Extraction]
    priority: int = 0


# --- Payload access ---


def first_choice(payload: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """Return the first choice object, or None when absent or malformed."""
    choices = payload.get("choices") if isinstance(payload, Mapping) else None
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    return choice if isinstance(choice, Mapping) else None


def _message(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    choice = first_choice(payload) or {}
    message = choice.get("message")
    return message if isinstance(message, Mapping) else {}


def _finish_reason(payload: Mapping[str, Any]) -> str | None:
    choice = first_choice(payload) or {}
    reason = choice.get("finish_reason")
    return reason if isinstance(reason, str) else None


# --- Built-in transforms ---


def _tool_arguments(payload: Mapping[str, Any]) -> Any:
    tool_calls = _message(payload).get("tool_calls")
    if not isinstance(tool_calls, list) or not tool_calls:
        return None
    call = tool_calls[0]
    function = call.get("function") if isinstance(call, Mapping) else None
    return function.get("arguments") if isinstance(function, Mapping) else None


def _match_tool_call(payload: Mapping[str, Any], request: CompletionRequest) -> bool:
    return request.wants_structured and _tool_arguments(payload) not in (None, "")


def _extract_tool_call(
    payload: Mapping[str, Any], request: CompletionRequest
) -> Extraction:
    structured_output = request.structured_output
    if structured_output is None:
        raise ValueError("structured output was not requested")

    raw = _tool_arguments(payload)
    # Raises json.JSONDecodeError (a ValueError) on malformed arguments.
    args = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(args, Mapping):
        raise ValueError(f"tool arguments must be an object, got {type(args).__name__}")

    if structured_output.model is not None:
        # pydantic.ValidationError subclasses ValueError.
        args = structured_output.model.model_validate(args).model_dump(mode="json")
    else:
        missing = [k for k in structured_output.required_keys() if k not in args]
        if missing:
            raise ValueError(f"tool arguments missing required keys: {missing}")
        args = dict(args)

    return Extraction(text=json.dumps(args, ensure_ascii=False), structured=args)


def _match_string_content(
    payload: Mapping[str, Any],
    request: CompletionRequest,  # noqa: ARG001
) -> bool:
    content = _message(payload).get("content")
    return isinstance(content, str) and content.strip() != ""


def _extract_string_content(
    payload: Mapping[str, Any],
    request: CompletionRequest,  # noqa: ARG001
) -> Extraction:
    return Extraction(text=_message(payload)["content"])


def _text_parts(payload: Mapping[str, Any]) -> list[str]:
    content = _message(payload).get("content")
    if not isinstance(content, list):
        return []
    return [
        part["text"]
        for part in content
        if isinstance(part, Mapping)
        and part.get("type", "text") == "text"
        and isinstance(part.get("text"), str)
        and part["text"]
    ]


def _match_content_parts(
    payload: Mapping[str, Any],
    request: CompletionRequest,  # noqa: ARG001
) -> bool:
    return bool(_text_parts(payload))


def _extract_content_parts(
    payload: Mapping[str, Any],
    request: CompletionRequest,  # noqa: ARG001
) -> Extraction:
    return Extraction(text="\n".join(_text_parts(payload)))


def default_transforms() -> tuple[TransformSpec, ...]:
    return (
        TransformSpec(
            name="tool_call_arguments",
            matcher=_match_tool_call,
            extractor=_extract_tool_call,
            priority=30,
        ),
        TransformSpec(
            name="string_content",
            matcher=_match_string_content,
            extractor=_extract_string_content,
            priority=20,
        ),
        TransformSpec(
            name="content_parts",
            matcher=_match_content_parts,
            extractor=_extract_content_parts,
            priority=10,
        ),
    )


class ResponseNormalizer:
    """Turn a successful gateway payload into a `NormalizedResult`.

    Stateless: normalizing the same payload twice yields equal results.
    """

    def __init__(self, transforms: tuple[TransformSpec, ...] | None = None) -> None:
        """Initialize with custom transforms, or the built-in ones."""
        self.transforms = transforms if transforms is not None else default_transforms()
        self._sorted_transforms: tuple[TransformSpec, ...] = tuple(
            sorted(self.transforms, key=lambda t: (-t.priority, t.name))
        )

    def extract(
        self, payload: Mapping[str, Any], request: CompletionRequest
    ) -> tuple[str, Extraction] | None:
        """Run the transform chain; return ``(transform_name, extraction)`` or None."""
        for transform in self._sorted_transforms:
            if not transform.matcher(payload, request):
                continue
            try:
                extraction = transform.extractor(payload, request)
            except ValueError as e:
                log.info("Transform %s declined: %s", transform.name, e)
                continue
            if extraction.text.strip():
                return transform.name, extraction
        return None

    def recognizes(self, payload: Mapping[str, Any], request: CompletionRequest) -> bool:
        """True when the payload is a real answer rather than an empty one.

        A structured request that got tool-call arguments counts as answered
        even when they are malformed: `normalize` degrades it instead of the
        request being retried across every candidate.
        """
        if first_choice(payload) is None:
            return False
        if _finish_reason(payload) in _FINISH_REASONS:
            return True
        if _match_tool_call(payload, request):
            return True
        return self.extract(payload, request) is not None

    def normalize(
        self,
        payload: Mapping[str, Any],
        request: CompletionRequest,
        *,
        model: str | None = None,
        attempts: int = 0,
    ) -> NormalizedResult:
        """Extract the canonical result; never raises for unexpected shapes.

        Args:
            payload: Decoded JSON body of a successful gateway reply.
            request: The request that produced it (decides whether tool-call
                arguments are considered).
            model: Candidate that answered, recorded on the result.
            attempts: Total gateway calls made for this request.
        """
        reason = _FINISH_REASONS.get(_finish_reason(payload) or "")
        found = self.extract(payload, request)

        if found is not None:
            transform, extraction = found
            return NormalizedResult(
                text=extraction.text,
                structured=extraction.structured,
                degraded=Degradation(reason) if reason is not None else None,
                model=model,
                attempts=attempts,
                transform=transform,
            )

        reason = reason or "empty"
        log.warning(
            "No usable content from %s (finish_reason=%r); returning %s placeholder",
            model,
            _finish_reason(payload),
            reason,
        )
        return NormalizedResult(
            text=PLACEHOLDERS[reason],
            degraded=Degradation(reason),
            model=model,
            attempts=attempts,
        )


_DEFAULT_NORMALIZER = ResponseNormalizer()


def normalize(
    payload: Mapping[str, Any], request: CompletionRequest, **kwargs: Any
) -> NormalizedResult:
    """Normalize with the built-in transform chain."""
    return _DEFAULT_NORMALIZER.normalize(payload, request, **kwargs)


def recognizes(payload: Mapping[str, Any], request: CompletionRequest) -> bool:
    return _DEFAULT_NORMALIZER.recognizes(payload, request)
