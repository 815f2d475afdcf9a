"""Attempt execution: one gateway call for one candidate, classified.

`classify_reply` is the single place that maps a reply to a `FailureClass`.
Non-2xx statuses and error objects embedded in a 200 body go through the same
status thresholds, so the fallback controller never needs to know which
one it saw.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
import logging
from typing import Any

import httpx

from darwin_orchestrator.core.types import (
    AttemptFailure,
    AttemptOutcome,
    CompletionRequest,
    Failure,
    FailureClass,
    Success,
)
from darwin_orchestrator.pipeline.adapters.base import GatewayAdapter, GatewayReply
from darwin_orchestrator.pipeline.normalizer import ResponseNormalizer, first_choice
from darwin_orchestrator.pipeline.request_body import build_request_body

log = logging.getLogger(__name__)

_MAX_MESSAGE_CHARS = 300


def classify_status(status_code: int) -> FailureClass:
    """Map a non-success status code to a failure class."""
    if status_code == 429:
        return FailureClass.RATE_LIMITED
    if status_code == 402:
        return FailureClass.BILLING_REQUIRED
    if status_code >= 500:
        return FailureClass.SERVER_ERROR
    return FailureClass.CLIENT_ERROR


def _coerce_code(value: Any) -> int | None:
    """Return an HTTP error status (400-599) from an int or numeric string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if isinstance(value, int) and 400 <= value <= 599:
        return value
    return None


def _embedded_error(payload: Any) -> AttemptFailure | None:
    if not isinstance(payload, Mapping):
        return None
    error = payload.get("error")
    if not error:
        return None

    if isinstance(error, Mapping):
        code = _coerce_code(error.get("code"))
        if code is None:
            code = _coerce_code(error.get("status"))
        message = str(error.get("message") or error)
    else:
        code = None
        message = str(error)

    # No usable code or status means the candidate rejected the request.
    failure_class = (
        classify_status(code) if code is not None else FailureClass.CLIENT_ERROR
    )
    return AttemptFailure(
        failure_class=failure_class,
        message=f"Embedded error: {message}"[:_MAX_MESSAGE_CHARS],
        status_code=code,
    )


def classify_reply(
    reply: GatewayReply, recognizes: Callable[[Mapping[str, Any]], bool]
) -> AttemptOutcome:
    """Classify a gateway reply.

    Args:
        reply: What the adapter returned.
        recognizes: Whether a successful payload carries usable content;
            used to tell real answers from empty ones.

    Returns:
        `Success(payload)` or `Failure(AttemptFailure)`.
    """
    if not reply.is_success:
        return Failure(
            AttemptFailure(
                failure_class=classify_status(reply.status_code),
                message=f"HTTP {reply.status_code}: {reply.text}"[:_MAX_MESSAGE_CHARS],
                status_code=reply.status_code,
            )
        )

    embedded = _embedded_error(reply.payload)
    if embedded is not None:
        return Failure(embedded)

    payload = reply.payload
    if not isinstance(payload, Mapping):
        return Failure(
            AttemptFailure(
                failure_class=FailureClass.EMPTY_RESPONSE,
                message="Gateway returned a body that is not a JSON object",
                status_code=reply.status_code,
            )
        )
    if first_choice(payload) is None:
        return Failure(
            AttemptFailure(
                failure_class=FailureClass.EMPTY_RESPONSE,
                message="Gateway returned no choices",
                status_code=reply.status_code,
            )
        )
    if not recognizes(payload):
        return Failure(
            AttemptFailure(
                failure_class=FailureClass.EMPTY_RESPONSE,
                message="Gateway returned a choice without usable content",
                status_code=reply.status_code,
            )
        )
    return Success(payload)


class AttemptExecutor:
    """Performs single gateway calls and classifies their outcome.

    Upstream conditions (statuses, embedded errors, connection failures,
    timeouts) become `Failure` values. Anything else propagates.
    """

    def __init__(
        self, adapter: GatewayAdapter, normalizer: ResponseNormalizer | None = None
    ) -> None:
        """Initialize with the transport and the normalizer used to spot empty replies."""
        self._adapter = adapter
        self._normalizer = normalizer or ResponseNormalizer()

    async def attempt(self, candidate: str, request: CompletionRequest) -> AttemptOutcome:
        body = build_request_body(request, candidate)
        try:
            reply = await self._adapter.post(body)
        except (httpx.TransportError, TimeoutError) as e:
            log.warning("Transport failure calling %s: %s", candidate, e)
            return Failure(
                AttemptFailure(
                    failure_class=FailureClass.TRANSPORT,
                    message=f"{type(e).__name__}: {e}"[:_MAX_MESSAGE_CHARS],
                )
            )

        outcome = classify_reply(
            reply, lambda payload: self._normalizer.recognizes(payload, request)
        )
        if isinstance(outcome, Failure):
            log.info(
                "Candidate %s failed with %s (status=%s)",
                candidate,
                outcome.error.failure_class.value,
                outcome.error.status_code,
            )
        return outcome
