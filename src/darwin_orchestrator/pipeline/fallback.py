"""Fallback controller: walks the candidate list until something succeeds.

The whole retry/advance/abort policy lives in `decide`. The controller loop
only moves between `TryingCandidate`, `Succeeded` and `Aborted` states, one
attempt at a time; candidates are never raced.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
import dataclasses
import enum
import logging
from typing import Any

from darwin_orchestrator.core.types import (
    AttemptRecord,
    CompletionRequest,
    FailureClass,
    Success,
)
from darwin_orchestrator.pipeline.attempts import AttemptExecutor
from darwin_orchestrator.telemetry import TelemetryContext, TelemetryContextProtocol

log = logging.getLogger(__name__)

type Sleep = Callable[[float], Awaitable[Any]]


class Decision(str, enum.Enum):
    RETRY = "retry"
    ADVANCE = "advance"
    ABORT = "abort"


ABORT_REASONS: Mapping[FailureClass, str] = {
    FailureClass.RATE_LIMITED: "rate limit",
    FailureClass.BILLING_REQUIRED: "billing",
}

EXHAUSTED = "all candidates exhausted"


def decide(failure_class: FailureClass, attempt: int, retries: int) -> Decision:
    """Choose the next move after a failed attempt.

    Args:
        failure_class: Classification of the failed attempt.
        attempt: Zero-based attempt number on the current candidate.
        retries: Attempts allowed per candidate for this request.
    """
    # Rate and billing limits are account-wide; another model will not help.
    if failure_class in ABORT_REASONS:
        return Decision.ABORT
    # The candidate rejects this request shape; retrying it is pointless.
    if failure_class is FailureClass.CLIENT_ERROR:
        return Decision.ADVANCE
    if attempt + 1 < retries:
        return Decision.RETRY
    return Decision.ADVANCE


# --- States ---


@dataclasses.dataclass(frozen=True, slots=True)
class TryingCandidate:
    index: int
    attempt: int


@dataclasses.dataclass(frozen=True, slots=True)
class Succeeded:
    payload: Mapping[str, Any]
    candidate: str


@dataclasses.dataclass(frozen=True, slots=True)
class Aborted:
    reason: str
    failure_class: FailureClass | None = None
    message: str = ""


type FallbackState = TryingCandidate | Succeeded | Aborted


@dataclasses.dataclass(frozen=True, slots=True)
class FallbackOutcome:
    """Terminal state of one request plus its attempt log."""

    state: Succeeded | Aborted
    records: tuple[AttemptRecord, ...]
    calls: int

    @property
    def succeeded(self) -> bool:
        return isinstance(self.state, Succeeded)


class FallbackController:
    """Drives the attempt executor over an ordered candidate list."""

    def __init__(
        self,
        executor: AttemptExecutor,
        *,
        retry_delay: float = 2.0,
        sleep: Sleep = asyncio.sleep,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            executor: Performs and classifies single gateway calls.
            retry_delay: Fixed wait, in seconds, before retrying the same candidate.
            sleep: Awaitable sleep; injectable so tests never wait.
            telemetry: Optional telemetry context; defaults to a no-op.
        """
        self._executor = executor
        self._retry_delay = retry_delay
        self._sleep = sleep
        self._telemetry = telemetry or TelemetryContext()

    async def run(
        self,
        candidates: Sequence[str],
        request: CompletionRequest,
        retries: int,
        *,
        records: list[AttemptRecord] | None = None,
    ) -> FallbackOutcome:
        """Try candidates in order until one succeeds or the request aborts.

        Args:
            candidates: Ordered, non-empty candidate identifiers.
            request: The request sent to every candidate.
            retries: Attempts allowed per candidate.
            records: Optional list that failed attempts are appended to as
                they happen, so a caller that cancels the run keeps the trail.
        """
        if not candidates:
            raise ValueError("candidates must not be empty")
        log_records = records if records is not None else []
        state: FallbackState = TryingCandidate(index=0, attempt=0)
        calls = 0
        last: AttemptRecord | None = None

        while isinstance(state, TryingCandidate):
            if state.index >= len(candidates):
                state = Aborted(
                    reason=EXHAUSTED,
                    failure_class=last.failure_class if last else None,
                    message=last.message if last else "",
                )
                break

            candidate = candidates[state.index]
            with self._telemetry("attempt", model=candidate, attempt=state.attempt):
                outcome = await self._executor.attempt(candidate, request)
            calls += 1

            if isinstance(outcome, Success):
                log.info(
                    "Candidate %s succeeded on attempt %d", candidate, state.attempt + 1
                )
                state = Succeeded(payload=outcome.value, candidate=candidate)
                break

            failure = outcome.error
            last = AttemptRecord(
                candidate=candidate,
                attempt=state.attempt,
                failure_class=failure.failure_class,
                message=failure.message,
            )
            log_records.append(last)
            self._telemetry.count("failure", failure_class=failure.failure_class.value)

            decision = decide(failure.failure_class, state.attempt, retries)
            if decision is Decision.ABORT:
                log.warning(
                    "Aborting request after %s from %s", failure.failure_class.value, candidate
                )
                state = Aborted(
                    reason=ABORT_REASONS[failure.failure_class],
                    failure_class=failure.failure_class,
                    message=failure.message,
                )
            elif decision is Decision.RETRY:
                log.info(
                    "Retrying %s in %.1fs (attempt %d of %d)",
                    candidate,
                    self._retry_delay,
                    state.attempt + 2,
                    retries,
                )
                await self._sleep(self._retry_delay)
                state = TryingCandidate(index=state.index, attempt=state.attempt + 1)
            else:
                log.info("Advancing past %s after %s", candidate, failure.failure_class.value)
                state = TryingCandidate(index=state.index + 1, attempt=0)

        return FallbackOutcome(state=state, records=tuple(log_records), calls=calls)
