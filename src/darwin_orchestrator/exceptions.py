"""Exceptions raised by the completion orchestrator.

Only `CompletionError` subclasses cross the orchestrator boundary during a
request. Each carries the HTTP status and user-facing message the calling
feature should surface.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from darwin_orchestrator.core.types import AttemptRecord, FailureClass


class DarwinOrchestratorError(Exception):
    """Base exception for orchestrator errors"""  # noqa: D415


class ConfigurationError(DarwinOrchestratorError):
    """Raised when orchestrator settings are missing or invalid"""  # noqa: D415


class CompletionError(DarwinOrchestratorError):
    """A completion request that produced no usable result."""

    kind: ClassVar[str] = "completion_error"
    http_status: ClassVar[int] = 500
    user_message: ClassVar[str] = "AI analysis failed."

    def __init__(self, message: str | None = None, *, detail: str | None = None) -> None:
        """Initialize with the user-facing message and an optional diagnostic detail.

        Args:
            message: Overrides the class-level user message.
            detail: Upstream diagnostic text (never shown verbatim to end users).
        """
        self.message = message or self.user_message
        self.detail = detail
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        """JSON-serializable error body for the calling feature."""
        return {"error": self.message, "kind": self.kind}


class RateLimitedError(CompletionError):
    """The gateway rejected the request with an account-wide rate limit."""

    kind = "rate_limited"
    http_status = 429
    user_message = "Rate limit exceeded. Please try again in a moment."


class BillingRequiredError(CompletionError):
    """The gateway account has run out of credits."""

    kind = "billing_required"
    http_status = 402
    user_message = "AI usage limit reached. Please add credits to continue."


class UpstreamUnavailableError(CompletionError):
    """Every candidate failed, or the caller's deadline expired first.

    Attributes:
        reason: ``"all candidates exhausted"`` or ``"deadline exceeded"``.
        attempts: Every failed attempt, in the order issued.
    """

    kind = "upstream_unavailable"
    http_status = 503
    user_message = "AI Gateway temporarily unavailable."

    def __init__(
        self,
        message: str | None = None,
        *,
        reason: str = "all candidates exhausted",
        attempts: tuple[AttemptRecord, ...] = (),
        detail: str | None = None,
    ) -> None:
        """Initialize with the abort reason and the attempt log."""
        super().__init__(message, detail=detail)
        self.reason = reason
        self.attempts = attempts

    @property
    def trail(self) -> tuple[tuple[str, FailureClass], ...]:
        """Ordered, de-duplicated ``(candidate, failure_class)`` pairs."""
        seen: dict[tuple[str, FailureClass], None] = {}
        for record in self.attempts:
            seen.setdefault((record.candidate, record.failure_class), None)
        return tuple(seen)

    def to_payload(self) -> dict[str, Any]:
        """Error body including the candidate trail for diagnostics."""
        payload = super().to_payload()
        payload["reason"] = self.reason
        payload["trail"] = [
            {"model": candidate, "failure": failure_class.value}
            for candidate, failure_class in self.trail
        ]
        return payload
