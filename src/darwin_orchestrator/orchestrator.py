"""The primary user-facing entry point for completions.

`CompletionOrchestrator.complete` turns one `CompletionRequest` into a
`NormalizedResult`, or raises exactly one of the three `CompletionError`
kinds. Configuration is frozen at construction and shared by every request;
no other state survives a call, so concurrent callers need no coordination.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from darwin_orchestrator.config import FrozenConfig, ResolvedConfig, resolve_config
from darwin_orchestrator.core.types import FailureClass
from darwin_orchestrator.exceptions import (
    BillingRequiredError,
    CompletionError,
    ConfigurationError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from darwin_orchestrator.pipeline.adapters.gateway import HttpGatewayAdapter
from darwin_orchestrator.pipeline.attempts import AttemptExecutor
from darwin_orchestrator.pipeline.candidates import CandidatePolicy
from darwin_orchestrator.pipeline.fallback import (
    EXHAUSTED,
    Aborted,
    FallbackController,
    Sleep,
)
from darwin_orchestrator.pipeline.normalizer import ResponseNormalizer
from darwin_orchestrator.telemetry import TelemetryContext

if TYPE_CHECKING:
    from darwin_orchestrator.core.types import (
        AttemptRecord,
        CompletionRequest,
        NormalizedResult,
    )
    from darwin_orchestrator.pipeline.adapters.base import GatewayAdapter
    from darwin_orchestrator.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "deadline exceeded"


class CompletionOrchestrator:
    """Resilient multi-candidate completion client.

    Example:
        async with create_orchestrator() as orchestrator:
            result = await orchestrator.complete(request)
            print(result.text)
    """

    def __init__(
        self,
        config: FrozenConfig | ResolvedConfig,
        adapter: GatewayAdapter | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
        normalizer: ResponseNormalizer | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Resolved or frozen configuration.
            adapter: Gateway transport. When omitted an `HttpGatewayAdapter`
                is built from the configuration and owned by the orchestrator.
            sleep: Awaitable used between retries.
            normalizer: Response normalizer; the built-in transforms by default.
            telemetry: Optional telemetry context; a no-op by default.

        Raises:
            ConfigurationError: If no adapter is given and no API key is configured.
        """
        if isinstance(config, ResolvedConfig):
            config = config.to_frozen()
        self.config = config
        self._policy = CandidatePolicy.from_config(config)

        self._owned_adapter: HttpGatewayAdapter | None = None
        if adapter is None:
            if not config.api_key:
                raise ConfigurationError(
                    "No gateway API key configured. Set DARWIN_API_KEY or pass api_key."
                )
            adapter = self._owned_adapter = HttpGatewayAdapter(
                config.api_key,
                config.endpoint,
                timeout=config.call_timeout_seconds,
            )
        self._adapter = adapter

        self._normalizer = normalizer or ResponseNormalizer()
        self._telemetry = telemetry or TelemetryContext()
        self._controller = FallbackController(
            AttemptExecutor(adapter, self._normalizer),
            retry_delay=config.retry_delay_seconds,
            sleep=sleep,
            telemetry=self._telemetry,
        )

    async def complete(
        self, request: CompletionRequest, *, deadline: float | None = None
    ) -> NormalizedResult:
        """Run one request through the candidate list.

        Args:
            request: The assembled request.
            deadline: Optional overall limit in seconds. Expiry discards the
                in-flight attempt.

        Returns:
            The normalized result; check `is_degraded` before trusting `text`.

        Raises:
            RateLimitedError: The gateway reported an account-wide rate limit.
            BillingRequiredError: The gateway account is out of credits.
            UpstreamUnavailableError: Every candidate failed or the deadline expired.
        """
        candidates = self._policy.select(request.has_documents, request.wants_structured)
        retries = self._policy.retries_for(request)
        records: list[AttemptRecord] = []
        log.info(
            "Starting completion over %d candidates (documents=%d, structured=%s, "
            "retries=%d)",
            len(candidates),
            len(request.documents),
            request.wants_structured,
            retries,
        )

        with self._telemetry(
            "orchestrator.complete",
            documents=len(request.documents),
            structured=request.wants_structured,
        ) as tele:
            try:
                async with asyncio.timeout(deadline):
                    outcome = await self._controller.run(
                        candidates, request, retries, records=records
                    )
            except TimeoutError as e:
                log.warning("Completion deadline of %ss exceeded", deadline)
                raise self._unavailable(
                    records, len(candidates), reason=DEADLINE_EXCEEDED
                ) from e

            state = outcome.state
            if isinstance(state, Aborted):
                raise self._error_for(state, outcome.records, len(candidates))

            result = self._normalizer.normalize(
                state.payload, request, model=state.candidate, attempts=outcome.calls
            )
            if result.degraded is not None:
                tele.count("degraded", reason=result.degraded.reason)
                log.warning(
                    "Completion from %s degraded: %s", state.candidate, result.degraded.reason
                )
            return result

    def _error_for(
        self, state: Aborted, records: tuple[AttemptRecord, ...], tried: int
    ) -> CompletionError:
        if state.failure_class is FailureClass.RATE_LIMITED:
            return RateLimitedError(detail=state.message)
        if state.failure_class is FailureClass.BILLING_REQUIRED:
            return BillingRequiredError(detail=state.message)
        log.error("All %d candidates exhausted; last error: %s", tried, state.message)
        return self._unavailable(list(records), tried, reason=state.reason)

    @staticmethod
    def _unavailable(
        records: list[AttemptRecord], tried: int, *, reason: str = EXHAUSTED
    ) -> UpstreamUnavailableError:
        last_error = records[-1].message if records else reason
        return UpstreamUnavailableError(
            f"{UpstreamUnavailableError.user_message} Tried {tried} models. {last_error}",
            reason=reason,
            attempts=tuple(records),
            detail=last_error,
        )

    async def aclose(self) -> None:
        """Close the HTTP client if the orchestrator created it."""
        if self._owned_adapter is not None:
            await self._owned_adapter.aclose()

    async def __aenter__(self) -> CompletionOrchestrator:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def create_orchestrator(
    config: FrozenConfig | ResolvedConfig | None = None,
    *,
    adapter: GatewayAdapter | None = None,
    **kwargs: Any,
) -> CompletionOrchestrator:
    """Create an orchestrator, resolving configuration if none is given.

    This is the only place where ambient configuration is resolved.

    Args:
        config: Optional configuration; resolved from files and environment when None.
        adapter: Optional gateway transport.
        **kwargs: Passed through to `CompletionOrchestrator`.
    """
    final_config = config if config is not None else resolve_config()
    return CompletionOrchestrator(final_config, adapter, **kwargs)
