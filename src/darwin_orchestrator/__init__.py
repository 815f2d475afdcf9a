"""Resilient multi-candidate completion orchestrator for a chat-completions gateway."""

import importlib.metadata
import logging

from darwin_orchestrator.config import FrozenConfig, ResolvedConfig, resolve_config
from darwin_orchestrator.core.types import (
    MAX_DOCUMENT_PARTS,
    AttemptRecord,
    CompletionRequest,
    Degradation,
    DocumentPart,
    Failure,
    FailureClass,
    NormalizedResult,
    Result,
    StructuredOutput,
    Success,
    TextPart,
)
from darwin_orchestrator.exceptions import (
    BillingRequiredError,
    CompletionError,
    ConfigurationError,
    DarwinOrchestratorError,
    RateLimitedError,
    UpstreamUnavailableError,
)
from darwin_orchestrator.orchestrator import CompletionOrchestrator, create_orchestrator
from darwin_orchestrator.pipeline.adapters import (
    GatewayAdapter,
    GatewayReply,
    HttpGatewayAdapter,
)
from darwin_orchestrator.pipeline.candidates import CandidatePolicy, select_candidates
from darwin_orchestrator.telemetry import (
    InMemoryReporter,
    TelemetryContext,
    TelemetryReporter,
)

try:
    __version__ = importlib.metadata.version("darwin-orchestrator")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Library logging stays silent unless the application configures handlers.
logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Entry point
    "CompletionOrchestrator",
    "create_orchestrator",
    # Requests and results
    "CompletionRequest",
    "DocumentPart",
    "TextPart",
    "StructuredOutput",
    "NormalizedResult",
    "Degradation",
    "MAX_DOCUMENT_PARTS",
    # Attempt diagnostics
    "AttemptRecord",
    "FailureClass",
    "Result",
    "Success",
    "Failure",
    # Candidates and transport
    "CandidatePolicy",
    "select_candidates",
    "GatewayAdapter",
    "GatewayReply",
    "HttpGatewayAdapter",
    # Configuration
    "FrozenConfig",
    "ResolvedConfig",
    "resolve_config",
    # Errors
    "DarwinOrchestratorError",
    "ConfigurationError",
    "CompletionError",
    "RateLimitedError",
    "BillingRequiredError",
    "UpstreamUnavailableError",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    "InMemoryReporter",
]
