"""Stages of a completion request: select, attempt, fall back, normalize."""

from .attempts import AttemptExecutor, classify_reply, classify_status
from .candidates import CandidatePolicy, select_candidates
from .fallback import (
    Aborted,
    Decision,
    FallbackController,
    FallbackOutcome,
    Succeeded,
    TryingCandidate,
    decide,
)
from .normalizer import PLACEHOLDERS, ResponseNormalizer, TransformSpec, normalize
from .request_body import build_request_body

__all__ = [
    "PLACEHOLDERS",
    "Aborted",
    "AttemptExecutor",
    "CandidatePolicy",
    "Decision",
    "FallbackController",
    "FallbackOutcome",
    "ResponseNormalizer",
    "Succeeded",
    "TransformSpec",
    "TryingCandidate",
    "build_request_body",
    "classify_reply",
    "classify_status",
    "decide",
    "normalize",
    "select_candidates",
]
