"""Candidate selection: which backend models to try, in what order.

Two immutable templates are kept. Document-bearing requests only ever see the
document template, because a text-only model silently ignores embedded PDFs
and answers without the evidence.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING

from darwin_orchestrator.config.schema import (
    DEFAULT_DOCUMENT_CANDIDATES,
    DEFAULT_TEXT_CANDIDATES,
)
from darwin_orchestrator.core.types import _is_tuple_of, _require

if TYPE_CHECKING:
    from darwin_orchestrator.config.types import FrozenConfig
    from darwin_orchestrator.core.types import CompletionRequest


@dataclasses.dataclass(frozen=True, slots=True)
class CandidatePolicy:
    """Read-only candidate templates and per-candidate retry budgets."""

    document_candidates: tuple[str, ...] = DEFAULT_DOCUMENT_CANDIDATES
    text_candidates: tuple[str, ...] = DEFAULT_TEXT_CANDIDATES
    document_retries: int = 3
    text_retries: int = 1

    def __post_init__(self) -> None:
        """Validate that both templates are usable."""
        for field_name in ("document_candidates", "text_candidates"):
            value = getattr(self, field_name)
            _require(
                condition=_is_tuple_of(value, str) and len(value) > 0,
                message="must be a non-empty tuple[str, ...]",
                field_name=field_name,
            )
            _require(
                condition=all(v.strip() for v in value),
                message="candidate identifiers cannot be blank",
                field_name=field_name,
            )
        for field_name in ("document_retries", "text_retries"):
            value = getattr(self, field_name)
            _require(
                condition=isinstance(value, int) and value >= 1,
                message=f"must be an int >= 1, got {value!r}",
                field_name=field_name,
            )

    @classmethod
    def from_config(cls, config: FrozenConfig) -> CandidatePolicy:
        return cls(
            document_candidates=config.document_candidates,
            text_candidates=config.text_candidates,
            document_retries=config.document_retries,
            text_retries=config.text_retries,
        )

    def select(
        self,
        has_documents: bool,  # noqa: FBT001
        wants_structured: bool,  # noqa: ARG002, FBT001
    ) -> tuple[str, ...]:
        """Return the ordered candidates for a request shape.

        `wants_structured` does not narrow the list: every candidate is
        expected to honor a forced tool call.
        """
        return self.document_candidates if has_documents else self.text_candidates

    def retries_for(self, request: CompletionRequest) -> int:
        """Attempts allowed per candidate before advancing.

        Document requests have fewer capable candidates, so each one is
        worth exhausting; text requests rotate quickly instead.
        """
        return self.document_retries if request.has_documents else self.text_retries


def select_candidates(
    policy: CandidatePolicy,
    has_documents: bool,  # noqa: FBT001
    wants_structured: bool,  # noqa: FBT001
) -> tuple[str, ...]:
    """Module-level shorthand for `CandidatePolicy.select`."""
    return policy.select(has_documents, wants_structured)
