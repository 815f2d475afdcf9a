"""Core data types that flow through the orchestrator.

This module defines the immutable values created once per completion request:
the request itself, the tagged outcome of a single gateway attempt, and the
normalized result handed back to the calling feature. Nothing here holds
state across requests.
"""

from __future__ import annotations

import base64
import dataclasses
import enum
import logging
from types import MappingProxyType
import typing

if typing.TYPE_CHECKING:
    from collections.abc import Iterable

    from pydantic import BaseModel

log = logging.getLogger(__name__)

# Documents are large; the gateway call latency grows with every one attached.
MAX_DOCUMENT_PARTS = 3

# --- Minimal guard helpers (clarity > boilerplate) ---

T = typing.TypeVar("T")


def _freeze_mapping(
    m: dict[str, T] | typing.Mapping[str, T] | None,
) -> typing.Mapping[str, T] | None:
    """Return an immutable mapping view or None."""
    if m is None or isinstance(m, MappingProxyType):
        return m
    return MappingProxyType(dict(m))


def _is_tuple_of(value: object, typ: type | tuple[type, ...]) -> bool:
    return isinstance(value, tuple) and all(isinstance(v, typ) for v in value)


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Result Monad ---
# Attempt outcomes are values, not exceptions: the fallback controller
# branches on them without try/except around every gateway call.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful outcome."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed outcome, containing the error description."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]


# --- Request payload parts ---


@dataclasses.dataclass(frozen=True, slots=True)
class TextPart:
    """A plain text segment of a parted user payload."""

    text: str

    def __post_init__(self) -> None:
        """Validate TextPart invariants."""
        _require(
            condition=isinstance(self.text, str),
            message="text must be a str",
            exc=TypeError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class DocumentPart:
    """An embedded binary document (typically a PDF) sent inline.

    The gateway has no dedicated document content type, so documents travel
    as data URIs; see `data_uri`.
    """

    data: bytes
    mime_type: str = "application/pdf"
    name: str | None = None

    def __post_init__(self) -> None:
        """Validate DocumentPart invariants."""
        _require(
            condition=isinstance(self.data, bytes | bytearray),
            message="data must be bytes-like",
            exc=TypeError,
        )
        _require(
            condition=len(self.data) > 0,
            message="data must not be empty",
            field_name="data",
        )
        _require(
            condition=isinstance(self.mime_type, str) and self.mime_type.strip() != "",
            message="mime_type must be a non-empty str",
            exc=TypeError,
        )

    @classmethod
    def from_base64(
        cls, encoded: str, *, mime_type: str = "application/pdf", name: str | None = None
    ) -> DocumentPart:
        """Create a document from base64 text, as uploads usually arrive."""
        return cls(data=base64.b64decode(encoded), mime_type=mime_type, name=name)

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


type PayloadPart = TextPart | DocumentPart


@dataclasses.dataclass(frozen=True, slots=True)
class StructuredOutput:
    """Request for schema-constrained arguments instead of free text.

    `schema` is a JSON schema object. When `model` is a Pydantic v2 model,
    returned arguments are validated against it; otherwise only the schema's
    top-level `required` keys are checked.
    """

    name: str
    schema: typing.Mapping[str, typing.Any]
    description: str = ""
    model: type[BaseModel] | None = None

    def __post_init__(self) -> None:
        """Validate and freeze the schema mapping."""
        _require(
            condition=isinstance(self.name, str) and self.name.strip() != "",
            message="must be a non-empty str",
            field_name="name",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.schema, typing.Mapping),
            message="must be a mapping",
            field_name="schema",
            exc=TypeError,
        )
        object.__setattr__(self, "schema", _freeze_mapping(self.schema))

    @classmethod
    def from_model(
        cls, name: str, model: type[BaseModel], description: str = ""
    ) -> StructuredOutput:
        """Derive the JSON schema from a Pydantic model and keep it for validation."""
        return cls(
            name=name,
            schema=model.model_json_schema(),
            description=description or (model.__doc__ or "").strip(),
            model=model,
        )

    def required_keys(self) -> tuple[str, ...]:
        required = self.schema.get("required", ())
        return tuple(str(k) for k in required) if isinstance(required, list | tuple) else ()


@dataclasses.dataclass(frozen=True, slots=True)
class CompletionRequest:
    """One logical "ask the model" request, assembled by the calling feature.

    The orchestrator never inspects what the prompt means; it only looks at
    the payload shape (documents or not) and whether structured output is
    wanted.
    """

    system_instruction: str
    payload: str | tuple[PayloadPart, ...]
    structured_output: StructuredOutput | None = None
    temperature: float = 0.7
    max_output_tokens: int = 8000

    def __post_init__(self) -> None:
        """Validate CompletionRequest invariants."""
        _require(
            condition=isinstance(self.system_instruction, str)
            and self.system_instruction.strip() != "",
            message="must be a non-empty str",
            field_name="system_instruction",
        )
        if isinstance(self.payload, str):
            _require(
                condition=self.payload.strip() != "",
                message="text payload cannot be empty",
                field_name="payload",
            )
        else:
            _require(
                condition=_is_tuple_of(self.payload, (TextPart, DocumentPart)),
                message="must be a str or tuple[TextPart | DocumentPart, ...]",
                field_name="payload",
                exc=TypeError,
            )
            _require(
                condition=len(self.payload) > 0,
                message="parted payload must contain at least one part",
                field_name="payload",
            )
            _require(
                condition=len(self.documents) <= MAX_DOCUMENT_PARTS,
                message=f"at most {MAX_DOCUMENT_PARTS} document parts are allowed, "
                f"got {len(self.documents)}",
                field_name="payload",
            )
        _require(
            condition=self.structured_output is None
            or isinstance(self.structured_output, StructuredOutput),
            message="must be StructuredOutput or None",
            field_name="structured_output",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.temperature, int | float)
            and 0.0 <= self.temperature <= 2.0,
            message=f"must be numeric within [0.0, 2.0], got {self.temperature}",
            field_name="temperature",
        )
        _require(
            condition=isinstance(self.max_output_tokens, int)
            and self.max_output_tokens > 0,
            message=f"must be an int > 0, got {self.max_output_tokens}",
            field_name="max_output_tokens",
        )

    @classmethod
    def with_documents(
        cls,
        system_instruction: str,
        prompt: str,
        documents: Iterable[DocumentPart],
        *,
        label: str = "DOCUMENT",
        structured_output: StructuredOutput | None = None,
        temperature: float = 0.7,
        max_output_tokens: int = 8000,
    ) -> CompletionRequest:
        """Build a parted request: each document followed by its label, prompt last.

        Documents beyond `MAX_DOCUMENT_PARTS` are dropped rather than rejected.
        """
        docs = list(documents)
        if len(docs) > MAX_DOCUMENT_PARTS:
            log.warning(
                "Dropping %d of %d documents; only the first %d are sent",
                len(docs) - MAX_DOCUMENT_PARTS,
                len(docs),
                MAX_DOCUMENT_PARTS,
            )
            docs = docs[:MAX_DOCUMENT_PARTS]

        parts: list[PayloadPart] = []
        for index, doc in enumerate(docs, start=1):
            parts.append(doc)
            parts.append(TextPart(f"[Above is {label}: {doc.name or f'document-{index}'}]"))
        parts.append(TextPart(prompt))
        return cls(
            system_instruction=system_instruction,
            payload=tuple(parts),
            structured_output=structured_output,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    @property
    def documents(self) -> tuple[DocumentPart, ...]:
        if isinstance(self.payload, str):
            return ()
        return tuple(p for p in self.payload if isinstance(p, DocumentPart))

    @property
    def has_documents(self) -> bool:
        return bool(self.documents)

    @property
    def wants_structured(self) -> bool:
        return self.structured_output is not None


# --- Attempt classification ---


class FailureClass(str, enum.Enum):
    """Classification of a failed or anomalous gateway attempt."""

    RATE_LIMITED = "rate_limited"
    BILLING_REQUIRED = "billing_required"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    EMPTY_RESPONSE = "empty_response"
    TRANSPORT = "transport"


@dataclasses.dataclass(frozen=True, slots=True)
class AttemptFailure:
    """Why a single attempt did not produce a usable payload."""

    failure_class: FailureClass
    message: str
    status_code: int | None = None


type AttemptOutcome = Success[typing.Mapping[str, typing.Any]] | Failure[AttemptFailure]


@dataclasses.dataclass(frozen=True, slots=True)
class AttemptRecord:
    """Diagnostic record of one failed attempt against one candidate."""

    candidate: str
    attempt: int
    failure_class: FailureClass
    message: str


# --- Normalized result ---

DegradationReason = typing.Literal["truncated", "filtered", "empty"]


@dataclasses.dataclass(frozen=True, slots=True)
class Degradation:
    """Marks a nominally successful call whose content is incomplete."""

    reason: DegradationReason

    def __post_init__(self) -> None:
        """Validate the reason."""
        _require(
            condition=self.reason in ("truncated", "filtered", "empty"),
            message=f"must be one of ['truncated','filtered','empty'], got {self.reason!r}",
            field_name="reason",
        )


@dataclasses.dataclass(frozen=True, slots=True)
class NormalizedResult:
    """The single canonical value returned to the calling feature.

    `text` is never blank: degraded outcomes carry a human-readable
    placeholder alongside the `degraded` reason.
    """

    text: str
    structured: typing.Any = None
    degraded: Degradation | None = None
    model: str | None = None
    attempts: int = 0
    transform: str | None = None

    def __post_init__(self) -> None:
        """Validate that a result never presents blank text."""
        _require(
            condition=isinstance(self.text, str) and self.text.strip() != "",
            message="must be a non-empty str",
            field_name="text",
        )

    @property
    def is_degraded(self) -> bool:
        return self.degraded is not None

    def to_payload(self) -> dict[str, typing.Any]:
        """JSON-serializable response body for the calling feature."""
        return {
            "success": True,
            "result": self.text,
            "structured": self.structured,
            "degraded": (
                {"reason": self.degraded.reason} if self.degraded is not None else None
            ),
            "model": self.model,
        }
