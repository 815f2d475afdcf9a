"""Configuration schema and validation using Pydantic.

This module defines the settings schema that validates and coerces configuration
values from various sources (environment, files, programmatic) into the correct
types with proper defaults.
"""

from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_ENDPOINT = "https://ai.gateway.lovable.dev/v1/chat/completions"

# Only candidates known to read inline PDFs belong here.
DEFAULT_DOCUMENT_CANDIDATES: tuple[str, ...] = (
    "google/gemini-3-flash-preview",
    "google/gemini-2.5-flash",
    "google/gemini-2.5-pro",
    "google/gemini-3-pro-preview",
)

DEFAULT_TEXT_CANDIDATES: tuple[str, ...] = (
    "google/gemini-3-flash-preview",
    "openai/gpt-5-mini",
    "google/gemini-2.5-flash",
    "openai/gpt-5.2",
    "openai/gpt-5-nano",
)

CandidateList = Annotated[tuple[str, ...], NoDecode]


class DarwinSettings(BaseSettings):
    """Pydantic settings schema for orchestrator configuration.

    Integrates with environment variables using the DARWIN_ prefix. Candidate
    lists accept comma-separated strings.
    """

    model_config = SettingsConfigDict(
        env_prefix="DARWIN_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    api_key: str | None = Field(
        default=None,
        description="Bearer credential for the model gateway",
    )

    endpoint: str = Field(
        default=DEFAULT_ENDPOINT,
        description="Chat completions endpoint of the model gateway",
        min_length=1,
    )

    document_candidates: CandidateList = Field(
        default=DEFAULT_DOCUMENT_CANDIDATES,
        description="Ordered models tried for requests carrying documents",
    )

    text_candidates: CandidateList = Field(
        default=DEFAULT_TEXT_CANDIDATES,
        description="Ordered models tried for text-only requests",
    )

    document_retries: int = Field(
        default=3,
        description="Attempts per candidate when documents are attached",
        ge=1,
    )

    text_retries: int = Field(
        default=1,
        description="Attempts per candidate for text-only requests",
        ge=1,
    )

    retry_delay_seconds: float = Field(
        default=2.0,
        description="Fixed wait between attempts on the same candidate",
        ge=0,
    )

    call_timeout_seconds: float = Field(
        default=120.0,
        description="Timeout for a single gateway call",
        gt=0,
    )

    # --- Validation Rules ---

    @field_validator("document_candidates", "text_candidates", mode="before")
    @classmethod
    def parse_candidates(cls, v: Any) -> tuple[str, ...]:
        """Accept comma-separated strings or sequences; reject empty lists."""
        if isinstance(v, str):
            items = [item.strip() for item in v.split(",")]
        elif isinstance(v, list | tuple):
            items = [str(item).strip() for item in v]
        else:
            raise ValueError(f"Invalid candidate list: {v!r}")

        items = [item for item in items if item]
        if not items:
            raise ValueError("Candidate list must contain at least one model")
        return tuple(items)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary suitable for SourceMap annotation."""
        return {
            "api_key": self.api_key,
            "endpoint": self.endpoint,
            "document_candidates": self.document_candidates,
            "text_candidates": self.text_candidates,
            "document_retries": self.document_retries,
            "text_retries": self.text_retries,
            "retry_delay_seconds": self.retry_delay_seconds,
            "call_timeout_seconds": self.call_timeout_seconds,
        }
