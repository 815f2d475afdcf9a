"""Core configuration data types for the orchestrator.

This module defines the fundamental data structures used throughout the configuration
system, following the resolve-once, freeze-then-flow pattern.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Literal, NamedTuple

# --- Source Tracking Types ---

ConfigOrigin = Literal["programmatic", "env", "file", "default"]
SourceMap = Mapping[str, ConfigOrigin]

FIELD_ORDER: tuple[str, ...] = (
    "api_key",
    "endpoint",
    "document_candidates",
    "text_candidates",
    "document_retries",
    "text_retries",
    "retry_delay_seconds",
    "call_timeout_seconds",
)

# --- Core Configuration Data ---


class ResolvedConfig(NamedTuple):
    """Configuration after resolution from all sources, before freezing.

    This represents the validated, merged result of combining programmatic overrides,
    environment variables, files, and defaults. It includes audit metadata for
    observability.
    """

    api_key: str | None
    endpoint: str
    document_candidates: tuple[str, ...]
    text_candidates: tuple[str, ...]
    document_retries: int
    text_retries: int
    retry_delay_seconds: float
    call_timeout_seconds: float

    # Audit metadata - tracks where each field value came from
    origin: SourceMap

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        api_key_display = "[REDACTED]" if self.api_key else None
        return (
            f"ResolvedConfig(api_key={api_key_display!r}, endpoint={self.endpoint!r}, "
            f"document_candidates={self.document_candidates!r}, "
            f"text_candidates={self.text_candidates!r}, "
            f"document_retries={self.document_retries!r}, "
            f"text_retries={self.text_retries!r}, "
            f"retry_delay_seconds={self.retry_delay_seconds!r}, "
            f"call_timeout_seconds={self.call_timeout_seconds!r}, "
            f"origin={dict(self.origin)!r})"
        )

    def __repr__(self) -> str:
        """Repr with redacted API key for safe debugging."""
        return self.__str__()

    def to_frozen(self) -> "FrozenConfig":
        """Convert to the immutable configuration used at request time."""
        return FrozenConfig(
            api_key=self.api_key,
            endpoint=self.endpoint,
            document_candidates=self.document_candidates,
            text_candidates=self.text_candidates,
            document_retries=self.document_retries,
            text_retries=self.text_retries,
            retry_delay_seconds=self.retry_delay_seconds,
            call_timeout_seconds=self.call_timeout_seconds,
        )

    def with_overrides(self, **overrides: object) -> "ResolvedConfig":
        """Create a new ResolvedConfig with programmatic overrides applied.

        Unknown fields are ignored.
        """
        new_values = self._asdict()
        new_origin = dict(self.origin)

        for field, value in overrides.items():
            if field in FIELD_ORDER:
                new_values[field] = value
                new_origin[field] = "programmatic"

        new_values["origin"] = new_origin
        return ResolvedConfig(**new_values)

    def audit(self) -> str:
        """Generate a redacted audit report showing the origin of each field."""
        lines = []
        for field in FIELD_ORDER:
            if field not in self.origin:
                continue
            origin = self.origin[field]
            actual_value = getattr(self, field)

            if field == "api_key":
                if actual_value is None:
                    value_display = f"{origin}:None"
                elif origin == "env":
                    value_display = "env:[REDACTED]"
                else:
                    value_display = f"{origin}:<redacted>"
            elif isinstance(actual_value, tuple):
                joined = ",".join(actual_value)
                if origin == "env":
                    value_display = f"env:DARWIN_{field.upper()}={joined}"
                else:
                    value_display = f"{origin}:{joined}"
            elif origin == "env":
                value_display = f"env:DARWIN_{field.upper()}={actual_value}"
            else:
                value_display = f"{origin}:{actual_value}"

            lines.append(f"{field}: {value_display}")

        return "\n".join(lines)


@dataclass(frozen=True)
class FrozenConfig:
    """Immutable configuration shared by every request.

    The candidate templates and retry constants are read-only after startup,
    so concurrent requests may share one instance without locking.
    """

    api_key: str | None
    endpoint: str
    document_candidates: tuple[str, ...]
    text_candidates: tuple[str, ...]
    document_retries: int
    text_retries: int
    retry_delay_seconds: float
    call_timeout_seconds: float

    def __str__(self) -> str:
        """String representation with redacted API key for safe logging."""
        api_key_display = "[REDACTED]" if self.api_key else None
        return (
            f"FrozenConfig(api_key={api_key_display!r}, endpoint={self.endpoint!r}, "
            f"document_candidates={self.document_candidates!r}, "
            f"text_candidates={self.text_candidates!r}, "
            f"document_retries={self.document_retries!r}, "
            f"text_retries={self.text_retries!r}, "
            f"retry_delay_seconds={self.retry_delay_seconds!r}, "
            f"call_timeout_seconds={self.call_timeout_seconds!r})"
        )

    def __repr__(self) -> str:
        """Representation with redacted API key for safe debugging."""
        return self.__str__()
