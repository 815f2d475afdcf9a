"""Configuration for the completion orchestrator.

Configuration is resolved once, then frozen and shared by every request:

- ResolvedConfig: merged values with per-field origin for audit
- FrozenConfig: immutable values read at request time
- SourceMap: where each value came from
"""

from .api import (
    check_environment,
    get_effective_profile,
    print_config_audit,
    resolve_config,
)
from .file_loader import ConfigFileError
from .schema import (
    DEFAULT_DOCUMENT_CANDIDATES,
    DEFAULT_ENDPOINT,
    DEFAULT_TEXT_CANDIDATES,
    DarwinSettings,
)
from .types import ConfigOrigin, FrozenConfig, ResolvedConfig, SourceMap

__all__ = [
    "DEFAULT_DOCUMENT_CANDIDATES",
    "DEFAULT_ENDPOINT",
    "DEFAULT_TEXT_CANDIDATES",
    "ConfigFileError",
    "ConfigOrigin",
    "DarwinSettings",
    "FrozenConfig",
    "ResolvedConfig",
    "SourceMap",
    "check_environment",
    "get_effective_profile",
    "print_config_audit",
    "resolve_config",
]
