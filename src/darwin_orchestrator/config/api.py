"""Public API for the configuration system."""

import os
from pathlib import Path
from typing import Any

from .env_loader import ENV_FIELDS
from .resolver import ConfigResolver
from .types import ResolvedConfig

_resolver = ConfigResolver()

# ruff: noqa: T201


def resolve_config(
    programmatic: dict[str, Any] | None = None,
    *,
    profile: str | None = None,
    use_env_file: str | Path | None = None,
    project_root: Path | None = None,
) -> ResolvedConfig:
    """Resolve configuration from all sources with proper precedence.

    Precedence: Programmatic > Environment > Project file > Home file > Defaults.

    Args:
        programmatic: Overrides with the highest precedence. Unknown keys are ignored.
        profile: Profile name to load from configuration files. If None,
            uses the DARWIN_PROFILE environment variable if set.
        use_env_file: Optional path to a .env file loaded before reading
            environment variables.
        project_root: Directory to search for pyproject.toml. If None,
            searches the current directory and parents.

    Returns:
        ResolvedConfig with merged values and source tracking for audit.

    Raises:
        ValueError: If validation fails or environment variables are invalid.
        ConfigFileError: If the project configuration file is malformed.

    Example:
        config = resolve_config({"text_retries": 2}, profile="staging")
        frozen = config.to_frozen()
    """
    return _resolver.resolve(
        programmatic=programmatic,
        profile=profile,
        use_env_file=use_env_file,
        project_root=project_root,
    )


def get_effective_profile() -> str | None:
    """Return the profile name from DARWIN_PROFILE, or None."""
    return _resolver.get_effective_profile()


def print_config_audit(config: ResolvedConfig) -> None:
    """Print a human-readable audit of configuration sources."""
    print(config.audit())


def check_environment() -> dict[str, str]:
    """Return the DARWIN_* environment variables currently set, redacted."""
    known = set(ENV_FIELDS) | {"DARWIN_PROFILE", "DARWIN_CONFIG_HOME", "DARWIN_TELEMETRY"}
    return {
        name: "<redacted>" if "API_KEY" in name else value
        for name, value in sorted(os.environ.items())
        if name in known
    }
