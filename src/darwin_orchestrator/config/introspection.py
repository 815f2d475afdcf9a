"""Configuration introspection utilities for debugging and validation."""

import json
import sys
from typing import Any

from .api import resolve_config
from .file_loader import ConfigFileError
from .types import ResolvedConfig

# ruff: noqa: T201


def check_config_validation(*, profile: str | None = None) -> bool:
    """Return True if the configuration resolves and validates."""
    try:
        resolve_config(profile=profile)
    except (ValueError, ConfigFileError):
        return False
    return True


def get_config_info(*, profile: str | None = None) -> dict[str, Any]:
    """Get structured configuration information for programmatic use."""
    try:
        resolved = resolve_config(profile=profile)
    except (ValueError, ConfigFileError) as e:
        return {
            "status": "invalid",
            "error": str(e),
            "config": None,
            "sources": {},
            "warnings": [],
        }

    frozen = resolved.to_frozen()
    return {
        "status": "valid",
        "config": {
            "endpoint": frozen.endpoint,
            "document_candidates": list(frozen.document_candidates),
            "text_candidates": list(frozen.text_candidates),
            "document_retries": frozen.document_retries,
            "text_retries": frozen.text_retries,
            "retry_delay_seconds": frozen.retry_delay_seconds,
            "call_timeout_seconds": frozen.call_timeout_seconds,
            "has_api_key": frozen.api_key is not None,
        },
        "sources": dict(resolved.origin),
        "warnings": _get_config_warnings(resolved),
    }


def print_config_debug(*, profile: str | None = None) -> None:
    """Print the effective configuration with sources and warnings."""
    try:
        resolved = resolve_config(profile=profile)
    except (ValueError, ConfigFileError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    print("=== Effective Configuration ===")
    print(resolved.audit())

    warnings = _get_config_warnings(resolved)
    if warnings:
        print("\n=== Warnings ===")
        for warning in warnings:
            print(f"  - {warning}")


def _get_config_warnings(resolved: ResolvedConfig) -> list[str]:
    warnings = []
    if not resolved.api_key:
        warnings.append("No API key configured - gateway calls will be rejected")
    if not resolved.endpoint.startswith("https://"):
        warnings.append("Gateway endpoint is not HTTPS")
    if resolved.retry_delay_seconds * resolved.document_retries > 30:
        warnings.append("Retry delays are long - document requests may stall")
    return warnings


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for configuration introspection."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Inspect darwin-orchestrator configuration",
        prog="python -m darwin_orchestrator.config",
    )
    parser.add_argument("--profile", help="Configuration profile to use")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON instead of human-readable format",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Just check if configuration is valid (exit code 0=valid, 1=invalid)",
    )
    args = parser.parse_args(argv)

    if args.check:
        sys.exit(0 if check_config_validation(profile=args.profile) else 1)

    if args.json:
        print(json.dumps(get_config_info(profile=args.profile), indent=2))
    else:
        print_config_debug(profile=args.profile)


if __name__ == "__main__":
    main()
