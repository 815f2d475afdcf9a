"""CLI entry point for configuration introspection.

Usage:
    python -m darwin_orchestrator.config
    python -m darwin_orchestrator.config --check
    python -m darwin_orchestrator.config --json
"""

from .introspection import main

if __name__ == "__main__":
    main()
