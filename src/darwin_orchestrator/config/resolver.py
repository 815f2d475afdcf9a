"""Configuration resolution with precedence handling.

Merges configuration in the documented order:
Programmatic > Environment > Project file > Home file > Defaults
"""

import logging
import os
from pathlib import Path
from typing import Any

from .audit import SourceTracker
from .env_loader import EnvironmentConfigLoader
from .file_loader import ConfigFileError, FileConfigLoader
from .schema import DarwinSettings
from .types import ConfigOrigin, ResolvedConfig

log = logging.getLogger(__name__)


class ConfigResolver:
    """Resolves configuration from multiple sources with proper precedence."""

    def __init__(self) -> None:
        """Initialize the configuration resolver."""
        self.file_loader = FileConfigLoader()
        self.env_loader = EnvironmentConfigLoader()

    def resolve(
        self,
        programmatic: dict[str, Any] | None = None,
        *,
        profile: str | None = None,
        use_env_file: str | Path | None = None,
        project_root: Path | None = None,
    ) -> ResolvedConfig:
        """Resolve configuration from all sources with proper precedence.

        Args:
            programmatic: Programmatic overrides (highest precedence)
            profile: Profile name to load from files; defaults to ``DARWIN_PROFILE``
            use_env_file: Optional .env file to load
            project_root: Directory to search for pyproject.toml

        Returns:
            ResolvedConfig with merged values and source tracking.

        Raises:
            ValueError: If validation fails or environment values are invalid.
            ConfigFileError: If the project configuration file is malformed.
        """
        source_tracker = SourceTracker()
        merged_config: dict[str, Any] = {}

        if profile is None:
            profile = self.get_effective_profile()

        # Step 1: schema defaults
        for field, value in DarwinSettings.model_construct().to_dict().items():
            merged_config[field] = value
            source_tracker.set_origin(field, "default")

        # Step 2: home file
        try:
            home_config = self.file_loader.load_home_config(profile=profile)
        except ConfigFileError as e:
            log.warning("Ignoring home configuration: %s", e)
            home_config = {}
        self._apply(merged_config, source_tracker, home_config, "file")

        # Step 3: project file
        project_config = self.file_loader.load_project_config(
            project_root=project_root, profile=profile
        )
        self._apply(merged_config, source_tracker, project_config, "file")

        # Step 4: environment
        try:
            env_config = self.env_loader.load_env_config(env_file=use_env_file)
        except (ValueError, FileNotFoundError) as e:
            raise ValueError(f"Environment configuration error: {e}") from e
        self._apply(merged_config, source_tracker, env_config, "env")

        # Step 5: programmatic overrides
        if programmatic:
            self._apply(merged_config, source_tracker, programmatic, "programmatic")

        # Step 6: validate the merged result
        try:
            final_config = DarwinSettings(**merged_config).to_dict()
        except Exception as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

        return ResolvedConfig(**final_config, origin=source_tracker.get_source_map())

    def get_effective_profile(self) -> str | None:
        """Return the profile named by ``DARWIN_PROFILE``, if any."""
        return os.getenv("DARWIN_PROFILE") or None

    @staticmethod
    def _apply(
        merged: dict[str, Any],
        tracker: SourceTracker,
        values: dict[str, Any],
        origin: ConfigOrigin,
    ) -> None:
        for field, value in values.items():
            if field in merged:  # Only override known fields
                merged[field] = value
                tracker.set_origin(field, origin)
