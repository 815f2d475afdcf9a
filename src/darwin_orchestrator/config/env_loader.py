"""Environment variable configuration loading.

This module handles loading configuration from environment variables with
the DARWIN_ prefix, including optional .env file support and type coercion.
"""

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .schema import DarwinSettings

ENV_FIELDS: dict[str, str] = {
    "DARWIN_API_KEY": "api_key",
    "DARWIN_ENDPOINT": "endpoint",
    "DARWIN_DOCUMENT_CANDIDATES": "document_candidates",
    "DARWIN_TEXT_CANDIDATES": "text_candidates",
    "DARWIN_DOCUMENT_RETRIES": "document_retries",
    "DARWIN_TEXT_RETRIES": "text_retries",
    "DARWIN_RETRY_DELAY_SECONDS": "retry_delay_seconds",
    "DARWIN_CALL_TIMEOUT_SECONDS": "call_timeout_seconds",
}


class EnvironmentConfigLoader:
    """Loads configuration from DARWIN_* environment variables."""

    def load_env_config(self, env_file: str | Path | None = None) -> dict[str, Any]:
        """Load configuration from environment variables.

        Args:
            env_file: Optional .env file loaded first. Variables already present
                in the environment are not overridden.

        Returns:
            Only the fields actually set in the environment, validated.

        Raises:
            FileNotFoundError: If ``env_file`` does not exist.
            ValueError: If environment variables contain invalid values.
        """
        if env_file:
            env_path = Path(env_file)
            if not env_path.exists():
                raise FileNotFoundError(f"Environment file not found: {env_path}")
            load_dotenv(env_path, override=False)

        env_values = {
            field_name: os.environ[env_var]
            for env_var, field_name in ENV_FIELDS.items()
            if env_var in os.environ
        }
        if not env_values:
            return {}

        try:
            settings = DarwinSettings(**env_values)
        except Exception as e:
            env_var_list = [
                f"{env_var}={'<redacted>' if 'API_KEY' in env_var else os.environ[env_var]}"
                for env_var, field_name in ENV_FIELDS.items()
                if field_name in env_values
            ]
            raise ValueError(
                f"Invalid environment variable values: {', '.join(env_var_list)}. "
                f"Error: {e}"
            ) from e

        return {field_name: getattr(settings, field_name) for field_name in env_values}
