"""Configuration loader with YAML/JSON parsing and environment variable substitution."""

import yaml
import os
import re
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..utils.errors import ConfigLoadError
from .models import ExporterConfig


class ConfigLoader:
    """Load and validate exporter configuration."""

    @staticmethod
    def load_from_file(config_path: str) -> ExporterConfig:
        """
        Load configuration from a YAML or JSON file.

        JSON is read with the YAML parser, so both config.json and
        config.yaml work.

        Args:
            config_path: Path to configuration file

        Returns:
            ExporterConfig: Validated configuration object

        Raises:
            ConfigLoadError: If the file is missing, unparsable or invalid
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigLoadError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r') as f:
                raw_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigLoadError(f"Failed to read {config_path}: {e}") from e

        if not isinstance(raw_config, dict):
            raise ConfigLoadError(f"Configuration root must be a mapping: {config_path}")

        # Substitute environment variables
        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        try:
            return ExporterConfig(**raw_config)
        except ValidationError as e:
            raise ConfigLoadError(f"Invalid configuration in {config_path}: {e}") from e

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
