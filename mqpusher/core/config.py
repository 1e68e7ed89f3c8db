"""
Pipeline configuration loading.

Loads the run configuration from a YAML file, applies command-line
overrides and validates the result into a PipelineConfig.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mqpusher.core.errors import ConfigurationError
from mqpusher.core.models import PipelineConfig


class ConfigLoader:
    """
    Loads a PipelineConfig from a YAML configuration file.

    Expected YAML format:
    ```yaml
    source:
      csv:
        filename: /data/users.csv.gz
      # or
      db:
        host: localhost
        database: legacy
        user: reader
        query: SELECT * FROM users ORDER BY id

    script:
      filename: scripts/convert.py

    target:
      rabbit:
        host: localhost
        port: 5672
        username: guest
        password: guest
      publisher:
        exchange: ""
        routing_key: users
    ```
    """

    def __init__(self, config_path: str | Path):
        """
        Initialize the config loader.

        Args:
            config_path: Path to the YAML configuration file
        """
        self.config_path = Path(config_path)

    def load(self, csv_file: str | None = None, script_file: str | None = None) -> PipelineConfig:
        """
        Load, override and validate the configuration.

        Args:
            csv_file: When set, replaces the configured source with this CSV file
            script_file: When set, replaces the configured script

        Returns:
            Validated PipelineConfig

        Raises:
            ConfigurationError: If the file cannot be read or parsed, or the
                resulting configuration is invalid
        """
        raw = self._read()

        if csv_file:
            raw["source"] = {"csv": {"filename": csv_file}}
        if script_file:
            raw["script"] = {"filename": script_file}

        return parse_config(raw)

    def _read(self) -> dict[str, Any]:
        try:
            with open(self.config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except OSError as e:
            raise ConfigurationError(f"reading config {self.config_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"parsing config {self.config_path}: {e}") from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationError(
                f"parsing config {self.config_path}: top level must be a mapping, "
                f"got {type(config).__name__}"
            )
        return config


def parse_config(raw: dict[str, Any]) -> PipelineConfig:
    """
    Validate a raw configuration mapping.

    Args:
        raw: Configuration as loaded from YAML

    Returns:
        Validated PipelineConfig

    Raises:
        ConfigurationError: With one entry per offending field
    """
    try:
        return PipelineConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError("invalid config", fields=errors_by_field(e)) from e


def errors_by_field(error: ValidationError) -> dict[str, str]:
    """Flatten pydantic errors into {"dotted.field.path": "message"}."""
    fields: dict[str, str] = {}
    for item in error.errors():
        path = ".".join(str(part) for part in item["loc"]) or "config"
        fields[path] = item["msg"]
    return fields
