"""Configuration loader for n8n-deployer."""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from n8ndeployer.errors import ConfigurationError


class ConfigLoader:
    """Loads the YAML file that supplies defaults for the deployer's CLI options.

    Flags must be YAML booleans. Every other key must be a non-empty string.
    """

    FLAG_KEYS = {"verbose", "lenient_readiness", "dry_run"}
    TEXT_KEYS = {"domain", "admin_user", "project_dir", "log_file"}
    SUPPORTED_KEYS = FLAG_KEYS | TEXT_KEYS

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        path = Path(config_path)
        if not path.is_file():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigurationError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigurationError("Config file must contain a YAML mapping at the root.")

        unknown = sorted(str(key) for key in set(parsed.keys()) - self.SUPPORTED_KEYS)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

        self.check_types(parsed)
        return parsed

    def check_types(self, values: Dict[str, Any]):
        for key in sorted(values):
            value = values[key]
            if key in self.FLAG_KEYS and not isinstance(value, bool):
                raise ConfigurationError(
                    f"Configuration key '{key}' must be true or false, got {value!r}."
                )
            if key in self.TEXT_KEYS and (not isinstance(value, str) or not value.strip()):
                raise ConfigurationError(
                    f"Configuration key '{key}' must be a non-empty string, got {value!r}."
                )
