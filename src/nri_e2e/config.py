"""Run settings.

Settings are read from an optional YAML config file (~/.nri-e2e/config.yaml
or --config), overridden by NRI_E2E_* environment variables, overridden by
CLI flags.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

# Default values
DEFAULT_RETRY_ATTEMPTS = 10
DEFAULT_RETRY_SECONDS = 30
DEFAULT_REGION = "US"
REGIONS = ("US", "EU")

# Environment variable mappings
ENV_VARS = {
    "spec_path": "NRI_E2E_SPEC_PATH",
    "license_key": "NRI_E2E_LICENSE_KEY",
    "api_key": "NRI_E2E_API_KEY",
    "account_id": "NRI_E2E_ACCOUNT_ID",
    "agent_enabled": "NRI_E2E_AGENT_ENABLED",
    "retry_attempts": "NRI_E2E_RETRY_ATTEMPTS",
    "retry_seconds": "NRI_E2E_RETRY_SECONDS",
    "commit_sha": "NRI_E2E_COMMIT_SHA",
    "region": "NRI_E2E_REGION",
    "verbose": "NRI_E2E_VERBOSE",
}

SECRET_KEYS = ("license_key", "api_key")

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off", "")


@dataclass
class Settings:
    """Settings of one harness run."""

    spec_path: str = ""
    license_key: str = ""
    api_key: str = ""
    account_id: int = 0
    agent_enabled: bool = True
    retry_attempts: int = DEFAULT_RETRY_ATTEMPTS
    retry_seconds: int = DEFAULT_RETRY_SECONDS
    commit_sha: str = ""
    region: str = DEFAULT_REGION
    verbose: bool = False

    # Track where each value came from
    _sources: dict[str, str] = field(default_factory=dict, repr=False)

    @property
    def spec_parent_dir(self) -> Path:
        return Path(self.spec_path).resolve().parent

    def get_source(self, key: str) -> str:
        """Get the source of a settings value."""
        return self._sources.get(key, "default")

    def set(self, key: str, value: Any, source: str) -> None:
        """Set a value from a raw input, converting it to the field type."""
        setattr(self, key, _convert(key, value, source))
        self._sources[key] = source

    def validate(self) -> None:
        """Check that the run can start.

        Raises:
            ConfigurationError: Listing every missing or invalid value
        """
        problems = []
        if not self.spec_path:
            problems.append("spec_path is required")
        if self.agent_enabled and not self.license_key:
            problems.append("license_key is required when the agent is enabled")
        if not self.api_key:
            problems.append("api_key is required")
        if not self.account_id:
            problems.append("account_id is required")
        if self.region not in REGIONS:
            problems.append(f"region must be one of {', '.join(REGIONS)}, got '{self.region}'")
        if self.retry_attempts < 0:
            problems.append("retry_attempts must not be negative")
        if self.retry_seconds < 0:
            problems.append("retry_seconds must not be negative")

        if problems:
            raise ConfigurationError(
                "invalid settings: " + "; ".join(problems), data={"problems": problems}
            )

    def to_dict(self, reveal_secrets: bool = False) -> dict[str, Any]:
        """Settings values, secrets masked unless asked otherwise."""
        data = {}
        for f in fields(self):
            if f.name.startswith("_"):
                continue
            value = getattr(self, f.name)
            if f.name in SECRET_KEYS and value and not reveal_secrets:
                value = "****"
            data[f.name] = value
        return data


def _field_types() -> dict[str, type]:
    return {f.name: type(f.default) for f in fields(Settings) if not f.name.startswith("_")}


def _convert(key: str, value: Any, source: str) -> Any:
    types = _field_types()
    if key not in types:
        raise ConfigurationError(f"unknown setting '{key}' ({source})")

    expected = types[key]
    if expected is bool:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigurationError(f"{key} must be a boolean, got '{value}' ({source})")
    if expected is int:
        if isinstance(value, bool):
            raise ConfigurationError(f"{key} must be an integer, got '{value}' ({source})")
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"{key} must be an integer, got '{value}' ({source})"
            ) from e
    if key == "region":
        return str(value).strip().upper()
    return str(value)


def get_config_path() -> Path:
    """Get the default config file path.

    Returns:
        Path to ~/.nri-e2e/config.yaml
    """
    return Path.home() / ".nri-e2e" / "config.yaml"


def _read_config_file(config_path: Path) -> dict[str, Any]:
    try:
        with open(config_path) as f:
            content = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"reading config file {config_path}: {e}") from e
    if not isinstance(content, dict):
        raise ConfigurationError(f"config file {config_path} must contain a mapping")
    return content


def load_settings(
    config_path: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load run settings.

    Precedence (highest to lowest):
    1. CLI flags (overrides, None values are ignored)
    2. Environment variables
    3. Config file (--config, or ~/.nri-e2e/config.yaml when present)
    4. Defaults

    Args:
        config_path: Explicit config file, must exist
        overrides: Values given on the command line
        environ: Environment to read, defaults to os.environ

    Returns:
        Settings with values and sources

    Raises:
        ConfigurationError: Unreadable config file or unparsable value
    """
    settings = Settings()
    environ = os.environ if environ is None else environ

    # Load from config file
    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise ConfigurationError(f"config file not found: {path}")
    else:
        path = get_config_path()

    if path.exists():
        for key, value in _read_config_file(path).items():
            if value is not None:
                settings.set(key, value, "config file")

    # Override with environment variables
    for key, env_var in ENV_VARS.items():
        if environ.get(env_var):
            settings.set(key, environ[env_var], "environment")

    # Override with CLI flags
    for key, value in (overrides or {}).items():
        if value is not None:
            settings.set(key, value, "flag")

    return settings
