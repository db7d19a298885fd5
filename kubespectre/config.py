"""
Configuration management for kubespectre.

Two layers:
- KubespectreSettings: user-facing settings loaded from .kubespectre.yaml
  and KUBESPECTRE_* environment variables, validated with pydantic.
- AuditConfig: the frozen per-run snapshot handed to every checker. It is
  built once per invocation and shared read-only across worker threads.

Precedence (highest to lowest):
1. Command-line flags (applied by the CLI)
2. Environment variables (KUBESPECTRE_*)
3. Config file values
4. Default values
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from kubespectre.constants import (
    CONFIG_FILE_NAMES,
    DEFAULT_FORMAT,
    DEFAULT_SEVERITY_MIN,
    DEFAULT_STALE_DAYS,
    DEFAULT_TIMEOUT,
    MAX_CONFIG_SIZE_BYTES,
)
from kubespectre.core.severity import Severity, parse_severity
from kubespectre.exceptions import ConfigurationError

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS: dict[str, float] = {
    "h": 3600.0,
    "m": 60.0,
    "s": 1.0,
    "ms": 0.001,
}


def parse_duration(value: str | int | float) -> float:
    """
    Parse a duration string into seconds.

    Accepts "5m", "90s", "1h30m", "250ms" or a bare number of seconds.

    Raises:
        ConfigurationError: If the value is not a valid duration
    """
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = value.strip().lower()
        if not text:
            raise ConfigurationError("Empty duration", field="timeout")

        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    break
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if pos != len(text):
                raise ConfigurationError(
                    f"Invalid duration '{value}' (use e.g. 90s, 5m, 1h30m)",
                    field="timeout",
                ) from None

    if seconds < 0:
        raise ConfigurationError("Duration cannot be negative", field="timeout")
    return seconds


class AuditConfig(BaseModel):
    """
    Read-only parameters for one audit run.

    Frozen so that all concurrently running checkers observe the same
    snapshot. Sequences are stored as tuples for the same reason.
    """

    model_config = ConfigDict(frozen=True)

    namespace: str = ""
    stale_days: int = DEFAULT_STALE_DAYS
    trusted_registries: tuple[str, ...] = ()
    severity_min: Severity = Severity.LOW
    cluster: str = ""
    excluded_namespaces: tuple[str, ...] = ()


class ExcludeConfig(BaseModel):
    """Resources to skip during auditing."""

    namespaces: list[str] = Field(default_factory=list)

    @field_validator("namespaces")
    @classmethod
    def strip_empty(cls, v: list[str]) -> list[str]:
        return [ns.strip() for ns in v if ns and ns.strip()]


class KubespectreSettings(BaseSettings):
    """
    User settings for kubespectre.

    Example environment variables:
        KUBESPECTRE_NAMESPACE=payments
        KUBESPECTRE_STALE_DAYS=30
        KUBESPECTRE_EXCLUDE__NAMESPACES='["kube-system"]'
    """

    model_config = SettingsConfigDict(
        env_prefix="KUBESPECTRE_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    namespace: str = ""
    stale_days: int = Field(default=DEFAULT_STALE_DAYS, ge=0, le=36500)
    # Kept as free text: unknown labels fall back to "low" when parsed
    severity_min: str = DEFAULT_SEVERITY_MIN
    format: Literal["text", "json", "sarif", "spectrehub"] = DEFAULT_FORMAT
    timeout: str = DEFAULT_TIMEOUT
    trusted_registries: list[str] = Field(default_factory=list)
    exclude: ExcludeConfig = Field(default_factory=ExcludeConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment overrides values read from the config file
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @field_validator("timeout", mode="before")
    @classmethod
    def validate_timeout(cls, v: Any) -> str:
        """Reject durations that cannot be parsed."""
        if v is None:
            return DEFAULT_TIMEOUT
        if isinstance(v, (int, float)):
            v = f"{v}s"
        try:
            parse_duration(v)
        except ConfigurationError as e:
            raise ValueError(e.message) from None
        return str(v)

    @field_validator("trusted_registries", mode="before")
    @classmethod
    def normalize_registries(cls, v: Any) -> list[str]:
        """Drop empty entries and trailing slashes."""
        if v is None:
            return []
        return [str(r).strip().rstrip("/") for r in v if r and str(r).strip()]

    @property
    def timeout_seconds(self) -> float:
        return parse_duration(self.timeout)

    @classmethod
    def from_yaml_file(cls, path: Path) -> "KubespectreSettings":
        """
        Load settings from a YAML file.

        SECURITY: Uses safe_load to prevent code execution.

        Raises:
            ConfigurationError: If the file is unreadable or invalid
        """
        try:
            if path.stat().st_size > MAX_CONFIG_SIZE_BYTES:
                raise ConfigurationError(f"Config file too large: {path.name}")
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"read config {path.name}: {e.strerror}") from e

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"parse config {path.name}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path.name} must contain a YAML mapping")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(
                f"invalid config {path.name}: {_first_error(e)}"
            ) from e

    def to_audit_config(
        self,
        cluster: str,
        namespace: str | None = None,
        stale_days: int | None = None,
        severity_min: str | None = None,
    ) -> AuditConfig:
        """Build the frozen per-run snapshot, applying CLI overrides."""
        return AuditConfig(
            namespace=namespace if namespace else self.namespace,
            stale_days=stale_days if stale_days is not None else self.stale_days,
            trusted_registries=tuple(self.trusted_registries),
            severity_min=parse_severity(severity_min or self.severity_min),
            cluster=cluster,
            excluded_namespaces=tuple(self.exclude.namespaces),
        )


def find_config_file(directory: Path) -> Path | None:
    """Return the first kubespectre config file present in directory."""
    for name in CONFIG_FILE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config(
    config_path: Path | None = None,
    directory: Path | None = None,
) -> KubespectreSettings:
    """
    Load settings from an explicit file, or search directory for one.

    Returns default settings (with environment overrides) when no file exists.

    Raises:
        ConfigurationError: If a file exists but is invalid
    """
    if config_path is None:
        config_path = find_config_file(directory or Path.cwd())

    if config_path is None:
        try:
            return KubespectreSettings()
        except ValidationError as e:
            raise ConfigurationError(f"invalid environment settings: {_first_error(e)}") from e

    return KubespectreSettings.from_yaml_file(config_path)


def _first_error(error: ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg', 'invalid value')}"
