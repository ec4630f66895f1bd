"""Configuration loading for connectarr."""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""


def _config_dir() -> Path:
    return Path.home() / ".config" / "connectarr"


def _default_registry_path() -> Path:
    """Get the default instance registry path."""
    return _config_dir() / "instances.json"


@dataclass
class RegistryConfig:
    """Where configured instances are stored."""

    path: Path = field(default_factory=_default_registry_path)


@dataclass
class ClientConfig:
    """Settings for library reads against an instance."""

    cache_ttl: int = 300
    max_retries: int = 3


@dataclass
class DetectionConfig:
    """Settings for type detection when a URL is committed."""

    debounce: float = 0.5


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "info"


# --- Helper functions for parsing config sections ---


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"[{name}] must be a table")
    return section


def _number(value: object, name: str, kind: type[int] | type[float]) -> Any:
    try:
        number = kind(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}") from e
    if number < 0:
        raise ConfigurationError(f"{name} must not be negative")
    return number


def _log_level(value: str, name: str) -> str:
    level = value.lower()
    if level not in LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid value for {name}: {value!r}. Use: {', '.join(LOG_LEVELS)}"
        )
    return level


def _parse_registry_from_dict(data: dict[str, Any]) -> RegistryConfig:
    section = _section(data, "registry")
    if "path" not in section:
        return RegistryConfig()
    return RegistryConfig(path=Path(section["path"]).expanduser())


def _parse_client_from_dict(data: dict[str, Any]) -> ClientConfig:
    section = _section(data, "client")
    defaults = ClientConfig()
    return ClientConfig(
        cache_ttl=_number(section.get("cache_ttl", defaults.cache_ttl), "cache_ttl", int),
        max_retries=_number(section.get("max_retries", defaults.max_retries), "max_retries", int),
    )


def _parse_detection_from_dict(data: dict[str, Any]) -> DetectionConfig:
    section = _section(data, "detection")
    debounce = section.get("debounce", DetectionConfig().debounce)
    return DetectionConfig(debounce=_number(debounce, "debounce", float))


def _parse_logging_from_dict(data: dict[str, Any]) -> LoggingConfig:
    section = _section(data, "logging")
    if "level" not in section:
        return LoggingConfig()
    return LoggingConfig(level=_log_level(str(section["level"]), "logging.level"))


@dataclass
class Config:
    """Application configuration."""

    registry: RegistryConfig = field(default_factory=RegistryConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls) -> Self:
        """Load configuration from environment and config file.

        Configuration precedence (highest to lowest):
        1. Environment variables
        2. Config file (~/.config/connectarr/config.toml)

        Environment variables:
        - CONNECTARR_REGISTRY_PATH
        - CONNECTARR_CACHE_TTL
        - CONNECTARR_MAX_RETRIES
        - CONNECTARR_DETECTION_DEBOUNCE
        - CONNECTARR_LOG_LEVEL

        Raises:
            ConfigurationError: If the config file or a variable is invalid
        """
        config = cls()

        config_file = _config_dir() / "config.toml"
        if config_file.exists():
            config = cls._load_from_file(config_file)

        return cls._load_from_env(config)

    @classmethod
    def _load_from_file(cls, path: Path) -> Self:
        """Load configuration from a TOML file.

        Raises:
            ConfigurationError: If file cannot be parsed
        """
        try:
            with path.open("rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid config file: {e}") from e

        return cls(
            registry=_parse_registry_from_dict(data),
            client=_parse_client_from_dict(data),
            detection=_parse_detection_from_dict(data),
            logging=_parse_logging_from_dict(data),
        )

    @classmethod
    def _load_from_env(cls, base: Self) -> Self:
        """Override configuration with environment variables."""
        registry = base.registry
        registry_path = os.environ.get("CONNECTARR_REGISTRY_PATH")
        if registry_path:
            registry = RegistryConfig(path=Path(registry_path).expanduser())

        client = base.client
        cache_ttl = os.environ.get("CONNECTARR_CACHE_TTL")
        max_retries = os.environ.get("CONNECTARR_MAX_RETRIES")
        if cache_ttl or max_retries:
            client = ClientConfig(
                cache_ttl=_number(cache_ttl, "CONNECTARR_CACHE_TTL", int)
                if cache_ttl
                else client.cache_ttl,
                max_retries=_number(max_retries, "CONNECTARR_MAX_RETRIES", int)
                if max_retries
                else client.max_retries,
            )

        detection = base.detection
        debounce = os.environ.get("CONNECTARR_DETECTION_DEBOUNCE")
        if debounce:
            detection = DetectionConfig(
                debounce=_number(debounce, "CONNECTARR_DETECTION_DEBOUNCE", float)
            )

        logging_config = base.logging
        level = os.environ.get("CONNECTARR_LOG_LEVEL")
        if level:
            logging_config = LoggingConfig(level=_log_level(level, "CONNECTARR_LOG_LEVEL"))

        return cls(
            registry=registry, client=client, detection=detection, logging=logging_config
        )
