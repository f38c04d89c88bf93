"""Runtime configuration and logging setup for RX Galaxy.

``GalaxyConfig`` holds the evaluator limits, harness pacing, remote catalog
settings and logging options. It can be loaded from YAML with
``load_config`` and adjusted through ``RX_GALAXY_*`` environment variables
with ``apply_env_overrides``.
"""

from __future__ import annotations

from collections.abc import Iterable
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
import yaml

from rx_galaxy.interpreter import DEFAULT_MAX_CALL_DEPTH, DEFAULT_MAX_STEPS


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or validated.

    Attributes:
        path: The configuration file that failed to load, if any.
    """

    def __init__(self, message: str, *, path: str | None = None) -> None:
        """Initialize with a message and the offending path.

        Args:
            message: Human-readable error description.
            path: Path of the configuration file.
        """
        super().__init__(message)
        self.path = path


class GalaxyConfig(BaseModel):
    """Settings shared by the evaluator, harness, registry and CLI.

    Attributes:
        log_level: Logging level name for the ``rx_galaxy`` logger.
        log_file: Optional log file path.
        api_url: Base URL of a remote mission API, or ``None`` to use only
            the bundled catalog.
        request_timeout_seconds: Timeout for remote catalog requests.
        max_steps: Execution step budget per evaluation.
        max_call_depth: Maximum nesting of function calls in a program.
        pacing_seconds: Delay between tests in the async harness.
        measure_time: Record per-test execution time.
        suppressed_messages: Log message fragments dropped by
            ``MessageSuppressionFilter``.
    """

    model_config = ConfigDict(frozen=True)

    log_level: str = "WARNING"
    log_file: str | None = None
    api_url: str | None = None
    request_timeout_seconds: float = 5.0
    max_steps: int = DEFAULT_MAX_STEPS
    max_call_depth: int = DEFAULT_MAX_CALL_DEPTH
    pacing_seconds: float = 0.0
    measure_time: bool = False
    suppressed_messages: tuple[str, ...] = ()

    @field_validator("max_steps", "max_call_depth")
    @classmethod
    def _must_be_positive(cls, v: int) -> int:
        """Validate that execution limits are >= 1."""
        if v < 1:
            msg = "Value must be >= 1"
            raise ValueError(msg)
        return v

    @field_validator("request_timeout_seconds")
    @classmethod
    def _timeout_positive(cls, v: float) -> float:
        """Validate that the request timeout is > 0."""
        if v <= 0:
            msg = "request_timeout_seconds must be > 0"
            raise ValueError(msg)
        return v

    @field_validator("pacing_seconds")
    @classmethod
    def _pacing_non_negative(cls, v: float) -> float:
        """Validate that the harness pacing delay is >= 0."""
        if v < 0:
            msg = "pacing_seconds must be >= 0"
            raise ValueError(msg)
        return v

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        """Validate that the log level names a standard logging level."""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            msg = f"Unknown log level: {v!r}"
            raise ValueError(msg)
        return level


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_config(path: str | Path) -> GalaxyConfig:
    """Load a ``GalaxyConfig`` from a YAML mapping.

    Args:
        path: Path to the YAML file.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If the file is missing, is not a YAML mapping, or fails
            validation.
    """
    file_path = Path(path)
    if not file_path.exists():
        msg = f"config file not found: {path}"
        raise ConfigError(msg, path=str(path))

    try:
        with file_path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        msg = f"config file is not valid YAML: {exc}"
        raise ConfigError(msg, path=str(path)) from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        msg = f"config file must contain a YAML mapping, got {type(data).__name__}"
        raise ConfigError(msg, path=str(path))

    try:
        return GalaxyConfig(**data)
    except ValidationError as exc:
        msg = f"invalid config: {exc}"
        raise ConfigError(msg, path=str(path)) from exc


# ---------------------------------------------------------------------------
# Environment variable support
# ---------------------------------------------------------------------------

_ENV_FIELD_MAP: dict[str, str] = {
    "RX_GALAXY_LOG_LEVEL": "log_level",
    "RX_GALAXY_API_URL": "api_url",
    "RX_GALAXY_MAX_STEPS": "max_steps",
}
"""Maps environment variable names to GalaxyConfig field names."""


def apply_env_overrides(config: GalaxyConfig) -> GalaxyConfig:
    """Apply ``RX_GALAXY_*`` env var overrides to a config.

    Environment variables override **default** field values but do **not**
    override values set explicitly (a field counts as explicitly set when
    its value differs from the ``GalaxyConfig`` default). Invalid values are
    ignored.

    Args:
        config: The configuration to apply overrides to.

    Returns:
        A new ``GalaxyConfig`` with env var overrides applied, or *config*
        itself when nothing applies.
    """
    defaults = GalaxyConfig()
    overrides: dict[str, Any] = {}

    for env_var, field_name in _ENV_FIELD_MAP.items():
        env_value = os.environ.get(env_var)
        if env_value is None:
            continue
        if getattr(config, field_name) != getattr(defaults, field_name):
            continue
        parsed = _parse_env_value(field_name, env_value)
        if parsed is not None:
            overrides[field_name] = parsed

    if not overrides:
        return config

    try:
        return GalaxyConfig(**{**config.model_dump(), **overrides})
    except ValidationError:
        return config


def _parse_env_value(field_name: str, raw: str) -> Any:
    """Parse a raw env var string for *field_name*; ``None`` when invalid."""
    if field_name == "log_level":
        level = raw.strip().upper()
        return level if level in logging.getLevelNamesMapping() else None

    if field_name == "api_url":
        return raw.strip() or None

    if field_name == "max_steps":
        try:
            value = int(raw)
        except ValueError:
            return None
        return value if value >= 1 else None

    return None


# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s - %(message)s"


class MessageSuppressionFilter(logging.Filter):
    """Drops log records whose message contains any of the given fragments."""

    def __init__(self, fragments: Iterable[str]) -> None:
        super().__init__()
        self.fragments = tuple(fragments)

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        message = record.getMessage()
        return not any(fragment in message for fragment in self.fragments)


def configure_logging(config: GalaxyConfig) -> None:
    """Configure Python logging for the ``rx_galaxy`` package.

    Sets up the ``"rx_galaxy"`` logger with a console handler, an optional
    file handler and, when ``suppressed_messages`` is non-empty, a
    ``MessageSuppressionFilter``. Idempotent: repeated calls do not
    duplicate handlers or filters.

    Args:
        config: Configuration providing ``log_level``, ``log_file`` and
            ``suppressed_messages``.
    """
    galaxy_logger = logging.getLogger("rx_galaxy")
    galaxy_logger.setLevel(getattr(logging, config.log_level.upper(), logging.INFO))

    has_console = any(
        type(h) is logging.StreamHandler for h in galaxy_logger.handlers
    )
    if not has_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_LOG_FORMAT))
        galaxy_logger.addHandler(console)

    if config.log_file is not None:
        resolved = str(Path(config.log_file).resolve())
        has_file = any(
            isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", None) == resolved
            for h in galaxy_logger.handlers
        )
        if not has_file:
            file_handler = logging.FileHandler(config.log_file)
            file_handler.setFormatter(logging.Formatter(_LOG_FORMAT))
            galaxy_logger.addHandler(file_handler)

    # Logger filters do not see records from child loggers; handler filters do.
    for handler in galaxy_logger.handlers:
        for existing in [f for f in handler.filters if isinstance(f, MessageSuppressionFilter)]:
            handler.removeFilter(existing)
        if config.suppressed_messages:
            handler.addFilter(MessageSuppressionFilter(config.suppressed_messages))
