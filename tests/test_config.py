"""Tests for configuration loading and logging setup.

Validates ``GalaxyConfig``, ``load_config``, ``apply_env_overrides``,
``MessageSuppressionFilter`` and ``configure_logging`` in
``src/rx_galaxy/config.py``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from hypothesis import given, settings, strategies as st
from pydantic import ValidationError
from rx_galaxy.config import (
    ConfigError,
    GalaxyConfig,
    MessageSuppressionFilter,
    apply_env_overrides,
    configure_logging,
    load_config,
)
from rx_galaxy.interpreter import DEFAULT_MAX_CALL_DEPTH, DEFAULT_MAX_STEPS
import pytest

from tests.conftest import make_config

_ENV_VARS = ("RX_GALAXY_LOG_LEVEL", "RX_GALAXY_API_URL", "RX_GALAXY_MAX_STEPS")


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without RX_GALAXY_* variables."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ===========================================================================
# GalaxyConfig
# ===========================================================================


@pytest.mark.unit
class TestGalaxyConfig:
    """GalaxyConfig defaults and validators."""

    def test_defaults(self) -> None:
        config = GalaxyConfig()
        assert config.log_level == "WARNING"
        assert config.log_file is None
        assert config.api_url is None
        assert config.request_timeout_seconds == 5.0
        assert config.max_steps == DEFAULT_MAX_STEPS
        assert config.max_call_depth == DEFAULT_MAX_CALL_DEPTH
        assert config.pacing_seconds == 0.0
        assert config.measure_time is False
        assert config.suppressed_messages == ()

    @pytest.mark.parametrize("field", ["max_steps", "max_call_depth"])
    def test_limits_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError, match=">= 1"):
            make_config(**{field: 0})

    def test_timeout_must_be_positive(self) -> None:
        with pytest.raises(ValidationError, match="request_timeout_seconds"):
            make_config(request_timeout_seconds=0)

    def test_pacing_must_not_be_negative(self) -> None:
        with pytest.raises(ValidationError, match="pacing_seconds"):
            make_config(pacing_seconds=-0.1)

    def test_log_level_is_uppercased(self) -> None:
        assert make_config(log_level="debug").log_level == "DEBUG"

    def test_unknown_log_level_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Unknown log level"):
            make_config(log_level="chatty")

    @given(steps=st.integers(min_value=1, max_value=10**9))
    @settings(max_examples=30)
    def test_any_positive_step_budget_accepted(self, steps: int) -> None:
        """Property: every positive step budget is valid."""
        assert GalaxyConfig(max_steps=steps).max_steps == steps


# ===========================================================================
# load_config
# ===========================================================================


@pytest.mark.unit
class TestLoadConfig:
    """load_config() reads a YAML mapping into GalaxyConfig."""

    def test_loads_values(self, tmp_path: Path) -> None:
        path = tmp_path / "galaxy.yaml"
        path.write_text(
            "log_level: info\nmax_steps: 500\nsuppressed_messages: [noisy]\n",
            encoding="utf-8",
        )
        config = load_config(path)
        assert config.log_level == "INFO"
        assert config.max_steps == 500
        assert config.suppressed_messages == ("noisy",)

    def test_empty_file_gives_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == GalaxyConfig()

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found") as exc_info:
            load_config(tmp_path / "absent.yaml")
        assert exc_info.value.path is not None

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="YAML mapping"):
            load_config(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="not valid YAML"):
            load_config(path)

    def test_invalid_values(self, tmp_path: Path) -> None:
        path = tmp_path / "invalid.yaml"
        path.write_text("max_steps: 0\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="invalid config"):
            load_config(path)


# ===========================================================================
# apply_env_overrides
# ===========================================================================


@pytest.mark.unit
class TestApplyEnvOverrides:
    """RX_GALAXY_* variables override default values only."""

    def test_no_env_returns_same_instance(self) -> None:
        config = GalaxyConfig()
        assert apply_env_overrides(config) is config

    def test_overrides_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RX_GALAXY_LOG_LEVEL", "debug")
        monkeypatch.setenv("RX_GALAXY_API_URL", "http://api.test")
        monkeypatch.setenv("RX_GALAXY_MAX_STEPS", "250")
        config = apply_env_overrides(GalaxyConfig())
        assert config.log_level == "DEBUG"
        assert config.api_url == "http://api.test"
        assert config.max_steps == 250

    def test_explicit_values_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A value set in the config file is not replaced."""
        monkeypatch.setenv("RX_GALAXY_MAX_STEPS", "250")
        config = apply_env_overrides(make_config(max_steps=999))
        assert config.max_steps == 999

    @pytest.mark.parametrize(
        ("name", "value"),
        [
            ("RX_GALAXY_MAX_STEPS", "many"),
            ("RX_GALAXY_MAX_STEPS", "0"),
            ("RX_GALAXY_LOG_LEVEL", "chatty"),
            ("RX_GALAXY_API_URL", "   "),
        ],
    )
    def test_invalid_values_ignored(self, monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
        monkeypatch.setenv(name, value)
        assert apply_env_overrides(GalaxyConfig()) == GalaxyConfig()

    def test_other_fields_preserved(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RX_GALAXY_API_URL", "http://api.test")
        config = apply_env_overrides(make_config(measure_time=True, suppressed_messages=("x",)))
        assert config.measure_time is True
        assert config.suppressed_messages == ("x",)


# ===========================================================================
# Logging
# ===========================================================================


def _record(message: str) -> logging.LogRecord:
    return logging.LogRecord("rx_galaxy.test", logging.INFO, __file__, 1, message, None, None)


@pytest.mark.unit
class TestMessageSuppressionFilter:
    """The filter drops records containing a configured fragment."""

    def test_drops_matching_record(self) -> None:
        assert MessageSuppressionFilter(["noisy"]).filter(_record("a noisy line")) is False

    def test_keeps_other_records(self) -> None:
        assert MessageSuppressionFilter(["noisy"]).filter(_record("a calm line")) is True

    def test_no_fragments_keeps_everything(self) -> None:
        assert MessageSuppressionFilter([]).filter(_record("anything")) is True


@pytest.mark.unit
class TestConfigureLogging:
    """configure_logging() sets up the rx_galaxy logger idempotently."""

    def test_sets_level(self, clean_galaxy_logger: logging.Logger) -> None:
        configure_logging(make_config(log_level="DEBUG"))
        assert clean_galaxy_logger.level == logging.DEBUG

    def test_adds_one_console_handler(self, clean_galaxy_logger: logging.Logger) -> None:
        config = make_config()
        configure_logging(config)
        configure_logging(config)
        consoles = [h for h in clean_galaxy_logger.handlers if type(h) is logging.StreamHandler]
        assert len(consoles) == 1

    def test_file_handler_added_once(self, clean_galaxy_logger: logging.Logger, tmp_path: Path) -> None:
        config = make_config(log_file=str(tmp_path / "galaxy.log"), log_level="INFO")
        configure_logging(config)
        configure_logging(config)
        files = [h for h in clean_galaxy_logger.handlers if isinstance(h, logging.FileHandler)]
        assert len(files) == 1
        logging.getLogger("rx_galaxy.harness").info("written to file")
        files[0].flush()
        assert "written to file" in (tmp_path / "galaxy.log").read_text(encoding="utf-8")

    def test_suppression_filter_on_handlers(self, clean_galaxy_logger: logging.Logger) -> None:
        configure_logging(make_config(suppressed_messages=("noisy",)))
        configure_logging(make_config(suppressed_messages=("noisy",)))
        for handler in clean_galaxy_logger.handlers:
            filters = [f for f in handler.filters if isinstance(f, MessageSuppressionFilter)]
            assert len(filters) == 1
            assert filters[0].fragments == ("noisy",)

    def test_suppression_filter_removed_when_unset(self, clean_galaxy_logger: logging.Logger) -> None:
        configure_logging(make_config(suppressed_messages=("noisy",)))
        configure_logging(make_config())
        for handler in clean_galaxy_logger.handlers:
            assert not any(isinstance(f, MessageSuppressionFilter) for f in handler.filters)

    def test_child_records_are_suppressed(self, clean_galaxy_logger: logging.Logger, tmp_path: Path) -> None:
        """Records from child loggers pass through the handler filters."""
        log_file = tmp_path / "galaxy.log"
        configure_logging(make_config(log_file=str(log_file), log_level="INFO", suppressed_messages=("noisy",)))
        child = logging.getLogger("rx_galaxy.registry")
        child.info("a noisy line")
        child.info("a calm line")
        for handler in clean_galaxy_logger.handlers:
            handler.flush()
        text = log_file.read_text(encoding="utf-8")
        assert "a calm line" in text
        assert "a noisy line" not in text
