"""Tests for the CLI entry point.

Validates that ``main()`` in ``src/rx_galaxy/cli.py`` wires ``argparse``
subcommands to the registry, evaluator and harness: listing missions,
showing a briefing, previewing console output and running a mission's tests,
plus exit codes and error reporting.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from unittest.mock import patch

from rx_galaxy.cli import main
from rx_galaxy.models import PlayerStats
import pytest

from tests.conftest import ODD_FILTER_PROGRAM

_MODULE = "rx_galaxy.cli"


@pytest.fixture(autouse=True)
def _isolated(clean_galaxy_logger: logging.Logger, monkeypatch: pytest.MonkeyPatch) -> None:
    """Restore the rx_galaxy logger and drop RX_GALAXY_* variables."""
    for name in ("RX_GALAXY_LOG_LEVEL", "RX_GALAXY_API_URL", "RX_GALAXY_MAX_STEPS"):
        monkeypatch.delenv(name, raising=False)


def _run_cli(*argv: str) -> int:
    """Invoke ``main()`` with *argv* as the command line."""
    with patch("sys.argv", ["rx_galaxy", *argv]):
        return main()


# ===========================================================================
# missions / show
# ===========================================================================


@pytest.mark.unit
class TestMissionsCommand:
    """`missions` lists the catalog."""

    def test_lists_bundled_missions(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Every mission id appears, in catalog order."""
        assert _run_cli("missions") == 0
        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[0] for line in lines] == [
            "observable-base",
            "filter-anomaly",
            "map-station",
            "take-station",
        ]
        assert "Filter Anomaly" in lines[1]


@pytest.mark.unit
class TestShowCommand:
    """`show` prints a mission briefing."""

    def test_prints_briefing(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli("show", "take-station") == 0
        out = capsys.readouterr().out
        assert "Take Station" in out
        assert "Output:      [1, 2, 3]" in out
        assert "take(3)" in out

    def test_unknown_mission(self, capsys: pytest.CaptureFixture[str]) -> None:
        """An unknown id reports a missing mission and exits 1."""
        assert _run_cli("show", "nonexistent-mission") == 1
        assert "Mission data not found" in capsys.readouterr().err


# ===========================================================================
# run
# ===========================================================================


@pytest.mark.unit
class TestRunCommand:
    """`run` prints a program's console output."""

    def test_runs_starting_code(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli("run", "filter-anomaly") == 0
        assert capsys.readouterr().out.splitlines() == ["2", "4"]

    def test_runs_code_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        code = tmp_path / "solution.js"
        code.write_text("of('a', 'b').subscribe(v => console.log(v + '!'));\n", encoding="utf-8")
        assert _run_cli("run", "observable-base", "--code", str(code)) == 0
        assert capsys.readouterr().out.splitlines() == ["a!", "b!"]

    def test_broken_program(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Output logged before the failure is printed, then the error."""
        code = tmp_path / "broken.js"
        code.write_text("console.log('before');\nthrow 'after';\n", encoding="utf-8")
        assert _run_cli("run", "observable-base", "--code", str(code)) == 1
        captured = capsys.readouterr()
        assert captured.out.splitlines() == ["before"]
        assert "Error: Uncaught after" in captured.err

    def test_missing_code_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli("run", "observable-base", "--code", str(tmp_path / "absent.js")) == 1
        assert "code file not found" in capsys.readouterr().err


# ===========================================================================
# test
# ===========================================================================


@pytest.mark.unit
class TestTestCommand:
    """`test` runs a mission's tests and reports the outcome."""

    def test_bundled_tests_pass(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli("test", "map-station") == 0
        out = capsys.readouterr().out
        assert "[PASS] Should double all numbers" in out
        assert "1/1 tests passed" in out
        assert "Mission complete!" in out

    def test_blank_test_code_uses_code_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """A catalog test without its own code evaluates the submitted file."""
        catalog = tmp_path / "catalog"
        catalog.mkdir()
        (catalog / "missions.yaml").write_text(
            "missions:\n"
            "  - id: evens\n"
            "    title: Evens\n"
            "    description: Keep even numbers.\n"
            "    difficulty: medium\n"
            "    initial_code: ''\n"
            "    tests:\n"
            "      - name: Should only emit even numbers\n"
            "        expected_output: [2, 4]\n",
            encoding="utf-8",
        )
        (catalog / "planets.yaml").write_text("planets: []\n", encoding="utf-8")
        code = tmp_path / "odd.js"
        code.write_text(ODD_FILTER_PROGRAM, encoding="utf-8")

        with patch("rx_galaxy.catalog._CATALOG_DIR", catalog):
            exit_code = _run_cli("test", "evens", "--code", str(code))

        out = capsys.readouterr().out
        assert exit_code == 1
        assert "[FAIL] Should only emit even numbers" in out
        assert "Actual:   [1, 3, 5]" in out
        assert "0/1 tests passed" in out
        assert "Mission complete!" not in out

    def test_code_file_ignored_by_bundled_tests_is_reported(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Bundled tests carry their own code, so a submitted file only earns a warning."""
        code = tmp_path / "wrong.js"
        code.write_text(ODD_FILTER_PROGRAM, encoding="utf-8")
        assert _run_cli("test", "filter-anomaly", "--code", str(code)) == 0
        captured = capsys.readouterr()
        assert "Warning: every test of filter-anomaly has its own test code" in captured.err
        assert f"{code} is not evaluated" in captured.err

    def test_no_warning_without_code_file(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli("test", "filter-anomaly") == 0
        assert "Warning" not in capsys.readouterr().err

    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli("test", "observable-base", "--json") == 0
        payload = json.loads(capsys.readouterr().out)
        assert payload == [
            {
                "name": "Should emit numbers 1, 2, 3",
                "passed": True,
                "actual_output": [1, 2, 3],
                "expected_output": [1, 2, 3],
                "error": None,
                "execution_time_ms": None,
            }
        ]

    def test_measure_time_from_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = tmp_path / "galaxy.yaml"
        config.write_text("measure_time: true\n", encoding="utf-8")
        assert _run_cli("--config", str(config), "test", "take-station") == 0
        assert "Time:" in capsys.readouterr().out

    def test_unknown_mission(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli("test", "nonexistent-mission") == 1
        assert "Mission data not found" in capsys.readouterr().err

    def test_step_budget_from_env(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
        """RX_GALAXY_MAX_STEPS reaches the evaluator."""
        monkeypatch.setenv("RX_GALAXY_MAX_STEPS", "2")
        assert _run_cli("test", "observable-base") == 1
        assert "Error:    RangeError: Execution step limit of 2 exceeded" in capsys.readouterr().out


# ===========================================================================
# test --stats
# ===========================================================================


@pytest.mark.unit
class TestStatsFile:
    """`test --stats` credits a completed mission to a player stats file."""

    def test_new_player_file_is_created(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        stats_file = tmp_path / "player.json"
        assert _run_cli("test", "observable-base", "--stats", str(stats_file)) == 0
        stats = PlayerStats.model_validate_json(stats_file.read_text(encoding="utf-8"))
        assert stats.completed_missions == ["observable-base"]
        assert stats.fuel == PlayerStats().fuel + 100
        out = capsys.readouterr().out
        assert "Mission complete!" in out
        assert "1 mission(s) completed" in out

    def test_reward_paid_once(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        stats_file = tmp_path / "player.json"
        _run_cli("test", "map-station", "--stats", str(stats_file))
        first = stats_file.read_text(encoding="utf-8")
        capsys.readouterr()
        assert _run_cli("test", "map-station", "--stats", str(stats_file)) == 0
        assert stats_file.read_text(encoding="utf-8") == first
        out = capsys.readouterr().out
        assert "1 mission(s) completed" in out
        assert "Now in range" not in out

    def test_reports_planets_now_in_range(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Fuel from the reward brings planets within the new fuel level into range."""
        stats_file = tmp_path / "player.json"
        stats_file.write_text(
            PlayerStats(fuel=0, fuel_level=0, artifacts=0, captain_rank=0).model_dump_json(),
            encoding="utf-8",
        )
        assert _run_cli("test", "observable-base", "--stats", str(stats_file)) == 0
        out = capsys.readouterr().out
        assert "(filter-anomaly)" in out
        assert "(switchmap-vortex)" in out
        assert "(debounce-field)" not in out
        assert "Now in range: Observable Base" not in out

    def test_failed_mission_earns_nothing(self, tmp_path: Path) -> None:
        stats_file = tmp_path / "player.json"
        with patch("rx_galaxy.cli.is_mission_complete", return_value=False):
            assert _run_cli("test", "observable-base", "--stats", str(stats_file)) == 1
        assert not stats_file.exists()

    def test_invalid_stats_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        stats_file = tmp_path / "player.json"
        stats_file.write_text('{"fuel": "lots"}', encoding="utf-8")
        assert _run_cli("test", "observable-base", "--stats", str(stats_file)) == 1
        assert "invalid player stats file" in capsys.readouterr().err

    def test_json_mode_still_records(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        stats_file = tmp_path / "player.json"
        assert _run_cli("test", "take-station", "--json", "--stats", str(stats_file)) == 0
        json.loads(capsys.readouterr().out)
        assert "take-station" in stats_file.read_text(encoding="utf-8")


# ===========================================================================
# Errors and usage
# ===========================================================================


@pytest.mark.unit
class TestCliErrors:
    """Configuration and catalog problems exit 1 with a message on stderr."""

    def test_missing_config_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert _run_cli("--config", str(tmp_path / "absent.yaml"), "missions") == 1
        assert "Config error:" in capsys.readouterr().err

    def test_invalid_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        config = tmp_path / "galaxy.yaml"
        config.write_text("max_steps: -5\n", encoding="utf-8")
        assert _run_cli("--config", str(config), "missions") == 1
        assert "Config error:" in capsys.readouterr().err

    def test_broken_catalog(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("rx_galaxy.catalog._CATALOG_DIR", tmp_path):
            assert _run_cli("missions") == 1
        assert "Catalog error:" in capsys.readouterr().err

    def test_remote_registry_used_when_api_configured(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RX_GALAXY_API_URL", "http://api.test")
        with patch(f"{_MODULE}.RemoteMissionRegistry") as mock_remote:
            mock_remote.return_value.list_missions.return_value = []
            assert _run_cli("missions") == 0
        mock_remote.assert_called_once_with("http://api.test", timeout=5.0)

    def test_subcommand_required(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _run_cli()
        assert exc_info.value.code == 2
        assert "usage:" in capsys.readouterr().err

    def test_help_exits_zero(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _run_cli("--help")
        assert exc_info.value.code == 0
        assert "missions" in capsys.readouterr().out
