"""CLI entry point for the RX Galaxy mission evaluator.

Provides ``main()`` as the console-script entry point registered in
``pyproject.toml`` as ``rx_galaxy = "rx_galaxy.cli:main"``. Subcommands list
the catalog, show a mission briefing, preview a program's console output and
run a mission's tests.
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys
from typing import Any

from pydantic import ValidationError

from rx_galaxy.catalog import CatalogError
from rx_galaxy.config import (
    ConfigError,
    GalaxyConfig,
    apply_env_overrides,
    configure_logging,
    load_config,
)
from rx_galaxy.evaluator import run_program
from rx_galaxy.harness import run_tests
from rx_galaxy.models import Mission, Planet, PlayerStats, TestResult
from rx_galaxy.progress import apply_mission_reward, can_travel, unlock_planets
from rx_galaxy.registry import MissionRegistry, MissionSource, RemoteMissionRegistry
from rx_galaxy.scoring import is_mission_complete, summarize

_SEP = "=" * 60


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser.

    Returns:
        Configured ``ArgumentParser`` with the ``missions``, ``show``,
        ``run`` and ``test`` subcommands.
    """
    parser = argparse.ArgumentParser(
        prog="rx_galaxy",
        description="RX Galaxy: learn reactive streams one mission at a time.",
    )
    parser.add_argument(
        "--config",
        required=False,
        default=None,
        help="Path to an optional GalaxyConfig YAML file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("missions", help="List the missions in the catalog.")

    show = subparsers.add_parser("show", help="Print a mission briefing and its starting code.")
    show.add_argument("mission_id", help="Mission identifier.")

    run = subparsers.add_parser("run", help="Run a program and print its console output.")
    run.add_argument("mission_id", help="Mission identifier.")
    run.add_argument(
        "--code",
        default=None,
        help="Program file to run instead of the mission's starting code.",
    )

    test = subparsers.add_parser("test", help="Run a mission's tests against a program.")
    test.add_argument("mission_id", help="Mission identifier.")
    test.add_argument(
        "--code",
        default=None,
        help=(
            "Program file evaluated by tests that carry no test code of their own"
            " (default: the mission's starting code)."
        ),
    )
    test.add_argument(
        "--stats",
        default=None,
        help="Player stats JSON file credited with the reward when the mission is complete.",
    )
    test.add_argument(
        "--json",
        action="store_true",
        help="Print the test results as JSON.",
    )
    return parser


def _load_program(path: str | None, mission: Mission) -> str:
    """Return the program text to use: the file at *path* or the starting code.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    if path is None:
        return mission.initial_code
    file_path = Path(path)
    if not file_path.exists():
        msg = f"code file not found: {path}"
        raise FileNotFoundError(msg)
    return file_path.read_text(encoding="utf-8")


def _load_stats(path: Path) -> PlayerStats:
    """Read player stats from *path*; a missing file starts a new player.

    Raises:
        ValueError: If the file is not valid player stats JSON.
    """
    if not path.exists():
        return PlayerStats()
    try:
        return PlayerStats.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        msg = f"invalid player stats file {path}: {exc.error_count()} validation error(s)"
        raise ValueError(msg) from exc


def _credit_reward(
    path: Path, mission: Mission, registry: MissionSource
) -> tuple[PlayerStats, list[Planet]]:
    """Credit *mission*'s reward to the stats file at *path*.

    Returns:
        The updated stats and the planets that came into range with them.
    """
    before = _load_stats(path)
    after = apply_mission_reward(before, mission.id, mission.reward)
    if after is before:
        return after, []
    path.write_text(after.model_dump_json(indent=2), encoding="utf-8")
    planets = registry.list_planets()
    in_range = {p.id for p in unlock_planets(planets, before) if can_travel(p, before)}
    reached = [
        p for p in unlock_planets(planets, after) if can_travel(p, after) and p.id not in in_range
    ]
    return after, reached


def _make_registry(config: GalaxyConfig) -> MissionSource:
    """Pick the remote registry when an API URL is configured."""
    if config.api_url:
        return RemoteMissionRegistry(config.api_url, timeout=config.request_timeout_seconds)
    return MissionRegistry()


def _format_values(values: list[Any]) -> str:
    return json.dumps(values, ensure_ascii=False)


def _print_missions(registry: MissionSource) -> None:
    for mission in registry.list_missions():
        print(f"{mission.id:<20} {mission.difficulty.value:<8} {mission.title}")


def _print_mission(mission: Mission) -> None:
    print(_SEP)
    print(mission.title)
    print(_SEP)
    print(f"  Id:          {mission.id}")
    print(f"  Difficulty:  {mission.difficulty.value}")
    print(f"  Input:       {_format_values(mission.input_marbles)}")
    print(f"  Output:      {_format_values(mission.output_marbles)}")
    print(
        f"  Reward:      fuel {mission.reward.fuel:g}, "
        f"artifacts {mission.reward.artifacts:g}, rank {mission.reward.rank:g}"
    )
    print(f"  Tests:       {len(mission.tests)}")
    print(_SEP)
    print(mission.description)
    print()
    print(mission.initial_code.rstrip())


def _print_results(results: list[TestResult]) -> None:
    for result in results:
        mark = "PASS" if result.passed else "FAIL"
        print(f"[{mark}] {result.name}")
        print(f"       Expected: {_format_values(result.expected_output)}")
        if result.error is not None:
            print(f"       Error:    {result.error}")
        else:
            print(f"       Actual:   {_format_values(result.actual_output)}")
        if result.execution_time_ms is not None:
            print(f"       Time:     {result.execution_time_ms:.2f} ms")
    summary = summarize(results)
    print(_SEP)
    print(f"{summary.passed}/{summary.total} tests passed")


def _print_reward(stats: PlayerStats, reached: list[Planet]) -> None:
    print(
        f"Fuel {stats.fuel:g} (level {stats.fuel_level:g}), "
        f"artifacts {stats.artifacts:g}, rank {stats.captain_rank:g}, "
        f"{len(stats.completed_missions)} mission(s) completed"
    )
    for planet in reached:
        print(f"Now in range: {planet.name} ({planet.id})")


def _run_command(args: argparse.Namespace, config: GalaxyConfig) -> int:
    """Dispatch one parsed subcommand and return its exit code."""
    registry = _make_registry(config)

    if args.command == "missions":
        _print_missions(registry)
        return 0

    mission = registry.get_mission(args.mission_id)
    if mission is None:
        print("Mission data not found", file=sys.stderr)
        return 1

    if args.command == "show":
        _print_mission(mission)
        return 0

    program_text = _load_program(args.code, mission)

    if args.command == "run":
        outcome = run_program(
            program_text, max_steps=config.max_steps, max_call_depth=config.max_call_depth
        )
        for line in outcome.logs:
            print(line)
        if not outcome.ok:
            print(f"Error: {outcome.message}", file=sys.stderr)
            return 1
        return 0

    if args.code is not None and all(t.test_code.strip() for t in mission.tests):
        print(
            f"Warning: every test of {mission.id} has its own test code; "
            f"{args.code} is not evaluated",
            file=sys.stderr,
        )

    results = run_tests(
        program_text,
        mission.tests,
        measure_time=config.measure_time,
        max_steps=config.max_steps,
        max_call_depth=config.max_call_depth,
    )
    if args.json:
        print(json.dumps([r.model_dump(mode="json") for r in results], indent=2))
    else:
        _print_results(results)
    if not is_mission_complete(results):
        return 1
    if not args.json:
        print("Mission complete!")
    if args.stats is not None:
        stats, reached = _credit_reward(Path(args.stats), mission, registry)
        if not args.json:
            _print_reward(stats, reached)
    return 0


def main() -> int:
    """Entry point for the rx_galaxy CLI application.

    Returns:
        Exit code: 0 on success (for ``test``, when every test passed),
        1 on failure or error.
    """
    parser = _build_parser()
    args = parser.parse_args()

    try:
        config = load_config(args.config) if args.config is not None else GalaxyConfig()
        config = apply_env_overrides(config)
        configure_logging(config)
        return _run_command(args, config)
    except ConfigError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 1
    except CatalogError as exc:
        print(f"Catalog error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
