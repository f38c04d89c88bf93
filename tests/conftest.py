"""Shared fixtures for the rx_galaxy test suite."""

from __future__ import annotations

from collections.abc import Iterator
import logging
from pathlib import Path
from typing import Any

import pytest
from rx_galaxy.catalog import _reset_catalog
from rx_galaxy.config import GalaxyConfig
from rx_galaxy.models import (
    Difficulty,
    Mission,
    Planet,
    PlanetType,
    PlayerStats,
    Position,
    Reward,
    TestCase,
    TestResult,
)

# ---------------------------------------------------------------------------
# Programs used across test modules
# ---------------------------------------------------------------------------

OBSERVABLE_PROGRAM = """
const results = [];
const numbers$ = new Observable(subscriber => {
  subscriber.next(1);
  subscriber.next(2);
  subscriber.next(3);
  subscriber.complete();
});
numbers$.subscribe(value => results.push(value));
return results;
"""

EVEN_FILTER_PROGRAM = """
const results = [];
of(1, 2, 3, 4, 5).pipe(filter(n => n % 2 === 0)).subscribe(value => results.push(value));
return results;
"""

ODD_FILTER_PROGRAM = """
const results = [];
of(1, 2, 3, 4, 5).pipe(filter(n => n % 2 === 1)).subscribe(value => results.push(value));
return results;
"""

# ---------------------------------------------------------------------------
# Factory functions (plain functions, importable from conftest)
# ---------------------------------------------------------------------------


def make_test_case(**overrides: Any) -> TestCase:
    """Build a valid TestCase with sensible defaults.

    Args:
        **overrides: Field values to override.

    Returns:
        A fully constructed TestCase instance.
    """
    defaults: dict[str, Any] = {
        "name": "Should emit numbers 1, 2, 3",
        "expected_output": [1, 2, 3],
        "test_code": OBSERVABLE_PROGRAM,
    }
    defaults.update(overrides)
    return TestCase(**defaults)


def make_mission(**overrides: Any) -> Mission:
    """Build a valid Mission with sensible defaults.

    Args:
        **overrides: Field values to override.

    Returns:
        A fully constructed Mission instance.
    """
    defaults: dict[str, Any] = {
        "id": "observable-base",
        "title": "Observable Base Station",
        "description": "Create an Observable that emits a sequence of numbers.",
        "difficulty": Difficulty.EASY,
        "initial_code": "const numbers$ = of(1, 2, 3);\nnumbers$.subscribe(v => console.log(v));\n",
        "tests": [make_test_case()],
        "input_marbles": [1, 2, 3],
        "output_marbles": [1, 2, 3],
        "reward": Reward(fuel=100, artifacts=0.25, rank=50),
    }
    defaults.update(overrides)
    return Mission(**defaults)


def make_result(**overrides: Any) -> TestResult:
    """Build a valid passing TestResult with sensible defaults.

    Args:
        **overrides: Field values to override.

    Returns:
        A fully constructed TestResult instance.
    """
    defaults: dict[str, Any] = {
        "name": "Should emit numbers 1, 2, 3",
        "passed": True,
        "actual_output": [1, 2, 3],
        "expected_output": [1, 2, 3],
    }
    defaults.update(overrides)
    return TestResult(**defaults)


def make_planet(**overrides: Any) -> Planet:
    """Build a valid Planet with sensible defaults.

    Args:
        **overrides: Field values to override.

    Returns:
        A fully constructed Planet instance.
    """
    defaults: dict[str, Any] = {
        "id": "map-station",
        "name": "Map Station",
        "description": "Transform data with the map operator",
        "distance": "4.36.9kam",
        "type": PlanetType.CHALLENGE,
        "unlocked": False,
        "position": Position(x=800, y=200),
        "color": "#FF6B6B",
        "required_fuel": 50,
        "reward": Reward(fuel=150, artifacts=0.5, rank=75),
    }
    defaults.update(overrides)
    return Planet(**defaults)


def make_stats(**overrides: Any) -> PlayerStats:
    """Build PlayerStats with sensible defaults.

    Args:
        **overrides: Field values to override.

    Returns:
        A fully constructed PlayerStats instance.
    """
    defaults: dict[str, Any] = {}
    defaults.update(overrides)
    return PlayerStats(**defaults)


def make_config(**overrides: Any) -> GalaxyConfig:
    """Build a valid GalaxyConfig with sensible defaults.

    Args:
        **overrides: Field values to override.

    Returns:
        A fully constructed GalaxyConfig instance.
    """
    defaults: dict[str, Any] = {}
    defaults.update(overrides)
    return GalaxyConfig(**defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_catalog() -> Iterator[None]:
    """Drop the cached catalog singleton around every test."""
    _reset_catalog()
    yield
    _reset_catalog()


@pytest.fixture()
def clean_galaxy_logger() -> Iterator[logging.Logger]:
    """Yield the ``rx_galaxy`` logger and restore its handlers and level afterwards."""
    galaxy_logger = logging.getLogger("rx_galaxy")
    saved_handlers = list(galaxy_logger.handlers)
    saved_level = galaxy_logger.level
    galaxy_logger.handlers.clear()
    yield galaxy_logger
    for handler in galaxy_logger.handlers:
        if handler not in saved_handlers:
            handler.close()
    galaxy_logger.handlers[:] = saved_handlers
    galaxy_logger.setLevel(saved_level)


@pytest.fixture()
def catalog_dir(tmp_path: Path) -> Path:
    """Write a minimal two-file catalog into a temporary directory.

    Returns:
        Path to a directory holding ``missions.yaml`` and ``planets.yaml``.
    """
    directory = tmp_path / "catalog"
    directory.mkdir()
    (directory / "missions.yaml").write_text(
        "missions:\n"
        "  - id: double\n"
        "    title: Double\n"
        "    description: Double every value.\n"
        "    difficulty: easy\n"
        "    initial_code: 'of(1, 2).pipe(map(n => n * 2))'\n"
        "    tests:\n"
        "      - name: doubles\n"
        "        expected_output: [2, 4]\n"
        "        test_code: |\n"
        "          const out = [];\n"
        "          of(1, 2).pipe(map(n => n * 2)).subscribe(v => out.push(v));\n"
        "          return out;\n",
        encoding="utf-8",
    )
    (directory / "planets.yaml").write_text(
        "planets:\n"
        "  - id: double\n"
        "    name: Double\n"
        "    description: Double it\n"
        "    distance: 1.0ly\n"
        "    type: tutorial\n"
        "    unlocked: true\n"
        "    position: {x: 1, y: 2}\n"
        "    color: '#FFFFFF'\n",
        encoding="utf-8",
    )
    return directory
