"""Bundled mission and planet catalog.

Loads ``missions.yaml`` and ``planets.yaml`` from this package directory into
validated ``Mission`` and ``Planet`` models. The catalog is read once and
shared through ``get_catalog()``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError
import yaml

from rx_galaxy.models import Mission, Planet

logger = logging.getLogger(__name__)

_CATALOG_DIR: Path = Path(__file__).parent


class CatalogError(Exception):
    """Raised when a catalog file is missing or malformed."""


class MissionCatalog:
    """Static catalog of missions and galaxy planets.

    Missions keep the order of the YAML file; planets likewise. Both are
    immutable after load.

    Attributes:
        missions: Missions keyed by id, in file order.
        planets: Planets in file order.
    """

    def __init__(self, directory: Path | None = None) -> None:
        """Load the catalog.

        Args:
            directory: Directory holding ``missions.yaml`` and
                ``planets.yaml``; defaults to this package directory.

        Raises:
            CatalogError: If a file is missing or a record fails validation.
        """
        self._directory = directory or _CATALOG_DIR
        self.missions: dict[str, Mission] = {}
        self.planets: list[Planet] = []
        self._load_missions()
        self._load_planets()
        logger.debug(
            "Loaded %d missions and %d planets from %s",
            len(self.missions),
            len(self.planets),
            self._directory,
        )

    def _read_records(self, filename: str, key: str) -> list[dict[str, Any]]:
        """Read the list stored under *key* in *filename*.

        Args:
            filename: YAML file name inside the catalog directory.
            key: Top-level key holding the record list.

        Returns:
            The raw record dicts.

        Raises:
            CatalogError: If the file is missing or has the wrong shape.
        """
        path = self._directory / filename
        if not path.exists():
            msg = f"catalog file not found: {path}"
            raise CatalogError(msg)
        with path.open(encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
        if not isinstance(data, dict) or not isinstance(data.get(key), list):
            msg = f"{filename} must contain a '{key}' list"
            raise CatalogError(msg)
        return data[key]

    def _load_missions(self) -> None:
        for record in self._read_records("missions.yaml", "missions"):
            try:
                mission = Mission.model_validate(record)
            except ValidationError as exc:
                msg = f"invalid mission record {record.get('id')!r}: {exc}"
                raise CatalogError(msg) from exc
            if mission.id in self.missions:
                msg = f"duplicate mission id: {mission.id!r}"
                raise CatalogError(msg)
            self.missions[mission.id] = mission

    def _load_planets(self) -> None:
        for record in self._read_records("planets.yaml", "planets"):
            try:
                self.planets.append(Planet.model_validate(record))
            except ValidationError as exc:
                msg = f"invalid planet record {record.get('id')!r}: {exc}"
                raise CatalogError(msg) from exc

    def __len__(self) -> int:
        """Return the number of missions in the catalog."""
        return len(self.missions)


# Module-level singleton shared by registries and the CLI.
_singleton_catalog: MissionCatalog | None = None


def get_catalog() -> MissionCatalog:
    """Return the singleton MissionCatalog instance.

    Lazily loads the bundled YAML files on first call.

    Returns:
        The shared ``MissionCatalog``.
    """
    global _singleton_catalog  # noqa: PLW0603
    if _singleton_catalog is None:
        _singleton_catalog = MissionCatalog()
    return _singleton_catalog


def _reset_catalog() -> None:
    """Reset the singleton catalog (for testing only)."""
    global _singleton_catalog  # noqa: PLW0603
    _singleton_catalog = None
