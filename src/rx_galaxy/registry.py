"""Mission lookup for the harness and the CLI.

``MissionRegistry`` serves the bundled catalog. ``RemoteMissionRegistry``
asks a mission API first and falls back to a local registry whenever the
request or its payload fails; the fallback is logged, never raised.
"""

from __future__ import annotations

import http.client
import json
import logging
from typing import Any, Protocol
import urllib.parse
import urllib.request

from rx_galaxy.catalog import MissionCatalog, get_catalog
from rx_galaxy.models import Mission, Planet

logger = logging.getLogger(__name__)

_USER_AGENT = "rx-galaxy/0.1"

# Failures that hand a lookup over to the fallback registry.
_FETCH_ERRORS = (OSError, http.client.HTTPException, ValueError)

_MISSION_KEYS: dict[str, str] = {
    "initialCode": "initial_code",
    "inputMarbles": "input_marbles",
    "outputMarbles": "output_marbles",
}
_TEST_KEYS: dict[str, str] = {
    "expectedOutput": "expected_output",
    "testCode": "test_code",
}
_PLANET_KEYS: dict[str, str] = {
    "requiredFuel": "required_fuel",
}


class MissionSource(Protocol):
    """Anything that can look up missions and list the galaxy map."""

    def get_mission(self, mission_id: str) -> Mission | None: ...  # noqa: D102

    def list_missions(self) -> list[Mission]: ...  # noqa: D102

    def list_planets(self) -> list[Planet]: ...  # noqa: D102


class MissionRegistry:
    """Read-only access to a ``MissionCatalog``."""

    def __init__(self, catalog: MissionCatalog | None = None) -> None:
        """Initialize over *catalog*, defaulting to the bundled catalog."""
        self._catalog = catalog or get_catalog()

    def get_mission(self, mission_id: str) -> Mission | None:
        """Return the mission with *mission_id*, or ``None`` if absent."""
        mission = self._catalog.missions.get(mission_id)
        if mission is None:
            logger.debug("Mission %r not in catalog", mission_id)
        return mission

    def list_missions(self) -> list[Mission]:
        """Return all missions in catalog order."""
        return list(self._catalog.missions.values())

    def list_planets(self) -> list[Planet]:
        """Return all planets in catalog order."""
        return list(self._catalog.planets)


def _rename(record: Any, keys: dict[str, str]) -> Any:
    """Rename camelCase keys of one record; values are left untouched."""
    if not isinstance(record, dict):
        return record
    return {keys.get(k, k): v for k, v in record.items()}


def _normalize_mission(payload: Any) -> Any:
    """Map a mission payload from the web API's camelCase to model fields."""
    record = _rename(payload, _MISSION_KEYS)
    if isinstance(record, dict) and isinstance(record.get("tests"), list):
        record["tests"] = [_rename(test, _TEST_KEYS) for test in record["tests"]]
    return record


def _urlopen(url: str, timeout: float) -> Any:
    """Open a URL with a User-Agent and JSON accept header."""
    req = urllib.request.Request(
        url, headers={"User-Agent": _USER_AGENT, "Accept": "application/json"}
    )
    return urllib.request.urlopen(req, timeout=timeout)  # noqa: S310


class RemoteMissionRegistry:
    """Mission registry backed by the mission web API.

    Requests ``GET {base_url}/api/missions/{id}`` and
    ``GET {base_url}/api/planets``. Missions are always served from the
    fallback registry's list, since the API has no listing endpoint.

    Attributes:
        base_url: API base URL without a trailing slash.
        fallback: Registry used when the API cannot be reached or answers
            with something unusable.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        fallback: MissionSource | None = None,
        timeout: float = 5.0,
    ) -> None:
        """Initialize the remote registry.

        Args:
            base_url: API base URL, e.g. ``http://localhost:5000``.
            fallback: Local registry; defaults to the bundled catalog.
            timeout: Request timeout in seconds.
        """
        self.base_url = base_url.rstrip("/")
        self.fallback = fallback or MissionRegistry()
        self.timeout = timeout

    def _fetch_json(self, path: str) -> Any:
        """GET ``base_url + path`` and decode the JSON body.

        Raises:
            OSError: On network or HTTP failure (``urllib.error.URLError``).
            ValueError: If the body is not valid JSON.
        """
        url = f"{self.base_url}{path}"
        logger.debug("Fetching %s", url)
        with _urlopen(url, self.timeout) as resp:
            body = resp.read().decode("utf-8")
        return json.loads(body)

    def get_mission(self, mission_id: str) -> Mission | None:
        """Fetch a mission; fall back to the local registry on any failure.

        An API answer of ``null`` is a normal miss and returns ``None``
        without consulting the fallback.
        """
        path = f"/api/missions/{urllib.parse.quote(mission_id, safe='')}"
        try:
            payload = self._fetch_json(path)
            if payload is None:
                return None
            return Mission.model_validate(_normalize_mission(payload))
        except _FETCH_ERRORS as exc:
            logger.warning("Fetching mission %r failed, using bundled catalog: %s", mission_id, exc)
            return self.fallback.get_mission(mission_id)

    def list_missions(self) -> list[Mission]:
        """Return the fallback registry's missions."""
        return self.fallback.list_missions()

    def list_planets(self) -> list[Planet]:
        """Fetch the galaxy map; fall back to the local registry on any failure."""
        try:
            payload = self._fetch_json("/api/planets")
            if not isinstance(payload, list):
                msg = f"expected a list of planets, got {type(payload).__name__}"
                raise ValueError(msg)
            return [Planet.model_validate(_rename(p, _PLANET_KEYS)) for p in payload]
        except _FETCH_ERRORS as exc:
            logger.warning("Fetching planets failed, using bundled catalog: %s", exc)
            return self.fallback.list_planets()
