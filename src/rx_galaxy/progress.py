"""Player progression: mission rewards and planet unlocking.

Pure functions over the frozen ``PlayerStats`` and ``Planet`` models; each
returns new instances instead of mutating its inputs.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging

from rx_galaxy.models import Planet, PlayerStats, Reward

logger = logging.getLogger(__name__)

MAX_FUEL_LEVEL = 5.0
FUEL_PER_LEVEL = 1000.0


def apply_mission_reward(stats: PlayerStats, mission_id: str, reward: Reward) -> PlayerStats:
    """Credit *reward* for completing *mission_id*.

    A mission pays out once: if it is already in ``completed_missions`` the
    stats are returned unchanged.

    Args:
        stats: Current player stats.
        mission_id: The completed mission.
        reward: Reward attached to the mission.

    Returns:
        Updated stats with the reward added and the mission recorded.
    """
    if mission_id in stats.completed_missions:
        logger.info("Mission %s already completed; no reward", mission_id)
        return stats
    logger.info(
        "Mission %s completed: +%s fuel, +%s artifacts, +%s rank",
        mission_id,
        reward.fuel,
        reward.artifacts,
        reward.rank,
    )
    return stats.model_copy(
        update={
            "fuel": stats.fuel + reward.fuel,
            "fuel_level": min(MAX_FUEL_LEVEL, stats.fuel_level + reward.fuel / FUEL_PER_LEVEL),
            "artifacts": stats.artifacts + reward.artifacts,
            "captain_rank": stats.captain_rank + reward.rank,
            "completed_missions": [*stats.completed_missions, mission_id],
        }
    )


def can_travel(planet: Planet, stats: PlayerStats) -> bool:
    """Return True if the planet is unlocked and the player can afford the trip."""
    return planet.unlocked and stats.fuel >= planet.required_fuel


def unlock_planets(planets: Sequence[Planet], stats: PlayerStats) -> list[Planet]:
    """Unlock every planet whose fuel requirement the player now meets.

    Planets without a fuel requirement keep their current state.
    """
    unlocked: list[Planet] = []
    for planet in planets:
        if not planet.unlocked and planet.required_fuel and stats.fuel >= planet.required_fuel:
            logger.debug("Unlocking planet %s", planet.id)
            planet = planet.model_copy(update={"unlocked": True})  # noqa: PLW2901
        unlocked.append(planet)
    return unlocked
