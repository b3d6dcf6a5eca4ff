"""
EDSM API adapter.

Star system, body and station lookups against https://www.edsm.net. EDSM
asks clients to keep at least half a second between requests.

The convenience methods never raise: failures are logged and an empty
default is returned, so callers can treat EDSM as best-effort enrichment.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Optional

import aiohttp

from api_clients.base import DEFAULT_USER_AGENT, RateLimitedApiClient
from eddn_stream.config import Settings
from eddn_stream.core.types import RequestError

logger = logging.getLogger(__name__)

# Bodies worth mining in: asteroid belts, ringed bodies, metal-rich worlds
MINING_BODY_SUBTYPES = frozenset({"Metal rich body", "High metal content body"})

# Systems inspected per get_mining_systems_nearby() call
MAX_SYSTEMS_SCANNED = 50


def is_mining_body(body: dict[str, Any]) -> bool:
    return (
        body.get("type") == "Belt"
        or bool(body.get("rings"))
        or body.get("subType") in MINING_BODY_SUBTYPES
    )


class EDSMClient(RateLimitedApiClient):
    """Elite Dangerous Star Map client."""

    service = "edsm"

    def __init__(
        self,
        base_url: str = "https://www.edsm.net/api-v1/",
        *,
        api_key: str = "",
        commander_name: str = "",
        min_delay_ms: float = 500,
        timeout_seconds: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(
            base_url,
            min_delay_ms=min_delay_ms,
            timeout_seconds=timeout_seconds,
            user_agent=user_agent,
            session=session,
        )
        self.api_key = api_key
        self.commander_name = commander_name

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> EDSMClient:
        """Build a client from the EDSM_* and HTTP_* settings."""
        return cls(
            settings.edsm.api_url,
            api_key=settings.edsm.api_key,
            min_delay_ms=settings.edsm.min_delay_ms,
            timeout_seconds=settings.http.timeout_seconds,
            user_agent=settings.http.user_agent,
            **kwargs,
        )

    async def get_system_info(self, system_name: str) -> Optional[dict[str, Any]]:
        try:
            data = await self.get("system", {
                "systemName": system_name,
                "showInformation": 1,
                "showCoordinates": 1,
                "showPrimaryStar": 1,
            })
        except RequestError as e:
            logger.error(f"Failed to get system info for {system_name}: {e}")
            return None
        return data or None

    async def get_system_bodies(self, system_name: str) -> list[dict[str, Any]]:
        try:
            data = await self.get("system", {
                "systemName": system_name,
                "showInformation": 1,
                "showCoordinates": 1,
                "showPrimaryStar": 1,
                "showBodies": 1,
            })
        except RequestError as e:
            logger.error(f"Failed to get system bodies for {system_name}: {e}")
            return []
        if not isinstance(data, dict):
            return []
        return data.get("bodies") or []

    async def get_nearby_systems(self, system_name: str, radius: float = 50) -> list[dict[str, Any]]:
        """Systems within radius ly of system_name, via the sphere-systems endpoint."""
        info = await self.get_system_info(system_name)
        coords = (info or {}).get("coords")
        if not coords:
            logger.error(f"Could not find coordinates for system {system_name}")
            return []

        try:
            data = await self.get("sphere-systems", {
                "x": coords["x"],
                "y": coords["y"],
                "z": coords["z"],
                "radius": radius,
                "showInformation": 1,
                "showCoordinates": 1,
            })
        except RequestError as e:
            logger.error(f"Failed to get nearby systems for {system_name}: {e}")
            return []
        return data if isinstance(data, list) else []

    async def get_system_stations(self, system_name: str) -> list[dict[str, Any]]:
        try:
            data = await self.get("system", {"systemName": system_name, "showStations": 1})
        except RequestError as e:
            logger.error(f"Failed to get stations for {system_name}: {e}")
            return []
        if not isinstance(data, dict):
            return []
        return data.get("stations") or []

    async def find_systems_by_name(self, search_term: str, limit: int = 10) -> list[dict[str, Any]]:
        try:
            data = await self.get("systems", {
                "startswith": search_term,
                "showInformation": 1,
                "showCoordinates": 1,
            })
        except RequestError as e:
            logger.error(f'Failed to search systems with term "{search_term}": {e}')
            return []
        return (data if isinstance(data, list) else [])[:limit]

    async def get_distance_between_systems(self, system1: str, system2: str) -> Optional[dict[str, Any]]:
        # Both lookups share the queue, so they still run one after the other
        info1 = await self.get_system_info(system1)
        info2 = await self.get_system_info(system2)

        coords1 = (info1 or {}).get("coords")
        coords2 = (info2 or {}).get("coords")
        if not coords1 or not coords2:
            logger.error(f"Could not get coordinates for {system1} and/or {system2}")
            return None

        distance = math.sqrt(
            (coords1["x"] - coords2["x"]) ** 2
            + (coords1["y"] - coords2["y"]) ** 2
            + (coords1["z"] - coords2["z"]) ** 2
        )
        return {
            "system1": system1,
            "system2": system2,
            "distance": round(distance, 2),
            "coords1": coords1,
            "coords2": coords2,
        }

    async def get_mining_systems_nearby(self, system_name: str, radius: float = 100) -> list[dict[str, Any]]:
        """
        Nearby systems that have belts, rings or metal-rich bodies.

        Only the first MAX_SYSTEMS_SCANNED systems are inspected; results are
        sorted by distance from system_name.
        """
        nearby = await self.get_nearby_systems(system_name, radius)
        mining_systems = []

        for system in nearby[:MAX_SYSTEMS_SCANNED]:
            name = system.get("name")
            if not name:
                continue
            bodies = await self.get_system_bodies(name)
            mining_bodies = [b for b in bodies if is_mining_body(b)]
            if mining_bodies:
                mining_systems.append({**system, "miningBodies": mining_bodies})

        mining_systems.sort(key=lambda s: s.get("distance", math.inf))
        return mining_systems

    async def get_traffic_report(self) -> Optional[dict[str, Any]]:
        try:
            return await self.get("stats")
        except RequestError as e:
            logger.error(f"Failed to get EDSM traffic report: {e}")
            return None
