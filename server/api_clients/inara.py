"""
Inara API adapter.

Inara's INAPI takes a POSTed batch of "events" and answers with one result
per event. Requests are queued at one per second.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import aiohttp

from api_clients.base import DEFAULT_USER_AGENT, RateLimitedApiClient
from eddn_stream.config import Settings
from eddn_stream.core.types import RequestError

logger = logging.getLogger(__name__)

# Inara commodity ids for the high-value mining commodities
MINING_COMMODITIES: tuple[tuple[int, str], ...] = (
    (144, "Painite"),
    (291, "Void Opals"),
    (284, "Low Temperature Diamonds"),
    (271, "Alexandrite"),
    (276, "Benitoite"),
    (287, "Grandidierite"),
    (289, "Monazite"),
    (286, "Musgravite"),
    (288, "Rhodplumsite"),
    (285, "Serendibite"),
    (290, "Taaffeite"),
    (306, "Tritium"),
    (55, "Platinum"),
    (54, "Osmium"),
    (49, "Gold"),
    (56, "Silver"),
    (53, "Palladium"),
)

# Best prices kept per commodity
TOP_PRICES = 10


def build_event(name: str, data: dict[str, Any]) -> dict[str, Any]:
    return {
        "eventName": name,
        "eventTimestamp": datetime.now(timezone.utc).isoformat(),
        "eventData": data,
    }


class InaraClient(RateLimitedApiClient):
    """Inara INAPI client."""

    service = "inara"

    def __init__(
        self,
        base_url: str = "https://inara.cz/inapi/v1/",
        *,
        api_key: str = "",
        app_name: str = "EliteMiningDataServer",
        app_version: str = "1.0.0",
        is_developed: bool = True,
        commander_name: Optional[str] = None,
        commander_fid: Optional[str] = None,
        min_delay_ms: float = 1000,
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
        self.app_name = app_name
        self.app_version = app_version
        self.is_developed = is_developed
        self.commander_name = commander_name
        self.commander_fid = commander_fid

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> InaraClient:
        """Build a client from the INARA_* and HTTP_* settings."""
        return cls(
            settings.inara.api_url,
            api_key=settings.inara.api_key,
            app_name=settings.inara.app_name,
            app_version=settings.inara.app_version,
            min_delay_ms=settings.inara.min_delay_ms,
            timeout_seconds=settings.http.timeout_seconds,
            user_agent=settings.http.user_agent,
            **kwargs,
        )

    def _header(self) -> dict[str, Any]:
        header: dict[str, Any] = {
            "appName": self.app_name,
            "appVersion": self.app_version,
            "isBeingDeveloped": self.is_developed,
            "APIkey": self.api_key,
        }
        if self.commander_name:
            header["commanderName"] = self.commander_name
        if self.commander_fid:
            header["commanderFrontierID"] = self.commander_fid
        return header

    async def send_events(self, events: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """
        POST a batch of events and return the per-event results.

        Raises:
            RequestError: On transport failure or a response without "events".
        """
        data = await self.post_json("", {"header": self._header(), "events": events})
        if not isinstance(data, dict) or not isinstance(data.get("events"), list):
            raise RequestError(
                "Invalid response format from Inara API",
                service=self.service,
                url=self.base_url,
            )
        return data["events"]

    async def _single_event(self, name: str, data: dict[str, Any], default: Any) -> Any:
        try:
            results = await self.send_events([build_event(name, data)])
        except RequestError as e:
            logger.error(f"Inara {name} failed: {e}", extra={"event_data": data})
            return default
        if not results or not isinstance(results[0], dict):
            return default
        return results[0].get("eventData") or default

    async def get_system_stations(self, system_name: str) -> list[dict[str, Any]]:
        return await self._single_event("getSystemStations", {"systemName": system_name}, [])

    async def get_station_market(self, station_id: int) -> dict[str, Any]:
        return await self._single_event("getStationMarket", {"stationId": station_id}, {})

    async def get_commodity_prices(self, commodity_id: int) -> list[dict[str, Any]]:
        return await self._single_event("getCommodityPrices", {"commodityId": commodity_id}, [])

    async def get_nearby_stations(self, system_name: str, max_distance: float = 50) -> list[dict[str, Any]]:
        return await self._single_event(
            "getNearbyStations",
            {"systemName": system_name, "maxDistance": max_distance},
            [],
        )

    async def search_commodities(self, search_term: str) -> list[dict[str, Any]]:
        return await self._single_event("searchCommodities", {"searchName": search_term}, [])

    async def get_mining_commodity_prices(self) -> dict[str, dict[str, Any]]:
        """Best TOP_PRICES prices for every commodity in MINING_COMMODITIES."""
        all_prices: dict[str, dict[str, Any]] = {}

        for commodity_id, name in MINING_COMMODITIES:
            prices = await self.get_commodity_prices(commodity_id)
            if not isinstance(prices, list):
                prices = []
            all_prices[name] = {"id": commodity_id, "prices": prices[:TOP_PRICES]}
            logger.info(f"Retrieved prices for {name}: {len(prices)} stations")

        return all_prices
