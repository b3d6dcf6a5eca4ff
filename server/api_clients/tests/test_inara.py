"""
Tests for api_clients.inara

Queued requests are replaced with an AsyncMock on InaraClient.post_json.
"""
from unittest.mock import AsyncMock

import pytest

from api_clients.inara import MINING_COMMODITIES, TOP_PRICES, InaraClient, build_event
from eddn_stream.core.types import RequestError


def _reply(*event_data):
    return {"header": {"eventStatus": 200}, "events": [{"eventStatus": 200, "eventData": d} for d in event_data]}


@pytest.fixture
def client():
    c = InaraClient(api_key="secret", min_delay_ms=0)
    c.post_json = AsyncMock()
    return c


# ── Envelope ──────────────────────────────────────────────────────────────────

def test_defaults():
    c = InaraClient()
    assert c.base_url == "https://inara.cz/inapi/v1/"
    assert c.queue.min_delay_ms == 1000
    assert c.queue.name == "inara"


def test_build_event():
    event = build_event("getStationMarket", {"stationId": 7})

    assert event["eventName"] == "getStationMarket"
    assert event["eventData"] == {"stationId": 7}
    assert "eventTimestamp" in event


def test_header_includes_commander_when_set():
    c = InaraClient(api_key="k", commander_name="Jameson", commander_fid="F123")

    header = c._header()

    assert header["APIkey"] == "k"
    assert header["isBeingDeveloped"] is True
    assert header["commanderName"] == "Jameson"
    assert header["commanderFrontierID"] == "F123"


def test_header_omits_commander_when_unset():
    header = InaraClient(api_key="k")._header()

    assert "commanderName" not in header
    assert "commanderFrontierID" not in header


# ── send_events ───────────────────────────────────────────────────────────────

async def test_send_events_posts_batch(client):
    client.post_json.return_value = _reply({"a": 1})
    events = [build_event("getSystemStations", {"systemName": "Sol"})]

    results = await client.send_events(events)

    assert results[0]["eventData"] == {"a": 1}
    path, payload = client.post_json.call_args.args
    assert path == ""
    assert payload["events"] == events
    assert payload["header"]["APIkey"] == "secret"


async def test_send_events_rejects_malformed_response(client):
    client.post_json.return_value = {"header": {"eventStatus": 400}}

    with pytest.raises(RequestError, match="Invalid response format"):
        await client.send_events([])


# ── Convenience lookups ───────────────────────────────────────────────────────

async def test_get_system_stations(client):
    client.post_json.return_value = _reply([{"stationName": "Daedalus"}])

    assert await client.get_system_stations("Sol") == [{"stationName": "Daedalus"}]
    event = client.post_json.call_args.args[1]["events"][0]
    assert event["eventName"] == "getSystemStations"
    assert event["eventData"] == {"systemName": "Sol"}


async def test_get_station_market(client):
    client.post_json.return_value = _reply({"commodities": []})

    assert await client.get_station_market(42) == {"commodities": []}


async def test_get_nearby_stations_sends_distance(client):
    client.post_json.return_value = _reply([])

    await client.get_nearby_stations("Sol", max_distance=25)

    event = client.post_json.call_args.args[1]["events"][0]
    assert event["eventData"] == {"systemName": "Sol", "maxDistance": 25}


async def test_search_commodities(client):
    client.post_json.return_value = _reply([{"commodityName": "Painite"}])

    assert await client.search_commodities("pain") == [{"commodityName": "Painite"}]


async def test_lookup_failure_returns_default(client):
    client.post_json.side_effect = RequestError("inara returned HTTP 500", service="inara", url="https://inara.cz/inapi/v1/", status=500)

    assert await client.get_commodity_prices(144) == []
    assert await client.get_station_market(1) == {}


async def test_lookup_without_event_data_returns_default(client):
    client.post_json.return_value = {"events": [{"eventStatus": 204}]}

    assert await client.get_system_stations("Sol") == []


async def test_get_mining_commodity_prices(client):
    many = [{"stationName": f"S{i}", "price": 1000 - i} for i in range(TOP_PRICES + 5)]
    client.post_json.return_value = _reply(many)

    prices = await client.get_mining_commodity_prices()

    assert set(prices) == {name for _, name in MINING_COMMODITIES}
    assert prices["Painite"]["id"] == 144
    assert len(prices["Painite"]["prices"]) == TOP_PRICES
    assert client.post_json.await_count == len(MINING_COMMODITIES)
