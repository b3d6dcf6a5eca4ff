"""
Tests for api_clients.edsm

Queued requests are replaced with an AsyncMock on EDSMClient.get.
"""
from unittest.mock import AsyncMock

import pytest

from api_clients.edsm import EDSMClient, MAX_SYSTEMS_SCANNED, is_mining_body
from eddn_stream.core.types import RequestError


def _error() -> RequestError:
    return RequestError("edsm returned HTTP 500", service="edsm", url="https://www.edsm.net/api-v1/system", status=500)


@pytest.fixture
def client():
    c = EDSMClient(min_delay_ms=0)
    c.get = AsyncMock()
    return c


# ── Defaults ──────────────────────────────────────────────────────────────────

def test_defaults():
    c = EDSMClient()
    assert c.base_url == "https://www.edsm.net/api-v1/"
    assert c.queue.min_delay_ms == 500
    assert c.queue.name == "edsm"


def test_from_settings(monkeypatch):
    from eddn_stream.config import load_settings

    monkeypatch.setenv("EDSM_API_URL", "https://edsm.example/api/")
    monkeypatch.setenv("EDSM_MIN_DELAY_MS", "750")
    c = EDSMClient.from_settings(load_settings())

    assert c.base_url == "https://edsm.example/api/"
    assert c.queue.min_delay_ms == 750


# ── Mining body detection ─────────────────────────────────────────────────────

@pytest.mark.parametrize("body, expected", [
    ({"type": "Belt"}, True),
    ({"type": "Planet", "rings": [{"name": "A Ring"}]}, True),
    ({"type": "Planet", "subType": "Metal rich body"}, True),
    ({"type": "Planet", "subType": "High metal content body"}, True),
    ({"type": "Planet", "subType": "Icy body"}, False),
    ({"type": "Star", "rings": []}, False),
])
def test_is_mining_body(body, expected):
    assert is_mining_body(body) is expected


# ── Lookups ───────────────────────────────────────────────────────────────────

async def test_get_system_info(client):
    client.get.return_value = {"name": "Sol", "coords": {"x": 0, "y": 0, "z": 0}}

    info = await client.get_system_info("Sol")

    assert info["name"] == "Sol"
    path, params = client.get.call_args.args
    assert path == "system"
    assert params["systemName"] == "Sol"
    assert params["showCoordinates"] == 1


async def test_get_system_info_unknown_system(client):
    # EDSM answers an empty object or list for systems it does not know
    client.get.return_value = []

    assert await client.get_system_info("Nowhere") is None


async def test_get_system_info_failure_returns_none(client):
    client.get.side_effect = _error()

    assert await client.get_system_info("Sol") is None


async def test_get_system_bodies(client):
    client.get.return_value = {"name": "Sol", "bodies": [{"name": "Earth"}]}

    assert await client.get_system_bodies("Sol") == [{"name": "Earth"}]
    assert client.get.call_args.args[1]["showBodies"] == 1


async def test_get_system_bodies_failure_returns_empty(client):
    client.get.side_effect = _error()

    assert await client.get_system_bodies("Sol") == []


async def test_get_system_stations(client):
    client.get.return_value = {"stations": [{"name": "Abraham Lincoln"}]}

    assert await client.get_system_stations("Sol") == [{"name": "Abraham Lincoln"}]


async def test_find_systems_by_name_applies_limit(client):
    client.get.return_value = [{"name": f"Col 285 Sector {i}"} for i in range(20)]

    results = await client.find_systems_by_name("Col 285", limit=5)

    assert len(results) == 5
    assert client.get.call_args.args == ("systems", {
        "startswith": "Col 285",
        "showInformation": 1,
        "showCoordinates": 1,
    })


async def test_get_nearby_systems(client):
    client.get.side_effect = [
        {"name": "Sol", "coords": {"x": 1.0, "y": 2.0, "z": 3.0}},
        [{"name": "Alpha Centauri", "distance": 4.38}],
    ]

    nearby = await client.get_nearby_systems("Sol", radius=10)

    assert nearby == [{"name": "Alpha Centauri", "distance": 4.38}]
    path, params = client.get.call_args.args
    assert path == "sphere-systems"
    assert params["x"] == 1.0
    assert params["radius"] == 10


async def test_get_nearby_systems_without_coords(client):
    client.get.return_value = {"name": "Sol"}

    assert await client.get_nearby_systems("Sol") == []
    assert client.get.await_count == 1


async def test_get_distance_between_systems(client):
    client.get.side_effect = [
        {"name": "Sol", "coords": {"x": 0, "y": 0, "z": 0}},
        {"name": "Far", "coords": {"x": 3, "y": 4, "z": 12}},
    ]

    result = await client.get_distance_between_systems("Sol", "Far")

    assert result["distance"] == 13.0
    assert result["coords2"] == {"x": 3, "y": 4, "z": 12}


async def test_get_distance_rounds_to_two_places(client):
    client.get.side_effect = [
        {"coords": {"x": 0, "y": 0, "z": 0}},
        {"coords": {"x": 1, "y": 1, "z": 1}},
    ]

    result = await client.get_distance_between_systems("A", "B")

    assert result["distance"] == 1.73


async def test_get_distance_missing_system(client):
    client.get.side_effect = [{"coords": {"x": 0, "y": 0, "z": 0}}, []]

    assert await client.get_distance_between_systems("Sol", "Nowhere") is None


async def test_get_mining_systems_nearby(client):
    client.get.side_effect = [
        {"name": "Sol", "coords": {"x": 0, "y": 0, "z": 0}},
        [
            {"name": "Far", "distance": 20.0},
            {"name": "Near", "distance": 5.0},
            {"name": "Barren", "distance": 1.0},
        ],
        {"bodies": [{"name": "Far A Belt", "type": "Belt"}]},
        {"bodies": [{"name": "Near 1", "type": "Planet", "rings": [{"name": "Near 1 A Ring"}]}]},
        {"bodies": [{"name": "Barren 1", "type": "Planet", "subType": "Icy body"}]},
    ]

    results = await client.get_mining_systems_nearby("Sol", radius=30)

    assert [s["name"] for s in results] == ["Near", "Far"]
    assert results[1]["miningBodies"] == [{"name": "Far A Belt", "type": "Belt"}]


async def test_get_mining_systems_nearby_caps_scan(client):
    systems = [{"name": f"S{i}", "distance": float(i)} for i in range(MAX_SYSTEMS_SCANNED + 10)]
    client.get.side_effect = [{"coords": {"x": 0, "y": 0, "z": 0}}, systems] + [
        {"bodies": []} for _ in range(MAX_SYSTEMS_SCANNED)
    ]

    assert await client.get_mining_systems_nearby("Sol") == []
    assert client.get.await_count == 2 + MAX_SYSTEMS_SCANNED


async def test_get_traffic_report(client):
    client.get.return_value = {"total": 1}

    assert await client.get_traffic_report() == {"total": 1}
    assert client.get.call_args.args == ("stats",)


async def test_get_traffic_report_failure(client):
    client.get.side_effect = _error()

    assert await client.get_traffic_report() is None
