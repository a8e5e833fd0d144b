from __future__ import annotations

import json
from typing import Any
from uuid import uuid4

import fakeredis
from fastapi.testclient import TestClient

from partyhub.village_store import village_game_state_key, village_key, village_session_key


def _create(client: TestClient, session_id: str = "session-1", **overrides: Any) -> dict[str, Any]:
    res = client.post("/game/village/create", json={"session_id": session_id, "name": "Oakridge", **overrides})
    assert res.status_code == 201, res.text
    return res.json()


def test_create_returns_summary_and_game_state(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis

    body = _create(client, size="village", starting_population=100)

    village = body["village"]
    assert village["name"] == "Oakridge"
    assert village["size"] == "village"
    assert village["population"] == 100
    assert (village["happiness"], village["stability"], village["prosperity"], village["defense"]) == (65, 70, 40, 30)
    assert village["season"] == "spring"
    assert body["game_state"]["phase"] == "active"

    vid = village["village_id"]
    assert json.loads(r.get(village_session_key("session-1"))) == {"village_id": vid, "session_id": "session-1"}
    assert r.get(village_game_state_key(vid)) is not None


def test_create_rejects_second_village_for_session(client: TestClient) -> None:
    first = _create(client)

    res = client.post("/game/village/create", json={"session_id": "session-1", "name": "Elmford"})

    assert res.status_code == 409
    body = res.json()
    assert body["code"] == "SESSION_HAS_VILLAGE"
    assert body["details"] == {"village_id": first["village"]["village_id"]}


def test_create_validates_bounds(client: TestClient) -> None:
    res = client.post("/game/village/create", json={"session_id": "s", "name": "x", "starting_population": 5})
    assert res.status_code == 400
    assert res.json()["code"] == "VALIDATION_ERROR"


def test_get_includes_derived_stats_and_alerts(client: TestClient) -> None:
    vid = _create(client)["village"]["village_id"]

    res = client.get(f"/game/village/{vid}")

    assert res.status_code == 200
    body = res.json()
    assert body["village"]["village_id"] == vid
    assert body["village"]["resources"]["resources"]["food"]["current"] == 150
    assert body["village"]["resources"]["resources"]["food"]["maximum"] == 300
    assert body["village"]["economy"]["treasury"] == 500
    stats = body["derived_stats"]
    assert stats["resource_efficiency"] == 50
    assert stats["economic_trend"] == "stable"
    assert stats["employment_rate"] == 81
    assert body["resource_alerts"] == []


def test_get_error_codes(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    vid = _create(client)["village"]["village_id"]
    r.delete(village_game_state_key(vid))

    bad_id = client.get("/game/village/oakridge")
    missing = client.get(f"/game/village/{uuid4()}")
    no_state = client.get(f"/game/village/{vid}")

    assert bad_id.status_code == 400
    assert bad_id.json()["code"] == "INVALID_VILLAGE_ID"
    assert missing.status_code == 404
    assert missing.json()["code"] == "VILLAGE_NOT_FOUND"
    assert no_state.status_code == 404
    assert no_state.json()["code"] == "GAME_STATE_NOT_FOUND"


def test_update_changes_only_given_fields_and_merges_policies(client: TestClient) -> None:
    vid = _create(client)["village"]["village_id"]

    first = client.put(
        f"/game/village/{vid}",
        json={
            "happiness": 80,
            "policies": [
                {"policy_id": "tax-1", "name": "Harvest Tax", "type": "tax", "is_active": True},
                {"policy_id": "trade-1", "name": "Open Market", "type": "trade", "is_active": True},
            ],
        },
    )
    second = client.put(
        f"/game/village/{vid}",
        json={"policies": [{"policy_id": "tax-1", "name": "Harvest Tax", "type": "tax", "is_active": False}]},
    )

    assert first.status_code == 200, first.text
    assert second.status_code == 200, second.text
    village = second.json()["village"]
    assert second.json()["message"] == "Village updated successfully"
    assert village["happiness"] == 80
    assert village["stability"] == 70
    assert village["name"] == "Oakridge"
    assert village["version"] == 2
    policies = {p["policy_id"]: p["is_active"] for p in village["economy"]["policies"]}
    assert policies == {"tax-1": False, "trade-1": True}


def test_update_rejects_unknown_fields_and_out_of_range_stats(client: TestClient) -> None:
    vid = _create(client)["village"]["village_id"]

    unknown = client.put(f"/game/village/{vid}", json={"population": 9000})
    too_high = client.put(f"/game/village/{vid}", json={"defense": 101})

    assert unknown.status_code == 400
    assert unknown.json()["code"] == "VALIDATION_ERROR"
    assert too_high.status_code == 400
    assert client.get(f"/game/village/{vid}").json()["village"]["defense"] == 30


def test_update_with_stale_version_is_a_conflict(client: TestClient) -> None:
    vid = _create(client)["village"]["village_id"]
    assert client.put(f"/game/village/{vid}", json={"name": "Oakhaven", "expected_version": 0}).status_code == 200

    stale = client.put(f"/game/village/{vid}", json={"name": "Oakvale", "expected_version": 0})

    assert stale.status_code == 409
    assert stale.json()["code"] == "VERSION_CONFLICT"
    assert client.get(f"/game/village/{vid}").json()["village"]["name"] == "Oakhaven"


def test_update_unknown_village_is_404(client: TestClient) -> None:
    res = client.put(f"/game/village/{uuid4()}", json={"happiness": 10})
    assert res.status_code == 404


def test_delete_removes_village_and_frees_session(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    vid = _create(client)["village"]["village_id"]

    res = client.delete(f"/game/village/{vid}")

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "message": "Village deleted successfully",
        "deleted_village_id": vid,
    }
    assert r.get(village_key(vid)) is None
    assert r.get(village_session_key("session-1")) is None
    assert client.get(f"/game/village/{vid}").status_code == 404
    # The session can found a new village once the old one is gone.
    _create(client)


def test_delete_unknown_village_is_404(client: TestClient) -> None:
    res = client.delete(f"/game/village/{uuid4()}")
    assert res.status_code == 404
    assert res.json()["code"] == "VILLAGE_NOT_FOUND"


def test_resources_view_for_fresh_village(client: TestClient) -> None:
    vid = _create(client)["village"]["village_id"]

    res = client.get(f"/game/village/{vid}/resources")

    assert res.status_code == 200, res.text
    body = res.json()
    stocks = body["resources"]["resources"]
    analytics = body["analytics"]
    assert analytics["storage_utilization"] == 50
    assert analytics["total_resources"] == sum(s["current"] for s in stocks.values())
    assert analytics["critical_resources"] == []
    assert analytics["quality_distribution"] == {"good": len(stocks)}
    # No production or consumption yet, so nothing to project.
    assert body["projections"] == {}
    assert [(a["resource"], a["type"], a["severity"]) for a in body["alerts"]] == [("food", "spoilage", "high")]
    assert body["alerts"][0]["estimated_time_to_impact"] == 50
    assert body["recommendations"] == {"priority": "high", "actions": ["Consume food faster"]}


def test_resources_view_error_codes(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    vid = _create(client)["village"]["village_id"]
    r.delete(village_game_state_key(vid))

    assert client.get("/game/village/oakridge/resources").json()["code"] == "INVALID_VILLAGE_ID"
    assert client.get(f"/game/village/{uuid4()}/resources").status_code == 404
    assert client.get(f"/game/village/{vid}/resources").json()["code"] == "GAME_STATE_NOT_FOUND"


def test_session_id_must_be_key_safe(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis

    for bad in ("a:b", "has space", "x" * 129):
        res = client.post("/game/village/create", json={"session_id": bad, "name": "Oakridge"})
        assert res.status_code == 400
        assert res.json()["code"] == "VALIDATION_ERROR"
    assert r.keys("*") == []


def test_owned_village_changes_need_the_owner(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    owner = str(uuid4())
    body = _create(client, player_id=owner)
    vid = body["village"]["village_id"]
    assert body["game_state"]["player_id"] == owner

    anon = client.put(f"/game/village/{vid}", json={"happiness": 10})
    stranger = client.put(f"/game/village/{vid}", json={"happiness": 10}, headers={"x-player-id": str(uuid4())})
    anon_delete = client.delete(f"/game/village/{vid}")
    stranger_delete = client.delete(f"/game/village/{vid}", headers={"x-player-id": str(uuid4())})

    assert anon.status_code == 401
    assert anon.json()["code"] == "AUTH_REQUIRED"
    assert stranger.status_code == 403
    assert stranger.json()["code"] == "INSUFFICIENT_PERMISSIONS"
    assert anon_delete.status_code == 401
    assert stranger_delete.status_code == 403
    assert r.get(village_key(vid)) is not None

    assert client.put(f"/game/village/{vid}", json={"happiness": 10}, headers={"x-player-id": owner}).status_code == 200
    assert client.delete(f"/game/village/{vid}", headers={"x-player-id": owner}).status_code == 200
    assert r.get(village_key(vid)) is None
