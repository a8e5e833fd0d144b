from __future__ import annotations

import re
from typing import Any
from uuid import uuid4

import fakeredis
from fastapi.testclient import TestClient

from partyhub.game_store import creator_games_key, game_key
from partyhub.rpg_store import join_code_key, rpg_meta_key

JOIN_CODE_RE = re.compile(r"^[a-z]+-[a-z]+-\d{3}$")


def _pid() -> str:
    return str(uuid4())


def _payload(**config_overrides: Any) -> dict[str, Any]:
    config: dict[str, Any] = {
        "name": "The Lost Crown",
        "max_players": 4,
        "min_players": 1,
        "estimated_duration_minutes": 120,
        "is_private": False,
        "settings": {
            "world_theme": "high fantasy",
            "difficulty": "medium",
            "combat_enabled": True,
            "perma_death": False,
            "narrative_style": "epic",
            "max_level": 20,
            "starting_level": 1,
        },
    }
    config.update(config_overrides)
    return {
        "config": config,
        "world_preferences": {
            "theme": "high fantasy",
            "size": "medium",
            "complexity": "moderate",
            "tone": "balanced",
            "biomes": ["forest", "mountains"],
            "faction_count": 5,
            "npc_density": "normal",
            "quest_density": "moderate",
            "magic_level": "none",
            "technology_level": "medieval",
            "danger_level": "moderate",
            "cultural_diversity": "diverse",
        },
    }


def _create(client: TestClient, owner: str | None, **config_overrides: Any) -> dict[str, Any]:
    headers = {"x-player-id": owner} if owner else {}
    res = client.post("/game/rpg/create", json=_payload(**config_overrides), headers=headers)
    assert res.status_code == 201, res.text
    return res.json()


def test_create_builds_fallback_world_and_join_code(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    owner = _pid()

    body = _create(client, owner)

    assert JOIN_CODE_RE.match(body["join_code"])
    summary = body["world_summary"]
    assert summary["name"] == "The Border Marches"
    assert summary["faction_count"] == 5
    assert summary["systems_enabled"] == ["exploration", "dialogue", "inventory", "quests", "combat", "factions"]
    state = body["initial_state"]
    assert state["type"] == "rpg"
    assert state["phase"] == "character_creation"
    assert state["owner_id"] == owner
    assert state["players"] == [owner]
    assert state["data"]["current_location"] == "loc_0"

    game_id = body["game_id"]
    assert r.get(rpg_meta_key(game_id)) is not None
    assert r.get(creator_games_key(owner)) is not None
    assert 0 < r.ttl(join_code_key(body["join_code"])) <= 24 * 3600
    assert r.ttl(game_key(game_id)) > 24 * 3600


def test_create_without_identity_has_no_owner(client: TestClient) -> None:
    body = _create(client, None)

    assert body["initial_state"]["owner_id"] is None
    assert body["initial_state"]["players"] == []


def test_create_rejects_bad_identity_and_player_range(client: TestClient) -> None:
    bad_identity = client.post("/game/rpg/create", json=_payload(), headers={"x-player-id": "bob"})
    bad_range = client.post("/game/rpg/create", json=_payload(min_players=5, max_players=2))

    assert bad_identity.status_code == 401
    assert bad_range.status_code == 400
    assert bad_range.json()["code"] == "INVALID_PLAYER_RANGE"


def test_join_code_resolves_to_game(client: TestClient) -> None:
    body = _create(client, _pid())

    res = client.get(f"/game/rpg/join/{body['join_code']}")
    missing = client.get("/game/rpg/join/brave-dragon-999x")

    assert res.status_code == 200
    assert res.json()["game_id"] == body["game_id"]
    assert missing.status_code == 404
    assert missing.json()["code"] == "JOIN_CODE_NOT_FOUND"


def test_get_reports_owner_permissions(client: TestClient) -> None:
    owner = _pid()
    game_id = _create(client, owner)["game_id"]

    res = client.get(f"/game/rpg/{game_id}", headers={"x-player-id": owner})

    assert res.status_code == 200
    body = res.json()
    assert body["game"]["name"] == "The Lost Crown"
    assert body["game"]["created_by"] == owner
    assert body["player_permissions"] == {
        "can_modify": True,
        "can_invite": True,
        "can_kick": True,
        "can_delete": True,
    }


def test_get_requires_identity_and_membership(client: TestClient) -> None:
    game_id = _create(client, _pid())["game_id"]

    anonymous = client.get(f"/game/rpg/{game_id}")
    stranger = client.get(f"/game/rpg/{game_id}", headers={"x-player-id": _pid()})
    missing = client.get(f"/game/rpg/{uuid4()}", headers={"x-player-id": _pid()})

    assert anonymous.status_code == 401
    assert stranger.status_code == 403
    assert missing.status_code == 404


def test_get_rejects_a_deduction_game_id(client: TestClient) -> None:
    owner = _pid()
    res = client.post(
        "/game/deduction/create",
        json={
            "name": "Not an RPG",
            "max_players": 6,
            "min_players": 4,
            "is_private": False,
            "creator_id": owner,
            "settings": {
                "theme": "noir",
                "scenario": "werewolf",
                "duration": "short",
                "discussion_time_per_round": 3,
                "voting_time_limit": 1,
                "allows_whispering": True,
                "reveal_roles_on_death": False,
                "allows_last_words": False,
                "enable_clues": False,
            },
        },
    )
    game_id = res.json()["game_id"]

    got = client.get(f"/game/rpg/{game_id}", headers={"x-player-id": owner})
    deleted = client.delete(f"/game/rpg/{game_id}", headers={"x-player-id": owner})

    assert got.status_code == 400
    assert got.json()["code"] == "INVALID_GAME_TYPE"
    assert deleted.status_code == 400
    assert deleted.json()["code"] == "INVALID_GAME_TYPE"


def test_delete_removes_game_meta_and_join_code(client_and_redis: tuple[TestClient, fakeredis.FakeRedis]) -> None:
    client, r = client_and_redis
    owner = _pid()
    body = _create(client, owner)
    game_id = body["game_id"]

    res = client.delete(f"/game/rpg/{game_id}", headers={"x-player-id": owner})

    assert res.status_code == 200
    stats = res.json()["final_statistics"]
    assert stats["completion_status"] == "setup_incomplete"
    assert stats["players_joined"] == 1
    assert stats["total_actions"] == 0
    assert r.get(game_key(game_id)) is None
    assert r.get(rpg_meta_key(game_id)) is None
    assert r.get(join_code_key(body["join_code"])) is None
    assert r.get(creator_games_key(owner)) is None
    assert client.get(f"/game/rpg/join/{body['join_code']}").status_code == 404


def test_delete_is_owner_only(client: TestClient) -> None:
    game_id = _create(client, _pid())["game_id"]

    anonymous = client.delete(f"/game/rpg/{game_id}")
    stranger = client.delete(f"/game/rpg/{game_id}", headers={"x-player-id": _pid()})

    assert anonymous.status_code == 401
    assert stranger.status_code == 403
    assert stranger.json()["code"] == "INSUFFICIENT_PERMISSIONS"


def test_generated_world_is_used_when_available(client: TestClient, monkeypatch) -> None:  # type: ignore[no-untyped-def]
    async def _fake_generate(content_type, context, **_kwargs):  # type: ignore[no-untyped-def]
        assert context["tone"] == "balanced"
        return {
            "name": "Isles of Brass",
            "description": "Clockwork archipelago",
            "locations": [{"location_id": "port", "name": "Cogport"}],
            "npcs": [],
            "factions": [],
        }

    monkeypatch.setattr("partyhub.rpg_store.generate_content", _fake_generate)

    body = _create(client, _pid())

    assert body["world_summary"]["name"] == "Isles of Brass"
    assert body["world_summary"]["theme"] == "high fantasy"
    assert body["initial_state"]["data"]["current_location"] == "port"
