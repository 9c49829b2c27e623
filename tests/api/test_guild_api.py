"""Guild API endpoint tests"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

NOW = datetime(2030, 6, 1, 12, 0, 0)


def _register(client: TestClient, player_id: str, level: int = 10, last_login=None) -> None:
    body = {"player_id": player_id, "level": level}
    if last_login is not None:
        body["last_login"] = last_login.isoformat()
    assert client.post("/admin/players", json=body).status_code == 201


def _create(client: TestClient, founder="founder", name="Alpha Squadron", tag="alpha", **extra):
    body = {"founder_id": founder, "name": name, "tag": tag}
    body.update(extra)
    return client.post("/guilds", json=body)


@pytest.fixture()
def guild(client: TestClient) -> dict:
    for player_id in ("founder", "p2", "p3"):
        _register(client, player_id)
    response = _create(client)
    assert response.status_code == 201
    return response.json()


class TestDirectory:
    def test_create(self, client: TestClient, guild: dict) -> None:
        assert guild["tag"] == "ALPHA"
        assert guild["founder_id"] == "founder"
        assert guild["member_count"] == 1
        assert guild["max_members"] == 50
        assert len(guild["roles"]) == 6

    def test_duplicate_tag_is_conflict(self, client: TestClient, guild: dict) -> None:
        response = _create(client, founder="p2", name="Beta Wing", tag="ALPHA")
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_invalid_name(self, client: TestClient, guild: dict) -> None:
        response = _create(client, founder="p2", name="AB", tag="AB")
        assert response.status_code == 422

    def test_unknown_founder(self, client: TestClient) -> None:
        response = _create(client, founder="ghost")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_get_and_search(self, client: TestClient, guild: dict) -> None:
        assert client.get(f"/guilds/{guild['guild_id']}").json()["name"] == "Alpha Squadron"
        results = client.get("/guilds", params={"name": "alpha"}).json()
        assert [g["tag"] for g in results] == ["ALPHA"]

    def test_missing_guild(self, client: TestClient) -> None:
        assert client.get("/guilds/nope").status_code == 404

    def test_player_guild(self, client: TestClient, guild: dict) -> None:
        assert client.get("/guilds/players/founder").json()["guild_id"] == guild["guild_id"]
        assert client.get("/guilds/players/p2").status_code == 404

    def test_leaderboard_and_stats(self, client: TestClient, guild: dict) -> None:
        board = client.get("/guilds/leaderboard", params={"category": "members"}).json()
        assert board[0]["rank"] == 1
        assert client.get("/guilds/leaderboard", params={"category": "wealth"}).status_code == 422
        stats = client.get("/guilds/stats").json()
        assert stats["total_guilds"] == 1
        assert stats["total_members"] == 1


class TestMembership:
    def test_open_guild_auto_join(self, client: TestClient, guild: dict) -> None:
        response = client.post(f"/guilds/{guild['guild_id']}/applications", json={"player_id": "p2"})
        assert response.status_code == 201
        assert response.json()["status"] == "accepted"
        assert client.get(f"/guilds/{guild['guild_id']}").json()["member_count"] == 2

    def test_application_flow(self, client: TestClient) -> None:
        _register(client, "founder")
        _register(client, "p2")
        created = _create(client, requires_application=True).json()

        applied = client.post(
            f"/guilds/{created['guild_id']}/applications",
            json={"player_id": "p2", "message": "hello"},
        ).json()
        assert applied["status"] == "pending"
        pending = client.get(f"/guilds/{created['guild_id']}/applications").json()
        assert [a["player_id"] for a in pending] == ["p2"]

        decided = client.post(
            f"/guilds/applications/{applied['application_id']}/decision",
            json={"processor_id": "founder", "decision": "accepted"},
        )
        assert decided.status_code == 200
        assert decided.json()["processed_by"] == "founder"

        again = client.post(
            f"/guilds/applications/{applied['application_id']}/decision",
            json={"processor_id": "founder", "decision": "rejected"},
        )
        assert again.status_code == 409
        assert again.json()["error"] == "state_error"

    def test_closed_guild_is_forbidden(self, client: TestClient) -> None:
        _register(client, "founder")
        _register(client, "p2")
        created = _create(client, recruitment_open=False).json()
        response = client.post(f"/guilds/{created['guild_id']}/applications", json={"player_id": "p2"})
        assert response.status_code == 403

    def test_full_guild(self, client: TestClient) -> None:
        for player_id in ("founder", "p2", "p3"):
            _register(client, player_id)
        created = _create(client, max_members=2).json()
        client.post(f"/guilds/{created['guild_id']}/applications", json={"player_id": "p2"})
        response = client.post(f"/guilds/{created['guild_id']}/applications", json={"player_id": "p3"})
        assert response.status_code == 409
        assert response.json()["error"] == "capacity_exceeded"

    def test_roles_kick_and_leave(self, client: TestClient, guild: dict) -> None:
        for player_id in ("p2", "p3"):
            client.post(f"/guilds/{guild['guild_id']}/applications", json={"player_id": player_id})

        promoted = client.post(
            "/guilds/roles", json={"changer_id": "founder", "target_id": "p2", "role_id": "officer"}
        )
        assert promoted.json()["role_id"] == "officer"

        denied = client.post("/guilds/kick", json={"kicker_id": "p2", "target_id": "p3"})
        assert denied.status_code == 403

        kicked = client.post(
            "/guilds/kick", json={"kicker_id": "founder", "target_id": "p3", "reason": "spam"}
        )
        assert kicked.status_code == 204

        assert client.post("/guilds/leave", json={"player_id": "p2"}).status_code == 204
        assert client.post("/guilds/leave", json={"player_id": "founder"}).status_code == 409
        assert client.get(f"/guilds/{guild['guild_id']}").json()["member_count"] == 1

    def test_transfer_and_disband(self, client: TestClient, guild: dict) -> None:
        client.post(f"/guilds/{guild['guild_id']}/applications", json={"player_id": "p2"})

        transferred = client.post(
            f"/guilds/{guild['guild_id']}/transfer",
            json={"current_founder_id": "founder", "new_founder_id": "p2"},
        )
        assert transferred.json()["founder_id"] == "p2"

        wrong = client.post("/guilds/disband", json={"player_id": "p2", "confirmation_code": "nope"})
        assert wrong.status_code == 409

        disbanded = client.post(
            "/guilds/disband", json={"player_id": "p2", "confirmation_code": "DISBAND_ALPHA"}
        )
        assert disbanded.json() == {"guild_id": guild["guild_id"], "is_active": False}
        assert client.get(f"/guilds/{guild['guild_id']}").status_code == 404
        events = client.get(f"/guilds/{guild['guild_id']}/events").json()
        assert events[0]["event_type"] == "guild_disbanded"


class TestTreasury:
    def test_deposit_and_withdraw(self, client: TestClient, guild: dict) -> None:
        deposit = client.post(
            "/guilds/treasury/deposit",
            json={"player_id": "founder", "resource_type": "credits", "amount": 1000},
        )
        assert deposit.status_code == 200
        assert deposit.json()["balance"] == 1000
        assert deposit.json()["contribution_awarded"] == 100

        withdraw = client.post(
            "/guilds/treasury/withdraw",
            json={"player_id": "founder", "resource_type": "credits", "amount": 250},
        )
        assert withdraw.json()["balance"] == 750

        overdraw = client.post(
            "/guilds/treasury/withdraw",
            json={"player_id": "founder", "resource_type": "credits", "amount": 5000},
        )
        assert overdraw.status_code == 409
        assert overdraw.json()["error"] == "insufficient_funds"

    def test_invalid_amount(self, client: TestClient, guild: dict) -> None:
        response = client.post(
            "/guilds/treasury/deposit",
            json={"player_id": "founder", "resource_type": "credits", "amount": -5},
        )
        assert response.status_code == 422

    def test_perks_and_bonuses(self, client: TestClient, guild: dict) -> None:
        assert client.get(f"/guilds/{guild['guild_id']}/perks").json() == []
        locked = client.post(
            "/guilds/perks/activate", json={"player_id": "founder", "perk_id": "resource_bonus"}
        )
        assert locked.status_code == 422
        assert locked.json()["error"] == "perk_unavailable"

        bonuses = client.get("/guilds/players/founder/bonuses").json()
        assert bonuses == {"leadership_bonus": 0.05}


class TestDiplomacy:
    def test_relation_both_ways(self, client: TestClient, guild: dict) -> None:
        beta = _create(client, founder="p2", name="Beta Wing", tag="BETA").json()

        response = client.post(
            "/guilds/relations",
            json={"initiator_id": "founder", "target_guild_id": beta["guild_id"], "relation": "ALLY"},
        )

        assert response.json() == {"target_guild_id": beta["guild_id"], "relation": "ALLY"}
        assert client.get(f"/guilds/{beta['guild_id']}").json()["allies"] == [guild["guild_id"]]


class TestAdmin:
    def test_tick_runs_guild_maintenance(self, client: TestClient, guild: dict) -> None:
        _register(client, "p3", last_login=NOW - timedelta(days=30))
        client.post(f"/guilds/{guild['guild_id']}/applications", json={"player_id": "p3"})

        first = client.post("/admin/tick", json={"now": NOW.isoformat()})
        assert first.json() == {"tick": 1, "modules": ["reputation", "guild"]}
        second = client.post("/admin/tick", json={"now": (NOW + timedelta(minutes=5)).isoformat()})
        assert second.json() == {"tick": 2, "modules": []}

        roster = {m["player_id"]: m for m in client.get(f"/guilds/{guild['guild_id']}").json()["members"]}
        assert roster["p3"]["is_active"] is False

    def test_login_unknown_player(self, client: TestClient) -> None:
        assert client.post("/admin/players/ghost/login").status_code == 404

    def test_register_rejects_bad_level(self, client: TestClient) -> None:
        response = client.post("/admin/players", json={"player_id": "p9", "level": 0})
        assert response.status_code == 422
