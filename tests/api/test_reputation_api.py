"""Reputation API endpoint tests"""

from fastapi.testclient import TestClient

MIL = "military-coalition"
TRA = "trade-federation"
PIR = "crimson-raiders"
SCI = "research-collective"
NEU = "independent-systems"


def _act(client: TestClient, faction_id: str, action_code: str, **extra):
    body = {"player_id": "p1", "faction_id": faction_id, "action_code": action_code}
    body.update(extra)
    return client.post("/reputation/actions", json=body)


class TestFactions:
    def test_list_factions(self, client: TestClient) -> None:
        response = client.get("/reputation/factions")
        assert response.status_code == 200
        assert {f["faction_id"] for f in response.json()} == {MIL, TRA, PIR, SCI, NEU}

    def test_relationships_for_one_faction(self, client: TestClient) -> None:
        response = client.get("/reputation/factions/relationships", params={"faction_id": MIL})
        edges = {e["target_faction_id"]: e["kind"] for e in response.json()}
        assert edges == {TRA: "ALLIED", PIR: "ENEMY", SCI: "NEUTRAL", NEU: "NEUTRAL"}

    def test_set_relationship_clamps_strength(self, client: TestClient) -> None:
        response = client.put(
            f"/reputation/factions/{SCI}/relationships/{PIR}",
            json={"kind": "NEUTRAL", "strength": 3.0},
        )
        assert response.status_code == 200
        assert response.json()["strength"] == 1.0

    def test_self_relationship_rejected(self, client: TestClient) -> None:
        response = client.put(
            f"/reputation/factions/{MIL}/relationships/{MIL}",
            json={"kind": "ALLIED", "strength": 0.5},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"


class TestActions:
    def test_trade_propagates_to_neighbours(self, client: TestClient) -> None:
        response = _act(client, MIL, "TRADE_COMPLETED")

        assert response.status_code == 200
        data = response.json()
        assert data["delta"] == 2.0
        assert data["new_value"] == 2.0
        assert data["tier_changed"] is False
        propagated = {p["faction_id"]: p["delta"] for p in data["propagated"]}
        assert propagated == {TRA: 0.4, PIR: -0.4}

    def test_tier_drop_triggers_consequence(self, client: TestClient) -> None:
        response = _act(client, PIR, "KILL_FACTION_MEMBER", multiplier=2)

        data = response.json()
        assert data["new_value"] == -50.0
        assert data["new_tier"] == "HOSTILE"
        assert "DECLARE_HOSTILE" in [c["kind"] for c in data["consequences"]]
        propagated = {p["faction_id"]: p["delta"] for p in data["propagated"]}
        assert propagated[MIL] == -25.0

        trade = client.get(f"/reputation/players/p1/factions/{PIR}/interactions/TRADE")
        assert trade.json()["allowed"] is False
        records = client.get("/reputation/players/p1/consequences").json()
        assert PIR in {r["faction_id"] for r in records}

    def test_unknown_action(self, client: TestClient) -> None:
        response = _act(client, MIL, "BAKE_CAKE")
        assert response.status_code == 422
        assert response.json()["error"] == "unknown_action"

    def test_unknown_faction(self, client: TestClient) -> None:
        response = _act(client, "XXX", "TRADE_COMPLETED")
        assert response.status_code == 422
        assert response.json()["error"] == "unknown_faction"


class TestPlayerStanding:
    def test_default_standing(self, client: TestClient) -> None:
        response = client.get(f"/reputation/players/p1/factions/{TRA}")
        data = response.json()
        assert data["value"] == 0.0
        assert data["tier"] == "UNFRIENDLY"
        assert data["effects"]["can_trade"] is True

    def test_summary_covers_every_faction(self, client: TestClient) -> None:
        _act(client, TRA, "CONTRACT_COMPLETED")
        summary = client.get("/reputation/players/p1").json()
        assert len(summary) == 5
        values = {s["faction_id"]: s["value"] for s in summary}
        assert values[TRA] == 5.0

    def test_history_filter(self, client: TestClient) -> None:
        _act(client, MIL, "TRADE_COMPLETED", reason="convoy run")

        everything = client.get("/reputation/players/p1/history").json()
        own = client.get("/reputation/players/p1/history", params={"faction_id": MIL}).json()

        assert len(everything) == 3
        assert len(own) == 1
        assert own[0]["action_code"] == "TRADE_COMPLETED"
        assert own[0]["reason"] == "convoy run"


class TestMaintenance:
    def test_stats(self, client: TestClient) -> None:
        _act(client, MIL, "TRADE_COMPLETED")
        stats = client.get("/reputation/stats").json()
        assert stats["ledger_records"] == 3
        assert stats["faction_relationships"] == 20

    def test_decay_endpoint(self, client: TestClient) -> None:
        response = client.post("/reputation/decay")
        assert response.status_code == 200
        assert response.json()["examined"] == 0

    def test_cache_rebuild(self, client: TestClient) -> None:
        _act(client, MIL, "TRADE_COMPLETED")
        response = client.post("/reputation/cache/rebuild")
        assert response.json() == {"cached": 3}
