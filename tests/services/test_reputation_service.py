"""ReputationService integration tests (in-memory SQLite + EventBus).

Factions and relationship edges come from the bundled seed file:
military-coalition is allied with trade-federation (0.6), at war with
crimson-raiders (1.0) and neutral toward the other two.
"""

from datetime import datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, event as sa_event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from governance.core.errors import UnknownActionError, UnknownFactionError, ValidationError
from governance.core.event_bus import EventBus
from governance.core.event_types import EventTypes
from governance.core.reputation import (
    ActionContext,
    ConsequenceKind,
    RelationKind,
    StandingTier,
)
from governance.db.models import Base, PlayerReputationModel, ReputationHistoryModel
from governance.services.faction_catalog import FactionCatalogLoader
from governance.services.reputation_service import ReputationService

NOW = datetime(2030, 6, 1, 12, 0, 0)

MIL = "military-coalition"
TRA = "trade-federation"
PIR = "crimson-raiders"
SCI = "research-collective"
NEU = "independent-systems"


@pytest.fixture()
def setup():
    """In-memory DB + seeded factions + EventBus + ReputationService"""
    engine = create_engine("sqlite:///:memory:")

    @sa_event.listens_for(engine, "connect")
    def _set_fk(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    db = sessionmaker(bind=engine)()
    FactionCatalogLoader(db).seed(NOW)
    bus = EventBus()
    service = ReputationService(db, bus, decay_rate=0.1, grace_days=7, history_limit=100)
    return service, db, bus


def _set_value(db, player_id, faction_id, value, updated_at=NOW):
    db.merge(
        PlayerReputationModel(
            player_id=player_id,
            faction_id=faction_id,
            value=value,
            last_updated_at=updated_at,
        )
    )
    db.commit()


def _capture(bus, event_type):
    received = []
    bus.subscribe(event_type, received.append)
    return received


class TestLedgerReads:
    def test_default_value_is_zero(self, setup):
        service, _, _ = setup
        assert service.get_reputation("p1", MIL) == 0.0
        assert service.get_standing("p1", MIL).tier == StandingTier.UNFRIENDLY

    def test_unknown_faction(self, setup):
        service, _, _ = setup
        with pytest.raises(UnknownFactionError):
            service.get_reputation("p1", "XXX")

    def test_summary_lists_every_faction(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", TRA, 80)
        summary = service.get_reputation_summary("p1")
        assert len(summary) == 5
        trade = next(s for s in summary if s["faction_id"] == TRA)
        assert trade["standing"].tier == StandingTier.FRIENDLY

    def test_effects_helpers(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", PIR, -90)
        assert service.should_attack_on_sight("p1", PIR)
        assert service.get_bounty_multiplier("p1", PIR) == 2.0
        assert not service.can_interact("p1", PIR, "TRADE")
        assert service.get_trade_price_modifier("p1", MIL) == 1.3


class TestApplyAction:
    def test_trade_at_sixty(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, 60)
        outcome = service.apply_action("p1", MIL, "TRADE_COMPLETED", now=NOW)
        assert outcome.delta == 1.6
        assert outcome.new_value == 61.6
        assert service.get_reputation("p1", MIL) == 61.6
        assert not outcome.tier_changed

    def test_diminishing_returns_near_cap(self, setup):
        service, db, _ = setup
        _set_value(db, "high", MIL, 90)
        high = service.apply_action("high", MIL, "TRADE_COMPLETED", now=NOW)
        low = service.apply_action("low", MIL, "TRADE_COMPLETED", now=NOW)
        assert high.delta < low.delta

    def test_value_clamped_and_allied_consequences(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, 40)
        outcome = service.apply_action(
            "p1", MIL, "ENEMY_DEFEATED", ActionContext(multiplier=10), now=NOW
        )
        assert outcome.new_value == 100
        assert outcome.new_tier == StandingTier.ALLIED
        assert [c.kind for c in outcome.consequences] == [
            ConsequenceKind.DIPLOMATIC_IMMUNITY,
            ConsequenceKind.MAXIMUM_TRADE_DISCOUNT,
        ]

    def test_propagation_one_hop(self, setup):
        service, _, _ = setup
        outcome = service.apply_action("p1", MIL, "TRADE_COMPLETED", now=NOW)
        changes = {p.faction_id: p.delta for p in outcome.propagated}
        assert changes == {PIR: -0.4, TRA: 0.4}
        assert service.get_reputation("p1", TRA) == 0.4
        assert service.get_reputation("p1", PIR) == -0.4
        # TRA's own allies are not touched
        assert service.get_reputation("p1", NEU) == 0.0

    def test_harming_lowers_enemy_standing(self, setup):
        service, _, _ = setup
        service.apply_action("p1", MIL, "ATTACK_FACTION", now=NOW)
        assert service.get_reputation("p1", MIL) == -15.0
        assert service.get_reputation("p1", PIR) == -7.5

    def test_cross_faction_history_entry(self, setup):
        service, _, _ = setup
        service.apply_action("p1", MIL, "TRADE_COMPLETED", now=NOW)
        [entry] = service.get_reputation_history("p1", faction_id=TRA)
        assert entry.action_code == "CROSS_FACTION_TRADE_COMPLETED"
        assert entry.context == {"origin_faction": MIL, "relationship": "ALLIED"}

    def test_unknown_action_writes_nothing(self, setup):
        service, db, _ = setup
        with pytest.raises(UnknownActionError):
            service.apply_action("p1", MIL, "DANCE", now=NOW)
        assert db.query(ReputationHistoryModel).count() == 0

    def test_unknown_faction_writes_nothing(self, setup):
        service, db, _ = setup
        with pytest.raises(UnknownFactionError):
            service.apply_action("p1", "XXX", "TRADE_COMPLETED", now=NOW)
        assert db.query(PlayerReputationModel).count() == 0

    def test_history_context_and_reason(self, setup):
        service, _, _ = setup
        service.apply_action(
            "p1", SCI, "INTEL_PROVIDED", ActionContext(reason="Shared survey data"), now=NOW
        )
        [entry] = service.get_reputation_history("p1", faction_id=SCI)
        assert entry.reason == "Shared survey data"
        assert entry.delta == 3

    def test_history_is_capped(self, setup):
        _, db, bus = setup
        service = ReputationService(db, bus, history_limit=5)
        for _ in range(4):
            service.apply_action("p1", MIL, "TRADE_COMPLETED", now=NOW)
        assert len(service.get_reputation_history("p1", limit=100)) == 5

    def test_zero_history_limit_is_honored(self, setup):
        _, db, bus = setup
        service = ReputationService(db, bus, history_limit=0)
        service.apply_action("p1", MIL, "TRADE_COMPLETED", now=NOW)
        assert service.get_reputation("p1", MIL) == 2.0
        assert service.get_reputation_history("p1", limit=100) == []


class TestConsequences:
    def test_reaching_friendly_notifies(self, setup):
        service, db, bus = setup
        notices = _capture(bus, EventTypes.NOTIFICATION_SENT)
        standing_events = _capture(bus, EventTypes.STANDING_CHANGED)
        _set_value(db, "p1", MIL, 74)
        outcome = service.apply_action("p1", MIL, "CONTRACT_COMPLETED", now=NOW)
        assert outcome.new_value == 76.6
        assert [c.kind for c in outcome.consequences] == [
            ConsequenceKind.UNLOCK_SPECIAL_SERVICES
        ]
        assert notices[0].data["kind"] == "reputation.reward"
        assert standing_events[0].data["new_tier"] == "FRIENDLY"
        assert len(service.get_consequence_history("p1")) == 1

    def test_declared_hostile(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, -20)
        outcome = service.apply_action("p1", MIL, "KILL_FACTION_MEMBER", now=NOW)
        assert outcome.new_tier == StandingTier.HOSTILE
        assert [c.kind for c in outcome.consequences] == [ConsequenceKind.DECLARE_HOSTILE]
        assert not service.can_interact("p1", MIL, "TRADE")

    def test_propagated_transition_fires_once(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", PIR, -20)
        outcome = service.apply_action("p1", MIL, "ATTACK_FACTION", now=NOW)
        assert outcome.consequences == []
        assert service.get_reputation("p1", PIR) == -27.5
        history = service.get_consequence_history("p1")
        assert [(c["faction_id"], c["kind"]) for c in history] == [
            (PIR, "DECLARE_HOSTILE")
        ]

    def test_no_transition_no_consequence(self, setup):
        service, _, _ = setup
        service.apply_action("p1", MIL, "TRADE_COMPLETED", now=NOW)
        assert service.get_consequence_history("p1") == []


class TestDecay:
    def test_stale_record_moves_toward_zero(self, setup):
        service, db, bus = setup
        decayed = _capture(bus, EventTypes.REPUTATION_DECAYED)
        stale = NOW - timedelta(days=8)
        _set_value(db, "p1", MIL, 50, updated_at=stale)
        report = service.run_decay(NOW)
        assert (report.examined, report.decayed) == (1, 1)
        assert service.get_reputation("p1", MIL) == 49.9
        row = db.get(PlayerReputationModel, ("p1", MIL))
        assert row.last_updated_at == stale
        assert decayed[0].data["action_code"] == "REPUTATION_DECAY"

    def test_decay_does_not_reset_grace_window(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, -50, updated_at=NOW - timedelta(days=10))
        service.run_decay(NOW)
        service.run_decay(NOW + timedelta(days=1))
        assert service.get_reputation("p1", MIL) == -49.8

    def test_recent_record_skipped(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, 50, updated_at=NOW - timedelta(days=3))
        report = service.run_decay(NOW)
        assert report.skipped == 1
        assert service.get_reputation("p1", MIL) == 50

    def test_small_values_hold(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, 5, updated_at=NOW - timedelta(days=30))
        report = service.run_decay(NOW)
        assert report.skipped == 1
        assert service.get_reputation("p1", MIL) == 5

    def test_decay_history_entry(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", SCI, 80, updated_at=NOW - timedelta(days=8))
        service.run_decay(NOW)
        [entry] = service.get_reputation_history("p1", faction_id=SCI)
        assert entry.action_code == "REPUTATION_DECAY"
        assert entry.delta == -0.1

    def test_decay_updates_stats(self, setup):
        service, _, _ = setup
        service.run_decay(NOW)
        stats = service.get_reputation_stats()
        assert stats["decay_runs"] == 1
        assert stats["last_decay_at"] == NOW

    def test_failing_record_is_skipped(self, setup):
        service, db, _ = setup
        stale = NOW - timedelta(days=8)
        for player_id in ("p1", "p2", "p3"):
            _set_value(db, player_id, MIL, 50, updated_at=stale)
        trim = service._trim_history

        def _trim_or_fail(player_id):
            if player_id == "p2":
                raise OperationalError("DELETE", {}, Exception("database is locked"))
            return trim(player_id)

        with patch.object(service, "_trim_history", side_effect=_trim_or_fail):
            report = service.run_decay(NOW)

        assert (report.examined, report.decayed, report.failed) == (3, 2, 1)
        assert service.get_reputation("p1", MIL) == 49.9
        assert service.get_reputation("p2", MIL) == 50.0
        assert service.get_reputation("p3", MIL) == 49.9
        assert service.get_reputation_history("p2") == []


class TestFactionRelationships:
    def test_seeded_edges_are_mutual(self, setup):
        service, _, _ = setup
        edges = {(e.faction_id, e.target_faction_id) for e in service.get_faction_relationships()}
        assert (MIL, PIR) in edges and (PIR, MIL) in edges
        assert len(edges) == 20

    def test_strength_is_clamped(self, setup):
        service, _, _ = setup
        edge = service.set_faction_relationship(SCI, PIR, RelationKind.ALLIED, 1.5)
        assert edge.strength == 1.0
        [stored] = [e for e in service.get_faction_relationships(SCI) if e.target_faction_id == PIR]
        assert stored.kind == RelationKind.ALLIED

    def test_updated_edge_changes_propagation(self, setup):
        service, _, _ = setup
        service.set_faction_relationship(SCI, NEU, RelationKind.NEUTRAL, 1.0)
        service.apply_action("p1", SCI, "CONTRACT_COMPLETED", now=NOW)
        assert service.get_reputation("p1", NEU) == 0.0

    def test_self_edge_rejected(self, setup):
        service, _, _ = setup
        with pytest.raises(ValidationError):
            service.set_faction_relationship(MIL, MIL, RelationKind.ALLIED)

    def test_unknown_faction_edge_rejected(self, setup):
        service, _, _ = setup
        with pytest.raises(UnknownFactionError):
            service.set_faction_relationship(MIL, "XXX", RelationKind.ENEMY)


class TestCache:
    def test_rebuild_effects_cache(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, 80)
        _set_value(db, "p2", PIR, -80)
        assert service.rebuild_effects_cache() == 2
        assert service.get_reputation_stats()["cached_standings"] == 2

    def test_cache_follows_writes(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, 74)
        assert service.get_standing("p1", MIL).tier == StandingTier.NEUTRAL
        service.apply_action("p1", MIL, "CONTRACT_COMPLETED", now=NOW)
        assert service.get_standing("p1", MIL).tier == StandingTier.FRIENDLY

    def test_unrecorded_reads_are_not_cached(self, setup):
        service, _, _ = setup
        for player_id in ("ghost-1", "ghost-2", "ghost-3"):
            assert service.get_standing(player_id, MIL).value == 0.0
        assert len(service.cache) == 0

    def test_recorded_reads_are_cached(self, setup):
        service, db, _ = setup
        _set_value(db, "p1", MIL, 80)
        service.get_standing("p1", MIL)
        assert ("p1", MIL) in service.cache
