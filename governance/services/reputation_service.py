"""Reputation Service - ledger, actions, propagation, decay, consequences.

Writes go to the store inside one transaction per logical operation. The
standing cache, events and notifications are updated only after commit.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from governance.config import settings
from governance.core.clock import utcnow
from governance.core.errors import (
    GovernanceError,
    UnknownActionError,
    UnknownFactionError,
    ValidationError,
)
from governance.core.event_bus import EventBus, GameEvent
from governance.core.event_types import EventTypes
from governance.core.logging import get_logger
from governance.core.reputation import (
    CROSS_FACTION_PREFIX,
    DECAY_ACTION,
    REPUTATION_ACTIONS,
    ActionContext,
    ActionOutcome,
    DecayReport,
    FactionRelationship,
    PropagatedChange,
    RelationKind,
    ReputationEvent,
    Standing,
    StandingTier,
    apply_delta,
    compute_action_delta,
    compute_decay_step,
    compute_propagated_delta,
    interaction_allowed,
    resolve_standing,
)
from governance.core.reputation.consequences import (
    NOTICE_KINDS,
    Consequence,
    resolve_consequences,
)
from governance.db.database import transaction
from governance.db.models import (
    FactionModel,
    FactionRelationshipModel,
    PlayerReputationModel,
    ReputationConsequenceModel,
    ReputationHistoryModel,
)
from governance.services.notifications import Notifier
from governance.services.standing_cache import StandingCache

logger = get_logger(__name__)

SOURCE = "reputation_service"


@dataclass
class _LedgerChange:
    """One committed ledger write, published after commit."""

    player_id: str
    faction_id: str
    action_code: str
    delta: float
    old_value: float
    new_value: float
    old_tier: StandingTier
    new_tier: StandingTier


class ReputationService:
    """Reputation ledger, standing queries, action application and decay."""

    def __init__(
        self,
        db_session: Session,
        event_bus: EventBus,
        notifier: Optional[Notifier] = None,
        cache: Optional[StandingCache] = None,
        decay_rate: Optional[float] = None,
        grace_days: Optional[int] = None,
        history_limit: Optional[int] = None,
    ) -> None:
        self._db = db_session
        self._bus = event_bus
        self._notifier = notifier or Notifier(event_bus)
        self._cache = cache if cache is not None else StandingCache()
        self._decay_rate = (
            decay_rate if decay_rate is not None else settings.REPUTATION_DECAY_RATE
        )
        self._grace = timedelta(
            days=grace_days if grace_days is not None else settings.REPUTATION_DECAY_GRACE_DAYS
        )
        self._history_limit = (
            history_limit if history_limit is not None else settings.REPUTATION_HISTORY_LIMIT
        )

        self._stats: Dict[str, Any] = {
            "reputation_changes": 0,
            "standing_changes": 0,
            "consequences_triggered": 0,
            "decay_runs": 0,
            "last_decay_at": None,
        }

    @property
    def cache(self) -> StandingCache:
        return self._cache

    # ── Factions ─────────────────────────────────────────────

    def _require_faction(self, faction_id: str) -> FactionModel:
        row = self._db.get(FactionModel, faction_id)
        if row is None:
            raise UnknownFactionError(f"Unknown faction: {faction_id}")
        return row

    def _faction_names(self) -> Dict[str, str]:
        return {f.faction_id: f.name for f in self._db.query(FactionModel).all()}

    def list_factions(self) -> List[Dict[str, Any]]:
        rows = self._db.query(FactionModel).order_by(FactionModel.name).all()
        return [
            {
                "faction_id": r.faction_id,
                "name": r.name,
                "faction_type": r.faction_type,
                "description": r.description,
            }
            for r in rows
        ]

    def set_faction_relationship(
        self,
        faction_id: str,
        target_faction_id: str,
        kind: RelationKind,
        strength: float = 1.0,
    ) -> FactionRelationship:
        """Upsert one directed edge. Strength is clamped to [0, 1]."""
        if faction_id == target_faction_id:
            raise ValidationError("A faction cannot have a relationship with itself")
        kind = RelationKind(kind)
        strength = max(0.0, min(1.0, float(strength)))

        with transaction(self._db):
            self._require_faction(faction_id)
            self._require_faction(target_faction_id)
            row = self._db.get(FactionRelationshipModel, (faction_id, target_faction_id))
            if row is None:
                row = FactionRelationshipModel(
                    faction_id=faction_id, target_faction_id=target_faction_id
                )
                self._db.add(row)
            row.kind = kind.value
            row.strength = strength

        logger.info(
            f"Faction relationship set: {faction_id} -> {target_faction_id} "
            f"{kind.value} (strength={strength})"
        )
        return FactionRelationship(faction_id, target_faction_id, kind, strength)

    def get_faction_relationships(
        self, faction_id: Optional[str] = None
    ) -> List[FactionRelationship]:
        query = self._db.query(FactionRelationshipModel)
        if faction_id is not None:
            self._require_faction(faction_id)
            query = query.filter(FactionRelationshipModel.faction_id == faction_id)
        rows = query.order_by(
            FactionRelationshipModel.faction_id, FactionRelationshipModel.target_faction_id
        ).all()
        return [
            FactionRelationship(
                faction_id=r.faction_id,
                target_faction_id=r.target_faction_id,
                kind=RelationKind(r.kind),
                strength=r.strength,
            )
            for r in rows
        ]

    # ── Ledger reads (lookup-or-default, no side effects) ───

    def get_reputation(self, player_id: str, faction_id: str) -> float:
        self._require_faction(faction_id)
        row = self._db.get(PlayerReputationModel, (player_id, faction_id))
        return row.value if row else 0.0

    def get_standing(self, player_id: str, faction_id: str) -> Standing:
        cached = self._cache.get(player_id, faction_id)
        if cached is not None:
            return cached
        self._require_faction(faction_id)
        row = self._db.get(PlayerReputationModel, (player_id, faction_id))
        if row is None:
            # only ledger records are cached
            return resolve_standing(0.0)
        standing = resolve_standing(row.value)
        self._cache.put(player_id, faction_id, standing)
        return standing

    def can_interact(self, player_id: str, faction_id: str, kind: str) -> bool:
        return interaction_allowed(self.get_standing(player_id, faction_id).effects, kind)

    def get_trade_price_modifier(self, player_id: str, faction_id: str) -> float:
        return self.get_standing(player_id, faction_id).effects.price_multiplier

    def get_bounty_multiplier(self, player_id: str, faction_id: str) -> float:
        return self.get_standing(player_id, faction_id).effects.bounty_multiplier

    def should_attack_on_sight(self, player_id: str, faction_id: str) -> bool:
        return self.get_standing(player_id, faction_id).effects.attack_on_sight

    def get_reputation_summary(self, player_id: str) -> List[Dict[str, Any]]:
        """Every faction with the player's value and standing, by faction name."""
        values = {
            r.faction_id: r.value
            for r in self._db.query(PlayerReputationModel)
            .filter(PlayerReputationModel.player_id == player_id)
            .all()
        }
        summary = []
        for faction in self._db.query(FactionModel).order_by(FactionModel.name).all():
            value = values.get(faction.faction_id, 0.0)
            standing = resolve_standing(value)
            summary.append(
                {
                    "faction_id": faction.faction_id,
                    "faction_name": faction.name,
                    "faction_type": faction.faction_type,
                    "value": value,
                    "standing": standing,
                }
            )
        return summary

    def get_reputation_history(
        self,
        player_id: str,
        faction_id: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> List[ReputationEvent]:
        """Newest first."""
        query = self._db.query(ReputationHistoryModel).filter(
            ReputationHistoryModel.player_id == player_id
        )
        if faction_id is not None:
            query = query.filter(ReputationHistoryModel.faction_id == faction_id)
        rows = (
            query.order_by(
                ReputationHistoryModel.timestamp.desc(), ReputationHistoryModel.id.desc()
            )
            .offset(max(0, offset))
            .limit(max(0, limit))
            .all()
        )
        return [
            ReputationEvent(
                player_id=r.player_id,
                faction_id=r.faction_id,
                action_code=r.action_code,
                delta=r.delta,
                reason=r.reason,
                context=dict(r.context or {}),
                timestamp=r.timestamp,
            )
            for r in rows
        ]

    def get_consequence_history(
        self, player_id: Optional[str] = None, limit: int = 50
    ) -> List[Dict[str, Any]]:
        query = self._db.query(ReputationConsequenceModel)
        if player_id is not None:
            query = query.filter(ReputationConsequenceModel.player_id == player_id)
        rows = (
            query.order_by(
                ReputationConsequenceModel.executed_at.desc(),
                ReputationConsequenceModel.id.desc(),
            )
            .limit(max(0, limit))
            .all()
        )
        return [
            {
                "player_id": r.player_id,
                "faction_id": r.faction_id,
                "kind": r.kind,
                "old_tier": r.old_tier,
                "new_tier": r.new_tier,
                "message": r.message,
                "executed_at": r.executed_at,
            }
            for r in rows
        ]

    # ── Actions ──────────────────────────────────────────────

    def apply_action(
        self,
        player_id: str,
        faction_id: str,
        action_code: str,
        context: Optional[ActionContext] = None,
        now: Optional[datetime] = None,
    ) -> ActionOutcome:
        """Apply a catalog action, propagate one hop, resolve consequences.

        Raises:
            UnknownActionError: action_code is not in the catalog
            UnknownFactionError: faction_id does not exist
        """
        action = REPUTATION_ACTIONS.get(action_code)
        if action is None:
            raise UnknownActionError(f"Unknown reputation action: {action_code}")
        context = context or ActionContext()
        now = now or utcnow()

        with transaction(self._db):
            self._require_faction(faction_id)
            names = self._faction_names()

            row = self._get_or_new_row(player_id, faction_id, now)
            delta = compute_action_delta(action.base, row.value, context)
            primary = self._write(
                row,
                action_code=action.code,
                delta=delta,
                reason=context.reason or action.description,
                context=context.snapshot(),
                now=now,
            )

            propagated: List[PropagatedChange] = []
            secondary_changes: List[_LedgerChange] = []
            for edge in self._outgoing_edges(faction_id):
                kind = RelationKind(edge.kind)
                secondary = compute_propagated_delta(delta, kind, edge.strength)
                if secondary is None:
                    continue
                target_row = self._get_or_new_row(player_id, edge.target_faction_id, now)
                change = self._write(
                    target_row,
                    action_code=f"{CROSS_FACTION_PREFIX}{action.code}",
                    delta=secondary,
                    reason=f"Cross-faction effect from {names.get(faction_id, faction_id)}",
                    context={"origin_faction": faction_id, "relationship": kind.value},
                    now=now,
                )
                secondary_changes.append(change)
                propagated.append(
                    PropagatedChange(
                        faction_id=edge.target_faction_id,
                        delta=secondary,
                        old_value=change.old_value,
                        new_value=change.new_value,
                        relationship=kind,
                    )
                )

            changes = [primary] + secondary_changes
            consequences = self._record_consequences(changes, names, now)
            self._trim_history(player_id)

        self._publish(changes, consequences)

        logger.info(
            f"Reputation: {player_id} / {faction_id} {action.code} "
            f"{primary.old_value} -> {primary.new_value} (delta={delta}, "
            f"{primary.old_tier.value} -> {primary.new_tier.value}, "
            f"propagated={len(propagated)})"
        )
        primary_consequences = [
            c for c in consequences if c.faction_id == faction_id
        ]
        return ActionOutcome(
            player_id=player_id,
            faction_id=faction_id,
            action_code=action.code,
            delta=delta,
            old_value=primary.old_value,
            new_value=primary.new_value,
            old_tier=primary.old_tier,
            new_tier=primary.new_tier,
            propagated=propagated,
            consequences=primary_consequences,
        )

    # ── Decay ────────────────────────────────────────────────

    def run_decay(self, now: Optional[datetime] = None) -> DecayReport:
        """Move stale values toward zero. Each record commits on its own.

        Records touched within the grace window are skipped. Decay does not
        update last_updated_at. A failing record is logged and skipped.
        """
        now = now or utcnow()
        cutoff = now - self._grace
        report = DecayReport()

        keys = [
            (r.player_id, r.faction_id)
            for r in self._db.query(
                PlayerReputationModel.player_id, PlayerReputationModel.faction_id
            )
            .filter(PlayerReputationModel.value != 0)
            .all()
        ]
        names = self._faction_names()

        for player_id, faction_id in keys:
            report.examined += 1
            try:
                change, consequences = self._decay_record(
                    player_id, faction_id, cutoff, names, now
                )
            except GovernanceError as exc:
                report.failed += 1
                logger.warning(
                    f"Decay skipped for {player_id} / {faction_id}: {exc.message}"
                )
                continue
            if change is None:
                report.skipped += 1
                continue
            report.decayed += 1
            self._publish([change], consequences, event_type=EventTypes.REPUTATION_DECAYED)

        self._stats["decay_runs"] += 1
        self._stats["last_decay_at"] = now
        logger.info(
            f"Reputation decay: examined={report.examined} decayed={report.decayed} "
            f"skipped={report.skipped} failed={report.failed}"
        )
        return report

    def _decay_record(
        self,
        player_id: str,
        faction_id: str,
        cutoff: datetime,
        names: Dict[str, str],
        now: datetime,
    ) -> Tuple[Optional[_LedgerChange], List[Consequence]]:
        with transaction(self._db):
            # re-read: an interactive update may have landed since the scan
            row = self._db.get(PlayerReputationModel, (player_id, faction_id))
            if row is None or row.value == 0 or row.last_updated_at >= cutoff:
                return None, []
            step = compute_decay_step(row.value, self._decay_rate)
            if step == 0:
                return None, []
            change = self._write(
                row,
                action_code=DECAY_ACTION,
                delta=step,
                reason="Reputation decay over time",
                context={"rate": self._decay_rate},
                now=now,
                touch=False,
            )
            consequences = self._record_consequences([change], names, now)
            self._trim_history(player_id)
        return change, consequences

    # ── Cache / stats ────────────────────────────────────────

    def rebuild_effects_cache(self) -> int:
        """Repopulate the standing cache from the ledger. Returns entries cached."""
        self._cache.clear()
        cached = 0
        for row in self._db.query(PlayerReputationModel).all():
            try:
                standing = resolve_standing(float(row.value))
            except (TypeError, ValueError):
                logger.warning(
                    f"Cache rebuild skipped {row.player_id} / {row.faction_id}: "
                    f"bad value {row.value!r}"
                )
                continue
            self._cache.put(row.player_id, row.faction_id, standing)
            cached += 1
        logger.info(f"Standing cache rebuilt: {cached} entries")
        return cached

    def get_reputation_stats(self) -> Dict[str, Any]:
        stats = dict(self._stats)
        stats["ledger_records"] = self._db.query(PlayerReputationModel).count()
        stats["faction_relationships"] = self._db.query(FactionRelationshipModel).count()
        stats["cached_standings"] = len(self._cache)
        return stats

    # ── Internal ─────────────────────────────────────────────

    def _get_or_new_row(
        self, player_id: str, faction_id: str, now: datetime
    ) -> PlayerReputationModel:
        row = self._db.get(PlayerReputationModel, (player_id, faction_id))
        if row is None:
            row = PlayerReputationModel(
                player_id=player_id, faction_id=faction_id, value=0.0, last_updated_at=now
            )
            self._db.add(row)
        return row

    def _outgoing_edges(self, faction_id: str) -> List[FactionRelationshipModel]:
        return (
            self._db.query(FactionRelationshipModel)
            .filter(
                FactionRelationshipModel.faction_id == faction_id,
                FactionRelationshipModel.target_faction_id != faction_id,
            )
            .order_by(FactionRelationshipModel.target_faction_id)
            .all()
        )

    def _write(
        self,
        row: PlayerReputationModel,
        action_code: str,
        delta: float,
        reason: str,
        context: Dict[str, Any],
        now: datetime,
        touch: bool = True,
    ) -> _LedgerChange:
        old_value = row.value or 0.0
        new_value = apply_delta(old_value, delta)
        row.value = new_value
        if touch:
            row.last_updated_at = now
        self._db.add(
            ReputationHistoryModel(
                player_id=row.player_id,
                faction_id=row.faction_id,
                action_code=action_code,
                delta=delta,
                reason=reason,
                context=context,
                timestamp=now,
            )
        )
        return _LedgerChange(
            player_id=row.player_id,
            faction_id=row.faction_id,
            action_code=action_code,
            delta=delta,
            old_value=old_value,
            new_value=new_value,
            old_tier=resolve_standing(old_value).tier,
            new_tier=resolve_standing(new_value).tier,
        )

    def _record_consequences(
        self, changes: List[_LedgerChange], names: Dict[str, str], now: datetime
    ) -> List[Consequence]:
        """Resolve consequences for every tier transition and write the audit rows."""
        consequences: List[Consequence] = []
        for change in changes:
            resolved = resolve_consequences(
                change.player_id,
                change.faction_id,
                change.old_tier,
                change.new_tier,
                faction_name=names.get(change.faction_id, ""),
            )
            for consequence in resolved:
                self._db.add(
                    ReputationConsequenceModel(
                        player_id=consequence.player_id,
                        faction_id=consequence.faction_id,
                        kind=consequence.kind.value,
                        old_tier=consequence.old_tier.value,
                        new_tier=consequence.new_tier.value,
                        message=consequence.message,
                        executed_at=now,
                    )
                )
            consequences.extend(resolved)
        return consequences

    def _trim_history(self, player_id: str) -> None:
        self._db.flush()
        stale = [
            r.id
            for r in self._db.query(ReputationHistoryModel.id)
            .filter(ReputationHistoryModel.player_id == player_id)
            .order_by(
                ReputationHistoryModel.timestamp.desc(), ReputationHistoryModel.id.desc()
            )
            .offset(self._history_limit)
            .all()
        ]
        if stale:
            self._db.query(ReputationHistoryModel).filter(
                ReputationHistoryModel.id.in_(stale)
            ).delete(synchronize_session=False)

    def _publish(
        self,
        changes: List[_LedgerChange],
        consequences: List[Consequence],
        event_type: str = EventTypes.REPUTATION_CHANGED,
    ) -> None:
        """Post-commit: cache, counters, events, notifications."""
        for change in changes:
            self._cache.put(
                change.player_id, change.faction_id, resolve_standing(change.new_value)
            )
            self._stats["reputation_changes"] += 1
            self._bus.emit(
                GameEvent(
                    event_type=event_type,
                    data={
                        "player_id": change.player_id,
                        "faction_id": change.faction_id,
                        "action_code": change.action_code,
                        "delta": change.delta,
                        "old_value": change.old_value,
                        "new_value": change.new_value,
                    },
                    source=SOURCE,
                )
            )
            if change.old_tier != change.new_tier:
                self._stats["standing_changes"] += 1
                logger.info(
                    f"Standing changed: {change.player_id} / {change.faction_id} "
                    f"{change.old_tier.value} -> {change.new_tier.value}"
                )
                self._bus.emit(
                    GameEvent(
                        event_type=EventTypes.STANDING_CHANGED,
                        data={
                            "player_id": change.player_id,
                            "faction_id": change.faction_id,
                            "old_tier": change.old_tier.value,
                            "new_tier": change.new_tier.value,
                        },
                        source=SOURCE,
                    )
                )

        for consequence in consequences:
            self._stats["consequences_triggered"] += 1
            self._notifier.send(
                consequence.player_id, consequence.message, NOTICE_KINDS[consequence.kind]
            )
            self._bus.emit(
                GameEvent(
                    event_type=EventTypes.CONSEQUENCE_EXECUTED,
                    data={
                        "player_id": consequence.player_id,
                        "faction_id": consequence.faction_id,
                        "kind": consequence.kind.value,
                        "old_tier": consequence.old_tier.value,
                        "new_tier": consequence.new_tier.value,
                    },
                    source=SOURCE,
                )
            )
