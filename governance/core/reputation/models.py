"""Reputation domain models.

Plain data classes with no database dependency.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class StandingTier(str, Enum):
    """Standing tiers, lowest to highest."""

    HOSTILE = "HOSTILE"
    UNFRIENDLY = "UNFRIENDLY"
    NEUTRAL = "NEUTRAL"
    FRIENDLY = "FRIENDLY"
    ALLIED = "ALLIED"

    @property
    def rank(self) -> int:
        return _TIER_ORDER.index(self)


_TIER_ORDER = [
    StandingTier.HOSTILE,
    StandingTier.UNFRIENDLY,
    StandingTier.NEUTRAL,
    StandingTier.FRIENDLY,
    StandingTier.ALLIED,
]


class TerritoryAccess(str, Enum):
    BANNED = "BANNED"
    WATCHED = "WATCHED"
    ALLOWED = "ALLOWED"
    WELCOMED = "WELCOMED"
    UNRESTRICTED = "UNRESTRICTED"


class RelationKind(str, Enum):
    """Faction-to-faction edge kind."""

    ALLIED = "ALLIED"
    ENEMY = "ENEMY"
    NEUTRAL = "NEUTRAL"


class InteractionKind(str, Enum):
    TRADE = "TRADE"
    CONTRACTS = "CONTRACTS"
    ENTER_TERRITORY = "ENTER_TERRITORY"
    SPECIAL_SERVICES = "SPECIAL_SERVICES"
    REQUEST_ESCORT = "REQUEST_ESCORT"


@dataclass(frozen=True)
class EffectsBundle:
    """Gameplay permissions and multipliers attached to a tier."""

    can_trade: bool
    attack_on_sight: bool
    bounty_multiplier: float
    contract_access: bool
    territory_access: TerritoryAccess
    price_multiplier: float
    special_services: bool
    diplomatic_immunity: bool
    escort_available: bool


@dataclass(frozen=True)
class StandingDefinition:
    tier: StandingTier
    threshold: float  # lower-inclusive
    name: str
    description: str
    effects: EffectsBundle


@dataclass(frozen=True)
class Standing:
    """Resolved standing for one reputation value."""

    tier: StandingTier
    value: float
    definition: StandingDefinition

    @property
    def effects(self) -> EffectsBundle:
        return self.definition.effects


@dataclass(frozen=True)
class ReputationAction:
    code: str
    base: float
    description: str


@dataclass
class ActionContext:
    """Optional modifiers supplied with an action."""

    multiplier: Optional[float] = None
    faction_modifier: Optional[float] = None
    value: Optional[float] = None
    reason: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        if self.multiplier is not None:
            data["multiplier"] = self.multiplier
        if self.faction_modifier is not None:
            data["faction_modifier"] = self.faction_modifier
        if self.value is not None:
            data["value"] = self.value
        if self.reason is not None:
            data["reason"] = self.reason
        return data


@dataclass
class ReputationRecord:
    player_id: str
    faction_id: str
    value: float = 0.0
    last_updated_at: Optional[datetime] = None


@dataclass
class ReputationEvent:
    """History entry (append-only)."""

    player_id: str
    faction_id: str
    action_code: str
    delta: float
    reason: str
    context: Dict[str, Any]
    timestamp: datetime


@dataclass(frozen=True)
class FactionRelationship:
    """Directed edge faction_id -> target_faction_id."""

    faction_id: str
    target_faction_id: str
    kind: RelationKind
    strength: float  # 0 ~ 1


@dataclass
class PropagatedChange:
    faction_id: str
    delta: float
    old_value: float
    new_value: float
    relationship: RelationKind


@dataclass
class ActionOutcome:
    """Before/after snapshot returned by apply_action."""

    player_id: str
    faction_id: str
    action_code: str
    delta: float
    old_value: float
    new_value: float
    old_tier: StandingTier
    new_tier: StandingTier
    propagated: List[PropagatedChange] = field(default_factory=list)
    consequences: List[Any] = field(default_factory=list)

    @property
    def tier_changed(self) -> bool:
        return self.old_tier != self.new_tier


@dataclass
class DecayReport:
    examined: int = 0
    decayed: int = 0
    skipped: int = 0
    failed: int = 0
