"""Static catalogs: actions, standing tiers, relationship multipliers."""

from typing import Dict, Tuple

from governance.core.reputation.models import (
    EffectsBundle,
    RelationKind,
    ReputationAction,
    StandingDefinition,
    StandingTier,
    TerritoryAccess,
)

DECAY_ACTION = "REPUTATION_DECAY"
CROSS_FACTION_PREFIX = "CROSS_FACTION_"

REPUTATION_MIN = -100.0
REPUTATION_MAX = 100.0


_ACTIONS = (
    # positive
    ReputationAction("TRADE_COMPLETED", 2, "Completed trade transaction"),
    ReputationAction("CONTRACT_COMPLETED", 5, "Completed contract successfully"),
    ReputationAction("ALLY_ASSISTED", 8, "Assisted faction fleet"),
    ReputationAction("ENEMY_DEFEATED", 10, "Defeated faction enemy"),
    ReputationAction("RESCUE_PERFORMED", 15, "Rescued faction members"),
    ReputationAction("INTEL_PROVIDED", 3, "Provided valuable intelligence"),
    # negative
    ReputationAction("ATTACK_FACTION", -15, "Attacked faction fleet"),
    ReputationAction("KILL_FACTION_MEMBER", -25, "Killed faction member"),
    ReputationAction("STEAL_CARGO", -5, "Stole faction cargo"),
    ReputationAction("SABOTAGE", -20, "Sabotaged faction assets"),
    ReputationAction("CONTRACT_FAILED", -8, "Failed to complete contract"),
    ReputationAction("TRESPASSING", -3, "Entered restricted territory"),
    ReputationAction("PIRACY", -12, "Committed piracy against faction"),
    # neutral / special
    ReputationAction("FIRST_CONTACT", 0, "First contact with faction"),
    ReputationAction("PEACEFUL_ENCOUNTER", 1, "Peaceful encounter"),
    ReputationAction("IGNORED_WARNING", -2, "Ignored faction warning"),
    ReputationAction("SURRENDERED", -5, "Surrendered to faction"),
)

REPUTATION_ACTIONS: Dict[str, ReputationAction] = {a.code: a for a in _ACTIONS}


# Ordered lowest to highest; thresholds strictly increasing.
STANDING_TABLE: Tuple[StandingDefinition, ...] = (
    StandingDefinition(
        tier=StandingTier.HOSTILE,
        threshold=-75,
        name="Hostile",
        description="Kill on sight - actively hunted",
        effects=EffectsBundle(
            can_trade=False,
            attack_on_sight=True,
            bounty_multiplier=2.0,
            contract_access=False,
            territory_access=TerritoryAccess.BANNED,
            price_multiplier=0.0,  # no trading
            special_services=False,
            diplomatic_immunity=False,
            escort_available=False,
        ),
    ),
    StandingDefinition(
        tier=StandingTier.UNFRIENDLY,
        threshold=-25,
        name="Unfriendly",
        description="Unwelcome - treated with suspicion",
        effects=EffectsBundle(
            can_trade=True,
            attack_on_sight=False,
            bounty_multiplier=1.5,
            contract_access=False,
            territory_access=TerritoryAccess.WATCHED,
            price_multiplier=1.3,
            special_services=False,
            diplomatic_immunity=False,
            escort_available=False,
        ),
    ),
    StandingDefinition(
        tier=StandingTier.NEUTRAL,
        threshold=25,
        name="Neutral",
        description="Unknown - standard treatment",
        effects=EffectsBundle(
            can_trade=True,
            attack_on_sight=False,
            bounty_multiplier=1.0,
            contract_access=True,
            territory_access=TerritoryAccess.ALLOWED,
            price_multiplier=1.0,
            special_services=False,
            diplomatic_immunity=False,
            escort_available=False,
        ),
    ),
    StandingDefinition(
        tier=StandingTier.FRIENDLY,
        threshold=75,
        name="Friendly",
        description="Welcome - favorable treatment",
        effects=EffectsBundle(
            can_trade=True,
            attack_on_sight=False,
            bounty_multiplier=0.5,
            contract_access=True,
            territory_access=TerritoryAccess.WELCOMED,
            price_multiplier=0.85,
            special_services=True,
            diplomatic_immunity=False,
            escort_available=True,
        ),
    ),
    StandingDefinition(
        tier=StandingTier.ALLIED,
        threshold=100,
        name="Allied",
        description="Trusted ally - maximum benefits",
        effects=EffectsBundle(
            can_trade=True,
            attack_on_sight=False,
            bounty_multiplier=0.0,
            contract_access=True,
            territory_access=TerritoryAccess.UNRESTRICTED,
            price_multiplier=0.7,
            special_services=True,
            diplomatic_immunity=True,
            escort_available=True,
        ),
    ),
)

STANDINGS_BY_TIER: Dict[StandingTier, StandingDefinition] = {
    d.tier: d for d in STANDING_TABLE
}


# kind -> (positive multiplier, negative multiplier), applied to the signed delta.
# Any standing change with a faction moves its enemies against the player.
RELATIONSHIP_MULTIPLIERS: Dict[RelationKind, Tuple[float, float]] = {
    RelationKind.ALLIED: (0.3, 0.1),
    RelationKind.ENEMY: (-0.2, 0.5),
    RelationKind.NEUTRAL: (0.0, 0.0),
}
