"""Reputation core package - public API"""

from governance.core.reputation.models import (
    ActionContext,
    ActionOutcome,
    DecayReport,
    EffectsBundle,
    FactionRelationship,
    InteractionKind,
    PropagatedChange,
    RelationKind,
    ReputationAction,
    ReputationEvent,
    ReputationRecord,
    Standing,
    StandingDefinition,
    StandingTier,
    TerritoryAccess,
)
from governance.core.reputation.catalog import (
    CROSS_FACTION_PREFIX,
    DECAY_ACTION,
    RELATIONSHIP_MULTIPLIERS,
    REPUTATION_ACTIONS,
    STANDING_TABLE,
    STANDINGS_BY_TIER,
)
from governance.core.reputation.calculations import (
    apply_delta,
    apply_diminishing_returns,
    clamp_reputation,
    compute_action_delta,
    compute_decay_step,
    compute_propagated_delta,
    compute_raw_delta,
    round_tenth,
)
from governance.core.reputation.standing import interaction_allowed, resolve_standing
from governance.core.reputation.consequences import (
    NOTICE_KINDS,
    Consequence,
    ConsequenceKind,
    resolve_consequences,
)

__all__ = [
    "ActionContext",
    "ActionOutcome",
    "DecayReport",
    "EffectsBundle",
    "FactionRelationship",
    "InteractionKind",
    "PropagatedChange",
    "RelationKind",
    "ReputationAction",
    "ReputationEvent",
    "ReputationRecord",
    "Standing",
    "StandingDefinition",
    "StandingTier",
    "TerritoryAccess",
    "CROSS_FACTION_PREFIX",
    "DECAY_ACTION",
    "RELATIONSHIP_MULTIPLIERS",
    "REPUTATION_ACTIONS",
    "STANDING_TABLE",
    "STANDINGS_BY_TIER",
    "apply_delta",
    "apply_diminishing_returns",
    "clamp_reputation",
    "compute_action_delta",
    "compute_decay_step",
    "compute_propagated_delta",
    "compute_raw_delta",
    "round_tenth",
    "interaction_allowed",
    "resolve_standing",
    "NOTICE_KINDS",
    "Consequence",
    "ConsequenceKind",
    "resolve_consequences",
]
