"""Standing resolution: value -> tier + effects bundle."""

from governance.core.reputation.catalog import STANDING_TABLE, STANDINGS_BY_TIER
from governance.core.reputation.models import (
    EffectsBundle,
    InteractionKind,
    Standing,
    StandingTier,
    TerritoryAccess,
)


def resolve_standing(value: float) -> Standing:
    """Highest tier whose threshold <= value; HOSTILE below every threshold.

    Thresholds are lower-inclusive.
    """
    for definition in reversed(STANDING_TABLE):
        if value >= definition.threshold:
            return Standing(tier=definition.tier, value=value, definition=definition)
    hostile = STANDINGS_BY_TIER[StandingTier.HOSTILE]
    return Standing(tier=StandingTier.HOSTILE, value=value, definition=hostile)


def interaction_allowed(effects: EffectsBundle, kind: str) -> bool:
    """Map an interaction kind onto the effects bundle. Unknown kinds are allowed."""
    try:
        interaction = InteractionKind(kind)
    except ValueError:
        return True

    if interaction is InteractionKind.TRADE:
        return effects.can_trade
    if interaction is InteractionKind.CONTRACTS:
        return effects.contract_access
    if interaction is InteractionKind.ENTER_TERRITORY:
        return effects.territory_access is not TerritoryAccess.BANNED
    if interaction is InteractionKind.SPECIAL_SERVICES:
        return effects.special_services
    return effects.escort_available
