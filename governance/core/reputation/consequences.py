"""Consequences of standing tier transitions.

A closed catalog keyed by transition direction. Resolution is pure; the
service executes the returned consequences (notify + audit) exactly once
per transition.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from governance.core.reputation.models import StandingTier


class ConsequenceKind(str, Enum):
    UNLOCK_SPECIAL_SERVICES = "UNLOCK_SPECIAL_SERVICES"
    DIPLOMATIC_IMMUNITY = "DIPLOMATIC_IMMUNITY"
    MAXIMUM_TRADE_DISCOUNT = "MAXIMUM_TRADE_DISCOUNT"
    DECLARE_HOSTILE = "DECLARE_HOSTILE"
    REVOKE_TRADE_PRIVILEGES = "REVOKE_TRADE_PRIVILEGES"


@dataclass(frozen=True)
class Consequence:
    kind: ConsequenceKind
    player_id: str
    faction_id: str
    old_tier: StandingTier
    new_tier: StandingTier
    message: str

    @property
    def is_improvement(self) -> bool:
        return self.new_tier.rank > self.old_tier.rank


# Notification kind sent with each consequence. Every ConsequenceKind has an entry.
NOTICE_KINDS: Dict[ConsequenceKind, str] = {
    ConsequenceKind.UNLOCK_SPECIAL_SERVICES: "reputation.reward",
    ConsequenceKind.DIPLOMATIC_IMMUNITY: "reputation.reward",
    ConsequenceKind.MAXIMUM_TRADE_DISCOUNT: "reputation.reward",
    ConsequenceKind.DECLARE_HOSTILE: "reputation.warning",
    ConsequenceKind.REVOKE_TRADE_PRIVILEGES: "reputation.warning",
}

_MESSAGES: Dict[ConsequenceKind, str] = {
    ConsequenceKind.UNLOCK_SPECIAL_SERVICES: "You now have access to special services with {faction}",
    ConsequenceKind.DIPLOMATIC_IMMUNITY: "You have gained diplomatic immunity with {faction}",
    ConsequenceKind.MAXIMUM_TRADE_DISCOUNT: "You now receive maximum trade discounts with {faction}",
    ConsequenceKind.DECLARE_HOSTILE: "{faction} has declared you hostile - they will attack on sight!",
    ConsequenceKind.REVOKE_TRADE_PRIVILEGES: "Your trade privileges with {faction} have been restricted",
}


def _improvement_kinds(new_tier: StandingTier) -> List[ConsequenceKind]:
    if new_tier is StandingTier.FRIENDLY:
        return [ConsequenceKind.UNLOCK_SPECIAL_SERVICES]
    if new_tier is StandingTier.ALLIED:
        return [
            ConsequenceKind.DIPLOMATIC_IMMUNITY,
            ConsequenceKind.MAXIMUM_TRADE_DISCOUNT,
        ]
    return []


def _degradation_kinds(
    old_tier: StandingTier, new_tier: StandingTier
) -> List[ConsequenceKind]:
    kinds: List[ConsequenceKind] = []
    if new_tier is StandingTier.HOSTILE and old_tier is not StandingTier.HOSTILE:
        kinds.append(ConsequenceKind.DECLARE_HOSTILE)
    if (
        new_tier is StandingTier.UNFRIENDLY
        and old_tier.rank >= StandingTier.NEUTRAL.rank
    ):
        kinds.append(ConsequenceKind.REVOKE_TRADE_PRIVILEGES)
    return kinds


def resolve_consequences(
    player_id: str,
    faction_id: str,
    old_tier: StandingTier,
    new_tier: StandingTier,
    faction_name: str = "",
) -> List[Consequence]:
    """Consequences for one tier transition. Empty when the tier is unchanged."""
    if new_tier.rank > old_tier.rank:
        kinds = _improvement_kinds(new_tier)
    elif new_tier.rank < old_tier.rank:
        kinds = _degradation_kinds(old_tier, new_tier)
    else:
        return []

    label = faction_name or faction_id
    return [
        Consequence(
            kind=kind,
            player_id=player_id,
            faction_id=faction_id,
            old_tier=old_tier,
            new_tier=new_tier,
            message=_MESSAGES[kind].format(faction=label),
        )
        for kind in kinds
    ]
