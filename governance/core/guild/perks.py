"""Guild perk catalog. Perks are level-gated and bought with treasury credits."""

from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class GuildPerk:
    perk_id: str
    name: str
    description: str
    cost: int
    required_level: int
    effects: Dict[str, float] = field(default_factory=dict)


_PERKS = (
    GuildPerk(
        perk_id="resource_bonus",
        name="Resource Efficiency",
        description="Increases resource collection by 10% for all members",
        cost=1000,
        required_level=5,
        effects={"resource_gain": 0.1},
    ),
    GuildPerk(
        perk_id="experience_boost",
        name="Experience Boost",
        description="Increases experience gain by 15% for all members",
        cost=1500,
        required_level=8,
        effects={"experience_gain": 0.15},
    ),
    GuildPerk(
        perk_id="trading_network",
        name="Trading Network",
        description="Reduces trading costs and increases profits by 8%",
        cost=2000,
        required_level=12,
        effects={"trading_bonus": 0.08},
    ),
    GuildPerk(
        perk_id="combat_coordination",
        name="Combat Coordination",
        description="Increases combat effectiveness by 12% when fighting together",
        cost=2500,
        required_level=15,
        effects={"combat_bonus": 0.12},
    ),
    GuildPerk(
        perk_id="deep_space_access",
        name="Deep Space Access",
        description="Unlocks access to dangerous high-reward sectors",
        cost=3000,
        required_level=20,
        effects={"exploration_bonus": 0.2},
    ),
)

PERK_CATALOG: Dict[str, GuildPerk] = {perk.perk_id: perk for perk in _PERKS}
