"""Permission strings and the default role table created with every guild."""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List

FOUNDER = "founder"
LEADER = "leader"
OFFICER = "officer"
VETERAN = "veteran"
MEMBER = "member"
RECRUIT = "recruit"

UNLIMITED = -1


@dataclass(frozen=True)
class GuildRole:
    """Named permission set. Lower ``priority`` means higher authority."""

    role_id: str
    name: str
    priority: int
    permissions: FrozenSet[str] = field(default_factory=frozenset)
    max_members: int = UNLIMITED
    is_default: bool = False

    @property
    def unlimited(self) -> bool:
        return self.max_members < 0

    def outranks(self, other: "GuildRole") -> bool:
        return self.priority < other.priority

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role_id": self.role_id,
            "name": self.name,
            "priority": self.priority,
            "permissions": sorted(self.permissions),
            "max_members": self.max_members,
            "is_default": self.is_default,
        }


class Permission:
    """Capability strings held by roles"""

    GUILD_DISBAND = "guild.disband"
    GUILD_EDIT = "guild.edit"
    GUILD_MANAGE_ROLES = "guild.manage_roles"

    MEMBERS_INVITE = "members.invite"
    MEMBERS_KICK = "members.kick"
    MEMBERS_KICK_JUNIOR = "members.kick_junior"
    MEMBERS_PROMOTE = "members.promote"
    MEMBERS_DEMOTE = "members.demote"

    RESOURCES_MANAGE = "resources.manage"
    RESOURCES_WITHDRAW = "resources.withdraw"
    RESOURCES_WITHDRAW_LIMITED = "resources.withdraw_limited"
    RESOURCES_DEPOSIT = "resources.deposit"

    DIPLOMACY_MANAGE = "diplomacy.manage"
    DIPLOMACY_SUGGEST = "diplomacy.suggest"
    TERRITORIES_MANAGE = "territories.manage"
    HALLS_MANAGE = "halls.manage"
    HALLS_USE = "halls.use"
    HALLS_USE_ADVANCED = "halls.use_advanced"
    HALLS_USE_BASIC = "halls.use_basic"
    RESEARCH_MANAGE = "research.manage"
    RESEARCH_CONTRIBUTE = "research.contribute"
    PERKS_MANAGE = "perks.manage"
    WARS_DECLARE = "wars.declare"
    WARS_END = "wars.end"
    WARS_PARTICIPATE = "wars.participate"


def default_roles() -> List[GuildRole]:
    """Six fixed roles, priority 0 (founder) to 5 (recruit). 'member' is the default."""
    p = Permission
    return [
        GuildRole(
            role_id=FOUNDER,
            name="Founder",
            priority=0,
            permissions=frozenset(
                {
                    p.GUILD_DISBAND,
                    p.GUILD_EDIT,
                    p.GUILD_MANAGE_ROLES,
                    p.MEMBERS_INVITE,
                    p.MEMBERS_KICK,
                    p.MEMBERS_PROMOTE,
                    p.MEMBERS_DEMOTE,
                    p.RESOURCES_MANAGE,
                    p.RESOURCES_WITHDRAW,
                    p.RESOURCES_DEPOSIT,
                    p.DIPLOMACY_MANAGE,
                    p.TERRITORIES_MANAGE,
                    p.HALLS_MANAGE,
                    p.RESEARCH_MANAGE,
                    p.PERKS_MANAGE,
                    p.WARS_DECLARE,
                    p.WARS_END,
                }
            ),
            max_members=1,
        ),
        GuildRole(
            role_id=LEADER,
            name="Guild Leader",
            priority=1,
            permissions=frozenset(
                {
                    p.GUILD_EDIT,
                    p.MEMBERS_INVITE,
                    p.MEMBERS_KICK,
                    p.MEMBERS_PROMOTE,
                    p.RESOURCES_MANAGE,
                    p.RESOURCES_WITHDRAW,
                    p.DIPLOMACY_MANAGE,
                    p.TERRITORIES_MANAGE,
                    p.HALLS_MANAGE,
                    p.RESEARCH_MANAGE,
                }
            ),
            max_members=3,
        ),
        GuildRole(
            role_id=OFFICER,
            name="Officer",
            priority=2,
            permissions=frozenset(
                {
                    p.MEMBERS_INVITE,
                    p.MEMBERS_KICK_JUNIOR,
                    p.RESOURCES_WITHDRAW_LIMITED,
                    p.DIPLOMACY_SUGGEST,
                    p.HALLS_USE_ADVANCED,
                }
            ),
            max_members=10,
        ),
        GuildRole(
            role_id=VETERAN,
            name="Veteran",
            priority=3,
            permissions=frozenset(
                {
                    p.MEMBERS_INVITE,
                    p.RESOURCES_DEPOSIT,
                    p.HALLS_USE,
                    p.RESEARCH_CONTRIBUTE,
                    p.WARS_PARTICIPATE,
                }
            ),
            max_members=UNLIMITED,
        ),
        GuildRole(
            role_id=MEMBER,
            name="Member",
            priority=4,
            permissions=frozenset(
                {
                    p.RESOURCES_DEPOSIT,
                    p.HALLS_USE_BASIC,
                    p.RESEARCH_CONTRIBUTE,
                    p.WARS_PARTICIPATE,
                }
            ),
            is_default=True,
            max_members=UNLIMITED,
        ),
        GuildRole(
            role_id=RECRUIT,
            name="Recruit",
            priority=5,
            permissions=frozenset({p.HALLS_USE_BASIC, p.RESEARCH_CONTRIBUTE}),
            max_members=UNLIMITED,
        ),
    ]
