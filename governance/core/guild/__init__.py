"""Guild governance domain: entity, roles, perks, leveling."""

from governance.core.guild.leveling import apply_experience, required_experience
from governance.core.guild.models import (
    ApplicationStatus,
    DiplomaticRelation,
    Guild,
    GuildApplication,
    GuildConfig,
    GuildMember,
    GuildResources,
    GuildStats,
    GuildType,
    LevelUpResult,
    ResourceType,
    normalize_tag,
    validate_name_and_tag,
)
from governance.core.guild.perks import PERK_CATALOG, GuildPerk
from governance.core.guild.roles import (
    FOUNDER,
    LEADER,
    MEMBER,
    OFFICER,
    RECRUIT,
    VETERAN,
    GuildRole,
    Permission,
    default_roles,
)

__all__ = [
    "ApplicationStatus",
    "DiplomaticRelation",
    "Guild",
    "GuildApplication",
    "GuildConfig",
    "GuildMember",
    "GuildPerk",
    "GuildResources",
    "GuildRole",
    "GuildStats",
    "GuildType",
    "LevelUpResult",
    "PERK_CATALOG",
    "Permission",
    "ResourceType",
    "FOUNDER",
    "LEADER",
    "OFFICER",
    "VETERAN",
    "MEMBER",
    "RECRUIT",
    "apply_experience",
    "default_roles",
    "normalize_tag",
    "required_experience",
    "validate_name_and_tag",
]
