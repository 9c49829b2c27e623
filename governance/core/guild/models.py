"""Guild entity and its value objects.

The entity enforces local invariants only: roster capacity, role capacity,
treasury non-negativity and disjoint diplomacy sets. Cross-guild rules,
permission checks against a caller and persistence are handled by
``GuildService``.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from governance.core.clock import utcnow
from governance.core.errors import (
    CapacityExceededError,
    ConflictError,
    InsufficientFundsError,
    NotFoundError,
    PerkUnavailableError,
    StateError,
    ValidationError,
)
from governance.core.guild.leveling import apply_experience, required_experience
from governance.core.guild.perks import PERK_CATALOG, GuildPerk
from governance.core.guild.roles import FOUNDER, LEADER, MEMBER, GuildRole, default_roles

NAME_MIN, NAME_MAX = 3, 50
TAG_MIN, TAG_MAX = 2, 5

CONTRIBUTION_RATE = 0.1
FLAT_CONTRIBUTION = 50

LEVEL_BONUS_STEP = 5
LEVEL_BONUS_PER_STEP = 0.01
TERRITORY_BONUS = 0.02
LEADERSHIP_BONUS = 0.05
CONTRIBUTION_BONUS_DIVISOR = 10000
CONTRIBUTION_BONUS_CAP = 0.1


class GuildType(str, Enum):
    COMBAT = "COMBAT"
    TRADING = "TRADING"
    EXPLORATION = "EXPLORATION"
    MIXED = "MIXED"


class ResourceType(str, Enum):
    CREDITS = "credits"
    ORES = "ores"
    REPUTATION = "reputation"
    INFLUENCE = "influence"
    RESEARCH_POINTS = "research_points"


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DiplomaticRelation(str, Enum):
    ALLY = "ALLY"
    ENEMY = "ENEMY"
    NEUTRAL = "NEUTRAL"
    UNKNOWN = "UNKNOWN"


def normalize_tag(tag: str) -> str:
    return (tag or "").strip().upper()


def validate_name_and_tag(name: str, tag: str) -> Tuple[str, str]:
    """Return the trimmed name and normalized tag, or raise ValidationError."""
    name = (name or "").strip()
    tag = normalize_tag(tag)
    if not NAME_MIN <= len(name) <= NAME_MAX:
        raise ValidationError(
            f"Guild name must be {NAME_MIN}-{NAME_MAX} characters"
        )
    if not TAG_MIN <= len(tag) <= TAG_MAX:
        raise ValidationError(f"Guild tag must be {TAG_MIN}-{TAG_MAX} characters")
    return name, tag


def _positive_amount(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError("Amount must be a positive integer")
    return amount


# ── Value objects ──


@dataclass
class GuildConfig:
    max_members: int = 50
    recruitment_open: bool = True
    requires_application: bool = False
    minimum_level: int = 1
    guild_type: GuildType = GuildType.MIXED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_members": self.max_members,
            "recruitment_open": self.recruitment_open,
            "requires_application": self.requires_application,
            "minimum_level": self.minimum_level,
            "guild_type": self.guild_type.value,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GuildConfig":
        data = dict(data or {})
        if "guild_type" in data:
            data["guild_type"] = GuildType(data["guild_type"])
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class GuildResources:
    """Treasury. Credits are scalar; ores are keyed by ore type."""

    credits: int = 0
    ores: Dict[str, int] = field(default_factory=dict)
    reputation: int = 0
    influence: int = 0
    research_points: int = 0

    def balance(self, resource_type: ResourceType, sub_type: Optional[str] = None) -> int:
        if resource_type == ResourceType.ORES:
            if not sub_type:
                raise ValidationError("Ore deposits and withdrawals need an ore type")
            return self.ores.get(sub_type, 0)
        return getattr(self, resource_type.value)

    def _set(self, resource_type: ResourceType, sub_type: Optional[str], value: int) -> None:
        if resource_type == ResourceType.ORES:
            self.ores[sub_type] = value
        else:
            setattr(self, resource_type.value, value)

    def add(self, resource_type: ResourceType, amount: int, sub_type: Optional[str] = None) -> int:
        new_balance = self.balance(resource_type, sub_type) + amount
        self._set(resource_type, sub_type, new_balance)
        return new_balance

    def remove(
        self, resource_type: ResourceType, amount: int, sub_type: Optional[str] = None
    ) -> int:
        current = self.balance(resource_type, sub_type)
        if current < amount:
            label = sub_type or resource_type.value
            raise InsufficientFundsError(
                f"Insufficient {label}: have {current}, need {amount}"
            )
        new_balance = current - amount
        self._set(resource_type, sub_type, new_balance)
        return new_balance

    def to_dict(self) -> Dict[str, Any]:
        return {
            "credits": self.credits,
            "ores": dict(self.ores),
            "reputation": self.reputation,
            "influence": self.influence,
            "research_points": self.research_points,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GuildResources":
        data = dict(data or {})
        data["ores"] = dict(data.get("ores") or {})
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class GuildStats:
    total_members: int = 0
    active_members: int = 0
    total_resources_earned: int = 0
    total_trades_completed: int = 0
    total_combat_victories: int = 0
    total_sectors_explored: int = 0
    guild_level: int = 1
    experience_points: int = 0  # progress toward the next level
    total_experience: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "GuildStats":
        data = data or {}
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


@dataclass
class GuildMember:
    player_id: str
    guild_id: str
    role_id: str
    joined_at: datetime
    contribution_points: int = 0
    last_active: Optional[datetime] = None
    is_active: bool = True


@dataclass
class GuildApplication:
    application_id: str
    player_id: str
    guild_id: str
    message: str
    status: ApplicationStatus = ApplicationStatus.PENDING
    applied_at: Optional[datetime] = None
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == ApplicationStatus.PENDING


@dataclass
class LevelUpResult:
    old_level: int
    new_level: int
    experience_awarded: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.old_level


# ── Entity ──


@dataclass
class Guild:
    guild_id: str
    name: str
    tag: str
    founder_id: str
    founded_at: datetime
    description: str = ""
    config: GuildConfig = field(default_factory=GuildConfig)
    resources: GuildResources = field(default_factory=GuildResources)
    stats: GuildStats = field(default_factory=GuildStats)
    territories: Set[str] = field(default_factory=set)
    allies: Set[str] = field(default_factory=set)
    enemies: Set[str] = field(default_factory=set)
    neutral: Set[str] = field(default_factory=set)
    active_perks: Set[str] = field(default_factory=set)
    unlocked_perks: Set[str] = field(default_factory=set)
    members: Dict[str, GuildMember] = field(default_factory=dict)
    roles: Dict[str, GuildRole] = field(default_factory=dict)
    is_active: bool = True
    disbanded_at: Optional[datetime] = None

    @classmethod
    def found(
        cls,
        guild_id: str,
        name: str,
        tag: str,
        founder_id: str,
        config: Optional[GuildConfig] = None,
        description: str = "",
        now: Optional[datetime] = None,
    ) -> "Guild":
        """New guild with the default role table and its founder as sole member."""
        name, tag = validate_name_and_tag(name, tag)
        now = now or utcnow()
        guild = cls(
            guild_id=guild_id,
            name=name,
            tag=tag,
            founder_id=founder_id,
            founded_at=now,
            description=description,
            config=config or GuildConfig(),
            roles={role.role_id: role for role in default_roles()},
        )
        guild.add_member(founder_id, role_id=FOUNDER, now=now)
        return guild

    # ── Roster ──

    @property
    def member_count(self) -> int:
        return len(self.members)

    @property
    def is_full(self) -> bool:
        return self.member_count >= self.config.max_members

    @property
    def default_role(self) -> GuildRole:
        for role in self.roles.values():
            if role.is_default:
                return role
        return self.roles[MEMBER]

    def is_member(self, player_id: str) -> bool:
        return player_id in self.members

    def is_founder(self, player_id: str) -> bool:
        return player_id == self.founder_id

    def get_member(self, player_id: str) -> GuildMember:
        member = self.members.get(player_id)
        if member is None:
            raise NotFoundError(f"Player {player_id} is not a member of {self.name}")
        return member

    def get_role(self, role_id: str) -> GuildRole:
        role = self.roles.get(role_id)
        if role is None:
            raise NotFoundError(f"Unknown role: {role_id}")
        return role

    def role_of(self, player_id: str) -> GuildRole:
        return self.get_role(self.get_member(player_id).role_id)

    def has_permission(self, player_id: str, permission: str) -> bool:
        member = self.members.get(player_id)
        if member is None:
            return False
        role = self.roles.get(member.role_id)
        return role is not None and permission in role.permissions

    def count_in_role(self, role_id: str) -> int:
        return sum(1 for m in self.members.values() if m.role_id == role_id)

    def _check_role_capacity(self, role: GuildRole) -> None:
        if not role.unlimited and self.count_in_role(role.role_id) >= role.max_members:
            raise CapacityExceededError(f"Role {role.name} is full")

    def add_member(
        self,
        player_id: str,
        role_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> GuildMember:
        if self.is_member(player_id):
            raise ConflictError(f"Player {player_id} is already a member")
        if self.is_full:
            raise CapacityExceededError(f"Guild {self.name} is full")
        role = self.get_role(role_id) if role_id else self.default_role
        self._check_role_capacity(role)

        now = now or utcnow()
        member = GuildMember(
            player_id=player_id,
            guild_id=self.guild_id,
            role_id=role.role_id,
            joined_at=now,
            last_active=now,
        )
        self.members[player_id] = member
        self.stats.total_members = len(self.members)
        self.stats.active_members += 1
        return member

    def remove_member(self, player_id: str) -> GuildMember:
        member = self.get_member(player_id)
        if member.role_id == FOUNDER:
            raise StateError("The founder cannot leave; transfer leadership or disband")
        del self.members[player_id]
        self.stats.total_members = len(self.members)
        if member.is_active:
            self.stats.active_members = max(0, self.stats.active_members - 1)
        return member

    def change_member_role(self, player_id: str, role_id: str) -> Tuple[str, str]:
        """Move a member to another non-founder role. Returns (old, new) role ids."""
        member = self.get_member(player_id)
        role = self.get_role(role_id)
        if role.role_id == FOUNDER:
            raise StateError("The founder role changes hands only by transfer")
        if member.role_id == FOUNDER:
            raise StateError("The founder's role changes only by transfer")
        old_role_id = member.role_id
        if old_role_id != role.role_id:
            self._check_role_capacity(role)
            member.role_id = role.role_id
        return old_role_id, role.role_id

    def transfer_founder(self, new_founder_id: str) -> str:
        """Swap founder and ``new_founder_id``; the old founder becomes leader."""
        target = self.get_member(new_founder_id)
        if new_founder_id == self.founder_id:
            raise StateError("Player is already the founder")
        old_founder = self.get_member(self.founder_id)
        if target.role_id != LEADER:
            self._check_role_capacity(self.get_role(LEADER))
        target.role_id = FOUNDER
        old_founder.role_id = LEADER
        previous = self.founder_id
        self.founder_id = new_founder_id
        return previous

    def mark_member_inactive(self, player_id: str) -> bool:
        member = self.get_member(player_id)
        if not member.is_active:
            return False
        member.is_active = False
        self.stats.active_members = max(0, self.stats.active_members - 1)
        return True

    def mark_member_active(self, player_id: str, now: Optional[datetime] = None) -> None:
        member = self.get_member(player_id)
        member.last_active = now or utcnow()
        if not member.is_active:
            member.is_active = True
            self.stats.active_members += 1

    # ── Treasury ──

    def deposit(
        self,
        resource_type: ResourceType,
        amount: int,
        sub_type: Optional[str] = None,
    ) -> int:
        amount = _positive_amount(amount)
        balance = self.resources.add(resource_type, amount, sub_type)
        self.stats.total_resources_earned += amount
        return balance

    def withdraw(
        self,
        resource_type: ResourceType,
        amount: int,
        sub_type: Optional[str] = None,
    ) -> int:
        amount = _positive_amount(amount)
        return self.resources.remove(resource_type, amount, sub_type)

    def award_contribution(self, player_id: str, points: int) -> int:
        member = self.get_member(player_id)
        member.contribution_points += max(0, points)
        return member.contribution_points

    @staticmethod
    def deposit_reward(resource_type: ResourceType, amount: Any) -> int:
        """Contribution points and guild experience earned for a deposit."""
        if (
            resource_type == ResourceType.ORES
            or isinstance(amount, bool)
            or not isinstance(amount, (int, float))
        ):
            return FLAT_CONTRIBUTION
        return math.floor(amount * CONTRIBUTION_RATE)

    # ── Leveling ──

    @property
    def level(self) -> int:
        return self.stats.guild_level

    @property
    def experience_to_next_level(self) -> int:
        return required_experience(self.stats.guild_level + 1) - self.stats.experience_points

    def award_experience(self, amount: int) -> LevelUpResult:
        old_level = self.stats.guild_level
        if amount <= 0:
            return LevelUpResult(old_level, old_level, 0)
        level, progress, _ = apply_experience(old_level, self.stats.experience_points, amount)
        self.stats.guild_level = level
        self.stats.experience_points = progress
        self.stats.total_experience += amount
        return LevelUpResult(old_level, level, amount)

    # ── Perks ──

    def available_perks(self) -> List[GuildPerk]:
        return [
            perk
            for perk in PERK_CATALOG.values()
            if perk.required_level <= self.level and perk.perk_id not in self.active_perks
        ]

    def activate_perk(self, perk_id: str) -> GuildPerk:
        perk = PERK_CATALOG.get(perk_id)
        if perk is None:
            raise PerkUnavailableError(f"Unknown perk: {perk_id}")
        if perk_id in self.active_perks:
            raise ConflictError(f"Perk {perk_id} is already active")
        if self.level < perk.required_level:
            raise PerkUnavailableError(
                f"Perk {perk_id} requires guild level {perk.required_level}"
            )
        if self.resources.credits < perk.cost:
            raise InsufficientFundsError(
                f"Perk {perk_id} costs {perk.cost} credits, treasury has {self.resources.credits}"
            )
        self.resources.credits -= perk.cost
        self.active_perks.add(perk_id)
        self.unlocked_perks.add(perk_id)
        return perk

    # ── Diplomacy ──

    def _relation_sets(self) -> Dict[DiplomaticRelation, Set[str]]:
        return {
            DiplomaticRelation.ALLY: self.allies,
            DiplomaticRelation.ENEMY: self.enemies,
            DiplomaticRelation.NEUTRAL: self.neutral,
        }

    def set_diplomatic_relation(self, other_guild_id: str, relation: DiplomaticRelation) -> None:
        if other_guild_id == self.guild_id:
            raise ValidationError("A guild cannot set a relation with itself")
        for members in self._relation_sets().values():
            members.discard(other_guild_id)
        if relation != DiplomaticRelation.UNKNOWN:
            self._relation_sets()[relation].add(other_guild_id)

    def get_diplomatic_relation(self, other_guild_id: str) -> DiplomaticRelation:
        for relation, members in self._relation_sets().items():
            if other_guild_id in members:
                return relation
        return DiplomaticRelation.UNKNOWN

    # ── Bonuses ──

    def member_bonuses(self, player_id: str) -> Dict[str, float]:
        member = self.get_member(player_id)
        bonuses: Dict[str, float] = {}

        level_bonus = (self.level // LEVEL_BONUS_STEP) * LEVEL_BONUS_PER_STEP
        if level_bonus > 0:
            bonuses["experience_gain"] = level_bonus

        for perk_id in sorted(self.active_perks):
            perk = PERK_CATALOG.get(perk_id)
            if perk is None:
                continue
            for effect, value in perk.effects.items():
                bonuses[effect] = bonuses.get(effect, 0.0) + value

        if self.territories:
            bonuses["resource_gain"] = (
                bonuses.get("resource_gain", 0.0) + len(self.territories) * TERRITORY_BONUS
            )

        if member.role_id in (FOUNDER, LEADER):
            bonuses["leadership_bonus"] = LEADERSHIP_BONUS

        if member.contribution_points > 0:
            bonuses["contribution_bonus"] = min(
                member.contribution_points / CONTRIBUTION_BONUS_DIVISOR,
                CONTRIBUTION_BONUS_CAP,
            )
        return {k: round(v, 4) for k, v in bonuses.items()}

    # ── Views ──

    def summary(self) -> Dict[str, Any]:
        return {
            "guild_id": self.guild_id,
            "name": self.name,
            "tag": self.tag,
            "description": self.description,
            "guild_type": self.config.guild_type.value,
            "level": self.level,
            "member_count": self.member_count,
            "max_members": self.config.max_members,
            "recruitment_open": self.config.recruitment_open,
            "requires_application": self.config.requires_application,
            "minimum_level": self.config.minimum_level,
            "territory_count": len(self.territories),
            "founded_at": self.founded_at.isoformat(),
            "is_active": self.is_active,
        }

    def full_view(self) -> Dict[str, Any]:
        view = self.summary()
        view.update(
            {
                "founder_id": self.founder_id,
                "config": self.config.to_dict(),
                "resources": self.resources.to_dict(),
                "stats": self.stats.to_dict(),
                "experience_to_next_level": self.experience_to_next_level,
                "territories": sorted(self.territories),
                "allies": sorted(self.allies),
                "enemies": sorted(self.enemies),
                "neutral": sorted(self.neutral),
                "active_perks": sorted(self.active_perks),
                "unlocked_perks": sorted(self.unlocked_perks),
                "roles": [
                    role.to_dict()
                    for role in sorted(self.roles.values(), key=lambda r: r.priority)
                ],
                "members": [
                    {
                        "player_id": m.player_id,
                        "role_id": m.role_id,
                        "joined_at": m.joined_at.isoformat(),
                        "contribution_points": m.contribution_points,
                        "last_active": m.last_active.isoformat() if m.last_active else None,
                        "is_active": m.is_active,
                    }
                    for m in sorted(
                        self.members.values(),
                        key=lambda m: (self.roles[m.role_id].priority, m.joined_at),
                    )
                ],
            }
        )
        return view
