"""API request/response schemas."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from governance.core.guild import (
    ApplicationStatus,
    DiplomaticRelation,
    GuildApplication,
    GuildPerk,
    GuildType,
    ResourceType,
)
from governance.core.reputation import (
    ActionOutcome,
    EffectsBundle,
    RelationKind,
    ReputationEvent,
    Standing,
)


class ErrorResponse(BaseModel):
    error: str
    message: str


# === Reputation ===


class EffectsInfo(BaseModel):
    can_trade: bool
    attack_on_sight: bool
    bounty_multiplier: float
    contract_access: bool
    territory_access: str
    price_multiplier: float
    special_services: bool
    diplomatic_immunity: bool
    escort_available: bool

    @classmethod
    def from_effects(cls, effects: EffectsBundle) -> "EffectsInfo":
        return cls(
            can_trade=effects.can_trade,
            attack_on_sight=effects.attack_on_sight,
            bounty_multiplier=effects.bounty_multiplier,
            contract_access=effects.contract_access,
            territory_access=effects.territory_access.value,
            price_multiplier=effects.price_multiplier,
            special_services=effects.special_services,
            diplomatic_immunity=effects.diplomatic_immunity,
            escort_available=effects.escort_available,
        )


class StandingInfo(BaseModel):
    tier: str
    name: str
    description: str
    value: float
    effects: EffectsInfo

    @classmethod
    def from_standing(cls, standing: Standing) -> "StandingInfo":
        return cls(
            tier=standing.tier.value,
            name=standing.definition.name,
            description=standing.definition.description,
            value=standing.value,
            effects=EffectsInfo.from_effects(standing.effects),
        )


class ApplyActionRequest(BaseModel):
    """Reputation action request"""

    player_id: str = Field(..., min_length=1)
    faction_id: str = Field(..., min_length=1)
    action_code: str = Field(..., description="Catalog action, e.g. TRADE_COMPLETED")
    multiplier: Optional[float] = None
    faction_modifier: Optional[float] = None
    value: Optional[float] = Field(None, description="Transaction value for value scaling")
    reason: Optional[str] = None
    extra: dict[str, Any] = Field(default_factory=dict)


class PropagatedInfo(BaseModel):
    faction_id: str
    delta: float
    old_value: float
    new_value: float
    relationship: str


class ConsequenceInfo(BaseModel):
    kind: str
    faction_id: str
    old_tier: str
    new_tier: str
    message: str


class ActionOutcomeResponse(BaseModel):
    player_id: str
    faction_id: str
    action_code: str
    delta: float
    old_value: float
    new_value: float
    old_tier: str
    new_tier: str
    tier_changed: bool
    propagated: list[PropagatedInfo] = []
    consequences: list[ConsequenceInfo] = []

    @classmethod
    def from_outcome(cls, outcome: ActionOutcome) -> "ActionOutcomeResponse":
        return cls(
            player_id=outcome.player_id,
            faction_id=outcome.faction_id,
            action_code=outcome.action_code,
            delta=outcome.delta,
            old_value=outcome.old_value,
            new_value=outcome.new_value,
            old_tier=outcome.old_tier.value,
            new_tier=outcome.new_tier.value,
            tier_changed=outcome.tier_changed,
            propagated=[
                PropagatedInfo(
                    faction_id=p.faction_id,
                    delta=p.delta,
                    old_value=p.old_value,
                    new_value=p.new_value,
                    relationship=p.relationship.value,
                )
                for p in outcome.propagated
            ],
            consequences=[
                ConsequenceInfo(
                    kind=c.kind.value,
                    faction_id=c.faction_id,
                    old_tier=c.old_tier.value,
                    new_tier=c.new_tier.value,
                    message=c.message,
                )
                for c in outcome.consequences
            ],
        )


class FactionInfo(BaseModel):
    faction_id: str
    name: str
    faction_type: str
    description: str = ""


class ReputationSummaryEntry(BaseModel):
    faction_id: str
    faction_name: str
    faction_type: str
    value: float
    standing: StandingInfo


class HistoryEntry(BaseModel):
    faction_id: str
    action_code: str
    delta: float
    reason: str
    context: dict[str, Any] = {}
    timestamp: datetime

    @classmethod
    def from_event(cls, event: ReputationEvent) -> "HistoryEntry":
        return cls(
            faction_id=event.faction_id,
            action_code=event.action_code,
            delta=event.delta,
            reason=event.reason,
            context=event.context,
            timestamp=event.timestamp,
        )


class ConsequenceRecord(BaseModel):
    player_id: str
    faction_id: str
    kind: str
    old_tier: str
    new_tier: str
    message: str
    executed_at: datetime


class InteractionResponse(BaseModel):
    player_id: str
    faction_id: str
    kind: str
    allowed: bool


class FactionRelationshipRequest(BaseModel):
    kind: RelationKind
    strength: float = Field(1.0, description="Clamped to 0 ~ 1")


class FactionRelationshipInfo(BaseModel):
    faction_id: str
    target_faction_id: str
    kind: str
    strength: float


class DecayReportResponse(BaseModel):
    examined: int
    decayed: int
    skipped: int
    failed: int


# === Guilds ===


class CreateGuildRequest(BaseModel):
    founder_id: str = Field(..., min_length=1)
    name: str = Field(..., description="3-50 characters")
    tag: str = Field(..., description="2-5 characters, stored upper-case")
    description: str = ""
    max_members: Optional[int] = None
    recruitment_open: bool = True
    requires_application: bool = False
    minimum_level: int = 1
    guild_type: GuildType = GuildType.MIXED


class GuildSummary(BaseModel):
    guild_id: str
    name: str
    tag: str
    description: str
    guild_type: str
    level: int
    member_count: int
    max_members: int
    recruitment_open: bool
    requires_application: bool
    minimum_level: int
    territory_count: int
    founded_at: str
    is_active: bool


class LeaderboardEntry(GuildSummary):
    rank: int


class ApplyRequest(BaseModel):
    player_id: str = Field(..., min_length=1)
    message: str = ""


class ApplicationInfo(BaseModel):
    application_id: str
    player_id: str
    guild_id: str
    message: str
    status: str
    applied_at: Optional[datetime] = None
    processed_by: Optional[str] = None
    processed_at: Optional[datetime] = None

    @classmethod
    def from_application(cls, application: GuildApplication) -> "ApplicationInfo":
        return cls(
            application_id=application.application_id,
            player_id=application.player_id,
            guild_id=application.guild_id,
            message=application.message,
            status=application.status.value,
            applied_at=application.applied_at,
            processed_by=application.processed_by,
            processed_at=application.processed_at,
        )


class ProcessApplicationRequest(BaseModel):
    processor_id: str
    decision: ApplicationStatus


class PlayerRequest(BaseModel):
    player_id: str


class KickRequest(BaseModel):
    kicker_id: str
    target_id: str
    reason: str = ""


class RoleChangeRequest(BaseModel):
    changer_id: str
    target_id: str
    role_id: str


class TransferRequest(BaseModel):
    current_founder_id: str
    new_founder_id: str


class DisbandRequest(BaseModel):
    player_id: str
    confirmation_code: str = Field(..., description="DISBAND_<TAG>")


class TreasuryRequest(BaseModel):
    player_id: str
    resource_type: ResourceType
    amount: int
    ore_type: Optional[str] = None


class TreasuryResponse(BaseModel):
    balance: int
    resources: dict[str, Any]
    contribution_awarded: Optional[int] = None
    contribution_points: Optional[int] = None
    experience_awarded: Optional[int] = None
    level_up: Optional[bool] = None
    guild_level: Optional[int] = None


class PerkActivateRequest(BaseModel):
    player_id: str
    perk_id: str


class PerkInfo(BaseModel):
    perk_id: str
    name: str
    description: str
    cost: int
    required_level: int
    effects: dict[str, float]

    @classmethod
    def from_perk(cls, perk: GuildPerk) -> "PerkInfo":
        return cls(
            perk_id=perk.perk_id,
            name=perk.name,
            description=perk.description,
            cost=perk.cost,
            required_level=perk.required_level,
            effects=dict(perk.effects),
        )


class RelationRequest(BaseModel):
    initiator_id: str
    target_guild_id: str
    relation: DiplomaticRelation


class GuildEventInfo(BaseModel):
    event_type: str
    actor_id: Optional[str] = None
    target_id: Optional[str] = None
    data: dict[str, Any] = {}
    created_at: datetime


class GuildStatsResponse(BaseModel):
    total_guilds: int
    total_members: int
    average_guild_size: int
    guilds_by_type: dict[str, int]


# === Admin ===


class RegisterPlayerRequest(BaseModel):
    player_id: str = Field(..., min_length=1, max_length=50)
    level: int = Field(1, ge=1)
    display_name: Optional[str] = None
    last_login: Optional[datetime] = None


class TickRequest(BaseModel):
    now: Optional[datetime] = Field(None, description="Naive UTC; defaults to the current time")


class TickResponse(BaseModel):
    tick: int
    modules: list[str]
