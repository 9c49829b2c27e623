"""Guild API endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from governance.api.schemas import (
    ApplicationInfo,
    ApplyRequest,
    CreateGuildRequest,
    DisbandRequest,
    GuildEventInfo,
    GuildStatsResponse,
    GuildSummary,
    KickRequest,
    LeaderboardEntry,
    PerkActivateRequest,
    PerkInfo,
    PlayerRequest,
    ProcessApplicationRequest,
    RelationRequest,
    RoleChangeRequest,
    TransferRequest,
    TreasuryRequest,
    TreasuryResponse,
)
from governance.core.errors import NotFoundError
from governance.core.guild import ApplicationStatus, GuildConfig, GuildType
from governance.core.logging import get_logger
from governance.services.guild_service import GuildService

logger = get_logger(__name__)

router = APIRouter(prefix="/guilds", tags=["guilds"])


def get_guild_service(request: Request) -> GuildService:
    """Return the shared GuildService (dependency injection)."""
    service: GuildService = request.app.state.guild_service
    return service


# ── Directory ────────────────────────────────────────────


@router.post("", status_code=201)
def create_guild(
    body: CreateGuildRequest,
    service: GuildService = Depends(get_guild_service),
) -> dict[str, Any]:
    """Found a guild. The founder becomes its only member."""
    config = GuildConfig(
        max_members=body.max_members or service.default_max_members,
        recruitment_open=body.recruitment_open,
        requires_application=body.requires_application,
        minimum_level=body.minimum_level,
        guild_type=body.guild_type,
    )
    guild = service.create_guild(
        body.founder_id, body.name, body.tag, config=config, description=body.description
    )
    return guild.full_view()


@router.get("", response_model=list[GuildSummary])
def search_guilds(
    name: Optional[str] = None,
    tag: Optional[str] = None,
    guild_type: Optional[GuildType] = None,
    recruitment_open: Optional[bool] = None,
    min_level: Optional[int] = None,
    max_level: Optional[int] = None,
    limit: int = Query(20, ge=1, le=100),
    service: GuildService = Depends(get_guild_service),
) -> list[GuildSummary]:
    guilds = service.search_guilds(
        name=name,
        tag=tag,
        guild_type=guild_type,
        recruitment_open=recruitment_open,
        min_level=min_level,
        max_level=max_level,
        limit=limit,
    )
    return [GuildSummary(**g.summary()) for g in guilds]


@router.get("/leaderboard", response_model=list[LeaderboardEntry])
def get_leaderboard(
    category: str = "level",
    limit: int = Query(10, ge=1, le=100),
    service: GuildService = Depends(get_guild_service),
) -> list[LeaderboardEntry]:
    return [LeaderboardEntry(**e) for e in service.get_guild_leaderboard(category, limit)]


@router.get("/stats", response_model=GuildStatsResponse)
def get_stats(service: GuildService = Depends(get_guild_service)) -> GuildStatsResponse:
    return GuildStatsResponse(**service.get_guild_stats())


@router.get("/players/{player_id}")
def get_player_guild(
    player_id: str,
    service: GuildService = Depends(get_guild_service),
) -> dict[str, Any]:
    guild = service.get_player_guild(player_id)
    if guild is None:
        raise NotFoundError(f"{player_id} is not in a guild")
    return guild.full_view()


@router.get("/players/{player_id}/bonuses")
def get_member_bonuses(
    player_id: str,
    service: GuildService = Depends(get_guild_service),
) -> dict[str, float]:
    return service.get_member_bonuses(player_id)


# ── Membership ───────────────────────────────────────────


@router.post("/applications/{application_id}/decision", response_model=ApplicationInfo)
def process_application(
    application_id: str,
    body: ProcessApplicationRequest,
    service: GuildService = Depends(get_guild_service),
) -> ApplicationInfo:
    application = service.process_application(application_id, body.decision, body.processor_id)
    return ApplicationInfo.from_application(application)


@router.post("/leave", status_code=204)
def leave_guild(
    body: PlayerRequest,
    service: GuildService = Depends(get_guild_service),
) -> None:
    service.leave_guild(body.player_id)


@router.post("/kick", status_code=204)
def kick_member(
    body: KickRequest,
    service: GuildService = Depends(get_guild_service),
) -> None:
    service.kick_member(body.kicker_id, body.target_id, body.reason)


@router.post("/roles")
def change_member_role(
    body: RoleChangeRequest,
    service: GuildService = Depends(get_guild_service),
) -> dict[str, Any]:
    member = service.change_member_role(body.changer_id, body.target_id, body.role_id)
    return {"player_id": member.player_id, "guild_id": member.guild_id, "role_id": member.role_id}


@router.post("/disband")
def disband_guild(
    body: DisbandRequest,
    service: GuildService = Depends(get_guild_service),
) -> dict[str, Any]:
    guild = service.disband_guild(body.player_id, body.confirmation_code)
    return {"guild_id": guild.guild_id, "is_active": guild.is_active}


# ── Treasury & perks ─────────────────────────────────────


@router.post("/treasury/deposit", response_model=TreasuryResponse)
def deposit(
    body: TreasuryRequest,
    service: GuildService = Depends(get_guild_service),
) -> TreasuryResponse:
    result = service.deposit_resources(
        body.player_id, body.resource_type, body.amount, ore_type=body.ore_type
    )
    return TreasuryResponse(**result)


@router.post("/treasury/withdraw", response_model=TreasuryResponse)
def withdraw(
    body: TreasuryRequest,
    service: GuildService = Depends(get_guild_service),
) -> TreasuryResponse:
    result = service.withdraw_resources(
        body.player_id, body.resource_type, body.amount, ore_type=body.ore_type
    )
    return TreasuryResponse(**result)


@router.post("/perks/activate", response_model=PerkInfo)
def activate_perk(
    body: PerkActivateRequest,
    service: GuildService = Depends(get_guild_service),
) -> PerkInfo:
    return PerkInfo.from_perk(service.activate_perk(body.player_id, body.perk_id))


# ── Diplomacy ────────────────────────────────────────────


@router.post("/relations")
def set_relation(
    body: RelationRequest,
    service: GuildService = Depends(get_guild_service),
) -> dict[str, str]:
    relation = service.set_guild_relation(body.initiator_id, body.target_guild_id, body.relation)
    return {"target_guild_id": body.target_guild_id, "relation": relation.value}


# ── Single guild ─────────────────────────────────────────


@router.get("/{guild_id}")
def get_guild(
    guild_id: str,
    service: GuildService = Depends(get_guild_service),
) -> dict[str, Any]:
    return service.get_guild(guild_id).full_view()


@router.post("/{guild_id}/applications", status_code=201, response_model=ApplicationInfo)
def apply_to_guild(
    guild_id: str,
    body: ApplyRequest,
    service: GuildService = Depends(get_guild_service),
) -> ApplicationInfo:
    """Apply to join. Guilds without an application requirement accept at once."""
    application = service.apply_to_guild(body.player_id, guild_id, body.message)
    return ApplicationInfo.from_application(application)


@router.get("/{guild_id}/applications", response_model=list[ApplicationInfo])
def list_applications(
    guild_id: str,
    status: Optional[ApplicationStatus] = ApplicationStatus.PENDING,
    service: GuildService = Depends(get_guild_service),
) -> list[ApplicationInfo]:
    return [ApplicationInfo.from_application(a) for a in service.list_applications(guild_id, status)]


@router.post("/{guild_id}/transfer")
def transfer_foundership(
    guild_id: str,
    body: TransferRequest,
    service: GuildService = Depends(get_guild_service),
) -> dict[str, Any]:
    guild = service.transfer_foundership(guild_id, body.current_founder_id, body.new_founder_id)
    return {"guild_id": guild.guild_id, "founder_id": guild.founder_id}


@router.get("/{guild_id}/perks", response_model=list[PerkInfo])
def get_available_perks(
    guild_id: str,
    service: GuildService = Depends(get_guild_service),
) -> list[PerkInfo]:
    return [PerkInfo.from_perk(p) for p in service.get_available_perks(guild_id)]


@router.get("/{guild_id}/events", response_model=list[GuildEventInfo])
def get_guild_events(
    guild_id: str,
    limit: int = Query(50, ge=0, le=500),
    offset: int = Query(0, ge=0),
    service: GuildService = Depends(get_guild_service),
) -> list[GuildEventInfo]:
    return [GuildEventInfo(**e) for e in service.get_guild_events(guild_id, limit, offset)]
