"""Reputation API endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request

from governance.api.schemas import (
    ActionOutcomeResponse,
    ApplyActionRequest,
    ConsequenceRecord,
    DecayReportResponse,
    FactionInfo,
    FactionRelationshipInfo,
    FactionRelationshipRequest,
    HistoryEntry,
    InteractionResponse,
    ReputationSummaryEntry,
    StandingInfo,
)
from governance.core.logging import get_logger
from governance.core.reputation import ActionContext, FactionRelationship
from governance.services.reputation_service import ReputationService

logger = get_logger(__name__)

router = APIRouter(prefix="/reputation", tags=["reputation"])


def get_reputation_service(request: Request) -> ReputationService:
    """Return the shared ReputationService (dependency injection)."""
    service: ReputationService = request.app.state.reputation_service
    return service


def _relationship_info(edge: FactionRelationship) -> FactionRelationshipInfo:
    return FactionRelationshipInfo(
        faction_id=edge.faction_id,
        target_faction_id=edge.target_faction_id,
        kind=edge.kind.value,
        strength=edge.strength,
    )


# ── Factions ─────────────────────────────────────────────


@router.get("/factions", response_model=list[FactionInfo])
def list_factions(
    service: ReputationService = Depends(get_reputation_service),
) -> list[FactionInfo]:
    return [FactionInfo(**f) for f in service.list_factions()]


@router.get("/factions/relationships", response_model=list[FactionRelationshipInfo])
def list_relationships(
    faction_id: Optional[str] = None,
    service: ReputationService = Depends(get_reputation_service),
) -> list[FactionRelationshipInfo]:
    return [_relationship_info(e) for e in service.get_faction_relationships(faction_id)]


@router.put(
    "/factions/{faction_id}/relationships/{target_faction_id}",
    response_model=FactionRelationshipInfo,
)
def set_relationship(
    faction_id: str,
    target_faction_id: str,
    body: FactionRelationshipRequest,
    service: ReputationService = Depends(get_reputation_service),
) -> FactionRelationshipInfo:
    edge = service.set_faction_relationship(
        faction_id, target_faction_id, body.kind, body.strength
    )
    return _relationship_info(edge)


# ── Actions ──────────────────────────────────────────────


@router.post("/actions", response_model=ActionOutcomeResponse)
def apply_action(
    body: ApplyActionRequest,
    service: ReputationService = Depends(get_reputation_service),
) -> ActionOutcomeResponse:
    """Apply a catalog action to a player's standing with a faction."""
    context = ActionContext(
        multiplier=body.multiplier,
        faction_modifier=body.faction_modifier,
        value=body.value,
        reason=body.reason,
        extra=dict(body.extra),
    )
    outcome = service.apply_action(body.player_id, body.faction_id, body.action_code, context)
    return ActionOutcomeResponse.from_outcome(outcome)


# ── Player standing ──────────────────────────────────────


@router.get("/players/{player_id}", response_model=list[ReputationSummaryEntry])
def get_summary(
    player_id: str,
    service: ReputationService = Depends(get_reputation_service),
) -> list[ReputationSummaryEntry]:
    return [
        ReputationSummaryEntry(
            faction_id=entry["faction_id"],
            faction_name=entry["faction_name"],
            faction_type=entry["faction_type"],
            value=entry["value"],
            standing=StandingInfo.from_standing(entry["standing"]),
        )
        for entry in service.get_reputation_summary(player_id)
    ]


@router.get("/players/{player_id}/factions/{faction_id}", response_model=StandingInfo)
def get_standing(
    player_id: str,
    faction_id: str,
    service: ReputationService = Depends(get_reputation_service),
) -> StandingInfo:
    return StandingInfo.from_standing(service.get_standing(player_id, faction_id))


@router.get(
    "/players/{player_id}/factions/{faction_id}/interactions/{kind}",
    response_model=InteractionResponse,
)
def can_interact(
    player_id: str,
    faction_id: str,
    kind: str,
    service: ReputationService = Depends(get_reputation_service),
) -> InteractionResponse:
    return InteractionResponse(
        player_id=player_id,
        faction_id=faction_id,
        kind=kind,
        allowed=service.can_interact(player_id, faction_id, kind),
    )


@router.get("/players/{player_id}/history", response_model=list[HistoryEntry])
def get_history(
    player_id: str,
    faction_id: Optional[str] = None,
    limit: int = Query(20, ge=0, le=500),
    offset: int = Query(0, ge=0),
    service: ReputationService = Depends(get_reputation_service),
) -> list[HistoryEntry]:
    events = service.get_reputation_history(player_id, faction_id, limit, offset)
    return [HistoryEntry.from_event(e) for e in events]


@router.get("/players/{player_id}/consequences", response_model=list[ConsequenceRecord])
def get_consequences(
    player_id: str,
    limit: int = Query(50, ge=0, le=500),
    service: ReputationService = Depends(get_reputation_service),
) -> list[ConsequenceRecord]:
    return [ConsequenceRecord(**c) for c in service.get_consequence_history(player_id, limit)]


# ── Maintenance ──────────────────────────────────────────


@router.get("/stats")
def get_stats(
    service: ReputationService = Depends(get_reputation_service),
) -> dict[str, Any]:
    return service.get_reputation_stats()


@router.post("/decay", response_model=DecayReportResponse)
def run_decay(
    service: ReputationService = Depends(get_reputation_service),
) -> DecayReportResponse:
    """Run one decay sweep immediately, outside the tick schedule."""
    report = service.run_decay()
    return DecayReportResponse(
        examined=report.examined,
        decayed=report.decayed,
        skipped=report.skipped,
        failed=report.failed,
    )


@router.post("/cache/rebuild")
def rebuild_cache(
    service: ReputationService = Depends(get_reputation_service),
) -> dict[str, int]:
    return {"cached": service.rebuild_effects_cache()}
