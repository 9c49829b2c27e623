"""Host-facing endpoints: player directory sync and scheduler ticks."""

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from governance.api.schemas import RegisterPlayerRequest, TickRequest, TickResponse
from governance.core.clock import utcnow
from governance.core.logging import get_logger
from governance.db.database import transaction
from governance.modules.base import TickContext
from governance.modules.module_manager import ModuleManager
from governance.services.player_directory import PlayerDirectory

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def get_player_directory(request: Request) -> PlayerDirectory:
    directory: PlayerDirectory = request.app.state.player_directory
    return directory


def get_module_manager(request: Request) -> ModuleManager:
    manager: ModuleManager = request.app.state.module_manager
    return manager


def get_session(request: Request) -> Session:
    session: Session = request.app.state.db_session
    return session


@router.post("/players", status_code=201)
def register_player(
    body: RegisterPlayerRequest,
    directory: PlayerDirectory = Depends(get_player_directory),
    session: Session = Depends(get_session),
) -> dict[str, Any]:
    """Create or update a player's level and last login."""
    with transaction(session):
        row = directory.register(
            body.player_id,
            level=body.level,
            display_name=body.display_name,
            last_login=body.last_login,
        )
    return {"player_id": row.player_id, "level": row.level, "last_login": row.last_login}


@router.post("/players/{player_id}/login", status_code=204)
def record_login(
    player_id: str,
    directory: PlayerDirectory = Depends(get_player_directory),
    session: Session = Depends(get_session),
) -> None:
    with transaction(session):
        directory.record_login(player_id)


@router.post("/tick", response_model=TickResponse)
def process_tick(
    request: Request,
    body: TickRequest,
    manager: ModuleManager = Depends(get_module_manager),
) -> TickResponse:
    """Advance the scheduler once; modules whose interval elapsed run."""
    request.app.state.tick_count += 1
    tick = request.app.state.tick_count
    ran = manager.process_tick(TickContext(now=body.now or utcnow(), tick=tick))
    logger.info(f"Tick {tick} processed: {ran or 'no modules due'}")
    return TickResponse(tick=tick, modules=ran)
