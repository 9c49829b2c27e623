"""FastAPI application entrypoint."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from sqlalchemy.orm import Session

from governance.api.admin import router as admin_router
from governance.api.errors import register_error_handlers
from governance.api.guilds import router as guild_router
from governance.api.health import router as health_router
from governance.api.reputation import router as reputation_router
from governance.config import settings
from governance.core.event_bus import EventBus
from governance.core.logging import get_logger, setup_logging
from governance.db.database import SessionLocal, engine as db_engine
from governance.db.models import Base
from governance.modules.guild.module import GuildModule
from governance.modules.module_manager import ModuleManager
from governance.modules.reputation.module import ReputationModule
from governance.services.faction_catalog import FactionCatalogLoader
from governance.services.guild_registry import GuildRegistry
from governance.services.guild_service import GuildService
from governance.services.notifications import Notifier
from governance.services.player_directory import PlayerDirectory
from governance.services.reputation_service import ReputationService
from governance.services.standing_cache import StandingCache

setup_logging(settings.LOG_LEVEL)
logger = get_logger(__name__)


def wire_services(
    app: FastAPI, db_session: Session, faction_data_path: Optional[str] = None
) -> ModuleManager:
    """Seed factions, build the services and enable the tick modules on app.state."""
    FactionCatalogLoader(db_session, faction_data_path).seed()

    event_bus = EventBus()
    notifier = Notifier(event_bus)
    players = PlayerDirectory(db_session)

    reputation_service = ReputationService(
        db_session, event_bus, notifier=notifier, cache=StandingCache()
    )
    guild_service = GuildService(
        db_session,
        event_bus,
        registry=GuildRegistry(),
        players=players,
        notifier=notifier,
    )

    manager = ModuleManager(event_bus)
    manager.register(ReputationModule(reputation_service))
    manager.register(GuildModule(guild_service))
    manager.enable("reputation")
    manager.enable("guild")

    app.state.db_session = db_session
    app.state.event_bus = event_bus
    app.state.player_directory = players
    app.state.reputation_service = reputation_service
    app.state.guild_service = guild_service
    app.state.module_manager = manager
    app.state.tick_count = 0
    return manager


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=db_engine)
    logger.info("Database tables created.")

    db_session = SessionLocal()
    manager = wire_services(app, db_session)
    logger.info(
        f"Governance engine ready: {len(app.state.guild_service.registry)} guilds loaded, "
        f"modules={[m.name for m in manager.get_enabled_modules()]}"
    )

    yield

    logger.info("Shutting down...")
    manager.disable_all()
    db_session.close()


app = FastAPI(title="Social Governance Engine", lifespan=lifespan)
register_error_handlers(app)

app.include_router(health_router)
app.include_router(reputation_router)
app.include_router(guild_router)
app.include_router(admin_router)
