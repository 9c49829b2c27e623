"""GuildModule - loads the guild registry and runs member-activity maintenance."""

from datetime import timedelta
from typing import Optional

from governance.config import settings
from governance.core.logging import get_logger
from governance.modules.base import IntervalModule, TickContext
from governance.services.guild_service import GuildService

logger = get_logger(__name__)


class GuildModule(IntervalModule):
    def __init__(self, service: GuildService, interval_hours: Optional[int] = None) -> None:
        hours = (
            interval_hours
            if interval_hours is not None
            else settings.GUILD_MAINTENANCE_INTERVAL_HOURS
        )
        super().__init__(timedelta(hours=hours))
        self._service = service
        self.last_marked_inactive = 0

    @property
    def name(self) -> str:
        return "guild"

    def on_enable(self) -> None:
        count = self._service.load()
        logger.info(f"guild module enabled ({count} active guilds)")

    def on_disable(self) -> None:
        self._service.registry.clear()
        logger.info("guild module disabled")

    def run(self, context: TickContext) -> None:
        self.last_marked_inactive = self._service.process_periodic_updates(now=context.now)
