"""ReputationModule - runs the decay sweep on the scheduler tick."""

from datetime import timedelta
from typing import Optional

from governance.config import settings
from governance.core.logging import get_logger
from governance.core.reputation import DecayReport
from governance.modules.base import IntervalModule, TickContext
from governance.services.reputation_service import ReputationService

logger = get_logger(__name__)


class ReputationModule(IntervalModule):
    """Wraps ReputationService for the module lifecycle.

    on_enable rebuilds the standing cache; each due tick runs one decay sweep.
    """

    def __init__(
        self, service: ReputationService, interval_hours: Optional[int] = None
    ) -> None:
        hours = (
            interval_hours
            if interval_hours is not None
            else settings.REPUTATION_DECAY_INTERVAL_HOURS
        )
        super().__init__(timedelta(hours=hours))
        self._service = service
        self.last_report: Optional[DecayReport] = None

    @property
    def name(self) -> str:
        return "reputation"

    def on_enable(self) -> None:
        self._service.rebuild_effects_cache()
        logger.info("reputation module enabled")

    def on_disable(self) -> None:
        self._service.cache.clear()
        logger.info("reputation module disabled")

    def run(self, context: TickContext) -> None:
        self.last_report = self._service.run_decay(now=context.now)
