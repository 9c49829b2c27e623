"""Outbound notification channel."""

from governance.core.event_bus import EventBus, GameEvent
from governance.core.event_types import EventTypes
from governance.core.logging import get_logger

logger = get_logger(__name__)


class Notifier:
    """Sends (player_id, message, kind) to the transport layer.

    The default implementation logs and publishes NOTIFICATION_SENT; a
    transport adapter subscribes to that event.
    """

    def __init__(self, event_bus: EventBus) -> None:
        self._bus = event_bus

    def send(self, player_id: str, message: str, kind: str) -> None:
        logger.info(f"Notify {player_id} [{kind}]: {message}")
        self._bus.emit(
            GameEvent(
                event_type=EventTypes.NOTIFICATION_SENT,
                data={"player_id": player_id, "message": message, "kind": kind},
                source="notifier",
            )
        )
