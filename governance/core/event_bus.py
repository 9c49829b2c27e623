"""EventBus - synchronous in-process broadcast to collaborators.

Rules:
- events carry identifiers and small payloads, never live entities
- propagation depth is capped at MAX_DEPTH
- within one dispatch chain the same source may not emit the same event type twice
- a chain ends when the outermost emit returns
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Set

from governance.core.logging import get_logger

logger = get_logger(__name__)

MAX_DEPTH = 5  # max nested emits inside one chain


@dataclass
class GameEvent:
    """Event container

    Args:
        event_type: event type (e.g. "standing_changed", "guild_created")
        data: event payload (ids and scalars only)
        source: name of the emitting service
    """

    event_type: str
    data: Dict[str, Any]
    source: str

    # internal tracking, not set by callers
    _depth: int = field(default=0, repr=False)


EventHandler = Callable[[GameEvent], None]


class EventBus:
    """Synchronous event bus

    Usage:
        bus = EventBus()
        bus.subscribe("standing_changed", ui_adapter.handle_standing_changed)
        bus.emit(GameEvent(event_type="standing_changed", data={...}, source="reputation_service"))
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)
        self._current_depth: int = 0
        self._emitted_in_chain: Set[str] = set()  # "source:event_type"

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)
        logger.debug(f"EventBus subscribe: {event_type} -> {handler.__qualname__}")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        if event_type in self._handlers:
            try:
                self._handlers[event_type].remove(handler)
                logger.debug(
                    f"EventBus unsubscribe: {event_type} -> {handler.__qualname__}"
                )
            except ValueError:
                logger.warning(
                    f"Handler not registered: {event_type} -> {handler.__qualname__}"
                )

    def emit(self, event: GameEvent) -> None:
        """Publish an event and call subscribed handlers synchronously.

        Guards:
        1. events past MAX_DEPTH are dropped
        2. a repeated source:event_type inside one chain is dropped

        Handler exceptions are logged and never reach the emitter.
        """
        if self._current_depth >= MAX_DEPTH:
            logger.warning(
                f"EventBus depth exceeded ({MAX_DEPTH}): "
                f"{event.source}:{event.event_type} dropped"
            )
            return

        chain_key = f"{event.source}:{event.event_type}"
        if self._current_depth > 0 and chain_key in self._emitted_in_chain:
            logger.warning(f"EventBus duplicate event blocked: {chain_key}")
            return

        self._emitted_in_chain.add(chain_key)
        event._depth = self._current_depth

        handlers = list(self._handlers.get(event.event_type, []))
        if not handlers:
            logger.debug(f"EventBus: no subscribers for {event.event_type}")
            if self._current_depth == 0:
                self._emitted_in_chain.clear()
            return

        logger.debug(
            f"EventBus dispatch: {event.event_type} (source={event.source}, "
            f"depth={self._current_depth}, handlers={len(handlers)})"
        )

        self._current_depth += 1
        try:
            for handler in handlers:
                try:
                    handler(event)
                except Exception:
                    logger.exception(
                        f"EventBus handler error: {handler.__qualname__} "
                        f"(event={event.event_type})"
                    )
        finally:
            self._current_depth -= 1
            if self._current_depth == 0:
                self._emitted_in_chain.clear()

    def reset_chain(self) -> None:
        self._emitted_in_chain.clear()
        self._current_depth = 0

    def clear(self) -> None:
        """Drop all subscriptions (tests)."""
        self._handlers.clear()
        self.reset_chain()

    @property
    def handler_count(self) -> int:
        return sum(len(h) for h in self._handlers.values())
