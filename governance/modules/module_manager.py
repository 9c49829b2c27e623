"""Module manager - registration, enable/disable, dependency checks, tick dispatch"""

from typing import Dict, List, Optional

from governance.core.event_bus import EventBus, GameEvent
from governance.core.event_types import EventTypes
from governance.core.logging import get_logger
from governance.modules.base import GameModule, TickContext

logger = get_logger(__name__)


class ModuleManager:
    """Module toggles and lifecycle"""

    def __init__(self, event_bus: Optional[EventBus] = None) -> None:
        self._modules: Dict[str, GameModule] = {}
        self._event_bus: EventBus = event_bus or EventBus()

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def modules(self) -> Dict[str, GameModule]:
        """Registered modules (read-only copy)"""
        return dict(self._modules)

    def get_enabled_modules(self) -> List[GameModule]:
        return [m for m in self._modules.values() if m.enabled]

    def register(self, module: GameModule) -> None:
        """Register a module. A duplicate name replaces the old one with a warning."""
        if module.name in self._modules:
            logger.warning(f"Module replaced: {module.name}")
        self._modules[module.name] = module
        logger.info(f"Module registered: {module.name}")

    def enable(self, name: str) -> bool:
        """Enable a module. Returns False when it is unknown or a dependency is not enabled."""
        module = self._modules.get(name)
        if not module:
            logger.error(f"Module not registered: {name}")
            return False

        if module.enabled:
            return True

        for dep in module.dependencies:
            dep_module = self._modules.get(dep)
            if not dep_module:
                logger.warning(f"Dependency not registered: {name} requires {dep}")
                return False
            if not dep_module.enabled:
                logger.warning(f"Dependency disabled: {name} requires {dep}")
                return False

        module.on_enable()
        module.enabled = True
        logger.info(f"Module enabled: {name}")
        return True

    def disable(self, name: str) -> bool:
        """Disable a module, cascading to modules that depend on it."""
        module = self._modules.get(name)
        if not module:
            logger.error(f"Module not registered: {name}")
            return False

        if not module.enabled:
            return True

        for other in self._modules.values():
            if name in other.dependencies and other.enabled:
                logger.info(f"Cascade disable: {other.name} (depends on {name})")
                self.disable(other.name)

        module.on_disable()
        module.enabled = False
        logger.info(f"Module disabled: {name}")
        return True

    def process_tick(self, context: TickContext) -> List[str]:
        """Run on_tick for every enabled module. Returns the names that did work."""
        ran: List[str] = []
        for module in self._modules.values():
            if module.enabled and module.on_tick(context):
                ran.append(module.name)
        self._event_bus.emit(
            GameEvent(
                event_type=EventTypes.TICK_PROCESSED,
                data={"tick": context.tick, "modules": list(ran)},
                source="module_manager",
            )
        )
        self._event_bus.reset_chain()
        return ran

    def disable_all(self) -> None:
        for name in list(self._modules):
            self.disable(name)

    def is_enabled(self, name: str) -> bool:
        module = self._modules.get(name)
        return module.enabled if module else False
