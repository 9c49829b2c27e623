"""Module interface for tick-driven maintenance work."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional


@dataclass
class TickContext:
    """State passed to modules on every scheduler tick"""

    now: datetime
    tick: int = 0

    # extension slot for host-specific data
    extra: Dict[str, Any] = field(default_factory=dict)


class GameModule(ABC):
    """Base interface for all governance modules

    Rules:
    - modules never import each other
    - cross-module communication goes through the EventBus
    - Module -> Service and Module -> Core are allowed
    """

    _enabled: bool

    def __init__(self) -> None:
        self._enabled = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique module name (e.g. 'reputation', 'guild')"""
        ...

    @property
    def dependencies(self) -> List[str]:
        """Names of modules that must be enabled first. Default: none."""
        return []

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @abstractmethod
    def on_enable(self) -> None:
        ...

    @abstractmethod
    def on_disable(self) -> None:
        ...

    @abstractmethod
    def on_tick(self, context: TickContext) -> bool:
        """Called on every tick. Returns True when the module did work."""
        ...


class IntervalModule(GameModule):
    """Module whose work runs at most once per fixed interval of tick time."""

    def __init__(self, interval: timedelta) -> None:
        super().__init__()
        self._interval = interval
        self._last_run: Optional[datetime] = None

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def last_run(self) -> Optional[datetime]:
        return self._last_run

    def is_due(self, now: datetime) -> bool:
        return self._last_run is None or now - self._last_run >= self._interval

    def on_tick(self, context: TickContext) -> bool:
        if not self.is_due(context.now):
            return False
        self.run(context)
        self._last_run = context.now
        return True

    @abstractmethod
    def run(self, context: TickContext) -> None:
        ...
