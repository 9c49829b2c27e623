"""Governance core: reputation and guild domain code"""
__version__ = "0.1.0"

from governance.core.errors import (
    CapacityExceededError,
    ConflictError,
    GovernanceError,
    InsufficientFundsError,
    NotFoundError,
    PerkUnavailableError,
    PermissionDeniedError,
    StateError,
    StoreUnavailableError,
    UnknownActionError,
    UnknownFactionError,
    ValidationError,
)
from governance.core.event_bus import EventBus, GameEvent

__all__ = [
    "CapacityExceededError",
    "ConflictError",
    "GovernanceError",
    "InsufficientFundsError",
    "NotFoundError",
    "PerkUnavailableError",
    "PermissionDeniedError",
    "StateError",
    "StoreUnavailableError",
    "UnknownActionError",
    "UnknownFactionError",
    "ValidationError",
    "EventBus",
    "GameEvent",
]
