"""Error taxonomy for reputation and guild operations.

Every error is local and synchronous: callers must correct the request.
Services raise these before any mutation reaches the store.
"""


class GovernanceError(Exception):
    """Base class. ``code`` is a stable identifier used by the API layer."""

    code = "governance_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GovernanceError):
    """Malformed input: name/tag length, unknown action/faction/perk."""

    code = "validation_error"


class UnknownActionError(ValidationError):
    code = "unknown_action"


class UnknownFactionError(ValidationError):
    code = "unknown_faction"


class PerkUnavailableError(ValidationError):
    """Perk does not exist or the guild level is too low for it."""

    code = "perk_unavailable"


class PermissionDeniedError(GovernanceError):
    """Missing capability or role-hierarchy violation."""

    code = "permission_denied"


class CapacityExceededError(GovernanceError):
    """Guild or role at its member limit."""

    code = "capacity_exceeded"


class InsufficientFundsError(GovernanceError):
    """Treasury balance below the requested amount or perk cost."""

    code = "insufficient_funds"


class ConflictError(GovernanceError):
    """Duplicate name/tag, already affiliated, duplicate application, active perk."""

    code = "conflict"


class NotFoundError(GovernanceError):
    """Unknown guild/player/application/role."""

    code = "not_found"


class StateError(GovernanceError):
    """Terminal-state violation: kicking a founder, founder leaving, bad disband code."""

    code = "state_error"


class StoreUnavailableError(GovernanceError):
    """The backing store failed or timed out."""

    code = "store_unavailable"
