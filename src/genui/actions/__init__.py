"""Action dispatch."""

from .dispatcher import (
    ActionDispatcher,
    ActionHandler,
    Outcome,
    OutcomeStatus,
    PendingConfirmation,
)

__all__ = [
    "ActionDispatcher",
    "ActionHandler",
    "Outcome",
    "OutcomeStatus",
    "PendingConfirmation",
]
