# ABOUTME: Exception definitions for orchestration layer errors.
# ABOUTME: Defines the internal stale-turn signal plus errors raised by scheduler, card flow, and negotiation.

from src.models.cards import InvalidRequestTransition
from src.store.exceptions import StoreWriteFailure


class StaleTurn(Exception):
    """Internal signal: the turn token was superseded while a step was suspended.

    Never surfaced to callers; the scheduler turns it into a silent no-op.
    """

    pass


class ActionUnavailable(Exception):
    """Raised when no legal room action exists; recorded as a no-op completion"""

    pass


class DeckExhausted(ActionUnavailable):
    """Raised when a deck and its discard pile are both empty"""

    pass


class FinalizeTimeout(Exception):
    """Raised when a dice/animation finalize event does not arrive in time"""

    pass


class InvalidPhaseTransition(Exception):
    """Raised when attempting a transition not allowed by the phase table"""

    pass


class NegotiationReentry(Exception):
    """Raised when a green request id is run a second time"""

    pass


class UnknownSpecialAction(Exception):
    """Raised when a room rule names a special action that is not registered"""

    pass


class UnknownCard(Exception):
    """Raised when a deck contains a card id missing from the catalog"""

    pass


class AgentNotFound(Exception):
    """Raised when agent_id doesn't exist in the roster"""

    pass


__all__ = [
    "StaleTurn",
    "ActionUnavailable",
    "DeckExhausted",
    "FinalizeTimeout",
    "InvalidPhaseTransition",
    "InvalidRequestTransition",
    "NegotiationReentry",
    "UnknownSpecialAction",
    "UnknownCard",
    "AgentNotFound",
    "StoreWriteFailure",
]
