"""Data models for the agent turn orchestrator"""

from .agents import Agent, Faction, RosterEntry
from .cards import (
    Card,
    CardDrawResult,
    CardEffect,
    EffectKind,
    GreenQuery,
    GreenRequest,
    InvalidRequestTransition,
    NegotiationAnswer,
    RequestStatus,
)
from .dice_models import AttackRoll, MovementRoll
from .events import FINALIZE_PATH, FinalizeEvent, FinalizeKind
from .messages import UICommand, UICommandType
from .rooms import (
    ActionCompletion,
    Board,
    DeterministicRule,
    Location,
    NoActionRule,
    ProbabilisticRule,
    RoomActionRule,
    SpecialWithFallbackRule,
)
from .turn import (
    PHASE_TRANSITIONS,
    AttackOutcome,
    GuardState,
    TurnPhase,
    TurnRecord,
    TurnToken,
)

__all__ = [
    # Agent models
    "Agent",
    "Faction",
    "RosterEntry",
    # Card and negotiation models
    "Card",
    "CardEffect",
    "EffectKind",
    "GreenQuery",
    "CardDrawResult",
    "GreenRequest",
    "RequestStatus",
    "NegotiationAnswer",
    "InvalidRequestTransition",
    # Dice models
    "MovementRoll",
    "AttackRoll",
    # Event models
    "FINALIZE_PATH",
    "FinalizeEvent",
    "FinalizeKind",
    # Presentation models
    "UICommand",
    "UICommandType",
    # Board models
    "Board",
    "Location",
    "RoomActionRule",
    "DeterministicRule",
    "ProbabilisticRule",
    "SpecialWithFallbackRule",
    "NoActionRule",
    "ActionCompletion",
    # Turn models
    "TurnPhase",
    "PHASE_TRANSITIONS",
    "TurnToken",
    "GuardState",
    "AttackOutcome",
    "TurnRecord",
]
