# ABOUTME: Orchestration layer exports for the autonomous turn scheduler and its sub-protocols.
# ABOUTME: Provides guard state, room actions, card flow, green negotiation, and the visual sync gate.

from src.orchestration.builder import build_turn_scheduler
from src.orchestration.card_flow import CardFlowCoordinator
from src.orchestration.exceptions import FinalizeTimeout, InvalidPhaseTransition, StaleTurn
from src.orchestration.green_negotiation import GreenNegotiationProtocol
from src.orchestration.guard import TurnContext, TurnGuard
from src.orchestration.room_actions import RoomActionResolver
from src.orchestration.target_selector import AttackTargetSelector
from src.orchestration.turn_scheduler import TurnScheduler
from src.orchestration.visual_sync import VisualSyncGate

__all__ = [
    "TurnScheduler",
    "TurnGuard",
    "TurnContext",
    "AttackTargetSelector",
    "RoomActionResolver",
    "CardFlowCoordinator",
    "GreenNegotiationProtocol",
    "VisualSyncGate",
    "build_turn_scheduler",
    "FinalizeTimeout",
    "InvalidPhaseTransition",
    "StaleTurn",
]
