"""Configuration module for the agent turn orchestrator"""

from .board import CARD_CATALOG, FREE_MOVE_ROLL, NEGOTIATION_DECK, default_board, default_decks
from .settings import Settings, TurnTiming, get_settings

__all__ = [
    "Settings",
    "TurnTiming",
    "get_settings",
    "CARD_CATALOG",
    "NEGOTIATION_DECK",
    "FREE_MOVE_ROLL",
    "default_board",
    "default_decks",
]
