# ABOUTME: Pydantic models for fire-and-forget presentation commands sent to UI clients.
# ABOUTME: Defines command types (notices, card UI, negotiation UI, board updates) and their envelope.

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class UICommandType(str, Enum):
    """Presentation commands emitted by the orchestrator"""
    SHOW_NOTICE = "show_notice"  # Transient speech notice over an agent
    HIDE_NOTICE = "hide_notice"
    SHOW_CARD = "show_card"  # Drawn card reveal
    CLOSE_CARD = "close_card"
    SHOW_NEGOTIATION = "show_negotiation"  # Green request for sender + receiver
    CLOSE_NEGOTIATION = "close_negotiation"
    UPDATE_BOARD = "update_board"  # Map position / hit-point board movement


class UICommand(BaseModel):
    """Envelope for one presentation command"""

    command_id: str = Field(
        description="Unique command identifier"
    )
    command: UICommandType
    target_agents: list[str] | None = Field(
        default=None,
        description="Agents whose clients should act (None = everyone)"
    )
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime

    model_config = {"use_enum_values": True}
