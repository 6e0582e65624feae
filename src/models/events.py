# ABOUTME: Pydantic model for finalize events emitted by the dice/animation engine.
# ABOUTME: A finalize event marks the end of a randomized outcome animation for one actor.

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

# Store path the dice/animation engine writes finalize events to
FINALIZE_PATH = "dice/finalize"


class FinalizeKind(str, Enum):
    MOVE = "move"
    ATTACK = "attack"


class FinalizeEvent(BaseModel):
    """Completion signal for a movement or attack roll"""

    kind: FinalizeKind
    actor_id: str
    timestamp_ms: int = Field(description="Epoch milliseconds when the animation finished")
    outcome: dict[str, Any] | None = Field(
        default=None,
        description="Dice result carried with the event (MovementRoll/AttackRoll dump)"
    )
