# ABOUTME: Pydantic models for turn tokens, guard state, phases, and completed turn records.
# ABOUTME: Defines the turn protocol phases and the transition table enforced by the guard.

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from src.models.rooms import ActionCompletion


class TurnPhase(str, Enum):
    """Turn protocol phases (finite state machine)"""
    IDLE = "idle"
    MOVE = "move"
    ROOM_ACTION = "room_action"
    ATTACK = "attack"
    END = "end"
    CANCELLED = "cancelled"


# Forward-only transitions; CANCELLED is reachable from every phase
PHASE_TRANSITIONS: dict[TurnPhase, frozenset[TurnPhase]] = {
    TurnPhase.IDLE: frozenset({TurnPhase.MOVE, TurnPhase.CANCELLED}),
    TurnPhase.MOVE: frozenset({TurnPhase.ROOM_ACTION, TurnPhase.CANCELLED}),
    TurnPhase.ROOM_ACTION: frozenset({TurnPhase.ATTACK, TurnPhase.CANCELLED}),
    TurnPhase.ATTACK: frozenset({TurnPhase.END, TurnPhase.CANCELLED}),
    TurnPhase.END: frozenset({TurnPhase.CANCELLED}),
    TurnPhase.CANCELLED: frozenset({TurnPhase.CANCELLED}),
}


class TurnToken(BaseModel):
    """Opaque identifier scoping one turn attempt"""

    agent_id: str
    generation: int = Field(ge=1)
    issued_at_ms: int

    model_config = {"frozen": True}

    @property
    def value(self) -> str:
        return f"{self.agent_id}:{self.generation}:{self.issued_at_ms}"


class GuardState(BaseModel):
    """Mutable single-flight record owned by one TurnGuard"""

    current_token: TurnToken | None = None
    locked: bool = False
    resolving_step: bool = False
    attacked_this_turn: bool = False
    phase: TurnPhase = TurnPhase.IDLE
    cancelled: bool = False


class AttackOutcome(BaseModel):
    """Recorded result of the single attack of a turn"""

    token_value: str
    attacker_id: str
    target_id: str
    damage: int = Field(ge=0)
    target_hp_after: int = Field(ge=0)
    applied_at_ms: int


class TurnRecord(BaseModel):
    """Trace of one turn attempt, written to the store at the end step"""

    token: TurnToken
    status: Literal["running", "completed", "aborted", "superseded"] = "running"
    steps: list[TurnPhase] = Field(default_factory=list)
    step_started_at_ms: dict[str, int] = Field(default_factory=dict)
    room_action: ActionCompletion | None = None
    attack: AttackOutcome | None = None
    error: str | None = None
