# ABOUTME: Turn guard: token issue/validation, single-flight lock, phase FSM, and one-shot attack flag.
# ABOUTME: TurnContext re-validates a token after every suspension point and raises StaleTurn on mismatch.

from loguru import logger

from src.models.turn import PHASE_TRANSITIONS, GuardState, TurnPhase, TurnToken
from src.orchestration.exceptions import InvalidPhaseTransition, StaleTurn
from src.utils.clock import now_ms


class TurnGuard:
    """
    Per-room guard state. One instance per TurnScheduler; never shared
    across rooms.

    Rejections (locked, step already resolving, attack already claimed,
    stale token) are reported as False/None return values, never raised.
    """

    def __init__(self):
        self.state = GuardState()

    @property
    def phase(self) -> TurnPhase:
        return self.state.phase

    @property
    def locked(self) -> bool:
        return self.state.locked

    @property
    def current_token(self) -> TurnToken | None:
        return self.state.current_token

    def issue_turn(self, agent_id: str, generation: int) -> TurnToken | None:
        """Claim the lock and issue a fresh token; None while a turn is running"""
        if self.state.locked:
            logger.debug(f"Turn for {agent_id} rejected: guard locked")
            return None

        token = TurnToken(agent_id=agent_id, generation=generation, issued_at_ms=now_ms())
        self.state = GuardState(current_token=token, locked=True)
        return token

    def validate(self, token: TurnToken | None) -> bool:
        return (
            token is not None
            and token == self.state.current_token
            and self.state.locked
            and not self.state.cancelled
        )

    def cancel(self) -> None:
        """Invalidate the current token. In-flight external calls are not aborted."""
        self.state.cancelled = True
        self.state.phase = TurnPhase.CANCELLED

    def advance(self, token: TurnToken, phase: TurnPhase) -> bool:
        """
        Move to the next phase.

        Returns:
            False when the token is stale (silent no-op)

        Raises:
            InvalidPhaseTransition: If the phase table forbids the move
        """
        if not self.validate(token):
            return False
        if phase not in PHASE_TRANSITIONS[self.state.phase]:
            raise InvalidPhaseTransition(
                f"Cannot transition from {self.state.phase.value} to {phase.value}"
            )
        self.state.phase = phase
        return True

    def try_begin_step(self, token: TurnToken) -> bool:
        if not self.validate(token) or self.state.resolving_step:
            return False
        self.state.resolving_step = True
        return True

    def end_step(self) -> None:
        self.state.resolving_step = False

    def try_claim_attack(self, token: TurnToken) -> bool:
        """Set attacked_this_turn before any attack side effect; first claim wins"""
        if not self.validate(token) or self.state.attacked_this_turn:
            return False
        self.state.attacked_this_turn = True
        return True

    def release(self) -> None:
        self.state.locked = False
        self.state.resolving_step = False


class TurnContext:
    """Token-scoped view of the guard handed to every step"""

    def __init__(self, guard: TurnGuard, token: TurnToken):
        self.guard = guard
        self.token = token

    @property
    def is_current(self) -> bool:
        return self.guard.validate(self.token)

    def ensure_current(self) -> None:
        """Call after every await; raises StaleTurn when the token was superseded"""
        if not self.guard.validate(self.token):
            raise StaleTurn(self.token.value)
