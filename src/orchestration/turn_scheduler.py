# ABOUTME: TurnScheduler driving an autonomous agent through move -> room action -> attack -> end.
# ABOUTME: One cancellable task per turn, fixed pacing between steps, token checks after every suspension.

import asyncio
import random
from typing import Any

from loguru import logger

from src.config.board import FREE_MOVE_ROLL
from src.config.settings import TurnTiming
from src.interface.dice_engine import DiceEngine
from src.interface.presentation import PresentationChannel
from src.models.agents import Agent
from src.models.dice_models import AttackRoll, MovementRoll
from src.models.events import FINALIZE_PATH, FinalizeEvent, FinalizeKind
from src.models.rooms import Board, Location
from src.models.turn import AttackOutcome, TurnPhase, TurnRecord, TurnToken
from src.orchestration.agent_directory import AgentDirectory
from src.orchestration.exceptions import StaleTurn
from src.orchestration.guard import TurnContext, TurnGuard
from src.orchestration.room_actions import RoomActionResolver
from src.orchestration.target_selector import AttackTargetSelector
from src.orchestration.visual_sync import VisualSyncGate
from src.store.lease import OrchestratorLease
from src.store.shared_state import SharedStateStore
from src.utils.clock import now_ms
from src.utils.logging import log_phase_transition, log_turn_event

TURN_OWNER_PATH = "turn/owner"

STEP_ORDER = (TurnPhase.MOVE, TurnPhase.ROOM_ACTION, TurnPhase.ATTACK, TurnPhase.END)


class TurnScheduler:
    """
    Host-side driver for autonomous turns in one room.

    Each scheduler owns its own TurnGuard, so several rooms can run in one
    process without sharing state. ``run_turn`` never queues: a call made
    while a turn is running returns None.
    """

    def __init__(
        self,
        store: SharedStateStore,
        directory: AgentDirectory,
        board: Board,
        selector: AttackTargetSelector,
        resolver: RoomActionResolver,
        gate: VisualSyncGate,
        dice: DiceEngine,
        presentation: PresentationChannel,
        timing: TurnTiming,
        rng: random.Random,
        lease: OrchestratorLease | None = None,
    ):
        self.store = store
        self.room_id = store.room_id
        self.directory = directory
        self.board = board
        self.selector = selector
        self.resolver = resolver
        self.gate = gate
        self.dice = dice
        self.presentation = presentation
        self.timing = timing
        self.rng = rng
        self.lease = lease

        self.guard = TurnGuard()
        self._generation = 0
        self._turn_task: asyncio.Task | None = None
        self._attack_task: asyncio.Task | None = None
        self._step_idle = asyncio.Event()
        self._step_idle.set()
        self._record: TurnRecord | None = None
        self._unsubscribers = [
            store.subscribe(FINALIZE_PATH, gate.on_store_event),
            store.subscribe(TURN_OWNER_PATH, self._on_owner_changed),
        ]

    @property
    def current_record(self) -> TurnRecord | None:
        return self._record

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    # ------------------------------------------------------------------
    # Turn entry points
    # ------------------------------------------------------------------

    async def run_turn(self, agent_id: str) -> TurnRecord | None:
        """
        Run one full turn for agent_id.

        Returns:
            The TurnRecord (completed or superseded), or None when the call
            was rejected because a turn is already running or this host does
            not hold the room lease

        Raises:
            AgentNotFound: If agent_id is not in the roster
            FinalizeTimeout: If a dice animation never finalized
            StoreWriteFailure: If the shared store rejected a write
        """
        if self.guard.locked:
            logger.debug(f"run_turn({agent_id}) ignored: turn already running in {self.room_id}")
            return None
        if self.lease is not None and not self.lease.is_held():
            logger.warning(f"run_turn({agent_id}) ignored: lease for {self.room_id} not held")
            return None

        self.directory.entry(agent_id)
        token = self.guard.issue_turn(agent_id, self._generation + 1)
        if token is None:
            return None
        self._generation = token.generation

        record = TurnRecord(token=token)
        self._record = record
        log_turn_event("Turn started", phase=TurnPhase.IDLE.value, room_id=self.room_id,
                       token=token.value, agent_id=agent_id)

        self._turn_task = asyncio.create_task(self._drive(record))
        try:
            return await self._turn_task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return record

    async def attempt_attack(self, token: TurnToken) -> AttackOutcome | None:
        """
        Independent attack trigger for the turn identified by token.

        Only acts during the attack phase, while no other step of the turn is
        resolving, and only if no attack was claimed yet under this token;
        otherwise returns None. The turn's next step waits for it to finish.
        """
        ctx = TurnContext(self.guard, token)
        if not ctx.is_current or self.guard.phase != TurnPhase.ATTACK:
            return None
        if not self.guard.try_begin_step(token):
            logger.debug(f"Attack trigger for {token.value} rejected: step in progress")
            return None

        self._step_idle.clear()
        self._attack_task = asyncio.create_task(self._triggered_attack(ctx))
        self._attack_task.add_done_callback(lambda _: self._step_idle.set())
        try:
            return await self._attack_task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            return None

    async def _triggered_attack(self, ctx: TurnContext) -> AttackOutcome | None:
        try:
            return await self._attack(ctx)
        except StaleTurn:
            return None
        finally:
            if ctx.is_current:
                self.guard.end_step()

    def supersede(self, reason: str) -> None:
        """Invalidate the running turn (owner change, room reset, game end)"""
        token = self.guard.current_token
        if not self.guard.locked or token is None:
            return

        self.guard.cancel()
        log_turn_event(f"Turn superseded: {reason}", phase=TurnPhase.CANCELLED.value,
                       room_id=self.room_id, token=token.value, agent_id=token.agent_id,
                       level="WARNING")
        for task in (self._turn_task, self._attack_task):
            if task is not None and not task.done():
                task.cancel()

    def _on_owner_changed(self, path: str, value: Any) -> None:
        token = self.guard.current_token
        if self.guard.locked and token is not None and value != token.agent_id:
            self.supersede("owner_changed")

    # ------------------------------------------------------------------
    # Turn body
    # ------------------------------------------------------------------

    async def _drive(self, record: TurnRecord) -> TurnRecord:
        ctx = TurnContext(self.guard, record.token)
        try:
            for index, phase in enumerate(STEP_ORDER):
                if index > 0:
                    await asyncio.sleep(self.timing.pacing_delay_ms / 1000)
                    ctx.ensure_current()
                await self._run_step(ctx, record, phase)
            return record

        except StaleTurn:
            record.status = "superseded"
            logger.info(f"Stale continuation for {record.token.value} discarded")
            return record

        except asyncio.CancelledError:
            record.status = "superseded"
            raise

        except Exception as e:
            record.status = "aborted"
            record.error = f"{type(e).__name__}: {e}"
            self.guard.cancel()
            log_turn_event(f"Turn aborted: {record.error}", phase=TurnPhase.CANCELLED.value,
                           room_id=self.room_id, token=record.token.value,
                           agent_id=record.token.agent_id, level="ERROR")
            raise

        finally:
            self.guard.release()
            logger.debug(f"Turn lock released for {record.token.value} ({record.status})")

    async def _run_step(self, ctx: TurnContext, record: TurnRecord, phase: TurnPhase) -> None:
        # A triggered attack may still be resolving under this token
        await self._step_idle.wait()
        previous = self.guard.phase
        if not self.guard.advance(ctx.token, phase):
            raise StaleTurn(ctx.token.value)
        if not self.guard.try_begin_step(ctx.token):
            raise StaleTurn(ctx.token.value)

        started = now_ms()
        record.step_started_at_ms[phase.value] = started
        log_phase_transition(previous.value, phase.value, self.room_id, ctx.token.value)

        try:
            if phase == TurnPhase.MOVE:
                await self._move(ctx)
                record.steps.append(phase)
            elif phase == TurnPhase.ROOM_ACTION:
                position = self.directory.get(ctx.token.agent_id).position
                completion = await self.resolver.resolve(position, ctx.token.agent_id, ctx)
                ctx.ensure_current()
                record.room_action = completion
                record.steps.append(phase)
            elif phase == TurnPhase.ATTACK:
                await self._attack(ctx)
            elif phase == TurnPhase.END:
                record.steps.append(phase)
                record.status = "completed"
                self.store.write(f"turn_records/{ctx.token.value}", record)
                log_turn_event("Turn completed", phase=phase.value, room_id=self.room_id,
                               token=ctx.token.value, agent_id=ctx.token.agent_id,
                               steps=[s.value for s in record.steps])
        finally:
            self.guard.end_step()

    async def _move(self, ctx: TurnContext) -> str:
        agent_id = ctx.token.agent_id
        agent = self.directory.get(agent_id)
        await self.gate.speech_cue(agent_id, "notice.move", dismiss_on_finalize=False, ctx=ctx)

        def _apply(event: FinalizeEvent) -> str:
            roll = MovementRoll.model_validate(event.outcome)
            destination = self._destination_for(agent, roll.total)
            self.directory.set_position(agent_id, destination.id)
            self.presentation.update_board("position", {"agent_id": agent_id, "location_id": destination.id})
            log_turn_event(f"Moved to {destination.id} (rolled {roll.total})", phase=TurnPhase.MOVE.value,
                           room_id=self.room_id, token=ctx.token.value, agent_id=agent_id)
            return destination.id

        return await self.gate.apply_after_finalize(
            FinalizeKind.MOVE,
            agent_id,
            _apply,
            trigger=lambda: self.dice.request_roll(FinalizeKind.MOVE, agent_id),
            ctx=ctx,
        )

    def _destination_for(self, agent: Agent, total: int) -> Location:
        """Rolled area; a free-move roll or a roll of the current area picks the first other area"""
        rolled = self.board.for_roll(total)
        if total != FREE_MOVE_ROLL and rolled is not None and rolled.id != agent.position:
            return rolled
        for location in self.board.locations:
            if location.id != agent.position:
                return location
        raise ValueError("Board needs at least two locations")

    async def _attack(self, ctx: TurnContext) -> AttackOutcome | None:
        attacker_id = ctx.token.agent_id
        target_id = self.selector.select_target(attacker_id)
        if target_id is None:
            logger.info(f"{attacker_id} has no target in range; attack skipped")
            return None
        if not self.guard.try_claim_attack(ctx.token):
            logger.info(f"Duplicate attack trigger for {ctx.token.value} rejected")
            return None

        await self.gate.speech_cue(attacker_id, "notice.attack", dismiss_on_finalize=True, ctx=ctx)

        def _apply(event: FinalizeEvent) -> AttackOutcome | None:
            if not self.selector.can_reach(attacker_id, target_id):
                return None
            roll = AttackRoll.model_validate(event.outcome)
            hp = self.directory.change_hp(target_id, -roll.damage)
            self.presentation.update_board("hp", {"agent_id": target_id, "hp": hp})
            outcome = AttackOutcome(
                token_value=ctx.token.value,
                attacker_id=attacker_id,
                target_id=target_id,
                damage=roll.damage,
                target_hp_after=hp,
                applied_at_ms=now_ms(),
            )
            self.store.write(f"attacks/{ctx.token.value}", outcome)
            return outcome

        outcome = await self.gate.apply_after_finalize(
            FinalizeKind.ATTACK,
            attacker_id,
            _apply,
            trigger=lambda: self.dice.request_roll(FinalizeKind.ATTACK, attacker_id),
            on_finalize=lambda event: self.presentation.hide_notice(attacker_id),
            ctx=ctx,
        )
        if outcome is None:
            logger.info(f"{target_id} left the reach of {attacker_id} before the roll landed; no damage")
            return None

        if self._record is not None and self._record.token == ctx.token:
            self._record.attack = outcome
            self._record.steps.append(TurnPhase.ATTACK)
        log_turn_event(f"Attacked {target_id} for {outcome.damage}", phase=TurnPhase.ATTACK.value,
                       room_id=self.room_id, token=ctx.token.value, agent_id=attacker_id)
        return outcome
