# ABOUTME: Dice/animation engine adapters that produce finalize events through the shared store.
# ABOUTME: StoreDiceEngine hands rolls to an animation client; LocalDiceEngine rolls in-process.

import asyncio
import random
from typing import Protocol

from loguru import logger

from src.models.events import FINALIZE_PATH, FinalizeEvent, FinalizeKind
from src.store.shared_state import SharedStateStore
from src.utils.clock import now_ms
from src.utils.dice import roll_attack, roll_movement

ROLL_REQUEST_PATH = "dice/requests"


class DiceEngine(Protocol):
    def request_roll(self, kind: FinalizeKind, actor_id: str) -> None:
        """Start a randomized outcome; completion arrives as a FinalizeEvent"""
        ...


class StoreDiceEngine:
    """
    Publishes roll requests for an external animation client.

    The client rolls, animates, and writes a FinalizeEvent (with the dice
    outcome) to ``dice/finalize``.
    """

    def __init__(self, store: SharedStateStore):
        self.store = store

    def request_roll(self, kind: FinalizeKind, actor_id: str) -> None:
        self.store.write(
            ROLL_REQUEST_PATH,
            {"kind": FinalizeKind(kind).value, "actor_id": actor_id, "requested_at_ms": now_ms()},
        )


class LocalDiceEngine:
    """Headless engine: rolls with the injected RNG and finalizes after animation_ms"""

    def __init__(self, store: SharedStateStore, rng: random.Random, animation_ms: int = 1200):
        self.store = store
        self.rng = rng
        self.animation_ms = animation_ms
        self._tasks: set[asyncio.Task] = set()

    def request_roll(self, kind: FinalizeKind, actor_id: str) -> None:
        task = asyncio.get_running_loop().create_task(self._animate(FinalizeKind(kind), actor_id))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    async def _animate(self, kind: FinalizeKind, actor_id: str) -> None:
        roll = roll_movement(self.rng) if kind == FinalizeKind.MOVE else roll_attack(self.rng)
        await asyncio.sleep(self.animation_ms / 1000)
        event = FinalizeEvent(
            kind=kind,
            actor_id=actor_id,
            timestamp_ms=now_ms(),
            outcome=roll.model_dump(mode="json"),
        )
        self.store.write(FINALIZE_PATH, event)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Local dice animation failed: {task.exception()}")
