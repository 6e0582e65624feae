# ABOUTME: Visual sync gate: applies board/map mutations no earlier than finalize time + fixed delay.
# ABOUTME: Also provides the speech-cue wrapper shown before movement and attack rolls.

import asyncio
from collections import defaultdict
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger

from src.config.settings import TurnTiming
from src.interface.presentation import PresentationChannel
from src.models.events import FinalizeEvent, FinalizeKind
from src.orchestration.exceptions import FinalizeTimeout
from src.orchestration.guard import TurnContext
from src.utils.clock import now_ms

T = TypeVar("T")


class VisualSyncGate:
    """
    Holds visible mutations back until the dice/animation engine confirms the
    roll finished, then waits ``visual_sync_delay_ms`` more. Mutations are
    never applied from a roll-start or mid-animation context.
    """

    def __init__(
        self,
        timing: TurnTiming,
        presentation: PresentationChannel,
        clock: Callable[[], int] = now_ms,
    ):
        self.timing = timing
        self.presentation = presentation
        self.clock = clock
        self._waiters: dict[tuple[FinalizeKind, str], list[asyncio.Future]] = defaultdict(list)

    def notify(self, event: FinalizeEvent) -> bool:
        """Deliver a finalize event to the oldest matching waiter"""
        for future in self._waiters.get((event.kind, event.actor_id), []):
            if not future.done():
                future.set_result(event)
                return True
        logger.debug(f"Unmatched finalize event {event.kind.value} for {event.actor_id}")
        return False

    def on_store_event(self, path: str, value: Any) -> None:
        """Store subscription callback for the dice/finalize path"""
        self.notify(FinalizeEvent.model_validate(value))

    async def apply_after_finalize(
        self,
        kind: FinalizeKind,
        actor_id: str,
        fn: Callable[[FinalizeEvent], T],
        *,
        trigger: Callable[[], None] | None = None,
        on_finalize: Callable[[FinalizeEvent], None] | None = None,
        ctx: TurnContext | None = None,
    ) -> T:
        """
        Wait for the matching finalize event, then apply ``fn``.

        Args:
            kind: Roll kind to wait for
            actor_id: Agent whose roll is animating
            fn: The visible mutation; receives the finalize event
            trigger: Starts the roll; called after the waiter is registered
            on_finalize: Runs as soon as the event arrives (e.g. dismiss a notice)
            ctx: Turn context re-validated after each suspension

        Returns:
            Whatever ``fn`` returns

        Raises:
            FinalizeTimeout: If no event arrives within finalize_timeout_ms
            StaleTurn: If the turn was superseded while waiting
        """
        key = (FinalizeKind(kind), actor_id)
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._waiters[key].append(future)

        try:
            if trigger is not None:
                trigger()
            try:
                event = await asyncio.wait_for(
                    future, timeout=self.timing.finalize_timeout_ms / 1000
                )
            except asyncio.TimeoutError:
                logger.error(
                    f"No {key[0].value} finalize for {actor_id} after "
                    f"{self.timing.finalize_timeout_ms}ms"
                )
                raise FinalizeTimeout(
                    f"{key[0].value} finalize for {actor_id} not received"
                ) from None
        finally:
            self._waiters[key].remove(future)
            if not self._waiters[key]:
                del self._waiters[key]

        if on_finalize is not None:
            on_finalize(event)
        if ctx is not None:
            ctx.ensure_current()

        not_before = event.timestamp_ms + self.timing.visual_sync_delay_ms
        while (remaining := not_before - self.clock()) > 0:
            await asyncio.sleep(remaining / 1000)

        if ctx is not None:
            ctx.ensure_current()
        return fn(event)

    async def speech_cue(
        self,
        agent_id: str,
        text_key: str,
        *,
        dismiss_on_finalize: bool,
        ctx: TurnContext | None = None,
    ) -> None:
        """
        Show a notice over the agent and hold for notice_duration_ms.

        Move notices expire on their own; attack notices stay up until the
        caller hides them when the roll finalizes.
        """
        duration = None if dismiss_on_finalize else self.timing.notice_duration_ms
        self.presentation.show_notice(agent_id, text_key, duration)
        await asyncio.sleep(self.timing.notice_duration_ms / 1000)
        if ctx is not None:
            ctx.ensure_current()
