# ABOUTME: Human answer channel for green negotiation: waits for a client to write the answer to the store.
# ABOUTME: The wait is bounded; callers decide the fallback when no answer arrives in time.

import asyncio
from typing import Any

from loguru import logger

from src.models.cards import GreenRequest, NegotiationAnswer
from src.store.shared_state import SharedStateStore


def answer_path(request_id: str) -> str:
    return f"green/answers/{request_id}"


class StoreHumanInput:
    """Awaits ``green/answers/{request_id}`` written by the receiver's client"""

    def __init__(self, store: SharedStateStore):
        self.store = store

    async def await_answer(self, request: GreenRequest, timeout_ms: int) -> NegotiationAnswer | None:
        """
        Wait for the human receiver's answer.

        Args:
            request: Pending green request
            timeout_ms: Maximum wait

        Returns:
            The answer, or None on timeout
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def _on_answer(path: str, value: Any) -> None:
            if future.done():
                return
            try:
                future.set_result(NegotiationAnswer(value))
            except ValueError:
                logger.warning(f"Ignoring invalid answer {value!r} for {request.request_id}")

        path = answer_path(request.request_id)
        unsubscribe = self.store.subscribe(path, _on_answer)
        try:
            # Answer may have landed before we subscribed
            existing = self.store.read(path)
            if existing is not None:
                _on_answer(path, existing)
            return await asyncio.wait_for(future, timeout=timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.warning(
                f"No human answer for {request.request_id} from {request.receiver_id} "
                f"after {timeout_ms}ms"
            )
            return None
        finally:
            unsubscribe()
