# ABOUTME: Green negotiation protocol: request -> receive -> answer -> close between two agents.
# ABOUTME: Autonomous receivers answer via the faction heuristic; humans answer through the store.

import asyncio
import random
from typing import Protocol
from uuid import uuid4

from loguru import logger

from src.config.settings import TurnTiming
from src.interface.presentation import PresentationChannel
from src.models.cards import Card, GreenRequest, NegotiationAnswer
from src.models.rooms import Board
from src.orchestration.agent_directory import AgentDirectory
from src.orchestration.effects import EffectApplier
from src.orchestration.exceptions import NegotiationReentry
from src.orchestration.faction_heuristic import decide, relation_to
from src.orchestration.guard import TurnContext
from src.store.shared_state import SharedStateStore
from src.utils.logging import log_negotiation_event


class HumanInput(Protocol):
    async def await_answer(self, request: GreenRequest, timeout_ms: int) -> NegotiationAnswer | None:
        ...


class GreenNegotiationProtocol:
    """
    Runs one green request to its terminal CLOSED state.

    Request records live at ``green/requests/{request_id}``; the receiver's
    inbox ``green/inbox/{receiver_id}`` lists request ids addressed to them.
    A request id is never run twice.
    """

    def __init__(
        self,
        store: SharedStateStore,
        directory: AgentDirectory,
        board: Board,
        presentation: PresentationChannel,
        effects: EffectApplier,
        timing: TurnTiming,
        rng: random.Random,
        human_input: HumanInput,
    ):
        self.store = store
        self.directory = directory
        self.board = board
        self.presentation = presentation
        self.effects = effects
        self.timing = timing
        self.rng = rng
        self.human_input = human_input
        self._started: set[str] = set()

    def select_receiver(self, sender_id: str) -> str | None:
        """Lowest-id eligible agent in range of the sender, else lowest-id eligible agent"""
        sender = self.directory.get(sender_id)
        eligible = [a for a in self.directory.all() if a.id != sender_id and a.is_alive]
        if not eligible:
            return None

        in_range = [
            a for a in eligible
            if self.board.distance(sender.position, a.position) is not None
        ]
        pool = in_range or eligible
        return min(a.id for a in pool)

    async def initiate(
        self, sender_id: str, card: Card, ctx: TurnContext | None = None
    ) -> GreenRequest | None:
        """
        Start a negotiation for a drawn green card.

        Returns:
            The closed request, or None when nobody can receive it
        """
        if card.green_query is None:
            raise ValueError(f"Card {card.card_id} carries no green query")
        if ctx is not None:
            ctx.ensure_current()

        receiver_id = self.select_receiver(sender_id)
        if receiver_id is None:
            logger.info(f"No eligible receiver for {card.card_id} from {sender_id}")
            return None

        request = GreenRequest(
            request_id=f"green_{uuid4().hex[:8]}",
            sender_id=sender_id,
            receiver_id=receiver_id,
            card_id=card.card_id,
        )
        return await self.run(request, card, ctx)

    async def run(self, request: GreenRequest, card: Card, ctx: TurnContext | None = None) -> GreenRequest:
        if ctx is not None:
            ctx.ensure_current()
        if request.request_id in self._started:
            raise NegotiationReentry(f"Request {request.request_id} already started")
        self._started.add(request.request_id)

        # Request + receive
        self._publish(request)
        self.store.push(f"green/inbox/{request.receiver_id}", request.request_id)
        self.presentation.show_negotiation(
            request.request_id, request.sender_id, request.receiver_id, request.card_id
        )
        log_negotiation_event("request", request.request_id, request.sender_id,
                              request.receiver_id, card_id=card.card_id)
        await self._pause(ctx)

        # Answer
        answer = await self._decide(request, card)
        if ctx is not None:
            ctx.ensure_current()
        request.mark_answered(answer)
        self._publish(request)
        log_negotiation_event("answer", request.request_id, request.sender_id,
                              request.receiver_id, answer=answer.value)
        if answer == NegotiationAnswer.AFFIRM:
            self.effects.apply(card.green_query.on_affirm, request.receiver_id)
        await self._pause(ctx)

        # Close
        self.presentation.close_negotiation(request.request_id, request.sender_id, request.receiver_id)
        request.mark_closed()
        self._publish(request)
        log_negotiation_event("close", request.request_id, request.sender_id, request.receiver_id)
        return request

    async def _decide(self, request: GreenRequest, card: Card) -> NegotiationAnswer:
        receiver = self.directory.get(request.receiver_id)
        relation = relation_to(receiver.faction, card.green_query.target_faction)

        if not receiver.is_autonomous:
            answer = await self.human_input.await_answer(request, self.timing.human_answer_timeout_ms)
            if answer is not None:
                return answer
            logger.warning(
                f"Falling back to faction heuristic for {request.request_id} "
                f"(human {receiver.id} did not answer)"
            )

        return decide(receiver.faction, relation, self.rng)

    async def _pause(self, ctx: TurnContext | None) -> None:
        await asyncio.sleep(self.timing.negotiation_delay_ms / 1000)
        if ctx is not None:
            ctx.ensure_current()

    def _publish(self, request: GreenRequest) -> None:
        self.store.write(f"green/requests/{request.request_id}", request)
