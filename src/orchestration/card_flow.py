# ABOUTME: Card flow coordinator running the five ordered draw phases atomically per agent.
# ABOUTME: draw -> publish -> apply -> equip -> close; a negotiation card is closed only after its negotiation ends.

import asyncio
import random
from collections import defaultdict

from loguru import logger

from src.config.board import NEGOTIATION_DECK
from src.interface.presentation import PresentationChannel
from src.models.cards import Card, CardDrawResult
from src.orchestration.agent_directory import AgentDirectory
from src.orchestration.effects import EffectApplier
from src.orchestration.exceptions import DeckExhausted, UnknownCard
from src.orchestration.green_negotiation import GreenNegotiationProtocol
from src.orchestration.guard import TurnContext
from src.store.shared_state import SharedStateStore


def deck_path(deck_id: str) -> str:
    return f"decks/{deck_id}"


def discard_path(deck_id: str) -> str:
    return f"discards/{deck_id}"


class CardFlowCoordinator:
    """
    Draws a card and resolves it.

    Invocations for the same agent are serialised; a failure in any phase
    aborts the remaining phases and propagates to the caller.
    """

    def __init__(
        self,
        store: SharedStateStore,
        directory: AgentDirectory,
        catalog: dict[str, Card],
        effects: EffectApplier,
        negotiation: GreenNegotiationProtocol,
        presentation: PresentationChannel,
        rng: random.Random,
        negotiation_deck: str = NEGOTIATION_DECK,
    ):
        self.store = store
        self.directory = directory
        self.catalog = catalog
        self.effects = effects
        self.negotiation = negotiation
        self.presentation = presentation
        self.rng = rng
        self.negotiation_deck = negotiation_deck
        self._agent_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def seed_decks(self, decks: dict[str, list[str]]) -> None:
        """Shuffle and store initial deck contents, clearing discard piles"""
        for deck_id, card_ids in decks.items():
            cards = list(card_ids)
            self.rng.shuffle(cards)
            self.store.replace_list(deck_path(deck_id), cards)
            self.store.replace_list(discard_path(deck_id), [])
        logger.info(f"Seeded decks: {sorted(decks)}")

    async def draw(self, agent_id: str, deck_id: str, ctx: TurnContext | None = None) -> CardDrawResult:
        """
        Run the draw sequence for one card.

        Raises:
            DeckExhausted: If the deck and its discard pile are empty
            UnknownCard: If the deck holds a card id missing from the catalog
            StoreWriteFailure: If any store write fails
        """
        async with self._agent_locks[agent_id]:
            if ctx is not None:
                ctx.ensure_current()

            # Phase 1: draw
            card = self._take_card(deck_id)
            result = CardDrawResult(deck_id=deck_id, card_id=card.card_id)
            logger.info(f"{agent_id} drew {card.card_id} from {deck_id}")

            # Phase 2: publish visual event
            self.presentation.show_card(agent_id, deck_id, card.card_id)

            # Phase 3: apply effect; a green card runs its negotiation to close here
            request = None
            if deck_id == self.negotiation_deck and card.green_query is not None:
                self.store.push(discard_path(deck_id), card.card_id)
                request = await self.negotiation.initiate(agent_id, card, ctx)
            else:
                result.applied_effects = self.effects.apply(card.effect, agent_id)
                self.store.push(discard_path(deck_id), card.card_id)

            # Phase 4: grant equipment
            if card.equipment:
                self.directory.add_equipment(agent_id, card.equipment)
                result.granted_equipment = card.equipment

            # Phase 5: close
            if request is not None:
                result.negotiation_request_id = request.request_id
                result.applied_effects.append(
                    f"negotiation {request.request_id}: {request.answer.value}"
                )
            self.presentation.close_card(agent_id, card.card_id)
            return result

    def _take_card(self, deck_id: str) -> Card:
        card_id = self.store.pop(deck_path(deck_id))
        if card_id is None:
            self._reshuffle(deck_id)
            card_id = self.store.pop(deck_path(deck_id))
        if card_id is None:
            raise DeckExhausted(f"Deck {deck_id} and its discard pile are empty")

        try:
            return self.catalog[card_id]
        except KeyError:
            raise UnknownCard(f"Card {card_id} in deck {deck_id} is not in the catalog") from None

    def _reshuffle(self, deck_id: str) -> None:
        discards = self.store.read_list(discard_path(deck_id))
        if not discards:
            return
        self.rng.shuffle(discards)
        self.store.replace_list(deck_path(deck_id), discards)
        self.store.replace_list(discard_path(deck_id), [])
        logger.info(f"Reshuffled {len(discards)} cards into {deck_id}")
