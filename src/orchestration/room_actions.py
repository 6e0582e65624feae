# ABOUTME: Room action resolver mapping an agent's location to its mandatory action.
# ABOUTME: Always returns a terminal ActionCompletion: a draw, a special action, or an explicit no-op.

import random
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from src.interface.presentation import PresentationChannel
from src.models.cards import CardEffect, EffectKind
from src.models.rooms import (
    ActionCompletion,
    Board,
    DeterministicRule,
    NoActionRule,
    ProbabilisticRule,
    SpecialWithFallbackRule,
)
from src.orchestration.agent_directory import AgentDirectory
from src.orchestration.card_flow import CardFlowCoordinator
from src.orchestration.effects import EffectApplier
from src.orchestration.exceptions import ActionUnavailable, UnknownSpecialAction
from src.orchestration.guard import TurnContext
from src.orchestration.target_selector import AttackTargetSelector


@dataclass
class SpecialAction:
    """A location-specific action with a precondition"""
    special_id: str
    precondition: Callable[[str], bool]
    execute: Callable[[str], str]


def default_specials(
    directory: AgentDirectory,
    selector: AttackTargetSelector,
    effects: EffectApplier,
    presentation: PresentationChannel,
) -> dict[str, SpecialAction]:
    """Special actions used by the default board"""

    def _woods(agent_id: str) -> str:
        applied = effects.apply(
            CardEffect(kind=EffectKind.DAMAGE, amount=2, target="nearest"), agent_id
        )
        return "; ".join(applied)

    def _altar_victim(agent_id: str) -> str | None:
        for _, candidate in selector.candidates(agent_id):
            if candidate.equipment:
                return candidate.id
        return None

    def _altar(agent_id: str) -> str:
        victim_id = _altar_victim(agent_id)
        item = directory.get(victim_id).equipment[0]
        directory.remove_equipment(victim_id, item)
        directory.add_equipment(agent_id, item)
        presentation.update_board("equipment", {"from": victim_id, "to": agent_id, "item": item})
        return f"took {item} from {victim_id}"

    return {
        "weird_woods": SpecialAction(
            special_id="weird_woods",
            precondition=lambda agent_id: selector.select_target(agent_id) is not None,
            execute=_woods,
        ),
        "erstwhile_altar": SpecialAction(
            special_id="erstwhile_altar",
            precondition=lambda agent_id: _altar_victim(agent_id) is not None,
            execute=_altar,
        ),
    }


class RoomActionResolver:
    """Dispatches the mandatory action for a location's rule"""

    def __init__(
        self,
        board: Board,
        card_flow: CardFlowCoordinator,
        specials: dict[str, SpecialAction],
        rng: random.Random,
    ):
        self.board = board
        self.card_flow = card_flow
        self.specials = specials
        self.rng = rng

    async def resolve(
        self, location_id: str | None, agent_id: str, ctx: TurnContext | None = None
    ) -> ActionCompletion:
        """
        Perform the mandatory action for agent_id at location_id.

        Returns:
            Terminal ActionCompletion (never None)

        Raises:
            UnknownSpecialAction: If a rule names an unregistered special
            StoreWriteFailure: Propagated from the card flow
        """
        location = self.board.get(location_id)
        if location is None:
            return self._no_action(location_id, "agent has no known location")

        rule = location.rule
        if isinstance(rule, DeterministicRule):
            return await self._draw(location.id, agent_id, rule.deck_id, ctx)

        if isinstance(rule, ProbabilisticRule):
            deck_id = self.rng.choice(rule.deck_ids)
            return await self._draw(location.id, agent_id, deck_id, ctx)

        if isinstance(rule, SpecialWithFallbackRule):
            special = self.specials.get(rule.special_id)
            if special is None:
                raise UnknownSpecialAction(f"Special action {rule.special_id} is not registered")
            if special.precondition(agent_id):
                detail = special.execute(agent_id)
                logger.info(f"{agent_id} performed {rule.special_id} at {location.id}: {detail}")
                return ActionCompletion(
                    location_id=location.id,
                    outcome="special",
                    special_id=rule.special_id,
                    detail=detail,
                )
            return await self._draw(location.id, agent_id, rule.deck_id, ctx)

        if isinstance(rule, NoActionRule):
            return self._no_action(location.id, "location has no action")

        raise TypeError(f"Unsupported room rule: {rule!r}")

    async def _draw(
        self, location_id: str, agent_id: str, deck_id: str, ctx: TurnContext | None
    ) -> ActionCompletion:
        try:
            draw = await self.card_flow.draw(agent_id, deck_id, ctx)
        except ActionUnavailable as e:
            return self._no_action(location_id, f"deck_exhausted: {e}")
        return ActionCompletion(location_id=location_id, outcome="draw", deck_id=deck_id, draw=draw)

    def _no_action(self, location_id: str | None, reason: str) -> ActionCompletion:
        logger.info(f"No legal room action at {location_id}: {reason}")
        return ActionCompletion(location_id=location_id, outcome="no_action", reason=reason)
