# ABOUTME: Factory wiring store, directory, card flow, negotiation, gate, and dice engine into a TurnScheduler.
# ABOUTME: Defaults to the shipped board and card catalog; every collaborator can be overridden for tests.

import random

from loguru import logger
from redis import Redis

from src.config.board import CARD_CATALOG, default_board
from src.config.settings import TurnTiming
from src.interface.dice_engine import DiceEngine, StoreDiceEngine
from src.interface.human_input import StoreHumanInput
from src.interface.presentation import PresentationChannel
from src.models.agents import RosterEntry
from src.models.cards import Card
from src.models.rooms import Board
from src.orchestration.agent_directory import AgentDirectory
from src.orchestration.card_flow import CardFlowCoordinator
from src.orchestration.effects import EffectApplier
from src.orchestration.green_negotiation import GreenNegotiationProtocol, HumanInput
from src.orchestration.room_actions import RoomActionResolver, SpecialAction, default_specials
from src.orchestration.target_selector import AttackTargetSelector
from src.orchestration.turn_scheduler import TurnScheduler
from src.orchestration.visual_sync import VisualSyncGate
from src.store.lease import OrchestratorLease
from src.store.shared_state import SharedStateStore


def build_turn_scheduler(
    redis_client: Redis,
    room_id: str,
    roster: list[RosterEntry],
    timing: TurnTiming | None = None,
    rng: random.Random | None = None,
    board: Board | None = None,
    catalog: dict[str, Card] | None = None,
    dice: DiceEngine | None = None,
    human_input: HumanInput | None = None,
    specials: dict[str, SpecialAction] | None = None,
    lease: OrchestratorLease | None = None,
    store: SharedStateStore | None = None,
) -> TurnScheduler:
    """
    Assemble a TurnScheduler for one room.

    Args:
        redis_client: Redis connection backing the shared store
        room_id: Room the scheduler governs
        roster: Seat assignment output
        timing: Protocol delays (default: TurnTiming())
        rng: Random source shared by every random choice (default: unseeded)
        board: Board layout (default: default_board())
        catalog: Card catalog (default: CARD_CATALOG)
        dice: Dice engine (default: StoreDiceEngine for an external animation client)
        human_input: Human answer channel (default: StoreHumanInput)
        specials: Special actions by id (default: default_specials(...))
        lease: Orchestrator lease; when given, turns only run while it is held
        store: Pre-built store (default: new SharedStateStore for room_id)

    Returns:
        Configured TurnScheduler
    """
    timing = timing or TurnTiming()
    rng = rng or random.Random()
    board = board or default_board()
    catalog = catalog if catalog is not None else CARD_CATALOG
    store = store or SharedStateStore(redis_client, room_id)

    presentation = PresentationChannel(redis_client, room_id)
    directory = AgentDirectory(store, roster)
    selector = AttackTargetSelector(directory, board)
    effects = EffectApplier(directory, selector, presentation)
    negotiation = GreenNegotiationProtocol(
        store=store,
        directory=directory,
        board=board,
        presentation=presentation,
        effects=effects,
        timing=timing,
        rng=rng,
        human_input=human_input or StoreHumanInput(store),
    )
    card_flow = CardFlowCoordinator(
        store=store,
        directory=directory,
        catalog=catalog,
        effects=effects,
        negotiation=negotiation,
        presentation=presentation,
        rng=rng,
    )
    resolver = RoomActionResolver(
        board=board,
        card_flow=card_flow,
        specials=specials if specials is not None else default_specials(
            directory, selector, effects, presentation
        ),
        rng=rng,
    )
    gate = VisualSyncGate(timing, presentation)

    logger.info(f"Built turn scheduler for room {room_id} with {len(roster)} seats")
    return TurnScheduler(
        store=store,
        directory=directory,
        board=board,
        selector=selector,
        resolver=resolver,
        gate=gate,
        dice=dice or StoreDiceEngine(store),
        presentation=presentation,
        timing=timing,
        rng=rng,
        lease=lease,
    )
