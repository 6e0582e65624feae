# ABOUTME: Shared pytest fixtures for all test modules (unit and integration).
# ABOUTME: Provides a dict-backed mock Redis, fast turn timing, roster data, a scripted dice engine, and a seeded scheduler factory.

import asyncio
import fnmatch
import random
from datetime import UTC, datetime
from typing import Any
from unittest.mock import MagicMock

import pytest

from src.config.board import default_board
from src.config.settings import TurnTiming
from src.models.agents import Faction, RosterEntry
from src.models.dice_models import AttackRoll, MovementRoll
from src.models.events import FINALIZE_PATH, FinalizeEvent, FinalizeKind
from src.models.rooms import Board
from src.orchestration.builder import build_turn_scheduler
from src.store.shared_state import SharedStateStore
from src.utils.clock import now_ms

TEST_ROOM = "room_test"


# --- Helper Functions ---

def make_fake_redis() -> MagicMock:
    """
    MagicMock Redis whose core commands operate on a plain dict.

    Strings are stored as str values and lists as Python lists under
    ``redis.data``. Individual commands can still be overridden with
    ``side_effect`` to inject failures.
    """
    redis = MagicMock()
    data: dict[str, Any] = {}
    redis.data = data

    def _get(key):
        value = data.get(key)
        return value if isinstance(value, str) else None

    def _set(key, value, nx=False, px=None, **kwargs):
        if nx and key in data:
            return None
        data[key] = value
        return True

    def _delete(*keys):
        removed = 0
        for key in keys:
            if data.pop(key, None) is not None:
                removed += 1
        return removed

    def _rpush(key, *values):
        data.setdefault(key, []).extend(values)
        return len(data[key])

    def _lpop(key):
        items = data.get(key)
        if not items:
            return None
        value = items.pop(0)
        if not items:
            del data[key]
        return value

    def _lrange(key, start, end):
        items = data.get(key, [])
        stop = len(items) if end == -1 else end + 1
        return list(items[start:stop])

    def _scan_iter(match="*", **kwargs):
        return iter([key for key in list(data) if fnmatch.fnmatch(key, match)])

    redis.get = MagicMock(side_effect=_get)
    redis.set = MagicMock(side_effect=_set)
    redis.delete = MagicMock(side_effect=_delete)
    redis.rpush = MagicMock(side_effect=_rpush)
    redis.lpop = MagicMock(side_effect=_lpop)
    redis.lrange = MagicMock(side_effect=_lrange)
    redis.scan_iter = MagicMock(side_effect=_scan_iter)
    redis.publish = MagicMock(return_value=0)
    redis.expire = MagicMock(side_effect=lambda key, ttl: key in data)
    redis.pexpire = MagicMock(side_effect=lambda key, ttl: key in data)

    pipe = MagicMock()
    pipe.delete = MagicMock(side_effect=_delete)
    pipe.rpush = MagicMock(side_effect=_rpush)
    pipe.execute = MagicMock(return_value=[])
    redis.pipeline = MagicMock(return_value=pipe)

    return redis


class ScriptedDiceEngine:
    """
    Dice engine double: finalizes each roll after delay_ms with the next
    queued (d6, d4) pair. A silent engine records requests and never finalizes.
    """

    def __init__(
        self,
        store: SharedStateStore,
        moves: list[tuple[int, int]] | None = None,
        attacks: list[tuple[int, int]] | None = None,
        delay_ms: int = 20,
        silent: bool = False,
    ):
        self.store = store
        self.moves = list(moves or [])
        self.attacks = list(attacks or [])
        self.delay_ms = delay_ms
        self.silent = silent
        self.requests: list[tuple[FinalizeKind, str]] = []
        self.events: list[FinalizeEvent] = []
        self._tasks: set[asyncio.Task] = set()

    def request_roll(self, kind: FinalizeKind, actor_id: str) -> None:
        kind = FinalizeKind(kind)
        self.requests.append((kind, actor_id))
        if self.silent:
            return
        task = asyncio.get_running_loop().create_task(self._finalize(kind, actor_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _finalize(self, kind: FinalizeKind, actor_id: str) -> None:
        await asyncio.sleep(self.delay_ms / 1000)
        if kind == FinalizeKind.MOVE:
            d6, d4 = self.moves.pop(0) if self.moves else (3, 3)
            roll = MovementRoll(d6=d6, d4=d4, total=d6 + d4, timestamp=datetime.now(UTC))
        else:
            d6, d4 = self.attacks.pop(0) if self.attacks else (5, 2)
            roll = AttackRoll(d6=d6, d4=d4, damage=abs(d6 - d4), timestamp=datetime.now(UTC))

        event = FinalizeEvent(
            kind=kind,
            actor_id=actor_id,
            timestamp_ms=now_ms(),
            outcome=roll.model_dump(mode="json"),
        )
        self.events.append(event)
        self.store.write(FINALIZE_PATH, event)

    async def drain(self) -> None:
        """Wait for every pending finalize task"""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


# --- Mock Client Fixtures ---

@pytest.fixture
def mock_redis_client() -> MagicMock:
    """Dict-backed mock Redis client for store, lease and presentation tests"""
    return make_fake_redis()


@pytest.fixture
def store(mock_redis_client) -> SharedStateStore:
    return SharedStateStore(mock_redis_client, TEST_ROOM)


# --- Game Data Fixtures ---

@pytest.fixture
def fast_timing() -> TurnTiming:
    """Protocol delays shrunk so full turns finish in well under a second"""
    return TurnTiming(
        pacing_delay_ms=50,
        notice_duration_ms=10,
        negotiation_delay_ms=5,
        visual_sync_delay_ms=20,
        finalize_timeout_ms=500,
        human_answer_timeout_ms=100,
    )


@pytest.fixture
def board() -> Board:
    return default_board()


@pytest.fixture
def roster() -> list[RosterEntry]:
    """Four seats: two hunters (one human), a shadow and a neutral"""
    return [
        RosterEntry(id="agent_a", name="Amber", color="#e0a030", faction=Faction.HUNTER, seat=0),
        RosterEntry(id="agent_b", name="Bruno", color="#4060c0", faction=Faction.SHADOW, seat=1),
        RosterEntry(id="agent_c", name="Cleo", color="#40a060", faction=Faction.NEUTRAL, seat=2),
        RosterEntry(id="human_d", name="Dana", color="#c04060", faction=Faction.HUNTER, seat=3,
                    is_autonomous=False),
    ]


# --- Orchestrator Fixtures ---

@pytest.fixture
def make_room(mock_redis_client, store, roster, fast_timing):
    """
    Factory building a TurnScheduler with a ScriptedDiceEngine.

    Returns:
        Callable(**dice_kwargs, timing=None, human_input=None, lease=None,
        room_id=TEST_ROOM) returning (scheduler, dice)
    """

    def _make(timing: TurnTiming | None = None, human_input=None, lease=None, seed: int = 7,
              room_id: str = TEST_ROOM, **dice_kwargs):
        room_store = store if room_id == TEST_ROOM else SharedStateStore(mock_redis_client, room_id)
        dice = ScriptedDiceEngine(room_store, **dice_kwargs)
        scheduler = build_turn_scheduler(
            mock_redis_client,
            room_id,
            roster,
            timing=timing or fast_timing,
            rng=random.Random(seed),
            dice=dice,
            human_input=human_input,
            lease=lease,
            store=room_store,
        )
        scheduler.directory.initialize()
        return scheduler, dice

    return _make
