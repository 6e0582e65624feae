# ABOUTME: Host runner loop: holds the room lease, watches the turn owner, and runs autonomous turns.
# ABOUTME: Also seeds a fresh room and passes the turn to the next living seat after a completed turn.

import asyncio
import json
from pathlib import Path

from loguru import logger
from redis import RedisError

from src.config.board import default_decks
from src.models.agents import RosterEntry
from src.models.turn import TurnRecord
from src.orchestration.exceptions import (
    AgentNotFound,
    FinalizeTimeout,
    InvalidPhaseTransition,
    InvalidRequestTransition,
    UnknownCard,
    UnknownSpecialAction,
)
from src.orchestration.turn_scheduler import TURN_OWNER_PATH, TurnScheduler
from src.store.exceptions import LeaseNotHeld, StoreReadFailure, StoreWriteFailure
from src.store.lease import OrchestratorLease

TURN_NUMBER_PATH = "turn/number"

# Turn left unplayed; the next tick retries it under a fresh token
RETRYABLE_FAILURES = (FinalizeTimeout, StoreReadFailure, StoreWriteFailure)

# Board or card content errors; the turn is skipped and passes to the next seat
CONTENT_FAILURES = (UnknownCard, UnknownSpecialAction, InvalidPhaseTransition, InvalidRequestTransition)


def load_roster(path: str | Path) -> list[RosterEntry]:
    """
    Load the seat assignment output.

    Args:
        path: JSON file shaped ``{"agents": [{id, name, color, faction, seat, ...}]}``

    Returns:
        Roster entries ordered by seat

    Raises:
        FileNotFoundError: If the roster file does not exist
        ValueError: If the roster is empty or seats repeat
    """
    with open(path) as f:
        data = json.load(f)

    entries = [RosterEntry.model_validate(item) for item in data.get("agents", [])]
    if not entries:
        raise ValueError(f"Roster {path} contains no agents")
    seats = [entry.seat for entry in entries]
    if len(set(seats)) != len(seats):
        raise ValueError(f"Roster {path} assigns the same seat twice")
    return sorted(entries, key=lambda entry: entry.seat)


class HostRunner:
    """
    Drives one room from the host process.

    The runner stays passive until it holds the orchestrator lease. While it
    holds it, it polls ``turn/owner`` and runs a turn whenever the owner is a
    living autonomous agent whose turn number has not been played yet.
    """

    def __init__(
        self,
        scheduler: TurnScheduler,
        lease: OrchestratorLease,
        roster: list[RosterEntry],
        poll_interval_ms: int = 250,
    ):
        self.scheduler = scheduler
        self.store = scheduler.store
        self.lease = lease
        self.roster = sorted(roster, key=lambda entry: entry.seat)
        self.poll_interval = poll_interval_ms / 1000
        self._last_played: tuple[str, int] | None = None

    def prepare_room(self, reset: bool = False) -> None:
        """
        Seed agents, decks and the first turn owner.

        Args:
            reset: Deal fresh decks and restart from the first seat even if
                the room already has state

        Raises:
            LeaseNotHeld: If this host does not own the room
        """
        if not self.lease.is_held():
            raise LeaseNotHeld(f"Cannot prepare room {self.store.room_id} without the lease")

        self.scheduler.directory.initialize()
        if reset or self.store.read(TURN_OWNER_PATH) is None:
            self.scheduler.resolver.card_flow.seed_decks(default_decks())
            self.store.write(TURN_NUMBER_PATH, 1)
            self.store.write(TURN_OWNER_PATH, self.roster[0].id)
            logger.info(f"Room {self.store.room_id} starts with {self.roster[0].id}")

    def next_owner(self, current_id: str) -> str | None:
        """Next living seat after current_id, wrapping around the table"""
        ids = [entry.id for entry in self.roster]
        if current_id not in ids:
            return None
        start = ids.index(current_id)
        for offset in range(1, len(ids) + 1):
            candidate = ids[(start + offset) % len(ids)]
            if self.scheduler.directory.get(candidate).is_alive:
                return candidate
        return None

    def pass_turn(self, current_id: str) -> None:
        next_id = self.next_owner(current_id)
        if next_id is None:
            logger.warning(f"No living agent to take the turn after {current_id}")
            return
        number = (self.store.read(TURN_NUMBER_PATH) or 0) + 1
        self.store.write(TURN_NUMBER_PATH, number)
        self.store.write(TURN_OWNER_PATH, next_id)
        logger.info(f"Turn {number} passes to {next_id}")

    async def tick(self) -> TurnRecord | None:
        """
        One scheduling attempt.

        Returns:
            The record of the turn played, or None when nothing was due
        """
        if self.scheduler.guard.locked or not self.lease.is_held():
            return None

        owner = self.store.read(TURN_OWNER_PATH)
        number = self.store.read(TURN_NUMBER_PATH) or 0
        if owner is None or self._last_played == (owner, number):
            return None

        try:
            agent = self.scheduler.directory.get(owner)
        except AgentNotFound as e:
            logger.error(f"Turn owner is not seated: {e}")
            self._last_played = (owner, number)
            return None

        if not agent.is_autonomous:
            return None
        if not agent.is_alive:
            self._last_played = (owner, number)
            self.pass_turn(owner)
            return None

        try:
            record = await self.scheduler.run_turn(owner)
        except RETRYABLE_FAILURES as e:
            logger.error(f"Turn {number} for {owner} aborted: {type(e).__name__}: {e}")
            return None
        except CONTENT_FAILURES as e:
            logger.error(f"Turn {number} for {owner} skipped: {type(e).__name__}: {e}")
            self._last_played = (owner, number)
            self.pass_turn(owner)
            return None

        if record is not None and record.status == "completed":
            self._last_played = (owner, number)
            self.pass_turn(owner)
        return record

    async def _keep_lease(self) -> None:
        interval = self.lease.ttl_ms / 3000
        while True:
            await asyncio.sleep(interval)
            try:
                held = self.lease.renew() or self.lease.acquire()
            except StoreWriteFailure as e:
                logger.error(f"Lease renewal failed: {e}")
                held = False
            if not held:
                self.scheduler.supersede("lease_lost")

    async def _keep_listening(self) -> None:
        """Relay remote store writes, resubscribing whenever the subscription drops"""
        while True:
            try:
                await self.store.listen_remote()
            except RedisError as e:
                logger.error(f"Remote listener for {self.store.room_id} dropped: {e}; resubscribing")
            await asyncio.sleep(self.poll_interval)

    @staticmethod
    def _report_exit(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.opt(exception=error).error(f"Background task {task.get_name()} died: {error}")

    async def run(self, reset: bool = False) -> None:
        """Run until cancelled; waits in standby while another host owns the room"""
        while not self.lease.acquire():
            await asyncio.sleep(self.lease.ttl_ms / 1000)

        self.prepare_room(reset=reset)
        listener = asyncio.create_task(self._keep_listening(), name="store-listener")
        keeper = asyncio.create_task(self._keep_lease(), name="lease-keeper")
        for task in (listener, keeper):
            task.add_done_callback(self._report_exit)
        logger.info(f"Host {self.lease.owner_id} driving room {self.store.room_id}")

        try:
            while True:
                stopped = [task.get_name() for task in (listener, keeper) if task.done()]
                if stopped:
                    logger.error(f"Host for {self.store.room_id} stopping: {stopped} exited")
                    return
                try:
                    await self.tick()
                except (StoreReadFailure, StoreWriteFailure) as e:
                    logger.error(f"Turn bookkeeping for {self.store.room_id} failed: {e}")
                await asyncio.sleep(self.poll_interval)
        finally:
            keeper.cancel()
            listener.cancel()
            self.scheduler.close()
            self.lease.release()
