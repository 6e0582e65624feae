# ABOUTME: Integration tests for complete autonomous turns driven by TurnScheduler.
# ABOUTME: Covers trace order, pacing, single-flight turns, supersession, duplicate attacks, and aborts.

import asyncio

import pytest
from redis import RedisError

from src.config.settings import TurnTiming
from src.models.events import FinalizeKind
from src.models.turn import TurnPhase
from src.orchestration.exceptions import AgentNotFound, FinalizeTimeout
from src.orchestration.turn_scheduler import TURN_OWNER_PATH
from src.store.exceptions import StoreWriteFailure
from src.store.lease import OrchestratorLease

pytestmark = pytest.mark.integration

FULL_TRACE = [TurnPhase.MOVE, TurnPhase.ROOM_ACTION, TurnPhase.ATTACK, TurnPhase.END]


def setup_table(scheduler, black_deck: list[str] | None = None) -> None:
    """agent_a at the church with shadow agent_b next to it; rolling 8 moves agent_a to the cemetery"""
    directory = scheduler.directory
    directory.set_position("agent_a", "church")
    directory.set_position("agent_b", "church")
    directory.set_position("agent_c", "hermit_cabin")
    scheduler.resolver.card_flow.seed_decks({
        "black": ["chainsaw"] if black_deck is None else black_deck,
        "white": ["talisman"],
        "green": ["hunter_query"],
    })


async def wait_until(predicate, timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.002)


def ui_commands(scheduler) -> list[tuple[str, dict]]:
    return [(c.command, c.payload) for c in scheduler.presentation.get_commands(limit=500)]


class TestCompletedTurn:
    """Normal turns run every step in order"""

    @pytest.mark.asyncio
    async def test_full_turn_trace_and_effects(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)], attacks=[(5, 2)])
        setup_table(scheduler)

        record = await scheduler.run_turn("agent_a")

        assert record.status == "completed"
        assert record.steps == FULL_TRACE
        assert record.room_action.outcome == "draw"
        assert record.room_action.deck_id == "black"
        assert record.attack.target_id == "agent_b"
        assert record.attack.damage == 3

        directory = scheduler.directory
        assert directory.get("agent_a").position == "cemetery"
        assert directory.get("agent_a").equipment == ["chainsaw"]
        assert directory.get("agent_b").hp == 9
        assert scheduler.guard.locked is False

    @pytest.mark.asyncio
    async def test_turn_record_is_stored(self, make_room):
        scheduler, _ = make_room(moves=[(4, 4)])
        setup_table(scheduler)

        record = await scheduler.run_turn("agent_a")

        stored = scheduler.store.read(f"turn_records/{record.token.value}")
        assert stored["status"] == "completed"
        assert stored["steps"] == ["move", "room_action", "attack", "end"]
        assert scheduler.store.read(f"attacks/{record.token.value}")["damage"] == 3

    @pytest.mark.asyncio
    async def test_steps_are_paced(self, make_room, fast_timing):
        scheduler, _ = make_room(moves=[(4, 4)])
        setup_table(scheduler)

        record = await scheduler.run_turn("agent_a")

        starts = [record.step_started_at_ms[phase.value] for phase in FULL_TRACE]
        for earlier, later in zip(starts, starts[1:]):
            assert later - earlier >= fast_timing.pacing_delay_ms - 5

    @pytest.mark.asyncio
    async def test_mutations_follow_finalize_plus_delay(self, make_room, fast_timing):
        scheduler, dice = make_room(moves=[(4, 4)])
        setup_table(scheduler)

        record = await scheduler.run_turn("agent_a")

        attack_finalize = [e for e in dice.events if e.kind == FinalizeKind.ATTACK][0]
        assert record.attack.applied_at_ms >= (
            attack_finalize.timestamp_ms + fast_timing.visual_sync_delay_ms
        )

    @pytest.mark.asyncio
    async def test_presentation_order(self, make_room):
        scheduler, _ = make_room(moves=[(4, 4)])
        setup_table(scheduler)

        await scheduler.run_turn("agent_a")

        commands = ui_commands(scheduler)
        names = [name for name, _ in commands]
        move_notice = names.index("show_notice")
        position_update = next(
            i for i, (name, payload) in enumerate(commands)
            if name == "update_board" and payload["kind"] == "position"
        )
        hide = names.index("hide_notice")
        hp_update = max(
            i for i, (name, payload) in enumerate(commands)
            if name == "update_board" and payload["kind"] == "hp"
        )
        assert move_notice < position_update
        assert names.index("show_card") < names.index("close_card")
        assert hide < hp_update

    @pytest.mark.asyncio
    async def test_turn_without_target_skips_attack(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)])
        setup_table(scheduler)
        scheduler.directory.set_position("agent_b", "hermit_cabin")

        record = await scheduler.run_turn("agent_a")

        assert record.status == "completed"
        assert record.steps == [TurnPhase.MOVE, TurnPhase.ROOM_ACTION, TurnPhase.END]
        assert record.attack is None
        assert [kind for kind, _ in dice.requests] == [FinalizeKind.MOVE]

    @pytest.mark.asyncio
    async def test_exhausted_deck_still_completes_room_action(self, make_room):
        scheduler, _ = make_room(moves=[(4, 4)])
        setup_table(scheduler, black_deck=[])

        record = await scheduler.run_turn("agent_a")

        assert record.steps == FULL_TRACE
        assert record.room_action.outcome == "no_action"
        assert record.room_action.reason.startswith("deck_exhausted")

    @pytest.mark.asyncio
    async def test_negotiation_card_resolved_inside_room_action(self, make_room):
        scheduler, _ = make_room(moves=[(1, 1)])
        setup_table(scheduler)

        record = await scheduler.run_turn("agent_a")

        assert record.room_action.deck_id == "green"
        request_id = record.room_action.draw.negotiation_request_id
        assert scheduler.store.read(f"green/requests/{request_id}")["status"] == "closed"
        assert record.steps[-1] == TurnPhase.END

    @pytest.mark.asyncio
    async def test_consecutive_turns_get_new_generations(self, make_room):
        scheduler, _ = make_room(moves=[(4, 4), (3, 3)])
        setup_table(scheduler)

        first = await scheduler.run_turn("agent_a")
        second = await scheduler.run_turn("agent_b")

        assert first.status == second.status == "completed"
        assert second.token.generation == first.token.generation + 1

    @pytest.mark.asyncio
    async def test_rooms_run_independently(self, make_room):
        room_1, _ = make_room(moves=[(4, 4)])
        room_2, _ = make_room(moves=[(4, 4)], room_id="room_other")
        setup_table(room_1)
        setup_table(room_2)

        records = await asyncio.gather(room_1.run_turn("agent_a"), room_2.run_turn("agent_a"))

        assert [r.status for r in records] == ["completed", "completed"]
        assert room_1.guard is not room_2.guard


class TestTurnRejection:
    """Calls that must not start a turn"""

    @pytest.mark.asyncio
    async def test_second_run_turn_while_locked_returns_none(self, make_room):
        scheduler, _ = make_room(moves=[(4, 4)])
        setup_table(scheduler)

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: scheduler.guard.locked)

        assert await scheduler.run_turn("agent_b") is None
        record = await running
        assert record.token.agent_id == "agent_a"
        assert record.status == "completed"

    @pytest.mark.asyncio
    async def test_unknown_agent_raises_without_locking(self, make_room):
        scheduler, _ = make_room()

        with pytest.raises(AgentNotFound):
            await scheduler.run_turn("ghost")
        assert scheduler.guard.locked is False

    @pytest.mark.asyncio
    async def test_host_without_lease_does_not_run(self, make_room, store):
        other = OrchestratorLease(store, "host_other")
        other.acquire()
        scheduler, dice = make_room(lease=OrchestratorLease(store, "host_me"))

        assert await scheduler.run_turn("agent_a") is None
        assert dice.requests == []


class TestSupersession:
    """Owner changes invalidate the running turn"""

    @pytest.mark.asyncio
    async def test_owner_change_mid_move_discards_continuation(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)], delay_ms=150)
        setup_table(scheduler)

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: dice.requests)
        scheduler.store.write(TURN_OWNER_PATH, "agent_b")
        record = await running
        await dice.drain()
        await asyncio.sleep(0.05)

        assert record.status == "superseded"
        assert record.steps == []
        assert scheduler.guard.locked is False
        assert scheduler.directory.get("agent_a").position == "church"
        assert not any(
            name == "update_board" and payload["kind"] == "position"
            for name, payload in ui_commands(scheduler)
        )

    @pytest.mark.asyncio
    async def test_same_owner_write_keeps_turn(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)])
        setup_table(scheduler)

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: dice.requests)
        scheduler.store.write(TURN_OWNER_PATH, "agent_a")

        assert (await running).status == "completed"

    @pytest.mark.asyncio
    async def test_new_turn_after_supersession(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4), (4, 4)], delay_ms=100)
        setup_table(scheduler)

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: dice.requests)
        scheduler.supersede("room_reset")
        assert (await running).status == "superseded"

        record = await scheduler.run_turn("agent_b")
        assert record.status == "completed"


class TestAttackIdempotency:
    """At most one attack per token"""

    @pytest.mark.asyncio
    async def test_duplicate_triggers_apply_once(self, make_room, mock_redis_client):
        scheduler, dice = make_room(moves=[(4, 4)], attacks=[(5, 2)], delay_ms=80)
        setup_table(scheduler)

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: scheduler.guard.phase == TurnPhase.ATTACK)
        token = scheduler.guard.current_token
        duplicates = await asyncio.gather(
            scheduler.attempt_attack(token), scheduler.attempt_attack(token)
        )
        record = await running

        assert duplicates == [None, None]
        assert record.steps.count(TurnPhase.ATTACK) == 1
        assert scheduler.directory.get("agent_b").hp == 9
        assert [kind for kind, _ in dice.requests].count(FinalizeKind.ATTACK) == 1
        attack_writes = [
            c for c in mock_redis_client.set.call_args_list if "attacks/" in c[0][0]
        ]
        assert len(attack_writes) == 1

    @pytest.mark.asyncio
    async def test_attack_outside_attack_phase_is_ignored(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)], delay_ms=80)
        setup_table(scheduler)

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: scheduler.guard.phase == TurnPhase.MOVE)

        assert await scheduler.attempt_attack(scheduler.guard.current_token) is None
        assert (await running).attack is not None

    @pytest.mark.asyncio
    async def test_attack_with_finished_token_is_ignored(self, make_room):
        scheduler, _ = make_room(moves=[(4, 4)])
        setup_table(scheduler)
        record = await scheduler.run_turn("agent_a")

        assert await scheduler.attempt_attack(record.token) is None
        assert scheduler.directory.get("agent_b").hp == 9


class TestTriggeredAttack:
    """An external attack trigger resolves as a step of the running turn"""

    @pytest.mark.asyncio
    async def test_trigger_after_target_enters_reach(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)], attacks=[(5, 2)], delay_ms=80)
        setup_table(scheduler)
        scheduler.directory.set_position("agent_b", "hermit_cabin")

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: scheduler.guard.phase == TurnPhase.ATTACK
                         and not scheduler.guard.state.resolving_step)
        scheduler.directory.set_position("agent_b", "church")
        outcome = await scheduler.attempt_attack(scheduler.guard.current_token)
        record = await running

        assert outcome is not None
        assert outcome.target_id == "agent_b"
        assert record.status == "completed"
        assert record.steps == FULL_TRACE
        assert record.attack == outcome
        assert scheduler.directory.get("agent_b").hp == 9

    @pytest.mark.asyncio
    async def test_end_step_starts_after_triggered_attack_lands(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)], attacks=[(5, 2)], delay_ms=80)
        setup_table(scheduler)
        scheduler.directory.set_position("agent_b", "hermit_cabin")

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: scheduler.guard.phase == TurnPhase.ATTACK
                         and not scheduler.guard.state.resolving_step)
        scheduler.directory.set_position("agent_b", "church")
        outcome = await scheduler.attempt_attack(scheduler.guard.current_token)
        record = await running

        assert record.step_started_at_ms[TurnPhase.END.value] >= outcome.applied_at_ms

    @pytest.mark.asyncio
    async def test_supersede_cancels_triggered_attack(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)], attacks=[(5, 2)], delay_ms=80)
        setup_table(scheduler)
        scheduler.directory.set_position("agent_b", "hermit_cabin")

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: scheduler.guard.phase == TurnPhase.ATTACK
                         and not scheduler.guard.state.resolving_step)
        scheduler.directory.set_position("agent_b", "church")
        trigger = asyncio.create_task(scheduler.attempt_attack(scheduler.guard.current_token))
        await wait_until(lambda: (FinalizeKind.ATTACK, "agent_a") in dice.requests)
        scheduler.supersede("room_reset")

        assert await trigger is None
        assert (await running).status == "superseded"
        await dice.drain()
        assert scheduler.directory.get("agent_b").hp == 12

        next_turn = await scheduler.run_turn("agent_b")
        assert next_turn.status == "completed"

    @pytest.mark.asyncio
    async def test_target_leaving_reach_takes_no_damage(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)], attacks=[(5, 2)], delay_ms=80)
        setup_table(scheduler)

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: (FinalizeKind.ATTACK, "agent_a") in dice.requests)
        scheduler.directory.set_position("agent_b", "hermit_cabin")
        record = await running

        assert record.status == "completed"
        assert record.attack is None
        assert record.steps == [TurnPhase.MOVE, TurnPhase.ROOM_ACTION, TurnPhase.END]
        assert scheduler.directory.get("agent_b").hp == 12
        assert scheduler.store.read(f"attacks/{record.token.value}") is None

    @pytest.mark.asyncio
    async def test_target_killed_before_roll_lands_takes_no_damage(self, make_room):
        scheduler, dice = make_room(moves=[(4, 4)], attacks=[(5, 2)], delay_ms=80)
        setup_table(scheduler)

        running = asyncio.create_task(scheduler.run_turn("agent_a"))
        await wait_until(lambda: (FinalizeKind.ATTACK, "agent_a") in dice.requests)
        hp_at_death = scheduler.directory.change_hp("agent_b", -100)
        record = await running

        assert record.attack is None
        assert scheduler.directory.get("agent_b").hp == hp_at_death


class TestAbortedTurns:
    """Failures abort the turn and always release the lock"""

    @pytest.mark.asyncio
    async def test_finalize_timeout_aborts_and_releases(self, make_room):
        timing = TurnTiming(pacing_delay_ms=10, notice_duration_ms=5, negotiation_delay_ms=1,
                            visual_sync_delay_ms=5, finalize_timeout_ms=60,
                            human_answer_timeout_ms=50)
        scheduler, dice = make_room(timing=timing, silent=True)
        setup_table(scheduler)

        with pytest.raises(FinalizeTimeout):
            await scheduler.run_turn("agent_a")

        assert scheduler.guard.locked is False
        assert scheduler.current_record.status == "aborted"
        assert "FinalizeTimeout" in scheduler.current_record.error
        assert scheduler.directory.get("agent_a").position == "church"
        assert dice.requests == [(FinalizeKind.MOVE, "agent_a")]

    @pytest.mark.asyncio
    async def test_store_write_failure_aborts_and_releases(self, make_room, mock_redis_client):
        scheduler, _ = make_room(moves=[(4, 4)])
        setup_table(scheduler)
        real_set = mock_redis_client.set.side_effect

        def _failing_set(key, value, **kwargs):
            if key.endswith("agents/agent_a/position"):
                raise RedisError("READONLY You can't write against a read only replica")
            return real_set(key, value, **kwargs)

        mock_redis_client.set.side_effect = _failing_set

        with pytest.raises(StoreWriteFailure):
            await scheduler.run_turn("agent_a")

        record = scheduler.current_record
        assert record.status == "aborted"
        assert record.steps == []
        assert scheduler.guard.locked is False
        assert scheduler.directory.get("agent_a").position == "church"
        assert scheduler.store.read(f"turn_records/{record.token.value}") is None
