# ABOUTME: Entry point for the headless turn orchestrator host.
# ABOUTME: Run with: uv run python -m src.interface

import asyncio
import random
import sys

from loguru import logger

from src.config.settings import get_settings
from src.interface.dice_engine import LocalDiceEngine
from src.interface.host import HostRunner, load_roster
from src.orchestration.builder import build_turn_scheduler
from src.store.connection import create_redis_connection
from src.store.lease import OrchestratorLease
from src.store.shared_state import SharedStateStore
from src.utils.logging import setup_logging
from src.utils.redis_cleanup import cleanup_room_state


def main() -> None:
    """Run the host for the configured room"""
    settings = get_settings()
    setup_logging(log_level=settings.log_level, log_dir=settings.log_dir)

    try:
        redis_client = create_redis_connection(settings.redis_url, settings.redis_connect_attempts)
    except ConnectionError as e:
        print(f"Error: Could not connect to Redis: {e}")
        print("Make sure Redis is running via 'docker-compose up -d'")
        sys.exit(1)

    try:
        roster = load_roster(settings.roster_path)
    except FileNotFoundError:
        print(f"Error: {settings.roster_path} not found")
        sys.exit(1)
    except ValueError as e:
        print(f"Error: Invalid roster in {settings.roster_path}: {e}")
        sys.exit(1)

    if settings.reset_room_on_start:
        result = cleanup_room_state(redis_client, settings.room_id)
        if not result["success"]:
            print(f"Error: {result['message']}")
            sys.exit(1)

    rng = random.Random(settings.random_seed)
    store = SharedStateStore(redis_client, settings.room_id)
    lease = OrchestratorLease(store, settings.host_id, ttl_ms=settings.lease_ttl_ms)
    dice = (
        LocalDiceEngine(store, rng, animation_ms=settings.dice_animation_ms)
        if settings.use_local_dice
        else None
    )

    scheduler = build_turn_scheduler(
        redis_client,
        settings.room_id,
        roster,
        timing=settings.timing(),
        rng=rng,
        dice=dice,
        lease=lease,
        store=store,
    )
    runner = HostRunner(scheduler, lease, roster, poll_interval_ms=settings.turn_poll_interval_ms)

    try:
        asyncio.run(runner.run(reset=settings.reset_room_on_start))
    except KeyboardInterrupt:
        logger.info("Host stopped")


if __name__ == "__main__":
    main()
