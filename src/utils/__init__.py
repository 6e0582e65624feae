# ABOUTME: Utility module exports for dice rolling, structured logging, and Redis room cleanup.
# ABOUTME: Provides dice.py (d6/d4 rolls), logging.py (loguru config), and redis_cleanup.py (room reset).

from src.utils.dice import roll_attack, roll_d4, roll_d6, roll_movement
from src.utils.logging import get_logger, setup_logging
from src.utils.redis_cleanup import cleanup_room_state

__all__ = [
    "roll_d6",
    "roll_d4",
    "roll_movement",
    "roll_attack",
    "setup_logging",
    "get_logger",
    "cleanup_room_state",
]
