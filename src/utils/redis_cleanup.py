# ABOUTME: Redis cleanup utility for resetting one room's shared state.
# ABOUTME: Deletes room-scoped keys (agents, decks, negotiation, turn records) without touching other rooms.

from loguru import logger
from redis import Redis, RedisError


def cleanup_room_state(redis_client: Redis, room_id: str) -> dict:
    """
    Delete every key belonging to one room.

    Removes everything under ``room:{room_id}:*``, including:
    - Agent positions, hit points and equipment
    - Decks, discard piles and negotiation inboxes
    - Turn owner, turn records and the orchestrator lease

    Keys of other rooms are left untouched.

    Args:
        redis_client: Connected Redis client instance
        room_id: Room to reset

    Returns:
        Dict with success status and message:
        - {"success": True, "message": "...", "deleted": N}  on success
        - {"success": False, "message": "..."}  on error
    """
    try:
        logger.info(f"Cleaning Redis state for room {room_id}")
        keys = list(redis_client.scan_iter(match=f"room:{room_id}:*"))
        deleted = redis_client.delete(*keys) if keys else 0
        logger.info(f"Room {room_id} cleaned ({deleted} keys)")

        return {
            "success": True,
            "message": f"Room {room_id} cleaned - starting fresh",
            "deleted": deleted,
        }

    except RedisError as e:
        logger.error(f"Failed to clean room {room_id}: {e}")
        return {
            "success": False,
            "message": f"Failed to clean room state: {e}"
        }
