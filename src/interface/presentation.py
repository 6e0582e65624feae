# ABOUTME: Presentation channel pushing fire-and-forget UI commands to a room's Redis list.
# ABOUTME: Clients render notices, card reveals, negotiation dialogs, and board updates from that list.

import json
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from loguru import logger
from redis import Redis, RedisError

from src.models.messages import UICommand, UICommandType


class PresentationChannel:
    """
    Outbound UI commands for one room.

    Commands are appended to ``room:{room_id}:ui``. Nothing is returned to
    the orchestrator; a failed push is logged and dropped so that rendering
    problems never fail a turn.
    """

    def __init__(self, redis_client: Redis, room_id: str):
        """
        Initialize presentation channel.

        Args:
            redis_client: Redis connection for command storage
            room_id: Room whose clients receive the commands
        """
        self.redis = redis_client
        self.key = f"room:{room_id}:ui"
        self.command_ttl = 86400  # 24 hours

    def send(
        self,
        command: UICommandType,
        payload: dict[str, Any] | None = None,
        target_agents: list[str] | None = None,
    ) -> UICommand:
        """
        Create and push a command.

        Args:
            command: Command type
            payload: Command-specific data
            target_agents: Agents whose clients should act (None = broadcast)

        Returns:
            The UICommand that was (or would have been) pushed
        """
        ui_command = UICommand(
            command_id=f"ui_{uuid4().hex[:8]}",
            command=command,
            target_agents=target_agents,
            payload=payload or {},
            timestamp=datetime.now(UTC),
        )

        try:
            self.redis.rpush(self.key, json.dumps(ui_command.model_dump(), default=str))
            self.redis.expire(self.key, self.command_ttl)
            logger.debug(f"UI command {ui_command.command} -> {self.key}")
        except RedisError as e:
            logger.warning(f"Dropped UI command {ui_command.command}: {e}")

        return ui_command

    def show_notice(self, agent_id: str, text_key: str, duration_ms: int | None = None) -> None:
        """Show a speech notice; duration None means it stays until hide_notice"""
        self.send(
            UICommandType.SHOW_NOTICE,
            {"agent_id": agent_id, "text_key": text_key, "duration_ms": duration_ms},
        )

    def hide_notice(self, agent_id: str) -> None:
        self.send(UICommandType.HIDE_NOTICE, {"agent_id": agent_id})

    def show_card(self, agent_id: str, deck_id: str, card_id: str) -> None:
        self.send(
            UICommandType.SHOW_CARD,
            {"agent_id": agent_id, "deck_id": deck_id, "card_id": card_id},
        )

    def close_card(self, agent_id: str, card_id: str) -> None:
        self.send(UICommandType.CLOSE_CARD, {"agent_id": agent_id, "card_id": card_id})

    def show_negotiation(self, request_id: str, sender_id: str, receiver_id: str, card_id: str) -> None:
        self.send(
            UICommandType.SHOW_NEGOTIATION,
            {"request_id": request_id, "sender_id": sender_id,
             "receiver_id": receiver_id, "card_id": card_id},
            target_agents=[sender_id, receiver_id],
        )

    def close_negotiation(self, request_id: str, sender_id: str, receiver_id: str) -> None:
        self.send(
            UICommandType.CLOSE_NEGOTIATION,
            {"request_id": request_id},
            target_agents=[sender_id, receiver_id],
        )

    def update_board(self, kind: str, payload: dict[str, Any]) -> None:
        self.send(UICommandType.UPDATE_BOARD, {"kind": kind, **payload})

    def get_commands(self, limit: int = 50) -> list[UICommand]:
        """Read back the most recent commands (for clients and tests)"""
        raw_commands = self.redis.lrange(self.key, -limit, -1)

        commands = []
        for raw in raw_commands:
            text = raw.decode('utf-8') if isinstance(raw, bytes) else raw
            data = json.loads(text)
            data['timestamp'] = datetime.fromisoformat(data['timestamp'])
            commands.append(UICommand(**data))
        return commands
