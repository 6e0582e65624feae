# ABOUTME: Room-scoped shared state store over Redis with read/write/subscribe primitives.
# ABOUTME: JSON values live under room:{room_id}:{path}; writes fan out to local subscribers and Redis pub/sub.

import asyncio
import json
from collections import defaultdict
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from loguru import logger
from pydantic import BaseModel
from redis import Redis, RedisError

from src.store.exceptions import StoreReadFailure, StoreWriteFailure

Subscriber = Callable[[str, Any], None]


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


class SharedStateStore:
    """
    Single source of truth for one room.

    Paths are slash-separated (e.g. ``agents/a1/position``) and map to Redis
    keys ``room:{room_id}:{path}``. Only the orchestrator lease holder writes
    agent-driven mutations; observers read or subscribe.
    """

    def __init__(self, redis_client: Redis, room_id: str):
        """
        Initialize the store.

        Args:
            redis_client: Redis connection
            room_id: Room whose keys this store reads and writes
        """
        self.redis = redis_client
        self.room_id = room_id
        self.events_channel = f"room:{room_id}:events"
        self.origin = f"store_{uuid4().hex[:8]}"
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)

    def key(self, path: str) -> str:
        return f"room:{self.room_id}:{path}"

    # ------------------------------------------------------------------
    # Scalar values
    # ------------------------------------------------------------------

    def read(self, path: str) -> Any | None:
        """Read and JSON-decode a value (None when absent)"""
        try:
            raw = self.redis.get(self.key(path))
        except RedisError as e:
            raise StoreReadFailure(path, e) from e

        if raw is None:
            return None
        text = raw.decode('utf-8') if isinstance(raw, bytes) else raw
        return json.loads(text)

    def write(self, path: str, value: Any) -> None:
        """
        Write a JSON value and notify subscribers of the path.

        Raises:
            StoreWriteFailure: When Redis rejects the write
        """
        value = _to_jsonable(value)
        try:
            self.redis.set(self.key(path), json.dumps(value, default=str))
            self.redis.publish(
                self.events_channel,
                json.dumps({"origin": self.origin, "path": path, "value": value}, default=str),
            )
        except RedisError as e:
            logger.error(f"Store write failed for {self.key(path)}: {e}")
            raise StoreWriteFailure(path, e) from e

        logger.debug(f"Store write {path}")
        self._dispatch(path, value)

    def delete(self, path: str) -> None:
        try:
            self.redis.delete(self.key(path))
        except RedisError as e:
            raise StoreWriteFailure(path, e) from e

    # ------------------------------------------------------------------
    # Lists (decks, discard piles, inboxes)
    # ------------------------------------------------------------------

    def push(self, path: str, value: Any) -> None:
        """Append a JSON value to the list at path"""
        try:
            self.redis.rpush(self.key(path), json.dumps(_to_jsonable(value), default=str))
        except RedisError as e:
            logger.error(f"Store push failed for {self.key(path)}: {e}")
            raise StoreWriteFailure(path, e) from e

    def pop(self, path: str) -> Any | None:
        """Remove and return the head of the list at path (None when empty)"""
        try:
            raw = self.redis.lpop(self.key(path))
        except RedisError as e:
            raise StoreWriteFailure(path, e) from e

        if raw is None:
            return None
        text = raw.decode('utf-8') if isinstance(raw, bytes) else raw
        return json.loads(text)

    def read_list(self, path: str) -> list[Any]:
        try:
            raw_items = self.redis.lrange(self.key(path), 0, -1)
        except RedisError as e:
            raise StoreReadFailure(path, e) from e

        items = []
        for raw in raw_items:
            text = raw.decode('utf-8') if isinstance(raw, bytes) else raw
            items.append(json.loads(text))
        return items

    def replace_list(self, path: str, values: list[Any]) -> None:
        """Atomically replace the list at path"""
        try:
            pipe = self.redis.pipeline()
            pipe.delete(self.key(path))
            if values:
                pipe.rpush(
                    self.key(path),
                    *[json.dumps(_to_jsonable(v), default=str) for v in values],
                )
            pipe.execute()
        except RedisError as e:
            logger.error(f"Store list replace failed for {self.key(path)}: {e}")
            raise StoreWriteFailure(path, e) from e

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, path: str, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback for writes to path.

        Args:
            path: Exact path to watch
            callback: Called with (path, value) after each write

        Returns:
            Function that removes the subscription
        """
        self._subscribers[path].append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers[path]:
                self._subscribers[path].remove(callback)

        return _unsubscribe

    def _dispatch(self, path: str, value: Any) -> None:
        for callback in list(self._subscribers.get(path, [])):
            try:
                callback(path, value)
            except Exception as e:
                logger.error(f"Subscriber for {path} failed: {type(e).__name__}: {e}")

    def handle_remote_message(self, raw: str | bytes) -> None:
        """Dispatch a pub/sub payload written by another process"""
        text = raw.decode('utf-8') if isinstance(raw, bytes) else raw
        data = json.loads(text)
        if data.get("origin") == self.origin:
            return
        self._dispatch(data["path"], data.get("value"))

    async def listen_remote(self, poll_interval: float = 0.05) -> None:
        """
        Forward writes from other processes (dice engine, human clients) to
        local subscribers. Runs until cancelled.
        """
        pubsub = self.redis.pubsub(ignore_subscribe_messages=True)
        pubsub.subscribe(self.events_channel)
        logger.info(f"Listening for remote writes on {self.events_channel}")
        try:
            while True:
                message = pubsub.get_message(timeout=0)
                if message and message.get("type") == "message":
                    self.handle_remote_message(message["data"])
                    continue
                await asyncio.sleep(poll_interval)
        finally:
            pubsub.close()
