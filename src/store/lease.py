# ABOUTME: Orchestrator ownership lease stored in Redis (SET NX PX compare-and-swap marker).
# ABOUTME: Keeps a reconnecting or duplicate host from driving turns in a room it does not own.

from loguru import logger
from redis import RedisError

from src.store.exceptions import StoreWriteFailure
from src.store.shared_state import SharedStateStore

LEASE_PATH = "orchestrator/lease"


class OrchestratorLease:
    """
    Active-orchestrator marker for one room.

    The marker value is the owner id; it expires after ``ttl_ms`` unless the
    holder renews it. Renewal and release only touch the marker when it still
    carries this owner's id.
    """

    def __init__(self, store: SharedStateStore, owner_id: str, ttl_ms: int = 15000):
        self.store = store
        self.owner_id = owner_id
        self.ttl_ms = ttl_ms
        self.key = store.key(LEASE_PATH)

    def _current_owner(self) -> str | None:
        raw = self.store.redis.get(self.key)
        if raw is None:
            return None
        return raw.decode('utf-8') if isinstance(raw, bytes) else raw

    def acquire(self) -> bool:
        """Claim the lease if it is free (or already ours)"""
        try:
            if self.store.redis.set(self.key, self.owner_id, nx=True, px=self.ttl_ms):
                logger.info(f"Lease acquired for room {self.store.room_id} by {self.owner_id}")
                return True
            if self._current_owner() == self.owner_id:
                self.store.redis.pexpire(self.key, self.ttl_ms)
                return True
        except RedisError as e:
            raise StoreWriteFailure(LEASE_PATH, e) from e

        logger.warning(
            f"Lease for room {self.store.room_id} held by {self._current_owner()}; "
            f"{self.owner_id} stays passive"
        )
        return False

    def renew(self) -> bool:
        """Extend the lease; False when another owner holds it"""
        try:
            if self._current_owner() != self.owner_id:
                return False
            return bool(self.store.redis.pexpire(self.key, self.ttl_ms))
        except RedisError as e:
            raise StoreWriteFailure(LEASE_PATH, e) from e

    def is_held(self) -> bool:
        try:
            return self._current_owner() == self.owner_id
        except RedisError as e:
            logger.error(f"Lease check failed: {e}")
            return False

    def release(self) -> None:
        try:
            if self._current_owner() == self.owner_id:
                self.store.redis.delete(self.key)
                logger.info(f"Lease released for room {self.store.room_id} by {self.owner_id}")
        except RedisError as e:
            raise StoreWriteFailure(LEASE_PATH, e) from e
