# ABOUTME: Shared state store layer exports: Redis-backed room store, lease, and connection factory.
# ABOUTME: The store is the single source of truth observers read; only the lease holder writes.

from src.store.connection import create_redis_connection
from src.store.exceptions import LeaseNotHeld, StoreReadFailure, StoreWriteFailure
from src.store.lease import OrchestratorLease
from src.store.shared_state import SharedStateStore

__all__ = [
    "SharedStateStore",
    "OrchestratorLease",
    "create_redis_connection",
    "StoreWriteFailure",
    "StoreReadFailure",
    "LeaseNotHeld",
]
