# ABOUTME: Exception definitions for the shared state store layer.
# ABOUTME: Wraps Redis failures so orchestration code can handle them without importing redis.


class StoreWriteFailure(Exception):
    """Raised when a write to the shared state store fails"""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Store write to '{path}' failed: {cause}")
        self.path = path
        self.cause = cause


class StoreReadFailure(Exception):
    """Raised when a read from the shared state store fails"""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"Store read of '{path}' failed: {cause}")
        self.path = path
        self.cause = cause


class LeaseNotHeld(Exception):
    """Raised when an operation requires the orchestrator lease and this host lacks it"""

    pass
