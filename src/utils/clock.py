# ABOUTME: Wall-clock helper shared by the orchestrator and dice/animation engines.
# ABOUTME: Finalize timestamps and mutation timestamps are both epoch milliseconds from now_ms().

import time


def now_ms() -> int:
    """Epoch milliseconds"""
    return int(time.time() * 1000)
