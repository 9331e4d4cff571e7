"""Wall-clock helper shared by the time-based components."""

import time


def epoch_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)
