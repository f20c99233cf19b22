"""Wall-clock source; every time-sensitive operation receives `now` from here."""

import time
from typing import Callable

Clock = Callable[[], int]


def nowMs() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)
