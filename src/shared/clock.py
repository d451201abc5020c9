import time
from typing import Callable

# Stores take a clock callable so tests can drive expiry deterministically.
Clock = Callable[[], int]


def now_ms() -> int:
    return int(time.time() * 1000)


def now_seconds() -> int:
    return int(time.time())
