from __future__ import annotations

from collections.abc import Sequence

DEFAULT_DELAYS_MS: tuple[int, ...] = (400, 800, 1600, 3200, 6400)


def backoff_delay_ms(busy_count: int, delays_ms: Sequence[int] = DEFAULT_DELAYS_MS) -> int | None:
    """
    Delay to wait after the Nth busy response of a series (1-based).
    Returns None once the schedule is exhausted.
    """
    if busy_count < 1 or busy_count > len(delays_ms):
        return None
    return int(delays_ms[busy_count - 1])
