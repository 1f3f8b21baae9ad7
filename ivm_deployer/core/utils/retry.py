from __future__ import annotations


def exponential_backoff_s(
    attempt: int, *, base_delay_s: float = 0.25, max_delay_s: float | None = None
) -> float:
    delay_s = base_delay_s * (2**attempt)
    if max_delay_s is not None:
        delay_s = min(delay_s, max_delay_s)
    return delay_s
