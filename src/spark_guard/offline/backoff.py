# ABOUTME: Exponential backoff with jitter for offline queue retries.
# ABOUTME: Delay doubles per retry, is capped, jittered, and never drops below the base delay.

import random
from datetime import timedelta


def calculate_backoff_delay(
    retry_count: int,
    base_delay_seconds: float,
    max_delay_seconds: float,
    jitter_factor: float,
    rng: random.Random | None = None,
) -> timedelta:
    """Calculate the wait before the next retry of a queued action.

    Args:
        retry_count: Number of failed attempts so far.
        base_delay_seconds: Delay for the first retry before doubling.
        max_delay_seconds: Cap applied before jitter.
        jitter_factor: Fraction of the capped delay added or removed at random.
        rng: Random source. Defaults to the module-level generator.

    Returns:
        The delay as a timedelta, at least base_delay_seconds long.
    """
    source = rng if rng is not None else random
    exponential = base_delay_seconds * (2**retry_count)
    capped = min(exponential, max_delay_seconds)
    jitter = capped * jitter_factor * (2 * source.random() - 1)
    return timedelta(seconds=max(capped + jitter, base_delay_seconds))
