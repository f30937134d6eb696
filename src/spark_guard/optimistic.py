# ABOUTME: Generic optimistic-update helper shared by settings toggles and similar features.
# ABOUTME: Applies a local change, runs the remote call, and restores the snapshot on failure.

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class OptimisticOutcome(Generic[T]):
    """What happened to an optimistic update.

    Attributes:
        committed: True if the remote call succeeded and the new value stays.
        value: The value in effect after the call.
        error: The exception raised by the remote call, if any.
    """

    committed: bool
    value: T
    error: Exception | None = None


def apply_optimistic(
    getter: Callable[[], T],
    setter: Callable[[T], None],
    new_value: T,
    remote_call: Callable[[T], object],
    name: str = "optimistic_update",
) -> OptimisticOutcome[T]:
    """Apply a local change immediately and roll it back if the remote call fails.

    Args:
        getter: Returns the current local value; used to take the snapshot.
        setter: Writes a local value.
        new_value: The value to apply optimistically.
        remote_call: Persists new_value remotely; any exception triggers a rollback.
        name: Label used in log events.

    Returns:
        OptimisticOutcome describing whether the change was kept.
    """
    snapshot = getter()
    setter(new_value)
    try:
        remote_call(new_value)
    except Exception as e:
        setter(snapshot)
        logger.warning("optimistic_update_rolled_back", operation=name, error=str(e))
        return OptimisticOutcome(committed=False, value=snapshot, error=e)
    return OptimisticOutcome(committed=True, value=new_value)
