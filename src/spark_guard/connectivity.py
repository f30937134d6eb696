# ABOUTME: Connectivity oracle read synchronously by the spark orchestrator.
# ABOUTME: Tracks an online flag and notifies listeners when the client reconnects.

from collections.abc import Callable
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class ConnectivityOracle(Protocol):
    """Anything exposing a synchronous online flag."""

    @property
    def is_online(self) -> bool: ...


class ConnectivityMonitor:
    """Holds the current online state and fans out reconnect events.

    The host application updates the state from its own network check; the
    library only reads it.
    """

    def __init__(self, online: bool = True) -> None:
        """Initialize the monitor.

        Args:
            online: Initial connectivity state.
        """
        self._online = online
        self._reconnect_listeners: list[Callable[[], None]] = []

    @property
    def is_online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        """Update the connectivity state.

        Reconnect listeners run when the state goes from offline to online.
        A failing listener is logged and does not stop the others.

        Args:
            online: The new connectivity state.
        """
        was_online = self._online
        self._online = online
        if online and not was_online:
            logger.info("connectivity_restored", listeners=len(self._reconnect_listeners))
            for listener in list(self._reconnect_listeners):
                try:
                    listener()
                except Exception:
                    logger.exception("reconnect_listener_failed")
        elif was_online and not online:
            logger.info("connectivity_lost")

    def add_reconnect_listener(self, callback: Callable[[], None]) -> None:
        self._reconnect_listeners.append(callback)

    def remove_reconnect_listener(self, callback: Callable[[], None]) -> None:
        if callback in self._reconnect_listeners:
            self._reconnect_listeners.remove(callback)
