"""
Connectivity adapters.

The host owns the real reachability signal (OS path monitor, etc.)
and pushes changes into a ManualConnectivityMonitor.
"""

import structlog

logger = structlog.get_logger(__name__)


class ManualConnectivityMonitor:
    """
    Connectivity flag set by the host.

    Example:
        >>> monitor = ManualConnectivityMonitor()
        >>> monitor.set_connected(False)
        >>> assert not monitor.is_connected()
    """

    def __init__(self, connected: bool = True) -> None:
        self._connected = connected

    def is_connected(self) -> bool:
        return self._connected

    def set_connected(self, connected: bool) -> None:
        if connected != self._connected:
            logger.info("Connectivity changed", connected=connected)
        self._connected = connected
