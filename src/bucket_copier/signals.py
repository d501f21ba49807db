"""
Shutdown signalling for a running copy.

SIGINT and SIGTERM are translated into an `asyncio.Event` that the pipeline
races against its worker pool. Setting the event stops enumeration while
letting in-flight copies finish.
"""

import asyncio
import logging
import os
import signal
from types import FrameType
from typing import Any, Callable, Dict, Optional, Tuple

logger: logging.Logger = logging.getLogger(__name__)

_SignalHandler = Callable[[int, Optional[FrameType]], None]

HANDLED_SIGNALS: Tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)


class GracefulShutdown:
    """
    An async context manager exposing process signals as a shutdown event.

    The first signal sets the event. A second one means the user does not
    want to wait for in-flight copies, and the process exits immediately.
    Previous handlers are put back when the context exits.
    """

    def __init__(self) -> None:
        self._event: asyncio.Event = asyncio.Event()
        self._previous: Dict[signal.Signals, Any] = {}

    async def __aenter__(self) -> asyncio.Event:
        """
        Installs the signal handlers.

        Returns:
            asyncio.Event: The event set on the first handled signal.
        """
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        handler: _SignalHandler = self._make_handler(loop)

        for sig in HANDLED_SIGNALS:
            try:
                # Only possible from the main thread.
                self._previous[sig] = signal.signal(sig, handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not install handler for {sig.name}: {e}")

        return self._event

    async def __aexit__(self, *args: Any) -> None:
        """Restores the handlers that were active before entering."""
        while self._previous:
            sig, previous = self._previous.popitem()
            try:
                signal.signal(sig, previous)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not restore handler for {sig.name}: {e}")

    def _make_handler(self, loop: asyncio.AbstractEventLoop) -> _SignalHandler:
        def _handler(signum: int, _: Optional[FrameType]) -> None:
            if self._event.is_set():
                logger.critical("Second shutdown signal received. Exiting now.")
                os._exit(1)
            logger.warning(
                f"Received {signal.strsignal(signum)}. Finishing in-flight "
                "copies; send the signal again to exit immediately."
            )
            loop.call_soon_threadsafe(self._event.set)

        return _handler
