"""Transport adapter port.

The engine never moves bytes itself. A host adapter (a native browser
bridge, an iframe postMessage shim, a websocket, ...) supplies a single
function that accepts one complete envelope as a dictionary; serializing it
to a wire form, if the adapter needs one, is the adapter's business.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, Optional


logger = logging.getLogger(__name__)

SendFunction = Callable[[dict], Any]


def describe(envelope: dict) -> str:
    """Short label for log lines: the message type, or 'response'."""
    try:
        return envelope.get("messageType") or "response"
    except AttributeError:
        return repr(envelope)


class Port:
    """Holds the injected send function.

    The port may be configured exactly once. Later attempts are ignored
    rather than raised, so that duplicate initialization (a page loading
    the same script in several frames, say) is harmless. Until it is
    configured, sends are logged and dropped.
    """

    def __init__(self) -> None:
        self._send: Optional[SendFunction] = None

    @property
    def is_open(self) -> bool:
        return self._send is not None

    def configure(self, send: SendFunction) -> bool:
        """Register *send*; return True if it is now the active transport."""

        if self._send is not None:
            logger.warning("transport already configured, ignoring re-initialization")
            return False

        if not callable(send):
            logger.error("init() requires a callable send function, got %r", send)
            return False

        self._send = send
        logger.info("Transport configured")
        return True

    def send(self, envelope: dict) -> bool:
        """Hand *envelope* to the transport; return False if it was dropped."""

        if self._send is None:
            logger.warning("No transport configured, dropping %s", describe(envelope))
            return False

        logger.debug("Sending %s: %r", describe(envelope), envelope)

        try:
            result = self._send(envelope)
        except Exception:
            logger.exception("transport failed to send %s", describe(envelope))
            return False

        # Asynchronous transports may return an awaitable; it still has to
        # run, and its failure still has nobody to report to but the log.
        if inspect.isawaitable(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                if inspect.iscoroutine(result):
                    result.close()
                logger.error("transport failed to send %s: no running event loop", describe(envelope))
                return False

            task = asyncio.ensure_future(result, loop=loop)
            task.add_done_callback(_log_send_failure)

        return True


def _log_send_failure(task: "asyncio.Future") -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("transport failed to send", exc_info=error)
