# src/swm/protocol/handshake.py
"""
SMART Web Messaging: Handshake

Purpose:
  - Establish that the host is listening BEFORE normal traffic begins
  - Keep probing on a fixed interval until the host answers one probe,
    or an overall deadline passes

Lifecycle:
  IDLE -> PROBING -> CONNECTED
  or
  IDLE -> PROBING -> FAILED

Every probe carries a fresh messageId. Only one of them will ever be
answered (or none), so all of them are purged from the pending table
together the moment the handshake settles; a late reply to an older probe
then finds nothing and is discarded by the dispatcher.

The deadline is measured with an injected monotonic clock so that tests
can drive it without waiting on the wall clock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, List, Optional

from .. import config
from ..errors import HandshakeError, HandshakeTimeout
from . import fields


logger = logging.getLogger(__name__)

IDLE = "IDLE"
PROBING = "PROBING"
CONNECTED = "CONNECTED"
FAILED = "FAILED"


class Handshake:
    """Bounded-retry liveness probe against the host.

    *interval* and *timeout* are in seconds; None means the module defaults
    in :mod:`swm.config`. *clock* returns monotonic seconds.
    """

    def __init__(
        self,
        protocol: Any,
        *,
        interval: Optional[float] = None,
        timeout: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.protocol = protocol
        self.interval = interval
        self.timeout = timeout
        self.clock = clock

        self.status = IDLE
        self.attempts: List[str] = []
        self.started: Optional[float] = None
        self._outcome: Optional[asyncio.Future] = None

    def __repr__(self) -> str:
        return f"Handshake(status={self.status}, attempts={len(self.attempts)})"

    @property
    def is_connected(self) -> bool:
        return self.status == CONNECTED

    def elapsed(self) -> float:
        if self.started is None:
            return 0.0
        return self.clock() - self.started

    async def run(self) -> Any:
        """Probe until connected; return the host's reply payload.

        Raises HandshakeTimeout if the deadline passes with no reply. The
        protocol stays usable either way.
        """

        if self.status != IDLE:
            raise HandshakeError(f"handshake already {self.status.lower()}")

        interval = self.interval if self.interval is not None else config.HANDSHAKE_INTERVAL
        timeout = self.timeout if self.timeout is not None else config.HANDSHAKE_TIMEOUT

        self._outcome = asyncio.get_running_loop().create_future()
        self.status = PROBING
        self.started = self.clock()

        try:
            await self._probe(interval, timeout)
        except BaseException:
            self.status = FAILED
            raise
        finally:
            self.protocol.abandon(self.attempts)

        if self._outcome.done():
            self.status = CONNECTED
            logger.info("Connected after %d handshake attempt(s)", len(self.attempts))
            return self._outcome.result()

        self.status = FAILED
        logger.warning("Handshake failed: no reply after %.1f s", self.elapsed())
        raise HandshakeTimeout(fields.HANDSHAKE)

    async def _probe(self, interval: float, timeout: float) -> None:
        outcome = self._outcome
        assert outcome is not None

        while True:
            self._attempt()
            if outcome.done():
                return

            remaining = timeout - self.elapsed()
            if remaining <= 0:
                return

            await asyncio.wait((outcome,), timeout=min(interval, remaining))

            if outcome.done() or self.elapsed() >= timeout:
                return

    def _attempt(self) -> None:
        message_id = self.protocol.send_probe(fields.HANDSHAKE, self._on_reply, self._on_error, {})
        self.attempts.append(message_id)
        logger.debug("handshake attempt %d (%s)", len(self.attempts), message_id)

    def _on_reply(self, payload: Any) -> None:
        # Only the first reply counts.
        if self._outcome is not None and not self._outcome.done():
            self._outcome.set_result(payload)

    def _on_error(self, error: BaseException) -> None:
        # An error reply to one probe is not a verdict on the handshake;
        # the next probe or the deadline decides.
        logger.debug("handshake attempt answered with error: %s", error)
