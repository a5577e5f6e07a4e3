"""Exceptions raised by the messaging engine.

Faults that have no interested caller (a missing transport, unparseable
inbound text) are logged and dropped instead of raised; everything here is
either raised into a request's future or raised by a direct misuse of the
API.
"""

from __future__ import annotations

from typing import Any, Optional


class MessagingError(Exception):
    """Base class for all messaging errors."""


class RequestTimeout(MessagingError, TimeoutError):
    """A request did not receive a timely response."""

    def __init__(self, message_type: Optional[str], text: Optional[str] = None):
        if text is None:
            text = f"Request timeout: {message_type}"
        super().__init__(text)
        self.message_type = message_type


class HandshakeTimeout(RequestTimeout):
    """The host never answered any handshake probe before the deadline."""

    def __init__(self, message_type: Optional[str] = None):
        super().__init__(message_type, "Handshake timeout")


class HandshakeError(MessagingError):
    """A :class:`~swm.protocol.handshake.Handshake` was used incorrectly."""


class RemoteError(MessagingError):
    """The host answered a request with an error payload."""

    def __init__(self, payload: dict):
        self.payload = payload
        self.error_message = payload.get("errorMessage")
        self.error_type = payload.get("errorType")
        super().__init__(self.error_message if self.error_message is not None else "remote error")


class EnvelopeError(MessagingError, ValueError):
    """Inbound data could not be interpreted as an envelope."""

    def __init__(self, text: str, raw: Any = None):
        super().__init__(text)
        self.raw = raw
