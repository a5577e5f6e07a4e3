""" The protocol engine: correlation of requests and responses, and dispatch
    of host-initiated messages to named handlers. Everything here runs on
    a single asyncio event loop; inbound delivery, outbound sends, and timer
    expiry never overlap, so the pending table needs no locking.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

from .. import config
from ..errors import EnvelopeError, RemoteError, RequestTimeout
from ..transport.base import Port, SendFunction
from . import fields
from .message import Request, Response, base_payload, error_payload
from .pending import PendingRequest, PendingTable, future_continuations
from .wire import unpack


logger = logging.getLogger(__name__)

Handler = Callable[[Request], Optional[dict]]


class Protocol:
    """ A :class:`Protocol` instance owns the transport port, the table of
        pending requests, and the mapping of host message types to handlers.
        Nothing is sent until :func:`init` supplies a transport.

        The *request_timeout* is in seconds; if it is None the value in
        :mod:`swm.config` is consulted each time a request is sent.
    """

    def __init__(self, request_timeout: Optional[float] = None):

        self.request_timeout = request_timeout
        self.port = Port()
        self.pending = PendingTable()
        self._handlers: Dict[str, Handler] = {}


    def init(self, send: SendFunction) -> bool:
        """ Register the transport *send* function. Only the first call has
            any effect; the return value indicates whether this call was it.
        """

        return self.port.configure(send)


    # Handler registration

    def on(self, message_type: str, handler: Handler) -> None:
        """ Route host-initiated messages of *message_type* to *handler*.
            The handler receives the :class:`Request` and may return a
            payload for the success response; returning None acknowledges
            with the default ``{"$type": "base"}`` payload. An exception
            raised by the handler is sent back to the host as an error.
        """

        self._handlers[message_type] = handler


    def handles(self, message_type: str) -> bool:
        return message_type in self._handlers


    # Outbound

    def send(self, envelope) -> bool:
        return self.port.send(envelope.to_dict())


    def send_request(self, message_type: str, payload: Any = None,
                     timeout: Optional[float] = None) -> asyncio.Future:
        """ Send a request and return a future for the response payload.
            The future fails with :class:`RemoteError` if the host answers
            with an error, or :class:`RequestTimeout` if it does not answer
            within *timeout* seconds. Must be called with a running loop.
        """

        loop = asyncio.get_running_loop()
        future = loop.create_future()

        request = Request(message_type, payload)
        resolve, reject = future_continuations(future)
        entry = PendingRequest(request.id, message_type, resolve, reject)
        self.pending.add(entry)

        # Register before sending: a synchronous transport may deliver the
        # reply before send() even returns.

        self.send(request)

        if self.pending.get(request.id) is entry:
            if timeout is None:
                timeout = self.request_timeout
            if timeout is None:
                timeout = config.REQUEST_TIMEOUT
            entry.timer = loop.call_later(timeout, self._expire, request.id)

        return future


    def send_probe(self, message_type: str, resolve, reject, payload: Any = None) -> str:
        """ Variant of :func:`send_request` used for liveness probes. The
            response is routed to the *resolve* / *reject* continuations,
            and the entry never times out on its own; whoever sent it is
            responsible for calling :func:`abandon`. Returns the identifier.
        """

        request = Request(message_type, payload)
        entry = PendingRequest(request.id, message_type, resolve, reject)
        self.pending.add(entry)
        self.send(request)

        return request.id


    def abandon(self, message_ids) -> int:
        """ Forget the listed pending requests without settling them. Any
            later response to one of them will be discarded.
        """

        return self.pending.purge(message_ids)


    def send_event(self, message_type: str, payload: Any = None) -> str:
        """ Fire-and-forget: send a request-shaped envelope, register nothing.
            Returns the identifier of the envelope sent.
        """

        event = Request(message_type, payload)
        self.send(event)
        return event.id


    def send_response(self, response_to: str, payload: Any) -> str:
        """ Answer the host-initiated message identified by *response_to*.
        """

        response = Response(response_to, payload, additional=False)
        self.send(response)
        return response.id


    def send_error(self, response_to: str, error_message: str, error_type: str) -> str:
        payload = error_payload(error_message, error_type)
        return self.send_response(response_to, payload)


    def _expire(self, message_id: str) -> None:

        entry = self.pending.pop(message_id)
        if entry is None:
            return

        logger.debug("request %s (%s) timed out", message_id, entry.message_type)
        entry.reject(RequestTimeout(entry.message_type))


    # Inbound

    def receive(self, message: Any) -> None:
        """ The inbound entry point for host adapters. *message* is either
            an envelope dictionary or its JSON text; malformed text is
            logged and dropped, never raised back into the adapter.
        """

        try:
            envelope = unpack(message)
        except EnvelopeError as e:
            logger.error("Failed to parse message: %s", e)
            return

        if envelope is None:
            logger.debug("discarding envelope with neither messageType nor responseToMessageId")
            return

        self.dispatch(envelope)


    def dispatch(self, envelope) -> None:

        if isinstance(envelope, Response):
            logger.debug("Received response to %s", envelope.response_to)
            self._response_incoming(envelope)
        elif isinstance(envelope, Request):
            logger.debug("Received %s", envelope.type)
            self._request_incoming(envelope)


    def _response_incoming(self, response: Response) -> None:
        """ Settle the pending request named by the response. A response with
            no matching entry was already resolved, timed out, or belongs to
            an abandoned handshake attempt; it is discarded without effect.
        """

        message_id = response.response_to
        entry = self.pending.get(message_id)

        if entry is None:
            logger.debug("no pending request for response to %s, discarding", message_id)
            return

        if not response.additional:
            self.pending.pop(message_id)

        if response.is_error:
            entry.reject(RemoteError(response.payload))
        else:
            entry.resolve(response.payload)


    def _request_incoming(self, request: Request) -> None:
        """ Route a host-initiated message to its handler, and answer it with
            exactly one response: success, the handler's failure, or an
            unknown-type error.
        """

        message_type = request.type

        try:
            handler = self._handlers[message_type]
        except KeyError:
            logger.warning("Unknown message type: %s", message_type)
            self.send_error(request.id, "Unknown message type: " + message_type, fields.UNKNOWN_MESSAGE_TYPE)
            return

        try:
            payload = handler(request)
        except Exception as e:
            logger.exception("handler for %s failed (messageId %s)", message_type, request.id)
            self.send_error(request.id, str(e), type(e).__name__)
            return

        if payload is None:
            payload = base_payload()

        self.send_response(request.id, payload)


# end of class Protocol


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
