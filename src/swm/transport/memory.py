from __future__ import annotations

from typing import Any, List, Optional

from ..protocol import fields
from ..protocol.message import Request, Response, error_payload
from ..protocol.wire import pack


class Loopback:
    """
    Minimal in-process host used for unit tests and demos.

    - Does not move bytes anywhere
    - Records every envelope the engine sends (the instance itself is the
      send function handed to ``init``)
    - Lets the caller play the host: answer requests, inject host messages
    - With ``text=True`` everything delivered to the engine is serialized
      first, the way a native bridge delivers strings
    """

    def __init__(self, *, text: bool = False) -> None:
        self.text = text
        self.sent: List[dict] = []
        self._protocol: Any = None

    def __call__(self, envelope: dict) -> None:
        self.sent.append(envelope)

    def attach(self, protocol: Any) -> bool:
        self._protocol = protocol
        return protocol.init(self)

    # ---- inspection ----

    def requests(self, message_type: Optional[str] = None) -> List[dict]:
        out = [e for e in self.sent if fields.MESSAGE_TYPE in e]
        if message_type is not None:
            out = [e for e in out if e[fields.MESSAGE_TYPE] == message_type]
        return out

    def responses(self, response_to: Optional[str] = None) -> List[dict]:
        out = [e for e in self.sent if fields.RESPONSE_TO in e]
        if response_to is not None:
            out = [e for e in out if e[fields.RESPONSE_TO] == response_to]
        return out

    def drain(self) -> List[dict]:
        out = list(self.sent)
        self.sent.clear()
        return out

    # ---- playing the host ----

    def deliver(self, message: Any) -> None:
        if self._protocol is None:
            raise RuntimeError("Loopback is not attached to a protocol")
        if self.text and isinstance(message, (Request, Response)):
            message = pack(message)
        elif isinstance(message, (Request, Response)):
            message = message.to_dict()
        self._protocol.receive(message)

    def reply(self, request: Any, payload: Any = None, *, additional: bool = False) -> Response:
        response = Response(_id_of(request), payload if payload is not None else {}, additional=additional)
        self.deliver(response)
        return response

    def reply_error(self, request: Any, message: str, error_type: str = "Exception") -> Response:
        return self.reply(request, error_payload(message, error_type))

    def send_host_message(self, message_type: str, payload: Any = None) -> Request:
        request = Request(message_type, payload)
        self.deliver(request)
        return request


def _id_of(request: Any) -> Any:
    if isinstance(request, dict):
        return request[fields.MESSAGE_ID]
    if isinstance(request, (Request, Response)):
        return request.id
    return request
