from __future__ import annotations

from typing import Any, Optional, Union

from .. import json
from ..errors import EnvelopeError
from .message import Envelope, parse


def pack(envelope: Envelope) -> str:
    """
    Serialize Envelope -> JSON text

    Only needed by transports that cannot carry structured data; the
    engine itself always hands envelopes to the transport as dictionaries.
    """

    return json.dumps_text(envelope.to_dict())


def unpack(data: Union[str, bytes, dict]) -> Optional[Envelope]:
    """
    Deserialize JSON text (or an already structured dict) -> Envelope

    Returns None when the data is a well-formed object that is neither a
    request nor a response. Raises EnvelopeError on anything malformed.
    """

    if isinstance(data, (str, bytes, bytearray)):
        data = _decode(data)

    return parse(data)


def _decode(data: Union[str, bytes, bytearray]) -> Any:

    if isinstance(data, bytearray):
        data = bytes(data)

    try:
        return json.loads(data)
    except UnicodeDecodeError as e:
        raise EnvelopeError(f"invalid utf-8: {e}", data) from e
    except json.DecodeError as e:
        raise EnvelopeError(f"invalid json: {e}", data) from e
    except RecursionError as e:
        raise EnvelopeError("invalid json: nested too deeply", data) from e
