from . import fields
from . import message
from . import wire
from . import pending
from . import protocol
from . import handshake

from .protocol import Protocol
from .handshake import Handshake


"""
SMART Web Messaging Protocol Layer
==================================

This package defines the transport-agnostic messaging engine used to talk
to an EHR host. It provides the envelope model, request/response
correlation, dispatch of host-initiated messages, and the startup
handshake.

The protocol layer MUST NOT depend on any particular host adapter
(native browser bridge, iframe postMessage, websocket, etc).

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

Bridge (swm.bridge)
    │   Host message handlers, launch context, form filler
    ▼
Handshake (handshake.py)
    Bounded-retry liveness probe
    - IDLE -> PROBING -> CONNECTED | FAILED
    │
    ▼
Protocol Engine (protocol.py)
    - send_request() -> future
    - send_event(), send_response()
    - receive() / dispatch()
    - on(messageType, handler)
    │
    ▼
Pending Table (pending.py)
    messageId -> (resolve, reject, timer)
    │
    ▼
Envelope Model (message.py, wire.py)
    - Request   (has messageType)
    - Response  (has responseToMessageId)
    Structural, not tagged; parsed at the boundary
    │
    ▼
Field Vocabulary (fields.py)
    Canonical wire keys and message type names

---------------------------------------------------------------------

Below the Protocol Layer (for context)
--------------------------------------

Transport Port (swm.transport.base)
    One injected send function, configured once

Host Adapter (not part of this package)
    Moves bytes; calls swm.receive() with inbound messages

---------------------------------------------------------------------

Design Principles
-----------------

1. Transport Agnostic
   The engine behaves identically whatever moves the envelopes.

2. Correlation by Identifier
   Responses are matched by messageId, never by arrival order.

3. Single Thread of Control
   Inbound handling, sends and timers are serialized on one event loop;
   no locks.

4. Faults Stay Local
   Parse and transport faults are logged; request faults become failed
   futures; nothing here terminates the host process.

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
