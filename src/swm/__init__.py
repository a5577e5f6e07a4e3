""" Python implementation of a SMART Web Messaging bridge. This includes the
    protocol engine, which correlates requests with responses and answers
    host-initiated messages, and the bridge that drives a form filler on
    behalf of an EHR host.
"""

# Utility components.

from . import json
from . import config
from . import errors

# Submodules used by multiple other components.

from . import protocol
from . import transport

# Primary public-facing interfaces.

from . import bridge
from . import begin
get = begin.get
init = begin.init
receive = begin.receive

from .bridge import Bridge, FormFiller
from .protocol import Protocol, Handshake

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
