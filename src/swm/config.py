""" Default timing for the messaging engine. Every value here can be
    overridden from the environment, or per instance by passing the
    equivalent keyword argument to :class:`swm.protocol.protocol.Protocol`,
    :class:`swm.protocol.handshake.Handshake`, or :class:`swm.Bridge`.

    All values are in seconds.
"""

import os


def _from_environment(variable, default):
    """ Return the float value of the named environment *variable*, or
        *default* if it is not set. Anything other than a positive number
        is rejected outright rather than silently replaced.
    """

    try:
        value = os.environ[variable]
    except KeyError:
        return default

    try:
        value = float(value)
    except ValueError:
        raise ValueError("%s must be a number of seconds, not %r" % (variable, value))

    if value <= 0:
        raise ValueError("%s must be positive, not %r" % (variable, value))

    return value


# How long a request waits for a response before its future fails.

REQUEST_TIMEOUT = _from_environment('SWM_REQUEST_TIMEOUT', 30.0)

# The handshake sends a fresh probe every HANDSHAKE_INTERVAL seconds, and
# gives up entirely after HANDSHAKE_TIMEOUT seconds.

HANDSHAKE_INTERVAL = _from_environment('SWM_HANDSHAKE_INTERVAL', 1.0)
HANDSHAKE_TIMEOUT = _from_environment('SWM_HANDSHAKE_TIMEOUT', 30.0)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
