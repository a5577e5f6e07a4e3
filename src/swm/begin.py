""" Implementation of the top-level :func:`init` and :func:`receive` methods.
    These are intended to be the entry points for host adapters that cannot
    hold a reference to a :class:`swm.Bridge` instance of their own, such as
    a native bridge evaluating script text against the page.
"""

from .bridge import Bridge


_cache = dict()

def _clear():
    """ Clear the cached :class:`swm.Bridge` instance, if any. Returns None
        if there was nothing to clear; if there was an instance, it will be
        returned, largely to allow for inspection in tests.
    """

    try:
        existing = _cache['default']
    except KeyError:
        return

    del _cache['default']
    return existing



def get(form_filler=None):
    """ Return the process-wide :class:`swm.Bridge`, creating it on first
        use. The *form_filler* is only consulted when the instance is
        created; afterwards it can be changed via the *form_filler*
        attribute of the returned instance.

        If the caller always uses :func:`get` they will always receive the
        same instance. In that sense, :func:`get` is a factory method
        enforcing a singleton pattern.
    """

    try:
        bridge = _cache['default']
    except KeyError:
        bridge = Bridge(form_filler)
        _cache['default'] = bridge

    return bridge



def init(send):
    """ Configure the transport of the process-wide :class:`swm.Bridge`.
        Only the first call has any effect.
    """

    return get().init(send)



def receive(message):
    """ Deliver one inbound *message*, either an envelope dictionary or its
        JSON text, to the process-wide :class:`swm.Bridge`.
    """

    get().receive(message)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
