""" A class representation of a SMART Web Messaging envelope, including
    subclasses for the two shapes an envelope can take on the wire.
"""

import uuid

from . import fields
from ..errors import EnvelopeError


class Envelope:
    """ The :class:`Envelope` provides a very thin encapsulation of what it
        means to be a message in this protocol. It is never used directly;
        a message is always either a :class:`Request` (which includes events,
        requests that expect no reply) or a :class:`Response`.

        The two shapes share one wire format and are told apart structurally:
        a response has a *responseToMessageId*, a request has a *messageType*.
        There is no explicit tag.

        Requests are generally initiated without an id, but every envelope
        put on the wire is required to have one. When the *id* argument is
        None a fresh identifier is generated.

        :ivar id: The unique identifier of this envelope.
        :ivar payload: Arbitrary structured data carried by the envelope.
    """

    def __init__(self, payload=None, id=None):

        if id is None:
            id = new_id()

        self.id = id
        self.payload = payload


    def __repr__(self):
        return "%s(%r)" % (self.__class__.__name__, self.to_dict())


    def __eq__(self, other):
        if isinstance(other, Envelope):
            return self.to_dict() == other.to_dict()
        return NotImplemented


    def to_dict(self):
        """ Return the wire representation of this envelope as a plain
            dictionary, suitable for handing to a transport.
        """

        raise NotImplementedError('subclasses must implement to_dict()')


# end of class Envelope



class Request(Envelope):
    """ A :class:`Request` is any envelope carrying a *type*: requests that
        expect a response, events that do not, and host-initiated messages
        arriving from the other side. The *handle* identifies the protocol
        channel, and defaults to the SMART Web Messaging handle.
    """

    def __init__(self, type, payload=None, id=None, handle=fields.MESSAGING_HANDLE):

        if type is None or type == '':
            raise ValueError('a request must have a message type')

        if payload is None:
            payload = dict()

        Envelope.__init__(self, payload, id)

        self.type = type
        self.handle = handle


    def to_dict(self):

        envelope = dict()
        envelope[fields.MESSAGE_ID] = self.id
        envelope[fields.MESSAGING_HANDLE_KEY] = self.handle
        envelope[fields.MESSAGE_TYPE] = self.type
        envelope[fields.PAYLOAD] = self.payload

        return envelope


# end of class Request



class Response(Envelope):
    """ A :class:`Response` answers the request identified by *response_to*.
        If *additional* is True the sender is signaling that more responses
        to the same request will follow, and the pending request should not
        be retired yet.
    """

    def __init__(self, response_to, payload=None, additional=False, id=None):

        Envelope.__init__(self, payload, id)

        self.response_to = response_to
        self.additional = bool(additional)


    @property
    def is_error(self):
        return is_error(self.payload)


    def to_dict(self):

        envelope = dict()
        envelope[fields.MESSAGE_ID] = self.id
        envelope[fields.RESPONSE_TO] = self.response_to
        envelope[fields.ADDITIONAL_RESPONSES] = self.additional
        envelope[fields.PAYLOAD] = self.payload

        return envelope


# end of class Response



def parse(raw):
    """ Interpret the dictionary *raw* as an envelope. A :class:`Response` is
        returned if *raw* names the request it answers, a :class:`Request`
        if it carries a message type; None is returned if it is neither,
        which the caller is expected to discard. An :class:`EnvelopeError`
        is raised if *raw* is not a dictionary, or if a field that decides
        the envelope's shape has the wrong type.

        Inbound identifiers are kept exactly as received, even if absent.
    """

    if not isinstance(raw, dict):
        raise EnvelopeError("envelope must be an object, not %s" % (type(raw).__name__), raw)

    message_id = raw.get(fields.MESSAGE_ID)
    payload = raw.get(fields.PAYLOAD)
    response_to = raw.get(fields.RESPONSE_TO)
    message_type = raw.get(fields.MESSAGE_TYPE)

    if response_to is not None and response_to != '':
        additional = raw.get(fields.ADDITIONAL_RESPONSES)
        envelope = Response(response_to, payload, additional=bool(additional), id=message_id)

    elif message_type is not None and message_type != '':
        if not isinstance(message_type, str):
            raise EnvelopeError("messageType must be a string, not %s" % (type(message_type).__name__), raw)

        handle = raw.get(fields.MESSAGING_HANDLE_KEY)
        envelope = Request(message_type, payload, id=message_id, handle=handle)

    else:
        return None

    envelope.id = message_id
    return envelope



def error_payload(message, error_type):
    """ Return a payload marking a response as an error.
    """

    payload = dict()
    payload[fields.TYPE_KEY] = fields.TYPE_ERROR
    payload[fields.ERROR_MESSAGE] = message
    payload[fields.ERROR_TYPE] = error_type

    return payload


def base_payload():
    """ Return the payload used to acknowledge a host-initiated message.
    """

    return {fields.TYPE_KEY: fields.TYPE_BASE}


def is_error(payload):
    """ Return True if *payload* carries the error discriminator.
    """

    try:
        return payload[fields.TYPE_KEY] == fields.TYPE_ERROR
    except (KeyError, TypeError):
        return False



def new_id():
    """ Return a fresh identifier for an outbound envelope. The identifier
        is a random (version 4) UUID drawn from the operating system's
        cryptographic random source; it is not a counter, and is not
        predictable from previous identifiers.
    """

    return str(uuid.uuid4())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
