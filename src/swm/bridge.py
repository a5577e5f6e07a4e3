""" The :class:`Bridge` connects a form filler to a SMART Web Messaging host.
    It wires the host-initiated message types to actions on the form filler,
    keeps the host-supplied launch context, and runs the startup handshake.
"""

import abc
import asyncio
import copy
import logging
import time

from . import json
from .protocol import fields
from .protocol.handshake import Handshake
from .protocol.protocol import Protocol


logger = logging.getLogger(__name__)

LAUNCH_CONTEXT = 'launchContext'


class FormFiller(abc.ABC):
    """ The visual component being driven by the host. Only the three
        operations below are required of it; how it renders anything is
        its own concern. Attribute values are always strings, JSON encoded
        where the underlying value is structured.
    """

    @abc.abstractmethod
    def set_attribute(self, name, value):
        """ Set the named attribute on the component. """


    @abc.abstractmethod
    def submit(self):
        """ Trigger the component's own submit action. """


    @property
    @abc.abstractmethod
    def questionnaire(self):
        """ The questionnaire currently loaded, or None. """


# end of class FormFiller



class Bridge:
    """ The :class:`Bridge` is the gateway between the protocol engine and
        the form filler. A new :class:`swm.protocol.Protocol` is created
        unless one is passed in as *protocol*; the *form_filler* may be None,
        in which case every UI action is skipped but every host message is
        still answered.

        The *request_timeout*, *handshake_interval*, and *handshake_timeout*
        arguments are in seconds, and default to the values in
        :mod:`swm.config`. The *clock* is handed to the :class:`Handshake`
        to measure its deadline.

        :ivar context: The host-supplied context, None until the host sends
            one; later updates are merged into it, never replace it.
        :ivar connecting: The handshake task, once one has been started.
        :ivar latest_response: The most recent response reported by the form
            filler via :func:`on_update`, or None.
    """

    def __init__(self, form_filler=None, protocol=None, request_timeout=None,
                 handshake_interval=None, handshake_timeout=None, clock=time.monotonic):

        if protocol is None:
            protocol = Protocol(request_timeout)

        self.protocol = protocol
        self.form_filler = form_filler
        self.context = None
        self.connecting = None
        self.latest_response = None

        self.handshake = Handshake(protocol, interval=handshake_interval,
                                   timeout=handshake_timeout, clock=clock)

        protocol.on(fields.CONFIGURE, self.configure)
        protocol.on(fields.CONFIGURE_CONTEXT, self.configure_context)
        protocol.on(fields.DISPLAY_QUESTIONNAIRE, self.display_questionnaire)
        protocol.on(fields.REQUEST_SUBMIT, self.request_submit)
        protocol.on(fields.PERSIST, self.persist)


    def init(self, send):
        """ Register the transport *send* function. Repeated calls are
            ignored. If an event loop is running the handshake is started
            right away; otherwise the caller is expected to await
            :func:`connect`. Returns True if this call configured the
            transport.
        """

        if not self.protocol.init(send):
            return False

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return True

        self._start_handshake()
        return True


    def receive(self, message):
        """ Inbound entry point; see :func:`swm.protocol.Protocol.receive`.
        """

        self.protocol.receive(message)


    async def connect(self):
        """ Run the handshake, or join the one already started by
            :func:`init`. Returns the host's handshake reply; raises
            :class:`swm.errors.HandshakeTimeout` if the host never answers.
        """

        if self.connecting is None:
            self._start_handshake()

        return await self.connecting


    def _start_handshake(self):

        self.connecting = asyncio.ensure_future(self.handshake.run())
        self.connecting.add_done_callback(_log_handshake)


    def submit_form(self, response, outcome=None):
        """ Send a completed questionnaire *response* to the host, with an
            optional *outcome* resource. Returns the future for the host's
            acknowledgment.
        """

        payload = dict()
        payload['response'] = response

        if outcome is not None:
            payload['outcome'] = outcome

        return self.protocol.send_request(fields.FORM_SUBMITTED, payload)


    # Events raised by the form filler. These are expected to be called
    # from the event loop the bridge runs on.

    def on_update(self, response):
        """ Remember the form filler's latest questionnaire *response*, for
            use by :func:`save_progress`.
        """

        self.latest_response = response


    def on_submit(self, response):
        """ The form filler submitted *response*. Forward it to the host as a
            completed form, marking it 'completed' unless it already carries
            a status. Returns the future for the host's acknowledgment;
            success or failure is also logged.
        """

        response = dict(response)

        if not response.get('status'):
            response['status'] = 'completed'

        return self._submit(response)


    def save_progress(self):
        """ Send the latest response reported via :func:`on_update` to the
            host, marked 'in-progress'. Returns None, without sending
            anything, if there is no form filler or no response yet.
        """

        if self.latest_response is None or self.form_filler is None:
            return None

        response = copy.deepcopy(self.latest_response)
        response['status'] = 'in-progress'

        return self._submit(response)


    def validate(self):
        """ Ask the form filler to run its own submit action, which
            validates the form and, if valid, comes back via
            :func:`on_submit`.
        """

        if self.form_filler is not None:
            self.form_filler.submit()


    def _submit(self, response):

        future = self.submit_form(response, submitted_outcome())
        future.add_done_callback(_log_submission)
        return future


    # Host-initiated messages. Each handler returns None, which the protocol
    # acknowledges with a success response; raising sends an error instead.

    def configure(self, request):
        logger.info('Configuration received')


    def configure_context(self, request):

        payload = request.payload

        if not isinstance(payload, dict):
            raise TypeError('%s payload must be an object' % (request.type))

        self.update_context(payload)
        self.apply_launch_context()
        logger.info('Context updated')


    def display_questionnaire(self, request):

        payload = request.payload
        if not isinstance(payload, dict):
            raise TypeError('%s payload must be an object' % (request.type))

        extra = payload.get('context')
        if extra:
            if not isinstance(extra, dict):
                raise TypeError('%s context must be an object' % (request.type))
            self.update_context(extra)

        questionnaire = payload.get('questionnaire')

        if not questionnaire:
            logger.error('No questionnaire in %s payload', request.type)
            return

        form_filler = self.form_filler
        if form_filler is None:
            return

        self.apply_launch_context()

        questionnaire_response = payload.get('questionnaireResponse')
        if questionnaire_response:
            form_filler.set_attribute('initial-response', json.dumps_text(questionnaire_response))

        # The questionnaire goes last; setting it triggers the render.

        if not isinstance(questionnaire, str):
            questionnaire = json.dumps_text(questionnaire)

        form_filler.set_attribute('questionnaire', questionnaire)


    def request_submit(self, request):

        form_filler = self.form_filler

        if form_filler is not None and form_filler.questionnaire:
            form_filler.submit()


    def persist(self, request):
        pass


    # Context handling.

    def update_context(self, update):
        """ Merge *update* into the held context, creating it on first use.
        """

        if self.context is None:
            self.context = dict()

        merge_context(self.context, update)
        return self.context


    def apply_launch_context(self):
        """ Hand the flattened launch context to the form filler, if there is
            anything to hand over.
        """

        if self.form_filler is None or self.context is None:
            return

        flattened = launch_context(self.context)

        if len(flattened) > 0:
            self.form_filler.set_attribute('launch-context', json.dumps_text(flattened))


# end of class Bridge



def _log_handshake(task):

    if task.cancelled():
        return

    error = task.exception()
    if error is not None:
        logger.error('Handshake failed: %s', error)



def _log_submission(future):

    if future.cancelled():
        return

    error = future.exception()
    if error is None:
        logger.info('Form submitted')
    else:
        logger.error('Submission failed: %s', error)



def submitted_outcome():
    """ Return the OperationOutcome sent alongside a form submitted by the
        form filler.
    """

    issue = dict()
    issue['severity'] = 'information'
    issue['code'] = 'informational'
    issue['diagnostics'] = 'Form submitted successfully'

    outcome = dict()
    outcome['resourceType'] = 'OperationOutcome'
    outcome['issue'] = [issue]

    return outcome



def merge_context(context, update):
    """ Merge the *update* dictionary into *context* in place. Top-level keys
        are replaced; the launch context list is merged entry by entry,
        keyed on each entry's name, so that a later message naming only
        'user' does not discard an earlier 'patient'.
    """

    for key, value in update.items():
        existing = context.get(key)

        if key == LAUNCH_CONTEXT and isinstance(value, list) and isinstance(existing, list):
            value = _merge_launch_context(existing, value)

        context[key] = value

    return context


def _merge_launch_context(existing, update):

    merged = list(existing)
    positions = dict()

    for index, entry in enumerate(merged):
        try:
            name = entry['name']
        except (KeyError, TypeError):
            continue

        if isinstance(name, str):
            positions[name] = index

    for entry in update:
        try:
            name = entry['name']
        except (KeyError, TypeError):
            merged.append(entry)
            continue

        if not isinstance(name, str):
            merged.append(entry)
            continue

        try:
            index = positions[name]
        except KeyError:
            positions[name] = len(merged)
            merged.append(entry)
        else:
            merged[index] = entry

    return merged


def launch_context(context):
    """ Flatten the launch context list of *context* into a dictionary
        mapping each entry's name to its content resource. Entries missing
        either field are skipped.
    """

    flattened = dict()

    try:
        entries = context[LAUNCH_CONTEXT]
    except (KeyError, TypeError):
        return flattened

    if not isinstance(entries, list):
        return flattened

    for entry in entries:
        try:
            name = entry['name']
            resource = entry['contentResource']
        except (KeyError, TypeError):
            continue

        if name and resource:
            flattened[name] = resource

    return flattened


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
