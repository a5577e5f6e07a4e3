import asyncio
import json
import logging

import pytest

import swm
from swm.bridge import launch_context, merge_context
from swm.protocol import handshake
from swm.transport.memory import Loopback


PATIENT = {'name': 'patient', 'contentResource': {'resourceType': 'Patient', 'id': 'p1'}}
USER = {'name': 'user', 'contentResource': {'resourceType': 'Practitioner', 'id': 'u1'}}

QUESTIONNAIRE = {'resourceType': 'Questionnaire', 'id': 'q1', 'item': []}


@pytest.fixture
def bridge(loopback, form_filler):
    bridge = swm.Bridge(form_filler, request_timeout=0.05)
    loopback.attach(bridge.protocol)
    return bridge


def answer(loopback, message_type, payload=None):
    """ Play the host: send one message and return the single response.
    """

    request = loopback.send_host_message(message_type, payload)
    responses = loopback.responses(request.id)
    assert len(responses) == 1
    return responses[0]


def test_configure(bridge, loopback, form_filler):

    response = answer(loopback, 'sdc.configure', {'terminologyServer': 'https://tx.example.org'})

    assert response['payload'] == {'$type': 'base'}
    assert form_filler.calls == []


def test_configure_context(bridge, loopback, form_filler):

    response = answer(loopback, 'sdc.configureContext', {'launchContext': [PATIENT]})

    assert response['payload'] == {'$type': 'base'}
    assert bridge.context == {'launchContext': [PATIENT]}

    flattened = json.loads(form_filler.attributes['launch-context'])
    assert flattened == {'patient': PATIENT['contentResource']}


def test_context_updates_merge():
    """ A later context update naming only the user must not discard the
        patient supplied earlier.
    """

    loopback = Loopback()
    bridge = swm.Bridge()
    loopback.attach(bridge.protocol)

    answer(loopback, 'sdc.configureContext', {'launchContext': [PATIENT], 'subject': 'Patient/p1'})
    answer(loopback, 'sdc.configureContext', {'launchContext': [USER], 'encounter': 'Encounter/e1'})

    assert bridge.context['launchContext'] == [PATIENT, USER]
    assert bridge.context['subject'] == 'Patient/p1'
    assert bridge.context['encounter'] == 'Encounter/e1'

    flattened = launch_context(bridge.context)
    assert set(flattened) == set(('patient', 'user'))


def test_context_replaces_by_name():

    replacement = {'name': 'patient', 'contentResource': {'resourceType': 'Patient', 'id': 'p2'}}

    context = dict()
    merge_context(context, {'launchContext': [PATIENT, USER]})
    merge_context(context, {'launchContext': [replacement]})

    assert context['launchContext'] == [replacement, USER]


def test_context_top_level_replaced():

    context = {'subject': 'Patient/p1', 'launchContext': [PATIENT]}
    merge_context(context, {'subject': 'Patient/p2', 'launchContext': 'garbage'})

    assert context == {'subject': 'Patient/p2', 'launchContext': 'garbage'}
    assert launch_context(context) == {}


def test_launch_context_skips_incomplete_entries():

    context = {'launchContext': [PATIENT, {'name': 'user'}, {'contentResource': {}}, 'junk']}
    assert launch_context(context) == {'patient': PATIENT['contentResource']}

    assert launch_context({}) == {}
    assert launch_context(None) == {}


def test_configure_context_rejects_non_object(bridge, loopback):

    response = answer(loopback, 'sdc.configureContext', ['not', 'an', 'object'])

    assert response['payload']['$type'] == 'error'
    assert response['payload']['errorType'] == 'TypeError'
    assert bridge.context is None


def test_display_questionnaire(bridge, loopback, form_filler):

    initial = {'resourceType': 'QuestionnaireResponse', 'status': 'in-progress'}
    payload = dict()
    payload['questionnaire'] = QUESTIONNAIRE
    payload['questionnaireResponse'] = initial
    payload['context'] = {'launchContext': [PATIENT]}

    response = answer(loopback, 'sdc.displayQuestionnaire', payload)

    assert response['payload'] == {'$type': 'base'}
    assert form_filler.calls == ['launch-context', 'initial-response', 'questionnaire']

    assert json.loads(form_filler.attributes['questionnaire']) == QUESTIONNAIRE
    assert json.loads(form_filler.attributes['initial-response']) == initial
    assert json.loads(form_filler.attributes['launch-context']) == {'patient': PATIENT['contentResource']}
    assert bridge.context == {'launchContext': [PATIENT]}


def test_display_questionnaire_keeps_earlier_context(bridge, loopback, form_filler):

    answer(loopback, 'sdc.configureContext', {'launchContext': [PATIENT]})
    form_filler.calls.clear()

    payload = {'questionnaire': QUESTIONNAIRE, 'context': {'launchContext': [USER]}}
    answer(loopback, 'sdc.displayQuestionnaire', payload)

    flattened = json.loads(form_filler.attributes['launch-context'])
    assert set(flattened) == set(('patient', 'user'))
    assert form_filler.calls == ['launch-context', 'questionnaire']


def test_display_questionnaire_rejects_bad_context(bridge, loopback, form_filler):

    payload = {'questionnaire': QUESTIONNAIRE, 'context': [PATIENT]}
    response = answer(loopback, 'sdc.displayQuestionnaire', payload)

    assert response['payload']['$type'] == 'error'
    assert response['payload']['errorType'] == 'TypeError'
    assert 'context' in response['payload']['errorMessage']
    assert bridge.context is None
    assert form_filler.calls == []


def test_display_questionnaire_text(bridge, loopback, form_filler):

    text = '{"resourceType": "Questionnaire"}'
    answer(loopback, 'sdc.displayQuestionnaire', {'questionnaire': text})

    assert form_filler.attributes['questionnaire'] == text
    assert form_filler.calls == ['questionnaire']


def test_display_without_questionnaire(bridge, loopback, form_filler, caplog):

    response = answer(loopback, 'sdc.displayQuestionnaire', {'context': {'launchContext': [PATIENT]}})

    assert response['payload'] == {'$type': 'base'}
    assert form_filler.calls == []
    assert bridge.context == {'launchContext': [PATIENT]}
    assert 'No questionnaire' in caplog.text


def test_request_submit(bridge, loopback, form_filler):

    # Nothing loaded yet: acknowledged, but nothing to submit.

    response = answer(loopback, 'ui.form.requestSubmit')
    assert response['payload'] == {'$type': 'base'}
    assert form_filler.submitted == 0

    answer(loopback, 'sdc.displayQuestionnaire', {'questionnaire': QUESTIONNAIRE})
    answer(loopback, 'ui.form.requestSubmit')
    assert form_filler.submitted == 1


def test_persist(bridge, loopback, form_filler):

    response = answer(loopback, 'ui.form.persist')

    assert response['payload'] == {'$type': 'base'}
    assert form_filler.calls == []
    assert form_filler.submitted == 0


def test_no_form_filler():

    loopback = Loopback()
    bridge = swm.Bridge()
    loopback.attach(bridge.protocol)

    for message_type in ('sdc.configure', 'ui.form.requestSubmit', 'ui.form.persist'):
        response = answer(loopback, message_type)
        assert response['payload'] == {'$type': 'base'}

    response = answer(loopback, 'sdc.displayQuestionnaire', {'questionnaire': QUESTIONNAIRE})
    assert response['payload'] == {'$type': 'base'}


def test_unknown_message_type(bridge, loopback):

    response = answer(loopback, 'sdc.somethingElse')

    assert response['payload']['$type'] == 'error'
    assert response['payload']['errorType'] == 'UnknownMessageTypeException'


def test_submit_form(bridge, loopback):

    questionnaire_response = {'resourceType': 'QuestionnaireResponse', 'status': 'completed'}
    outcome = {'resourceType': 'OperationOutcome', 'issue': []}

    async def scenario():
        future = bridge.submit_form(questionnaire_response, outcome)

        request = loopback.requests('form.submitted')[0]
        assert request['payload'] == {'response': questionnaire_response, 'outcome': outcome}

        loopback.reply(request, {'$type': 'base'})
        assert await future == {'$type': 'base'}

        future = bridge.submit_form(questionnaire_response)
        request = loopback.requests('form.submitted')[1]
        assert request['payload'] == {'response': questionnaire_response}
        loopback.reply(request)
        await future

    asyncio.run(scenario())


def test_on_submit(bridge, loopback, caplog):

    questionnaire_response = {'resourceType': 'QuestionnaireResponse', 'item': []}

    async def scenario():
        future = bridge.on_submit(questionnaire_response)

        request = loopback.requests('form.submitted')[0]
        payload = request['payload']

        assert payload['response']['status'] == 'completed'
        assert payload['response']['item'] == []
        assert payload['outcome']['resourceType'] == 'OperationOutcome'
        assert payload['outcome']['issue'][0]['severity'] == 'information'

        # The caller's response is not modified.

        assert 'status' not in questionnaire_response

        loopback.reply(request, {'$type': 'base'})
        await future
        await asyncio.sleep(0)

    with caplog.at_level(logging.INFO):
        asyncio.run(scenario())

    assert 'Form submitted' in caplog.text


def test_on_submit_keeps_status(bridge, loopback):

    async def scenario():
        bridge.on_submit({'resourceType': 'QuestionnaireResponse', 'status': 'amended'})
        request = loopback.requests('form.submitted')[0]
        assert request['payload']['response']['status'] == 'amended'
        loopback.reply(request)

    asyncio.run(scenario())


def test_on_submit_failure_is_logged(bridge, loopback, caplog):

    async def scenario():
        future = bridge.on_submit({'resourceType': 'QuestionnaireResponse'})
        loopback.reply_error(loopback.requests('form.submitted')[0], 'rejected')

        with pytest.raises(swm.errors.RemoteError):
            await future

        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert 'Submission failed: rejected' in caplog.text


def test_save_progress(bridge, loopback):

    latest = {'resourceType': 'QuestionnaireResponse', 'status': 'completed', 'item': [{'linkId': '1'}]}

    async def scenario():

        # Nothing reported yet: nothing to save.

        assert bridge.save_progress() is None
        assert loopback.requests('form.submitted') == []

        bridge.on_update(latest)
        future = bridge.save_progress()

        request = loopback.requests('form.submitted')[0]
        assert request['payload']['response']['status'] == 'in-progress'
        assert request['payload']['response']['item'] == [{'linkId': '1'}]
        assert latest['status'] == 'completed'

        loopback.reply(request)
        await future

    asyncio.run(scenario())


def test_save_progress_without_form_filler():

    loopback = Loopback()
    bridge = swm.Bridge()
    loopback.attach(bridge.protocol)

    bridge.on_update({'resourceType': 'QuestionnaireResponse'})
    assert bridge.save_progress() is None
    assert loopback.sent == []


def test_validate(bridge, form_filler):

    bridge.validate()
    assert form_filler.submitted == 1

    swm.Bridge().validate()


def test_connect(bridge, loopback):

    async def scenario():
        task = asyncio.ensure_future(bridge.connect())

        while len(loopback.requests('status.handshake')) == 0:
            await asyncio.sleep(0.001)

        loopback.reply(loopback.requests('status.handshake')[0], {'$type': 'base'})

        assert await task == {'$type': 'base'}
        assert bridge.handshake.status == handshake.CONNECTED

    asyncio.run(scenario())


def test_init_starts_handshake(form_filler):
    """ With a running event loop, init() starts the handshake at once;
        connect() then joins it rather than starting another.
    """

    loopback = Loopback(text=True)
    bridge = swm.Bridge(form_filler, handshake_interval=0.01, handshake_timeout=1)
    loopback._protocol = bridge.protocol

    async def scenario():
        assert bridge.init(loopback) == True
        assert bridge.init(Loopback()) == False
        assert bridge.connecting is not None

        await asyncio.sleep(0)
        probes = loopback.requests('status.handshake')
        assert len(probes) >= 1

        loopback.reply(probes[0], {'$type': 'base'})
        assert await bridge.connect() == {'$type': 'base'}
        assert bridge.handshake.is_connected

        response = answer(loopback, 'sdc.displayQuestionnaire', {'questionnaire': QUESTIONNAIRE})
        assert response['payload'] == {'$type': 'base'}
        assert form_filler.submitted == 0

    asyncio.run(scenario())


def test_init_without_loop(bridge):

    assert bridge.connecting is None


def test_handshake_failure_is_logged(caplog):

    loopback = Loopback()
    bridge = swm.Bridge(handshake_interval=0.001, handshake_timeout=0.01)

    async def scenario():
        bridge.init(loopback)

        with pytest.raises(swm.errors.HandshakeTimeout):
            await bridge.connect()

        await asyncio.sleep(0)

    asyncio.run(scenario())
    assert 'Handshake failed' in caplog.text


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
