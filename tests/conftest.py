import pytest

import swm
from swm.transport.memory import Loopback


class FakeFormFiller(swm.FormFiller):
    """ Records what the bridge does to it, in order.
    """

    def __init__(self):
        self.attributes = dict()
        self.calls = list()
        self.submitted = 0


    def set_attribute(self, name, value):
        self.attributes[name] = value
        self.calls.append(name)


    def submit(self):
        self.submitted += 1


    @property
    def questionnaire(self):
        return self.attributes.get('questionnaire')



class FakeClock:
    """ A monotonic clock that only moves when told to.
    """

    def __init__(self):
        self.now = 0.0


    def __call__(self):
        return self.now


    def advance(self, seconds):
        self.now += seconds



@pytest.fixture
def loopback():
    return Loopback()


@pytest.fixture
def protocol(loopback):
    protocol = swm.Protocol(request_timeout=0.05)
    loopback.attach(protocol)
    return protocol


@pytest.fixture
def form_filler():
    return FakeFormFiller()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fresh_default():
    """ Ensure the process-wide bridge used by swm.init() and swm.receive()
        starts and ends each test empty.
    """

    swm.begin._clear()
    yield
    swm.begin._clear()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
