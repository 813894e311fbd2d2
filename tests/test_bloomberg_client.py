"""Tests for the Bloomberg gateway that need no terminal."""
import pytest

blpapi = pytest.importorskip("blpapi")

from fxvol.core import bloomberg_client
from fxvol.core.bloomberg_client import BloombergGateway


class FailingSession:
    def __init__(self, options):
        self.options = options
        self.stopped = False

    def start(self):
        return False

    def stop(self):
        self.stopped = True


class NoServiceSession(FailingSession):
    instances = []

    def __init__(self, options):
        super().__init__(options)
        NoServiceSession.instances.append(self)

    def start(self):
        return True

    def openService(self, name):
        return False


def test_fetch_when_not_connected_returns_nothing():
    gateway = BloombergGateway(host="localhost", port=8194, timeout=100)

    assert not gateway.is_connected()
    assert gateway.fetch_reference_data(["EURSEKV1M BGN Curncy"], ["PX_BID"]) == {}


def test_disconnect_without_session_is_safe():
    gateway = BloombergGateway(host="localhost", port=8194, timeout=100)

    gateway.disconnect()
    gateway.disconnect()

    assert not gateway.is_connected()


def test_connect_failure_returns_false(monkeypatch):
    monkeypatch.setattr(bloomberg_client.blpapi, "Session", FailingSession)
    gateway = BloombergGateway(host="localhost", port=8194, timeout=100)

    assert gateway.connect() is False
    assert gateway.session is None
    assert not gateway.is_connected()


def test_missing_refdata_service_stops_session(monkeypatch):
    monkeypatch.setattr(bloomberg_client.blpapi, "Session", NoServiceSession)
    gateway = BloombergGateway(host="localhost", port=8194, timeout=100)

    assert gateway.connect() is False
    assert NoServiceSession.instances[-1].stopped
    assert not gateway.is_connected()


class FakeName:
    def __init__(self, name):
        self._name = name

    def __str__(self):
        return self._name


class FakeField:
    def __init__(self, name, value):
        self._name = name
        self._value = value

    def name(self):
        return FakeName(self._name)

    def getValueAsString(self):
        return self._value


class FakeElement:
    """Element double keyed by child name; also serves as an array of values."""

    def __init__(self, children=None, values=None, text=""):
        self.children = children or {}
        self.values = values or []
        self.text = text

    def hasElement(self, name):
        return str(name) in self.children

    def getElement(self, name_or_index):
        if isinstance(name_or_index, int):
            return self.values[name_or_index]
        return self.children[str(name_or_index)]

    def getElementAsString(self, name):
        return self.children[str(name)].text

    def numValues(self):
        return len(self.values)

    def getValueAsElement(self, index):
        return self.values[index]

    def numElements(self):
        return len(self.values)

    def __str__(self):
        return self.text


def security(ticker, fields=None, error=None):
    children = {"security": FakeElement(text=ticker)}
    if error is not None:
        children["securityError"] = FakeElement(text=error)
    if fields is not None:
        children["fieldData"] = FakeElement(values=[FakeField(k, v) for k, v in fields.items()])
    return FakeElement(children)


def message(*securities):
    return FakeElement({"securityData": FakeElement(values=list(securities))})


class FakeEvent:
    def __init__(self, event_type, messages=()):
        self.event_type = event_type
        self.messages = list(messages)

    def eventType(self):
        return self.event_type

    def __iter__(self):
        return iter(self.messages)


class FakeRequest:
    def __init__(self):
        self.appended = {"securities": [], "fields": []}

    def append(self, name, value):
        self.appended[name].append(value)


class FakeService:
    def __init__(self):
        self.requests = []

    def createRequest(self, name):
        assert name == "ReferenceDataRequest"
        request = FakeRequest()
        self.requests.append(request)
        return request


class ScriptedSession:
    """Session that starts cleanly and replays a fixed list of events."""

    events = []
    instances = []

    def __init__(self, options):
        self.service = FakeService()
        self.remaining = list(ScriptedSession.events)
        self.sent = []
        self.stopped = False
        ScriptedSession.instances.append(self)

    def start(self):
        return True

    def openService(self, name):
        return True

    def getService(self, name):
        return self.service

    def sendRequest(self, request):
        self.sent.append(request)

    def nextEvent(self, timeout):
        return self.remaining.pop(0)

    def stop(self):
        self.stopped = True


@pytest.fixture
def scripted_gateway(monkeypatch):
    def _connect(events):
        ScriptedSession.events = events
        monkeypatch.setattr(bloomberg_client.blpapi, "Session", ScriptedSession)
        gateway = BloombergGateway(host="localhost", port=8194, timeout=100)
        assert gateway.connect()
        return gateway

    return _connect


def test_fetch_drains_partial_responses_into_one_map(scripted_gateway):
    gateway = scripted_gateway([
        FakeEvent(blpapi.Event.SESSION_STATUS),
        FakeEvent(blpapi.Event.PARTIAL_RESPONSE, [
            message(security("EURSEKV1M BGN Curncy", {"PX_BID": "6.125", "PX_ASK": "6.375"})),
        ]),
        FakeEvent(blpapi.Event.PARTIAL_RESPONSE, [
            message(security("EURSEKV2M BGN Curncy", {"PX_BID": "6.2"})),
        ]),
        FakeEvent(blpapi.Event.RESPONSE, [
            message(security("SEKCNHV1M BGN Curncy", {"PX_BID": "5.5", "PX_ASK": "5.9"})),
        ]),
    ])
    identifiers = ["EURSEKV1M BGN Curncy", "EURSEKV2M BGN Curncy", "SEKCNHV1M BGN Curncy"]

    values = gateway.fetch_reference_data(identifiers, ["PX_BID", "PX_ASK"])

    assert values == {
        "EURSEKV1M BGN Curncy": {"PX_BID": "6.125", "PX_ASK": "6.375"},
        "EURSEKV2M BGN Curncy": {"PX_BID": "6.2"},
        "SEKCNHV1M BGN Curncy": {"PX_BID": "5.5", "PX_ASK": "5.9"},
    }
    session = ScriptedSession.instances[-1]
    assert len(session.sent) == 1
    assert session.sent[0].appended == {"securities": identifiers, "fields": ["PX_BID", "PX_ASK"]}
    assert session.remaining == []


def test_fetch_skips_securities_with_errors(scripted_gateway):
    gateway = scripted_gateway([
        FakeEvent(blpapi.Event.RESPONSE, [
            message(
                security("BADPAIRV1M BGN Curncy", error="Unknown/Invalid security"),
                security("EURSEK25R1M BGN Curncy", {"PX_MID": "-0.45"}),
            ),
        ]),
    ])

    values = gateway.fetch_reference_data(["BADPAIRV1M BGN Curncy", "EURSEK25R1M BGN Curncy"], ["PX_MID"])

    assert values == {"EURSEK25R1M BGN Curncy": {"PX_MID": "-0.45"}}


def test_fetch_stops_on_timeout_with_partial_data(scripted_gateway):
    gateway = scripted_gateway([
        FakeEvent(blpapi.Event.PARTIAL_RESPONSE, [
            message(security("EURSEKVON BGN Curncy", {"PX_BID": "4.0"})),
        ]),
        FakeEvent(blpapi.Event.TIMEOUT),
        FakeEvent(blpapi.Event.RESPONSE, [
            message(security("EURSEKV1W BGN Curncy", {"PX_BID": "4.5"})),
        ]),
    ])

    values = gateway.fetch_reference_data(["EURSEKVON BGN Curncy", "EURSEKV1W BGN Curncy"], ["PX_BID"])

    assert values == {"EURSEKVON BGN Curncy": {"PX_BID": "4.0"}}
    assert len(ScriptedSession.instances[-1].remaining) == 1


def test_disconnect_stops_session_once(scripted_gateway):
    gateway = scripted_gateway([])
    session = ScriptedSession.instances[-1]

    gateway.disconnect()
    gateway.disconnect()

    assert session.stopped
    assert not gateway.is_connected()
    assert gateway.fetch_reference_data(["EURSEKVON BGN Curncy"], ["PX_BID"]) == {}
