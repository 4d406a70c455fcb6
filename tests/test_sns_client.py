import json

import pytest

from faasflow.datastore.sns_client import SnsClient
from faasflow.event import Event, InternalError, json_bytes
from faasflow.publishing import PUBLISH_ATTEMPTS


class FakeSns:
    def __init__(self, error=None):
        self.inputs = []
        self.error = error

    def publish(self, ctx, request):
        self.inputs.append(request)
        if self.error is not None:
            raise self.error


def make_event(subject="arn:topic", event_id="1"):
    event = Event(id=event_id, source="src", type="t", subject=subject)
    event.set_data("", {"value": event_id})
    return event


def test_publishes_event_wrapped_in_default_envelope():
    client = FakeSns()
    event = make_event()
    SnsClient(client).publish({}, [event])
    (request,) = client.inputs
    assert request.message_structure == "json"
    assert request.topic_arn == event.subject
    assert json.loads(request.message) == {"default": json_bytes(event).decode()}


def test_target_data_sends_only_data():
    client = FakeSns()
    event = make_event()
    event.set_extension("target", "data")
    SnsClient(client).publish({}, [event])
    envelope = json.loads(client.inputs[0].message)
    assert json.loads(envelope["default"]) == event.data_as()


def test_every_event_is_sent():
    client = FakeSns()
    events = [make_event(f"topic-{n}", str(n)) for n in range(4)]
    SnsClient(client).publish({}, events)
    assert sorted(r.topic_arn for r in client.inputs) == sorted(e.subject for e in events)


def test_failure_retries_then_raises():
    client = FakeSns(RuntimeError("down"))
    with pytest.raises(InternalError):
        SnsClient(client).publish({}, [make_event()])
    assert len(client.inputs) == PUBLISH_ATTEMPTS


def test_no_events_sends_nothing():
    client = FakeSns()
    assert SnsClient(client).publish({}, []) is None
    assert client.inputs == []