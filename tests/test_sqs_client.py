import pytest

from faasflow.datastore.sqs_client import SqsClient, SqsSendMessageInput
from faasflow.event import Event, InternalError


class FakeSqs:
    def __init__(self, resolve_error=None, publish_error=None):
        self.resolved = []
        self.inputs = []
        self.resolve_error = resolve_error
        self.publish_error = publish_error

    def resolve_queue_url(self, ctx, name):
        self.resolved.append(name)
        if self.resolve_error is not None:
            raise self.resolve_error
        return "blah"

    def publish(self, ctx, request):
        self.inputs.append(request)
        if self.publish_error is not None:
            raise self.publish_error


def make_event():
    return Event(subject="blah", id="123", source="/home/blah", type="order")


def test_new_client():
    client = FakeSqs()
    assert SqsClient(client) == SqsClient(client)
    assert SqsClient(client).client is client


def test_body_when_target_not_present():
    client = FakeSqs()
    SqsClient(client).publish({}, [make_event()])
    assert client.inputs[0].message_body == (
        '{"specversion":"1.0","id":"123","source":"/home/blah","type":"order","subject":"blah"}'
    )


def test_body_when_target_is_data():
    client = FakeSqs()
    event = make_event()
    event.set_extension("target", "data")
    event.set_data("", {"id": "123", "name": "xablau"})
    SqsClient(client).publish({}, [event])
    assert client.inputs[0].message_body == '{"id":"123","name":"xablau"}'


def test_body_when_target_is_not_data():
    client = FakeSqs()
    event = make_event()
    event.set_extension("target", "all")
    event.set_data("", {"id": "123", "name": "xablau"})
    SqsClient(client).publish({}, [event])
    assert client.inputs[0].message_body == (
        '{"specversion":"1.0","id":"123","source":"/home/blah","type":"order",'
        '"subject":"blah","data":{"id":"123","name":"xablau"},"target":"all"}'
    )


def test_resolve_queue_url_error_propagates():
    client = FakeSqs(resolve_error=InternalError("Ops!"))
    with pytest.raises(InternalError, match="Ops!"):
        SqsClient(client).publish({}, [make_event()])
    assert client.resolved == ["blah"]
    assert client.inputs == []


def test_publish_error_retries_five_times():
    client = FakeSqs(publish_error=ValueError("Wth.."))
    with pytest.raises(InternalError):
        SqsClient(client).publish({}, [make_event()])
    assert len(client.resolved) == 1
    assert len(client.inputs) == 5


def test_success_with_group():
    client = FakeSqs()
    event = make_event()
    event.set_extension("group", "g2")
    SqsClient(client).publish({}, [event])
    assert client.resolved == ["blah"]
    assert client.inputs == [SqsSendMessageInput(
        message_body=client.inputs[0].message_body, queue_url="blah", message_group_id="g2")]
    assert client.inputs[0].message_group_id == "g2"


def test_no_events_to_send():
    client = FakeSqs()
    assert SqsClient(client).publish({}, []) is None
    assert client.resolved == [] and client.inputs == []