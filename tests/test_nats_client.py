import json

import pytest

from faasflow.datastore.nats_client import NatsClient
from faasflow.event import Event, InternalError, json_bytes


class FakeConn:
    def __init__(self, fail_subjects=()):
        self.published = []
        self.fail_subjects = set(fail_subjects)

    def publish(self, subject, data):
        self.published.append((subject, data))
        if subject in self.fail_subjects:
            raise ConnectionError("broken")


def make_event(subject="orders", event_id="1"):
    event = Event(id=event_id, source="src", type="t", subject=subject)
    event.set_data("", {"value": event_id})
    return event


def test_publishes_whole_event_to_subject():
    conn = FakeConn()
    event = make_event()
    assert NatsClient(conn).publish({}, [event]) is None
    assert conn.published == [(event.subject, json_bytes(event))]


def test_target_data_publishes_only_data():
    conn = FakeConn()
    event = make_event()
    event.set_extension("target", "data")
    NatsClient(conn).publish({}, [event])
    subject, data = conn.published[0]
    assert subject == event.subject
    assert json.loads(data) == event.data_as()


def test_publish_failure_does_not_stop_others():
    conn = FakeConn(fail_subjects={"bad"})
    first = make_event("bad", "1")
    second = make_event("good", "2")
    NatsClient(conn).publish({}, [first, second])
    assert [subject for subject, _ in conn.published] == ["bad", "good"]


def test_unencodable_event_is_skipped():
    conn = FakeConn()
    broken = Event(id="x", subject="a", data=b"{broken")
    good = make_event("b", "2")
    NatsClient(conn).publish({}, [broken, good])
    assert conn.published == [("b", json_bytes(good))]


def test_target_data_undecodable_raises():
    conn = FakeConn()
    broken = Event(id="x", subject="a", data=b"{broken")
    broken.set_extension("target", "data")
    with pytest.raises(InternalError):
        NatsClient(conn).publish({}, [broken])
    assert conn.published == []