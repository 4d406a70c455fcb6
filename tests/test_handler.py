import json

import pytest

from faasflow.event import APPLICATION_JSON, TEXT_PLAIN, Event, InternalError
from faasflow.handler import Handler, from_sqs, is_sqs_event
from faasflow.handler_wrapper import HandlerWrapper, default_handler_wrapper_options


def noop(ctx, event):
    return None


def wrapper(fn=noop):
    return HandlerWrapper(fn, default_handler_wrapper_options())


def test_new_handler_equal():
    out = Event(id="out")
    hw = wrapper(lambda c, e: out)
    first, second = Handler(hw), Handler(hw)
    assert first == second
    assert first.handle({}, Event(id="1")) is out
    assert second.handle({}, Event(id="2")) is out


def test_handle_success():
    e = Event(subject="changeme", source="changeme", type="changeme")
    e.set_data("", "changeme")
    assert Handler(wrapper()).handle({}, e) is None


def test_handle_returns_output():
    out = Event(id="out")
    assert Handler(wrapper(lambda c, e: out)).handle({}, Event(id="in")) is out


def test_handle_error_raises():
    def boom(ctx, event):
        raise RuntimeError("x")

    with pytest.raises(InternalError):
        Handler(wrapper(boom)).handle({}, Event(id="1"))


def test_is_sqs_event():
    assert is_sqs_event(Event(type="aws.sqs.message"))
    assert is_sqs_event(Event(type="com.amazon.sqs.message"))
    assert not is_sqs_event(Event(type="changeme"))


def test_from_sqs_json_body():
    e = Event(type="aws.sqs.message")
    e.set_data("", {"body": json.dumps({"id": "abc"})})
    from_sqs(e)
    assert e.data_content_type == APPLICATION_JSON
    assert e.data_as() == {"id": "abc"}


def test_from_sqs_wrapped_sns():
    e = Event(type="aws.sqs.message")
    inner = json.dumps({"Message": json.dumps({"test": "123"})})
    e.set_data("", {"body": inner})
    from_sqs(e)
    assert e.data_as() == {"test": "123"}


def test_from_sqs_plain_text():
    e = Event(type="aws.sqs.message")
    e.set_data("", {"body": "hello"})
    from_sqs(e)
    assert e.data_content_type == TEXT_PLAIN
    assert e.data_as() == "hello"