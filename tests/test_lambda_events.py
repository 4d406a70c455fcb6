import base64
import json

import pytest

from faasflow.event import APPLICATION_JSON, Event, NotValidError
from faasflow.lambda_events import (
    LAMBDA_CONTEXT_KEY,
    LambdaContext,
    LambdaEvent,
    Record,
    convert_event,
    from_cloudwatch,
    from_dynamodb,
    from_kinesis,
    from_s3,
    from_sns,
    from_sqs,
)

LC = LambdaContext(aws_request_id="req-1", invoked_function_arn="arn:fn")
CTX = {LAMBDA_CONTEXT_KEY: LC}


def _b64(obj):
    return base64.b64encode(json.dumps(obj).encode()).decode()


def _cloudevent(**extra):
    data = {"specversion": "1.0", "id": "evt-1", "source": "src", "type": "kind",
            "data": {"value": "x"}}
    data.update(extra)
    return data


def test_record_from_dict_matches_keys_case_insensitively():
    record = Record.from_dict({"EventSource": "aws:sns", "Sns": {"Message": "m"},
                               "eventID": "e1"})
    assert record.event_source == "aws:sns"
    assert record.sns == {"Message": "m"}
    assert record.event_id == "e1"


def test_record_from_dict_rejects_non_object():
    with pytest.raises(NotValidError):
        Record.from_dict(["not", "a", "dict"])


def test_record_from_dict_rejects_wrong_field_type():
    with pytest.raises(NotValidError):
        Record.from_dict({"eventID": 5})


def test_lambda_event_from_dict_reads_records_and_detail_type():
    event = LambdaEvent.from_dict({"id": "c1", "source": "aws.events",
                                   "detail-type": "Scheduled Event",
                                   "resources": ["r1"],
                                   "Records": [{"eventSource": "aws:sqs"}]})
    assert event.detail_type == "Scheduled Event"
    assert event.resources == ["r1"]
    assert [r.event_source for r in event.records] == ["aws:sqs"]


def test_from_kinesis_decodes_cloudevent():
    record = Record(kinesis={"data": _b64(_cloudevent())})
    event = from_kinesis(record)
    assert (event.id, event.source, event.type) == ("evt-1", "src", "kind")
    assert event.data_as() == {"value": "x"}


def test_from_kinesis_wraps_plain_json():
    record = Record(kinesis={"data": _b64({"value": "y"})})
    event = from_kinesis(record)
    assert event.data_content_type == APPLICATION_JSON
    assert event.data_as() == {"value": "y"}
    assert event.id == ""


def test_from_kinesis_rejects_non_json():
    record = Record(kinesis={"data": base64.b64encode(b"not json").decode()})
    with pytest.raises(NotValidError):
        from_kinesis(record)


def test_from_kinesis_rejects_bad_base64():
    with pytest.raises(NotValidError):
        from_kinesis(Record(kinesis={"data": "***"}))


def test_from_sns_plain_message_takes_id_and_type_from_entity():
    record = Record(sns={"Message": json.dumps({"k": "v"}), "MessageId": "m-1",
                         "Type": "Notification"})
    event = from_sns(record)
    assert event.id == "m-1"
    assert event.type == "Notification"
    assert event.data_as() == {"k": "v"}


def test_from_sns_cloudevent_keeps_its_own_id():
    record = Record(sns={"Message": json.dumps(_cloudevent()), "MessageId": "m-1"})
    event = from_sns(record)
    assert event.id == "evt-1"


def test_from_sns_rejects_non_json():
    with pytest.raises(NotValidError):
        from_sns(Record(sns={"Message": "plain text"}))


def test_from_sqs_cloudevent_body():
    event = from_sqs(Record(body=json.dumps(_cloudevent()), message_id="m-9"))
    assert event.id == "evt-1"
    assert event.data_as() == {"value": "x"}


def test_from_sqs_plain_body_uses_message_id():
    event = from_sqs(Record(body=json.dumps({"a": "b"}), message_id="m-9"))
    assert event.id == "m-9"
    assert event.data_as() == {"a": "b"}


def test_from_sqs_unwraps_sns_message():
    body = json.dumps({"Message": json.dumps({"inner": "z"}), "Type": "Notification"})
    event = from_sqs(Record(body=body, message_id="m-9"))
    assert event.data_as() == {"inner": "z"}


def test_from_sqs_keeps_non_json_body_raw():
    event = from_sqs(Record(body="raw text", message_id="m-9"))
    assert event.data == b"raw text"


def test_from_s3_uses_object_key_as_id():
    s3 = {"bucket": {"name": "bkt"}, "object": {"key": "obj-key", "size": 10}}
    event = from_s3(Record(s3=s3))
    assert event.id == "obj-key"
    assert event.data_as() == s3


def test_from_dynamodb_sets_identity_extensions():
    dynamodb = {"Keys": {"K": {"S": "v"}}}
    record = Record(dynamodb=dynamodb,
                    user_identity={"type": "Service", "principalId": "svc"})
    event = from_dynamodb(record)
    assert event.extensions["useridentitytype"] == "Service"
    assert event.extensions["useridentityprincipalid"] == "svc"
    assert event.data_as() == dynamodb


def test_from_dynamodb_without_identity_uses_empty_values():
    event = from_dynamodb(Record())
    assert event.extensions["useridentitytype"] == ""
    assert event.extensions["useridentityprincipalid"] == ""


def test_from_dynamodb_rejects_bad_identity():
    with pytest.raises(NotValidError):
        from_dynamodb(Record(user_identity="nope"))


def test_from_cloudwatch_builds_single_event():
    event = LambdaEvent(id="c1", source="aws.events", detail_type="Scheduled Event")
    inouts = from_cloudwatch(CTX, event)
    assert len(inouts) == 1
    got = inouts[0].event
    assert (got.id, got.source, got.type) == ("c1", "aws.events", "Scheduled Event")
    assert got.extensions["awsrequestid"] == "req-1"
    assert got.extensions["invokedfunctionarn"] == "arn:fn"


def test_convert_event_fills_defaults_and_extensions_in_order():
    records = [Record(event_id=f"id-{n}", event_name="Created", event_source="aws:test")
               for n in range(3)]
    inouts = convert_event(CTX, LambdaEvent(records=records), lambda r: Event())
    assert [i.event.id for i in inouts] == ["id-0", "id-1", "id-2"]
    assert all(i.event.type == "Created" and i.event.source == "aws:test" for i in inouts)
    assert all(i.event.extensions["awsrequestid"] == "req-1" for i in inouts)
    assert all(i.err is None for i in inouts)


def test_convert_event_keeps_converter_error():
    def failing(record):
        raise NotValidError("bad record")

    inouts = convert_event(CTX, LambdaEvent(records=[Record(event_id="e1")]), failing)
    assert isinstance(inouts[0].err, NotValidError)
    assert inouts[0].event.id == "e1"


def test_convert_event_without_lambda_context_uses_empty_values():
    inouts = convert_event({}, LambdaEvent(records=[Record()]), lambda r: Event())
    assert inouts[0].event.extensions["awsrequestid"] == ""