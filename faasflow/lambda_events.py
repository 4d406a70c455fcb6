"""Lambda trigger payloads and their conversion into CloudEvents."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from .event import APPLICATION_JSON, Event, FaasError, InOut, NotValidError

logger = logging.getLogger(__name__)

LAMBDA_CONTEXT_KEY = "lambda_context"


@dataclass(frozen=True)
class LambdaContext:
    """Invocation details the Lambda runtime hands to a function."""

    aws_request_id: str = ""
    invoked_function_arn: str = ""


def _lookup(data, key):
    """Find ``key`` in a mapping, falling back to a case-insensitive match."""
    if not isinstance(data, dict):
        return None
    if key in data:
        return data[key]
    lowered = key.lower()
    for name, value in data.items():
        if isinstance(name, str) and name.lower() == lowered:
            return value
    return None


def _string(data, key) -> str:
    value = _lookup(data, key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise NotValidError(f"field {key!r} must be a string")
    return value


def _object(data, key) -> dict:
    value = _lookup(data, key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise NotValidError(f"field {key!r} must be an object")
    return value


def _string_list(data, key) -> list[str]:
    value = _lookup(data, key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise NotValidError(f"field {key!r} must be a list of strings")
    return list(value)


@dataclass
class Record:
    """One record of a batched Lambda trigger (Kinesis, SQS, SNS, S3, DynamoDB)."""

    event_version: str = ""
    event_subscription_arn: str = ""
    event_source: str = ""
    event_name: str = ""
    event_id: str = ""
    sns: dict = field(default_factory=dict)
    s3: dict = field(default_factory=dict)
    kinesis: dict = field(default_factory=dict)
    dynamodb: dict = field(default_factory=dict)
    message_id: str = ""
    receipt_handle: str = ""
    body: str = ""
    md5_of_body: str = ""
    md5_of_message_attributes: str = ""
    attributes: dict = field(default_factory=dict)
    message_attributes: dict = field(default_factory=dict)
    event_source_arn: str = ""
    aws_region: str = ""
    user_identity: Any = None

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise NotValidError("record must be a json object")
        return cls(
            event_version=_string(data, "eventVersion"),
            event_subscription_arn=_string(data, "eventSubscriptionArn"),
            event_source=_string(data, "eventSource"),
            event_name=_string(data, "eventName"),
            event_id=_string(data, "eventID"),
            sns=_object(data, "sns"),
            s3=_object(data, "s3"),
            kinesis=_object(data, "kinesis"),
            dynamodb=_object(data, "dynamodb"),
            message_id=_string(data, "messageId"),
            receipt_handle=_string(data, "receiptHandle"),
            body=_string(data, "body"),
            md5_of_body=_string(data, "md5OfBody"),
            md5_of_message_attributes=_string(data, "md5OfMessageAttributes"),
            attributes=_object(data, "attributes"),
            message_attributes=_object(data, "messageAttributes"),
            event_source_arn=_string(data, "eventSourceARN"),
            aws_region=_string(data, "awsRegion"),
            user_identity=_lookup(data, "userIdentity"),
        )


@dataclass
class LambdaEvent:
    """The payload a Lambda function is invoked with."""

    id: str = ""
    source: str = ""
    region: str = ""
    detail_type: str = ""
    time: str = ""
    account: str = ""
    resources: list[str] = field(default_factory=list)
    records: list[Record] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise NotValidError("lambda event must be a json object")
        raw_records = _lookup(data, "Records")
        if raw_records is None:
            raw_records = []
        if not isinstance(raw_records, list):
            raise NotValidError("field 'Records' must be a list")
        return cls(
            id=_string(data, "id"),
            source=_string(data, "source"),
            region=_string(data, "region"),
            detail_type=_string(data, "detail-type"),
            time=_string(data, "time"),
            account=_string(data, "account"),
            resources=_string_list(data, "resources"),
            records=[Record.from_dict(r) for r in raw_records],
        )


def _lambda_context(ctx) -> LambdaContext:
    value = ctx.get(LAMBDA_CONTEXT_KEY) if isinstance(ctx, dict) else None
    return value if isinstance(value, LambdaContext) else LambdaContext()


def _set_lambda_extensions(event: Event, lc: LambdaContext) -> None:
    event.set_extension("awsRequestID", lc.aws_request_id)
    event.set_extension("invokedFunctionArn", lc.invoked_function_arn)


def convert_event(ctx, event, convert):
    """Convert every record with ``convert``, filling defaults from the record.

    A record that cannot be converted yields an InOut carrying the error.
    """
    lc = _lambda_context(ctx)
    inouts = []
    for record in event.records:
        logger.debug("%s", record)
        err = None
        try:
            converted = convert(record)
        except FaasError as exc:
            converted, err = Event(), exc
        if not converted.id:
            converted.id = record.event_id
        if not converted.type:
            converted.type = record.event_name
        if not converted.source:
            converted.source = record.event_source
        _set_lambda_extensions(converted, lc)
        inouts.append(InOut(converted, err=err))
    return inouts


def from_cloudwatch(ctx, event):
    """Build the single event of a scheduled (CloudWatch) invocation."""
    logger.info("receiving cloudwatch event")
    converted = Event(type=event.detail_type, id=event.id, source=event.source)
    _set_lambda_extensions(converted, _lambda_context(ctx))
    return [InOut(converted)]


def _event_or_json(raw: bytes, message: str) -> Event:
    """Decode ``raw`` as a CloudEvent, or else as plain JSON data."""
    try:
        return Event.from_json(raw)
    except FaasError:
        pass
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise NotValidError(message) from exc
    event = Event()
    try:
        event.set_data(APPLICATION_JSON, data)
    except FaasError as exc:
        raise NotValidError("could not set data in event") from exc
    return event


def from_dynamodb(record):
    identity = record.user_identity
    if identity is None:
        identity = {}
    if not isinstance(identity, dict):
        raise NotValidError("could not decode user identity")
    event = Event()
    event.set_extension("userIdentityPrincipalID", _string(identity, "principalId"))
    event.set_extension("userIdentityType", _string(identity, "type"))
    event.set_data("", record.dynamodb)
    return event


def from_kinesis(record):
    encoded = _lookup(record.kinesis, "data")
    if encoded is None:
        encoded = ""
    if not isinstance(encoded, str):
        raise NotValidError("could not decode kinesis record")
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise NotValidError("could not decode kinesis record") from exc
    return _event_or_json(raw, "could not decode kinesis record")


def from_s3(record):
    event = Event(id=_string(_object(record.s3, "object"), "key"))
    event.set_data("", record.s3)
    return event


def from_sns(record):
    message = _string(record.sns, "Message")
    event = _event_or_json(message.encode(), "could not decode SNS record")
    if not event.id:
        event.id = _string(record.sns, "MessageId")
    if not event.type:
        event.type = _string(record.sns, "Type")
    return event


def from_sqs(record):
    body = record.body.encode()
    try:
        event = Event.from_json(body)
    except FaasError:
        event = Event()
        try:
            entity = json.loads(body)
        except ValueError:
            entity = None
        message = _lookup(entity, "Message")
        if isinstance(message, str) and message:
            body = message.encode()
        event.set_data(APPLICATION_JSON, body)
    if not event.id:
        event.id = record.message_id
    return event