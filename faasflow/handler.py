"""Single-event handler entry point, with SQS envelope unwrapping."""

from __future__ import annotations

import json
import logging

from .event import APPLICATION_JSON, TEXT_PLAIN, InOut, InternalError

logger = logging.getLogger(__name__)

_SQS_TYPES = ("com.amazon.sqs.message", "aws.sqs.message")


def is_sqs_event(event):
    return event.type in _SQS_TYPES


def _field(obj, name):
    if not isinstance(obj, dict):
        return ""
    lowered = name.lower()
    for key, value in obj.items():
        if key.lower() == lowered:
            return value if isinstance(value, str) else ""
    return ""


def _loads(raw):
    try:
        return json.loads(raw)
    except (ValueError, TypeError) as exc:
        logger.error("%s", exc)
        return None


def from_sqs(event):
    """Replace the event data with the SQS body, or the SNS message it carries."""
    body = _field(_loads(event.data or b""), "body")
    message = _field(_loads(body.encode()), "message") if body else ""
    data = (message or body).encode()
    content_type = TEXT_PLAIN
    try:
        if isinstance(json.loads(data), dict):
            content_type = APPLICATION_JSON
    except ValueError:
        pass
    event.set_data(content_type, data)


class Handler:
    """Processes one event through a handler wrapper."""

    def __init__(self, handler):
        self.handler = handler

    def __eq__(self, other):
        if not isinstance(other, Handler):
            return NotImplemented
        return self.handler == other.handler

    def handle(self, ctx, event):
        """Process ``event`` and return the handler's output event."""
        if is_sqs_event(event):
            from_sqs(event)
        inouts = [InOut(event)]
        self.handler.process(ctx, inouts)
        logger.debug("all events called")
        for inout in inouts:
            if inout.err is not None:
                raise InternalError("closing with errors lambda handle") from inout.err
        return inouts[0].out