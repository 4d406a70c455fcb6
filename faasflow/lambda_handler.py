"""Lambda entry point that turns trigger payloads into processed CloudEvents."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .config import LAMBDA_SKIP, config
from .event import InternalError, TriggerNotImplementedError
from .lambda_events import (
    LAMBDA_CONTEXT_KEY,
    LambdaContext,
    LambdaEvent,
    convert_event,
    from_cloudwatch,
    from_dynamodb,
    from_kinesis,
    from_s3,
    from_sns,
    from_sqs,
)

logger = logging.getLogger(__name__)

_CONVERTERS = {
    "aws:kinesis": from_kinesis,
    "aws:sqs": from_sqs,
    "aws:sns": from_sns,
    "aws:s3": from_s3,
    "aws:dynamodb": from_dynamodb,
}


@dataclass
class LambdaOptions:
    skip: bool = False


def default_lambda_options():
    """Build options from configuration."""
    return LambdaOptions(skip=config.bool(LAMBDA_SKIP))


class LambdaHandler:
    """Converts a Lambda event into CloudEvents and processes them."""

    def __init__(self, handler, options=None):
        self.handler = handler
        self.options = options if options is not None else LambdaOptions()

    def __eq__(self, other):
        if not isinstance(other, LambdaHandler):
            return NotImplemented
        return self.handler == other.handler and self.options == other.options

    def handle(self, ctx, event):
        """Process ``event``; raise if any event could not be handled."""
        ctx = dict(ctx or {})
        lc = ctx.get(LAMBDA_CONTEXT_KEY)
        if not isinstance(lc, LambdaContext):
            raise InternalError("lambda context not exists")
        if isinstance(event, dict):
            event = LambdaEvent.from_dict(event)
        ctx["awsrequestid"] = lc.aws_request_id

        if self.options.skip:
            logger.info("skipping event")
            return

        inouts = self._inouts(ctx, event)
        if inouts:
            self.handler.process(ctx, inouts)
            logger.debug("all events called")
            for inout in inouts:
                if inout.err is not None:
                    raise InternalError("closing with errors lambda handle") from inout.err

        logger.info("closing lambda handle")

    def _inouts(self, ctx, event):
        if event.records:
            source = event.records[0].event_source
            logger.info("receiving %s event", source)
            try:
                convert = _CONVERTERS[source]
            except KeyError:
                raise TriggerNotImplementedError(
                    "the trigger received has not yet been implemented") from None
            return convert_event(ctx, event, convert)
        if event.source == "aws.events":
            return from_cloudwatch(ctx, event)
        logger.warning("ignoring trigger")
        return []


class LambdaHelper:
    """Callable to register as the Lambda function: ``helper(event, context)``."""

    def __init__(self, handler, options=None):
        self.handler = LambdaHandler(handler, options)

    def __eq__(self, other):
        if not isinstance(other, LambdaHelper):
            return NotImplemented
        return self.handler == other.handler

    def __call__(self, event, context):
        lc = LambdaContext(
            aws_request_id=getattr(context, "aws_request_id", "") or "",
            invoked_function_arn=getattr(context, "invoked_function_arn", "") or "",
        )
        self.handler.handle({LAMBDA_CONTEXT_KEY: lc}, LambdaEvent.from_dict(event))


def new_default_lambda_helper(handler):
    """Build a helper for ``handler`` with options from configuration."""
    return LambdaHelper(handler, default_lambda_options())