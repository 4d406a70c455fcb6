"""Event repositories, the publishing wrapper and the publisher middleware."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Protocol, runtime_checkable

from .config import publisher_enabled
from .event import FaasError, InternalError, json_bytes
from .middleware import Middleware

logger = logging.getLogger(__name__)

PUBLISH_ATTEMPTS = 5


@runtime_checkable
class EventRepository(Protocol):
    """Something that knows how to publish events."""

    def publish(self, ctx, events):
        """Publish ``events``; raise on failure."""


def raw_message(event):
    """Bytes to send for ``event``: only its data when the ``target`` extension is ``data``."""
    if event.extensions.get("target") == "data":
        try:
            data = event.data_as()
        except FaasError as exc:
            raise InternalError(f"error on data as. {exc}") from exc
        return json.dumps(data, separators=(",", ":"), sort_keys=True,
                          ensure_ascii=False).encode()
    return json_bytes(event)


def _retry(operation, message, attempts=PUBLISH_ATTEMPTS):
    """Call ``operation`` until it succeeds, at most ``attempts`` times."""
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except Exception as exc:
            if attempt >= attempts:
                raise InternalError(message) from exc
            logger.debug("attempt %d failed: %s", attempt, exc)
    return None


class EventWrapperProvider:
    """Delegates publishing to a repository, recording which implementation it is."""

    def __init__(self, events):
        self.events = events
        self.impl = type(events).__name__
        self.pkg = type(events).__module__

    def publish(self, ctx, events):
        logger.debug("publishing %d events with %s.%s", len(events), self.pkg, self.impl)
        return self.events.publish(ctx, events)


class EventPublisher(Middleware):
    """Publishes every output event once all events of a batch were handled."""

    def __init__(self, events):
        self.events = events

    def after_all(self, ctx, inouts):
        if any(inout.err is not None for inout in inouts):
            logger.warning("the messages could not be published because one or more "
                           "messages contain errors")
            return ctx

        outs = []
        for inout in inouts:
            out = inout.out
            if out is None:
                continue
            source = inout.event
            out.id = str(uuid.uuid4())
            out.set_extension("parentId", source.id if source is not None else "")
            out.time = datetime.now(timezone.utc)
            if source is not None:
                for key, value in source.extensions.items():
                    try:
                        out.set_extension(key, value)
                    except ValueError as exc:
                        logger.warning("could not copy extension %s: %s", key, exc)
            outs.append(out)

        self.events.publish(ctx, outs)
        logger.info("published events")
        return ctx


def new_event_publisher(events):
    """Return the publisher middleware, or ``None`` when it is disabled."""
    if not publisher_enabled():
        return None
    return EventPublisher(events)