"""NATS queue subscribers that feed received messages to a handler wrapper."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field

from .config import nats_queue_value, nats_subjects_value
from .event import Event, FaasError, InOut

logger = logging.getLogger(__name__)


@dataclass
class NatsOptions:
    subjects: list[str] = field(default_factory=list)
    queue: str = ""


def default_nats_options():
    """Build options from configuration."""
    return NatsOptions(subjects=nats_subjects_value(), queue=nats_queue_value())


class SubscriberListener:
    """Subscribes to one subject in a queue group and processes its messages.

    ``conn`` needs a ``queue_subscribe(subject, queue, callback)`` method.
    """

    def __init__(self, conn, handler, subject, queue):
        self.conn = conn
        self.handler = handler
        self.subject = subject
        self.queue = queue

    def subscribe(self):
        """Subscribe to the subject within the queue group."""
        return self.conn.queue_subscribe(self.subject, self.queue, self.handle)

    def handle(self, data):
        """Process one message (raw bytes or an object with ``data``).

        Returns the processed in/out pairs.
        """
        raw = getattr(data, "data", data)
        try:
            event = Event.from_json(raw)
        except FaasError:
            event = Event()
            try:
                payload = json.loads(raw)
            except (ValueError, TypeError) as exc:
                logger.error("could not decode nats record. %s", exc)
            else:
                try:
                    event.set_data("", payload)
                except FaasError as exc:
                    logger.error("could set data from nats record. %s", exc)
                    return []

        fields = {"subject": self.subject, "queue": self.queue}
        ctx = {"log_fields": fields}
        inouts = [InOut(event)]
        if self.handler is None:
            logger.error("no handler to process message %s", fields)
            return inouts
        try:
            self.handler.process(ctx, inouts)
        except Exception as exc:
            logger.error("%s %s", exc, fields)
        return inouts


class NatsHelper:
    """Subscribes the handler to every configured subject and waits."""

    def __init__(self, conn, options, handler, stop=None):
        self.handler = handler
        self.queue = options.queue
        self.subjects = list(options.subjects)
        self.conn = conn
        self._stop = stop if stop is not None else threading.Event()

    def __eq__(self, other):
        if not isinstance(other, NatsHelper):
            return NotImplemented
        return (self.handler == other.handler and self.queue == other.queue
                and self.subjects == other.subjects and self.conn is other.conn)

    def start(self):
        """Subscribe to all subjects, then block until stopped.

        Returns the subscriptions, ``None`` for subjects that failed.
        """
        subscriptions = [self._subscribe(subject) for subject in self.subjects]
        self._stop.wait()
        return subscriptions

    def _subscribe(self, subject):
        listener = SubscriberListener(self.conn, self.handler, subject, self.queue)
        try:
            subscription = listener.subscribe()
        except Exception as exc:
            logger.error("%s", exc)
            subscription = None
        if subscription is not None:
            logger.info("nats: subscribed on %s with queue %s", subject, self.queue)
        else:
            logger.error("nats: not subscribed on %s with queue %s", subject, self.queue)
        return subscription


def new_default_nats_helper(conn, handler):
    """Build a helper with options from configuration."""
    return NatsHelper(conn, default_nats_options(), handler)