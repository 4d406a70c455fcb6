"""Event repository that puts records on Kinesis streams."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from ..config import random_partition_key_value
from ..event import InternalError
from ..publishing import _retry, raw_message

logger = logging.getLogger(__name__)

UNKNOWN_PARTITION_KEY = "unknown"


@dataclass
class KinesisOptions:
    random_partition_key: bool = False


def default_kinesis_options():
    """Build options from configuration."""
    return KinesisOptions(random_partition_key=random_partition_key_value())


@dataclass(frozen=True)
class KinesisRecord:
    """A single record put on a stream."""

    data: bytes
    partition_key: str
    stream_name: str


@dataclass(frozen=True)
class KinesisEntry:
    """One entry of a batched put on a stream."""

    data: bytes
    partition_key: str


def partition_key(event):
    """The ``partitionkey`` extension of ``event``, or ``unknown``."""
    value = event.extensions.get("partitionkey")
    return UNKNOWN_PARTITION_KEY if value is None else str(value)


@dataclass
class KinesisClient:
    """Publishes events to the stream named by their subject.

    ``client`` needs ``publish(ctx, record)`` and
    ``bulk_publish(ctx, entries, stream_name)`` methods.
    """

    client: Any
    options: KinesisOptions = field(default_factory=KinesisOptions)

    def publish(self, ctx, events):
        """Publish one event as a record, or several as one batch per stream."""
        events = list(events)
        logger.info("publishing to awskinesis")
        if not events:
            logger.warning("no messages were reported for posting")
            return
        send = self._multi if len(events) > 1 else self._single
        _retry(lambda: send(ctx, events), "could not be published on awskinesis")

    def _multi(self, ctx, events):
        bulks: dict[str, list[KinesisEntry]] = {}
        for event in events:
            message = raw_message(event)
            key = partition_key(event)
            logger.info("%s %s", message.decode(errors="replace"),
                        {"partitionKey": key, "subject": event.subject, "id": event.id})
            bulks.setdefault(event.subject, []).append(KinesisEntry(message, key))

        for stream, entries in bulks.items():
            try:
                self.client.bulk_publish(ctx, entries, stream)
            except Exception as exc:
                raise InternalError("could not be bulk publish in awskinesis") from exc

    def _single(self, ctx, events):
        event = events[0]
        message = raw_message(event)
        key = partition_key(event)
        logger.info("%s %s", message.decode(errors="replace"),
                    {"partitionKey": key, "subject": event.subject, "id": event.id})
        try:
            self.client.publish(ctx, KinesisRecord(message, key, event.subject))
        except Exception as exc:
            raise InternalError("could not be single publish in awskinesis") from exc