"""Kafka consumers that feed records to a handler wrapper."""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field

from .config import KAFKA_ROOT, config
from .event import Event, FaasError, InOut

logger = logging.getLogger(__name__)


@dataclass
class KafkaOptions:
    brokers: list[str] = field(default_factory=list)
    subjects: list[str] = field(default_factory=list)
    group_id: str = ""
    concurrency: int = 10
    queue_capacity: int = 100
    min_bytes: int = 1
    max_bytes: int = 10485760
    start_offset: int = -1
    read_batch_timeout: float = 2.0
    max_wait: float = 2.0


def default_kafka_options():
    """Build options from configuration."""
    def key(name):
        return f"{KAFKA_ROOT}.{name}"

    return KafkaOptions(
        brokers=config.strings(key("brokers")),
        subjects=config.strings(key("topics")),
        group_id=config.string(key("groupId")),
        concurrency=config.int(key("concurrency")),
        queue_capacity=config.int(key("queueCapacity")),
        min_bytes=config.int(key("minBytes")),
        max_bytes=config.int(key("maxBytes")),
        start_offset=config.int(key("startOffset")),
        read_batch_timeout=float(config.get(key("readBatchTimeout"))),
        max_wait=float(config.get(key("maxWait"))),
    )


@dataclass(frozen=True)
class KafkaMessage:
    """A record read from a topic."""

    topic: str
    value: bytes = b""
    partition: int = 0
    offset: int = 0
    key: bytes = b""


def _debugf(message, *args):
    logger.debug(message, *args)


def _errorf(message, *args):
    logger.error(message, *args)


class KafkaHelper:
    """Consumes every configured topic, handling records concurrently.

    ``reader_factory(options, topic, logger=..., error_logger=...)`` must return
    a reader with ``read_message()`` returning a KafkaMessage and, optionally,
    ``close()``.
    """

    def __init__(self, options, handler, reader_factory, stop=None):
        self.options = options
        self.handler = handler
        self.reader_factory = reader_factory
        self._stop = stop if stop is not None else threading.Event()

    def start(self):
        """Consume all topics until stopped."""
        threads = [threading.Thread(target=self._subscribe, args=(topic,), daemon=True)
                   for topic in self.options.subjects]
        for thread in threads:
            thread.start()
        self._stop.wait()
        for thread in threads:
            thread.join()

    def _subscribe(self, topic):
        base = {"topic": topic, "groupId": self.options.group_id}
        reader = self.reader_factory(self.options, topic,
                                     logger=_debugf, error_logger=_errorf)
        semaphore = threading.BoundedSemaphore(max(1, self.options.concurrency))
        workers: list[threading.Thread] = []
        try:
            while not self._stop.is_set():
                if not semaphore.acquire(timeout=0.1):
                    continue
                try:
                    message = reader.read_message()
                except Exception as exc:
                    logger.error("%s", exc)
                    semaphore.release()
                    continue
                ctx = {"log_fields": {**base, "kafka_partition": message.partition,
                                      "kafka_topic": message.topic,
                                      "kafka_offset": message.offset}}
                worker = threading.Thread(target=self._work,
                                          args=(ctx, message, semaphore), daemon=True)
                worker.start()
                workers = [w for w in workers if w.is_alive()]
                workers.append(worker)
        finally:
            for worker in workers:
                worker.join()
            close = getattr(reader, "close", None)
            if close is not None:
                close()

    def _work(self, ctx, message, semaphore):
        try:
            self.handle(ctx, message)
        finally:
            semaphore.release()

    def handle(self, ctx, message):
        """Decode and process one record; returns the in/out pairs, or None if undecodable."""
        try:
            event = Event.from_json(message.value)
        except FaasError:
            try:
                data = json.loads(message.value)
            except (ValueError, TypeError) as exc:
                logger.error("could not decode kafka record. %s", exc)
                return None
            event = Event()
            try:
                event.set_data("", data)
            except FaasError as exc:
                logger.error("could set data from kafka record. %s", exc)
                return None

        inouts = [InOut(event)]
        try:
            self.handler.process(ctx, inouts)
        except Exception as exc:
            logger.error("%s", exc)
        return inouts