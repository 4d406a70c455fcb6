"""Event repository that publishes to SNS topics."""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from ..publishing import _retry, raw_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnsPublishInput:
    """A message published on a topic."""

    message: str
    message_structure: str
    topic_arn: str


def _envelope(message: bytes) -> str:
    text = json.dumps({"default": message.decode()}, ensure_ascii=False,
                      separators=(",", ":"))
    return text.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")


@dataclass
class SnsClient:
    """Publishes each event to the topic named by its subject, concurrently.

    ``client`` needs a ``publish(ctx, input)`` method.
    """

    client: Any

    def publish(self, ctx, events):
        events = list(events)
        logger.info("publishing to awssns")
        if not events:
            logger.warning("no messages were reported for posting")
            return
        self._send(ctx, events)

    def _send(self, ctx, events):
        with ThreadPoolExecutor(max_workers=len(events)) as pool:
            futures = [pool.submit(self._send_one, ctx, event) for event in events]
        for future in futures:
            error = future.exception()
            if error is not None:
                raise error

    def _send_one(self, ctx, event):
        message = raw_message(event)
        request = SnsPublishInput(message=_envelope(message), message_structure="json",
                                  topic_arn=event.subject)
        logger.info("%s %s", message.decode(errors="replace"),
                    {"subject": event.subject, "id": event.id})
        _retry(lambda: self.client.publish(ctx, request), "could not be published in awssns")