"""Event repository that sends messages to SQS queues."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from ..publishing import _retry, raw_message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SqsSendMessageInput:
    """A message sent to a queue."""

    message_body: str
    queue_url: str
    message_group_id: str | None = None


@dataclass
class SqsClient:
    """Sends each event to the queue named by its subject, concurrently.

    ``client`` needs ``resolve_queue_url(ctx, name)`` and ``publish(ctx, input)``
    methods.
    """

    client: Any

    def publish(self, ctx, events):
        events = list(events)
        logger.info("publishing to awssqs")
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
        queue_url = self.client.resolve_queue_url(ctx, event.subject)
        group = event.extensions.get("group")
        request = SqsSendMessageInput(
            message_body=message.decode(),
            queue_url=queue_url,
            message_group_id=None if group is None else str(group),
        )
        logger.info("%s %s", request.message_body, {"subject": event.subject, "id": event.id})
        _retry(lambda: self.client.publish(ctx, request), "could not be published in awssqs")