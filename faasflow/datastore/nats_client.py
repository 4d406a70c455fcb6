"""Event repository that publishes to NATS subjects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..event import InternalError
from ..publishing import raw_message

logger = logging.getLogger(__name__)


@dataclass
class NatsClient:
    """Publishes each event to the subject it names.

    ``conn`` needs a ``publish(subject, data)`` method.
    """

    conn: Any

    def publish(self, ctx, events):
        """Publish every event; events that cannot be sent are logged and skipped."""
        logger.info("publishing to nats")
        for event in events:
            fields = {"subject": event.subject, "id": event.id}
            try:
                message = raw_message(event)
            except InternalError as exc:
                if event.extensions.get("target") == "data":
                    raise
                logger.error("error when transforming json into bytes: %s %s", exc, fields)
                continue

            logger.info("%s %s", message.decode(errors="replace"), fields)
            try:
                self.conn.publish(event.subject, message)
            except Exception as exc:
                logger.error("unable to publish to nats: %s %s", exc, fields)