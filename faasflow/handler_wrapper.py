"""Runs an event handler over a batch of events with middleware."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .config import handle_discard_events_id_value
from .event import InternalError

logger = logging.getLogger(__name__)


@dataclass
class HandlerWrapperOptions:
    ids_to_discard: list[str] = field(default_factory=list)


def default_handler_wrapper_options():
    """Build options from the configured list of discarded event IDs."""
    ids = handle_discard_events_id_value().split(",")
    if ids[0] == "":
        return HandlerWrapperOptions()
    return HandlerWrapperOptions(ids_to_discard=ids)


def _name(middleware) -> str:
    return type(middleware).__name__


class HandlerWrapper:
    """Calls ``handler(ctx, event)`` for each event, surrounded by middleware hooks."""

    def __init__(self, handler, options=None, middlewares=()):
        self.handler = handler
        self.options = options if options is not None else HandlerWrapperOptions()
        self.middlewares = [m for m in middlewares if m is not None]

    def __eq__(self, other):
        if not isinstance(other, HandlerWrapper):
            return NotImplemented
        return (self.handler is other.handler and self.options == other.options
                and self.middlewares == other.middlewares)

    def process(self, ctx, inouts):
        """Run all hooks and the handler; raise InternalError if a batch hook fails."""
        ctx = {} if ctx is None else ctx
        for m in self.middlewares:
            try:
                ctx = m.before_all(ctx, inouts)
            except Exception as exc:
                raise InternalError(
                    f"an error happened when calling before_all() method in {_name(m)} middleware"
                ) from exc
        self._handle_all(ctx, inouts)
        for m in self.middlewares:
            try:
                ctx = m.after_all(ctx, inouts)
            except Exception as exc:
                raise InternalError(
                    f"an error happened when calling after_all() method in {_name(m)} middleware"
                ) from exc
        for m in self.middlewares:
            try:
                m.close(ctx)
            except Exception as exc:
                raise InternalError(
                    f"an error happened when calling close() method in {_name(m)} middleware"
                ) from exc

    def _handle_all(self, parent_ctx, inouts):
        for inout in inouts:
            event = inout.event
            if event is None:
                logger.warning("discarding inout with no event")
                continue
            fields = {"event.id": event.id,
                      "event.parentId": event.extensions.get("parentid"),
                      "event.source": event.source, "event.type": event.type}
            if inout.err is not None:
                logger.warning("discarding message due to error: %s %s", inout.err, fields)
                inout.err = None
                continue
            if event.id in self.options.ids_to_discard:
                logger.warning("discarding event due to feature flag %s", fields)
                continue

            ctx = {**parent_ctx, "log_fields": fields} if isinstance(parent_ctx, dict) else parent_ctx
            for m in self.middlewares:
                try:
                    ctx = m.before(ctx, event)
                except Exception as exc:
                    logger.warning("could not execute before in %s: %s", _name(m), exc)
                    break

            out = None
            try:
                out = self.handler(ctx, event)
            except Exception as exc:
                err = InternalError("unable process event")
                err.__cause__ = exc
                inout.err = err
            inout.out = out
            inout.context = ctx

            for m in self.middlewares:
                try:
                    ctx = m.after(ctx, event, out, inout.err)
                except Exception as exc:
                    logger.warning("could not execute after in %s: %s", _name(m), exc)
                    break


def default_handler_wrapper(handler, *args):
    """Wrap ``handler`` with the given middlewares and configured options."""
    return HandlerWrapper(handler, default_handler_wrapper_options(), args)