"""Command line entry: choose how events are received and run it."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from .config import default_cmd, event_provider_value
from .event import FaasError
from .handler_wrapper import HandlerWrapper, default_handler_wrapper_options
from .http_receiver import CloudEventsHelper
from .kafka_listener import KafkaHelper, default_kafka_options
from .nats_listener import NatsHelper, default_nats_options

logger = logging.getLogger(__name__)

_AWS_PROVIDERS = ("kinesis", "sns", "sqs")


@dataclass
class Application:
    """Everything the commands need: the handler, middlewares and connections."""

    handler: Callable
    middlewares: list = field(default_factory=list)
    ctx: dict = field(default_factory=dict)
    nats_conn: Any = None
    kafka_reader_factory: Callable | None = None
    http_host: str = ""
    http_port: int = 8080
    stop: threading.Event | None = None


@dataclass(frozen=True)
class Command:
    """A named way of running the application."""

    name: str
    short: str
    run: Callable[[Application], Any]


def _wrapper(app: Application) -> HandlerWrapper:
    return HandlerWrapper(app.handler, default_handler_wrapper_options(), app.middlewares)


def _run_cloudevents(app):
    helper = CloudEventsHelper(app.ctx, _wrapper(app), host=app.http_host,
                               port=app.http_port, stop=app.stop)
    return helper.start()


def _run_kafka(app):
    if app.kafka_reader_factory is None:
        raise FaasError("kafka reader factory is not configured")
    helper = KafkaHelper(default_kafka_options(), _wrapper(app), app.kafka_reader_factory,
                         stop=app.stop)
    return helper.start()


def _run_nats(app):
    if app.nats_conn is None:
        raise FaasError("nats connection is not configured")
    helper = NatsHelper(app.nats_conn, default_nats_options(), _wrapper(app), stop=app.stop)
    return helper.start()


def new_cloudevents():
    return Command("cloudevents", "cloudevents", _run_cloudevents)


def new_kafka():
    return Command("kafka", "kafka", _run_kafka)


def new_nats():
    return Command("nats", "nats", _run_nats)


def select_event_repository(factories):
    """Build the repository of the configured provider: kinesis, sns, sqs, or else nats."""
    provider = event_provider_value()
    logger.debug("Loading event provider %s", provider)
    key = provider if provider in _AWS_PROVIDERS else "nats"
    try:
        factory = factories[key]
    except KeyError:
        raise FaasError(f"no event repository for provider {key!r}") from None
    return factory()


def run(app, commands, argv=None):
    """Parse ``argv`` and run the chosen command, or the configured default."""
    argv = list(sys.argv[1:] if argv is None else argv)
    commands = list(commands)
    default = default_cmd()
    if default and (not argv or argv[0].startswith("-")):
        argv = [default, *argv]

    parser = argparse.ArgumentParser(prog="faas", description="faas")
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    for command in commands:
        subparsers.add_parser(command.name, help=command.short, description=command.short)
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return None
    chosen = next(c for c in commands if c.name == args.command)
    return chosen.run(app)