"""Configuration registry with defaults, overrides and environment lookup."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

_TRUE = {"1", "t", "true", "yes", "y", "on"}
_FALSE = {"0", "f", "false", "no", "n", "off", ""}


@dataclass(frozen=True)
class _Entry:
    default: Any
    description: str


def _env_name(key: str) -> str:
    return key.upper().replace(".", "_")


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"invalid boolean value {raw!r}")


def _coerce(raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        return _parse_bool(raw)
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    if isinstance(default, (list, tuple)):
        return [item.strip() for item in raw.split(",")] if raw else []
    return raw


class Config:
    """Registered keys whose values come from overrides, the environment or defaults.

    An environment variable is named after the key, upper-cased with dots
    replaced by underscores (``faas.cmd.default`` -> ``FAAS_CMD_DEFAULT``).
    """

    def __init__(self, values: Mapping[str, Any] | None = None,
                 environ: Mapping[str, str] | None = None) -> None:
        self._entries: dict[str, _Entry] = {}
        self._values = dict(values or {})
        self._environ = environ

    def add(self, key, default, description):
        """Register a key with its default value and description."""
        self._entries[key] = _Entry(default, description)

    def _env(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def get(self, key):
        """Return the current value of a registered key."""
        if key in self._values:
            return self._values[key]
        try:
            entry = self._entries[key]
        except KeyError:
            raise KeyError(f"unknown configuration key {key!r}") from None
        raw = self._env().get(_env_name(key))
        if raw is None:
            default = entry.default
            return list(default) if isinstance(default, (list, tuple)) else default
        return _coerce(raw, entry.default)

    def string(self, key):
        value = self.get(key)
        return "" if value is None else str(value)

    def strings(self, key):
        value = self.get(key)
        if isinstance(value, str):
            return _coerce(value, [])
        return [str(item) for item in value or []]

    def bool(self, key):
        value = self.get(key)
        return _parse_bool(value) if isinstance(value, str) else bool(value)

    def int(self, key):
        return int(self.get(key))

    def section(self, prefix):
        """Return every key under ``prefix`` mapped by its remaining suffix."""
        start = prefix + "."
        return {key[len(start):]: self.get(key)
                for key in self._entries if key.startswith(start)}


CLOUDEVENTS_ROOT = "faas.cloudevents"
PLUGINS_ROOT = CLOUDEVENTS_ROOT + ".plugins"
HANDLE_DISCARD_EVENTS_ID = CLOUDEVENTS_ROOT + ".handle.discard.ids"
CMD_ROOT = "faas.cmd"
CMD_DEFAULT = CMD_ROOT + ".default"
DATASTORE_ROOT = "faas.datastore"
EVENT_PROVIDER = DATASTORE_ROOT + ".event.provider"
LAMBDA_ROOT = "faas.lambda"
LAMBDA_SKIP = LAMBDA_ROOT + ".skip"
NATS_ROOT = "faas.nats"
NATS_SUBJECTS = NATS_ROOT + ".subjects"
NATS_QUEUE = NATS_ROOT + ".queue"
KAFKA_ROOT = "faas.kafka"
KINESIS_ROOT = "faas.provider.kinesis"
KINESIS_RANDOM_PARTITION_KEY = KINESIS_ROOT + ".randomPartitionKey"
PUBLISHER_ROOT = PLUGINS_ROOT + ".publisher"
PUBLISHER_ENABLED = PUBLISHER_ROOT + ".enabled"

config = Config()

config.add(HANDLE_DISCARD_EVENTS_ID, "",
           "cloudevents events id that will not be processed, comma separated")
config.add(CMD_DEFAULT, "", "default cmd")
config.add(EVENT_PROVIDER, "nats", "event provider")
config.add(LAMBDA_SKIP, False, "skip all triggers")
config.add(NATS_SUBJECTS, ["changeme"], "nats listener subjects")
config.add(NATS_QUEUE, "changeme", "nats listener queue")
config.add(KAFKA_ROOT + ".topics", ["changeme"], "kafka listener topics")
config.add(KAFKA_ROOT + ".brokers", ["localhost:9090"], "kafka listener brokers")
config.add(KAFKA_ROOT + ".groupId", "changeme", "kafka listener groupId")
config.add(KAFKA_ROOT + ".concurrency", 10, "kafka listener concurrency")
config.add(KAFKA_ROOT + ".queueCapacity", 100, "defines queue capacity")
config.add(KAFKA_ROOT + ".minBytes", 1, "defines batch min bytes")
config.add(KAFKA_ROOT + ".maxBytes", 10485760, "defines batch max bytes")
config.add(KAFKA_ROOT + ".readBatchTimeout", 2.0, "defines read batch timeout in seconds")
config.add(KAFKA_ROOT + ".maxWait", 2.0, "defines max wait in seconds")
config.add(KAFKA_ROOT + ".startOffset", -1,
           "defines start offset LastOffset=-1, FirstOffset=-2")
config.add(KINESIS_RANDOM_PARTITION_KEY, False, "ramdomize partition key")
config.add(PUBLISHER_ENABLED, True, "enable/disable publisher middleware")


def handle_discard_events_id_value():
    """Comma separated event IDs that are not processed."""
    return config.string(HANDLE_DISCARD_EVENTS_ID)


def default_cmd():
    """Name of the command run when none is given."""
    return config.string(CMD_DEFAULT)


def event_provider_value():
    """Configured event provider; ``nats`` unless set."""
    return config.string(EVENT_PROVIDER)


def publisher_enabled():
    """Whether the publisher middleware is enabled."""
    return config.bool(PUBLISHER_ENABLED)


def random_partition_key_value():
    """Whether kinesis partition keys are randomised."""
    return config.bool(KINESIS_RANDOM_PARTITION_KEY)


def nats_subjects_value():
    return config.strings(NATS_SUBJECTS)


def nats_queue_value():
    return config.string(NATS_QUEUE)