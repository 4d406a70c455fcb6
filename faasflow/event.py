"""CloudEvents event model, in/out pairs and errors."""

from __future__ import annotations

import base64
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

APPLICATION_JSON = "application/json"
TEXT_PLAIN = "text/plain"

_SPEC_VERSIONS = ("1.0", "0.3")
_EXTENSION_NAME = re.compile(r"^[a-z0-9]+$")
_CORE_FIELDS = {"specversion", "id", "source", "type", "datacontenttype",
                "dataschema", "subject", "time", "data", "data_base64"}


class FaasError(Exception):
    """Base error of the package."""


class InternalError(FaasError):
    """An internal failure, usually wrapping a cause."""


class NotValidError(FaasError):
    """Input that could not be decoded or validated."""


class TriggerNotImplementedError(FaasError):
    """A trigger type that is not supported."""


def _is_json_type(content_type: str) -> bool:
    return not content_type or "json" in content_type


def _format_time(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _parse_time(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as exc:
        raise NotValidError(f"invalid time {value!r}") from exc


@dataclass
class Event:
    """A CloudEvent with its data held as encoded bytes."""

    id: str = ""
    source: str = ""
    type: str = ""
    subject: str = ""
    data_content_type: str = ""
    data_schema: str = ""
    time: datetime | None = None
    data: bytes | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    spec_version: str = "1.0"

    def set_data(self, content_type, data):
        """Encode ``data`` according to the content type and store it."""
        if content_type:
            self.data_content_type = content_type
        if data is None:
            self.data = None
            return
        if isinstance(data, (bytes, bytearray)):
            self.data = bytes(data)
            return
        effective = self.data_content_type
        if _is_json_type(effective):
            try:
                self.data = json.dumps(data, separators=(",", ":")).encode()
            except (TypeError, ValueError) as exc:
                raise NotValidError(f"could not encode data: {exc}") from exc
        elif isinstance(data, str):
            self.data = data.encode()
        else:
            raise NotValidError(f"cannot encode {type(data).__name__} as {effective}")

    def data_as(self):
        """Decode the stored data according to the content type."""
        if self.data is None:
            return None
        if _is_json_type(self.data_content_type):
            try:
                return json.loads(self.data)
            except ValueError as exc:
                raise NotValidError(f"could not decode data: {exc}") from exc
        if self.data_content_type.startswith("text/"):
            return self.data.decode()
        raise NotValidError(f"no decoder for {self.data_content_type}")

    def set_extension(self, name, value):
        """Set (or, with ``None``, remove) an extension; names are lower-cased."""
        key = name.lower()
        if not _EXTENSION_NAME.match(key):
            raise ValueError(f"invalid extension name {name!r}")
        if value is None:
            self.extensions.pop(key, None)
        else:
            self.extensions[key] = value

    def to_dict(self):
        out: dict[str, Any] = {"specversion": self.spec_version, "id": self.id,
                               "source": self.source, "type": self.type}
        if self.data_content_type:
            out["datacontenttype"] = self.data_content_type
        if self.data_schema:
            out["dataschema"] = self.data_schema
        if self.subject:
            out["subject"] = self.subject
        if self.time is not None:
            out["time"] = _format_time(self.time)
        if self.data is not None:
            if _is_json_type(self.data_content_type):
                try:
                    out["data"] = json.loads(self.data)
                except ValueError as exc:
                    raise NotValidError(f"data is not valid json: {exc}") from exc
            elif self.data_content_type.startswith("text/"):
                out["data"] = self.data.decode()
            else:
                out["data_base64"] = base64.b64encode(self.data).decode()
        for key in sorted(self.extensions):
            out[key] = self.extensions[key]
        return out

    def to_json(self):
        return json.dumps(self.to_dict(), separators=(",", ":")).encode()

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise NotValidError("event must be a json object")
        version = data.get("specversion")
        if version not in _SPEC_VERSIONS:
            raise NotValidError(f"invalid specversion {version!r}")
        event = cls(
            spec_version=version,
            id=str(data.get("id", "")),
            source=str(data.get("source", "")),
            type=str(data.get("type", "")),
            subject=str(data.get("subject", "")),
            data_content_type=str(data.get("datacontenttype", "")),
            data_schema=str(data.get("dataschema", "")),
        )
        if data.get("time"):
            event.time = _parse_time(str(data["time"]))
        if "data_base64" in data:
            try:
                event.data = base64.b64decode(data["data_base64"])
            except ValueError as exc:
                raise NotValidError("invalid data_base64") from exc
        elif "data" in data and data["data"] is not None:
            payload = data["data"]
            if isinstance(payload, str) and not _is_json_type(event.data_content_type):
                event.data = payload.encode()
            else:
                event.data = json.dumps(payload, separators=(",", ":")).encode()
        for key, value in data.items():
            if key not in _CORE_FIELDS:
                event.extensions[key.lower()] = value
        return event

    @classmethod
    def from_json(cls, raw):
        try:
            parsed = json.loads(raw)
        except (ValueError, TypeError) as exc:
            raise NotValidError(f"could not decode event: {exc}") from exc
        return cls.from_dict(parsed)


@dataclass
class InOut:
    """An input event with the output, error and context of its handling."""

    event: Event | None
    out: Event | None = None
    err: BaseException | None = None
    context: Any = None


def json_bytes(event):
    """Return the JSON encoding of an event."""
    try:
        return event.to_json()
    except (FaasError, TypeError, ValueError) as exc:
        raise InternalError(f"error on json marshal. {exc}") from exc