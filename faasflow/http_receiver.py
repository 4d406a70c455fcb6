"""HTTP receiver for CloudEvents in binary and structured content modes."""

from __future__ import annotations

import dataclasses
import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import quote, unquote

from .event import Event, FaasError, NotValidError
from .handler import Handler

logger = logging.getLogger(__name__)

STRUCTURED_CONTENT_TYPE = "application/cloudevents+json"
_REQUIRED = ("id", "source", "type")


def _items(headers):
    return headers.items() if hasattr(headers, "items") else headers


def parse_http_event(headers, body):
    """Build an event from HTTP headers and body; raise NotValidError if there is none."""
    lowered = {str(k).lower(): str(v) for k, v in _items(headers)}
    content_type = lowered.get("content-type", "")
    media_type = content_type.split(";")[0].strip().lower()
    if media_type == STRUCTURED_CONTENT_TYPE:
        event = Event.from_json(body)
    elif "ce-specversion" in lowered:
        attributes = {name[3:]: unquote(value)
                      for name, value in lowered.items() if name.startswith("ce-")}
        event = Event.from_dict(attributes)
        if content_type:
            event.data_content_type = content_type
        event.data = bytes(body) if body else None
    else:
        raise NotValidError("request does not carry a cloudevent")
    missing = [name for name in _REQUIRED if not getattr(event, name)]
    if missing:
        raise NotValidError(f"missing required attributes: {', '.join(missing)}")
    return event


def _binary_headers(event):
    headers = {}
    for key, value in dataclasses.replace(event, data=None).to_dict().items():
        if key == "datacontenttype":
            headers["Content-Type"] = str(value)
        else:
            headers["ce-" + key] = quote(str(value), safe="/:@+=,;!*'()$&?~ ")
    return headers


class _RequestHandler(BaseHTTPRequestHandler):
    def respond(self, headers, body):
        raise NotImplementedError

    def do_POST(self):
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        status, headers, payload = self.respond(self.headers.items(), body)
        self.send_response(status)
        for name, value in headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if payload:
            self.wfile.write(payload)

    def log_message(self, format, *args):
        logger.debug(format, *args)


class CloudEventsHelper:
    """Serves CloudEvents over HTTP, handling each with the handler wrapper."""

    def __init__(self, ctx, handler, host="", port=8080, stop=None):
        self.ctx = dict(ctx or {})
        self.handler = Handler(handler)
        self.host = host
        self.port = port
        self._stop = stop if stop is not None else threading.Event()
        self._ready = threading.Event()
        self._server = None

    def _respond(self, headers, body):
        try:
            event = parse_http_event(headers, body)
        except FaasError as exc:
            return HTTPStatus.BAD_REQUEST, {"Content-Type": "text/plain"}, str(exc).encode()
        try:
            out = self.handler.handle(dict(self.ctx), event)
        except Exception as exc:
            logger.error("%s", exc)
            return (HTTPStatus.INTERNAL_SERVER_ERROR, {"Content-Type": "text/plain"},
                    str(exc).encode())
        if out is None:
            return HTTPStatus.ACCEPTED, {}, b""
        return HTTPStatus.OK, _binary_headers(out), out.data or b""

    def start(self):
        """Serve requests until stopped."""
        helper = self

        class RequestHandler(_RequestHandler):
            def respond(self, headers, body):
                return helper._respond(headers, body)

        with ThreadingHTTPServer((self.host, self.port), RequestHandler) as server:
            self._server = server
            thread = threading.Thread(target=server.serve_forever, daemon=True)
            thread.start()
            self._ready.set()
            try:
                self._stop.wait()
            finally:
                server.shutdown()
                thread.join()