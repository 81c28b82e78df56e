"""HTTP server that receives fault injection and recovery requests."""

from __future__ import annotations

import json
import logging
import threading
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import urlsplit

from .fault import INJECT_PATH, RECOVER_PATH, FaultStore, InjectMessage

logger = logging.getLogger(__name__)

_DECODE_ERROR = "Cannot Decode Request Message\n"
_NOT_FOUND = "404 page not found\n"


def _split_address(addr: str) -> tuple[str, int]:
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"address {addr!r} has no port")
    return host.strip("[]"), int(port)


class HookServer:
    """Serves the inject and recover endpoints on ``addr`` (``host:port``)."""

    def __init__(self, addr: str, store: FaultStore | None = None) -> None:
        self.addr = addr
        self.store = store if store is not None else FaultStore()
        self.ready = threading.Event()
        self.bound_address: tuple[str, int] | None = None

    def handle_inject(self, body: bytes | str) -> tuple[int, str]:
        """Decode an inject message and register it; return status and text."""
        try:
            message = InjectMessage.from_dict(json.loads(body))
        except (ValueError, TypeError) as exc:
            logger.error("Cannot Decode Request Message: %s", exc)
            return HTTPStatus.BAD_REQUEST, _DECODE_ERROR
        logger.info("Inject Fault %s", message)
        self.store.inject(message)
        return HTTPStatus.OK, "success"

    def handle_recover(self) -> tuple[int, str]:
        """Remove all injected faults; return status and text."""
        logger.info("recover all fault")
        self.store.recover()
        return HTTPStatus.OK, "success"

    def _handler_class(self) -> type[BaseHTTPRequestHandler]:
        server = self

        class Handler(BaseHTTPRequestHandler):
            def _dispatch(self) -> None:
                path = urlsplit(self.path).path
                if path == INJECT_PATH:
                    length = int(self.headers.get("Content-Length") or 0)
                    body = self.rfile.read(length) if length > 0 else b""
                    status, text = server.handle_inject(body)
                elif path == RECOVER_PATH:
                    status, text = server.handle_recover()
                else:
                    status, text = HTTPStatus.NOT_FOUND, _NOT_FOUND
                payload = text.encode()
                self.send_response(status)
                self.send_header("Content-Type", "text/plain; charset=utf-8")
                self.send_header("Content-Length", str(len(payload)))
                self.end_headers()
                self.wfile.write(payload)

            do_GET = _dispatch
            do_POST = _dispatch
            do_PUT = _dispatch
            do_DELETE = _dispatch

            def log_message(self, format: str, *args: object) -> None:
                logger.debug(format, *args)

        return Handler

    def serve(self, stop_event: threading.Event) -> None:
        """Serve until ``stop_event`` is set, then shut down."""
        httpd = ThreadingHTTPServer(_split_address(self.addr), self._handler_class())
        self.bound_address = httpd.server_address[:2]
        thread = threading.Thread(target=httpd.serve_forever, daemon=True)
        thread.start()
        self.ready.set()
        try:
            stop_event.wait()
        finally:
            httpd.shutdown()
            httpd.server_close()
            thread.join()
            self.ready.clear()