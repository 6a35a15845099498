"""A local HTTP server whose responses are queued by the test."""

from __future__ import annotations

import logging
import queue
import sys
import threading
import time
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from email.message import Message
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Mapping, Optional
from urllib.parse import parse_qs, urlsplit

TIMEOUT_MESSAGE = "ERROR: Timeout waiting for test to prepare a response\n"

_LOG = logging.getLogger(__name__)

_OPENER = urllib.request.build_opener(urllib.request.ProxyHandler({}))


@dataclass
class Response:
    """A response to send: status (0 means 200), headers and body."""

    status: int = 0
    headers: Optional[dict[str, str]] = None
    body: Optional[bytes] = b""


ResponseFunc = Callable[[str], Response]


@dataclass
class RecordedRequest:
    """A request received by the server."""

    method: str
    url: str
    headers: Message
    body: bytes = field(default=b"")

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def form(self) -> dict[str, list[str]]:
        """Query parameters merged with a URL-encoded body."""
        values = parse_qs(urlsplit(self.url).query, keep_blank_values=True)
        content_type = self.headers.get("Content-Type", "")
        if content_type.split(";")[0].strip() == "application/x-www-form-urlencoded":
            body_values = parse_qs(self.body.decode("utf-8", "replace"), keep_blank_values=True)
            for key, items in body_values.items():
                values.setdefault(key, []).extend(items)
        return values


def _make_handler(server: "HTTPServer") -> type[BaseHTTPRequestHandler]:
    class _Handler(BaseHTTPRequestHandler):
        def _handle(self) -> None:
            length = int(self.headers.get("Content-Length") or 0)
            body = self.rfile.read(length) if length else b""
            request = RecordedRequest(self.command, self.path, self.headers, body)
            server._requests.put(request)
            try:
                respond = server._responses.get(timeout=server.timeout)
            except queue.Empty:
                sys.stderr.write(TIMEOUT_MESSAGE)
                response = Response(500, None, TIMEOUT_MESSAGE.encode())
            else:
                response = respond(request.path)
            payload = response.body or b""
            headers = response.headers or {}
            self.send_response(response.status or 200)
            for name, value in headers.items():
                self.send_header(name, value)
            if not any(name.lower() == "content-length" for name in headers):
                self.send_header("Content-Length", str(len(payload)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(payload)

        do_GET = do_POST = do_PUT = do_DELETE = do_PATCH = do_HEAD = do_OPTIONS = _handle

        def log_message(self, format: str, *args: object) -> None:
            # Route access logs through logging instead of stderr.
            _LOG.debug("%s - %s", self.address_string(), format % args)

    return _Handler


class HTTPServer:
    """Records incoming requests and answers them with queued responses.

    Each request waits up to ``timeout`` seconds for the test to queue a
    response; if none comes it is answered with status 500.
    """

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self.url = ""
        self._started = False
        self._requests: "queue.Queue[RecordedRequest]" = queue.Queue()
        self._responses: "queue.Queue[ResponseFunc]" = queue.Queue()
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def started(self) -> bool:
        """Whether the server is running."""
        return self._started

    def start(self) -> None:
        """Start serving, once; later calls do nothing."""
        if self._started:
            return
        self._started = True
        self._requests = queue.Queue()
        self._responses = queue.Queue()
        httpd = ThreadingHTTPServer(("127.0.0.1", 0), _make_handler(self))
        httpd.daemon_threads = True
        self._httpd = httpd
        self.url = f"http://localhost:{httpd.server_address[1]}"
        self._thread = threading.Thread(
            target=httpd.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True
        )
        self._thread.start()

        self.response(203, None, None)
        while True:
            try:
                with _OPENER.open(self.url, timeout=self.timeout) as reply:
                    if reply.status == 203:
                        break
            except (OSError, urllib.error.URLError):
                pass
            time.sleep(0.1)
        self.wait_request()

    def close(self) -> None:
        """Stop serving."""
        if self._httpd is not None:
            self._httpd.shutdown()
            self._httpd.server_close()
            self._httpd = None
        self._started = False

    def flush(self) -> None:
        """Discard all pending requests and responses."""
        for pending in (self._requests, self._responses):
            while True:
                try:
                    pending.get_nowait()
                except queue.Empty:
                    break

    def wait_requests(self, n: int) -> list[RecordedRequest]:
        """Return the next ``n`` requests, waiting up to the timeout for each.

        Raises TimeoutError when a request does not arrive in time.
        """
        requests = []
        for _ in range(n):
            try:
                requests.append(self._requests.get(timeout=self.timeout))
            except queue.Empty:
                raise TimeoutError("Timeout waiting for request") from None
        return requests

    def wait_request(self) -> RecordedRequest:
        """Return the next request, waiting up to the timeout for it."""
        return self.wait_requests(1)[0]

    def response_func(self, n: int, func: ResponseFunc) -> None:
        """Answer the next ``n`` requests with ``func(path)``."""
        for _ in range(n):
            self._responses.put(func)

    def response_map(self, n: int, mapping: Mapping[str, Response]) -> None:
        """Answer the next ``n`` requests with the response mapped to their path."""

        def respond(path: str) -> Response:
            if path in mapping:
                return mapping[path]
            return Response(500, None, ("Path not found in response map: " + path).encode())

        self.response_func(n, respond)

    def responses(
        self, n: int, status: int, headers: Optional[dict[str, str]], body: Optional[bytes]
    ) -> None:
        """Answer the next ``n`` requests with the given response."""
        self.response_func(n, lambda path: Response(status, headers, body))

    def response(
        self, status: int, headers: Optional[dict[str, str]], body: Optional[bytes]
    ) -> None:
        """Answer the next request with the given response."""
        self.responses(1, status, headers, body)


SERVER = HTTPServer(5.0)


class HTTPSuite:
    """Starts a server for a suite and flushes it after every test."""

    def __init__(self, server: Optional[HTTPServer] = None) -> None:
        self.server = server if server is not None else SERVER

    def set_up_suite(self) -> None:
        self.server.start()

    def tear_down_suite(self) -> None:
        """Drop anything left queued; the server keeps running for other suites."""
        self.server.flush()

    def set_up_test(self) -> None:
        """Make sure the server is running; starting is a no-op once started."""
        self.server.start()

    def tear_down_test(self) -> None:
        self.server.flush()

    def url(self, path: str) -> str:
        """The server's URL for ``path``."""
        return self.server.url + path