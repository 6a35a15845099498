"""Making HTTP requests in tests and checking the JSON that comes back.

A request whose URL has no host is served by a temporary local server
running the given WSGI application. Checks raise AssertionError when
the response differs from what was expected.
"""

from __future__ import annotations

import contextlib
import dataclasses
import io
import json
import re
import threading
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, Iterator, Mapping, Optional, Sequence, Union
from urllib.parse import urlsplit
from wsgiref.simple_server import WSGIRequestHandler, make_server

import requests
from requests.adapters import BaseAdapter, HTTPAdapter
from requests.structures import CaseInsensitiveDict

# Receives the raw JSON text of a response body and checks it.
BodyAsserter = Callable[[str], Any]

# Takes a prepared request and returns the response, like Session.send.
DoFunc = Callable[[requests.PreparedRequest], requests.Response]

HeaderValue = Union[str, Sequence[str]]

_MALFORMED_MARKERS = ("BadStatusLine", "malformed HTTP response")


@dataclass
class JSONCallParams:
    """Parameters for :func:`assert_json_call`.

    ``expect_status`` of 0 means 200. ``expect_body`` may be a
    :data:`BodyAsserter`, which is called with the response body.
    ``expect_header`` lists headers that must be in the response; a
    list of values is compared with the values joined by ", ".
    """

    do: Optional[DoFunc] = None
    expect_error: str = ""
    method: str = ""
    url: str = ""
    handler: Optional[Callable[..., Any]] = None
    json_body: Any = None
    body: Any = None
    header: Optional[Mapping[str, HeaderValue]] = None
    content_length: int = 0
    username: str = ""
    password: str = ""
    expect_status: int = 0
    expect_body: Any = None
    expect_header: Optional[Mapping[str, HeaderValue]] = None
    cookies: Optional[Mapping[str, str]] = None


@dataclass
class DoRequestParams:
    """Parameters for :func:`do` and :func:`do_request`.

    ``method`` defaults to GET and ``do`` to sending with a fresh
    session. A URL without a host is served by ``handler``, a WSGI
    application. ``json_body``, when set, replaces ``body`` and sets the
    Content-Type to application/json. ``expect_error`` is a regular
    expression the whole error message must match. ``expect_status`` of
    0 skips the status check.
    """

    do: Optional[DoFunc] = None
    expect_error: str = ""
    expect_status: int = 0
    method: str = ""
    url: str = ""
    handler: Optional[Callable[..., Any]] = None
    json_body: Any = None
    body: Any = None
    header: Optional[Mapping[str, HeaderValue]] = None
    content_length: int = 0
    username: str = ""
    password: str = ""
    cookies: Optional[Mapping[str, str]] = None


@dataclass
class RecordedResponse:
    """A response read in full: status code, headers and body."""

    code: int
    headers: CaseInsensitiveDict
    body: bytes = b""

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", "replace")


def _header_value(value: HeaderValue) -> str:
    if isinstance(value, str):
        return value
    return ", ".join(value)


def _to_json(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    raise TypeError(f"{value!r} cannot be encoded as JSON")


def _not_found(environ: dict, start_response: Callable) -> list[bytes]:
    start_response("404 Not Found", [("Content-Type", "text/plain")])
    return [b"404 page not found\n"]


class _QuietHandler(WSGIRequestHandler):
    def log_message(self, format: str, *args: Any) -> None:
        pass


@contextlib.contextmanager
def _serve(app: Callable[..., Any]) -> Iterator[str]:
    server = make_server("127.0.0.1", 0, app, handler_class=_QuietHandler)
    thread = threading.Thread(
        target=server.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True
    )
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_port}"
    finally:
        server.shutdown()
        server.server_close()
        thread.join()


def _default_do(request: requests.PreparedRequest) -> requests.Response:
    with requests.Session() as session:
        return session.send(request)


def _has_host(url: str) -> bool:
    try:
        return bool(urlsplit(url).netloc)
    except ValueError:
        return True


def _is_malformed(error: Optional[BaseException]) -> bool:
    if error is None:
        return False
    message = str(error)
    return any(marker in message for marker in _MALFORMED_MARKERS)


def _prepare(params: DoRequestParams, url: str) -> requests.PreparedRequest:
    body = params.body
    headers: dict[str, str] = {}
    if params.json_body is not None:
        encoded = json.dumps(params.json_body, separators=(",", ":"), default=_to_json)
        body = io.BytesIO(encoded.encode())
        headers["Content-Type"] = "application/json"
    elif isinstance(body, str):
        body = body.encode()
    for name, value in (params.header or {}).items():
        headers[name] = _header_value(value)
    auth = None
    if params.username or params.password:
        auth = (params.username, params.password)
    request = requests.Request(
        method=params.method or "GET",
        url=url,
        headers=headers,
        data=body,
        auth=auth,
        cookies=dict(params.cookies) if params.cookies else None,
    )
    prepared = request.prepare()
    if params.content_length:
        prepared.headers["Content-Length"] = str(params.content_length)
    return prepared


def do(params: DoRequestParams) -> Optional[requests.Response]:
    """Make the request described by ``params`` and return the response.

    Returns None when an error was expected and matched. Raises
    AssertionError when the error or the status differs from what was
    expected, or when an unexpected error occurs.
    """
    send = params.do or _default_do
    with contextlib.ExitStack() as stack:
        url = params.url
        if not _has_host(url):
            base = stack.enter_context(_serve(params.handler or _not_found))
            url = base + url
        prepared = _prepare(params, url)
        response: Optional[requests.Response] = None
        error: Optional[BaseException] = None
        try:
            response = send(prepared)
        except Exception as exc:  # any failure of the send function is reported
            error = exc

    if params.expect_error:
        if error is None:
            if response is not None:
                response.close()
            raise AssertionError(
                f"expected an error matching {params.expect_error!r}, got none"
            )
        if re.fullmatch(params.expect_error, str(error)) is None:
            raise AssertionError(
                f"error {str(error)!r} does not match {params.expect_error!r}"
            )
        return None

    malformed = _is_malformed(error)
    if error is not None and not malformed:
        raise AssertionError(f"unexpected error: {error}") from error
    if params.expect_status:
        status = HTTPStatus.BAD_REQUEST if malformed else response.status_code
        if status != params.expect_status:
            raise AssertionError(f"status {int(status)}, expected {params.expect_status}")
    return response


def do_request(params: DoRequestParams) -> Optional[RecordedResponse]:
    """Like :func:`do`, but read the whole response and return it recorded."""
    response = do(params)
    if params.expect_error:
        return None
    if response is None:
        raise AssertionError("no response received")
    try:
        body = response.content
    finally:
        response.close()
    return RecordedResponse(response.status_code, CaseInsensitiveDict(response.headers), body)


def assert_json_response(
    response: RecordedResponse, expect_status: int, expect_body: Any
) -> None:
    """Assert the status, content type and JSON body of ``response``.

    ``expect_body`` of None means the body must be empty. A callable is
    given the raw JSON text of the body; anything else is compared with
    the decoded body after a JSON round trip.
    """
    if response.code != expect_status:
        raise AssertionError(
            f"status {response.code}, expected {expect_status}; body: {response.text}"
        )
    if expect_body is None:
        if response.body:
            raise AssertionError(f"expected an empty body, got {response.text!r}")
        return
    content_type = response.headers.get("Content-Type")
    if content_type != "application/json":
        raise AssertionError(f"content type {content_type!r}, expected 'application/json'")
    try:
        actual = json.loads(response.body)
    except ValueError as err:
        raise AssertionError(f"body is not JSON: {err}; body: {response.text}") from err
    if callable(expect_body):
        expect_body(response.text)
        return
    expected = json.loads(json.dumps(expect_body, default=_to_json))
    if actual != expected:
        raise AssertionError(f"body {actual!r}, expected {expected!r}")


def assert_json_call(params: JSONCallParams) -> None:
    """Make the call described by ``params`` and assert the result."""
    expect_status = params.expect_status or HTTPStatus.OK
    recorded = do_request(
        DoRequestParams(
            do=params.do,
            expect_error=params.expect_error,
            handler=params.handler,
            method=params.method,
            url=params.url,
            body=params.body,
            json_body=params.json_body,
            header=params.header,
            content_length=params.content_length,
            username=params.username,
            password=params.password,
            cookies=params.cookies,
        )
    )
    if params.expect_error:
        return
    assert_json_response(recorded, expect_status, params.expect_body)
    for name, value in (params.expect_header or {}).items():
        actual = recorded.headers.get(name)
        expected = _header_value(value)
        if actual != expected:
            raise AssertionError(f"header {name!r} is {actual!r}, expected {expected!r}")


class URLRewritingTransport(BaseAdapter):
    """A transport adapter that rewrites URLs starting with ``match_prefix``.

    The matching prefix is replaced by ``replace`` and the request is sent
    with ``transport`` (a plain HTTP adapter when it is None). The
    response reports the original request.
    """

    def __init__(
        self, match_prefix: str, replace: str, transport: Optional[BaseAdapter] = None
    ) -> None:
        super().__init__()
        self.match_prefix = match_prefix
        self.replace = replace
        self.transport = transport
        self._default: Optional[HTTPAdapter] = None

    def _round_tripper(self) -> BaseAdapter:
        if self.transport is not None:
            return self.transport
        if self._default is None:
            self._default = HTTPAdapter()
        return self._default

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:
        transport = self._round_tripper()
        url = request.url or ""
        if not url.startswith(self.match_prefix):
            return transport.send(request, **kwargs)
        rewritten = request.copy()
        rewritten.prepare_url(self.replace + url[len(self.match_prefix):], None)
        response = transport.send(rewritten, **kwargs)
        if response is not None:
            response.request = request
        return response

    def close(self) -> None:
        if self._default is not None:
            self._default.close()
            self._default = None