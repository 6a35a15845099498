# testsupport

A small toolkit for writing tests. It gives you stand-ins that record how
they were called, a stub whose results are chosen per set of arguments,
isolation from the process environment, and helpers for network and HTTP
tests.

## Installing

```
pip install testsupport
pip install "testsupport[test]"   # with pytest, for running the tests
```

## What is inside

- `testsupport.stub` – `Stub` records calls (`add_call`, `method_call`)
  together with their receivers, hands out queued errors (`set_errors`,
  `next_err`, `pop_no_err`) and checks what happened (`check_calls`,
  `check_calls_unordered`, `check_call`, `check_call_names`,
  `check_no_calls`, `check_errors`, `check_receivers`). The checks raise
  `AssertionError` on a mismatch. Each recorded call is a `StubCall`
  holding `func_name` and an `args` tuple. `pop_no_err` raises
  `RuntimeError` when the next queued error is not `None`.
- `testsupport.mocker` – `CallMocker` is a `Stub` that logs calls to a
  `logging.Logger` and returns the results registered for the arguments
  given: `mocker.call("fetch", 1).returns("a")` returns a function that
  counts how often those results were handed out. A later registration for
  the same arguments hides earlier ones. `type_assert_error` passes `None`
  and exceptions through and raises `TypeError` for anything else.
- `testsupport.osenv` – `OsEnvSuite` saves and clears `os.environ` in
  `set_up_suite`, clears it again in `set_up_test` and `tear_down_test`,
  and restores it in `tear_down_suite`. `JUJU_MONGOD` survives the
  clearing everywhere; on Windows a list of system variables such as
  `Path`, `TEMP` and `SystemRoot` does too, matched case-insensitively.
- `testsupport.tcpproxy` – `TCPProxy(remote_addr)` listens on 127.0.0.1
  and forwards each connection to `remote_addr`. `addr()` gives the
  address to dial; `close_conns()` breaks the current connections,
  `pause_conns()` and `resume_conns()` stall and restart traffic, and
  `close()` (or leaving a `with` block) shuts everything down. Accept and
  dial failures are collected in `errors`.
- `testsupport.httpserver` – `HTTPServer` records incoming requests as
  `RecordedRequest` objects and answers them with responses the test
  queues (`response`, `responses`, `response_map`, `response_func`).
  `wait_request` and `wait_requests` return received requests and raise
  `TimeoutError` when none arrive in time; a request that waits too long
  for a response gets status 500. `HTTPSuite` starts a server (the shared
  `SERVER` by default), flushes it after each test, and builds URLs with
  `url(path)`.
- `testsupport.filetesting.stubs` – `StubReader`, `StubWriter`,
  `StubSeeker`, `StubCloser`, `StubFile`, `StubFileInfo` (with
  `FileInfo`) and `StubHash` record each call on a shared `Stub` and raise
  the next queued error. The `new_stub_*` functions build them over real
  buffers.
- `testsupport.httptesting.requests_check` – `do`, `do_request` and
  `assert_json_call` make a request described by `DoRequestParams` or
  `JSONCallParams` (a URL without a host is served by a temporary local
  server running the given WSGI application) and check the status, error,
  headers and JSON body. `assert_json_response` checks a
  `RecordedResponse`. `URLRewritingTransport` is a `requests` transport
  adapter that rewrites URLs starting with a given prefix.

## Example

```python
from testsupport.stub import Stub, StubCall

stub = Stub()
stub.set_errors(None, ValueError("boom"))

stub.add_call("send", "hello")
assert stub.next_err() is None
stub.add_call("send", "again")
assert isinstance(stub.next_err(), ValueError)

stub.check_calls([StubCall("send", ("hello",)), StubCall("send", ("again",))])
```

```python
import requests
from testsupport.httpserver import HTTPServer

server = HTTPServer(timeout=5.0)
server.start()
server.response(200, {"Content-Type": "text/plain"}, b"hi")
assert requests.get(server.url + "/greet").text == "hi"
assert server.wait_request().path == "/greet"
server.close()
```

## What it does not do

The package has no helpers for patching values or environment variables
and restoring them, no suite that routes log output into test output, no
fake home directory setup, and no objects that create and verify
directories, files and symlinks on disk. Use `pytest`'s `monkeypatch`,
`caplog` and `tmp_path` fixtures for those.

## Running the tests

```
pytest
```