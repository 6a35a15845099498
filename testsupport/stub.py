"""Recording stand-in for collaborators in tests.

A :class:`Stub` records every call made on it, together with the
receiver of each call, and hands out a queue of errors one call at a
time. The ``check_*`` methods compare what was recorded with what a
test expects and raise :class:`AssertionError` on a mismatch.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence


@dataclass(frozen=True)
class StubCall:
    """The name of a called function and the arguments it was given."""

    func_name: str
    args: tuple = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))


def _call_names(calls: Iterable[StubCall]) -> list[str]:
    return [call.func_name for call in calls]


class Stub:
    """Records calls on stubbed methods and supplies their error results.

    Typically a stub class holds (or inherits from) a ``Stub`` and each of
    its methods records itself and returns the next queued error::

        class StubConn:
            def __init__(self, stub):
                self.stub = stub

            def send(self, request):
                self.stub.method_call(self, "send", request)
                err = self.stub.next_err()
                if err is not None:
                    raise err
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: list[StubCall] = []
        self._receivers: list[Any] = []
        self._errors: list[Optional[BaseException]] = []

    def next_err(self) -> Optional[BaseException]:
        """Pop and return the next queued error, or None if the queue is empty."""
        with self._lock:
            if not self._errors:
                return None
            return self._errors.pop(0)

    def pop_no_err(self) -> None:
        """Pop the next queued error, which must be None."""
        err = self.next_err()
        if err is not None:
            raise RuntimeError(f"expected a nil error, got {err}")

    def _add_call(self, receiver: Any, func_name: str, args: Sequence[Any]) -> None:
        with self._lock:
            self._calls.append(StubCall(func_name, tuple(args)))
            self._receivers.append(receiver)

    def calls(self) -> list[StubCall]:
        """Return a copy of the recorded calls, in the order they were made."""
        with self._lock:
            return list(self._calls)

    def reset_calls(self) -> None:
        """Forget the recorded calls."""
        with self._lock:
            self._calls = []

    def add_call(self, func_name: str, *args: Any) -> None:
        """Record a call of a plain function; its receiver is recorded as None."""
        self._add_call(None, func_name, args)

    def method_call(self, receiver: Any, func_name: str, *args: Any) -> None:
        """Record a call of a method on ``receiver``."""
        self._add_call(receiver, func_name, args)

    def set_errors(self, *args: Optional[BaseException]) -> None:
        """Replace the queue of errors handed out by :meth:`next_err`."""
        with self._lock:
            self._errors = list(args)

    def check_calls(self, expected: Optional[Iterable[StubCall]]) -> None:
        """Assert that the recorded calls equal ``expected``, in order."""
        expected_calls = list(expected or ())
        self.check_call_names(*_call_names(expected_calls))
        with self._lock:
            actual = list(self._calls)
        if actual != expected_calls:
            raise AssertionError(f"calls {actual!r} do not match expected {expected_calls!r}")

    def check_calls_unordered(self, expected: Optional[Iterable[StubCall]]) -> None:
        """Assert that the recorded calls are those expected, in any order."""
        with self._lock:
            remaining = list(self._calls)
        for call in expected or ():
            if call in remaining:
                remaining.remove(call)
        if remaining:
            raise AssertionError(f"unexpected calls were made: {remaining!r}")

    def check_call(self, index: int, func_name: str, *args: Any) -> None:
        """Assert that the call at ``index`` has the given name and arguments."""
        with self._lock:
            if not index < len(self._calls):
                raise AssertionError(
                    f"call index {index} out of range: {len(self._calls)} calls recorded"
                )
            call = self._calls[index]
        expected = StubCall(func_name, args)
        if call != expected:
            raise AssertionError(f"call {index} is {call!r}, expected {expected!r}")

    def check_call_names(self, *args: str) -> bool:
        """Assert that the names of the recorded calls are ``args``, in order."""
        with self._lock:
            names = _call_names(self._calls)
        if names != list(args):
            raise AssertionError(f"call names {names!r} do not match expected {list(args)!r}")
        return True

    def check_no_calls(self) -> None:
        """Assert that no calls have been recorded."""
        self.check_calls(None)

    def check_errors(self, *args: Optional[BaseException]) -> bool:
        """Assert that the queued errors are ``args``, in order."""
        with self._lock:
            errors = list(self._errors)
        if errors != list(args):
            raise AssertionError(f"errors {errors!r} do not match expected {list(args)!r}")
        return True

    def check_receivers(self, *args: Any) -> bool:
        """Assert that the receivers of the recorded calls are ``args``, in order."""
        with self._lock:
            receivers = list(self._receivers)
        if receivers != list(args):
            raise AssertionError(
                f"receivers {receivers!r} do not match expected {list(args)!r}"
            )
        return True