"""A stub whose results are chosen per set of call arguments."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from testsupport.stub import Stub


class CallMockReturner:
    """Holds the values returned for one set of call arguments."""

    def __init__(self, args: tuple) -> None:
        self.args = tuple(args)
        self.ret_vals: Optional[list[Any]] = None
        self._lock = threading.Lock()
        self._times_invoked = 0

    def returns(self, *args: Any) -> Callable[[], int]:
        """Make calls with the registered arguments return ``args``.

        Returns a function that reports how many times these values
        have been returned.
        """
        self.ret_vals = list(args)
        return self.times_invoked

    def _log_call(self) -> None:
        with self._lock:
            self._times_invoked += 1

    def times_invoked(self) -> int:
        """Number of times these values have been returned."""
        with self._lock:
            return self._times_invoked


class CallMocker(Stub):
    """A :class:`Stub` that returns results registered for given arguments."""

    def __init__(self, logger: logging.Logger) -> None:
        super().__init__()
        self._logger = logger
        self._results: dict[str, list[CallMockReturner]] = {}

    def method_call(self, receiver: Any, fn_name: str, *args: Any) -> Optional[list[Any]]:
        """Record the call and return the results registered for it, if any."""
        super().method_call(receiver, fn_name, *args)
        self._logger.debug("Call: %s(%s)", fn_name, list(args))
        results = self.results(fn_name, *args)
        self._logger.debug("Results: %s", results)
        return results

    def results(self, fn_name: str, *args: Any) -> Optional[list[Any]]:
        """Return the results registered for ``fn_name`` with ``args``, or None."""
        for returner in self._results.get(fn_name, ()):
            if returner.args != args:
                continue
            returner._log_call()
            return returner.ret_vals
        return None

    def call(self, fn_name: str, *args: Any) -> CallMockReturner:
        """Register a call; set what it returns with :meth:`CallMockReturner.returns`.

        A later registration for the same arguments hides earlier ones.
        """
        returner = CallMockReturner(args)
        self._results.setdefault(fn_name, []).insert(0, returner)
        return returner


def type_assert_error(err: Any) -> Optional[BaseException]:
    """Return ``err`` as an exception, passing None through.

    Raises TypeError when ``err`` is neither None nor an exception.
    """
    if err is None:
        return None
    if not isinstance(err, BaseException):
        raise TypeError(f"{err!r} is not an error")
    return err