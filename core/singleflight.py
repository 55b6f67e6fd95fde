"""
Single Flight
-------------
Collapses concurrent calls for the same key into one execution.

The first caller for a key (the leader) runs the function. Callers that
arrive while it is running block until it finishes and receive the same
result, or the same exception.

Design:
- Scoped per key (one in-flight call per key)
- Thread-safe: a registry lock guards the in-flight table only,
  the function itself runs outside the lock
- Nothing is remembered once a call completes; caching is the caller's job
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar
import logging
import threading

T = TypeVar('T')


@dataclass
class _Call:
    """One in-flight execution shared by every waiter."""
    done: threading.Event = field(default_factory=threading.Event)
    result: Any = None
    error: Optional[BaseException] = None
    waiters: int = 0


class SingleFlight:
    """
    Per-key duplicate call suppression.

    Usage:
        flight = SingleFlight()
        token = flight.do("access_token", fetch_token)
    """

    def __init__(self):
        self._calls: Dict[str, _Call] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger("opentrade.core.singleflight")

    def do(self, key: str, func: Callable[[], T], timeout: Optional[float] = None) -> T:
        """
        Run func once for all concurrent callers of key.

        Followers wait at most `timeout` seconds (forever if None) and
        raise TimeoutError when the leader has not finished by then.
        """
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call
            else:
                call.waiters += 1

        if not leader:
            self._logger.debug(f"Waiting for in-flight call: {key}")
            if not call.done.wait(timeout):
                raise TimeoutError(f"In-flight call '{key}' did not finish within {timeout}s")
            if call.error is not None:
                raise call.error
            return call.result

        try:
            call.result = func()
            return call.result
        except BaseException as e:
            call.error = e
            raise
        finally:
            with self._lock:
                del self._calls[key]
            call.done.set()
            if call.waiters:
                self._logger.debug(f"Shared call {key} with {call.waiters} waiter(s)")

    def in_flight(self, key: str) -> bool:
        """Check whether a call for key is currently running."""
        with self._lock:
            return key in self._calls
