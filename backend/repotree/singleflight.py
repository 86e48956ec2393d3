import threading
from concurrent.futures import Future
from typing import Callable, Dict, Generic, TypeVar

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Run at most one call per key at a time.

    Callers that arrive while a call for the same key is running wait for it
    and get its result, or its exception. The key is released as soon as the
    call finishes, so a later caller starts a new call.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pending: Dict[str, Future] = {}

    def do(self, key: str, fn: Callable[[], T]) -> T:
        with self._lock:
            fut = self._pending.get(key)
            leader = fut is None
            if leader:
                fut = Future()
                self._pending[key] = fut

        if not leader:
            return fut.result()

        try:
            result = fn()
        except BaseException as e:
            fut.set_exception(e)
            raise
        else:
            fut.set_result(result)
            return result
        finally:
            with self._lock:
                self._pending.pop(key, None)

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._pending
