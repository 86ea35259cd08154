from __future__ import annotations
from collections import deque
from typing import Callable, Deque, Generic, List, Optional, TypeVar
import logging
import threading
import time

from .errors import Cancelled, InvalidConfiguration, QueueTimeout

T = TypeVar("T")

logger = logging.getLogger("Queue")


class CancelToken:
    """
    Cooperative cancellation handle for blocking queue calls.
    cancel() wakes every call currently blocked with this token, which then
    raises Cancelled. Once cancelled a token stays cancelled.
    """
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._conditions: List[threading.Condition] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            conditions = list(self._conditions)
        for cond in conditions:
            with cond:
                cond.notify_all()

    def raise_if_cancelled(self, what: str = "operation") -> None:
        if self._cancelled:
            raise Cancelled(f"{what} was cancelled")

    def _attach(self, cond: threading.Condition) -> None:
        with self._lock:
            self._conditions.append(cond)

    def _detach(self, cond: threading.Condition) -> None:
        with self._lock:
            self._conditions.remove(cond)


class BoundedBlockingQueue(Generic[T]):
    """
    Fixed-capacity FIFO shared by producer and consumer threads.
    put() blocks while full, take() blocks while empty. Every successful
    mutation wakes all waiters and every waiter re-checks its own predicate,
    so a freed slot or a new item is never lost or served twice.
    """
    def __init__(self, capacity: int, name: str = "queue"):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise InvalidConfiguration(f"Queue capacity must be at least 1, got {capacity!r}")
        self.name = name
        self._capacity = capacity
        self._items: Deque[T] = deque()
        self._cond = threading.Condition()

    @property
    def capacity(self) -> int:
        return self._capacity

    def put(self, item: T, *, cancel: Optional[CancelToken] = None, timeout: Optional[float] = None) -> None:
        with self._cond:
            self._wait_for(
                lambda: len(self._items) < self._capacity,
                "put",
                "Queue %s is full. Producer waiting...",
                cancel,
                timeout,
            )
            self._items.append(item)
            logger.debug("Produced: %s | Queue size: %d", item, len(self._items))
            self._cond.notify_all()

    def take(self, *, cancel: Optional[CancelToken] = None, timeout: Optional[float] = None) -> T:
        with self._cond:
            self._wait_for(
                lambda: len(self._items) > 0,
                "take",
                "Queue %s is empty. Consumer waiting...",
                cancel,
                timeout,
            )
            item = self._items.popleft()
            logger.debug("Consumed: %s | Queue size: %d", item, len(self._items))
            self._cond.notify_all()
            return item

    def size(self) -> int:
        with self._cond:
            return len(self._items)

    def is_empty(self) -> bool:
        with self._cond:
            return not self._items

    def is_full(self) -> bool:
        with self._cond:
            return len(self._items) >= self._capacity

    def _wait_for(
        self,
        predicate: Callable[[], bool],
        op: str,
        waiting_msg: str,
        cancel: Optional[CancelToken],
        timeout: Optional[float],
    ) -> None:
        # Caller holds self._cond.
        deadline = None if timeout is None else time.monotonic() + timeout
        if cancel is not None:
            cancel._attach(self._cond)
        try:
            while True:
                if cancel is not None:
                    cancel.raise_if_cancelled(f"{op} on queue {self.name}")
                if predicate():
                    return
                remaining = None
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise QueueTimeout(f"{op} on queue {self.name} timed out after {timeout}s")
                logger.debug(waiting_msg, self.name)
                self._cond.wait(remaining)
        finally:
            if cancel is not None:
                cancel._detach(self._cond)
