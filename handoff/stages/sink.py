from __future__ import annotations
from typing import Generic, Iterator, List, TypeVar
import threading

T = TypeVar("T")


class DestinationSink(Generic[T]):
    """
    Ordered collection appended to by one or more consumers.
    Appends are serialised by the sink's own lock; the order between racing
    consumers is whatever order they acquired it in.
    """
    def __init__(self, name: str = "sink"):
        self.name = name
        self._items: List[T] = []
        self._lock = threading.Lock()

    def append(self, item: T) -> None:
        with self._lock:
            self._items.append(item)

    def snapshot(self) -> List[T]:
        with self._lock:
            return list(self._items)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())
