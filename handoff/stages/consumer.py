from __future__ import annotations
from typing import Any, Optional
import time

from handoff.engine.errors import InvalidConfiguration
from handoff.engine.metrics import Metrics
from handoff.engine.queue import BoundedBlockingQueue
from handoff.engine.unit import Unit
from .sink import DestinationSink


class Consumer(Unit):
    """
    Takes items off the queue into a destination sink.
    max_items bounds how many items are taken; None or 0 means no bound.
    """
    kind = "consumer"

    def __init__(
        self,
        name: str,
        queue: BoundedBlockingQueue[Any],
        sink: DestinationSink[Any],
        *,
        max_items: Optional[int] = None,
        metrics: Metrics | None = None,
    ):
        if sink is None:
            raise InvalidConfiguration(f"consumer {name!r} needs a destination sink")
        if max_items is not None and max_items < 0:
            raise InvalidConfiguration(f"consumer {name!r} max_items must not be negative, got {max_items}")
        super().__init__(name, queue, metrics=metrics)
        self.sink = sink
        self.max_items = max_items or None
        self.consumed = 0

    @property
    def count(self) -> int:
        return self.consumed

    def has_more(self) -> bool:
        return self.max_items is None or self.consumed < self.max_items

    def step(self) -> None:
        t0 = time.monotonic()
        item = self.queue.take(cancel=self._cancel)
        self.metrics.observe_wait_ms((time.monotonic() - t0) * 1000)
        self.sink.append(item)
        self.consumed += 1
        self.metrics.inc(f"{self.name}.in", 1)
