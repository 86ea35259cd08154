from __future__ import annotations
from typing import Any, Sequence
import time

from handoff.engine.errors import InvalidConfiguration
from handoff.engine.metrics import Metrics
from handoff.engine.queue import BoundedBlockingQueue
from handoff.engine.unit import Unit


class Producer(Unit):
    """Pushes every item of a fixed source sequence into the queue, in order."""
    kind = "producer"

    def __init__(
        self,
        name: str,
        queue: BoundedBlockingQueue[Any],
        source: Sequence[Any],
        *,
        metrics: Metrics | None = None,
    ):
        if source is None:
            raise InvalidConfiguration(f"producer {name!r} needs a source sequence")
        super().__init__(name, queue, metrics=metrics)
        self.source = tuple(source)
        self.cursor = 0

    @property
    def count(self) -> int:
        return self.cursor

    def has_more(self) -> bool:
        return self.cursor < len(self.source)

    def step(self) -> None:
        item = self.source[self.cursor]
        t0 = time.monotonic()
        self.queue.put(item, cancel=self._cancel)
        self.metrics.observe_wait_ms((time.monotonic() - t0) * 1000)
        # only a completed put moves the cursor
        self.cursor += 1
        self.metrics.inc(f"{self.name}.out", 1)
