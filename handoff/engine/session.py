from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Optional
import logging
import threading
import time
import uuid

from .errors import InvalidConfiguration
from .metrics import Metrics
from .queue import BoundedBlockingQueue
from .replay import RunArtifact
from .unit import Unit, UnitState
from .verify import verify

logger = logging.getLogger("Session")


def split_quota(total: int, parts: int) -> List[int]:
    """Split total into parts max-counts, spreading the remainder over the first ones."""
    if parts < 1:
        raise InvalidConfiguration(f"Cannot split {total} items over {parts} consumers")
    base, rest = divmod(total, parts)
    return [base + (1 if i < rest else 0) for i in range(parts)]


@dataclass
class Session:
    name: str
    queue: BoundedBlockingQueue[Any]
    producers: List[Any]  # Producer units
    consumers: List[Any]  # Consumer units
    metrics: Metrics = field(default_factory=Metrics)
    sample_every_s: float = 0.05

    def __post_init__(self) -> None:
        if not self.producers or not self.consumers:
            raise InvalidConfiguration("A session needs at least one producer and one consumer")
        for unit in self.units:
            if unit.queue is not self.queue:
                raise InvalidConfiguration(f"{unit.kind} {unit.name!r} is not attached to queue {self.queue.name!r}")

    @property
    def units(self) -> List[Unit]:
        return [*self.producers, *self.consumers]

    @property
    def sinks(self) -> List[Any]:
        seen: List[Any] = []
        for c in self.consumers:
            if not any(c.sink is s for s in seen):
                seen.append(c.sink)
        return seen

    def run(self, *, join_timeout: Optional[float] = None) -> RunArtifact:
        run_id = time.strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:8]
        units = self.units
        threads = [
            threading.Thread(target=u.run, name=f"{u.kind}-{u.name}", daemon=True)
            for u in units
        ]
        logger.info("Session %s starting %d producers and %d consumers on queue %s (capacity %d)",
                    self.name, len(self.producers), len(self.consumers), self.queue.name, self.queue.capacity)
        for t in threads:
            t.start()

        deadline = None if join_timeout is None else time.monotonic() + join_timeout
        while True:
            alive = [t for t in threads if t.is_alive()]
            if not alive:
                break
            self.metrics.sample_queue_depth({self.queue.name: self.queue.size()})
            wait = self.sample_every_s
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    logger.warning("Session %s: %d units still running after %.3fs, cancelling",
                                   self.name, len(alive), join_timeout)
                    for u in units:
                        u.cancel()
                    for t in threads:
                        t.join()
                    break
                wait = min(wait, remaining)
            alive[0].join(wait)

        self.metrics.finalize()
        for u in units:
            if u.state is not UnitState.FINISHED:
                logger.warning("%s [%s] ended as %s", u.kind, u.name, u.state.value)

        result = verify([p.source for p in self.producers], [s.snapshot() for s in self.sinks])
        if result.ok:
            logger.info("All %d items were successfully consumed", result.actual_count)
        else:
            for item, n in result.missing.items():
                logger.warning("Missing item: %s (x%d)", item, n)
            for item, n in result.unexpected.items():
                logger.warning("Unexpected item: %s (x%d)", item, n)

        return RunArtifact(
            run_id=run_id,
            session_name=self.name,
            created_ts=time.time(),
            metrics=self.metrics.summary(),
            unit_reports=[u.report.to_dict() for u in units if u.report is not None],
            verification=result.to_dict(),
        )
