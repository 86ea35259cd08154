from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional
import logging
import threading

from .errors import Cancelled, InvalidConfiguration
from .metrics import Metrics
from .queue import BoundedBlockingQueue, CancelToken


class UnitState(str, Enum):
    CREATED = "created"
    RUNNING = "running"
    FINISHED = "finished"
    STOPPED_EARLY = "stopped_early"
    FAILED = "failed"


@dataclass
class UnitReport:
    name: str
    kind: str
    state: UnitState
    count: int
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "kind": self.kind,
            "state": self.state.value,
            "count": self.count,
            "error": self.error,
        }


class Unit:
    """
    Base unit: runs step() in a loop on its own thread until has_more() is
    False or stop() is requested. Subclasses implement step(), has_more()
    and count.

    stop() is advisory and is honoured between steps, so an in-flight
    put/take always completes first. cancel() interrupts a blocked put/take
    and the unit ends as STOPPED_EARLY. Any other exception ends the unit as
    FAILED. In every case run() returns a UnitReport instead of raising.
    """
    kind = "unit"

    def __init__(self, name: str, queue: BoundedBlockingQueue[Any], *, metrics: Metrics | None = None):
        if queue is None:
            raise InvalidConfiguration(f"{self.kind} {name!r} needs a queue")
        self.name = name
        self.queue = queue
        self.metrics = metrics if metrics is not None else Metrics()
        self.state = UnitState.CREATED
        self.report: UnitReport | None = None
        self.logger = logging.getLogger(self.kind.capitalize())
        self._running = threading.Event()
        self._running.set()
        self._cancel = CancelToken()

    @property
    def count(self) -> int:
        raise NotImplementedError

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def has_more(self) -> bool:
        raise NotImplementedError

    def step(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        self._running.clear()
        self.logger.info("%s [%s] stop requested", self.kind.capitalize(), self.name)

    def cancel(self) -> None:
        self._cancel.cancel()
        self.logger.info("%s [%s] cancel requested", self.kind.capitalize(), self.name)

    def run(self) -> UnitReport:
        if self.state is not UnitState.CREATED:
            raise RuntimeError(f"{self.kind} {self.name!r} has already been started")
        self.state = UnitState.RUNNING
        self.logger.info("%s [%s] started", self.kind.capitalize(), self.name)
        error = None
        try:
            while self._running.is_set() and self.has_more():
                self.step()
            self.state = UnitState.FINISHED
            self.logger.info("%s [%s] finished with %d items", self.kind.capitalize(), self.name, self.count)
        except Cancelled as exc:
            self.state = UnitState.STOPPED_EARLY
            error = exc.message
            self.metrics.inc(f"{self.name}.cancelled", 1)
            self.logger.warning("%s [%s] stopped early after %d items: %s", self.kind.capitalize(), self.name, self.count, exc.message)
        except Exception as exc:
            self.state = UnitState.FAILED
            error = f"{type(exc).__name__}: {exc}"
            self.metrics.inc(f"{self.name}.failed", 1)
            self.logger.exception("%s [%s] encountered an error", self.kind.capitalize(), self.name)
        self.report = UnitReport(name=self.name, kind=self.kind, state=self.state, count=self.count, error=error)
        return self.report
