# pylint: disable=missing-module-docstring
# pylint: disable=missing-function-docstring
# pylint: disable=protected-access
import logging
import threading
import time
from unittest import mock

import pytest

from handoff.engine.errors import InvalidConfiguration
from handoff.engine.metrics import Metrics
from handoff.engine.queue import BoundedBlockingQueue
from handoff.engine.unit import UnitState
from handoff.stages.consumer import Consumer
from handoff.stages.producer import Producer
from handoff.stages.sink import DestinationSink


def _run_in_thread(unit):
    thread = threading.Thread(target=unit.run, daemon=True)
    thread.start()
    return thread


def _wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return False


class TestProducer:
    def test_produces_all_items(self):
        queue = BoundedBlockingQueue(10)
        metrics = Metrics()
        producer = Producer("p1", queue, ["a", "b", "c"], metrics=metrics)
        report = producer.run()
        assert report.state is UnitState.FINISHED
        assert report.count == 3
        assert report.error is None
        assert [queue.take() for _ in range(3)] == ["a", "b", "c"]
        assert metrics.counters["p1.out"] == 3
        assert len(metrics.wait_ms) == 3

    def test_empty_source_finishes_immediately(self):
        producer = Producer("p1", BoundedBlockingQueue(1), [])
        report = producer.run()
        assert report.state is UnitState.FINISHED
        assert report.count == 0

    def test_source_is_copied(self):
        items = ["a"]
        producer = Producer("p1", BoundedBlockingQueue(1), items)
        items.append("b")
        assert producer.source == ("a",)

    def test_rejects_missing_source_or_queue(self):
        with pytest.raises(InvalidConfiguration, match="needs a source"):
            Producer("p1", BoundedBlockingQueue(1), None)
        with pytest.raises(InvalidConfiguration, match="needs a queue"):
            Producer("p1", None, ["a"])

    def test_stop_before_run_produces_nothing(self):
        queue = BoundedBlockingQueue(5)
        producer = Producer("p1", queue, ["a", "b"])
        producer.stop()
        report = producer.run()
        assert report.state is UnitState.FINISHED
        assert report.count == 0
        assert queue.is_empty()

    def test_stop_finishes_in_flight_put(self):
        queue = BoundedBlockingQueue(1)
        producer = Producer("p1", queue, ["a", "b", "c"])
        thread = _run_in_thread(producer)
        assert _wait_until(queue.is_full)
        time.sleep(0.05)
        producer.stop()
        assert thread.is_alive(), "producer abandoned its blocked put"
        assert queue.take() == "a"
        thread.join(2)
        assert not thread.is_alive()
        assert producer.report.state is UnitState.FINISHED
        assert producer.report.count == 2
        assert queue.take() == "b"
        assert queue.is_empty()

    def test_cancel_blocked_put_stops_early(self, caplog):
        queue = BoundedBlockingQueue(1)
        producer = Producer("p1", queue, ["a", "b"])
        thread = _run_in_thread(producer)
        assert _wait_until(queue.is_full)
        time.sleep(0.05)
        with caplog.at_level(logging.WARNING):
            producer.cancel()
            thread.join(2)
        assert not thread.is_alive()
        report = producer.report
        assert report.state is UnitState.STOPPED_EARLY
        assert report.count == 1
        assert producer.cursor == 1
        assert "cancelled" in report.error
        assert "Producer [p1] stopped early after 1 items" in caplog.text
        assert queue.size() == 1

    def test_unexpected_error_fails_unit(self, caplog):
        queue = mock.MagicMock(spec=BoundedBlockingQueue)
        queue.put.side_effect = RuntimeError("boom")
        producer = Producer("p1", queue, ["a"])
        with caplog.at_level(logging.ERROR):
            report = producer.run()
        assert report.state is UnitState.FAILED
        assert report.count == 0
        assert report.error == "RuntimeError: boom"
        assert "Producer [p1] encountered an error" in caplog.text
        assert producer.metrics.counters["p1.failed"] == 1

    def test_cannot_run_twice(self):
        producer = Producer("p1", BoundedBlockingQueue(1), [])
        producer.run()
        with pytest.raises(RuntimeError, match="already been started"):
            producer.run()

    def test_report_serializes(self):
        producer = Producer("p1", BoundedBlockingQueue(1), ["x"])
        assert producer.run().to_dict() == {
            "name": "p1",
            "kind": "producer",
            "state": "finished",
            "count": 1,
            "error": None,
        }


class TestConsumer:
    def test_consumes_up_to_max_items(self):
        queue = BoundedBlockingQueue(5)
        for item in ["a", "b", "c"]:
            queue.put(item)
        sink = DestinationSink()
        metrics = Metrics()
        consumer = Consumer("c1", queue, sink, max_items=2, metrics=metrics)
        report = consumer.run()
        assert report.state is UnitState.FINISHED
        assert report.count == 2
        assert sink.snapshot() == ["a", "b"]
        assert queue.take() == "c"
        assert metrics.counters["c1.in"] == 2

    @pytest.mark.parametrize("max_items", [None, 0])
    def test_unbounded_when_limit_unset(self, max_items):
        consumer = Consumer("c1", BoundedBlockingQueue(1), DestinationSink(), max_items=max_items)
        assert consumer.max_items is None
        assert consumer.has_more()

    def test_rejects_bad_arguments(self):
        with pytest.raises(InvalidConfiguration, match="needs a destination sink"):
            Consumer("c1", BoundedBlockingQueue(1), None)
        with pytest.raises(InvalidConfiguration, match="must not be negative"):
            Consumer("c1", BoundedBlockingQueue(1), DestinationSink(), max_items=-1)

    def test_cancel_blocked_take_keeps_count(self):
        queue = BoundedBlockingQueue(5)
        consumer = Consumer("c1", queue, DestinationSink(), max_items=3)
        thread = _run_in_thread(consumer)
        time.sleep(0.05)
        consumer.cancel()
        thread.join(2)
        assert not thread.is_alive()
        assert consumer.report.state is UnitState.STOPPED_EARLY
        assert consumer.report.count == 0
        assert consumer.metrics.counters["c1.cancelled"] == 1

    def test_stop_finishes_in_flight_take(self):
        queue = BoundedBlockingQueue(5)
        sink = DestinationSink()
        consumer = Consumer("c1", queue, sink)
        thread = _run_in_thread(consumer)
        time.sleep(0.05)
        consumer.stop()
        assert thread.is_alive(), "consumer abandoned its blocked take"
        queue.put("last")
        thread.join(2)
        assert not thread.is_alive()
        assert consumer.report.state is UnitState.FINISHED
        assert consumer.report.count == 1
        assert sink.snapshot() == ["last"]

    def test_consumers_share_one_sink(self):
        queue = BoundedBlockingQueue(2)
        sink = DestinationSink("shared")
        items = [f"Item-{i}" for i in range(100)]
        producer = Producer("p1", queue, items)
        consumers = [Consumer(f"c{i}", queue, sink, max_items=25) for i in range(4)]
        threads = [_run_in_thread(u) for u in [producer, *consumers]]
        for t in threads:
            t.join(5)
            assert not t.is_alive()
        assert len(sink) == 100
        assert sorted(sink) == sorted(items)
        assert sum(c.report.count for c in consumers) == 100


class TestDestinationSink:
    def test_snapshot_is_a_copy(self):
        sink = DestinationSink("main")
        sink.append(1)
        snap = sink.snapshot()
        snap.append(2)
        assert sink.snapshot() == [1]
        assert list(sink) == [1]
        assert len(sink) == 1
