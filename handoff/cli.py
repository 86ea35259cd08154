from __future__ import annotations
from copy import deepcopy
from datetime import date
from typing import Any, Dict, List, Optional, Tuple
import argparse
import logging
import logging.config
import os
import sys
import yaml

from handoff.defaults import (
    DEFAULT_ITEM_PREFIX,
    DEFAULT_LOG_CONFIG,
    DEFAULT_QUEUE_CAPACITY,
    DEFAULT_SALES_DATA,
    DEFAULT_SINK_NAME,
    DEFAULT_TOP_N,
    EXITCODES,
)
from handoff.engine.errors import InvalidConfiguration, IoFailure
from handoff.engine.metrics import Metrics
from handoff.engine.queue import BoundedBlockingQueue
from handoff.engine.replay import RunArtifact
from handoff.engine.session import Session, split_quota
from handoff.records.query import RecordQuery
from handoff.records.reader import read_records_from_path
from handoff.stages.consumer import Consumer
from handoff.stages.producer import Producer
from handoff.stages.sink import DestinationSink

logger = logging.getLogger("CLI")


def _int_option(value: Any, what: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"{what} must be an integer, got {value!r}") from None


def _mapping(value: Any, what: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidConfiguration(f"{what} must be a mapping, got {value!r}")
    return value


def _entries(value: Any, what: str) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidConfiguration(f"{what} must be a list, got {value!r}")
    return [_mapping(v, f"{what} #{i + 1}") for i, v in enumerate(value)]


def _producer_items(p: Dict[str, Any], name: str) -> List[Any]:
    if "items" in p:
        items = p["items"]
        if not isinstance(items, list):
            raise InvalidConfiguration(f"producer {name!r}: items must be a list")
        for item in items:
            try:
                hash(item)
            except TypeError:
                raise InvalidConfiguration(f"producer {name!r}: item {item!r} must be a scalar value") from None
        return items
    count = _int_option(p.get("count", 0), f"producer {name!r}: count")
    if count < 0:
        raise InvalidConfiguration(f"producer {name!r}: count must not be negative")
    prefix = str(p.get("prefix", DEFAULT_ITEM_PREFIX))
    start = _int_option(p.get("start", 1), f"producer {name!r}: start")
    return [f"{prefix}{i}" for i in range(start, start + count)]


def build_session_from_yaml(path: str) -> Tuple[Session, dict]:
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f)
    if not isinstance(cfg, dict):
        raise InvalidConfiguration(f"{path} does not hold a session mapping")
    return build_session(cfg), cfg


def build_session(cfg: dict) -> Session:
    name = cfg.get("name", "session")
    metrics = Metrics()

    q_cfg = _mapping(cfg.get("queue"), "queue")
    capacity = _int_option(q_cfg.get("capacity", DEFAULT_QUEUE_CAPACITY), "queue capacity")
    queue: BoundedBlockingQueue[Any] = BoundedBlockingQueue(capacity, name=q_cfg.get("name", "q0"))

    producer_cfgs = _entries(cfg.get("producers"), "producer")
    consumer_cfgs = _entries(cfg.get("consumers"), "consumer")
    if not producer_cfgs or not consumer_cfgs:
        raise InvalidConfiguration("Need at least one producer and one consumer")

    producers = []
    for i, p in enumerate(producer_cfgs):
        pname = p.get("name", f"producer-{i + 1}")
        producers.append(Producer(pname, queue, _producer_items(p, pname), metrics=metrics))
    total = sum(len(p.source) for p in producers)

    # consumers with max_items "auto" share whatever the explicit limits leave over
    limits: List[Optional[int]] = []
    auto_idx = []
    for i, c in enumerate(consumer_cfgs):
        raw = c.get("max_items", "auto")
        if raw == "auto":
            limits.append(None)
            auto_idx.append(i)
        else:
            limits.append(_int_option(raw or 0, f"consumer #{i + 1}: max_items ('auto' or an integer)"))
    # a bounded consumer waiting for items nobody produces would block forever
    explicit = sum(n for n in limits if n is not None and n > 0)
    if explicit > total:
        raise InvalidConfiguration(
            f"consumer limits add up to {explicit} but producers only supply {total} items"
        )
    idle = set()
    if auto_idx:
        leftover = max(total - explicit, 0)
        for i, quota in zip(auto_idx, split_quota(leftover, len(auto_idx))):
            limits[i] = quota
            if quota == 0:
                idle.add(i)

    sinks: Dict[str, DestinationSink[Any]] = {}
    consumers = []
    for i, c in enumerate(consumer_cfgs):
        cname = c.get("name", f"consumer-{i + 1}")
        sink_name = c.get("sink", DEFAULT_SINK_NAME)
        sink = sinks.setdefault(sink_name, DestinationSink(sink_name))
        consumer = Consumer(cname, queue, sink, max_items=limits[i], metrics=metrics)
        if i in idle:
            # nothing left to share; max_items=0 would mean unbounded
            consumer.stop()
        consumers.append(consumer)

    return Session(name=name, queue=queue, producers=producers, consumers=consumers, metrics=metrics)


def configure_logging(level: str) -> None:
    config = deepcopy(DEFAULT_LOG_CONFIG)
    config["loggers"]["root"]["level"] = level.upper()
    logging.config.dictConfig(config)


def cmd_init() -> int:
    os.makedirs("pipeline_examples", exist_ok=True)
    sample = """name: demo
queue:
  capacity: 5
producers:
  - name: producer-1
    count: 10
    prefix: "Item-"
consumers:
  - name: consumer-1
    max_items: auto
    sink: main
"""
    out = os.path.join("pipeline_examples", "demo.yaml")
    if not os.path.exists(out):
        with open(out, "w", encoding="utf-8") as f:
            f.write(sample)
    print(f"Wrote {out}")
    return EXITCODES.SUCCESS


def cmd_run(session_path: str, join_timeout: Optional[float]) -> int:
    try:
        session, cfg = build_session_from_yaml(session_path)
    except (InvalidConfiguration, yaml.YAMLError, OSError) as exc:
        logger.error("Invalid session configuration %s: %s", session_path, exc)
        return EXITCODES.CONFIGURATION_ERROR

    artifact = session.run(join_timeout=join_timeout)

    # attach snapshot for replay/debug
    artifact.config_snapshot = cfg

    out_path = os.path.join("runs", f"{artifact.run_id}.json")
    artifact.save(out_path)
    print(f"Run saved: {out_path}")
    for sink in session.sinks:
        print(f"Sink {sink.name}: {len(sink)} items")
    for r in artifact.unit_reports:
        print(f"  {r['kind']:<8} {r['name']:<20} {r['state']:<14} {r['count']}")
    v = artifact.verification
    print(f"Verification: {'ok' if v['ok'] else 'FAILED'} ({v['actual_count']}/{v['expected_count']} items)")
    return EXITCODES.SUCCESS if artifact.succeeded else EXITCODES.SESSION_ERROR


def cmd_report(run_path: str) -> int:
    artifact = RunArtifact.load(run_path)
    m = artifact.metrics
    print(f"Session:  {artifact.session_name}")
    print(f"Run ID:   {artifact.run_id}")
    print(f"Duration: {m.get('duration_s'):.3f}s")
    print("Counters:")
    for k, v in sorted(m.get("counters", {}).items()):
        print(f"  {k}: {v}")
    print("Wait(ms):", m.get("wait_ms", {}))
    print("Units:")
    for r in artifact.unit_reports:
        line = f"  {r['kind']} {r['name']}: {r['state']} ({r['count']} items)"
        if r.get("error"):
            line += f" - {r['error']}"
        print(line)
    v = artifact.verification
    print(f"Verification ok: {v.get('ok')}")
    for item, n in v.get("missing", {}).items():
        print(f"  missing: {item} x{n}")
    for item, n in v.get("unexpected", {}).items():
        print(f"  unexpected: {item} x{n}")
    return EXITCODES.SUCCESS


def _print_header(title: str) -> None:
    print(title)
    print("-" * len(title))


def print_analyses(query: RecordQuery, top_n: int = DEFAULT_TOP_N) -> None:
    print("========================================")
    print("ANALYSIS RESULTS")
    print("========================================\n")

    _print_header("1. TOTAL REVENUE")
    print(f"Total Revenue: ${query.total_sales():.2f}\n")

    _print_header("2. REVENUE BY CATEGORY")
    for cat, total in sorted(query.sales_by_category().items(), key=lambda kv: kv[1], reverse=True):
        print(f"  {cat:<20}: ${total:>10.2f}")
    print()

    _print_header("3. SALES COUNT BY REGION")
    for region, n in sorted(query.sales_count_by_region().items(), key=lambda kv: kv[1], reverse=True):
        print(f"  {region:<20}: {n} sales")
    print()

    _print_header(f"4. TOP {top_n} PRODUCTS BY REVENUE")
    for rank, (product, total) in enumerate(query.top_products_by_sales(top_n).items(), start=1):
        print(f"  {rank}. {product:<30}: ${total:>10.2f}")
    print()

    _print_header(f"5. TOP {top_n} SALES REPRESENTATIVES")
    for rank, (rep, total) in enumerate(query.top_sales_reps(top_n).items(), start=1):
        print(f"  {rank}. {rep:<30}: ${total:>10.2f}")
    print()

    _print_header("6. PRODUCT COUNT BY CATEGORY")
    for cat, n in sorted(query.product_count_by_category().items(), key=lambda kv: kv[1], reverse=True):
        print(f"  {cat:<20}: {n} products")
    print()

    start, end = date(2024, 1, 1), date(2024, 3, 31)
    _print_header(f"7. SALES IN DATE RANGE ({start} to {end})")
    in_range = RecordQuery(query.sales_by_date_range(start, end))
    print(f"Number of Sales: {len(in_range.records)}")
    print(f"Total Revenue: ${in_range.total_sales():.2f}\n")


def cmd_analyze(path: str) -> int:
    print(f"Loading sales data from: {path}")
    try:
        records = read_records_from_path(path)
    except IoFailure as exc:
        logger.error("Error loading CSV file: %s", exc.message)
        return EXITCODES.ERROR
    query = RecordQuery(records)
    print(f"Loaded {len(query.records)} sales records\n")
    print_analyses(query)
    return EXITCODES.SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="handoff")
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init")

    runp = sub.add_parser("run")
    runp.add_argument("session", help="YAML session config path")
    runp.add_argument("--join-timeout", type=float, default=None,
                      help="Cancel units still running after this many seconds")

    rep = sub.add_parser("report")
    rep.add_argument("runfile", help="Path to a run json artifact")

    ana = sub.add_parser("analyze")
    ana.add_argument("csv", nargs="?", default=DEFAULT_SALES_DATA, help="Sales CSV path")

    args = ap.parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.cmd == "init":
            return cmd_init()
        if args.cmd == "run":
            return cmd_run(args.session, args.join_timeout)
        if args.cmd == "report":
            return cmd_report(args.runfile)
        return cmd_analyze(args.csv)
    except Exception:
        logger.exception("Error occurred")
        return EXITCODES.ERROR


if __name__ == "__main__":
    sys.exit(main())
