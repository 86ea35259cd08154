"""Reads sales records from CSV text, skipping rows that cannot be parsed."""
from __future__ import annotations
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Sequence, TextIO
import csv
import logging

from handoff.engine.errors import IoFailure, RowSkipped
from .record import Record

logger = logging.getLogger("RecordReader")

DATE_FORMAT = "%Y-%m-%d"
FIELD_COUNT = 8
CENTS = Decimal("0.01")


def parse_row(row: Sequence[str], line: int) -> Record:
    if len(row) < FIELD_COUNT:
        raise RowSkipped(line, f"row must have at least {FIELD_COUNT} columns, got {len(row)}")
    product_id, product_name, category, raw_date, raw_amount, raw_qty, region, sales_rep = row[:FIELD_COUNT]
    try:
        sale_date = datetime.strptime(raw_date.strip(), DATE_FORMAT).date()
    except ValueError:
        raise RowSkipped(line, f"unparseable date {raw_date!r}") from None
    try:
        amount = Decimal(raw_amount.strip()).quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise RowSkipped(line, f"unparseable amount {raw_amount!r}") from None
    if not amount.is_finite():
        raise RowSkipped(line, f"unparseable amount {raw_amount!r}")
    try:
        quantity = int(raw_qty.strip())
    except ValueError:
        raise RowSkipped(line, f"unparseable quantity {raw_qty!r}") from None
    try:
        return Record(product_id, product_name, category, sale_date, amount, quantity, region, sales_rep)
    except ValueError as exc:
        raise RowSkipped(line, str(exc)) from exc


def read_rows(rows: Iterable[Sequence[str]]) -> List[Record]:
    records: List[Record] = []
    skipped = 0
    for idx, row in enumerate(rows):
        # header is line 1
        if idx == 0:
            continue
        if not row:
            continue
        try:
            records.append(parse_row(row, idx + 1))
        except RowSkipped as exc:
            skipped += 1
            logger.warning("Warning: %s", exc.message)
    if skipped:
        logger.info("Read %d records, skipped %d invalid rows", len(records), skipped)
    return records


def read_records(stream: TextIO) -> List[Record]:
    try:
        return read_rows(csv.reader(stream))
    except (OSError, ValueError, csv.Error) as exc:
        raise IoFailure(f"Cannot read record stream: {exc}") from exc


def read_records_from_path(path: str) -> List[Record]:
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return read_records(f)
    except OSError as exc:
        raise IoFailure(f"Cannot open {path}: {exc}") from exc
