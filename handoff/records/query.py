from __future__ import annotations
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Tuple

from .record import Record


class RecordQuery:
    """
    Read-only queries over a fixed list of records.
    Every query is repeatable and returns a zero/empty result for no records.
    Grouped results keep first-encounter order; top-N ties keep it too.
    """
    def __init__(self, records: Iterable[Record]):
        self._records: Tuple[Record, ...] = tuple(records)

    @property
    def records(self) -> Tuple[Record, ...]:
        return self._records

    def total_sales(self) -> Decimal:
        return sum((r.total_value for r in self._records), Decimal("0"))

    def sales_by_category(self) -> Dict[str, Decimal]:
        return self._sum_by(lambda r: r.category)

    def sales_count_by_region(self) -> Dict[str, int]:
        return self._count_by(lambda r: r.region)

    def top_products_by_sales(self, n: int) -> Dict[str, Decimal]:
        return self._top(self._sum_by(lambda r: r.product_name), n)

    def top_sales_reps(self, n: int) -> Dict[str, Decimal]:
        return self._top(self._sum_by(lambda r: r.sales_rep), n)

    def product_count_by_category(self) -> Dict[str, int]:
        return self._count_by(lambda r: r.category)

    def sales_by_date_range(self, start: date, end: date) -> List[Record]:
        return [r for r in self._records if start <= r.sale_date <= end]

    def _sum_by(self, key: Callable[[Record], str]) -> Dict[str, Decimal]:
        totals: Dict[str, Decimal] = {}
        for r in self._records:
            k = key(r)
            totals[k] = totals.get(k, Decimal("0")) + r.total_value
        return totals

    def _count_by(self, key: Callable[[Record], str]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for r in self._records:
            k = key(r)
            counts[k] = counts.get(k, 0) + 1
        return counts

    @staticmethod
    def _top(totals: Dict[str, Decimal], n: int) -> Dict[str, Decimal]:
        if n <= 0:
            return {}
        # sorted() is stable, so equal totals stay in encounter order
        ranked = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
        return dict(ranked[:n])
