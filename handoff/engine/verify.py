from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable


@dataclass
class Verification:
    expected_count: int
    actual_count: int
    missing: Dict[Any, int] = field(default_factory=dict)
    unexpected: Dict[Any, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.missing and not self.unexpected

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "expected_count": self.expected_count,
            "actual_count": self.actual_count,
            "missing": {str(k): v for k, v in self.missing.items()},
            "unexpected": {str(k): v for k, v in self.unexpected.items()},
        }


def verify(sources: Iterable[Iterable[Any]], sinks: Iterable[Iterable[Any]]) -> Verification:
    """
    Compare everything produced with everything consumed as multisets.
    missing holds items (with multiplicity) that never reached a sink,
    unexpected holds sink items that no source accounts for.
    """
    expected: Counter = Counter()
    for src in sources:
        expected.update(src)
    actual: Counter = Counter()
    for sink in sinks:
        actual.update(sink)
    return Verification(
        expected_count=sum(expected.values()),
        actual_count=sum(actual.values()),
        missing=dict(expected - actual),
        unexpected=dict(actual - expected),
    )
