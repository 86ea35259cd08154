from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List
import json
import os


@dataclass
class RunArtifact:
    run_id: str
    session_name: str
    created_ts: float
    metrics: Dict[str, Any]
    unit_reports: List[Dict[str, Any]] = field(default_factory=list)
    verification: Dict[str, Any] = field(default_factory=dict)
    config_snapshot: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return bool(self.verification.get("ok")) and all(
            r["state"] == "finished" for r in self.unit_reports
        )

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "session_name": self.session_name,
            "created_ts": self.created_ts,
            "succeeded": self.succeeded,
            "metrics": self.metrics,
            "unit_reports": self.unit_reports,
            "verification": self.verification,
            "config_snapshot": self.config_snapshot,
        }

    def save(self, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load(cls, path: str) -> "RunArtifact":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(
            run_id=data["run_id"],
            session_name=data["session_name"],
            created_ts=data["created_ts"],
            metrics=data["metrics"],
            unit_reports=data.get("unit_reports", []),
            verification=data.get("verification", {}),
            config_snapshot=data.get("config_snapshot", {}),
        )
