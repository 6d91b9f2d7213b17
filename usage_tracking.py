"""
Usage tracking utilities for the Copy Revision Engine.

Captures token usage and estimated cost for each completion call, grouped by
purpose label (draft, revision, headlines, ...), so callers can account for
cost outside the engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from config import config

logger = logging.getLogger(__name__)


@dataclass
class UsageRecord:
    """Single usage event emitted by a completion call."""

    purpose: str
    model: str
    tokens_used: int = 0
    cost_usd: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def as_dict(self) -> Dict[str, Any]:
        """Convert record to serializable dictionary."""
        return {
            "purpose": self.purpose,
            "model": self.model,
            "tokens_used": self.tokens_used,
            "cost": round(self.cost_usd, 6) if isinstance(self.cost_usd, (int, float)) else None,
            "metadata": self.metadata or {},
            "timestamp": self.timestamp,
        }


class UsageTracker:
    """
    Collects usage events and builds aggregated summaries.

    ``create_callback()`` returns a token-usage sink for GenerationClient or
    CopyGenerator. Exceptions inside the sink are logged and swallowed so
    accounting never affects a generation.
    """

    def __init__(self, metadata: Optional[Dict[str, Any]] = None):
        self.metadata = metadata.copy() if metadata else {}
        self._records: List[UsageRecord] = []

    def create_callback(self) -> Callable[[Dict[str, Any]], None]:
        def _callback(usage_payload: Dict[str, Any]) -> None:
            try:
                self.record(
                    purpose=usage_payload.get("purpose") or "completion",
                    model=usage_payload.get("model"),
                    tokens_used=usage_payload.get("tokens_used", 0) or 0,
                )
            except Exception:
                # Never allow usage tracking to break the main flow
                logger.exception("Usage tracker callback failed")

        return _callback

    def record(self, *, purpose: str, model: Optional[str], tokens_used: int) -> UsageRecord:
        """Record a usage event and compute its cost."""
        model_name = str(model) if model else "unknown"
        tokens = int(tokens_used or 0)
        record = UsageRecord(
            purpose=purpose,
            model=model_name,
            tokens_used=tokens,
            cost_usd=self._estimate_cost(model_name, tokens),
            metadata=self.metadata.copy(),
        )
        self._records.append(record)
        logger.debug("Recorded %d tokens for %s (%s)", tokens, purpose, model_name)
        return record

    @staticmethod
    def _estimate_cost(model: str, tokens_used: int) -> float:
        return tokens_used * config.get_cost_per_token(model)

    @property
    def records(self) -> List[UsageRecord]:
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        return sum(record.tokens_used for record in self._records)

    @property
    def total_cost(self) -> float:
        return sum(record.cost_usd or 0.0 for record in self._records)

    def build_summary(self) -> Optional[Dict[str, Any]]:
        """Aggregate totals overall and per purpose label."""
        if not self._records:
            return None

        by_purpose: Dict[str, Dict[str, Any]] = {}
        for record in self._records:
            bucket = by_purpose.setdefault(record.purpose, {"calls": 0, "tokens_used": 0, "cost": 0.0})
            bucket["calls"] += 1
            bucket["tokens_used"] += record.tokens_used
            bucket["cost"] += record.cost_usd or 0.0

        for bucket in by_purpose.values():
            bucket["cost"] = round(bucket["cost"], 6)

        return {
            "currency": "USD",
            "grand_totals": {
                "calls": len(self._records),
                "tokens_used": self.total_tokens,
                "cost": round(self.total_cost, 6),
            },
            "purposes": by_purpose,
            "records": [record.as_dict() for record in self._records],
        }

    def render_text(self) -> str:
        """Short human-readable summary for CLI output."""
        summary = self.build_summary()
        if not summary:
            return "No token usage recorded."

        lines = []
        for purpose, bucket in summary["purposes"].items():
            lines.append(
                f"{purpose:40s} {bucket['calls']:3d} calls {bucket['tokens_used']:8d} tokens ${bucket['cost']:.6f}"
            )
        totals = summary["grand_totals"]
        lines.append(f"{'TOTAL':40s} {totals['calls']:3d} calls {totals['tokens_used']:8d} tokens ${totals['cost']:.6f}")
        return "\n".join(lines)
