"""
Lightweight per-provider call metrics.

Toggle via environment variable: MEDISEARCH_METRICS=1

Features:
- Per-provider execution time tracking (total, min, max, avg, p95)
- Success / failure counts and attempts per call
- In-memory rolling window (last N calls per provider)
- Zero overhead when disabled (early return)

Usage:
    metrics = ProviderMetrics(enabled=True)
    invoker = ProviderInvoker(clients, metrics=metrics)
    ...
    metrics.summary()
"""

from __future__ import annotations

import logging
import os
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

METRICS_ENABLED = os.environ.get("MEDISEARCH_METRICS", "").lower() in ("1", "true", "yes")

MAX_HISTORY_PER_PROVIDER = 200  # Rolling window size


@dataclass
class CallRecord:
    """Single provider call record."""

    timestamp: float
    elapsed_ms: float
    success: bool
    attempts: int
    error: str | None = None


@dataclass
class ProviderStats:
    """Aggregated stats for a single provider."""

    calls: list[CallRecord] = field(default_factory=list)

    def record(self, elapsed_ms: float, success: bool, attempts: int, error: str | None = None) -> None:
        self.calls.append(
            CallRecord(
                timestamp=time.time(),
                elapsed_ms=elapsed_ms,
                success=success,
                attempts=attempts,
                error=error,
            )
        )
        if len(self.calls) > MAX_HISTORY_PER_PROVIDER:
            self.calls = self.calls[-MAX_HISTORY_PER_PROVIDER:]

    @property
    def count(self) -> int:
        return len(self.calls)

    @property
    def failures(self) -> int:
        return sum(1 for c in self.calls if not c.success)

    @property
    def failure_rate(self) -> float:
        return self.failures / len(self.calls) if self.calls else 0.0

    @property
    def avg_ms(self) -> float:
        return sum(c.elapsed_ms for c in self.calls) / len(self.calls) if self.calls else 0.0

    @property
    def min_ms(self) -> float:
        return min(c.elapsed_ms for c in self.calls) if self.calls else 0.0

    @property
    def max_ms(self) -> float:
        return max(c.elapsed_ms for c in self.calls) if self.calls else 0.0

    @property
    def p95_ms(self) -> float:
        if not self.calls:
            return 0.0
        sorted_vals = sorted(c.elapsed_ms for c in self.calls)
        idx = int(len(sorted_vals) * 0.95)
        return sorted_vals[min(idx, len(sorted_vals) - 1)]

    @property
    def avg_attempts(self) -> float:
        return sum(c.attempts for c in self.calls) / len(self.calls) if self.calls else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "failures": self.failures,
            "failure_rate": round(self.failure_rate, 3),
            "avg_ms": round(self.avg_ms, 1),
            "min_ms": round(self.min_ms, 1),
            "max_ms": round(self.max_ms, 1),
            "p95_ms": round(self.p95_ms, 1),
            "avg_attempts": round(self.avg_attempts, 2),
        }


class ProviderMetrics:
    """Registry of per-provider stats."""

    def __init__(self, enabled: bool = METRICS_ENABLED) -> None:
        self.enabled = enabled
        self._stats: dict[str, ProviderStats] = defaultdict(ProviderStats)

    def record(
        self,
        provider: str,
        elapsed_ms: float,
        *,
        success: bool,
        attempts: int = 1,
        error: str | None = None,
    ) -> None:
        if not self.enabled:
            return
        self._stats[str(provider)].record(elapsed_ms, success, attempts, error)

    def get(self, provider: str) -> ProviderStats | None:
        return self._stats.get(str(provider))

    def summary(self) -> dict[str, dict[str, Any]]:
        """Per-provider stats, sorted by average latency (slowest first)."""
        ordered = sorted(self._stats.items(), key=lambda item: item[1].avg_ms, reverse=True)
        return {name: stats.to_dict() for name, stats in ordered}

    def reset(self) -> None:
        self._stats.clear()
