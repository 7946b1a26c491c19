"""Analysis metrics and trace events.

Counts which rules fire and how often, and emits one structured event per
analysis so callers can trace verdicts without parsing log output.
"""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class RuleMetrics:
    """Metrics for a single scoring rule."""

    hits: int = 0
    total_penalty: int = 0
    last_hit: Optional[datetime] = None

    def record_hit(self, penalty: int) -> None:
        self.hits += 1
        self.total_penalty += penalty
        self.last_hit = datetime.now()


@dataclass
class AnalysisEvent:
    """Trace record for one completed analysis."""

    payload: str
    domain: str
    rating: str
    score: int
    fired_rules: list[str] = field(default_factory=list)
    threats: list[str] = field(default_factory=list)
    cached: bool = False
    timestamp: datetime = field(default_factory=datetime.now)


class EventSink(Protocol):
    def emit(self, event: AnalysisEvent) -> None:  # pragma: no cover - interface
        ...


class LoggingEventSink:
    """Write analysis events to the module logger."""

    def emit(self, event: AnalysisEvent) -> None:
        logger.debug(
            "analysis domain=%s rating=%s score=%s rules=%s threats=%s cached=%s",
            event.domain,
            event.rating,
            event.score,
            ",".join(event.fired_rules) or "-",
            len(event.threats),
            event.cached,
        )


class RecordingEventSink:
    """Keep events in memory (tests, debugging sessions)."""

    def __init__(self) -> None:
        self.events: list[AnalysisEvent] = []

    def emit(self, event: AnalysisEvent) -> None:
        self.events.append(event)


class DetectionMetrics:
    """Thread-safe metrics collector for payload analysis."""

    _instance: Optional["DetectionMetrics"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "DetectionMetrics":
        """Singleton pattern for global metrics access."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self) -> None:
        if self._initialized:
            return
        self._initialized = True
        self._lock = threading.Lock()
        self._rules: dict[str, RuleMetrics] = defaultdict(RuleMetrics)
        self._ratings: dict[str, int] = defaultdict(int)
        self._cache_hits: int = 0
        self._total_analyses: int = 0
        self._started: datetime = datetime.now()

    def record_rule_hit(self, rule: str, penalty: int) -> None:
        with self._lock:
            self._rules[rule].record_hit(penalty)

    def record_rating(self, rating: str) -> None:
        with self._lock:
            self._ratings[rating] += 1
            self._total_analyses += 1

    def record_cache_hit(self) -> None:
        with self._lock:
            self._cache_hits += 1

    def get_summary(self) -> dict:
        """Get a summary of all metrics."""
        with self._lock:
            uptime = datetime.now() - self._started
            return {
                "uptime_seconds": int(uptime.total_seconds()),
                "total_analyses": self._total_analyses,
                "cache_hits": self._cache_hits,
                "ratings": dict(self._ratings),
                "rules": {
                    name: {
                        "hits": rule.hits,
                        "total_penalty": rule.total_penalty,
                        "last_hit": rule.last_hit.isoformat() if rule.last_hit else None,
                    }
                    for name, rule in self._rules.items()
                },
            }

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._rules.clear()
            self._ratings.clear()
            self._cache_hits = 0
            self._total_analyses = 0
            self._started = datetime.now()


# Global instance
metrics = DetectionMetrics()
