"""Scan history records.

Durable history lives in the app layer. This module defines the record
shape the threat-change monitor reads, the provider interface, and a
bounded in-memory implementation.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Protocol

from ..analyzer.models import AnalysisResult, Rating

DEFAULT_HISTORY_LIMIT = 50


@dataclass
class HistoryRecord:
    url: str
    safety_rating: str
    timestamp: datetime = field(default_factory=datetime.now)
    score: Optional[int] = None
    issues: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def rating(self) -> Optional[Rating]:
        return Rating.parse(self.safety_rating)


class HistoryProvider(Protocol):
    async def get_scan_history(self) -> list[HistoryRecord]:  # pragma: no cover - interface
        ...


class InMemoryScanHistory:
    """Most recent scans first, capped at ``limit`` entries."""

    def __init__(self, limit: int = DEFAULT_HISTORY_LIMIT):
        self.limit = limit
        self._items: list[HistoryRecord] = []
        self._lock = asyncio.Lock()

    async def add(self, url: str, result: AnalysisResult) -> HistoryRecord:
        record = HistoryRecord(
            url=url,
            safety_rating=result.rating.value,
            score=result.score,
            issues=list(result.issues),
        )
        async with self._lock:
            self._items = [record, *self._items][: self.limit]
        return record

    async def get_scan_history(self) -> list[HistoryRecord]:
        async with self._lock:
            return list(self._items)

    async def clear(self) -> None:
        async with self._lock:
            self._items = []
