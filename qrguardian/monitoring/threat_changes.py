"""Detect when a previously scanned domain gets a worse verdict."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

from ..analyzer.models import AnalysisResult, Rating
from ..storage.history import HistoryProvider, HistoryRecord
from ..utils.domains import domains_overlap, extract_domain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ThreatChange:
    domain: str
    previous_rating: Rating
    new_rating: Rating

    @property
    def message(self) -> str:
        return f"{self.domain} changed from {self.previous_rating} to {self.new_rating}. Tap to review."


class ThreatNotifier(Protocol):
    async def send_threat_update(
        self, domain: str, previous_rating: Rating, new_rating: Rating
    ) -> None:  # pragma: no cover - interface
        ...


class LoggingThreatNotifier:
    """Notifier that logs changes and keeps them for inspection."""

    def __init__(self) -> None:
        self.sent: list[ThreatChange] = []

    async def send_threat_update(self, domain: str, previous_rating: Rating, new_rating: Rating) -> None:
        change = ThreatChange(domain, previous_rating, new_rating)
        self.sent.append(change)
        logger.warning("Security status changed: %s", change.message)


def is_significant_change(previous: Rating, current: Rating) -> bool:
    """SAFE -> anything worse, or anything -> DANGEROUS."""
    if previous == Rating.SAFE and current != Rating.SAFE:
        return True
    return current == Rating.DANGEROUS and previous != Rating.DANGEROUS


def _record_time(record: HistoryRecord) -> float:
    ts = record.timestamp
    if isinstance(ts, datetime):
        return ts.timestamp()
    try:
        return float(ts)
    except (TypeError, ValueError):
        return 0.0


class ThreatChangeMonitor:
    """
    Compare a fresh verdict against the latest history entry for the same domain.

    With ``record_scans=True`` every checked result is appended to the
    history afterwards (the history must then provide ``add``).
    """

    def __init__(self, history: HistoryProvider, notifier: ThreatNotifier, record_scans: bool = False):
        self.history = history
        self.notifier = notifier
        self.record_scans = record_scans

    def _latest_for(self, domain: str, records: list[HistoryRecord]) -> Optional[HistoryRecord]:
        matches = [r for r in records if domains_overlap(domain, extract_domain(r.url))]
        if not matches:
            return None
        return max(matches, key=_record_time)

    async def _compare(self, domain: str, result: AnalysisResult) -> Optional[ThreatChange]:
        records = await self.history.get_scan_history()
        latest = self._latest_for(domain, records or [])
        if latest is None:
            return None

        previous = latest.rating
        if previous is None:
            logger.debug("Ignoring history entry with unknown rating: %r", latest.safety_rating)
            return None

        if not is_significant_change(previous, result.rating):
            return None

        await self.notifier.send_threat_update(domain, previous, result.rating)
        return ThreatChange(domain, previous, result.rating)

    async def check(self, payload: str, result: AnalysisResult) -> Optional[ThreatChange]:
        """Notify on a material worsening. Never raises."""
        change = None
        try:
            change = await self._compare(extract_domain(payload), result)
        except Exception as e:
            logger.error("Error monitoring threat changes for %s: %s", payload, e)

        if self.record_scans:
            try:
                await self.history.add(payload, result)
            except Exception as e:
                logger.error("Error recording scan history for %s: %s", payload, e)
        return change
