"""Scan history storage."""

from .history import HistoryRecord, InMemoryScanHistory

__all__ = [
    "HistoryRecord",
    "InMemoryScanHistory",
]
