"""Wire a SafetyAnalyzer from configuration."""

from __future__ import annotations

import logging
from typing import Optional

from .analyzer.brands import BrandRegistry
from .analyzer.engine import SafetyAnalyzer
from .analyzer.metrics import EventSink
from .analyzer.reputation import ReputationGateway, SafeBrowsingGateway
from .analyzer.shortlinks import HttpShortLinkResolver
from .cache import create_result_cache
from .config import Config, load_config, validate_config
from .monitoring.threat_changes import LoggingThreatNotifier, ThreatChangeMonitor, ThreatNotifier
from .storage.history import HistoryProvider, InMemoryScanHistory

logger = logging.getLogger(__name__)


def build_safety_analyzer(
    config: Optional[Config] = None,
    *,
    history: Optional[HistoryProvider] = None,
    notifier: Optional[ThreatNotifier] = None,
    reputation: Optional[ReputationGateway] = None,
    event_sink: Optional[EventSink] = None,
) -> SafetyAnalyzer:
    """Build the analyzer with its cache, gateways and change monitor."""
    config = config or load_config()
    for error in validate_config(config):
        logger.warning("Config: %s", error)

    if reputation is None:
        reputation = SafeBrowsingGateway(
            api_key=config.safe_browsing_api_key or None,
            timeout=config.reputation_timeout,
            mock=config.safe_browsing_mock,
        )

    resolver = None
    if config.shortlink_resolve_enabled:
        resolver = HttpShortLinkResolver(timeout=config.shortlink_timeout)

    # Only a history created here is filled by the monitor.
    owns_history = history is None
    monitor = ThreatChangeMonitor(
        history=history or InMemoryScanHistory(limit=config.history_limit),
        notifier=notifier or LoggingThreatNotifier(),
        record_scans=owns_history,
    )

    return SafetyAnalyzer(
        reputation=reputation,
        resolver=resolver,
        cache=create_result_cache(ttl_seconds=config.cache_ttl_seconds),
        monitor=monitor,
        brands=BrandRegistry.from_mapping(config.brands),
        event_sink=event_sink,
        sensitive_keywords=config.sensitive_keywords,
        scam_keywords=config.scam_keywords,
        shorteners=config.shorteners,
        suspicious_tlds=config.suspicious_tlds,
        scoring_weights=config.scoring_weights,
    )
