"""Payload safety analyzer engine."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Iterable, Optional

from ..cache import CacheManager
from ..monitoring.threat_changes import ThreatChangeMonitor
from ..utils.domains import ensure_scheme, extract_domain
from .brands import BrandRegistry
from .entropy import EntropyAnalyzer
from .heuristic_rules import (
    DEFAULT_INJECTION_PATTERNS,
    DEFAULT_RULES,
    DEFAULT_SCAM_KEYWORDS,
    DEFAULT_SENSITIVE_KEYWORDS,
    DEFAULT_SUSPICIOUS_TLDS,
    ShortenerRule,
)
from .metrics import AnalysisEvent, EventSink, LoggingEventSink, metrics
from .models import AnalysisResult, Rating
from .reputation import VERIFICATION_UNAVAILABLE, ReputationGateway
from .rules import AnalysisContext, RuleResult, ScoringRule
from .schemes import parse_payload
from .shortlinks import DEFAULT_SHORTENERS, ShortLinkResolution, ShortLinkResolver

logger = logging.getLogger(__name__)


class SafetyAnalyzer:
    """Scores decoded QR payloads and explains the verdict."""

    SENSITIVE_KEYWORDS = list(DEFAULT_SENSITIVE_KEYWORDS)
    SCAM_KEYWORDS = list(DEFAULT_SCAM_KEYWORDS)
    INJECTION_PATTERNS = list(DEFAULT_INJECTION_PATTERNS)
    SUSPICIOUS_TLDS = list(DEFAULT_SUSPICIOUS_TLDS)

    DEFAULT_SCORING = {
        "wifi_directive": 20,
        "wifi_insecure": 30,
        "wifi_heuristic": 20,
        "wifi_heuristic_credential": 20,
        "premium_sms": 50,
        "direct_call": 20,
        "homograph": 50,
        "brand_impersonation": 40,
        "sensitive_keywords": 15,
        "injection": 50,
        "entropy_high": 20,
        "entropy_medium": 10,
        "entropy_low": 5,
        "url_shortener": 35,
        "insecure_transport": 25,
        "open_redirect": 30,
        "scam_keywords": 30,
        "ip_literal": 30,
        "suspicious_tld": 15,
        "excessive_subdomains": 10,
        "max_dots": 4,
        "reputation": 50,
        "rating_safe": 80,
        "rating_caution": 50,
    }

    def __init__(
        self,
        *,
        reputation: Optional[ReputationGateway] = None,
        resolver: Optional[ShortLinkResolver] = None,
        cache: Optional[CacheManager] = None,
        monitor: Optional[ThreatChangeMonitor] = None,
        brands: Optional[BrandRegistry] = None,
        entropy: Optional[EntropyAnalyzer] = None,
        event_sink: Optional[EventSink] = None,
        rules: Optional[Iterable[ScoringRule]] = None,
        sensitive_keywords: list[str] | None = None,
        scam_keywords: list[str] | None = None,
        injection_patterns: list[str] | None = None,
        shorteners: list[str] | None = None,
        suspicious_tlds: list[str] | None = None,
        scoring_weights: dict | None = None,
    ):
        self.reputation = reputation
        self.resolver = resolver
        self.cache = cache
        self.monitor = monitor
        self.brands = brands or BrandRegistry.default()
        self.entropy = entropy or EntropyAnalyzer()
        self.event_sink = event_sink or LoggingEventSink()
        self.sensitive_keywords = [k.lower() for k in (sensitive_keywords or self.SENSITIVE_KEYWORDS)]
        self.scam_keywords = [k.lower() for k in (scam_keywords or self.SCAM_KEYWORDS)]
        self.injection_patterns = [p.lower() for p in (injection_patterns or self.INJECTION_PATTERNS)]
        self.shorteners = [s.lower() for s in (shorteners or DEFAULT_SHORTENERS)]
        self.suspicious_tlds = [t.lower() for t in (suspicious_tlds or self.SUSPICIOUS_TLDS)]
        self.scoring = dict(self.DEFAULT_SCORING)
        if scoring_weights:
            self.scoring.update(scoring_weights)

        self._rules: list[ScoringRule] = list(rules) if rules is not None else [rule() for rule in DEFAULT_RULES]

    async def _resolve_short_link(self, url: str) -> Optional[ShortLinkResolution]:
        if not self.resolver:
            return None
        try:
            return await self.resolver.resolve(url)
        except Exception as exc:
            logger.debug("Short link resolution failed for %s: %s", url, exc)
            return None

    async def _lookup_reputation(self, url: str) -> list[str]:
        if not self.reputation or not self.reputation.configured:
            return []
        try:
            return list(await self.reputation.lookup(url) or [])
        except Exception as exc:
            logger.warning("Reputation lookup failed for %s: %s", url, exc)
            return [VERIFICATION_UNAVAILABLE]

    async def _gather_signals(self, context: AnalysisContext) -> None:
        """Run the network lookups; both fail open."""
        wants_resolution = self.resolver is not None and ShortenerRule.matches(self, context.lower)
        short_link, threats = await asyncio.gather(
            self._resolve_short_link(context.request_url) if wants_resolution else _none(),
            self._lookup_reputation(context.payload),
        )
        context.short_link = short_link

        context.reputation_configured = bool(self.reputation and self.reputation.configured)
        context.reputation_checked = self.reputation is not None
        context.reputation_unavailable = VERIFICATION_UNAVAILABLE in threats
        context.threats = [t for t in threats if t != VERIFICATION_UNAVAILABLE]

    def build_context(self, payload: str) -> AnalysisContext:
        return AnalysisContext(
            payload=payload,
            lower=payload.lower(),
            domain=extract_domain(payload),
            parsed=parse_payload(payload),
            request_url=ensure_scheme(payload),
        )

    def score(self, context: AnalysisContext) -> tuple[AnalysisResult, list[str]]:
        """Fold every rule over the context into a final result."""
        total = 100
        issues: list[str] = []
        threats: list[str] = []
        fired: list[str] = []
        min_rating = Rating.SAFE

        for rule in self._rules:
            try:
                rule_result: RuleResult = rule.apply(self, context)
            except Exception as exc:
                logger.warning(
                    "Rule %s failed for %s: %s",
                    getattr(rule, "name", "unknown"),
                    context.domain,
                    exc,
                )
                continue

            if rule_result.penalty or rule_result.floor:
                before = total
                total -= rule_result.penalty
                fired.append(rule_result.name)
                metrics.record_rule_hit(rule_result.name, rule_result.penalty)
                logger.debug(
                    "Rule %s fired for %s (score %s -> %s)",
                    rule_result.name,
                    context.domain,
                    before,
                    total,
                )
            min_rating = Rating.escalate(min_rating, rule_result.floor)
            issues.extend(rule_result.issues or [])
            threats.extend(rule_result.threats or [])

        base_rating = Rating.from_score(
            total,
            safe_threshold=self.scoring.get("rating_safe", 80),
            caution_threshold=self.scoring.get("rating_caution", 50),
        )
        rating = Rating.escalate(base_rating, min_rating)
        if rating is not base_rating:
            logger.debug("Upgrading rating %s -> %s due to severity floor", base_rating, rating)

        score = max(0, min(100, total))
        result = AnalysisResult(
            is_safe=rating == Rating.SAFE,
            rating=rating,
            score=score,
            issues=issues,
            threats=threats,
        )
        return result, fired

    async def analyze(self, payload: str) -> AnalysisResult:
        """Analyze one decoded QR payload."""
        payload = payload if payload is not None else ""

        if self.cache:
            cached = self.cache.get(payload)
            if cached is not None:
                logger.debug("Using cached result for %s", payload)
                metrics.record_cache_hit()
                self._emit(
                    AnalysisEvent(
                        payload=payload,
                        domain=extract_domain(payload),
                        rating=cached.rating.value,
                        score=cached.score,
                        threats=list(cached.threats),
                        cached=True,
                    )
                )
                return _detached(cached)

        context = self.build_context(payload)
        await self._gather_signals(context)
        result, fired = self.score(context)

        metrics.record_rating(result.rating.value)
        self._emit(
            AnalysisEvent(
                payload=payload,
                domain=context.domain,
                rating=result.rating.value,
                score=result.score,
                fired_rules=fired,
                threats=list(result.threats),
            )
        )

        if self.cache:
            self.cache.set(payload, _detached(result))

        if self.monitor:
            await self.monitor.check(payload, result)

        return result

    def _emit(self, event: AnalysisEvent) -> None:
        try:
            self.event_sink.emit(event)
        except Exception as exc:
            logger.debug("Event sink failed: %s", exc)


async def _none() -> None:
    return None


def _detached(result: AnalysisResult) -> AnalysisResult:
    """Copy with its own lists, so callers never share state with the cache."""
    return dataclasses.replace(result, issues=list(result.issues), threats=list(result.threats))
