"""Analyzer modules for QR Guardian."""

from .brands import BrandRegistry
from .engine import SafetyAnalyzer
from .entropy import EntropyAnalyzer
from .models import AnalysisResult, BrandPattern, Rating
from .reputation import VERIFICATION_UNAVAILABLE, ReputationGateway, SafeBrowsingGateway
from .schemes import ParsedPayload, parse_payload
from .shortlinks import HttpShortLinkResolver, ShortLinkResolution

__all__ = [
    "AnalysisResult",
    "BrandPattern",
    "BrandRegistry",
    "EntropyAnalyzer",
    "HttpShortLinkResolver",
    "ParsedPayload",
    "Rating",
    "ReputationGateway",
    "SafeBrowsingGateway",
    "SafetyAnalyzer",
    "ShortLinkResolution",
    "VERIFICATION_UNAVAILABLE",
    "parse_payload",
]
