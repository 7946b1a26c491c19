"""QR Guardian: heuristic risk scoring for decoded QR payloads."""

from .analyzer import AnalysisResult, Rating, SafetyAnalyzer
from .pipeline import build_safety_analyzer

__version__ = "1.0.0"

__all__ = [
    "AnalysisResult",
    "Rating",
    "SafetyAnalyzer",
    "build_safety_analyzer",
]
