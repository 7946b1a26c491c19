"""Rule-based building blocks for payload scoring."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Protocol

from .models import Rating
from .schemes import ParsedPayload
from .shortlinks import ShortLinkResolution

if TYPE_CHECKING:
    from .engine import SafetyAnalyzer


@dataclass
class AnalysisContext:
    """Shared context passed to each scoring rule."""

    payload: str
    lower: str
    domain: str
    parsed: ParsedPayload
    short_link: Optional[ShortLinkResolution] = None
    request_url: str = ""
    threats: list[str] = field(default_factory=list)
    reputation_configured: bool = False
    reputation_checked: bool = False
    reputation_unavailable: bool = False


@dataclass
class RuleResult:
    """Score delta produced by a single rule."""

    name: str
    penalty: int = 0
    issues: list[str] = field(default_factory=list)
    floor: Optional[Rating] = None
    threats: list[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)

    @property
    def fired(self) -> bool:
        return bool(self.penalty or self.issues or self.floor)


class ScoringRule(Protocol):
    """Interface for scoring rules."""

    name: str

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:  # pragma: no cover - interface
        ...
