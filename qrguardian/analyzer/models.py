"""Analyzer data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Rating(str, Enum):
    """Safety rating of a payload, ordered SAFE < CAUTION < DANGEROUS."""

    SAFE = "SAFE"
    CAUTION = "CAUTION"
    DANGEROUS = "DANGEROUS"

    @property
    def weight(self) -> int:
        return _RATING_WEIGHTS[self]

    @classmethod
    def escalate(cls, current: "Rating", floor: Optional["Rating"]) -> "Rating":
        """Return the stronger of two ratings (a floor never lowers a rating)."""
        if floor is None:
            return current
        return floor if floor.weight > current.weight else current

    @classmethod
    def from_score(
        cls,
        score: int,
        safe_threshold: int = 80,
        caution_threshold: int = 50,
    ) -> "Rating":
        """Map a numeric score onto a base rating."""
        if score >= safe_threshold:
            return cls.SAFE
        if score >= caution_threshold:
            return cls.CAUTION
        return cls.DANGEROUS

    @classmethod
    def parse(cls, value: object) -> Optional["Rating"]:
        """Coerce a stored rating string, returning None when unknown."""
        if isinstance(value, Rating):
            return value
        if not isinstance(value, str):
            return None
        cleaned = value.strip().upper()
        for entry in cls:
            if entry.value == cleaned:
                return entry
        return None

    def __str__(self) -> str:
        return self.value


_RATING_WEIGHTS = {
    Rating.SAFE: 0,
    Rating.CAUTION: 1,
    Rating.DANGEROUS: 2,
}


@dataclass(frozen=True)
class BrandPattern:
    """A brand name and the domains it legitimately operates."""

    name: str
    official_domains: frozenset[str] = frozenset()

    def is_official(self, host: str) -> bool:
        return host in self.official_domains


@dataclass
class AnalysisResult:
    """Final verdict for one payload."""

    is_safe: bool
    rating: Rating
    score: int
    issues: list[str] = field(default_factory=list)
    threats: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "isSafe": self.is_safe,
            "rating": self.rating.value,
            "score": self.score,
            "issues": list(self.issues),
            "threats": list(self.threats),
        }
