"""Character-entropy analysis for algorithmically generated hostnames."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Optional

from ..utils.domains import registered_label


@dataclass
class EntropyResult:
    """Entropy of the registrable label of a hostname."""

    label: str
    entropy: float
    level: Optional[str] = None  # high, medium, low


def shannon_entropy(value: str) -> float:
    """Shannon entropy in bits per character."""
    if not value:
        return 0.0
    length = len(value)
    counts = Counter(value)
    return -sum((n / length) * math.log2(n / length) for n in counts.values())


class EntropyAnalyzer:
    """Flags hostnames whose character distribution looks DGA-generated."""

    def __init__(
        self,
        min_length: int = 6,
        high_threshold: float = 3.8,
        medium_threshold: float = 3.6,
        low_threshold: float = 3.2,
    ):
        self.min_length = min_length
        self.high_threshold = high_threshold
        self.medium_threshold = medium_threshold
        self.low_threshold = low_threshold

    def analyze(self, host: str) -> EntropyResult:
        label = "".join(ch for ch in registered_label(host) if ch.isascii() and ch.isalnum())
        if len(label) < self.min_length:
            return EntropyResult(label=label, entropy=0.0)

        entropy = shannon_entropy(label)
        level = None
        if entropy >= self.high_threshold:
            level = "high"
        elif entropy >= self.medium_threshold:
            level = "medium"
        elif entropy >= self.low_threshold:
            level = "low"
        return EntropyResult(label=label, entropy=entropy, level=level)
