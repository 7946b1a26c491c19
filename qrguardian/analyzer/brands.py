"""Brand registry used for impersonation detection."""

from __future__ import annotations

from typing import Iterable, Iterator, Mapping

from .models import BrandPattern

DEFAULT_BRANDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    # Payments & finance (global)
    ("paypal", ("paypal.com",)),
    ("visa", ()),
    ("mastercard", ()),
    ("stripe", ("stripe.com",)),
    ("revolut", ("revolut.com",)),
    ("wise", ("wise.com", "transferwise.com")),
    ("bank", ()),
    # Big tech & platforms
    ("google", ("google.com", "accounts.google.com")),
    ("apple", ("apple.com", "icloud.com")),
    ("microsoft", ("microsoft.com", "live.com", "office.com")),
    ("windows", ()),
    ("amazon", ("amazon.com",)),
    ("netflix", ("netflix.com",)),
    ("facebook", ("facebook.com",)),
    ("instagram", ("instagram.com",)),
    ("whatsapp", ("whatsapp.com",)),
    ("tiktok", ("tiktok.com",)),
    ("twitter", ("twitter.com", "x.com")),
    # Global shopping & brands
    ("adidas", ("adidas.com",)),
    ("nike", ("nike.com",)),
    ("ebay", ("ebay.com",)),
    # Sri Lankan banks
    ("boc", ("boc.lk", "online.boc.lk")),
    ("peoples bank", ("peoplesbank.lk",)),
    ("commercial bank", ("combank.net",)),
    ("hnb", ("hnb.net",)),
    ("sampath", ("sampath.lk",)),
    ("seylan", ("seylan.lk",)),
    ("ndb", ("ndbbank.com",)),
    ("dfcc", ("dfcc.lk",)),
    ("nation trust", ("nationstrust.com",)),
    ("cargills bank", ("cargillsbank.com",)),
    # Sri Lankan telcos
    ("dialog", ("dialog.lk",)),
    ("mobitel", ("mobitel.lk", "slt.lk")),
    ("hutch", ("hutch.lk",)),
    ("airtel", ("airtel.lk",)),
    # Sri Lankan e-commerce / services
    ("kapruka", ("kapruka.com",)),
    ("daraz", ("daraz.lk",)),
    ("ikman", ("ikman.lk",)),
    # Sri Lankan gov portals
    ("gov", ("gov.lk",)),
    ("immigration", ("immigration.gov.lk",)),
    ("iraj", ()),
)

LEET_SUBSTITUTIONS: dict[str, str] = {
    "0": "o",
    "1": "l",
    "3": "e",
    "4": "a",
    "5": "s",
    "7": "t",
    "@": "a",
}


def leet_normalize(value: str, substitutions: Mapping[str, str] | None = None) -> str:
    """Fold common character substitutions back to letters (p4ypa1 -> paypal)."""
    table = substitutions if substitutions is not None else LEET_SUBSTITUTIONS
    normalized = value.replace("\0", "")
    for sub, char in table.items():
        normalized = normalized.replace(sub, char)
    return normalized


class BrandRegistry:
    """Read-only table of brands and their official domains."""

    def __init__(self, patterns: Iterable[BrandPattern]):
        self._patterns: tuple[BrandPattern, ...] = tuple(patterns)

    @classmethod
    def default(cls) -> "BrandRegistry":
        return cls.from_mapping({name: domains for name, domains in DEFAULT_BRANDS})

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Iterable[str]]) -> "BrandRegistry":
        patterns = []
        for name, domains in raw.items():
            cleaned = str(name or "").strip().lower()
            if not cleaned:
                continue
            official = frozenset(
                str(d).strip().lower() for d in (domains or []) if str(d).strip()
            )
            patterns.append(BrandPattern(name=cleaned, official_domains=official))
        return cls(patterns)

    def __iter__(self) -> Iterator[BrandPattern]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def impersonated_by(self, host: str) -> list[BrandPattern]:
        """
        Return every brand whose name appears in the (leet-folded) host
        while the host is not one of that brand's official domains.
        """
        host = (host or "").lower()
        if not host:
            return []
        folded = leet_normalize(host)
        matches = []
        for brand in self._patterns:
            if brand.is_official(host):
                continue
            if brand.name in folded:
                matches.append(brand)
        return matches
