"""Best-effort expansion of shortened URLs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import httpx

logger = logging.getLogger(__name__)

DEFAULT_SHORTENERS: tuple[str, ...] = (
    "bit.ly",
    "tinyurl.com",
    "goo.gl",
    "t.co",
    "ow.ly",
    "is.gd",
    "buff.ly",
    "adf.ly",
    "shorturl.at",
    "cutt.ly",
    "shorte.st",
    "tiny.cc",
    "bit.do",
    "lnkd.in",
    "rebrand.ly",
    "tiny.one",
    "t.ly",
    "rb.gy",
)


@dataclass(frozen=True)
class ShortLinkResolution:
    final_url: str
    hops: int = 0


class ShortLinkResolver(Protocol):
    async def resolve(self, url: str) -> Optional[ShortLinkResolution]:  # pragma: no cover - interface
        ...


class HttpShortLinkResolver:
    """Follow redirects with a HEAD request to find where a short link lands."""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    async def resolve(self, url: str) -> Optional[ShortLinkResolution]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                resp = await client.head(url)
                final_url = str(resp.url) if resp.url else url
                return ShortLinkResolution(final_url=final_url, hops=len(resp.history))
        except Exception as e:
            logger.debug("Failed to resolve short URL %s: %s", url, e)
            return None
