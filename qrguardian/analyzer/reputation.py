"""
Known-threat reputation lookups.

The scoring engine only depends on the ``ReputationGateway`` protocol:
a lookup takes the payload as a URL and returns threat labels. Lookups
never raise. A transport/API failure yields the single
``VERIFICATION_UNAVAILABLE`` label, which callers treat as informational.

``SafeBrowsingGateway`` talks to Google Safe Browsing v4. Without an API
key it is unconfigured and the engine skips the lookup. With ``mock=True``
(and no key) it answers from a deterministic mock so the full pipeline can
be exercised locally.
"""

import asyncio
import logging
from typing import List, Optional, Protocol

import aiohttp

logger = logging.getLogger(__name__)

VERIFICATION_UNAVAILABLE = "Could not verify with security database"

SAFE_BROWSING_URL = "https://safebrowsing.googleapis.com/v4/threatMatches:find"
SAFE_BROWSING_THREAT_TYPES = ["MALWARE", "SOCIAL_ENGINEERING", "UNWANTED_SOFTWARE"]

MOCK_THREATS = (
    ("test-malware", "MALWARE detected (Mock)"),
    ("test-phishing", "SOCIAL_ENGINEERING detected (Mock)"),
)


class ReputationGateway(Protocol):
    """Interface for known-threat lookup services."""

    @property
    def configured(self) -> bool:  # pragma: no cover - interface
        ...

    async def lookup(self, url: str) -> List[str]:  # pragma: no cover - interface
        ...


def format_threat_label(threat_type: str) -> str:
    """MALWARE -> 'malware threat detected', SOCIAL_ENGINEERING -> 'social engineering ...'."""
    return f"{threat_type.replace('_', ' ', 1).lower()} threat detected"


class SafeBrowsingGateway:
    """
    Google Safe Browsing v4 lookup.

    Rate limits (free tier): 10,000 requests/day per project.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client_id: str = "qr-guardian",
        client_version: str = "1.0.0",
        mock: bool = False,
    ):
        self.api_key = api_key or None
        self.mock = mock
        self.timeout = timeout
        self.client_id = client_id
        self.client_version = client_version

    @property
    def configured(self) -> bool:
        return bool(self.api_key) or self.mock

    def _build_request(self, url: str) -> dict:
        return {
            "client": {
                "clientId": self.client_id,
                "clientVersion": self.client_version,
            },
            "threatInfo": {
                "threatTypes": list(SAFE_BROWSING_THREAT_TYPES),
                "platformTypes": ["ANY_PLATFORM"],
                "threatEntryTypes": ["URL"],
                "threatEntries": [{"url": url}],
            },
        }

    @staticmethod
    def _mock_lookup(url: str) -> List[str]:
        for needle, label in MOCK_THREATS:
            if needle in url:
                return [label]
        return []

    async def lookup(self, url: str) -> List[str]:
        """Return threat labels for a URL (empty when clean)."""
        if not self.api_key:
            if self.mock:
                return self._mock_lookup(url)
            logger.debug("Safe Browsing API key not configured; skipping lookup for %s", url)
            return []

        threats: List[str] = []
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    SAFE_BROWSING_URL,
                    params={"key": self.api_key},
                    json=self._build_request(url),
                ) as resp:
                    if resp.status != 200:
                        logger.warning("Safe Browsing API error for %s: HTTP %s", url, resp.status)
                        return [VERIFICATION_UNAVAILABLE]
                    data = await resp.json()

            for match in (data or {}).get("matches", []) or []:
                threat_type = str((match or {}).get("threatType") or "").strip()
                if threat_type:
                    threats.append(format_threat_label(threat_type))

            if threats:
                logger.info("Safe Browsing threats for %s: %s", url, threats)
            else:
                logger.debug("Safe Browsing: no threats for %s", url)

        except asyncio.TimeoutError:
            logger.warning("Safe Browsing timeout for %s", url)
            return [VERIFICATION_UNAVAILABLE]
        except Exception as e:
            logger.warning("Safe Browsing error for %s: %s", url, e)
            return [VERIFICATION_UNAVAILABLE]

        return threats
