"""Domain normalization utilities."""

from __future__ import annotations

import re
from urllib.parse import urlparse

import tldextract

# Bundled public suffix snapshot only; analysis must work offline.
_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())

_FALLBACK_HOST_RE = re.compile(r"(?:https?://)?(?:www\.)?([^/:?]+)")


def extract_domain(value: str) -> str:
    """
    Normalize a raw payload to a canonical hostname.

    - Lowercase
    - Strip leading "www." and a trailing root dot
    - Ignore scheme, port, path, query and fragment

    Never raises. When nothing host-like can be found the lowercased,
    trimmed payload is returned.
    """
    cleaned = (value or "").lower().strip()
    candidate = cleaned
    if not candidate.startswith(("http://", "https://")):
        candidate = f"http://{candidate}"

    try:
        host = urlparse(candidate).hostname or ""
    except ValueError:
        host = ""

    host = host.rstrip(".")
    if host:
        if host.startswith("www."):
            host = host[4:]
        return host

    match = _FALLBACK_HOST_RE.match(cleaned)
    if match:
        return match.group(1)
    return cleaned


def ensure_scheme(value: str) -> str:
    """Prefix schemeless payloads with http:// for network requests."""
    raw = (value or "").strip()
    if "://" in raw:
        return raw
    return f"http://{raw}"


def registered_label(host: str) -> str:
    """Return the registrable label of a host ("paypal-login" for "paypal-login.tk")."""
    raw = (host or "").strip().lower().strip(".")
    if not raw:
        return ""
    extracted = _EXTRACT(raw)
    if extracted.domain:
        return extracted.domain
    return raw.split(".")[0]


def domains_overlap(first: str, second: str) -> bool:
    """Bidirectional substring containment between two hostnames."""
    if not first or not second:
        return False
    return first in second or second in first
