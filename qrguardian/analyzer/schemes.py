"""Parser for non-web QR payloads (Wi-Fi join, SMS, phone call).

QR codes can carry "hidden actions" instead of links:

- ``WIFI:S:<ssid>;T:<WPA|WEP|nopass>;P:<password>;;`` joins a network
- ``SMSTO:<number>:<message>`` pre-fills (and on some phones sends) an SMS
- ``TEL:<number>`` starts a phone call

Generators and cameras are inconsistent, so each directive also has a
heuristic fallback form (a bare phone number, a number followed by text,
or two whitespace-separated tokens that look like SSID + password).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

WIFI_MARKER = "wifi:"
INSECURE_WIFI_SECURITY = {"WEP", "NOPASS", ""}

_WIFI_FIELD_RE = {
    "ssid": re.compile(r"(?:^|[;:])S:([^;]*)", re.I),
    "security": re.compile(r"(?:^|[;:])T:([^;]*)", re.I),
    "password": re.compile(r"(?:^|[;:])P:([^;]*)", re.I),
    "hidden": re.compile(r"(?:^|[;:])H:([^;]*)", re.I),
}

_SMS_NUMBER_RE = re.compile(r"^\+?[0-9]{3,}$")
_CALL_NUMBER_RE = re.compile(r"^\+?[0-9]{6,}$")
_DOTTED_HOST_RE = re.compile(r"^[a-z0-9-]+(?:\.[a-z0-9-]+)*\.[a-z]{2,}(?:[/:?#].*)?$", re.I)


@dataclass
class WifiDirective:
    """Wi-Fi join request. The credential itself is never kept."""

    ssid: str
    security: Optional[str]
    has_password: bool = False
    password_length: int = 0
    hidden: bool = False
    source: str = "scheme"  # scheme | heuristic

    @property
    def is_insecure(self) -> bool:
        return (self.security or "").upper() in INSECURE_WIFI_SECURITY


@dataclass
class SmsDirective:
    number: str
    message: str
    source: str = "scheme"


@dataclass
class CallDirective:
    number: str
    source: str = "scheme"


@dataclass
class ParsedPayload:
    """Structured view of the directives recognized in a payload."""

    wifi: Optional[WifiDirective] = None
    sms: Optional[SmsDirective] = None
    call: Optional[CallDirective] = None

    @property
    def has_directive(self) -> bool:
        return any((self.wifi, self.sms, self.call))


def looks_like_url(payload: str) -> bool:
    """Whether a payload reads as a web address rather than free text."""
    raw = (payload or "").strip().lower()
    if not raw:
        return False
    if "://" in raw or raw.startswith("www."):
        return True
    first_token = raw.split()[0]
    return bool(_DOTTED_HOST_RE.match(first_token))


def _is_directive(lower: str, prefix: str) -> bool:
    return lower.lstrip().startswith(prefix)


def _wifi_field(body: str, name: str) -> Optional[str]:
    match = _WIFI_FIELD_RE[name].search(body)
    if not match:
        return None
    return match.group(1)


def parse_wifi(payload: str) -> Optional[WifiDirective]:
    """Parse an explicit ``WIFI:`` directive or the two-token fallback."""
    lower = payload.lower()
    marker = lower.find(WIFI_MARKER)
    if marker >= 0:
        body = payload[marker + len(WIFI_MARKER):]
        password = _wifi_field(body, "password")
        security = _wifi_field(body, "security")
        hidden = (_wifi_field(body, "hidden") or "").strip().lower() == "true"
        return WifiDirective(
            ssid=_wifi_field(body, "ssid") or "",
            security=security.strip() if security is not None else None,
            has_password=bool(password),
            password_length=len(password or ""),
            hidden=hidden,
        )

    if looks_like_url(payload):
        return None
    if _is_directive(lower, "tel:") or _is_directive(lower, "smsto:"):
        return None

    tokens = payload.split()
    if len(tokens) != 2:
        return None
    # "<number> <text>" is an implicit SMS, not a network credential.
    if _SMS_NUMBER_RE.match(tokens[0]):
        return None

    return WifiDirective(
        ssid=tokens[0],
        security=None,
        has_password=True,
        password_length=len(tokens[1]),
        source="heuristic",
    )


def parse_sms(payload: str) -> Optional[SmsDirective]:
    """Parse ``SMSTO:number:message`` or a phone number followed by text."""
    stripped = payload.lstrip()
    if stripped.lower().startswith("smsto:"):
        number, _, message = stripped[len("smsto:"):].partition(":")
        return SmsDirective(number=number.strip(), message=message)

    lines = payload.strip().splitlines()
    if not lines:
        return None
    first_line = lines[0].strip()
    tokens = first_line.split(None, 1)
    if not tokens or not _SMS_NUMBER_RE.match(tokens[0]):
        return None

    rest = [line.strip() for line in lines[1:] if line.strip()]
    if len(tokens) > 1:
        rest.insert(0, tokens[1].strip())
    message = " ".join(rest).strip()
    if not message:
        return None
    return SmsDirective(number=tokens[0], message=message, source="heuristic")


def parse_call(payload: str) -> Optional[CallDirective]:
    """Parse ``TEL:number`` or a bare phone number."""
    stripped = payload.strip()
    if stripped.lower().startswith("tel:"):
        return CallDirective(number=stripped[len("tel:"):].strip())
    if _CALL_NUMBER_RE.match(stripped):
        return CallDirective(number=stripped, source="heuristic")
    return None


def parse_payload(payload: str) -> ParsedPayload:
    """Recognize every directive present in a payload (they are not exclusive)."""
    payload = payload or ""
    return ParsedPayload(
        wifi=parse_wifi(payload),
        sms=parse_sms(payload),
        call=parse_call(payload),
    )
