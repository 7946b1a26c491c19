"""Scoring rule implementations.

Every rule runs on every payload; none short-circuits another. The order
of ``DEFAULT_RULES`` is the order issues appear in the result.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import idna

from .models import Rating
from .reputation import VERIFICATION_UNAVAILABLE
from .rules import AnalysisContext, RuleResult

if TYPE_CHECKING:
    from .engine import SafetyAnalyzer

API_NOT_CONFIGURED = "Security API not configured - using basic checks only"

DEFAULT_SENSITIVE_KEYWORDS: tuple[str, ...] = ("password", "admin", "config", "login", "verify")
DEFAULT_SCAM_KEYWORDS: tuple[str, ...] = ("free", "win", "prize", "reward", "bonus", "lottery", "claim")
DEFAULT_INJECTION_PATTERNS: tuple[str, ...] = ("javascript:", "vbscript:", "<script", "eval(", "document.cookie")
DEFAULT_SUSPICIOUS_TLDS: tuple[str, ...] = (".tk", ".ml", ".ga", ".cf", ".xyz", ".top")

_IPV4_RE = re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b")
_SCHEME_RE = re.compile(r"[a-z][a-z0-9+.\-]*://")
_WEB_SCHEME_RE = re.compile(r"https?://")


class WifiDirectiveRule:
    name = "wifi_directive"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        wifi = context.parsed.wifi
        if not wifi or wifi.source != "scheme":
            return RuleResult(self.name)
        ssid = wifi.ssid or "unknown network"
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("wifi_directive", 20),
            issues=[f"Network Config: Attempting to connect to Wi-Fi network '{ssid}'."],
            floor=Rating.CAUTION,
            metadata={"ssid": wifi.ssid, "security": wifi.security, "hidden": wifi.hidden},
        )


class WifiSecurityRule:
    name = "wifi_security"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        wifi = context.parsed.wifi
        if not wifi or wifi.source != "scheme" or not wifi.is_insecure:
            return RuleResult(self.name)

        security = (wifi.security or "").upper()
        if security == "WEP":
            detail = "uses outdated WEP encryption"
        elif security == "NOPASS":
            detail = "is an open network with no password"
        else:
            detail = "does not declare any security type"
        ssid = wifi.ssid or "unknown network"
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("wifi_insecure", 30),
            issues=[f"Insecure Network: Wi-Fi network '{ssid}' {detail}."],
            floor=Rating.DANGEROUS,
        )


class WifiHeuristicRule:
    name = "wifi_heuristic"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        wifi = context.parsed.wifi
        if not wifi or wifi.source != "heuristic":
            return RuleResult(self.name)
        s = analyzer.scoring
        return RuleResult(
            self.name,
            penalty=s.get("wifi_heuristic", 20) + s.get("wifi_heuristic_credential", 20),
            issues=[
                f"Network Config: Text looks like Wi-Fi details for network '{wifi.ssid}'.",
                f"Credential Exposure: QR code appears to contain a {wifi.password_length}-character network password.",
            ],
            floor=Rating.CAUTION,
        )


class PremiumSmsRule:
    name = "premium_sms"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        sms = context.parsed.sms
        if not sms:
            return RuleResult(self.name)
        number = sms.number or "unknown number"
        message = sms.message or '""'
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("premium_sms", 50),
            issues=[f"Financial Risk: Triggers an SMS to {number} with message '{message}'."],
            floor=Rating.DANGEROUS,
            metadata={"source": sms.source},
        )


class DirectCallRule:
    name = "direct_call"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        call = context.parsed.call
        if not call:
            return RuleResult(self.name)
        number = call.number or "unknown number"
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("direct_call", 20),
            issues=[f"Privacy Risk: Initiates an automatic phone call to {number}."],
            floor=Rating.CAUTION,
            metadata={"source": call.source},
        )


class HomographRule:
    name = "homograph"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        if not context.domain.startswith("xn--"):
            return RuleResult(self.name)

        issue = "Homograph Risk: This domain uses IDN/Punycode and may imitate a trusted brand."
        try:
            decoded = idna.decode(context.domain)
            if decoded and decoded != context.domain:
                issue = f"{issue[:-1]} (displays as '{decoded}')."
        except (idna.IDNAError, UnicodeError):
            pass

        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("homograph", 50),
            issues=[issue],
            floor=Rating.DANGEROUS,
        )


class BrandImpersonationRule:
    name = "brand_impersonation"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        matches = analyzer.brands.impersonated_by(context.domain)
        if not matches:
            return RuleResult(self.name)
        points = analyzer.scoring.get("brand_impersonation", 40)
        return RuleResult(
            self.name,
            penalty=points * len(matches),
            issues=[f"Phishing Alert: This URL mimics {brand.name} but is likely fake." for brand in matches],
            floor=Rating.DANGEROUS,
            metadata={"brands": [brand.name for brand in matches]},
        )


class SensitiveKeywordRule:
    name = "sensitive_keywords"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        matched = [k for k in analyzer.sensitive_keywords if k in context.lower]
        if not matched:
            return RuleResult(self.name)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("sensitive_keywords", 15),
            issues=["Sensitive Content: URL contains security-sensitive keywords."],
            floor=Rating.CAUTION,
            metadata={"keywords": matched},
        )


class InjectionRule:
    name = "injection"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        matched = [p for p in analyzer.injection_patterns if p in context.lower]
        if not matched:
            return RuleResult(self.name)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("injection", 50),
            issues=["Script Injection: Payload contains executable script content."],
            floor=Rating.DANGEROUS,
            metadata={"patterns": matched},
        )


class EntropyRule:
    name = "entropy"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        result = analyzer.entropy.analyze(context.domain)
        if not result.level:
            return RuleResult(self.name)

        s = analyzer.scoring
        if result.level == "high":
            penalty, floor = s.get("entropy_high", 20), Rating.CAUTION
            issue = f"Random-looking domain name '{result.label}' (entropy {result.entropy:.2f}) - likely auto-generated"
        elif result.level == "medium":
            penalty, floor = s.get("entropy_medium", 10), Rating.CAUTION
            issue = f"Unusual domain name '{result.label}' (entropy {result.entropy:.2f}) - possibly auto-generated"
        else:
            penalty, floor = s.get("entropy_low", 5), None
            issue = f"Slightly random domain name '{result.label}' (entropy {result.entropy:.2f})"

        return RuleResult(
            self.name,
            penalty=penalty,
            issues=[issue],
            floor=floor,
            metadata={"entropy": result.entropy, "level": result.level},
        )


class ShortenerRule:
    name = "url_shortener"

    @staticmethod
    def matches(analyzer: "SafetyAnalyzer", lower: str) -> bool:
        return any(shortener in lower for shortener in analyzer.shorteners)

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        if not self.matches(analyzer, context.lower):
            return RuleResult(self.name)

        issues = ["Uses URL shortener - may hide malicious destination"]
        resolved = context.short_link
        if resolved and resolved.final_url and resolved.final_url not in (context.payload, context.request_url):
            note = ""
            if resolved.hops > 0:
                plural = "s" if resolved.hops > 1 else ""
                note = f" (approx. {resolved.hops} redirect{plural})"
            issues.append(f"Short URL expands to: {resolved.final_url}{note}")

        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("url_shortener", 35),
            issues=issues,
            metadata={"final_url": resolved.final_url if resolved else None},
        )


class InsecureTransportRule:
    name = "insecure_transport"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        if not context.payload.startswith("http://"):
            return RuleResult(self.name)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("insecure_transport", 25),
            issues=["Uses HTTP (not secure) instead of HTTPS"],
        )


class OpenRedirectRule:
    name = "open_redirect"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        first = _SCHEME_RE.search(context.lower)
        if not first or not _WEB_SCHEME_RE.search(context.lower, first.end()):
            return RuleResult(self.name)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("open_redirect", 30),
            issues=["Open Redirect: URL embeds a second web address that may forward you elsewhere"],
            floor=Rating.CAUTION,
        )


class ScamKeywordRule:
    name = "scam_keywords"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        matched = [k for k in analyzer.scam_keywords if k in context.lower]
        if not matched:
            return RuleResult(self.name)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("scam_keywords", 30),
            issues=["Contains promotional keywords often used in scams"],
            metadata={"keywords": matched},
        )


class IpLiteralRule:
    name = "ip_literal"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        if not _IPV4_RE.search(context.payload):
            return RuleResult(self.name)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("ip_literal", 30),
            issues=["Uses IP address instead of domain name (often suspicious)"],
        )


class SuspiciousTldRule:
    name = "suspicious_tld"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        matched = [tld for tld in analyzer.suspicious_tlds if tld in context.lower]
        if not matched:
            return RuleResult(self.name)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("suspicious_tld", 15),
            issues=["Uses less common TLD often associated with spam"],
            metadata={"tlds": matched},
        )


class ExcessiveSubdomainRule:
    name = "excessive_subdomains"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        dots = context.payload.count(".")
        if dots <= analyzer.scoring.get("max_dots", 4):
            return RuleResult(self.name)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("excessive_subdomains", 10),
            issues=["Excessive subdomains - could be hiding true destination"],
            metadata={"dots": dots},
        )


class ReputationRule:
    name = "reputation"

    def apply(self, analyzer: "SafetyAnalyzer", context: AnalysisContext) -> RuleResult:
        issues: list[str] = []
        if not context.reputation_configured:
            issues.append(API_NOT_CONFIGURED)
        if context.reputation_unavailable:
            issues.append(VERIFICATION_UNAVAILABLE)

        if not context.threats:
            return RuleResult(self.name, issues=issues)

        issues.append("KNOWN SECURITY THREATS DETECTED")
        issues.extend(context.threats)
        return RuleResult(
            self.name,
            penalty=analyzer.scoring.get("reputation", 50),
            issues=issues,
            threats=list(context.threats),
        )


DEFAULT_RULES = (
    # Hidden actions
    WifiDirectiveRule,
    WifiSecurityRule,
    WifiHeuristicRule,
    PremiumSmsRule,
    DirectCallRule,
    # Domain analysis
    HomographRule,
    BrandImpersonationRule,
    # Keyword scan
    SensitiveKeywordRule,
    InjectionRule,
    # Structure
    EntropyRule,
    ShortenerRule,
    InsecureTransportRule,
    OpenRedirectRule,
    ScamKeywordRule,
    IpLiteralRule,
    SuspiciousTldRule,
    ExcessiveSubdomainRule,
    # External
    ReputationRule,
)


__all__ = [
    "API_NOT_CONFIGURED",
    "DEFAULT_INJECTION_PATTERNS",
    "DEFAULT_RULES",
    "DEFAULT_SCAM_KEYWORDS",
    "DEFAULT_SENSITIVE_KEYWORDS",
    "DEFAULT_SUSPICIOUS_TLDS",
    "WifiDirectiveRule",
    "WifiSecurityRule",
    "WifiHeuristicRule",
    "PremiumSmsRule",
    "DirectCallRule",
    "HomographRule",
    "BrandImpersonationRule",
    "SensitiveKeywordRule",
    "InjectionRule",
    "EntropyRule",
    "ShortenerRule",
    "InsecureTransportRule",
    "OpenRedirectRule",
    "ScamKeywordRule",
    "IpLiteralRule",
    "SuspiciousTldRule",
    "ExcessiveSubdomainRule",
    "ReputationRule",
]
