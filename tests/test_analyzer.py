"""Tests for the payload safety analyzer."""

import pytest

from qrguardian.analyzer.engine import SafetyAnalyzer
from qrguardian.analyzer.heuristic_rules import API_NOT_CONFIGURED
from qrguardian.analyzer.metrics import RecordingEventSink, metrics
from qrguardian.analyzer.models import Rating
from qrguardian.analyzer.reputation import VERIFICATION_UNAVAILABLE, SafeBrowsingGateway
from qrguardian.analyzer.shortlinks import ShortLinkResolution
from qrguardian.cache import create_result_cache


class _FakeGateway:
    def __init__(self, threats=None, *, configured=True, error=None):
        self._threats = list(threats or [])
        self._configured = configured
        self._error = error
        self.calls: list[str] = []

    @property
    def configured(self):
        return self._configured

    async def lookup(self, url):
        self.calls.append(url)
        if self._error:
            raise self._error
        return list(self._threats)


class _FakeResolver:
    def __init__(self, resolution=None, error=None):
        self._resolution = resolution
        self._error = error
        self.calls: list[str] = []

    async def resolve(self, url):
        self.calls.append(url)
        if self._error:
            raise self._error
        return self._resolution


class _FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def make_analyzer(**kwargs):
    kwargs.setdefault("reputation", _FakeGateway())
    return SafetyAnalyzer(**kwargs)


@pytest.fixture
def analyzer():
    return make_analyzer()


class TestScenarios:
    @pytest.mark.asyncio
    async def test_clean_url_is_safe(self, analyzer):
        result = await analyzer.analyze("https://www.google.com")
        assert result.score == 100
        assert result.rating == Rating.SAFE
        assert result.is_safe
        assert result.issues == []
        assert result.threats == []

    @pytest.mark.asyncio
    async def test_phone_call(self, analyzer):
        result = await analyzer.analyze("tel:+94771234567")
        assert result.score == 80
        assert result.rating == Rating.CAUTION
        assert not result.is_safe
        assert result.issues == ["Privacy Risk: Initiates an automatic phone call to +94771234567."]

    @pytest.mark.asyncio
    async def test_premium_sms_with_scam_text(self, analyzer):
        result = await analyzer.analyze("SMSTO:1345:WIN FREE PRIZE")
        assert result.score == 20
        assert result.rating == Rating.DANGEROUS
        assert result.issues == [
            "Financial Risk: Triggers an SMS to 1345 with message 'WIN FREE PRIZE'.",
            "Contains promotional keywords often used in scams",
        ]

    @pytest.mark.asyncio
    async def test_shortener_without_resolver(self, analyzer):
        result = await analyzer.analyze("bit.ly/abc123")
        assert result.score == 65
        assert result.rating == Rating.CAUTION
        assert result.issues == ["Uses URL shortener - may hide malicious destination"]

    @pytest.mark.asyncio
    async def test_brand_phishing_on_spam_tld(self, analyzer):
        result = await analyzer.analyze("http://paypal-secure-login.tk/verify")
        assert result.score == 0
        assert result.rating == Rating.DANGEROUS
        assert "Phishing Alert: This URL mimics paypal but is likely fake." in result.issues
        assert "Sensitive Content: URL contains security-sensitive keywords." in result.issues
        assert "Uses HTTP (not secure) instead of HTTPS" in result.issues
        assert "Uses less common TLD often associated with spam" in result.issues

    @pytest.mark.asyncio
    async def test_secured_wifi(self, analyzer):
        result = await analyzer.analyze("WIFI:S:HomeNet;T:WPA;P:secret;;")
        assert result.score == 80
        assert result.rating == Rating.CAUTION
        assert result.issues == ["Network Config: Attempting to connect to Wi-Fi network 'HomeNet'."]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        ["WIFI:S:Cafe;T:nopass;;", "WIFI:S:Cafe;;", "WIFI:S:Cafe;T:WEP;P:abc;;"],
    )
    async def test_insecure_wifi(self, analyzer, payload):
        result = await analyzer.analyze(payload)
        assert result.score == 50
        assert result.rating == Rating.DANGEROUS
        assert result.issues[0] == "Network Config: Attempting to connect to Wi-Fi network 'Cafe'."
        assert result.issues[1].startswith("Insecure Network: Wi-Fi network 'Cafe'")

    @pytest.mark.asyncio
    async def test_plain_text_wifi_credentials(self, analyzer):
        result = await analyzer.analyze("Home homepass")
        assert result.score == 60
        assert result.rating == Rating.CAUTION
        assert result.issues == [
            "Network Config: Text looks like Wi-Fi details for network 'Home'.",
            "Credential Exposure: QR code appears to contain a 8-character network password.",
        ]

    @pytest.mark.asyncio
    async def test_script_injection(self, analyzer):
        result = await analyzer.analyze("javascript:alert(document.cookie)")
        assert result.rating == Rating.DANGEROUS
        assert "Script Injection: Payload contains executable script content." in result.issues

    @pytest.mark.asyncio
    async def test_open_redirect(self, analyzer):
        result = await analyzer.analyze("https://example.com/redirect?url=https://evil.example.org")
        assert result.score == 70
        assert result.rating == Rating.CAUTION
        assert result.issues == [
            "Open Redirect: URL embeds a second web address that may forward you elsewhere"
        ]

    @pytest.mark.asyncio
    async def test_ip_literal_admin_page(self, analyzer):
        result = await analyzer.analyze("http://192.168.1.1/admin")
        assert result.score == 30
        assert result.rating == Rating.DANGEROUS
        assert "Uses IP address instead of domain name (often suspicious)" in result.issues

    @pytest.mark.asyncio
    async def test_excessive_subdomains(self, analyzer):
        result = await analyzer.analyze("https://a.b.c.d.example.com")
        assert result.score == 90
        assert result.rating == Rating.SAFE
        assert result.issues == ["Excessive subdomains - could be hiding true destination"]

    @pytest.mark.asyncio
    async def test_punycode_domain(self, analyzer):
        result = await analyzer.analyze("https://xn--pypal-4ve.com")
        assert result.rating == Rating.DANGEROUS
        assert result.issues[0].startswith("Homograph Risk:")

    @pytest.mark.asyncio
    async def test_official_brand_domain(self, analyzer):
        result = await analyzer.analyze("https://accounts.google.com/signin")
        assert result.score == 100
        assert result.rating == Rating.SAFE

    @pytest.mark.asyncio
    async def test_leetspeak_brand(self, analyzer):
        result = await analyzer.analyze("https://paypa1-support.com")
        assert result.rating == Rating.DANGEROUS
        assert "Phishing Alert: This URL mimics paypal but is likely fake." in result.issues

    @pytest.mark.asyncio
    async def test_multiple_brands_each_penalized(self, analyzer):
        result = await analyzer.analyze("https://paypal-amazon-gift.com")
        phishing = [issue for issue in result.issues if issue.startswith("Phishing Alert")]
        assert len(phishing) == 2
        assert result.score <= 20

    @pytest.mark.asyncio
    async def test_generic_brand_substring_is_flagged(self, analyzer):
        result = await analyzer.analyze("https://notabank.com")
        assert result.rating == Rating.DANGEROUS

    @pytest.mark.asyncio
    async def test_official_domain_with_trailing_dot(self, analyzer):
        result = await analyzer.analyze("https://paypal.com.")
        assert result.score == 100
        assert result.rating == Rating.SAFE
        assert result.issues == []


class TestEntropy:
    @pytest.mark.asyncio
    async def test_high_entropy_floor(self, analyzer):
        # 100 - 20 = 80 would be SAFE without the floor.
        result = await analyzer.analyze("https://qx7k9w2mz4pvjb.com")
        assert result.score == 80
        assert result.rating == Rating.CAUTION
        assert len(result.issues) == 1
        assert result.issues[0].startswith("Random-looking domain name 'qx7k9w2mz4pvjb' (entropy 3.81)")

    @pytest.mark.asyncio
    async def test_medium_entropy(self, analyzer):
        result = await analyzer.analyze("https://qx7k9w2mz4pvj.com")
        assert result.score == 90
        assert result.rating == Rating.CAUTION
        assert len(result.issues) == 1
        assert result.issues[0].startswith("Unusual domain name 'qx7k9w2mz4pvj' (entropy 3.70)")

    @pytest.mark.asyncio
    async def test_low_entropy_has_no_floor(self, analyzer):
        result = await analyzer.analyze("https://qx7k9w2mz4.com")
        assert result.score == 95
        assert result.rating == Rating.SAFE
        assert result.issues == ["Slightly random domain name 'qx7k9w2mz4' (entropy 3.32)"]


class TestProperties:
    PAYLOADS = [
        "",
        "   ",
        "https://www.google.com",
        "http://paypal-secure-login.tk/verify?free=prize&win=1",
        "WIFI:S:x;;",
        "SMSTO:1:x",
        "qx7k9w2mz4pvjb.xyz",
        "http://[broken/path",
        "привет мир",
    ]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", PAYLOADS)
    async def test_score_is_bounded_and_consistent(self, analyzer, payload):
        result = await analyzer.analyze(payload)
        assert 0 <= result.score <= 100
        assert result.is_safe == (result.rating == Rating.SAFE)
        base = Rating.from_score(result.score)
        assert result.rating.weight >= base.weight

    @pytest.mark.asyncio
    async def test_floor_raises_high_score(self, analyzer):
        # 100 - 20 = 80 would be SAFE without the call floor.
        result = await analyzer.analyze("tel:+94771234567")
        assert Rating.from_score(result.score) == Rating.SAFE
        assert result.rating == Rating.CAUTION

    @pytest.mark.asyncio
    async def test_rules_do_not_short_circuit(self, analyzer):
        result = await analyzer.analyze("http://192.168.1.1/login?next=http://free-prize.tk")
        assert "Uses HTTP (not secure) instead of HTTPS" in result.issues
        assert "Uses IP address instead of domain name (often suspicious)" in result.issues
        assert "Contains promotional keywords often used in scams" in result.issues
        assert "Uses less common TLD often associated with spam" in result.issues
        assert result.score == 0

    @pytest.mark.asyncio
    async def test_scoring_weights_override(self):
        analyzer = make_analyzer(scoring_weights={"direct_call": 60})
        result = await analyzer.analyze("tel:+94771234567")
        assert result.score == 40
        assert result.rating == Rating.DANGEROUS

    @pytest.mark.asyncio
    async def test_custom_keywords(self):
        analyzer = make_analyzer(sensitive_keywords=["wallet"])
        result = await analyzer.analyze("https://example.com/wallet")
        assert result.issues == ["Sensitive Content: URL contains security-sensitive keywords."]
        assert result.rating == Rating.CAUTION


class TestCache:
    @pytest.mark.asyncio
    async def test_repeat_analysis_is_served_from_cache(self):
        gateway = _FakeGateway()
        analyzer = make_analyzer(reputation=gateway, cache=create_result_cache(clock=_FakeClock()))

        first = await analyzer.analyze("https://example.com")
        second = await analyzer.analyze("https://example.com")

        assert first.to_dict() == second.to_dict()
        assert gateway.calls == ["https://example.com"]
        assert metrics.get_summary()["cache_hits"] == 1

    @pytest.mark.asyncio
    async def test_mutating_a_result_does_not_touch_the_cache(self):
        analyzer = make_analyzer(cache=create_result_cache(clock=_FakeClock()))

        first = await analyzer.analyze("http://example.com")
        first.issues.append("edited by caller")
        second = await analyzer.analyze("http://example.com")
        second.threats.append("edited by caller")
        third = await analyzer.analyze("http://example.com")

        assert second.issues == ["Uses HTTP (not secure) instead of HTTPS"]
        assert third.issues == ["Uses HTTP (not secure) instead of HTTPS"]
        assert third.threats == []

    @pytest.mark.asyncio
    async def test_cache_hit_emits_cached_event(self):
        sink = RecordingEventSink()
        analyzer = make_analyzer(cache=create_result_cache(clock=_FakeClock()), event_sink=sink)

        await analyzer.analyze("http://example.com")
        await analyzer.analyze("http://example.com")

        assert [event.cached for event in sink.events] == [False, True]
        assert sink.events[1].domain == "example.com"
        assert sink.events[1].rating == "CAUTION"
        assert sink.events[1].score == 75

    @pytest.mark.asyncio
    async def test_cache_key_is_exact_payload(self):
        gateway = _FakeGateway()
        analyzer = make_analyzer(reputation=gateway, cache=create_result_cache(clock=_FakeClock()))

        await analyzer.analyze("https://example.com")
        await analyzer.analyze("HTTPS://EXAMPLE.COM")

        assert len(gateway.calls) == 2

    @pytest.mark.asyncio
    async def test_expired_entry_is_recomputed(self):
        clock = _FakeClock()
        gateway = _FakeGateway()
        analyzer = make_analyzer(reputation=gateway, cache=create_result_cache(clock=clock))

        await analyzer.analyze("https://example.com")
        clock.now += 299
        await analyzer.analyze("https://example.com")
        assert len(gateway.calls) == 1

        clock.now += 1
        await analyzer.analyze("https://example.com")
        assert len(gateway.calls) == 2


class TestShortLinks:
    @pytest.mark.asyncio
    async def test_expanded_destination_is_reported(self):
        resolver = _FakeResolver(ShortLinkResolution("https://landing.example.net/offer", hops=2))
        analyzer = make_analyzer(resolver=resolver)

        result = await analyzer.analyze("bit.ly/abc123")

        assert resolver.calls == ["http://bit.ly/abc123"]
        assert result.score == 65
        assert result.issues == [
            "Uses URL shortener - may hide malicious destination",
            "Short URL expands to: https://landing.example.net/offer (approx. 2 redirects)",
        ]

    @pytest.mark.asyncio
    async def test_single_hop_wording(self):
        resolver = _FakeResolver(ShortLinkResolution("https://landing.example.net", hops=1))
        result = await make_analyzer(resolver=resolver).analyze("https://bit.ly/x")
        assert result.issues[-1] == "Short URL expands to: https://landing.example.net (approx. 1 redirect)"

    @pytest.mark.asyncio
    async def test_unchanged_destination_is_not_reported(self):
        resolver = _FakeResolver(ShortLinkResolution("https://bit.ly/x", hops=0))
        result = await make_analyzer(resolver=resolver).analyze("https://bit.ly/x")
        assert result.issues == ["Uses URL shortener - may hide malicious destination"]

    @pytest.mark.asyncio
    async def test_resolver_failure_is_ignored(self):
        resolver = _FakeResolver(error=RuntimeError("network down"))
        result = await make_analyzer(resolver=resolver).analyze("bit.ly/abc123")
        assert result.score == 65
        assert result.issues == ["Uses URL shortener - may hide malicious destination"]

    @pytest.mark.asyncio
    async def test_resolver_not_called_for_regular_urls(self):
        resolver = _FakeResolver(ShortLinkResolution("https://x.example"))
        await make_analyzer(resolver=resolver).analyze("https://example.com")
        assert resolver.calls == []


class TestReputation:
    @pytest.mark.asyncio
    async def test_known_threat(self):
        gateway = _FakeGateway(["malware threat detected"])
        result = await make_analyzer(reputation=gateway).analyze("https://example.com")
        assert result.score == 50
        assert result.rating == Rating.CAUTION
        assert result.threats == ["malware threat detected"]
        assert result.issues == ["KNOWN SECURITY THREATS DETECTED", "malware threat detected"]

    @pytest.mark.asyncio
    async def test_unavailable_is_informational(self):
        gateway = _FakeGateway([VERIFICATION_UNAVAILABLE])
        result = await make_analyzer(reputation=gateway).analyze("https://example.com")
        assert result.score == 100
        assert result.rating == Rating.SAFE
        assert result.threats == []
        assert result.issues == [VERIFICATION_UNAVAILABLE]

    @pytest.mark.asyncio
    async def test_gateway_exception_fails_open(self):
        gateway = _FakeGateway(error=RuntimeError("boom"))
        result = await make_analyzer(reputation=gateway).analyze("https://example.com")
        assert result.score == 100
        assert result.threats == []
        assert VERIFICATION_UNAVAILABLE in result.issues

    @pytest.mark.asyncio
    async def test_unconfigured_gateway_skips_lookup(self):
        analyzer = make_analyzer(reputation=SafeBrowsingGateway())
        result = await analyzer.analyze("https://test-malware.example.com")
        assert result.score == 100
        assert result.rating == Rating.SAFE
        assert result.issues == [API_NOT_CONFIGURED]
        assert result.threats == []

    @pytest.mark.asyncio
    async def test_unconfigured_gateway_is_never_called(self):
        gateway = _FakeGateway(["malware threat detected"], configured=False)
        result = await make_analyzer(reputation=gateway).analyze("https://example.com")
        assert gateway.calls == []
        assert result.score == 100
        assert result.issues == [API_NOT_CONFIGURED]

    @pytest.mark.asyncio
    async def test_mock_gateway(self):
        analyzer = make_analyzer(reputation=SafeBrowsingGateway(mock=True))
        result = await analyzer.analyze("https://test-malware.example.com")
        assert result.score == 50
        assert result.rating == Rating.CAUTION
        assert result.issues == [
            "KNOWN SECURITY THREATS DETECTED",
            "MALWARE detected (Mock)",
        ]
        assert result.threats == ["MALWARE detected (Mock)"]

    @pytest.mark.asyncio
    async def test_no_gateway(self):
        analyzer = SafetyAnalyzer()
        result = await analyzer.analyze("https://www.google.com")
        assert result.score == 100
        assert result.issues == [API_NOT_CONFIGURED]


class TestObservability:
    @pytest.mark.asyncio
    async def test_event_per_analysis(self):
        sink = RecordingEventSink()
        analyzer = make_analyzer(event_sink=sink)

        await analyzer.analyze("http://192.168.1.1/admin")

        assert len(sink.events) == 1
        event = sink.events[0]
        assert event.domain == "192.168.1.1"
        assert event.rating == "DANGEROUS"
        assert event.score == 30
        assert event.fired_rules == ["sensitive_keywords", "insecure_transport", "ip_literal"]

    @pytest.mark.asyncio
    async def test_metrics_count_rule_hits(self, analyzer):
        await analyzer.analyze("http://example.com")
        await analyzer.analyze("http://example.org")

        summary = metrics.get_summary()
        assert summary["total_analyses"] == 2
        assert summary["ratings"] == {"CAUTION": 2}
        assert summary["rules"]["insecure_transport"]["hits"] == 2
        assert summary["rules"]["insecure_transport"]["total_penalty"] == 50

    @pytest.mark.asyncio
    async def test_failing_rule_is_skipped(self):
        class _Broken:
            name = "broken"

            def apply(self, analyzer, context):
                raise ValueError("bad rule")

        analyzer = make_analyzer(rules=[_Broken()])
        result = await analyzer.analyze("http://example.com")
        assert result.score == 100
        assert result.issues == []
