"""
Unit tests for the concrete provider clients.
Tests response normalization, HTTP error mapping, caching and key handling.
"""

import pytest

from netknife.core.exceptions import (
    MalformedResponseError,
    NetworkError,
    ProviderError,
    ProviderNotConfiguredError,
    ProviderUnauthorizedError,
    RateLimitError,
    UnsupportedSubjectError,
)
from netknife.integrations.providers import (
    AbuseIPDBClient,
    BreachDirectoryClient,
    DnsClient,
    EmailAuthClient,
    EmailRepClient,
    HunterClient,
    IpApiClient,
    IPQSEmailClient,
    IPQualityScoreClient,
    OsvClient,
    RdapClient,
)
from netknife.models.intel import OutcomeStatus, Subject, SubjectKind

EMAIL = Subject(value="victim@example.com", kind=SubjectKind.EMAIL)
IP = Subject(value="185.220.101.182", kind=SubjectKind.IP)
DOMAIN = Subject(value="example.com", kind=SubjectKind.DOMAIN)
PACKAGE = Subject(value="PyPI/jinja2@2.4.1", kind=SubjectKind.PACKAGE)


class TestProviderBase:
    """Behaviour shared by every client."""

    @pytest.mark.asyncio
    async def test_missing_key_never_sends_request(self, fake_transport):
        client = AbuseIPDBClient(fake_transport, api_key=None)

        with pytest.raises(ProviderNotConfiguredError, match="AbuseIPDB API key not configured"):
            await client.query(IP, timeout=5.0)
        assert fake_transport.calls == []

    @pytest.mark.asyncio
    async def test_unsupported_kind(self, fake_transport):
        client = DnsClient(fake_transport)

        with pytest.raises(UnsupportedSubjectError):
            await client.query(EMAIL, timeout=5.0)

    @pytest.mark.asyncio
    async def test_unauthorized(self, fake_transport):
        fake_transport.add("https://api.abuseipdb.com", {"errors": []}, status=401)
        client = AbuseIPDBClient(fake_transport, api_key="bad")

        with pytest.raises(ProviderUnauthorizedError):
            await client.query(IP, timeout=5.0)

    @pytest.mark.asyncio
    async def test_rate_limited_carries_retry_after(self, fake_transport):
        fake_transport.add("https://emailrep.io", {}, status=429, headers={"Retry-After": "30"})
        client = EmailRepClient(fake_transport)

        with pytest.raises(RateLimitError) as exc_info:
            await client.query(EMAIL, timeout=5.0)
        assert exc_info.value.retry_after == 30
        assert exc_info.value.status == OutcomeStatus.ERROR

    @pytest.mark.asyncio
    async def test_server_error(self, fake_transport):
        fake_transport.add("https://emailrep.io", "oops", status=502)

        with pytest.raises(ProviderError, match="502"):
            await EmailRepClient(fake_transport).query(EMAIL, timeout=5.0)

    @pytest.mark.asyncio
    async def test_invalid_json(self, fake_transport):
        fake_transport.add("https://emailrep.io", "<html>not json</html>")

        with pytest.raises(MalformedResponseError):
            await EmailRepClient(fake_transport).query(EMAIL, timeout=5.0)

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, fake_transport):
        fake_transport.add("https://api.abuseipdb.com", {"unexpected": True})
        client = AbuseIPDBClient(fake_transport, api_key="k")

        with pytest.raises(MalformedResponseError, match="Unexpected AbuseIPDB response format"):
            await client.query(IP, timeout=5.0)

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self, fake_transport):
        fake_transport.fail("https://emailrep.io", NetworkError("Connection error contacting emailrep.io"))

        with pytest.raises(NetworkError):
            await EmailRepClient(fake_transport).query(EMAIL, timeout=5.0)

    @pytest.mark.asyncio
    async def test_second_query_served_from_cache(self, fake_transport, memory_cache):
        fake_transport.add("https://emailrep.io", {"reputation": "high", "suspicious": False, "details": {}})
        client = EmailRepClient(fake_transport, cache=memory_cache)

        first = await client.query(EMAIL, timeout=5.0)
        second = await client.query(EMAIL, timeout=5.0)

        assert first.cached is False
        assert second.cached is True
        assert second.payload == first.payload
        assert len(fake_transport.calls) == 1

    @pytest.mark.asyncio
    async def test_cache_ttl_override(self, fake_transport, memory_cache, clock):
        fake_transport.add("https://emailrep.io", {"reputation": "high", "details": {}})
        client = EmailRepClient(fake_transport, cache=memory_cache, cache_ttl=10)

        await client.query(EMAIL, timeout=5.0)
        clock.advance(11)
        result = await client.query(EMAIL, timeout=5.0)

        assert result.cached is False
        assert len(fake_transport.calls) == 2

    @pytest.mark.asyncio
    async def test_request_headers(self, fake_transport):
        fake_transport.add("https://emailrep.io", {"details": {}})
        client = EmailRepClient(fake_transport, api_key="secret", user_agent="Test/1.0")

        await client.query(EMAIL, timeout=3.0)

        call = fake_transport.calls[0]
        assert call["headers"]["User-Agent"] == "Test/1.0"
        assert call["headers"]["Key"] == "secret"
        assert call["timeout"] == 3.0


class TestEmailProviders:
    """Email reputation, breach and verification sources."""

    @pytest.mark.asyncio
    async def test_emailrep_normalization(self, fake_transport):
        fake_transport.add("https://emailrep.io/victim@example.com", {
            "email": "victim@example.com",
            "reputation": "low",
            "suspicious": True,
            "references": 4,
            "details": {"credentials_leaked": True, "data_breach": True, "spam": False},
        })

        payload = (await EmailRepClient(fake_transport).query(EMAIL, timeout=5.0)).payload

        assert payload["reputation"] == "low"
        assert payload["suspicious"] is True
        assert payload["credentials_leaked"] is True
        assert payload["references"] == 4
        assert payload["blacklisted"] is False

    @pytest.mark.asyncio
    async def test_breachdirectory_found(self, fake_transport):
        fake_transport.add("https://breachdirectory.tk/api", {
            "success": True,
            "found": 2,
            "result": [{"sources": ["x"], "source": "Collection1"}, {"name": "LinkedIn"}],
        })

        payload = (await BreachDirectoryClient(fake_transport).query(EMAIL, timeout=5.0)).payload

        assert payload == {"found": True, "count": 2, "breaches": ["Collection1", "LinkedIn"]}
        assert fake_transport.calls[0]["params"] == {"func": "auto", "term": "victim@example.com"}

    @pytest.mark.asyncio
    async def test_breachdirectory_not_found_is_a_payload(self, fake_transport):
        fake_transport.add("https://breachdirectory.tk/api", {"success": False, "result": []})

        payload = (await BreachDirectoryClient(fake_transport).query(EMAIL, timeout=5.0)).payload

        assert payload == {"found": False, "count": 0, "breaches": []}

    @pytest.mark.asyncio
    async def test_ipqs_email_normalization(self, fake_transport):
        fake_transport.add("https://ipqualityscore.com/api/json/email/k/", {
            "success": True,
            "valid": True,
            "disposable": True,
            "honeypot": False,
            "recent_abuse": "true",
            "overall_score": 1,
            "fraud_score": 88,
        })
        client = IPQSEmailClient(fake_transport, api_key="k")

        payload = (await client.query(EMAIL, timeout=5.0)).payload

        assert payload["disposable"] is True
        assert payload["recent_abuse"] is True
        assert payload["fraud_score"] == 88

    @pytest.mark.asyncio
    async def test_ipqs_failure_body_is_an_error(self, fake_transport):
        fake_transport.add("https://ipqualityscore.com/api/json/email/k/", {
            "success": False,
            "message": "You have exceeded your request quota.",
        })

        with pytest.raises(ProviderError, match="exceeded your request quota"):
            await IPQSEmailClient(fake_transport, api_key="k").query(EMAIL, timeout=5.0)

    @pytest.mark.asyncio
    async def test_ipqs_invalid_key_is_unauthorized(self, fake_transport):
        fake_transport.add("https://ipqualityscore.com/api/json/email/k/", {
            "success": False,
            "message": "Invalid or unauthorized key. Please check the API key and try again.",
        })

        with pytest.raises(ProviderUnauthorizedError):
            await IPQSEmailClient(fake_transport, api_key="k").query(EMAIL, timeout=5.0)

    @pytest.mark.asyncio
    async def test_hunter_normalization(self, fake_transport):
        fake_transport.add("https://api.hunter.io/v2/email-verifier", {
            "data": {"status": "valid", "result": "deliverable", "score": 91,
                     "disposable": False, "webmail": True, "accept_all": False},
        })

        payload = (await HunterClient(fake_transport, api_key="k").query(EMAIL, timeout=5.0)).payload

        assert payload["status"] == "valid"
        assert payload["score"] == 91
        assert payload["webmail"] is True

    @pytest.mark.asyncio
    async def test_hunter_error_body(self, fake_transport):
        fake_transport.add("https://api.hunter.io/v2/email-verifier", {
            "errors": [{"id": "wrong_params", "code": 400, "details": "You're missing the email"}],
        }, status=400)

        with pytest.raises(ProviderError, match="missing the email"):
            await HunterClient(fake_transport, api_key="k").query(EMAIL, timeout=5.0)


class TestEmailAuthProvider:
    """SPF, DMARC and DKIM lookups over DNS-over-HTTPS."""

    DOH = "https://cloudflare-dns.com/dns-query"

    def _txt(self, *records):
        return {"Status": 0, "Answer": [{"type": 16, "data": f'"{r}"'} for r in records]}

    @pytest.mark.asyncio
    async def test_full_posture(self, fake_transport):
        fake_transport.add(self.DOH, self._txt("v=spf1 include:_spf.google.com ~all"),
                           params={"name": "example.com"})
        fake_transport.add(self.DOH, self._txt("v=DMARC1; p=reject; pct=50; rua=mailto:d@example.com"),
                           params={"name": "_dmarc.example.com"})
        fake_transport.add(self.DOH, self._txt("v=DKIM1; k=rsa; p=MIGfMA0"),
                           params={"name": "google._domainkey.example.com"})
        client = EmailAuthClient(fake_transport, dkim_selector="google")

        payload = (await client.query(DOMAIN, timeout=5.0)).payload

        assert payload["spf_found"] is True
        assert payload["spf_all"] == "softfail"
        assert payload["spf_includes"] == ["_spf.google.com"]
        assert payload["dmarc_policy"] == "reject"
        assert payload["dmarc_pct"] == 50
        assert payload["dkim_found"] is True
        assert payload["dkim_selector"] == "google"

    @pytest.mark.asyncio
    async def test_missing_records(self, fake_transport):
        fake_transport.add(self.DOH, {"Status": 3})
        client = EmailAuthClient(fake_transport)

        payload = (await client.query(DOMAIN, timeout=5.0)).payload

        assert payload["spf_found"] is False
        assert payload["dmarc_found"] is False
        assert payload["dmarc_policy"] is None
        assert payload["dkim_found"] is False

    @pytest.mark.asyncio
    async def test_email_subject_cached_under_domain(self, fake_transport, memory_cache):
        fake_transport.add(self.DOH, self._txt("v=spf1 +all"), params={"name": "example.com"})
        fake_transport.add(self.DOH, {"Status": 3})
        client = EmailAuthClient(fake_transport, cache=memory_cache)

        first = await client.query(EMAIL, timeout=5.0)
        second = await client.query(DOMAIN, timeout=5.0)

        assert first.payload["domain"] == "example.com"
        assert first.payload["spf_all"] == "pass"
        assert second.cached is True
        assert len(fake_transport.calls) == 3

    @pytest.mark.asyncio
    async def test_failed_lookup_fails_provider(self, fake_transport):
        fake_transport.add(self.DOH, {"Status": 2})

        with pytest.raises(ProviderError, match="DNS status 2"):
            await EmailAuthClient(fake_transport).query(DOMAIN, timeout=5.0)

    @pytest.mark.asyncio
    async def test_multiple_spf_records_flagged(self, fake_transport):
        fake_transport.add(self.DOH, self._txt("v=spf1 -all", "v=spf1 ~all"),
                           params={"name": "example.com"})
        fake_transport.add(self.DOH, {"Status": 3})

        payload = (await EmailAuthClient(fake_transport).query(DOMAIN, timeout=5.0)).payload

        assert payload["spf_multiple"] is True
        assert payload["spf_all"] == "fail"


class TestIpProviders:
    """Geolocation, abuse and fraud sources."""

    @pytest.mark.asyncio
    async def test_ip_api_success(self, fake_transport):
        fake_transport.add("http://ip-api.com/json/185.220.101.182", {
            "status": "success", "country": "Germany", "countryCode": "DE",
            "city": "Frankfurt", "isp": "Tor Exit", "as": "AS205100", "proxy": True,
        })

        payload = (await IpApiClient(fake_transport).query(IP, timeout=5.0)).payload

        assert payload["found"] is True
        assert payload["country_code"] == "DE"
        assert payload["proxy"] is True

    @pytest.mark.asyncio
    async def test_ip_api_fail_status_is_a_payload(self, fake_transport):
        fake_transport.add("http://ip-api.com/json/", {"status": "fail", "message": "reserved range"})

        payload = (await IpApiClient(fake_transport).query(IP, timeout=5.0)).payload

        assert payload == {"found": False, "message": "reserved range"}

    @pytest.mark.asyncio
    async def test_abuseipdb_normalization(self, fake_transport):
        fake_transport.add("https://api.abuseipdb.com/api/v2/check", {
            "data": {
                "ipAddress": "185.220.101.182",
                "abuseConfidenceScore": 100,
                "totalReports": 1542,
                "numDistinctUsers": 310,
                "countryCode": "DE",
                "isTor": True,
                "reports": [{"categories": [18, 22]}, {"categories": [22, 99]}],
            }
        })
        client = AbuseIPDBClient(fake_transport, api_key="k")

        payload = (await client.query(IP, timeout=5.0)).payload

        assert payload["abuse_confidence_score"] == 100
        assert payload["total_reports"] == 1542
        assert payload["is_tor"] is True
        assert payload["categories"] == ["Brute-Force", "SSH", "Category 99"]
        call = fake_transport.calls[0]
        assert call["params"]["ipAddress"] == "185.220.101.182"
        assert call["params"]["maxAgeInDays"] == "90"
        assert call["headers"]["Key"] == "k"

    @pytest.mark.asyncio
    async def test_ipqualityscore_normalization(self, fake_transport):
        fake_transport.add("https://ipqualityscore.com/api/json/ip/k/", {
            "success": True, "fraud_score": 100, "vpn": True, "proxy": True,
            "tor": True, "recent_abuse": True, "ISP": "Tor", "ASN": 205100,
        })

        payload = (await IPQualityScoreClient(fake_transport, api_key="k").query(IP, timeout=5.0)).payload

        assert payload["fraud_score"] == 100
        assert payload["tor"] is True
        assert payload["isp"] == "Tor"


class TestDomainProviders:
    """DNS and RDAP."""

    @pytest.mark.asyncio
    async def test_dns_resolved(self, fake_transport):
        fake_transport.add("https://cloudflare-dns.com/dns-query", {
            "Status": 0,
            "Answer": [
                {"type": 5, "data": "alias.example.net."},
                {"type": 1, "data": "93.184.216.34"},
            ],
        })

        payload = (await DnsClient(fake_transport).query(DOMAIN, timeout=5.0)).payload

        assert payload == {"status": 0, "resolved": True, "nxdomain": False,
                           "addresses": ["93.184.216.34"]}
        assert fake_transport.calls[0]["params"] == {"name": "example.com", "type": "A"}

    @pytest.mark.asyncio
    async def test_dns_nxdomain(self, fake_transport):
        fake_transport.add("https://cloudflare-dns.com/dns-query", {"Status": 3})

        payload = (await DnsClient(fake_transport).query(DOMAIN, timeout=5.0)).payload

        assert payload["resolved"] is False
        assert payload["nxdomain"] is True

    @pytest.mark.asyncio
    async def test_rdap_registered_domain(self, fake_transport):
        fake_transport.add("https://rdap.org/domain/example.com", {
            "handle": "2336799_DOMAIN_COM-VRSN",
            "ldhName": "EXAMPLE.COM",
            "status": ["client delete prohibited"],
            "events": [
                {"eventAction": "registration", "eventDate": "1995-08-14T04:00:00Z"},
                {"eventAction": "expiration", "eventDate": "2026-08-13T04:00:00Z"},
            ],
            "entities": [{
                "roles": ["registrar"],
                "vcardArray": ["vcard", [["version", {}, "text", "4.0"],
                                         ["fn", {}, "text", "RESERVED-IANA"]]],
            }],
            "nameservers": [{"ldhName": "A.IANA-SERVERS.NET"}],
        })

        payload = (await RdapClient(fake_transport).query(DOMAIN, timeout=5.0)).payload

        assert payload["registered"] is True
        assert payload["registrar"] == "RESERVED-IANA"
        assert payload["registered_at"] == "1995-08-14T04:00:00Z"
        assert payload["nameservers"] == ["a.iana-servers.net"]

    @pytest.mark.asyncio
    async def test_rdap_not_found_is_unregistered(self, fake_transport):
        fake_transport.add("https://rdap.org/domain/", {"errorCode": 404}, status=404)

        payload = (await RdapClient(fake_transport).query(DOMAIN, timeout=5.0)).payload

        assert payload == {"registered": False}

    @pytest.mark.asyncio
    async def test_rdap_ip_path(self, fake_transport):
        fake_transport.add("https://rdap.org/ip/", {"handle": "NET-185", "name": "TOR-EXIT"})

        payload = (await RdapClient(fake_transport).query(IP, timeout=5.0)).payload

        assert payload["name"] == "TOR-EXIT"
        assert fake_transport.calls[0]["url"] == "https://rdap.org/ip/185.220.101.182"


class TestOsvProvider:
    """Package vulnerability lookups."""

    @pytest.mark.asyncio
    async def test_vulnerable_package(self, fake_transport):
        fake_transport.add("https://api.osv.dev/v1/query", {
            "vulns": [
                {"id": "GHSA-1", "aliases": ["CVE-2019-10906"],
                 "database_specific": {"severity": "MODERATE"}},
                {"id": "GHSA-2", "aliases": ["CVE-2016-10745"],
                 "database_specific": {"severity": "HIGH"}},
                {"id": "PYSEC-3", "aliases": ["CVE-2019-10906"]},
            ]
        })

        payload = (await OsvClient(fake_transport).query(PACKAGE, timeout=5.0)).payload

        assert payload["found"] is True
        assert payload["count"] == 3
        assert payload["vulnerability_ids"] == ["GHSA-1", "GHSA-2", "PYSEC-3"]
        assert payload["aliases"] == ["CVE-2019-10906", "CVE-2016-10745"]
        assert payload["max_severity"] == "HIGH"

        call = fake_transport.calls[0]
        assert call["method"] == "POST"
        assert call["body"] == {"package": {"name": "jinja2", "ecosystem": "PyPI"}, "version": "2.4.1"}

    @pytest.mark.asyncio
    async def test_clean_package(self, fake_transport):
        fake_transport.add("https://api.osv.dev/v1/query", {})

        payload = (await OsvClient(fake_transport).query(PACKAGE, timeout=5.0)).payload

        assert payload["found"] is False
        assert payload["count"] == 0
        assert payload["max_severity"] is None

    @pytest.mark.asyncio
    async def test_unversioned_query_omits_version(self, fake_transport):
        fake_transport.add("https://api.osv.dev/v1/query", {})
        subject = Subject(value="npm/@scope/pkg", kind=SubjectKind.PACKAGE)

        await OsvClient(fake_transport).query(subject, timeout=5.0)

        assert fake_transport.calls[0]["body"] == {"package": {"name": "@scope/pkg", "ecosystem": "npm"}}
