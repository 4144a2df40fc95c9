"""
IPQualityScore adapters for email verification and IP fraud scoring.

Both endpoints embed the API key in the URL path and report failures with
``success: false`` and a ``message`` inside an HTTP 200 body.
"""

from typing import Any, Dict
from urllib.parse import quote

from netknife.core.exceptions import ProviderError, ProviderUnauthorizedError
from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, as_bool, as_int, require_mapping


def _check_success(data: Dict[str, Any], display_name: str) -> None:
    if data.get("success") is False:
        message = str(data.get("message") or f"{display_name} lookup failed")
        if "key" in message.lower() and ("invalid" in message.lower() or "unauthor" in message.lower()):
            raise ProviderUnauthorizedError(message)
        raise ProviderError(message)


class IPQSEmailClient(ProviderClient):
    """IPQualityScore email validation: disposable, honeypot and abuse signals."""

    provider_id = "ipqs_email"
    display_name = "IPQualityScore Email"
    supported_kinds = frozenset({SubjectKind.EMAIL})
    default_cache_ttl = 3600
    requires_api_key = True

    base_url = "https://ipqualityscore.com/api/json/email"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        # Fast mode skips the SMTP check but still validates
        return await self._get_json(
            f"{self.base_url}/{self.api_key}/{quote(subject.value, safe='@')}",
            timeout,
            params={"fast": "true", "strictness": "1"},
        )

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        data = require_mapping(raw, self.display_name)
        _check_success(data, self.display_name)

        return {
            "valid": as_bool(data.get("valid")),
            "disposable": as_bool(data.get("disposable")),
            "honeypot": as_bool(data.get("honeypot")),
            "recent_abuse": as_bool(data.get("recent_abuse")),
            "leaked": as_bool(data.get("leaked")),
            "fraud_score": as_int(data.get("fraud_score")),
            "overall_score": as_int(data.get("overall_score")),
            "smtp_score": as_int(data.get("smtp_score")),
            "deliverability": data.get("deliverability"),
            "dns_valid": as_bool(data.get("dns_valid")),
            "catch_all": as_bool(data.get("catch_all")),
            "spam_trap_score": data.get("spam_trap_score"),
        }


class IPQualityScoreClient(ProviderClient):
    """IPQualityScore IP reputation: fraud score and anonymizer detection."""

    provider_id = "ipqualityscore"
    display_name = "IPQualityScore"
    supported_kinds = frozenset({SubjectKind.IP})
    default_cache_ttl = 3600
    requires_api_key = True

    base_url = "https://ipqualityscore.com/api/json/ip"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        return await self._get_json(
            f"{self.base_url}/{self.api_key}/{quote(subject.value, safe='')}",
            timeout,
            params={"strictness": "1", "fast": "true"},
        )

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        data = require_mapping(raw, self.display_name)
        _check_success(data, self.display_name)

        return {
            "fraud_score": as_int(data.get("fraud_score")),
            "vpn": as_bool(data.get("vpn")),
            "proxy": as_bool(data.get("proxy")),
            "tor": as_bool(data.get("tor")),
            "bot_status": as_bool(data.get("bot_status")),
            "recent_abuse": as_bool(data.get("recent_abuse")),
            "is_crawler": as_bool(data.get("is_crawler")),
            "country_code": data.get("country_code"),
            "city": data.get("city"),
            "isp": data.get("ISP"),
            "asn": data.get("ASN"),
        }
