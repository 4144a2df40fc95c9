"""DNS-over-HTTPS A-record resolution through Cloudflare."""

from typing import Any

from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, as_int, require_mapping

A_RECORD_TYPE = 1
NXDOMAIN = 3


class DnsClient(ProviderClient):
    """Resolve a domain's A records."""

    provider_id = "dns"
    display_name = "DNS"
    supported_kinds = frozenset({SubjectKind.DOMAIN})
    default_cache_ttl = 300
    requires_api_key = False

    doh_url = "https://cloudflare-dns.com/dns-query"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        return await self._get_json(
            self.doh_url,
            timeout,
            params={"name": subject.value, "type": "A"},
            headers={"Accept": "application/dns-json"},
        )

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        data = require_mapping(raw, self.display_name)
        status = as_int(data.get("Status"), default=-1)
        addresses = [
            answer["data"]
            for answer in data.get("Answer") or []
            if answer.get("type") == A_RECORD_TYPE
        ]
        return {
            "status": status,
            "resolved": bool(addresses),
            "nxdomain": status == NXDOMAIN,
            "addresses": addresses,
        }
