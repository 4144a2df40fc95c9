"""
SPF / DMARC / DKIM posture of a mail domain, read over DNS-over-HTTPS.

Email subjects are reduced to their domain, and the cache entry is keyed by
that domain so email and domain lookups share it.
"""

import asyncio
from typing import Any, Dict, List, Optional

from netknife.core.exceptions import ProviderError
from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, require_mapping

TXT_RECORD_TYPE = 16


def parse_spf(record: str) -> Dict[str, Any]:
    """Extract the ``all`` qualifier and includes from an SPF record."""
    all_qualifier: Optional[str] = None
    includes: List[str] = []
    for mechanism in record.split()[1:]:
        if mechanism.startswith("include:"):
            includes.append(mechanism[len("include:"):])
        elif mechanism == "~all":
            all_qualifier = "softfail"
        elif mechanism == "-all":
            all_qualifier = "fail"
        elif mechanism in ("+all", "all"):
            all_qualifier = "pass"
        elif mechanism == "?all":
            all_qualifier = "neutral"
    return {"all": all_qualifier, "includes": includes}


def parse_tags(record: str) -> Dict[str, str]:
    """Split a ``k=v; k=v`` TXT record into a tag map."""
    tags: Dict[str, str] = {}
    for part in record.split(";"):
        key, sep, value = part.partition("=")
        if sep and key.strip():
            tags[key.strip()] = value.strip()
    return tags


class EmailAuthClient(ProviderClient):
    """Mail authentication records for a domain."""

    provider_id = "email_auth"
    display_name = "Email Auth"
    supported_kinds = frozenset({SubjectKind.EMAIL, SubjectKind.DOMAIN})
    default_cache_ttl = 3600
    requires_api_key = False

    doh_url = "https://cloudflare-dns.com/dns-query"

    def __init__(self, *args: Any, dkim_selector: str = "default", **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.dkim_selector = dkim_selector

    def cache_subject(self, subject: Subject) -> str:
        return self.domain_of(subject)

    @staticmethod
    def domain_of(subject: Subject) -> str:
        if subject.kind == SubjectKind.EMAIL:
            return subject.value.rsplit("@", 1)[1]
        return subject.value

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        domain = self.domain_of(subject)
        spf, dmarc, dkim = await asyncio.gather(
            self._txt_records(domain, timeout),
            self._txt_records(f"_dmarc.{domain}", timeout),
            self._txt_records(f"{self.dkim_selector}._domainkey.{domain}", timeout),
        )
        return {"domain": domain, "spf": spf, "dmarc": dmarc, "dkim": dkim}

    async def _txt_records(self, name: str, timeout: float) -> List[str]:
        data = require_mapping(
            await self._get_json(
                self.doh_url,
                timeout,
                params={"name": name, "type": "TXT"},
                headers={"Accept": "application/dns-json"},
            ),
            self.display_name,
        )
        status = data.get("Status")
        # NOERROR and NXDOMAIN are answers; anything else is a failed lookup
        if status not in (0, 3):
            raise ProviderError(f"TXT lookup for {name} failed with DNS status {status}")

        records = []
        for answer in data.get("Answer") or []:
            if answer.get("type") == TXT_RECORD_TYPE:
                text = str(answer.get("data", ""))
                records.append(text.strip('"').replace('" "', "").replace('""', ""))
        return records

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        spf_records = [r for r in raw["spf"] if r.startswith("v=spf1")]
        dmarc_records = [r for r in raw["dmarc"] if r.startswith("v=DMARC1")]
        dkim_records = [r for r in raw["dkim"] if "v=DKIM1" in r or "p=" in r]

        spf_record = spf_records[0] if spf_records else None
        spf = parse_spf(spf_record) if spf_record else {"all": None, "includes": []}

        dmarc_record = dmarc_records[0] if dmarc_records else None
        dmarc_policy = None
        dmarc_pct = None
        if dmarc_record:
            tags = parse_tags(dmarc_record)
            dmarc_policy = tags.get("p") or "none"
            try:
                dmarc_pct = int(tags.get("pct", "100"))
            except ValueError:
                dmarc_pct = 100

        return {
            "domain": raw["domain"],
            "spf_found": spf_record is not None,
            "spf_record": spf_record,
            "spf_all": spf["all"],
            "spf_includes": spf["includes"],
            "spf_multiple": len(spf_records) > 1,
            "dmarc_found": dmarc_record is not None,
            "dmarc_record": dmarc_record,
            "dmarc_policy": dmarc_policy,
            "dmarc_pct": dmarc_pct,
            "dkim_found": bool(dkim_records),
            "dkim_selector": self.dkim_selector,
        }
