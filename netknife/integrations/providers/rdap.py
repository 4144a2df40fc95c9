"""
RDAP registration data for domains and IP networks, via the rdap.org bootstrap.

An unregistered domain answers 404, which is a normal payload rather than an
error.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, require_mapping


def _registrar_name(entities: List[Dict[str, Any]]) -> Optional[str]:
    for entity in entities:
        if "registrar" not in (entity.get("roles") or []):
            continue
        vcard = entity.get("vcardArray") or []
        if len(vcard) > 1:
            for field in vcard[1]:
                if field and field[0] == "fn":
                    return field[3]
        return entity.get("handle")
    return None


def _event_date(events: List[Dict[str, Any]], action: str) -> Optional[str]:
    for event in events:
        if event.get("eventAction") == action:
            return event.get("eventDate")
    return None


class RdapClient(ProviderClient):
    """Registration lookups for domains and IPs."""

    provider_id = "rdap"
    display_name = "RDAP"
    supported_kinds = frozenset({SubjectKind.DOMAIN, SubjectKind.IP})
    default_cache_ttl = 86400
    requires_api_key = False

    base_url = "https://rdap.org"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        path = "domain" if subject.kind == SubjectKind.DOMAIN else "ip"
        response = await self._request(
            f"{self.base_url}/{path}/{quote(subject.value, safe='')}",
            timeout,
            headers={"Accept": "application/rdap+json, application/json"},
            accept_status=(404,),
        )
        if response.status_code == 404:
            return None
        return response.json()

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        if raw is None:
            return {"registered": False}

        data = require_mapping(raw, self.display_name)
        events = data.get("events") or []
        return {
            "registered": True,
            "handle": data.get("handle"),
            "name": data.get("ldhName") or data.get("name"),
            "registrar": _registrar_name(data.get("entities") or []),
            "registered_at": _event_date(events, "registration"),
            "expires_at": _event_date(events, "expiration"),
            "statuses": list(data.get("status") or []),
            "nameservers": [
                ns.get("ldhName", "").lower()
                for ns in data.get("nameservers") or []
                if ns.get("ldhName")
            ],
        }
