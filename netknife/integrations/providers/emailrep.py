"""
EmailRep.io adapter for email reputation.

Free tier works without a key; a key raises the rate limit.
"""

from typing import Any
from urllib.parse import quote

from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, as_bool, as_int, require_mapping


class EmailRepClient(ProviderClient):
    """EmailRep.io reputation lookups."""

    provider_id = "emailrep"
    display_name = "EmailRep.io"
    supported_kinds = frozenset({SubjectKind.EMAIL})
    default_cache_ttl = 3600
    requires_api_key = False

    base_url = "https://emailrep.io"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        headers = {"Key": self.api_key} if self.api_key else {}
        return await self._get_json(
            f"{self.base_url}/{quote(subject.value, safe='@')}", timeout, headers=headers
        )

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        data = require_mapping(raw, self.display_name)
        details = data.get("details") or {}

        return {
            "reputation": data.get("reputation"),
            "suspicious": as_bool(data.get("suspicious")),
            "references": as_int(data.get("references")),
            "credentials_leaked": as_bool(details.get("credentials_leaked")),
            "data_breach": as_bool(details.get("data_breach")),
            "malicious_activity": as_bool(details.get("malicious_activity")),
            "spam": as_bool(details.get("spam")),
            "blacklisted": as_bool(details.get("blacklisted")),
            "disposable": as_bool(details.get("disposable")),
            "free_provider": as_bool(details.get("free_provider")),
            "first_seen": details.get("first_seen"),
            "last_seen": details.get("last_seen"),
        }
