"""
BreachDirectory adapter: has this email appeared in a known data breach?

No key is required. A subject with no breach records is a normal payload
with ``found`` False.
"""

from typing import Any, List

from netknife.core.exceptions import MalformedResponseError
from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, require_mapping


class BreachDirectoryClient(ProviderClient):
    """BreachDirectory email breach lookups."""

    provider_id = "breachdirectory"
    display_name = "BreachDirectory"
    supported_kinds = frozenset({SubjectKind.EMAIL})
    default_cache_ttl = 86400
    requires_api_key = False

    base_url = "https://breachdirectory.tk/api"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        return await self._get_json(
            self.base_url, timeout, params={"func": "auto", "term": subject.value}
        )

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        data = require_mapping(raw, self.display_name)
        results = data.get("result") or []
        if not isinstance(results, list):
            raise MalformedResponseError("BreachDirectory 'result' is not a list")

        found = data.get("success") is True and len(results) > 0
        breaches: List[str] = []
        if found:
            for record in results:
                if isinstance(record, dict):
                    source = record.get("source") or record.get("name") or "Unknown"
                else:
                    source = "Unknown"
                breaches.append(str(source))

        return {
            "found": found,
            "count": len(breaches),
            "breaches": breaches,
        }
