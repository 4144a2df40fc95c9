"""Hunter.io email verifier adapter."""

from typing import Any

from netknife.core.exceptions import ProviderError
from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, as_bool, as_int, require_mapping


class HunterClient(ProviderClient):
    """Hunter.io deliverability verification."""

    provider_id = "hunter"
    display_name = "Hunter.io"
    supported_kinds = frozenset({SubjectKind.EMAIL})
    default_cache_ttl = 86400
    requires_api_key = True

    base_url = "https://api.hunter.io/v2"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        response = await self._request(
            f"{self.base_url}/email-verifier",
            timeout,
            params={"email": subject.value, "api_key": self.api_key},
            # Hunter reports request problems as a JSON error body
            accept_status=(400, 422),
        )
        return response.json()

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        body = require_mapping(raw, self.display_name)

        errors = body.get("errors")
        if errors:
            first = errors[0] if isinstance(errors, list) and errors else {}
            detail = first.get("details") if isinstance(first, dict) else None
            raise ProviderError(detail or "Hunter.io API error")

        data = require_mapping(body["data"], self.display_name)
        return {
            "status": data.get("status"),
            "result": data.get("result"),
            "score": as_int(data.get("score")),
            "disposable": as_bool(data.get("disposable")),
            "webmail": as_bool(data.get("webmail")),
            "accept_all": as_bool(data.get("accept_all")),
            "gibberish": as_bool(data.get("gibberish")),
            "mx_records": as_bool(data.get("mx_records")),
            "smtp_check": as_bool(data.get("smtp_check")),
        }
