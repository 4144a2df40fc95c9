"""ip-api.com geolocation adapter (free endpoint, no key)."""

from typing import Any
from urllib.parse import quote

from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, as_bool, require_mapping

IP_API_FIELDS = (
    "status,message,country,countryCode,regionName,city,lat,lon,"
    "timezone,isp,org,as,proxy,hosting,mobile,query"
)


class IpApiClient(ProviderClient):
    """Geolocation and network ownership for an IP address."""

    provider_id = "ip_api"
    display_name = "ip-api"
    supported_kinds = frozenset({SubjectKind.IP})
    default_cache_ttl = 3600
    requires_api_key = False

    base_url = "http://ip-api.com/json"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        return await self._get_json(
            f"{self.base_url}/{quote(subject.value, safe='')}",
            timeout,
            params={"fields": IP_API_FIELDS},
        )

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        data = require_mapping(raw, self.display_name)
        if data.get("status") != "success":
            return {"found": False, "message": data.get("message")}

        return {
            "found": True,
            "country": data.get("country"),
            "country_code": data.get("countryCode"),
            "region": data.get("regionName"),
            "city": data.get("city"),
            "latitude": data.get("lat"),
            "longitude": data.get("lon"),
            "timezone": data.get("timezone"),
            "isp": data.get("isp"),
            "org": data.get("org"),
            "asn": data.get("as"),
            "proxy": as_bool(data.get("proxy")),
            "hosting": as_bool(data.get("hosting")),
            "mobile": as_bool(data.get("mobile")),
        }
