"""
AbuseIPDB API adapter for IP address abuse reports.
"""

from typing import Any, List

from netknife.models.intel import NormalizedPayload, Subject, SubjectKind

from .base import ProviderClient, as_bool, as_int, require_mapping

# AbuseIPDB category mappings
ABUSE_CATEGORIES = {
    1: "DNS Compromise",
    2: "DNS Poisoning",
    3: "Fraud Orders",
    4: "DDoS Attack",
    5: "FTP Brute-Force",
    6: "Ping of Death",
    7: "Phishing",
    8: "Fraud VoIP",
    9: "Open Proxy",
    10: "Web Spam",
    11: "Email Spam",
    12: "Blog Spam",
    13: "VPN IP",
    14: "Port Scan",
    15: "Hacking",
    16: "SQL Injection",
    17: "Spoofing",
    18: "Brute-Force",
    19: "Bad Web Bot",
    20: "Exploited Host",
    21: "Web App Attack",
    22: "SSH",
    23: "IoT Targeted",
}


class AbuseIPDBClient(ProviderClient):
    """AbuseIPDB check endpoint."""

    provider_id = "abuseipdb"
    display_name = "AbuseIPDB"
    supported_kinds = frozenset({SubjectKind.IP})
    default_cache_ttl = 3600
    requires_api_key = True

    base_url = "https://api.abuseipdb.com/api/v2"
    max_age_days = 90

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        # verbose includes country, usage type, ISP and the report list
        params = {
            "ipAddress": subject.value,
            "maxAgeInDays": str(self.max_age_days),
            "verbose": "",
        }
        return await self._get_json(
            f"{self.base_url}/check", timeout, params=params, headers={"Key": self.api_key}
        )

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        data = require_mapping(require_mapping(raw, self.display_name)["data"], self.display_name)

        category_ids: List[int] = []
        for report in data.get("reports") or []:
            for category_id in report.get("categories") or []:
                if category_id not in category_ids:
                    category_ids.append(category_id)

        return {
            "abuse_confidence_score": as_int(data.get("abuseConfidenceScore")),
            "total_reports": as_int(data.get("totalReports")),
            "num_distinct_users": as_int(data.get("numDistinctUsers")),
            "country_code": data.get("countryCode"),
            "isp": data.get("isp"),
            "usage_type": data.get("usageType"),
            "domain": data.get("domain"),
            "is_tor": as_bool(data.get("isTor")),
            "is_whitelisted": as_bool(data.get("isWhitelisted")),
            "last_reported_at": data.get("lastReportedAt"),
            "categories": [
                ABUSE_CATEGORIES.get(category_id, f"Category {category_id}")
                for category_id in category_ids
            ],
        }
