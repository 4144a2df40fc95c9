"""
OSV.dev vulnerability lookups for package references.

Subjects are ``<ecosystem>/<name>[@<version>]``; without a version every
advisory ever published for the package is returned.
"""

from typing import Any, Dict, List, Optional

from netknife.core.exceptions import UnsupportedSubjectError
from netknife.models.intel import NormalizedPayload, Subject, SubjectKind
from netknife.services.subject import parse_package_ref

from .base import ProviderClient, require_mapping

SEVERITY_ORDER = ("LOW", "MEDIUM", "HIGH", "CRITICAL")


def _severity_of(vuln: Dict[str, Any]) -> Optional[str]:
    severity = (vuln.get("database_specific") or {}).get("severity")
    if not isinstance(severity, str):
        return None
    severity = severity.upper()
    if severity == "MODERATE":
        severity = "MEDIUM"
    return severity if severity in SEVERITY_ORDER else None


class OsvClient(ProviderClient):
    """Known vulnerabilities for a package (and optionally a version)."""

    provider_id = "osv"
    display_name = "OSV"
    supported_kinds = frozenset({SubjectKind.PACKAGE})
    default_cache_ttl = 21600
    requires_api_key = False

    query_url = "https://api.osv.dev/v1/query"

    async def fetch(self, subject: Subject, timeout: float) -> Any:
        ref = parse_package_ref(subject.value)
        if ref is None:
            raise UnsupportedSubjectError(f"Not a package reference: {subject.value}")
        body: Dict[str, Any] = {"package": {"name": ref.name, "ecosystem": ref.ecosystem}}
        if ref.version:
            body["version"] = ref.version
        return await self._get_json(self.query_url, timeout, method="POST", body=body)

    def normalize(self, raw: Any, subject: Subject) -> NormalizedPayload:
        data = require_mapping(raw, self.display_name)
        vulns = data.get("vulns") or []

        ids: List[str] = []
        aliases: List[str] = []
        max_rank = -1
        for vuln in vulns:
            ids.append(vuln["id"])
            for alias in vuln.get("aliases") or []:
                if alias not in aliases:
                    aliases.append(alias)
            severity = _severity_of(vuln)
            if severity is not None:
                max_rank = max(max_rank, SEVERITY_ORDER.index(severity))

        return {
            "found": bool(ids),
            "count": len(ids),
            "vulnerability_ids": ids,
            "aliases": aliases,
            "max_severity": SEVERITY_ORDER[max_rank] if max_rank >= 0 else None,
        }
