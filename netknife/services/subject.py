"""
Subject validation and classification.

This is the only stage that can reject a request: a subject that cannot be
classified never reaches the providers.
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import Optional

from netknife.core.exceptions import SubjectValidationError
from netknife.models.intel import Subject, SubjectKind

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DOMAIN_LABEL_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")

# Canonical spelling keyed by lower-case name
PACKAGE_ECOSYSTEMS = {
    name.lower(): name
    for name in ("npm", "PyPI", "Go", "Maven", "NuGet", "RubyGems", "crates.io", "Packagist", "Pub")
}


@dataclass(frozen=True)
class PackageRef:
    """A package reference split into its parts."""
    ecosystem: str
    name: str
    version: Optional[str] = None

    def __str__(self) -> str:
        base = f"{self.ecosystem}/{self.name}"
        return f"{base}@{self.version}" if self.version else base


def normalize_email(value: str) -> Optional[str]:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        return None
    domain = value.rsplit("@", 1)[1]
    if normalize_domain(domain) is None:
        return None
    return value


def normalize_ip(value: str) -> Optional[str]:
    try:
        return ipaddress.ip_address(value.strip()).compressed
    except ValueError:
        return None


def normalize_domain(value: str) -> Optional[str]:
    domain = value.strip().lower().rstrip(".")
    if not domain or len(domain) > 253:
        return None
    labels = domain.split(".")
    if len(labels) < 2:
        return None
    if not all(DOMAIN_LABEL_PATTERN.match(label) for label in labels):
        return None
    # Top-level domains are never all digits; this also rules out dotted quads
    if labels[-1].isdigit():
        return None
    return domain


def parse_package_ref(value: str) -> Optional[PackageRef]:
    """Parse ``<ecosystem>/<name>[@<version>]``; None if it is not one."""
    value = value.strip()
    if "/" not in value:
        return None

    ecosystem_raw, _, remainder = value.partition("/")
    ecosystem = PACKAGE_ECOSYSTEMS.get(ecosystem_raw.lower())
    if ecosystem is None or not remainder:
        return None

    name, version = remainder, None
    # A leading "@" belongs to an npm scope, not to a version
    at = remainder.rfind("@")
    if at > 0:
        name, version = remainder[:at], remainder[at + 1:] or None

    if not name or any(ch.isspace() for ch in name):
        return None
    if version is not None and any(ch.isspace() for ch in version):
        return None

    return PackageRef(ecosystem=ecosystem, name=name, version=version)


def normalize_package(value: str) -> Optional[str]:
    ref = parse_package_ref(value)
    return str(ref) if ref else None


_NORMALIZERS = {
    SubjectKind.EMAIL: normalize_email,
    SubjectKind.IP: normalize_ip,
    SubjectKind.PACKAGE: normalize_package,
    SubjectKind.DOMAIN: normalize_domain,
}

# Order of detection when no hint is given
_DETECTION_ORDER = (SubjectKind.EMAIL, SubjectKind.IP, SubjectKind.PACKAGE, SubjectKind.DOMAIN)


def parse_kind_hint(hint: Optional[str]) -> Optional[SubjectKind]:
    if hint is None or not hint.strip():
        return None
    try:
        return SubjectKind(hint.strip().lower())
    except ValueError:
        known = ", ".join(kind.value for kind in SubjectKind)
        raise SubjectValidationError(f"Unknown subject type '{hint}'. Expected one of: {known}")


def classify_subject(value: Optional[str], kind_hint: Optional[str] = None) -> Subject:
    """Validate, classify and normalize a subject value.

    Raises:
        SubjectValidationError: the value is empty, does not match the hinted
            kind, or matches no kind at all.
    """
    if value is None or not str(value).strip():
        raise SubjectValidationError("Please enter an email, IP address, domain, or package")

    value = str(value).strip()
    hinted = parse_kind_hint(kind_hint)

    if hinted is not None:
        normalized = _NORMALIZERS[hinted](value)
        if normalized is None:
            raise SubjectValidationError(f"Invalid {hinted.value} format: {value}")
        return Subject(value=normalized, kind=hinted)

    for kind in _DETECTION_ORDER:
        normalized = _NORMALIZERS[kind](value)
        if normalized is not None:
            return Subject(value=normalized, kind=kind)

    raise SubjectValidationError(
        f"Could not classify '{value}' as an email, IP address, domain, or package"
    )
