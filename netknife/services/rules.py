"""
Declarative risk factor tables.

A ``RiskFactor`` pairs a predicate over the provider outcomes with a weight
and an optional recommendation. Predicates only ever read successful
outcomes, so a failed or timed-out provider can never trigger a factor.

Two profiles exist. ``osint_dashboard`` carries the dashboard's weights and
wording; ``email_analysis`` carries the single-email flow's. Domain and
package factors are shared by both.
"""

from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Callable, Dict, FrozenSet, Optional, Sequence, Tuple

from netknife.models.intel import (
    NormalizedPayload,
    ProviderOutcome,
    ScoringProfile,
    SubjectKind,
)

Predicate = Callable[[Sequence[ProviderOutcome]], bool]


@dataclass(frozen=True)
class RiskFactor:
    """A named, weighted rule evaluated against the outcome set."""
    id: str
    weight: int
    predicate: Predicate
    message: Optional[str] = None
    kinds: FrozenSet[SubjectKind] = field(default_factory=frozenset)

    def applies_to(self, kind: Optional[SubjectKind]) -> bool:
        """A factor with no kinds applies everywhere."""
        return kind is None or not self.kinds or kind in self.kinds


def payload_of(outcomes: Sequence[ProviderOutcome], provider_id: str) -> Optional[NormalizedPayload]:
    """Payload of the provider's outcome, or None unless it succeeded."""
    for outcome in outcomes:
        if outcome.provider_id == provider_id:
            return outcome.payload if outcome.ok else None
    return None


def _field(outcomes: Sequence[ProviderOutcome], provider_id: str, name: str) -> Any:
    payload = payload_of(outcomes, provider_id)
    if payload is None:
        return None
    return payload.get(name)


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def field_true(provider_id: str, name: str) -> Predicate:
    return lambda outcomes: _field(outcomes, provider_id, name) is True


def any_field_true(provider_id: str, *names: str) -> Predicate:
    return lambda outcomes: any(_field(outcomes, provider_id, n) is True for n in names)


def field_false(provider_id: str, name: str) -> Predicate:
    """Triggers on an explicit False, never on a missing field."""
    return lambda outcomes: _field(outcomes, provider_id, name) is False


def field_equals(provider_id: str, name: str, expected: Any) -> Predicate:
    return lambda outcomes: _field(outcomes, provider_id, name) == expected


def field_above(provider_id: str, name: str, threshold: float) -> Predicate:
    def predicate(outcomes: Sequence[ProviderOutcome]) -> bool:
        value = _field(outcomes, provider_id, name)
        return _is_number(value) and value > threshold
    return predicate


def field_at_least(provider_id: str, name: str, threshold: float) -> Predicate:
    def predicate(outcomes: Sequence[ProviderOutcome]) -> bool:
        value = _field(outcomes, provider_id, name)
        return _is_number(value) and value >= threshold
    return predicate


EMAIL = frozenset({SubjectKind.EMAIL})
IP = frozenset({SubjectKind.IP})
MAIL_DOMAIN = frozenset({SubjectKind.EMAIL, SubjectKind.DOMAIN})
DOMAIN = frozenset({SubjectKind.DOMAIN})
PACKAGE = frozenset({SubjectKind.PACKAGE})


OSINT_DASHBOARD_FACTORS: Tuple[RiskFactor, ...] = (
    RiskFactor("email_breached", 40, field_true("breachdirectory", "found"),
               "Email found in data breaches - change passwords immediately", EMAIL),
    RiskFactor("email_suspicious", 30, field_true("emailrep", "suspicious"),
               "Email flagged as suspicious - exercise caution", EMAIL),
    RiskFactor("email_credentials_leaked", 25, field_true("emailrep", "credentials_leaked"),
               "Credentials leaked - change password and enable 2FA", EMAIL),
    RiskFactor("email_low_reputation", 20, field_equals("emailrep", "reputation", "low"),
               None, EMAIL),
    RiskFactor("email_disposable", 25, field_true("ipqs_email", "disposable"),
               "Disposable email detected - may indicate temporary account", EMAIL),
    RiskFactor("email_honeypot", 30, field_true("ipqs_email", "honeypot"),
               "Email flagged as honeypot/spamtrap - do not use", EMAIL),
    RiskFactor("email_recent_abuse", 35, field_true("ipqs_email", "recent_abuse"),
               "Recent abuse detected on email - investigate immediately", EMAIL),
    RiskFactor("email_high_overall_score", 30, field_above("ipqs_email", "overall_score", 75),
               None, EMAIL),
    RiskFactor("ip_abuse_confidence", 50,
               field_above("abuseipdb", "abuse_confidence_score", 75),
               "High abuse confidence score - IP may be malicious", IP),
    RiskFactor("ip_fraud_score", 40, field_above("ipqualityscore", "fraud_score", 75),
               "High fraud score - IP likely associated with fraud", IP),
    RiskFactor("ip_anonymizer", 15, any_field_true("ipqualityscore", "vpn", "proxy"),
               "IP uses VPN/Proxy - may indicate anonymity attempts", IP),
    RiskFactor("ip_tor", 20, field_true("ipqualityscore", "tor"),
               "IP uses Tor network - high anonymity", IP),
    RiskFactor("ip_recent_abuse", 30, field_true("ipqualityscore", "recent_abuse"),
               "Recent abuse detected - monitor closely", IP),
)

EMAIL_ANALYSIS_FACTORS: Tuple[RiskFactor, ...] = (
    RiskFactor("email_breached", 40, field_true("breachdirectory", "found"),
               "Email found in data breaches - change passwords and enable 2FA.", EMAIL),
    RiskFactor("email_suspicious", 30, field_true("emailrep", "suspicious"),
               "Email flagged as suspicious - exercise caution.", EMAIL),
    RiskFactor("email_credentials_leaked", 25, field_true("emailrep", "credentials_leaked"),
               "Credentials leaked - change password immediately.", EMAIL),
    RiskFactor("email_disposable", 20, field_true("ipqs_email", "disposable"),
               "Disposable email - may indicate a temporary account.", EMAIL),
    RiskFactor("email_honeypot", 30, field_true("ipqs_email", "honeypot"),
               "Honeypot/spamtrap - do not use for signups.", EMAIL),
    RiskFactor("email_recent_abuse", 35, field_true("ipqs_email", "recent_abuse"),
               "Recent abuse detected - investigate before trusting.", EMAIL),
    RiskFactor("email_high_overall_score", 25, field_above("ipqs_email", "overall_score", 75),
               None, EMAIL),
)

SHARED_FACTORS: Tuple[RiskFactor, ...] = (
    RiskFactor("domain_no_spf", 15, field_false("email_auth", "spf_found"),
               "No SPF record - the domain can be spoofed in the envelope sender", MAIL_DOMAIN),
    RiskFactor("domain_spf_pass_all", 15, field_equals("email_auth", "spf_all", "pass"),
               "SPF uses +all - anyone can send as this domain", MAIL_DOMAIN),
    RiskFactor("domain_no_dmarc", 15, field_false("email_auth", "dmarc_found"),
               "No DMARC record - spoofed mail from this domain is not rejected", MAIL_DOMAIN),
    RiskFactor("domain_dmarc_monitor_only", 5, field_equals("email_auth", "dmarc_policy", "none"),
               "DMARC policy is 'none' - monitoring only, not enforcing", MAIL_DOMAIN),
    RiskFactor("domain_unregistered", 10, field_false("rdap", "registered"),
               "Domain is not registered - treat links or mail claiming it as spoofed", DOMAIN),
    RiskFactor("package_vulnerable", 40, field_true("osv", "found"),
               "Known vulnerabilities affect this package - upgrade to a fixed version", PACKAGE),
    RiskFactor("package_many_advisories", 15, field_at_least("osv", "count", 5),
               None, PACKAGE),
    RiskFactor("package_critical_advisory", 35, field_equals("osv", "max_severity", "CRITICAL"),
               "Critical severity advisory - patch immediately", PACKAGE),
    RiskFactor("package_high_advisory", 20, field_equals("osv", "max_severity", "HIGH"),
               "High severity advisory - schedule an upgrade", PACKAGE),
)

_PROFILE_FACTORS: Dict[ScoringProfile, Tuple[RiskFactor, ...]] = {
    ScoringProfile.OSINT_DASHBOARD: OSINT_DASHBOARD_FACTORS,
    ScoringProfile.EMAIL_ANALYSIS: EMAIL_ANALYSIS_FACTORS,
}

_DEFAULT_MESSAGES: Dict[ScoringProfile, str] = {
    ScoringProfile.OSINT_DASHBOARD: "No significant risk indicators found.",
    ScoringProfile.EMAIL_ANALYSIS: (
        "No major issues found. Consider SPF/DKIM/DMARC for the domain if you manage it."
    ),
}


def build_rule_table(profile: ScoringProfile = ScoringProfile.OSINT_DASHBOARD) -> Tuple[RiskFactor, ...]:
    """Ordered factor table for a profile."""
    return _PROFILE_FACTORS[ScoringProfile(profile)] + SHARED_FACTORS


def default_message_for(profile: ScoringProfile = ScoringProfile.OSINT_DASHBOARD) -> str:
    return _DEFAULT_MESSAGES[ScoringProfile(profile)]
