"""
Domain models for multi-source intelligence aggregation.

A request investigates one ``Subject``. Every provider registered for the
subject's kind contributes exactly one ``ProviderOutcome``; the outcomes, the
risk score and the recommendations are frozen into an ``AggregateResult``.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

NormalizedPayload = Dict[str, Any]


class SubjectKind(str, Enum):
    """Kinds of subject that can be investigated."""
    EMAIL = "email"
    IP = "ip"
    DOMAIN = "domain"
    PACKAGE = "package"


class OutcomeStatus(str, Enum):
    """Result status of a single provider call."""
    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"


class RiskLevel(str, Enum):
    """Categorical risk verdict derived from the numeric score."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ScoringProfile(str, Enum):
    """Named rule tables.

    ``osint_dashboard`` carries the dashboard weights and wording,
    ``email_analysis`` the single-email analysis flow's.
    """
    OSINT_DASHBOARD = "osint_dashboard"
    EMAIL_ANALYSIS = "email_analysis"


@dataclass(frozen=True)
class Subject:
    """The value being investigated, already classified and normalized."""
    value: str
    kind: SubjectKind


@dataclass(frozen=True)
class ProviderOutcome:
    """One provider's contribution to an aggregate result."""
    provider_id: str
    status: OutcomeStatus
    payload: Optional[NormalizedPayload] = None
    message: Optional[str] = None
    cached: bool = False
    elapsed_ms: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.OK

    @classmethod
    def success(cls, provider_id: str, payload: NormalizedPayload,
                cached: bool = False, elapsed_ms: Optional[float] = None) -> "ProviderOutcome":
        return cls(provider_id=provider_id, status=OutcomeStatus.OK, payload=payload,
                   cached=cached, elapsed_ms=elapsed_ms)

    @classmethod
    def failure(cls, provider_id: str, message: str,
                elapsed_ms: Optional[float] = None) -> "ProviderOutcome":
        return cls(provider_id=provider_id, status=OutcomeStatus.ERROR, message=message,
                   elapsed_ms=elapsed_ms)

    @classmethod
    def timed_out(cls, provider_id: str, message: str,
                  elapsed_ms: Optional[float] = None) -> "ProviderOutcome":
        return cls(provider_id=provider_id, status=OutcomeStatus.TIMEOUT, message=message,
                   elapsed_ms=elapsed_ms)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for the ``providerResults`` section of the response."""
        return {
            "status": self.status.value,
            "cached": self.cached,
            "data": copy.deepcopy(self.payload) if self.payload is not None else None,
            "error": self.message,
            "elapsedMs": round(self.elapsed_ms, 3) if self.elapsed_ms is not None else None,
        }


@dataclass(frozen=True)
class AggregateResult:
    """Final response artifact for one investigated subject.

    Built once by the assembler and never mutated afterwards.
    """
    subject: Subject
    outcomes: Tuple[ProviderOutcome, ...]
    risk_score: int
    risk_level: RiskLevel
    recommendations: Tuple[str, ...]
    timestamp: datetime
    triggered_factors: Tuple[str, ...] = field(default_factory=tuple)
    profile: ScoringProfile = ScoringProfile.OSINT_DASHBOARD

    def outcome_for(self, provider_id: str) -> Optional[ProviderOutcome]:
        for outcome in self.outcomes:
            if outcome.provider_id == provider_id:
                return outcome
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Flat JSON shape consumed by the dashboard and email analysis views."""
        return {
            "input": self.subject.value,
            "type": self.subject.kind.value,
            "providerResults": {
                outcome.provider_id: outcome.to_dict() for outcome in self.outcomes
            },
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level.value,
            "recommendations": list(self.recommendations),
            "triggeredFactors": list(self.triggered_factors),
            "profile": self.profile.value,
            "timestamp": self.timestamp.isoformat(),
        }
