"""Domain models for the aggregation pipeline."""

from .intel import (
    AggregateResult,
    NormalizedPayload,
    OutcomeStatus,
    ProviderOutcome,
    RiskLevel,
    Subject,
    SubjectKind,
)

__all__ = [
    "AggregateResult",
    "NormalizedPayload",
    "OutcomeStatus",
    "ProviderOutcome",
    "RiskLevel",
    "Subject",
    "SubjectKind",
]
