"""Assembly of the final, immutable aggregate result."""

import copy
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Sequence

from netknife.models.intel import AggregateResult, ProviderOutcome, ScoringProfile, Subject

from .risk_scorer import ScoreResult


def assemble_result(subject: Subject, outcomes: Sequence[ProviderOutcome],
                    score_result: ScoreResult, recommendations: Sequence[str],
                    timestamp: Optional[datetime] = None,
                    profile: ScoringProfile = ScoringProfile.OSINT_DASHBOARD) -> AggregateResult:
    """Combine pipeline outputs into an ``AggregateResult``.

    Pure apart from reading the clock when no timestamp is given. Outcome
    order is preserved as received; payloads are copied so later changes to
    the provider data do not reach the result.
    """
    return AggregateResult(
        subject=subject,
        outcomes=tuple(_detached(outcome) for outcome in outcomes),
        risk_score=score_result.score,
        risk_level=score_result.level,
        recommendations=tuple(recommendations),
        timestamp=timestamp or datetime.now(timezone.utc),
        triggered_factors=score_result.triggered_ids,
        profile=ScoringProfile(profile),
    )


def _detached(outcome: ProviderOutcome) -> ProviderOutcome:
    if outcome.payload is None:
        return outcome
    return replace(outcome, payload=copy.deepcopy(outcome.payload))
