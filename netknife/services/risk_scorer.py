"""
Deterministic risk scoring over provider outcomes.

The score is the sum of the weights of every triggered factor, clamped to
[0, 100]. Factors are evaluated independently of each other, so the same
outcome set always produces the same score.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from netknife.config.logging import get_logger
from netknife.models.intel import ProviderOutcome, RiskLevel, SubjectKind

from .rules import RiskFactor

logger = get_logger(__name__)

MAX_SCORE = 100

# Lower bounds of each level, highest first
LEVEL_THRESHOLDS: Tuple[Tuple[int, RiskLevel], ...] = (
    (75, RiskLevel.CRITICAL),
    (50, RiskLevel.HIGH),
    (25, RiskLevel.MEDIUM),
)


@dataclass(frozen=True)
class ScoreResult:
    """Score, level and the factors that produced them, in table order."""
    score: int
    level: RiskLevel
    triggered_factors: Tuple[RiskFactor, ...]
    raw_score: int

    @property
    def triggered_ids(self) -> Tuple[str, ...]:
        return tuple(factor.id for factor in self.triggered_factors)


def clamp_score(raw: int) -> int:
    return max(0, min(MAX_SCORE, raw))


def risk_level_for(score: int) -> RiskLevel:
    """Map a clamped score onto its level."""
    for lower_bound, level in LEVEL_THRESHOLDS:
        if score >= lower_bound:
            return level
    return RiskLevel.LOW


class RiskScorer:
    """Evaluates a factor table against an outcome set."""

    def __init__(self, factors: Sequence[RiskFactor]):
        self.factors: Tuple[RiskFactor, ...] = tuple(factors)

    def score(self, outcomes: Sequence[ProviderOutcome],
              kind: Optional[SubjectKind] = None) -> ScoreResult:
        """Score the outcomes, evaluating only factors for ``kind``."""
        triggered: List[RiskFactor] = []
        for factor in self.factors:
            if not factor.applies_to(kind):
                continue
            if self._evaluate(factor, outcomes):
                triggered.append(factor)

        raw = sum(factor.weight for factor in triggered)
        score = clamp_score(raw)
        return ScoreResult(
            score=score,
            level=risk_level_for(score),
            triggered_factors=tuple(triggered),
            raw_score=raw,
        )

    @staticmethod
    def _evaluate(factor: RiskFactor, outcomes: Sequence[ProviderOutcome]) -> bool:
        try:
            return bool(factor.predicate(outcomes))
        except Exception as e:
            logger.warning("risk_factor_evaluation_failed", factor=factor.id, error=str(e))
            return False
