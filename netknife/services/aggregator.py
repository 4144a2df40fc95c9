"""
IntelligenceAggregator: classify, fan out, score, recommend, assemble.

Stateless per request. The only error a caller ever sees is
``SubjectValidationError``; everything a provider does wrong is already
folded into its outcome by the coordinator.
"""

from typing import Dict, Optional, Union

from netknife.config.logging import get_logger, mask_subject
from netknife.core.cache import ResponseCache
from netknife.core.exceptions import SubjectValidationError
from netknife.core.transport import Transport
from netknife.models.intel import AggregateResult, ScoringProfile

from .assembler import assemble_result
from .fanout import FanOutCoordinator
from .recommendations import RecommendationEngine
from .registry import ProviderRegistry, build_default_registry
from .risk_scorer import RiskScorer
from .rules import build_rule_table, default_message_for
from .subject import classify_subject

logger = get_logger(__name__)


class IntelligenceAggregator:
    """Single entry point of the aggregation pipeline."""

    def __init__(self, registry: ProviderRegistry, coordinator: FanOutCoordinator,
                 default_profile: ScoringProfile = ScoringProfile.OSINT_DASHBOARD):
        self.registry = registry
        self.coordinator = coordinator
        self.default_profile = ScoringProfile(default_profile)
        self._scorers: Dict[ScoringProfile, RiskScorer] = {
            profile: RiskScorer(build_rule_table(profile)) for profile in ScoringProfile
        }
        self._recommenders: Dict[ScoringProfile, RecommendationEngine] = {
            profile: RecommendationEngine(default_message_for(profile)) for profile in ScoringProfile
        }

    @classmethod
    def from_settings(cls, settings, transport: Transport,
                      cache: Optional[ResponseCache] = None) -> "IntelligenceAggregator":
        registry = build_default_registry(settings, transport, cache)
        coordinator = FanOutCoordinator(
            provider_timeout=settings.PROVIDER_TIMEOUT,
            request_deadline=settings.REQUEST_DEADLINE,
        )
        return cls(registry, coordinator, default_profile=ScoringProfile(settings.SCORING_PROFILE))

    def resolve_profile(self, profile: Union[ScoringProfile, str, None]) -> ScoringProfile:
        if profile is None:
            return self.default_profile
        try:
            return ScoringProfile(profile)
        except ValueError:
            raise SubjectValidationError(f"Unknown scoring profile: {profile}")

    async def analyze(self, subject_value: str, kind_hint: Optional[str] = None,
                      profile: Union[ScoringProfile, str, None] = None) -> AggregateResult:
        """Investigate one subject across every provider registered for its kind.

        Raises:
            SubjectValidationError: the value is empty, malformed or
                cannot be classified, or the profile is unknown.
        """
        subject = classify_subject(subject_value, kind_hint)
        scoring_profile = self.resolve_profile(profile)

        providers = self.registry.providers_for(subject.kind)
        outcomes = await self.coordinator.run(subject, providers)

        score_result = self._scorers[scoring_profile].score(outcomes, kind=subject.kind)
        recommendations = self._recommenders[scoring_profile].recommend(
            score_result.triggered_factors
        )
        result = assemble_result(
            subject, outcomes, score_result, recommendations, profile=scoring_profile
        )

        logger.info(
            "intel_aggregation_completed",
            subject=mask_subject(subject.value),
            kind=subject.kind.value,
            profile=scoring_profile.value,
            providers=len(outcomes),
            failed=sum(1 for outcome in outcomes if not outcome.ok),
            risk_score=result.risk_score,
            risk_level=result.risk_level.value,
        )
        return result
