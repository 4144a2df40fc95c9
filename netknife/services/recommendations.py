"""Recommendation text derived from triggered risk factors."""

from typing import List, Sequence

from .rules import RiskFactor


class RecommendationEngine:
    """Turns triggered factors into an ordered, de-duplicated advice list.

    When nothing produces a message the single default message is returned,
    so the list is never empty.
    """

    def __init__(self, default_message: str):
        self.default_message = default_message

    def recommend(self, triggered: Sequence[RiskFactor]) -> List[str]:
        messages: List[str] = []
        for factor in triggered:
            if factor.message and factor.message not in messages:
                messages.append(factor.message)
        return messages or [self.default_message]
