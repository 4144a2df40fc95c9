"""
Intelligence aggregation endpoints.

Thin adapter over ``IntelligenceAggregator``: request parsing in, the
aggregate result's JSON shape out.
"""

from typing import Dict, List

from fastapi import APIRouter, Depends, Request

from netknife.schemas.intel import AnalyzeRequest, AnalyzeResponse, ProviderInfo
from netknife.services.aggregator import IntelligenceAggregator

router = APIRouter(prefix="/intel", tags=["intel"])


def get_aggregator(request: Request) -> IntelligenceAggregator:
    """Aggregator built by the application lifespan."""
    return request.app.state.aggregator


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_subject(body: AnalyzeRequest,
                          aggregator: IntelligenceAggregator = Depends(get_aggregator)):
    """Investigate one email, IP, domain or package across all providers."""
    result = await aggregator.analyze(
        body.subject_value,
        kind_hint=body.subject_kind_hint,
        profile=body.profile,
    )
    return result.to_dict()


@router.get("/providers", response_model=Dict[str, List[ProviderInfo]])
async def list_providers(aggregator: IntelligenceAggregator = Depends(get_aggregator)):
    """Registered providers per subject kind, in query order."""
    return aggregator.registry.describe()
