"""Schemas for intelligence aggregation requests and responses."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from netknife.models.intel import ScoringProfile


class AnalyzeRequest(BaseModel):
    """Body of an analyze request."""
    model_config = ConfigDict(populate_by_name=True)

    subject_value: str = Field(alias="subjectValue", max_length=512)
    subject_kind_hint: Optional[str] = Field(default=None, alias="subjectKindHint")
    profile: Optional[ScoringProfile] = None


class ProviderResultResponse(BaseModel):
    """One provider's slot in ``providerResults``."""
    status: str
    cached: bool = False
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    elapsedMs: Optional[float] = None


class AnalyzeResponse(BaseModel):
    """Aggregate result as returned to clients."""
    input: str
    type: str
    providerResults: Dict[str, ProviderResultResponse]
    riskScore: int = Field(ge=0, le=100)
    riskLevel: str
    recommendations: List[str]
    triggeredFactors: List[str] = []
    profile: str
    timestamp: str


class ProviderInfo(BaseModel):
    """A registered provider as listed by the providers endpoint."""
    id: str
    name: str
    configured: bool
    requiresApiKey: bool
    cacheTtl: int
