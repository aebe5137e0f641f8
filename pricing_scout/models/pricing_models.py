"""Response models for the pricing controllers."""

from typing import Dict, List

from pydantic import BaseModel, Field


class ProvidersResponse(BaseModel):
    """Registered providers in the order they are tried."""

    providers: List[str] = Field(..., description="Provider names by priority.")


class CacheStatsModel(BaseModel):
    """Snapshot of the engine cache counters."""

    hits: int = Field(..., description="Lookups served from the cache.")
    misses: int = Field(..., description="Lookups that went to the providers.")
    entries: int = Field(..., description="Live entries currently stored.")
    inflight: int = Field(..., description="Fetches currently being shared.")
    hit_rate: float = Field(..., description="hits / (hits + misses).")


class StatsResponse(BaseModel):
    """Data model for the stats endpoint."""

    provider_count: int
    providers: List[str]
    cache: CacheStatsModel


class HealthResponse(BaseModel):
    """Data model for the health endpoint."""

    status: str = Field(..., description="healthy when every provider answers.")
    service: str = "pricing-engine"
    providers: Dict[str, bool] = Field(default_factory=dict)


class ProviderInfoResponse(BaseModel):
    """Details about one registered provider."""

    name: str
    priority: int = Field(..., description="1 for the provider tried first.")
    supported_categories: List[str] = Field(
        default_factory=list, description="Empty when every category is covered."
    )
