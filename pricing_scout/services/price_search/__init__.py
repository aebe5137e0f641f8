"""Material price lookup: providers, cache and the orchestrating engine."""

from .cache import CacheStats, PriceCache
from .models import (
    Confidence,
    Currency,
    Location,
    MaterialCategory,
    MaterialId,
    PricePoint,
    PriceRequest,
    PriceResponse,
    PricingError,
    ProviderError,
    RequestError,
    Store,
    fingerprint,
)
from .providers.base import BasePriceProvider
from .providers.duckduckgo import DuckDuckGoProvider
from .providers.static_catalog import CatalogStore, StaticCatalogProvider
from .service import PricingEngine, init_pricing_engine

__all__ = [
    "BasePriceProvider",
    "CacheStats",
    "CatalogStore",
    "Confidence",
    "Currency",
    "DuckDuckGoProvider",
    "Location",
    "MaterialCategory",
    "MaterialId",
    "PriceCache",
    "PricePoint",
    "PriceRequest",
    "PriceResponse",
    "PricingEngine",
    "PricingError",
    "ProviderError",
    "RequestError",
    "StaticCatalogProvider",
    "Store",
    "fingerprint",
    "init_pricing_engine",
]
