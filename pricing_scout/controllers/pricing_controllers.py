"""Expose the pricing engine over HTTP.

Fetch errors never change the status code: they are reported in the
``warnings`` of the response. Only malformed requests are rejected.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from pricing_scout.models.pricing_models import (
    CacheStatsModel,
    HealthResponse,
    ProviderInfoResponse,
    ProvidersResponse,
    StatsResponse,
)
from pricing_scout.services.price_search.models import (
    Currency,
    Location,
    MaterialCategory,
    MaterialId,
    PricePoint,
    PriceRequest,
    PriceResponse,
    RequestError,
)
from pricing_scout.services.price_search.service import PricingEngine

pricing_router = APIRouter(prefix="/pricing", tags=["Pricing"])


def get_pricing_engine(request: Request) -> PricingEngine:
    """FastAPI dependency returning the engine created at startup."""
    engine = getattr(request.app.state, "pricing_engine", None)
    assert engine is not None, "Pricing engine was not initialised on startup."
    return engine


@pricing_router.post(
    "/prices",
    responses={
        200: {"model": PriceResponse, "description": "Successful Response"},
        400: {"description": "Malformed request"},
    },
)
async def fetch_prices(
    data: PriceRequest,
    engine: PricingEngine = Depends(get_pricing_engine),
) -> PriceResponse:
    """
    Price the requested materials at the given location.

    Args:
        data (PriceRequest): Location, materials and target currency.

    Returns:
        PriceResponse with the price points found and any warnings.
    """
    try:
        return await engine.fetch_prices(data)
    except RequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@pricing_router.get(
    "/prices/single",
    responses={
        400: {"description": "Malformed request"},
    },
)
async def fetch_single_price(
    category: MaterialCategory,
    code: str,
    unit: str,
    country_code: str,
    description: Optional[str] = None,
    region: Optional[str] = None,
    city: Optional[str] = None,
    currency: Currency = Currency.BRL,
    max_distance_km: Optional[float] = Query(default=50.0, gt=0),
    engine: PricingEngine = Depends(get_pricing_engine),
) -> Optional[PricePoint]:
    """
    Price a single material given as query parameters.

    Returns:
        The selected price point, or null when nothing was found.
    """
    material = MaterialId(
        category=category, code=code, unit=unit, description=description or code
    )
    data = PriceRequest(
        location=Location(country_code=country_code, region=region, city=city),
        materials=[material],
        currency=currency,
        max_distance_km=max_distance_km,
    )
    try:
        response = await engine.fetch_prices(data)
    except RequestError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return response.prices[0] if response.prices else None


@pricing_router.get("/providers")
async def list_providers(
    engine: PricingEngine = Depends(get_pricing_engine),
) -> ProvidersResponse:
    """List the registered providers in priority order."""
    return ProvidersResponse(providers=engine.list_providers())


@pricing_router.get("/providers/{name}")
async def get_provider_info(
    name: str,
    engine: PricingEngine = Depends(get_pricing_engine),
) -> ProviderInfoResponse:
    """Describe one registered provider."""
    provider = engine.get_provider(name)
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Provider '{name}' is not registered",
        )
    return ProviderInfoResponse(
        name=provider.name,
        priority=engine.list_providers().index(name) + 1,
        supported_categories=sorted(
            category.value for category in provider.supported_categories()
        ),
    )


@pricing_router.get("/stats")
async def get_stats(
    engine: PricingEngine = Depends(get_pricing_engine),
) -> StatsResponse:
    """Return provider count and cache counters."""
    stats = engine.cache_stats()
    return StatsResponse(
        provider_count=len(engine.providers),
        providers=engine.list_providers(),
        cache=CacheStatsModel(
            hits=stats.hits,
            misses=stats.misses,
            entries=stats.entries,
            inflight=stats.inflight,
            hit_rate=stats.hit_rate,
        ),
    )


@pricing_router.get("/health")
async def health_check(
    engine: PricingEngine = Depends(get_pricing_engine),
) -> HealthResponse:
    """Check every provider."""
    providers = await engine.health()
    healthy = all(providers.values())
    return HealthResponse(
        status="healthy" if healthy else "degraded", providers=providers
    )
