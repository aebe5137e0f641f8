"""High-level engine that orchestrates material price lookups."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from pricing_scout.configs import Settings, settings as default_settings

from .cache import CacheStats, PriceCache
from .models import (
    MaterialId,
    PricePoint,
    PriceRequest,
    PriceResponse,
    ProviderError,
    RequestError,
    fingerprint,
)
from .providers.base import BasePriceProvider
from .providers.duckduckgo import DuckDuckGoProvider
from .providers.static_catalog import StaticCatalogProvider

logger = logging.getLogger("price_search.service")


@dataclass(slots=True)
class MaterialOutcome:
    """Points and warnings gathered for one material."""

    material: MaterialId
    points: Tuple[PricePoint, ...] = ()
    warnings: List[str] = field(default_factory=list)


class PricingEngine:
    """Coordinate price lookups across an ordered chain of providers.

    Providers are tried in registration order for each material and the
    first one that returns at least one point wins. Materials of one
    request are looked up concurrently. Results are cached per
    (location, material, currency, radius) fingerprint.
    """

    def __init__(
        self,
        cache: PriceCache | None = None,
        points_per_material: int | None = None,
        deadline: float | None = None,
    ) -> None:
        if points_per_material is None:
            points_per_material = default_settings.POINTS_PER_MATERIAL
        if points_per_material < 1:
            raise ValueError("points_per_material must be at least 1")
        self.cache = (
            cache
            if cache is not None
            else PriceCache(default_settings.PRICE_CACHE_TTL_SECONDS)
        )
        self.points_per_material = points_per_material
        self.deadline = (
            deadline if deadline is not None else default_settings.FETCH_DEADLINE_SECONDS
        )
        self._providers: Tuple[BasePriceProvider, ...] = ()

    @property
    def providers(self) -> Tuple[BasePriceProvider, ...]:
        """Snapshot of the registry in priority order."""
        return self._providers

    def register_provider(self, provider: BasePriceProvider) -> None:
        """Append ``provider`` at the end of the priority order."""
        # Replace the tuple so requests already iterating keep their snapshot.
        self._providers = (*self._providers, provider)
        logger.info(
            "Provider %s registered with priority %d",
            provider.name,
            len(self._providers),
        )

    def list_providers(self) -> List[str]:
        return [provider.name for provider in self._providers]

    def get_provider(self, name: str) -> Optional[BasePriceProvider]:
        """Registered provider called ``name``, if any."""
        for provider in self._providers:
            if provider.name == name:
                return provider
        return None

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    async def fetch_prices(
        self,
        request: PriceRequest,
        deadline: float | None = None,
    ) -> PriceResponse:
        """Price every material of ``request``.

        Only a malformed request raises (``RequestError``); anything that
        goes wrong while fetching ends up in ``warnings``.
        """
        self._validate(request)
        if not request.materials:
            return PriceResponse()

        providers = self._providers
        timeout = deadline if deadline is not None else self.deadline
        tasks = [
            asyncio.ensure_future(self._price_material(providers, request, material))
            for material in request.materials
        ]
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        prices: List[PricePoint] = []
        warnings: List[str] = []
        unavailable: List[MaterialId] = []
        for material, task in zip(request.materials, tasks):
            if task in pending:
                logger.warning(
                    "Deadline of %.2fs exceeded while pricing %s", timeout, material.code
                )
                warnings.append(
                    f"Abandoned {material.description} ({material.code}): "
                    f"deadline of {timeout:g}s exceeded"
                )
                unavailable.append(material)
                continue
            outcome = task.result()
            warnings.extend(outcome.warnings)
            if outcome.points:
                prices.extend(self._select(outcome.points, request))
            else:
                unavailable.append(material)

        return PriceResponse(prices=prices, warnings=warnings, unavailable=unavailable)

    @staticmethod
    def _validate(request: PriceRequest) -> None:
        if not request.location.country_code.strip():
            raise RequestError("location.country_code must not be empty")
        for index, material in enumerate(request.materials):
            if not material.code.strip():
                raise RequestError(f"materials[{index}].code must not be empty")

    async def _price_material(
        self,
        providers: Sequence[BasePriceProvider],
        request: PriceRequest,
        material: MaterialId,
    ) -> MaterialOutcome:
        key = fingerprint(
            request.location, material, request.currency, request.max_distance_km
        )
        cached = await self.cache.get(key)
        if cached is not None:
            return MaterialOutcome(material=material, points=cached)
        outcome = await self.cache.coalesce(
            key, lambda: self._run_chain(providers, request, material, key)
        )
        # Coalesced callers share the outcome; hand each one its own list.
        return MaterialOutcome(
            material=material, points=outcome.points, warnings=list(outcome.warnings)
        )

    async def _run_chain(
        self,
        providers: Sequence[BasePriceProvider],
        request: PriceRequest,
        material: MaterialId,
        key: str,
    ) -> MaterialOutcome:
        outcome = MaterialOutcome(material=material)
        # A fetch for this key may have completed since the caller missed.
        cached = await self.cache.peek(key)
        if cached is not None:
            outcome.points = cached
            return outcome

        scoped = request.for_material(material)
        attempted = 0
        located = 0
        for provider in providers:
            if not provider.supports_location(request.location):
                continue
            located += 1
            if not provider.supports_category(material.category):
                continue
            attempted += 1
            try:
                response = await provider.fetch_prices(scoped)
            except ProviderError as exc:
                outcome.warnings.append(
                    f"Provider '{provider.name}' failed for {material.code}: {exc.message}"
                )
                continue
            except Exception as exc:
                logger.exception(
                    "Erro inesperado no provedor %s para %s", provider.name, material.code
                )
                outcome.warnings.append(
                    f"Provider '{provider.name}' failed for {material.code}: {exc!r}"
                )
                continue

            outcome.warnings.extend(response.warnings)
            points = tuple(point for point in response.prices if point.material == material)
            if points:
                await self.cache.set(key, points)
                outcome.points = points
                logger.debug(
                    "%s priced %s with %d points", provider.name, material.code, len(points)
                )
                return outcome
            outcome.warnings.append(
                f"Provider '{provider.name}' returned no prices for {material.code}"
            )

        if attempted:
            reason = "all providers exhausted"
        elif located:
            reason = f"no provider supports category {material.category.value}"
        else:
            reason = f"no provider available for location {request.location.label()}"
        outcome.warnings.append(
            f"Could not price {material.description} ({material.code}): {reason}"
        )
        logger.info("Material %s left unpriced: %s", material.code, reason)
        return outcome

    def _select(
        self, points: Sequence[PricePoint], request: PriceRequest
    ) -> List[PricePoint]:
        """Keep the best points: target currency first, then cheapest."""
        ranked = sorted(
            points, key=lambda point: (point.currency != request.currency, point.price)
        )
        return ranked[: self.points_per_material]

    async def aclose(self) -> None:
        """Release provider resources."""
        for provider in self._providers:
            await provider.aclose()

    async def health(self) -> Dict[str, bool]:
        """Health of each registered provider, by name."""
        results = await asyncio.gather(
            *(provider.health_check() for provider in self._providers),
            return_exceptions=True,
        )
        return {
            provider.name: result is True
            for provider, result in zip(self._providers, results)
        }


def init_pricing_engine(config: Settings | None = None) -> PricingEngine:
    """Build an engine with the search provider first and the catalog as fallback."""
    config = config or default_settings
    engine = PricingEngine(
        cache=PriceCache(config.PRICE_CACHE_TTL_SECONDS),
        points_per_material=config.POINTS_PER_MATERIAL,
        deadline=config.FETCH_DEADLINE_SECONDS,
    )
    engine.register_provider(
        DuckDuckGoProvider(
            search_url=config.SEARCH_URL,
            timeout=config.SEARCH_TIMEOUT_SECONDS,
            max_results=config.SEARCH_MAX_RESULTS,
            cache_ttl=config.SEARCH_CACHE_TTL_SECONDS,
        )
    )
    engine.register_provider(StaticCatalogProvider())
    return engine
