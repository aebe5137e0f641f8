"""Base classes for price search providers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import FrozenSet, Optional

import httpx

from ..models import (
    Location,
    MaterialCategory,
    PriceRequest,
    PriceResponse,
    ProviderError,
)

logger = logging.getLogger("price_search.provider")


class BasePriceProvider(ABC):
    """Common behaviour for price providers.

    Providers are shared by every concurrent request, so subclasses must
    not keep request-specific state on ``self``.
    """

    name: str

    def supported_categories(self) -> FrozenSet[MaterialCategory]:
        """Categories this provider can price; empty means all of them."""
        return frozenset()

    def supports_category(self, category: MaterialCategory) -> bool:
        categories = self.supported_categories()
        return not categories or category in categories

    @abstractmethod
    def supports_location(self, location: Location) -> bool:
        """Whether the provider covers ``location``. Must not do I/O."""
        raise NotImplementedError

    async def fetch_prices(self, request: PriceRequest) -> PriceResponse:
        """Public fetch entry point with error translation.

        "No results" is an empty response; ``ProviderError`` means the
        lookup could not be carried out. Points whose store is known to be
        farther than ``request.max_distance_km`` are dropped.
        """
        try:
            response = await self._fetch_impl(request)
        except ProviderError as exc:
            logger.warning("Falha específica do provedor %s: %s", exc.provider, exc.message)
            raise
        except httpx.TimeoutException as exc:
            logger.warning("Timeout ao consultar %s: %s", self.name, exc)
            raise ProviderError(
                self.name, f"request timed out ({exc.__class__.__name__})", retryable=True
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Erro de transporte em %s: %s", self.name, exc)
            raise ProviderError(
                self.name, f"transport failure: {exc}", retryable=True
            ) from exc
        return self._within_distance(response, request.max_distance_km)

    def _within_distance(
        self, response: PriceResponse, max_distance_km: Optional[float]
    ) -> PriceResponse:
        if max_distance_km is None:
            return response
        kept = [
            point
            for point in response.prices
            if point.store.distance_km is None or point.store.distance_km <= max_distance_km
        ]
        dropped = len(response.prices) - len(kept)
        if not dropped:
            return response
        logger.debug(
            "%s descartou %d lojas além de %.1f km", self.name, dropped, max_distance_km
        )
        return response.model_copy(update={"prices": kept})

    @abstractmethod
    async def _fetch_impl(self, request: PriceRequest) -> PriceResponse:
        """Return the price points found for ``request``."""
        raise NotImplementedError

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        """Release resources owned by the provider."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
