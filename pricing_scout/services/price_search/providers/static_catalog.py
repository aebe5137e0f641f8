"""Static catalog price provider.

Last line of defence: answers from a fixed table of approximate prices,
never touches the network and never fails for a market it knows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from ..models import (
    Confidence,
    Currency,
    Location,
    MaterialId,
    PricePoint,
    PriceRequest,
    PriceResponse,
    ProviderError,
    Store,
)
from .base import BasePriceProvider

logger = logging.getLogger("price_search.static")

MARKET_CURRENCIES = {
    "BR": Currency.BRL,
    "US": Currency.USD,
    "CA": Currency.CAD,
    "GB": Currency.GBP,
}


@dataclass(slots=True)
class CatalogStore:
    """A store and its approximate prices keyed by material code or category."""

    store: Store
    prices: Dict[str, Decimal] = field(default_factory=dict)

    def price_for(self, material: MaterialId) -> Optional[Decimal]:
        if material.code in self.prices:
            return self.prices[material.code]
        return self.prices.get(material.category.value)


def default_catalog() -> Dict[str, List[CatalogStore]]:
    """Approximate prices for the markets covered out of the box."""
    return {
        "BR": [
            CatalogStore(
                store=Store(
                    name="Leroy Merlin",
                    address="Av. das Nações, Campinas - SP",
                    phone="(19) 3271-3000",
                    website="https://www.leroymerlin.com.br",
                    distance_km=5.2,
                ),
                prices={
                    "concrete_30mpa": Decimal("450.00"),
                    "lumber_2x4_3m": Decimal("28.50"),
                    "rebar_10mm": Decimal("35.00"),
                    "sand": Decimal("85.00"),
                    "gravel": Decimal("95.00"),
                },
            ),
            CatalogStore(
                store=Store(
                    name="Telhanorte",
                    address="Av. Brasil, Campinas - SP",
                    phone="(19) 3272-4000",
                    website="https://www.telhanorte.com.br",
                    distance_km=7.8,
                ),
                prices={
                    "concrete_30mpa": Decimal("435.00"),
                    "lumber_2x4_3m": Decimal("29.90"),
                    "rebar_10mm": Decimal("33.50"),
                    "roofing_tile": Decimal("12.50"),
                },
            ),
        ],
        "US": [
            CatalogStore(
                store=Store(
                    name="The Home Depot",
                    address="123 Main St, Anytown, CA",
                    phone="(555) 123-4567",
                    website="https://www.homedepot.com",
                    distance_km=3.2,
                ),
                prices={
                    "concrete_30mpa": Decimal("5.50"),
                    "lumber_2x4_8ft": Decimal("8.97"),
                    "rebar_10mm": Decimal("12.50"),
                    "deck_board_12ft": Decimal("24.99"),
                },
            ),
        ],
    }


class StaticCatalogProvider(BasePriceProvider):
    """Serve prices from an in-memory catalog of known markets.

    Markets are country codes (``BR``) or country-region pairs
    (``BR-SP``); a region market shadows its country market.
    """

    name = "static"

    def __init__(
        self,
        catalog: Mapping[str, Sequence[CatalogStore]] | None = None,
        currencies: Mapping[str, Currency] | None = None,
    ) -> None:
        source = default_catalog() if catalog is None else catalog
        self._catalog: Dict[str, tuple] = {
            market.upper(): tuple(stores) for market, stores in source.items()
        }
        self._currencies = dict(MARKET_CURRENCIES)
        if currencies:
            self._currencies.update(currencies)

    def _market_for(self, location: Location) -> Optional[str]:
        if location.region:
            regional = f"{location.country_code}-{location.region.upper()}"
            if regional in self._catalog:
                return regional
        if location.country_code in self._catalog:
            return location.country_code
        return None

    def supports_location(self, location: Location) -> bool:
        return self._market_for(location) is not None

    def markets(self) -> List[str]:
        return sorted(self._catalog)

    async def _fetch_impl(self, request: PriceRequest) -> PriceResponse:
        market = self._market_for(request.location)
        if market is None:
            raise ProviderError(
                self.name, f"market {request.location.label()} is not in the catalog"
            )
        currency = self._currencies.get(request.location.country_code, Currency.USD)
        captured_at = datetime.now(timezone.utc)

        prices: List[PricePoint] = []
        for material in request.materials:
            for entry in self._catalog[market]:
                price = entry.price_for(material)
                if price is None:
                    continue
                prices.append(
                    PricePoint(
                        material=material,
                        store=entry.store,
                        price=price,
                        currency=currency,
                        captured_at=captured_at,
                        confidence=Confidence.STATIC,
                        provider=self.name,
                        notes="Static data - verify before purchasing",
                    )
                )
        logger.debug(
            "Catalog %s returned %d prices for %d materials",
            market,
            len(prices),
            len(request.materials),
        )
        return PriceResponse(prices=prices)
