"""DuckDuckGo HTML search price provider."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple

import httpx
from bs4 import BeautifulSoup

from pricing_scout.configs import settings
from ..cache import PriceCache
from ..models import (
    Confidence,
    Currency,
    Location,
    MaterialCategory,
    MaterialId,
    PricePoint,
    PriceRequest,
    PriceResponse,
    ProviderError,
    Store,
)
from ..utils import (
    DEFAULT_HEADERS,
    clean_store_name,
    dollar_currency_for,
    extract_address,
    extract_phone,
    extract_price,
    normalize_whitespace,
)
from .base import BasePriceProvider

logger = logging.getLogger("price_search.duckduckgo")

QUERY_QUALIFIERS = ("hardware store", "price", "buy")


@dataclass(slots=True)
class SearchHit:
    """One organic result of the search page."""

    title: str
    snippet: str
    url: str


ResultParser = Callable[[str, int], List[SearchHit]]


def parse_search_results(html: str, max_results: int) -> List[SearchHit]:
    """Extract title, snippet and URL of each result on the HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    hits: List[SearchHit] = []
    for item in soup.select(".result"):
        title = item.select_one(".result__title")
        snippet = item.select_one(".result__snippet")
        url = item.select_one(".result__url")
        if not title:
            continue
        hits.append(
            SearchHit(
                title=normalize_whitespace(title.get_text(" ", strip=True)),
                snippet=normalize_whitespace(snippet.get_text(" ", strip=True))
                if snippet
                else "",
                url=normalize_whitespace(url.get_text(strip=True)) if url else "",
            )
        )
        if len(hits) >= max_results:
            break
    return hits


KNOWN_CHAINS: Dict[str, List[Tuple[str, str, float]]] = {
    "BR": [
        ("Leroy Merlin", "https://www.leroymerlin.com.br", 10.0),
        ("Telhanorte", "https://www.telhanorte.com.br", 12.0),
    ],
    "US": [
        ("The Home Depot", "https://www.homedepot.com", 5.0),
        ("Lowe's", "https://www.lowes.com", 7.0),
    ],
}

ESTIMATED_PRICES: Dict[MaterialCategory, Dict[Currency, Decimal]] = {
    MaterialCategory.CONCRETE: {
        Currency.BRL: Decimal("450"),
        Currency.USD: Decimal("85"),
        Currency.EUR: Decimal("75"),
        Currency.GBP: Decimal("65"),
        Currency.CAD: Decimal("110"),
    },
    MaterialCategory.LUMBER: {Currency.BRL: Decimal("28"), Currency.USD: Decimal("8.5")},
    MaterialCategory.WOOD: {Currency.BRL: Decimal("28"), Currency.USD: Decimal("8.5")},
    MaterialCategory.REBAR: {Currency.BRL: Decimal("35"), Currency.USD: Decimal("12")},
    MaterialCategory.STEEL: {Currency.BRL: Decimal("450"), Currency.USD: Decimal("85")},
    MaterialCategory.ROOFING: {Currency.BRL: Decimal("12.5"), Currency.USD: Decimal("2.5")},
}
DEFAULT_ESTIMATES = {Currency.BRL: Decimal("50"), Currency.USD: Decimal("10")}
FALLBACK_ESTIMATE = Decimal("12")


def estimate_price(material: MaterialId, location: Location) -> Tuple[Decimal, Currency]:
    """Rough category price in the local currency."""
    currency = dollar_currency_for(location)
    table = ESTIMATED_PRICES.get(material.category, DEFAULT_ESTIMATES)
    return table.get(currency, FALLBACK_ESTIMATE), currency


class DuckDuckGoProvider(BasePriceProvider):
    """Scrape DuckDuckGo's HTML results for store prices."""

    name = "duckduckgo"

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        search_url: str | None = None,
        timeout: float | None = None,
        max_results: int | None = None,
        cache_ttl: float | None = None,
        parser: ResultParser = parse_search_results,
    ) -> None:
        self._timeout = timeout or settings.SEARCH_TIMEOUT_SECONDS
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            headers=DEFAULT_HEADERS, timeout=self._timeout, follow_redirects=True
        )
        self._search_url = search_url or settings.SEARCH_URL
        self._max_results = max_results or settings.SEARCH_MAX_RESULTS
        self._parser = parser
        self._cache = PriceCache(cache_ttl or settings.SEARCH_CACHE_TTL_SECONDS)

    def supports_location(self, location: Location) -> bool:
        return bool(location.country_code)

    @staticmethod
    def build_query(material: MaterialId, location: Location) -> str:
        return " ".join([material.description, *location.tokens(), *QUERY_QUALIFIERS])

    @staticmethod
    def _cache_key(material: MaterialId, location: Location) -> str:
        return "|".join(
            [
                location.country_code,
                location.region or "",
                location.city or "",
                material.category.value,
                material.code,
            ]
        )

    async def _fetch_impl(self, request: PriceRequest) -> PriceResponse:
        prices: List[PricePoint] = []
        warnings: List[str] = []
        failures: List[ProviderError] = []
        for material in request.materials:
            try:
                prices.extend(await self._search_material(material, request.location))
            except ProviderError as exc:
                failures.append(exc)
                warnings.append(
                    f"Failed to locate {material.description} via {self.name}: {exc.message}"
                )
        if failures and len(failures) == len(request.materials):
            raise failures[0]
        return PriceResponse(prices=prices, warnings=warnings)

    async def _search_material(
        self, material: MaterialId, location: Location
    ) -> List[PricePoint]:
        key = self._cache_key(material, location)
        cached = await self._cache.get(key)
        if cached is not None:
            return list(cached)

        query = self.build_query(material, location)
        response = await self._client.get(
            self._search_url,
            params={"q": query},
            headers={"Referer": "https://html.duckduckgo.com/"},
            timeout=self._timeout,
        )
        if response.status_code != 200:
            raise ProviderError(
                self.name,
                f"HTTP {response.status_code} while searching '{query}'",
                retryable=response.status_code >= 500 or response.status_code == 429,
            )

        try:
            hits = self._parser(response.text, self._max_results)
        except Exception as exc:
            raise ProviderError(self.name, f"unparseable results page: {exc}") from exc

        points = self._points_from_hits(hits, material, location)
        if not points:
            logger.info(
                "Nenhum preço encontrado para '%s'; usando estimativas regionais.", query
            )
            points = self._estimated_points(material, location)
        if points:
            await self._cache.set(key, points)
        return points

    def _points_from_hits(
        self, hits: List[SearchHit], material: MaterialId, location: Location
    ) -> List[PricePoint]:
        captured_at = datetime.now(timezone.utc)
        points: List[PricePoint] = []
        for hit in hits:
            found = extract_price(hit.snippet, location) or extract_price(hit.title, location)
            if found is None:
                continue
            price, currency = found
            points.append(
                PricePoint(
                    material=material,
                    store=Store(
                        name=clean_store_name(hit.title),
                        address=extract_address(hit.snippet, location),
                        phone=extract_phone(hit.snippet),
                        website=_as_website(hit.url),
                    ),
                    price=price,
                    currency=currency,
                    captured_at=captured_at,
                    confidence=Confidence.SCRAPED,
                    provider=self.name,
                    notes="Price obtained from search result snippet",
                )
            )
        return points

    def _estimated_points(
        self, material: MaterialId, location: Location
    ) -> List[PricePoint]:
        chains = KNOWN_CHAINS.get(location.country_code, [])
        if not chains:
            return []
        price, currency = estimate_price(material, location)
        captured_at = datetime.now(timezone.utc)
        area = ", ".join(part for part in (location.city, location.region) if part)
        return [
            PricePoint(
                material=material,
                store=Store(
                    name=chain,
                    address=area or None,
                    website=website,
                    distance_km=distance,
                ),
                price=price,
                currency=currency,
                captured_at=captured_at,
                confidence=Confidence.ESTIMATED,
                provider=self.name,
                notes="Estimated from regional category averages",
            )
            for chain, website, distance in chains
        ]

    async def health_check(self) -> bool:
        try:
            response = await self._client.get(self._search_url, timeout=self._timeout)
        except httpx.HTTPError as exc:
            logger.warning("Health check de %s falhou: %s", self.name, exc)
            return False
        return response.is_success

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _as_website(url: str) -> Optional[str]:
    if not url:
        return None
    if url.startswith(("http://", "https://")):
        return url
    return f"https://{url}"
