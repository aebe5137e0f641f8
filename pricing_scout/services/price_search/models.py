"""Domain models for material price lookups."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Currency(str, Enum):
    """Currencies a price point can be quoted in."""

    USD = "USD"
    BRL = "BRL"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"


class MaterialCategory(str, Enum):
    """Construction material categories."""

    CONCRETE = "concrete"
    REBAR = "rebar"
    STEEL = "steel"
    WOOD = "wood"
    LUMBER = "lumber"
    ROOFING = "roofing"
    DECKING = "decking"
    FLOORING = "flooring"
    GRAVEL = "gravel"
    SAND = "sand"
    BLOCKWORK = "blockwork"
    FASTENERS = "fasteners"
    ANCHORS = "anchors"
    CONNECTORS = "connectors"
    OTHER = "other"


class Confidence(str, Enum):
    """Where a price point came from."""

    SCRAPED = "scraped"
    ESTIMATED = "estimated"
    STATIC = "static"


class Location(BaseModel):
    """Place where the materials are going to be bought."""

    model_config = ConfigDict(frozen=True)

    country_code: str = Field(..., description="ISO 3166 alpha-2 country code.")
    region: Optional[str] = Field(default=None, description="State or province.")
    city: Optional[str] = Field(default=None, description="City name.")

    @field_validator("country_code")
    @classmethod
    def _upper_country(cls, value: str) -> str:
        return value.strip().upper()

    def tokens(self) -> List[str]:
        """Location parts from the most to the least specific."""
        return [part for part in (self.city, self.region, self.country_code) if part]

    def label(self) -> str:
        return "/".join(
            part for part in (self.country_code, self.region, self.city) if part
        )


class MaterialId(BaseModel):
    """Identifies a material; equality only looks at category and code."""

    model_config = ConfigDict(frozen=True)

    category: MaterialCategory
    code: str = Field(..., description="Stable code, e.g. concrete_30mpa.")
    unit: str = Field(..., description="Unit of measure, e.g. m3, kg, unit.")
    description: str = Field(..., description="Human readable description.")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MaterialId):
            return NotImplemented
        return (self.category, self.code) == (other.category, other.code)

    def __hash__(self) -> int:
        return hash((self.category, self.code))


class Store(BaseModel):
    """Store selling a material."""

    model_config = ConfigDict(frozen=True)

    name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    distance_km: Optional[float] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PricePoint(BaseModel):
    """Single price observation for a material at a store."""

    model_config = ConfigDict(frozen=True)

    material: MaterialId
    store: Store
    price: Decimal
    currency: Currency
    captured_at: datetime = Field(default_factory=_utcnow)
    confidence: Confidence
    provider: Optional[str] = Field(
        default=None, description="Name of the provider that produced the point."
    )
    notes: Optional[str] = None


class PriceRequest(BaseModel):
    """What needs to be priced, where, and in which currency."""

    model_config = ConfigDict(frozen=True)

    location: Location
    materials: List[MaterialId] = Field(default_factory=list)
    currency: Currency = Currency.BRL
    max_distance_km: Optional[float] = Field(
        default=50.0,
        gt=0,
        description="Stores farther than this are dropped; None disables the filter.",
    )

    def for_material(self, material: MaterialId) -> "PriceRequest":
        """Return the same request scoped to a single material."""
        return self.model_copy(update={"materials": [material]})


class PriceResponse(BaseModel):
    """Price points found for a request plus the non-fatal issues met."""

    model_config = ConfigDict(frozen=True)

    prices: List[PricePoint] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    unavailable: List[MaterialId] = Field(default_factory=list)
    searched_at: datetime = Field(default_factory=_utcnow)

    def best_price(self, material: MaterialId) -> Optional[PricePoint]:
        """Cheapest point for ``material``, if any."""
        candidates = self.all_prices_for(material)
        return candidates[0] if candidates else None

    def all_prices_for(self, material: MaterialId) -> List[PricePoint]:
        """All points for ``material`` sorted by price."""
        return sorted(
            (point for point in self.prices if point.material == material),
            key=lambda point: point.price,
        )

    def stores_with_all_materials(self) -> List[str]:
        """Names of the stores that carry every priced material."""
        required = {point.material for point in self.prices}
        by_store: Dict[str, Set[MaterialId]] = {}
        for point in self.prices:
            by_store.setdefault(point.store.name, set()).add(point.material)
        return [name for name, materials in by_store.items() if required <= materials]


def fingerprint(
    location: Location,
    material: MaterialId,
    currency: Currency,
    max_distance_km: Optional[float] = None,
) -> str:
    """Cache key for one material priced at one location in one currency."""
    parts: List[Any] = [
        location.country_code,
        location.region,
        location.city,
        material.category.value,
        material.code,
        currency.value,
        max_distance_km,
    ]
    raw = json.dumps(parts, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class PricingError(Exception):
    """Base class for pricing failures."""


class RequestError(PricingError):
    """Raised when a request is malformed and cannot be served at all."""


class ProviderError(PricingError):
    """Raised when a provider cannot complete its lookup."""

    def __init__(self, provider: str, message: str, retryable: bool = False) -> None:
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.retryable = retryable

    def __str__(self) -> str:
        return f"{self.provider}: {self.message}"
