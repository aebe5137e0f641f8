"""Utilities shared by price search providers."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple

from .models import Currency, Location


DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
}

_AMOUNT = r"\d[\d.,]*"
_SYMBOLS = r"R\$|CA\$|US\$|\$|€|£"
_CODES = r"BRL|USD|EUR|GBP|CAD"

PRICE_PATTERN = re.compile(
    rf"(?P<prefix>{_SYMBOLS}|\b(?:{_CODES})\b)\s*(?P<amount>{_AMOUNT})"
    rf"|(?P<amount_first>{_AMOUNT})\s*(?P<suffix>\b(?:{_CODES})\b|€|£)",
    re.IGNORECASE,
)

PHONE_PATTERNS = (
    re.compile(r"\(\d{2,3}\)\s*\d{3,5}[-\s]?\d{4}"),
    re.compile(r"\b\d{3}[-.\s]\d{3}[-.\s]\d{4}\b"),
    re.compile(r"\+\d{1,3}\s*\(?\d{2,3}\)?\s*\d{4,5}[-\s]?\d{4}"),
)

ADDRESS_PATTERN = re.compile(
    r"\b(?:av\.|avenida|rua|rodovia|street|st\.|road|rd\.|avenue|ave\.)\s+[^,.;|]+",
    re.IGNORECASE,
)

_TITLE_SEPARATORS = re.compile(r"\s+[-–—]\s+|\s*[|:]\s*")
_MARKETING_WORDS = re.compile(
    r"\b(?:oferta|ofertas|promoção|promocao|compre|comprar|melhor preço|"
    r"best price|buy|shop|sale|deals?|online|frete grátis|free shipping)\b",
    re.IGNORECASE,
)
STORE_NAME_MAX_LENGTH = 60


def to_decimal(price_text: str | None) -> Optional[Decimal]:
    """Best effort conversion from Brazilian or US price strings to Decimal."""
    if not price_text:
        return None

    cleaned = re.sub(r"[^\d,\.]", "", price_text).strip(".,")
    if not cleaned:
        return None

    comma_count = cleaned.count(",")
    dot_count = cleaned.count(".")

    if comma_count and dot_count:
        # Whichever separator comes last marks the decimals.
        if cleaned.rfind(",") > cleaned.rfind("."):
            normalized = cleaned.replace(".", "").replace(",", ".")
        else:
            normalized = cleaned.replace(",", "")
    elif comma_count:
        last_comma_pos = cleaned.rfind(",")
        decimals_len = len(cleaned) - last_comma_pos - 1
        if comma_count == 1 and decimals_len != 3:
            normalized = cleaned.replace(",", ".")
        else:
            normalized = cleaned.replace(",", "")
    elif dot_count:
        # Distinguish between decimal separator and thousands separator.
        last_dot_pos = cleaned.rfind(".")
        decimals_len = len(cleaned) - last_dot_pos - 1
        if dot_count == 1 and decimals_len != 3:
            normalized = cleaned
        else:
            normalized = cleaned.replace(".", "")
    else:
        normalized = cleaned
    try:
        return Decimal(normalized)
    except (InvalidOperation, ValueError):
        return None


def normalize_whitespace(value: str) -> str:
    """Collapse repeated spaces and newlines."""
    return re.sub(r"\s+", " ", value).strip()


def dollar_currency_for(location: Location) -> Currency:
    """Currency meant by a bare ``$`` at the given location."""
    return {
        "BR": Currency.BRL,
        "CA": Currency.CAD,
        "GB": Currency.GBP,
    }.get(location.country_code, Currency.USD)


def _currency_from_marker(marker: str, location: Location) -> Currency:
    marker = marker.upper()
    if marker == "R$":
        return Currency.BRL
    if marker == "CA$":
        return Currency.CAD
    if marker == "US$":
        return Currency.USD
    if marker == "$":
        return dollar_currency_for(location)
    if marker == "€":
        return Currency.EUR
    if marker == "£":
        return Currency.GBP
    return Currency(marker)


def extract_price(text: str, location: Location) -> Optional[Tuple[Decimal, Currency]]:
    """First currency-tagged amount in ``text``, with its detected currency."""
    for match in PRICE_PATTERN.finditer(text):
        marker = match.group("prefix") or match.group("suffix")
        amount = match.group("amount") or match.group("amount_first")
        value = to_decimal(amount)
        if value is None or value <= 0:
            continue
        return value, _currency_from_marker(marker, location)
    return None


def extract_phone(text: str) -> Optional[str]:
    """Phone number found in ``text``, if any."""
    for pattern in PHONE_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(0).strip()
    return None


def extract_address(text: str, location: Location) -> Optional[str]:
    """Street address mentioned in ``text``, suffixed with the city."""
    match = ADDRESS_PATTERN.search(text)
    if not match:
        return None
    address = normalize_whitespace(match.group(0))
    if location.city and location.city.lower() not in address.lower():
        return f"{address}, {location.city}"
    return address


def clean_store_name(title: str) -> str:
    """Derive a store name from a search result title."""
    head = _TITLE_SEPARATORS.split(normalize_whitespace(title))[0]
    name = normalize_whitespace(_MARKETING_WORDS.sub(" ", head)).strip(" -|,.")
    if not name:
        name = normalize_whitespace(head)
    if len(name) > STORE_NAME_MAX_LENGTH:
        name = name[:STORE_NAME_MAX_LENGTH].rsplit(" ", 1)[0]
    return name
