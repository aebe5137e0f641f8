"""Test price extraction helpers."""

from decimal import Decimal

import pytest

from pricing_scout.services.price_search.models import Currency, Location
from pricing_scout.services.price_search.utils import (
    clean_store_name,
    extract_address,
    extract_phone,
    extract_price,
    normalize_whitespace,
    to_decimal,
)
from tests.fakes import CAMPINAS

US = Location(country_code="US", region="CA", city="Anytown")


@pytest.mark.parametrize(
    "text, expected",
    [
        ("R$ 1.234,56", Decimal("1234.56")),
        ("$1,234.56", Decimal("1234.56")),
        ("450,00", Decimal("450.00")),
        ("8.97", Decimal("8.97")),
        ("1.234", Decimal("1234")),
        ("459,90.", Decimal("459.90")),
        ("", None),
        ("sem preço", None),
    ],
)
def test_to_decimal(text: str, expected: Decimal) -> None:
    """Test conversion of Brazilian and US formatted amounts."""
    assert to_decimal(text) == expected


class TestExtractPrice:
    """Test cases for extract_price."""

    def test_brazilian_real_symbol(self) -> None:
        """Test that R$ amounts are detected as BRL."""
        assert extract_price("Concreto 30MPa por R$ 459,90 o m³", CAMPINAS) == (
            Decimal("459.90"),
            Currency.BRL,
        )

    def test_iso_code_before_and_after_amount(self) -> None:
        """Test that ISO codes on either side of the number are accepted."""
        assert extract_price("Only USD 12.50 each", US) == (Decimal("12.50"), Currency.USD)
        assert extract_price("Sale: 99,90 EUR per bag", US) == (
            Decimal("99.90"),
            Currency.EUR,
        )

    def test_bare_dollar_depends_on_location(self) -> None:
        """Test that a bare $ follows the location's dollar currency."""
        assert extract_price("2x4 for $8.97", US) == (Decimal("8.97"), Currency.USD)
        assert extract_price("2x4 for $8.97", CAMPINAS) == (Decimal("8.97"), Currency.BRL)
        assert extract_price("2x4 for CA$ 9.10", US) == (Decimal("9.10"), Currency.CAD)

    def test_first_mention_wins(self) -> None:
        """Test that the earliest price in the text is used."""
        assert extract_price("De £20.00 por £15.00", US) == (Decimal("20.00"), Currency.GBP)

    def test_numbers_without_currency_are_ignored(self) -> None:
        """Test that plain numbers such as strengths are not prices."""
        assert extract_price("Concreto 30MPa entrega em 48h", CAMPINAS) is None


class TestStoreDetails:
    """Test cases for phone, address and store name helpers."""

    def test_extract_phone_formats(self) -> None:
        """Test Brazilian and US phone formats."""
        assert extract_phone("Ligue (19) 3271-3000 agora") == "(19) 3271-3000"
        assert extract_phone("Call (555) 123-4567 today") == "(555) 123-4567"
        assert extract_phone("Call 555-123-4567 today") == "555-123-4567"
        assert extract_phone("Sem telefone") is None

    def test_extract_address_adds_city(self) -> None:
        """Test that the city is appended to the street found."""
        assert (
            extract_address("Loja na Av. das Nações 123, bairro Centro", CAMPINAS)
            == "Av. das Nações 123, Campinas"
        )
        assert extract_address("Entrega rápida", CAMPINAS) is None

    @pytest.mark.parametrize(
        "title, expected",
        [
            ("Leroy Merlin - Concreto usinado 30MPa", "Leroy Merlin"),
            ("Oferta Telhanorte | Cimento CP II", "Telhanorte"),
            ("The Home Depot: Quikrete 80 lb", "The Home Depot"),
        ],
    )
    def test_clean_store_name(self, title: str, expected: str) -> None:
        """Test that boilerplate is removed from result titles."""
        assert clean_store_name(title) == expected

    def test_clean_store_name_truncates(self) -> None:
        """Test that very long titles are cut on a word boundary."""
        name = clean_store_name("Materiais " * 20)

        assert len(name) <= 60
        assert not name.endswith(" ")


def test_normalize_whitespace() -> None:
    """Test collapsing of spaces and newlines."""
    assert normalize_whitespace("  Leroy \n  Merlin ") == "Leroy Merlin"
