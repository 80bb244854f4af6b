"""Tests for RFQ pricing."""

import random
from decimal import Decimal

import pytest

from procurement_agent.agent.quote_engine import (
    PricingConfig,
    QuoteEngine,
    lead_time_bucket,
)
from procurement_agent.config import Config
from procurement_agent.exceptions import NoSuppliersFound
from procurement_agent.models import SupplierCandidate


def _supplier(name="Test Supplier", region="Asia", category="Construction", rating=4.0):
    return SupplierCandidate(
        id=f"SUP-{name[:3].upper()}",
        name=name,
        region=region,
        category=category,
        material="Construction Steel",
        rating=rating,
    )


class TestQuoteGeneration:
    @pytest.mark.asyncio
    async def test_best_rated_suppliers_first(self, quote_engine):
        quote = await quote_engine.generate_quote("steel beam", 10)

        assert quote.product_name == "Steel Beam"
        assert quote.supplier_names() == ["Shanghai Steel Works", "Rhine Steel GmbH"]
        assert [line.position for line in quote.lines] == [1, 2]
        assert quote.quote_id.startswith("RFQ-")

    @pytest.mark.asyncio
    async def test_region_filter(self, quote_engine):
        quote = await quote_engine.generate_quote("steel beam", 10, region="asia")

        assert quote.region == "Asia"
        assert quote.supplier_names() == ["Shanghai Steel Works", "Osaka Metal Industries"]

    @pytest.mark.asyncio
    async def test_region_relaxed_when_empty(self, quote_engine):
        quote = await quote_engine.generate_quote("cement", 10, region="europe")
        assert quote.supplier_names() == ["Andes Cement Corp"]

    @pytest.mark.asyncio
    async def test_fewer_suppliers_than_requested(self, quote_engine):
        quote = await quote_engine.generate_quote("cement bag", 10, supplier_count=3)
        assert len(quote.lines) == 1

    @pytest.mark.asyncio
    async def test_supplier_count(self, quote_engine):
        quote = await quote_engine.generate_quote("steel beam", 10, supplier_count=3)
        assert len(quote.lines) == 3

    @pytest.mark.asyncio
    async def test_preferred_suppliers(self, quote_engine):
        quote = await quote_engine.generate_quote(
            "steel beam",
            10,
            preferred_suppliers=["Mumbai Structural Supply", "Osaka Metal Industries"],
        )
        assert quote.supplier_names() == ["Osaka Metal Industries", "Mumbai Structural Supply"]

    @pytest.mark.asyncio
    async def test_unknown_preferred_suppliers_ignored(self, quote_engine):
        quote = await quote_engine.generate_quote(
            "steel beam", 10, preferred_suppliers=["Nobody Ltd"]
        )
        assert quote.supplier_names() == ["Shanghai Steel Works", "Rhine Steel GmbH"]

    @pytest.mark.asyncio
    async def test_no_suppliers(self, quote_engine):
        with pytest.raises(NoSuppliersFound) as exc:
            await quote_engine.generate_quote("laptop", 5)
        assert exc.value.code == "NO_SUPPLIERS_FOUND"

    @pytest.mark.asyncio
    async def test_quantity_must_be_positive(self, quote_engine):
        with pytest.raises(ValueError):
            await quote_engine.generate_quote("steel beam", 0)


class TestPricing:
    def test_line_arithmetic(self, supplier_lookup):
        engine = QuoteEngine(supplier_lookup, rng=random.Random(7))
        line = engine.price_line(1, _supplier(), "Steel Beam", 60)

        assert line.subtotal == line.unit_price * 60
        assert line.tax_amount == (line.subtotal * Decimal("0.10")).quantize(Decimal("0.01"))
        assert line.total == line.subtotal + line.tax_amount + line.shipping_amount

    def test_unit_price_within_variance(self, supplier_lookup):
        engine = QuoteEngine(supplier_lookup, rng=random.Random(1))
        for _ in range(200):
            price = engine.unit_price("Steel Beam")
            assert Decimal("76.08") <= price <= Decimal("102.92")

    def test_unknown_product_uses_default_price(self, supplier_lookup):
        engine = QuoteEngine(supplier_lookup, pricing=PricingConfig(variance=0.0))
        assert engine.unit_price("Unobtainium") == Decimal("50.00")

    def test_zero_variance_gives_base_price(self, supplier_lookup):
        engine = QuoteEngine(supplier_lookup, pricing=PricingConfig(variance=0.0))
        assert engine.unit_price("Steel Beam") == Decimal("89.50")

    @pytest.mark.parametrize(
        "quantity,region,expected",
        [
            (5, "Asia", "40.00"),
            (10, "Asia", "40.00"),
            (11, "Asia", "42.00"),
            (60, "Europe", "180.00"),
            (60, "Oceania", "210.00"),
            (60, None, "150.00"),
            (60, "Antarctica", "150.00"),
        ],
    )
    def test_shipping(self, supplier_lookup, quantity, region, expected):
        engine = QuoteEngine(supplier_lookup)
        assert engine.shipping(quantity, region) == Decimal(expected)

    def test_pricing_from_config(self, supplier_lookup):
        pricing = PricingConfig.from_config(Config(tax_rate=0.2, shipping_base=10.0))
        engine = QuoteEngine(supplier_lookup, pricing=pricing)

        assert engine.shipping(5, "Asia") == Decimal("10.00")
        line = engine.price_line(1, _supplier(), "Unobtainium", 1)
        assert line.tax_amount == (line.unit_price * Decimal("0.2")).quantize(Decimal("0.01"))

    def test_shipping_tiers_are_configurable(self, supplier_lookup):
        pricing = PricingConfig(shipping_base=0.0, shipping_tiers=((0, 1.0),))
        engine = QuoteEngine(supplier_lookup, pricing=pricing)
        assert engine.shipping(25, "Asia") == Decimal("25.00")

    def test_seeded_rng_is_reproducible(self, supplier_lookup):
        first = QuoteEngine(supplier_lookup, rng=random.Random(3))
        second = QuoteEngine(supplier_lookup, rng=random.Random(3))
        supplier = _supplier()

        assert first.price_line(1, supplier, "Steel Beam", 10) == second.price_line(
            1, supplier, "Steel Beam", 10
        )


class TestLeadTime:
    @pytest.mark.parametrize(
        "days,expected",
        [(3, "3 days"), (7, "7 days"), (8, "1-2 weeks"), (14, "1-2 weeks"),
         (15, "2-4 weeks"), (30, "2-4 weeks"), (31, "1-2 months")],
    )
    def test_buckets(self, days, expected):
        assert lead_time_bucket(days) == expected

    def test_lead_time_grows_with_quantity(self, supplier_lookup):
        pricing = PricingConfig(lead_time_jitter_days=0)
        engine = QuoteEngine(supplier_lookup, pricing=pricing)

        assert engine.lead_time("Electronics", 10) == "4 days"
        assert engine.lead_time("Construction", 10) == "1-2 weeks"
        assert engine.lead_time("Construction", 500) == "1-2 months"
