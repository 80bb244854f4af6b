"""
RFQ pricing engine.

Ranks suppliers from the lookup by rating and prices one quote line per
supplier. All pricing constants come from ``PricingConfig`` so they can be
tuned without touching the algorithm.
"""

import logging
import math
import random
import time
import uuid
from dataclasses import dataclass, field
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from procurement_agent.agent.catalog import (
    BASE_PRICES,
    DEFAULT_PRICE,
    canonical_product,
    canonical_region,
)
from procurement_agent.config import Config
from procurement_agent.exceptions import NoSuppliersFound
from procurement_agent.models import Quote, QuoteLine, SupplierCandidate
from procurement_agent.tools import SupplierFilters, SupplierLookup, call_with_timeout

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class PricingConfig:
    """Pricing tables and constants used to price quote lines."""

    base_prices: dict[str, float] = field(default_factory=lambda: dict(BASE_PRICES))
    default_price: float = DEFAULT_PRICE
    variance: float = 0.15
    tax_rate: float = 0.10
    shipping_base: float = 40.0
    # (threshold, extra fee per unit above the threshold)
    shipping_tiers: tuple[tuple[int, float], ...] = ((10, 2.0), (50, 1.0))
    region_multipliers: dict[str, float] = field(
        default_factory=lambda: {
            "Asia": 1.0,
            "Europe": 1.2,
            "Americas": 1.3,
            "Africa": 1.1,
            "Oceania": 1.4,
        }
    )
    default_region_multiplier: float = 1.0
    category_base_days: dict[str, int] = field(
        default_factory=lambda: {
            "Manufacturing": 7,
            "Construction": 10,
            "Logistics": 5,
            "Electronics": 3,
        }
    )
    default_base_days: int = 7
    lead_time_jitter_days: int = 4

    @classmethod
    def from_config(cls, config: Config) -> "PricingConfig":
        return cls(
            variance=config.price_variance,
            tax_rate=config.tax_rate,
            shipping_base=config.shipping_base,
        )


def lead_time_bucket(days: int) -> str:
    """Describe a number of days as a human range."""
    if days <= 7:
        return f"{days} days"
    if days <= 14:
        return "1-2 weeks"
    if days <= 30:
        return "2-4 weeks"
    return "1-2 months"


def new_quote_id() -> str:
    return f"RFQ-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


class QuoteEngine:
    """Builds multi-supplier quotes for a product and quantity."""

    def __init__(
        self,
        supplier_lookup: SupplierLookup,
        pricing: Optional[PricingConfig] = None,
        rng: Optional[random.Random] = None,
        lookup_timeout: float = 10.0,
    ):
        self.supplier_lookup = supplier_lookup
        self.pricing = pricing or PricingConfig()
        self.rng = rng or random.Random()
        self.lookup_timeout = lookup_timeout

    async def generate_quote(
        self,
        product: str,
        quantity: int,
        supplier_count: int = 2,
        region: Optional[str] = None,
        preferred_suppliers: Sequence[str] = (),
    ) -> Quote:
        """
        Generate a quote across the best-rated suppliers.

        Args:
            product: Product or material as the user named it
            quantity: Units requested (>= 1)
            supplier_count: Number of quote lines wanted (minimum 1)
            region: Optional region filter, relaxed once when nothing matches
            preferred_suppliers: Names to restrict the quote to when they match

        Returns:
            Quote with lines numbered 1..N in rating order

        Raises:
            NoSuppliersFound: If no supplier matches even without the region
        """
        if quantity < 1:
            raise ValueError(f"Quantity must be positive, got {quantity}")

        product_name = canonical_product(product)
        candidates = await self._find_candidates(product, region)
        candidates = self._prefer(candidates, preferred_suppliers)

        ranked = sorted(candidates, key=lambda s: s.rating, reverse=True)
        chosen = ranked[: max(1, supplier_count)]

        lines = [
            self.price_line(position, supplier, product_name, quantity, region)
            for position, supplier in enumerate(chosen, start=1)
        ]

        quote = Quote(
            quote_id=new_quote_id(),
            product_name=product_name,
            quantity=quantity,
            lines=lines,
            region=canonical_region(region),
        )
        logger.info(
            f"Generated {quote.quote_id}: {quantity} x {product_name} "
            f"from {len(lines)} supplier(s)"
        )
        return quote

    async def _find_candidates(
        self, product: str, region: Optional[str]
    ) -> list[SupplierCandidate]:
        filters = SupplierFilters(material=product, region=region)
        candidates = await call_with_timeout(
            self.supplier_lookup.search(filters), self.lookup_timeout, "supplier lookup"
        )

        if not candidates and region:
            logger.info(f"No suppliers for {product} in {region}, relaxing region")
            candidates = await call_with_timeout(
                self.supplier_lookup.search(filters.without_region()),
                self.lookup_timeout,
                "supplier lookup",
            )

        if not candidates:
            raise NoSuppliersFound(f"No suppliers for {product!r} (region={region!r})")
        return list(candidates)

    @staticmethod
    def _prefer(
        candidates: list[SupplierCandidate], preferred: Sequence[str]
    ) -> list[SupplierCandidate]:
        wanted = {name.lower() for name in preferred}
        if not wanted:
            return candidates
        matching = [c for c in candidates if c.name.lower() in wanted]
        return matching or candidates

    def price_line(
        self,
        position: int,
        supplier: SupplierCandidate,
        product_name: str,
        quantity: int,
        region: Optional[str] = None,
    ) -> QuoteLine:
        """Price a single supplier's line."""
        unit_price = self.unit_price(product_name)
        subtotal = unit_price * quantity
        tax_amount = (subtotal * Decimal(str(self.pricing.tax_rate))).quantize(
            CENT, rounding=ROUND_HALF_UP
        )
        shipping_amount = self.shipping(quantity, supplier.region or region)

        return QuoteLine(
            position=position,
            supplier=supplier,
            product_name=product_name,
            quantity=quantity,
            unit_price=unit_price,
            subtotal=subtotal,
            tax_amount=tax_amount,
            shipping_amount=shipping_amount,
            total=subtotal + tax_amount + shipping_amount,
            lead_time=self.lead_time(supplier.category, quantity),
        )

    def base_price(self, product_name: str) -> Decimal:
        price = self.pricing.base_prices.get(product_name, self.pricing.default_price)
        return _money(price)

    def unit_price(self, product_name: str) -> Decimal:
        """Base price with a vendor variance, kept inside the +/- variance band."""
        base = self.base_price(product_name)
        variance = Decimal(str(self.pricing.variance))
        low = (base * (1 - variance)).quantize(CENT, rounding=ROUND_CEILING)
        high = (base * (1 + variance)).quantize(CENT, rounding=ROUND_FLOOR)
        if low > high:
            return base

        factor = Decimal(str(self.rng.uniform(-self.pricing.variance, self.pricing.variance)))
        price = (base * (1 + factor)).quantize(CENT, rounding=ROUND_HALF_UP)
        return min(max(price, low), high)

    def shipping(self, quantity: int, region: Optional[str]) -> Decimal:
        fee = self.pricing.shipping_base
        for threshold, per_unit in self.pricing.shipping_tiers:
            if quantity > threshold:
                fee += (quantity - threshold) * per_unit

        multiplier = self.pricing.region_multipliers.get(
            canonical_region(region) or "", self.pricing.default_region_multiplier
        )
        return _money(max(fee * multiplier, 0.0))

    def lead_time(self, category: Optional[str], quantity: int) -> str:
        key = (category or "").strip().title()
        days = self.pricing.category_base_days.get(key, self.pricing.default_base_days)
        days += math.ceil(quantity / 10)
        days += self.rng.randint(0, self.pricing.lead_time_jitter_days)
        return lead_time_bucket(days)
