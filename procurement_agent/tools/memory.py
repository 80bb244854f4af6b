"""
In-memory collaborators for demos and tests.

Behave like the Supabase-backed ones: suppliers are matched through the same
product -> material mapping, and orders add an ``On Order`` inventory row.
"""

import logging
import re
from typing import Any, Iterable, Optional

from procurement_agent.agent.catalog import canonical_region, related_materials
from procurement_agent.exceptions import PlacementRejected
from procurement_agent.models import QuoteLine, SupplierCandidate
from procurement_agent.tools import (
    InventoryItem,
    InventoryStatus,
    OrderConfirmation,
    SemanticMatch,
    SupplierFilters,
)
from procurement_agent.tools.inventory import summarize
from procurement_agent.tools.orders import new_order_number
from procurement_agent.tools.suppliers import _row_to_supplier

logger = logging.getLogger(__name__)

_WORD = re.compile(r"[a-z0-9]+")
_STOPWORDS = {"the", "for", "and", "like", "similar", "suppliers", "supplier", "to", "of", "in"}


def material_matches(term: str, supplier_material: str) -> bool:
    """True if a product/material term refers to a supplier's material."""
    material = supplier_material.lower()
    if not material:
        return False
    for candidate in [term.lower(), *(m.lower() for m in related_materials(term))]:
        if candidate in material or material in candidate:
            return True
    return False


class InMemorySupplierLookup:
    def __init__(self, suppliers: Iterable[SupplierCandidate] = ()):
        self.suppliers = list(suppliers)
        self.calls: list[SupplierFilters] = []

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "InMemorySupplierLookup":
        return cls(_row_to_supplier(row) for row in records)

    def _matches(self, supplier: SupplierCandidate, filters: SupplierFilters) -> bool:
        if filters.material and not material_matches(filters.material, supplier.material):
            return False
        if filters.region and canonical_region(filters.region) != canonical_region(supplier.region):
            return False
        if filters.category and filters.category.lower() != supplier.category.lower():
            return False
        if filters.min_rating is not None and supplier.rating < filters.min_rating:
            return False
        return True

    async def search(self, filters: SupplierFilters) -> list[SupplierCandidate]:
        self.calls.append(filters)
        results = [s for s in self.suppliers if self._matches(s, filters)]
        results.sort(key=lambda s: s.rating, reverse=True)
        if filters.limit:
            results = results[: filters.limit]
        return results


class InMemoryInventorySnapshot:
    def __init__(self, items: Iterable[InventoryItem] = ()):
        self.items = list(items)

    @classmethod
    def from_records(cls, records: Iterable[dict]) -> "InMemoryInventorySnapshot":
        return cls(InventoryItem(**row) for row in records)

    async def get_status(self, filters: Optional[dict[str, Any]] = None) -> InventoryStatus:
        filters = filters or {}
        items = self.items
        if filters.get("category"):
            items = [i for i in items if i.category.lower() == filters["category"].lower()]
        if filters.get("material"):
            items = [i for i in items if filters["material"].lower() in i.name.lower()]
        if filters.get("stock_status"):
            items = [i for i in items if i.stock_status == filters["stock_status"]]
        return summarize(list(items))


class InMemoryOrderPlacement:
    """Records orders; ``reject=True`` simulates a failed inventory update."""

    def __init__(self, inventory: Optional[InMemoryInventorySnapshot] = None, reject: bool = False):
        self.inventory = inventory
        self.reject = reject
        self.orders: list[tuple[str, QuoteLine]] = []

    async def place(self, line: QuoteLine) -> OrderConfirmation:
        if self.reject:
            raise PlacementRejected(f"Inventory update rejected for {line.product_name}")

        order_number = new_order_number()
        self.orders.append((order_number, line))
        if self.inventory is not None:
            self.inventory.items.append(
                InventoryItem(
                    name=line.product_name,
                    category=line.supplier.category,
                    supplier=line.supplier.name,
                    stock_status="On Order",
                    quantity=line.quantity,
                    unit_price=float(line.unit_price),
                )
            )
        logger.info(f"Recorded in-memory order {order_number}")
        return OrderConfirmation(order_number=order_number, confirmed_total=line.total)


def _tokens(text: str) -> set[str]:
    return {t for t in _WORD.findall(text.lower()) if t not in _STOPWORDS}


class InMemorySemanticSearch:
    """Token-overlap similarity over supplier attributes."""

    def __init__(self, suppliers: Iterable[SupplierCandidate] = ()):
        self.suppliers = list(suppliers)

    async def similarity_search(self, query: str, top_k: int = 5) -> list[SemanticMatch]:
        wanted = _tokens(query)
        # A named supplier in the query stands in for its attributes
        for supplier in self.suppliers:
            if supplier.name.lower() in query.lower():
                wanted |= _tokens(f"{supplier.material} {supplier.category} {supplier.region}")

        matches = []
        for supplier in self.suppliers:
            if supplier.name.lower() in query.lower():
                continue
            words = _tokens(
                f"{supplier.name} {supplier.material} {supplier.category} {supplier.region}"
            )
            if not wanted or not words:
                continue
            score = len(wanted & words) / len(wanted | words)
            if score > 0:
                matches.append(SemanticMatch(id=supplier.id, score=score, metadata=supplier.to_dict()))

        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]
