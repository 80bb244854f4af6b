"""
Read-only inventory snapshot from the Supabase ``materials`` table.
"""

import logging
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError

from procurement_agent.exceptions import CollaboratorUnavailable
from procurement_agent.shared.supabase_client import Tables, get_supabase_client
from procurement_agent.tools import InventoryItem, InventoryStatus

logger = logging.getLogger(__name__)

LOW_STOCK = "Low Stock"


def _row_to_item(row: dict) -> InventoryItem:
    return InventoryItem(
        name=row.get("name") or row.get("material_name") or "",
        category=row.get("category") or "",
        supplier=row.get("supplier") or row.get("supplier_name") or "",
        stock_status=row.get("stock_status") or "In Stock",
        quantity=int(row.get("quantity") or 0),
        unit_price=float(row.get("unit_price") or 0.0),
    )


def summarize(items: list[InventoryItem]) -> InventoryStatus:
    """Build the snapshot totals from a list of items."""
    categories = sorted({item.category for item in items if item.category})
    return InventoryStatus(
        total_count=len(items),
        low_stock_count=sum(1 for item in items if item.stock_status == LOW_STOCK),
        categories=categories,
        items=items,
    )


class SupabaseInventorySnapshot:
    async def get_status(self, filters: Optional[dict[str, Any]] = None) -> InventoryStatus:
        """
        Get the inventory snapshot.

        Args:
            filters: Optional ``category``, ``material`` and ``stock_status``

        Returns:
            InventoryStatus with totals, categories and items
        """
        filters = filters or {}
        client = get_supabase_client()
        query = client.table(Tables.MATERIALS).select("*")

        if filters.get("category"):
            query = query.ilike("category", filters["category"])
        if filters.get("material"):
            query = query.ilike("name", f"*{filters['material']}*")
        if filters.get("stock_status"):
            query = query.eq("stock_status", filters["stock_status"])

        try:
            result = query.order("name").execute()
        except (APIError, httpx.HTTPError) as e:
            logger.warning(f"Inventory snapshot failed: {e}")
            raise CollaboratorUnavailable(f"Inventory snapshot failed: {e}") from e

        return summarize([_row_to_item(row) for row in result.data or []])
