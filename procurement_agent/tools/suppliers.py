"""
Supplier lookup backed by the Supabase ``suppliers`` table.
"""

import logging
import re
from typing import Optional

import httpx
from postgrest.exceptions import APIError

from procurement_agent.agent.catalog import canonical_region, related_materials
from procurement_agent.exceptions import CollaboratorUnavailable
from procurement_agent.models import SupplierCandidate
from procurement_agent.shared.supabase_client import Tables, get_supabase_client
from procurement_agent.tools import SupplierFilters

logger = logging.getLogger(__name__)

# PostgREST filter syntax uses these as separators
_FILTER_UNSAFE = re.compile(r"[,()*%]")


def _row_to_supplier(row: dict) -> SupplierCandidate:
    """Convert a database row to a SupplierCandidate."""
    rating = row.get("rating")
    return SupplierCandidate(
        id=str(row.get("id") or row.get("supplier_id") or ""),
        name=row.get("name") or row.get("company_name") or "Unknown supplier",
        region=row.get("region") or "",
        category=row.get("category") or "",
        material=row.get("material") or "",
        rating=float(rating) if rating is not None else 0.0,
        lead_time=row.get("lead_time") or "",
        contact=row.get("contact_email") or row.get("contact") or "",
    )


def material_filter(material: str) -> Optional[str]:
    """Build an ``or`` filter matching any related material category."""
    clauses = []
    for name in related_materials(material):
        safe = _FILTER_UNSAFE.sub(" ", name).strip()
        if safe:
            clauses.append(f"material.ilike.*{safe}*")
    return ",".join(clauses) or None


class SupabaseSupplierLookup:
    """Reads suppliers; never writes."""

    async def search(self, filters: SupplierFilters) -> list[SupplierCandidate]:
        """
        Search suppliers matching the filters, best rated first.

        Args:
            filters: Material, region, category, minimum rating and limit

        Returns:
            Matching suppliers (empty list when nothing matches)

        Raises:
            CollaboratorUnavailable: On transport or API failure
        """
        client = get_supabase_client()
        query = client.table(Tables.SUPPLIERS).select("*")

        if filters.material:
            clause = material_filter(filters.material)
            if clause:
                query = query.or_(clause)
        if filters.region:
            query = query.ilike("region", canonical_region(filters.region))
        if filters.category:
            query = query.ilike("category", filters.category)
        if filters.min_rating is not None:
            query = query.gte("rating", filters.min_rating)

        query = query.order("rating", desc=True)
        if filters.limit:
            query = query.limit(filters.limit)

        try:
            result = query.execute()
        except (APIError, httpx.HTTPError) as e:
            logger.warning(f"Supplier search failed: {e}")
            raise CollaboratorUnavailable(f"Supplier search failed: {e}") from e

        return [_row_to_supplier(row) for row in result.data or []]
