"""
Order placement writing to Supabase.

An order is a ``purchase_orders`` row plus an ``On Order`` inventory row in
``materials``. If either write fails the placement is rejected.
"""

import logging
import time
import uuid

import httpx
from postgrest.exceptions import APIError

from procurement_agent.exceptions import ConfigurationError, PlacementRejected
from procurement_agent.models import QuoteLine
from procurement_agent.shared.supabase_client import Tables, insert_one
from procurement_agent.tools import OrderConfirmation

logger = logging.getLogger(__name__)


def new_order_number() -> str:
    return f"PO-{int(time.time() * 1000)}-{uuid.uuid4().hex[:4]}"


class SupabaseOrderPlacement:
    async def place(self, line: QuoteLine) -> OrderConfirmation:
        """
        Create a purchase order for a quote line.

        Args:
            line: The quote line being ordered

        Returns:
            OrderConfirmation with the order number and confirmed total

        Raises:
            PlacementRejected: If the order or the inventory update fails
        """
        order_number = new_order_number()
        try:
            await insert_one(
                Tables.PURCHASE_ORDERS,
                {
                    "order_number": order_number,
                    "supplier_id": line.supplier.id,
                    "supplier_name": line.supplier.name,
                    "product_name": line.product_name,
                    "quantity": line.quantity,
                    "unit_price": float(line.unit_price),
                    "total": float(line.total),
                    "lead_time": line.lead_time,
                    "status": "Pending",
                },
            )
            await insert_one(
                Tables.MATERIALS,
                {
                    "name": line.product_name,
                    "category": line.supplier.category,
                    "supplier": line.supplier.name,
                    "quantity": line.quantity,
                    "unit_price": float(line.unit_price),
                    "stock_status": "On Order",
                },
            )
        except (APIError, httpx.HTTPError, ConfigurationError) as e:
            logger.error(f"Order {order_number} rejected: {e}")
            raise PlacementRejected(f"Order {order_number} rejected: {e}") from e

        return OrderConfirmation(order_number=order_number, confirmed_total=line.total)
