"""
Supabase client for back-office tables.

Provides connection management and the few base operations the collaborators
need.
"""

import logging
from typing import Any, Optional

from postgrest.exceptions import APIError
from supabase import Client, create_client

from procurement_agent.config import get_config
from procurement_agent.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get the Supabase client instance."""
    global _client
    if _client is None:
        config = get_config()
        if not config.supabase_url or not config.supabase_key:
            raise ConfigurationError("SUPABASE_URL and SUPABASE_KEY must be set")
        _client = create_client(config.supabase_url, config.supabase_key)
    return _client


# Table names as constants
class Tables:
    SUPPLIERS = "suppliers"
    MATERIALS = "materials"
    PURCHASE_ORDERS = "purchase_orders"


class Functions:
    MATCH_SUPPLIERS = "match_suppliers"


async def insert_one(table: str, data: dict[str, Any]) -> dict:
    """
    Insert a single record into a table.

    Args:
        table: Table name
        data: Record data to insert

    Returns:
        Inserted record dict

    Raises:
        APIError: If the insert fails or returns no row
    """
    client = get_supabase_client()
    result = client.table(table).insert(data).execute()

    if result.data:
        return result.data[0]
    raise APIError({"message": f"Insert into {table} returned no data", "code": "NO_DATA"})


async def execute_rpc(function_name: str, params: dict[str, Any]) -> Any:
    """
    Execute a Supabase RPC function.

    Args:
        function_name: Name of the database function
        params: Parameters to pass to the function

    Returns:
        Function result
    """
    client = get_supabase_client()
    result = client.rpc(function_name, params).execute()
    return result.data


async def test_connection() -> bool:
    """
    Test the database connection.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        client = get_supabase_client()
        client.table(Tables.SUPPLIERS).select("id").limit(1).execute()
        return True
    except (APIError, ConfigurationError) as e:
        logger.error(f"Connection test failed: {e}")
        return False
