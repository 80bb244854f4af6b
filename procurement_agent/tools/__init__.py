"""
Back-office collaborators used by the agent.

The agent only depends on the protocols below. Supabase-backed
implementations live in ``suppliers``, ``inventory``, ``orders`` and
``semantic_search``; ``memory`` holds in-memory versions for demos and tests.
"""

import asyncio
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Awaitable, Optional, Protocol, TypeVar, runtime_checkable

from procurement_agent.exceptions import CollaboratorUnavailable
from procurement_agent.models import QuoteLine, SupplierCandidate

T = TypeVar("T")


@dataclass(frozen=True)
class SupplierFilters:
    material: Optional[str] = None
    region: Optional[str] = None
    category: Optional[str] = None
    min_rating: Optional[float] = None
    limit: Optional[int] = None

    def without_region(self) -> "SupplierFilters":
        return SupplierFilters(
            material=self.material,
            category=self.category,
            min_rating=self.min_rating,
            limit=self.limit,
        )


@dataclass
class InventoryItem:
    name: str
    category: str = ""
    supplier: str = ""
    stock_status: str = "In Stock"
    quantity: int = 0
    unit_price: float = 0.0

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "category": self.category,
            "supplier": self.supplier,
            "stock_status": self.stock_status,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
        }


@dataclass
class InventoryStatus:
    total_count: int = 0
    low_stock_count: int = 0
    categories: list[str] = field(default_factory=list)
    items: list[InventoryItem] = field(default_factory=list)


@dataclass(frozen=True)
class OrderConfirmation:
    order_number: str
    confirmed_total: Decimal


@dataclass(frozen=True)
class SemanticMatch:
    id: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.metadata.get("name") or self.metadata.get("title") or self.id)


@runtime_checkable
class SupplierLookup(Protocol):
    async def search(self, filters: SupplierFilters) -> list[SupplierCandidate]:
        """Return matching suppliers; empty list when nothing matches."""
        ...


@runtime_checkable
class InventorySnapshot(Protocol):
    async def get_status(self, filters: Optional[dict[str, Any]] = None) -> InventoryStatus:
        ...


@runtime_checkable
class OrderPlacement(Protocol):
    async def place(self, line: QuoteLine) -> OrderConfirmation:
        """Place an order for one quote line; raises PlacementRejected."""
        ...


@runtime_checkable
class SemanticSearch(Protocol):
    async def similarity_search(self, query: str, top_k: int = 5) -> list[SemanticMatch]:
        ...


async def call_with_timeout(awaitable: Awaitable[T], timeout: float, name: str) -> T:
    """
    Await a collaborator call, translating a timeout into CollaboratorUnavailable.

    Args:
        awaitable: The pending collaborator call
        timeout: Seconds to wait
        name: Collaborator name for the error message
    """
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError as e:
        raise CollaboratorUnavailable(f"{name} timed out after {timeout}s") from e
