"""
Data retrieved by an intent handler for the response generator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from procurement_agent.agent.orders import PlacedOrder
from procurement_agent.models import Quote, SupplierCandidate
from procurement_agent.tools import InventoryStatus, SemanticMatch


class ReplyKind(str, Enum):
    SUPPLIER_RESULTS = "supplier_results"
    SEMANTIC_RESULTS = "semantic_results"
    NO_SUPPLIERS = "no_suppliers"
    QUOTE = "quote"
    ORDER_PLACED = "order_placed"
    INVENTORY = "inventory"
    GENERAL = "general"
    CLARIFICATION = "clarification"
    DOMAIN_ERROR = "domain_error"
    UNAVAILABLE = "unavailable"


# Replies whose wording must be exact skip the text providers
DETERMINISTIC_KINDS = frozenset({ReplyKind.CLARIFICATION, ReplyKind.DOMAIN_ERROR})


@dataclass
class TurnContext:
    kind: ReplyKind
    filters: dict[str, Any] = field(default_factory=dict)
    suppliers: list[SupplierCandidate] = field(default_factory=list)
    semantic_matches: list[SemanticMatch] = field(default_factory=list)
    quote: Optional[Quote] = None
    order: Optional[PlacedOrder] = None
    inventory: Optional[InventoryStatus] = None
    missing_slots: list[str] = field(default_factory=list)
    error_code: Optional[str] = None
    notice: Optional[str] = None

    @property
    def deterministic(self) -> bool:
        return self.kind in DETERMINISTIC_KINDS
