"""
Data models shared across the Procurement Agent.

Messages and intents are immutable once created. Sessions are mutated only by
the agent router while it holds the session lock.
"""

import bisect
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from procurement_agent.exceptions import InvalidCompanyNumber


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"


class IntentType(str, Enum):
    SUPPLIER_SEARCH = "SUPPLIER_SEARCH"
    RFQ_GENERATION = "RFQ_GENERATION"
    ORDER_PLACEMENT = "ORDER_PLACEMENT"
    INVENTORY_CHECK = "INVENTORY_CHECK"
    SEMANTIC_SEARCH = "SEMANTIC_SEARCH"
    GENERAL = "GENERAL"


class CredentialState(str, Enum):
    AVAILABLE = "AVAILABLE"
    ACTIVE = "ACTIVE"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"


@dataclass(frozen=True)
class ConversationMessage:
    """A single turn in a conversation."""

    role: Role
    text: str
    timestamp: datetime = field(default_factory=utcnow)
    intent_type: Optional[IntentType] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class Intent:
    """Classified purpose of a user message."""

    type: IntentType
    confidence: float
    parameters: dict[str, Any] = field(default_factory=dict)
    rule: Optional[str] = None

    def get(self, slot: str, default: Any = None) -> Any:
        return self.parameters.get(slot, default)


@dataclass(frozen=True)
class SupplierCandidate:
    """Read-only supplier record returned by a supplier lookup."""

    id: str
    name: str
    region: str = ""
    category: str = ""
    material: str = ""
    rating: float = 0.0
    lead_time: str = ""
    contact: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "region": self.region,
            "category": self.category,
            "material": self.material,
            "rating": self.rating,
            "lead_time": self.lead_time,
            "contact": self.contact,
        }


@dataclass(frozen=True)
class QuoteLine:
    """Priced offer from one supplier. ``position`` is the company number."""

    position: int
    supplier: SupplierCandidate
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    shipping_amount: Decimal
    total: Decimal
    lead_time: str

    def to_dict(self) -> dict:
        return {
            "position": self.position,
            "supplier": self.supplier.name,
            "supplier_id": self.supplier.id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": float(self.unit_price),
            "subtotal": float(self.subtotal),
            "tax_amount": float(self.tax_amount),
            "shipping_amount": float(self.shipping_amount),
            "total": float(self.total),
            "lead_time": self.lead_time,
        }


@dataclass
class Quote:
    """Request-for-quotation result with lines numbered 1..N."""

    quote_id: str
    product_name: str
    quantity: int
    lines: list[QuoteLine]
    region: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def line(self, company_number: int) -> QuoteLine:
        """Return the line for a company number, raising when out of range."""
        if company_number < 1 or company_number > len(self.lines):
            raise InvalidCompanyNumber(company_number, len(self.lines))
        return self.lines[company_number - 1]

    def supplier_names(self) -> list[str]:
        return [line.supplier.name for line in self.lines]

    def to_dict(self) -> dict:
        return {
            "quote_id": self.quote_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "region": self.region,
            "lines": [line.to_dict() for line in self.lines],
            "created_at": self.created_at.isoformat(),
        }


MAX_REMEMBERED_SUPPLIERS = 10


@dataclass
class ResolvedContext:
    """Entities resolved in earlier turns, used to back-fill missing slots."""

    last_material: Optional[str] = None
    last_quantity: Optional[int] = None
    last_region: Optional[str] = None
    last_suppliers: list[str] = field(default_factory=list)
    last_supplier_count: Optional[int] = None
    last_quote: Optional[Quote] = None

    def remember_suppliers(self, names: list[str]):
        """Put a new batch of names in front, keeping older ones after it."""
        merged = []
        for name in list(names) + self.last_suppliers:
            if name and name not in merged:
                merged.append(name)
        self.last_suppliers = merged[:MAX_REMEMBERED_SUPPLIERS]


@dataclass
class Session:
    """Per-conversation state."""

    session_id: str
    messages: list[ConversationMessage] = field(default_factory=list)
    resolved_context: ResolvedContext = field(default_factory=ResolvedContext)
    created_at: datetime = field(default_factory=utcnow)
    last_activity: datetime = field(default_factory=utcnow)

    def add_message(self, message: ConversationMessage):
        """Insert a message keeping timestamp order (ties keep arrival order)."""
        bisect.insort_right(self.messages, message, key=lambda m: m.timestamp)
        self.last_activity = utcnow()

    def recent_messages(self, limit: int = 10) -> list[ConversationMessage]:
        return self.messages[-limit:] if limit > 0 else []


@dataclass
class CredentialSlot:
    """One upstream-provider credential and its rotation state."""

    index: int
    secret: str
    state: CredentialState = CredentialState.AVAILABLE
    request_count: int = 0
    last_used: Optional[datetime] = None
    recent_errors: list[str] = field(default_factory=list)

    def masked(self) -> str:
        if len(self.secret) <= 8:
            return "***"
        return f"{self.secret[:4]}***{self.secret[-4:]}"

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "key": self.masked(),
            "state": self.state.value,
            "request_count": self.request_count,
            "last_used": self.last_used.isoformat() if self.last_used else None,
            "recent_errors": list(self.recent_errors),
        }


@dataclass(frozen=True)
class Action:
    """A directive extracted from generated text, e.g. place_order:RFQ-1."""

    type: str
    parameter: str

    def to_dict(self) -> dict:
        return {"type": self.type, "parameter": self.parameter}


@dataclass
class AgentReply:
    """Structured result of handling one inbound message."""

    success: bool
    session_id: str
    text: str = ""
    intent_type: Optional[IntentType] = None
    confidence: Optional[float] = None
    actions: list[Action] = field(default_factory=list)
    error_code: Optional[str] = None
    error: Optional[str] = None
    fallback_text: Optional[str] = None

    @classmethod
    def failure(cls, session_id: str, error: str, fallback_text: str) -> "AgentReply":
        return cls(
            success=False,
            session_id=session_id,
            error=error,
            fallback_text=fallback_text,
        )

    @property
    def display_text(self) -> str:
        return self.text if self.success else (self.fallback_text or "")

    def to_dict(self) -> dict:
        if not self.success:
            return {
                "success": False,
                "error": self.error,
                "fallbackText": self.fallback_text,
                "sessionId": self.session_id,
            }
        data = {
            "success": True,
            "text": self.text,
            "intentType": self.intent_type.value if self.intent_type else None,
            "confidence": self.confidence,
            "actions": [action.to_dict() for action in self.actions],
            "sessionId": self.session_id,
        }
        if self.error_code:
            data["errorCode"] = self.error_code
        return data
