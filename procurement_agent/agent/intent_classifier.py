"""
Rule-based intent classification.

The cascade is an ordered table of ``IntentRule`` entries; the first rule
whose predicate matches decides the intent type and its fixed confidence.
Each rule declares which slots it fills and which of those may be
back-filled from the session's resolved context when the message leaves
them empty.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

from procurement_agent.agent.slot_extractor import MAX_HISTORY, SlotBag, extract_slots
from procurement_agent.models import Intent, IntentType, Session

logger = logging.getLogger(__name__)


Predicate = Callable[[str, SlotBag], bool]

_ORDER_VERB = re.compile(
    r"\b(?:order|buy|purchase|go with|choose|select|place|proceed with|pick)\b"
)
_RFQ_WORDS = re.compile(r"\b(?:rfqs?|quotes?|quotations?|send)\b")
_ORDER_WORDS = re.compile(r"\b(?:order|buy|purchase|place po)\b")
_INVENTORY_WORDS = re.compile(r"\b(?:stock|inventory|warehouse)\b")
_SIMILARITY_WORDS = re.compile(
    r"\b(?:similar to|comparable to|equivalent to|alternatives? (?:to|for))\b|\blike \["
)
_SUPPLIER_WORDS = re.compile(
    r"\b(?:find|search|suppliers?|vendors?|manufacturers?)\b|\btop\s+\d+"
)
_UNIT_WORDS = re.compile(
    r"\b(?:units?|pcs|pieces?|items?|qty|quantity|boxes|bags|tons?|kg)\b"
)
_NEED_WORDS = re.compile(r"\b(?:need|want|require|get me)\b")
_BARE_NUMBER = re.compile(r"^\s*\d+\s*[.!]?\s*$")


def keywords(pattern: re.Pattern) -> Predicate:
    """Predicate matching a keyword pattern against the lowered message."""

    def predicate(lowered: str, bag: SlotBag) -> bool:
        return bool(pattern.search(lowered))

    return predicate


def _order_with_company(lowered: str, bag: SlotBag) -> bool:
    return bag.company_number is not None and bool(_ORDER_VERB.search(lowered))


def _order_without_quantity(lowered: str, bag: SlotBag) -> bool:
    # "buy 200 steel beams" asks for a price first, so it falls through to RFQ
    return bool(_ORDER_WORDS.search(lowered)) and bag.quantity is None


def _quantity_request(lowered: str, bag: SlotBag) -> bool:
    asks = bool(_UNIT_WORDS.search(lowered) or _NEED_WORDS.search(lowered))
    if bag.quantity is not None:
        return asks or bool(bag.materials) or bool(_BARE_NUMBER.match(lowered))
    return asks and bool(bag.materials)


def _confirmation(lowered: str, bag: SlotBag) -> bool:
    return bag.confirmation


@dataclass(frozen=True)
class IntentRule:
    """One row of the classification cascade."""

    name: str
    intent_type: IntentType
    confidence: float
    predicate: Predicate
    slots: tuple[str, ...] = ()
    backfill: tuple[str, ...] = ()

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(
                f"Rule {self.name} has confidence {self.confidence} outside [0, 1]"
            )
        unknown = set(self.backfill) - set(self.slots)
        if unknown:
            raise ValueError(f"Rule {self.name} back-fills undeclared slots: {unknown}")

    def matches(self, lowered: str, bag: SlotBag) -> bool:
        return self.predicate(lowered, bag)


RFQ_SLOTS = ("material", "quantity", "region", "limit", "supplier_names")
RFQ_BACKFILL = ("material", "quantity", "region", "supplier_names")

DEFAULT_RULES: tuple[IntentRule, ...] = (
    IntentRule(
        name="order_with_company",
        intent_type=IntentType.ORDER_PLACEMENT,
        confidence=0.95,
        predicate=_order_with_company,
        slots=("company_number",),
    ),
    IntentRule(
        name="explicit_rfq",
        intent_type=IntentType.RFQ_GENERATION,
        confidence=0.9,
        predicate=keywords(_RFQ_WORDS),
        slots=RFQ_SLOTS,
        backfill=RFQ_BACKFILL,
    ),
    IntentRule(
        name="order_keywords",
        intent_type=IntentType.ORDER_PLACEMENT,
        confidence=0.8,
        predicate=_order_without_quantity,
        slots=("company_number",),
    ),
    IntentRule(
        name="inventory_keywords",
        intent_type=IntentType.INVENTORY_CHECK,
        confidence=0.8,
        predicate=keywords(_INVENTORY_WORDS),
        slots=("category", "material", "stock_status"),
    ),
    IntentRule(
        name="similarity_phrases",
        intent_type=IntentType.SEMANTIC_SEARCH,
        confidence=0.75,
        predicate=keywords(_SIMILARITY_WORDS),
        slots=("query", "material", "region", "limit"),
    ),
    IntentRule(
        name="supplier_keywords",
        intent_type=IntentType.SUPPLIER_SEARCH,
        confidence=0.8,
        predicate=keywords(_SUPPLIER_WORDS),
        slots=("material", "region", "category", "min_rating", "limit"),
    ),
    IntentRule(
        name="quantity_request",
        intent_type=IntentType.RFQ_GENERATION,
        confidence=0.7,
        predicate=_quantity_request,
        slots=RFQ_SLOTS,
        backfill=RFQ_BACKFILL,
    ),
    IntentRule(
        name="confirmation",
        intent_type=IntentType.ORDER_PLACEMENT,
        confidence=0.6,
        predicate=_confirmation,
        slots=("company_number", "confirmation"),
    ),
)


def _slot_from_bag(slot: str, message: str, bag: SlotBag) -> Any:
    if slot == "query":
        return message.strip()
    if slot == "confirmation":
        return bag.confirmation or None
    return getattr(bag, slot)


def _slot_from_context(slot: str, session: Optional[Session]) -> Any:
    if session is None:
        return None
    context = session.resolved_context
    if slot == "material":
        return context.last_material
    if slot == "quantity":
        return context.last_quantity
    if slot == "region":
        return context.last_region
    if slot == "supplier_names":
        return list(context.last_suppliers) or None
    return None


def _is_empty(value: Any) -> bool:
    return value is None or value == [] or value == ""


class IntentClassifier:
    """Ordered rule cascade with slot back-fill from conversation memory."""

    def __init__(
        self,
        rules: Sequence[IntentRule] = DEFAULT_RULES,
        history_window: int = MAX_HISTORY,
    ):
        self.rules = tuple(rules)
        self.history_window = min(history_window, MAX_HISTORY)

    def classify(self, message: str, session: Optional[Session] = None) -> Intent:
        """
        Classify a message.

        Args:
            message: Current user message (not yet appended to the session)
            session: Session whose history and resolved context fill gaps

        Returns:
            Intent from the first matching rule, or GENERAL with confidence 0
        """
        lowered = message.lower()
        current = extract_slots(message)

        for rule in self.rules:
            if rule.matches(lowered, current):
                parameters = self._fill_slots(rule, message, current, session)
                logger.debug(
                    f"Rule {rule.name} -> {rule.intent_type.value} {parameters}"
                )
                return Intent(
                    type=rule.intent_type,
                    confidence=rule.confidence,
                    parameters=parameters,
                    rule=rule.name,
                )

        return Intent(type=IntentType.GENERAL, confidence=0.0, parameters={})

    def _fill_slots(
        self,
        rule: IntentRule,
        message: str,
        current: SlotBag,
        session: Optional[Session],
    ) -> dict[str, Any]:
        parameters: dict[str, Any] = {}
        history_bag: Optional[SlotBag] = None

        for slot in rule.slots:
            value = _slot_from_bag(slot, message, current)

            if _is_empty(value) and slot in rule.backfill:
                value = _slot_from_context(slot, session)
                if _is_empty(value) and session is not None and session.messages:
                    if history_bag is None:
                        history = session.recent_messages(self.history_window)
                        history_bag = extract_slots(message, history)
                    value = _slot_from_bag(slot, message, history_bag)

            if not _is_empty(value):
                parameters[slot] = value
        return parameters
