"""
Deterministic reply templates.

This is the last tier of the response chain: it only formats data the
handler already retrieved, never touches the network and never raises.
"""

import logging
from decimal import Decimal
from typing import Optional

from procurement_agent.agent.actions import action_tag
from procurement_agent.agent.turn_context import ReplyKind, TurnContext
from procurement_agent.models import Intent, IntentType, Quote, SupplierCandidate

logger = logging.getLogger(__name__)

# Inventory items shown in a reply, in the template and in provider prompts
INVENTORY_PREVIEW_ITEMS = 5


GENERIC_FALLBACK = (
    "I'm having trouble answering right now. You can search suppliers, "
    "request an RFQ, place an order from a quote or check inventory."
)

FALLBACK_BY_INTENT = {
    IntentType.SUPPLIER_SEARCH: (
        "I couldn't complete the supplier search right now. "
        "Try again with a material and region, e.g. \"find top 3 suppliers in Asia\"."
    ),
    IntentType.RFQ_GENERATION: (
        "I couldn't generate the RFQ right now. "
        "Try again with a product and quantity, e.g. \"10 units, send RFQ\" after a supplier search."
    ),
    IntentType.ORDER_PLACEMENT: (
        "I couldn't place the order right now. Your quote has not been used; "
        "try \"Place order with Company 1\" again in a moment."
    ),
    IntentType.INVENTORY_CHECK: (
        "I couldn't load the inventory right now. Please try again in a moment."
    ),
    IntentType.SEMANTIC_SEARCH: (
        "I couldn't run the similarity search right now. "
        "Try a direct supplier search instead."
    ),
    IntentType.GENERAL: GENERIC_FALLBACK,
}

SLOT_QUESTIONS = {
    "material": "Which product or material do you need a quote for?",
    "quantity": "How many units do you need?",
    "company_number": "Which company would you like to order from?",
}


def money(value) -> str:
    return f"${Decimal(value):,.2f}"


def fallback_for_intent(intent_type: Optional[IntentType]) -> str:
    return FALLBACK_BY_INTENT.get(intent_type, GENERIC_FALLBACK)


def format_supplier(position: int, supplier: SupplierCandidate) -> str:
    details = [part for part in (supplier.region, supplier.material) if part]
    if supplier.rating:
        details.append(f"rating {supplier.rating:.1f}/5")
    if supplier.lead_time:
        details.append(f"lead time {supplier.lead_time}")
    suffix = f" - {', '.join(details)}" if details else ""
    return f"{position}. [{supplier.name}]{suffix}"


def describe_filters(filters: dict) -> str:
    parts = []
    if filters.get("material"):
        parts.append(f"for {filters['material']}")
    if filters.get("category"):
        parts.append(f"in {filters['category']}")
    if filters.get("region"):
        parts.append(f"in {filters['region']}")
    if filters.get("min_rating"):
        parts.append(f"rated {filters['min_rating']}+")
    return " ".join(parts)


def format_quote(quote: Quote) -> str:
    region = f" ({quote.region})" if quote.region else ""
    blocks = [f"RFQ {quote.quote_id}: {quote.quantity} x {quote.product_name}{region}"]

    for line in quote.lines:
        blocks.append(
            "\n".join(
                [
                    f"Company {line.position}: [{line.supplier.name}]",
                    f"Unit price: {money(line.unit_price)}",
                    f"Subtotal: {money(line.subtotal)}",
                    f"Tax: {money(line.tax_amount)}",
                    f"Shipping: {money(line.shipping_amount)}",
                    f"Total: {money(line.total)}",
                    f"Lead time: {line.lead_time}",
                ]
            )
        )

    count = len(quote.lines)
    choice = "Company 1" if count == 1 else f"Company [1-{count}]"
    blocks.append(f"Type \"Place order with {choice}\" to order.")
    return "\n\n".join(blocks)


def _supplier_results(context: TurnContext) -> str:
    described = describe_filters(context.filters)
    header = f"I found {len(context.suppliers)} supplier(s)"
    header += f" {described}:" if described else ":"
    lines = [format_supplier(i, s) for i, s in enumerate(context.suppliers, start=1)]
    tags = [action_tag("open_supplier_details", s.id) for s in context.suppliers]
    product = context.filters.get("material")
    if product:
        tags.append(action_tag("create_rfq", product))
    closing = "Tell me a quantity to request an RFQ from these suppliers."
    return "\n".join([header, "", *lines, "", closing, *tags])


def _semantic_results(context: TurnContext) -> str:
    lines = []
    for position, match in enumerate(context.semantic_matches, start=1):
        region = match.metadata.get("region")
        detail = f" - {region}" if region else ""
        lines.append(f"{position}. [{match.name}]{detail} (similarity {match.score:.2f})")
    header = "No exact match, but these suppliers are the closest by similarity:"
    return "\n".join([header, "", *lines, "", "Ask for an RFQ if one of them fits."])


def _no_suppliers(context: TurnContext) -> str:
    described = describe_filters(context.filters)
    text = f"I couldn't find suppliers {described}".rstrip() + "."
    return f"{text} Try removing the region or rating filter, or another material."


def _quote(context: TurnContext) -> str:
    quote = context.quote
    tags = [action_tag("place_order", line.position) for line in quote.lines]
    tags.append(action_tag("export_data", quote.quote_id))
    return "\n".join([format_quote(quote), *tags])


def _order_placed(context: TurnContext) -> str:
    order = context.order
    line = order.line
    return "\n".join(
        [
            f"Order {order.order_number} placed with [{line.supplier.name}] "
            f"for {line.quantity} x {line.product_name}.",
            f"Confirmed total: {money(order.confirmed_total)}. Expected lead time: {line.lead_time}.",
            "The quote is now closed. Request a new RFQ for further orders.",
            action_tag("check_inventory", "all"),
        ]
    )


def _inventory(context: TurnContext) -> str:
    status = context.inventory
    lines = [
        f"Inventory snapshot: {status.total_count} material(s), "
        f"{status.low_stock_count} low on stock."
    ]
    if status.categories:
        lines.append(f"Categories: {', '.join(status.categories)}.")
    for position, item in enumerate(status.items[:INVENTORY_PREVIEW_ITEMS], start=1):
        supplier = f" from [{item.supplier}]" if item.supplier else ""
        lines.append(f"{position}. {item.name}{supplier} - {item.stock_status}")
    lines.append("Ask for an RFQ to restock any of these.")
    return "\n".join(lines)


def _general(context: TurnContext) -> str:
    lines = ["I can search suppliers, generate RFQs, place orders and check inventory."]
    if context.suppliers:
        names = ", ".join(f"[{s.name}]" for s in context.suppliers[:5])
        lines.append(f"Top rated suppliers right now: {names}.")
    if context.inventory is not None:
        lines.append(
            f"Inventory holds {context.inventory.total_count} material(s), "
            f"{context.inventory.low_stock_count} low on stock."
        )
    lines.append("Try: \"find top 3 suppliers in Asia\" or \"show low stock items\".")
    return "\n".join(lines)


def _clarification(context: TurnContext) -> str:
    questions = [SLOT_QUESTIONS.get(slot, f"Please tell me the {slot}.") for slot in context.missing_slots]
    if "company_number" in context.missing_slots and context.quote is not None:
        options = ", ".join(
            f"Company {line.position} [{line.supplier.name}]" for line in context.quote.lines
        )
        questions.append(f"Options: {options}. Reply \"Place order with Company N\".")
    return " ".join(questions) or GENERIC_FALLBACK


def _domain_error(context: TurnContext) -> str:
    return context.notice or GENERIC_FALLBACK


def _unavailable(context: TurnContext) -> str:
    return (
        "I couldn't reach the procurement back-office just now. "
        "Please try again in a moment."
    )


_RENDERERS = {
    ReplyKind.SUPPLIER_RESULTS: _supplier_results,
    ReplyKind.SEMANTIC_RESULTS: _semantic_results,
    ReplyKind.NO_SUPPLIERS: _no_suppliers,
    ReplyKind.QUOTE: _quote,
    ReplyKind.ORDER_PLACED: _order_placed,
    ReplyKind.INVENTORY: _inventory,
    ReplyKind.GENERAL: _general,
    ReplyKind.CLARIFICATION: _clarification,
    ReplyKind.DOMAIN_ERROR: _domain_error,
    ReplyKind.UNAVAILABLE: _unavailable,
}


def render_fallback(intent: Optional[Intent], context: Optional[TurnContext]) -> str:
    """
    Build a reply from the intent and already-retrieved data.

    Never raises: if formatting fails the per-intent fallback sentence is used.
    """
    intent_type = intent.type if intent is not None else None
    if context is None:
        return fallback_for_intent(intent_type)

    renderer = _RENDERERS.get(context.kind)
    try:
        text = renderer(context) if renderer else ""
    except Exception:
        logger.exception(f"Template for {context.kind} failed")
        text = ""
    return text.strip() or fallback_for_intent(intent_type)
