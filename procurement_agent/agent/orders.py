"""
Order resolution against the session's active quote.

A quote can be ordered from exactly once: a successful placement clears
``last_quote`` so a repeated "place order" cannot reuse a stale price.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from procurement_agent.exceptions import (
    CollaboratorUnavailable,
    NoActiveQuote,
    PlacementRejected,
)
from procurement_agent.models import QuoteLine, Session
from procurement_agent.tools import OrderPlacement, call_with_timeout

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlacedOrder:
    order_number: str
    confirmed_total: Decimal
    line: QuoteLine
    quote_id: str

    def to_dict(self) -> dict:
        return {
            "order_number": self.order_number,
            "confirmed_total": float(self.confirmed_total),
            "quote_id": self.quote_id,
            "line": self.line.to_dict(),
        }


def resolve_order(session: Session, company_number: int) -> QuoteLine:
    """
    Find the quote line a company number refers to.

    Args:
        session: Session holding the active quote
        company_number: 1-based position in the quote

    Returns:
        The matching QuoteLine

    Raises:
        NoActiveQuote: If the session has no quote
        InvalidCompanyNumber: If the number is outside the quote's lines
    """
    quote = session.resolved_context.last_quote
    if quote is None:
        raise NoActiveQuote(f"Session {session.session_id} has no active quote")
    return quote.line(company_number)


async def place_order(
    session: Session,
    company_number: int,
    placement: OrderPlacement,
    timeout: float = 10.0,
) -> PlacedOrder:
    """
    Resolve a line and hand it to the order-placement collaborator.

    The quote is cleared only after the collaborator confirms. A rejection or
    timeout keeps the quote so the user can try again; neither is retried here.
    """
    line = resolve_order(session, company_number)
    quote = session.resolved_context.last_quote

    try:
        confirmation = await call_with_timeout(
            placement.place(line), timeout, "order placement"
        )
    except CollaboratorUnavailable as e:
        raise PlacementRejected(str(e)) from e

    session.resolved_context.last_quote = None
    logger.info(
        f"Placed {confirmation.order_number} for {quote.quote_id} "
        f"company {company_number} ({line.supplier.name})"
    )
    return PlacedOrder(
        order_number=confirmation.order_number,
        confirmed_total=confirmation.confirmed_total,
        line=line,
        quote_id=quote.quote_id,
    )
