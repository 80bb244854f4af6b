"""Tests for order resolution and placement."""

import asyncio

import pytest

from procurement_agent.agent.orders import place_order, resolve_order
from procurement_agent.exceptions import (
    InvalidCompanyNumber,
    NoActiveQuote,
    PlacementRejected,
)
from procurement_agent.models import Session
from procurement_agent.tools import OrderConfirmation
from procurement_agent.tools.memory import InMemoryOrderPlacement


class SlowPlacement:
    async def place(self, line):
        await asyncio.sleep(1)
        return OrderConfirmation(order_number="PO-never", confirmed_total=line.total)


def test_resolve_without_quote():
    with pytest.raises(NoActiveQuote) as exc:
        resolve_order(Session(session_id="empty"), 1)
    assert exc.value.code == "NO_ACTIVE_QUOTE"
    assert "Please generate an RFQ before placing an order" in exc.value.user_message


@pytest.mark.asyncio
@pytest.mark.parametrize("company_number", [0, 3, 99])
async def test_resolve_out_of_range(quote_engine, company_number):
    session = Session(session_id="range")
    session.resolved_context.last_quote = await quote_engine.generate_quote("steel beam", 10)

    with pytest.raises(InvalidCompanyNumber) as exc:
        resolve_order(session, company_number)
    assert exc.value.code == "INVALID_COMPANY_NUMBER"
    assert exc.value.user_message == (
        f"Company {company_number} is not part of the current quote. "
        "Choose a company between 1 and 2."
    )


@pytest.mark.asyncio
async def test_resolve_returns_line(quote_engine):
    session = Session(session_id="lines")
    session.resolved_context.last_quote = await quote_engine.generate_quote("steel beam", 10)

    line = resolve_order(session, 2)
    assert line.position == 2
    assert line.supplier.name == "Rhine Steel GmbH"


@pytest.mark.asyncio
async def test_place_order_clears_quote(quote_engine, order_placement, inventory):
    session = Session(session_id="place")
    quote = await quote_engine.generate_quote("steel beam", 10)
    session.resolved_context.last_quote = quote

    order = await place_order(session, 1, order_placement)

    assert order.order_number.startswith("PO-")
    assert order.confirmed_total == quote.lines[0].total
    assert order.quote_id == quote.quote_id
    assert session.resolved_context.last_quote is None

    # The in-memory back-office records the order as an inventory row
    on_order = [item for item in inventory.items if item.stock_status == "On Order"]
    assert [item.supplier for item in on_order] == ["Shanghai Steel Works"]

    with pytest.raises(NoActiveQuote):
        await place_order(session, 1, order_placement)


@pytest.mark.asyncio
async def test_rejection_keeps_quote(quote_engine, inventory):
    session = Session(session_id="reject")
    session.resolved_context.last_quote = await quote_engine.generate_quote("steel beam", 10)

    with pytest.raises(PlacementRejected):
        await place_order(session, 1, InMemoryOrderPlacement(inventory, reject=True))
    assert session.resolved_context.last_quote is not None


@pytest.mark.asyncio
async def test_timeout_is_a_rejection(quote_engine):
    session = Session(session_id="slow")
    session.resolved_context.last_quote = await quote_engine.generate_quote("steel beam", 10)

    with pytest.raises(PlacementRejected):
        await place_order(session, 1, SlowPlacement(), timeout=0.01)
    assert session.resolved_context.last_quote is not None


@pytest.mark.asyncio
async def test_invalid_number_does_not_call_placement(quote_engine, order_placement):
    session = Session(session_id="invalid")
    session.resolved_context.last_quote = await quote_engine.generate_quote("steel beam", 10)

    with pytest.raises(InvalidCompanyNumber):
        await place_order(session, 7, order_placement)
    assert order_placement.orders == []
