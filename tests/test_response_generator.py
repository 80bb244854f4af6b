"""Tests for the three-tier response chain and the reply templates."""

import asyncio
from decimal import Decimal

import pytest

from procurement_agent.agent.orders import PlacedOrder
from procurement_agent.agent.response_generator import ResponseGenerator, Tier, build_prompt
from procurement_agent.agent.templates import (
    FALLBACK_BY_INTENT,
    fallback_for_intent,
    money,
    render_fallback,
)
from procurement_agent.agent.turn_context import ReplyKind, TurnContext
from procurement_agent.exceptions import ProviderUnavailable, QuotaExceededError
from procurement_agent.llm.retry import RetryPolicy
from procurement_agent.models import CredentialState, Intent, IntentType, Quote, Role
from procurement_agent.tools import InventoryItem, InventoryStatus, SemanticMatch
from procurement_agent.tools.inventory import summarize
from tests.helpers.assertions import AgentAssertions
from tests.helpers.fakes import FakeProvider, PooledFakeProvider, conversation


@pytest.fixture
def suppliers(supplier_lookup):
    return supplier_lookup.suppliers[:2]


@pytest.fixture
def quote(quote_engine, suppliers):
    lines = [
        quote_engine.price_line(position, supplier, "Steel Beam", 5, "Asia")
        for position, supplier in enumerate(suppliers, start=1)
    ]
    return Quote(
        quote_id="RFQ-1-abc123", product_name="Steel Beam", quantity=5, lines=lines, region="Asia"
    )


@pytest.fixture
def contexts(suppliers, quote, sample_inventory):
    inventory = summarize([InventoryItem(**row) for row in sample_inventory])
    order = PlacedOrder(
        order_number="PO-1-abcd",
        confirmed_total=quote.lines[0].total,
        line=quote.lines[0],
        quote_id=quote.quote_id,
    )
    return {
        ReplyKind.SUPPLIER_RESULTS: TurnContext(
            kind=ReplyKind.SUPPLIER_RESULTS,
            filters={"material": "steel beam", "region": "asia"},
            suppliers=suppliers,
        ),
        ReplyKind.SEMANTIC_RESULTS: TurnContext(
            kind=ReplyKind.SEMANTIC_RESULTS,
            semantic_matches=[
                SemanticMatch(id="SUP-003", score=0.38, metadata={"name": "Mumbai Structural Supply", "region": "Asia"})
            ],
        ),
        ReplyKind.NO_SUPPLIERS: TurnContext(kind=ReplyKind.NO_SUPPLIERS, filters={"material": "laptop"}),
        ReplyKind.QUOTE: TurnContext(kind=ReplyKind.QUOTE, quote=quote),
        ReplyKind.ORDER_PLACED: TurnContext(kind=ReplyKind.ORDER_PLACED, order=order),
        ReplyKind.INVENTORY: TurnContext(kind=ReplyKind.INVENTORY, inventory=inventory),
        ReplyKind.GENERAL: TurnContext(kind=ReplyKind.GENERAL, suppliers=suppliers, inventory=inventory),
        ReplyKind.CLARIFICATION: TurnContext(
            kind=ReplyKind.CLARIFICATION, missing_slots=["material", "quantity"]
        ),
        ReplyKind.DOMAIN_ERROR: TurnContext(
            kind=ReplyKind.DOMAIN_ERROR, error_code="NO_ACTIVE_QUOTE", notice="No quote yet."
        ),
        ReplyKind.UNAVAILABLE: TurnContext(kind=ReplyKind.UNAVAILABLE),
    }


INTENT_FOR_KIND = {
    ReplyKind.SUPPLIER_RESULTS: IntentType.SUPPLIER_SEARCH,
    ReplyKind.SEMANTIC_RESULTS: IntentType.SEMANTIC_SEARCH,
    ReplyKind.NO_SUPPLIERS: IntentType.SUPPLIER_SEARCH,
    ReplyKind.QUOTE: IntentType.RFQ_GENERATION,
    ReplyKind.ORDER_PLACED: IntentType.ORDER_PLACEMENT,
    ReplyKind.INVENTORY: IntentType.INVENTORY_CHECK,
    ReplyKind.GENERAL: IntentType.GENERAL,
    ReplyKind.CLARIFICATION: IntentType.RFQ_GENERATION,
    ReplyKind.DOMAIN_ERROR: IntentType.ORDER_PLACEMENT,
    ReplyKind.UNAVAILABLE: IntentType.INVENTORY_CHECK,
}


def _intent(intent_type: IntentType) -> Intent:
    return Intent(type=intent_type, confidence=0.8)


class TestTemplateTier:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", list(ReplyKind))
    async def test_every_kind_has_a_template(self, kind, contexts, failing_primary, failing_secondary, credentials):
        generator = ResponseGenerator(
            primary=failing_primary, credentials=credentials, secondary=failing_secondary
        )
        reply = await generator.generate("msg", _intent(INTENT_FOR_KIND[kind]), contexts[kind], "s1")

        assert reply.tier == Tier.TEMPLATE
        assert reply.text
        assert AgentAssertions.assert_no_action_tags(reply.text).passed
        assert "**" not in reply.text

    def test_quote_template(self, contexts, quote):
        text = render_fallback(_intent(IntentType.RFQ_GENERATION), contexts[ReplyKind.QUOTE])

        assert "RFQ RFQ-1-abc123: 5 x Steel Beam (Asia)" in text
        assert "Company 1: [Shanghai Steel Works]" in text
        assert "Company 2: [Osaka Metal Industries]" in text
        assert f"Total: {money(quote.lines[0].total)}" in text
        assert "Shipping: $40.00" in text
        assert 'Type "Place order with Company [1-2]" to order.' in text
        assert "[ACTION:place_order:1]" in text
        assert "[ACTION:export_data:RFQ-1-abc123]" in text

    def test_order_template(self, contexts, quote):
        text = render_fallback(_intent(IntentType.ORDER_PLACEMENT), contexts[ReplyKind.ORDER_PLACED])
        assert text.startswith("Order PO-1-abcd placed with [Shanghai Steel Works] for 5 x Steel Beam.")

    def test_clarification_template(self, contexts):
        text = render_fallback(_intent(IntentType.RFQ_GENERATION), contexts[ReplyKind.CLARIFICATION])
        assert text == (
            "Which product or material do you need a quote for? How many units do you need?"
        )

    def test_clarification_lists_quote_options(self, quote):
        context = TurnContext(kind=ReplyKind.CLARIFICATION, missing_slots=["company_number"], quote=quote)
        text = render_fallback(_intent(IntentType.ORDER_PLACEMENT), context)
        assert "Company 1 [Shanghai Steel Works], Company 2 [Osaka Metal Industries]" in text

    def test_missing_context_uses_intent_fallback(self):
        for intent_type, sentence in FALLBACK_BY_INTENT.items():
            assert render_fallback(_intent(intent_type), None) == sentence

    def test_broken_context_uses_intent_fallback(self):
        # A quote reply with no quote cannot be formatted
        context = TurnContext(kind=ReplyKind.QUOTE)
        text = render_fallback(_intent(IntentType.RFQ_GENERATION), context)
        assert text == fallback_for_intent(IntentType.RFQ_GENERATION)

    def test_money(self):
        assert money(Decimal("1234.5")) == "$1,234.50"
        assert money(Decimal("0")) == "$0.00"


class TestProviderChain:
    @pytest.mark.asyncio
    async def test_primary_reply_with_actions(self, contexts, credentials):
        primary = FakeProvider(
            "Two suppliers: [Shanghai Steel Works] and [Osaka Metal Industries].\n"
            "[ACTION:create_rfq:Steel Beam]"
        )
        generator = ResponseGenerator(primary=primary, credentials=credentials)

        reply = await generator.generate(
            "find steel", _intent(IntentType.SUPPLIER_SEARCH), contexts[ReplyKind.SUPPLIER_RESULTS], "s1"
        )

        assert reply.tier == Tier.PRIMARY
        assert reply.text == "Two suppliers: [Shanghai Steel Works] and [Osaka Metal Industries]."
        assert [(a.type, a.parameter) for a in reply.actions] == [("create_rfq", "Steel Beam")]

    @pytest.mark.asyncio
    async def test_rotates_credentials_on_quota(self, contexts, credentials):
        keys = [slot.secret for slot in credentials.slots]
        primary = PooledFakeProvider(credentials, outcomes={keys[0]: QuotaExceededError()})
        generator = ResponseGenerator(primary=primary, credentials=credentials)

        reply = await generator.generate(
            "hello", _intent(IntentType.GENERAL), contexts[ReplyKind.GENERAL], "s1"
        )

        assert reply.tier == Tier.PRIMARY
        assert reply.text == "Answer from key 0002"
        assert primary.keys_used == keys[:2]
        assert credentials.active_slot.index == 1

    @pytest.mark.asyncio
    async def test_overlapping_quota_failures_exclude_only_the_failing_key(
        self, contexts, credentials
    ):
        keys = [slot.secret for slot in credentials.slots]
        primary = PooledFakeProvider(
            credentials, outcomes={keys[0]: QuotaExceededError()}, latency=0.01
        )
        generator = ResponseGenerator(primary=primary, credentials=credentials)

        replies = await asyncio.gather(
            *(
                generator.generate(
                    "hello", _intent(IntentType.GENERAL), contexts[ReplyKind.GENERAL], f"s{i}"
                )
                for i in range(3)
            )
        )

        assert [slot.state for slot in credentials.slots] == [
            CredentialState.QUOTA_EXCEEDED,
            CredentialState.ACTIVE,
            CredentialState.AVAILABLE,
        ]
        assert all(reply.tier == Tier.PRIMARY for reply in replies)
        assert {reply.text for reply in replies} == {"Answer from key 0002"}
        assert primary.keys_used == [keys[0]] * 3 + [keys[1]] * 3
        assert len(credentials.slots[0].recent_errors) == 3

    @pytest.mark.asyncio
    async def test_one_attempt_per_credential(self, contexts, credentials):
        keys = [slot.secret for slot in credentials.slots]
        primary = PooledFakeProvider(
            credentials, outcomes={key: QuotaExceededError() for key in keys}
        )
        secondary = FakeProvider("Secondary answer")
        generator = ResponseGenerator(primary=primary, credentials=credentials, secondary=secondary)

        reply = await generator.generate(
            "hello", _intent(IntentType.GENERAL), contexts[ReplyKind.GENERAL], "s1"
        )

        assert primary.keys_used == keys
        assert reply.tier == Tier.SECONDARY
        assert reply.text == "Secondary answer"
        assert secondary.calls == 1

    @pytest.mark.asyncio
    async def test_secondary_gets_same_prompt(self, contexts):
        primary = FakeProvider(ProviderUnavailable("down"))
        secondary = FakeProvider("ok")
        generator = ResponseGenerator(primary=primary, secondary=secondary)

        await generator.generate(
            "show stock", _intent(IntentType.INVENTORY_CHECK), contexts[ReplyKind.INVENTORY], "s1"
        )
        assert secondary.prompts == primary.prompts

    @pytest.mark.asyncio
    async def test_secondary_retries_follow_policy(self, contexts):
        secondary = FakeProvider(ProviderUnavailable("blip"), "second try")
        generator = ResponseGenerator(
            primary=None,
            secondary=secondary,
            secondary_policy=RetryPolicy(max_attempts=2),
        )

        reply = await generator.generate(
            "hello", _intent(IntentType.GENERAL), contexts[ReplyKind.GENERAL], "s1"
        )
        assert reply.tier == Tier.SECONDARY
        assert secondary.calls == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [ReplyKind.CLARIFICATION, ReplyKind.DOMAIN_ERROR])
    async def test_deterministic_kinds_skip_providers(self, contexts, kind):
        primary = FakeProvider(default="should not be used")
        generator = ResponseGenerator(primary=primary)

        reply = await generator.generate("msg", _intent(INTENT_FOR_KIND[kind]), contexts[kind], "s1")

        assert primary.calls == 0
        assert reply.tier == Tier.TEMPLATE
        if kind == ReplyKind.DOMAIN_ERROR:
            assert reply.text == "No quote yet."

    @pytest.mark.asyncio
    async def test_empty_provider_text_falls_back(self, contexts):
        generator = ResponseGenerator(primary=FakeProvider("   "))
        reply = await generator.generate(
            "hello", _intent(IntentType.GENERAL), contexts[ReplyKind.GENERAL], "s1"
        )
        assert reply.tier == Tier.TEMPLATE
        assert reply.text.startswith("I can search suppliers")

    @pytest.mark.asyncio
    async def test_directive_only_reply_falls_back(self, contexts):
        generator = ResponseGenerator(primary=FakeProvider("[ACTION:export_data:RFQ-1-abc123]"))
        reply = await generator.generate(
            "send rfq", _intent(IntentType.RFQ_GENERATION), contexts[ReplyKind.QUOTE], "s1"
        )
        assert reply.tier == Tier.TEMPLATE
        assert "Company 1: [Shanghai Steel Works]" in reply.text

    @pytest.mark.asyncio
    async def test_no_context_gives_general_template(self):
        generator = ResponseGenerator(primary=None)
        reply = await generator.generate("hello", _intent(IntentType.GENERAL), None, "s1")
        assert reply.text.startswith("I can search suppliers")


class TestPrompt:
    def test_sections(self, contexts):
        history = conversation(
            (Role.USER, "find steel suppliers"),
            (Role.AGENT, "1. [Shanghai Steel Works]"),
        )
        prompt = build_prompt(
            "5 units, send RFQ",
            Intent(type=IntentType.RFQ_GENERATION, confidence=0.9),
            contexts[ReplyKind.QUOTE],
            history,
        )

        assert prompt.startswith("USER QUERY: 5 units, send RFQ")
        assert "DETECTED INTENT: RFQ_GENERATION" in prompt
        assert "CONFIDENCE: 0.90" in prompt
        assert "User: find steel suppliers\nAssistant: 1. [Shanghai Steel Works]" in prompt
        assert "Company 1: [Shanghai Steel Works]" in prompt
        assert "INSTRUCTIONS:" in prompt
        assert prompt.rstrip().endswith("finish with the next step.")

    def test_supplier_data_includes_ids(self, contexts):
        prompt = build_prompt(
            "find steel",
            _intent(IntentType.SUPPLIER_SEARCH),
            contexts[ReplyKind.SUPPLIER_RESULTS],
        )
        assert "SUPPLIERS FOUND for steel beam in asia:" in prompt
        assert "id SUP-001" in prompt
        assert "CONVERSATION HISTORY" not in prompt

    def test_inventory_preview_matches_template(self):
        items = [
            InventoryItem(name=f"Material {i}", category="Construction", supplier="Rhine Steel GmbH")
            for i in range(1, 8)
        ]
        context = TurnContext(kind=ReplyKind.INVENTORY, inventory=summarize(items))
        intent = _intent(IntentType.INVENTORY_CHECK)

        prompt = build_prompt("show stock", intent, context)
        template = render_fallback(intent, context)

        for text in (prompt, template):
            assert "Material 5" in text
            assert "Material 6" not in text
        assert "INVENTORY: 7 materials, 0 low stock" in prompt
