"""
Response generation with a three-tier fallback chain.

1. Primary provider, rotating credentials on failure (one attempt per slot)
2. Secondary provider with the same prompt
3. Deterministic template built from the data already retrieved

Provider errors are logged here and never reach the user. Whatever tier
produced the text, action directives are extracted the same way.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from procurement_agent.agent.actions import extract_actions
from procurement_agent.agent.templates import (
    INVENTORY_PREVIEW_ITEMS,
    describe_filters,
    format_quote,
    format_supplier,
    money,
    render_fallback,
)
from procurement_agent.agent.turn_context import ReplyKind, TurnContext
from procurement_agent.llm.credentials import CredentialRotationManager
from procurement_agent.llm.providers import TextProvider
from procurement_agent.llm.retry import RetryPolicy, retry_any_error, run_with_retry
from procurement_agent.models import Action, ConversationMessage, Intent, Role
from procurement_agent.prompts.procurement_agent import (
    FORMATTING_REMINDER,
    INTENT_INSTRUCTIONS,
)

logger = logging.getLogger(__name__)


class Tier:
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TEMPLATE = "template"


@dataclass
class GeneratedReply:
    text: str
    actions: list[Action] = field(default_factory=list)
    tier: str = Tier.TEMPLATE


def _data_section(context: TurnContext) -> str:
    """Render the retrieved data the provider must ground its reply on."""
    if context.kind == ReplyKind.SUPPLIER_RESULTS:
        described = describe_filters(context.filters) or "(no filters)"
        rows = [
            f"{format_supplier(i, s)} (id {s.id}, contact {s.contact or 'n/a'})"
            for i, s in enumerate(context.suppliers, start=1)
        ]
        return "\n".join([f"SUPPLIERS FOUND {described}:", *rows])

    if context.kind == ReplyKind.SEMANTIC_RESULTS:
        rows = [
            f"{i}. [{m.name}] score {m.score:.2f} {m.metadata}"
            for i, m in enumerate(context.semantic_matches, start=1)
        ]
        return "\n".join(["SIMILAR SUPPLIERS:", *rows])

    if context.kind == ReplyKind.NO_SUPPLIERS:
        return f"SEARCH FILTERS: {describe_filters(context.filters) or '(none)'}"

    if context.kind == ReplyKind.QUOTE and context.quote is not None:
        return "RFQ:\n" + format_quote(context.quote)

    if context.kind == ReplyKind.ORDER_PLACED and context.order is not None:
        order = context.order
        return (
            f"ORDER: {order.order_number}, supplier [{order.line.supplier.name}], "
            f"{order.line.quantity} x {order.line.product_name}, "
            f"confirmed total {money(order.confirmed_total)}, lead time {order.line.lead_time}"
        )

    if context.kind == ReplyKind.INVENTORY and context.inventory is not None:
        status = context.inventory
        rows = [
            f"{item.name} ({item.category}) from [{item.supplier}] - {item.stock_status}"
            for item in status.items[:INVENTORY_PREVIEW_ITEMS]
        ]
        return "\n".join(
            [
                f"INVENTORY: {status.total_count} materials, {status.low_stock_count} low stock",
                f"CATEGORIES: {', '.join(status.categories) or '(none)'}",
                *rows,
            ]
        )

    if context.kind == ReplyKind.GENERAL:
        parts = []
        if context.suppliers:
            parts.append(
                "TOP SUPPLIERS: " + ", ".join(f"[{s.name}]" for s in context.suppliers)
            )
        if context.inventory is not None:
            parts.append(
                f"INVENTORY: {context.inventory.total_count} materials, "
                f"{context.inventory.low_stock_count} low stock"
            )
        return "\n".join(parts)

    return ""


def build_prompt(
    message: str,
    intent: Intent,
    context: TurnContext,
    history: Sequence[ConversationMessage] = (),
) -> str:
    """
    Build the per-turn prompt.

    Args:
        message: The user's message
        intent: Classified intent
        context: Data retrieved by the intent handler
        history: Recent turns, oldest first

    Returns:
        Prompt text with query, intent, history, data and formatting rules
    """
    sections = [
        f"USER QUERY: {message}",
        f"DETECTED INTENT: {intent.type.value}",
        f"CONFIDENCE: {intent.confidence:.2f}",
    ]

    if history:
        turns = [
            f"{'User' if m.role == Role.USER else 'Assistant'}: {m.text}" for m in history
        ]
        sections.append("CONVERSATION HISTORY:\n" + "\n".join(turns))

    data = _data_section(context)
    if data:
        sections.append(data)

    instruction = INTENT_INSTRUCTIONS.get(context.kind.value)
    if instruction:
        sections.append(f"INSTRUCTIONS: {instruction}")
    sections.append(FORMATTING_REMINDER)
    return "\n\n".join(sections)


class ResponseGenerator:
    """Turns an intent and its retrieved data into reply text plus actions."""

    def __init__(
        self,
        primary: Optional[TextProvider],
        credentials: Optional[CredentialRotationManager] = None,
        secondary: Optional[TextProvider] = None,
        primary_policy: Optional[RetryPolicy] = None,
        secondary_policy: Optional[RetryPolicy] = None,
        history_window: int = 10,
    ):
        self.primary = primary
        self.secondary = secondary
        self.credentials = credentials
        pool_size = credentials.pool_size if credentials is not None else 1
        self.primary_policy = primary_policy or RetryPolicy(
            max_attempts=pool_size, should_retry=retry_any_error
        )
        self.secondary_policy = secondary_policy or RetryPolicy(
            max_attempts=1, should_retry=retry_any_error
        )
        self.history_window = history_window

    async def generate(
        self,
        message: str,
        intent: Intent,
        context: Optional[TurnContext],
        session_id: str,
        history: Sequence[ConversationMessage] = (),
    ) -> GeneratedReply:
        """
        Generate the reply for one turn. Always returns non-empty text.

        Args:
            message: The user's message
            intent: Classified intent
            context: Data retrieved by the intent handler
            session_id: Session the reply belongs to (for logging)
            history: Recent turns, oldest first
        """
        context = context or TurnContext(kind=ReplyKind.GENERAL)
        text, tier = None, Tier.TEMPLATE

        if not context.deterministic:
            window = list(history)[-self.history_window:]
            prompt = build_prompt(message, intent, context, window)
            text, tier = await self._from_providers(prompt, window, session_id)

        if not isinstance(text, str) or not text.strip():
            text = render_fallback(intent, context)
            tier = Tier.TEMPLATE

        extracted = extract_actions(text)
        if not extracted.text:
            # A provider reply made only of directives still needs words
            extracted = extract_actions(render_fallback(intent, context))
            tier = Tier.TEMPLATE
        return GeneratedReply(text=extracted.text, actions=extracted.actions, tier=tier)

    async def _from_providers(
        self, prompt: str, history: list[ConversationMessage], session_id: str
    ) -> tuple[Optional[str], str]:
        if self.primary is not None:
            on_failure = self.credentials.report_failure if self.credentials else None
            try:
                text = await run_with_retry(
                    lambda: self.primary.complete(prompt, history),
                    self.primary_policy,
                    on_failure=on_failure,
                    name=f"primary provider ({session_id})",
                )
                return text, Tier.PRIMARY
            except Exception as e:
                logger.warning(f"Primary provider exhausted for {session_id}: {e}")

        if self.secondary is not None:
            try:
                text = await run_with_retry(
                    lambda: self.secondary.complete(prompt, history),
                    self.secondary_policy,
                    name=f"secondary provider ({session_id})",
                )
                return text, Tier.SECONDARY
            except Exception as e:
                logger.warning(f"Secondary provider failed for {session_id}: {e}")

        return None, Tier.TEMPLATE
