"""
Agent router - the single entry point for an inbound message.

handle_message() classifies the message, runs the intent handler against the
back-office collaborators, generates the reply and records both turns on the
session. It never raises: unexpected failures come back as a failure reply
with a fallback text, and the session still gets both turns.
"""

import logging
from typing import Optional

from procurement_agent.agent.context import AgentContext
from procurement_agent.agent.intent_classifier import IntentClassifier
from procurement_agent.agent.orders import place_order
from procurement_agent.agent.quote_engine import QuoteEngine
from procurement_agent.agent.response_generator import ResponseGenerator
from procurement_agent.agent.session_store import new_session_id
from procurement_agent.agent.templates import fallback_for_intent
from procurement_agent.agent.turn_context import ReplyKind, TurnContext
from procurement_agent.config import get_config
from procurement_agent.exceptions import (
    CollaboratorUnavailable,
    DomainError,
    NoActiveQuote,
)
from procurement_agent.llm.retry import RetryPolicy, retry_any_error
from procurement_agent.models import (
    AgentReply,
    ConversationMessage,
    Intent,
    IntentType,
    Quote,
    Role,
    Session,
)
from procurement_agent.tools import SupplierFilters, call_with_timeout

logger = logging.getLogger(__name__)


def _present(filters: dict) -> dict:
    return {key: value for key, value in filters.items() if value not in (None, "", [])}


def _company_from_text(text: str, quote: Quote) -> Optional[int]:
    """Company number of a quoted supplier named in the message, if any."""
    lowered = text.lower()
    for line in quote.lines:
        if line.supplier.name.lower() in lowered:
            return line.position
    return None


class AgentRouter:
    """Routes messages to intent handlers and records the conversation."""

    def __init__(
        self,
        context: AgentContext,
        classifier: Optional[IntentClassifier] = None,
        quote_engine: Optional[QuoteEngine] = None,
        generator: Optional[ResponseGenerator] = None,
    ):
        self.context = context
        self.config = context.config
        self.sessions = context.sessions

        self.classifier = classifier or IntentClassifier(
            history_window=self.config.history_window
        )
        self.quote_engine = quote_engine or QuoteEngine(
            context.supplier_lookup,
            pricing=context.pricing,
            rng=context.rng,
            lookup_timeout=self.config.lookup_timeout,
        )

        pool_size = context.credentials.pool_size if context.credentials else 1
        self.generator = generator or ResponseGenerator(
            primary=context.primary,
            credentials=context.credentials,
            secondary=context.secondary,
            primary_policy=RetryPolicy(
                max_attempts=pool_size,
                backoff=self.config.retry_backoff,
                should_retry=retry_any_error,
            ),
            secondary_policy=RetryPolicy(
                max_attempts=max(1, self.config.secondary_max_attempts),
                backoff=self.config.retry_backoff,
                should_retry=retry_any_error,
            ),
            history_window=self.config.history_window,
        )

        self._handlers = {
            IntentType.SUPPLIER_SEARCH: self._handle_supplier_search,
            IntentType.RFQ_GENERATION: self._handle_rfq,
            IntentType.ORDER_PLACEMENT: self._handle_order,
            IntentType.INVENTORY_CHECK: self._handle_inventory,
            IntentType.SEMANTIC_SEARCH: self._handle_semantic,
            IntentType.GENERAL: self._handle_general,
        }

    async def handle_message(self, session_id: Optional[str], text: str) -> AgentReply:
        """
        Handle one inbound message.

        Messages for the same session are processed one at a time in arrival
        order; different sessions run concurrently.

        Args:
            session_id: Conversation id; a new one is generated when empty
            text: The user's message

        Returns:
            AgentReply (success=False only for unexpected internal errors)
        """
        session_id = session_id or new_session_id()
        try:
            async with self.sessions.session(session_id) as session:
                return await self._handle_locked(session, text)
        except Exception as e:
            logger.exception(f"Session {session_id} failed outside the turn")
            return AgentReply.failure(
                session_id, f"{type(e).__name__}: {e}", fallback_for_intent(None)
            )

    def reset_session(self, session_id: str) -> bool:
        return self.sessions.reset(session_id)

    async def _handle_locked(self, session: Session, text: str) -> AgentReply:
        history = session.recent_messages(self.config.history_window)
        intent: Optional[Intent] = None
        user_recorded = False

        try:
            intent = self.classifier.classify(text, session)
            session.add_message(
                ConversationMessage(
                    role=Role.USER,
                    text=text,
                    intent_type=intent.type,
                    confidence=intent.confidence,
                )
            )
            user_recorded = True
            logger.info(
                f"[{session.session_id}] {intent.type.value} "
                f"({intent.confidence:.2f}, rule={intent.rule})"
            )

            turn = await self._dispatch(intent, text, session)
            generated = await self.generator.generate(
                text, intent, turn, session.session_id, history
            )
        except Exception as e:
            logger.exception(f"Unexpected error handling message for {session.session_id}")
            intent_type = intent.type if intent else None
            if not user_recorded:
                session.add_message(ConversationMessage(role=Role.USER, text=text))
            fallback = fallback_for_intent(intent_type)
            session.add_message(
                ConversationMessage(role=Role.AGENT, text=fallback, intent_type=intent_type)
            )
            return AgentReply.failure(
                session.session_id, f"{type(e).__name__}: {e}", fallback
            )

        session.add_message(
            ConversationMessage(
                role=Role.AGENT,
                text=generated.text,
                intent_type=intent.type,
                confidence=intent.confidence,
            )
        )
        logger.debug(f"[{session.session_id}] reply from {generated.tier} tier")

        return AgentReply(
            success=True,
            session_id=session.session_id,
            text=generated.text,
            intent_type=intent.type,
            confidence=intent.confidence,
            actions=generated.actions,
            error_code=turn.error_code,
        )

    async def _dispatch(self, intent: Intent, text: str, session: Session) -> TurnContext:
        self._remember_slots(intent, session)
        handler = self._handlers.get(intent.type, self._handle_general)
        try:
            return await handler(intent, text, session)
        except DomainError as e:
            logger.info(f"[{session.session_id}] {e.code}: {e}")
            return TurnContext(
                kind=ReplyKind.DOMAIN_ERROR, error_code=e.code, notice=e.user_message
            )
        except CollaboratorUnavailable as e:
            logger.warning(f"[{session.session_id}] back-office unavailable: {e}")
            return TurnContext(kind=ReplyKind.UNAVAILABLE, error_code="BACKOFFICE_UNAVAILABLE")

    @staticmethod
    def _remember_slots(intent: Intent, session: Session):
        context = session.resolved_context
        if intent.get("material"):
            context.last_material = intent.get("material")
        if intent.get("region"):
            context.last_region = intent.get("region")
        if intent.type == IntentType.RFQ_GENERATION and intent.get("quantity"):
            context.last_quantity = intent.get("quantity")

    # =========================================================================
    # INTENT HANDLERS
    # =========================================================================

    async def _search(self, filters: SupplierFilters):
        return await call_with_timeout(
            self.context.supplier_lookup.search(filters),
            self.config.lookup_timeout,
            "supplier lookup",
        )

    async def _similar(self, query: str, top_k: int):
        if self.context.semantic_search is None:
            return []
        try:
            return await call_with_timeout(
                self.context.semantic_search.similarity_search(query, top_k),
                self.config.lookup_timeout,
                "semantic search",
            )
        except CollaboratorUnavailable as e:
            logger.warning(f"Semantic search skipped: {e}")
            return []

    async def _handle_supplier_search(
        self, intent: Intent, text: str, session: Session
    ) -> TurnContext:
        filters = SupplierFilters(
            material=intent.get("material"),
            region=intent.get("region"),
            category=intent.get("category"),
            min_rating=intent.get("min_rating"),
            limit=intent.get("limit") or self.config.default_search_limit,
        )
        shown = _present(
            {
                "material": filters.material,
                "region": filters.region,
                "category": filters.category,
                "min_rating": filters.min_rating,
            }
        )
        context = session.resolved_context

        suppliers = await self._search(filters)
        if suppliers:
            context.remember_suppliers([s.name for s in suppliers])
            context.last_supplier_count = len(suppliers)
            return TurnContext(kind=ReplyKind.SUPPLIER_RESULTS, filters=shown, suppliers=suppliers)

        matches = await self._similar(text, filters.limit)
        if matches:
            context.remember_suppliers([m.name for m in matches])
            return TurnContext(
                kind=ReplyKind.SEMANTIC_RESULTS, filters=shown, semantic_matches=matches
            )

        return TurnContext(kind=ReplyKind.NO_SUPPLIERS, filters=shown)

    async def _handle_rfq(self, intent: Intent, text: str, session: Session) -> TurnContext:
        material = intent.get("material")
        quantity = intent.get("quantity")
        missing = [
            slot for slot, value in (("material", material), ("quantity", quantity)) if not value
        ]
        if missing:
            return TurnContext(
                kind=ReplyKind.CLARIFICATION,
                missing_slots=missing,
                filters=_present({"material": material, "region": intent.get("region")}),
            )

        context = session.resolved_context
        supplier_count = (
            intent.get("limit")
            or context.last_supplier_count
            or self.config.default_quote_suppliers
        )
        preferred = (intent.get("supplier_names") or [])[:supplier_count]

        quote = await self.quote_engine.generate_quote(
            material,
            quantity,
            supplier_count=supplier_count,
            region=intent.get("region"),
            preferred_suppliers=preferred,
        )
        context.last_quote = quote
        context.last_quantity = quantity
        context.remember_suppliers(quote.supplier_names())

        return TurnContext(
            kind=ReplyKind.QUOTE,
            quote=quote,
            filters=_present({"material": material, "region": intent.get("region")}),
        )

    async def _handle_order(self, intent: Intent, text: str, session: Session) -> TurnContext:
        quote = session.resolved_context.last_quote
        if quote is None:
            raise NoActiveQuote(f"Session {session.session_id} has no active quote")

        company_number = intent.get("company_number") or _company_from_text(text, quote)
        if company_number is None and (len(quote.lines) == 1 or intent.get("confirmation")):
            company_number = 1
        if company_number is None:
            return TurnContext(
                kind=ReplyKind.CLARIFICATION, missing_slots=["company_number"], quote=quote
            )

        order = await place_order(
            session,
            company_number,
            self.context.order_placement,
            timeout=self.config.lookup_timeout,
        )
        return TurnContext(kind=ReplyKind.ORDER_PLACED, order=order)

    async def _handle_inventory(
        self, intent: Intent, text: str, session: Session
    ) -> TurnContext:
        filters = _present(
            {
                "category": intent.get("category"),
                "material": intent.get("material"),
                "stock_status": intent.get("stock_status"),
            }
        )
        status = await call_with_timeout(
            self.context.inventory.get_status(filters),
            self.config.lookup_timeout,
            "inventory snapshot",
        )
        return TurnContext(kind=ReplyKind.INVENTORY, inventory=status, filters=filters)

    async def _handle_semantic(
        self, intent: Intent, text: str, session: Session
    ) -> TurnContext:
        limit = intent.get("limit") or self.config.default_search_limit
        matches = await self._similar(intent.get("query") or text, limit)
        if matches:
            session.resolved_context.remember_suppliers([m.name for m in matches])
            return TurnContext(kind=ReplyKind.SEMANTIC_RESULTS, semantic_matches=matches)

        # No similarity backend or nothing close: fall back to a plain search
        return await self._handle_supplier_search(intent, text, session)

    async def _handle_general(self, intent: Intent, text: str, session: Session) -> TurnContext:
        suppliers, inventory = [], None
        try:
            suppliers = await self._search(SupplierFilters(limit=self.config.default_search_limit))
            inventory = await call_with_timeout(
                self.context.inventory.get_status({}),
                self.config.lookup_timeout,
                "inventory snapshot",
            )
        except CollaboratorUnavailable as e:
            logger.warning(f"General overview incomplete: {e}")
        return TurnContext(kind=ReplyKind.GENERAL, suppliers=suppliers, inventory=inventory)


# Global router instance
_router: Optional[AgentRouter] = None


def get_router() -> AgentRouter:
    """Get the global router, wired from the environment configuration."""
    global _router
    if _router is None:
        _router = AgentRouter(AgentContext.from_config(get_config()))
    return _router


def reset_router():
    global _router
    _router = None


async def chat(text: str, session_id: Optional[str] = None) -> AgentReply:
    """
    Convenience function to chat with the agent.

    Args:
        text: The user's message
        session_id: Conversation id (a new session when omitted)

    Returns:
        The agent's reply
    """
    return await get_router().handle_message(session_id, text)
