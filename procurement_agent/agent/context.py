"""
Process-scoped agent context.

Everything the router needs that lives longer than one message: sessions,
the credential pool, back-office collaborators and text providers. Build one
per process with ``AgentContext.from_config``; tests build their own with
in-memory collaborators and fake providers.
"""

import logging
import random
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Optional

from procurement_agent.agent.quote_engine import PricingConfig
from procurement_agent.agent.session_store import SessionStore
from procurement_agent.config import Config
from procurement_agent.exceptions import ConfigurationError
from procurement_agent.llm.credentials import CredentialRotationManager
from procurement_agent.llm.providers import OpenAIChatProvider, TextProvider
from procurement_agent.shared.supabase_client import test_connection
from procurement_agent.tools import (
    InventorySnapshot,
    OrderPlacement,
    SemanticSearch,
    SupplierLookup,
)

logger = logging.getLogger(__name__)


class Backend:
    SUPABASE = "supabase"
    MEMORY = "memory"


@dataclass
class AgentContext:
    config: Config
    supplier_lookup: SupplierLookup
    inventory: InventorySnapshot
    order_placement: OrderPlacement
    semantic_search: Optional[SemanticSearch] = None
    credentials: Optional[CredentialRotationManager] = None
    primary: Optional[TextProvider] = None
    secondary: Optional[TextProvider] = None
    sessions: SessionStore = field(default_factory=SessionStore)
    pricing: PricingConfig = field(default_factory=PricingConfig)
    rng: Optional[random.Random] = None
    backend: str = Backend.SUPABASE

    @classmethod
    def from_config(
        cls, config: Config, backend: str = Backend.SUPABASE, offline: bool = False
    ) -> "AgentContext":
        """
        Wire the production context.

        Args:
            config: Loaded configuration
            backend: "supabase" for the real back-office, "memory" for demo data
            offline: Skip text providers and always answer from templates

        Raises:
            ConfigurationError: If credentials or back-office settings are missing
        """
        if backend == Backend.SUPABASE:
            missing = [key for key in config.validate() if key.startswith("SUPABASE")]
            if missing:
                raise ConfigurationError(f"Missing configuration: {', '.join(missing)}")

        credentials = primary = secondary = None
        if not offline:
            credentials = CredentialRotationManager(
                config.primary_api_keys,
                cooldown=timedelta(hours=config.credential_cooldown_hours),
            )
            primary = OpenAIChatProvider(
                name="primary",
                model=config.chat_model,
                credentials=credentials,
                base_url=config.primary_base_url,
                timeout=config.provider_timeout,
            )
            if config.secondary_api_key:
                secondary = OpenAIChatProvider(
                    name="secondary",
                    model=config.secondary_model,
                    api_key=config.secondary_api_key,
                    base_url=config.secondary_base_url,
                    timeout=config.provider_timeout,
                )
            else:
                logger.info("No secondary provider configured")

        collaborators = (
            _memory_collaborators() if backend == Backend.MEMORY else _supabase_collaborators()
        )

        return cls(
            config=config,
            credentials=credentials,
            primary=primary,
            secondary=secondary,
            pricing=PricingConfig.from_config(config),
            backend=backend,
            **collaborators,
        )

    async def verify(self):
        """Check the back-office is reachable; raises ConfigurationError if not."""
        if self.backend == Backend.SUPABASE and not await test_connection():
            raise ConfigurationError("Supabase back-office is unreachable")


def _supabase_collaborators() -> dict:
    from procurement_agent.tools.inventory import SupabaseInventorySnapshot
    from procurement_agent.tools.orders import SupabaseOrderPlacement
    from procurement_agent.tools.semantic_search import SupabaseSemanticSearch
    from procurement_agent.tools.suppliers import SupabaseSupplierLookup

    return {
        "supplier_lookup": SupabaseSupplierLookup(),
        "inventory": SupabaseInventorySnapshot(),
        "order_placement": SupabaseOrderPlacement(),
        "semantic_search": SupabaseSemanticSearch(),
    }


def _memory_collaborators() -> dict:
    from procurement_agent.tools.memory import (
        InMemoryInventorySnapshot,
        InMemoryOrderPlacement,
        InMemorySemanticSearch,
        InMemorySupplierLookup,
    )
    from procurement_agent.tools.sample_data import SAMPLE_INVENTORY, SAMPLE_SUPPLIERS

    lookup = InMemorySupplierLookup.from_records(SAMPLE_SUPPLIERS)
    inventory = InMemoryInventorySnapshot.from_records(SAMPLE_INVENTORY)
    return {
        "supplier_lookup": lookup,
        "inventory": inventory,
        "order_placement": InMemoryOrderPlacement(inventory),
        "semantic_search": InMemorySemanticSearch(lookup.suppliers),
    }
