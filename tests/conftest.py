"""Pytest configuration and fixtures for Procurement Agent tests."""

import json
import random
from pathlib import Path

import pytest

from procurement_agent.agent.context import AgentContext
from procurement_agent.agent.quote_engine import QuoteEngine
from procurement_agent.agent.router import AgentRouter
from procurement_agent.config import Config
from procurement_agent.exceptions import ProviderUnavailable
from procurement_agent.llm.credentials import CredentialRotationManager
from procurement_agent.tools.memory import (
    InMemoryInventorySnapshot,
    InMemoryOrderPlacement,
    InMemorySemanticSearch,
    InMemorySupplierLookup,
)
from tests.helpers.fakes import FakeProvider

# Load fixture data
FIXTURES_DIR = Path(__file__).parent / "fixtures"

TEST_KEYS = ["sk-test-key-0001", "sk-test-key-0002", "sk-test-key-0003"]


@pytest.fixture
def sample_suppliers():
    """Load sample supplier data."""
    with open(FIXTURES_DIR / "sample_suppliers.json") as f:
        return json.load(f)


@pytest.fixture
def sample_inventory():
    """Load sample inventory data."""
    with open(FIXTURES_DIR / "sample_inventory.json") as f:
        return json.load(f)


@pytest.fixture
def test_config():
    """Configuration with three keys and no retry delays."""
    return Config(
        primary_api_keys=list(TEST_KEYS),
        retry_backoff=0.0,
        provider_timeout=1.0,
        lookup_timeout=1.0,
    )


@pytest.fixture
def supplier_lookup(sample_suppliers):
    return InMemorySupplierLookup.from_records(sample_suppliers)


@pytest.fixture
def inventory(sample_inventory):
    return InMemoryInventorySnapshot.from_records(sample_inventory)


@pytest.fixture
def order_placement(inventory):
    return InMemoryOrderPlacement(inventory)


@pytest.fixture
def semantic_search(supplier_lookup):
    return InMemorySemanticSearch(supplier_lookup.suppliers)


@pytest.fixture
def credentials(test_config):
    return CredentialRotationManager(test_config.primary_api_keys)


@pytest.fixture
def failing_primary():
    return FakeProvider(default=ProviderUnavailable("primary is down"), name="primary")


@pytest.fixture
def failing_secondary():
    return FakeProvider(default=ProviderUnavailable("secondary is down"), name="secondary")


@pytest.fixture
def quote_engine(supplier_lookup):
    return QuoteEngine(supplier_lookup, rng=random.Random(42), lookup_timeout=1.0)


@pytest.fixture
def agent_context(
    test_config,
    supplier_lookup,
    inventory,
    order_placement,
    semantic_search,
    credentials,
    failing_primary,
    failing_secondary,
):
    """
    Context whose providers always fail, so replies come from the templates
    and can be asserted exactly.
    """
    return AgentContext(
        config=test_config,
        supplier_lookup=supplier_lookup,
        inventory=inventory,
        order_placement=order_placement,
        semantic_search=semantic_search,
        credentials=credentials,
        primary=failing_primary,
        secondary=failing_secondary,
        rng=random.Random(42),
        backend="memory",
    )


@pytest.fixture
def router(agent_context):
    return AgentRouter(agent_context)
