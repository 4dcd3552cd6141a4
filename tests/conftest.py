"""Pytest configuration and fixtures."""

import pytest

from aggregator.aggregator import Aggregator
from aggregator.config import DEFAULT_ENGINE_CONFIG
from aggregator.engine import ExecutionEngine
from aggregator.fees.store import FeeStore
from aggregator.vault import Vault
from tests.helpers import FakePoolState, FakeVenue


@pytest.fixture
def fake_venue() -> FakeVenue:
    """Empty fake venue; tests register pools, rates and handlers."""
    return FakeVenue()


@pytest.fixture
def pool_state(fake_venue: FakeVenue) -> FakePoolState:
    return FakePoolState(fake_venue)


@pytest.fixture
def fee_store() -> FeeStore:
    """Fee store with no static fee."""
    return FeeStore()


@pytest.fixture
def engine(
    fake_venue: FakeVenue, pool_state: FakePoolState, fee_store: FeeStore
) -> ExecutionEngine:
    return ExecutionEngine(fake_venue, pool_state, fee_store, DEFAULT_ENGINE_CONFIG)


@pytest.fixture
def aggregator(fake_venue: FakeVenue, pool_state: FakePoolState, fee_store: FeeStore) -> Aggregator:
    return Aggregator(fake_venue, pool_state, fee_store)


@pytest.fixture
def vault() -> Vault:
    return Vault()
