"""
Pytest configuration and fixtures for the PharmaChain test suite.
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from pharmachain.services.supply_chain import SupplyChainStore


T0 = datetime(2024, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class TickingClock:
    """Clock that moves one second forward on every read."""

    def __init__(self, start=T0):
        self.now = start

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


class ScriptedRandom:
    """Random source replaying fixed draws in a loop."""

    def __init__(self, *values):
        self.values = list(values)
        self.calls = 0

    def random(self):
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


# ============================================================================
# Clock & Randomness Fixtures
# ============================================================================

@pytest.fixture
def fixed_clock():
    """Create a clock pinned at 2024-03-01 10:00 UTC."""
    return FixedClock()


@pytest.fixture
def ticking_clock():
    """Create a clock that advances one second per read."""
    return TickingClock()


@pytest.fixture
def rng():
    """Create a seeded random source."""
    return random.Random(42)


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def store(rng, ticking_clock):
    """Create an empty store."""
    return SupplyChainStore(rng=rng, clock=ticking_clock, seed_data=False)


@pytest.fixture
def seeded_store(rng, ticking_clock):
    """Create a store loaded with the demo seed data."""
    return SupplyChainStore(rng=rng, clock=ticking_clock, seed_data=True)


@pytest.fixture
def make_batch():
    """Factory for batches with sensible defaults."""
    from pharmachain.services.supply_chain import Batch

    def _make(batch_id="b100", batch_number="BATCH-2024-001", quantity=1000, **overrides):
        fields = dict(
            id=batch_id,
            batch_number=batch_number,
            drug_id="d1",
            drug_name="Paracetamol 500mg",
            manufacturer_id="1",
            manufacturer_name="PharmaCorp Manufacturing",
            manufacturing_date="2024-01-01",
            expiry_date="2026-01-01",
            quantity=quantity,
            current_quantity=quantity,
        )
        fields.update(overrides)
        return Batch(**fields)

    return _make


# ============================================================================
# Flask Fixtures
# ============================================================================

@pytest.fixture
def app():
    """Create test application."""
    from pharmachain.app import create_app
    app = create_app("testing")
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Create test client for each test."""
    with app.test_client() as client:
        yield client
