# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - FakeClient: a chainable stand-in for the Supabase client that returns
#   queued rows per table and records every query
# =============================================================================

import os
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, patch
from uuid import UUID

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-with-enough-length-for-hs256")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("STRIPE_PRICE_STARTER_MONTHLY", "price_starter_m")
os.environ.setdefault("STRIPE_PRICE_STARTER_ANNUAL", "price_starter_y")
os.environ.setdefault("STRIPE_PRICE_PLUS_MONTHLY", "price_plus_m")
os.environ.setdefault("STRIPE_PRICE_PLUS_ANNUAL", "price_plus_y")
os.environ.setdefault("STRIPE_PRICE_PRO_MONTHLY", "price_pro_m")
os.environ.setdefault("STRIPE_PRICE_PRO_ANNUAL", "price_pro_y")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest

from lib.supabase_client import SupabaseClient

USER_ID = UUID("11111111-1111-1111-1111-111111111111")
OTHER_USER_ID = UUID("22222222-2222-2222-2222-222222222222")
TANK_ID = UUID("33333333-3333-3333-3333-333333333333")


# =============================================================================
# Fake Supabase client
# =============================================================================

class FakeQuery:
    """
    Chainable query builder.

    Every builder method (select, eq, order, insert, ...) is recorded in
    `calls` and returns the query itself; execute() returns the canned rows.
    """

    def __init__(self, data: Any = None, count: int | None = None, error: Exception | None = None):
        self.data = data
        self.count = count
        self.error = error
        self.calls: list[tuple[str, tuple, dict]] = []

    def __getattr__(self, name: str):
        if name.startswith("__"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=self.data, count=self.count)

    def called(self, name: str) -> list[tuple]:
        """Positional args of every call to `name`."""
        return [args for call, args, _ in self.calls if call == name]

    def payload(self, name: str) -> Any:
        """First positional arg of the first call to `name` (insert/update/upsert body)."""
        matches = self.called(name)
        return matches[0][0] if matches else None


class FakeClient:
    """
    Supabase client double.

    Queue responses with `queue(table, data)`. Each table() call pops the
    next queued query for that table; once a single one is left it is
    reused. Unqueued tables return empty results. `storage` is a MagicMock.
    """

    def __init__(self):
        self._queued: dict[str, list[FakeQuery]] = {}
        self.queries: dict[str, list[FakeQuery]] = {}
        self.storage = MagicMock()

    def queue(self, table: str, data: Any = None, count: int | None = None, error: Exception | None = None) -> FakeQuery:
        query = FakeQuery(data, count, error)
        self._queued.setdefault(table, []).append(query)
        return query

    def _next(self, key: str) -> FakeQuery:
        pending = self._queued.get(key)
        if not pending:
            query = FakeQuery([])
        elif len(pending) == 1:
            query = pending[0]
        else:
            query = pending.pop(0)
        self.queries.setdefault(key, []).append(query)
        return query

    def table(self, name: str) -> FakeQuery:
        return self._next(name)

    def rpc(self, name: str, params: dict | None = None) -> FakeQuery:
        query = self._next(f"rpc:{name}")
        query.calls.append(("rpc", (name, params), {}))
        return query


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_db():
    """Patch SupabaseClient.get_client with a FakeClient."""
    client = FakeClient()
    with patch.object(SupabaseClient, "get_client", return_value=client):
        yield client


@pytest.fixture
def sample_tank():
    return {
        "id": str(TANK_ID),
        "user_id": str(USER_ID),
        "name": "Living Room Community",
        "type": "freshwater",
        "volume_gallons": 55,
        "substrate": "Sand",
        "setup_date": "2024-03-01",
        "deleted_at": None,
    }


@pytest.fixture
def sample_species():
    return {
        "id": "44444444-4444-4444-4444-444444444444",
        "common_name": "Neon Tetra",
        "scientific_name": "Paracheirodon innesi",
        "type": "freshwater",
        "care_level": "beginner",
        "temperament": "peaceful",
        "min_tank_size_gallons": 10,
        "max_adult_size_inches": 1.5,
        "temp_min_f": 70,
        "temp_max_f": 81,
        "ph_min": 6.0,
        "ph_max": 7.0,
        "schooling_min_count": 6,
    }
