"""
Pytest configuration and fixtures for inventory-export tests

This module provides shared fixtures for unit, integration, and E2E tests.
"""
from datetime import datetime, timezone
from typing import Generator

import psycopg
import pytest
from testcontainers.postgres import PostgresContainer

from inventory_export.core.models import ColumnSpec
from inventory_export.notifications import Notifier, NotificationStore
from inventory_export.scheduling.timers import ManualTimerPool, MinuteTicker
from inventory_export.sources.data_source import InMemoryDataSource
from inventory_export.storage.schedule_store import InMemoryScheduleStore
from inventory_export.utils.clock import ManualClock


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Docker containers"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that drive the command-line interfaces"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# CLOCK AND TIMER FIXTURES
# =======================

@pytest.fixture
def clock() -> ManualClock:
    """
    Deterministic clock starting at Monday 2024-01-15 10:00 UTC

    Returns:
        ManualClock that only moves when advanced
    """
    return ManualClock(datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def timer_pool(clock) -> ManualTimerPool:
    """Timer pool whose timers fire only through fire_due()"""
    return ManualTimerPool(clock)


@pytest.fixture
def ticker(clock) -> MinuteTicker:
    """Minute ticker that is never started; tests call tick() directly"""
    return MinuteTicker(clock=clock)


# =======================
# COLLABORATOR FIXTURES
# =======================

@pytest.fixture
def hardware_records() -> list[dict]:
    """Valid hardware inventory records"""
    return [
        {
            "asset_id": "HW000001",
            "category": "laptop",
            "status": "active",
            "purchase_price": 1299.5,
            "purchase_date": "2023-03-01",
            "owner": {"name": "Ana Lima"},
        },
        {
            "asset_id": "HW000002",
            "category": "server",
            "status": "maintenance",
            "purchase_price": 8450,
            "purchase_date": "2022-11-20",
            "owner": {"name": "Ops"},
        },
        {
            "asset_id": "HW000003",
            "category": "tablet",
            "status": "retired",
            "purchase_price": 399.99,
            "purchase_date": "2021-06-15",
            "owner": {"name": "Kai Chen"},
        },
    ]


@pytest.fixture
def hardware_columns() -> list[ColumnSpec]:
    """Column layout used for hardware exports"""
    return [
        ColumnSpec(key="asset_id", label="Asset ID"),
        ColumnSpec(key="category", label="Category"),
        ColumnSpec(key="status", label="Status"),
        ColumnSpec(key="purchase_price", label="Purchase Price", type="currency"),
        ColumnSpec(key="owner.name", label="Owner"),
    ]


@pytest.fixture
def data_source(hardware_records) -> InMemoryDataSource:
    """Data source serving the hardware fixture records"""
    return InMemoryDataSource({"hardware": hardware_records})


@pytest.fixture
def schedule_store() -> InMemoryScheduleStore:
    return InMemoryScheduleStore()


@pytest.fixture
def notifier() -> Notifier:
    """Notifier with a fresh log and no email sender"""
    return Notifier(store=NotificationStore())


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """
    Start PostgreSQL container for integration tests

    Yields:
        PostgresContainer instance
    """
    with PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_export",
        password="test_password",
        dbname="test_inventory"
    ) as postgres:
        # Wait for container to be ready
        postgres.get_connection_url()
        yield postgres


@pytest.fixture(scope="function")
def db_connection(postgres_container) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a database connection for a single test

    Yields:
        psycopg Connection object
    """
    conn_url = postgres_container.get_connection_url(driver=None)
    with psycopg.connect(conn_url) as conn:
        yield conn
        conn.rollback()


# =======================
# CONFIGURATION FIXTURES
# =======================

@pytest.fixture
def clean_env(monkeypatch):
    """
    Remove every variable read by load_settings from the environment

    Args:
        monkeypatch: pytest monkeypatch fixture
    """
    from inventory_export.config import ENV_VARS

    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
    return monkeypatch

