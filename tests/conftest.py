"""
Shared fixtures.

Every test gets a fresh in-memory store and a clock pinned to
2024-03-15 (noon UTC). SQL tests get their own in-memory SQLite database.
"""

from datetime import date

import pytest

from household_ledger.config import get_settings
from household_ledger.orchestrator import LedgerService
from household_ledger.services import FixedClock, RecordingHook, StaticIdentityProvider
from household_ledger.services.storage import InMemoryLedgerStorage, SqlLedgerStorage


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Ignore any developer environment; always load defaults."""
    for name in (
        "LEDGER_HOUSEHOLD_MEMBERS",
        "LEDGER_TIMEZONE",
        "LEDGER_UPCOMING_BILLS_DAYS",
        "LEDGER_DUE_SOON_DAYS",
        "LEDGER_MAX_AMOUNT",
        "LEDGER_DB_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def clock():
    return FixedClock(date(2024, 3, 15))


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def sql_storage():
    store = SqlLedgerStorage("sqlite://")
    store.connect()
    yield store
    store.dispose()


@pytest.fixture
def identity():
    return StaticIdentityProvider("felipe")


@pytest.fixture
def hook():
    return RecordingHook()


@pytest.fixture
def service(storage, identity, clock, hook):
    return LedgerService(
        storage=storage,
        identity=identity,
        clock=clock,
        invalidation_hook=hook,
    )

