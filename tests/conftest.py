"""
Shared fixtures.

Everything runs against the in-memory store with pinned clocks; no test
touches Firestore or Google Sheets.
"""

from datetime import datetime, timedelta, timezone

import pytest

from pocketledger.audit import AuditLogger
from pocketledger.config import AppSettings
from pocketledger.ledger import (
    BillSessionLedger,
    BudgetLedger,
    GoalLedger,
    ProfileStore,
    TransactionLedger,
)
from pocketledger.services.storage import InMemoryAuditStorage, InMemoryDocumentStore


START = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)
OWNER = "user-1"


class SteppingClock:
    """Returns a strictly increasing time on every call."""

    def __init__(self, start: datetime = START, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current += self.step
        return now


@pytest.fixture
def owner_id():
    return OWNER


@pytest.fixture
def store_clock():
    return SteppingClock()


@pytest.fixture
def store(store_clock):
    return InMemoryDocumentStore(clock=store_clock)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def app_settings():
    return AppSettings(
        default_currency="LKR",
        session_title_prefix="Bills",
        enforce_category_integrity=False,
        conversion_max_attempts=3,
    )


@pytest.fixture
def ledger_clock():
    return lambda: START


@pytest.fixture
def profiles(store, audit_logger, app_settings, ledger_clock):
    return ProfileStore(store, audit_logger, settings=app_settings, clock=ledger_clock)


@pytest.fixture
def bill_sessions(store, audit_logger, profiles, app_settings, ledger_clock):
    return BillSessionLedger(
        store,
        audit_logger,
        profiles=profiles,
        settings=app_settings,
        clock=ledger_clock,
    )


@pytest.fixture
def transactions(store, audit_logger, app_settings, ledger_clock):
    return TransactionLedger(store, audit_logger, settings=app_settings, clock=ledger_clock)


@pytest.fixture
def budgets(store, audit_logger, app_settings, ledger_clock):
    return BudgetLedger(store, audit_logger, settings=app_settings, clock=ledger_clock)


@pytest.fixture
def goals(store, audit_logger, app_settings, ledger_clock):
    return GoalLedger(store, audit_logger, settings=app_settings, clock=ledger_clock)
