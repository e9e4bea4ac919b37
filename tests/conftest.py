"""Shared fixtures. No test touches the network or the real clock."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from timetracker.audit import AuditLogger
from timetracker.clock import DeterministicClock
from timetracker.config.settings import LedgerSettings
from timetracker.ledgers import DebtLedger, FinanceLedger, TimeLedger
from timetracker.models.ledger import SharedBudget
from timetracker.orchestrator import LedgerStore
from timetracker.services.storage import InMemorySnapshotStore, PersistenceGateway
from timetracker.settlement import SettlementEngine


MONDAY_10AM = datetime(2026, 10, 19, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return DeterministicClock(MONDAY_10AM)


@pytest.fixture
def settings():
    return LedgerSettings(
        default_rates={"A": Decimal("275"), "B": Decimal("400")},
        default_deductions={"A": Decimal("0.333"), "B": Decimal("0.5")},
        rent_amount=Decimal("24500"),
        rent_category="Rent",
        landlord="Landlord",
        shared_debtor="Shared debt",
    )


@pytest.fixture
def budget():
    return SharedBudget()


@pytest.fixture
def ledgers(clock, settings):
    return (
        TimeLedger(clock, settings),
        FinanceLedger(clock),
        DebtLedger(clock),
    )


@pytest.fixture
def engine(budget, ledgers, clock, settings):
    time_ledger, finance_ledger, debt_ledger = ledgers
    return SettlementEngine(
        budget=budget,
        time_ledger=time_ledger,
        finance_ledger=finance_ledger,
        debt_ledger=debt_ledger,
        clock=clock,
        settings=settings,
        audit_logger=AuditLogger(),
    )


@pytest.fixture
def snapshot_store():
    return InMemorySnapshotStore()


@pytest.fixture
def store(snapshot_store, clock, settings):
    return LedgerStore(
        gateway=PersistenceGateway(snapshot_store, clock=clock),
        clock=clock,
        settings=settings,
    )
