import os

os.environ.setdefault("HOVENIER_LOG_JSON", "0")  # leesbare logs tijdens tests

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hovenier.core.clock import DAY_MS
from hovenier.core.settings import Settings
from hovenier.domain.invoice import CompanyInfo
from hovenier.domain.quote import Customer
from hovenier.engine.pricing import PricingSettings
from hovenier.repositories import MemoryStore, SqlStore
from hovenier.workflow.orchestrator import WorkflowOrchestrator


class FakeClock:
    """Handmatige klok in epoch-ms; tests zetten de tijd vooruit."""

    def __init__(self, start: int):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, *, days: int = 0, ms: int = 0) -> int:
        self.now += days * DAY_MS + ms
        return self.now


class FakeTask:
    def __init__(self, delay_ms, fn):
        self.delay_ms = delay_ms
        self.fn = fn
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Scheduler zonder threads: fire() draait de laatst geplande, niet-geannuleerde taak."""

    def __init__(self):
        self.tasks = []

    def schedule(self, delay_ms, fn):
        task = FakeTask(delay_ms, fn)
        self.tasks.append(task)
        return task

    @property
    def pending(self):
        return [t for t in self.tasks if not t.cancelled]

    def fire(self):
        pending = self.pending
        assert pending, "no scheduled save"
        task = pending[-1]
        task.cancelled = True
        task.fn()


@pytest.fixture
def clock():
    start = int(datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc).timestamp() * 1000)
    return FakeClock(start)


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        SHARE_TOKEN_SECRET="test-secret-for-share-links",
        LOG_JSON=False,
    )


@pytest.fixture
def pricing():
    return PricingSettings(
        default_margin_percent=Decimal("15"),
        vat_percent=Decimal("21"),
        default_hourly_rate=Decimal("45"),
    )


@pytest.fixture
def customer():
    return Customer(name="Fam. de Vries", address="Lindelaan 4", postcode="3811 AB", city="Amersfoort")


@pytest.fixture
def company():
    return CompanyInfo(name="Groen & Zo Hoveniers", kvk="12345678", iban="NL00BANK0123456789")


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory):
    return SqlStore(session_factory, create_tables=True)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Zelfde scenario's tegen beide Store-implementaties."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def orchestrator(store, settings, clock):
    return WorkflowOrchestrator(store, settings, clock=clock)


@pytest.fixture
def garden_lines():
    """300 materiaal + 250 arbeid = 550 ex marge."""
    return [
        {"scope": "bestrating", "description": "Betontegels 30x30", "unit": "m2", "quantity": 20, "unit_price": 15, "kind": "materiaal"},
        {"scope": "bestrating", "description": "Tegels leggen", "unit": "uur", "quantity": 5, "unit_price": 50, "kind": "arbeid"},
    ]
