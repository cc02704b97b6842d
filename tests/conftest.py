"""
Pytest configuration and global fixtures.

This module provides shared fixtures used across all tests.
"""

import tempfile
from collections.abc import Generator
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from travelledger.reconciliation.application.services import (
    MatchLifecycleManager,
    ReconciliationService,
)
from travelledger.reconciliation.domain.models import (
    ExpenseRecord,
    IncomeRecord,
    InvoiceRecord,
    Transaction,
)
from travelledger.reconciliation.infrastructure import models  # noqa: F401
from travelledger.reconciliation.infrastructure.repository import InMemoryMatchRepository
from travelledger.reconciliation.matchers import CandidateScorer, MatchProposer
from travelledger.storage.database.base import Base
from travelledger.utils.config import MatchingSettings, Settings


@pytest.fixture(scope="session")
def test_data_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Create a database session for testing.

    Each test gets a fresh session with automatic rollback.
    """
    SessionLocal = sessionmaker(bind=db_engine)
    session = SessionLocal()

    yield session

    session.rollback()
    session.close()


@pytest.fixture
def test_settings(test_data_dir: Path) -> Settings:
    """Create test settings with temporary directories."""
    return Settings(
        database_url="sqlite:///:memory:",
        data_dir=test_data_dir / "data",
        debug=True,
    )


@pytest.fixture
def matching_settings() -> MatchingSettings:
    """Default matcher settings, independent of the environment."""
    return MatchingSettings()


@pytest.fixture
def scorer(matching_settings: MatchingSettings) -> CandidateScorer:
    return CandidateScorer(matching_settings)


@pytest.fixture
def proposer(scorer: CandidateScorer, matching_settings: MatchingSettings) -> MatchProposer:
    return MatchProposer(scorer=scorer, settings=matching_settings)


@pytest.fixture
def repository() -> InMemoryMatchRepository:
    return InMemoryMatchRepository()


@pytest.fixture
def lifecycle(repository, proposer) -> MatchLifecycleManager:
    return MatchLifecycleManager(repository, proposer)


@pytest.fixture
def service(lifecycle, matching_settings) -> ReconciliationService:
    return ReconciliationService(lifecycle, matching_settings)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def aegean_debit() -> Transaction:
    """Airline ticket paid by card."""
    return Transaction(
        id="txn-aegean",
        date=date(2024, 1, 15),
        description="AEGEAN AIRLINES SA",
        amount=Decimal("-245.50"),
        bank_name="Piraeus Bank",
    )


@pytest.fixture
def hotel_credit() -> Transaction:
    """Customer transfer settling a hotel package invoice."""
    return Transaction(
        id="txn-hotel",
        date=date(2024, 3, 4),
        description="ΜΕΤΑΦΟΡΑ Ξενοδοχείο Ακρόπολις INV-2024-031",
        amount=Decimal("1200.00"),
        bank_name="Alpha Bank",
    )


@pytest.fixture
def aegean_expense() -> ExpenseRecord:
    return ExpenseRecord(
        id="exp-aegean",
        counterparty="Aegean Airlines",
        date=date(2024, 1, 15),
        amount=Decimal("245.50"),
        description="ticket_ath_her.pdf",
    )


@pytest.fixture
def hotel_invoice() -> InvoiceRecord:
    return InvoiceRecord(
        id="inv-031",
        counterparty="Ξενοδοχείο Ακρόπολη",
        date=date(2024, 3, 1),
        amount=Decimal("1200.00"),
        document_number="INV-2024-031",
    )


@pytest.fixture
def consulting_income() -> IncomeRecord:
    return IncomeRecord(
        id="inc-001",
        counterparty="Blue Sea Tours",
        date=date(2024, 3, 4),
        amount=Decimal("1200.00"),
    )
