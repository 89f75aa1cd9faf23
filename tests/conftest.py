"""Shared fixtures: an in-memory database per test and a seeded chart of accounts."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from condoledger.db.session import init_db
from condoledger.models.accounting import ChartOfAccount
from condoledger.schemas.accounting import TransactionCreate
from condoledger.domain.accounting.enums import ReferenceType
from condoledger.domain.accounting.chart_service import get_account_by_code, seed_default_chart
from condoledger.domain.accounting.ledger_service import create_transaction


@pytest.fixture
def engine():
    """SQLite in-memory engine shared by every connection of a test."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    """Provide database session for tests."""
    db = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def conjunto_id() -> int:
    return 1


@pytest.fixture
def chart(db: Session, conjunto_id: int):
    """Seed the default chart and return a lookup by account code."""
    seed_default_chart(db, conjunto_id)

    def lookup(code: str) -> ChartOfAccount:
        account = get_account_by_code(db, conjunto_id, code)
        assert account is not None, f"account {code} missing from seeded chart"
        return account

    return lookup


@pytest.fixture
def post(db: Session, conjunto_id: int, chart):
    """Create and post a transaction from (code, debit, credit) lines."""

    def _post(
        txn_date: date,
        lines,
        description: str = "Test transaction",
        reference_type: ReferenceType = ReferenceType.MANUAL,
        reference_id: int | None = None,
    ):
        entries = []
        for line in lines:
            code, debit, credit = line[:3]
            entry = {
                "account_id": chart(code).id,
                "debit_amount": Decimal(str(debit)),
                "credit_amount": Decimal(str(credit)),
            }
            if len(line) > 3:
                entry["third_party_type"], entry["third_party_id"] = line[3]
            entries.append(entry)

        data = TransactionCreate(
            transaction_date=txn_date,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            entries=entries,
        )
        return create_transaction(db, conjunto_id, data, post=True)

    return _post
