"""
Pytest fixtures for the settlement engine test suite.

Provides:
- A session-scoped engine with tables created once
- Per-test sessions isolated by an outer transaction that is rolled back
- Opt-in factories for profiles, parties, assets and bank accounts

Environment Variables:
- DATABASE_URL: database URL.  Defaults to an in-memory SQLite database;
  set it to a PostgreSQL URL (with the ``postgres`` extra installed) to run
  the suite against PostgreSQL.
"""

import json
import logging
import os
from datetime import date
from decimal import Decimal
from io import StringIO
from typing import Generator
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import Session

from settlement_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from settlement_kernel.domain.clock import DeterministicClock
from settlement_kernel.domain.contract_terms import UserRole
from settlement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from settlement_kernel.models.asset import PropertyModel, VehicleModel
from settlement_kernel.models.party import CompanyModel, PersonModel
from settlement_kernel.models.user_profile import UserProfileModel
from settlement_modules.cash.orm import BankAccountModel

# Test actor ID for all test operations
TEST_ACTOR_ID = uuid4()

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///:memory:"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture settlement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, contract_orchestrator):
            contract_orchestrator.create(...)
            logs = captured_logs()
            assert any(r["message"] == "contract_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("settlement_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Session-scoped DB infrastructure (create engine + tables ONCE per suite)
# =============================================================================


@pytest.fixture(scope="session")
def db_engine():
    eng = init_engine_from_url(get_database_url(), echo=False)
    yield eng
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Create all tables once per session, drop once at end."""
    drop_tables()
    create_tables()
    yield
    drop_tables()


@pytest.fixture(scope="function")
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """Provide a database session for testing.

    The session joins an outer transaction on a dedicated connection:
    ``session.commit()`` releases a savepoint and ``session.rollback()``
    returns to it, so orchestrators behave as in production.  At teardown
    the outer transaction is rolled back, undoing everything the test did.
    """
    conn = db_engine.connect()
    trans = conn.begin()
    sess = Session(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
    yield sess
    try:
        sess.close()
    finally:
        try:
            trans.rollback()
        finally:
            conn.close()


@pytest.fixture
def test_actor_id() -> UUID:
    """Provide a consistent test actor ID."""
    return TEST_ACTOR_ID


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


# =============================================================================
# Factories
#
# Every factory commits, so the rows survive an orchestrator rolling back a
# failed operation inside the test.
# =============================================================================


@pytest.fixture
def make_profile(session, test_actor_id):
    def _make(role: UserRole = UserRole.EDITOR, user_id: UUID | None = None) -> UUID:
        user_id = user_id or uuid4()
        session.add(
            UserProfileModel(
                user_id=user_id,
                full_name=f"{UserRole(role).value} user",
                role=UserRole(role).value,
                created_by_id=test_actor_id,
            )
        )
        session.commit()
        return user_id

    return _make


@pytest.fixture
def editor_id(make_profile) -> UUID:
    return make_profile(UserRole.EDITOR)


@pytest.fixture
def admin_id(make_profile) -> UUID:
    return make_profile(UserRole.ADMIN)


@pytest.fixture
def viewer_id(make_profile) -> UUID:
    return make_profile(UserRole.VIEWER)


@pytest.fixture
def make_person(session, test_actor_id):
    def _make(full_name: str = "Ana Souza", document: str | None = "123.456.789-00") -> PersonModel:
        person = PersonModel(full_name=full_name, document=document, created_by_id=test_actor_id)
        session.add(person)
        session.commit()
        return person

    return _make


@pytest.fixture
def make_company(session, test_actor_id):
    def _make(legal_name: str = "Construtora Horizonte Ltda", document: str | None = None) -> CompanyModel:
        company = CompanyModel(
            legal_name=legal_name,
            document=document or uuid4().hex[:14],
            created_by_id=test_actor_id,
        )
        session.add(company)
        session.commit()
        return company

    return _make


@pytest.fixture
def make_property(session, test_actor_id):
    def _make(description: str = "Apartment 101", reference_value: Decimal | None = None) -> PropertyModel:
        prop = PropertyModel(
            description=description,
            reference_value=reference_value,
            created_by_id=test_actor_id,
        )
        session.add(prop)
        session.commit()
        return prop

    return _make


@pytest.fixture
def make_vehicle(session, test_actor_id):
    def _make(description: str = "Pickup truck", plate: str | None = "ABC1D23") -> VehicleModel:
        vehicle = VehicleModel(description=description, plate=plate, created_by_id=test_actor_id)
        session.add(vehicle)
        session.commit()
        return vehicle

    return _make


@pytest.fixture
def make_bank_account(session, test_actor_id):
    def _make(
        name: str = "Main checking",
        balance: Decimal = Decimal("50000.00"),
        is_active: bool = True,
    ) -> BankAccountModel:
        account = BankAccountModel(
            name=name,
            account_type="checking",
            balance=balance,
            initial_balance=balance,
            is_active=is_active,
            created_by_id=test_actor_id,
        )
        session.add(account)
        session.commit()
        return account

    return _make


# =============================================================================
# Form helpers
# =============================================================================


@pytest.fixture
def contract_form(make_person, make_company, make_property):
    """
    Build contract form data between a person (side A) and a company (side B).

    Side A brings a property worth ``side_a`` and side B brings cash worth
    ``side_b``; ``conditions`` are passed through unchanged.
    """

    def _build(
        side_a: str = "100000.00",
        side_b: str = "100000.00",
        conditions: list[dict] | None = None,
        status: str = "draft",
        contract_date: date = date(2024, 1, 15),
    ) -> dict:
        person = make_person()
        company = make_company()
        prop = make_property()
        return {
            "contract_date": contract_date.isoformat(),
            "status": status,
            "notes": "Property swap",
            "parties": [
                {
                    "side": "A",
                    "party_type": "person",
                    "party_id": str(person.id),
                    "party_name": person.full_name,
                    "party_document": person.document,
                },
                {
                    "side": "B",
                    "party_type": "company",
                    "party_id": str(company.id),
                    "party_name": company.legal_name,
                    "gra_percentage": "10",
                },
            ],
            "items": [
                {
                    "side": "A",
                    "item_type": "property",
                    "item_id": str(prop.id),
                    "item_value": side_a,
                    "description": prop.description,
                    "participants": [{"party_id": str(person.id), "percentage": "100"}],
                },
                {
                    "side": "B",
                    "item_type": "cash",
                    "item_value": side_b,
                    "participants": [{"party_id": str(company.id), "percentage": "100"}],
                },
            ],
            "payment_conditions": conditions or [],
        }

    return _build


@pytest.fixture
def monthly_receivables():
    """Twelve monthly receivables of 10000 starting 2024-01-15."""
    return [
        {
            "condition_value": "120000",
            "direction": "in",
            "payment_type": "installment",
            "installments": 12,
            "frequency": "monthly",
            "start_date": "2024-01-15",
        }
    ]
