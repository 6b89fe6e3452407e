"""
Pytest fixtures for the hospital ledger test suite.

Provides:
- A throwaway SQLite database, rebuilt for every test
- A FastAPI TestClient with bearer-token auth replaced by a fixed accountant
- Helpers that seed departments, accounts and financial years

Environment Variables:
- TEST_POSTGRES_URL: PostgreSQL URL for the threaded concurrency tests.
  Those tests are skipped when it is not set.
"""

import os
import tempfile

# Settings are read at import time, so point the app at a scratch database first.
_TMP_DIR = tempfile.mkdtemp(prefix="hospital-ledger-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'ledger.db')}"
os.environ.setdefault("LOG_DIR", os.path.join(_TMP_DIR, "logs"))

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from main import app
from crud import chart_of_accounts as accounts_crud
from crud import financial_year as financial_year_crud
from crud import reference_data as reference_crud
from models.chart_of_accounts import AccountType
from schemas.chart_of_accounts import ChartOfAccountsCreate
from schemas.financial_year import FinancialYearCreate
from schemas.reference_data import DepartmentCreate, HsnSacCodeCreate
from utils.auth_utils import get_current_user

TEST_ACTOR = "accountant@hospital.test"
TEST_USER = {"sub": TEST_ACTOR, "groups": ["accountant"]}

FY_START = date(2024, 4, 1)
FY_END = date(2025, 3, 31)


@pytest.fixture(autouse=True)
def _reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    app.dependency_overrides[get_current_user] = lambda: TEST_USER
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def financial_year(db):
    """FY 2024-25, ACTIVE and current."""
    return financial_year_crud.create_financial_year(
        db,
        FinancialYearCreate(year_name="FY 2024-25", start_date=FY_START, end_date=FY_END, is_current=True),
        TEST_ACTOR,
    )


@pytest.fixture
def make_account(db):
    def _make(code, name, account_type, opening_balance="0", parent_account_id=None):
        return accounts_crud.create_account(
            db,
            ChartOfAccountsCreate(
                account_code=code,
                account_name=name,
                account_type=account_type,
                opening_balance=Decimal(opening_balance),
                parent_account_id=parent_account_id,
            ),
            TEST_ACTOR,
        )
    return _make


@pytest.fixture
def accounts(make_account):
    """One account of each type the tests post against, all with zero opening balance."""
    return {
        "cash": make_account("1000", "Cash", AccountType.ASSET),
        "payable": make_account("2000", "Accounts Payable", AccountType.LIABILITY),
        "capital": make_account("3000", "Capital", AccountType.EQUITY),
        "revenue": make_account("4000", "Patient Service Revenue", AccountType.REVENUE),
        "supplies": make_account("5000", "Medical Supplies Expense", AccountType.EXPENSE),
    }


@pytest.fixture
def department(db):
    return reference_crud.create_department(db, DepartmentCreate(name="Radiology"), TEST_ACTOR)


@pytest.fixture
def hsn_code(db):
    return reference_crud.create_hsn_sac_code(
        db, HsnSacCodeCreate(code="999311", description="Inpatient services"), TEST_ACTOR
    )


def entry_payload(financial_year_id, debit_account_id, credit_account_id, debit="100.00", credit=None,
                  entry_date="2024-05-10", description="OPD consultation fees"):
    """Request body for a two-line entry."""
    return {
        "entry_date": entry_date,
        "financial_year_id": financial_year_id,
        "description": description,
        "reference": "INV-1001",
        "reference_type": "INVOICE",
        "items": [
            {"account_id": debit_account_id, "debit_amount": debit, "credit_amount": "0"},
            {"account_id": credit_account_id, "debit_amount": "0", "credit_amount": credit or debit},
        ],
    }


def balance_of(client, account_id):
    response = client.get(f"/chart-of-accounts/{account_id}")
    assert response.status_code == 200
    return Decimal(str(response.json()["current_balance"]))
