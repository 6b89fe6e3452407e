from decimal import Decimal

import pytest

from conftest import balance_of, entry_payload
from models.chart_of_accounts import AccountType


@pytest.fixture
def books(make_account):
    """Bank funded by capital, so the opening trial balance already agrees."""
    return {
        "bank": make_account("1010", "Bank - SBI", AccountType.ASSET, opening_balance="500"),
        "payable": make_account("2000", "Accounts Payable", AccountType.LIABILITY),
        "capital": make_account("3000", "Capital", AccountType.EQUITY, opening_balance="500"),
        "revenue": make_account("4000", "Patient Service Revenue", AccountType.REVENUE),
        "supplies": make_account("5000", "Medical Supplies Expense", AccountType.EXPENSE),
    }


def _posted(client, financial_year, debit_account, credit_account, amount, entry_date):
    entry = client.post("/journal-entries/", json=entry_payload(
        financial_year.id, debit_account.id, credit_account.id, debit=amount, entry_date=entry_date,
    )).json()
    response = client.post(f"/journal-entries/{entry['id']}/post")
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def activity(client, financial_year, books):
    """Three posted entries on the bank and one draft that must stay out of every report."""
    entries = [
        _posted(client, financial_year, books["bank"], books["revenue"], "100.00", "2024-05-10"),
        _posted(client, financial_year, books["supplies"], books["bank"], "30.00", "2024-05-20"),
        _posted(client, financial_year, books["bank"], books["revenue"], "200.00", "2024-06-01"),
    ]
    client.post("/journal-entries/", json=entry_payload(
        financial_year.id, books["bank"].id, books["revenue"].id, debit="999.00", entry_date="2024-05-15",
    ))
    return entries


def _amounts(rows, key):
    return [Decimal(str(row[key])) for row in rows]


class TestAccountLedger:

    def test_running_balance_starts_from_the_opening_balance(self, client, books, activity):
        response = client.get(f"/ledger/accounts/{books['bank'].id}")

        assert response.status_code == 200, response.text
        ledger = response.json()
        assert ledger["account"]["account_code"] == "1010"
        assert Decimal(ledger["opening_balance"]) == Decimal("500")
        assert [row["entry_number"] for row in ledger["entries"]] == [entry["entry_number"] for entry in activity]
        assert _amounts(ledger["entries"], "debit") == [Decimal("100"), Decimal("0"), Decimal("200")]
        assert _amounts(ledger["entries"], "credit") == [Decimal("0"), Decimal("30"), Decimal("0")]
        assert _amounts(ledger["entries"], "balance") == [Decimal("600"), Decimal("570"), Decimal("770")]
        assert Decimal(ledger["closing_balance"]) == Decimal("770")
        assert Decimal(ledger["total_debits"]) == Decimal("300")
        assert Decimal(ledger["total_credits"]) == Decimal("30")
        assert ledger["pagination"] == {"total": 3, "page": 1, "limit": 50, "pages": 1}
        assert Decimal(ledger["closing_balance"]) == balance_of(client, books["bank"].id)

    def test_credit_normal_account_grows_with_credits(self, client, books, activity):
        ledger = client.get(f"/ledger/accounts/{books['revenue'].id}").json()

        assert _amounts(ledger["entries"], "balance") == [Decimal("100"), Decimal("300")]
        assert Decimal(ledger["closing_balance"]) == Decimal("300")

    def test_later_pages_carry_the_running_balance(self, client, books, activity):
        ledger = client.get(f"/ledger/accounts/{books['bank'].id}", params={"page": 2, "limit": 2}).json()

        assert [row["entry_number"] for row in ledger["entries"]] == [activity[2]["entry_number"]]
        assert _amounts(ledger["entries"], "balance") == [Decimal("770")]
        assert Decimal(ledger["opening_balance"]) == Decimal("500")
        assert Decimal(ledger["closing_balance"]) == Decimal("770")
        assert ledger["pagination"] == {"total": 3, "page": 2, "limit": 2, "pages": 2}

    def test_period_opening_includes_earlier_activity(self, client, books, activity):
        ledger = client.get(f"/ledger/accounts/{books['bank'].id}", params={
            "from_date": "2024-05-15", "to_date": "2024-05-31",
        }).json()

        assert Decimal(ledger["opening_balance"]) == Decimal("600")
        assert _amounts(ledger["entries"], "balance") == [Decimal("570")]
        assert Decimal(ledger["closing_balance"]) == Decimal("570")

    def test_financial_year_filter_names_the_year(self, client, financial_year, books, activity):
        ledger = client.get(
            f"/ledger/accounts/{books['bank'].id}", params={"financial_year_id": financial_year.id}
        ).json()

        assert ledger["financial_year"]["year_name"] == "FY 2024-25"
        assert Decimal(ledger["opening_balance"]) == Decimal("500")
        assert ledger["pagination"]["total"] == 3

    def test_reversed_entry_and_its_reversal_cancel_out(self, client, books, activity):
        client.post(
            f"/journal-entries/{activity[0]['id']}/reverse",
            json={"reason": "wrong patient", "reversal_date": "2024-06-05"},
        )

        ledger = client.get(f"/ledger/accounts/{books['bank'].id}").json()

        assert [row["status"] for row in ledger["entries"]] == ["REVERSED", "POSTED", "POSTED", "POSTED"]
        assert ledger["entries"][-1]["reference_type"] == "REVERSAL"
        assert Decimal(ledger["closing_balance"]) == Decimal("670")
        assert Decimal(ledger["closing_balance"]) == balance_of(client, books["bank"].id)

    def test_inverted_date_range_is_rejected(self, client, books):
        response = client.get(f"/ledger/accounts/{books['bank'].id}", params={
            "from_date": "2024-06-01", "to_date": "2024-05-01",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_DATE_RANGE"

    def test_unknown_account(self, client):
        response = client.get("/ledger/accounts/999")
        assert response.status_code == 404
        assert response.json()["error"] == "ACCOUNT_NOT_FOUND"


class TestTrialBalance:

    def test_columns_follow_each_accounts_normal_side(self, client, financial_year, books, activity):
        response = client.get("/ledger/trial-balance", params={
            "financial_year_id": financial_year.id, "as_of_date": "2025-03-31",
        })

        assert response.status_code == 200, response.text
        report = response.json()
        lines = {line["account_code"]: line for line in report["lines"]}
        assert list(lines) == ["1010", "2000", "3000", "4000", "5000"]
        assert Decimal(lines["1010"]["debit_balance"]) == Decimal("770")
        assert Decimal(lines["1010"]["period_debits"]) == Decimal("300")
        assert Decimal(lines["1010"]["period_credits"]) == Decimal("30")
        assert Decimal(lines["3000"]["credit_balance"]) == Decimal("500")
        assert Decimal(lines["4000"]["credit_balance"]) == Decimal("300")
        assert Decimal(lines["5000"]["debit_balance"]) == Decimal("30")
        assert Decimal(report["total_debit_balance"]) == Decimal("800")
        assert Decimal(report["total_credit_balance"]) == Decimal("800")
        assert report["is_balanced"] is True

        groups = {group["account_type"]: group for group in report["groups"]}
        assert Decimal(groups["ASSET"]["total_debit_balance"]) == Decimal("770")
        assert Decimal(groups["REVENUE"]["total_credit_balance"]) == Decimal("300")

    def test_cutoff_leaves_out_later_entries(self, client, financial_year, books, activity):
        report = client.get("/ledger/trial-balance", params={
            "financial_year_id": financial_year.id, "as_of_date": "2024-05-31",
        }).json()

        lines = {line["account_code"]: line for line in report["lines"]}
        assert Decimal(lines["1010"]["balance"]) == Decimal("570")
        assert Decimal(lines["4000"]["balance"]) == Decimal("100")
        assert report["is_balanced"] is True

    def test_overdrawn_asset_moves_to_the_credit_column(self, client, financial_year, books):
        _posted(client, financial_year, books["supplies"], books["bank"], "650.00", "2024-07-01")

        report = client.get("/ledger/trial-balance", params={
            "financial_year_id": financial_year.id, "as_of_date": "2024-07-31",
        }).json()

        bank = next(line for line in report["lines"] if line["account_code"] == "1010")
        assert Decimal(bank["balance"]) == Decimal("-150")
        assert Decimal(bank["credit_balance"]) == Decimal("150")
        assert Decimal(bank["debit_balance"]) == Decimal("0")
        assert report["is_balanced"] is True

    def test_zero_balances_can_be_left_out(self, client, financial_year, books, activity):
        report = client.get("/ledger/trial-balance", params={
            "financial_year_id": financial_year.id, "as_of_date": "2025-03-31", "exclude_zero_balances": True,
        }).json()

        assert "2000" not in [line["account_code"] for line in report["lines"]]
        assert "LIABILITY" not in [group["account_type"] for group in report["groups"]]

    def test_unmatched_opening_balance_is_reported_unbalanced(self, client, financial_year, books, make_account):
        make_account("1020", "Bank - HDFC", AccountType.ASSET, opening_balance="75")

        report = client.get("/ledger/trial-balance", params={"financial_year_id": financial_year.id}).json()

        assert report["is_balanced"] is False
        assert Decimal(report["total_debit_balance"]) - Decimal(report["total_credit_balance"]) == Decimal("75")

    def test_default_cutoff_falls_inside_the_year(self, client, financial_year, books):
        report = client.get("/ledger/trial-balance", params={"financial_year_id": financial_year.id}).json()

        assert "2024-04-01" <= report["as_of_date"] <= "2025-03-31"

    def test_cutoff_outside_the_year_is_rejected(self, client, financial_year, books):
        response = client.get("/ledger/trial-balance", params={
            "financial_year_id": financial_year.id, "as_of_date": "2025-04-01",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "DATE_OUTSIDE_FINANCIAL_YEAR"

    def test_unknown_financial_year(self, client):
        response = client.get("/ledger/trial-balance", params={"financial_year_id": 42})
        assert response.status_code == 404
        assert response.json()["error"] == "FINANCIAL_YEAR_NOT_FOUND"
