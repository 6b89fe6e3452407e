from decimal import Decimal

import pytest

import crud.chart_of_accounts as accounts_crud

from conftest import TEST_ACTOR, balance_of, entry_payload
from crud.chart_of_accounts import (
    DEFAULT_HOSPITAL_ACCOUNTS,
    apply_balance_delta,
    assert_accounts_active,
    signed_balance_delta,
)
from exceptions import AccountNotFoundError, InactiveAccountReferenceError
from models.chart_of_accounts import AccountType, ChartOfAccounts


@pytest.mark.parametrize("account_type, debit, credit, expected", [
    (AccountType.ASSET, "100", "0", "100"),
    (AccountType.ASSET, "0", "30", "-30"),
    (AccountType.EXPENSE, "12.50", "2.50", "10.00"),
    (AccountType.LIABILITY, "100", "0", "-100"),
    (AccountType.EQUITY, "0", "75", "75"),
    (AccountType.REVENUE, "20", "50", "30"),
])
def test_signed_balance_delta(account_type, debit, credit, expected):
    assert signed_balance_delta(account_type, Decimal(debit), Decimal(credit)) == Decimal(expected)


def test_swapping_debit_and_credit_negates_the_delta():
    for account_type in AccountType:
        forward = signed_balance_delta(account_type, Decimal("40"), Decimal("15"))
        backward = signed_balance_delta(account_type, Decimal("15"), Decimal("40"))
        assert forward == -backward


class TestBalanceMaintenance:

    def test_apply_balance_delta_increments_in_place(self, db, accounts):
        cash_id = accounts["cash"].id

        assert apply_balance_delta(db, cash_id, Decimal("100"), Decimal("0")) == Decimal("100")
        assert apply_balance_delta(db, cash_id, Decimal("0"), Decimal("35.25")) == Decimal("64.75")
        db.commit()

        assert db.query(ChartOfAccounts.current_balance).filter(ChartOfAccounts.id == cash_id).scalar() == Decimal("64.75")

    def test_apply_balance_delta_to_missing_account(self, db):
        with pytest.raises(AccountNotFoundError):
            apply_balance_delta(db, 404, Decimal("1"), Decimal("0"))

    def test_assert_accounts_active_reports_missing_ids(self, db, accounts):
        with pytest.raises(AccountNotFoundError) as excinfo:
            assert_accounts_active(db, [accounts["cash"].id, 98, 99])
        assert excinfo.value.account_ids == [98, 99]

    def test_assert_accounts_active_lists_inactive_accounts(self, db, accounts):
        accounts["payable"].is_active = False
        accounts["supplies"].is_active = False
        db.commit()

        with pytest.raises(InactiveAccountReferenceError) as excinfo:
            assert_accounts_active(db, [account.id for account in accounts.values()])
        assert [detail["account_name"] for detail in excinfo.value.details] == [
            "Accounts Payable", "Medical Supplies Expense",
        ]


class TestAccountAdministration:

    def test_create_starts_current_balance_at_opening_balance(self, client):
        response = client.post("/chart-of-accounts/", json={
            "account_code": "1010",
            "account_name": "Bank - SBI",
            "account_type": "ASSET",
            "opening_balance": "2500.00",
        })

        assert response.status_code == 201
        account = response.json()
        assert Decimal(account["current_balance"]) == Decimal("2500")
        assert account["created_by"] == TEST_ACTOR

    def test_duplicate_code_is_rejected(self, client, accounts):
        response = client.post("/chart-of-accounts/", json={
            "account_code": "1000", "account_name": "Petty Cash", "account_type": "ASSET",
        })
        assert response.status_code == 400
        assert response.json()["error"] == "DUPLICATE_CODE"

    def test_code_taken_after_the_lookup_is_still_a_duplicate(self, client, accounts, monkeypatch):
        real_lookup = accounts_crud.get_account_by_code
        calls = []

        def lookup_missing_first_time(db, account_code):
            calls.append(account_code)
            return None if len(calls) == 1 else real_lookup(db, account_code)

        monkeypatch.setattr(accounts_crud, "get_account_by_code", lookup_missing_first_time)

        response = client.post("/chart-of-accounts/", json={
            "account_code": "1000", "account_name": "Petty Cash", "account_type": "ASSET",
        })

        assert response.status_code == 400
        assert response.json()["error"] == "DUPLICATE_CODE"
        assert client.get("/chart-of-accounts/", params={"search": "Petty"}).json() == []

    @pytest.mark.parametrize("field", ["account_name", "account_code", "is_active", "opening_balance"])
    def test_required_fields_cannot_be_cleared(self, client, accounts, field):
        response = client.patch(f"/chart-of-accounts/{accounts['cash'].id}", json={field: None})

        assert response.status_code == 400
        assert response.json()["error"] == "VALIDATION_ERROR"
        assert response.json()["details"] == [{"field": field, "message": "field is required and cannot be null"}]
        assert client.get(f"/chart-of-accounts/{accounts['cash'].id}").json()["account_name"] == "Cash"

    def test_parent_must_share_the_account_type(self, client, accounts):
        response = client.post("/chart-of-accounts/", json={
            "account_code": "1001",
            "account_name": "Cash - Pharmacy Counter",
            "account_type": "ASSET",
            "parent_account_id": accounts["revenue"].id,
        })
        assert response.status_code == 400
        assert response.json()["error"] == "ACCOUNT_HIERARCHY_ERROR"

    def test_unknown_department_is_rejected(self, client):
        response = client.post("/chart-of-accounts/", json={
            "account_code": "5100", "account_name": "Lab Reagents", "account_type": "EXPENSE", "department_id": 77,
        })
        assert response.status_code == 404
        assert response.json()["error"] == "DEPARTMENT_NOT_FOUND"

    def test_account_cannot_become_its_own_parent(self, client, accounts):
        response = client.patch(f"/chart-of-accounts/{accounts['cash'].id}", json={
            "parent_account_id": accounts["cash"].id,
        })
        assert response.json()["error"] == "ACCOUNT_HIERARCHY_ERROR"

    def test_descendant_cannot_become_the_parent(self, client, make_account):
        root = make_account("1000", "Cash", AccountType.ASSET)
        child = make_account("1001", "Cash - OPD", AccountType.ASSET, parent_account_id=root.id)
        grandchild = make_account("1002", "Cash - OPD Night", AccountType.ASSET, parent_account_id=child.id)

        response = client.patch(f"/chart-of-accounts/{root.id}", json={"parent_account_id": grandchild.id})

        assert response.status_code == 400
        assert response.json()["error"] == "ACCOUNT_HIERARCHY_ERROR"

    def test_account_type_cannot_be_changed(self, client, accounts):
        response = client.patch(f"/chart-of-accounts/{accounts['cash'].id}", json={"account_type": "EXPENSE"})
        assert response.status_code == 422

    def test_opening_balance_change_shifts_current_balance(self, client, financial_year, accounts):
        entry = client.post("/journal-entries/", json=entry_payload(
            financial_year.id, accounts["cash"].id, accounts["revenue"].id, debit="100"
        )).json()
        client.post(f"/journal-entries/{entry['id']}/post")

        response = client.patch(f"/chart-of-accounts/{accounts['cash'].id}", json={"opening_balance": "1000"})

        assert response.status_code == 200
        assert Decimal(response.json()["opening_balance"]) == Decimal("1000")
        assert Decimal(response.json()["current_balance"]) == Decimal("1100")
        assert client.get(f"/chart-of-accounts/{accounts['cash'].id}/reconcile").json()["is_consistent"]

    def test_deactivation_is_blocked_by_active_children(self, client, make_account):
        parent = make_account("4000", "Revenue", AccountType.REVENUE)
        make_account("4010", "Revenue - OPD", AccountType.REVENUE, parent_account_id=parent.id)

        response = client.delete(f"/chart-of-accounts/{parent.id}")

        assert response.status_code == 409
        assert response.json()["error"] == "ACCOUNT_IN_USE"

    def test_deactivation_keeps_history(self, client, financial_year, accounts):
        entry = client.post("/journal-entries/", json=entry_payload(
            financial_year.id, accounts["cash"].id, accounts["revenue"].id
        )).json()
        client.post(f"/journal-entries/{entry['id']}/post")

        response = client.delete(f"/chart-of-accounts/{accounts['revenue'].id}")

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert balance_of(client, accounts["revenue"].id) == Decimal("100")
        assert client.get(f"/journal-entries/{entry['id']}").json()["status"] == "POSTED"


class TestAccountQueries:

    def test_list_filters(self, client, accounts):
        client.delete(f"/chart-of-accounts/{accounts['capital'].id}")

        assets = client.get("/chart-of-accounts/", params={"account_type": "ASSET"}).json()
        assert [account["account_code"] for account in assets] == ["1000"]

        active = client.get("/chart-of-accounts/", params={"is_active": True}).json()
        assert "3000" not in {account["account_code"] for account in active}

        found = client.get("/chart-of-accounts/", params={"search": "supplies"}).json()
        assert [account["account_name"] for account in found] == ["Medical Supplies Expense"]

    def test_get_includes_children(self, client, make_account):
        parent = make_account("5000", "Expenses", AccountType.EXPENSE)
        make_account("5020", "Expenses - Laundry", AccountType.EXPENSE, parent_account_id=parent.id)
        make_account("5010", "Expenses - Linen", AccountType.EXPENSE, parent_account_id=parent.id)

        account = client.get(f"/chart-of-accounts/{parent.id}").json()

        assert [child["account_code"] for child in account["child_accounts"]] == ["5010", "5020"]

    def test_tree_nests_children_under_parents(self, client, make_account):
        assets = make_account("1000", "Current Assets", AccountType.ASSET)
        cash = make_account("1100", "Cash", AccountType.ASSET, parent_account_id=assets.id)
        make_account("1110", "Cash - Casualty", AccountType.ASSET, parent_account_id=cash.id)
        make_account("2000", "Liabilities", AccountType.LIABILITY)

        tree = client.get("/chart-of-accounts/tree").json()

        assert [node["account_code"] for node in tree] == ["1000", "2000"]
        assert tree[0]["children"][0]["account_code"] == "1100"
        assert tree[0]["children"][0]["children"][0]["account_code"] == "1110"

    def test_missing_account(self, client):
        response = client.get("/chart-of-accounts/321")
        assert response.status_code == 404
        assert response.json()["error"] == "ACCOUNT_NOT_FOUND"

    def test_initialize_default_accounts_is_idempotent(self, client):
        first = client.post("/chart-of-accounts/initialize")
        second = client.post("/chart-of-accounts/initialize")

        assert first.status_code == 201
        assert len(first.json()) == len(DEFAULT_HOSPITAL_ACCOUNTS)
        assert second.json() == []
        assert len(client.get("/chart-of-accounts/").json()) == len(DEFAULT_HOSPITAL_ACCOUNTS)
