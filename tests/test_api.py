"""
Tests for the HTTP surface.

These tests verify:
  - Callers must identify themselves with X-User-Id (401 otherwise)
  - Accounts can be opened, listed, viewed, renamed, looked up and closed
  - Deposits, withdrawals and history round-trip with decimal-string amounts
  - Error kinds map to status codes: validation 422, not found 404,
    insufficient funds 422 with error_type "insufficient_funds"
  - Callers cannot act on other users' accounts (403)
  - Transfers work by destination id and by destination account number
"""

import uuid
from decimal import Decimal

import pytest

ALICE = {"X-User-Id": "alice"}
BOB = {"X-User-Id": "bob"}


async def _open(client, headers, name="Checking", initial="0"):
    response = await client.post(
        "/accounts", json={"name": name, "initial_deposit": initial}, headers=headers
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestIdentity:

    async def test_missing_user_header_rejected(self, client):
        response = await client.get("/accounts")
        assert response.status_code == 401

    async def test_blank_user_header_rejected(self, client):
        response = await client.get("/accounts", headers={"X-User-Id": "  "})
        assert response.status_code == 401


class TestAccountEndpoints:

    async def test_open_account(self, client):
        data = await _open(client, ALICE, name="Everyday", initial="100.00")

        assert data["name"] == "Everyday"
        assert data["owner_id"] == "alice"
        assert Decimal(data["balance"]) == Decimal("100.00")
        assert 100_000_000 <= data["account_number"] < 1_000_000_000

    async def test_open_account_with_empty_name(self, client):
        response = await client.post("/accounts", json={"name": ""}, headers=ALICE)

        assert response.status_code == 422
        assert response.json()["error_type"] == "validation"
        assert response.json()["field"] == "account_name"

    async def test_open_account_with_negative_deposit(self, client):
        response = await client.post(
            "/accounts", json={"name": "X", "initial_deposit": "-1"}, headers=ALICE
        )

        assert response.status_code == 422
        assert response.json()["field"] == "initial_deposit"

    async def test_list_only_own_accounts(self, client):
        mine = await _open(client, ALICE)
        await _open(client, BOB)

        response = await client.get("/accounts", headers=ALICE)

        assert response.status_code == 200
        assert [a["id"] for a in response.json()] == [mine["id"]]

    async def test_get_own_account(self, client):
        account = await _open(client, ALICE)

        response = await client.get(f"/accounts/{account['id']}", headers=ALICE)

        assert response.status_code == 200
        assert response.json()["account_number"] == account["account_number"]

    async def test_get_missing_account(self, client):
        response = await client.get(f"/accounts/{uuid.uuid4()}", headers=ALICE)

        assert response.status_code == 404
        assert response.json()["error_type"] == "not_found"

    async def test_cannot_view_other_users_account(self, client):
        account = await _open(client, ALICE)

        response = await client.get(f"/accounts/{account['id']}", headers=BOB)

        assert response.status_code == 403

    async def test_rename(self, client):
        account = await _open(client, ALICE)

        response = await client.patch(
            f"/accounts/{account['id']}", json={"name": "Holidays"}, headers=ALICE
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Holidays"

    async def test_lookup_by_account_number(self, client):
        account = await _open(client, ALICE)

        response = await client.get(
            f"/accounts/lookup/{account['account_number']}", headers=BOB
        )

        assert response.status_code == 200
        assert response.json() == {
            "id": account["id"],
            "account_number": account["account_number"],
        }

    async def test_lookup_unknown_number(self, client):
        response = await client.get("/accounts/lookup/123456789", headers=ALICE)
        assert response.status_code == 404

    async def test_close_account(self, client):
        account = await _open(client, ALICE)

        response = await client.delete(f"/accounts/{account['id']}", headers=ALICE)
        assert response.status_code == 204

        response = await client.get(f"/accounts/{account['id']}", headers=ALICE)
        assert response.status_code == 404

    async def test_close_account_with_funds_refused(self, client):
        account = await _open(client, ALICE, initial="1")

        response = await client.delete(f"/accounts/{account['id']}", headers=ALICE)

        assert response.status_code == 422


class TestMoneyEndpoints:

    async def test_deposit_and_withdraw(self, client):
        account = await _open(client, ALICE)
        base = f"/accounts/{account['id']}"

        deposit = await client.post(
            f"{base}/deposits", json={"amount": "50.25", "description": "Gift"}, headers=ALICE
        )
        assert deposit.status_code == 201
        assert deposit.json()["type"] == "deposit"
        assert Decimal(deposit.json()["amount"]) == Decimal("50.25")

        withdrawal = await client.post(
            f"{base}/withdrawals", json={"amount": "20"}, headers=ALICE
        )
        assert withdrawal.status_code == 201
        assert withdrawal.json()["type"] == "withdrawal"
        assert Decimal(withdrawal.json()["amount"]) == Decimal("-20")

        balance = (await client.get(base, headers=ALICE)).json()["balance"]
        assert Decimal(balance) == Decimal("30.25")

        history = (await client.get(f"{base}/transactions", headers=ALICE)).json()
        assert [h["type"] for h in history] == ["withdrawal", "deposit"]

    async def test_overdraft_refused(self, client):
        account = await _open(client, ALICE, initial="10")

        response = await client.post(
            f"/accounts/{account['id']}/withdrawals", json={"amount": "10.01"}, headers=ALICE
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error_type"] == "insufficient_funds"
        assert Decimal(body["requested"]) == Decimal("10.01")
        assert Decimal(body["available"]) == Decimal("10")

        history = await client.get(f"/accounts/{account['id']}/transactions", headers=ALICE)
        assert history.json() == []

    @pytest.mark.parametrize("amount", ["0", "-5", "0.001"])
    async def test_bad_deposit_amount(self, client, amount):
        account = await _open(client, ALICE)

        response = await client.post(
            f"/accounts/{account['id']}/deposits", json={"amount": amount}, headers=ALICE
        )

        assert response.status_code == 422
        assert response.json()["field"] == "amount"

    async def test_cannot_deposit_into_other_users_account(self, client):
        account = await _open(client, ALICE)

        response = await client.post(
            f"/accounts/{account['id']}/deposits", json={"amount": "1"}, headers=BOB
        )

        assert response.status_code == 403


class TestTransferEndpoint:

    async def test_transfer_between_own_accounts(self, client):
        checking = await _open(client, ALICE, initial="100")
        savings = await _open(client, ALICE, name="Savings")

        response = await client.post(
            "/transfers",
            json={
                "from_account_id": checking["id"],
                "to_account_id": savings["id"],
                "amount": "40",
                "description": "Savings",
            },
            headers=ALICE,
        )

        assert response.status_code == 201
        data = response.json()
        assert Decimal(data["debit_transaction"]["amount"]) == Decimal("-40")
        assert Decimal(data["credit_transaction"]["amount"]) == Decimal("40")
        assert data["to_account_id"] == savings["id"]

        balance = (await client.get(f"/accounts/{savings['id']}", headers=ALICE)).json()["balance"]
        assert Decimal(balance) == Decimal("40")

    async def test_transfer_to_other_user_by_account_number(self, client):
        source = await _open(client, ALICE, initial="100")
        dest = await _open(client, BOB)

        response = await client.post(
            "/transfers",
            json={
                "from_account_id": source["id"],
                "to_account_number": dest["account_number"],
                "amount": "25.50",
            },
            headers=ALICE,
        )

        assert response.status_code == 201
        assert response.json()["to_account_id"] == dest["id"]
        balance = (await client.get(f"/accounts/{dest['id']}", headers=BOB)).json()["balance"]
        assert Decimal(balance) == Decimal("25.50")

    async def test_cannot_transfer_from_other_users_account(self, client):
        source = await _open(client, ALICE, initial="100")
        dest = await _open(client, BOB)

        response = await client.post(
            "/transfers",
            json={"from_account_id": source["id"], "to_account_id": dest["id"], "amount": "1"},
            headers=BOB,
        )

        assert response.status_code == 403

    async def test_transfer_to_same_account(self, client):
        account = await _open(client, ALICE, initial="100")

        response = await client.post(
            "/transfers",
            json={"from_account_id": account["id"], "to_account_id": account["id"], "amount": "1"},
            headers=ALICE,
        )

        assert response.status_code == 422
        assert response.json()["detail"] == "cannot transfer to the same account"

    async def test_transfer_insufficient_funds_changes_nothing(self, client):
        source = await _open(client, ALICE, initial="5")
        dest = await _open(client, ALICE, name="Savings")

        response = await client.post(
            "/transfers",
            json={"from_account_id": source["id"], "to_account_id": dest["id"], "amount": "6"},
            headers=ALICE,
        )

        assert response.status_code == 422
        assert response.json()["error_type"] == "insufficient_funds"
        balance = (await client.get(f"/accounts/{source['id']}", headers=ALICE)).json()["balance"]
        assert Decimal(balance) == Decimal("5")

    async def test_transfer_to_unknown_account_number(self, client):
        source = await _open(client, ALICE, initial="5")

        response = await client.post(
            "/transfers",
            json={"from_account_id": source["id"], "to_account_number": 123456789, "amount": "1"},
            headers=ALICE,
        )

        assert response.status_code == 404

    async def test_destination_required(self, client):
        source = await _open(client, ALICE, initial="5")

        response = await client.post(
            "/transfers",
            json={"from_account_id": source["id"], "amount": "1"},
            headers=ALICE,
        )

        assert response.status_code == 422
