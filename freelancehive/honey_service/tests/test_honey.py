import pytest
from sqlalchemy import func

from freelancehive.config import Settings, get_settings
from freelancehive.main import app
from freelancehive.honey_service import crud
from freelancehive.honey_service.models import HoneyTransaction
from freelancehive.user_service.models import Profile


def balance(client, headers):
    return client.get("/api/honey/balance", headers=headers).json()["balance"]


def ledger_sum(db, user_id):
    db.expire_all()
    return db.query(func.coalesce(func.sum(HoneyTransaction.amount), 0)).filter(
        HoneyTransaction.user_id == user_id
    ).scalar()


def test_purchase_credits_balance(client, freelancer_user, auth_headers):
    headers = auth_headers(freelancer_user)
    response = client.post("/api/honey/purchase", json={"amount": 25, "paymentId": "pi_123"}, headers=headers)
    assert response.status_code == 201
    transaction = response.json()["transaction"]
    assert transaction["amount"] == 25
    assert transaction["type"] == "purchase"
    assert transaction["paymentId"] == "pi_123"
    assert transaction["description"] == "Purchased 25 Honey Drops"
    assert balance(client, headers) == 25


def test_spend_debits_balance(client, freelancer_user, auth_headers):
    headers = auth_headers(freelancer_user)
    client.post("/api/honey/purchase", json={"amount": 10}, headers=headers)

    response = client.post("/api/honey/spend", json={"amount": 3, "description": "Job application"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["transaction"]["amount"] == -3
    assert response.json()["transaction"]["type"] == "spend"
    assert balance(client, headers) == 7


def test_overspend_is_rejected_without_mutation(client, db, freelancer_user, auth_headers):
    headers = auth_headers(freelancer_user)
    client.post("/api/honey/purchase", json={"amount": 2}, headers=headers)

    response = client.post("/api/honey/spend", json={"amount": 3}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Insufficient Honey Drops balance"

    assert balance(client, headers) == 2
    transactions = client.get("/api/honey/transactions", headers=headers).json()["transactions"]
    assert [t["type"] for t in transactions] == ["purchase"]


def test_refund_records_original_transaction(client, freelancer_user, auth_headers):
    headers = auth_headers(freelancer_user)
    spent = client.post("/api/honey/purchase", json={"amount": 5}, headers=headers)
    original_id = spent.json()["transaction"]["id"]

    response = client.post(
        "/api/honey/refund",
        json={"amount": 5, "originalTransactionId": original_id},
        headers=headers,
    )
    assert response.status_code == 200
    transaction = response.json()["transaction"]
    assert transaction["type"] == "refund"
    assert transaction["metadata"] == {"originalTransactionId": original_id}
    assert transaction["description"] == "Honey Drops refund"
    assert balance(client, headers) == 10


def test_refund_can_be_restricted_to_admins(client, freelancer_user, admin_user, auth_headers):
    app.dependency_overrides[get_settings] = lambda: Settings(honey_self_refund_enabled=False)

    response = client.post("/api/honey/refund", json={"amount": 5}, headers=auth_headers(freelancer_user))
    assert response.status_code == 403
    response = client.post("/api/honey/refund", json={"amount": 5}, headers=auth_headers(admin_user))
    assert response.status_code == 200


def test_invalid_amounts(client, freelancer_user, auth_headers):
    headers = auth_headers(freelancer_user)
    for path in ("/api/honey/purchase", "/api/honey/spend", "/api/honey/refund"):
        assert client.post(path, json={"amount": 0}, headers=headers).status_code == 400
        assert client.post(path, json={"amount": -4}, headers=headers).status_code == 400
        assert client.post(path, json={}, headers=headers).status_code == 400


def test_balance_without_profile(client, make_user, auth_headers):
    user = make_user(with_profile=False)
    headers = auth_headers(user)
    assert client.get("/api/honey/balance", headers=headers).status_code == 404
    assert client.post("/api/honey/purchase", json={"amount": 5}, headers=headers).status_code == 404


def test_transactions_filter_and_limit(client, freelancer_user, auth_headers):
    headers = auth_headers(freelancer_user)
    client.post("/api/honey/purchase", json={"amount": 10}, headers=headers)
    client.post("/api/honey/spend", json={"amount": 1}, headers=headers)
    client.post("/api/honey/spend", json={"amount": 2}, headers=headers)

    spends = client.get("/api/honey/transactions", params={"type": "spend"}, headers=headers).json()["transactions"]
    assert sorted(t["amount"] for t in spends) == [-2, -1]

    limited = client.get("/api/honey/transactions", params={"limit": 1}, headers=headers).json()["transactions"]
    assert len(limited) == 1


def test_transactions_are_private(client, make_user, freelancer_user, auth_headers):
    client.post("/api/honey/purchase", json={"amount": 10}, headers=auth_headers(freelancer_user))
    other = make_user()
    assert client.get("/api/honey/transactions", headers=auth_headers(other)).json() == {"transactions": []}


def test_balance_matches_ledger_after_mixed_operations(client, db, freelancer_user, auth_headers):
    headers = auth_headers(freelancer_user)
    operations = [
        ("purchase", 20), ("spend", 3), ("spend", 30), ("refund", 3),
        ("spend", 20), ("purchase", 1), ("spend", 2),
    ]
    for kind, amount in operations:
        client.post(f"/api/honey/{kind}", json={"amount": amount}, headers=headers)

    assert balance(client, headers) == ledger_sum(db, freelancer_user.id)
    assert balance(client, headers) == 1


def test_debit_guard_holds_at_crud_level(db, freelancer_user):
    crud.purchase(db, freelancer_user.id, 4)
    crud.spend(db, freelancer_user.id, 4)

    with pytest.raises(crud.InsufficientBalanceError):
        crud.spend(db, freelancer_user.id, 1)

    profile = db.query(Profile).filter(Profile.user_id == freelancer_user.id).one()
    assert profile.honey_drops_balance == 0
    assert ledger_sum(db, freelancer_user.id) == 0
