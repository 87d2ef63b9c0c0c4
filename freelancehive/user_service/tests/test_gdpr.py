import pytest

from freelancehive.auth_service.models import User
from freelancehive.contract_service.models import Contract
from freelancehive.honey_service.models import HoneyTransaction
from freelancehive.payments_service.models import EscrowPayment
from freelancehive.project_service.models import Job, JobApplication
from freelancehive.user_service.models import Profile, Referral


@pytest.fixture
def marketplace(client, client_user, freelancer_user, auth_headers):
    client_headers = auth_headers(client_user)
    freelancer_headers = auth_headers(freelancer_user)
    job = client.post(
        "/api/jobs",
        json={"title": "Logo", "description": "Vector logo"},
        headers=client_headers,
    ).json()["job"]
    client.post("/api/applications", json={"jobId": job["id"]}, headers=freelancer_headers)
    contract = client.post(
        "/api/contracts",
        json={"jobId": job["id"], "freelancerId": freelancer_user.id, "title": "Logo", "content": "One logo"},
        headers=client_headers,
    ).json()["contract"]
    client.post("/api/payments/escrow/create", json={"contractId": contract["id"], "amount": 50}, headers=client_headers)
    client.post("/api/honey/purchase", json={"amount": 5}, headers=freelancer_headers)
    client.post("/api/referrals", json={"referredEmail": "pal@example.com"}, headers=client_headers)
    return {"job": job, "contract": contract}


def test_export_contains_owned_rows(client, marketplace, client_user, freelancer_user, auth_headers):
    response = client.get("/api/gdpr/export-data", headers=auth_headers(freelancer_user))
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert data["user"]["id"] == freelancer_user.id
    assert data["profile"]["honeyDropsBalance"] == 5
    assert len(data["applications"]) == 1
    assert [c["id"] for c in data["contracts"]] == [marketplace["contract"]["id"]]
    assert len(data["contracts"][0]["metadata"]["payments"]) == 1
    assert [t["amount"] for t in data["transactions"]] == [5]
    assert data["jobs"] == []
    assert "exportedAt" in data

    client_data = client.get("/api/gdpr/export-data", headers=auth_headers(client_user)).json()["data"]
    assert [j["id"] for j in client_data["jobs"]] == [marketplace["job"]["id"]]
    assert [r["referredEmail"] for r in client_data["referrals"]] == ["pal@example.com"]


def test_delete_requires_confirmation(client, client_user, auth_headers):
    response = client.post("/api/gdpr/delete-account", json={"confirmation": "yes"}, headers=auth_headers(client_user))
    assert response.status_code == 400
    assert client.get("/api/auth/me", headers=auth_headers(client_user)).status_code == 200


def test_delete_client_account_cascades(client, db, marketplace, client_user, freelancer_user, auth_headers):
    response = client.post(
        "/api/gdpr/delete-account",
        json={"confirmation": "DELETE"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 200

    assert db.query(User).filter(User.id == client_user.id).count() == 0
    assert db.query(Profile).filter(Profile.user_id == client_user.id).count() == 0
    assert db.query(Job).count() == 0
    assert db.query(JobApplication).count() == 0
    assert db.query(Contract).count() == 0
    assert db.query(EscrowPayment).count() == 0
    assert db.query(Referral).count() == 0
    # The freelancer's own data is untouched
    assert db.query(HoneyTransaction).filter(HoneyTransaction.user_id == freelancer_user.id).count() == 1

    assert client.get("/api/auth/me", headers=auth_headers(client_user)).status_code == 401


def test_delete_freelancer_keeps_client_contract(client, db, marketplace, freelancer_user, auth_headers):
    response = client.post(
        "/api/gdpr/delete-account",
        json={"confirmation": "DELETE"},
        headers=auth_headers(freelancer_user),
    )
    assert response.status_code == 200

    contract = db.query(Contract).one()
    assert contract.freelancer_id is None
    assert db.query(JobApplication).count() == 0
    assert db.query(HoneyTransaction).count() == 0
    assert db.query(Job).count() == 1
