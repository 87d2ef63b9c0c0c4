from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from freelancehive.auth_service.models import UserRole
from freelancehive.contract_service.crud import create_contract
from freelancehive.contract_service.models import Contract
from freelancehive.project_service.models import Job


@pytest.fixture
def job(client, client_user, auth_headers):
    response = client.post(
        "/api/jobs",
        json={"title": "Website redesign", "description": "New theme", "budget": 1200},
        headers=auth_headers(client_user),
    )
    return response.json()["job"]


@pytest.fixture
def contract(client, job, client_user, freelancer_user, auth_headers):
    response = client.post(
        "/api/contracts",
        json={
            "jobId": job["id"],
            "freelancerId": freelancer_user.id,
            "title": "Redesign agreement",
            "content": "Deliver the redesign in four weeks",
            "totalAmount": 1200,
        },
        headers=auth_headers(client_user),
    )
    assert response.status_code == 201, response.text
    return response.json()["contract"]


def sign(client, contract_id, user, auth_headers, data="signed"):
    return client.post(
        f"/api/contracts/{contract_id}/sign",
        json={"signatureData": data},
        headers=auth_headers(user),
    )


def test_create_contract(contract, client_user):
    year = datetime.utcnow().year
    assert contract["contractNumber"] == f"CONTRACT-{year}-0001"
    assert contract["status"] == "draft"
    assert contract["clientId"] == client_user.id
    assert contract["metadata"] == {"payments": []}
    assert contract["clientSignatureDate"] is None


def test_contract_numbers_are_sequential(client, job, contract, client_user, auth_headers):
    response = client.post(
        "/api/contracts",
        json={"jobId": job["id"], "title": "Second", "content": "Phase two"},
        headers=auth_headers(client_user),
    )
    assert response.json()["contract"]["contractNumber"].endswith("-0002")


def test_contract_number_collision_retries(client, db, job, client_user, auth_headers):
    year = datetime.utcnow().year
    # One existing row whose number is the one count+1 would produce
    db.add(Contract(
        contract_number=f"CONTRACT-{year}-0002",
        job_id=job["id"],
        client_id=client_user.id,
        title="Taken",
        content="Taken",
        status="draft",
    ))
    db.commit()

    response = client.post(
        "/api/contracts",
        json={"jobId": job["id"], "title": "Fresh", "content": "Fresh"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 201
    assert response.json()["contract"]["contractNumber"] == f"CONTRACT-{year}-0003"


def test_create_contract_requires_job_owner(client, job, make_user, auth_headers):
    stranger = make_user(UserRole.CLIENT)
    response = client.post(
        "/api/contracts",
        json={"jobId": job["id"], "title": "t", "content": "c"},
        headers=auth_headers(stranger),
    )
    assert response.status_code == 403


def test_create_contract_missing_job(client, client_user, auth_headers):
    response = client.post(
        "/api/contracts",
        json={"jobId": 999, "title": "t", "content": "c"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 404


def test_create_contract_missing_fields(client, job, client_user, auth_headers):
    response = client.post("/api/contracts", json={"jobId": job["id"]}, headers=auth_headers(client_user))
    assert response.status_code == 400


def test_client_cannot_be_own_freelancer(client, job, client_user, auth_headers):
    response = client.post(
        "/api/contracts",
        json={"jobId": job["id"], "freelancerId": client_user.id, "title": "t", "content": "c"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 400


def test_list_contracts_scoped_to_parties(client, contract, client_user, freelancer_user, admin_user, make_user, auth_headers):
    for user in (client_user, freelancer_user, admin_user):
        response = client.get("/api/contracts", headers=auth_headers(user))
        assert [c["id"] for c in response.json()["contracts"]] == [contract["id"]]

    response = client.get("/api/contracts/my-contracts", headers=auth_headers(make_user(UserRole.FREELANCER)))
    assert response.json()["contracts"] == []


def test_view_contract_permissions(client, contract, freelancer_user, admin_user, make_user, auth_headers):
    assert client.get(f"/api/contracts/{contract['id']}", headers=auth_headers(freelancer_user)).status_code == 200
    assert client.get(f"/api/contracts/{contract['id']}", headers=auth_headers(admin_user)).status_code == 200
    stranger = make_user(UserRole.FREELANCER)
    assert client.get(f"/api/contracts/{contract['id']}", headers=auth_headers(stranger)).status_code == 403
    assert client.get("/api/contracts/999", headers=auth_headers(admin_user)).status_code == 404


@pytest.mark.parametrize("first_signer", ["client", "freelancer"])
def test_both_signatures_activate(client, contract, client_user, freelancer_user, auth_headers, first_signer):
    signers = [client_user, freelancer_user] if first_signer == "client" else [freelancer_user, client_user]

    response = sign(client, contract["id"], signers[0], auth_headers)
    assert response.status_code == 200
    assert response.json()["contract"]["status"] == "draft"

    response = sign(client, contract["id"], signers[1], auth_headers)
    signed = response.json()["contract"]
    assert signed["status"] == "active"
    assert signed["clientSignatureDate"] is not None
    assert signed["freelancerSignatureDate"] is not None


def test_second_signature_attempt_is_rejected(client, contract, client_user, auth_headers):
    first = sign(client, contract["id"], client_user, auth_headers, data="first").json()["contract"]
    response = sign(client, contract["id"], client_user, auth_headers, data="second")
    assert response.status_code == 400

    stored = client.get(f"/api/contracts/{contract['id']}", headers=auth_headers(client_user)).json()["contract"]
    assert stored["clientSignatureData"] == "first"
    assert stored["clientSignatureDate"] == first["clientSignatureDate"]


def test_non_party_cannot_sign(client, contract, admin_user, make_user, auth_headers):
    assert sign(client, contract["id"], admin_user, auth_headers).status_code == 403
    assert sign(client, contract["id"], make_user(UserRole.FREELANCER), auth_headers).status_code == 403


def test_update_draft_contract(client, contract, client_user, auth_headers):
    response = client.put(
        f"/api/contracts/{contract['id']}",
        json={"title": "Revised", "totalAmount": 1500},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 200
    assert response.json()["contract"]["title"] == "Revised"
    assert response.json()["contract"]["totalAmount"] == 1500


def test_freelancer_cannot_update(client, contract, freelancer_user, auth_headers):
    response = client.put(f"/api/contracts/{contract['id']}", json={"title": "Mine"}, headers=auth_headers(freelancer_user))
    assert response.status_code == 403


def test_active_contract_is_locked(client, contract, client_user, freelancer_user, admin_user, auth_headers):
    sign(client, contract["id"], client_user, auth_headers)
    sign(client, contract["id"], freelancer_user, auth_headers)

    for user in (client_user, admin_user):
        response = client.put(
            f"/api/contracts/{contract['id']}",
            json={"totalAmount": 1},
            headers=auth_headers(user),
        )
        assert response.status_code == 400

    stored = client.get(f"/api/contracts/{contract['id']}", headers=auth_headers(client_user)).json()["contract"]
    assert stored["totalAmount"] == 1200


def test_update_cannot_jump_status(client, contract, client_user, auth_headers):
    response = client.put(
        f"/api/contracts/{contract['id']}",
        json={"status": "active"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 400

    response = client.put(
        f"/api/contracts/{contract['id']}",
        json={"status": "sent"},
        headers=auth_headers(client_user),
    )
    assert response.json()["contract"]["status"] == "sent"


def test_send_contract(client, contract, client_user, freelancer_user, auth_headers):
    assert client.post(f"/api/contracts/{contract['id']}/send", headers=auth_headers(freelancer_user)).status_code == 403

    response = client.post(f"/api/contracts/{contract['id']}/send", headers=auth_headers(client_user))
    assert response.status_code == 200
    assert response.json()["contract"]["status"] == "sent"

    assert client.post(f"/api/contracts/{contract['id']}/send", headers=auth_headers(client_user)).status_code == 400


def test_complete_contract_marks_job_completed(client, db, contract, job, client_user, freelancer_user, auth_headers):
    response = client.post(f"/api/contracts/{contract['id']}/complete", headers=auth_headers(client_user))
    assert response.status_code == 400

    sign(client, contract["id"], client_user, auth_headers)
    sign(client, contract["id"], freelancer_user, auth_headers)

    assert client.post(f"/api/contracts/{contract['id']}/complete", headers=auth_headers(freelancer_user)).status_code == 403
    response = client.post(f"/api/contracts/{contract['id']}/complete", headers=auth_headers(client_user))
    assert response.status_code == 200
    assert response.json()["contract"]["status"] == "completed"

    assert db.query(Job).filter(Job.id == job["id"]).one().status == "completed"


def test_unknown_freelancer_is_rejected(client, job, client_user, auth_headers):
    response = client.post(
        "/api/contracts",
        json={"jobId": job["id"], "freelancerId": 99999, "title": "t", "content": "c"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Freelancer not found"


def test_other_integrity_errors_are_not_retried(db, job, client_user, caplog):
    with pytest.raises(IntegrityError):
        create_contract(db, client_user.id, job_id=job["id"], title=None, content="c")
    assert db.query(Contract).count() == 0
    assert "already taken" not in caplog.text


def test_update_cannot_assign_client_as_freelancer(client, contract, client_user, freelancer_user, auth_headers):
    response = client.put(
        f"/api/contracts/{contract['id']}",
        json={"freelancerId": client_user.id},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 400

    response = client.put(
        f"/api/contracts/{contract['id']}",
        json={"freelancerId": 99999},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 404

    stored = client.get(f"/api/contracts/{contract['id']}", headers=auth_headers(client_user)).json()["contract"]
    assert stored["freelancerId"] == freelancer_user.id


def test_update_reassigns_and_clears_freelancer(client, contract, client_user, make_user, auth_headers):
    other = make_user(UserRole.FREELANCER)
    response = client.put(
        f"/api/contracts/{contract['id']}",
        json={"freelancerId": other.id},
        headers=auth_headers(client_user),
    )
    assert response.json()["contract"]["freelancerId"] == other.id

    response = client.put(
        f"/api/contracts/{contract['id']}",
        json={"freelancerId": None, "title": "Open seat"},
        headers=auth_headers(client_user),
    )
    assert response.status_code == 200
    updated = response.json()["contract"]
    assert updated["freelancerId"] is None
    assert updated["title"] == "Open seat"
