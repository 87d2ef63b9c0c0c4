from freelancehive.auth_service.models import User, UserRole


def test_admin_routes_require_admin(client, client_user, auth_headers):
    headers = auth_headers(client_user)
    assert client.get("/api/admin/users", headers=headers).status_code == 403
    assert client.get("/api/admin/dashboard/stats", headers=headers).status_code == 403
    assert client.get("/api/admin/users").status_code == 401


def test_dashboard_stats(client, admin_user, client_user, freelancer_user, auth_headers):
    client.post("/api/honey/purchase", json={"amount": 12}, headers=auth_headers(freelancer_user))
    client.post(
        "/api/jobs",
        json={"title": "Copy", "description": "Landing page copy"},
        headers=auth_headers(client_user),
    )

    stats = client.get("/api/admin/dashboard/stats", headers=auth_headers(admin_user)).json()["stats"]
    assert stats == {
        "totalUsers": 3,
        "totalJobs": 1,
        "totalApplications": 0,
        "totalContracts": 0,
        "activeContracts": 0,
        "totalRevenue": 12,
    }


def test_list_users_filters_and_paginates(client, admin_user, make_user, auth_headers):
    for _ in range(3):
        make_user(UserRole.FREELANCER)
    make_user(UserRole.CLIENT, email="findme@example.com", is_active=False)
    headers = auth_headers(admin_user)

    body = client.get("/api/admin/users", params={"role": "FREELANCER", "limit": 2}, headers=headers).json()
    assert len(body["users"]) == 2
    assert body["pagination"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}

    body = client.get("/api/admin/users", params={"isActive": "false"}, headers=headers).json()
    assert [u["email"] for u in body["users"]] == ["findme@example.com"]

    body = client.get("/api/admin/users", params={"search": "findme"}, headers=headers).json()
    assert body["users"][0]["profile"]["honeyDropsBalance"] == 0


def test_deactivated_user_is_locked_out(client, admin_user, freelancer_user, auth_headers):
    headers = auth_headers(freelancer_user)
    assert client.get("/api/auth/me", headers=headers).status_code == 200

    response = client.put(
        f"/api/admin/users/{freelancer_user.id}",
        json={"isActive": False},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["user"]["isActive"] is False

    assert client.get("/api/auth/me", headers=headers).status_code == 401
    assert client.get("/api/honey/balance", headers=headers).status_code == 401

    client.put(f"/api/admin/users/{freelancer_user.id}", json={"isActive": True}, headers=auth_headers(admin_user))
    assert client.get("/api/auth/me", headers=headers).status_code == 200


def test_update_user_role_and_verification(client, admin_user, client_user, freelancer_user, auth_headers):
    headers = auth_headers(admin_user)
    response = client.put(
        f"/api/admin/users/{client_user.id}",
        json={"role": "FREELANCER", "emailVerified": True},
        headers=headers,
    )
    user = response.json()["user"]
    assert user["role"] == "FREELANCER"
    assert user["emailVerified"] is True

    response = client.put(
        f"/api/admin/users/{client_user.id}",
        json={"email": freelancer_user.email},
        headers=headers,
    )
    assert response.status_code == 400
    assert client.put("/api/admin/users/999", json={"isActive": False}, headers=headers).status_code == 404


def test_delete_user(client, db, admin_user, freelancer_user, auth_headers):
    headers = auth_headers(admin_user)
    assert client.delete(f"/api/admin/users/{admin_user.id}", headers=headers).status_code == 400
    assert client.delete("/api/admin/users/999", headers=headers).status_code == 404

    response = client.delete(f"/api/admin/users/{freelancer_user.id}", headers=headers)
    assert response.status_code == 200
    assert db.query(User).filter(User.id == freelancer_user.id).count() == 0
