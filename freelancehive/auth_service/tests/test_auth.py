from freelancehive.auth_service.models import UserRole


def test_register(client):
    response = client.post(
        "/api/auth/register",
        json={
            "email": "Test@Example.com",
            "password": "testpass123",
            "role": "FREELANCER",
            "fullName": "Test User",
        },
    )
    assert response.status_code == 201
    data = response.json()
    assert data["user"]["email"] == "test@example.com"
    assert data["user"]["role"] == "FREELANCER"
    assert data["tokenType"] == "bearer"
    assert data["accessToken"]


def test_register_creates_profile_with_empty_wallet(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "wallet@example.com", "password": "testpass123"},
    )
    token = response.json()["accessToken"]

    balance = client.get("/api/honey/balance", headers={"Authorization": f"Bearer {token}"})
    assert balance.status_code == 200
    assert balance.json() == {"balance": 0}


def test_register_duplicate_email(client):
    payload = {"email": "dup@example.com", "password": "testpass123"}
    assert client.post("/api/auth/register", json=payload).status_code == 201
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 400


def test_register_rejects_admin_role(client):
    response = client.post(
        "/api/auth/register",
        json={"email": "boss@example.com", "password": "testpass123", "role": "ADMIN"},
    )
    assert response.status_code == 400


def test_register_validation_error_is_400(client):
    response = client.post("/api/auth/register", json={"email": "not-an-email", "password": "x"})
    assert response.status_code == 400


def test_login(client):
    # First register
    client.post(
        "/api/auth/register",
        json={"email": "testlogin@example.com", "password": "testpass123", "role": "CLIENT"},
    )

    # Then login
    response = client.post(
        "/api/auth/login",
        json={"email": "testlogin@example.com", "password": "testpass123"},
    )
    assert response.status_code == 200
    data = response.json()
    assert "accessToken" in data
    assert data["user"]["email"] == "testlogin@example.com"


def test_login_wrong_password(client):
    client.post("/api/auth/register", json={"email": "wrong@example.com", "password": "testpass123"})
    response = client.post("/api/auth/login", json={"email": "wrong@example.com", "password": "nope12345"})
    assert response.status_code == 401


def test_me(client, make_user, auth_headers):
    user = make_user(UserRole.FREELANCER)
    response = client.get("/api/auth/me", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["id"] == user.id


def test_me_requires_token(client):
    response = client.get("/api/auth/me")
    assert response.status_code == 401


def test_me_rejects_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_inactive_user_is_rejected(client, make_user, auth_headers):
    user = make_user(is_active=False)
    response = client.get("/api/auth/me", headers=auth_headers(user))
    assert response.status_code == 401


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
