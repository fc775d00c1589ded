"""Tests for password auth, refresh and caller identity endpoints."""

from tests.helpers.seed import create_google_account, create_password_account


def test_register_then_signin(client, issuer) -> None:
    response = client.post(
        "/auth/register",
        json={"name": "Shopper", "email": "Shopper@Example.com", "password": "Secret123!"},
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}

    response = client.post("/auth/signin", json={"email": "shopper@example.com", "password": "Secret123!"})

    assert response.status_code == 200
    data = response.json()
    claims = issuer.verify_access_token(data["accessToken"])
    assert claims.subject_id == data["idUser"]
    assert claims.role == "user"


def test_register_duplicate_email(client, store) -> None:
    create_password_account(store, email="shopper@example.com")

    response = client.post(
        "/auth/register",
        json={"name": "Again", "email": "shopper@example.com", "password": "Secret123!"},
    )

    assert response.status_code == 409
    assert response.json()["error"] == "EMAIL_ALREADY_REGISTERED"


def test_register_missing_fields(client) -> None:
    response = client.post("/auth/register", json={"email": "x@example.com"})

    assert response.status_code == 400
    assert response.json()["error"] == "MISSING_PARAMETER"


def test_signin_wrong_password(client, store) -> None:
    create_password_account(store, email="shopper@example.com", password="Secret123!")

    response = client.post("/auth/signin", json={"email": "shopper@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_CREDENTIALS"


def test_signin_unknown_email(client) -> None:
    response = client.post("/auth/signin", json={"email": "ghost@example.com", "password": "whatever"})

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_CREDENTIALS"


def test_oauth_only_account_cannot_use_password(client, store) -> None:
    create_google_account(store, email="a@b.com")

    response = client.post("/auth/signin", json={"email": "a@b.com", "password": "Secret123!"})

    assert response.status_code == 403
    assert response.json()["error"] == "OAUTH_ONLY_ACCOUNT"


def test_refresh_issues_new_pair(client, issuer) -> None:
    credentials = issuer.issue("u1", "Ada", "customer")

    response = client.post("/auth/refresh", json={"refreshToken": credentials.refresh_token})

    assert response.status_code == 200
    data = response.json()
    assert issuer.verify_access_token(data["accessToken"]).subject_id == "u1"
    assert data["refreshToken"]
    assert data["tokenType"] == "bearer"


def test_refresh_rejects_access_token(client, issuer) -> None:
    credentials = issuer.issue("u1", "Ada", "customer")

    response = client.post("/auth/refresh", json={"refreshToken": credentials.access_token})

    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_REFRESH_TOKEN"


def test_refresh_requires_token(client) -> None:
    response = client.post("/auth/refresh", json={})

    assert response.status_code == 400
    assert response.json()["error"] == "MISSING_PARAMETER"


def test_refresh_treats_empty_token_as_missing(client) -> None:
    response = client.post("/auth/refresh", json={"refreshToken": ""})

    assert response.status_code == 400
    assert response.json()["error"] == "MISSING_PARAMETER"
    assert response.json()["message"] == "Refresh token is required"


def test_me_returns_claims(client, issuer) -> None:
    credentials = issuer.issue("u1", "Ada", "admin")

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {credentials.access_token}"})

    assert response.status_code == 200
    data = response.json()
    assert data["subject_id"] == "u1"
    assert data["role"] == "admin"


def test_me_requires_bearer_header(client, issuer) -> None:
    credentials = issuer.issue("u1", "Ada", "admin")

    missing = client.get("/auth/me")
    wrong_scheme = client.get("/auth/me", headers={"Authorization": f"Token {credentials.access_token}"})
    garbage = client.get("/auth/me", headers={"Authorization": "Bearer garbage"})

    for response in (missing, wrong_scheme, garbage):
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"
    assert missing.json()["message"] == "Authorization header is required"


def test_health(client) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]
