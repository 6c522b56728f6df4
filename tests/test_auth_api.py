from vendorsettle.db.database import SessionLocal
from vendorsettle.models.security import AuditLog


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_owner_signup_creates_approved_business(client, register, login):
    created = register("owner@alpha.test", "alpha_owner", "alpha", role="owner")
    assert created["role"] == "business_owner"
    assert created["approval_status"] == "approved"

    headers = login("owner@alpha.test")
    me = client.get("/auth/me", headers=headers).json()
    assert me["username"] == "alpha_owner"
    assert me["business_id"] == created["business_id"]


def test_duplicate_business_code_is_rejected(client, register):
    register("owner@alpha.test", "alpha_owner", "ALPHA", role="business_owner")
    response = client.post(
        "/auth/signup",
        json={
            "email": "other@alpha.test",
            "username": "other_owner",
            "password": "Password123!",
            "business_code": "alpha",
            "role": "business_owner",
        },
    )
    assert response.status_code == 409


def test_worker_signup_requires_existing_business(client):
    response = client.post(
        "/auth/signup",
        json={
            "email": "worker@nowhere.test",
            "username": "lost_worker",
            "password": "Password123!",
            "businessCode": "NOWHERE",
        },
    )
    assert response.status_code == 404


def test_worker_must_be_approved_before_login(client, owner_headers, register, login):
    created = register("worker@alpha.test", "alpha_worker", "ALPHA")
    assert created["approval_status"] == "pending"

    pending = client.post("/auth/login", json={"identity": "alpha_worker", "password": "Password123!"})
    assert pending.status_code == 403

    listed = client.get("/auth/pending-users", headers=owner_headers).json()
    assert [user["id"] for user in listed] == [created["user_id"]]

    approved = client.post(f"/auth/users/{created['user_id']}/approve", headers=owner_headers)
    assert approved.json()["approval_status"] == "approved"
    again = client.post(f"/auth/users/{created['user_id']}/approve", headers=owner_headers)
    assert again.status_code == 409

    assert client.get("/auth/me", headers=login("alpha_worker")).status_code == 200


def test_rejected_worker_cannot_login(client, owner_headers, register):
    created = register("worker@alpha.test", "alpha_worker", "ALPHA")
    client.post(f"/auth/users/{created['user_id']}/reject", headers=owner_headers)
    response = client.post("/auth/login", json={"email": "worker@alpha.test", "password": "Password123!"})
    assert response.status_code == 403


def test_owner_cannot_approve_other_business_users(client, other_owner_headers, owner_headers, register):
    created = register("worker@alpha.test", "alpha_worker", "ALPHA")
    response = client.post(f"/auth/users/{created['user_id']}/approve", headers=other_owner_headers)
    assert response.status_code == 403


def test_worker_lacks_owner_permissions(client, worker_headers):
    assert client.get("/auth/pending-users", headers=worker_headers).status_code == 403


def test_bad_credentials_and_tokens(client, owner_headers):
    wrong = client.post("/auth/login", json={"identity": "alpha_owner", "password": "not-the-password"})
    assert wrong.status_code == 401
    assert client.get("/auth/me").status_code == 401
    assert client.get("/auth/me", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_token_endpoint_accepts_form_login_and_header_fallback(client, owner_headers):
    response = client.post("/auth/token", data={"username": "owner@alpha.test", "password": "Password123!"})
    assert response.status_code == 200
    token = response.json()["access_token"]
    assert client.get("/auth/me", headers={"x-access-token": token}).status_code == 200


def test_signup_and_login_are_audited(client, owner_headers):
    with SessionLocal() as db:
        events = {log.event_type for log in db.query(AuditLog).all()}
    assert {"auth.signup", "auth.login.success"} <= events
