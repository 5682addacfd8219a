from hotel_common.models import RoleEnum
from hotel_common.rate_limit import limiter

ADMIN_PAYLOAD = {
    "name": "Admin",
    "email": "admin@example.com",
    "password": "Passw0rd!",
    "role": RoleEnum.ADMIN.value,
}


def auth_header(client, email: str, password: str) -> dict[str, str]:
    response = client.post(
        "/users/login",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


def test_user_registration_and_listing(users_client):
    admin_resp = users_client.post("/users/register", json=ADMIN_PAYLOAD)
    assert admin_resp.status_code == 201
    assert admin_resp.json()["role"] == "admin"

    user_resp = users_client.post(
        "/users/register",
        json={"name": "Jane", "email": "Jane@Example.com", "password": "Passw0rd!"},
    )
    assert user_resp.status_code == 201
    assert user_resp.json()["email"] == "jane@example.com"
    assert user_resp.json()["role"] == "user"

    headers = auth_header(users_client, "admin@example.com", "Passw0rd!")
    list_resp = users_client.get("/users", headers=headers)
    assert list_resp.status_code == 200
    assert len(list_resp.json()) == 2


def test_second_admin_is_refused(users_client):
    users_client.post("/users/register", json=ADMIN_PAYLOAD)
    response = users_client.post(
        "/users/register",
        json={**ADMIN_PAYLOAD, "email": "other-admin@example.com"},
    )
    assert response.status_code == 403


def test_duplicate_email(users_client):
    users_client.post("/users/register", json=ADMIN_PAYLOAD)
    response = users_client.post("/users/register", json={**ADMIN_PAYLOAD, "role": "user"})
    assert response.status_code == 400


def test_login_and_me(users_client):
    users_client.post("/users/register", json={"name": "Sam", "email": "sam@example.com", "password": "secret1"})

    bad = users_client.post("/users/login", data={"username": "sam@example.com", "password": "wrong"})
    assert bad.status_code == 401

    headers = auth_header(users_client, "sam@example.com", "secret1")
    me = users_client.get("/users/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["name"] == "Sam"


def test_regular_user_cannot_list_users(users_client):
    users_client.post("/users/register", json={"name": "Sam", "email": "sam@example.com", "password": "secret1"})
    headers = auth_header(users_client, "sam@example.com", "secret1")
    assert users_client.get("/users", headers=headers).status_code == 403


def test_throttled_registration_returns_json_error(users_client, monkeypatch):
    monkeypatch.setattr(limiter, "enabled", True)

    responses = [
        users_client.post(
            "/users/register",
            json={"name": f"Guest {n}", "email": f"guest{n}@example.com", "password": "secret1"},
        )
        for n in range(6)
    ]

    assert [r.status_code for r in responses[:5]] == [201] * 5
    assert responses[5].status_code == 429
    assert responses[5].json()["service"] == "users"
    assert responses[5].json()["code"] == "rate_limited"
