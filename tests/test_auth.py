from studykit.auth.deps import COOKIE_NAME


def _register(client, email="carol@example.com", password="correct horse"):
    return client.post("/auth/register", json={"name": "Carol", "email": email, "password": password})


def test_register_returns_token_and_sets_cookie(client):
    response = _register(client)

    assert response.status_code == 201
    token = response.json()["access_token"]
    assert response.cookies.get(COOKIE_NAME) == token

    listed = client.get("/api/documents", headers={"Authorization": f"Bearer {token}"})
    assert listed.status_code == 200
    assert listed.json() == []


def test_duplicate_email_is_rejected(client):
    _register(client)

    assert _register(client).status_code == 400


def test_login_checks_password(client):
    _register(client)

    ok = client.post("/auth/login", json={"email": "carol@example.com", "password": "correct horse"})
    bad = client.post("/auth/login", json={"email": "carol@example.com", "password": "wrong horse"})

    assert ok.status_code == 200
    assert bad.status_code == 401


def test_logout_clears_cookie(client):
    _register(client)

    response = client.post("/auth/logout")

    assert response.json() == {"ok": True}
    assert COOKIE_NAME in response.headers.get("set-cookie", "")
