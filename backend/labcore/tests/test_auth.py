from .conftest import client


def test_register_and_login(client):
    resp = client.post("/api/auth/register", json={"email": "test@example.com", "password": "secret"})
    assert resp.status_code == 200
    token = resp.json()["access_token"]
    assert token
    resp2 = client.post("/api/auth/login", json={"email": "test@example.com", "password": "secret"})
    assert resp2.status_code == 200


def test_duplicate_registration_and_bad_password(client):
    client.post("/api/auth/register", json={"email": "dupe@example.com", "password": "secret"})
    again = client.post("/api/auth/register", json={"email": "dupe@example.com", "password": "secret"})
    assert again.status_code == 400
    wrong = client.post("/api/auth/login", json={"email": "dupe@example.com", "password": "nope"})
    assert wrong.status_code == 401
