import uuid

from .conftest import client, ensure_auth_headers, make_member


def test_profile_carries_role_and_tenant(client):
    company = uuid.uuid4()
    headers, email = ensure_auth_headers(client, company_id=company)
    resp = client.get("/api/users/me", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["email"] == email
    assert data["role"] == "researcher"
    assert data["company_id"] == str(company)


def test_user_list_is_scope_filtered(client):
    company = uuid.uuid4()
    manager, manager_id = make_member(client, "project_manager", company_id=company)
    _, colleague_id = make_member(client, "researcher", company_id=company)
    _, outsider_id = make_member(client, "researcher", company_id=uuid.uuid4())

    visible = {user["id"] for user in client.get("/api/users/", headers=manager).json()}
    assert {str(manager_id), str(colleague_id)} <= visible
    assert str(outsider_id) not in visible

    researcher, _ = make_member(client, "researcher", company_id=company)
    assert client.get("/api/users/", headers=researcher).json() == []


def test_role_assignment_rules(client):
    company = uuid.uuid4()
    manager, _ = make_member(client, "project_manager", company_id=company)
    _, colleague_id = make_member(client, "researcher", company_id=company)
    _, outsider_id = make_member(client, "researcher", company_id=uuid.uuid4())

    promoted = client.put(f"/api/users/{colleague_id}/role", json={"role": "project_manager"}, headers=manager)
    assert promoted.status_code == 200
    assert promoted.json()["role"] == "project_manager"

    escalated = client.put(f"/api/users/{colleague_id}/role", json={"role": "lab_manager"}, headers=manager)
    assert escalated.status_code == 403

    foreign = client.put(f"/api/users/{outsider_id}/role", json={"role": "project_manager"}, headers=manager)
    assert foreign.status_code == 403

    director, _ = make_member(client, "facility_director")
    granted = client.put(f"/api/users/{outsider_id}/role", json={"role": "lab_manager"}, headers=director)
    assert granted.status_code == 200

    assert client.put(f"/api/users/{uuid.uuid4()}/role", json={"role": "researcher"}, headers=director).status_code == 404
    assert client.put(f"/api/users/{outsider_id}/role", json={"role": "admin"}, headers=director).status_code == 422
