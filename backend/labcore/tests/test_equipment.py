from .conftest import client, make_equipment, make_member


def test_equipment_flow(client):
    director, _ = make_member(client, "facility_director")
    eq = make_equipment(client, director, name="Thermocycler", rate_unit="per cycle", rate=5.0)
    assert eq["status"] == "available"
    assert eq["is_reservable"] is True

    upd = client.put(
        f"/api/equipment/devices/{eq['id']}",
        json={"status": "calibration", "billing_rounding": "nearest"},
        headers=director,
    )
    assert upd.status_code == 200
    assert upd.json()["status"] == "calibration"
    assert upd.json()["billing_rounding"] == "nearest"

    got = client.get(f"/api/equipment/devices/{eq['id']}", headers=director)
    assert got.json()["rate_unit"] == "per cycle"


def test_researchers_read_but_cannot_change_equipment(client):
    director, _ = make_member(client, "facility_director")
    eq = make_equipment(client, director)
    researcher, _ = make_member(client, "researcher")

    listed = client.get("/api/equipment/devices", headers=researcher)
    assert listed.status_code == 200
    assert eq["id"] in [item["id"] for item in listed.json()]

    assert client.post("/api/equipment/devices", json={"name": "Rogue"}, headers=researcher).status_code == 403
    assert (
        client.put(f"/api/equipment/devices/{eq['id']}", json={"status": "maintenance"}, headers=researcher).status_code
        == 403
    )

    supplier, _ = make_member(client, "supplier")
    assert client.get("/api/equipment/devices", headers=supplier).status_code == 403


def test_invalid_equipment_payload(client):
    director, _ = make_member(client, "facility_director")
    resp = client.post(
        "/api/equipment/devices",
        json={"name": "Scale", "rate": -1},
        headers=director,
    )
    assert resp.status_code == 422


def test_maintenance_notifies_operators_only(client, email_outbox):
    director, _ = make_member(client, "facility_director")
    operator_headers, _ = make_member(client, "lab_manager")
    researcher, _ = make_member(client, "researcher")
    eq = make_equipment(client, director, name="Mass Spec")

    resp = client.put(
        f"/api/equipment/devices/{eq['id']}",
        json={"status": "maintenance"},
        headers=operator_headers,
    )
    assert resp.status_code == 200
    assert email_outbox
    subjects = {subject for _, subject, _ in email_outbox}
    assert subjects == {"Equipment malfunction: Mass Spec"}

    me = client.get("/api/users/me", headers=researcher).json()
    assert me["email"] not in {to for to, _, _ in email_outbox}

    email_outbox.clear()
    client.put(f"/api/equipment/devices/{eq['id']}", json={"status": "maintenance"}, headers=operator_headers)
    assert email_outbox == []
