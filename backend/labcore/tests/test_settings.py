from .conftest import client, make_member


def test_settings_read_and_update(client):
    director, _ = make_member(client, "facility_director")
    current = client.get("/api/settings", headers=director)
    assert current.status_code == 200
    original = current.json()

    updated = client.put(
        "/api/settings",
        json={"surge_pricing_enabled": True, "surge_multiplier": 1.5, "lab_closing_time": "20:00"},
        headers=director,
    )
    assert updated.status_code == 200
    body = updated.json()
    assert body["surge_pricing_enabled"] is True
    assert body["surge_multiplier"] == 1.5
    assert body["lab_closing_time"] == "20:00"
    assert body["lab_opening_time"] == original["lab_opening_time"]

    client.put(
        "/api/settings",
        json={
            "surge_pricing_enabled": original["surge_pricing_enabled"],
            "surge_multiplier": original["surge_multiplier"],
            "lab_closing_time": original["lab_closing_time"],
        },
        headers=director,
    )


def test_settings_permissions(client):
    operator, _ = make_member(client, "lab_manager")
    assert client.get("/api/settings", headers=operator).status_code == 200
    assert client.put("/api/settings", json={"no_show_penalty": 10}, headers=operator).status_code == 403

    researcher, _ = make_member(client, "researcher")
    assert client.get("/api/settings", headers=researcher).status_code == 403


def test_settings_validation(client):
    director, _ = make_member(client, "facility_director")
    assert client.put("/api/settings", json={"surge_start_time": "7pm"}, headers=director).status_code == 422
    assert client.put("/api/settings", json={"surge_multiplier": 0}, headers=director).status_code == 422


def test_clock_and_zone_validation(client):
    director, _ = make_member(client, "facility_director")
    assert client.put("/api/settings", json={"surge_end_time": "24:59"}, headers=director).status_code == 422
    assert client.put("/api/settings", json={"lab_timezone": "Mars/Olympus"}, headers=director).status_code == 422

    original = client.get("/api/settings", headers=director).json()
    updated = client.put(
        "/api/settings",
        json={"lab_timezone": "Asia/Tokyo", "surge_end_time": "24:00"},
        headers=director,
    )
    assert updated.status_code == 200
    assert updated.json()["lab_timezone"] == "Asia/Tokyo"
    assert updated.json()["surge_end_time"] == "24:00"

    client.put(
        "/api/settings",
        json={"lab_timezone": original["lab_timezone"], "surge_end_time": original["surge_end_time"]},
        headers=director,
    )
