import uuid
from datetime import timedelta

from labcore import models
from labcore.rbac import PermissionResolver, Principal
from labcore.services import waitlist
from labcore.services.outcomes import IllegalStateTransition
from labcore.services.scheduling import TimeInterval

from .conftest import TestingSessionLocal, client, future_window, make_equipment, make_member


def _join(client, headers, equipment_id, window):
    start, end = window
    return client.post(
        "/api/waitlist",
        json={"equipment_id": equipment_id, "requested_start": start, "requested_end": end},
        headers=headers,
    )


def test_conflict_then_waitlist_flow(client):
    director, _ = make_member(client, "facility_director")
    equipment = make_equipment(client, director)
    holder, _ = make_member(client, "researcher", company_id=uuid.uuid4())
    waiter, waiter_id = make_member(client, "researcher", company_id=uuid.uuid4())
    window = future_window(hours_ahead=120)

    start, end = window
    booked = client.post(
        "/api/reservations",
        json={"equipment_id": equipment["id"], "start_time": start, "end_time": end},
        headers=holder,
    )
    assert booked.status_code == 200
    conflict = client.post(
        "/api/reservations",
        json={"equipment_id": equipment["id"], "start_time": start, "end_time": end},
        headers=waiter,
    )
    assert conflict.status_code == 409
    assert conflict.json()["detail"]["waitlist_available"] is True

    entry = _join(client, waiter, equipment["id"], window)
    assert entry.status_code == 200, entry.text
    body = entry.json()
    assert body["status"] == "pending"
    assert body["user_id"] == str(waiter_id)

    duplicate = _join(client, waiter, equipment["id"], window)
    assert duplicate.json()["id"] == body["id"]

    listed = client.get("/api/waitlist", params={"equipment_id": equipment["id"]}, headers=waiter).json()
    assert [e["id"] for e in listed] == [body["id"]]
    assert client.get("/api/waitlist", params={"equipment_id": equipment["id"]}, headers=holder).json() == []

    operator, _ = make_member(client, "lab_manager")
    assert len(client.get("/api/waitlist", params={"equipment_id": equipment["id"]}, headers=operator).json()) == 1


def test_cancelling_entries(client):
    director, _ = make_member(client, "facility_director")
    equipment = make_equipment(client, director)
    waiter, _ = make_member(client, "researcher", company_id=uuid.uuid4())
    entry = _join(client, waiter, equipment["id"], future_window(hours_ahead=130)).json()

    stranger, _ = make_member(client, "researcher", company_id=uuid.uuid4())
    assert client.post(f"/api/waitlist/{entry['id']}/cancel", headers=stranger).status_code == 403

    cancelled = client.post(f"/api/waitlist/{entry['id']}/cancel", headers=waiter)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"

    again = client.post(f"/api/waitlist/{entry['id']}/cancel", headers=waiter)
    assert again.status_code == 409
    assert again.json()["detail"]["current_status"] == "cancelled"

    assert client.post(f"/api/waitlist/{uuid.uuid4()}/cancel", headers=waiter).status_code == 404


def test_waitlist_rejects_bad_requests(client):
    director, _ = make_member(client, "facility_director")
    equipment = make_equipment(client, director)
    waiter, _ = make_member(client, "researcher")
    start, end = future_window(hours_ahead=140)

    inverted = _join(client, waiter, equipment["id"], (end, start))
    assert inverted.status_code == 422
    assert inverted.json()["detail"]["field"] == "requested_end"

    assert _join(client, waiter, str(uuid.uuid4()), (start, end)).status_code == 404

    supplier, _ = make_member(client, "supplier")
    assert _join(client, supplier, equipment["id"], (start, end)).status_code == 403


def test_second_cancel_names_the_entry():
    session = TestingSessionLocal()
    resolver = PermissionResolver()
    try:
        user = models.User(
            email=f"wl-{uuid.uuid4()}@example.com",
            hashed_password="x",
            role="researcher",
            company_id=uuid.uuid4(),
        )
        equipment = models.Equipment(name="Plate reader", rate=500.0)
        session.add_all([user, equipment])
        session.commit()
        principal = Principal.from_user(user)

        start = models.utcnow().replace(microsecond=0) + timedelta(days=9)
        queued = waitlist.enqueue(
            session, resolver, principal, equipment.id, TimeInterval(start, start + timedelta(hours=2))
        )
        assert queued.ok
        session.commit()
        entry_id = queued.value.id

        assert waitlist.cancel_entry(session, resolver, principal, entry_id).ok
        session.commit()
        again = waitlist.cancel_entry(session, resolver, principal, entry_id)
        assert isinstance(again.failure, IllegalStateTransition)
        assert again.failure.target_id == entry_id
        assert again.failure.current_status == "cancelled"
    finally:
        session.close()
