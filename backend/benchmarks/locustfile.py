import random
import uuid
from datetime import datetime, timedelta, timezone

from locust import HttpUser, task, between

# every user competes for the same few hours on whichever instrument it picks
BASE_DAY = (datetime.now(timezone.utc) + timedelta(days=7)).replace(hour=9, minute=0, second=0, microsecond=0)


class LabUser(HttpUser):
    wait_time = between(1, 3)

    def on_start(self):
        payload = {"email": f"load-{uuid.uuid4().hex[:8]}@lab.com", "password": "password"}
        r = self.client.post("/api/auth/register", json=payload)
        if r.status_code != 200:
            r = self.client.post("/api/auth/login", json=payload)
        token = r.json().get("access_token")
        self.headers = {"Authorization": f"Bearer {token}"}
        devices = self.client.get("/api/equipment/devices", headers=self.headers).json()
        self.equipment_ids = [d["id"] for d in devices] if isinstance(devices, list) else []

    def _window(self):
        start = BASE_DAY + timedelta(minutes=15 * random.randint(0, 16))
        return start, start + timedelta(minutes=random.choice((30, 60, 90)))

    @task(3)
    def book_contested_slot(self):
        if not self.equipment_ids:
            return
        start, end = self._window()
        equipment_id = random.choice(self.equipment_ids)
        body = {"equipment_id": equipment_id, "start_time": start.isoformat(), "end_time": end.isoformat()}
        with self.client.post("/api/reservations", json=body, headers=self.headers, catch_response=True) as r:
            if r.status_code == 409:
                r.success()
                self.client.post(
                    "/api/waitlist",
                    json={
                        "equipment_id": equipment_id,
                        "requested_start": body["start_time"],
                        "requested_end": body["end_time"],
                    },
                    headers=self.headers,
                )

    @task(2)
    def list_reservations(self):
        self.client.get("/api/reservations", headers=self.headers)

    @task(1)
    def estimate(self):
        if not self.equipment_ids:
            return
        start, end = self._window()
        self.client.get(
            "/api/billing/estimate",
            params={
                "equipment_id": random.choice(self.equipment_ids),
                "start_time": start.isoformat(),
                "end_time": end.isoformat(),
            },
            headers=self.headers,
        )
