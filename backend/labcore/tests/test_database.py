import uuid
from datetime import timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from labcore import models

from .conftest import TestingSessionLocal, engine


def test_sqlite_connections_enforce_foreign_keys():
    with engine.connect() as conn:
        assert conn.exec_driver_sql("PRAGMA foreign_keys").scalar() == 1


def test_reservation_for_missing_equipment_is_rejected_by_store():
    session = TestingSessionLocal()
    try:
        user = models.User(email=f"fk-{uuid.uuid4()}@example.com", hashed_password="x")
        session.add(user)
        session.commit()
        start = models.utcnow()
        session.add(
            models.Reservation(
                equipment_id=uuid.uuid4(),
                user_id=user.id,
                start_time=start,
                end_time=start + timedelta(hours=1),
            )
        )
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()
    finally:
        session.close()
