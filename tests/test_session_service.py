"""Session store tests."""

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import select, update

from safetrail.core.errors import SessionNotFoundError
from safetrail.core.security import hash_pin, verify_pin
from safetrail.db.session import SessionLocal
from safetrail.models import AlertSession, GpsPosition
from safetrail.schemas.gps import GpsPositionSchema
from safetrail.schemas.session import ContactIn
from safetrail.services import session_service
from safetrail.services.session_service import (
    create_session,
    deactivate_session,
    get_session_track,
    is_session_valid,
    record_gps_position,
    sweep_expired_sessions,
)

CONTACTS = [ContactIn(name="Paul", phone="+33612345678"), ContactIn(name="Lea", phone="+33698765432")]


def _create(db, minutes=None):
    return create_session(db, "Marie", CONTACTS, "1234", duration_minutes=minutes)


def _force_expired(db, session_id):
    db.execute(update(AlertSession).where(AlertSession.session_id == session_id).values(expires_at=1))
    db.commit()
    db.expire_all()


def _position(session_id, ts, **overrides):
    data = {"sessionId": session_id, "latitude": 48.8566, "longitude": 2.3522, "accuracy": 10, "timestamp": ts}
    data.update(overrides)
    return GpsPositionSchema.model_validate(data)


def test_pin_hash_is_salted_and_verifiable():
    first, second = hash_pin("1234"), hash_pin("1234")
    assert first != second
    assert "1234" not in first
    assert verify_pin("1234", first)
    assert not verify_pin("0000", first)
    assert not verify_pin("1234", "not-a-bcrypt-hash")


def test_create_session_defaults(db):
    session = _create(db)
    assert session.status == "active"
    assert session.expires_at - session.created_at == 60 * 60_000
    assert session.pin_hash != "1234"
    assert [c.name for c in session.contacts] == ["Paul", "Lea"]
    assert session.last_gps_update is None


def test_create_session_custom_duration(db):
    session = _create(db, minutes=5)
    assert session.expires_at - session.created_at == 5 * 60_000


def test_session_ids_are_unique(db):
    ids = {_create(db).session_id for _ in range(5)}
    assert len(ids) == 5


def test_is_session_valid_unknown(db):
    result = is_session_valid(db, "missing")
    assert not result.valid
    assert result.session is None
    assert result.reason == "not-found"


def test_is_session_valid_lazily_expires(db):
    session = _create(db)
    _force_expired(db, session.session_id)

    result = is_session_valid(db, session.session_id)
    assert not result.valid
    assert result.reason == "expired"
    assert db.get(AlertSession, session.session_id).status == "expired"


def test_deactivate_with_wrong_pin(db):
    session = _create(db)
    result = deactivate_session(db, session.session_id, "9999")
    assert not result.success
    assert result.reason == "incorrect-pin"
    assert is_session_valid(db, session.session_id).valid


def test_deactivate_unknown_session(db):
    result = deactivate_session(db, "missing", "1234")
    assert not result.success
    assert result.reason == "not-found"


def test_deactivate_is_terminal(db):
    session = _create(db)
    assert deactivate_session(db, session.session_id, "1234").success
    result = is_session_valid(db, session.session_id)
    assert not result.valid
    assert result.reason == "deactivated"

    # Correct PIN again: no-op success, status unchanged
    assert deactivate_session(db, session.session_id, "1234").success
    db.expire_all()
    assert db.get(AlertSession, session.session_id).status == "deactivated"


def test_expired_session_is_not_deactivated(db):
    session = _create(db)
    _force_expired(db, session.session_id)
    assert not is_session_valid(db, session.session_id).valid

    assert deactivate_session(db, session.session_id, "1234").success
    db.expire_all()
    assert db.get(AlertSession, session.session_id).status == "expired"


def test_record_gps_position_updates_last_gps_update(db):
    session = _create(db)
    assert record_gps_position(db, _position(session.session_id, 1000))
    assert record_gps_position(db, _position(session.session_id, 3000))
    # Late sample does not move last_gps_update backwards
    assert record_gps_position(db, _position(session.session_id, 2000))

    db.expire_all()
    assert db.get(AlertSession, session.session_id).last_gps_update == 3000


def test_record_gps_position_ignores_duplicate_timestamp(db):
    session = _create(db)
    assert record_gps_position(db, _position(session.session_id, 1000))
    assert not record_gps_position(db, _position(session.session_id, 1000, latitude=0.0))

    rows = db.execute(select(GpsPosition)).scalars().all()
    assert len(rows) == 1
    assert rows[0].latitude == 48.8566


def test_record_gps_position_unknown_session(db):
    with pytest.raises(SessionNotFoundError):
        record_gps_position(db, _position("missing", 1000))


def test_record_gps_position_accepted_after_deactivation(db):
    session = _create(db)
    deactivate_session(db, session.session_id, "1234")
    assert record_gps_position(db, _position(session.session_id, 1000))


def test_track_is_ascending_and_bounded(db):
    session = _create(db)
    for ts in (5000, 1000, 3000, 2000, 4000):
        record_gps_position(db, _position(session.session_id, ts))

    assert [p.timestamp for p in get_session_track(db, session.session_id)] == [1000, 2000, 3000, 4000, 5000]
    # Most recent samples win when the track is truncated
    assert [p.timestamp for p in get_session_track(db, session.session_id, limit=2)] == [4000, 5000]


def test_track_of_unknown_session_is_empty(db):
    assert get_session_track(db, "missing") == []


def test_sweep_expired_sessions(db):
    overdue = _create(db)
    current = _create(db)
    deactivated = _create(db)
    deactivate_session(db, deactivated.session_id, "1234")
    db.execute(
        update(AlertSession)
        .where(AlertSession.session_id.in_([overdue.session_id, deactivated.session_id]))
        .values(expires_at=1)
    )
    db.commit()

    assert sweep_expired_sessions(db) == 1
    db.expire_all()
    assert db.get(AlertSession, overdue.session_id).status == "expired"
    assert db.get(AlertSession, current.session_id).status == "active"
    assert db.get(AlertSession, deactivated.session_id).status == "deactivated"


def test_validity_uses_current_time(db, monkeypatch):
    session = _create(db, minutes=1)
    expires_at = session.expires_at
    monkeypatch.setattr(session_service, "now_ms", lambda: expires_at + 1)
    assert is_session_valid(db, session.session_id).reason == "expired"


def test_concurrent_deactivation_ends_deactivated(db):
    session_id = _create(db).session_id

    def attempt(_):
        local = SessionLocal()
        try:
            return deactivate_session(local, session_id, "1234").success
        finally:
            local.close()

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(attempt, range(4)))

    assert all(results)
    db.expire_all()
    assert db.get(AlertSession, session_id).status == "deactivated"
