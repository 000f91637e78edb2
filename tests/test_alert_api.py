"""Alert dispatch API tests."""

from sqlalchemy import select, update

from safetrail.models import Alert, AlertSession


def test_partial_failure_still_returns_200(client, created_session, notifier, db):
    notifier.failing.add("+33698765432")

    r = client.post("/alert/send", json={"sessionId": created_session["sessionId"]})

    assert r.status_code == 200
    assert r.json() == {"success": True, "sent": 1, "failed": 1, "message": "1 alert(s) sent, 1 failed"}
    statuses = {a.contact_phone: a.status for a in db.execute(select(Alert)).scalars()}
    assert statuses == {"+33612345678": "sent", "+33698765432": "failed"}


def test_unknown_session_is_forbidden(client, notifier):
    r = client.post("/alert/send", json={"sessionId": "missing"})
    assert r.status_code == 403
    assert r.json() == {"error": "not-found"}
    assert notifier.sent == []


def test_expired_session_is_forbidden(client, created_session, notifier, db):
    session_id = created_session["sessionId"]
    db.execute(update(AlertSession).where(AlertSession.session_id == session_id).values(expires_at=1))
    db.commit()

    r = client.post("/alert/send", json={"sessionId": session_id})
    assert r.status_code == 403
    assert r.json() == {"error": "expired"}
    assert notifier.sent == []


def test_missing_session_id_is_rejected(client):
    r = client.post("/alert/send", json={})
    assert r.status_code == 400
    assert r.json()["error"].startswith("sessionId")
