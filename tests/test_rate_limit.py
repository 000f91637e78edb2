"""Rate limiting tests."""


def test_session_creation_is_rate_limited(client, session_payload):
    for _ in range(5):
        assert client.post("/session", json=session_payload).status_code == 201

    r = client.post("/session", json=session_payload)
    assert r.status_code == 429
    assert r.json() == {"error": "Too many sessions created. Try again in an hour."}


def test_alert_send_is_rate_limited(client, created_session):
    session_id = created_session["sessionId"]
    for _ in range(10):
        assert client.post("/alert/send", json={"sessionId": session_id}).status_code == 200

    r = client.post("/alert/send", json={"sessionId": session_id})
    assert r.status_code == 429
    assert r.json() == {"error": "Too many alerts sent. Try again in an hour."}


def test_reads_are_not_limited_by_creation_limit(client, created_session):
    for _ in range(10):
        assert client.get(f"/session/{created_session['sessionId']}").status_code == 200
