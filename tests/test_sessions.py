from datetime import timedelta

from conftest import auth_headers, future_time, make_mentor, make_user
from mentorhub.domain.ledger.service import LedgerService
from mentorhub.models import MentoringSession, Notification, Transaction
from mentorhub.shared.time_utils import utcnow


def balance_of(client, user):
    return client.get("/api/transactions/balance", headers=auth_headers(user)).json()["balance"]


def test_booking_debits_mentee_and_notifies_both(client, db, mentee, mentor, book):
    response = book(duration=90)

    assert response.status_code == 201
    session = response.json()["session"]
    assert session["status"] == "pending"
    assert session["price"] == 90.0
    assert session["mentor"]["id"] == mentor.id
    assert session["mentor"]["expertise"] == ["Python", "Data Science"]
    assert balance_of(client, mentee) == 110.0

    payment = db.query(Transaction).filter(Transaction.type == "session_payment").one()
    assert payment.amount == -90.0
    assert payment.session_id == session["id"]
    types = {n.type for n in db.query(Notification).all()}
    assert {"session_request", "session_booked"} <= types


def test_booking_accepts_timezone_offsets(client, mentee, mentor):
    start = future_time(hour=12)
    response = client.post(
        "/api/sessions",
        json={"mentorId": mentor.id, "topic": "python", "startTime": start.isoformat() + "+02:00"},
        headers=auth_headers(mentee),
    )

    assert response.status_code == 201
    assert response.json()["session"]["startTime"].startswith((start - timedelta(hours=2)).isoformat())


def test_booking_unknown_mentor(book):
    response = book(mentor_id=9999)
    assert response.status_code == 404
    assert response.json()["detail"] == "Mentor not found"


def test_booking_pending_mentor_is_not_bookable(db, book):
    pending = make_mentor(db, "pending@example.com", status="pending")
    assert book(mentor_id=pending.id).status_code == 404


def test_booking_blocked_mentor_is_not_bookable(client, db, mentee, mentor, book):
    mentor.blocked = True
    db.commit()

    response = book()

    assert response.status_code == 404
    assert balance_of(client, mentee) == 200.0
    assert db.query(MentoringSession).count() == 0


def test_booking_topic_outside_expertise(book):
    response = book(topic="Cooking")
    assert response.status_code == 400
    assert response.json()["detail"] == "Selected topic is not in mentor's expertise"


def test_booking_yourself(db, book, mentor):
    response = book(user=mentor)
    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot book a session with yourself"


def test_booking_in_the_past(book):
    response = book(start=utcnow() - timedelta(hours=1))
    assert response.status_code == 400


def test_booking_duration_bounds(book):
    assert book(duration=15).status_code == 422
    assert book(duration=300).status_code == 422


def test_overlapping_booking_is_rejected(client, db, book):
    start = future_time()
    other = make_user(db, "other@example.com", balance=200)

    assert book(start=start, duration=60).status_code == 201
    response = book(start=start + timedelta(minutes=30), user=other)

    assert response.status_code == 409
    # Back-to-back is fine
    assert book(start=start + timedelta(minutes=60), user=other).status_code == 201


def test_insufficient_balance_rolls_back(client, db, mentor, book):
    poor = make_user(db, "poor@example.com", balance=10)

    response = book(user=poor)

    assert response.status_code == 402
    assert "Session cost: $60.00" in response.json()["detail"]
    assert "your balance: $10.00" in response.json()["detail"]
    assert db.query(MentoringSession).count() == 0
    assert db.query(Notification).count() == 0
    assert balance_of(client, poor) == 10.0


def test_mentor_lifecycle_and_escrow(client, db, mentee, mentor, book):
    session_id = book().json()["session"]["id"]
    headers = auth_headers(mentor)

    accepted = client.post(f"/api/sessions/{session_id}/accept", headers=headers)
    assert accepted.json()["session"]["status"] == "accepted"

    confirmed = client.post(f"/api/sessions/{session_id}/confirm", headers=headers)
    assert confirmed.json()["session"]["status"] == "confirmed"

    completed = client.post(f"/api/sessions/{session_id}/complete", headers=headers)
    assert completed.json()["session"]["status"] == "completed"

    assert balance_of(client, mentor) == 60.0
    assert balance_of(client, mentee) == 140.0
    earning = db.query(Transaction).filter(Transaction.type == "session_earning").one()
    assert earning.idempotency_key == f"session:{session_id}:earning"
    ledger = LedgerService(db)
    assert ledger.reconcile(mentee.id)["consistent"] is True
    assert ledger.reconcile(mentor.id)["consistent"] is True


def test_only_mentor_can_transition(client, mentee, book):
    session_id = book().json()["session"]["id"]

    response = client.post(f"/api/sessions/{session_id}/accept", headers=auth_headers(mentee))

    assert response.status_code == 403
    assert response.json()["detail"] == "Only the mentor can accept this session"


def test_invalid_transition(client, mentor, book):
    session_id = book().json()["session"]["id"]

    response = client.post(f"/api/sessions/{session_id}/confirm", headers=auth_headers(mentor))

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot confirm a session that is pending"


def test_cancel_refunds_mentee(client, db, mentee, mentor, book):
    session_id = book().json()["session"]["id"]

    response = client.post(f"/api/sessions/{session_id}/cancel", headers=auth_headers(mentor))

    assert response.status_code == 200
    body = response.json()["session"]
    assert body["status"] == "cancelled"
    assert body["cancelledBy"] == mentor.id
    assert balance_of(client, mentee) == 200.0
    assert db.query(Transaction).filter(Transaction.type == "refund").count() == 1

    again = client.post(f"/api/sessions/{session_id}/cancel", headers=auth_headers(mentor))
    assert again.status_code == 400
    assert balance_of(client, mentee) == 200.0
    assert LedgerService(db).reconcile(mentee.id) == {
        "userId": mentee.id,
        "balance": 200.0,
        "ledgerTotal": 200.0,
        "consistent": True,
    }


def test_cancelled_session_frees_the_slot(client, db, mentor, book):
    start = future_time()
    session_id = book(start=start).json()["session"]["id"]
    client.post(f"/api/sessions/{session_id}/cancel", headers=auth_headers(mentor))

    assert book(start=start).status_code == 201


def test_reschedule(client, db, mentee, mentor, book):
    session_id = book().json()["session"]["id"]
    new_start = future_time(days=3, hour=15)

    response = client.post(
        f"/api/sessions/{session_id}/reschedule",
        json={"startTime": new_start.isoformat()},
        headers=auth_headers(mentee),
    )

    assert response.status_code == 200
    assert response.json()["session"]["startTime"].startswith(new_start.isoformat())
    assert db.query(Notification).filter(Notification.type == "session_rescheduled").count() == 2


def test_reschedule_into_conflict(client, db, mentee, book):
    first = book(start=future_time(hour=9)).json()["session"]["id"]
    book(start=future_time(hour=11))

    response = client.post(
        f"/api/sessions/{first}/reschedule",
        json={"startTime": future_time(hour=11, minute=30).isoformat()},
        headers=auth_headers(mentee),
    )

    assert response.status_code == 409


def test_reschedule_over_itself_is_allowed(client, mentee, book):
    start = future_time(hour=9)
    session_id = book(start=start).json()["session"]["id"]

    response = client.post(
        f"/api/sessions/{session_id}/reschedule",
        json={"startTime": (start + timedelta(minutes=30)).isoformat()},
        headers=auth_headers(mentee),
    )

    assert response.status_code == 200


def test_reschedule_by_outsider(client, db, book):
    session_id = book().json()["session"]["id"]
    outsider = make_user(db, "outsider@example.com")

    response = client.post(
        f"/api/sessions/{session_id}/reschedule",
        json={"startTime": future_time(days=4).isoformat()},
        headers=auth_headers(outsider),
    )

    assert response.status_code == 403


def test_feedback_rules(client, mentee, mentor, book):
    session_id = book().json()["session"]["id"]
    payload = {"rating": 5, "comment": "Great"}

    early = client.post(f"/api/sessions/{session_id}/feedback", json=payload, headers=auth_headers(mentee))
    assert early.status_code == 400

    client.post(f"/api/sessions/{session_id}/accept", headers=auth_headers(mentor))
    client.post(f"/api/sessions/{session_id}/complete", headers=auth_headers(mentor))

    by_mentor = client.post(f"/api/sessions/{session_id}/feedback", json=payload, headers=auth_headers(mentor))
    assert by_mentor.status_code == 403

    ok = client.post(f"/api/sessions/{session_id}/feedback", json=payload, headers=auth_headers(mentee))
    assert ok.status_code == 200
    assert ok.json()["session"]["feedback"] == {"rating": 5, "comment": "Great"}

    twice = client.post(f"/api/sessions/{session_id}/feedback", json=payload, headers=auth_headers(mentee))
    assert twice.status_code == 400


def test_list_and_detail_visibility(client, db, mentee, mentor, book):
    session_id = book().json()["session"]["id"]
    outsider = make_user(db, "outsider@example.com")

    assert len(client.get("/api/sessions", headers=auth_headers(mentee)).json()["sessions"]) == 1
    assert len(client.get("/api/sessions", headers=auth_headers(mentor)).json()["sessions"]) == 1
    assert client.get("/api/sessions", headers=auth_headers(outsider)).json()["sessions"] == []

    assert client.get(f"/api/sessions/{session_id}", headers=auth_headers(mentee)).status_code == 200
    assert client.get(f"/api/sessions/{session_id}", headers=auth_headers(outsider)).status_code == 403
    assert client.get("/api/sessions/9999", headers=auth_headers(mentee)).status_code == 404


def test_video_token_requires_accepted_session(client, mentee, book):
    session_id = book().json()["session"]["id"]

    response = client.post(f"/api/sessions/{session_id}/token", headers=auth_headers(mentee))

    assert response.status_code == 400


def test_video_token_not_configured(client, mentee, mentor, book):
    session_id = book().json()["session"]["id"]
    client.post(f"/api/sessions/{session_id}/accept", headers=auth_headers(mentor))

    response = client.get(f"/api/sessions/{session_id}/token", headers=auth_headers(mentee))

    assert response.status_code == 503
    assert response.json()["detail"] == "Video chat is not configured"


def test_video_token_when_configured(client, monkeypatch, mentee, mentor, book):
    from jose import jwt

    from mentorhub import config

    monkeypatch.setattr(config, "TWILIO_ACCOUNT_SID", "AC123")
    monkeypatch.setattr(config, "TWILIO_API_KEY", "SK123")
    monkeypatch.setattr(config, "TWILIO_API_SECRET", "video-secret")

    session_id = book().json()["session"]["id"]
    client.post(f"/api/sessions/{session_id}/accept", headers=auth_headers(mentor))

    response = client.post(f"/api/sessions/{session_id}/token", headers=auth_headers(mentee))

    assert response.status_code == 200
    body = response.json()
    assert body["roomId"] == f"session-{session_id}"
    assert body["identity"] == f"mentee-{mentee.id}"
    claims = jwt.decode(body["token"], "video-secret", algorithms=["HS256"])
    assert claims["grants"] == {"identity": f"mentee-{mentee.id}", "video": {"room": f"session-{session_id}"}}


def test_join_pending_session_is_forbidden(client, mentee, book):
    session_id = book().json()["session"]["id"]

    response = client.post(f"/api/sessions/{session_id}/join", headers=auth_headers(mentee))

    assert response.status_code == 403
    assert response.json()["detail"] == "Session must be accepted by the mentor before joining video chat"


def test_join_accepted_session(client, mentee, mentor, book):
    session_id = book().json()["session"]["id"]
    client.post(f"/api/sessions/{session_id}/accept", headers=auth_headers(mentor))

    response = client.post(f"/api/sessions/{session_id}/join", headers=auth_headers(mentor))

    assert response.status_code == 200
    assert response.json() == {"roomId": f"session-{session_id}", "sessionId": session_id}
