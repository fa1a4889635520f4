from datetime import timedelta

from conftest import auth_headers, future_time, make_mentor, make_user
from mentorhub.domain.group_sessions.service import advance_status
from mentorhub.models import GroupSession, Notification, Transaction


def group_payload(**overrides):
    payload = {
        "title": "Intro to pandas",
        "description": "Hands-on dataframe basics",
        "startTime": future_time(days=5, hour=16).isoformat(),
        "duration": 90,
        "maxParticipants": 2,
        "price": 15,
        "topics": ["Python", "pandas"],
        "skillLevel": "beginner",
    }
    payload.update(overrides)
    return payload


def create_group(client, mentor, **overrides):
    response = client.post("/api/group-sessions", json=group_payload(**overrides), headers=auth_headers(mentor))
    assert response.status_code == 201
    return response.json()["groupSession"]


def balance_of(client, user):
    return client.get("/api/transactions/balance", headers=auth_headers(user)).json()["balance"]


def test_create_group_session(client, mentor):
    gs = create_group(client, mentor)

    assert gs["status"] == "scheduled"
    assert gs["mentor"]["id"] == mentor.id
    assert gs["participantCount"] == 0
    assert gs["remainingSpots"] == 2
    assert gs["isFull"] is False


def test_create_requires_approved_mentor(client, db, mentee):
    pending = make_mentor(db, "pending@example.com", status="pending")

    assert client.post("/api/group-sessions", json=group_payload(), headers=auth_headers(mentee)).status_code == 403
    response = client.post("/api/group-sessions", json=group_payload(), headers=auth_headers(pending))
    assert response.status_code == 403
    assert response.json()["detail"] == "Only approved mentors can create group sessions"


def test_create_in_the_past(client, mentor):
    past = (future_time(days=-1)).isoformat()
    response = client.post("/api/group-sessions", json=group_payload(startTime=past), headers=auth_headers(mentor))
    assert response.status_code == 400


def test_list_filters(client, db, mentor):
    create_group(client, mentor)
    create_group(client, mentor, title="Advanced Rust", topics=["Rust"], skillLevel="advanced")

    by_topic = client.get("/api/group-sessions", params={"topic": "rust"}).json()["groupSessions"]
    assert [gs["title"] for gs in by_topic] == ["Advanced Rust"]

    by_level = client.get("/api/group-sessions", params={"skillLevel": "beginner"}).json()["groupSessions"]
    assert [gs["title"] for gs in by_level] == ["Intro to pandas"]

    by_search = client.get("/api/group-sessions", params={"search": "dataframe"}).json()["groupSessions"]
    assert len(by_search) == 1

    assert len(client.get("/api/group-sessions", params={"mentor": mentor.id}).json()["groupSessions"]) == 2
    assert client.get("/api/group-sessions", params={"status": "completed"}).json()["groupSessions"] == []


def test_advance_status_follows_the_clock(db, mentor):
    start = future_time(days=1)
    gs = GroupSession(
        title="Clock",
        description="d",
        mentor_id=mentor.id,
        start_time=start,
        duration=60,
        max_participants=5,
        price=0,
        topics=["Python"],
        skill_level="beginner",
        status="scheduled",
    )

    assert advance_status(gs, now=start - timedelta(minutes=1)) is False
    assert advance_status(gs, now=start + timedelta(minutes=5)) is True
    assert gs.status == "in-progress"
    assert advance_status(gs, now=start + timedelta(minutes=60)) is True
    assert gs.status == "completed"
    assert advance_status(gs, now=start + timedelta(days=1)) is False


def test_join_debits_price_and_notifies_mentor(client, db, mentee, mentor):
    gs = create_group(client, mentor)

    response = client.post(f"/api/group-sessions/{gs['id']}/join", headers=auth_headers(mentee))

    assert response.status_code == 200
    body = response.json()["groupSession"]
    assert [p["id"] for p in body["participants"]] == [mentee.id]
    assert body["remainingSpots"] == 1
    assert balance_of(client, mentee) == 185.0
    payment = db.query(Transaction).filter(Transaction.type == "session_payment").one()
    assert payment.group_session_id == gs["id"]
    assert db.query(Notification).filter(Notification.type == "group_session_joined").count() == 1


def test_join_rules(client, db, mentee, mentor):
    gs = create_group(client, mentor)
    url = f"/api/group-sessions/{gs['id']}/join"

    own = client.post(url, headers=auth_headers(mentor))
    assert own.json()["detail"] == "You cannot join your own session"

    client.post(url, headers=auth_headers(mentee))
    again = client.post(url, headers=auth_headers(mentee))
    assert again.json()["detail"] == "You are already enrolled in this session"

    second = make_user(db, "second@example.com", balance=50)
    assert client.post(url, headers=auth_headers(second)).status_code == 200

    third = make_user(db, "third@example.com", balance=50)
    full = client.post(url, headers=auth_headers(third))
    assert full.status_code == 400
    assert full.json()["detail"] == "This session is full"
    assert balance_of(client, third) == 50.0


def test_join_without_funds(client, db, mentor):
    gs = create_group(client, mentor)
    poor = make_user(db, "poor@example.com", balance=5)

    response = client.post(f"/api/group-sessions/{gs['id']}/join", headers=auth_headers(poor))

    assert response.status_code == 402
    assert client.get(f"/api/group-sessions/{gs['id']}").json()["groupSession"]["participantCount"] == 0


def test_leave_refunds(client, db, mentee, mentor):
    gs = create_group(client, mentor)
    client.post(f"/api/group-sessions/{gs['id']}/join", headers=auth_headers(mentee))

    response = client.delete(f"/api/group-sessions/{gs['id']}/leave", headers=auth_headers(mentee))

    assert response.status_code == 200
    assert response.json()["groupSession"]["participants"] == []
    assert balance_of(client, mentee) == 200.0

    not_enrolled = client.delete(f"/api/group-sessions/{gs['id']}/leave", headers=auth_headers(mentee))
    assert not_enrolled.status_code == 400


def test_cancel_refunds_participants(client, db, mentee, mentor):
    gs = create_group(client, mentor)
    client.post(f"/api/group-sessions/{gs['id']}/join", headers=auth_headers(mentee))
    other_mentor = make_mentor(db, "other-mentor@example.com")

    forbidden = client.patch(f"/api/group-sessions/{gs['id']}/cancel", headers=auth_headers(other_mentor))
    assert forbidden.status_code == 403

    response = client.patch(f"/api/group-sessions/{gs['id']}/cancel", headers=auth_headers(mentor))

    assert response.status_code == 200
    assert response.json()["groupSession"]["status"] == "cancelled"
    assert balance_of(client, mentee) == 200.0
    assert db.query(Notification).filter(Notification.type == "group_session_cancelled").count() == 1

    again = client.patch(f"/api/group-sessions/{gs['id']}/cancel", headers=auth_headers(mentor))
    assert again.status_code == 400
    assert balance_of(client, mentee) == 200.0


def test_update_locks_price_and_capacity_after_joins(client, db, mentee, mentor):
    gs = create_group(client, mentor, maxParticipants=3)
    url = f"/api/group-sessions/{gs['id']}"
    client.post(f"{url}/join", headers=auth_headers(mentee))
    second = make_user(db, "second@example.com", balance=50)
    client.post(f"{url}/join", headers=auth_headers(second))

    price = client.patch(url, json={"price": 30}, headers=auth_headers(mentor))
    assert price.status_code == 400

    capacity = client.patch(url, json={"maxParticipants": 2}, headers=auth_headers(mentor))
    assert capacity.status_code == 200
    assert capacity.json()["groupSession"]["isFull"] is True

    shrink = client.patch(url, json={"maxParticipants": 1}, headers=auth_headers(mentor))
    assert shrink.status_code == 422

    titled = client.patch(url, json={"title": "Pandas deep dive", "price": 15}, headers=auth_headers(mentor))
    assert titled.status_code == 200
    assert titled.json()["groupSession"]["title"] == "Pandas deep dive"


def test_update_below_enrolment(client, db, mentee, mentor):
    gs = create_group(client, mentor, maxParticipants=3)
    url = f"/api/group-sessions/{gs['id']}"
    client.post(f"{url}/join", headers=auth_headers(mentee))
    for i in range(2):
        client.post(f"{url}/join", headers=auth_headers(make_user(db, f"p{i}@example.com", balance=50)))

    response = client.patch(url, json={"maxParticipants": 2}, headers=auth_headers(mentor))

    assert response.status_code == 400
    assert response.json()["detail"] == "Maximum participants cannot be lower than the current enrolment"


def test_get_unknown_group_session(client):
    assert client.get("/api/group-sessions/9999").status_code == 404
