from datetime import date

from conftest import auth_headers, future_time, make_mentor, make_user
from mentorhub.domain.mentors.service import _months_back


def apply_payload(**overrides):
    payload = {"bio": "Ten years of backend work", "expertise": ["Python", "SQL"], "hourlyRate": 45}
    payload.update(overrides)
    return payload


def test_months_back_crosses_year_boundary():
    assert _months_back(date(2030, 2, 15), 4) == [(2029, 11), (2029, 12), (2030, 1), (2030, 2)]


def test_apply_creates_pending_profile(client, db):
    user = make_user(db, "applicant@example.com")

    response = client.post("/api/mentors/apply", json=apply_payload(), headers=auth_headers(user))

    assert response.status_code == 200
    mentor = response.json()["mentor"]
    assert mentor["status"] == "pending"
    assert mentor["expertise"] == ["Python", "SQL"]
    assert mentor["hourlyRate"] == 45.0
    db.refresh(user)
    assert "mentor" in user.roles


def test_apply_requires_fields(client, db):
    user = make_user(db, "applicant@example.com")

    response = client.post("/api/mentors/apply", json={"bio": "Only a bio"}, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["detail"] == "Missing required fields: bio, expertise, or hourlyRate"


def test_apply_twice_is_rejected(client, db):
    user = make_user(db, "applicant@example.com")
    client.post("/api/mentors/apply", json=apply_payload(), headers=auth_headers(user))

    response = client.post("/api/mentors/apply", json=apply_payload(), headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["detail"] == "User has a pending mentor application"


def test_rejected_applicant_can_reapply(client, db):
    user = make_mentor(db, "again@example.com", status="rejected")

    response = client.post("/api/mentors/apply", json=apply_payload(bio="Updated bio"), headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["mentor"]["status"] == "pending"
    assert response.json()["mentor"]["rejectionReason"] is None


def test_search_only_lists_approved_mentors(client, db, mentor):
    make_mentor(db, "pending@example.com", status="pending")
    blocked = make_mentor(db, "blocked@example.com")
    blocked.blocked = True
    db.commit()

    response = client.get("/api/mentors")

    assert response.status_code == 200
    body = response.json()
    assert [m["id"] for m in body["mentors"]] == [mentor.id]
    assert body["pagination"] == {"total": 1, "pages": 1, "page": 1, "limit": 10}


def test_search_filters_and_sorting(client, db):
    cheap = make_mentor(db, "cheap@example.com", expertise=["Go"], hourly_rate=20, first_name="Carl")
    pricey = make_mentor(db, "pricey@example.com", expertise=["Go", "Rust"], hourly_rate=120, first_name="Petra")
    design = make_mentor(db, "other@example.com", expertise=["Design"], hourly_rate=70)

    by_price = client.get("/api/mentors", params={"expertise": "go", "sortBy": "price", "sortOrder": "asc"}).json()
    assert [m["id"] for m in by_price["mentors"]] == [cheap.id, pricey.id]

    ranged = client.get("/api/mentors", params={"minPrice": 50, "maxPrice": 150}).json()
    assert {m["id"] for m in ranged["mentors"]} == {pricey.id, design.id}

    named = client.get("/api/mentors", params={"search": "petra"}).json()
    assert [m["id"] for m in named["mentors"]] == [pricey.id]

    by_expertise_text = client.get("/api/mentors", params={"search": "rus"}).json()
    assert [m["id"] for m in by_expertise_text["mentors"]] == [pricey.id]


def test_search_pagination(client, db):
    for i in range(3):
        make_mentor(db, f"mentor{i}@example.com")

    body = client.get("/api/mentors", params={"page": 2, "limit": 2}).json()

    assert len(body["mentors"]) == 1
    assert body["pagination"] == {"total": 3, "pages": 2, "page": 2, "limit": 2}


def test_search_rejects_unknown_sort(client):
    assert client.get("/api/mentors", params={"sortBy": "age"}).status_code == 400
    assert client.get("/api/mentors", params={"sortOrder": "up"}).status_code == 400


def test_public_detail(client, db, mentor):
    pending = make_mentor(db, "pending@example.com", status="pending")

    response = client.get(f"/api/mentors/{mentor.id}")
    assert response.status_code == 200
    assert response.json()["status"] == "approved"
    assert "monday" in response.json()["weeklyAvailability"]

    assert client.get(f"/api/mentors/{pending.id}").status_code == 404
    assert client.get("/api/mentors/9999").status_code == 404


def test_me_and_profile_update(client, db, mentor, mentee):
    assert client.get("/api/mentors/me", headers=auth_headers(mentee)).status_code == 404

    response = client.put(
        "/api/mentors/profile",
        json={"bio": "New bio", "expertise": ["Rust", "rust"], "hourlyRate": 80.456},
        headers=auth_headers(mentor),
    )

    assert response.status_code == 200
    assert response.json()["expertise"] == ["Rust"]
    assert response.json()["hourlyRate"] == 80.46
    me = client.get("/api/mentors/me", headers=auth_headers(mentor)).json()
    assert me["bio"] == "New bio"


def test_recommended_matches_interests_and_skips_booked(client, db, mentor, book):
    mentee = make_user(db, "curious@example.com", interests=["data science"], balance=100)
    other = make_mentor(db, "ds@example.com", expertise=["Data Science"], first_name="Dana")
    make_mentor(db, "design@example.com", expertise=["Design"])

    # Booking the first mentor removes them from recommendations
    assert book(user=mentee).status_code == 201

    response = client.get("/api/mentors/recommended", headers=auth_headers(mentee))

    assert response.status_code == 200
    mentors = response.json()["mentors"]
    assert [m["id"] for m in mentors] == [other.id]
    assert mentors[0]["matchingInterests"] == ["Data Science"]


def test_recommended_without_interests_is_empty(client, mentee):
    response = client.get("/api/mentors/recommended", headers=auth_headers(mentee))
    assert response.json() == {"mentors": []}


def test_stats_and_upcoming_sessions(client, db, mentee, mentor, book):
    done = book(start=future_time(days=1)).json()["session"]["id"]
    book(start=future_time(days=2))
    client.post(f"/api/sessions/{done}/accept", headers=auth_headers(mentor))
    client.post(f"/api/sessions/{done}/complete", headers=auth_headers(mentor))

    stats = client.get("/api/mentors/stats", headers=auth_headers(mentor)).json()

    assert stats["totalSessions"] == 1
    assert stats["totalEarnings"] == 60.0
    assert stats["totalStudents"] == 1
    assert len(stats["trends"]) == 6
    assert sum(t["sessions"] for t in stats["trends"]) <= 1

    pending = client.get(
        "/api/mentors/sessions", params={"status": ["pending"]}, headers=auth_headers(mentor)
    ).json()["sessions"]
    assert len(pending) == 1
    assert pending[0]["status"] == "pending"

    upcoming = client.get("/api/mentors/sessions", params={"upcoming": True}, headers=auth_headers(mentor))
    assert len(upcoming.json()["sessions"]) == 2


def test_stats_require_mentor_role(client, mentee):
    assert client.get("/api/mentors/stats", headers=auth_headers(mentee)).status_code == 403