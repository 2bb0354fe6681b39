import pytest
from sqlalchemy import select

from referralme.db.postgres import get_db_session
from referralme.db.schema import referrer_achievements, referrer_impact_stats

REQUEST = {
    "full_name": "Grace Hopper",
    "email": "grace@example.com",
    "phone_number": "+1 555 0100",
    "experience_level": "senior",
    "motivation": "I have shipped Python services for years.",
    "resume_text": "10 years experience in Python, SQL and AWS development.",
}


@pytest.fixture
def posting_id(client, referrer):
    _, headers = referrer
    response = client.post(
        "/api/job-postings",
        json={
            "title": "Senior Engineer",
            "company": "Acme",
            "location": "Remote",
            "description": "Python and SQL services on AWS.",
        },
        headers=headers,
    )
    return response.json()["id"]


def create_request(client, headers, posting_id, **overrides):
    return client.post(
        "/api/referral-requests",
        json={**REQUEST, "job_posting_id": posting_id, **overrides},
        headers=headers,
    )


def move(client, headers, request_id, status, **extra):
    return client.patch(
        f"/api/referral-requests/{request_id}/status",
        json={"status": status, **extra},
        headers=headers,
    )


def stats_for(referrer_id):
    with get_db_session() as db:
        return db.execute(
            select(referrer_impact_stats).where(referrer_impact_stats.c.referrer_id == referrer_id)
        ).mappings().one()


def test_new_request_is_pending(client, seeker, referrer, posting_id):
    seeker_user, headers = seeker
    response = create_request(client, headers, posting_id)

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["seeker_id"] == seeker_user["id"]
    assert body["referrer_id"] == referrer[0]["id"]
    assert body["job_title"] == "Senior Engineer"
    assert body["company"] == "Acme"
    for field in ("full_name", "email", "phone_number", "resume_text"):
        assert body[field]
    assert 0 <= body["ats_score"] <= 100


def test_client_cannot_set_status(client, seeker, posting_id):
    _, headers = seeker
    assert create_request(client, headers, posting_id, status="completed").status_code == 422


@pytest.mark.parametrize("field", ["full_name", "email", "phone_number", "resume_text"])
def test_contact_fields_are_required(client, seeker, posting_id, field):
    _, headers = seeker
    assert create_request(client, headers, posting_id, **{field: ""}).status_code == 422


def test_invalid_email_rejected(client, seeker, posting_id):
    _, headers = seeker
    assert create_request(client, headers, posting_id, email="not-an-email").status_code == 422


def test_duplicate_request_rejected(client, seeker, posting_id):
    _, headers = seeker
    assert create_request(client, headers, posting_id).status_code == 201
    assert create_request(client, headers, posting_id).status_code == 400


def test_request_on_inactive_posting_rejected(client, seeker, referrer, posting_id):
    _, headers = seeker
    client.delete(f"/api/job-postings/{posting_id}", headers=referrer[1])
    assert create_request(client, headers, posting_id).status_code == 400


def test_request_on_missing_posting_is_404(client, seeker):
    _, headers = seeker
    assert create_request(client, headers, 12345).status_code == 404


def test_only_seekers_create_requests(client, referrer, posting_id):
    assert create_request(client, referrer[1], posting_id).status_code == 403


def test_request_counts_as_application(client, seeker, referrer, posting_id):
    create_request(client, seeker[1], posting_id)
    assert stats_for(referrer[0]["id"])["total_applications"] == 1


def test_my_and_received_lists(client, seeker, referrer, posting_id):
    request_id = create_request(client, seeker[1], posting_id).json()["id"]

    mine = client.get("/api/referral-requests/my", headers=seeker[1]).json()
    received = client.get("/api/referral-requests/received", headers=referrer[1]).json()

    assert [r["id"] for r in mine] == [request_id]
    assert [r["id"] for r in received] == [request_id]


def test_get_request_visibility(client, seeker, referrer, posting_id, make_user):
    request_id = create_request(client, seeker[1], posting_id).json()["id"]
    _, stranger_headers = make_user("stranger", role="seeker")

    assert client.get(f"/api/referral-requests/{request_id}", headers=seeker[1]).status_code == 200
    assert client.get(f"/api/referral-requests/{request_id}", headers=referrer[1]).status_code == 200
    assert client.get(f"/api/referral-requests/{request_id}", headers=stranger_headers).status_code == 403
    assert client.get("/api/referral-requests/999", headers=seeker[1]).status_code == 404


def test_full_lifecycle_to_completed(client, seeker, referrer, posting_id):
    request_id = create_request(client, seeker[1], posting_id).json()["id"]
    headers = referrer[1]

    for status in ["under_review", "accepted", "interview_scheduled", "interview_completed", "sent_to_hr"]:
        response = move(client, headers, request_id, status)
        assert response.status_code == 200, response.json()
        assert response.json()["status"] == status

    response = move(client, headers, request_id, "completed", notes="Offer signed")
    assert response.status_code == 200
    assert response.json()["notes"] == "Offer signed"

    stats = stats_for(referrer[0]["id"])
    assert stats["successful_placements"] == 1
    with get_db_session() as db:
        types = {
            r["achievement_type"]
            for r in db.execute(select(referrer_achievements)).mappings().all()
        }
    assert "first_referral" in types


def test_backward_transition_is_409(client, seeker, referrer, posting_id):
    request_id = create_request(client, seeker[1], posting_id).json()["id"]
    headers = referrer[1]
    move(client, headers, request_id, "accepted")
    move(client, headers, request_id, "completed")

    response = move(client, headers, request_id, "pending")
    assert response.status_code == 409
    assert "completed" in response.json()["detail"]


def test_transition_to_same_status_is_409(client, seeker, referrer, posting_id):
    request_id = create_request(client, seeker[1], posting_id).json()["id"]
    assert move(client, referrer[1], request_id, "pending").status_code == 409


def test_skipping_ahead_is_409(client, seeker, referrer, posting_id):
    request_id = create_request(client, seeker[1], posting_id).json()["id"]
    assert move(client, referrer[1], request_id, "interview_scheduled").status_code == 409


def test_only_owning_referrer_moves_status(client, seeker, posting_id, make_user):
    request_id = create_request(client, seeker[1], posting_id).json()["id"]
    _, other_headers = make_user("ref2", role="referrer")

    assert move(client, other_headers, request_id, "accepted").status_code == 403
    assert move(client, seeker[1], request_id, "accepted").status_code == 403


def test_interview_details_are_saved(client, seeker, referrer, posting_id):
    request_id = create_request(client, seeker[1], posting_id).json()["id"]
    move(client, referrer[1], request_id, "accepted")
    response = move(
        client, referrer[1], request_id, "interview_scheduled",
        interview_date="2030-01-15T10:00:00", interview_notes="Panel of three"
    )
    assert response.status_code == 200
    assert response.json()["interview_date"].startswith("2030-01-15T10:00:00")
    assert response.json()["interview_notes"] == "Panel of three"


def test_dashboard_stats(client, seeker, referrer, posting_id, make_user):
    first = create_request(client, seeker[1], posting_id).json()["id"]
    _, other_seeker = make_user("seek2", role="seeker")
    create_request(client, other_seeker, posting_id, email="other@example.com")

    move(client, referrer[1], first, "accepted")
    move(client, referrer[1], first, "completed")

    stats = client.get("/api/referral-requests/stats", headers=referrer[1]).json()
    assert stats == {
        "active_posts": 1,
        "pending_requests": 1,
        "successful_referrals": 1,
        "total_requests": 2,
        "by_status": {"pending": 1, "completed": 1},
    }
