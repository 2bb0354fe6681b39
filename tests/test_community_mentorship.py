import pytest

POST = {
    "title": "How I got referred at Acme",
    "content": "Reach out with a short, specific note.",
    "type": "experience",
    "tags": ["Referrals", " Tips ", ""],
}


def create_post(client, headers, **overrides):
    return client.post("/api/community/posts", json={**POST, **overrides}, headers=headers)


def test_create_post(client, seeker):
    user, headers = seeker
    response = create_post(client, headers)

    assert response.status_code == 201
    body = response.json()
    assert body["author_id"] == user["id"]
    assert body["author_name"] == "Seek1"
    assert body["tags"] == ["referrals", "tips"]
    assert body["likes"] == 0
    assert body["comment_count"] == 0


def test_create_post_requires_auth(client):
    assert client.post("/api/community/posts", json=POST).status_code == 401


def test_unknown_post_type_rejected(client, seeker):
    assert create_post(client, seeker[1], type="rant").status_code == 422


def test_list_filters_by_type_and_tag(client, seeker, referrer):
    create_post(client, seeker[1])
    create_post(client, referrer[1], title="Interview tip", type="tip", tags=["interviews"])
    create_post(client, referrer[1], title="Any openings?", type="question", tags=["referrals"])

    everything = client.get("/api/community/posts").json()
    assert [p["title"] for p in everything] == ["Any openings?", "Interview tip", "How I got referred at Acme"]

    tips = client.get("/api/community/posts", params={"type": "tip"}).json()
    assert [p["title"] for p in tips] == ["Interview tip"]

    tagged = client.get("/api/community/posts", params={"tag": "Referrals"}).json()
    assert {p["title"] for p in tagged} == {"Any openings?", "How I got referred at Acme"}

    page = client.get("/api/community/posts", params={"page": 2, "page_size": 2}).json()
    assert [p["title"] for p in page] == ["How I got referred at Acme"]


def test_like_and_comment(client, seeker, referrer):
    post_id = create_post(client, seeker[1]).json()["id"]

    liked = client.post(f"/api/community/posts/{post_id}/like", headers=referrer[1])
    assert liked.status_code == 200
    assert liked.json()["likes"] == 1

    comment = client.post(
        f"/api/community/posts/{post_id}/comments",
        json={"content": "Great advice"},
        headers=referrer[1],
    )
    assert comment.status_code == 201
    assert comment.json()["author_id"] == referrer[0]["id"]
    assert comment.json()["author_name"] == "Ref1"

    comments = client.get(f"/api/community/posts/{post_id}/comments").json()
    assert [c["content"] for c in comments] == ["Great advice"]
    assert client.get(f"/api/community/posts/{post_id}").json()["comment_count"] == 1


def test_only_author_deletes_post(client, seeker, referrer):
    post_id = create_post(client, seeker[1]).json()["id"]

    assert client.delete(f"/api/community/posts/{post_id}", headers=referrer[1]).status_code == 403
    assert client.delete(f"/api/community/posts/{post_id}", headers=seeker[1]).status_code == 200

    assert client.get(f"/api/community/posts/{post_id}").status_code == 404
    assert client.get("/api/community/posts").json() == []
    response = client.post(f"/api/community/posts/{post_id}/comments", json={"content": "late"}, headers=referrer[1])
    assert response.status_code == 404


# ============================================================
# MENTORSHIP
# ============================================================

@pytest.fixture
def mentorship_request(client, seeker, referrer):
    response = client.post(
        "/api/mentorship/requests",
        json={"mentor_id": referrer[0]["id"], "topic": "Breaking into backend", "message": "Could we talk?"},
        headers=seeker[1],
    )
    assert response.status_code == 201
    return response.json()


def move(client, headers, request_id, status, **extra):
    return client.patch(
        f"/api/mentorship/requests/{request_id}/status",
        json={"status": status, **extra},
        headers=headers,
    )


def test_mentorship_request_starts_pending(mentorship_request, seeker):
    assert mentorship_request["status"] == "pending"
    assert mentorship_request["mentee_id"] == seeker[0]["id"]
    assert mentorship_request["duration_minutes"] == 30
    assert mentorship_request["meeting_type"] == "video"


def test_mentorship_request_validation(client, seeker, referrer, make_user):
    _, headers = seeker
    url = "/api/mentorship/requests"
    body = {"topic": "Careers", "message": "Hi"}

    assert client.post(url, json={**body, "mentor_id": "ghost"}, headers=headers).status_code == 404
    other_seeker, _ = make_user("seek2", role="seeker")
    assert client.post(url, json={**body, "mentor_id": other_seeker["id"]}, headers=headers).status_code == 400
    assert client.post(url, json={**body, "mentor_id": referrer[0]["id"]}, headers=referrer[1]).status_code == 400


def test_listing_by_side(client, mentorship_request, seeker, referrer):
    request_id = mentorship_request["id"]
    sent = client.get("/api/mentorship/requests", params={"as": "mentee"}, headers=seeker[1]).json()
    received = client.get("/api/mentorship/requests", params={"as": "mentor"}, headers=referrer[1]).json()
    both = client.get("/api/mentorship/requests", headers=referrer[1]).json()

    assert [r["id"] for r in sent] == [request_id]
    assert [r["id"] for r in received] == [request_id]
    assert [r["id"] for r in both] == [request_id]
    assert client.get("/api/mentorship/requests", params={"as": "mentor"}, headers=seeker[1]).json() == []


def test_mentor_walks_the_lifecycle(client, mentorship_request, referrer):
    request_id = mentorship_request["id"]
    headers = referrer[1]

    assert move(client, headers, request_id, "accepted").json()["status"] == "accepted"
    scheduled = move(
        client, headers, request_id, "scheduled",
        meeting_link="https://meet.example.com/abc", preferred_date="2030-02-01T09:30:00",
    )
    assert scheduled.status_code == 200
    assert scheduled.json()["meeting_link"] == "https://meet.example.com/abc"
    assert scheduled.json()["preferred_date"].startswith("2030-02-01T09:30:00")

    assert move(client, headers, request_id, "completed").json()["status"] == "completed"
    assert move(client, headers, request_id, "pending").status_code == 409


def test_only_mentor_moves_status(client, mentorship_request, seeker):
    assert move(client, seeker[1], mentorship_request["id"], "accepted").status_code == 403


def test_invalid_mentorship_transition_is_409(client, mentorship_request, referrer):
    assert move(client, referrer[1], mentorship_request["id"], "completed").status_code == 409
    assert move(client, referrer[1], 999, "accepted").status_code == 404
