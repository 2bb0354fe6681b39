from sqlalchemy import select

from referralme.db.postgres import get_db_session
from referralme.db.schema import profile_views, referrer_impact_stats
from referralme.services import email_service

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def test_select_role_once(client, make_user):
    _, headers = make_user("newbie")

    response = client.post("/api/users/role", json={"role": "seeker"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["role"] == "seeker"

    # same role again is a no-op, a different one is refused
    assert client.post("/api/users/role", json={"role": "seeker"}, headers=headers).status_code == 200
    assert client.post("/api/users/role", json={"role": "referrer"}, headers=headers).status_code == 400


def test_unknown_role_rejected(client, make_user):
    _, headers = make_user("newbie")
    assert client.post("/api/users/role", json={"role": "admin"}, headers=headers).status_code == 422


def test_choosing_referrer_creates_stats(client, make_user):
    user, headers = make_user("newbie")
    client.post("/api/users/role", json={"role": "referrer"}, headers=headers)

    with get_db_session() as db:
        stats = db.execute(
            select(referrer_impact_stats).where(referrer_impact_stats.c.referrer_id == user["id"])
        ).mappings().one()
    assert stats["impact_score"] == 0
    assert stats["reputation_level"] == "newcomer"


def test_profile_update_and_completeness(client, make_user):
    _, headers = make_user("newbie", role="seeker")

    response = client.put("/api/users/profile", json={"bio": "Backend developer"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["bio"] == "Backend developer"
    assert response.json()["profile_completed"] is False

    response = client.put(
        "/api/users/profile",
        json={"skills": ["Python", " python ", "", "Go"]},
        headers=headers,
    )
    body = response.json()
    assert body["skills"] == ["Python", "Go"]
    assert body["bio"] == "Backend developer"
    assert body["profile_completed"] is True


def test_referrer_completeness_needs_company_and_designation(client, make_user):
    _, headers = make_user("mentor", role="referrer")
    body = client.put("/api/users/profile", json={"company": "Acme"}, headers=headers).json()
    assert body["profile_completed"] is False
    body = client.put("/api/users/profile", json={"designation": "Staff Engineer"}, headers=headers).json()
    assert body["profile_completed"] is True


def test_empty_profile_update_is_400(client, seeker):
    assert client.put("/api/users/profile", json={}, headers=seeker[1]).status_code == 400


def test_profile_update_rejects_unknown_fields(client, seeker):
    response = client.put("/api/users/profile", json={"role": "referrer"}, headers=seeker[1])
    assert response.status_code == 422


def test_public_profile_records_views(client, referrer, seeker):
    referrer_user, referrer_headers = referrer

    anonymous = client.get(f"/api/users/{referrer_user['id']}")
    assert anonymous.status_code == 200
    assert anonymous.json()["profile_views"] == 1
    assert "email" not in anonymous.json()

    signed_in = client.get(f"/api/users/{referrer_user['id']}", headers=seeker[1])
    assert signed_in.json()["profile_views"] == 2

    # the owner looking at their own page does not count
    own = client.get(f"/api/users/{referrer_user['id']}", headers=referrer_headers)
    assert own.json()["profile_views"] == 2

    with get_db_session() as db:
        views = db.execute(select(profile_views)).mappings().all()
        stats = db.execute(
            select(referrer_impact_stats).where(referrer_impact_stats.c.referrer_id == referrer_user["id"])
        ).mappings().one()
    assert sorted(v["viewer_user_id"] or "" for v in views) == ["", seeker[0]["id"]]
    assert stats["profile_views"] == 2
    assert stats["current_streak"] == 0


def test_public_profile_with_bad_token_is_still_served(client, seeker):
    response = client.get(f"/api/users/{seeker[0]['id']}", headers={"Authorization": "Bearer junk"})
    assert response.status_code == 200
    assert response.json()["skills"] == ["Python", "SQL"]


def test_missing_profile_is_404(client):
    assert client.get("/api/users/nobody").status_code == 404


def test_welcome_email_sent_once_on_role_selection(client, make_user, monkeypatch):
    welcomed = []
    monkeypatch.setattr(email_service, "notify_welcome", lambda user: welcomed.append((user["id"], user["role"])))
    _, headers = make_user("newbie")

    client.post("/api/users/role", json={"role": "referrer"}, headers=headers)
    client.post("/api/users/role", json={"role": "referrer"}, headers=headers)

    assert welcomed == [("newbie", "referrer")]


def upload_image(client, headers):
    response = client.post("/api/upload", files={"file": ("me.png", PNG_BYTES, "image/png")}, headers=headers)
    assert response.status_code == 201
    return response.json()["url"]


def test_replaced_profile_image_is_deleted(client, seeker):
    _, headers = seeker
    old_url = upload_image(client, headers)
    new_url = upload_image(client, headers)

    client.put("/api/users/profile", json={"profile_image_url": old_url}, headers=headers)
    response = client.put("/api/users/profile", json={"profile_image_url": new_url}, headers=headers)

    assert response.status_code == 200
    assert response.json()["profile_image_url"] == new_url
    assert client.get(old_url).status_code == 404
    assert client.get(new_url).status_code == 200


def test_replaced_image_still_used_elsewhere_is_kept(client, seeker, make_user):
    _, headers = seeker
    shared_url = upload_image(client, headers)
    _, other_headers = make_user("other", role="seeker")

    client.put("/api/users/profile", json={"profile_image_url": shared_url}, headers=headers)
    client.put("/api/users/profile", json={"profile_icon": shared_url}, headers=other_headers)
    client.put("/api/users/profile", json={"profile_image_url": "https://example.com/me.png"}, headers=headers)

    assert client.get(shared_url).status_code == 200
