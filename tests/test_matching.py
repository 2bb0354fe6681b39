import numpy as np
import pytest

from referralme.services import matching_service


def test_embedding_ignores_word_order():
    a = matching_service.text_embedding("python sql aws")
    b = matching_service.text_embedding("aws python sql")
    assert np.allclose(a, b)
    assert np.isclose(np.linalg.norm(a), 1.0)


def test_embedding_of_empty_text_is_zero():
    assert not matching_service.text_embedding("").any()


def test_cosine_similarity():
    assert matching_service.cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert matching_service.cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert matching_service.cosine_similarity([1, 0], [-1, 0]) == pytest.approx(-1.0)
    assert matching_service.cosine_similarity([0, 0], [1, 0]) == 0.0
    with pytest.raises(ValueError):
        matching_service.cosine_similarity([1, 0], [1, 0, 0])


def test_skill_coverage_matches_whole_words():
    text = "We use Node.js, Python and C++ daily"
    assert matching_service.skill_coverage(["python", "node.js", "C++", "Java"], text) == ["python", "node.js", "C++"]
    # "java" is not a word in "javascript"
    assert matching_service.skill_coverage(["Java"], "Strong JavaScript skills") == []


def test_score_posting_weights_skills_and_similarity():
    user = {"skills": ["Python", "SQL"]}
    posting = {"title": "Data Engineer", "description": "Python and SQL pipelines", "requirements": None}
    result = matching_service.score_posting(user, posting)

    assert result["skills_matched"] == ["Python", "SQL"]
    assert result["skill_match_pct"] == 100.0
    assert 0 <= result["similarity"] <= 1
    assert result["match_score"] == pytest.approx(0.6 + 0.4 * result["similarity"], abs=1e-3)


def post(client, headers, title, description):
    return client.post(
        "/api/job-postings",
        json={"title": title, "company": "Acme", "location": "Remote", "description": description},
        headers=headers,
    ).json()["id"]


def test_matches_rank_best_fit_first(client, seeker, referrer):
    frontend = post(client, referrer[1], "Frontend Developer", "React and CSS all day long.")
    backend = post(client, referrer[1], "Backend Engineer", "Python and SQL services at scale.")

    response = client.get("/api/matches/jobs", headers=seeker[1])
    assert response.status_code == 200
    matches = response.json()

    assert [m["job_posting"]["id"] for m in matches] == [backend, frontend]
    assert matches[0]["skills_matched"] == ["Python", "SQL"]
    assert matches[0]["match_score"] > matches[1]["match_score"]
    assert matches[1]["skill_match_pct"] == 0


def test_matches_respect_min_score_and_limit(client, seeker, referrer):
    post(client, referrer[1], "Frontend Developer", "React and CSS all day long.")
    backend = post(client, referrer[1], "Backend Engineer", "Python and SQL services at scale.")

    strict = client.get("/api/matches/jobs", params={"min_score": 0.5}, headers=seeker[1]).json()
    assert [m["job_posting"]["id"] for m in strict] == [backend]

    limited = client.get("/api/matches/jobs", params={"limit": 1}, headers=seeker[1]).json()
    assert len(limited) == 1


def test_inactive_and_own_postings_are_skipped(client, referrer):
    user, headers = referrer
    gone = post(client, headers, "Backend Engineer", "Python and SQL services at scale.")
    client.delete(f"/api/job-postings/{gone}", headers=headers)
    post(client, headers, "Data Engineer", "Python pipelines.")

    assert matching_service.rank_jobs_for_seeker({**user, "skills": ["Python"]}) == []


def test_matches_need_skills(client, make_user):
    _, headers = make_user("blank", role="seeker")
    assert client.get("/api/matches/jobs", headers=headers).status_code == 400
