import pytest
import requests

from referralme.services import email_service

REFERRER = {"first_name": "Ada", "email": "ada@example.com"}
POSTING = {"title": "Backend <Engineer>", "company": "Acme"}
REQUEST = {"full_name": "Grace Hopper", "email": "grace@example.com"}


class FakeResponse:
    def __init__(self, status_code=201):
        self.status_code = status_code
        self.ok = status_code < 400
        self.text = "{}"


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(email_service.settings, "brevo_api_key", "brevo-key")
    monkeypatch.setattr(email_service.settings, "email_from", "noreply@referralme.test")


@pytest.fixture
def sent(monkeypatch):
    calls = []

    def fake_post(url, headers=None, json=None, timeout=None):
        calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        return FakeResponse()

    monkeypatch.setattr(email_service.requests, "post", fake_post)
    return calls


def test_unconfigured_send_is_skipped(sent):
    assert email_service.notify_job_posted(REFERRER, POSTING) is False
    assert sent == []


def test_job_posted_email(configured, sent):
    assert email_service.notify_job_posted(REFERRER, POSTING) is True

    call = sent[0]
    assert call["headers"]["api-key"] == "brevo-key"
    assert call["timeout"] == email_service.SEND_TIMEOUT_SECONDS
    assert call["json"]["to"] == [{"email": "ada@example.com"}]
    assert call["json"]["sender"]["email"] == "noreply@referralme.test"
    assert "Backend &lt;Engineer&gt;" in call["json"]["htmlContent"]


def test_status_update_goes_to_the_seeker(configured, sent):
    email_service.notify_status_update(REQUEST, POSTING, "interview_scheduled", REFERRER)
    body = sent[0]["json"]
    assert body["to"] == [{"email": "grace@example.com"}]
    assert "interview scheduled" in body["htmlContent"]


def test_missing_recipient_is_skipped(configured, sent):
    assert email_service.notify_request_received({"first_name": "Ada"}, POSTING, REQUEST) is False
    assert sent == []


def test_rejected_send_returns_false(configured, monkeypatch):
    monkeypatch.setattr(email_service.requests, "post", lambda *a, **kw: FakeResponse(400))
    assert email_service.notify_job_posted(REFERRER, POSTING) is False


def test_network_error_is_swallowed(configured, monkeypatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(email_service.requests, "post", boom)
    assert email_service.notify_job_posted(REFERRER, POSTING) is False


@pytest.mark.parametrize("role, subject, phrase", [
    ("seeker", "Welcome to ReferralMe", "job-seeker profile is now live"),
    ("referrer", "Welcome to ReferralMe Referrer Community", "post referral opportunities"),
])
def test_welcome_email_depends_on_role(configured, sent, role, subject, phrase):
    user = {"first_name": "Ada", "email": "ada@example.com", "role": role}
    assert email_service.notify_welcome(user) is True
    assert sent[0]["json"]["subject"] == subject
    assert phrase in sent[0]["json"]["htmlContent"]


def test_job_alert_reaches_seekers_with_matching_skills(configured, sent, make_user):
    author, _ = make_user("ref1", role="referrer", last_name="Lovelace")
    make_user("py", role="seeker", skills=["Python"])
    make_user("both", role="seeker", skills=["Python", "SQL"])
    make_user("css", role="seeker", skills=["CSS"])
    make_user("other-ref", role="referrer", skills=["Python"])
    posting = {
        "id": 7,
        "title": "Backend Engineer",
        "company": "Acme",
        "description": "Python and SQL services",
        "requirements": None,
        "referrer_id": "ref1",
    }

    assert email_service.notify_job_alerts(author, posting) == 2

    assert [c["json"]["to"][0]["email"] for c in sent] == ["both@example.com", "py@example.com"]
    assert sent[0]["json"]["subject"] == "New Job Alert - Backend Engineer"
    assert "posted by Ref1 Lovelace" in sent[0]["json"]["htmlContent"]


def test_job_alerts_skip_when_unconfigured(sent, make_user):
    make_user("py", role="seeker", skills=["Python"])
    posting = {"id": 1, "title": "Dev", "company": "Acme", "description": "Python", "referrer_id": "ref1"}
    assert email_service.notify_job_alerts({"first_name": "Ada"}, posting) == 0
    assert sent == []
