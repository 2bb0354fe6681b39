"""
E-mail notifications through the Brevo transactional API.

Sent from FastAPI background tasks after the response. Nothing here raises:
a missing configuration skips the send, an API failure logs a warning.

Messages: welcome on role selection, job posted confirmation, job alerts to
seekers whose skills the new posting mentions, new referral request, and
referral status updates.
"""

import html
import logging
from datetime import datetime
from typing import Optional

import requests

from referralme.core.config import get_settings
from referralme.services import matching_service

settings = get_settings()
logger = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 10


def is_configured() -> bool:
    return bool(settings.brevo_api_key and settings.email_from)


def send_email(to: Optional[str], subject: str, html_content: str) -> bool:
    """POST one message to Brevo. Returns True when Brevo accepted it."""
    if not to:
        return False
    if not is_configured():
        logger.debug("E-mail not configured, skipping '%s' to %s", subject, to)
        return False

    try:
        response = requests.post(
            settings.brevo_api_url,
            headers={
                "api-key": settings.brevo_api_key,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            json={
                "sender": {"email": settings.email_from, "name": settings.email_from_name},
                "to": [{"email": to}],
                "subject": subject,
                "htmlContent": html_content,
            },
            timeout=SEND_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        logger.warning("E-mail to %s failed: %s", to, e)
        return False

    if not response.ok:
        logger.warning("Brevo rejected e-mail to %s: %s %s", to, response.status_code, response.text[:200])
        return False

    logger.info("E-mail '%s' sent to %s", subject, to)
    return True


def _wrap(content: str) -> str:
    return f"""
  <div style="font-family: Arial, sans-serif; max-width:600px; margin:auto;
              border:1px solid #eee; padding:20px; border-radius:8px; background:#f9f9f9;">
    <div style="font-size:16px; color:#333;">{content}</div>
    <hr style="margin:20px 0;" />
    <div style="font-size:12px; color:#999; text-align:center;">
      &copy; {datetime.utcnow().year} {html.escape(settings.email_from_name)}. All rights reserved.
    </div>
  </div>
"""


def _name(user: dict) -> str:
    return html.escape(user.get("first_name") or user.get("email") or "there")


# ============================================================
# TEMPLATES
# ============================================================

def job_posted_email(referrer: dict, posting: dict) -> tuple:
    subject = f"Job Posted Successfully - {posting['title']}"
    body = _wrap(f"""
      <p>Hi {_name(referrer)},</p>
      <p>Your job posting for <b>{html.escape(posting['company'])}</b> is now live.</p>
      <p><b>Role:</b> {html.escape(posting['title'])}</p>
    """)
    return subject, body


def request_received_email(referrer: dict, posting: dict, request: dict) -> tuple:
    subject = f"New Referral Request - {posting['title']}"
    body = _wrap(f"""
      <p>Hi {_name(referrer)},</p>
      <p><b>{html.escape(request['full_name'])}</b> asked for a referral for <b>{html.escape(posting['title'])}</b>
         at {html.escape(posting['company'])}.</p>
      <p><a href="{settings.app_base_url}">Review the request</a></p>
    """)
    return subject, body


def status_update_email(request: dict, posting: dict, status: str, referrer: dict) -> tuple:
    subject = f"Referral Update - {posting['title']}"
    pretty_status = status.replace("_", " ")
    body = _wrap(f"""
      <p>Hi {html.escape(request['full_name'])},</p>
      <p>Your referral request for <b>{html.escape(posting['title'])}</b> is now <b>{html.escape(pretty_status)}</b>.</p>
      <p>Updated by {_name(referrer)}.</p>
    """)
    return subject, body


def welcome_email(user: dict) -> tuple:
    if user.get("role") == "referrer":
        subject = "Welcome to ReferralMe Referrer Community"
        message = "You can now post referral opportunities and help others get hired."
    else:
        subject = "Welcome to ReferralMe"
        message = "Your job-seeker profile is now live. Start applying with referrals and boost your chances!"
    body = _wrap(f"""
      <p>Hi {_name(user)},</p>
      <p>{message}</p>
      <p><a href="{settings.app_base_url}">Open ReferralMe</a></p>
    """)
    return subject, body


def job_alert_email(seeker: dict, posting: dict, referrer: dict) -> tuple:
    subject = f"New Job Alert - {posting['title']}"
    posted_by = " ".join(filter(None, [referrer.get("first_name"), referrer.get("last_name")])) or "a referrer"
    body = _wrap(f"""
      <p>Hi {_name(seeker)},</p>
      <p>A new job at <b>{html.escape(posting['company'])}</b> was posted by {html.escape(posted_by)}.</p>
      <p><b>Role:</b> {html.escape(posting['title'])}</p>
      <p><a href="{settings.app_base_url}">View the posting</a></p>
    """)
    return subject, body


# ============================================================
# NOTIFICATIONS (background task entry points)
# ============================================================

def notify_job_posted(referrer: dict, posting: dict) -> bool:
    subject, body = job_posted_email(referrer, posting)
    return send_email(referrer.get("email"), subject, body)


def notify_request_received(referrer: dict, posting: dict, request: dict) -> bool:
    subject, body = request_received_email(referrer, posting, request)
    return send_email(referrer.get("email"), subject, body)


def notify_status_update(request: dict, posting: dict, status: str, referrer: dict) -> bool:
    subject, body = status_update_email(request, posting, status, referrer)
    return send_email(request.get("email"), subject, body)


def notify_welcome(user: dict) -> bool:
    subject, body = welcome_email(user)
    return send_email(user.get("email"), subject, body)


def notify_job_alerts(referrer: dict, posting: dict) -> int:
    """E-mail matching seekers about a new posting. Returns how many sends Brevo accepted."""
    if not is_configured():
        return 0

    seekers = matching_service.seekers_for_posting(posting, limit=settings.job_alert_max_recipients)
    sent = 0
    for seeker in seekers:
        subject, body = job_alert_email(seeker, posting, referrer)
        if send_email(seeker.get("email"), subject, body):
            sent += 1
    logger.info("Job alert for posting %s sent to %d of %d seekers", posting.get("id"), sent, len(seekers))
    return sent
