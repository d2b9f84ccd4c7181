# backend/app/core/email.py
"""
Outgoing mail for invite and password-reset links.

EMAIL_PROVIDER=resend posts to the Resend API; anything else writes the
message to the application log, which is what dev and tests rely on.
"""
from __future__ import annotations

import json
import logging
import urllib.error
import urllib.request
from typing import Optional

from app.core.config import settings

logger = logging.getLogger("codingchallenge")

RESEND_API_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 10


def _log_email(*, to_email: str, subject: str, text_body: str, html_body: Optional[str]) -> None:
    logger.info(
        "mail not delivered (log provider) to=%s subject=%s\n%s%s",
        to_email,
        subject,
        text_body,
        f"\n--- HTML ---\n{html_body}" if html_body else "",
    )


def _deliver_via_resend(*, to_email: str, subject: str, text_body: str, html_body: Optional[str]) -> None:
    if not settings.resend_api_key:
        logger.warning("EMAIL_PROVIDER=resend without RESEND_API_KEY; logging the mail instead")
        _log_email(to_email=to_email, subject=subject, text_body=text_body, html_body=html_body)
        return

    message = {"from": settings.email_from, "to": [to_email], "subject": subject, "text": text_body}
    if html_body:
        message["html"] = html_body

    req = urllib.request.Request(
        url=RESEND_API_URL,
        data=json.dumps(message).encode("utf-8"),
        method="POST",
        headers={
            "Authorization": f"Bearer {settings.resend_api_key}",
            "Content-Type": "application/json",
        },
    )

    try:
        with urllib.request.urlopen(req, timeout=RESEND_TIMEOUT_SECONDS) as resp:
            resp.read()
    except urllib.error.HTTPError as e:
        logger.error("Mail to=%s rejected by Resend status=%s", to_email, e.code)
        return
    except (urllib.error.URLError, OSError):
        logger.exception("Mail to=%s could not reach Resend", to_email)
        return

    logger.info("Mail delivered via Resend to=%s subject=%s", to_email, subject)


def send_email(
    *,
    to_email: str,
    subject: str,
    text_body: str,
    html_body: Optional[str] = None,
) -> None:
    """
    Deliver one mail. Never raises: callers send after their database work
    is committed, and a provider failure must not undo an invite or reset.
    """
    to_email = (to_email or "").strip()
    if not to_email:
        return

    if (settings.email_provider or "log").strip().lower() == "resend":
        _deliver_via_resend(to_email=to_email, subject=subject, text_body=text_body, html_body=html_body)
    else:
        _log_email(to_email=to_email, subject=subject, text_body=text_body, html_body=html_body)
