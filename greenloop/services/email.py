"""
Outgoing email.

Templates use `{{ VAR }}` placeholders. When EMAIL_HOST is not configured
messages are only logged, which is the default in development and tests.
"""
from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from greenloop.core.config import settings

logger = logging.getLogger(__name__)


REWARD_EMAIL_TEMPLATES: dict[str, dict[str, str]] = {
    "reward_claimed": {
        "subject": "Reward Claim Received - GreenLoop",
        "html": (
            "<h2>Hi {{ USER_NAME }},</h2>"
            "<p>We received your claim for <strong>{{ REWARD_TITLE }}</strong> "
            "(Level {{ LEVEL }}).</p>"
            "<p>{{ REWARD_DESCRIPTION }}</p>"
            "<p>An administrator will contact you within 24-48 hours.</p>"
            '<p><a href="{{ SITE_URL }}/rewards">View your rewards</a></p>'
        ),
    },
    "reward_admin_alert": {
        "subject": "New Reward Claim - Action Required",
        "html": (
            "<h2>New reward claim</h2>"
            "<p>{{ USER_NAME }} ({{ USER_EMAIL }}) claimed "
            "<strong>{{ REWARD_TITLE }}</strong> for reaching Level {{ LEVEL }}.</p>"
            "<p>Claimed at: {{ CLAIMED_AT }}</p>"
            '<p><a href="{{ SITE_URL }}/admin/rewards">Review claims</a></p>'
        ),
    },
    "reward_approved": {
        "subject": "Reward Approved! - GreenLoop",
        "html": (
            "<h2>Congratulations {{ USER_NAME }}!</h2>"
            "<p>Your Level {{ LEVEL }} reward <strong>{{ REWARD_TITLE }}</strong> "
            "has been approved.</p>"
            "<p>{{ ADMIN_NOTES }}</p>"
        ),
    },
    "reward_rejected": {
        "subject": "Reward Claim Update - GreenLoop",
        "html": (
            "<h2>Hi {{ USER_NAME }},</h2>"
            "<p>Your claim for <strong>{{ REWARD_TITLE }}</strong> was not approved.</p>"
            "<p>Reason: {{ ADMIN_NOTES }}</p>"
        ),
    },
    "reward_delivered": {
        "subject": "Reward Delivered! - GreenLoop",
        "html": (
            "<h2>Enjoy, {{ USER_NAME }}!</h2>"
            "<p>Your Level {{ LEVEL }} reward <strong>{{ REWARD_TITLE }}</strong> "
            "has been delivered.</p>"
            "<p>{{ ADMIN_NOTES }}</p>"
        ),
    },
}


def render_template(template: str, **variables) -> str:
    html = template
    for key, value in variables.items():
        html = html.replace(f"{{{{ {key} }}}}", "" if value is None else str(value))
    return html


class EmailSender:
    def send(self, to_email: str, subject: str, html: str) -> None:
        if not settings.email_enabled:
            logger.info("Email delivery disabled; would send %r to %s", subject, to_email)
            return

        msg = MIMEMultipart()
        msg["From"] = settings.EMAIL_FROM
        msg["To"] = to_email
        msg["Subject"] = subject
        msg.attach(MIMEText(html, "html"))

        with smtplib.SMTP(
            settings.EMAIL_HOST, settings.EMAIL_PORT, timeout=settings.EMAIL_TIMEOUT_SECONDS
        ) as server:
            server.starttls()
            if settings.EMAIL_USER:
                server.login(settings.EMAIL_USER, settings.EMAIL_PASSWORD)
            server.send_message(msg)

    def send_template(self, kind: str, to_email: str, **variables) -> bool:
        """Render and send a reward email. Returns False when `kind` has no template."""
        template = REWARD_EMAIL_TEMPLATES.get(kind)
        if template is None:
            return False
        variables.setdefault("SITE_URL", settings.SITE_URL)
        self.send(to_email, template["subject"], render_template(template["html"], **variables))
        return True
