"""Email delivery via Resend (HTTP) or SMTP, and the notifier used by the services."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Optional

import resend

from autoapply.config import EmailConfig
from autoapply.notifications.templates import render_auto_apply_summary, render_match_digest

logger = logging.getLogger("autoapply.notifications")


def send_email(config: EmailConfig, recipient: str, subject: str, html_body: str) -> bool:
    """Send email via Resend if an API key is configured, otherwise SMTP. Raises on failure."""
    if config.resend_api_key:
        resend.api_key = config.resend_api_key
        resend.Emails.send({
            "from": f"AutoApply <{config.sender_email}>",
            "to": [recipient],
            "subject": subject,
            "html": html_body,
        })
        return True

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = config.sender_email
    msg["To"] = recipient
    msg.attach(MIMEText(f"View this email in an HTML-capable client.\n\nSubject: {subject}", "plain"))
    msg.attach(MIMEText(html_body, "html"))

    with smtplib.SMTP(config.smtp_server, config.smtp_port, timeout=30) as server:
        server.ehlo()
        server.starttls()
        server.ehlo()
        server.login(config.sender_email, config.sender_password)
        server.sendmail(config.sender_email, recipient, msg.as_string())

    return True


class EmailNotifier:
    """Best-effort notification dispatch. Never raises; returns False when nothing was sent."""

    def __init__(
        self,
        config: EmailConfig,
        resolve_email: Callable[[str], Optional[str]],
        sender: Callable[[EmailConfig, str, str, str], bool] = send_email,
    ):
        self.config = config
        self.resolve_email = resolve_email
        self.sender = sender

    def render(self, notification_type: str, payload: dict) -> tuple[str, str]:
        if notification_type == "daily_summary":
            return render_auto_apply_summary(payload.get("applications", []), self.config.site_url)
        if notification_type == "new_job_matches":
            return render_match_digest(
                payload.get("matches", []),
                auto_apply_enabled=payload.get("auto_apply_enabled", False),
                auto_apply_threshold=payload.get("auto_apply_threshold", 75),
                site_url=self.config.site_url,
            )
        raise ValueError(f"Unknown notification type: {notification_type}")

    def send_notification(self, user_id: str, notification_type: str, payload: dict) -> bool:
        if not self.config.sender_email:
            logger.warning("[user:%s] Sender email not configured, skipping %s", user_id, notification_type)
            return False
        if not self.config.resend_api_key and not self.config.sender_password:
            logger.warning("[user:%s] No Resend API key or SMTP password, skipping %s", user_id, notification_type)
            return False

        recipient = self.resolve_email(user_id)
        if not recipient:
            logger.warning("[user:%s] No email address on file, skipping %s", user_id, notification_type)
            return False

        try:
            subject, html = self.render(notification_type, payload)
            self.sender(self.config, recipient, subject, html)
        except smtplib.SMTPAuthenticationError:
            logger.error(
                "[user:%s] SMTP authentication failed. Make sure you're using a Gmail App Password.", user_id
            )
            return False
        except Exception as e:
            logger.error("[user:%s] Email error: %s: %s", user_id, type(e).__name__, e)
            return False

        logger.info("[user:%s] %s email sent to %s", user_id, notification_type, recipient)
        return True
