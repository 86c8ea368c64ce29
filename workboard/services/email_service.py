"""
Workboard
Email Service.

Provides email sending with template support for task notifications.
When SMTP is not configured, emails are logged but not sent (dev/test mode).

Uses:
    - Flask-Mail compatible config (MAIL_SERVER, MAIL_PORT, etc.)
    - Falls back to logging-only mode when SMTP is not configured
    - All emails are recorded in EmailLog for audit

Configuration (env vars):
    MAIL_SERVER     SMTP host (default: None → log-only mode)
    MAIL_PORT       SMTP port (default: 587)
    MAIL_USE_TLS    Use TLS (default: true)
    MAIL_USERNAME   SMTP username
    MAIL_PASSWORD   SMTP password
    MAIL_DEFAULT_SENDER  Default from address
"""

from __future__ import annotations

import html
import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any

from flask import current_app

from workboard.models import db
from workboard.models.notification import EmailLog

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
#  Email Templates
# ═══════════════════════════════════════════════════════════════════════════

_TEMPLATES: dict[str, dict[str, str]] = {
    "task_notification": {
        "subject": "[Workboard] {title}",
        "html": """
        <div style="font-family: 'Inter', Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <div style="background: #1e293b; color: white; padding: 16px 24px; border-radius: 8px 8px 0 0;">
                <h2 style="margin: 0; font-size: 18px;">Workboard</h2>
            </div>
            <div style="background: #f8fafc; padding: 24px; border: 1px solid #e2e8f0; border-top: none;">
                <div style="background: {type_color}; color: white; padding: 4px 12px; border-radius: 4px;
                            display: inline-block; font-size: 12px; font-weight: 600;">
                    {type}
                </div>
                <h3 style="margin: 16px 0 8px; color: #1e293b;">{title}</h3>
                <p style="color: #64748b; line-height: 1.6;">{message}</p>
                {details}
            </div>
            <div style="background: #f1f5f9; padding: 12px 24px; border-radius: 0 0 8px 8px;
                        border: 1px solid #e2e8f0; border-top: none; text-align: center;">
                <p style="color: #94a3b8; font-size: 12px; margin: 0;">
                    Workboard — Automated notification
                </p>
            </div>
        </div>
        """,
    },
}

TYPE_COLORS = {
    "TaskAssigned": "#3b82f6",
    "TaskStatusChanged": "#f59e0b",
    "TaskCommentAdded": "#22c55e",
}


class EmailService:
    """
    Email sending service with template support.

    In development/test mode (no MAIL_SERVER configured), emails are
    logged to the database but not actually sent via SMTP.
    """

    @staticmethod
    def is_configured() -> bool:
        """Check if SMTP is configured."""
        return bool(current_app.config.get("MAIL_SERVER"))

    @staticmethod
    def get_template(template_name: str) -> dict[str, str] | None:
        """Get an email template by name."""
        return _TEMPLATES.get(template_name)

    @classmethod
    def send(
        cls,
        *,
        to_email: str,
        to_name: str | None = None,
        subject: str,
        html_body: str,
        template_name: str | None = None,
        category: str = "TaskAssigned",
        notification_id: str | None = None,
        user_id: str | None = None,
        task_id: str | None = None,
    ) -> EmailLog:
        """
        Send an email and log it.

        If SMTP is not configured, the email is logged with status='sent'
        (in dev mode) to simulate sending without actual delivery.

        Returns:
            The EmailLog record for this email (flushed, not committed).
        """
        log = EmailLog(
            recipient_email=to_email,
            recipient_name=to_name,
            subject=subject[:500],
            template_name=template_name,
            category=category,
            status="queued",
            notification_id=notification_id,
            user_id=user_id,
            task_id=task_id,
        )
        db.session.add(log)
        db.session.flush()

        if not cls.is_configured():
            # Dev/test mode: log only
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            logger.info(
                "Email (dev mode): to=%s subject='%s' template=%s",
                to_email, subject, template_name,
            )
            return log

        try:
            cls._send_smtp(to_email=to_email, to_name=to_name,
                           subject=subject, html_body=html_body)
            log.status = "sent"
            log.sent_at = datetime.now(timezone.utc)
            logger.info("Email sent: to=%s subject='%s'", to_email, subject)
        except (smtplib.SMTPException, OSError) as exc:
            log.status = "failed"
            log.error_message = str(exc)[:1000]
            logger.error("Email failed: to=%s error=%s", to_email, exc)

        return log

    @classmethod
    def send_from_template(
        cls,
        *,
        to_email: str,
        to_name: str | None = None,
        template_name: str,
        context: dict[str, Any],
        category: str = "TaskAssigned",
        notification_id: str | None = None,
        user_id: str | None = None,
        task_id: str | None = None,
    ) -> EmailLog | None:
        """
        Send an email using a named template.

        Template variables are HTML-escaped and interpolated from the context dict.
        """
        template = cls.get_template(template_name)
        if not template:
            logger.warning("Email template not found: %s", template_name)
            return None

        subject = template["subject"].format_map(_SafeDict(context))
        safe_context = {
            k: v if k == "details" else html.escape(str(v)) for k, v in context.items()
        }
        html_body = template["html"].format_map(_SafeDict(safe_context))

        return cls.send(
            to_email=to_email,
            to_name=to_name,
            subject=subject,
            html_body=html_body,
            template_name=template_name,
            category=category,
            notification_id=notification_id,
            user_id=user_id,
            task_id=task_id,
        )

    @staticmethod
    def _send_smtp(*, to_email: str, to_name: str | None,
                   subject: str, html_body: str) -> None:
        """Actually send via SMTP."""
        cfg = current_app.config
        server = cfg.get("MAIL_SERVER")
        port = cfg.get("MAIL_PORT", 587)
        use_tls = cfg.get("MAIL_USE_TLS", True)
        username = cfg.get("MAIL_USERNAME")
        password = cfg.get("MAIL_PASSWORD")
        sender = cfg.get("MAIL_DEFAULT_SENDER", f"noreply@{server}")

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = sender
        msg["To"] = f"{to_name} <{to_email}>" if to_name else to_email
        msg.attach(MIMEText(html_body, "html"))

        with smtplib.SMTP(server, port, timeout=30) as smtp:
            if use_tls:
                smtp.starttls()
            if username and password:
                smtp.login(username, password)
            smtp.send_message(msg)


class _SafeDict(dict):
    """Dict that returns {key} for missing keys instead of raising."""

    def __missing__(self, key):
        return f"{{{key}}}"
