"""
Workboard
Notification delivery log.

Models:
    - EmailLog: one row per outbound email attempt made by the email dispatcher
"""

from datetime import datetime, timezone

from workboard.models import db


# ── Constants ────────────────────────────────────────────────────────────────

EMAIL_STATUSES = {"queued", "sent", "failed"}


class EmailLog(db.Model):
    """
    Outbound email audit log.

    Task ids are stored without a foreign key: deletion notifications are
    logged after the task row is already gone.
    """

    __tablename__ = "email_logs"

    id = db.Column(db.Integer, primary_key=True)
    recipient_email = db.Column(db.String(255), nullable=False, index=True)
    recipient_name = db.Column(db.String(150), nullable=True)
    subject = db.Column(db.String(500), nullable=False)
    template_name = db.Column(db.String(100), nullable=True,
                              comment="Email template used")
    category = db.Column(db.String(30), default="TaskAssigned",
                         comment="Notification type that triggered this email")
    status = db.Column(db.String(20), default="queued",
                       comment="queued, sent, failed")
    error_message = db.Column(db.Text, nullable=True)

    # Linkage
    notification_id = db.Column(db.String(36), nullable=True, index=True,
                                comment="NotificationMessage.id")
    user_id = db.Column(db.String(64), nullable=True, index=True)
    task_id = db.Column(db.String(36), nullable=True, index=True)

    sent_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True),
                           default=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            "id": self.id,
            "recipient_email": self.recipient_email,
            "recipient_name": self.recipient_name,
            "subject": self.subject,
            "template_name": self.template_name,
            "category": self.category,
            "status": self.status,
            "error_message": self.error_message,
            "notification_id": self.notification_id,
            "user_id": self.user_id,
            "task_id": self.task_id,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<EmailLog {self.id}: {self.subject[:40]} → {self.recipient_email}>"
