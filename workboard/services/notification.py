"""
Workboard
Notification Service.

Builds notification messages for work-hierarchy mutations and hands them to
the configured dispatcher once the mutation has been committed.

    messages = NotificationService.for_members(task.active_members, title=..., ...)
    db.session.commit()
    NotificationService.dispatch(messages)

Delivery is best-effort: each recipient is sent independently, a failing
recipient is logged and the loop moves on.  Nothing here can roll back the
already-committed mutation.

Dispatchers:
    - EmailDispatcher:   renders the task template through EmailService (default)
    - LoggingDispatcher: logs the message only

Any object with ``send_notification(message)`` can be installed at
``app.extensions["notification_dispatcher"]``.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Protocol

from flask import Flask, current_app
from sqlalchemy.exc import SQLAlchemyError

from workboard.models import db
from workboard.services.email_service import TYPE_COLORS, EmailService

logger = logging.getLogger(__name__)

EXTENSION_KEY = "notification_dispatcher"


# ── Message model ─────────────────────────────────────────────────────────────


class NotificationType(str, enum.Enum):
    TASK_ASSIGNED = "TaskAssigned"
    TASK_STATUS_CHANGED = "TaskStatusChanged"
    TASK_COMMENT_ADDED = "TaskCommentAdded"


class NotificationPriority(str, enum.Enum):
    NORMAL = "Normal"
    HIGH = "High"


class NotificationChannel(str, enum.Enum):
    EMAIL = "Email"
    IN_APP = "InApp"


@dataclass
class NotificationMessage:
    """One notification for one recipient."""

    user_id: str
    title: str
    message: str
    type: NotificationType
    task_id: str | None = None
    project_id: str | None = None
    priority: NotificationPriority = NotificationPriority.NORMAL
    channels: frozenset = frozenset({NotificationChannel.EMAIL})
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def email(self) -> str | None:
        return self.metadata.get("email")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "message": self.message,
            "type": self.type.value,
            "task_id": self.task_id,
            "project_id": self.project_id,
            "priority": self.priority.value,
            "channels": sorted(c.value for c in self.channels),
            "created_at": self.created_at.isoformat(),
            "metadata": dict(self.metadata),
        }


class NotificationDispatcher(Protocol):
    def send_notification(self, message: NotificationMessage) -> None: ...


# ── Dispatchers ───────────────────────────────────────────────────────────────


class LoggingDispatcher:
    """Dispatcher that only writes the message to the application log."""

    def send_notification(self, message: NotificationMessage) -> None:
        logger.info(
            "Notification: to=%s type=%s title='%s'",
            message.user_id, message.type.value, message.title,
            extra={"event_type": "notification", "task_id": message.task_id},
        )


class EmailDispatcher:
    """Dispatcher that delivers through EmailService (EmailLog-backed)."""

    template_name = "task_notification"

    def send_notification(self, message: NotificationMessage) -> None:
        if NotificationChannel.EMAIL not in message.channels:
            return
        address = message.email
        if not address:
            logger.warning("Notification %s has no address for user %s", message.id, message.user_id)
            return
        details = "".join(
            f"<p style=\"color: #94a3b8; font-size: 12px; margin: 4px 0;\">{k}: {v}</p>"
            for k, v in message.metadata.items()
            if k != "email"
        )
        EmailService.send_from_template(
            to_email=address,
            template_name=self.template_name,
            context={
                "title": message.title,
                "message": message.message,
                "type": message.type.value,
                "type_color": TYPE_COLORS.get(message.type.value, "#3b82f6"),
                "details": details,
            },
            category=message.type.value,
            notification_id=message.id,
            user_id=message.user_id,
            task_id=message.task_id,
        )


_DISPATCHERS = {
    "email": EmailDispatcher,
    "log": LoggingDispatcher,
}


def init_notifications(app: Flask) -> None:
    """Install the dispatcher named by NOTIFICATION_DISPATCHER."""
    name = app.config.get("NOTIFICATION_DISPATCHER", "email")
    dispatcher_cls = _DISPATCHERS.get(name)
    if dispatcher_cls is None:
        raise RuntimeError(
            f"Unknown NOTIFICATION_DISPATCHER={name!r}; expected one of {sorted(_DISPATCHERS)}"
        )
    app.extensions[EXTENSION_KEY] = dispatcher_cls()
    app.logger.debug("Notification dispatcher: %s", dispatcher_cls.__name__)


def get_dispatcher() -> NotificationDispatcher:
    return current_app.extensions[EXTENSION_KEY]


def _default_channels() -> frozenset:
    names = current_app.config.get("NOTIFICATION_DEFAULT_CHANNELS", ("Email",))
    return frozenset(NotificationChannel(n) for n in names)


# ── Service ───────────────────────────────────────────────────────────────────


class NotificationService:
    """Stateless helpers for building and dispatching notifications."""

    @staticmethod
    def build(
        *,
        user_id,
        address,
        title: str,
        message: str,
        type: NotificationType = NotificationType.TASK_ASSIGNED,
        task_id=None,
        project_id=None,
        metadata: dict | None = None,
    ) -> NotificationMessage:
        """Build a single message.  ``address`` lands in metadata["email"]."""
        meta = dict(metadata or {})
        meta["email"] = address
        return NotificationMessage(
            user_id=str(user_id),
            title=title,
            message=message,
            type=type,
            task_id=str(task_id) if task_id is not None else None,
            project_id=str(project_id) if project_id is not None else None,
            channels=_default_channels(),
            metadata=meta,
        )

    @staticmethod
    def for_members(members, **kwargs) -> list[NotificationMessage]:
        """One message per member, addressed by member email or user name."""
        return [
            NotificationService.build(user_id=m.user_id, address=m.address, **kwargs)
            for m in members
        ]

    @staticmethod
    def distinct_members(members) -> list:
        """First occurrence of each user id, in input order."""
        seen = set()
        distinct = []
        for m in members:
            if m.user_id in seen:
                continue
            seen.add(m.user_id)
            distinct.append(m)
        return distinct

    @staticmethod
    def dispatch(messages) -> int:
        """Send messages sequentially after the mutation has committed.

        Returns:
            Number of messages the dispatcher accepted.
        """
        messages = list(messages)
        if not messages:
            return 0

        dispatcher = get_dispatcher()
        sent = 0
        for msg in messages:
            try:
                dispatcher.send_notification(msg)
                sent += 1
            except Exception:
                logger.exception(
                    "Notification dispatch failed: id=%s user=%s title='%s'",
                    msg.id, msg.user_id, msg.title,
                    extra={"event_type": "notification_failed", "task_id": msg.task_id},
                )

        # Delivery logs written by the dispatcher share the session.
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not persist notification delivery log")

        if sent < len(messages):
            logger.warning("Dispatched %d/%d notifications", sent, len(messages))
        return sent
