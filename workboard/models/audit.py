"""
Workboard
Audit domain model.

Models:
    - TaskAction: immutable, append-only history of what changed on a WorkTask.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import event

from workboard.models import db


# ── Constants ────────────────────────────────────────────────────────────────

ACTION_CREATED = "Created"
ACTION_UPDATED = "Updated"
ACTION_DELETED = "Deleted"

TASK_ACTION_TYPES = {ACTION_CREATED, ACTION_UPDATED, ACTION_DELETED}

SYSTEM_USER_NAME = "System User"


class TaskAction(db.Model):
    """
    Immutable audit row for a WorkTask.

    One row per event.  Field-level updates carry ``old_value`` /
    ``new_value``; creation rows leave them empty.
    """

    __tablename__ = "task_actions"
    __table_args__ = (
        db.Index("idx_ta_task_date", "work_task_id", "action_date"),
    )

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    work_task_id = db.Column(
        db.String(36), db.ForeignKey("work_tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    action_type = db.Column(db.String(30), nullable=False, comment="Created | Updated | Deleted")
    description = db.Column(db.Text, nullable=True)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)
    action_date = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    user_id = db.Column(db.String(64), nullable=True)
    user_name = db.Column(db.String(150), nullable=True)

    work_task = db.relationship("WorkTask", back_populates="actions")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "work_task_id": self.work_task_id,
            "action_type": self.action_type,
            "description": self.description,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "action_date": self.action_date.isoformat() if self.action_date else None,
            "user_id": self.user_id,
            "user_name": self.user_name,
        }

    def __repr__(self):
        return f"<TaskAction {self.id}: {self.action_type} on {self.work_task_id}>"


@event.listens_for(TaskAction, "before_update")
def _reject_task_action_update(mapper, connection, target):
    raise ValueError(f"TaskAction {target.id} is immutable")


# ── Convenience writer ───────────────────────────────────────────────────────

def write_task_action(
    *,
    work_task_id: str,
    action_type: str,
    description: str,
    old_value: str | None = None,
    new_value: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
    action_date: datetime | None = None,
) -> TaskAction:
    """
    Append a single TaskAction row.  Uses ``flush`` so callers keep
    transaction control.
    """
    action = TaskAction(
        work_task_id=work_task_id,
        action_type=action_type,
        description=description,
        old_value=old_value,
        new_value=new_value,
        user_id=user_id or None,
        user_name=user_name or SYSTEM_USER_NAME,
        action_date=action_date or datetime.now(timezone.utc),
    )
    db.session.add(action)
    db.session.flush()
    return action
