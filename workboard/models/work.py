"""
Workboard
Work hierarchy domain models.

Models:
    - WorkArea: top-level grouping of work inside a project
    - WorkTask: unit of work owned by a WorkArea
    - TaskMember: user membership on a WorkTask (tagged lifecycle)
    - TaskObjective: checklist item on a WorkTask
    - Comment: discussion entry on a WorkTask

Ownership is strong: a WorkArea owns its WorkTasks, and a WorkTask owns its
members, objectives, actions and comments.  The service layer deletes
children explicitly before their parent.
"""

import uuid
from datetime import datetime, timezone

from workboard.models import db


__all__ = [
    "WorkArea",
    "WorkTask",
    "TaskMember",
    "TaskObjective",
    "Comment",
    "MEMBER_ACTIVE",
    "MEMBER_INACTIVE",
    "MEMBER_REMOVED",
    "MEMBER_STATUSES",
]


# ── Helpers ──────────────────────────────────────────────────────────────────

def _uuid():
    return str(uuid.uuid4())


def _utcnow():
    return datetime.now(timezone.utc)


def _iso(value):
    return value.isoformat() if value else None


# ── Constants ────────────────────────────────────────────────────────────────

# TaskMember lifecycle.  A purged member has no row at all.
MEMBER_ACTIVE = "active"
MEMBER_INACTIVE = "inactive"
MEMBER_REMOVED = "removed"
MEMBER_STATUSES = {MEMBER_ACTIVE, MEMBER_INACTIVE, MEMBER_REMOVED}

DEFAULT_MEMBER_ROLE = "Assignee"


# ═════════════════════════════════════════════════════════════════════════════
# 1. WorkArea
# ═════════════════════════════════════════════════════════════════════════════

class WorkArea(db.Model):
    """Grouping of work tasks inside a project."""

    __tablename__ = "work_areas"
    __table_args__ = (
        db.Index("idx_wa_project_order", "project_id", "display_order"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    project_id = db.Column(
        db.String(36), nullable=False, index=True,
        comment="Reference into the project domain (not a local FK)",
    )
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.String(64), nullable=True)
    created_date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    work_tasks = db.relationship(
        "WorkTask", back_populates="work_area",
        cascade="all, delete-orphan", lazy="select",
        order_by="WorkTask.display_order",
    )

    @property
    def live_tasks(self):
        return [t for t in self.work_tasks if not t.is_deleted]

    def to_dict(self, include_tasks=False):
        d = {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "display_order": self.display_order,
            "created_by_user_id": self.created_by_user_id,
            "created_date": _iso(self.created_date),
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
        }
        if include_tasks:
            d["work_tasks"] = [t.to_dict(include_children=True) for t in self.live_tasks]
        return d

    def __repr__(self):
        return f"<WorkArea {self.id}: {self.name}>"


# ═════════════════════════════════════════════════════════════════════════════
# 2. WorkTask
# ═════════════════════════════════════════════════════════════════════════════

class WorkTask(db.Model):
    """
    Unit of work inside a WorkArea.

    Progress is a 0-100 percentage.  ``created_by_*`` and ``created_date``
    are stamped once at creation and never patched afterwards.
    """

    __tablename__ = "work_tasks"
    __table_args__ = (
        db.CheckConstraint("progress >= 0 AND progress <= 100", name="ck_wt_progress_range"),
        db.Index("idx_wt_area_order", "work_area_id", "display_order"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    work_area_id = db.Column(
        db.String(36), db.ForeignKey("work_areas.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    status = db.Column(db.String(30), nullable=True, comment="Todo | InProgress | Done | ...")
    priority = db.Column(db.String(30), nullable=True, comment="Low | Medium | High | ...")

    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    due_date = db.Column(db.Date, nullable=True)
    progress = db.Column(db.Integer, nullable=False, default=0)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.String(64), nullable=True)
    created_by_user_name = db.Column(db.String(150), nullable=True)
    created_date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    work_area = db.relationship("WorkArea", back_populates="work_tasks")
    members = db.relationship(
        "TaskMember", back_populates="work_task",
        cascade="all, delete-orphan", lazy="select",
        order_by="TaskMember.assigned_date",
    )
    objectives = db.relationship(
        "TaskObjective", back_populates="work_task",
        cascade="all, delete-orphan", lazy="select",
        order_by="TaskObjective.display_order",
    )
    actions = db.relationship(
        "TaskAction", back_populates="work_task",
        cascade="all, delete-orphan", lazy="select",
        order_by="TaskAction.action_date.desc()",
    )
    comments = db.relationship(
        "Comment", back_populates="work_task",
        cascade="all, delete-orphan", lazy="select",
        order_by="Comment.created_at.desc()",
    )

    @property
    def active_members(self):
        """Members that receive notifications (active and not removed)."""
        return [m for m in self.members if m.is_active and not m.is_deleted]

    def to_dict(self, include_children=False):
        d = {
            "id": self.id,
            "work_area_id": self.work_area_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "due_date": _iso(self.due_date),
            "progress": self.progress,
            "display_order": self.display_order,
            "created_by_user_id": self.created_by_user_id,
            "created_by_user_name": self.created_by_user_name,
            "created_date": _iso(self.created_date),
            "is_deleted": self.is_deleted,
        }
        if include_children:
            d["members"] = [m.to_dict() for m in self.active_members]
            d["objectives"] = [o.to_dict() for o in self.objectives if not o.is_deleted]
            d["actions"] = [a.to_dict() for a in self.actions]
        return d

    def __repr__(self):
        return f"<WorkTask {self.id}: {self.title[:40]}>"


# ═════════════════════════════════════════════════════════════════════════════
# 3. TaskMember
# ═════════════════════════════════════════════════════════════════════════════

class TaskMember(db.Model):
    """
    Membership of a user on a WorkTask.

    Lifecycle is a single tagged ``status``:
        active   → receives notifications, counts for uniqueness
        inactive → still listed on the task, muted
        removed  → soft-removed, kept for history only
    Hard deletion (purge) removes the row entirely.
    """

    __tablename__ = "task_members"
    __table_args__ = (
        db.Index("idx_tm_task_user", "work_task_id", "user_id"),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    work_task_id = db.Column(
        db.String(36), db.ForeignKey("work_tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(db.String(64), nullable=False, index=True)
    user_name = db.Column(db.String(150), nullable=True)
    user_email = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(50), nullable=False, default=DEFAULT_MEMBER_ROLE)
    assigned_by_user_id = db.Column(db.String(64), nullable=True)
    assigned_date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    status = db.Column(
        db.String(20), nullable=False, default=MEMBER_ACTIVE,
        comment="active | inactive | removed",
    )

    work_task = db.relationship("WorkTask", back_populates="members")

    @property
    def is_active(self):
        return self.status == MEMBER_ACTIVE

    @property
    def is_deleted(self):
        return self.status == MEMBER_REMOVED

    @property
    def address(self):
        """Notification address — email when known, otherwise the user name."""
        return self.user_email or self.user_name

    def set_active(self, active):
        """Toggle between active and inactive; removed members stay removed."""
        if self.status == MEMBER_REMOVED:
            return
        self.status = MEMBER_ACTIVE if active else MEMBER_INACTIVE

    def remove(self):
        """Soft-remove the membership (keeps the row for history)."""
        self.status = MEMBER_REMOVED

    def to_dict(self):
        return {
            "id": self.id,
            "work_task_id": self.work_task_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_email": self.user_email,
            "role": self.role,
            "assigned_by_user_id": self.assigned_by_user_id,
            "assigned_date": _iso(self.assigned_date),
            "status": self.status,
            "is_active": self.is_active,
            "is_deleted": self.is_deleted,
        }

    def __repr__(self):
        return f"<TaskMember {self.user_id} on {self.work_task_id} [{self.status}]>"


# ═════════════════════════════════════════════════════════════════════════════
# 4. TaskObjective
# ═════════════════════════════════════════════════════════════════════════════

class TaskObjective(db.Model):
    """Checklist objective on a WorkTask."""

    __tablename__ = "task_objectives"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    work_task_id = db.Column(
        db.String(36), db.ForeignKey("work_tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, nullable=True)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    created_by_user_id = db.Column(db.String(64), nullable=True)
    created_date = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    is_completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_date = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_by_user_id = db.Column(db.String(64), nullable=True)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    work_task = db.relationship("WorkTask", back_populates="objectives")

    def to_dict(self):
        return {
            "id": self.id,
            "work_task_id": self.work_task_id,
            "title": self.title,
            "description": self.description,
            "display_order": self.display_order,
            "created_by_user_id": self.created_by_user_id,
            "created_date": _iso(self.created_date),
            "is_completed": self.is_completed,
            "completed_date": _iso(self.completed_date),
            "completed_by_user_id": self.completed_by_user_id,
            "is_deleted": self.is_deleted,
        }

    def __repr__(self):
        return f"<TaskObjective {self.id}: {self.title[:40]}>"


# ═════════════════════════════════════════════════════════════════════════════
# 5. Comment
# ═════════════════════════════════════════════════════════════════════════════

class Comment(db.Model):
    """Comment on a WorkTask.  Editable and deletable by its author only."""

    __tablename__ = "comments"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    task_id = db.Column(
        db.String(36), db.ForeignKey("work_tasks.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(150), nullable=True)
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)

    work_task = db.relationship("WorkTask", back_populates="comments")

    def to_dict(self):
        return {
            "id": self.id,
            "task_id": self.task_id,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "content": self.content,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "is_deleted": self.is_deleted,
        }

    def __repr__(self):
        return f"<Comment {self.id} on {self.task_id}>"
