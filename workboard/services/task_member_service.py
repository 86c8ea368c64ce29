"""
Task Member Service — membership of users on WorkTasks.

Functions:
    - assign_work_task_to_user:   create an "Assignee" membership, notify all active members
    - remove_work_task_from_user: soft-remove by (task, user), active or inactive; silent when absent
    - create_task_member:         generic create with the same checks as assign
    - get_task_member / list_task_members
    - update_task_member:         role / active flag / assigned_by only
    - delete_task_member:         purge the row, notify remaining members
    - remove_task_member:         soft-remove by member id, no notification

A user holds at most one non-removed membership per task, so at most one
active one.  The check is check-then-act; concurrent assigns can race.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from workboard.core.exceptions import ConflictError, NotFoundError, ValidationError
from workboard.models import db
from workboard.models.work import (
    DEFAULT_MEMBER_ROLE,
    MEMBER_ACTIVE,
    MEMBER_REMOVED,
    TaskMember,
    WorkTask,
)
from workboard.services.helpers.queries import get_live_or_none, paginate
from workboard.services.notification import NotificationService, NotificationType
from workboard.utils.helpers import parse_bool

logger = logging.getLogger(__name__)


# ── Internal helpers ─────────────────────────────────────────────────────────


def _require_task(work_task_id) -> WorkTask:
    task = get_live_or_none(WorkTask, work_task_id)
    if task is None:
        raise ValidationError(
            f"WorkTask with ID {work_task_id} does not exist or has been deleted",
            details={"work_task_id": work_task_id},
        )
    return task


def _current_membership(work_task_id, user_id, *, active_only=False):
    """The user's non-removed membership on the task (active only when asked)."""
    stmt = select(TaskMember).where(
        TaskMember.work_task_id == str(work_task_id),
        TaskMember.user_id == str(user_id),
    )
    if active_only:
        stmt = stmt.where(TaskMember.status == MEMBER_ACTIVE)
    else:
        stmt = stmt.where(TaskMember.status != MEMBER_REMOVED)
    return db.session.execute(stmt).scalars().first()


def _get_member(member_id) -> TaskMember:
    """Any row, removed ones included.  Only the purge path uses it."""
    member = db.session.get(TaskMember, str(member_id)) if member_id else None
    if member is None:
        raise NotFoundError(resource="TaskMember", resource_id=member_id)
    return member


def _notify_members(task: WorkTask, title: str, message: str, metadata: dict) -> int:
    return NotificationService.dispatch(NotificationService.for_members(
        task.active_members,
        title=title,
        message=message,
        type=NotificationType.TASK_ASSIGNED,
        task_id=task.id,
        project_id=task.work_area_id,
        metadata=metadata,
    ))


# ── Assign / unassign ────────────────────────────────────────────────────────


def assign_work_task_to_user(work_task_id, user_id, user_name, user_email=None, assigned_by=None):
    """Add ``user_id`` to the task as an active "Assignee".

    Raises:
        ValidationError: task missing or deleted, or no user id.
        ConflictError: the user already holds a membership that is not removed.
    """
    if not user_id:
        raise ValidationError("user_id is required", details={"user_id": "required"})
    task = _require_task(work_task_id)
    if _current_membership(task.id, user_id) is not None:
        raise ConflictError("TaskMember", "work_task_id+user_id", f"{task.id}/{user_id}")

    member = TaskMember(
        user_id=str(user_id),
        user_name=user_name,
        user_email=user_email,
        role=DEFAULT_MEMBER_ROLE,
        assigned_by_user_id=assigned_by,
        assigned_date=datetime.now(timezone.utc),
        status=MEMBER_ACTIVE,
    )
    task.members.append(member)
    db.session.commit()
    logger.info(
        "WorkTask assigned",
        extra={"work_task_id": task.id, "user_id": member.user_id, "member_id": member.id},
    )

    _notify_members(
        task,
        title="Task Assigned",
        message=f"{user_name or user_id} has been assigned to task '{task.title}'.",
        metadata={"taskTitle": task.title, "userName": user_name},
    )
    return member


def remove_work_task_from_user(work_task_id, user_id):
    """Soft-remove the user's membership, active or not.  Returns None when there is none."""
    member = _current_membership(work_task_id, user_id)
    if member is None:
        logger.debug("No membership for user %s on task %s", user_id, work_task_id)
        return None
    member.remove()
    db.session.commit()
    logger.info("WorkTask unassigned", extra={"work_task_id": work_task_id, "user_id": user_id})
    return member


# ── CRUD ─────────────────────────────────────────────────────────────────────


def create_task_member(data: dict) -> TaskMember:
    """Create a membership from a payload.

    Same parent and uniqueness rules as assign_work_task_to_user, but the
    role and the initial active flag come from the payload.
    """
    if data is None:
        raise ValidationError("TaskMember data cannot be null")
    user_id = str(data.get("user_id") or "").strip()
    if not user_id:
        raise ValidationError("user_id is required", details={"user_id": "required"})
    task = _require_task(data.get("work_task_id"))
    if _current_membership(task.id, user_id) is not None:
        raise ConflictError("TaskMember", "work_task_id+user_id", f"{task.id}/{user_id}")

    member = TaskMember(
        user_id=user_id,
        user_name=data.get("user_name"),
        user_email=data.get("user_email"),
        role=data.get("role") or DEFAULT_MEMBER_ROLE,
        assigned_by_user_id=data.get("assigned_by_user_id"),
        assigned_date=datetime.now(timezone.utc),
        status=MEMBER_ACTIVE,
    )
    member.set_active(parse_bool(data.get("is_active"), default=True))
    task.members.append(member)
    db.session.commit()
    logger.info("TaskMember created", extra={"work_task_id": task.id, "member_id": member.id})

    _notify_members(
        task,
        title="Task Member Created",
        message=f"{member.user_name or member.user_id} has been added to task '{task.title}'.",
        metadata={"taskTitle": task.title, "userName": member.user_name},
    )
    return member


def get_task_member(member_id) -> TaskMember:
    """Raises NotFoundError for missing or removed members."""
    member = _get_member(member_id)
    if member.is_deleted:
        raise NotFoundError(resource="TaskMember", resource_id=member_id)
    return member


def list_task_members(work_task_id, page: int = 1, size: int = 10):
    stmt = (
        select(TaskMember)
        .where(TaskMember.work_task_id == str(work_task_id), TaskMember.status != MEMBER_REMOVED)
        .order_by(TaskMember.assigned_date, TaskMember.id)
    )
    return paginate(stmt, page=page, size=size)


def update_task_member(member_id, data: dict) -> TaskMember:
    """Update role, active flag and assigned_by.  Identity fields never change."""
    if data is None:
        raise ValidationError("TaskMember data cannot be null")
    member = get_task_member(member_id)
    active = parse_bool(data.get("is_active")) if "is_active" in data else None
    if active and not member.is_active:
        other = _current_membership(member.work_task_id, member.user_id, active_only=True)
        if other is not None and other.id != member.id:
            raise ConflictError(
                "TaskMember", "work_task_id+user_id", f"{member.work_task_id}/{member.user_id}",
            )

    if "role" in data and data["role"]:
        member.role = str(data["role"])[:50]
    if active is not None:
        member.set_active(active)
    if "assigned_by_user_id" in data:
        member.assigned_by_user_id = data.get("assigned_by_user_id")
    db.session.commit()
    logger.info("TaskMember updated", extra={"member_id": member.id, "status": member.status})

    task = member.work_task
    _notify_members(
        task,
        title="Task Member Updated",
        message=f"Membership of {member.user_name or member.user_id} on task '{task.title}' has been updated.",
        metadata={"taskTitle": task.title, "userName": member.user_name},
    )
    return member


def delete_task_member(member_id) -> None:
    """Purge the membership row and notify the task's remaining active members."""
    member = _get_member(member_id)
    work_task_id = member.work_task_id
    user_name = member.user_name or member.user_id

    task = member.work_task
    task.members.remove(member)
    db.session.delete(member)
    db.session.commit()
    logger.info("TaskMember deleted", extra={"member_id": member_id, "work_task_id": work_task_id})

    task = get_live_or_none(WorkTask, work_task_id)
    if task is None:
        return
    _notify_members(
        task,
        title="Task Member Deleted",
        message=f"{user_name} has been removed from task '{task.title}'.",
        metadata={"taskTitle": task.title, "userName": user_name},
    )


def remove_task_member(member_id, removed_by_user_id=None) -> TaskMember:
    """Soft-remove by member id.  No notification is sent."""
    member = get_task_member(member_id)
    member.remove()
    db.session.commit()
    logger.info(
        "TaskMember removed",
        extra={"member_id": member.id, "work_task_id": member.work_task_id,
               "user_id": removed_by_user_id},
    )
    return member
