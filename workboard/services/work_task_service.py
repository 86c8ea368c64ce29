"""
Work Task Service — lifecycle, audit and notification fan-out for WorkTasks.

Functions:
    - create_work_task:        insert task (+ optional initial members), "Created" action,
                               notify the creator when they are a member
    - update_work_task:        field diff → one "Updated" action per changed field,
                               one notification per active member when anything changed
    - delete_work_task:        cascade members/objectives/actions/comments, notify the
                               members captured before the cascade
    - stage_work_task_delete:  cascade without committing (reused by WorkArea delete)
    - get_work_task:           single live task with children
    - list_work_tasks:         newest-first page, optional title/description search
    - list_my_work_tasks:      tasks where the user holds an active membership
    - list_work_tasks_by_area: tasks of one work area in display order

Every mutation commits once (audit rows included) and only then dispatches
notifications.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import or_, select

from workboard.core.exceptions import ConflictError, ValidationError
from workboard.models import db
from workboard.models.audit import ACTION_CREATED
from workboard.models.work import (
    DEFAULT_MEMBER_ROLE,
    MEMBER_ACTIVE,
    TaskMember,
    WorkArea,
    WorkTask,
)
from workboard.services import task_action_service
from workboard.services.field_diff import apply_changes, diff_fields
from workboard.services.helpers.queries import get_live, get_live_or_none, paginate
from workboard.services.notification import NotificationService, NotificationType
from workboard.utils.helpers import parse_date, parse_int

logger = logging.getLogger(__name__)

# Attribute → label used in audit descriptions and notification metadata.
TRACKED_FIELDS: dict[str, str] = {
    "title": "Title",
    "description": "Description",
    "status": "Status",
    "priority": "Priority",
    "start_date": "StartDate",
    "end_date": "EndDate",
    "due_date": "DueDate",
    "progress": "Progress",
    "display_order": "DisplayOrder",
    "work_area_id": "WorkAreaId",
}

_DATE_FIELDS = ("start_date", "end_date", "due_date")


# ── Input coercion ────────────────────────────────────────────────────────────


def _coerce_fields(data: dict) -> dict:
    """Coerce the tracked fields present in ``data`` to column types."""
    out = {}
    if "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("title is required", details={"title": "required"})
        out["title"] = title[:300]
    for name in ("description", "status", "priority"):
        if name in data:
            out[name] = data.get(name)
    for name in _DATE_FIELDS:
        if name in data:
            out[name] = parse_date(data.get(name), field_name=name)
    if "progress" in data:
        progress = parse_int(data.get("progress"), "progress", default=0)
        if not 0 <= progress <= 100:
            raise ValidationError("progress must be between 0 and 100", details={"progress": progress})
        out["progress"] = progress
    if "display_order" in data:
        out["display_order"] = parse_int(data.get("display_order"), "display_order", default=0)
    if "work_area_id" in data:
        out["work_area_id"] = str(data.get("work_area_id") or "")
    return out


def _require_live_area(work_area_id) -> WorkArea:
    area = get_live_or_none(WorkArea, work_area_id)
    if area is None:
        raise ValidationError(
            f"WorkArea with ID {work_area_id} does not exist or has been deleted",
            details={"work_area_id": work_area_id},
        )
    return area


# ── Create ────────────────────────────────────────────────────────────────────


def create_work_task(data: dict, actor_id: str | None = None, actor_name: str | None = None) -> WorkTask:
    """Create a WorkTask under a live WorkArea.

    Business rules:
      - progress always starts at 0
      - created_by_* comes from the acting user (falls back to the payload)
      - optional ``members`` list seeds the task's membership

    Raises:
        ValidationError: missing payload/title, or missing/deleted WorkArea.
        ConflictError: the same user appears twice in ``members``.
    """
    if data is None:
        raise ValidationError("WorkTask data cannot be null")
    if not (data.get("title") or "").strip():
        raise ValidationError("title is required", details={"title": "required"})
    if not data.get("work_area_id"):
        raise ValidationError("work_area_id is required", details={"work_area_id": "required"})

    fields = _coerce_fields(data)
    _require_live_area(fields["work_area_id"])

    created_by_id = actor_id or data.get("created_by_user_id")
    created_by_name = actor_name or data.get("created_by_user_name")

    task = WorkTask(
        created_by_user_id=created_by_id,
        created_by_user_name=created_by_name,
        created_date=datetime.now(timezone.utc),
    )
    apply_changes(task, fields, TRACKED_FIELDS)
    task.progress = 0
    db.session.add(task)

    seen_users = set()
    for raw in data.get("members") or []:
        user_id = str(raw.get("user_id") or "").strip()
        if not user_id:
            raise ValidationError("members[].user_id is required")
        if user_id in seen_users:
            raise ConflictError("TaskMember", "user_id", user_id)
        seen_users.add(user_id)
        task.members.append(TaskMember(
            user_id=user_id,
            user_name=raw.get("user_name"),
            user_email=raw.get("user_email"),
            role=raw.get("role") or DEFAULT_MEMBER_ROLE,
            assigned_by_user_id=created_by_id,
            status=MEMBER_ACTIVE,
        ))
    db.session.flush()

    task_action_service.append_task_action(
        work_task_id=task.id,
        action_type=ACTION_CREATED,
        description=f"Task '{task.title}' created",
        user_id=created_by_id,
        user_name=created_by_name,
    )
    db.session.commit()
    logger.info(
        "WorkTask created",
        extra={"work_task_id": task.id, "work_area_id": task.work_area_id,
               "member_count": len(task.members)},
    )

    creator = next(
        (m for m in task.active_members if created_by_id and m.user_id == str(created_by_id)),
        None,
    )
    if creator is not None:
        NotificationService.dispatch([
            NotificationService.build(
                user_id=creator.user_id,
                address=creator.address,
                title=f"Task Created: {task.title}",
                message=f"Task '{task.title}' has been created.",
                type=NotificationType.TASK_ASSIGNED,
                task_id=task.id,
                project_id=task.work_area_id,
                metadata={"taskTitle": task.title, "createdBy": task.created_by_user_name},
            )
        ])
    return task


# ── Update ────────────────────────────────────────────────────────────────────


def update_work_task(task_id: str, data: dict, actor_id: str | None = None,
                     actor_name: str | None = None) -> WorkTask:
    """Apply a patch to a WorkTask and record the field-level diff.

    Only TRACKED_FIELDS are patchable; created_by_* and created_date are
    preserved whatever the payload says.  Zero changes produce zero
    TaskActions and zero notifications.

    Raises:
        ValidationError: missing payload, bad values, or moving to a missing WorkArea.
        NotFoundError: task does not exist.
    """
    if data is None:
        raise ValidationError("WorkTask data cannot be null")

    task = get_live(WorkTask, task_id)
    incoming = _coerce_fields(data)
    if "work_area_id" in incoming and incoming["work_area_id"] != task.work_area_id:
        _require_live_area(incoming["work_area_id"])

    changes = diff_fields(task, incoming, TRACKED_FIELDS)
    apply_changes(task, incoming, TRACKED_FIELDS)

    task_action_service.record_field_changes(
        task.id, task.title, changes,
        user_id=actor_id, user_name=actor_name,
    )
    db.session.commit()
    logger.info(
        "WorkTask updated",
        extra={"work_task_id": task.id, "changed_fields": [c.field for c in changes]},
    )

    if changes:
        NotificationService.dispatch(NotificationService.for_members(
            task.active_members,
            title=f"Task Updated: {task.title}",
            message=f"Task '{task.title}' has been updated.",
            type=NotificationType.TASK_ASSIGNED,
            task_id=task.id,
            project_id=task.work_area_id,
            metadata={
                "taskTitle": task.title,
                "updatedBy": actor_name or task.created_by_user_name,
                "changes": ", ".join(c.label for c in changes),
            },
        ))
    return task


# ── Delete ────────────────────────────────────────────────────────────────────


def stage_work_task_delete(task: WorkTask, actor_name: str | None = None):
    """Mark a task and its whole child set for deletion without committing.

    Active members are captured before the cascade so they can still be
    notified once the rows are gone.

    Returns:
        (messages, captured_members) — deletion notifications to dispatch after
        the caller commits, and the members they address.
    """
    captured = list(task.active_members)
    title = task.title
    task_id = task.id
    work_area_id = task.work_area_id

    for collection in (task.members, task.objectives, task.actions, task.comments):
        for child in list(collection):
            db.session.delete(child)
    db.session.delete(task)

    messages = NotificationService.for_members(
        captured,
        title=f"Task Deleted: {title}",
        message=f"Task '{title}' has been deleted.",
        type=NotificationType.TASK_ASSIGNED,
        task_id=task_id,
        project_id=work_area_id,
        metadata={"taskTitle": title, "deletedBy": actor_name or task.created_by_user_name},
    )
    return messages, captured


def delete_work_task(task_id: str, actor_id: str | None = None, actor_name: str | None = None) -> None:
    """Delete a WorkTask with all its children in one commit.

    Raises:
        NotFoundError: task does not exist.
    """
    task = get_live(WorkTask, task_id)
    messages, captured = stage_work_task_delete(task, actor_name=actor_name)
    db.session.commit()
    logger.info(
        "WorkTask deleted",
        extra={"work_task_id": task_id, "notified_members": len(captured), "actor": actor_id},
    )
    NotificationService.dispatch(messages)


# ── Queries ───────────────────────────────────────────────────────────────────


def get_work_task(task_id: str) -> WorkTask:
    """Live task by id.  Raises NotFoundError when missing or deleted."""
    return get_live(WorkTask, task_id)


def _search_clause(search):
    return or_(
        WorkTask.title.icontains(search, autoescape=True),
        WorkTask.description.icontains(search, autoescape=True),
    )


def list_work_tasks(page: int = 1, size: int = 10, search: str | None = None):
    """Non-deleted tasks, newest first.  ``search`` is case-insensitive."""
    stmt = select(WorkTask).where(WorkTask.is_deleted.is_(False))
    if search:
        stmt = stmt.where(_search_clause(search))
    stmt = stmt.order_by(WorkTask.created_date.desc(), WorkTask.id)
    return paginate(stmt, page=page, size=size)


def list_my_work_tasks(page: int = 1, size: int = 10, user_id: str | None = None,
                       search: str | None = None):
    """Tasks the user actively belongs to.

    Without a user id (identity disabled) every live task is returned.
    """
    stmt = select(WorkTask).where(WorkTask.is_deleted.is_(False))
    if user_id:
        memberships = select(TaskMember.work_task_id).where(
            TaskMember.user_id == str(user_id),
            TaskMember.status == MEMBER_ACTIVE,
        )
        stmt = stmt.where(WorkTask.id.in_(memberships))
    if search:
        stmt = stmt.where(_search_clause(search))
    stmt = stmt.order_by(WorkTask.created_date.desc(), WorkTask.id)
    return paginate(stmt, page=page, size=size)


def list_work_tasks_by_area(work_area_id: str, page: int = 1, size: int = 10):
    stmt = (
        select(WorkTask)
        .where(WorkTask.work_area_id == work_area_id, WorkTask.is_deleted.is_(False))
        .order_by(WorkTask.display_order, WorkTask.created_date)
    )
    return paginate(stmt, page=page, size=size)
