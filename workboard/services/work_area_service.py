"""
Work Area Service — create/update/delete WorkAreas and fan out to task members.

A WorkArea has no members of its own.  Its audience is the distinct union of
active members across its non-deleted tasks.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from workboard.core.exceptions import ValidationError
from workboard.models import db
from workboard.models.work import WorkArea
from workboard.services import work_task_service
from workboard.services.field_diff import apply_changes, diff_fields
from workboard.services.helpers.queries import get_live, paginate
from workboard.services.notification import NotificationService, NotificationType
from workboard.utils.helpers import parse_int

logger = logging.getLogger(__name__)

AREA_FIELDS: dict[str, str] = {
    "name": "Name",
    "description": "Description",
    "display_order": "DisplayOrder",
    "project_id": "ProjectId",
}


def _coerce_fields(data: dict) -> dict:
    out = {}
    if "name" in data:
        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required", details={"name": "required"})
        out["name"] = name[:200]
    if "description" in data:
        out["description"] = data.get("description")
    if "display_order" in data:
        out["display_order"] = parse_int(data.get("display_order"), "display_order", default=0)
    if "project_id" in data:
        project_id = str(data.get("project_id") or "").strip()
        if not project_id:
            raise ValidationError("project_id is required", details={"project_id": "required"})
        out["project_id"] = project_id
    return out


def area_audience(area: WorkArea) -> list:
    """Distinct active members across the area's non-deleted tasks."""
    members = [m for task in area.live_tasks for m in task.active_members]
    return NotificationService.distinct_members(members)


def create_work_area(data: dict, actor_id: str | None = None) -> WorkArea:
    """Create a WorkArea.

    Raises:
        ValidationError: missing payload, name or project_id.
    """
    if data is None:
        raise ValidationError("WorkArea data cannot be null")
    if not (data.get("name") or "").strip():
        raise ValidationError("name is required", details={"name": "required"})
    if not data.get("project_id"):
        raise ValidationError("project_id is required", details={"project_id": "required"})

    area = WorkArea(
        created_by_user_id=actor_id or data.get("created_by_user_id"),
        created_date=datetime.now(timezone.utc),
        is_active=True,
        is_deleted=False,
    )
    apply_changes(area, _coerce_fields(data), AREA_FIELDS)
    db.session.add(area)
    db.session.commit()
    logger.info("WorkArea created", extra={"work_area_id": area.id, "project_id": area.project_id})
    return area


def update_work_area(area_id: str, data: dict, actor_id: str | None = None,
                     actor_name: str | None = None) -> WorkArea:
    """Patch a WorkArea and notify its audience.

    ``created_by_user_id`` only changes when a non-empty value is supplied.
    """
    if data is None:
        raise ValidationError("WorkArea data cannot be null")

    area = get_live(WorkArea, area_id)
    incoming = _coerce_fields(data)
    changes = diff_fields(area, incoming, AREA_FIELDS)
    apply_changes(area, incoming, AREA_FIELDS)
    if data.get("created_by_user_id"):
        area.created_by_user_id = str(data["created_by_user_id"])
    db.session.commit()

    logger.info(
        "WorkArea updated",
        extra={"work_area_id": area.id, "changed_fields": [c.field for c in changes]},
    )

    NotificationService.dispatch(NotificationService.for_members(
        area_audience(area),
        title=f"Work Area Updated: {area.name}",
        message=f"Work area '{area.name}' has been updated.",
        type=NotificationType.TASK_STATUS_CHANGED,
        project_id=area.project_id,
        metadata={
            "workAreaName": area.name,
            "updatedBy": actor_name or actor_id or area.created_by_user_id,
            "changes": ", ".join(c.label for c in changes),
        },
    ))
    return area


def delete_work_area(area_id: str, actor_id: str | None = None,
                     actor_name: str | None = None) -> None:
    """Delete a WorkArea and cascade every child task in one commit.

    Dispatch order after the commit: per-task deletion notices first, then one
    "Work Area Deleted" notice per distinct user.
    """
    area = get_live(WorkArea, area_id)
    name = area.name
    project_id = area.project_id

    task_messages = []
    affected = []
    for task in list(area.work_tasks):
        messages, captured = work_task_service.stage_work_task_delete(task, actor_name=actor_name)
        task_messages.extend(messages)
        affected.extend(captured)
    recipients = NotificationService.distinct_members(affected)

    db.session.delete(area)
    db.session.commit()
    logger.info(
        "WorkArea deleted",
        extra={"work_area_id": area_id, "task_messages": len(task_messages),
               "area_recipients": len(recipients), "actor": actor_id},
    )

    NotificationService.dispatch(task_messages)
    NotificationService.dispatch(NotificationService.for_members(
        recipients,
        title=f"Work Area Deleted: {name}",
        message=f"Work area '{name}' and all its tasks have been deleted.",
        type=NotificationType.TASK_STATUS_CHANGED,
        project_id=project_id,
        metadata={"workAreaName": name, "deletedBy": actor_name or actor_id},
    ))


def get_work_area(area_id: str) -> WorkArea:
    return get_live(WorkArea, area_id)


def list_work_areas_by_project(project_id: str, page: int = 1, size: int = 10):
    """Non-deleted areas of a project in display order."""
    stmt = (
        select(WorkArea)
        .where(WorkArea.project_id == str(project_id), WorkArea.is_deleted.is_(False))
        .order_by(WorkArea.display_order, WorkArea.created_date)
    )
    return paginate(stmt, page=page, size=size)
