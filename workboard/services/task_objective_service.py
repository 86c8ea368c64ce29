"""
Task Objective Service — checklist objectives on WorkTasks.

Every mutation sends two independent notification batches after the commit:
    1. the objective's creator, when they are an active member of the task
    2. every active member of the task
A creator who is also a member therefore receives the notice twice.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from workboard.core.exceptions import ValidationError
from workboard.models import db
from workboard.models.work import TaskObjective, WorkTask
from workboard.services.helpers.queries import get_live, get_live_or_none, paginate
from workboard.services.notification import NotificationService, NotificationType
from workboard.utils.helpers import parse_bool, parse_int

logger = logging.getLogger(__name__)


def _require_task(work_task_id) -> WorkTask:
    task = get_live_or_none(WorkTask, work_task_id)
    if task is None:
        raise ValidationError(
            f"WorkTask with ID {work_task_id} does not exist or has been deleted",
            details={"work_task_id": work_task_id},
        )
    return task


def _notify(task, objective, *, title, message, creator_type, broadcast_type, extra=None):
    """Send the creator batch, then the all-members batch."""
    members = list(task.active_members)
    metadata = {"taskTitle": task.title, "objectiveTitle": objective.title}
    metadata.update(extra or {})
    common = {
        "title": title,
        "message": message,
        "task_id": task.id,
        "project_id": task.work_area_id,
        "metadata": metadata,
    }

    creator = [
        m for m in members
        if objective.created_by_user_id and m.user_id == str(objective.created_by_user_id)
    ]
    sent = NotificationService.dispatch(
        NotificationService.for_members(creator[:1], type=creator_type, **common)
    )
    sent += NotificationService.dispatch(
        NotificationService.for_members(members, type=broadcast_type, **common)
    )
    return sent


def create_task_objective(data: dict, actor_id: str | None = None) -> TaskObjective:
    """Create an objective on a live task.

    Raises:
        ValidationError: missing payload or title, or parent task missing/deleted.
    """
    if data is None:
        raise ValidationError("TaskObjective data cannot be null")
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("title is required", details={"title": "required"})
    task = _require_task(data.get("work_task_id"))

    objective = TaskObjective(
        title=title[:300],
        description=data.get("description"),
        display_order=parse_int(data.get("display_order"), "display_order", default=0),
        created_by_user_id=actor_id or data.get("created_by_user_id"),
        created_date=datetime.now(timezone.utc),
        is_completed=False,
    )
    task.objectives.append(objective)
    db.session.commit()
    logger.info("TaskObjective created", extra={"work_task_id": task.id, "objective_id": objective.id})

    _notify(
        task, objective,
        title="Task Objective Created",
        message=f"Objective '{objective.title}' has been added to task '{task.title}'.",
        creator_type=NotificationType.TASK_ASSIGNED,
        broadcast_type=NotificationType.TASK_ASSIGNED,
    )
    return objective


def update_task_objective(objective_id, data: dict) -> TaskObjective:
    """Patch title/description/display_order.  created_by/created_date are kept."""
    if data is None:
        raise ValidationError("TaskObjective data cannot be null")
    objective = get_live(TaskObjective, objective_id)
    task = _require_task(data.get("work_task_id") or objective.work_task_id)

    if "title" in data:
        title = (data.get("title") or "").strip()
        if not title:
            raise ValidationError("title is required", details={"title": "required"})
        objective.title = title[:300]
    if "description" in data:
        objective.description = data.get("description")
    if "display_order" in data:
        objective.display_order = parse_int(data.get("display_order"), "display_order", default=0)
    if task.id != objective.work_task_id:
        objective.work_task_id = task.id
    db.session.commit()
    logger.info("TaskObjective updated", extra={"objective_id": objective.id, "work_task_id": task.id})

    _notify(
        task, objective,
        title="Task Objective Updated",
        message=f"Objective '{objective.title}' on task '{task.title}' has been updated.",
        creator_type=NotificationType.TASK_ASSIGNED,
        broadcast_type=NotificationType.TASK_ASSIGNED,
    )
    return objective


def delete_task_objective(objective_id, actor_id: str | None = None) -> None:
    """Soft-delete an objective."""
    objective = get_live(TaskObjective, objective_id)
    objective.is_deleted = True
    db.session.commit()
    logger.info("TaskObjective deleted", extra={"objective_id": objective.id, "user_id": actor_id})

    task = get_live_or_none(WorkTask, objective.work_task_id)
    if task is None:
        return
    _notify(
        task, objective,
        title="Task Objective Deleted",
        message=f"Objective '{objective.title}' has been removed from task '{task.title}'.",
        creator_type=NotificationType.TASK_ASSIGNED,
        broadcast_type=NotificationType.TASK_STATUS_CHANGED,
    )


def complete_task_objective(objective_id, is_completed, user_id=None) -> TaskObjective:
    """Mark an objective completed or incomplete."""
    objective = get_live(TaskObjective, objective_id)
    task = _require_task(objective.work_task_id)

    completed = parse_bool(is_completed)
    objective.is_completed = completed
    objective.completed_date = datetime.now(timezone.utc) if completed else None
    objective.completed_by_user_id = str(user_id) if completed and user_id else None
    db.session.commit()
    logger.info(
        "TaskObjective completion changed",
        extra={"objective_id": objective.id, "is_completed": completed, "user_id": user_id},
    )

    if completed:
        title = "Task Objective Completed"
        message = f"Objective '{objective.title}' on task '{task.title}' has been completed."
    else:
        title = "Task Objective Marked Incomplete"
        message = f"Objective '{objective.title}' on task '{task.title}' has been marked incomplete."
    _notify(
        task, objective,
        title=title,
        message=message,
        creator_type=NotificationType.TASK_STATUS_CHANGED if completed else NotificationType.TASK_ASSIGNED,
        broadcast_type=NotificationType.TASK_STATUS_CHANGED,
    )
    return objective


def get_task_objective(objective_id) -> TaskObjective:
    return get_live(TaskObjective, objective_id)


def list_task_objectives(work_task_id, page: int = 1, size: int = 10):
    stmt = (
        select(TaskObjective)
        .where(TaskObjective.work_task_id == str(work_task_id), TaskObjective.is_deleted.is_(False))
        .order_by(TaskObjective.display_order, TaskObjective.created_date)
    )
    return paginate(stmt, page=page, size=size)
