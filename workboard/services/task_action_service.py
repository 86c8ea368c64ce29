"""
Task Action Service — append-only audit trail for work tasks.

Functions:
    - append_task_action:  add one immutable TaskAction row (flush only; caller commits)
    - record_field_changes: one "Updated" row per FieldChange
    - get_task_action:     single row by id
    - list_task_actions:   newest-first page of a task's history

There is deliberately no update or delete entry point.  Rows disappear only
when their owning WorkTask is deleted.
"""

import logging
from datetime import datetime

from sqlalchemy import select

from workboard.models.audit import (
    ACTION_UPDATED,
    TaskAction,
    write_task_action,
)
from workboard.services.helpers.queries import get_live, paginate

logger = logging.getLogger(__name__)


def append_task_action(
    work_task_id: str,
    action_type: str,
    description: str,
    old_value: str | None = None,
    new_value: str | None = None,
    user_id: str | None = None,
    user_name: str | None = None,
    action_date: datetime | None = None,
) -> TaskAction:
    """Append one audit row for ``work_task_id``.

    The row is flushed inside the caller's transaction so it commits (or
    rolls back) together with the mutation it describes.
    """
    action = write_task_action(
        work_task_id=work_task_id,
        action_type=action_type,
        description=description,
        old_value=old_value,
        new_value=new_value,
        user_id=user_id,
        user_name=user_name,
        action_date=action_date,
    )
    logger.debug(
        "TaskAction appended: %s on %s", action_type, work_task_id,
        extra={"work_task_id": work_task_id, "event_type": "task_action"},
    )
    return action


def record_field_changes(work_task_id, task_title, changes, *, user_id=None, user_name=None):
    """Append one "Updated" row per field change, in allowlist order."""
    rows = []
    for change in changes:
        rows.append(append_task_action(
            work_task_id=work_task_id,
            action_type=ACTION_UPDATED,
            description=f"Task '{task_title}' {change.label.lower()} updated",
            old_value=change.old_value,
            new_value=change.new_value,
            user_id=user_id,
            user_name=user_name,
        ))
    return rows


def get_task_action(action_id: str) -> TaskAction:
    """Raises NotFoundError when the row does not exist."""
    return get_live(TaskAction, action_id)


def list_task_actions(work_task_id: str, page: int = 1, size: int = 10):
    stmt = (
        select(TaskAction)
        .where(TaskAction.work_task_id == work_task_id)
        .order_by(TaskAction.action_date.desc(), TaskAction.id)
    )
    return paginate(stmt, page=page, size=size)
