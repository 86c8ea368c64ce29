"""
Comment Service — discussion on WorkTasks.

Only the author may edit or delete a comment.  Deletion is soft.  Every
successful mutation notifies the active members of the parent task.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import select

from workboard.core.exceptions import AuthorizationError, ValidationError
from workboard.models import db
from workboard.models.work import Comment, WorkTask
from workboard.services import work_task_service
from workboard.services.helpers.queries import get_live, get_live_or_none, paginate
from workboard.services.notification import NotificationService, NotificationType

logger = logging.getLogger(__name__)


def _content(data):
    if data is None:
        raise ValidationError("Comment data cannot be null")
    content = (data.get("content") or "").strip()
    if not content:
        raise ValidationError("content is required", details={"content": "required"})
    return content


def _check_author(comment: Comment, user_id):
    if not user_id or str(comment.user_id) != str(user_id):
        logger.warning(
            "Comment %s: user %s is not the author", comment.id, user_id,
            extra={"task_id": comment.task_id, "event_type": "comment_forbidden"},
        )
        raise AuthorizationError("Only the author may modify this comment", user_id=user_id)


def _notify(task: WorkTask, comment: Comment, *, title, message, type):
    return NotificationService.dispatch(NotificationService.for_members(
        task.active_members,
        title=title,
        message=message,
        type=type,
        task_id=task.id,
        project_id=task.work_area_id,
        metadata={
            "taskTitle": task.title,
            "comment": comment.content,
            "author": comment.user_name or comment.user_id,
            "commentId": comment.id,
        },
    ))


def add_comment(task_id, data: dict) -> Comment:
    """Add a comment to a live task.

    Raises:
        NotFoundError: the task does not exist.
        ValidationError: missing content or author.
    """
    task = work_task_service.get_work_task(task_id)
    content = _content(data)
    user_id = str(data.get("user_id") or "").strip()
    if not user_id:
        raise ValidationError("user_id is required", details={"user_id": "required"})

    now = datetime.now(timezone.utc)
    comment = Comment(
        user_id=user_id,
        user_name=data.get("user_name"),
        content=content,
        created_at=now,
        updated_at=now,
    )
    task.comments.append(comment)
    db.session.commit()
    logger.info("Comment added", extra={"task_id": task.id, "comment_id": comment.id})

    _notify(
        task, comment,
        title="New Comment Added",
        message=f"{comment.user_name or comment.user_id} commented on task '{task.title}'.",
        type=NotificationType.TASK_COMMENT_ADDED,
    )
    return comment


def update_comment(comment_id, data: dict, user_id) -> Comment:
    """Edit the content of a comment.

    Raises:
        NotFoundError: comment missing or deleted.
        AuthorizationError: ``user_id`` is not the author.
    """
    comment = get_live(Comment, comment_id)
    _check_author(comment, user_id)
    comment.content = _content(data)
    comment.updated_at = datetime.now(timezone.utc)
    db.session.commit()
    logger.info("Comment updated", extra={"task_id": comment.task_id, "comment_id": comment.id})

    task = get_live_or_none(WorkTask, comment.task_id)
    if task is not None:
        _notify(
            task, comment,
            title="Comment Updated",
            message=f"A comment on task '{task.title}' has been updated.",
            type=NotificationType.TASK_COMMENT_ADDED,
        )
    return comment


def delete_comment(comment_id, user_id) -> None:
    """Soft-delete a comment.  Same ownership rule as update_comment."""
    comment = get_live(Comment, comment_id)
    _check_author(comment, user_id)
    comment.is_deleted = True
    comment.updated_at = datetime.now(timezone.utc)
    db.session.commit()
    logger.info("Comment deleted", extra={"task_id": comment.task_id, "comment_id": comment.id})

    task = get_live_or_none(WorkTask, comment.task_id)
    if task is not None:
        _notify(
            task, comment,
            title="Comment Deleted",
            message=f"A comment on task '{task.title}' has been deleted.",
            type=NotificationType.TASK_STATUS_CHANGED,
        )


def _comments_stmt(task_id):
    return (
        select(Comment)
        .where(Comment.task_id == str(task_id), Comment.is_deleted.is_(False))
        .order_by(Comment.created_at.desc(), Comment.id)
    )


def list_comments(task_id) -> list[Comment]:
    """All live comments on a task, newest first."""
    return list(db.session.execute(_comments_stmt(task_id)).scalars())


def list_comments_paged(task_id, page: int = 1, size: int = 10):
    return paginate(_comments_stmt(task_id), page=page, size=size)
