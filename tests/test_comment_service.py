"""
Tests for Comment management (comment_service).

Covers:
  - add: parent lookup before insert, notification type TaskCommentAdded
  - update/delete: author-only, non-author leaves no change and sends nothing
  - listing: newest first, soft-deleted hidden
"""

from datetime import datetime, timedelta, timezone

import pytest

from workboard.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from workboard.models import db
from workboard.models.work import Comment
from workboard.services import comment_service
from workboard.services.notification import NotificationType


@pytest.fixture()
def task(work_area, make_task):
    return make_task(work_area, members=["u1", "u2"])


class TestAddComment:
    def test_add_notifies_active_members(self, task, dispatcher):
        comment = comment_service.add_comment(
            task.id, {"user_id": "u1", "user_name": "Ada", "content": "Looks good"},
        )

        assert comment.created_at is not None
        assert comment.updated_at is not None
        assert sorted(dispatcher.recipients) == ["u1", "u2"]
        msg = dispatcher.messages[0]
        assert msg.type == NotificationType.TASK_COMMENT_ADDED
        assert msg.title == "New Comment Added"
        assert msg.metadata["comment"] == "Looks good"
        assert msg.metadata["author"] == "Ada"
        assert msg.metadata["commentId"] == comment.id

    def test_add_to_missing_task_raises_not_found_and_inserts_nothing(self):
        with pytest.raises(NotFoundError):
            comment_service.add_comment("missing", {"user_id": "u1", "content": "x"})
        assert Comment.query.count() == 0

    def test_content_is_required(self, task):
        with pytest.raises(ValidationError, match="content"):
            comment_service.add_comment(task.id, {"user_id": "u1", "content": "  "})


class TestAuthorOnly:
    def test_author_can_update(self, task, dispatcher):
        comment = comment_service.add_comment(task.id, {"user_id": "u1", "content": "v1"})
        dispatcher.clear()

        updated = comment_service.update_comment(comment.id, {"content": "v2"}, "u1")

        assert updated.content == "v2"
        assert dispatcher.titles == ["Comment Updated", "Comment Updated"]

    def test_non_author_update_is_rejected_without_side_effects(self, task, dispatcher):
        comment = comment_service.add_comment(task.id, {"user_id": "u1", "content": "v1"})
        dispatcher.clear()

        with pytest.raises(AuthorizationError):
            comment_service.update_comment(comment.id, {"content": "hacked"}, "u2")

        db.session.rollback()
        assert db.session.get(Comment, comment.id).content == "v1"
        assert dispatcher.messages == []

    def test_non_author_delete_is_rejected_without_side_effects(self, task, dispatcher):
        comment = comment_service.add_comment(task.id, {"user_id": "u1", "content": "v1"})
        dispatcher.clear()

        with pytest.raises(AuthorizationError):
            comment_service.delete_comment(comment.id, "u2")

        db.session.rollback()
        assert db.session.get(Comment, comment.id).is_deleted is False
        assert dispatcher.messages == []

    def test_author_delete_is_soft(self, task, dispatcher):
        comment = comment_service.add_comment(task.id, {"user_id": "u1", "content": "v1"})
        dispatcher.clear()

        comment_service.delete_comment(comment.id, "u1")

        assert db.session.get(Comment, comment.id).is_deleted is True
        assert comment_service.list_comments(task.id) == []
        assert dispatcher.titles == ["Comment Deleted", "Comment Deleted"]

    def test_update_unknown_comment_raises_not_found(self):
        with pytest.raises(NotFoundError):
            comment_service.update_comment("missing", {"content": "x"}, "u1")


class TestListComments:
    def test_list_is_newest_first(self, task):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        for i in range(3):
            db.session.add(Comment(task_id=task.id, user_id="u1", content=f"c{i}",
                                   created_at=base + timedelta(hours=i)))
        db.session.commit()

        assert [c.content for c in comment_service.list_comments(task.id)] == ["c2", "c1", "c0"]
        page = comment_service.list_comments_paged(task.id, page=2, size=2)
        assert [c.content for c in page.items] == ["c0"]
        assert page.total == 3
