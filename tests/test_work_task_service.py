"""
Tests for the WorkTask lifecycle (work_task_service).

Covers:
  - create: parent validation, progress reset, "Created" action, creator notification
  - update: one TaskAction per changed field, one notification per active member,
            zero changes ⇒ zero actions and zero notifications, created_* preserved
  - delete: full child cascade, notifications to members captured before the cascade
  - queries: newest-first paging, case-insensitive search, "my tasks"
  - end-to-end scenario: assign two users, Todo → Done, delete
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from workboard.core.exceptions import ConflictError, NotFoundError, ValidationError
from workboard.models import db
from workboard.models.audit import TaskAction
from workboard.models.work import Comment, TaskMember, TaskObjective, WorkTask
from workboard.services import (
    comment_service,
    task_action_service,
    task_member_service,
    task_objective_service,
    work_area_service,
    work_task_service,
)


def _actions(task_id, action_type=None):
    q = TaskAction.query.filter_by(work_task_id=task_id)
    if action_type:
        q = q.filter_by(action_type=action_type)
    return q.all()


class TestCreateWorkTask:
    def test_create_stamps_progress_and_records_created_action(self, work_area, dispatcher):
        task = work_task_service.create_work_task(
            {"title": "Map GL accounts", "work_area_id": work_area.id, "progress": 80,
             "status": "Todo", "due_date": "2025-06-30"},
            actor_id="u1", actor_name="Ada",
        )

        assert task.progress == 0
        assert task.due_date == date(2025, 6, 30)
        assert task.created_by_user_id == "u1"
        actions = _actions(task.id)
        assert len(actions) == 1
        assert actions[0].action_type == "Created"
        assert actions[0].user_name == "Ada"
        assert dispatcher.messages == []

    def test_create_notifies_creator_when_creator_is_member(self, work_area, dispatcher):
        task = work_task_service.create_work_task(
            {
                "title": "Map GL accounts",
                "work_area_id": work_area.id,
                "members": [
                    {"user_id": "u1", "user_name": "Ada", "user_email": "ada@example.com"},
                    {"user_id": "u2", "user_name": "Bob"},
                ],
            },
            actor_id="u1", actor_name="Ada",
        )

        assert len(task.members) == 2
        assert dispatcher.recipients == ["u1"]
        msg = dispatcher.messages[0]
        assert msg.title == "Task Created: Map GL accounts"
        assert msg.email == "ada@example.com"
        assert msg.metadata["createdBy"] == "Ada"

    def test_create_requires_title(self, work_area):
        with pytest.raises(ValidationError, match="title"):
            work_task_service.create_work_task({"work_area_id": work_area.id})

    def test_create_rejects_missing_payload(self):
        with pytest.raises(ValidationError, match="cannot be null"):
            work_task_service.create_work_task(None)

    def test_create_rejects_unknown_work_area(self):
        with pytest.raises(ValidationError, match="does not exist"):
            work_task_service.create_work_task({"title": "X", "work_area_id": "missing"})
        assert WorkTask.query.count() == 0

    def test_create_rejects_deleted_work_area(self, work_area):
        work_area.is_deleted = True
        db.session.commit()
        with pytest.raises(ValidationError):
            work_task_service.create_work_task({"title": "X", "work_area_id": work_area.id})

    def test_create_rejects_duplicate_initial_members(self, work_area):
        with pytest.raises(ConflictError):
            work_task_service.create_work_task({
                "title": "X", "work_area_id": work_area.id,
                "members": [{"user_id": "u1"}, {"user_id": "u1"}],
            })

    def test_update_rejects_progress_out_of_range(self, work_area, make_task):
        task = make_task(work_area)
        with pytest.raises(ValidationError, match="progress"):
            work_task_service.update_work_task(task.id, {"progress": 101})


class TestUpdateWorkTask:
    def test_one_action_per_changed_field(self, work_area, make_task, dispatcher):
        task = make_task(work_area, status="Todo", priority="Low", members=["u1", "u2", "u3"])

        work_task_service.update_work_task(
            task.id,
            {"status": "InProgress", "priority": "High", "title": task.title, "progress": 30},
            actor_id="u1", actor_name="Ada",
        )

        updated = _actions(task.id, "Updated")
        assert sorted(a.description for a in updated) == sorted([
            "Task 'Configure ledger' status updated",
            "Task 'Configure ledger' priority updated",
            "Task 'Configure ledger' progress updated",
        ])
        status_row = next(a for a in updated if "status" in a.description)
        assert (status_row.old_value, status_row.new_value) == ("Todo", "InProgress")
        assert len(dispatcher.messages) == 3
        assert dispatcher.messages[0].metadata["changes"] == "Status, Priority, Progress"

    def test_no_changes_means_no_actions_and_no_notifications(self, work_area, make_task, dispatcher):
        task = make_task(work_area, status="Todo", members=["u1"])

        work_task_service.update_work_task(task.id, {"status": "Todo", "title": task.title})

        assert _actions(task.id) == []
        assert dispatcher.messages == []

    def test_absent_fields_keep_their_values(self, work_area, make_task):
        task = make_task(work_area, status="Todo", priority="High", due_date=date(2025, 1, 1))

        work_task_service.update_work_task(task.id, {"status": "Done"})

        refreshed = work_task_service.get_work_task(task.id)
        assert refreshed.priority == "High"
        assert refreshed.due_date == date(2025, 1, 1)

    def test_created_fields_are_not_patchable(self, work_area, make_task):
        task = make_task(work_area, created_by_user_id="owner", created_by_user_name="Owner")

        work_task_service.update_work_task(
            task.id, {"created_by_user_id": "intruder", "created_by_user_name": "X", "status": "Done"},
        )

        refreshed = work_task_service.get_work_task(task.id)
        assert refreshed.created_by_user_id == "owner"
        assert refreshed.created_by_user_name == "Owner"

    def test_date_changes_are_recorded_as_iso_strings(self, work_area, make_task):
        task = make_task(work_area)

        work_task_service.update_work_task(task.id, {"due_date": "2025-03-09"})

        row = _actions(task.id, "Updated")[0]
        assert (row.old_value, row.new_value) == ("", "2025-03-09")

    def test_inactive_and_removed_members_are_not_notified(
        self, work_area, make_task, add_member, dispatcher,
    ):
        task = make_task(work_area, members=["u1"])
        add_member(task, "u2", status="inactive")
        add_member(task, "u3", status="removed")

        work_task_service.update_work_task(task.id, {"status": "Done"})

        assert dispatcher.recipients == ["u1"]

    def test_moving_to_missing_work_area_fails(self, work_area, make_task):
        task = make_task(work_area)
        with pytest.raises(ValidationError):
            work_task_service.update_work_task(task.id, {"work_area_id": "nope"})

    def test_update_unknown_task_raises_not_found(self):
        with pytest.raises(NotFoundError):
            work_task_service.update_work_task("missing", {"status": "Done"})

    def test_update_rejects_missing_payload(self, work_area, make_task):
        task = make_task(work_area)
        with pytest.raises(ValidationError):
            work_task_service.update_work_task(task.id, None)


class TestDeleteWorkTask:
    def test_delete_cascades_children_and_notifies_captured_members(
        self, work_area, make_task, dispatcher,
    ):
        task = make_task(work_area, members=["u1", "u2"])
        task_objective_service.create_task_objective({"work_task_id": task.id, "title": "Obj"})
        comment_service.add_comment(task.id, {"user_id": "u1", "content": "hello"})
        work_task_service.update_work_task(task.id, {"status": "Done"})
        task_id = task.id
        dispatcher.clear()

        work_task_service.delete_work_task(task_id, actor_name="Ada")

        assert db.session.get(WorkTask, task_id) is None
        assert TaskMember.query.filter_by(work_task_id=task_id).count() == 0
        assert TaskObjective.query.filter_by(work_task_id=task_id).count() == 0
        assert TaskAction.query.filter_by(work_task_id=task_id).count() == 0
        assert Comment.query.filter_by(task_id=task_id).count() == 0
        assert sorted(dispatcher.recipients) == ["u1", "u2"]
        assert all(m.title == "Task Deleted: Configure ledger" for m in dispatcher.messages)
        assert dispatcher.messages[0].metadata["deletedBy"] == "Ada"

    def test_delete_unknown_task_raises_not_found(self):
        with pytest.raises(NotFoundError):
            work_task_service.delete_work_task("missing")


class TestQueries:
    def test_get_excludes_soft_deleted(self, work_area, make_task):
        task = make_task(work_area, is_deleted=True)
        with pytest.raises(NotFoundError):
            work_task_service.get_work_task(task.id)

    def test_list_is_newest_first_and_paged(self, work_area, make_task):
        base = datetime(2025, 1, 1, tzinfo=timezone.utc)
        for i in range(5):
            make_task(work_area, title=f"T{i}", created_date=base + timedelta(days=i))

        page = work_task_service.list_work_tasks(page=1, size=2)

        assert [t.title for t in page.items] == ["T4", "T3"]
        assert (page.total, page.pages) == (5, 3)

    def test_search_is_case_insensitive(self, work_area, make_task):
        make_task(work_area, title="Payroll interface")
        make_task(work_area, title="Bank statements", description="PAYROLL feed")
        make_task(work_area, title="Other")

        page = work_task_service.list_work_tasks(search="payroll")

        assert page.total == 2

    def test_invalid_paging_raises_validation_error(self):
        with pytest.raises(ValidationError):
            work_task_service.list_work_tasks(page=0, size=10)
        with pytest.raises(ValidationError):
            work_task_service.list_work_tasks(page=1, size=0)

    def test_my_tasks_filters_by_active_membership(self, work_area, make_task, add_member):
        mine = make_task(work_area, title="Mine", members=["u1"])
        other = make_task(work_area, title="Other", members=["u2"])
        add_member(other, "u1", status="removed")

        page = work_task_service.list_my_work_tasks(user_id="u1")

        assert [t.id for t in page.items] == [mine.id]

    def test_my_tasks_without_user_returns_everything(self, work_area, make_task):
        make_task(work_area, title="A")
        make_task(work_area, title="B")
        assert work_task_service.list_my_work_tasks().total == 2

    def test_list_by_area_uses_display_order(self, work_area, make_task):
        make_task(work_area, title="Second", display_order=2)
        make_task(work_area, title="First", display_order=1)

        page = work_task_service.list_work_tasks_by_area(work_area.id)

        assert [t.title for t in page.items] == ["First", "Second"]


class TestStatusChangeScenario:
    def test_assign_update_delete_flow(self, dispatcher):
        area = work_area_service.create_work_area({"name": "A", "project_id": "p1"})
        task = work_task_service.create_work_task(
            {"title": "T", "work_area_id": area.id, "status": "Todo"}, actor_id="owner",
        )
        task_member_service.assign_work_task_to_user(task.id, "U1", "User One", "u1@example.com")
        task_member_service.assign_work_task_to_user(task.id, "U2", "User Two", "u2@example.com")
        dispatcher.clear()

        work_task_service.update_work_task(task.id, {"status": "Done"})

        updated = _actions(task.id, "Updated")
        assert len(updated) == 1
        assert (updated[0].old_value, updated[0].new_value) == ("Todo", "Done")
        assert sorted(dispatcher.recipients) == ["U1", "U2"]

        dispatcher.clear()
        task_id = task.id
        work_task_service.delete_work_task(task_id)

        assert task_member_service.list_task_members(task_id).total == 0
        assert task_objective_service.list_task_objectives(task_id).total == 0
        assert task_action_service.list_task_actions(task_id).total == 0
        assert comment_service.list_comments(task_id) == []
        assert sorted(dispatcher.recipients) == ["U1", "U2"]
