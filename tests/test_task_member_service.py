"""
Tests for TaskMember management (task_member_service).

Covers:
  - assign: parent validation, conflict with any non-removed membership,
            re-assign after soft removal, notification of all active members
  - unassign / remove: soft removal of active or inactive rows, silent no-op,
            no notification, removed rows are not found
  - update: only role / active flag / assigned_by mutate, reactivation never
            yields a second active row, removed rows are not found
  - delete: purge with snapshot of the parent, remaining members notified
"""

import pytest

from workboard.core.exceptions import ConflictError, NotFoundError, ValidationError
from workboard.models import db
from workboard.models.work import MEMBER_ACTIVE, MEMBER_INACTIVE, MEMBER_REMOVED, TaskMember
from workboard.services import task_member_service


class TestAssign:
    def test_assign_creates_assignee_and_notifies_all_active_members(
        self, work_area, make_task, dispatcher,
    ):
        task = make_task(work_area, members=["u1"])

        member = task_member_service.assign_work_task_to_user(
            task.id, "u2", "Bob", "bob@example.com", assigned_by="u1",
        )

        assert member.role == "Assignee"
        assert member.is_active is True
        assert member.assigned_by_user_id == "u1"
        assert sorted(dispatcher.recipients) == ["u1", "u2"]
        assert dispatcher.titles == ["Task Assigned", "Task Assigned"]
        assert dispatcher.messages[0].metadata["userName"] == "Bob"

    def test_assign_twice_raises_conflict(self, work_area, make_task):
        task = make_task(work_area)
        task_member_service.assign_work_task_to_user(task.id, "u1", "Ada")

        with pytest.raises(ConflictError):
            task_member_service.assign_work_task_to_user(task.id, "u1", "Ada")
        assert TaskMember.query.filter_by(work_task_id=task.id).count() == 1

    def test_assign_after_soft_removal_succeeds(self, work_area, make_task):
        task = make_task(work_area)
        task_member_service.assign_work_task_to_user(task.id, "u1", "Ada")
        task_member_service.remove_work_task_from_user(task.id, "u1")

        member = task_member_service.assign_work_task_to_user(task.id, "u1", "Ada")

        assert member.is_active is True
        assert TaskMember.query.filter_by(work_task_id=task.id, user_id="u1").count() == 2

    def test_inactive_membership_blocks_reassignment(self, work_area, make_task):
        task = make_task(work_area)
        first = task_member_service.assign_work_task_to_user(task.id, "u1", "Ada")
        task_member_service.update_task_member(first.id, {"is_active": False})

        with pytest.raises(ConflictError):
            task_member_service.assign_work_task_to_user(task.id, "u1", "Ada")
        with pytest.raises(ConflictError):
            task_member_service.create_task_member({"work_task_id": task.id, "user_id": "u1"})

        task_member_service.update_task_member(first.id, {"is_active": True})
        active = TaskMember.query.filter_by(
            work_task_id=task.id, user_id="u1", status=MEMBER_ACTIVE,
        ).count()
        assert active == 1

    def test_assign_to_missing_task_raises_validation_error(self):
        with pytest.raises(ValidationError, match="does not exist"):
            task_member_service.assign_work_task_to_user("missing", "u1", "Ada")

    def test_assign_to_deleted_task_raises_validation_error(self, work_area, make_task):
        task = make_task(work_area, is_deleted=True)
        with pytest.raises(ValidationError):
            task_member_service.assign_work_task_to_user(task.id, "u1", "Ada")

    def test_member_without_email_is_addressed_by_name(self, work_area, make_task, dispatcher):
        task = make_task(work_area)
        task_member_service.assign_work_task_to_user(task.id, "u1", "Ada")
        assert dispatcher.messages[0].email == "Ada"


class TestUnassign:
    def test_unassign_soft_removes_without_notification(self, work_area, make_task, dispatcher):
        task = make_task(work_area, members=["u1", "u2"])

        member = task_member_service.remove_work_task_from_user(task.id, "u1")

        assert member.status == MEMBER_REMOVED
        assert dispatcher.messages == []
        assert task_member_service.list_task_members(task.id).total == 1

    def test_unassign_removes_inactive_membership(self, work_area, make_task, add_member):
        task = make_task(work_area)
        add_member(task, "u1", status=MEMBER_INACTIVE)

        member = task_member_service.remove_work_task_from_user(task.id, "u1")

        assert member is not None
        assert member.status == MEMBER_REMOVED
        assert task_member_service.list_task_members(task.id).total == 0

    def test_unassign_unknown_user_is_a_noop(self, work_area, make_task):
        task = make_task(work_area)
        assert task_member_service.remove_work_task_from_user(task.id, "ghost") is None


class TestCreateAndQuery:
    def test_create_member_from_payload(self, work_area, make_task, dispatcher):
        task = make_task(work_area, members=["u1"])

        member = task_member_service.create_task_member({
            "work_task_id": task.id, "user_id": "u2", "user_name": "Bob", "role": "Reviewer",
        })

        assert member.role == "Reviewer"
        assert sorted(dispatcher.recipients) == ["u1", "u2"]

    def test_create_member_conflicts_with_active_membership(self, work_area, make_task):
        task = make_task(work_area, members=["u1"])
        with pytest.raises(ConflictError):
            task_member_service.create_task_member({"work_task_id": task.id, "user_id": "u1"})

    def test_get_excludes_removed(self, work_area, make_task, add_member):
        task = make_task(work_area)
        removed = add_member(task, "u1", status=MEMBER_REMOVED)
        with pytest.raises(NotFoundError):
            task_member_service.get_task_member(removed.id)


class TestUpdate:
    def test_update_changes_only_mutable_fields(self, work_area, make_task, add_member, dispatcher):
        task = make_task(work_area)
        member = add_member(task, "u1")

        task_member_service.update_task_member(member.id, {
            "role": "Lead", "is_active": False, "assigned_by_user_id": "boss",
            "user_id": "someone-else", "work_task_id": "other",
        })

        member = db.session.get(TaskMember, member.id)
        assert member.role == "Lead"
        assert member.status == MEMBER_INACTIVE
        assert member.assigned_by_user_id == "boss"
        assert member.user_id == "u1"
        assert member.work_task_id == task.id
        # the only member is now inactive, so nobody is notified
        assert dispatcher.messages == []

    def test_reactivation_conflicts_with_other_active_row(self, work_area, make_task, add_member):
        task = make_task(work_area)
        add_member(task, "u1")
        stale = add_member(task, "u1", status=MEMBER_INACTIVE)

        with pytest.raises(ConflictError):
            task_member_service.update_task_member(stale.id, {"role": "Lead", "is_active": True})

        db.session.rollback()
        stale = db.session.get(TaskMember, stale.id)
        assert stale.status == MEMBER_INACTIVE
        assert stale.role == "Assignee"

    def test_update_removed_member_raises_not_found(
        self, work_area, make_task, add_member, dispatcher,
    ):
        task = make_task(work_area, members=["u2"])
        removed = add_member(task, "u1", status=MEMBER_REMOVED)

        with pytest.raises(NotFoundError):
            task_member_service.update_task_member(removed.id, {"role": "Lead"})
        assert db.session.get(TaskMember, removed.id).role == "Assignee"
        assert dispatcher.messages == []

    def test_update_unknown_member_raises_not_found(self):
        with pytest.raises(NotFoundError):
            task_member_service.update_task_member("missing", {"role": "Lead"})


class TestDelete:
    def test_delete_purges_and_notifies_remaining_members(
        self, work_area, make_task, add_member, dispatcher,
    ):
        task = make_task(work_area, members=["u1"])
        doomed = add_member(task, "u2", user_name="Bob")
        doomed_id = doomed.id

        task_member_service.delete_task_member(doomed_id)

        assert db.session.get(TaskMember, doomed_id) is None
        assert dispatcher.recipients == ["u1"]
        assert dispatcher.messages[0].metadata["userName"] == "Bob"
        assert dispatcher.messages[0].task_id == task.id

    def test_delete_unknown_member_raises_not_found(self):
        with pytest.raises(NotFoundError):
            task_member_service.delete_task_member("missing")

    def test_remove_by_id_sends_nothing(self, work_area, make_task, add_member, dispatcher):
        task = make_task(work_area, members=["u1"])
        member = add_member(task, "u2")

        removed = task_member_service.remove_task_member(member.id, removed_by_user_id="u1")

        assert removed.status == MEMBER_REMOVED
        assert dispatcher.messages == []

    def test_remove_unknown_member_raises_not_found(self):
        with pytest.raises(NotFoundError):
            task_member_service.remove_task_member("missing")

    def test_remove_already_removed_member_raises_not_found(self, work_area, make_task, add_member):
        task = make_task(work_area)
        removed = add_member(task, "u1", status=MEMBER_REMOVED)
        with pytest.raises(NotFoundError):
            task_member_service.remove_task_member(removed.id)
