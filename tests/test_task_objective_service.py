"""
Tests for TaskObjective management (task_objective_service).

The creator batch and the all-members batch are independent, so a creator
who is also an active member is notified twice per mutation.
"""

import pytest

from workboard.core.exceptions import NotFoundError, ValidationError
from workboard.services import task_objective_service
from workboard.services.notification import NotificationType


@pytest.fixture()
def task(work_area, make_task):
    return make_task(work_area, members=["u1", "u2"])


class TestCreateObjective:
    def test_creator_member_is_notified_twice(self, task, dispatcher):
        task_objective_service.create_task_objective(
            {"work_task_id": task.id, "title": "Reconcile"}, actor_id="u1",
        )

        assert dispatcher.recipients.count("u1") == 2
        assert dispatcher.recipients.count("u2") == 1
        assert dispatcher.messages[0].user_id == "u1"
        assert dispatcher.messages[0].metadata["objectiveTitle"] == "Reconcile"

    def test_non_member_creator_gets_only_the_broadcast(self, task, dispatcher):
        task_objective_service.create_task_objective(
            {"work_task_id": task.id, "title": "Reconcile"}, actor_id="outsider",
        )
        assert sorted(dispatcher.recipients) == ["u1", "u2"]

    def test_missing_parent_raises_validation_error(self):
        with pytest.raises(ValidationError, match="does not exist"):
            task_objective_service.create_task_objective({"work_task_id": "nope", "title": "X"})

    def test_title_is_required(self, task):
        with pytest.raises(ValidationError, match="title"):
            task_objective_service.create_task_objective({"work_task_id": task.id})


class TestUpdateObjective:
    def test_update_preserves_creator_and_created_date(self, task, dispatcher):
        obj = task_objective_service.create_task_objective(
            {"work_task_id": task.id, "title": "Reconcile"}, actor_id="u2",
        )
        created = obj.created_date
        dispatcher.clear()

        updated = task_objective_service.update_task_objective(
            obj.id, {"title": "Reconcile banks", "created_by_user_id": "x"},
        )

        assert updated.title == "Reconcile banks"
        assert updated.created_by_user_id == "u2"
        assert updated.created_date == created
        assert dispatcher.recipients.count("u2") == 2
        assert dispatcher.titles[0] == "Task Objective Updated"

    def test_update_unknown_objective_raises_not_found(self):
        with pytest.raises(NotFoundError):
            task_objective_service.update_task_objective("missing", {"title": "X"})


class TestCompleteObjective:
    def test_complete_sets_completion_fields_and_types(self, task, dispatcher):
        obj = task_objective_service.create_task_objective(
            {"work_task_id": task.id, "title": "Reconcile"}, actor_id="u1",
        )
        dispatcher.clear()

        done = task_objective_service.complete_task_objective(obj.id, True, user_id="u2")

        assert done.is_completed is True
        assert done.completed_date is not None
        assert done.completed_by_user_id == "u2"
        assert dispatcher.titles[0] == "Task Objective Completed"
        assert {m.type for m in dispatcher.messages} == {NotificationType.TASK_STATUS_CHANGED}
        assert len(dispatcher.messages) == 3

    def test_uncomplete_clears_completion_fields(self, task, dispatcher):
        obj = task_objective_service.create_task_objective(
            {"work_task_id": task.id, "title": "Reconcile"}, actor_id="u1",
        )
        task_objective_service.complete_task_objective(obj.id, True, user_id="u2")
        dispatcher.clear()

        undone = task_objective_service.complete_task_objective(obj.id, False, user_id="u2")

        assert undone.is_completed is False
        assert undone.completed_date is None
        assert undone.completed_by_user_id is None
        assert dispatcher.titles[0] == "Task Objective Marked Incomplete"
        # creator notice keeps the assignment type, broadcast is a status change
        assert dispatcher.messages[0].type == NotificationType.TASK_ASSIGNED
        assert dispatcher.messages[-1].type == NotificationType.TASK_STATUS_CHANGED


class TestDeleteAndList:
    def test_delete_is_soft_and_hidden_from_lists(self, task, dispatcher):
        obj = task_objective_service.create_task_objective({"work_task_id": task.id, "title": "A"})
        dispatcher.clear()

        task_objective_service.delete_task_objective(obj.id)

        assert task_objective_service.list_task_objectives(task.id).total == 0
        with pytest.raises(NotFoundError):
            task_objective_service.get_task_objective(obj.id)
        assert sorted(dispatcher.recipients) == ["u1", "u2"]
        assert dispatcher.titles[0] == "Task Objective Deleted"

    def test_list_orders_by_display_order(self, task):
        task_objective_service.create_task_objective(
            {"work_task_id": task.id, "title": "Second", "display_order": 2})
        task_objective_service.create_task_objective(
            {"work_task_id": task.id, "title": "First", "display_order": 1})

        page = task_objective_service.list_task_objectives(task.id)

        assert [o.title for o in page.items] == ["First", "Second"]
