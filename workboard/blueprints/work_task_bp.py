"""
Work Task Blueprint.

Endpoints:
    GET    /api/v1/work-tasks                 — paged list, ?search=
    GET    /api/v1/work-tasks/mine            — tasks of the acting user (X-User-Id)
    POST   /api/v1/work-tasks                 — create (optional initial members)
    GET    /api/v1/work-tasks/<id>            — detail with members, objectives, actions
    PUT    /api/v1/work-tasks/<id>            — patch, one audit row per changed field
    DELETE /api/v1/work-tasks/<id>            — cascade delete
    GET    /api/v1/work-tasks/<id>/actions    — paged audit trail, newest first
    GET    /api/v1/task-actions/<id>          — single audit row
"""

import logging

from flask import Blueprint, jsonify

from workboard.blueprints import actor, json_body, page_args, register_error_handlers
from workboard.services import task_action_service, work_task_service

logger = logging.getLogger(__name__)

work_task_bp = register_error_handlers(Blueprint("work_task", __name__, url_prefix="/api/v1"))


def _task_detail(task):
    d = task.to_dict(include_children=True)
    d["work_area"] = task.work_area.to_dict() if task.work_area else None
    return d


@work_task_bp.route("/work-tasks", methods=["GET"])
def list_work_tasks():
    page, size, search = page_args()
    result = work_task_service.list_work_tasks(page=page, size=size, search=search)
    return jsonify(result.to_dict(serializer=lambda t: t.to_dict())), 200


@work_task_bp.route("/work-tasks/mine", methods=["GET"])
def list_my_work_tasks():
    page, size, search = page_args()
    user_id, _user_name = actor({})
    result = work_task_service.list_my_work_tasks(page=page, size=size, user_id=user_id, search=search)
    return jsonify(result.to_dict(serializer=lambda t: t.to_dict())), 200


@work_task_bp.route("/work-tasks", methods=["POST"])
def create_work_task():
    data = json_body()
    user_id, user_name = actor(data)
    task = work_task_service.create_work_task(data, actor_id=user_id, actor_name=user_name)
    return jsonify(_task_detail(task)), 201


@work_task_bp.route("/work-tasks/<task_id>", methods=["GET"])
def get_work_task(task_id):
    task = work_task_service.get_work_task(task_id)
    return jsonify(_task_detail(task)), 200


@work_task_bp.route("/work-tasks/<task_id>", methods=["PUT"])
def update_work_task(task_id):
    data = json_body()
    user_id, user_name = actor(data)
    task = work_task_service.update_work_task(task_id, data, actor_id=user_id, actor_name=user_name)
    return jsonify(task.to_dict()), 200


@work_task_bp.route("/work-tasks/<task_id>", methods=["DELETE"])
def delete_work_task(task_id):
    user_id, user_name = actor()
    work_task_service.delete_work_task(task_id, actor_id=user_id, actor_name=user_name)
    return jsonify({"message": "Work task deleted"}), 200


@work_task_bp.route("/work-tasks/<task_id>/actions", methods=["GET"])
def list_task_actions(task_id):
    work_task_service.get_work_task(task_id)
    page, size, _search = page_args()
    result = task_action_service.list_task_actions(task_id, page=page, size=size)
    return jsonify(result.to_dict(serializer=lambda a: a.to_dict())), 200


@work_task_bp.route("/task-actions/<action_id>", methods=["GET"])
def get_task_action(action_id):
    action = task_action_service.get_task_action(action_id)
    return jsonify(action.to_dict()), 200
