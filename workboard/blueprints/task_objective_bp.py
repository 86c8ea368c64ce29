"""
Task Objective Blueprint.

Endpoints:
    GET    /api/v1/work-tasks/<id>/objectives     — paged objectives in display order
    POST   /api/v1/work-tasks/<id>/objectives     — create
    GET    /api/v1/task-objectives/<id>           — detail
    PUT    /api/v1/task-objectives/<id>           — update
    DELETE /api/v1/task-objectives/<id>           — soft delete
    POST   /api/v1/task-objectives/<id>/complete  — body {"is_completed": bool}
"""

import logging

from flask import Blueprint, jsonify

from workboard.blueprints import actor, json_body, page_args, register_error_handlers
from workboard.services import task_objective_service

logger = logging.getLogger(__name__)

task_objective_bp = register_error_handlers(
    Blueprint("task_objective", __name__, url_prefix="/api/v1")
)


@task_objective_bp.route("/work-tasks/<task_id>/objectives", methods=["GET"])
def list_task_objectives(task_id):
    page, size, _search = page_args()
    result = task_objective_service.list_task_objectives(task_id, page=page, size=size)
    return jsonify(result.to_dict(serializer=lambda o: o.to_dict())), 200


@task_objective_bp.route("/work-tasks/<task_id>/objectives", methods=["POST"])
def create_task_objective(task_id):
    data = json_body()
    data["work_task_id"] = task_id
    user_id, _user_name = actor(data)
    objective = task_objective_service.create_task_objective(data, actor_id=user_id)
    return jsonify(objective.to_dict()), 201


@task_objective_bp.route("/task-objectives/<objective_id>", methods=["GET"])
def get_task_objective(objective_id):
    return jsonify(task_objective_service.get_task_objective(objective_id).to_dict()), 200


@task_objective_bp.route("/task-objectives/<objective_id>", methods=["PUT"])
def update_task_objective(objective_id):
    objective = task_objective_service.update_task_objective(objective_id, json_body())
    return jsonify(objective.to_dict()), 200


@task_objective_bp.route("/task-objectives/<objective_id>", methods=["DELETE"])
def delete_task_objective(objective_id):
    user_id, _user_name = actor()
    task_objective_service.delete_task_objective(objective_id, actor_id=user_id)
    return jsonify({"message": "Task objective deleted"}), 200


@task_objective_bp.route("/task-objectives/<objective_id>/complete", methods=["POST"])
def complete_task_objective(objective_id):
    data = json_body()
    user_id, _user_name = actor(data)
    objective = task_objective_service.complete_task_objective(
        objective_id, data.get("is_completed", True), user_id=user_id,
    )
    return jsonify(objective.to_dict()), 200
