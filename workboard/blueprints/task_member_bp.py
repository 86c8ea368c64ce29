"""
Task Member Blueprint.

Endpoints:
    GET    /api/v1/work-tasks/<id>/members    — paged members (removed excluded)
    POST   /api/v1/work-tasks/<id>/assign     — assign a user as "Assignee"
    POST   /api/v1/work-tasks/<id>/unassign   — soft-remove a user's membership
    POST   /api/v1/task-members               — create
    GET    /api/v1/task-members/<id>          — detail
    PUT    /api/v1/task-members/<id>          — role / is_active / assigned_by_user_id
    DELETE /api/v1/task-members/<id>          — purge
    POST   /api/v1/task-members/<id>/remove   — soft-remove by member id
"""

import logging

from flask import Blueprint, jsonify, request

from workboard.blueprints import json_body, page_args, register_error_handlers
from workboard.services import task_member_service

logger = logging.getLogger(__name__)

task_member_bp = register_error_handlers(Blueprint("task_member", __name__, url_prefix="/api/v1"))


def _header_user():
    return request.headers.get("X-User-Id") or None


@task_member_bp.route("/work-tasks/<task_id>/members", methods=["GET"])
def list_task_members(task_id):
    page, size, _search = page_args()
    result = task_member_service.list_task_members(task_id, page=page, size=size)
    return jsonify(result.to_dict(serializer=lambda m: m.to_dict())), 200


@task_member_bp.route("/work-tasks/<task_id>/assign", methods=["POST"])
def assign_work_task(task_id):
    """Body: user_id (required), user_name, user_email."""
    data = json_body()
    member = task_member_service.assign_work_task_to_user(
        task_id,
        data.get("user_id"),
        data.get("user_name"),
        user_email=data.get("user_email"),
        assigned_by=_header_user() or data.get("assigned_by_user_id"),
    )
    return jsonify(member.to_dict()), 201


@task_member_bp.route("/work-tasks/<task_id>/unassign", methods=["POST"])
def unassign_work_task(task_id):
    data = json_body()
    member = task_member_service.remove_work_task_from_user(task_id, data.get("user_id"))
    if member is None:
        return jsonify({"message": "No active membership"}), 200
    return jsonify(member.to_dict()), 200


@task_member_bp.route("/task-members", methods=["POST"])
def create_task_member():
    data = json_body()
    if not data.get("assigned_by_user_id") and _header_user():
        data["assigned_by_user_id"] = _header_user()
    member = task_member_service.create_task_member(data)
    return jsonify(member.to_dict()), 201


@task_member_bp.route("/task-members/<member_id>", methods=["GET"])
def get_task_member(member_id):
    return jsonify(task_member_service.get_task_member(member_id).to_dict()), 200


@task_member_bp.route("/task-members/<member_id>", methods=["PUT"])
def update_task_member(member_id):
    member = task_member_service.update_task_member(member_id, json_body())
    return jsonify(member.to_dict()), 200


@task_member_bp.route("/task-members/<member_id>", methods=["DELETE"])
def delete_task_member(member_id):
    task_member_service.delete_task_member(member_id)
    return jsonify({"message": "Task member deleted"}), 200


@task_member_bp.route("/task-members/<member_id>/remove", methods=["POST"])
def remove_task_member(member_id):
    member = task_member_service.remove_task_member(member_id, removed_by_user_id=_header_user())
    return jsonify(member.to_dict()), 200
