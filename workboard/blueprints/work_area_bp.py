"""
Work Area Blueprint.

Endpoints:
    GET    /api/v1/projects/<project_id>/work-areas   — paged list with nested tasks
    POST   /api/v1/work-areas                         — create
    GET    /api/v1/work-areas/<id>                    — detail with nested tasks
    PUT    /api/v1/work-areas/<id>                    — update, notifies task members
    DELETE /api/v1/work-areas/<id>                    — cascade delete, notifies task members
    GET    /api/v1/work-areas/<id>/work-tasks         — paged tasks of the area

Layer contract:
    - No ORM calls here — all DB work delegated to work_area_service.
    - No db.session.commit() here.
"""

import logging

from flask import Blueprint, jsonify

from workboard.blueprints import actor, json_body, page_args, register_error_handlers
from workboard.services import work_area_service, work_task_service

logger = logging.getLogger(__name__)

work_area_bp = register_error_handlers(Blueprint("work_area", __name__, url_prefix="/api/v1"))


@work_area_bp.route("/projects/<project_id>/work-areas", methods=["GET"])
def list_work_areas(project_id):
    page, size, _search = page_args()
    result = work_area_service.list_work_areas_by_project(project_id, page=page, size=size)
    return jsonify(result.to_dict(serializer=lambda a: a.to_dict(include_tasks=True))), 200


@work_area_bp.route("/work-areas", methods=["POST"])
def create_work_area():
    data = json_body()
    user_id, _user_name = actor(data)
    area = work_area_service.create_work_area(data, actor_id=user_id)
    return jsonify(area.to_dict()), 201


@work_area_bp.route("/work-areas/<area_id>", methods=["GET"])
def get_work_area(area_id):
    area = work_area_service.get_work_area(area_id)
    return jsonify(area.to_dict(include_tasks=True)), 200


@work_area_bp.route("/work-areas/<area_id>", methods=["PUT"])
def update_work_area(area_id):
    data = json_body()
    user_id, user_name = actor(data)
    area = work_area_service.update_work_area(area_id, data, actor_id=user_id, actor_name=user_name)
    return jsonify(area.to_dict()), 200


@work_area_bp.route("/work-areas/<area_id>", methods=["DELETE"])
def delete_work_area(area_id):
    user_id, user_name = actor()
    work_area_service.delete_work_area(area_id, actor_id=user_id, actor_name=user_name)
    return jsonify({"message": "Work area deleted"}), 200


@work_area_bp.route("/work-areas/<area_id>/work-tasks", methods=["GET"])
def list_area_tasks(area_id):
    work_area_service.get_work_area(area_id)
    page, size, _search = page_args()
    result = work_task_service.list_work_tasks_by_area(area_id, page=page, size=size)
    return jsonify(result.to_dict(serializer=lambda t: t.to_dict())), 200
