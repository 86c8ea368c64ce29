"""
Comment Blueprint.

Endpoints:
    GET    /api/v1/work-tasks/<id>/comments   — newest first; paged when ?page= is given
    POST   /api/v1/work-tasks/<id>/comments   — add
    PUT    /api/v1/comments/<id>              — edit (author only)
    DELETE /api/v1/comments/<id>              — soft delete (author only)
"""

import logging

from flask import Blueprint, jsonify, request

from workboard.blueprints import actor, json_body, page_args, register_error_handlers
from workboard.services import comment_service

logger = logging.getLogger(__name__)

comment_bp = register_error_handlers(Blueprint("comment", __name__, url_prefix="/api/v1"))


@comment_bp.route("/work-tasks/<task_id>/comments", methods=["GET"])
def list_comments(task_id):
    if "page" in request.args:
        page, size, _search = page_args()
        result = comment_service.list_comments_paged(task_id, page=page, size=size)
        return jsonify(result.to_dict(serializer=lambda c: c.to_dict())), 200
    return jsonify([c.to_dict() for c in comment_service.list_comments(task_id)]), 200


@comment_bp.route("/work-tasks/<task_id>/comments", methods=["POST"])
def add_comment(task_id):
    data = json_body()
    user_id, user_name = actor(data)
    data["user_id"] = user_id
    data["user_name"] = user_name
    comment = comment_service.add_comment(task_id, data)
    return jsonify(comment.to_dict()), 201


@comment_bp.route("/comments/<comment_id>", methods=["PUT"])
def update_comment(comment_id):
    data = json_body()
    user_id, _user_name = actor(data)
    comment = comment_service.update_comment(comment_id, data, user_id)
    return jsonify(comment.to_dict()), 200


@comment_bp.route("/comments/<comment_id>", methods=["DELETE"])
def delete_comment(comment_id):
    user_id, _user_name = actor()
    comment_service.delete_comment(comment_id, user_id)
    return jsonify({"message": "Comment deleted"}), 200
