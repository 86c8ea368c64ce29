"""
Workboard
Blueprint registry and request helpers shared by the API blueprints.
"""

import logging

from flask import current_app, request

from workboard.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from workboard.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def json_body():
    """Request JSON as a dict (empty dict when absent or not an object)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def actor(data=None):
    """Acting user as ``(user_id, user_name)``.

    Read from X-User-Id / X-User-Name headers, falling back to
    ``user_id`` / ``user_name`` in the JSON body.
    """
    data = data if data is not None else json_body()
    user_id = request.headers.get("X-User-Id") or data.get("user_id")
    user_name = request.headers.get("X-User-Name") or data.get("user_name")
    return (str(user_id) if user_id else None), user_name


def page_args():
    """``(page, size, search)`` from the query string."""
    page = request.args.get("page", 1, type=int)
    size = request.args.get("size", current_app.config.get("DEFAULT_PAGE_SIZE", 10), type=int)
    search = request.args.get("search") or None
    return page, size, search


def register_error_handlers(bp):
    """Map service-layer exceptions to standard JSON error responses."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error):
        return api_error(E.VALIDATION_RULE, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error):
        return api_error(E.CONFLICT_DUPLICATE, str(error))

    @bp.errorhandler(AuthorizationError)
    def _handle_forbidden(error):
        return api_error(E.FORBIDDEN, str(error))

    return bp
