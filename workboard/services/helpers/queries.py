"""
Shared query helpers for the service layer.

get_live:          fetch by id, skipping soft-deleted rows, or raise NotFoundError
get_live_or_none:  same, returning None when absent
paginate:          run a select() as a 1-based page and wrap it in a Page envelope

Usage:
    task = get_live(WorkTask, task_id)
    page = paginate(select(WorkTask).order_by(WorkTask.created_date.desc()), page=1, size=20)
    return page.to_dict(serializer=lambda t: t.to_dict())
"""

import logging
import math
from dataclasses import dataclass, field

from flask import current_app, has_app_context
from sqlalchemy import func, select

from workboard.core.exceptions import NotFoundError, ValidationError
from workboard.models import db

logger = logging.getLogger(__name__)

_FALLBACK_MAX_PAGE_SIZE = 200


def get_live_or_none(model, pk, *, include_deleted=False):
    """Fetch a single entity by id, or None.

    Rows with ``is_deleted`` set are treated as absent unless
    ``include_deleted`` is True.  Models without an ``is_deleted`` column
    are looked up as-is.
    """
    if not pk:
        return None
    stmt = select(model).where(model.id == str(pk))
    if not include_deleted and hasattr(model, "is_deleted") and hasattr(model.is_deleted, "is_"):
        stmt = stmt.where(model.is_deleted.is_(False))
    return db.session.execute(stmt).scalar_one_or_none()


def get_live(model, pk, *, include_deleted=False, label=None):
    """Same as get_live_or_none but raises NotFoundError when absent."""
    obj = get_live_or_none(model, pk, include_deleted=include_deleted)
    if obj is None:
        logger.debug("get_live: %s id=%s not found", model.__name__, pk)
        raise NotFoundError(resource=label or model.__name__, resource_id=pk)
    return obj


# ── Pagination ───────────────────────────────────────────────────────────────


@dataclass
class Page:
    """Page envelope returned by every paginated service call."""

    items: list
    total: int
    page: int
    size: int
    pages: int = field(init=False)

    def __post_init__(self):
        self.pages = math.ceil(self.total / self.size) if self.size else 0

    def to_dict(self, serializer=None):
        items = [serializer(i) for i in self.items] if serializer else list(self.items)
        return {
            "items": items,
            "total": self.total,
            "page": self.page,
            "size": self.size,
            "pages": self.pages,
        }


def _max_page_size():
    if has_app_context():
        return current_app.config.get("MAX_PAGE_SIZE", _FALLBACK_MAX_PAGE_SIZE)
    return _FALLBACK_MAX_PAGE_SIZE


def paginate(stmt, page: int = 1, size: int = 10) -> Page:
    """Execute ``stmt`` as a 1-based page.

    Raises:
        ValidationError: page or size below 1.
    """
    try:
        page = int(page)
        size = int(size)
    except (TypeError, ValueError) as exc:
        raise ValidationError("page and size must be integers") from exc
    if page < 1:
        raise ValidationError("page must be >= 1", details={"page": page})
    if size < 1:
        raise ValidationError("size must be >= 1", details={"size": size})
    size = min(size, _max_page_size())

    total = db.session.execute(
        select(func.count()).select_from(stmt.order_by(None).subquery())
    ).scalar_one()
    items = db.session.execute(
        stmt.limit(size).offset((page - 1) * size)
    ).scalars().all()
    return Page(items=list(items), total=total, page=page, size=size)
