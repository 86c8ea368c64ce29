"""
Service-layer exception hierarchy.

Services raise these types; blueprints register handlers against them once
and get consistent HTTP status codes everywhere.

Usage:
    from workboard.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="WorkTask", resource_id=task_id)
    raise ValidationError("title is required", details={"title": "required"})
"""


class NotFoundError(Exception):
    """Raised when a requested entity does not exist (or is soft-deleted).

    Maps to HTTP 404.

    Args:
        resource: Human-readable entity name (e.g. "WorkTask", "Comment").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is well-formed but violates a business rule.

    Covers missing payloads, out-of-range values and invalid or deleted
    parent references.  Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class ConflictError(Exception):
    """Raised when an operation would duplicate an active unique entry.

    Maps to HTTP 409.

    Args:
        resource: Entity name.
        field: The unique field (or field pair) that would be duplicated.
        value: The conflicting value.
    """

    def __init__(self, resource: str, field: str, value: str | None = None) -> None:
        self.resource = resource
        self.field = field
        self.value = value
        msg = f"{resource} with {field}={value!r} already exists"
        super().__init__(msg)


class AuthorizationError(Exception):
    """Raised when the acting user may not modify the target entity.

    Maps to HTTP 403.
    """

    def __init__(self, message: str, user_id: str | None = None) -> None:
        self.user_id = user_id
        super().__init__(message)
