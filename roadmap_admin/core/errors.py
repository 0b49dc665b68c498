"""Error taxonomy for roadmap editing.

Every failure in this package is recoverable by retrying the user action, so
all of them derive from one base class that carries an ``ErrorKind``.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Error categories surfaced to the caller."""

    VALIDATION_ERROR = "validation_error"  # Caught before any network call
    FETCH_FAILED = "fetch_failed"  # Non-2xx or transport error
    IMPORT_FORMAT_ERROR = "import_format_error"  # Malformed uploaded JSON
    NOT_FOUND = "not_found"  # Unknown id in local state


class RoadmapAdminError(Exception):
    """Base error for the roadmap admin client."""

    kind: ErrorKind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(RoadmapAdminError):
    """A required field is missing or a value is not allowed."""

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class FetchFailed(RoadmapAdminError):
    """A call to the roadmap API failed."""

    kind = ErrorKind.FETCH_FAILED

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ImportFormatError(RoadmapAdminError):
    """An uploaded roadmap document could not be imported."""

    kind = ErrorKind.IMPORT_FORMAT_ERROR


class EntityNotFound(RoadmapAdminError):
    """No entity with the given type and id exists in local state."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity_type: str, entity_id: str) -> None:
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id
