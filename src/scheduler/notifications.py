"""User-facing messages for scheduling failures."""

from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel

from src.scheduler.errors import (
    AuthenticationError,
    ConflictFailure,
    ConflictKind,
    DraftScopeError,
    PartialCommitFailure,
    SchedulingError,
    TransientError,
    ValidationFailure,
)

OTHER_TEACHER_MESSAGE = "This student is already assigned to another teacher."
NOT_FOUND_MESSAGE = "Student not found. Please refresh and try again."
CONFLICT_MESSAGE = "There is a scheduling conflict. Please choose a different time slot."
NETWORK_MESSAGE = "Unable to reach the server. Please check your connection and try again."
AUTH_MESSAGE = "Your session has expired. Please log in again."
SAVE_FAILED_MESSAGE = "Failed to save changes. Please try again."

_CONFLICT_MESSAGES = {
    ConflictKind.OTHER_TEACHER: OTHER_TEACHER_MESSAGE,
    ConflictKind.NOT_FOUND: NOT_FOUND_MESSAGE,
    ConflictKind.CONFLICT: CONFLICT_MESSAGE,
}


class Level(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Notification(BaseModel):
    title: str
    message: str
    level: Level = Level.INFO


Notifier = Callable[[Notification], None]


def user_message(error: BaseException) -> str:
    """Pick the message to show for a failed scheduling action."""
    if isinstance(error, PartialCommitFailure):
        error = error.cause
    if isinstance(error, ConflictFailure):
        return _CONFLICT_MESSAGES[error.kind]
    if isinstance(error, (ValidationFailure, DraftScopeError)):
        return str(error) or SAVE_FAILED_MESSAGE
    if isinstance(error, TransientError):
        return NETWORK_MESSAGE
    if isinstance(error, AuthenticationError):
        return AUTH_MESSAGE
    if isinstance(error, SchedulingError) and str(error):
        return str(error)
    return SAVE_FAILED_MESSAGE


def error_notification(error: BaseException, title: str = "Error") -> Notification:
    return Notification(title=title, message=user_message(error), level=Level.ERROR)


def ignore_notification(notification: Notification) -> None:
    """Default notifier for headless use."""
    return None
