"""Error hierarchy for schedule draft commits and API calls.

Transient failures (network, 5xx, rate limiting) are retried by the API client
through tenacity; permanent failures surface to the caller immediately.

Example usage with tenacity:
    @retry(retry=retry_if_exception_type(TransientError), stop=stop_after_attempt(3))
    def create_schedule(payload: dict):
        ...
"""

from enum import Enum


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""

    pass


class TransientError(SchedulingError):
    """Temporary failure that may succeed on retry.

    Examples: connection refused, timeouts, 502/503 from the functions gateway.
    """

    pass


class RateLimitError(TransientError):
    """Rate limit exceeded (HTTP 429) - needs longer backoff."""

    pass


class PermanentError(SchedulingError):
    """Failure that won't succeed on retry."""

    pass


class ValidationFailure(PermanentError):
    """A request was rejected for missing or invalid fields.

    The message is shown to the user verbatim.
    """

    pass


class ConflictKind(str, Enum):
    """Classification of a create-schedule conflict by server message."""

    OTHER_TEACHER = "other_teacher"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class ConflictFailure(PermanentError):
    """The slot or student is already taken.

    Attributes:
        kind: Which conflict the server reported.
    """

    def __init__(self, message: str, kind: ConflictKind = ConflictKind.CONFLICT) -> None:
        super().__init__(message)
        self.kind = kind


class NotFoundError(PermanentError):
    """A schedule record referenced by id no longer exists."""

    pass


class AuthenticationError(PermanentError):
    """Token missing, expired or rejected (401/403).

    Requires a fresh login, cannot be fixed by retry.
    """

    pass


class CommitInProgressError(PermanentError):
    """A commit was requested while another one is still running."""

    pass


class DraftScopeError(PermanentError):
    """A change targets a teacher-week other than the one with unsaved changes.

    Only one draft exists at a time; it must be saved or discarded first.
    """

    pass


class StorageFailure(SchedulingError):
    """Reading or writing the local draft store failed.

    Never shown to the user: the draft store logs it and degrades to "no draft".
    """

    pass


class PartialCommitFailure(SchedulingError):
    """A commit stopped at its first failing remote call.

    Attributes:
        cause: The error raised by the failing call.
        applied: Number of remote calls that succeeded before the failure.
    """

    def __init__(self, cause: SchedulingError, applied: int = 0) -> None:
        super().__init__(str(cause))
        self.cause = cause
        self.applied = applied
