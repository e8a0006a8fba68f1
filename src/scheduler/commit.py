"""Replay a schedule draft against the API.

Additions are created first, then deletions are removed, one call at a time
in the order they were staged. The first failing call stops the run: nothing
after it is attempted, nothing before it is rolled back, and the draft stays
in the store so the admin can retry. A retry replays the whole draft,
including calls that already succeeded; the server's conflict checks reject
the duplicates.

On full success the draft is cleared and the refresh callback re-fetches the
authoritative schedule.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol

from src.scheduler.drafts import DraftStore
from src.scheduler.errors import (
    CommitInProgressError,
    PartialCommitFailure,
    PermanentError,
    SchedulingError,
)
from src.scheduler.logging import get_logger
from src.scheduler.models import Draft, DraftAddition, ScheduleRecord, is_temp_id
from src.scheduler.notifications import (
    Notification,
    Notifier,
    error_notification,
    ignore_notification,
)

logger = get_logger(__name__)


class ScheduleApi(Protocol):
    def get_teacher_schedule(self, teacher_id: int, week_start: str | None = None) -> list[ScheduleRecord]: ...

    def create_schedule(self, payload: dict[str, Any]) -> dict[str, Any]: ...

    def delete_schedule(self, schedule_id: int | str) -> dict[str, Any]: ...


@dataclass
class CommitResult:
    """Outcome of one commit run."""

    success: bool
    created: int = 0
    deleted: int = 0
    skipped: int = 0
    error: PartialCommitFailure | None = None
    notification: Notification | None = None
    operations: list[str] = field(default_factory=list)

    @property
    def applied(self) -> int:
        return self.created + self.deleted


def addition_payload(addition: DraftAddition) -> dict[str, Any]:
    """Body for POST /schedules built from a pending addition."""
    return {
        "student_id": addition.student_id,
        "teacher_id": addition.teacher_id,
        "day_of_week": addition.day_of_week,
        "time_slot": addition.time_slot,
        "week_start_date": addition.week_start,
    }


class CommitProtocol:
    """Sequential draft commit with stop-on-first-failure.

    Remote failures never escape commit(): they are logged, turned into a
    Notification for the notifier, and returned in the CommitResult.
    """

    def __init__(
        self,
        store: DraftStore,
        api: ScheduleApi,
        *,
        notifier: Notifier = ignore_notification,
        refresh: Callable[[], Any] | None = None,
    ) -> None:
        self.store = store
        self.api = api
        self.notifier = notifier
        self.refresh = refresh
        self._committing = False

    @property
    def is_committing(self) -> bool:
        return self._committing

    def commit(self, draft: Draft | None = None) -> CommitResult:
        """Send the draft to the API.

        Args:
            draft: Draft to replay; defaults to the one in the store.

        Raises:
            CommitInProgressError: If called while a commit is running.
        """
        if self._committing:
            raise CommitInProgressError("Changes are already being saved")

        if draft is None:
            draft = self.store.get_draft_changes()
        if draft is None or draft.is_empty:
            logger.info("draft_commit_skipped", reason="no_changes")
            return CommitResult(success=True)

        result = CommitResult(success=False)
        log = logger.bind(teacher_id=draft.teacher_id, week_start=draft.week_start)
        log.info(
            "draft_commit_started",
            additions=len(draft.additions),
            deletions=len(draft.deletions),
        )

        self._committing = True
        try:
            for addition in draft.additions:
                result.operations.append(f"create {addition.day_of_week} {addition.time_slot}")
                self.api.create_schedule(addition_payload(addition))
                result.created += 1

            for deletion in draft.deletions:
                if deletion.schedule_id is None or is_temp_id(deletion.schedule_id):
                    result.skipped += 1
                    continue
                result.operations.append(f"delete {deletion.schedule_id}")
                self.api.delete_schedule(deletion.schedule_id)
                result.deleted += 1
        except SchedulingError as e:
            return self._fail(result, e, log)
        except Exception as e:
            log.exception("draft_commit_unexpected_error", error=str(e))
            return self._fail(result, PermanentError(str(e)), log)
        finally:
            self._committing = False

        self.store.clear_draft_changes()
        result.success = True
        log.info(
            "draft_committed",
            created=result.created,
            deleted=result.deleted,
            skipped=result.skipped,
        )

        if self.refresh is not None:
            self.refresh()
        return result

    def _fail(self, result: CommitResult, cause: SchedulingError, log) -> CommitResult:
        result.error = PartialCommitFailure(cause, applied=result.applied)
        result.notification = error_notification(result.error)
        log.error(
            "draft_commit_failed",
            failed_operation=result.operations[-1] if result.operations else None,
            applied=result.applied,
            error=str(cause),
            error_type=type(cause).__name__,
        )
        self.notifier(result.notification)
        return result
