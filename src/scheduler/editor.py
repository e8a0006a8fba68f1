"""Controller behind the admin weekly schedule grid.

Ties together the pieces a grid session needs: fetching the teacher's week,
overlaying the draft, staging adds and removes, saving or discarding the
draft, and guarding week/tab navigation while changes are unsaved. Rendering
is left to the caller, which reads `schedule` after each call.
"""

from collections.abc import Callable
from datetime import date
from typing import Any

from src.scheduler.commit import CommitProtocol, CommitResult, ScheduleApi
from src.scheduler.dates import is_valid_time_slot
from src.scheduler.drafts import DraftStore
from src.scheduler.errors import (
    CommitInProgressError,
    ConflictFailure,
    ConflictKind,
    SchedulingError,
    ValidationFailure,
)
from src.scheduler.logging import get_logger
from src.scheduler.models import ChangesSummary, LessonData, ReconciledItem, ScheduleRecord
from src.scheduler.navigation import (
    Choice,
    GuardState,
    NavigationAction,
    NavigationGuard,
    Prompt,
    WeekNavigator,
)
from src.scheduler.notifications import Notifier, error_notification, ignore_notification
from src.scheduler.reconcile import occupied_slots

logger = get_logger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load schedule"


class ScheduleEditor:
    """One teacher's weekly grid with draft-based editing.

    Args:
        teacher_id: Teacher whose schedule is edited.
        api: Schedule API (ScheduleApiClient or a compatible object).
        store: The process-wide DraftStore.
        week_start: Monday of the first displayed week; defaults to this week.
        notifier: Receives error notifications for the UI.
        on_prompt: Called when navigation is held for unsaved changes.
        on_week_change: Called with the new Monday after a week change.
        show_deleted: Keep lessons removed in the draft in `schedule`
            (is_deleted=True) instead of hiding them.
    """

    def __init__(
        self,
        teacher_id: int,
        api: ScheduleApi,
        store: DraftStore,
        *,
        week_start: str | None = None,
        notifier: Notifier = ignore_notification,
        on_prompt: Prompt | None = None,
        on_week_change: Callable[[str], Any] | None = None,
        show_deleted: bool = True,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.teacher_id = teacher_id
        self.api = api
        self.store = store
        self.notifier = notifier
        self.show_deleted = show_deleted
        self._on_week_change = on_week_change

        self.navigator = WeekNavigator(
            week_start, on_week_change=self._week_changed, today=today
        )
        self.committer = CommitProtocol(
            store, api, notifier=notifier, refresh=self.fetch_schedule
        )
        self.guard = NavigationGuard(store, self.committer, on_prompt=on_prompt)

        self.original: list[ScheduleRecord] = []
        self.schedule: list[ReconciledItem] = []
        self.has_unsaved_changes = False
        self.error: str | None = None

    @property
    def week_start(self) -> str:
        return self.navigator.week_start

    @property
    def is_saving(self) -> bool:
        return self.committer.is_committing

    @property
    def guard_state(self) -> GuardState:
        return self.guard.state

    @property
    def changes_summary(self) -> ChangesSummary | None:
        return self.store.get_changes_summary()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------
    def fetch_schedule(self) -> list[ReconciledItem]:
        """Fetch the week from the API and overlay the draft."""
        try:
            original = self.api.get_teacher_schedule(self.teacher_id, self.week_start)
        except SchedulingError as e:
            self.error = LOAD_FAILED_MESSAGE
            logger.error(
                "schedule_fetch_failed",
                teacher_id=self.teacher_id,
                week_start=self.week_start,
                error=str(e),
            )
            return self.schedule

        self.error = None
        self.original = original
        self._refresh_view()
        return self.schedule

    def _refresh_view(self) -> None:
        self.schedule = self.store.apply_draft_to_schedule(
            self.original,
            self.teacher_id,
            self.week_start,
            keep_deleted=self.show_deleted,
        )
        self.has_unsaved_changes = self.store.has_unsaved_changes()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def add_student(
        self, student_id: int, student_name: str, day_of_week: int, time_slot: str
    ) -> bool:
        """Stage a student in a cell.

        Cells holding a committed lesson must be cleared first; a cell holding
        a pending addition is overwritten.

        Returns:
            True if the draft was updated.
        """
        try:
            if not is_valid_time_slot(time_slot):
                raise ValidationFailure(f"Unknown time slot {time_slot!r}")
            occupant = occupied_slots(self.schedule).get((day_of_week, time_slot))
            if occupant is not None and not occupant.is_draft:
                raise ConflictFailure(
                    f"Slot already booked by {occupant.student_name}",
                    ConflictKind.CONFLICT,
                )
            self.store.add_lesson(
                LessonData(
                    teacher_id=self.teacher_id,
                    week_start=self.week_start,
                    day_of_week=day_of_week,
                    time_slot=time_slot,
                    student_id=student_id,
                    student_name=student_name,
                )
            )
        except SchedulingError as e:
            logger.warning(
                "add_student_rejected",
                student_id=student_id,
                day_of_week=day_of_week,
                time_slot=time_slot,
                error=str(e),
            )
            self.notifier(error_notification(e, title="Failed to add student"))
            return False

        self._refresh_view()
        return True

    def remove_lesson(self, item: ReconciledItem) -> bool:
        """Stage the removal of a lesson shown in the grid.

        Returns:
            True if the draft was updated.
        """
        try:
            if item.is_draft:
                self.store.retract_addition(item.day_of_week, item.time_slot)
            else:
                self.store.delete_lesson(
                    item.id,
                    LessonData(
                        teacher_id=self.teacher_id,
                        week_start=self.week_start,
                        day_of_week=item.day_of_week,
                        time_slot=item.time_slot,
                    ),
                )
        except SchedulingError as e:
            logger.warning("remove_lesson_rejected", schedule_id=item.id, error=str(e))
            self.notifier(error_notification(e, title="Error deleting lesson"))
            return False

        self._refresh_view()
        return True

    # ------------------------------------------------------------------
    # Save / discard
    # ------------------------------------------------------------------
    def save(self) -> CommitResult:
        """Commit the draft; a no-op when nothing is unsaved.

        A save requested while another one is running is refused with an
        unsuccessful result.
        """
        if not self.store.has_unsaved_changes():
            logger.debug("save_skipped", reason="no_unsaved_changes")
            return CommitResult(success=True)
        try:
            result = self.committer.commit()
        except CommitInProgressError as e:
            logger.warning("save_already_running", teacher_id=self.teacher_id, error=str(e))
            return CommitResult(success=False)
        self.has_unsaved_changes = self.store.has_unsaved_changes()
        return result

    def discard(self) -> None:
        self.store.clear_draft_changes()
        logger.info("draft_discarded", teacher_id=self.teacher_id, week_start=self.week_start)
        self.fetch_schedule()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------
    def navigate(self, action: NavigationAction) -> bool:
        """Move to another week, through the unsaved-changes guard.

        Returns:
            True if the week changed immediately.
        """
        return self.guard.request(action, lambda: self.navigator.go(action))

    def previous_week(self) -> bool:
        return self.navigate(NavigationAction.PREVIOUS_WEEK)

    def next_week(self) -> bool:
        return self.navigate(NavigationAction.NEXT_WEEK)

    def current_week(self) -> bool:
        return self.navigate(NavigationAction.CURRENT_WEEK)

    def switch_tab(self, tab: str, perform: Callable[[], Any]) -> bool:
        """Leave the schedule for another admin tab, through the guard."""
        return self.guard.request(NavigationAction.SWITCH_TAB, perform, target=tab)

    def resolve_warning(self, choice: Choice) -> bool:
        """Answer the unsaved-changes warning; True if navigation went ahead."""
        performed = self.guard.resolve(choice)
        self.has_unsaved_changes = self.store.has_unsaved_changes()
        return performed

    def _week_changed(self, week_start: str) -> None:
        self.fetch_schedule()
        if self._on_week_change is not None:
            self._on_week_change(week_start)
