"""Unsaved-changes guard for week and tab navigation.

While the draft has unsaved changes, leaving the current view (previous/next/
current week, another admin tab) is held back and the admin is asked to save,
discard or cancel. The guard does not know what an action does; it only runs
the callable it was given once the draft is settled.

    CLEAN   --request-->                 CLEAN (action runs now)
    DIRTY   --request-->                 PENDING_CONFIRMATION
    PENDING --save, commit ok-->         CLEAN (action runs)
    PENDING --save, commit failed-->     DIRTY (action dropped)
    PENDING --discard-->                 CLEAN (draft cleared, action runs)
    PENDING --cancel-->                  DIRTY (action dropped)
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from src.scheduler.commit import CommitProtocol
from src.scheduler.dates import add_days, get_current_week_start, subtract_days
from src.scheduler.drafts import DraftStore
from src.scheduler.errors import CommitInProgressError
from src.scheduler.logging import get_logger
from src.scheduler.models import ChangesSummary

logger = get_logger(__name__)


class GuardState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    PENDING_CONFIRMATION = "pending_confirmation"


class NavigationAction(str, Enum):
    PREVIOUS_WEEK = "previous_week"
    NEXT_WEEK = "next_week"
    CURRENT_WEEK = "current_week"
    SWITCH_TAB = "switch_tab"


class Choice(str, Enum):
    SAVE = "save"
    DISCARD = "discard"
    CANCEL = "cancel"


_ACTION_LABELS = {
    NavigationAction.PREVIOUS_WEEK: "Go to previous week",
    NavigationAction.NEXT_WEEK: "Go to next week",
    NavigationAction.CURRENT_WEEK: "Go to current week",
}


@dataclass
class PendingNavigation:
    """A navigation held back until the admin answers the warning."""

    action: NavigationAction
    perform: Callable[[], Any]
    target: str | None = None  # tab id for SWITCH_TAB

    def describe(self) -> str:
        if self.action is NavigationAction.SWITCH_TAB:
            return f"Switch to {self.target or 'another'} tab"
        return _ACTION_LABELS[self.action]


Prompt = Callable[[PendingNavigation, ChangesSummary | None], None]


class NavigationGuard:
    """Holds navigation while the draft store has unsaved changes."""

    def __init__(
        self,
        store: DraftStore,
        committer: CommitProtocol,
        *,
        on_prompt: Prompt | None = None,
    ) -> None:
        self.store = store
        self.committer = committer
        self.on_prompt = on_prompt
        self._pending: PendingNavigation | None = None

    @property
    def state(self) -> GuardState:
        if self._pending is not None:
            return GuardState.PENDING_CONFIRMATION
        if self.store.has_unsaved_changes():
            return GuardState.DIRTY
        return GuardState.CLEAN

    @property
    def pending(self) -> PendingNavigation | None:
        return self._pending

    def request(
        self,
        action: NavigationAction,
        perform: Callable[[], Any],
        *,
        target: str | None = None,
    ) -> bool:
        """Run a navigation now, or hold it if there are unsaved changes.

        A request made while another one is pending replaces it.

        Returns:
            True if the action ran immediately.
        """
        navigation = PendingNavigation(action=action, perform=perform, target=target)
        if not self.store.has_unsaved_changes():
            logger.debug("navigation_allowed", action=action.value, target=target)
            perform()
            return True

        self._pending = navigation
        summary = self.store.get_changes_summary()
        logger.info(
            "navigation_held",
            action=action.value,
            target=target,
            pending_changes=summary.total if summary else 0,
        )
        if self.on_prompt is not None:
            self.on_prompt(navigation, summary)
        return False

    def resolve(self, choice: Choice) -> bool:
        """Apply the admin's answer to the unsaved-changes warning.

        Returns:
            True if the held navigation ran.

        Raises:
            RuntimeError: If no navigation is waiting for an answer.
        """
        if self._pending is None:
            raise RuntimeError("No navigation is waiting for confirmation")
        navigation = self._pending

        if choice is Choice.CANCEL:
            self._pending = None
            logger.info("navigation_cancelled", action=navigation.action.value)
            return False

        if choice is Choice.DISCARD:
            self.store.clear_draft_changes()
            self._pending = None
            logger.info("navigation_after_discard", action=navigation.action.value)
            navigation.perform()
            return True

        try:
            result = self.committer.commit()
        except CommitInProgressError:
            logger.warning("navigation_save_busy", action=navigation.action.value)
            return False

        self._pending = None
        if not result.success:
            logger.warning("navigation_dropped_after_failed_save", action=navigation.action.value)
            return False

        logger.info("navigation_after_save", action=navigation.action.value)
        navigation.perform()
        return True


class WeekNavigator:
    """Tracks the displayed week and moves it for the week actions."""

    def __init__(
        self,
        week_start: str | None = None,
        *,
        on_week_change: Callable[[str], Any] | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._today = today
        self.week_start = week_start or get_current_week_start(today())
        self.on_week_change = on_week_change

    def target_week(self, action: NavigationAction) -> str:
        if action is NavigationAction.PREVIOUS_WEEK:
            return subtract_days(self.week_start, 7)
        if action is NavigationAction.NEXT_WEEK:
            return add_days(self.week_start, 7)
        if action is NavigationAction.CURRENT_WEEK:
            return get_current_week_start(self._today())
        raise ValueError(f"{action.value} is not a week action")

    def go(self, action: NavigationAction) -> str:
        self.week_start = self.target_week(action)
        logger.info("week_changed", action=action.value, week_start=self.week_start)
        if self.on_week_change is not None:
            self.on_week_change(self.week_start)
        return self.week_start
