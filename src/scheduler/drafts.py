"""Draft store for unsaved weekly schedule changes.

The admin grid never writes lessons straight to the API. Each add or remove
goes into a draft (pending additions and deletions for one teacher-week) that
is committed later as a batch. There is at most one in-progress draft across
the whole application, held under a single storage key; a draft for another
teacher-week is invisible until its scope matches again.

The store keeps two layers:

- the logical draft, held in memory, which every mutation updates first;
- the persisted draft, written best-effort to a KeyValueStore so it survives
  restarts.

Storage failures are logged and swallowed. When a write fails the in-memory
draft stays authoritative until a later write succeeds, so the user's edit is
never lost within the running process.
"""

import secrets
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from src.scheduler.config import get_config
from src.scheduler.errors import DraftScopeError, StorageFailure, ValidationFailure
from src.scheduler.logging import get_logger
from src.scheduler.models import (
    TEMP_ID_PREFIX,
    ChangesSummary,
    Draft,
    DraftAddition,
    DraftDeletion,
    LessonData,
    ReconciledItem,
    ScheduleRecord,
    is_temp_id,
)
from src.scheduler.reconcile import apply_draft_to_schedule
from src.scheduler.storage import JsonFileStore, KeyValueStore

logger = get_logger(__name__)

DRAFT_STORAGE_KEY = "schedule_draft_changes"


def new_temp_id() -> str:
    """Mint a draft-local id ("temp_<millis>_<hex>") for a pending addition."""
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DraftStore:
    """Single active schedule draft with best-effort persistence.

    Every getter returns a deep copy; callers must re-read with
    get_draft_changes() instead of holding on to a draft, since the persisted
    value can change out-of-band (another process sharing the same file).
    """

    def __init__(
        self,
        store: KeyValueStore,
        storage_key: str = DRAFT_STORAGE_KEY,
        *,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = new_temp_id,
    ) -> None:
        self._store = store
        self.storage_key = storage_key
        self._clock = clock
        self._id_factory = id_factory
        self._draft: Draft | None = None
        # True while the persisted layer lags behind the in-memory draft
        self._out_of_sync = False

    @property
    def persisted(self) -> bool:
        """False when the last write to the key-value store failed."""
        return not self._out_of_sync

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------
    def get_draft_changes(self) -> Draft | None:
        """Load the current draft.

        Returns:
            A copy of the draft, or None when there is none or the persisted
            JSON cannot be decoded.
        """
        if self._out_of_sync:
            return self._copy(self._draft)

        try:
            raw = self._store.get_item(self.storage_key)
        except (StorageFailure, OSError) as e:
            logger.warning("draft_load_failed", key=self.storage_key, error=str(e))
            return self._copy(self._draft)

        if raw is None:
            self._draft = None
            return None

        try:
            draft = Draft.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "draft_corrupt",
                key=self.storage_key,
                errors=e.error_count(),
            )
            self._draft = None
            return None

        self._draft = draft
        return self._copy(draft)

    def save_draft_changes(self, draft: Draft) -> bool:
        """Stamp last_modified and persist the draft.

        The in-memory draft is replaced even when the write fails.

        Returns:
            True if the draft reached the key-value store.
        """
        stamped = draft.model_copy(update={"last_modified": self._clock()}, deep=True)
        self._draft = stamped
        try:
            self._store.set_item(self.storage_key, stamped.model_dump_json(by_alias=True))
        except (StorageFailure, OSError) as e:
            self._out_of_sync = True
            logger.warning(
                "draft_save_failed",
                key=self.storage_key,
                teacher_id=stamped.teacher_id,
                week_start=stamped.week_start,
                error=str(e),
            )
            return False

        self._out_of_sync = False
        logger.debug(
            "draft_saved",
            teacher_id=stamped.teacher_id,
            week_start=stamped.week_start,
            additions=len(stamped.additions),
            deletions=len(stamped.deletions),
        )
        return True

    def clear_draft_changes(self) -> bool:
        """Drop the draft. Safe to call when there is none.

        Returns:
            False if the persisted copy could not be removed; the in-memory
            draft is gone either way.
        """
        had_draft = self._draft is not None
        self._draft = None
        try:
            self._store.remove_item(self.storage_key)
        except (StorageFailure, OSError) as e:
            self._out_of_sync = True
            logger.warning("draft_clear_failed", key=self.storage_key, error=str(e))
            return False

        self._out_of_sync = False
        if had_draft:
            logger.info("draft_cleared", key=self.storage_key)
        return True

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def initialize_draft(self, teacher_id: int, week_start: str) -> Draft:
        """Start an empty draft for a teacher-week, replacing any current one."""
        draft = Draft(
            teacher_id=teacher_id,
            week_start=week_start,
            has_unsaved_changes=False,
            last_modified=self._clock(),
        )
        self.save_draft_changes(draft)
        logger.info("draft_initialized", teacher_id=teacher_id, week_start=week_start)
        return self._copy(self._draft)

    def add_lesson(self, lesson: LessonData | dict[str, Any]) -> Draft:
        """Stage a student in an empty slot.

        A second addition to the same (day_of_week, time_slot) overwrites the
        first one in place and keeps its temporary id.

        Raises:
            ValidationFailure: If the lesson has no student.
            DraftScopeError: If another teacher-week has unsaved changes.
        """
        lesson = self._coerce(lesson)
        if lesson.student_id is None or not lesson.student_name:
            raise ValidationFailure("A student is required to schedule a lesson")

        draft = self._draft_for(lesson)
        existing = draft.find_addition(lesson.day_of_week, lesson.time_slot)
        fields = {
            "teacher_id": lesson.teacher_id,
            "student_id": lesson.student_id,
            "student_name": lesson.student_name,
            "day_of_week": lesson.day_of_week,
            "time_slot": lesson.time_slot,
            "week_start": lesson.week_start,
        }

        if existing is not None:
            index = draft.additions.index(existing)
            draft.additions[index] = existing.model_copy(update=fields)
            logger.info(
                "draft_addition_replaced",
                addition_id=existing.id,
                student_id=lesson.student_id,
                day_of_week=lesson.day_of_week,
                time_slot=lesson.time_slot,
            )
        else:
            addition = DraftAddition(id=self._id_factory(), **fields)
            draft.additions.append(addition)
            logger.info(
                "draft_addition_staged",
                addition_id=addition.id,
                student_id=lesson.student_id,
                day_of_week=lesson.day_of_week,
                time_slot=lesson.time_slot,
            )

        draft.has_unsaved_changes = True
        self.save_draft_changes(draft)
        return self._copy(self._draft)

    def delete_lesson(
        self, schedule_id: int | str | None, lesson: LessonData | dict[str, Any]
    ) -> Draft:
        """Stage the removal of whatever occupies a slot.

        Pending additions at the slot are dropped by coordinate, whatever
        schedule_id says, since their ids are temporary. A deletion is only
        recorded for a server record: removing a lesson that was itself a
        pending addition just cancels it out.

        Raises:
            DraftScopeError: If another teacher-week has unsaved changes.
        """
        lesson = self._coerce(lesson)
        draft = self._draft_for(lesson)

        retracted = [
            a
            for a in draft.additions
            if a.day_of_week == lesson.day_of_week and a.time_slot == lesson.time_slot
        ]
        draft.additions = [a for a in draft.additions if a not in retracted]

        cancels_addition = (
            schedule_id is None
            or is_temp_id(schedule_id)
            or any(a.id == schedule_id for a in retracted)
        )
        already_pending = any(
            d.schedule_id == schedule_id for d in draft.deletions
        )

        if cancels_addition:
            logger.info(
                "draft_addition_cancelled",
                retracted=len(retracted),
                day_of_week=lesson.day_of_week,
                time_slot=lesson.time_slot,
            )
        elif already_pending:
            logger.debug("draft_deletion_already_staged", schedule_id=schedule_id)
        else:
            draft.deletions.append(
                DraftDeletion(
                    schedule_id=schedule_id,
                    teacher_id=lesson.teacher_id,
                    day_of_week=lesson.day_of_week,
                    time_slot=lesson.time_slot,
                    week_start=lesson.week_start,
                )
            )
            logger.info(
                "draft_deletion_staged",
                schedule_id=schedule_id,
                day_of_week=lesson.day_of_week,
                time_slot=lesson.time_slot,
            )

        draft.has_unsaved_changes = not draft.is_empty
        self.save_draft_changes(draft)
        return self._copy(self._draft)

    def retract_addition(self, day_of_week: int, time_slot: str) -> Draft | None:
        """Remove a pending addition without recording a deletion.

        Returns:
            The updated draft, or None when there is no draft.
        """
        draft = self.get_draft_changes()
        if draft is None:
            return None

        before = len(draft.additions)
        draft.additions = [
            a
            for a in draft.additions
            if not (a.day_of_week == day_of_week and a.time_slot == time_slot)
        ]
        draft.has_unsaved_changes = not draft.is_empty
        self.save_draft_changes(draft)
        logger.info(
            "draft_addition_retracted",
            removed=before - len(draft.additions),
            day_of_week=day_of_week,
            time_slot=time_slot,
        )
        return self._copy(self._draft)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def has_unsaved_changes(self) -> bool:
        draft = self.get_draft_changes()
        return bool(draft and draft.has_unsaved_changes)

    def get_changes_for_teacher_week(self, teacher_id: int, week_start: str) -> Draft | None:
        """Return the draft only if it is scoped to exactly this teacher-week."""
        draft = self.get_draft_changes()
        if draft is None or not draft.matches(teacher_id, week_start):
            return None
        return draft

    def get_changes_summary(self) -> ChangesSummary | None:
        draft = self.get_draft_changes()
        if draft is None:
            return None
        return ChangesSummary(
            additions=len(draft.additions),
            deletions=len(draft.deletions),
            modifications=len(draft.modifications),
            total=len(draft.additions) + len(draft.deletions) + len(draft.modifications),
            last_modified=draft.last_modified,
        )

    def apply_draft_to_schedule(
        self,
        original: Sequence[ScheduleRecord],
        teacher_id: int,
        week_start: str,
        *,
        keep_deleted: bool = False,
    ) -> list[ReconciledItem]:
        """Overlay the matching draft (if any) on a fetched schedule."""
        return apply_draft_to_schedule(
            original,
            self.get_changes_for_teacher_week(teacher_id, week_start),
            teacher_id,
            week_start,
            keep_deleted=keep_deleted,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _copy(draft: Draft | None) -> Draft | None:
        return draft.model_copy(deep=True) if draft is not None else None

    @staticmethod
    def _coerce(lesson: LessonData | dict[str, Any]) -> LessonData:
        if isinstance(lesson, LessonData):
            return lesson
        try:
            return LessonData.model_validate(lesson)
        except ValidationError as e:
            raise ValidationFailure(f"Invalid lesson data: {e}") from e

    def _draft_for(self, lesson: LessonData) -> Draft:
        """Return the working draft for the lesson's teacher-week.

        Creates one when there is none. An existing draft for another scope is
        replaced only if it holds no changes.
        """
        draft = self.get_draft_changes()
        if draft is None:
            return self.initialize_draft(lesson.teacher_id, lesson.week_start)
        if draft.matches(lesson.teacher_id, lesson.week_start):
            return draft
        if draft.is_empty:
            return self.initialize_draft(lesson.teacher_id, lesson.week_start)

        logger.warning(
            "draft_scope_conflict",
            draft_teacher_id=draft.teacher_id,
            draft_week_start=draft.week_start,
            teacher_id=lesson.teacher_id,
            week_start=lesson.week_start,
        )
        raise DraftScopeError(
            "There are unsaved changes for another teacher or week. "
            "Save or discard them first."
        )


# Singleton pattern
_store: DraftStore | None = None


def get_draft_store() -> DraftStore:
    """Get the process-wide draft store, backed by the configured JSON file."""
    global _store
    if _store is None:
        config = get_config()
        _store = DraftStore(
            JsonFileStore(config.draft_store_path),
            storage_key=config.draft_storage_key,
        )
    return _store
