"""Pydantic models for schedule drafts and server schedule records.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Draft-side models serialize with camelCase aliases (the persisted draft JSON);
server records keep the snake_case field names of the REST API.
"""

from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TEMP_ID_PREFIX = "temp_"


def _check_iso_date(value: str) -> str:
    date.fromisoformat(value)
    return value


class _DraftModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WeekKey(_DraftModel):
    """Scope of a draft: one teacher's week (week_start is a Monday)."""

    model_config = ConfigDict(frozen=True)

    teacher_id: int
    week_start: str

    @field_validator("week_start")
    @classmethod
    def check_week_start(cls, value: str) -> str:
        return _check_iso_date(value)


class SlotKey(_DraftModel):
    """One cell of the weekly grid."""

    model_config = ConfigDict(frozen=True)

    day_of_week: int = Field(ge=0, le=6)  # Monday=0 ... Sunday=6
    time_slot: str  # "9:00-9:30"


class LessonData(_DraftModel):
    """Input for a draft mutation, as collected from the grid.

    Student fields are only required when adding a lesson.
    """

    teacher_id: int
    week_start: str
    day_of_week: int = Field(ge=0, le=6)
    time_slot: str
    student_id: int | None = None
    student_name: str | None = None

    @field_validator("week_start")
    @classmethod
    def check_week_start(cls, value: str) -> str:
        return _check_iso_date(value)

    @property
    def slot(self) -> SlotKey:
        return SlotKey(day_of_week=self.day_of_week, time_slot=self.time_slot)


class DraftAddition(_DraftModel):
    """A student assigned to an empty slot, not yet sent to the server."""

    id: str  # temp_<millis>_<random>, never a server id
    teacher_id: int
    student_id: int
    student_name: str
    day_of_week: int = Field(ge=0, le=6)
    time_slot: str
    week_start: str
    type: str = "addition"

    @property
    def slot(self) -> SlotKey:
        return SlotKey(day_of_week=self.day_of_week, time_slot=self.time_slot)


class DraftDeletion(_DraftModel):
    """A committed lesson the admin removed; schedule_id is the server record id."""

    schedule_id: int | str | None = None
    teacher_id: int
    day_of_week: int = Field(ge=0, le=6)
    time_slot: str
    week_start: str
    type: str = "deletion"

    @property
    def slot(self) -> SlotKey:
        return SlotKey(day_of_week=self.day_of_week, time_slot=self.time_slot)


class Draft(_DraftModel):
    """The single in-progress set of schedule changes for one teacher-week."""

    teacher_id: int
    week_start: str
    additions: list[DraftAddition] = Field(default_factory=list)
    deletions: list[DraftDeletion] = Field(default_factory=list)
    # No UI path produces modifications yet; kept so summaries stay complete.
    modifications: list[dict] = Field(default_factory=list)
    has_unsaved_changes: bool = False
    last_modified: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator("week_start")
    @classmethod
    def check_week_start(cls, value: str) -> str:
        return _check_iso_date(value)

    @property
    def key(self) -> WeekKey:
        return WeekKey(teacher_id=self.teacher_id, week_start=self.week_start)

    @property
    def is_empty(self) -> bool:
        return not (self.additions or self.deletions or self.modifications)

    def matches(self, teacher_id: int, week_start: str) -> bool:
        return self.teacher_id == teacher_id and self.week_start == week_start

    def find_addition(self, day_of_week: int, time_slot: str) -> DraftAddition | None:
        for addition in self.additions:
            if addition.day_of_week == day_of_week and addition.time_slot == time_slot:
                return addition
        return None


class ScheduleRecord(BaseModel):
    """A lesson row as returned by GET /teachers/{id}/schedule.

    The reconciled view uses the same model: is_draft marks items synthesized
    from pending additions, is_deleted marks items hidden by pending deletions.
    """

    model_config = ConfigDict(extra="allow")

    id: int | str
    student_id: int | None = None
    student_name: str | None = None
    teacher_id: int
    day_of_week: int = Field(ge=0, le=6)
    time_slot: str
    week_start_date: str
    attendance_status: str = "scheduled"
    is_draft: bool = False
    is_deleted: bool = False

    @property
    def slot(self) -> SlotKey:
        return SlotKey(day_of_week=self.day_of_week, time_slot=self.time_slot)

    @property
    def is_temporary(self) -> bool:
        return is_temp_id(self.id)


# The reconciled view reuses the record model with its draft flags set.
ReconciledItem = ScheduleRecord


class ChangesSummary(BaseModel):
    """Counts shown in the unsaved-changes warning."""

    additions: int
    deletions: int
    modifications: int
    total: int
    last_modified: datetime


def is_temp_id(value: int | str | None) -> bool:
    """True for ids minted by the draft store rather than the server."""
    return isinstance(value, str) and value.startswith(TEMP_ID_PREFIX)
