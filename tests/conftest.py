import itertools
from datetime import datetime, timezone

import pytest

from src.scheduler.drafts import DraftStore
from src.scheduler.errors import StorageFailure
from src.scheduler.models import ScheduleRecord
from src.scheduler.storage import MemoryStore

WEEK = "2024-06-03"
TEACHER = 5
FIXED_NOW = datetime(2024, 6, 3, 9, 0, tzinfo=timezone.utc)


class FlakyStore(MemoryStore):
    """MemoryStore whose operations can be switched to raise StorageFailure."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_get = False
        self.fail_set = False
        self.fail_remove = False

    def get_item(self, key):
        if self.fail_get:
            raise StorageFailure("read failed")
        return super().get_item(key)

    def set_item(self, key, value):
        if self.fail_set:
            raise StorageFailure("QuotaExceededError")
        super().set_item(key, value)

    def remove_item(self, key):
        if self.fail_remove:
            raise StorageFailure("remove failed")
        super().remove_item(key)


class FakeScheduleApi:
    """In-memory stand-in for ScheduleApiClient that records every call."""

    def __init__(self, schedules=None):
        self.schedules = list(schedules or [])
        self.calls = []
        self.fail_create = {}  # (day_of_week, time_slot) -> exception
        self.fail_delete = {}  # schedule_id -> exception
        self.fail_fetch = None
        self._ids = itertools.count(1000)

    def get_teacher_schedule(self, teacher_id, week_start=None):
        self.calls.append(("get", teacher_id, week_start))
        if self.fail_fetch is not None:
            raise self.fail_fetch
        return [
            r
            for r in self.schedules
            if r.teacher_id == teacher_id and (week_start is None or r.week_start_date == week_start)
        ]

    def create_schedule(self, payload):
        self.calls.append(("create", dict(payload)))
        key = (payload["day_of_week"], payload["time_slot"])
        if key in self.fail_create:
            raise self.fail_create[key]
        record = ScheduleRecord(
            id=next(self._ids),
            student_id=payload["student_id"],
            student_name=f"Student {payload['student_id']}",
            teacher_id=payload["teacher_id"],
            day_of_week=payload["day_of_week"],
            time_slot=payload["time_slot"],
            week_start_date=payload["week_start_date"],
        )
        self.schedules.append(record)
        return {"success": True, "schedule": record.model_dump()}

    def delete_schedule(self, schedule_id):
        self.calls.append(("delete", schedule_id))
        if schedule_id in self.fail_delete:
            raise self.fail_delete[schedule_id]
        self.schedules = [r for r in self.schedules if r.id != schedule_id]
        return {"success": True}

    @property
    def mutations(self):
        return [c for c in self.calls if c[0] != "get"]


@pytest.fixture
def kv():
    return FlakyStore()


@pytest.fixture
def store(kv):
    counter = itertools.count(1)
    return DraftStore(
        kv,
        clock=lambda: FIXED_NOW,
        id_factory=lambda: f"temp_{next(counter)}",
    )


@pytest.fixture
def api():
    return FakeScheduleApi()


@pytest.fixture
def record():
    def make(id, day_of_week, time_slot, student_name="Student", teacher_id=TEACHER, week_start=WEEK, student_id=1):
        return ScheduleRecord(
            id=id,
            student_id=student_id,
            student_name=student_name,
            teacher_id=teacher_id,
            day_of_week=day_of_week,
            time_slot=time_slot,
            week_start_date=week_start,
        )

    return make


@pytest.fixture
def lesson():
    def make(day_of_week, time_slot, student_id=1, student_name="Emma Wilson", teacher_id=TEACHER, week_start=WEEK):
        return {
            "teacherId": teacher_id,
            "studentId": student_id,
            "studentName": student_name,
            "dayOfWeek": day_of_week,
            "timeSlot": time_slot,
            "weekStart": week_start,
        }

    return make
