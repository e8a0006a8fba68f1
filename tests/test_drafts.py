import json

import pytest

from src.scheduler.drafts import DRAFT_STORAGE_KEY, DraftStore, new_temp_id
from src.scheduler.errors import DraftScopeError, ValidationFailure
from src.scheduler.models import LessonData, is_temp_id
from src.scheduler.storage import MemoryStore

from .conftest import FIXED_NOW, TEACHER, WEEK


def test_add_lesson_creates_draft(store, lesson):
    store.add_lesson(lesson(0, "9:00-9:30", student_id=1, student_name="Emma Wilson"))

    draft = store.get_draft_changes()
    assert draft is not None
    assert draft.teacher_id == TEACHER
    assert draft.week_start == WEEK
    assert len(draft.additions) == 1
    addition = draft.additions[0]
    assert addition.student_name == "Emma Wilson"
    assert addition.day_of_week == 0
    assert addition.time_slot == "9:00-9:30"
    assert addition.id == "temp_1"
    assert store.has_unsaved_changes() is True


def test_add_lesson_accepts_model(store):
    store.add_lesson(
        LessonData(
            teacher_id=TEACHER,
            week_start=WEEK,
            day_of_week=3,
            time_slot="10:00-10:30",
            student_id=9,
            student_name="Noah Kim",
        )
    )
    assert store.get_draft_changes().additions[0].student_id == 9


def test_second_addition_same_slot_replaces_first(store, lesson):
    store.add_lesson(lesson(1, "11:00-11:30", student_id=1, student_name="Emma Wilson"))
    store.add_lesson(lesson(1, "11:00-11:30", student_id=2, student_name="James Brown"))

    additions = store.get_draft_changes().additions
    assert len(additions) == 1
    assert additions[0].student_id == 2
    assert additions[0].student_name == "James Brown"
    # last-write-wins keeps the original temporary id
    assert additions[0].id == "temp_1"


def test_additions_in_different_slots_append(store, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))
    store.add_lesson(lesson(0, "9:30-10:00"))
    store.add_lesson(lesson(1, "9:00-9:30"))
    assert [a.id for a in store.get_draft_changes().additions] == ["temp_1", "temp_2", "temp_3"]


def test_add_without_student_is_rejected(store, lesson):
    data = lesson(0, "9:00-9:30")
    del data["studentId"]
    with pytest.raises(ValidationFailure):
        store.add_lesson(data)
    assert store.get_draft_changes() is None


def test_invalid_lesson_data_raises_validation_failure(store, lesson):
    with pytest.raises(ValidationFailure):
        store.add_lesson(lesson(9, "9:00-9:30"))


def test_add_then_delete_same_slot_cancels_out(store, lesson):
    draft = store.add_lesson(lesson(2, "14:00-14:30"))
    temp_id = draft.additions[0].id

    store.delete_lesson(temp_id, lesson(2, "14:00-14:30"))

    draft = store.get_draft_changes()
    assert draft.additions == []
    assert draft.deletions == []
    assert store.has_unsaved_changes() is False


def test_delete_without_schedule_id_records_nothing(store, lesson):
    store.add_lesson(lesson(2, "14:00-14:30"))
    store.delete_lesson(None, lesson(2, "14:00-14:30"))
    draft = store.get_draft_changes()
    assert draft.additions == [] and draft.deletions == []


def test_delete_committed_lesson_records_deletion(store, lesson):
    store.delete_lesson(42, lesson(2, "14:00-14:30"))

    draft = store.get_draft_changes()
    assert len(draft.deletions) == 1
    deletion = draft.deletions[0]
    assert deletion.schedule_id == 42
    assert (deletion.day_of_week, deletion.time_slot) == (2, "14:00-14:30")
    assert deletion.teacher_id == TEACHER
    assert store.has_unsaved_changes() is True


def test_delete_removes_addition_at_slot_regardless_of_id(store, lesson):
    store.add_lesson(lesson(4, "16:00-16:30"))
    store.delete_lesson(77, lesson(4, "16:00-16:30"))

    draft = store.get_draft_changes()
    assert draft.additions == []
    assert [d.schedule_id for d in draft.deletions] == [77]


def test_deleting_same_record_twice_stages_one_deletion(store, lesson):
    store.delete_lesson(42, lesson(2, "14:00-14:30"))
    store.delete_lesson(42, lesson(2, "14:00-14:30"))
    assert len(store.get_draft_changes().deletions) == 1


def test_retract_addition(store, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))
    store.add_lesson(lesson(0, "9:30-10:00"))

    draft = store.retract_addition(0, "9:00-9:30")

    assert [a.time_slot for a in draft.additions] == ["9:30-10:00"]
    assert draft.deletions == []
    assert store.has_unsaved_changes() is True


def test_retract_without_draft_returns_none(store):
    assert store.retract_addition(0, "9:00-9:30") is None


def test_initialize_draft_resets_scope(store, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))
    draft = store.initialize_draft(7, "2024-06-10")

    assert draft.teacher_id == 7
    assert draft.week_start == "2024-06-10"
    assert draft.is_empty
    assert store.has_unsaved_changes() is False


def test_changes_for_other_scope_are_hidden(store, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))

    assert store.get_changes_for_teacher_week(TEACHER, WEEK) is not None
    assert store.get_changes_for_teacher_week(TEACHER, "2024-06-10") is None
    assert store.get_changes_for_teacher_week(6, WEEK) is None


def test_change_for_other_scope_with_pending_draft_is_rejected(store, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))
    with pytest.raises(DraftScopeError):
        store.add_lesson(lesson(0, "9:00-9:30", week_start="2024-06-10"))
    with pytest.raises(DraftScopeError):
        store.delete_lesson(3, lesson(0, "9:00-9:30", teacher_id=6))
    assert len(store.get_draft_changes().additions) == 1


def test_empty_draft_for_other_scope_is_replaced(store, lesson):
    store.initialize_draft(TEACHER, WEEK)
    store.add_lesson(lesson(0, "9:00-9:30", teacher_id=6))
    draft = store.get_draft_changes()
    assert draft.teacher_id == 6
    assert len(draft.additions) == 1


def test_summary(store, lesson):
    assert store.get_changes_summary() is None

    store.add_lesson(lesson(0, "9:00-9:30"))
    store.add_lesson(lesson(1, "9:00-9:30"))
    store.delete_lesson(42, lesson(2, "14:00-14:30"))

    summary = store.get_changes_summary()
    assert summary.additions == 2
    assert summary.deletions == 1
    assert summary.modifications == 0
    assert summary.total == 3
    assert summary.last_modified == FIXED_NOW


def test_clear_is_idempotent(store, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))

    assert store.clear_draft_changes() is True
    assert store.clear_draft_changes() is True
    assert store.get_draft_changes() is None
    assert store.has_unsaved_changes() is False


def test_save_then_load_round_trip(store, lesson):
    draft = store.add_lesson(lesson(0, "9:00-9:30"))
    draft = store.delete_lesson(42, lesson(2, "14:00-14:30"))

    assert store.save_draft_changes(draft) is True
    loaded = store.get_draft_changes()

    assert loaded.model_dump(exclude={"last_modified"}) == draft.model_dump(exclude={"last_modified"})


def test_persisted_json_uses_camel_case(store, kv, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))
    data = json.loads(kv.get_item(DRAFT_STORAGE_KEY))
    assert data["teacherId"] == TEACHER
    assert data["hasUnsavedChanges"] is True
    assert data["additions"][0]["studentName"] == "Emma Wilson"


def test_returned_draft_is_a_copy(store, lesson):
    draft = store.add_lesson(lesson(0, "9:00-9:30"))
    draft.additions.clear()
    assert len(store.get_draft_changes().additions) == 1


def test_draft_written_by_another_process_is_picked_up(kv, lesson):
    first = DraftStore(kv)
    second = DraftStore(kv)
    first.add_lesson(lesson(0, "9:00-9:30"))
    assert len(second.get_draft_changes().additions) == 1


def test_corrupt_draft_reads_as_none(store, kv):
    kv.set_item(DRAFT_STORAGE_KEY, "{not json")
    assert store.get_draft_changes() is None
    assert store.has_unsaved_changes() is False


def test_structurally_invalid_draft_reads_as_none(store, kv):
    kv.set_item(DRAFT_STORAGE_KEY, '{"teacherId": "x"}')
    assert store.get_draft_changes() is None


def test_failed_save_keeps_in_memory_draft(store, kv, lesson):
    kv.fail_set = True

    draft = store.add_lesson(lesson(0, "9:00-9:30"))

    assert len(draft.additions) == 1
    assert store.persisted is False
    assert kv.get_item(DRAFT_STORAGE_KEY) is None
    assert len(store.get_draft_changes().additions) == 1
    assert store.has_unsaved_changes() is True
    assert store.save_draft_changes(draft) is False

    kv.fail_set = False
    assert store.save_draft_changes(store.get_draft_changes()) is True
    assert store.persisted is True
    assert kv.get_item(DRAFT_STORAGE_KEY) is not None


def test_failed_read_falls_back_to_memory(store, kv, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))
    kv.fail_get = True
    assert len(store.get_draft_changes().additions) == 1


def test_failed_read_without_memory_is_no_draft(store, kv):
    kv.fail_get = True
    assert store.get_draft_changes() is None


def test_failed_clear_returns_false_and_hides_draft(store, kv, lesson):
    store.add_lesson(lesson(0, "9:00-9:30"))
    kv.fail_remove = True

    assert store.clear_draft_changes() is False
    assert store.get_draft_changes() is None

    kv.fail_remove = False
    assert store.clear_draft_changes() is True
    assert kv.get_item(DRAFT_STORAGE_KEY) is None


def test_custom_storage_key():
    kv = MemoryStore()
    store = DraftStore(kv, storage_key="other_key")
    store.initialize_draft(TEACHER, WEEK)
    assert "other_key" in kv
    assert DRAFT_STORAGE_KEY not in kv


def test_new_temp_id_format():
    value = new_temp_id()
    assert is_temp_id(value)
    assert new_temp_id() != value
