from datetime import date

from scripts.draft_status import format_draft
from src.scheduler.models import Draft, DraftAddition, DraftDeletion


def _draft(week_start="2024-06-03"):
    return Draft(
        teacher_id=5,
        week_start=week_start,
        additions=[
            DraftAddition(
                id="temp_1",
                teacher_id=5,
                student_id=1,
                student_name="Emma Wilson",
                day_of_week=0,
                time_slot="9:00-9:30",
                week_start=week_start,
            )
        ],
        deletions=[
            DraftDeletion(
                schedule_id=42,
                teacher_id=5,
                day_of_week=2,
                time_slot="14:00-14:30",
                week_start=week_start,
            )
        ],
        has_unsaved_changes=True,
    )


def test_format_draft_lists_changes():
    text = format_draft(_draft(), today=date(2024, 6, 5))

    assert "week 2024-06-03 to 2024-06-09" in text
    assert "(past week)" not in text
    assert "+ Monday 9:00-9:30: Emma Wilson (student 1)" in text
    assert "- Wednesday 14:00-14:30: schedule 42" in text


def test_format_draft_flags_past_week():
    text = format_draft(_draft("2024-05-27"), today=date(2024, 6, 5))
    assert "week 2024-05-27 to 2024-06-02 (past week)" in text
