"""Overlay a pending draft on the schedule fetched from the server.

Pure functions only: nothing here reads the draft store or mutates its inputs,
so the grid view can be recomputed (and tested) from literal values.
"""

from collections.abc import Sequence

from src.scheduler.models import Draft, ReconciledItem, ScheduleRecord


def apply_draft_to_schedule(
    original: Sequence[ScheduleRecord],
    draft: Draft | None,
    teacher_id: int,
    week_start: str,
    *,
    keep_deleted: bool = False,
) -> list[ReconciledItem]:
    """Return the schedule the admin should see for one teacher-week.

    Deletions are matched by slot coordinate (day_of_week, time_slot), not by
    schedule id, and are applied before additions, so an addition placed in a
    slot freed by a deletion is always visible.

    Args:
        original: Records from GET /teachers/{id}/schedule. Not modified.
        draft: The active draft, or None.
        teacher_id: Teacher whose grid is displayed.
        week_start: Monday of the displayed week.
        keep_deleted: If True, records removed by the draft stay in the result
            with is_deleted=True and attendance_status "deleted" (strikethrough
            rendering) instead of being dropped.

    Returns:
        New list: surviving records in their original order, then one
        is_draft item per pending addition in the order they were added.
        When the draft is absent or scoped to another teacher-week the
        records are returned as they came in.
    """
    if draft is None or not draft.matches(teacher_id, week_start):
        return list(original)

    deleted_slots = {(d.day_of_week, d.time_slot) for d in draft.deletions}

    result: list[ReconciledItem] = []
    for item in original:
        if (item.day_of_week, item.time_slot) in deleted_slots:
            if keep_deleted:
                result.append(
                    item.model_copy(
                        update={"is_deleted": True, "attendance_status": "deleted"}
                    )
                )
            continue
        result.append(item)

    for addition in draft.additions:
        result.append(
            ScheduleRecord(
                id=addition.id,
                student_id=addition.student_id,
                student_name=addition.student_name,
                teacher_id=addition.teacher_id,
                day_of_week=addition.day_of_week,
                time_slot=addition.time_slot,
                week_start_date=week_start,
                attendance_status="scheduled",
                is_draft=True,
            )
        )

    return result


def occupied_slots(items: Sequence[ReconciledItem]) -> dict[tuple[int, str], ReconciledItem]:
    """Index the visible (not deleted) items of a view by slot coordinate."""
    return {
        (item.day_of_week, item.time_slot): item
        for item in items
        if not item.is_deleted
    }
