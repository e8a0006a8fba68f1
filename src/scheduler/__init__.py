"""Draft-based weekly schedule editing for the language school admin.

Admins stage lesson additions and removals for one teacher-week in a local
draft, see them overlaid on the server schedule, and commit them as a batch.
"""

from src.scheduler.api_client import ScheduleApiClient
from src.scheduler.commit import CommitProtocol, CommitResult
from src.scheduler.drafts import DRAFT_STORAGE_KEY, DraftStore, get_draft_store
from src.scheduler.editor import ScheduleEditor
from src.scheduler.models import (
    ChangesSummary,
    Draft,
    DraftAddition,
    DraftDeletion,
    LessonData,
    ReconciledItem,
    ScheduleRecord,
    SlotKey,
    WeekKey,
)
from src.scheduler.navigation import Choice, GuardState, NavigationAction, NavigationGuard
from src.scheduler.reconcile import apply_draft_to_schedule
from src.scheduler.storage import JsonFileStore, MemoryStore

__all__ = [
    "ChangesSummary",
    "Choice",
    "CommitProtocol",
    "CommitResult",
    "DRAFT_STORAGE_KEY",
    "Draft",
    "DraftAddition",
    "DraftDeletion",
    "DraftStore",
    "GuardState",
    "JsonFileStore",
    "LessonData",
    "MemoryStore",
    "NavigationAction",
    "NavigationGuard",
    "ReconciledItem",
    "ScheduleApiClient",
    "ScheduleEditor",
    "ScheduleRecord",
    "SlotKey",
    "WeekKey",
    "apply_draft_to_schedule",
    "get_draft_store",
]
