"""Inspect, discard or commit the locally stored schedule draft.

Reads the JSON draft store configured by SCHEDULER_DRAFT_STORE_PATH and
prints what is pending. With --commit the draft is replayed against the admin
API (SCHEDULER_API_BASE_URL / SCHEDULER_API_TOKEN) exactly as the grid's Save
button does.

Run with: python scripts/draft_status.py
JSON:     python scripts/draft_status.py --json
Discard:  python scripts/draft_status.py --discard
Commit:   python scripts/draft_status.py --commit

Exit codes:
  0 = success (nothing pending, or the requested action succeeded)
  1 = error (commit failed; message on stderr)
"""

import argparse
import json
import os
import sys
from datetime import date

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.scheduler.api_client import ScheduleApiClient  # noqa: E402
from src.scheduler.commit import CommitProtocol  # noqa: E402
from src.scheduler.config import get_config  # noqa: E402
from src.scheduler.dates import day_name, get_week_end, is_past_week  # noqa: E402
from src.scheduler.drafts import get_draft_store  # noqa: E402
from src.scheduler.logging import setup_logging  # noqa: E402
from src.scheduler.models import Draft  # noqa: E402


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Show, discard or commit the pending schedule draft.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    action_group = parser.add_mutually_exclusive_group()
    action_group.add_argument(
        "--discard",
        action="store_true",
        help="Delete the pending draft without sending it.",
    )
    action_group.add_argument(
        "--commit",
        action="store_true",
        help="Replay the pending draft against the admin API.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the draft as JSON instead of a table.",
    )
    return parser.parse_args()


def format_draft(draft: Draft, today: date | None = None) -> str:
    """Format a draft for human-readable display."""
    week = f"{draft.week_start} to {get_week_end(draft.week_start)}"
    if is_past_week(draft.week_start, today):
        week += " (past week)"
    lines = [
        f"Draft for teacher {draft.teacher_id}, week {week}",
        f"  Last modified: {draft.last_modified.isoformat()}",
        f"  Additions: {len(draft.additions)}  |  Deletions: {len(draft.deletions)}",
    ]
    for addition in draft.additions:
        lines.append(
            f"    + {day_name(addition.day_of_week)} {addition.time_slot}: "
            f"{addition.student_name} (student {addition.student_id})"
        )
    for deletion in draft.deletions:
        lines.append(
            f"    - {day_name(deletion.day_of_week)} {deletion.time_slot}: "
            f"schedule {deletion.schedule_id}"
        )
    return "\n".join(lines)


def main(args: argparse.Namespace) -> int:
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)

    store = get_draft_store()
    draft = store.get_draft_changes()
    if draft is None:
        print("No pending draft.")
        return 0

    if args.json:
        print(json.dumps(draft.model_dump(mode="json", by_alias=True), indent=2))
    else:
        print(format_draft(draft))

    if args.discard:
        store.clear_draft_changes()
        print("Draft discarded.")
        return 0

    if args.commit:
        committer = CommitProtocol(store, ScheduleApiClient.from_config(config))
        result = committer.commit(draft)
        if not result.success:
            message = result.notification.message if result.notification else "Commit failed"
            print(f"ERROR: {message} ({result.applied} change(s) applied before failure)", file=sys.stderr)
            return 1
        print(f"Committed: {result.created} created, {result.deleted} deleted.")
    return 0


if __name__ == "__main__":
    args = _parse_args()
    try:
        sys.exit(main(args))
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
