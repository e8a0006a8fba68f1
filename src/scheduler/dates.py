"""Week arithmetic over ISO date strings.

Weeks start on Monday. Every function takes and returns "YYYY-MM-DD" strings
so values can go straight into draft JSON and API query parameters.
"""

from datetime import date, datetime, timedelta

DAYS: tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)


def _build_time_slots(start_hour: int = 8, end_hour: int = 21, end_minute: int = 30) -> tuple[str, ...]:
    slots = []
    minutes = start_hour * 60
    last = end_hour * 60 + end_minute
    while minutes < last:
        nxt = minutes + 30
        slots.append(
            f"{minutes // 60}:{minutes % 60:02d}-{nxt // 60}:{nxt % 60:02d}"
        )
        minutes = nxt
    return tuple(slots)


# Half-hour grid rows, "8:00-8:30" through "21:00-21:30"
TIME_SLOTS: tuple[str, ...] = _build_time_slots()


def _to_date(value: str | date) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # Accept full timestamps ("2024-06-03T00:00:00Z") as well as plain dates
    return date.fromisoformat(value[:10])


def get_week_start(value: str | date) -> str:
    """Return the Monday of the week containing the given date."""
    d = _to_date(value)
    return (d - timedelta(days=d.weekday())).isoformat()


def get_current_week_start(today: date | None = None) -> str:
    """Return the Monday of the current week (local date)."""
    return get_week_start(today or date.today())


def get_week_end(week_start: str) -> str:
    """Return the Sunday closing the week that starts on week_start."""
    return add_days(week_start, 6)


def add_days(value: str | date, days: int) -> str:
    return (_to_date(value) + timedelta(days=days)).isoformat()


def subtract_days(value: str | date, days: int) -> str:
    return (_to_date(value) - timedelta(days=days)).isoformat()


def get_week_dates(week_start: str) -> list[str]:
    """Return the seven dates (Monday to Sunday) of the week."""
    start = _to_date(week_start)
    return [(start + timedelta(days=i)).isoformat() for i in range(7)]


def day_name(day_of_week: int) -> str:
    """Map 0..6 to "Monday".."Sunday"."""
    return DAYS[day_of_week]


def is_past_week(week_start: str, today: date | None = None) -> bool:
    """True when the whole week lies before today's week."""
    return week_start < get_current_week_start(today)


def is_valid_time_slot(time_slot: str) -> bool:
    return time_slot in TIME_SLOTS
