"""REST client for the schedule endpoints of the school admin API.

Only the three calls the draft workflow needs:

    GET    /teachers/{teacher_id}/schedule?week_start=YYYY-MM-DD
    POST   /schedules
    DELETE /schedules/{schedule_id}

Every response is a JSON object with a "success" flag and, on failure, an
"error" message. Failures are raised as the SchedulingError hierarchy;
transient ones (connection and other transport problems, 429, 502-504) are
retried with tenacity.
"""

from typing import Any

import requests
from pydantic import ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.scheduler.config import SchedulerConfig, get_config
from src.scheduler.errors import (
    AuthenticationError,
    ConflictFailure,
    ConflictKind,
    NotFoundError,
    PermanentError,
    RateLimitError,
    SchedulingError,
    TransientError,
    ValidationFailure,
)
from src.scheduler.logging import get_logger
from src.scheduler.models import ScheduleRecord

logger = get_logger(__name__)

_TRANSIENT_STATUSES = frozenset({502, 503, 504})

REQUIRED_CREATE_FIELDS = (
    "student_id",
    "teacher_id",
    "day_of_week",
    "time_slot",
    "week_start_date",
)


def classify_api_error(message: str, status: int | None = None) -> SchedulingError:
    """Turn an API error message into the matching exception.

    Conflict wording is checked first because the create endpoint reports
    conflicts with 400 and missing students with 404.
    """
    if "assigned to another teacher" in message:
        return ConflictFailure(message, ConflictKind.OTHER_TEACHER)
    if "Student not found" in message:
        return ConflictFailure(message, ConflictKind.NOT_FOUND)
    if (
        "Conflict" in message
        or "already booked" in message
        or "already has a lesson" in message
    ):
        return ConflictFailure(message, ConflictKind.CONFLICT)
    if status in (401, 403):
        return AuthenticationError(message)
    if status == 404:
        return NotFoundError(message)
    if status == 429:
        return RateLimitError(message)
    if status == 0 or status in _TRANSIENT_STATUSES:
        return TransientError(message)
    if status is None or status in (400, 422):
        return ValidationFailure(message)
    return PermanentError(message)


class ScheduleApiClient:
    """Thin requests-based client with bearer auth and transient-error retries."""

    def __init__(
        self,
        base_url: str,
        token: str = "",
        *,
        timeout: float = 15.0,
        max_retries: int = 3,
        retry_wait: float = 0.5,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_wait = retry_wait
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: SchedulerConfig | None = None) -> "ScheduleApiClient":
        config = config or get_config()
        return cls(
            config.api_base_url,
            config.api_token,
            timeout=config.request_timeout_seconds,
            max_retries=config.max_retries,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _send(self, method: str, endpoint: str, json_body: dict | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            resp = self.session.request(
                method,
                url,
                headers=self._headers(),
                json=json_body,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning("api_unreachable", method=method, url=url, error=str(e))
            raise TransientError("Backend server not available") from e
        except requests.RequestException as e:
            logger.warning(
                "api_request_failed",
                method=method,
                url=url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransientError(f"Request to {endpoint} failed: {e}") from e

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"data": data}

        if resp.status_code in _TRANSIENT_STATUSES:
            logger.warning("api_unavailable", method=method, url=url, status=resp.status_code)
            raise TransientError("Service temporarily unavailable. Please try again later.")

        if not resp.ok:
            message = data.get("error") or data.get("message") or f"HTTP {resp.status_code}"
            logger.warning(
                "api_error",
                method=method,
                url=url,
                status=resp.status_code,
                error=message,
            )
            raise classify_api_error(message, resp.status_code)

        if data.get("success") is False:
            message = data.get("error") or "Request failed"
            logger.warning("api_rejected", method=method, url=url, error=message)
            raise classify_api_error(message, data.get("status"))

        logger.debug("api_ok", method=method, url=url, status=resp.status_code)
        return data

    def request(self, method: str, endpoint: str, json_body: dict | None = None) -> dict[str, Any]:
        """Send a request, retrying TransientError up to max_retries attempts.

        Raises:
            SchedulingError: The classified failure of the last attempt.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.retry_wait, max=8),
            retry=retry_if_exception_type(TransientError),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._send(method, endpoint, json_body)
        raise AssertionError("unreachable")  # pragma: no cover

    # ------------------------------------------------------------------
    # Schedule endpoints
    # ------------------------------------------------------------------
    def get_teacher_schedule(self, teacher_id: int, week_start: str | None = None) -> list[ScheduleRecord]:
        """Fetch the authoritative lessons of a teacher, optionally for one week."""
        endpoint = f"/teachers/{teacher_id}/schedule"
        if week_start:
            endpoint += f"?week_start={week_start}"
        data = self.request("GET", endpoint)
        try:
            records = [ScheduleRecord.model_validate(row) for row in data.get("schedules") or []]
        except ValidationError as e:
            logger.error(
                "teacher_schedule_malformed",
                teacher_id=teacher_id,
                week_start=week_start,
                errors=e.error_count(),
            )
            raise PermanentError(f"Malformed schedule data for teacher {teacher_id}") from e
        logger.info(
            "teacher_schedule_fetched",
            teacher_id=teacher_id,
            week_start=week_start,
            lessons=len(records),
        )
        return records

    def create_schedule(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Book a lesson.

        Raises:
            ValidationFailure: If a required field is missing (checked locally).
            ConflictFailure: If the slot, student or teacher is already taken.
        """
        missing = [f for f in REQUIRED_CREATE_FIELDS if payload.get(f) in (None, "")]
        if missing:
            raise ValidationFailure(f"Missing required fields: {', '.join(missing)}")
        data = self.request("POST", "/schedules", payload)
        logger.info(
            "schedule_created",
            teacher_id=payload["teacher_id"],
            student_id=payload["student_id"],
            day_of_week=payload["day_of_week"],
            time_slot=payload["time_slot"],
        )
        return data

    def delete_schedule(self, schedule_id: int | str) -> dict[str, Any]:
        data = self.request("DELETE", f"/schedules/{schedule_id}")
        logger.info("schedule_deleted", schedule_id=schedule_id)
        return data
