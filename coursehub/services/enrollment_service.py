"""
Enrollment & progress aggregation for the learner dashboard.

`compute_stats` and `filter_enrollments` are pure functions of the list they
are given. `EnrollmentAggregator` owns the latest record set fetched for the
current session and is the only writer of it.
"""

from typing import Iterable, Optional

from coursehub.schemas.auth_schemas import Session
from coursehub.schemas.progress_schemas import (
    DashboardStats,
    EnrollmentRecord,
    EnrollmentStatusFilter,
    ProgressEvent,
    ProgressEventStatus,
)
from coursehub.services.session_service import SessionState
from coursehub.utils.common import round_half_up
from coursehub.utils.errors import ApiError, AuthError
from coursehub.utils.logger import configure_logging, get_logger, log_request
from coursehub.utils.normalize import normalize_enrollments
from coursehub.utils.request_gate import RequestGate

configure_logging()
logger = get_logger("enrollments")


def compute_stats(enrollments: Iterable[EnrollmentRecord]) -> DashboardStats:
    """Single pass: four counters and a progress sum. Empty input averages to 0."""
    total = completed = in_progress = not_started = 0
    progress_sum = 0
    for record in enrollments:
        total += 1
        progress_sum += record.progress_percent
        if record.is_completed:
            completed += 1
        elif record.is_started:
            in_progress += 1
        else:
            not_started += 1
    return DashboardStats(
        total_courses=total,
        completed_courses=completed,
        in_progress_courses=in_progress,
        not_started_courses=not_started,
        average_progress=round_half_up(progress_sum / total) if total else 0,
    )


def matches_search(record: EnrollmentRecord, search: str) -> bool:
    term = (search or "").strip().lower()
    return not term or term in record.title.lower()


def matches_status(record: EnrollmentRecord, status: EnrollmentStatusFilter) -> bool:
    if status == EnrollmentStatusFilter.COMPLETED:
        return record.is_completed
    if status == EnrollmentStatusFilter.IN_PROGRESS:
        return record.is_started and not record.is_completed
    return True


def filter_enrollments(
    enrollments: Iterable[EnrollmentRecord],
    search: str = "",
    status: EnrollmentStatusFilter | str = EnrollmentStatusFilter.ALL,
) -> list[EnrollmentRecord]:
    """Search (case-insensitive title substring) AND status. Input order is kept."""
    status = EnrollmentStatusFilter(status)
    return [r for r in enrollments if matches_search(r, search) and matches_status(r, status)]


class EnrollmentAggregator:
    def __init__(self, sessions: SessionState):
        self.sessions = sessions
        self.client = sessions.client
        self._records: list[EnrollmentRecord] = []
        self._owner: Optional[str] = None
        self._gate = RequestGate()
        self._pending: dict[tuple[str, str], ProgressEvent] = {}
        sessions.add_invalidation_listener(self._on_session_invalidated)

    @property
    def records(self) -> list[EnrollmentRecord]:
        return list(self._records)

    def record_for(self, course_id: str) -> Optional[EnrollmentRecord]:
        for record in self._records:
            if record.course_id == course_id:
                return record
        return None

    def stats(self) -> DashboardStats:
        return compute_stats(self._records)

    def pending_events(self) -> list[ProgressEvent]:
        return list(self._pending.values())

    async def get_enrollments(self, session: Optional[Session] = None) -> list[EnrollmentRecord]:
        """
        GET /progress/dashboard, in server order. The result is applied only if
        it is the latest request for this session and the session is still active.
        A superseded response is dropped and the latest applied set is returned.
        """
        current = self.sessions.require_session()
        if session is not None and session.subject_id != current.subject_id:
            raise AuthError("Session is no longer active")
        session = current

        ticket = self._gate.issue(f"enrollments:{session.subject_id}")
        with log_request(logger, "dashboard progress fetch"):
            payload = await self.client.get("/progress/dashboard")
            fetched = normalize_enrollments(payload)

        still_active = self.sessions.current_session()
        if not self._gate.is_current(ticket) or still_active is None or still_active.subject_id != session.subject_id:
            logger.debug("stale enrollment response discarded subject=%s", session.subject_id)
            return self.records
        return self._apply(session.subject_id, fetched)

    async def complete_lesson(self, course_id: str, lesson_id: str) -> ProgressEvent:
        """
        Report a lesson watched to completion. pending -> confirmed | failed.
        Records are only refreshed from the server after it confirms.
        """
        session = self.sessions.require_session()
        event = ProgressEvent(course_id=course_id, lesson_id=lesson_id)
        key = (course_id, lesson_id)
        self._pending[key] = event
        try:
            await self.client.post("/progress/complete-video", json={"courseId": course_id, "videoId": lesson_id})
        except AuthError as e:
            event.status = ProgressEventStatus.FAILED
            event.error = e.message
            raise
        except ApiError as e:
            logger.warning("lesson completion failed course=%s lesson=%s error=%s", course_id, lesson_id, e)
            event.status = ProgressEventStatus.FAILED
            event.error = e.message
            return event
        finally:
            # a newer request for the same lesson may own the slot by now
            if self._pending.get(key) is event:
                del self._pending[key]

        event.status = ProgressEventStatus.CONFIRMED
        logger.info("lesson completion confirmed course=%s lesson=%s", course_id, lesson_id)
        try:
            await self.get_enrollments(session)
        except AuthError:
            raise
        except ApiError as e:
            logger.warning("progress refresh after completion failed course=%s error=%s", course_id, e)
            event.error = f"Progress refresh failed: {e.message}"
        return event

    def _apply(self, owner: str, fetched: list[EnrollmentRecord]) -> list[EnrollmentRecord]:
        previous = {r.course_id: r for r in self._records} if self._owner == owner else {}
        applied: list[EnrollmentRecord] = []
        for record in fetched:
            prev = previous.get(record.course_id)
            if prev is not None and prev.is_completed and not record.is_completed:
                # completed is terminal for a course/session pair
                logger.warning(
                    "ignoring progress regression course=%s previous=%s reported=%s",
                    record.course_id, prev.progress_percent, record.progress_percent,
                )
                applied.append(prev)
            else:
                applied.append(record)
        self._records = applied
        self._owner = owner
        return list(applied)

    def _on_session_invalidated(self, reason: str) -> None:
        self._records = []
        self._owner = None
        self._pending.clear()
        self._gate.supersede()
