"""
Client-side access gates for purchase-gated content.

These are advisory: they decide what to offer, not what is allowed. The
backend revalidates every privileged call.
"""

from typing import Optional

from coursehub.schemas.auth_schemas import Session
from coursehub.schemas.progress_schemas import CourseAccessState, EnrollmentRecord, GroupAccessToken
from coursehub.services.catalog_service import CourseCatalog
from coursehub.services.enrollment_service import EnrollmentAggregator
from coursehub.utils.errors import ValidationError
from coursehub.utils.logger import configure_logging, get_logger
from coursehub.utils.normalize import normalize_group_token

configure_logging()
logger = get_logger("access")

_STATE_ORDER = {
    CourseAccessState.LOCKED: 0,
    CourseAccessState.UNLOCKED: 1,
    CourseAccessState.IN_PROGRESS: 2,
    CourseAccessState.COMPLETED: 3,
}


def access_state(record: Optional[EnrollmentRecord]) -> CourseAccessState:
    if record is None or not record.purchased:
        return CourseAccessState.LOCKED
    if record.is_completed:
        return CourseAccessState.COMPLETED
    if record.is_started:
        return CourseAccessState.IN_PROGRESS
    return CourseAccessState.UNLOCKED


def is_valid_transition(current: CourseAccessState, target: CourseAccessState) -> bool:
    """Forward-only. COMPLETED has no outgoing transition."""
    if current == CourseAccessState.COMPLETED:
        return target == CourseAccessState.COMPLETED
    return _STATE_ORDER[target] >= _STATE_ORDER[current]


class AccessAuthorizer:
    def __init__(self, enrollments: EnrollmentAggregator, catalog: Optional[CourseCatalog] = None):
        self.enrollments = enrollments
        self.sessions = enrollments.sessions
        self.catalog = catalog

    def _purchased_record(self, session: Optional[Session], course_id: str) -> Optional[EnrollmentRecord]:
        current = self.sessions.current_session()
        if session is None or current is None or current.subject_id != session.subject_id:
            return None
        record = self.enrollments.record_for(course_id)
        if record is None or not record.purchased:
            return None
        return record

    def state_for(self, course_id: str) -> CourseAccessState:
        if self.sessions.current_session() is None:
            return CourseAccessState.LOCKED
        return access_state(self.enrollments.record_for(course_id))

    def can_view_lesson(self, session: Optional[Session], course_id: str, lesson_id: str) -> bool:
        if self._purchased_record(session, course_id) is None:
            return False
        course = self.catalog.cached(course_id) if self.catalog else None
        if course is not None and not course.has_lesson(lesson_id):
            return False
        return True

    def can_join_community(self, session: Optional[Session], course_id: str) -> bool:
        if self._purchased_record(session, course_id) is None:
            return False
        course = self.catalog.cached(course_id) if self.catalog else None
        if course is not None and not course.has_community_group:
            return False
        return True

    def can_view_certificate(self, session: Optional[Session], course_id: str) -> bool:
        record = self._purchased_record(session, course_id)
        return record is not None and record.is_completed

    async def request_community_access(self, course_id: str) -> GroupAccessToken:
        """
        GET /courses/:id/group-token. Refused locally when the gate is closed;
        the returned join link is short-lived and server-issued.
        """
        session = self.sessions.require_session()
        if not self.can_join_community(session, course_id):
            if self._purchased_record(session, course_id) is None:
                raise ValidationError("Purchase this course to join its community group", field="course_id")
            raise ValidationError("This course has no community group")
        payload = await self.enrollments.client.get(f"/courses/{course_id}/group-token")
        token = normalize_group_token(payload)
        logger.info("community access token issued course=%s", course_id)
        return token
