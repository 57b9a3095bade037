"""
View loaders for the learner dashboard, course detail and certificate list.

Each loader builds a snapshot from the domain services; binding it to a
ViewState gives stale-response discard, teardown and scoped error handling.
"""

from typing import Optional

from pydantic import BaseModel

from coursehub.bootstrap import Services
from coursehub.schemas.course_schemas import Course, Lesson
from coursehub.schemas.progress_schemas import (
    CertificateCounts,
    CertificateEntry,
    CertificateStatus,
    CourseAccessState,
    DashboardStats,
    EnrollmentRecord,
    EnrollmentStatusFilter,
)
from coursehub.services.certificate_service import certificate_counts, certificate_list, status_for
from coursehub.services.enrollment_service import compute_stats, filter_enrollments
from coursehub.utils.request_gate import ViewState


class DashboardSnapshot(BaseModel):
    enrollments: list[EnrollmentRecord]
    stats: DashboardStats

    def filtered(self, search: str = "", status: EnrollmentStatusFilter | str = EnrollmentStatusFilter.ALL) -> list[EnrollmentRecord]:
        return filter_enrollments(self.enrollments, search=search, status=status)


class CourseDetail(BaseModel):
    course: Course
    enrollment: Optional[EnrollmentRecord] = None
    access: CourseAccessState
    can_view_lessons: bool
    can_join_community: bool
    can_view_certificate: bool
    certificate_status: Optional[CertificateStatus] = None
    next_lesson: Optional[Lesson] = None


class CertificateOverview(BaseModel):
    entries: list[CertificateEntry]
    counts: CertificateCounts


async def fetch_dashboard(services: Services) -> DashboardSnapshot:
    records = await services.enrollments.get_enrollments()
    return DashboardSnapshot(enrollments=records, stats=compute_stats(records))


async def fetch_course_detail(services: Services, course_id: str) -> CourseDetail:
    course = await services.catalog.get_course(course_id)
    session = services.sessions.current_session()
    if session is not None and not services.enrollments.records:
        await services.enrollments.get_enrollments(session)
    record = services.enrollments.record_for(course_id) if session is not None else None

    next_lesson = None
    if record is not None and not record.is_completed:
        if record.completed_lesson_ids:
            next_lesson = next((lesson for lesson in course.lessons if not record.has_completed(lesson.id)), None)
        elif record.completed_lessons < len(course.lessons):
            # only a count is known; lessons are taken in order
            next_lesson = course.lessons[record.completed_lessons]
    gate_lesson = next_lesson or (course.lessons[0] if course.lessons else None)

    access = services.access
    return CourseDetail(
        course=course,
        enrollment=record,
        access=access.state_for(course_id),
        can_view_lessons=gate_lesson is not None and access.can_view_lesson(session, course_id, gate_lesson.id),
        can_join_community=access.can_join_community(session, course_id),
        can_view_certificate=access.can_view_certificate(session, course_id),
        certificate_status=status_for(record),
        next_lesson=next_lesson,
    )


async def fetch_certificates(services: Services) -> CertificateOverview:
    records = await services.enrollments.get_enrollments()
    entries = certificate_list(records)
    return CertificateOverview(entries=entries, counts=certificate_counts(entries))


async def load_dashboard(view: ViewState[DashboardSnapshot], services: Services) -> Optional[DashboardSnapshot]:
    return await view.load("dashboard", lambda: fetch_dashboard(services))


async def load_course_detail(view: ViewState[CourseDetail], services: Services, course_id: str) -> Optional[CourseDetail]:
    return await view.load(f"course:{course_id}", lambda: fetch_course_detail(services, course_id))


async def load_certificates(view: ViewState[CertificateOverview], services: Services) -> Optional[CertificateOverview]:
    return await view.load("certificates", lambda: fetch_certificates(services))
