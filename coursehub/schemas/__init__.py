"""
Client schemas package. Import from submodules or from this package.

Example:
    from coursehub.schemas import Course, EnrollmentRecord
    from coursehub.schemas.progress_schemas import DashboardStats
"""

from coursehub.schemas.auth_schemas import (
    AuthTokenPayload,
    LoginRequest,
    LoginResult,
    RegisterRequest,
    RegisterResponse,
    Session,
    SessionRole,
    SessionUser,
)
from coursehub.schemas.course_schemas import (
    Course,
    CourseFilters,
    Lesson,
)
from coursehub.schemas.progress_schemas import (
    CertificateCounts,
    CertificateEntry,
    CertificateStatus,
    CourseAccessState,
    DashboardStats,
    EnrollmentRecord,
    EnrollmentStatusFilter,
    GroupAccessToken,
    ProgressEvent,
    ProgressEventStatus,
)

__all__ = [
    # auth
    "AuthTokenPayload",
    "LoginRequest",
    "LoginResult",
    "RegisterRequest",
    "RegisterResponse",
    "Session",
    "SessionRole",
    "SessionUser",
    # course
    "Course",
    "CourseFilters",
    "Lesson",
    # progress
    "CertificateCounts",
    "CertificateEntry",
    "CertificateStatus",
    "CourseAccessState",
    "DashboardStats",
    "EnrollmentRecord",
    "EnrollmentStatusFilter",
    "GroupAccessToken",
    "ProgressEvent",
    "ProgressEventStatus",
]
