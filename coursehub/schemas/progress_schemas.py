"""
Learner progress schemas: enrollment records, dashboard stats and the derived
access / certificate states.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from coursehub.utils.common import clamp_percent, completion_percent


class EnrollmentStatusFilter(str, Enum):
    ALL = "all"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class CourseAccessState(str, Enum):
    """locked -> unlocked -> in_progress -> completed. completed is terminal."""
    LOCKED = "locked"
    UNLOCKED = "unlocked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class CertificateStatus(str, Enum):
    ISSUED = "issued"
    PENDING = "pending"


class EnrollmentRecord(BaseModel):
    """
    Progress of the session's learner in one purchased course.

    progress_percent and is_completed are always derived on construction:
    - from lesson_ids / completed_lesson_ids when completed ids were reported,
    - else from the completed_lessons count over the lesson list or total_lessons,
    - else the reported progress_percent is clamped to [0, 100].
    is_completed is exactly (progress_percent == 100).
    """
    model_config = ConfigDict(frozen=True)

    course_id: str
    title: str = ""
    purchased: bool = True
    lesson_ids: tuple[str, ...] = ()
    completed_lesson_ids: frozenset[str] = frozenset()
    total_lessons: Optional[int] = None
    completed_lessons: int = 0
    progress_percent: int = 0
    is_completed: bool = False
    last_watched_lesson_id: Optional[str] = None
    last_watched_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def _derive_progress(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        lesson_ids = list(dict.fromkeys(data.get("lesson_ids") or ()))
        completed = list(dict.fromkeys(data.get("completed_lesson_ids") or ()))
        total = data.get("total_lessons")

        if lesson_ids and completed:
            known = set(lesson_ids)
            completed = [lid for lid in completed if lid in known]
            total = len(lesson_ids)
            done = len(completed)
            progress = completion_percent(done, total)
        elif lesson_ids or total is not None:
            # dashboard rows carry only a completed count next to the lesson list
            total = len(lesson_ids) if lesson_ids else max(0, int(total))
            done = min(total, max(len(completed), int(data.get("completed_lessons") or 0)))
            progress = completion_percent(done, total)
        else:
            done = len(completed)
            progress = clamp_percent(data.get("progress_percent", 0))

        data.update(
            lesson_ids=tuple(lesson_ids),
            completed_lesson_ids=frozenset(completed),
            total_lessons=total,
            completed_lessons=done,
            progress_percent=progress,
            is_completed=progress == 100,
        )
        return data

    @property
    def is_started(self) -> bool:
        return self.progress_percent > 0

    def has_completed(self, lesson_id: str) -> bool:
        return lesson_id in self.completed_lesson_ids


class DashboardStats(BaseModel):
    total_courses: int = 0
    completed_courses: int = 0
    in_progress_courses: int = 0
    not_started_courses: int = 0
    average_progress: int = 0


class ProgressEventStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class ProgressEvent(BaseModel):
    """A lesson-completion request. Domain state changes only after CONFIRMED."""
    course_id: str
    lesson_id: str
    status: ProgressEventStatus = ProgressEventStatus.PENDING
    error: Optional[str] = None


class CertificateEntry(BaseModel):
    course_id: str
    course_title: str
    status: CertificateStatus
    progress_percent: int


class CertificateCounts(BaseModel):
    issued: int = 0
    pending: int = 0


class GroupAccessToken(BaseModel):
    join_url: str
    expires_at: Optional[datetime] = None
