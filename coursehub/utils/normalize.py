"""
Single normalization step at the API boundary.

The backend answers either with a bare payload or with a
`{"success": ..., "data": ..., "message": ...}` envelope, and nests lists
under different keys depending on the endpoint. Everything below turns those
shapes into the canonical schemas, or raises ResponseShapeError (logged) so
call sites never branch on response shapes themselves.
"""

from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from coursehub.schemas.auth_schemas import LoginResult, RegisterResponse, SessionRole, SessionUser
from coursehub.schemas.course_schemas import Course, Lesson
from coursehub.schemas.progress_schemas import EnrollmentRecord, GroupAccessToken
from coursehub.utils.errors import ResponseShapeError
from coursehub.utils.logger import configure_logging, get_logger

configure_logging()
logger = get_logger("normalize")


def _reject(what: str, payload: object) -> ResponseShapeError:
    logger.warning("response shape mismatch for %s type=%s", what, type(payload).__name__)
    return ResponseShapeError(f"Unexpected response shape for {what}")


def _first(raw: dict, *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def _id_of(raw: object) -> Optional[str]:
    """Id from an `{_id}`/`{id}` dict or a bare id string."""
    if isinstance(raw, str):
        return raw.strip() or None
    if isinstance(raw, (int,)) and not isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, dict):
        value = _first(raw, "_id", "id")
        return str(value) if value is not None else None
    return None


def unwrap(payload: object) -> object:
    """Strip the `{success, data}` envelope when present."""
    if isinstance(payload, dict) and "data" in payload and ("success" in payload or len(payload) <= 3):
        return payload["data"]
    return payload


def message_of(payload: object) -> Optional[str]:
    """Backend message from an error body, if any."""
    if isinstance(payload, dict):
        msg = _first(payload, "message", "detail", "error")
        if isinstance(msg, str):
            return msg
    return None


# ----- auth -----

def normalize_user(raw: object) -> SessionUser:
    if not isinstance(raw, dict):
        raise _reject("user", raw)
    subject_id = _first(raw, "_id", "id", "userId")
    email = raw.get("email")
    if subject_id is None or not isinstance(email, str):
        raise _reject("user", raw)
    role = SessionRole.ADMIN if str(raw.get("role", "")).lower() == "admin" else SessionRole.LEARNER
    name = raw.get("name")
    return SessionUser(
        subject_id=str(subject_id),
        email=email,
        name=name if isinstance(name, str) else None,
        role=role,
    )


def normalize_login(payload: object) -> LoginResult:
    data = unwrap(payload)
    if not isinstance(data, dict):
        raise _reject("login", payload)
    token = _first(data, "token", "access_token", "accessToken")
    if not isinstance(token, str) or not token:
        raise _reject("login", payload)
    user = data.get("user")
    if user is None and isinstance(payload, dict):
        user = payload.get("user")
    return LoginResult(token=token, user=normalize_user(user))


def normalize_register(payload: object) -> RegisterResponse:
    data = unwrap(payload)
    message = message_of(payload) or ""
    if data is None:
        return RegisterResponse(message=message)
    if not isinstance(data, dict):
        raise _reject("register", payload)
    required = _first(data, "verificationRequired", "requiresVerification", "verification_required")
    return RegisterResponse(message=message, verification_required=bool(required))


def normalize_me(payload: object) -> SessionUser:
    data = unwrap(payload)
    if isinstance(data, dict) and isinstance(data.get("user"), dict):
        data = data["user"]
    return normalize_user(data)


# ----- courses -----

def _normalize_lesson(raw: object, position: int) -> Optional[Lesson]:
    if isinstance(raw, str):
        return Lesson(id=raw, title=f"Lesson {position + 1}")
    if not isinstance(raw, dict):
        return None
    lesson_id = _id_of(raw)
    if lesson_id is None:
        return None
    order = raw.get("order")
    return Lesson(
        id=lesson_id,
        title=str(raw.get("title") or f"Lesson {position + 1}"),
        duration_seconds=_first(raw, "durationSeconds", "duration"),
        description=str(raw.get("description") or ""),
        order=order if isinstance(order, int) and not isinstance(order, bool) else None,
    )


def normalize_lessons(raw: object) -> list[Lesson]:
    """Lessons in sequence. Sorted by `order` only when every lesson carries one."""
    if not isinstance(raw, list):
        return []
    lessons = [lesson for idx, item in enumerate(raw) if (lesson := _normalize_lesson(item, idx)) is not None]
    if lessons and all(lesson.order is not None for lesson in lessons):
        lessons.sort(key=lambda lesson: lesson.order)
    return lessons


def normalize_course(raw: object) -> Course:
    if not isinstance(raw, dict):
        raise _reject("course", raw)
    course_id = _id_of(raw)
    title = raw.get("title")
    if course_id is None or not isinstance(title, str):
        raise _reject("course", raw)
    instructor = raw.get("instructor")
    if isinstance(instructor, dict):
        instructor = instructor.get("name")
    price = raw.get("price")
    enrollments = _first(raw, "enrollmentCount", "totalEnrollments")
    tags = raw.get("tags")
    try:
        return Course(
            id=course_id,
            title=title,
            description=str(raw.get("description") or ""),
            price=float(price) if isinstance(price, (int, float)) and not isinstance(price, bool) else 0.0,
            lessons=tuple(normalize_lessons(_first(raw, "lessons", "videos"))),
            category=raw.get("category") if isinstance(raw.get("category"), str) else None,
            level=raw.get("level") if isinstance(raw.get("level"), str) else None,
            instructor=instructor if isinstance(instructor, str) else None,
            enrollment_count=int(enrollments) if isinstance(enrollments, (int, float)) else 0,
            tags=tuple(t for t in tags if isinstance(t, str)) if isinstance(tags, list) else (),
            has_community_group=bool(raw.get("hasWhatsappGroup") or raw.get("whatsappGroupLink")),
        )
    except PydanticValidationError as e:
        logger.warning("course validation failed id=%s errors=%s", course_id, e.errors())
        raise ResponseShapeError(f"Unexpected response shape for course {course_id}") from e


def normalize_course_detail(payload: object) -> Course:
    data = unwrap(payload)
    if isinstance(data, dict) and isinstance(data.get("course"), dict):
        data = data["course"]
    return normalize_course(data)


def normalize_course_list(payload: object) -> list[Course]:
    data = unwrap(payload)
    if isinstance(data, dict):
        data = data.get("courses")
    if not isinstance(data, list):
        raise _reject("course list", payload)
    return [normalize_course(item) for item in data]


# ----- progress -----

def _ids(raw: object) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [i for i in (_id_of(item) for item in raw) if i is not None]


def normalize_enrollment(raw: object) -> EnrollmentRecord:
    """
    One dashboard row. The server is the only writer of completion data; this
    only maps its keys. Progress is re-derived by EnrollmentRecord itself.
    """
    if not isinstance(raw, dict):
        raise _reject("enrollment", raw)
    course_id = _first(raw, "courseId", "_id", "id")
    if isinstance(course_id, dict):
        course_id = _id_of(course_id)
    if course_id is None:
        raise _reject("enrollment", raw)

    completed_raw = _first(raw, "completedLessonIds", "completedVideoIds")
    if completed_raw is None and isinstance(raw.get("completedLessons"), list):
        completed_raw = raw["completedLessons"]
    completed_count = _first(raw, "completedLessons", "completedVideos")
    total = _first(raw, "totalLessons", "totalVideos")

    data: dict[str, Any] = {
        "course_id": str(course_id),
        "title": str(raw.get("title") or ""),
        "purchased": raw.get("purchased", True) is not False,
        "lesson_ids": _ids(_first(raw, "lessonIds", "lessons", "videos")),
        "completed_lesson_ids": _ids(completed_raw),
        "total_lessons": int(total) if isinstance(total, (int, float)) and not isinstance(total, bool) else None,
        "completed_lessons": completed_count if isinstance(completed_count, int) and not isinstance(completed_count, bool) else 0,
        "progress_percent": _first(raw, "progressPercent", "progress"),
        "last_watched_lesson_id": _id_of(_first(raw, "lastWatchedLessonId", "lastWatchedVideo")),
        "last_watched_at": _first(raw, "lastWatchedAt", "lastWatched"),
    }
    try:
        return EnrollmentRecord(**data)
    except PydanticValidationError as e:
        logger.warning("enrollment validation failed course_id=%s errors=%s", course_id, e.errors())
        raise ResponseShapeError(f"Unexpected response shape for enrollment {course_id}") from e


def normalize_enrollments(payload: object) -> list[EnrollmentRecord]:
    data = unwrap(payload)
    if isinstance(data, dict):
        data = data.get("courses")
    if not isinstance(data, list):
        raise _reject("dashboard progress", payload)
    return [normalize_enrollment(item) for item in data]


def normalize_group_token(payload: object) -> GroupAccessToken:
    data = unwrap(payload)
    if not isinstance(data, dict) and isinstance(payload, dict):
        data = payload
    if not isinstance(data, dict):
        raise _reject("group token", payload)
    join_url = _first(data, "joinUrl", "join_url")
    if not isinstance(join_url, str) and isinstance(payload, dict):
        join_url = _first(payload, "joinUrl", "join_url")
    if not isinstance(join_url, str) or not join_url:
        raise _reject("group token", payload)
    return GroupAccessToken(join_url=join_url, expires_at=_first(data, "expiresAt", "expires_at"))
