"""
Course catalog reader with a read-through cache keyed by course id.
"""

from typing import Optional

from coursehub.schemas.course_schemas import Course, CourseFilters
from coursehub.utils.errors import ApiError
from coursehub.utils.logger import configure_logging, get_logger
from coursehub.utils.normalize import normalize_course_detail, normalize_course_list
from coursehub.utils.request_gate import RequestGate
from infra.http.client import ApiClient

configure_logging()
logger = get_logger("catalog")


class CourseCatalog:
    def __init__(self, client: ApiClient):
        self.client = client
        self._cache: dict[str, Course] = {}
        self._gate = RequestGate()

    def cached(self, course_id: str) -> Optional[Course]:
        return self._cache.get(course_id)

    async def get_course(self, course_id: str) -> Course:
        """
        Fetch a course and replace its cache entry wholesale.
        On failure the previous entry is kept and the error is raised.
        If a newer fetch for the same id was issued meanwhile, this result is
        returned to its caller but not written to the cache.
        """
        ticket = self._gate.issue(f"course:{course_id}")
        try:
            payload = await self.client.get(f"/courses/{course_id}", auth=False)
            course = normalize_course_detail(payload)
        except ApiError as e:
            logger.warning(
                "course fetch failed id=%s cached=%s error=%s",
                course_id, course_id in self._cache, e,
            )
            raise

        if self._gate.is_current(ticket):
            self._cache[course_id] = course
        else:
            logger.debug("stale course response not cached id=%s", course_id)
        return course

    async def list_courses(self, filters: Optional[CourseFilters] = None) -> list[Course]:
        """GET /courses. Each listed course also seeds the per-id cache."""
        filters = filters or CourseFilters()
        ticket = self._gate.issue("list")
        payload = await self.client.get("/courses", params=filters.to_params(), auth=False)
        courses = normalize_course_list(payload)
        if self._gate.is_current(ticket):
            for course in courses:
                key = f"course:{course.id}"
                latest = self._gate.latest(key)
                if latest is not None and latest > ticket.seq:
                    # a detail fetch issued after this list owns the entry
                    continue
                self._gate.supersede(key)
                self._cache[course.id] = course
        return courses

    def clear(self) -> None:
        self._cache.clear()
        self._gate.supersede()
