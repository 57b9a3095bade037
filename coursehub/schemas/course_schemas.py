"""
Course catalog schemas. Courses are read-through copies of server state and are
never mutated locally; a re-fetch replaces the whole object.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def parse_duration(value: object) -> int:
    """Seconds from an int/float, a numeric string, or "mm:ss" / "hh:mm:ss"."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return max(0, int(value))
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        if ":" in text:
            total = 0
            for part in text.split(":"):
                if not part.strip().isdigit():
                    return 0
                total = total * 60 + int(part)
            return total
        try:
            return max(0, int(float(text)))
        except ValueError:
            return 0
    return 0


class Lesson(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    duration_seconds: int = 0
    description: str = ""
    order: Optional[int] = None

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def _coerce_duration(cls, v: object) -> int:
        return parse_duration(v)


class Course(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str = ""
    price: float = 0.0
    lessons: tuple[Lesson, ...] = ()
    category: Optional[str] = None
    level: Optional[str] = None
    instructor: Optional[str] = None
    enrollment_count: int = 0
    tags: tuple[str, ...] = ()
    has_community_group: bool = False

    @property
    def lesson_ids(self) -> list[str]:
        return [lesson.id for lesson in self.lessons]

    @property
    def total_duration_seconds(self) -> int:
        return sum(lesson.duration_seconds for lesson in self.lessons)

    def has_lesson(self, lesson_id: str) -> bool:
        return any(lesson.id == lesson_id for lesson in self.lessons)

    def next_lesson(self, after_id: Optional[str] = None) -> Optional[Lesson]:
        """Lesson following `after_id` in sequence; the first lesson when `after_id` is None."""
        if not self.lessons:
            return None
        if after_id is None:
            return self.lessons[0]
        for idx, lesson in enumerate(self.lessons):
            if lesson.id == after_id:
                return self.lessons[idx + 1] if idx + 1 < len(self.lessons) else None
        return None


class CourseFilters(BaseModel):
    """Query parameters accepted by GET /courses."""
    page: Optional[int] = Field(default=None, ge=1)
    limit: Optional[int] = Field(default=None, ge=1)
    search: Optional[str] = None
    category: Optional[str] = None
    level: Optional[str] = None
    tag: Optional[str] = None

    def to_params(self) -> dict[str, str]:
        return {k: str(v) for k, v in self.model_dump(exclude_none=True).items() if v != ""}
