"""
Unit test fixtures. Everything runs against httpx.MockTransport; no server.
"""
import pytest

from coursehub.schemas.progress_schemas import EnrollmentRecord


@pytest.fixture
def make_record():
    """Build an EnrollmentRecord from a reported percent (no lesson list)."""
    def _make(course_id: str, progress: int, title: str = "", purchased: bool = True) -> EnrollmentRecord:
        return EnrollmentRecord(course_id=course_id, title=title or course_id, progress_percent=progress, purchased=purchased)
    return _make
