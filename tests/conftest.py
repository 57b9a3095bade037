"""
Pytest configuration and shared fixtures for the test suite.
Ensures proper Python path and provides a scriptable fake backend that the
client talks to through httpx.MockTransport.
"""
import inspect
import sys
import time
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from jose import jwt

# Add project root to Python path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

BASE_URL = "http://testserver/api"
TEST_SECRET = "test-secret"


def make_token(sub: str = "user-1", email: str = "learner@example.com", minutes: int = 30) -> str:
    """Signed HS256 token; the client only reads its claims."""
    exp = int(time.time()) + minutes * 60
    return jwt.encode({"sub": sub, "email": email, "exp": exp}, TEST_SECRET, algorithm="HS256")


def login_payload(token: str, user_id: str = "user-1", email: str = "learner@example.com", role: str = "user") -> dict:
    return {
        "success": True,
        "message": "Login successful",
        "data": {"token": token, "user": {"_id": user_id, "email": email, "name": "Test Learner", "role": role}},
    }


def lesson_list(prefix: str, count: int) -> list[dict]:
    return [
        {"_id": f"{prefix}{i}", "title": f"Lesson {i}", "duration": "05:00", "order": i}
        for i in range(1, count + 1)
    ]


def dashboard_payload() -> dict:
    """
    Three purchased courses (completed, 40%, not started) in the row shape of
    GET /progress/dashboard: a completed count, never completed ids.
    """
    return {
        "success": True,
        "data": {
            "courses": [
                {
                    "_id": "c1",
                    "title": "Mastering YouTube SEO",
                    "duration": "4 lessons",
                    "totalLessons": 4,
                    "completedLessons": 4,
                    "progress": 100,
                    "lastWatched": "2025-03-02T18:30:00Z",
                    "videos": lesson_list("a", 4),
                    "isCompleted": True,
                },
                {
                    "_id": "c2",
                    "title": "Video Editing Basics",
                    "duration": "5 lessons",
                    "totalLessons": 5,
                    "completedLessons": 2,
                    "progress": 40,
                    "lastWatched": "2025-03-04T09:15:00Z",
                    "videos": lesson_list("v", 5),
                    "isCompleted": False,
                },
                {
                    "_id": "c3",
                    "title": "Channel Growth Playbook",
                    "duration": "3 lessons",
                    "totalLessons": 3,
                    "completedLessons": 0,
                    "progress": 0,
                    "lastWatched": None,
                    "videos": lesson_list("g", 3),
                    "isCompleted": False,
                },
            ],
            "totalCourses": 3,
        },
    }


def course_payload(course_id: str = "c2", title: str = "Video Editing Basics", lessons: int = 5, prefix: str = "v", community: bool = True) -> dict:
    return {
        "success": True,
        "data": {
            "course": {
                "_id": course_id,
                "title": title,
                "description": "Learn to edit.",
                "price": 49.99,
                "category": "video",
                "instructor": {"name": "Dana"},
                "totalEnrollments": 120,
                "videos": lesson_list(prefix, lessons),
                "hasWhatsappGroup": community,
            }
        },
    }


class FakeBackend:
    """
    Route table for httpx.MockTransport.
    Each route is (status, json) or a callable(request) returning an
    httpx.Response (sync or async).
    """

    def __init__(self, prefix: str = "/api"):
        self.prefix = prefix
        self.routes: dict[tuple[str, str], object] = {}
        self.calls: list[tuple[str, str, str | None]] = []

    def on(self, method: str, path: str, status: int = 200, json: object = None, handler=None) -> None:
        self.routes[(method.upper(), path)] = handler if handler is not None else (status, json)

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.calls if m == method and p == path)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith(self.prefix):
            path = path[len(self.prefix):]
        self.calls.append((request.method, path, request.headers.get("authorization")))
        entry = self.routes.get((request.method, path))
        if entry is None:
            return httpx.Response(404, json={"success": False, "message": "Route not found"})
        if callable(entry):
            result = entry(request)
            if inspect.isawaitable(result):
                result = await result
            return result
        status, body = entry
        return httpx.Response(status, json=body)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def services(backend):
    """Fully wired client services over the fake backend."""
    from coursehub.bootstrap import build_services
    return build_services(BASE_URL, transport=httpx.MockTransport(backend))


@pytest.fixture
def token():
    return make_token()


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def login_response():
    return login_payload


@pytest.fixture
def dashboard():
    return dashboard_payload()


@pytest.fixture
def course_response():
    return course_payload


@pytest_asyncio.fixture
async def signed_in(services, backend, token):
    """Services with an authenticated learner session (user-1)."""
    backend.on("POST", "/login", json=login_payload(token))
    await services.sessions.authenticate("learner@example.com", "secret123")
    return services
