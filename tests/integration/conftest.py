"""
Integration test fixtures. A small in-memory FastAPI backend that speaks the
course platform's wire format, mounted under /api and reached through
httpx.ASGITransport so no socket is opened.
"""
import asyncio
import time
import uuid
from typing import Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends, FastAPI, Header, HTTPException
from jose import jwt
from pydantic import BaseModel

BASE_URL = "http://testserver/api"
SECRET = "integration-secret"


class LoginBody(BaseModel):
    email: str
    password: str


class RegisterBody(BaseModel):
    name: str
    email: str
    password: str


class CompleteBody(BaseModel):
    courseId: str
    videoId: str


def _videos(prefix: str, count: int) -> list[dict]:
    return [{"_id": f"{prefix}{i}", "title": f"Part {i}", "duration": "04:30", "order": i} for i in range(1, count + 1)]


class CourseBackend:
    """Server-side state. Tests poke at it directly to simulate server events."""

    def __init__(self):
        self.users: dict[str, dict] = {
            "learner@example.com": {"_id": "u-learner", "name": "Lee Learner", "password": "secret123", "role": "user", "active": True},
        }
        self.courses: dict[str, dict] = {
            "seo": {"_id": "seo", "title": "Mastering YouTube SEO", "price": 29.0, "videos": _videos("s", 2), "hasWhatsappGroup": True},
            "edit": {"_id": "edit", "title": "Video Editing Basics", "price": 49.0, "videos": _videos("e", 4), "hasWhatsappGroup": False},
            "growth": {"_id": "growth", "title": "Channel Growth Playbook", "price": 19.0, "videos": _videos("g", 3)},
        }
        self.purchases: dict[str, list[str]] = {"u-learner": ["seo", "edit"]}
        self.completed: dict[tuple[str, str], list[str]] = {}
        self.tokens: dict[str, str] = {}
        self.course_delay: dict[str, asyncio.Event] = {}

    def issue_token(self, user_id: str, email: str) -> str:
        token = jwt.encode(
            {"sub": user_id, "email": email, "exp": int(time.time()) + 3600, "jti": uuid.uuid4().hex},
            SECRET,
            algorithm="HS256",
        )
        self.tokens[token] = user_id
        return token

    def revoke_all(self) -> None:
        self.tokens.clear()

    def dashboard_rows(self, user_id: str) -> list[dict]:
        rows = []
        for course_id in self.purchases.get(user_id, []):
            course = self.courses[course_id]
            done = self.completed.get((user_id, course_id), [])
            total = len(course["videos"])
            percent = (100 * len(done)) // total if total else 0
            rows.append({
                "_id": course_id,
                "title": course["title"],
                "duration": f"{total} lessons",
                "totalLessons": total,
                "completedLessons": len(done),
                "progress": percent,
                "lastWatched": None,
                "videos": course["videos"],
                # server-side threshold
                "isCompleted": percent >= 90,
            })
        return rows


def create_app(state: CourseBackend) -> FastAPI:
    app = FastAPI()

    def current_user(authorization: Optional[str] = Header(default=None)) -> str:
        if not authorization or not authorization.startswith("Bearer "):
            raise HTTPException(status_code=401, detail="No token provided")
        user_id = state.tokens.get(authorization[len("Bearer "):])
        if user_id is None:
            raise HTTPException(status_code=401, detail="Token has been invalidated")
        return user_id

    @app.post("/api/login")
    def login(body: LoginBody):
        user = state.users.get(body.email)
        if user is None or user["password"] != body.password:
            raise HTTPException(status_code=401, detail="Invalid credentials")
        if not user["active"]:
            raise HTTPException(status_code=403, detail="Account is not active")
        token = state.issue_token(user["_id"], body.email)
        return {"success": True, "data": {"token": token, "user": {**{k: v for k, v in user.items() if k != "password"}, "email": body.email}}}

    @app.post("/api/register", status_code=201)
    def register(body: RegisterBody):
        if body.email in state.users:
            raise HTTPException(status_code=409, detail="User with this email already exists")
        state.users[body.email] = {"_id": f"u-{uuid.uuid4().hex[:6]}", "name": body.name, "password": body.password, "role": "user", "active": True}
        return {"success": True, "message": "Registration successful", "data": {"verificationRequired": True}}

    @app.post("/api/logout")
    def logout(authorization: Optional[str] = Header(default=None), user_id: str = Depends(current_user)):
        state.tokens.pop(authorization[len("Bearer "):], None)
        return {"success": True}

    @app.get("/api/me")
    def me(user_id: str = Depends(current_user)):
        email, user = next((e, u) for e, u in state.users.items() if u["_id"] == user_id)
        return {"success": True, "data": {"user": {"_id": user_id, "email": email, "name": user["name"]}}}

    @app.get("/api/courses")
    def list_courses():
        return {"success": True, "data": {"courses": list(state.courses.values())}}

    @app.get("/api/courses/{course_id}")
    async def get_course(course_id: str):
        gate = state.course_delay.get(course_id)
        if gate is not None:
            await gate.wait()
        course = state.courses.get(course_id)
        if course is None:
            raise HTTPException(status_code=404, detail="Course not found")
        return {"success": True, "data": {"course": course}}

    @app.get("/api/courses/{course_id}/group-token")
    def group_token(course_id: str, user_id: str = Depends(current_user)):
        if course_id not in state.purchases.get(user_id, []):
            raise HTTPException(status_code=403, detail="Purchase required")
        return {"success": True, "joinUrl": f"/api/group/join/{uuid.uuid4().hex}", "expiresAt": "2099-01-01T00:00:00Z"}

    @app.get("/api/progress/dashboard")
    def dashboard(user_id: str = Depends(current_user)):
        rows = state.dashboard_rows(user_id)
        return {"success": True, "data": {"courses": rows, "totalCourses": len(rows)}}

    @app.post("/api/progress/complete-video")
    def complete_video(body: CompleteBody, user_id: str = Depends(current_user)):
        if body.courseId not in state.purchases.get(user_id, []):
            raise HTTPException(status_code=403, detail="Purchase required")
        video_ids = [v["_id"] for v in state.courses[body.courseId]["videos"]]
        if body.videoId not in video_ids:
            raise HTTPException(status_code=400, detail="Video not found in course")
        done = state.completed.setdefault((user_id, body.courseId), [])
        if body.videoId not in done:
            done.append(body.videoId)
        return {"success": True, "message": "Video marked as completed"}

    return app


@pytest.fixture
def server_state():
    return CourseBackend()


@pytest.fixture
def fake_app(server_state):
    return create_app(server_state)


@pytest_asyncio.fixture
async def live_services(fake_app):
    """Client services talking to the in-process FastAPI backend."""
    from coursehub.bootstrap import build_services
    services = build_services(BASE_URL, transport=httpx.ASGITransport(app=fake_app))
    yield services
    await services.aclose()
