import re
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


class SessionRole(str, Enum):
    LEARNER = "learner"
    ADMIN = "admin"


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_RE.match(v):
            raise ValueError("Please provide a valid email address")
        return v

    @field_validator("password")
    @classmethod
    def _password_present(cls, v: str) -> str:
        if not v:
            raise ValueError("Email and password are required")
        return v


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    confirm_password: str

    @field_validator("name")
    @classmethod
    def _name_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name, email, and password are required")
        return v

    @field_validator("email")
    @classmethod
    def _valid_email(cls, v: str) -> str:
        v = v.strip().lower()
        if not _EMAIL_RE.match(v):
            raise ValueError("Please provide a valid email address")
        return v

    @field_validator("password")
    @classmethod
    def _password_length(cls, v: str) -> str:
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        return v

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class RegisterResponse(BaseModel):
    message: str = ""
    verification_required: bool = False


class AuthTokenPayload(BaseModel):
    """Unverified claims carried by a bearer token."""
    model_config = ConfigDict(extra="ignore")

    sub: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    email: Optional[str] = None
    role: Optional[str] = None
    exp: Optional[datetime] = None


class SessionUser(BaseModel):
    """Identity part of a login response, after normalization."""
    subject_id: str
    email: str
    name: Optional[str] = None
    role: SessionRole = SessionRole.LEARNER


class LoginResult(BaseModel):
    token: str
    user: SessionUser


class Session(BaseModel):
    """The single authenticated session held by the client process."""
    model_config = ConfigDict(frozen=True)

    subject_id: str
    email: str
    role: SessionRole
    credential: str = Field(repr=False)
    name: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == SessionRole.ADMIN
