"""
Session state: the one place that creates and clears the learner's session.

Other components only read `current_session()`. The HTTP client is wired to
call `invalidate()` on any 401/403, so an authorization failure anywhere forces
re-authentication before the next privileged call.
"""

from typing import Callable, Optional

from pydantic import ValidationError as PydanticValidationError

from coursehub.schemas.auth_schemas import LoginRequest, RegisterRequest, RegisterResponse, Session, SessionUser
from coursehub.utils.errors import ApiError, AuthError, ValidationError
from coursehub.utils.jwt import read_token_claims, token_expired
from coursehub.utils.logger import configure_logging, get_logger
from coursehub.utils.normalize import normalize_login, normalize_me, normalize_register
from infra.http.client import ApiClient

configure_logging()
logger = get_logger("session")

InvalidationListener = Callable[[str], None]


def _input_error(e: PydanticValidationError) -> ValidationError:
    first = e.errors()[0] if e.errors() else {}
    loc = first.get("loc") or ()
    msg = str(first.get("msg") or "Invalid input")
    # pydantic prefixes ValueError messages raised inside validators
    msg = msg.removeprefix("Value error, ")
    return ValidationError(msg, field=str(loc[0]) if loc else None)


class SessionState:
    """Holds at most one active Session for the client process."""

    def __init__(self, client: ApiClient):
        self.client = client
        self._session: Optional[Session] = None
        self._listeners: list[InvalidationListener] = []
        self.last_invalidation_reason: Optional[str] = None
        self.deactivated = False
        client.bind_auth(self._credential, self._on_unauthorized)

    # ----- reads -----

    def current_session(self) -> Optional[Session]:
        if self._session is not None and token_expired(self._session.credential):
            self.invalidate("token expired")
        return self._session

    def require_session(self) -> Session:
        session = self.current_session()
        if session is None:
            raise AuthError("Authentication required")
        return session

    def add_invalidation_listener(self, listener: InvalidationListener) -> None:
        """Called with the reason whenever the session is cleared (e.g. redirect to login)."""
        self._listeners.append(listener)

    # ----- writes -----

    async def authenticate(self, email: str, password: str) -> Session:
        try:
            credentials = LoginRequest(email=email, password=password)
        except PydanticValidationError as e:
            raise _input_error(e) from e

        payload = await self.client.post("/login", json=credentials.model_dump(), auth=False)
        result = normalize_login(payload)
        session = self._build_session(result.token, result.user)
        # the previous session survives a failed attempt
        if self._session is not None:
            self.invalidate("re-authentication")
        self._session = session
        self.deactivated = False
        self.last_invalidation_reason = None
        logger.info("session created subject=%s role=%s", session.subject_id, session.role.value)
        return session

    async def register(self, name: str, email: str, password: str, confirm_password: str) -> RegisterResponse:
        try:
            req = RegisterRequest(name=name, email=email, password=password, confirm_password=confirm_password)
        except PydanticValidationError as e:
            raise _input_error(e) from e
        payload = await self.client.post(
            "/register",
            json={"name": req.name, "email": req.email, "password": req.password},
            auth=False,
        )
        response = normalize_register(payload)
        logger.info("registration submitted verification_required=%s", response.verification_required)
        return response

    async def verify(self) -> Optional[Session]:
        """
        Heartbeat against GET /me. A 401/403 invalidates the session through the
        client hook; a network failure leaves the session untouched and propagates.
        """
        session = self.current_session()
        if session is None:
            return None
        try:
            payload = await self.client.get("/me")
        except AuthError:
            return None
        user = normalize_me(payload)
        if user.subject_id != session.subject_id:
            self.invalidate("identity changed")
            return None
        return session

    async def sign_out(self) -> None:
        if self._session is None:
            return
        try:
            await self.client.post("/logout")
        except ApiError as e:
            # the local session is cleared regardless of what the backend says
            logger.info("logout call failed error=%s", e)
        self.invalidate("signed out")

    def invalidate(self, reason: str = "invalidated") -> None:
        if self._session is None:
            return
        logger.info("session invalidated subject=%s reason=%s", self._session.subject_id, reason)
        self._session = None
        self.last_invalidation_reason = reason
        for listener in list(self._listeners):
            listener(reason)

    # ----- internals -----

    def _build_session(self, token: str, user: SessionUser) -> Session:
        claims = read_token_claims(token)
        return Session(
            subject_id=user.subject_id,
            email=user.email,
            name=user.name,
            role=user.role,
            credential=token,
            expires_at=claims.exp if claims else None,
        )

    def _credential(self) -> Optional[str]:
        session = self.current_session()
        return session.credential if session else None

    def _on_unauthorized(self, error: AuthError) -> None:
        if error.deactivated:
            self.deactivated = True
        self.invalidate(error.message)
