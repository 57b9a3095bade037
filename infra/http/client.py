from typing import Any, Callable, Optional

import httpx

from coursehub.config import get_settings
from coursehub.utils.errors import AuthError, NetworkError, ResponseShapeError, ValidationError, error_for_status, friendly_message
from coursehub.utils.logger import clear_request_id, configure_logging, get_logger, set_request_id
from coursehub.utils.normalize import message_of

configure_logging()
logger = get_logger("http")

CredentialProvider = Callable[[], Optional[str]]
UnauthorizedHook = Callable[[AuthError], None]


class ApiClient:
    """
    Async JSON client for the course backend.

    - Attaches `Authorization: Bearer <token>` to privileged calls.
    - Maps non-2xx responses onto the client error taxonomy.
    - Calls the unauthorized hook on 401/403 before raising, so the session is
      invalidated no matter which component made the call.
    - Never retries.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.request_timeout_seconds
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
        self._credential_provider: CredentialProvider = lambda: None
        self._on_unauthorized: Optional[UnauthorizedHook] = None

    def bind_auth(self, credential_provider: CredentialProvider, on_unauthorized: UnauthorizedHook) -> None:
        """Wire the session owner in. Only SessionState calls this."""
        self._credential_provider = credential_provider
        self._on_unauthorized = on_unauthorized

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        auth: bool = True,
    ) -> Any:
        headers: dict[str, str] = {}
        if auth:
            token = self._credential_provider()
            if not token:
                raise AuthError("Authentication required")
            headers["Authorization"] = f"Bearer {token}"

        rid = set_request_id()
        headers["x-request-id"] = rid
        try:
            logger.info("request start method=%s path=%s", method, path)
            try:
                response = await self._client.request(method, path, params=params, json=json, headers=headers)
            except httpx.TimeoutException as e:
                logger.warning("request timeout method=%s path=%s", method, path)
                raise NetworkError("Request timed out") from e
            except httpx.TransportError as e:
                logger.warning("request transport error method=%s path=%s error=%s", method, path, e)
                raise NetworkError(f"Network error: {e}") from e
            logger.info("request end status=%s method=%s path=%s", response.status_code, method, path)
            return self._handle(response, path)
        finally:
            clear_request_id()

    def _handle(self, response: httpx.Response, path: str) -> Any:
        try:
            body = response.json() if response.content else None
        except ValueError:
            body = None
            if response.is_success:
                logger.warning("non-json body status=%s path=%s", response.status_code, path)
                raise ResponseShapeError(f"Unexpected non-JSON response from {path}")

        if not response.is_success:
            error = error_for_status(response.status_code, message_of(body))
            if isinstance(error, AuthError):
                logger.warning("unauthorized status=%s path=%s deactivated=%s", response.status_code, path, error.deactivated)
                if self._on_unauthorized is not None:
                    self._on_unauthorized(error)
            elif isinstance(error, ValidationError):
                logger.debug("rejected input status=%s path=%s message=%s", response.status_code, path, error.message)
            else:
                logger.warning("http error status=%s path=%s message=%s", response.status_code, path, error.message)
            raise error

        if isinstance(body, dict) and body.get("success") is False:
            raise ValidationError(friendly_message(message_of(body)), status_code=response.status_code)
        return body

    async def get(self, path: str, *, params: Optional[dict[str, Any]] = None, auth: bool = True) -> Any:
        return await self.request("GET", path, params=params, auth=auth)

    async def post(self, path: str, *, json: Any = None, auth: bool = True) -> Any:
        return await self.request("POST", path, json=json, auth=auth)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["ApiClient"]
