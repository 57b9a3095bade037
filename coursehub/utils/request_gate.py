"""
Last-issued-wins bookkeeping for async requests.

Results are applied by issue order, never by arrival order: every request takes
a ticket for its logical key, and a result is applied only while its ticket is
still the latest one for that key. A single event loop serializes all writes,
so no locking is involved.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from coursehub.utils.errors import ApiError, AuthError
from coursehub.utils.logger import configure_logging, get_logger

configure_logging()
logger = get_logger("gate")

T = TypeVar("T")


@dataclass(frozen=True)
class Ticket:
    key: str
    seq: int


class RequestGate:
    def __init__(self) -> None:
        self._seq = itertools.count(1)
        self._latest: dict[str, int] = {}

    def issue(self, key: str) -> Ticket:
        ticket = Ticket(key=key, seq=next(self._seq))
        self._latest[key] = ticket.seq
        return ticket

    def is_current(self, ticket: Ticket) -> bool:
        return self._latest.get(ticket.key) == ticket.seq

    def latest(self, key: str) -> Optional[int]:
        return self._latest.get(key)

    def supersede(self, key: Optional[str] = None) -> None:
        """Make every in-flight ticket for `key` (or for all keys) stale."""
        keys = [key] if key is not None else list(self._latest)
        for k in keys:
            self._latest[k] = next(self._seq)


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class ViewState(Generic[T]):
    """
    Data slot owned by one view (dashboard, course detail, certificate list).

    - `load()` supersedes any load still in flight for this view.
    - Component-local failures land in `error` with a `retry()` affordance.
    - AuthError is recorded and re-raised so the caller forces re-authentication.
    - After `teardown()` in-flight fetches are cancelled and late results dropped.
    """

    def __init__(self, name: str):
        self.name = name
        self.data: Optional[T] = None
        self.error: Optional[ApiError] = None
        self.status = LoadStatus.IDLE
        self.key: Optional[str] = None
        self._gate = RequestGate()
        self._tasks: set[asyncio.Future] = set()
        self._closed = False
        self._last: Optional[tuple[str, Callable[[], Awaitable[T]]]] = None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def can_retry(self) -> bool:
        return self.status == LoadStatus.ERROR and self._last is not None and not self._closed

    async def load(self, key: str, fetch: Callable[[], Awaitable[T]]) -> Optional[T]:
        """Fetch and apply. Returns the applied value, or None when the result was discarded or failed."""
        if self._closed:
            logger.debug("view=%s load after teardown ignored key=%s", self.name, key)
            return None

        ticket = self._gate.issue(self.name)
        self._last = (key, fetch)
        self.key = key
        self.status = LoadStatus.LOADING

        task = asyncio.ensure_future(fetch())
        self._tasks.add(task)
        try:
            result = await task
        except asyncio.CancelledError:
            if self._closed:
                logger.debug("view=%s fetch cancelled by teardown key=%s", self.name, key)
                return None
            raise
        except AuthError as e:
            if self._apply_allowed(ticket):
                self.status = LoadStatus.ERROR
                self.error = e
            raise
        except ApiError as e:
            if not self._apply_allowed(ticket):
                logger.debug("view=%s stale failure dropped key=%s error=%s", self.name, key, e)
                return None
            logger.warning("view=%s load failed key=%s error=%s", self.name, key, e)
            self.status = LoadStatus.ERROR
            self.error = e
            return None
        finally:
            self._tasks.discard(task)

        if not self._apply_allowed(ticket):
            logger.debug("view=%s stale response discarded key=%s", self.name, key)
            return None
        self.data = result
        self.error = None
        self.status = LoadStatus.LOADED
        return result

    async def retry(self) -> Optional[T]:
        if self._last is None:
            return None
        key, fetch = self._last
        return await self.load(key, fetch)

    def teardown(self) -> None:
        self._closed = True
        self._gate.supersede()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    def _apply_allowed(self, ticket: Ticket) -> bool:
        return not self._closed and self._gate.is_current(ticket)
