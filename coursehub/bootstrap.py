from dataclasses import dataclass
from typing import Optional

import httpx

from coursehub.services.access_service import AccessAuthorizer
from coursehub.services.catalog_service import CourseCatalog
from coursehub.services.enrollment_service import EnrollmentAggregator
from coursehub.services.session_service import SessionState
from infra.http.client import ApiClient


@dataclass
class Services:
    client: ApiClient
    sessions: SessionState
    catalog: CourseCatalog
    enrollments: EnrollmentAggregator
    access: AccessAuthorizer

    async def aclose(self) -> None:
        await self.client.aclose()


def build_services(
    base_url: Optional[str] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    timeout: Optional[float] = None,
) -> Services:
    client = ApiClient(base_url, transport=transport, timeout=timeout)
    sessions = SessionState(client)
    catalog = CourseCatalog(client)
    enrollments = EnrollmentAggregator(sessions)
    access = AccessAuthorizer(enrollments, catalog)
    return Services(
        client=client,
        sessions=sessions,
        catalog=catalog,
        enrollments=enrollments,
        access=access,
    )
