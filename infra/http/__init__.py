"""
HTTP transport adapters live here (infra adapters).

`infra.http.client.ApiClient` is the only component that talks to the backend;
services receive it by injection so tests can swap the httpx transport.
"""

__all__ = []
