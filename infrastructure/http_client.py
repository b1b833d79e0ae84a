"""Shared async HTTP client with configurable timeout."""

from typing import Any

import httpx

from shared.logging import get_logger

log = get_logger(__name__)


class HttpClient:
    """Thin async wrapper around httpx.AsyncClient with a configurable timeout.

    One instance per external service (email API, SMS API) keeps timeouts
    independently configurable and tags outbound-call logs with the service.
    """

    def __init__(self, timeout: float = 5.0, service: str = "external") -> None:
        self._client = httpx.AsyncClient(timeout=timeout)
        self.service = service

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        response = await self._client.post(url, **kwargs)
        log.debug(
            "outbound_request",
            service=self.service,
            method="POST",
            status_code=response.status_code,
        )
        return response

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()
