from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from analytics_chat.errors import ErrorEnvelope

DEFAULT_TIMEOUT_SECONDS = 45.0

_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json, text/csv;q=0.9, */*;q=0.8",
}


@dataclass(frozen=True)
class GatewayResult:
    data: Any = None
    content: bytes | None = None
    content_type: str = ""
    status_code: int | None = None
    error: ErrorEnvelope | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TransportGateway:
    """Bounded-time proxy to the analytics backend.

    Every call is attempted once. Failures come back as a ``GatewayResult``
    carrying an ``ErrorEnvelope``; nothing is raised to the caller.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=_HEADERS,
                timeout=self._timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def forward(
        self,
        path: str,
        method: str = "GET",
        *,
        body: dict | None = None,
        query_params: dict[str, Any] | None = None,
        raw: bool = False,
    ) -> GatewayResult:
        method = method.upper()
        params = {k: v for k, v in (query_params or {}).items() if v is not None}
        logger.debug(f"Forwarding {method} {path} (params={params}, raw={raw})")

        try:
            response = await asyncio.wait_for(
                self._get_client().request(method, path, json=body, params=params or None),
                timeout=self._timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"{method} {path} exceeded {self._timeout_seconds:g}s and was cancelled")
            return GatewayResult(error=ErrorEnvelope.timeout(self._timeout_seconds))
        except httpx.NetworkError as ex:
            logger.error(f"Cannot reach backend at {self._base_url}: {ex}")
            return GatewayResult(error=ErrorEnvelope.network_unavailable(str(ex)))
        except httpx.HTTPError as ex:
            logger.error(f"{method} {path} failed: {ex}")
            return GatewayResult(error=ErrorEnvelope.unknown(str(ex) or type(ex).__name__))
        except Exception as ex:
            logger.error(f"Unexpected error forwarding {method} {path}: {ex}")
            return GatewayResult(error=ErrorEnvelope.unknown(str(ex) or type(ex).__name__))

        status = response.status_code
        content_type = response.headers.get("content-type", "")

        if not response.is_success:
            logger.error(f"API error {status} for {method} {path}: {response.text[:500]}")
            if status == 503:
                error = ErrorEnvelope.service_unavailable()
            else:
                error = ErrorEnvelope.upstream(status)
            return GatewayResult(status_code=status, content_type=content_type, error=error)

        if raw:
            return GatewayResult(content=response.content, content_type=content_type, status_code=status)

        try:
            data = response.json()
        except ValueError:
            logger.error(f"Backend returned non-JSON body for {method} {path} ({content_type or 'no content-type'})")
            return GatewayResult(
                status_code=status,
                content_type=content_type,
                error=ErrorEnvelope.unknown("Invalid response from the analytics service"),
            )
        return GatewayResult(data=data, status_code=status, content_type=content_type)
