"""
Base gateway client implementing shared concerns: http, auth, logging, error mapping.

Retries and per-operation deadlines are not done here; the application's
GatewayCallExecutor owns them. This layer only turns transport outcomes
into the GatewayCallError family.
"""
from __future__ import annotations

from typing import Any, Optional
from contextlib import asynccontextmanager

import httpx

from core.logging_config import get_logger
from application.ports.payment_gateway import (
    GatewayAuthError,
    GatewayCallError,
    GatewayConnectionError,
    GatewayNotFoundError,
    GatewayRequestError,
    GatewayServerError,
    GatewayTimeoutError,
)


logger = get_logger(__name__)


class BaseGatewayClient:
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str,
        auth: Optional[tuple[str, str]] = None,
        timeouts: Optional[dict[str, float]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._auth = auth
        self._timeouts_cfg = timeouts or {"connect": 5.0, "total": 60.0}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(self._timeouts_cfg["total"], connect=self._timeouts_cfg["connect"])

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                auth=httpx.BasicAuth(*self._auth) if self._auth else None,
                timeout=self.timeouts,
                transport=self._transport,
            )
        try:
            yield self._client
        finally:
            # Keep open for reuse; explicit aclose() will close.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> dict[str, Any]:
        try:
            async with self.client() as http:
                response = await http.request(method, path, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise GatewayTimeoutError(f"{self.provider} {method} {path} timed out") from exc
        except httpx.TransportError as exc:
            raise GatewayConnectionError(f"{self.provider} {method} {path} failed: {exc}") from exc

        if response.is_success:
            return response.json()
        raise self._map_error(response, method, path)

    def _map_error(self, response: httpx.Response, method: str, path: str) -> GatewayCallError:
        code, description = self._error_detail(response)
        status = response.status_code
        # Raw body stays in logs; callers only see the translated error
        logger.warning(
            "gateway_http_error",
            provider=self.provider,
            method=method,
            path=path,
            status_code=status,
            gateway_code=code,
            detail=description,
        )
        message = f"{self.provider} {method} {path} -> {status}"
        kwargs = {"status_code": status, "code": code, "description": description}
        if status in (401, 403):
            return GatewayAuthError(message, **kwargs)
        if status == 404:
            return GatewayNotFoundError(message, **kwargs)
        if status == 429 or status >= 500:
            return GatewayServerError(message, **kwargs)
        return GatewayRequestError(message, **kwargs)

    @staticmethod
    def _error_detail(response: httpx.Response) -> tuple[Optional[str], Optional[str]]:
        try:
            body = response.json()
        except ValueError:
            return None, response.text[:500] or None
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return error.get("code"), error.get("description") or error.get("reason")
        return None, str(body)[:500]

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
