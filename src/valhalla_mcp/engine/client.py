from __future__ import annotations

import logging
import typing as t

import httpx

from ..core.errors import RemoteEngineInvalidResponseError
from .base import JSON, RoutingEngine

_logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8002"
DEFAULT_TIMEOUT_SECONDS = 30.0


class ValhallaClient(RoutingEngine):
    """HTTP client for a Valhalla routing service.

    - `POST /route`, `POST /isochrone` with JSON bodies
    - `GET /status` for health
    - `GET /tile/{z}/{x}/{y}.pbf` for raw vector tiles

    Non-2xx responses raise `httpx.HTTPStatusError`; bodies that are not the
    JSON object we expect raise `RemoteEngineInvalidResponseError`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: t.Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout_seconds,
            headers={"Content-Type": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "ValhallaClient":
        return self

    async def __aexit__(self, *exc_info: t.Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def route(self, request: JSON) -> JSON:
        return await self._post_json("/route", request)

    async def isochrone(self, request: JSON) -> JSON:
        return await self._post_json("/isochrone", request)

    async def health(self) -> JSON:
        response = await self._http.get("/status")
        response.raise_for_status()
        return self._decode(response)

    async def tile(self, z: int, x: int, y: int) -> bytes:
        response = await self._http.get(f"/tile/{z}/{x}/{y}.pbf")
        response.raise_for_status()
        return response.content

    async def _post_json(self, path: str, payload: JSON) -> JSON:
        _logger.debug("POST %s%s", self._base_url, path)
        response = await self._http.post(path, json=payload)
        response.raise_for_status()
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> JSON:
        details = {"url": str(response.request.url), "method": response.request.method, "status": response.status_code}
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteEngineInvalidResponseError("Routing engine returned a non-JSON body", details=details) from exc
        if not isinstance(data, dict):
            raise RemoteEngineInvalidResponseError("Routing engine returned an unexpected JSON payload", details=details)
        return data
