from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from core.config import DEFAULT_API_BASE_URL, DEFAULT_USER_AGENT
from core.errors import FetchError
from models.server import DEFAULT_PORT
from providers.base import StatusFetcher

log = logging.getLogger(__name__)


class McSrvStatFetcher(StatusFetcher):
    """Adapter for the mcsrvstat.us v3 JSON API.

    The API answers ``GET /3/<address>`` with a JSON document describing
    the server, including ``"online": false`` for unreachable servers, so
    an offline server is a successful fetch and not an error.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = DEFAULT_API_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        super().__init__(client)
        self._base_url = base_url.rstrip("/")
        self._headers = {
            "User-Agent": user_agent,
            "Accept": "application/json",
        }

    @property
    def name(self) -> str:
        return "mcsrvstat.us"

    def url_for(self, host: str, port: int = DEFAULT_PORT) -> str:
        address = host if port == DEFAULT_PORT else f"{host}:{port}"
        return f"{self._base_url}/{quote(address, safe='')}"

    async def fetch(self, host: str, port: int, timeout: float) -> dict[str, Any]:
        url = self.url_for(host, port)
        log.debug("[%s] GET %s", self.name, url)

        try:
            resp = await self._client.get(url, headers=self._headers, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise FetchError(
                "timeout", f"API request timeout after {timeout:g}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError("network_error", f"API request failed: {exc}") from exc

        if not resp.is_success:
            raise FetchError(
                "http_error",
                f"API request failed: {resp.status_code} {resp.reason_phrase}",
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise FetchError("http_error", "API returned a non-JSON response") from exc

        if not data:
            raise FetchError("http_error", "API returned null or empty response")

        log.debug(
            "[%s] %s:%d online=%s has_players=%s",
            self.name,
            host,
            port,
            data.get("online") if isinstance(data, dict) else None,
            isinstance(data, dict) and bool(data.get("players")),
        )
        return data
