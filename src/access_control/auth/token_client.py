"""Token service client resolving request tokens to user ids."""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog
from cachetools import TTLCache

from access_control.errors import DependencyError, TokenError

logger = structlog.get_logger()


class TokenClient:
    """Resolves tokens against the remote token service.

    Resolved user ids are cached for ``cache_ttl`` seconds; unknown tokens are
    never cached.
    """

    TOKEN_INFO_PATH = "/tokens/{token}/token_info"

    def __init__(
        self,
        base_url: str,
        system_token: str = "",
        timeout: float = 30.0,
        cache_ttl: int = 300,
        cache_maxsize: int = 1000,
    ):
        self._base_url = base_url.rstrip("/")
        self._system_token = system_token
        self._timeout = timeout
        self._cache: TTLCache[str, str] = TTLCache(maxsize=cache_maxsize, ttl=cache_ttl)
        self._http_client: httpx.AsyncClient | None = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def get_user_id(self, token: str) -> str:
        if token in self._cache:
            logger.debug("token_cache_hit")
            return self._cache[token]

        client = await self._get_http_client()
        headers = {"Authorization": self._system_token} if self._system_token else {}
        path = self.TOKEN_INFO_PATH.format(token=quote(token, safe=""))
        url = f"{self._base_url}{path}"
        try:
            response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error("token_service_unreachable", error=str(e))
            raise DependencyError("token service", str(e)) from e

        if response.status_code in (401, 404):
            raise TokenError(f"Token {token} does not exist")
        if response.status_code >= 400:
            logger.error("token_service_failed", status=response.status_code)
            raise DependencyError("token service", f"HTTP {response.status_code}")

        user_id = response.json()["token_info"]["user_name"]
        self._cache[token] = user_id
        logger.debug("token_cache_miss", user_id=user_id)
        return user_id

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
