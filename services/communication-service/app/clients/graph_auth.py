# services/communication-service/app/clients/graph_auth.py
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import httpx

from app.config import settings
from app.errors import RepositoryUnavailable

logger = logging.getLogger("app.clients.graph_auth")

Clock = Callable[[], float]


@dataclass
class AccessToken:
    value: str
    expires_at: float  # epoch seconds, nominal expiry reported by the issuer


class TokenCache:
    """
    Holds one bearer token plus its expiry. A token is handed out only while
    `now < expires_at - safety_margin`; otherwise `fetch` is awaited once
    (concurrent callers share the refresh).
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[AccessToken]],
        *,
        safety_margin_seconds: float = 300,
        clock: Clock = time.time,
    ) -> None:
        self._fetch = fetch
        self._margin = safety_margin_seconds
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._lock = asyncio.Lock()

    def _is_fresh(self, token: Optional[AccessToken]) -> bool:
        return token is not None and self._clock() < token.expires_at - self._margin

    async def get(self) -> str:
        token = self._token
        if self._is_fresh(token):
            return token.value  # type: ignore[union-attr]
        async with self._lock:
            if not self._is_fresh(self._token):
                self._token = await self._fetch()
                logger.debug("Access token refreshed; expires_at=%s", self._token.expires_at)
            return self._token.value  # type: ignore[union-attr]

    def invalidate(self) -> None:
        self._token = None


class ClientCredentialsTokenProvider:
    """
    OAuth2 client-credentials flow against the Microsoft identity platform.
    Only the service's own machine credential is ever used for Graph.
    """

    def __init__(
        self,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Clock = time.time,
    ) -> None:
        self._client = http_client
        self._clock = clock
        self.token_url = f"{settings.graph_authority_host.rstrip('/')}/{settings.graph_tenant_id}/oauth2/v2.0/token"
        self.cache = TokenCache(
            self._request_token,
            safety_margin_seconds=settings.graph_token_safety_margin_seconds,
            clock=clock,
        )

    async def _request_token(self) -> AccessToken:
        form = {
            "client_id": settings.graph_client_id,
            "client_secret": settings.graph_client_secret,
            "scope": settings.graph_scope,
            "grant_type": "client_credentials",
        }
        issued_at = self._clock()
        try:
            if self._client is not None:
                resp = await self._client.post(self.token_url, data=form)
            else:
                async with httpx.AsyncClient(timeout=settings.http_client_timeout_seconds) as client:
                    resp = await client.post(self.token_url, data=form)
        except httpx.HTTPError as exc:
            logger.error("Token request failed: %s", exc)
            raise RepositoryUnavailable(f"Token request failed: {exc}") from exc

        if resp.status_code != 200:
            logger.error("Token endpoint returned HTTP %s", resp.status_code)
            raise RepositoryUnavailable(f"Token endpoint returned HTTP {resp.status_code}")

        body = resp.json()
        return AccessToken(
            value=body["access_token"],
            expires_at=issued_at + float(body.get("expires_in", 3600)),
        )

    async def get_token(self) -> str:
        return await self.cache.get()
