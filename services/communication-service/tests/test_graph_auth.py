import asyncio

import httpx
import pytest

from app.clients.graph_auth import AccessToken, ClientCredentialsTokenProvider, TokenCache
from app.errors import RepositoryUnavailable


class FakeClock:
    def __init__(self, now: float = 1_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _counting_fetch(clock, lifetime=3600):
    calls = []

    async def fetch():
        calls.append(clock())
        return AccessToken(value=f"tok-{len(calls)}", expires_at=clock() + lifetime)

    return fetch, calls


async def test_token_reused_until_margin():
    clock = FakeClock()
    fetch, calls = _counting_fetch(clock)
    cache = TokenCache(fetch, safety_margin_seconds=300, clock=clock)

    assert await cache.get() == "tok-1"
    clock.now += 3600 - 301
    assert await cache.get() == "tok-1"
    assert len(calls) == 1


async def test_token_refreshed_inside_margin():
    clock = FakeClock()
    fetch, calls = _counting_fetch(clock)
    cache = TokenCache(fetch, safety_margin_seconds=300, clock=clock)

    await cache.get()
    clock.now += 3600 - 300
    assert await cache.get() == "tok-2"
    assert len(calls) == 2


async def test_concurrent_callers_share_one_refresh():
    clock = FakeClock()
    calls = []

    async def slow_fetch():
        calls.append(1)
        await asyncio.sleep(0.01)
        return AccessToken(value="shared", expires_at=clock() + 3600)

    cache = TokenCache(slow_fetch, clock=clock)
    tokens = await asyncio.gather(*(cache.get() for _ in range(5)))
    assert tokens == ["shared"] * 5
    assert len(calls) == 1


async def test_invalidate_forces_refetch():
    clock = FakeClock()
    fetch, calls = _counting_fetch(clock)
    cache = TokenCache(fetch, clock=clock)
    await cache.get()
    cache.invalidate()
    assert await cache.get() == "tok-2"


async def test_provider_posts_client_credentials():
    clock = FakeClock(5_000.0)
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"access_token": "abc", "expires_in": 3599, "token_type": "Bearer"})

    provider = ClientCredentialsTokenProvider(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), clock=clock
    )
    assert await provider.get_token() == "abc"
    assert await provider.get_token() == "abc"
    assert len(seen) == 1
    assert seen[0].url.path.endswith("/oauth2/v2.0/token")
    assert b"grant_type=client_credentials" in seen[0].content
    assert provider.cache._token.expires_at == 5_000.0 + 3599


async def test_provider_error_is_repository_unavailable():
    handler = lambda request: httpx.Response(401, json={"error": "invalid_client"})
    provider = ClientCredentialsTokenProvider(http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(RepositoryUnavailable):
        await provider.get_token()
