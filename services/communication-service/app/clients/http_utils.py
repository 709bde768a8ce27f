# services/communication-service/app/clients/http_utils.py
from __future__ import annotations

import asyncio
import logging

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from app.config import settings

logger = logging.getLogger("app.clients.http")


# One shared AsyncClient per base_url (connection pooling + timeouts)
_clients: dict[str, httpx.AsyncClient] = {}
_clients_lock = asyncio.Lock()


async def get_http_client(base_url: str) -> httpx.AsyncClient:
    async with _clients_lock:
        client = _clients.get(base_url)
        if client is None or client.is_closed:
            client = httpx.AsyncClient(
                base_url=base_url,
                timeout=settings.http_client_timeout_seconds,
                headers={"User-Agent": f"membership/{settings.service_name}"},
            )
            _clients[base_url] = client
            logger.info("HTTP client created for %s", base_url)
        return client


async def close_http_clients() -> None:
    async with _clients_lock:
        for client in _clients.values():
            if not client.is_closed:
                await client.aclose()
        _clients.clear()


def body_preview(resp: httpx.Response, limit: int = 500) -> str:
    try:
        return resp.text[:limit]
    except Exception:
        return "<unreadable body>"


# A conservative retry wrapper for idempotent GETs only; transport errors only,
# HTTP status handling stays with the caller.
def retryable_get(fn):
    return retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential_jitter(initial=0.2, max=2.0),
        reraise=True,
    )(fn)
