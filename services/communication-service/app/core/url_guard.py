# services/communication-service/app/core/url_guard.py
from __future__ import annotations

import logging
from typing import Iterable, Optional
from urllib.parse import SplitResult, urlsplit

from app.errors import SsrfBlocked

logger = logging.getLogger("app.core.url_guard")

_ALLOWED_SCHEMES = {"http", "https"}
_LOOPBACK_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0"}
_PRIVATE_PREFIXES = (
    "10.",
    "192.168.",
    *(f"172.{n}." for n in range(16, 32)),
)


def is_private_host(hostname: str) -> bool:
    """
    Literal check for loopback and RFC 1918 addresses.
    No DNS resolution: a public name that resolves to a private address passes.
    """
    host = (hostname or "").strip().lower()
    if host in _LOOPBACK_HOSTS:
        return True
    return host.startswith(_PRIVATE_PREFIXES)


def is_allowed_host(hostname: str, allowed_hosts: Iterable[str]) -> bool:
    host = hostname.lower()
    for allowed in allowed_hosts:
        a = allowed.strip().lower()
        if not a:
            continue
        if host == a or host.endswith(f".{a}"):
            return True
    return False


def validate_outbound_url(url: str, allowed_hosts: Optional[Iterable[str]] = None) -> SplitResult:
    """
    Decide whether the service may call `url`. Returns the parsed URL or
    raises SsrfBlocked. Must run for every outbound call whose host or path
    carries caller input.
    """
    try:
        parsed = urlsplit(url)
        hostname = parsed.hostname
    except ValueError as exc:
        logger.warning("Outbound URL rejected: unparsable (%s)", exc)
        raise SsrfBlocked("Invalid URL") from exc

    if parsed.scheme.lower() not in _ALLOWED_SCHEMES:
        logger.warning("Outbound URL rejected: protocol %r", parsed.scheme)
        raise SsrfBlocked("Invalid protocol")

    if not hostname:
        logger.warning("Outbound URL rejected: no hostname")
        raise SsrfBlocked("Invalid URL")

    allowed = [h for h in (allowed_hosts or []) if h and h.strip()]
    if allowed and not is_allowed_host(hostname, allowed):
        logger.warning("Outbound URL rejected: host %s not in allow-list", hostname)
        raise SsrfBlocked("Host not allowed")

    if is_private_host(hostname):
        logger.warning("Outbound URL rejected: private address %s", hostname)
        raise SsrfBlocked("Private IP addresses not allowed")

    return parsed
