# services/communication-service/app/clients/member_data.py
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import httpx

from app.config import settings
from app.core.url_guard import validate_outbound_url
from app.core.validation import sanitize_hex_id, validate_object_id
from app.errors import UpstreamDataUnavailable
from app.models import CatalogKey, FieldDataType

logger = logging.getLogger("app.clients.member_data")

SOURCES = ("profile", "subscription", "account")


def _dig(record: Any, dotted: str) -> Any:
    cur = record
    for part in dotted.split("."):
        if not isinstance(cur, Mapping):
            return None
        cur = cur.get(part)
        if cur is None:
            return None
    return cur


def coerce_value(value: Any, data_type: str) -> Any:
    if value is None:
        return None
    if data_type == FieldDataType.DATE.value:
        if isinstance(value, (datetime, date)):
            return value.date().isoformat() if isinstance(value, datetime) else value.isoformat()
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date().isoformat()
        except ValueError:
            return str(value)
    if data_type == FieldDataType.NUMBER.value:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        try:
            as_float = float(str(value))
        except ValueError:
            return str(value)
        return int(as_float) if as_float.is_integer() else as_float
    return value if isinstance(value, str) else str(value)


def legacy_projection(records: Mapping[str, Mapping[str, Any]]) -> Dict[str, Any]:
    """Fixed keys every existing template relies on."""
    profile = records.get("profile") or {}
    subscription = records.get("subscription") or {}
    account = records.get("account") or {}
    return {
        "MemberName": profile.get("fullName"),
        "MembershipNumber": profile.get("membershipNumber"),
        "DOB": profile.get("dob"),
        "AddressLine1": _dig(profile, "address.line1"),
        "MembershipStatus": subscription.get("status"),
        "ExpiryDate": subscription.get("expiryDate"),
        "OutstandingBalance": account.get("balance"),
    }


def catalog_projection(
    records: Mapping[str, Mapping[str, Any]], catalog: Iterable[CatalogKey]
) -> Dict[str, Any]:
    """One value per catalog entry whose source_path resolves."""
    out: Dict[str, Any] = {}
    for entry in catalog:
        source, _, path = entry.source_path.partition(".")
        if source not in records or not path:
            continue
        value = coerce_value(_dig(records[source], path), str(entry.data_type))
        if value is not None:
            out[entry.key] = value
    return out


class MemberDataAggregator:
    """
    Builds the flat merge record for one member from the profile,
    subscription and account services.

    Partial-failure policy: a 4xx from one source (typically 404) leaves that
    source empty and is logged; 5xx, timeouts and transport errors fail the
    whole call with UpstreamDataUnavailable.
    """

    def __init__(
        self,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        service_urls: Optional[Mapping[str, str]] = None,
        allowed_hosts: Optional[Sequence[str]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._client = http_client
        self.service_urls = dict(service_urls or {
            "profile": f"{settings.profile_service_url.rstrip('/')}/profiles",
            "subscription": f"{settings.subscription_service_url.rstrip('/')}/subscriptions",
            "account": f"{settings.account_service_url.rstrip('/')}/accounts",
        })
        self.allowed_hosts: List[str] = list(allowed_hosts if allowed_hosts is not None else settings.member_service_hosts)
        self.timeout = timeout_seconds if timeout_seconds is not None else settings.member_data_timeout_seconds

    def _build_urls(self, member_id: str) -> Dict[str, str]:
        urls = {source: f"{self.service_urls[source]}/{member_id}" for source in SOURCES}
        for url in urls.values():
            validate_outbound_url(url, self.allowed_hosts)
        return urls

    async def _fetch_one(self, client: httpx.AsyncClient, source: str, url: str) -> Dict[str, Any]:
        try:
            resp = await client.get(url, timeout=self.timeout, headers={"Accept": "application/json"})
        except httpx.TimeoutException as exc:
            logger.error("Member data: %s timed out after %ss", source, self.timeout)
            raise UpstreamDataUnavailable(f"{source} service timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("Member data: %s transport error: %s", source, exc)
            raise UpstreamDataUnavailable(f"{source} service unreachable: {exc}") from exc

        if resp.status_code >= 500:
            logger.error("Member data: %s returned HTTP %s", source, resp.status_code)
            raise UpstreamDataUnavailable(f"{source} service returned HTTP {resp.status_code}")
        if resp.status_code >= 400:
            logger.warning("Member data: %s returned HTTP %s; continuing without it", source, resp.status_code)
            return {}
        try:
            body = resp.json()
        except ValueError as exc:
            raise UpstreamDataUnavailable(f"{source} service returned invalid JSON") from exc
        if isinstance(body, Mapping) and isinstance(body.get("data"), Mapping):
            body = body["data"]
        return dict(body) if isinstance(body, Mapping) else {}

    async def collect(self, member_id: str, catalog: Iterable[CatalogKey] = ()) -> Dict[str, Any]:
        validate_object_id(member_id, "memberId")
        clean_id = sanitize_hex_id(member_id, "memberId")
        urls = self._build_urls(clean_id)

        if self._client is not None:
            records = await self._gather(self._client, urls)
        else:
            async with httpx.AsyncClient() as client:
                records = await self._gather(client, urls)

        data = {k: v for k, v in legacy_projection(records).items() if v is not None}
        data.update(catalog_projection(records, catalog))
        logger.info(
            "Member data collected for %s (%d keys; sources=%s)",
            clean_id,
            len(data),
            ",".join(s for s in SOURCES if records.get(s)),
        )
        return data

    async def _gather(self, client: httpx.AsyncClient, urls: Mapping[str, str]) -> Dict[str, Dict[str, Any]]:
        tasks = {
            source: asyncio.create_task(self._fetch_one(client, source, urls[source]), name=f"member-data:{source}")
            for source in SOURCES
        }
        try:
            await asyncio.gather(*tasks.values())
        except BaseException:
            # siblings must finish before the owned client closes
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            raise
        return {source: task.result() for source, task in tasks.items()}
