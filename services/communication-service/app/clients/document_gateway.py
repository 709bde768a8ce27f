# services/communication-service/app/clients/document_gateway.py
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx

from app.clients.graph_auth import ClientCredentialsTokenProvider
from app.clients.http_utils import body_preview, get_http_client, retryable_get
from app.config import settings
from app.errors import RepositoryUnavailable, ValidationFailed

logger = logging.getLogger("app.clients.document_gateway")

_FILE_REF_RE = re.compile(r"[A-Za-z0-9!._-]{1,256}")
_UNSAFE_NAME_CHARS = re.compile(r'[\\/:*?"<>|#%\x00-\x1f]')


def safe_file_ref(file_ref: str) -> str:
    if not isinstance(file_ref, str) or not _FILE_REF_RE.fullmatch(file_ref):
        raise RepositoryUnavailable(f"Refusing malformed file reference {file_ref!r}")
    return file_ref


def safe_file_name(file_name: str) -> str:
    """Keep only the final path component and drop characters Graph rejects."""
    base = re.split(r"[\\/]", file_name or "")[-1]
    cleaned = _UNSAFE_NAME_CHARS.sub("_", base).strip(" .")
    if not cleaned:
        raise ValidationFailed("Invalid file name")
    return cleaned[:200]


class GraphDocumentGateway:
    """
    Template binaries in a Microsoft Graph drive, addressed by item id.

      fetch(file_ref)          GET  {drive}/items/{id}/content
      create(content, name)    PUT  {drive}/root:/{folder}/{name}:/content
      replace(file_ref, bytes) PUT  {drive}/items/{id}/content   (id preserved)

    Bearer tokens come from the service's own client-credential flow.
    """

    def __init__(
        self,
        *,
        token_provider: Optional[ClientCredentialsTokenProvider] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        base_url: Optional[str] = None,
        drive_id: Optional[str] = None,
        folder: Optional[str] = None,
    ) -> None:
        self.base_url = (base_url or settings.graph_base_url).rstrip("/")
        self.token_provider = token_provider or ClientCredentialsTokenProvider()
        self._client = http_client
        drive = settings.graph_drive_id if drive_id is None else drive_id
        self.drive_prefix = f"/drives/{quote(drive, safe='!')}" if drive else "/me/drive"
        self.folder = (settings.graph_templates_folder if folder is None else folder).strip("/")

    async def _http(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await get_http_client(self.base_url)

    async def _headers(self, extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        token = await self.token_provider.get_token()
        headers = {"Authorization": f"Bearer {token}"}
        if extra:
            headers.update(extra)
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}{self.drive_prefix}{path}"

    # ---------------------------------------------------------------------
    # Reads
    # ---------------------------------------------------------------------
    @retryable_get
    async def _get_content(self, file_ref: str) -> httpx.Response:
        client = await self._http()
        return await client.get(
            self._url(f"/items/{file_ref}/content"),
            headers=await self._headers(),
            follow_redirects=True,
        )

    async def fetch(self, file_ref: str) -> bytes:
        ref = safe_file_ref(file_ref)
        try:
            resp = await self._get_content(ref)
        except httpx.HTTPError as exc:
            logger.error("Graph fetch failed for item %s: %s", ref, exc)
            raise RepositoryUnavailable(f"Graph fetch failed: {exc}") from exc
        if resp.status_code == 401:
            self.token_provider.cache.invalidate()
        if resp.status_code != 200:
            logger.error("Graph fetch HTTP %s for item %s: %s", resp.status_code, ref, body_preview(resp))
            raise RepositoryUnavailable(f"Graph fetch returned HTTP {resp.status_code}")
        return resp.content

    # ---------------------------------------------------------------------
    # Writes
    # ---------------------------------------------------------------------
    async def _put(self, url: str, content: bytes, *, params: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        client = await self._http()
        try:
            resp = await client.put(
                url,
                content=content,
                params=params,
                headers=await self._headers({"Content-Type": "application/octet-stream"}),
            )
        except httpx.HTTPError as exc:
            logger.error("Graph upload failed: %s", exc)
            raise RepositoryUnavailable(f"Graph upload failed: {exc}") from exc
        if resp.status_code == 401:
            self.token_provider.cache.invalidate()
        if resp.status_code not in (200, 201):
            logger.error("Graph upload HTTP %s: %s", resp.status_code, body_preview(resp))
            raise RepositoryUnavailable(f"Graph upload returned HTTP {resp.status_code}")
        return resp.json()

    async def create(self, content: bytes, file_name: str) -> str:
        name = safe_file_name(file_name)
        path = f"{self.folder}/{name}" if self.folder else name
        item = await self._put(
            self._url(f"/root:/{quote(path)}:/content"),
            content,
            params={"@microsoft.graph.conflictBehavior": "rename"},
        )
        file_ref = item.get("id")
        if not file_ref:
            raise RepositoryUnavailable("Graph upload response carried no item id")
        logger.info("Graph item created id=%s name=%s size=%s", file_ref, item.get("name"), item.get("size"))
        return file_ref

    async def replace(self, file_ref: str, content: bytes) -> None:
        ref = safe_file_ref(file_ref)
        item = await self._put(self._url(f"/items/{ref}/content"), content)
        logger.info("Graph item replaced id=%s size=%s", ref, item.get("size"))

    async def delete(self, file_ref: str) -> bool:
        """Best-effort removal; used only to compensate a failed registry write."""
        ref = safe_file_ref(file_ref)
        client = await self._http()
        try:
            resp = await client.delete(self._url(f"/items/{ref}"), headers=await self._headers())
        except httpx.HTTPError as exc:
            logger.warning("Graph delete failed for item %s: %s", ref, exc)
            return False
        if resp.status_code == 401:
            self.token_provider.cache.invalidate()
        if resp.status_code not in (200, 204):
            logger.warning("Graph delete HTTP %s for item %s: %s", resp.status_code, ref, body_preview(resp))
            return False
        logger.info("Graph item deleted id=%s", ref)
        return True


_gateway: Optional[GraphDocumentGateway] = None


def get_document_gateway() -> GraphDocumentGateway:
    """Process-wide gateway so the Graph token cache is shared across requests."""
    global _gateway
    if _gateway is None:
        _gateway = GraphDocumentGateway()
    return _gateway
